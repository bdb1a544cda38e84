"""Blob layout generation for the supported reveal patterns."""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np

from ..utils.math import clamp_value, polar_offset

logger = logging.getLogger(__name__)

SEED_RANGE = 1000.0

# Corner coverage blobs: (x, y, fraction of size range, delay)
COVERAGE_BLOBS = (
    (0.15, 0.15, 0.3, 0.05),
    (0.85, 0.15, 0.4, 0.08),
    (0.15, 0.85, 0.2, 0.10),
    (0.85, 0.85, 0.3, 0.03),
)
COVERAGE_CENTER_SCALE = 1.1

CORNER_ANCHORS = ((0.1, 0.1), (0.9, 0.1), (0.1, 0.9), (0.9, 0.9))
CORNER_JITTER = 0.15
CORNER_DELAY_STEP = 0.05


class RevealPattern(str, Enum):
    """Spatial arrangement of blob anchors."""

    RANDOM = "random"
    CENTER = "center"
    CORNERS = "corners"
    SPIRAL = "spiral"
    WAVE = "wave"
    EXPLOSION = "explosion"


@dataclass(frozen=True)
class BlobDescriptor:
    """One ink-blob anchor and its growth parameters.

    Positions are normalized to the reveal frame with the origin at the top
    left. ``base_size`` is a fraction of the larger frame dimension and
    ``delay`` is the fraction of the timeline the blob waits before growing.
    """

    x: float
    y: float
    base_size: float
    seed: float
    delay: float

    def __post_init__(self):
        """Validate blob parameters."""
        self.validate()

    def validate(self) -> None:
        """Ensure blob parameters are usable for mask assembly."""
        if not (0.0 <= self.x <= 1.0 and 0.0 <= self.y <= 1.0):
            raise ValueError(f"Blob position out of frame: ({self.x}, {self.y})")

        if not (self.base_size > 0 and math.isfinite(self.base_size)):
            raise ValueError(f"Invalid blob size: {self.base_size}")

        if not math.isfinite(self.seed):
            raise ValueError(f"Invalid blob seed: {self.seed}")

        if not (self.delay >= 0 and math.isfinite(self.delay)):
            raise ValueError(f"Invalid blob delay: {self.delay}")

    def to_dict(self) -> dict:
        return {
            "x": self.x,
            "y": self.y,
            "base_size": self.base_size,
            "seed": self.seed,
            "delay": self.delay,
        }


@dataclass(frozen=True)
class CustomBlob:
    """Caller-supplied blob anchor; missing size and delay are filled in."""

    x: float
    y: float
    size: Optional[float] = None
    delay: Optional[float] = None

    @classmethod
    def from_dict(cls, data: dict) -> "CustomBlob":
        try:
            return cls(
                x=float(data["x"]),
                y=float(data["y"]),
                size=None if data.get("size") is None else float(data["size"]),
                delay=None if data.get("delay") is None else float(data["delay"]),
            )
        except KeyError as e:
            raise ValueError(f"Custom blob is missing coordinate {e}")

    def to_dict(self) -> dict:
        data = {"x": self.x, "y": self.y}
        if self.size is not None:
            data["size"] = self.size
        if self.delay is not None:
            data["delay"] = self.delay
        return data


def coerce_custom_blobs(blobs: Iterable[Union[CustomBlob, dict]]) -> Tuple[CustomBlob, ...]:
    """Accept CustomBlob instances or {x, y, size?, delay?} mappings."""
    coerced = []
    for blob in blobs:
        if isinstance(blob, CustomBlob):
            coerced.append(blob)
        elif isinstance(blob, dict):
            coerced.append(CustomBlob.from_dict(blob))
        else:
            raise ValueError(f"Custom blob must be a CustomBlob or dict, got {type(blob).__name__}")
    return tuple(coerced)


class PatternGenerator:
    """Generate blob layouts from an injected random source.

    Pass a seeded ``numpy.random.Generator`` for reproducible layouts; the
    default draws fresh OS entropy so every reveal looks different.
    """

    def __init__(self, rng: Optional[np.random.Generator] = None):
        self.rng = rng if rng is not None else np.random.default_rng()

    def generate(
        self,
        count: int,
        pattern: Union[str, RevealPattern],
        size_min: float,
        size_max: float,
        stagger: float,
        custom_blobs: Optional[Sequence[Union[CustomBlob, dict]]] = None,
    ) -> List[BlobDescriptor]:
        """Produce the blob set for one reveal."""
        if custom_blobs:
            blobs = self._from_custom(
                coerce_custom_blobs(custom_blobs), size_min, size_max, stagger
            )
            logger.debug(f"Built {len(blobs)} blobs from custom list")
            return blobs

        if count < 1:
            raise ValueError(f"Blob count must be at least 1, got {count}")
        if size_min <= 0 or size_max < size_min:
            raise ValueError(f"Invalid size bounds: [{size_min}, {size_max}]")

        pattern = RevealPattern(pattern)
        builder = {
            RevealPattern.RANDOM: self._random,
            RevealPattern.CENTER: self._center,
            RevealPattern.CORNERS: self._corners,
            RevealPattern.SPIRAL: self._spiral,
            RevealPattern.WAVE: self._wave,
            RevealPattern.EXPLOSION: self._explosion,
        }[pattern]

        blobs = builder(count, size_min, size_max - size_min, stagger)
        logger.debug(f"Generated {len(blobs)} blobs for pattern '{pattern.value}'")
        return blobs

    def _seed(self) -> float:
        return float(self.rng.random() * SEED_RANGE)

    def _size(self, size_min: float, size_range: float) -> float:
        return size_min + float(self.rng.random()) * size_range

    def _blob(self, x: float, y: float, size: float, delay: float) -> BlobDescriptor:
        return BlobDescriptor(
            x=clamp_value(x, 0.0, 1.0),
            y=clamp_value(y, 0.0, 1.0),
            base_size=size,
            seed=self._seed(),
            delay=delay,
        )

    def _from_custom(
        self,
        custom_blobs: Sequence[CustomBlob],
        size_min: float,
        size_max: float,
        stagger: float,
    ) -> List[BlobDescriptor]:
        total = len(custom_blobs)
        blobs = []
        for i, custom in enumerate(custom_blobs):
            size = custom.size
            if size is None:
                size = self._size(size_min, size_max - size_min)
            delay = custom.delay
            if delay is None:
                delay = i / total * stagger
            # Custom positions are validated, never clamped
            blobs.append(BlobDescriptor(
                x=custom.x, y=custom.y, base_size=size, seed=self._seed(), delay=delay
            ))
        return blobs

    def _random(self, count, size_min, size_range, stagger):
        blobs = []
        for _ in range(count):
            x = 0.1 + float(self.rng.random()) * 0.8
            y = 0.1 + float(self.rng.random()) * 0.8
            size = self._size(size_min, size_range)
            delay = float(self.rng.random()) * stagger
            blobs.append(self._blob(x, y, size, delay))

        # Fixed coverage blobs keep the corners and centre from staying empty
        for x, y, fraction, delay in COVERAGE_BLOBS:
            blobs.append(self._blob(x, y, size_min + size_range * fraction, delay))
        size_max = size_min + size_range
        blobs.append(self._blob(0.5, 0.5, size_max * COVERAGE_CENTER_SCALE, 0.0))
        return blobs

    def _center(self, count, size_min, size_range, stagger):
        blobs = []
        for i in range(count):
            angle = i / count * math.pi * 2
            distance = 0.1 + float(self.rng.random()) * 0.4
            x, y = polar_offset(0.5, 0.5, angle, distance)
            size = self._size(size_min, size_range)
            blobs.append(self._blob(x, y, size, distance * stagger * 2))

        size_max = size_min + size_range
        blobs.append(self._blob(0.5, 0.5, size_max * 1.2, 0.0))
        return blobs

    def _corners(self, count, size_min, size_range, stagger):
        # At least one blob per corner so tiny counts still reveal something
        per_corner = max(1, count // 4)
        blobs = []
        for index, (cx, cy) in enumerate(CORNER_ANCHORS):
            for _ in range(per_corner):
                x = cx + (float(self.rng.random()) - 0.5) * CORNER_JITTER * 2
                y = cy + (float(self.rng.random()) - 0.5) * CORNER_JITTER * 2
                size = self._size(size_min, size_range)
                delay = index * CORNER_DELAY_STEP + float(self.rng.random()) * stagger
                blobs.append(self._blob(x, y, size, delay))
        return blobs

    def _spiral(self, count, size_min, size_range, stagger):
        blobs = []
        for i in range(count):
            t = i / count
            angle = t * math.pi * 4
            distance = 0.1 + t * 0.35
            x, y = polar_offset(0.5, 0.5, angle, distance)
            size = self._size(size_min, size_range)
            blobs.append(self._blob(x, y, size, t * stagger))
        return blobs

    def _wave(self, count, size_min, size_range, stagger):
        blobs = []
        for i in range(count):
            x = i / count * 0.8 + 0.1
            jitter = (float(self.rng.random()) - 0.5) * 0.2
            y = 0.5 + math.sin(x * math.pi * 2) * 0.2 + jitter
            size = self._size(size_min, size_range)
            blobs.append(self._blob(x, y, size, x * stagger))
        return blobs

    def _explosion(self, count, size_min, size_range, stagger):
        blobs = []
        for _ in range(count):
            angle = float(self.rng.random()) * math.pi * 2
            distance = 0.05 + float(self.rng.random()) * 0.45
            x, y = polar_offset(0.5, 0.5, angle, distance)
            size = self._size(size_min, size_range * 1.3)
            delay = float(self.rng.random()) * stagger * 0.5
            blobs.append(self._blob(x, y, size, delay))
        return blobs


def generate_blobs(
    count: int,
    pattern: Union[str, RevealPattern],
    size_min: float,
    size_max: float,
    stagger: float,
    custom_blobs: Optional[Iterable[Union[CustomBlob, dict]]] = None,
    rng: Optional[np.random.Generator] = None,
) -> List[BlobDescriptor]:
    """Convenience wrapper around PatternGenerator.generate."""
    custom = list(custom_blobs) if custom_blobs else None
    return PatternGenerator(rng).generate(
        count, pattern, size_min, size_max, stagger, custom
    )
