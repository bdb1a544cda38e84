"""Reveal configuration."""

from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Optional, Tuple

from .compositor import FitMode
from .easing import Easing
from .patterns import CustomBlob, RevealPattern, coerce_custom_blobs
from ..utils.math import parse_hex_color


@dataclass(frozen=True)
class RevealConfiguration:
    """Immutable parameter set driving blob generation and playback."""

    # Blob layout
    pattern: RevealPattern = RevealPattern.RANDOM
    blob_count: int = 14
    blob_size_min: float = 0.12
    blob_size_max: float = 0.30
    blob_stagger: float = 0.15
    custom_blobs: Optional[Tuple[CustomBlob, ...]] = None

    # Blob edges
    blob_roughness: float = 0.3
    blob_complexity: int = 60

    # Timeline
    easing: Easing = Easing.EASE_OUT
    duration_ms: float = 2500.0
    delay_ms: float = 0.0
    fade_in_start: float = 0.7
    disable_animation: bool = False

    # Triggering
    trigger_on_viewport: bool = True
    viewport_threshold: float = 0.1
    viewport_root_margin: str = "0px"

    # Drawing
    fit_mode: FitMode = FitMode.COVER
    high_dpi: bool = True
    device_pixel_ratio: float = 1.0
    background_color: str = "#e5e7eb"
    placeholder_blur: float = 20.0

    # Passed through to the host untouched
    alt: str = ""
    aria_label: Optional[str] = None

    def __post_init__(self):
        """Coerce enum fields and validate ranges."""
        object.__setattr__(self, "pattern", RevealPattern(self.pattern))
        object.__setattr__(self, "easing", Easing.parse(self.easing))
        object.__setattr__(self, "fit_mode", FitMode(self.fit_mode))
        if self.custom_blobs is not None:
            object.__setattr__(self, "custom_blobs", coerce_custom_blobs(self.custom_blobs))

        if self.blob_count < 1:
            raise ValueError(f"Blob count must be at least 1, got {self.blob_count}")
        if not (0 < self.blob_size_min <= self.blob_size_max):
            raise ValueError(
                f"Blob sizes must satisfy 0 < min <= max, "
                f"got [{self.blob_size_min}, {self.blob_size_max}]"
            )
        if self.blob_stagger < 0:
            raise ValueError(f"Blob stagger must be non-negative, got {self.blob_stagger}")
        if self.blob_roughness < 0:
            raise ValueError(f"Blob roughness must be non-negative, got {self.blob_roughness}")
        if self.blob_complexity < 3:
            raise ValueError(f"Blob complexity must be at least 3, got {self.blob_complexity}")
        if self.duration_ms <= 0:
            raise ValueError(f"Duration must be positive, got {self.duration_ms}")
        if self.delay_ms < 0:
            raise ValueError(f"Start delay must be non-negative, got {self.delay_ms}")
        if not (0 <= self.fade_in_start < 1):
            raise ValueError(f"fade_in_start must be in [0, 1), got {self.fade_in_start}")
        if not (0 <= self.viewport_threshold <= 1):
            raise ValueError(
                f"Viewport threshold must be in [0, 1], got {self.viewport_threshold}"
            )
        if self.device_pixel_ratio <= 0:
            raise ValueError(
                f"Device pixel ratio must be positive, got {self.device_pixel_ratio}"
            )
        if self.placeholder_blur < 0:
            raise ValueError(
                f"Placeholder blur must be non-negative, got {self.placeholder_blur}"
            )
        parse_hex_color(self.background_color)

    @property
    def effective_pixel_ratio(self) -> float:
        return self.device_pixel_ratio if self.high_dpi else 1.0

    def generation_key(self) -> Tuple:
        """Fields whose change requires a fresh blob set."""
        return (
            self.blob_count,
            self.pattern,
            self.blob_size_min,
            self.blob_size_max,
            self.blob_stagger,
            self.custom_blobs,
        )

    def replace(self, **changes: Any) -> "RevealConfiguration":
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data.update(changes)
        return RevealConfiguration(**data)

    def to_dict(self) -> Dict[str, Any]:
        """Plain-data form with enums as their string values."""
        data = asdict(self)
        data["pattern"] = self.pattern.value
        data["easing"] = self.easing.value
        data["fit_mode"] = self.fit_mode.value
        if self.custom_blobs is not None:
            data["custom_blobs"] = [blob.to_dict() for blob in self.custom_blobs]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RevealConfiguration":
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")
        return cls(**data)
