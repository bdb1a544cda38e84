"""Easing curves that remap normalized time for blob growth.

Every curve maps t in [0, 1] to a value anchored at 0 and 1. The elastic and
bounce curves may leave [0, 1] between the anchors.
"""

import math
import re
from enum import Enum
from typing import Callable, Dict, Union


class Easing(str, Enum):
    """Supported easing curves."""

    LINEAR = "linear"
    EASE_OUT = "ease_out"
    EASE_OUT_STRONG = "ease_out_strong"
    EASE_IN_OUT = "ease_in_out"
    EASE_OUT_ELASTIC = "ease_out_elastic"
    EASE_OUT_BOUNCE = "ease_out_bounce"

    @classmethod
    def parse(cls, value: Union[str, "Easing"]) -> "Easing":
        """Resolve an easing from its value, member name or camelCase alias.

        ``"easeOutBounce"``, ``"ease-out-bounce"`` and ``"EASE_OUT_BOUNCE"``
        all resolve to ``Easing.EASE_OUT_BOUNCE``.
        """
        if isinstance(value, cls):
            return value
        text = str(value).strip()
        snake = re.sub(r"(?<=[a-z0-9])([A-Z])", r"_\1", text)
        snake = snake.replace("-", "_").lower()
        try:
            return cls(snake)
        except ValueError:
            options = ", ".join(member.value for member in cls)
            raise ValueError(f"Unknown easing '{value}'. Options: {options}")


def linear(t: float) -> float:
    return t


def ease_out(t: float) -> float:
    return 1 - (1 - t) ** 3


def ease_out_strong(t: float) -> float:
    return 1 - (1 - t) ** 5


def ease_in_out(t: float) -> float:
    if t < 0.5:
        return 2 * t * t
    return 1 - (-2 * t + 2) ** 2 / 2


def ease_out_elastic(t: float) -> float:
    if t == 0:
        return 0.0
    if t == 1:
        return 1.0
    c4 = (2 * math.pi) / 3
    return 2 ** (-10 * t) * math.sin((t * 10 - 0.75) * c4) + 1


def ease_out_bounce(t: float) -> float:
    n1 = 7.5625
    d1 = 2.75
    # last segment only reaches 1 up to float rounding
    if t == 1:
        return 1.0
    if t < 1 / d1:
        return n1 * t * t
    if t < 2 / d1:
        t -= 1.5 / d1
        return n1 * t * t + 0.75
    if t < 2.5 / d1:
        t -= 2.25 / d1
        return n1 * t * t + 0.9375
    t -= 2.625 / d1
    return n1 * t * t + 0.984375


EASING_FUNCTIONS: Dict[Easing, Callable[[float], float]] = {
    Easing.LINEAR: linear,
    Easing.EASE_OUT: ease_out,
    Easing.EASE_OUT_STRONG: ease_out_strong,
    Easing.EASE_IN_OUT: ease_in_out,
    Easing.EASE_OUT_ELASTIC: ease_out_elastic,
    Easing.EASE_OUT_BOUNCE: ease_out_bounce,
}


def get_easing(kind: Union[str, Easing]) -> Callable[[float], float]:
    """Look up the curve function for an easing kind."""
    return EASING_FUNCTIONS[Easing.parse(kind)]


def ease(kind: Union[str, Easing], t: float) -> float:
    """Evaluate easing `kind` at normalized time `t`."""
    return get_easing(kind)(t)
