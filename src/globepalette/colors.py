"""Colour conversion, blending and distance helpers."""

from __future__ import annotations

import math
import re

from .models import RGBColor


_HEX_RE = re.compile(r"^#?([0-9a-fA-F]{6})$")

DEFAULT_BUCKET_STEP = 32


def hex_to_rgb(value: str | None) -> RGBColor | None:
    """Parse `#RRGGBB` (hash optional). Invalid input yields None."""
    if not isinstance(value, str):
        return None
    match = _HEX_RE.match(value.strip())
    if match is None:
        return None
    num = int(match.group(1), 16)
    return RGBColor((num >> 16) & 0xFF, (num >> 8) & 0xFF, num & 0xFF)


def rgb_to_hex(color: tuple[float, float, float]) -> str:
    rgb = RGBColor.clamped(*color)
    return f"#{rgb.r:02X}{rgb.g:02X}{rgb.b:02X}"


def _fraction(value: float) -> float:
    return max(0.0, min(1.0, float(value)))


def lighten_rgb(color: RGBColor, amount: float) -> RGBColor:
    t = _fraction(amount)
    return RGBColor.clamped(*(channel + (255 - channel) * t for channel in color))


def darken_rgb(color: RGBColor, amount: float) -> RGBColor:
    t = _fraction(amount)
    return RGBColor.clamped(*(channel * (1 - t) for channel in color))


def mix_rgb(a: RGBColor, b: RGBColor, ratio: float) -> RGBColor:
    t = _fraction(ratio)
    return RGBColor.clamped(*(ca * (1 - t) + cb * t for ca, cb in zip(a, b)))


def lighten(color: str, amount: float = 0.15) -> str:
    """Blend a hex colour toward white. Unparseable input is returned as is."""
    rgb = hex_to_rgb(color)
    if rgb is None:
        return color
    return rgb_to_hex(lighten_rgb(rgb, amount))


def darken(color: str, amount: float = 0.15) -> str:
    """Blend a hex colour toward black. Unparseable input is returned as is."""
    rgb = hex_to_rgb(color)
    if rgb is None:
        return color
    return rgb_to_hex(darken_rgb(rgb, amount))


def mix(color_a: str, color_b: str, ratio: float = 0.5) -> str:
    a = hex_to_rgb(color_a)
    b = hex_to_rgb(color_b)
    if a is None or b is None:
        return color_a or color_b
    return rgb_to_hex(mix_rgb(a, b, ratio))


def luma(color: tuple[float, float, float]) -> float:
    r, g, b = color
    return 0.2126 * r + 0.7152 * g + 0.0722 * b


def saturation(color: tuple[float, float, float]) -> float:
    high = max(color)
    if high == 0:
        return 0.0
    return (high - min(color)) / high


def color_distance(a: tuple[float, float, float], b: tuple[float, float, float]) -> float:
    return math.sqrt(sum((ca - cb) ** 2 for ca, cb in zip(a, b)))


def quantize(color: tuple[int, int, int], step: int = DEFAULT_BUCKET_STEP) -> RGBColor:
    """Snap each channel to the centre of its `step`-wide bucket."""
    if step < 1:
        raise ValueError("quantize step must be >= 1")
    half = step // 2
    return RGBColor.clamped(*((int(channel) // step) * step + half for channel in color))
