"""Dominant flag colour extraction."""

from __future__ import annotations

import asyncio
import logging
import math
from collections import Counter
from typing import Awaitable, Callable, Iterable

from PIL import Image

from .colors import color_distance, hex_to_rgb, luma, quantize, saturation
from .config import FlagsConfig
from .models import FlagPaletteResult, RGBColor


_LOGGER = logging.getLogger("globepalette.flags")

# Used when the caller's fallback is not a parseable hex colour.
_NEUTRAL_GREY = RGBColor(136, 136, 136)

ImageLoader = Callable[[str], Awaitable[Image.Image]]


class PaletteCache:
    """Extraction results keyed by image reference, kept for the process lifetime."""

    def __init__(self) -> None:
        self._entries: dict[str, FlagPaletteResult] = {}

    def get(self, image_ref: str) -> FlagPaletteResult | None:
        return self._entries.get(image_ref)

    def put(self, image_ref: str, result: FlagPaletteResult) -> None:
        self._entries[image_ref] = result

    def __contains__(self, image_ref: object) -> bool:
        return image_ref in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def clear(self) -> None:
        self._entries.clear()


class FlagPaletteExtractor:
    """Sample a flag image and pick a primary and a distinct secondary colour.

    Extraction never raises: absent references, load failures and images
    with no usable pixels all degrade to the fallback colour.
    """

    def __init__(
        self,
        loader: ImageLoader,
        *,
        cache: PaletteCache | None = None,
        cfg: FlagsConfig | None = None,
    ) -> None:
        self._loader = loader
        self.cache = cache if cache is not None else PaletteCache()
        self.cfg = cfg or FlagsConfig()
        self._inflight: dict[str, asyncio.Task[FlagPaletteResult]] = {}

    async def extract(self, image_ref: str | None, fallback_color: str) -> FlagPaletteResult:
        fallback = FlagPaletteResult(primary=_fallback_rgb(fallback_color))
        if not image_ref:
            return fallback

        cached = self.cache.get(image_ref)
        if cached is not None:
            return cached

        task = self._inflight.get(image_ref)
        if task is None:
            task = asyncio.ensure_future(self._load_and_rank(image_ref, fallback))
            self._inflight[image_ref] = task
            task.add_done_callback(lambda _: self._inflight.pop(image_ref, None))
        return await asyncio.shield(task)

    async def _load_and_rank(self, image_ref: str, fallback: FlagPaletteResult) -> FlagPaletteResult:
        try:
            image = await self._loader(image_ref)
            ranking = await asyncio.to_thread(self.rank_colors, image)
        except Exception as exc:
            _LOGGER.warning("Flag colour extraction failed for %s; using fallback: %s", image_ref, exc)
            self.cache.put(image_ref, fallback)
            return fallback

        result = self.select_palette(ranking, fallback.primary)
        self.cache.put(image_ref, result)
        _LOGGER.debug(
            "Flag palette for %s: %d buckets, primary=%s secondary=%s",
            image_ref,
            len(ranking),
            result.primary,
            result.secondary,
        )
        return result

    def rank_colors(self, image: Image.Image) -> tuple[RGBColor, ...]:
        """Most frequent colour buckets after filtering, most frequent first."""
        sample = downsample(image, self.cfg.max_sample_pixels)
        counts: Counter[RGBColor] = Counter()
        for pixel in _iter_rgba(sample):
            r, g, b, a = pixel
            if a < self.cfg.min_alpha:
                continue
            rgb = (r, g, b)
            if saturation(rgb) < self.cfg.min_saturation:
                continue
            brightness = luma(rgb)
            if brightness < self.cfg.min_luma or brightness > self.cfg.max_luma:
                continue
            counts[quantize(rgb, self.cfg.bucket_step)] += 1
        # Counter.most_common is stable for equal counts (insertion order)
        return tuple(color for color, _ in counts.most_common(self.cfg.max_colors))

    def select_palette(self, ranking: tuple[RGBColor, ...], fallback_primary: RGBColor) -> FlagPaletteResult:
        if not ranking:
            return FlagPaletteResult(primary=fallback_primary)
        primary = ranking[0]
        secondary = next(
            (
                color
                for color in ranking[1:]
                if color_distance(color, primary) > self.cfg.secondary_min_distance
            ),
            None,
        )
        return FlagPaletteResult(primary=primary, secondary=secondary)


def downsample(image: Image.Image, max_pixels: int) -> Image.Image:
    """Uniformly shrink so width * height stays within `max_pixels`."""
    width, height = image.size
    area = max(width * height, 1)
    ratio = math.sqrt(min(1.0, max_pixels / area))
    target = (max(1, math.floor(width * ratio)), max(1, math.floor(height * ratio)))
    rgba = image if image.mode == "RGBA" else image.convert("RGBA")
    if target == rgba.size:
        return rgba
    resampling = getattr(getattr(Image, "Resampling", Image), "BILINEAR")
    return rgba.resize(target, resample=resampling)


def _iter_rgba(image: Image.Image) -> Iterable[tuple[int, int, int, int]]:
    getter = getattr(image, "get_flattened_data", None) or image.getdata
    return getter()


def _fallback_rgb(fallback_color: str) -> RGBColor:
    return hex_to_rgb(fallback_color) or _NEUTRAL_GREY
