"""Display palette composition from continent defaults and flag colours."""

from __future__ import annotations

from typing import Mapping

from .colors import darken, hex_to_rgb, lighten, mix, rgb_to_hex
from .config import PaletteConfig
from .flags import FlagPaletteExtractor
from .models import CountryRecord, DisplayPalette, PaletteOptions
from .sources import preferred_flag_ref


def continent_color(
    continent: str | None,
    table: Mapping[str, str],
    default: str,
) -> str:
    if not continent:
        return default
    return table.get(continent, default)


class PaletteBuilder:
    """Compose a display palette. Cheap enough to recompute on every call."""

    def __init__(
        self,
        extractor: FlagPaletteExtractor,
        cfg: PaletteConfig | None = None,
    ) -> None:
        self.extractor = extractor
        self.cfg = cfg or PaletteConfig()

    def base_color_for(self, country: CountryRecord | None) -> str:
        region = country.region if country is not None else None
        return continent_color(region, self.cfg.continent_colors, self.cfg.default_color)

    async def build(
        self,
        country: CountryRecord | None,
        options: PaletteOptions | None = None,
    ) -> DisplayPalette:
        opts = options or PaletteOptions()
        override = hex_to_rgb(opts.base_color)
        base = rgb_to_hex(override) if override is not None else self.base_color_for(country)
        fallback_accent = opts.fallback_accent or self.cfg.fallback_accent

        flag_ref = (
            preferred_flag_ref(country, prefer_svg=self.extractor.cfg.prefer_svg)
            if country is not None
            else None
        )
        result = await self.extractor.extract(flag_ref, fallback_accent)
        accent = rgb_to_hex(result.primary)

        return DisplayPalette(
            base=base,
            accent=accent,
            accent_light=lighten(accent, self.cfg.light_amount),
            accent_dark=darken(accent, self.cfg.dark_amount),
            muted=mix(base, accent, self.cfg.muted_ratio),
            secondary=rgb_to_hex(result.secondary) if result.secondary is not None else None,
        )
