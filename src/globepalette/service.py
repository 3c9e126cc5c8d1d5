"""Consumer-facing facade wiring the caches, matcher and scheduler together."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Callable, Mapping, Sequence

from .config import AppConfig
from .countries import load_reference_file
from .enrichment import CancellationToken, EnrichmentScheduler, EnrichmentSummary, ProgressFn
from .flags import FlagPaletteExtractor, ImageLoader, PaletteCache
from .models import CountryRecord, DisplayPalette, EnrichmentFeature, PaletteOptions
from .names import CountryNameMatcher, MatchStrategy, load_name_overrides
from .palette import PaletteBuilder
from .reference import FetchFn, ReferenceDataCache, ReferenceDataUnavailable
from .sources import HttpImageLoader, RestCountriesSource


_LOGGER = logging.getLogger("globepalette.service")


class GlobePaletteService:
    """Resolve names, build palettes and enrich feature colours.

    Collaborators are injected so tests can build isolated instances; use
    `from_config` for the HTTP-backed defaults.
    """

    def __init__(
        self,
        reference: ReferenceDataCache,
        builder: PaletteBuilder,
        *,
        matcher: CountryNameMatcher | None = None,
        slice_size: int = 6,
        closers: Sequence[Callable[[], None]] = (),
    ) -> None:
        self.reference = reference
        self.builder = builder
        self.matcher = matcher or CountryNameMatcher()
        self.scheduler = EnrichmentScheduler(builder, slice_size=slice_size)
        self._closers = list(closers)

    @classmethod
    def from_config(
        cls,
        cfg: AppConfig,
        *,
        fetch: FetchFn | None = None,
        loader: ImageLoader | None = None,
    ) -> GlobePaletteService:
        overrides = load_name_overrides(cfg.paths.name_overrides)
        matcher = CountryNameMatcher(overrides)
        closers: list[Callable[[], None]] = []
        if fetch is None:
            if cfg.paths.reference_file is not None:
                fetch = _file_fetch(cfg.paths.reference_file)
            else:
                source = RestCountriesSource(cfg.reference)
                closers.append(source.close)
                fetch = source.fetch_async
        reference = ReferenceDataCache.from_config(cfg.reference, fetch, overrides=matcher.overrides)
        if loader is None:
            http_loader = HttpImageLoader(cfg.flags, user_agent=cfg.reference.user_agent)
            closers.append(http_loader.close)
            loader = http_loader
        extractor = FlagPaletteExtractor(loader, cache=PaletteCache(), cfg=cfg.flags)
        builder = PaletteBuilder(extractor, cfg.palette)
        return cls(
            reference,
            builder,
            matcher=matcher,
            slice_size=cfg.enrichment.slice_size,
            closers=closers,
        )

    def close(self) -> None:
        """Release HTTP sessions created by `from_config`. Safe to call twice."""
        closers, self._closers = self._closers, []
        for closer in closers:
            closer()

    async def reference_set(self) -> Sequence[CountryRecord]:
        """Current reference set, falling back to a stale snapshot on failure."""
        try:
            return await self.reference.get_reference_set()
        except ReferenceDataUnavailable:
            stale = self.reference.snapshot()
            if stale is None:
                raise
            _LOGGER.warning("Reference refresh failed; serving stale snapshot of %d records", len(stale))
            return stale

    async def resolve_country_by_name(self, name: str) -> CountryRecord | None:
        record, _ = await self.resolve_with_strategy(name)
        return record

    async def resolve_with_strategy(self, name: str) -> tuple[CountryRecord | None, MatchStrategy | None]:
        countries = await self.reference_set()
        return self.matcher.resolve_with_strategy(name, countries)

    async def resolve_country_by_code(self, code: str) -> CountryRecord | None:
        await self.reference_set()
        return self.reference.get_by_code(code)

    async def get_palette(
        self,
        country: CountryRecord | None,
        options: PaletteOptions | None = None,
    ) -> DisplayPalette:
        return await self.builder.build(country, options)

    async def get_palette_by_name(
        self,
        name: str,
        options: PaletteOptions | None = None,
    ) -> DisplayPalette | None:
        country = await self.resolve_country_by_name(name)
        if country is None:
            return None
        return await self.builder.build(country, options)

    async def enrich_feature_colors(
        self,
        features: Sequence[EnrichmentFeature],
        on_progress: ProgressFn | None = None,
        *,
        cancel: CancellationToken | None = None,
    ) -> EnrichmentSummary:
        """Colour features progressively.

        Without reference data every feature keeps its base colour.
        """
        try:
            await self.reference_set()
        except ReferenceDataUnavailable as exc:
            _LOGGER.warning("Enrichment running without reference data: %s", exc)
        return await self.scheduler.enrich(
            features,
            self.reference.get_by_code,
            on_progress=on_progress,
            cancel=cancel,
        )

    def lookup_table(self) -> Mapping[str, CountryRecord]:
        return self.reference.lookup_table()


def _file_fetch(path: Path) -> FetchFn:
    async def _fetch_file() -> list[CountryRecord]:
        return await asyncio.to_thread(load_reference_file, path)

    return _fetch_file
