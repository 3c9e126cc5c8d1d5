"""Progressive, slice-by-slice colour enrichment of map features."""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Sequence

from .models import CountryRecord, EnrichmentFeature, PaletteOptions
from .palette import PaletteBuilder


_LOGGER = logging.getLogger("globepalette.enrichment")

LookupFn = Callable[[str], CountryRecord | None]
ProgressFn = Callable[["EnrichmentProgress"], Any]
YieldFn = Callable[[], Awaitable[None]]


class CancellationToken:
    """Stops the scheduler before its next slice. Colours already written stay."""

    def __init__(self) -> None:
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True


@dataclass(frozen=True, slots=True)
class EnrichmentProgress:
    slice_index: int
    slice_count: int
    processed: int
    total: int
    features: tuple[EnrichmentFeature, ...]

    @property
    def done(self) -> bool:
        return self.processed >= self.total


@dataclass(frozen=True, slots=True)
class EnrichmentSummary:
    total: int
    processed: int
    enriched: int
    fallback: int
    slices: int
    cancelled: bool


async def _yield_to_loop() -> None:
    await asyncio.sleep(0)


class EnrichmentScheduler:
    """Walk features in fixed-size slices with bounded concurrency.

    Each slice settles completely before its colours are published, so a
    progress callback always sees a fully resolved prefix of the features.
    """

    def __init__(
        self,
        builder: PaletteBuilder,
        *,
        slice_size: int = 6,
        yield_control: YieldFn = _yield_to_loop,
    ) -> None:
        if slice_size < 1:
            raise ValueError("slice_size must be >= 1")
        self.builder = builder
        self.slice_size = slice_size
        self._yield_control = yield_control

    async def enrich(
        self,
        features: Sequence[EnrichmentFeature],
        lookup: LookupFn,
        *,
        on_progress: ProgressFn | None = None,
        cancel: CancellationToken | None = None,
    ) -> EnrichmentSummary:
        total = len(features)
        slice_count = -(-total // self.slice_size)
        processed = 0
        enriched = 0
        slices_done = 0

        for slice_index, start in enumerate(range(0, total, self.slice_size)):
            if cancel is not None and cancel.cancelled:
                _LOGGER.info("[enrich] cancelled after %d/%d features", processed, total)
                break
            batch = tuple(features[start:start + self.slice_size])
            outcomes = await asyncio.gather(*(self._enrich_one(feature, lookup) for feature in batch))
            enriched += sum(1 for ok in outcomes if ok)
            processed += len(batch)
            slices_done += 1
            _LOGGER.debug("[enrich] (%d/%d) slice done, %d/%d features", slices_done, slice_count, processed, total)

            if on_progress is not None:
                await self._publish(
                    on_progress,
                    EnrichmentProgress(
                        slice_index=slice_index,
                        slice_count=slice_count,
                        processed=processed,
                        total=total,
                        features=batch,
                    ),
                )
            if processed < total:
                await self._yield_control()

        summary = EnrichmentSummary(
            total=total,
            processed=processed,
            enriched=enriched,
            fallback=processed - enriched,
            slices=slices_done,
            cancelled=processed < total,
        )
        _LOGGER.info(
            "[enrich] summary: total=%d, enriched=%d, fallback=%d, slices=%d, cancelled=%s",
            summary.total,
            summary.enriched,
            summary.fallback,
            summary.slices,
            summary.cancelled,
        )
        return summary

    async def _enrich_one(self, feature: EnrichmentFeature, lookup: LookupFn) -> bool:
        """Set one feature's colour. True when a flag accent was applied."""
        try:
            country = lookup(feature.code) if feature.code else None
            if country is None:
                feature.color = feature.base_color
                return False
            palette = await self.builder.build(country, PaletteOptions(base_color=feature.base_color))
            if not palette.accent:
                raise ValueError("palette has no accent")
            feature.color = palette.accent
            return True
        except Exception as exc:
            _LOGGER.warning("[enrich] palette failed for %s; keeping base colour: %s", feature.code, exc)
            feature.color = feature.base_color
            return False

    @staticmethod
    async def _publish(on_progress: ProgressFn, progress: EnrichmentProgress) -> None:
        outcome = on_progress(progress)
        if inspect.isawaitable(outcome):
            await outcome
