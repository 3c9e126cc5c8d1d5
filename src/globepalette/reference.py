"""Time-bounded cache of the canonical country reference set."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, Mapping, Sequence

from .config import ReferenceConfig
from .countries import country_index_by_code
from .models import CountryRecord
from .names import DEFAULT_NAME_OVERRIDES, build_lookup_table


_LOGGER = logging.getLogger("globepalette.reference")

FetchFn = Callable[[], Awaitable[Sequence[CountryRecord]]]
SleepFn = Callable[[float], Awaitable[None]]
ClockFn = Callable[[], float]


class GlobePaletteError(Exception):
    """Base class for errors surfaced to callers."""


class ReferenceDataUnavailable(GlobePaletteError):
    """Raised when the reference set could not be fetched after retries."""


class ReferenceDataCache:
    """Serve the reference set, refetching once the freshness window lapses.

    A failed refresh keeps the previous snapshot. Concurrent callers share a
    single in-flight fetch.
    """

    def __init__(
        self,
        fetch: FetchFn,
        *,
        freshness_s: float = 30 * 60.0,
        max_attempts: int = 3,
        backoff_s: float = 1.0,
        overrides: Mapping[str, str] | None = None,
        clock: ClockFn = time.monotonic,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self._fetch = fetch
        self._freshness_s = max(float(freshness_s), 0.0)
        self._max_attempts = max_attempts
        self._backoff_s = max(float(backoff_s), 0.0)
        self._overrides = overrides if overrides is not None else DEFAULT_NAME_OVERRIDES
        self._clock = clock
        self._sleep = sleep
        self._records: tuple[CountryRecord, ...] | None = None
        self._fetched_at: float | None = None
        self._lookup: dict[str, CountryRecord] = {}
        self._by_code: dict[str, CountryRecord] = {}
        self._pending: asyncio.Task[tuple[CountryRecord, ...]] | None = None

    @classmethod
    def from_config(
        cls,
        cfg: ReferenceConfig,
        fetch: FetchFn,
        *,
        overrides: Mapping[str, str] | None = None,
    ) -> ReferenceDataCache:
        return cls(
            fetch,
            freshness_s=cfg.freshness_s,
            max_attempts=cfg.max_attempts,
            backoff_s=cfg.backoff_s,
            overrides=overrides,
        )

    def is_fresh(self) -> bool:
        if self._records is None or self._fetched_at is None:
            return False
        return (self._clock() - self._fetched_at) <= self._freshness_s

    def snapshot(self) -> tuple[CountryRecord, ...] | None:
        """Last good reference set, possibly stale."""
        return self._records

    def lookup_table(self) -> Mapping[str, CountryRecord]:
        return self._lookup

    def get_by_code(self, code: str | None) -> CountryRecord | None:
        if not code:
            return None
        return self._by_code.get(code.strip().upper())

    def invalidate(self) -> None:
        self._fetched_at = None

    async def get_reference_set(self) -> tuple[CountryRecord, ...]:
        if self.is_fresh():
            assert self._records is not None
            return self._records
        if self._pending is None:
            self._pending = asyncio.ensure_future(self._refresh())
            self._pending.add_done_callback(self._clear_pending)
        # shield: one caller being cancelled must not cancel the shared fetch
        return await asyncio.shield(self._pending)

    def _clear_pending(self, task: asyncio.Task[tuple[CountryRecord, ...]]) -> None:
        if self._pending is task:
            self._pending = None
        if not task.cancelled():
            # mark retrieved so an unobserved failure is not logged by asyncio
            task.exception()

    async def _refresh(self) -> tuple[CountryRecord, ...]:
        last_error: BaseException | None = None
        for attempt in range(self._max_attempts):
            try:
                fetched = tuple(await self._fetch())
                if not fetched:
                    raise ValueError("reference source returned no records")
            except Exception as exc:
                last_error = exc
                _LOGGER.warning(
                    "Reference fetch attempt %d/%d failed: %s",
                    attempt + 1,
                    self._max_attempts,
                    exc,
                )
                if attempt < self._max_attempts - 1:
                    delay_s = self._backoff_s * (2**attempt)
                    _LOGGER.info("Retrying reference fetch in %.1fs", delay_s)
                    await self._sleep(delay_s)
                continue
            self._install(fetched)
            return fetched

        raise ReferenceDataUnavailable(
            f"Reference data unavailable after {self._max_attempts} attempts: {last_error}"
        ) from last_error

    def _install(self, records: tuple[CountryRecord, ...]) -> None:
        self._records = records
        self._fetched_at = self._clock()
        self._lookup = build_lookup_table(records, self._overrides)
        self._by_code = country_index_by_code(records)
        _LOGGER.info("Reference set loaded: %d records, %d aliases", len(records), len(self._lookup))
