"""Country name normalisation and ordered fuzzy resolution."""

from __future__ import annotations

import re
from enum import Enum
from pathlib import Path
from typing import Callable, Iterable, Mapping, Sequence

import yaml

from .models import CountryRecord


# ASCII word characters only: accented letters are stripped, not kept.
_NON_WORD_RE = re.compile(r"[^\w\s]", re.ASCII)
_WHITESPACE_RE = re.compile(r"\s+")

# Boundary datasets and the reference source disagree on these.
DEFAULT_NAME_OVERRIDES: Mapping[str, str] = {
    "United States": "United States of America",
    "United States of America": "United States of America",
    "USA": "United States of America",
    "US": "United States of America",
    "Russia": "Russian Federation",
    "Russian Federation": "Russian Federation",
    "UK": "United Kingdom",
    "United Kingdom": "United Kingdom",
    "Great Britain": "United Kingdom",
    "South Korea": "Korea, Republic of",
    "North Korea": "Korea, Democratic People's Republic of",
    "Czech Republic": "Czechia",
    "Czechia": "Czechia",
    "Myanmar": "Myanmar",
    "Burma": "Myanmar",
    "Ivory Coast": "Côte d'Ivoire",
    "Côte d'Ivoire": "Côte d'Ivoire",
    "East Timor": "Timor-Leste",
    "Timor-Leste": "Timor-Leste",
    "Macedonia": "North Macedonia",
    "North Macedonia": "North Macedonia",
    "Swaziland": "Eswatini",
    "Eswatini": "Eswatini",
}


def normalize_name(name: str | None) -> str:
    """Lower-case, strip punctuation, collapse whitespace. Total over None."""
    if not name:
        return ""
    lowered = name.lower().strip()
    stripped = _NON_WORD_RE.sub("", lowered)
    return _WHITESPACE_RE.sub(" ", stripped)


def load_name_overrides(path: Path) -> dict[str, str]:
    """Load optional extra `alias: canonical name` pairs."""
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh)
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ValueError(f"Expected mapping in {path}")

    overrides: dict[str, str] = {}
    for alias, canonical in raw.items():
        if not isinstance(alias, str) or not alias.strip():
            raise ValueError(f"Name override keys must be non-empty strings in {path}")
        if not isinstance(canonical, str) or not canonical.strip():
            raise ValueError(f"Name override for '{alias}' must be a non-empty string in {path}")
        overrides[alias.strip()] = canonical.strip()
    return overrides


class MatchStrategy(str, Enum):
    OVERRIDE = "override"
    EXACT = "exact"
    NORMALIZED = "normalized"
    PARTIAL = "partial"
    ALT_SPELLING = "alt_spelling"


_Predicate = Callable[[CountryRecord], bool]


class CountryNameMatcher:
    """Resolve free-form place names against a reference set.

    Strategies run in a fixed order and the first hit wins. Within a
    strategy, ties go to whichever record comes first in the reference set.
    """

    ORDER = (
        MatchStrategy.OVERRIDE,
        MatchStrategy.EXACT,
        MatchStrategy.NORMALIZED,
        MatchStrategy.PARTIAL,
        MatchStrategy.ALT_SPELLING,
    )

    def __init__(self, overrides: Mapping[str, str] | None = None) -> None:
        merged = dict(DEFAULT_NAME_OVERRIDES)
        if overrides:
            merged.update(overrides)
        self.overrides: Mapping[str, str] = merged

    def resolve(self, query: str | None, reference_set: Sequence[CountryRecord]) -> CountryRecord | None:
        return self.resolve_with_strategy(query, reference_set)[0]

    def resolve_with_strategy(
        self,
        query: str | None,
        reference_set: Sequence[CountryRecord],
    ) -> tuple[CountryRecord | None, MatchStrategy | None]:
        if not query or not reference_set:
            return (None, None)
        for strategy in self.ORDER:
            predicate = self._predicate(strategy, query)
            if predicate is None:
                continue
            match = _first(reference_set, predicate)
            if match is not None:
                return (match, strategy)
        return (None, None)

    def _predicate(self, strategy: MatchStrategy, query: str) -> _Predicate | None:
        if strategy is MatchStrategy.OVERRIDE:
            mapped = self.overrides.get(query)
            if mapped is None:
                return None
            return lambda country: mapped in country.names

        if strategy is MatchStrategy.EXACT:
            lowered = query.lower()
            return lambda country: any(name.lower() == lowered for name in country.names)

        if strategy is MatchStrategy.NORMALIZED:
            normalized = normalize_name(query)
            if not normalized:
                return None
            return lambda country: any(normalize_name(name) == normalized for name in country.names)

        if strategy is MatchStrategy.PARTIAL:
            lowered = query.lower()
            return lambda country: any(
                lowered in name.lower() or name.lower() in lowered for name in country.names
            )

        normalized = normalize_name(query)
        if not normalized:
            return None
        return lambda country: any(
            normalize_name(alt) == normalized for alt in country.alt_spellings
        )


def _first(records: Iterable[CountryRecord], predicate: _Predicate) -> CountryRecord | None:
    for record in records:
        if predicate(record):
            return record
    return None


def find_by_code(code: str | None, reference_set: Sequence[CountryRecord]) -> CountryRecord | None:
    """Resolve an ISO2 or ISO3 code, case-insensitively."""
    if not code:
        return None
    normalized = code.strip().upper()
    for record in reference_set:
        if normalized in (record.cca3, record.cca2):
            return record
    return None


def build_lookup_table(
    reference_set: Sequence[CountryRecord],
    overrides: Mapping[str, str] | None = None,
) -> dict[str, CountryRecord]:
    """Map every known alias (casefolded) to its record.

    Rebuilt wholesale per reference load. The first record in reference-set
    order keeps an alias that several records share.
    """
    table: dict[str, CountryRecord] = {}

    def _add(alias: str, record: CountryRecord) -> None:
        key = alias.strip().casefold()
        if key and key not in table:
            table[key] = record

    for alias, canonical in (overrides if overrides is not None else DEFAULT_NAME_OVERRIDES).items():
        target = _first(reference_set, lambda country: canonical in country.names)
        if target is not None:
            _add(alias, target)

    for record in reference_set:
        for name in record.names:
            _add(name, record)
            _add(normalize_name(name), record)
        for alt in record.alt_spellings:
            _add(alt, record)
            _add(normalize_name(alt), record)
        _add(record.cca3, record)
    return table
