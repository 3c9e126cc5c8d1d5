"""Reference country list parsing and indexing."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable

import yaml

from .models import CountryRecord


_LOGGER = logging.getLogger("globepalette.countries")


def parse_reference_payload(raw: Any, *, source: str = "reference payload") -> list[CountryRecord]:
    """Turn a bulk reference payload into records, skipping malformed rows."""
    if not isinstance(raw, list):
        raise ValueError(f"Expected list in {source}")

    countries: list[CountryRecord] = []
    seen_cca3: set[str] = set()
    skipped = 0
    for idx, item in enumerate(raw):
        if not isinstance(item, dict):
            skipped += 1
            _LOGGER.warning("Skipping non-mapping row at index %d in %s", idx, source)
            continue
        try:
            country = CountryRecord.from_mapping(item)
        except ValueError as exc:
            skipped += 1
            _LOGGER.warning("Skipping invalid row at index %d in %s: %s", idx, source, exc)
            continue
        if country.cca3 in seen_cca3:
            skipped += 1
            _LOGGER.warning("Skipping duplicate cca3 '%s' in %s", country.cca3, source)
            continue
        seen_cca3.add(country.cca3)
        countries.append(country)
    if skipped:
        _LOGGER.info("Parsed %d records from %s (%d skipped)", len(countries), source, skipped)
    return countries


def load_reference_file(path: Path) -> list[CountryRecord]:
    """Load a reference snapshot saved as JSON or YAML."""
    if not path.exists():
        raise FileNotFoundError(f"Reference file not found: {path}")
    with path.open("r", encoding="utf-8") as fh:
        if path.suffix.casefold() == ".json":
            raw = json.load(fh)
        else:
            raw = yaml.safe_load(fh)
    return parse_reference_payload(raw, source=str(path))


def country_index_by_code(countries: Iterable[CountryRecord]) -> dict[str, CountryRecord]:
    """Index by cca3 and cca2. The first record keeps a shared code."""
    index: dict[str, CountryRecord] = {}
    for country in countries:
        index.setdefault(country.cca3, country)
        index.setdefault(country.cca2, country)
    return index
