"""Admin-0 boundary feature loading for enrichment."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterable, Mapping, Sequence

from .config import PaletteConfig
from .models import EnrichmentFeature
from .palette import continent_color


ISO_PROPERTY_CANDIDATES = (
    "ISO_A3",
    "ADM0_A3",
    "ISO_A3_EH",
    "ADM0_A3_US",
    "ADM0_A3_UN",
    "SOV_A3",
    "WB_A3",
    "BRK_A3",
    "SU_A3",
    "GU_A3",
    "ISO3",
    "A3",
)
NAME_PROPERTY_CANDIDATES = ("NAME", "name", "ADMIN", "NAME_ENG", "NAME_EN", "NAME_LONG")
CONTINENT_PROPERTY_CANDIDATES = ("CONTINENT", "continent", "REGION_UN", "region_un", "REGION", "region")

# Natural Earth splits the Americas; the palette tables do not.
_CONTINENT_ALIASES = {
    "North America": "Americas",
    "South America": "Americas",
    "Antarctica": "Antarctic",
}


def load_feature_collection(path: Path) -> list[Mapping[str, Any]]:
    """Read raw features: GeoJSON directly, anything else through GeoPandas."""
    if not path.exists():
        raise FileNotFoundError(f"Features file not found: {path}")
    if path.suffix.casefold() in {".json", ".geojson"}:
        with path.open("r", encoding="utf-8") as fh:
            raw = json.load(fh)
        if not isinstance(raw, Mapping) or not isinstance(raw.get("features"), list):
            raise ValueError(f"Expected a GeoJSON FeatureCollection in {path}")
        return [item for item in raw["features"] if isinstance(item, Mapping)]

    gpd = _require_geopandas()
    frame = gpd.read_file(path)
    columns = [str(col) for col in frame.columns if str(col) != "geometry"]
    out: list[Mapping[str, Any]] = []
    for row in frame[columns].itertuples(index=False):
        out.append({"type": "Feature", "properties": dict(zip(columns, row))})
    return out


def build_features(
    raw_features: Sequence[Mapping[str, Any]],
    cfg: PaletteConfig,
    *,
    iso_allowlist: set[str] | None = None,
) -> list[EnrichmentFeature]:
    """Convert raw GeoJSON features into enrichment features.

    The identity code comes from `feature.id` when it looks like ISO3,
    otherwise from the best-scoring ISO3 property across the collection.
    """
    property_rows = [_properties(item) for item in raw_features]
    iso_key = detect_iso_property(property_rows, iso_allowlist=iso_allowlist)
    name_key = _first_existing_key(property_rows, NAME_PROPERTY_CANDIDATES)

    features: list[EnrichmentFeature] = []
    for item, props in zip(raw_features, property_rows):
        continent = feature_continent(props)
        features.append(
            EnrichmentFeature(
                code=_feature_code(item, props, iso_key),
                name=_clean_str(props.get(name_key)) if name_key else None,
                continent=continent,
                base_color=continent_color(
                    continent,
                    cfg.feature_continent_colors,
                    cfg.default_color,
                ),
                properties=props,
            )
        )
    return features


def feature_continent(props: Mapping[str, Any]) -> str | None:
    for key in CONTINENT_PROPERTY_CANDIDATES:
        value = _clean_str(props.get(key))
        if value:
            return _CONTINENT_ALIASES.get(value, value)
    return None


def detect_iso_property(
    rows: Sequence[Mapping[str, Any]],
    *,
    iso_allowlist: set[str] | None = None,
) -> str | None:
    """Pick the best ISO3-like property using name hints and value scoring."""
    existing: list[str] = []
    for row in rows:
        for key in row:
            if key not in existing:
                existing.append(str(key))
    by_lower = {key.lower(): key for key in existing}

    candidates: list[str] = []
    for candidate in ISO_PROPERTY_CANDIDATES:
        match = by_lower.get(candidate.lower())
        if match and match not in candidates:
            candidates.append(match)
    for candidate in _heuristic_iso_candidates(existing):
        if candidate not in candidates:
            candidates.append(candidate)

    best_key: str | None = None
    best_score: tuple[int, int, int] | None = None
    for candidate in candidates:
        score = _score_iso_values([row.get(candidate) for row in rows], iso_allowlist=iso_allowlist)
        if best_score is None or score > best_score:
            best_key = candidate
            best_score = score

    if best_key is None or best_score is None or best_score[1] == 0:
        return None
    return best_key


def _feature_code(item: Mapping[str, Any], props: Mapping[str, Any], iso_key: str | None) -> str | None:
    feature_id = _as_iso3(item.get("id"))
    if feature_id is not None:
        return feature_id
    if iso_key is None:
        return None
    return _as_iso3(props.get(iso_key))


def _as_iso3(value: Any) -> str | None:
    if value is None:
        return None
    normalized = str(value).strip().upper()
    if len(normalized) == 3 and normalized.isalpha():
        return normalized
    return None


def _score_iso_values(
    values: list[Any],
    *,
    iso_allowlist: set[str] | None,
) -> tuple[int, int, int]:
    valid = [code for code in (_as_iso3(value) for value in values) if code is not None]
    valid_set = set(valid)
    overlap_count = len(valid_set & iso_allowlist) if iso_allowlist else 0
    return (overlap_count, len(valid), len(valid_set))


def _heuristic_iso_candidates(keys: Iterable[str]) -> list[str]:
    candidates: list[str] = []
    for key in keys:
        norm = "".join(ch for ch in key.upper() if ch.isalnum())
        if "A3" not in norm:
            continue
        if any(token in norm for token in ("ISO", "ADM0", "SOV", "WB", "BRK", "GU", "SU")):
            candidates.append(key)
    return candidates


def _first_existing_key(rows: Sequence[Mapping[str, Any]], candidates: Sequence[str]) -> str | None:
    for candidate in candidates:
        if any(_clean_str(row.get(candidate)) for row in rows):
            return candidate
    return None


def _properties(item: Mapping[str, Any]) -> Mapping[str, Any]:
    props = item.get("properties")
    return props if isinstance(props, Mapping) else {}


def _clean_str(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _require_geopandas() -> Any:
    try:
        import geopandas as gpd
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("geopandas is required to read non-GeoJSON boundary files") from exc
    return gpd
