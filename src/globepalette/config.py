"""Typed configuration loader for `config.yaml`."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, cast

import yaml


_DEFAULT_REFERENCE_URL = (
    "https://restcountries.com/v3.1/all"
    "?fields=name,altSpellings,cca2,cca3,region,subregion,flags"
)
_DEFAULT_USER_AGENT = "globepalette/0.1 (+https://restcountries.com)"

DEFAULT_CONTINENT_COLORS: Mapping[str, str] = {
    "Africa": "#F4CE29",
    "Americas": "#32A189",
    "Asia": "#FF6B6B",
    "Europe": "#8BBED8",
    "Oceania": "#C77442",
    "Antarctic": "#7C94A4",
}
DEFAULT_FEATURE_CONTINENT_COLORS: Mapping[str, str] = {
    "Africa": "#79B957",
    "Americas": "#32A189",
    "Asia": "#F4CE29",
    "Europe": "#8BBED8",
    "Oceania": "#C77442",
    "Antarctic": "#7C94A4",
}
DEFAULT_BASE_COLOR = "#B1C4BB"
DEFAULT_FALLBACK_ACCENT = "#C77442"


def _mapping(value: Any, field_name: str) -> Mapping[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ValueError(f"Expected mapping for '{field_name}'")
    return cast(Mapping[str, Any], value)


def _str(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Expected non-empty string for '{field_name}'")
    return value.strip()


def _int(value: Any, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"Expected integer for '{field_name}'")
    return value


def _float(value: Any, field_name: str) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    raise ValueError(f"Expected float for '{field_name}'")


def _bool(value: Any, field_name: str) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"Expected bool for '{field_name}'")
    return value


def _hex_color(value: Any, field_name: str) -> str:
    raw = _str(value, field_name)
    body = raw[1:] if raw.startswith("#") else raw
    if len(body) != 6 or any(ch not in "0123456789abcdefABCDEF" for ch in body):
        raise ValueError(f"Expected #RRGGBB colour for '{field_name}', got '{raw}'")
    return f"#{body.upper()}"


def _color_map(value: Any, field_name: str, default: Mapping[str, str]) -> dict[str, str]:
    if value is None:
        return dict(default)
    raw = _mapping(value, field_name)
    return {
        _str(key, f"{field_name} key"): _hex_color(color, f"{field_name}.{key}")
        for key, color in raw.items()
    }


def _path_from_cfg(value: Any, field_name: str, root_dir: Path, default: str) -> Path:
    raw = _str(value if value is not None else default, field_name)
    p = Path(raw)
    return p if p.is_absolute() else root_dir / p


def _optional_path(value: Any, field_name: str, root_dir: Path) -> Path | None:
    if value is None:
        return None
    return _path_from_cfg(value, field_name, root_dir, "")


def _fraction(value: Any, field_name: str) -> float:
    result = _float(value, field_name)
    if result < 0.0 or result > 1.0:
        raise ValueError(f"{field_name} must be between 0 and 1")
    return result


@dataclass(frozen=True, slots=True)
class ReferenceConfig:
    url: str = _DEFAULT_REFERENCE_URL
    freshness_s: float = 30 * 60.0
    max_attempts: int = 3
    backoff_s: float = 1.0
    request_timeout_s: float = 20.0
    user_agent: str = _DEFAULT_USER_AGENT

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> ReferenceConfig:
        defaults = cls()
        freshness_s = _float(raw.get("freshness_s", defaults.freshness_s), "reference.freshness_s")
        max_attempts = _int(raw.get("max_attempts", defaults.max_attempts), "reference.max_attempts")
        backoff_s = _float(raw.get("backoff_s", defaults.backoff_s), "reference.backoff_s")
        if freshness_s < 0:
            raise ValueError("reference.freshness_s must be >= 0")
        if max_attempts < 1:
            raise ValueError("reference.max_attempts must be >= 1")
        if backoff_s < 0:
            raise ValueError("reference.backoff_s must be >= 0")
        return cls(
            url=_str(raw.get("url", defaults.url), "reference.url"),
            freshness_s=freshness_s,
            max_attempts=max_attempts,
            backoff_s=backoff_s,
            request_timeout_s=_float(
                raw.get("request_timeout_s", defaults.request_timeout_s),
                "reference.request_timeout_s",
            ),
            user_agent=_str(raw.get("user_agent", defaults.user_agent), "reference.user_agent"),
        )


@dataclass(frozen=True, slots=True)
class FlagsConfig:
    max_sample_pixels: int = 20_000
    bucket_step: int = 32
    max_colors: int = 6
    min_alpha: int = 200
    min_saturation: float = 0.15
    min_luma: float = 20.0
    max_luma: float = 235.0
    secondary_min_distance: float = 40.0
    request_timeout_s: float = 15.0
    prefer_svg: bool = False

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> FlagsConfig:
        defaults = cls()
        cfg = cls(
            max_sample_pixels=_int(
                raw.get("max_sample_pixels", defaults.max_sample_pixels), "flags.max_sample_pixels"
            ),
            bucket_step=_int(raw.get("bucket_step", defaults.bucket_step), "flags.bucket_step"),
            max_colors=_int(raw.get("max_colors", defaults.max_colors), "flags.max_colors"),
            min_alpha=_int(raw.get("min_alpha", defaults.min_alpha), "flags.min_alpha"),
            min_saturation=_fraction(
                raw.get("min_saturation", defaults.min_saturation), "flags.min_saturation"
            ),
            min_luma=_float(raw.get("min_luma", defaults.min_luma), "flags.min_luma"),
            max_luma=_float(raw.get("max_luma", defaults.max_luma), "flags.max_luma"),
            secondary_min_distance=_float(
                raw.get("secondary_min_distance", defaults.secondary_min_distance),
                "flags.secondary_min_distance",
            ),
            request_timeout_s=_float(
                raw.get("request_timeout_s", defaults.request_timeout_s), "flags.request_timeout_s"
            ),
            prefer_svg=_bool(raw.get("prefer_svg", defaults.prefer_svg), "flags.prefer_svg"),
        )
        if cfg.max_sample_pixels < 1:
            raise ValueError("flags.max_sample_pixels must be >= 1")
        if cfg.bucket_step < 1 or cfg.bucket_step > 256:
            raise ValueError("flags.bucket_step must be between 1 and 256")
        if cfg.max_colors < 1:
            raise ValueError("flags.max_colors must be >= 1")
        if cfg.min_luma > cfg.max_luma:
            raise ValueError("flags.min_luma cannot be greater than flags.max_luma")
        return cfg


@dataclass(frozen=True, slots=True)
class PaletteConfig:
    continent_colors: Mapping[str, str] = field(default_factory=lambda: dict(DEFAULT_CONTINENT_COLORS))
    feature_continent_colors: Mapping[str, str] = field(
        default_factory=lambda: dict(DEFAULT_FEATURE_CONTINENT_COLORS)
    )
    default_color: str = DEFAULT_BASE_COLOR
    fallback_accent: str = DEFAULT_FALLBACK_ACCENT
    light_amount: float = 0.18
    dark_amount: float = 0.18
    muted_ratio: float = 0.35

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> PaletteConfig:
        defaults = cls()
        return cls(
            continent_colors=_color_map(
                raw.get("continent_colors"), "palette.continent_colors", DEFAULT_CONTINENT_COLORS
            ),
            feature_continent_colors=_color_map(
                raw.get("feature_continent_colors"),
                "palette.feature_continent_colors",
                DEFAULT_FEATURE_CONTINENT_COLORS,
            ),
            default_color=_hex_color(
                raw.get("default_color", defaults.default_color), "palette.default_color"
            ),
            fallback_accent=_hex_color(
                raw.get("fallback_accent", defaults.fallback_accent), "palette.fallback_accent"
            ),
            light_amount=_fraction(raw.get("light_amount", defaults.light_amount), "palette.light_amount"),
            dark_amount=_fraction(raw.get("dark_amount", defaults.dark_amount), "palette.dark_amount"),
            muted_ratio=_fraction(raw.get("muted_ratio", defaults.muted_ratio), "palette.muted_ratio"),
        )


@dataclass(frozen=True, slots=True)
class EnrichmentConfig:
    slice_size: int = 6

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> EnrichmentConfig:
        slice_size = _int(raw.get("slice_size", cls().slice_size), "enrichment.slice_size")
        if slice_size < 1:
            raise ValueError("enrichment.slice_size must be >= 1")
        return cls(slice_size=slice_size)


@dataclass(frozen=True, slots=True)
class PathsConfig:
    name_overrides: Path
    reference_file: Path | None
    output_dir: Path
    logs_dir: Path

    @property
    def build_directories(self) -> tuple[Path, ...]:
        return (self.output_dir, self.logs_dir)

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], root_dir: Path) -> PathsConfig:
        return cls(
            name_overrides=_path_from_cfg(
                raw.get("name_overrides"), "paths.name_overrides", root_dir, "data/name_overrides.yaml"
            ),
            reference_file=_optional_path(raw.get("reference_file"), "paths.reference_file", root_dir),
            output_dir=_path_from_cfg(raw.get("output_dir"), "paths.output_dir", root_dir, "build"),
            logs_dir=_path_from_cfg(raw.get("logs_dir"), "paths.logs_dir", root_dir, "build/logs"),
        )


@dataclass(frozen=True, slots=True)
class AppConfig:
    source_path: Path | None
    paths: PathsConfig
    reference: ReferenceConfig
    flags: FlagsConfig
    palette: PaletteConfig
    enrichment: EnrichmentConfig

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], source_path: Path | None) -> AppConfig:
        root_dir = source_path.parent.resolve() if source_path is not None else Path.cwd()
        return cls(
            source_path=source_path.resolve() if source_path is not None else None,
            paths=PathsConfig.from_mapping(_mapping(raw.get("paths"), "paths"), root_dir),
            reference=ReferenceConfig.from_mapping(_mapping(raw.get("reference"), "reference")),
            flags=FlagsConfig.from_mapping(_mapping(raw.get("flags"), "flags")),
            palette=PaletteConfig.from_mapping(_mapping(raw.get("palette"), "palette")),
            enrichment=EnrichmentConfig.from_mapping(_mapping(raw.get("enrichment"), "enrichment")),
        )

    @classmethod
    def default(cls) -> AppConfig:
        return cls.from_mapping({}, None)


def load_config(path: str | Path) -> AppConfig:
    """Load and validate the YAML config file into typed settings."""
    cfg_path = Path(path).resolve()
    if not cfg_path.exists():
        raise FileNotFoundError(f"Config file not found: {cfg_path}")
    with cfg_path.open("r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh)
    if raw is None:
        raw = {}
    if not isinstance(raw, Mapping):
        raise ValueError("Top-level config must be a YAML mapping")
    return AppConfig.from_mapping(cast(Mapping[str, Any], raw), cfg_path)
