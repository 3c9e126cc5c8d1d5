"""Domain models shared across pipeline modules."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, NamedTuple


def _require_str(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Expected non-empty string for '{field_name}'")
    return value.strip()


def _optional_str(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _normalize_code(value: Any, expected_len: int, field_name: str) -> str:
    normalized = _require_str(value, field_name).upper()
    if len(normalized) != expected_len or not normalized.isalpha():
        raise ValueError(f"Invalid {field_name}: '{value}'")
    return normalized


class RGBColor(NamedTuple):
    """Three 8-bit channels."""

    r: int
    g: int
    b: int

    @classmethod
    def clamped(cls, r: float, g: float, b: float) -> RGBColor:
        return cls(_clamp_channel(r), _clamp_channel(g), _clamp_channel(b))


def _clamp_channel(value: float) -> int:
    return max(0, min(255, int(round(value))))


@dataclass(frozen=True, slots=True)
class CountryRecord:
    """Canonical country row from the reference data source."""

    name_common: str
    name_official: str
    cca2: str
    cca3: str
    region: str | None = None
    subregion: str | None = None
    alt_spellings: tuple[str, ...] = ()
    flag_url: str | None = None
    flag_svg_url: str | None = None

    @property
    def names(self) -> tuple[str, str]:
        return (self.name_common, self.name_official)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> CountryRecord:
        """Build a record from a REST Countries v3.1 style row."""
        name_raw = data.get("name")
        if isinstance(name_raw, Mapping):
            name_common = _require_str(name_raw.get("common"), "name.common")
            name_official = _optional_str(name_raw.get("official")) or name_common
        else:
            name_common = _require_str(name_raw, "name")
            name_official = name_common

        alt_raw = data.get("altSpellings", [])
        if alt_raw is None:
            alt_raw = []
        if not isinstance(alt_raw, list):
            raise ValueError("Expected list for 'altSpellings'")
        alt_spellings = tuple(item.strip() for item in alt_raw if isinstance(item, str) and item.strip())

        flags_raw = data.get("flags")
        png_url: str | None = None
        svg_url: str | None = None
        if isinstance(flags_raw, Mapping):
            png_url = _optional_str(flags_raw.get("png"))
            svg_url = _optional_str(flags_raw.get("svg"))
        flag_url = _optional_str(data.get("flag_url")) or png_url or svg_url

        return cls(
            name_common=name_common,
            name_official=name_official,
            cca2=_normalize_code(data.get("cca2"), 2, "cca2"),
            cca3=_normalize_code(data.get("cca3"), 3, "cca3"),
            region=_optional_str(data.get("region")),
            subregion=_optional_str(data.get("subregion")),
            alt_spellings=alt_spellings,
            flag_url=flag_url,
            flag_svg_url=svg_url,
        )


@dataclass(frozen=True, slots=True)
class FlagPaletteResult:
    """Primary flag colour and an optional clearly distinct secondary one."""

    primary: RGBColor
    secondary: RGBColor | None = None


@dataclass(frozen=True, slots=True)
class PaletteOptions:
    base_color: str | None = None
    fallback_accent: str | None = None


@dataclass(frozen=True, slots=True)
class DisplayPalette:
    """Display colours for one country as `#RRGGBB` strings."""

    base: str
    accent: str
    accent_light: str
    accent_dark: str
    muted: str
    secondary: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "base": self.base,
            "accent": self.accent,
            "accent_light": self.accent_light,
            "accent_dark": self.accent_dark,
            "muted": self.muted,
            "secondary": self.secondary,
        }


@dataclass(slots=True)
class EnrichmentFeature:
    """One boundary polygon; enrichment only ever writes `color`."""

    code: str | None
    base_color: str
    name: str | None = None
    continent: str | None = None
    color: str = ""
    properties: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.color:
            self.color = self.base_color
