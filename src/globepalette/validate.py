"""Validation layer for config and input files."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from .config import AppConfig
from .countries import country_index_by_code, load_reference_file
from .features import build_features, load_feature_collection
from .models import CountryRecord
from .names import DEFAULT_NAME_OVERRIDES, build_lookup_table, load_name_overrides
from .util import format_code_list


@dataclass(slots=True)
class ValidationReport:
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    infos: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)

    def add_info(self, msg: str) -> None:
        self.infos.append(msg)


class Validator:
    """Offline checks over overrides, a reference snapshot and boundary features."""

    def __init__(self, cfg: AppConfig) -> None:
        self.cfg = cfg

    def run(self, *, features_path: Path | None = None) -> ValidationReport:
        report = ValidationReport()
        overrides = self._validate_name_overrides(report)
        countries = self._validate_reference_file(report, overrides=overrides)
        if features_path is not None:
            self._validate_features(report, features_path, countries=countries)
        return report

    def _validate_name_overrides(self, report: ValidationReport) -> dict[str, str]:
        path = self.cfg.paths.name_overrides
        merged = dict(DEFAULT_NAME_OVERRIDES)
        if not path.exists():
            report.add_info(f"No name overrides file at {path}; using built-in table only")
            return merged
        try:
            overrides = load_name_overrides(path)
        except Exception as exc:
            report.add_error(f"Failed parsing name overrides '{path}': {exc}")
            return merged
        report.add_info(f"Loaded {len(overrides)} name override entries from {path}")
        merged.update(overrides)
        return merged

    def _validate_reference_file(
        self,
        report: ValidationReport,
        *,
        overrides: dict[str, str],
    ) -> list[CountryRecord]:
        path = self.cfg.paths.reference_file
        if path is None:
            report.add_info("No reference_file configured; reference data will be fetched over HTTP")
            return []
        try:
            countries = load_reference_file(path)
        except Exception as exc:
            report.add_error(f"Failed loading reference file '{path}': {exc}")
            return []
        if not countries:
            report.add_error(f"Reference file is empty: {path}")
            return []
        report.add_info(f"Loaded {len(countries)} reference records from {path}")

        names = {name for country in countries for name in country.names}
        dangling = sorted({target for target in overrides.values() if target not in names})
        if dangling:
            report.add_warning(
                "Name override targets missing from reference set: " + format_code_list(dangling)
            )

        table = build_lookup_table(countries, overrides)
        reachable = set(table.values())
        unreachable = [country.cca3 for country in countries if country not in reachable]
        if unreachable:
            report.add_error("Records with no alias in lookup table: " + format_code_list(unreachable))
        else:
            report.add_info(f"Lookup table holds {len(table)} aliases")

        missing_flags = sorted(country.cca3 for country in countries if not country.flag_url)
        if missing_flags:
            report.add_warning("Records without flag image: " + format_code_list(missing_flags))
        return countries

    def _validate_features(
        self,
        report: ValidationReport,
        path: Path,
        *,
        countries: list[CountryRecord],
    ) -> None:
        try:
            raw = load_feature_collection(path)
        except Exception as exc:
            report.add_error(f"Failed loading features '{path}': {exc}")
            return
        index = country_index_by_code(countries)
        features = build_features(raw, self.cfg.palette, iso_allowlist=set(index) or None)
        report.add_info(f"Loaded {len(features)} boundary features from {path}")

        without_code = [feature.name or "?" for feature in features if feature.code is None]
        if without_code:
            report.add_warning(
                f"{len(without_code)} features have no ISO3 code and will keep base colours: "
                + format_code_list(sorted(without_code))
            )
        if index:
            unknown = sorted(
                {feature.code for feature in features if feature.code and feature.code not in index}
            )
            if unknown:
                report.add_warning("Feature codes missing from reference set: " + format_code_list(unknown))


def format_report_lines(report: ValidationReport) -> list[str]:
    lines: list[str] = []
    lines.extend(f"[INFO] {msg}" for msg in report.infos)
    lines.extend(f"[WARN] {msg}" for msg in report.warnings)
    lines.extend(f"[ERROR] {msg}" for msg in report.errors)
    if report.ok:
        lines.append("[OK] Validation completed with no errors.")
    return lines
