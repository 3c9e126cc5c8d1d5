"""CLI entrypoint for globepalette."""

from __future__ import annotations

import argparse
import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

from .config import AppConfig, load_config
from .enrichment import EnrichmentProgress, EnrichmentSummary
from .features import build_features, load_feature_collection
from .models import EnrichmentFeature
from .qa import write_qa_index
from .reference import GlobePaletteError
from .service import GlobePaletteService
from .util import ensure_directories, setup_logging, write_json
from .validate import Validator, format_report_lines

LOGGER = logging.getLogger("globepalette.cli")


@dataclass(slots=True)
class EnrichReport:
    output_path: Path | None = None
    qa_index_path: Path | None = None
    summary: EnrichmentSummary | None = None
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


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="globepalette",
        description="Country name resolution and flag-derived map palettes.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_common(p: argparse.ArgumentParser) -> None:
        p.add_argument("--config", default="config.yaml", help="Path to YAML config.")
        p.add_argument("--verbose", action="store_true", help="Enable debug logs.")

    validate_p = subparsers.add_parser("validate", help="Validate config and input files.")
    add_common(validate_p)
    validate_p.add_argument("--features", default=None, help="Optional boundary features file to check.")

    resolve_p = subparsers.add_parser("resolve", help="Resolve place names to country records.")
    add_common(resolve_p)
    resolve_p.add_argument("names", nargs="+", help="Place names to resolve.")

    palette_p = subparsers.add_parser("palette", help="Print the display palette for place names.")
    add_common(palette_p)
    palette_p.add_argument("names", nargs="+", help="Place names to resolve and colour.")

    enrich_p = subparsers.add_parser("enrich", help="Colour boundary features from their flags.")
    add_common(enrich_p)
    enrich_p.add_argument("--features", required=True, help="GeoJSON (or GeoPandas-readable) boundary file.")
    enrich_p.add_argument(
        "--output",
        default=None,
        help="Output JSON path (default: <output_dir>/feature_colors.json).",
    )
    enrich_p.add_argument(
        "--qa-index",
        action="store_true",
        help="Also write an HTML swatch sheet next to the output.",
    )
    return parser


def _load_and_setup(args: argparse.Namespace) -> AppConfig:
    config_path = Path(args.config)
    cfg = load_config(config_path) if config_path.exists() else AppConfig.default()
    log_path = cfg.paths.logs_dir / "globepalette.log"
    setup_logging(log_path, verbose=args.verbose)
    if not config_path.exists():
        LOGGER.info("Config %s not found; using built-in defaults.", config_path)
    ensure_directories(cfg.paths.build_directories)
    return cfg


def _run_validate(cfg: AppConfig, *, features: str | None) -> int:
    report = Validator(cfg).run(features_path=Path(features) if features else None)
    for line in format_report_lines(report):
        LOGGER.info(line)
    return 0 if report.ok else 1


async def _run_resolve(service: GlobePaletteService, names: Sequence[str]) -> int:
    misses = 0
    for name in names:
        record, strategy = await service.resolve_with_strategy(name)
        if record is None:
            misses += 1
            LOGGER.warning("%s -> no match", name)
            continue
        LOGGER.info(
            "%s -> %s (%s, %s) via %s",
            name,
            record.name_common,
            record.cca3,
            record.region or "no region",
            strategy.value if strategy is not None else "?",
        )
    return 0 if misses == 0 else 1


async def _run_palette(service: GlobePaletteService, names: Sequence[str]) -> int:
    misses = 0
    for name in names:
        country = await service.resolve_country_by_name(name)
        if country is None:
            misses += 1
            LOGGER.warning("%s -> no match", name)
            continue
        palette = await service.get_palette(country)
        LOGGER.info(
            "%s (%s): base=%s accent=%s light=%s dark=%s muted=%s secondary=%s",
            country.name_common,
            country.cca3,
            palette.base,
            palette.accent,
            palette.accent_light,
            palette.accent_dark,
            palette.muted,
            palette.secondary or "-",
        )
    return 0 if misses == 0 else 1


async def run_enrich(
    cfg: AppConfig,
    service: GlobePaletteService,
    *,
    features_path: Path,
    output_path: Path | None = None,
    qa_index: bool = False,
) -> EnrichReport:
    target = output_path or cfg.paths.output_dir / "feature_colors.json"
    report = EnrichReport(output_path=target)
    try:
        raw = load_feature_collection(features_path)
    except Exception as exc:
        report.add_error(f"Failed loading features '{features_path}': {exc}")
        return report
    features = build_features(raw, cfg.palette)
    if not features:
        report.add_error(f"No features found in {features_path}")
        return report
    report.add_info(f"Loaded {len(features)} features from {features_path}")

    def _on_progress(progress: EnrichmentProgress) -> None:
        LOGGER.info(
            "[enrich] (%d/%d) %d/%d features coloured",
            progress.slice_index + 1,
            progress.slice_count,
            progress.processed,
            progress.total,
        )

    summary = await service.enrich_feature_colors(features, _on_progress)
    report.summary = summary
    report.add_info(
        "Enrichment summary: "
        f"total={summary.total}, "
        f"enriched={summary.enriched}, "
        f"fallback={summary.fallback}, "
        f"slices={summary.slices}"
    )
    if summary.enriched == 0:
        report.add_warning("No feature received a flag colour; check reference data availability.")

    write_json(target, _colors_payload(features))
    report.add_info(f"Feature colours written to {target}")

    if qa_index:
        report.qa_index_path = write_qa_index(
            features=features,
            output_html=target.with_suffix(".html"),
        )
        report.add_info(f"QA index written to {report.qa_index_path}")
    return report


def format_enrich_lines(report: EnrichReport) -> Sequence[str]:
    lines: list[str] = []
    lines.extend(f"[INFO] {msg}" for msg in report.infos)
    lines.extend(f"[WARN] {msg}" for msg in report.warnings)
    lines.extend(f"[ERROR] {msg}" for msg in report.errors)
    if report.ok:
        lines.append("[OK] Enrichment completed with no errors.")
    return lines


def _colors_payload(features: Sequence[EnrichmentFeature]) -> list[dict[str, str | None]]:
    return [
        {
            "code": feature.code,
            "name": feature.name,
            "continent": feature.continent,
            "base_color": feature.base_color,
            "color": feature.color,
        }
        for feature in features
    ]


async def _run_enrich(
    cfg: AppConfig,
    service: GlobePaletteService,
    *,
    features: str,
    output: str | None,
    qa_index: bool,
) -> int:
    report = await run_enrich(
        cfg,
        service,
        features_path=Path(features),
        output_path=Path(output) if output else None,
        qa_index=qa_index,
    )
    for line in format_enrich_lines(report):
        LOGGER.info(line)
    return 0 if report.ok else 1


def _dispatch(args: argparse.Namespace) -> int:
    cfg = _load_and_setup(args)
    command = str(args.command)
    if command == "validate":
        return _run_validate(cfg, features=args.features)

    service = GlobePaletteService.from_config(cfg)
    try:
        if command == "resolve":
            return asyncio.run(_run_resolve(service, list(args.names)))
        if command == "palette":
            return asyncio.run(_run_palette(service, list(args.names)))
        if command == "enrich":
            return asyncio.run(
                _run_enrich(
                    cfg,
                    service,
                    features=str(args.features),
                    output=args.output,
                    qa_index=bool(args.qa_index),
                )
            )
    except GlobePaletteError as exc:
        LOGGER.error("%s failed: %s", command, exc)
        return 1
    finally:
        service.close()
    raise ValueError(f"Unknown command: {command}")


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    return _dispatch(args)


if __name__ == "__main__":
    raise SystemExit(main())
