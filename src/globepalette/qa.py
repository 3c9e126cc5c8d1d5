"""HTML swatch sheet for eyeballing enrichment results."""

from __future__ import annotations

from collections import defaultdict
from html import escape
from pathlib import Path
from typing import Sequence

from .models import EnrichmentFeature


_PAGE_CSS = """
    body { font-family: Arial, sans-serif; margin: 16px; }
    .summary { margin: 0 0 16px 0; color: #444; }
    .grid { display: grid; grid-template-columns: repeat(var(--cols), minmax(150px, 1fr)); gap: 12px; }
    .card { border: 1px solid #ddd; border-radius: 8px; padding: 10px; }
    .card.base { border-style: dashed; }
    .card h3 { margin: 0 0 6px 0; font-size: 14px; }
    .pair { display: flex; gap: 4px; margin-bottom: 6px; }
    .pair span { flex: 1; height: 28px; border-radius: 4px; border: 1px solid #ccc; }
    .hex { margin: 0; font-size: 12px; font-family: monospace; color: #333; }
"""


def write_qa_index(
    *,
    features: Sequence[EnrichmentFeature],
    output_html: Path,
    max_columns: int = 6,
) -> Path:
    """Base vs. enriched colour per feature, grouped by continent."""
    by_continent: dict[str, list[EnrichmentFeature]] = defaultdict(list)
    for feature in features:
        by_continent[feature.continent or "Unassigned"].append(feature)

    enriched_total = sum(1 for feature in features if feature.color != feature.base_color)
    sections: list[str] = []
    for continent in sorted(by_continent):
        members = sorted(
            by_continent[continent],
            key=lambda f: ((f.name or f.code or "").casefold(), f.code or ""),
        )
        cards = "\n".join(_card(feature) for feature in members)
        sections.append(
            f"<h2>{escape(continent)} ({len(members)})</h2>\n<div class='grid'>\n{cards}\n</div>"
        )

    html = "\n".join(
        [
            "<!doctype html>",
            "<html lang='en'>",
            "<head>",
            "  <meta charset='utf-8'>",
            "  <title>globepalette QA</title>",
            f"  <style>:root {{ --cols: {max(1, max_columns)}; }}{_PAGE_CSS}  </style>",
            "</head>",
            "<body>",
            "  <h1>Feature colour QA</h1>",
            f"  <p class='summary'>{enriched_total} of {len(features)} features ENRICHED; "
            f"{len(features) - enriched_total} kept BASE colour.</p>",
            *sections,
            "</body>",
            "</html>",
            "",
        ]
    )
    output_html.parent.mkdir(parents=True, exist_ok=True)
    output_html.write_text(html, encoding="utf-8")
    return output_html


def _card(feature: EnrichmentFeature) -> str:
    label = feature.name or feature.code or "unknown"
    state = "enriched" if feature.color != feature.base_color else "base"
    return (
        f"<div class='card {state}'>"
        f"<h3>{escape(label)} ({escape(feature.code or '---')})</h3>"
        "<div class='pair'>"
        f"<span style='background:{escape(feature.base_color)}'></span>"
        f"<span style='background:{escape(feature.color)}'></span>"
        "</div>"
        f"<p class='hex'>{escape(feature.base_color)} &rarr; {escape(feature.color)}</p>"
        "</div>"
    )
