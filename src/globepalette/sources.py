"""HTTP-backed reference data and flag image sources."""

from __future__ import annotations

import asyncio
import io
import logging
from pathlib import Path
from typing import Any, Mapping

import requests
from PIL import Image

from .config import FlagsConfig, ReferenceConfig
from .countries import parse_reference_payload
from .models import CountryRecord


_LOGGER = logging.getLogger("globepalette.sources")


class RestCountriesSource:
    """Bulk read of the REST Countries reference set."""

    def __init__(self, cfg: ReferenceConfig, session: requests.Session | None = None) -> None:
        self.cfg = cfg
        self._owns_session = session is None
        self._session = session or requests.Session()
        self._session.headers.update({"User-Agent": cfg.user_agent, "Accept": "application/json"})

    def fetch(self) -> list[CountryRecord]:
        response = self._session.get(self.cfg.url, timeout=self.cfg.request_timeout_s)
        response.raise_for_status()
        payload = response.json()
        countries = parse_reference_payload(payload, source=self.cfg.url)
        _LOGGER.info("Fetched %d reference records from %s", len(countries), self.cfg.url)
        return countries

    async def fetch_async(self) -> list[CountryRecord]:
        return await asyncio.to_thread(self.fetch)

    def close(self) -> None:
        """Close the HTTP session if this source created it."""
        if self._owns_session:
            self._session.close()


class HttpImageLoader:
    """Load flag images as RGBA Pillow images.

    Accepts http(s) URLs and local paths. SVG sources are rasterised with
    cairosvg when it is installed.
    """

    def __init__(
        self,
        cfg: FlagsConfig,
        *,
        user_agent: str,
        session: requests.Session | None = None,
        svg_height_px: int = 160,
    ) -> None:
        self.cfg = cfg
        self._owns_session = session is None
        self._session = session or requests.Session()
        self._session.headers.update({"User-Agent": user_agent})
        self._svg_height_px = max(int(svg_height_px), 1)

    async def __call__(self, image_ref: str) -> Image.Image:
        return await asyncio.to_thread(self.load, image_ref)

    def close(self) -> None:
        if self._owns_session:
            self._session.close()

    def load(self, image_ref: str) -> Image.Image:
        data, mime = self._read_bytes(image_ref)
        if _is_svg(image_ref, mime):
            data = self._convert_svg(data)
        with Image.open(io.BytesIO(data)) as image:
            return image.convert("RGBA")

    def _read_bytes(self, image_ref: str) -> tuple[bytes, str | None]:
        if image_ref.startswith(("http://", "https://")):
            response = self._session.get(image_ref, timeout=self.cfg.request_timeout_s)
            response.raise_for_status()
            return (response.content, _content_type(response.headers))
        path = Path(image_ref[len("file://"):] if image_ref.startswith("file://") else image_ref)
        return (path.read_bytes(), None)

    def _convert_svg(self, svg_bytes: bytes) -> bytes:
        try:
            import cairosvg  # type: ignore[import-untyped]
        except ImportError as exc:
            raise RuntimeError("cairosvg is required to sample SVG flags") from exc
        return cairosvg.svg2png(bytestring=svg_bytes, output_height=self._svg_height_px)


def preferred_flag_ref(country: CountryRecord, *, prefer_svg: bool) -> str | None:
    if prefer_svg and country.flag_svg_url:
        return country.flag_svg_url
    return country.flag_url or country.flag_svg_url


def _content_type(headers: Mapping[str, Any]) -> str | None:
    raw = headers.get("Content-Type")
    if not isinstance(raw, str) or not raw.strip():
        return None
    return raw.split(";", 1)[0].strip().casefold()


def _is_svg(image_ref: str, mime: str | None) -> bool:
    if mime is not None and "svg" in mime:
        return True
    return image_ref.split("?", 1)[0].casefold().endswith(".svg")
