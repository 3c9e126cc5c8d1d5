"""
Pytest configuration and shared fixtures.

Fixtures available to all tests:
  • make_country(...)   : build a CountryRecord with sensible defaults
  • reference_set       : small ordered reference set of real-world names
  • solid_image(...)    : in-memory RGBA Pillow image of one colour
  • striped_image(...)  : horizontal bands with given colours and heights
  • fake_loader         : FakeLoader class, an async image loader that records calls
"""

from __future__ import annotations

import os
import sys
from typing import Callable, Mapping

import pytest
from PIL import Image

# Ensure src/ is importable without an editable install.
SRC_ROOT = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "src")
if SRC_ROOT not in sys.path:
    sys.path.insert(0, SRC_ROOT)

from globepalette.models import CountryRecord  # noqa: E402


def _country(
    name_common: str,
    cca3: str,
    *,
    cca2: str | None = None,
    name_official: str | None = None,
    region: str | None = "Europe",
    alt_spellings: tuple[str, ...] = (),
    flag_url: str | None = None,
) -> CountryRecord:
    return CountryRecord(
        name_common=name_common,
        name_official=name_official or name_common,
        cca2=cca2 or cca3[:2],
        cca3=cca3,
        region=region,
        alt_spellings=alt_spellings,
        flag_url=flag_url if flag_url is not None else f"https://flags.test/{cca3.lower()}.png",
    )


@pytest.fixture
def make_country() -> Callable[..., CountryRecord]:
    return _country


@pytest.fixture
def reference_set() -> tuple[CountryRecord, ...]:
    return (
        _country(
            "United States",
            "USA",
            cca2="US",
            name_official="United States of America",
            region="Americas",
            alt_spellings=("US", "USA", "United States of America"),
        ),
        _country("Czechia", "CZE", cca2="CZ", name_official="Czech Republic", alt_spellings=("CZ", "Česká republika")),
        _country("France", "FRA", cca2="FR", name_official="French Republic", alt_spellings=("FR", "République française")),
        _country("Niger", "NER", cca2="NE", name_official="Republic of the Niger", region="Africa"),
        _country("Nigeria", "NGA", cca2="NG", name_official="Federal Republic of Nigeria", region="Africa"),
        _country(
            "Côte d'Ivoire",
            "CIV",
            cca2="CI",
            name_official="Republic of Côte d'Ivoire",
            region="Africa",
            alt_spellings=("CI", "Ivory Coast"),
        ),
        _country("Germany", "DEU", cca2="DE", name_official="Federal Republic of Germany", alt_spellings=("DE", "Deutschland")),
    )


def _solid(color: tuple[int, int, int, int] | tuple[int, int, int], size: tuple[int, int] = (30, 20)) -> Image.Image:
    rgba = tuple(color) if len(color) == 4 else (*color, 255)
    return Image.new("RGBA", size, rgba)


def _striped(bands: list[tuple[tuple[int, int, int], int]], width: int = 30) -> Image.Image:
    height = sum(rows for _, rows in bands)
    image = Image.new("RGBA", (width, height), (0, 0, 0, 0))
    top = 0
    for color, rows in bands:
        image.paste((*color, 255), (0, top, width, top + rows))
        top += rows
    return image


@pytest.fixture
def solid_image() -> Callable[..., Image.Image]:
    return _solid


@pytest.fixture
def striped_image() -> Callable[..., Image.Image]:
    return _striped


class FakeLoader:
    """Async image loader serving prepared images; unknown refs raise."""

    def __init__(self, images: Mapping[str, Image.Image] | None = None) -> None:
        self.images = dict(images or {})
        self.calls: list[str] = []

    async def __call__(self, image_ref: str) -> Image.Image:
        self.calls.append(image_ref)
        if image_ref not in self.images:
            raise OSError(f"cannot load {image_ref}")
        return self.images[image_ref]


@pytest.fixture
def fake_loader() -> type[FakeLoader]:
    return FakeLoader
