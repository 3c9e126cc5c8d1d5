from __future__ import annotations

import asyncio

import pytest
from PIL import Image

from globepalette.config import FlagsConfig
from globepalette.flags import FlagPaletteExtractor, PaletteCache, downsample
from globepalette.models import FlagPaletteResult, RGBColor

RED = (200, 16, 46)
BLUE = (0, 56, 168)
WHITE = (255, 255, 255)
BLACK = (0, 0, 0)


@pytest.mark.asyncio
async def test_absent_reference_returns_fallback_without_caching(fake_loader):
    loader = fake_loader()
    extractor = FlagPaletteExtractor(loader)

    result = await extractor.extract(None, "#C77442")

    assert result == FlagPaletteResult(primary=RGBColor(0xC7, 0x74, 0x42), secondary=None)
    assert len(extractor.cache) == 0
    assert loader.calls == []


@pytest.mark.asyncio
async def test_dominant_and_distinct_secondary(fake_loader, striped_image):
    image = striped_image([(RED, 12), (BLUE, 6), (WHITE, 10)])
    extractor = FlagPaletteExtractor(fake_loader({"flag": image}))

    result = await extractor.extract("flag", "#888888")

    # bucket centres for step 32
    assert result.primary == RGBColor(208, 16, 48)
    assert result.secondary == RGBColor(16, 48, 176)


@pytest.mark.asyncio
async def test_white_black_and_transparent_pixels_are_ignored(fake_loader, striped_image):
    image = striped_image([(WHITE, 20), (BLACK, 20), (BLUE, 2)])
    image.paste((255, 0, 0, 100), (0, 0, 30, 5))  # translucent red over white
    extractor = FlagPaletteExtractor(fake_loader({"flag": image}))

    result = await extractor.extract("flag", "#888888")

    assert result.primary == RGBColor(16, 48, 176)
    assert result.secondary is None


@pytest.mark.asyncio
async def test_secondary_absent_when_all_colours_are_close(fake_loader, striped_image):
    # two shades landing in neighbouring buckets, 32 apart
    image = striped_image([((200, 16, 46), 10), ((230, 16, 46), 5)])
    extractor = FlagPaletteExtractor(fake_loader({"flag": image}))

    result = await extractor.extract("flag", "#888888")

    assert result.primary == RGBColor(208, 16, 48)
    assert result.secondary is None


@pytest.mark.asyncio
async def test_fully_filtered_image_yields_fallback(fake_loader, solid_image):
    extractor = FlagPaletteExtractor(fake_loader({"grey": solid_image((128, 128, 128))}))

    result = await extractor.extract("grey", "#32A189")

    assert result == FlagPaletteResult(primary=RGBColor(0x32, 0xA1, 0x89))


@pytest.mark.asyncio
async def test_one_pixel_image(fake_loader, solid_image):
    extractor = FlagPaletteExtractor(fake_loader({"dot": solid_image(RED, (1, 1))}))
    result = await extractor.extract("dot", "#888888")
    assert result.primary == RGBColor(208, 16, 48)
    assert result.secondary is None


@pytest.mark.asyncio
async def test_load_failure_degrades_and_is_cached(fake_loader):
    loader = fake_loader()
    extractor = FlagPaletteExtractor(loader)

    first = await extractor.extract("https://flags.test/broken.png", "#C77442")
    second = await extractor.extract("https://flags.test/broken.png", "#000000")

    assert first == FlagPaletteResult(primary=RGBColor(0xC7, 0x74, 0x42), secondary=None)
    assert second is first
    assert loader.calls == ["https://flags.test/broken.png"]
    assert "https://flags.test/broken.png" in extractor.cache


@pytest.mark.asyncio
async def test_unparseable_fallback_uses_neutral_grey(fake_loader):
    extractor = FlagPaletteExtractor(fake_loader())
    result = await extractor.extract(None, "orange")
    assert result.primary == RGBColor(136, 136, 136)


@pytest.mark.asyncio
async def test_results_are_cached_per_reference(fake_loader, solid_image):
    loader = fake_loader({"a": solid_image(RED), "b": solid_image(BLUE)})
    cache = PaletteCache()
    extractor = FlagPaletteExtractor(loader, cache=cache)

    await extractor.extract("a", "#888888")
    await extractor.extract("a", "#888888")
    await extractor.extract("b", "#888888")

    assert loader.calls == ["a", "b"]
    assert len(cache) == 2
    assert cache.get("b").primary == RGBColor(16, 48, 176)


@pytest.mark.asyncio
async def test_concurrent_extractions_share_one_load(fake_loader, solid_image):
    loader = fake_loader({"a": solid_image(RED)})
    extractor = FlagPaletteExtractor(loader)

    results = await asyncio.gather(*(extractor.extract("a", "#888888") for _ in range(4)))

    assert loader.calls == ["a"]
    assert len({result.primary for result in results}) == 1


def test_rank_keeps_at_most_max_colors_most_frequent_first(striped_image):
    bands = [
        ((200, 16, 46), 7),
        ((16, 200, 46), 6),
        ((16, 46, 200), 5),
        ((200, 200, 16), 4),
        ((200, 16, 200), 3),
        ((16, 200, 200), 2),
        ((120, 60, 200), 1),
    ]
    extractor = FlagPaletteExtractor(lambda ref: None, cfg=FlagsConfig(max_colors=6))

    ranking = extractor.rank_colors(striped_image(bands))

    assert len(ranking) == 6
    assert ranking[0] == RGBColor(208, 16, 48)
    assert ranking[1] == RGBColor(16, 208, 48)
    assert RGBColor(112, 48, 208) not in ranking


def test_rank_ties_follow_encounter_order(striped_image):
    extractor = FlagPaletteExtractor(lambda ref: None)
    ranking = extractor.rank_colors(striped_image([(BLUE, 5), (RED, 5)]))
    assert ranking == (RGBColor(16, 48, 176), RGBColor(208, 16, 48))


def test_downsample_bounds_pixel_count():
    image = Image.new("RGBA", (400, 300), (200, 16, 46, 255))
    sample = downsample(image, 20_000)
    width, height = sample.size
    assert width * height <= 20_000
    assert (width, height) == (163, 122)


def test_downsample_keeps_small_images_and_minimum_size():
    small = Image.new("RGB", (10, 10), (1, 2, 3))
    assert downsample(small, 20_000).size == (10, 10)
    assert downsample(small, 20_000).mode == "RGBA"
    assert downsample(Image.new("RGBA", (1000, 4)), 1000).size == (500, 2)
    assert downsample(Image.new("RGBA", (50, 50)), 0).size == (1, 1)
