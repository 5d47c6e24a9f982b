import os
import sys

import pytest

# Modules live in scripts/ as a flat layout; make them importable without installing.
sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "scripts"))

from bmp_image import BMPImage  # noqa: E402


class ShortSink:
    """Sink that accepts one byte less than it is given."""

    def write(self, b):
        return max(len(b) - 1, 0)


class BrokenSink:
    def write(self, b):
        raise OSError("disk full")


def fill_pattern(img):
    """Deterministic content for every pixel (and palette entry for 8 BPP)."""
    if img.depth == 8:
        for i in range(256):
            img.set_palette_color(i, i, 255 - i, i // 2)
        for y in range(img.height):
            for x in range(img.width):
                img.set_pixel_index(x, y, (x + 3 * y) % 256)
    else:
        for y in range(img.height):
            for x in range(img.width):
                img.set_pixel_color(x, y, (x * 40) % 256, (y * 60) % 256, ((x + y) * 10) % 256)
    return img


@pytest.fixture
def rgb_2x2():
    with BMPImage.create(2, 2, 24) as img:
        yield img


@pytest.fixture
def indexed_3x1():
    with BMPImage.create(3, 1, 8) as img:
        yield img


@pytest.fixture
def short_sink():
    return ShortSink()


@pytest.fixture
def broken_sink():
    return BrokenSink()


@pytest.fixture
def pattern():
    return fill_pattern
