#!/usr/bin/env python3
"""
bmp_zlib.py

Helpers for .z files (zlib-compressed payloads), e.g. image.bmp.z.
A name ending in .z holds the whole BMP file deflated; any other name is plain.
"""

from __future__ import annotations
import zlib

ZLIB_LEVEL = 9


def is_zpath(path) -> bool:
    return str(path).endswith(".z")


def zread(path) -> bytes:
    """Whole file contents, inflated first when the name ends in .z."""
    with open(path, "rb") as f:
        data = f.read()
    return zlib.decompress(data) if is_zpath(path) else data


def zwrite(path, blob: bytes, level: int = ZLIB_LEVEL) -> int:
    """Write blob deflated at the given level; returns the compressed size."""
    packed = zlib.compress(blob, level)
    with open(path, "wb") as f:
        f.write(packed)
    return len(packed)
