#!/usr/bin/env python3
"""
bmp_image.py

In-memory BMP image: header + optional 256-entry palette + padded pixel buffer.

Buffers are numpy uint8 arrays laid out exactly as on disk: row 0 of the pixel
buffer is the bottom scanline, each row padded to a multiple of 4 bytes, colors
in BGR(X) order. Accessors take top-down coordinates (y=0 is the top row) and
map them to buffer row (height - y - 1).

An image is not thread safe. Sharing one across threads needs external locking;
concurrent mutation of the same image is undefined.
"""

from __future__ import annotations

import dataclasses
import logging
import operator
from typing import Optional, Tuple

import numpy as np

from bmp_errors import (
    InvalidArgument,
    OutOfMemory,
    TypeMismatch,
    UnsupportedVariant,
    records_status,
)
from bmp_header import (
    BMP_PALETTE_ENTRIES,
    BMP_PALETTE_SIZE,
    SUPPORTED_DEPTHS,
    BMPHeader,
)

log = logging.getLogger(__name__)

U32_MAX = 0xFFFFFFFF


def alloc_buffer(size: int) -> np.ndarray:
    """Zero-filled uint8 buffer; any allocation failure is reported as OutOfMemory."""
    try:
        return np.zeros(size, dtype=np.uint8)
    except (MemoryError, ValueError) as e:
        raise OutOfMemory(f"cannot allocate {size} bytes: {e}") from None


def _as_int(value, name: str) -> int:
    try:
        return operator.index(value)
    except TypeError:
        raise InvalidArgument(f"{name} must be an integer, got {value!r}") from None


def _as_byte(value, name: str) -> int:
    v = _as_int(value, name)
    if not 0 <= v <= 255:
        raise InvalidArgument(f"{name}={v} out of range 0..255")
    return v


def _as_dimension(value, name: str) -> int:
    v = _as_int(value, name)
    if not 0 < v <= U32_MAX:
        raise InvalidArgument(f"{name}={v} must be in 1..{U32_MAX}")
    return v


class BMPImage:
    """
    A decoded or freshly created bitmap.

    Use BMPImage.create() for a blank image, or bmp_codec.read_bmp() and friends
    to decode one. Palette and pixel buffers live exactly as long as the image:
    free() (or leaving a `with` block) releases both together.
    """

    def __init__(self, header: BMPHeader, palette: Optional[np.ndarray], data: np.ndarray):
        self._header = header
        self._palette = palette
        self._data = data

    @classmethod
    @records_status
    def create(cls, width: int, height: int, depth: int) -> "BMPImage":
        """Blank image: all pixels zero, palette (8 BPP only) all black."""
        width = _as_dimension(width, "width")
        height = _as_dimension(height, "height")
        depth = _as_int(depth, "depth")
        if depth not in SUPPORTED_DEPTHS:
            raise UnsupportedVariant(f"unsupported depth {depth}, must be one of {SUPPORTED_DEPTHS}")

        header = BMPHeader.blank(width, height, depth)
        if header.file_size > U32_MAX:
            raise InvalidArgument(f"{width}x{height}x{depth} does not fit in a BMP file")

        palette = alloc_buffer(BMP_PALETTE_SIZE) if depth == 8 else None
        data = alloc_buffer(header.image_data_size)
        log.debug("created %dx%d %d BPP image (%d data bytes)",
                  width, height, depth, header.image_data_size)
        return cls(header, palette, data)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @records_status
    def free(self) -> None:
        self._palette = None
        self._data = None

    close = free

    @property
    def closed(self) -> bool:
        return self._data is None

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.free()
        return False

    def __repr__(self):
        if self.closed:
            return "<BMPImage freed>"
        h = self._header
        return f"<BMPImage {h.width}x{h.height} {h.bits_per_pixel} BPP>"

    def _require_open(self) -> None:
        if self._data is None:
            raise InvalidArgument("image has been freed")

    # ------------------------------------------------------------------
    # Geometry
    # ------------------------------------------------------------------

    @property
    @records_status
    def header(self) -> BMPHeader:
        """A copy of the header record."""
        self._require_open()
        return dataclasses.replace(self._header)

    @property
    @records_status
    def width(self) -> int:
        self._require_open()
        return self._header.width

    @width.setter
    @records_status
    def width(self, value: int) -> None:
        self._require_open()
        self._resize(_as_dimension(value, "width"), self._header.height)

    @property
    @records_status
    def height(self) -> int:
        self._require_open()
        return self._header.height

    @height.setter
    @records_status
    def height(self, value: int) -> None:
        self._require_open()
        self._resize(self._header.width, _as_dimension(value, "height"))

    @property
    @records_status
    def depth(self) -> int:
        self._require_open()
        return self._header.bits_per_pixel

    @property
    @records_status
    def row_stride(self) -> int:
        self._require_open()
        return self._header.row_stride

    def _resize(self, width: int, height: int) -> None:
        """Change the canvas size, keeping the overlapping top-left region."""
        old = self._header
        new = dataclasses.replace(old, width=width, height=height)
        new.update_derived()
        if new.file_size > U32_MAX:
            raise InvalidArgument(f"{width}x{height} does not fit in a BMP file")

        data = alloc_buffer(new.image_data_size)
        keep_h = min(old.height, height)
        keep_cols = min(old.width, width) * old.bytes_per_pixel
        src = self._data.reshape(old.height, old.row_stride)
        dst = data.reshape(height, new.row_stride)
        # Top rows live at the end of the bottom-up buffer.
        dst[height - keep_h:, :keep_cols] = src[old.height - keep_h:, :keep_cols]

        log.debug("resized %dx%d -> %dx%d", old.width, old.height, width, height)
        self._header = new
        self._data = data

    # ------------------------------------------------------------------
    # Pixel / palette access
    # ------------------------------------------------------------------

    def _pixel_offset(self, x, y) -> int:
        self._require_open()
        x = _as_int(x, "x")
        y = _as_int(y, "y")
        h = self._header
        if not (0 <= x < h.width and 0 <= y < h.height):
            raise InvalidArgument(f"pixel ({x}, {y}) outside {h.width}x{h.height} image")
        # Rows are stored bottom-up.
        return (h.height - y - 1) * h.row_stride + x * h.bytes_per_pixel

    def _require_depth(self, indexed: bool) -> None:
        if (self._header.bits_per_pixel == 8) != indexed:
            kind = "indexed (8 BPP)" if indexed else "direct color (24/32 BPP)"
            raise TypeMismatch(
                f"operation needs a {kind} image, this one is {self._header.bits_per_pixel} BPP"
            )

    @records_status
    def get_pixel_color(self, x: int, y: int) -> Tuple[int, int, int]:
        """(r, g, b) of a pixel; 8 BPP images resolve the index through the palette."""
        off = self._pixel_offset(x, y)
        if self._header.bits_per_pixel == 8:
            src = self._palette
            off = int(self._data[off]) * 4
        else:
            src = self._data
        b, g, r = src[off:off + 3]
        return int(r), int(g), int(b)

    @records_status
    def set_pixel_color(self, x: int, y: int, r: int, g: int, b: int) -> None:
        off = self._pixel_offset(x, y)
        self._require_depth(indexed=False)
        bgr = (_as_byte(b, "b"), _as_byte(g, "g"), _as_byte(r, "r"))
        self._data[off:off + 3] = bgr

    @records_status
    def get_pixel_index(self, x: int, y: int) -> int:
        off = self._pixel_offset(x, y)
        self._require_depth(indexed=True)
        return int(self._data[off])

    @records_status
    def set_pixel_index(self, x: int, y: int, value: int) -> None:
        off = self._pixel_offset(x, y)
        self._require_depth(indexed=True)
        self._data[off] = _as_byte(value, "value")

    def _palette_offset(self, index) -> int:
        self._require_open()
        self._require_depth(indexed=True)
        index = _as_int(index, "index")
        if not 0 <= index < BMP_PALETTE_ENTRIES:
            raise InvalidArgument(f"palette index {index} out of range 0..255")
        return index * 4

    @records_status
    def get_palette_color(self, index: int) -> Tuple[int, int, int]:
        off = self._palette_offset(index)
        b, g, r = self._palette[off:off + 3]
        return int(r), int(g), int(b)

    @records_status
    def set_palette_color(self, index: int, r: int, g: int, b: int) -> None:
        off = self._palette_offset(index)
        bgr = (_as_byte(b, "b"), _as_byte(g, "g"), _as_byte(r, "r"))
        self._palette[off:off + 3] = bgr

    # ------------------------------------------------------------------
    # Raw buffer views
    # ------------------------------------------------------------------

    @staticmethod
    def _view(buf: np.ndarray, writable: bool) -> np.ndarray:
        v = buf.view()
        if not writable:
            v.setflags(write=False)
        return v

    @records_status
    def pixel_data(self, writable: bool = True) -> np.ndarray:
        """
        Borrowed view of the padded, bottom-up pixel buffer.

        The view shares memory with the image; it must not be used after
        free() or after a width/height change, which replace the buffer.
        """
        self._require_open()
        return self._view(self._data, writable)

    @records_status
    def palette_data(self, writable: bool = True) -> Optional[np.ndarray]:
        """Borrowed view of the 1024-byte BGR0 palette, or None for direct-color images."""
        self._require_open()
        if self._palette is None:
            return None
        return self._view(self._palette, writable)

    def _pixel_plane(self) -> np.ndarray:
        """(height, width, bytes_per_pixel) view of the buffer, bottom-up, padding dropped."""
        h = self._header
        rows = self._data.reshape(h.height, h.row_stride)
        return rows[:, :h.width * h.bytes_per_pixel].reshape(h.height, h.width, h.bytes_per_pixel)

    # ------------------------------------------------------------------
    # numpy bulk conversion
    # ------------------------------------------------------------------

    @records_status
    def to_rgb_array(self) -> np.ndarray:
        """Top-down HxWx3 RGB888 copy of the image."""
        self._require_open()
        if self._header.bits_per_pixel == 8:
            lut = self._palette.reshape(BMP_PALETTE_ENTRIES, 4)[:, 2::-1]
            rgb = lut[self._pixel_plane()[:, :, 0]]
        else:
            rgb = self._pixel_plane()[:, :, 2::-1]
        return np.ascontiguousarray(rgb[::-1])

    @records_status
    def to_index_array(self) -> np.ndarray:
        """Top-down HxW copy of the palette indices of an 8 BPP image."""
        self._require_open()
        self._require_depth(indexed=True)
        return np.ascontiguousarray(self._pixel_plane()[::-1, :, 0])

    @classmethod
    @records_status
    def from_rgb_array(cls, rgb, depth: int = 24) -> "BMPImage":
        """Direct-color image from a top-down HxWx3 RGB array."""
        arr = np.asarray(rgb)
        if arr.ndim != 3 or arr.shape[2] != 3:
            raise InvalidArgument(f"Expected HxWx3 RGB array, got shape {arr.shape}")
        if arr.dtype != np.uint8:
            if arr.size and (arr.min() < 0 or arr.max() > 255):
                raise InvalidArgument("RGB values must be in 0..255")
            arr = arr.astype(np.uint8)
        if depth == 8:
            raise TypeMismatch("cannot build an indexed image from RGB values")

        h, w = arr.shape[:2]
        img = cls.create(w, h, depth)
        bpp = img._header.bytes_per_pixel
        px = np.zeros((h, w, bpp), dtype=np.uint8)
        px[:, :, 0:3] = arr[::-1, :, ::-1]
        rows = img._data.reshape(h, img._header.row_stride)
        rows[:, :w * bpp] = px.reshape(h, w * bpp)
        return img
