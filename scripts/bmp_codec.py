#!/usr/bin/env python3
"""
bmp_codec.py

Raster codec for uncompressed 8/24/32 BPP BMP files with a BITMAPINFOHEADER.

Decode:  header -> validate -> palette (8 BPP) -> rows, bottom scanline first
Encode:  header -> palette (8 BPP) -> rows, each zero-padded to 4 bytes

Sources only need read(n); sinks only need write(b). A sink that returns a
byte count shorter than what it was given is treated as a failed write.
"""

from __future__ import annotations

import io
import logging
import zlib
from pathlib import Path
from typing import Union

import numpy as np

from bmp_errors import BMPIOError, FileNotFound, InvalidFile, records_status
from bmp_header import (
    BMP_HEADER_SIZE,
    BMP_PALETTE_SIZE,
    palette_size,
    read_exact,
    read_header,
    row_padding,
    write_exact,
    write_header,
)
from bmp_image import BMPImage, alloc_buffer
from bmp_zlib import is_zpath, zread, zwrite

log = logging.getLogger(__name__)

PathLike = Union[str, Path]

# Opening failures that mean "there is no usable file at this path".
_NOT_FOUND_ERRORS = (FileNotFoundError, NotADirectoryError, IsADirectoryError, PermissionError)


@records_status
def read_bmp(source) -> BMPImage:
    try:
        hdr = read_header(source)
    except BMPIOError as e:
        raise InvalidFile(f"truncated BMP header: {e}") from None
    hdr.validate()

    palette = None
    if hdr.bits_per_pixel == 8:
        raw = read_exact(source, BMP_PALETTE_SIZE)
        if len(raw) != BMP_PALETTE_SIZE:
            raise InvalidFile(f"truncated palette: {len(raw)} of {BMP_PALETTE_SIZE} bytes")
        palette = alloc_buffer(BMP_PALETTE_SIZE)
        palette[:] = np.frombuffer(raw, dtype=np.uint8)

    consumed = BMP_HEADER_SIZE + palette_size(hdr.bits_per_pixel)
    if hdr.data_offset > consumed:
        gap = hdr.data_offset - consumed
        if len(read_exact(source, gap)) != gap:
            raise InvalidFile(f"pixel data offset {hdr.data_offset} is past end of file")
        log.debug("skipped %d bytes before pixel data", gap)

    stored_size = hdr.image_data_size
    hdr.update_derived()
    if stored_size != hdr.image_data_size:
        log.debug("image data size on disk is %d, using %d", stored_size, hdr.image_data_size)

    stride = hdr.row_stride
    row_bytes = hdr.width * hdr.bytes_per_pixel
    data = alloc_buffer(hdr.image_data_size)

    # Padding after the last row carries no data, so a file may end without it.
    raw = read_exact(source, hdr.image_data_size)
    needed = hdr.image_data_size - row_padding(hdr.width, hdr.bits_per_pixel)
    if len(raw) < needed:
        raise InvalidFile(
            f"truncated pixel data in row {len(raw) // stride} "
            f"({len(raw)} of {needed} bytes)"
        )
    data[:len(raw)] = np.frombuffer(raw, dtype=np.uint8)
    data.reshape(hdr.height, stride)[:, row_bytes:] = 0

    log.debug("decoded %dx%d %d BPP bitmap", hdr.width, hdr.height, hdr.bits_per_pixel)
    return BMPImage(hdr, palette, data)


@records_status
def write_bmp(image: BMPImage, sink) -> None:
    hdr = image.header
    write_header(hdr, sink)

    palette = image.palette_data(writable=False)
    if palette is not None:
        write_exact(sink, palette.tobytes())

    pad = row_padding(hdr.width, hdr.bits_per_pixel)
    rows = image.pixel_data(writable=False).reshape(hdr.height, hdr.row_stride)
    if pad:
        # Padding on disk is always zero, whatever the buffer holds there.
        rows = rows.copy()
        rows[:, hdr.row_stride - pad:] = 0
    write_exact(sink, rows.tobytes())

    log.debug("encoded %dx%d %d BPP bitmap (%d bytes)",
              hdr.width, hdr.height, hdr.bits_per_pixel, hdr.file_size)


@records_status
def loads(data: bytes) -> BMPImage:
    return read_bmp(io.BytesIO(data))


@records_status
def dumps(image: BMPImage) -> bytes:
    out = io.BytesIO()
    write_bmp(image, out)
    return out.getvalue()


@records_status
def read_file(path: PathLike) -> BMPImage:
    """Decode a .bmp file, or a zlib-wrapped .bmp.z file."""
    try:
        blob = zread(path)
    except _NOT_FOUND_ERRORS as e:
        raise FileNotFound(f"{path}: {e.strerror or e}") from None
    except OSError as e:
        raise BMPIOError(f"{path}: {e}") from e
    except zlib.error as e:
        raise InvalidFile(f"{path}: bad zlib stream: {e}") from None
    log.debug("read %d bytes from %s", len(blob), path)
    return loads(blob)


@records_status
def write_file(image: BMPImage, path: PathLike) -> None:
    """
    Encode to path.

    A path ending in .z (e.g. out.bmp.z) gets the BMP bytes zlib-compressed,
    not a plain BMP; read_file() inflates such files again.
    """
    if is_zpath(path):
        blob = dumps(image)
        try:
            size = zwrite(path, blob)
        except _NOT_FOUND_ERRORS as e:
            raise FileNotFound(f"{path}: {e.strerror or e}") from None
        except OSError as e:
            raise BMPIOError(f"{path}: {e}") from e
        log.debug("wrote %s (%d bytes deflated to %d)", path, len(blob), size)
        return

    try:
        f = open(path, "wb")
    except OSError as e:
        raise FileNotFound(f"{path}: {e.strerror or e}") from None
    with f:
        write_bmp(image, f)
