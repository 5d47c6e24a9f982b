#!/usr/bin/env python3
"""
bmp_header.py

The 54-byte BMP preamble (14-byte file header + 40-byte BITMAPINFOHEADER)
and the row-stride arithmetic shared by the raster codec and the accessors.
"""

from __future__ import annotations

import struct
from dataclasses import asdict, dataclass

from bmp_errors import BMPIOError, InvalidArgument, InvalidFile, UnsupportedVariant, records_status


BMP_MAGIC = b"BM"
BMP_FILE_HEADER_SIZE = 14
BMP_INFO_HEADER_SIZE = 40  # BITMAPINFOHEADER, the only supported variant
BMP_HEADER_SIZE = BMP_FILE_HEADER_SIZE + BMP_INFO_HEADER_SIZE
BMP_PALETTE_ENTRIES = 256
BMP_PALETTE_SIZE = BMP_PALETTE_ENTRIES * 4
SUPPORTED_DEPTHS = (8, 24, 32)

# magic, file size, reserved1, reserved2, data offset,
# header size, width, height, planes, bpp, compression, image size,
# h ppm, v ppm, colors used, colors required
HEADER_STRUCT = struct.Struct("<2sIHHIIIIHHIIIIII")


def padded_row_bytes(width: int, depth: int) -> int:
    """Bytes per stored row, rounded up to the next multiple of 4."""
    raw = width * (depth >> 3)
    return (raw + 3) & ~3


def row_padding(width: int, depth: int) -> int:
    return (4 - (width * (depth >> 3)) % 4) % 4


def palette_size(depth: int) -> int:
    return BMP_PALETTE_SIZE if depth == 8 else 0


@dataclass
class BMPHeader:
    magic: bytes = BMP_MAGIC
    file_size: int = 0
    reserved1: int = 0
    reserved2: int = 0
    data_offset: int = 0
    header_size: int = BMP_INFO_HEADER_SIZE
    width: int = 0
    height: int = 0
    planes: int = 1
    bits_per_pixel: int = 24
    compression_type: int = 0
    image_data_size: int = 0
    h_pixels_per_meter: int = 0
    v_pixels_per_meter: int = 0
    colors_used: int = 0
    colors_required: int = 0

    @classmethod
    def blank(cls, width: int, height: int, depth: int) -> "BMPHeader":
        hdr = cls(width=width, height=height, bits_per_pixel=depth)
        hdr.update_derived()
        return hdr

    @property
    def bytes_per_pixel(self) -> int:
        return self.bits_per_pixel >> 3

    @property
    def row_stride(self) -> int:
        return padded_row_bytes(self.width, self.bits_per_pixel)

    @property
    def top_down(self) -> bool:
        # Height is stored unsigned; a negative signed height marks a top-down bitmap.
        return self.height >= 0x80000000

    def update_derived(self) -> None:
        """Recompute image_data_size, data_offset and file_size from the geometry."""
        self.image_data_size = self.row_stride * self.height
        self.data_offset = BMP_HEADER_SIZE + palette_size(self.bits_per_pixel)
        self.file_size = self.data_offset + self.image_data_size

    def validate(self) -> None:
        if self.magic != BMP_MAGIC:
            raise InvalidFile(f"bad magic {self.magic!r}, expected {BMP_MAGIC!r}")
        if (
            self.bits_per_pixel not in SUPPORTED_DEPTHS
            or self.compression_type != 0
            or self.header_size != BMP_INFO_HEADER_SIZE
        ):
            raise UnsupportedVariant(
                f"unsupported BMP variant bpp={self.bits_per_pixel} "
                f"compression={self.compression_type} header_size={self.header_size}"
            )
        if self.top_down:
            raise UnsupportedVariant("top-down bitmaps (negative height) are not supported")
        if self.width == 0 or self.height == 0:
            raise InvalidFile(f"empty bitmap {self.width}x{self.height}")

    def as_dict(self) -> dict:
        return asdict(self)


@records_status
def decode_header(data: bytes) -> BMPHeader:
    """Unpack the first 54 bytes of data. No field validation happens here."""
    if len(data) < BMP_HEADER_SIZE:
        raise BMPIOError(f"short header read: {len(data)} of {BMP_HEADER_SIZE} bytes")
    return BMPHeader(*HEADER_STRUCT.unpack_from(data, 0))


@records_status
def encode_header(hdr: BMPHeader) -> bytes:
    try:
        return HEADER_STRUCT.pack(
            hdr.magic,
            hdr.file_size,
            hdr.reserved1,
            hdr.reserved2,
            hdr.data_offset,
            hdr.header_size,
            hdr.width,
            hdr.height,
            hdr.planes,
            hdr.bits_per_pixel,
            hdr.compression_type,
            hdr.image_data_size,
            hdr.h_pixels_per_meter,
            hdr.v_pixels_per_meter,
            hdr.colors_used,
            hdr.colors_required,
        )
    except struct.error as e:
        raise InvalidArgument(f"header field out of range: {e}") from None


def read_exact(source, n: int) -> bytes:
    """Up to n bytes from source; fewer only at end of stream."""
    buf = bytearray()
    while len(buf) < n:
        try:
            chunk = source.read(n - len(buf))
        except OSError as e:
            raise BMPIOError(f"read failed: {e}") from e
        if not chunk:
            break
        buf += chunk
    return bytes(buf)


@records_status
def read_header(source) -> BMPHeader:
    return decode_header(read_exact(source, BMP_HEADER_SIZE))


def write_exact(sink, chunk) -> None:
    """Write chunk to sink; a rejected or short write is a BMPIOError."""
    chunk = bytes(chunk)
    try:
        n = sink.write(chunk)
    except OSError as e:
        raise BMPIOError(f"write failed: {e}") from e
    if n is not None and n != len(chunk):
        raise BMPIOError(f"short write: {n} of {len(chunk)} bytes")


@records_status
def write_header(hdr: BMPHeader, sink) -> None:
    write_exact(sink, encode_header(hdr))
