"""
PNG resolution embedder.

Splices a ``pHYs`` chunk right after IHDR so the exported collage prints at
a stated DPI without resampling. ``embed_dpi`` never fails its caller: on a
malformed input it logs a warning and returns the bytes unchanged.
"""

import base64
import binascii
import math
import struct
from typing import List, Optional

from loguru import logger

from .errors import PngChunkInsertionError


PNG_SIGNATURE = b'\x89PNG\r\n\x1a\n'
IHDR_DATA_LENGTH = 13
# signature + IHDR length + IHDR type + IHDR data + IHDR CRC
IHDR_END = len(PNG_SIGNATURE) + 4 + 4 + IHDR_DATA_LENGTH + 4
PHYS_CHUNK_LENGTH = 4 + 4 + 9 + 4
MAX_PIXELS_PER_METER = 0xFFFFFFFF
INCHES_PER_METER = 39.3701
UNIT_METER = 1

DATA_URI_PREFIX = 'data:image/png;base64,'

_CRC_POLYNOMIAL = 0xEDB88320
_crc_table: Optional[List[int]] = None


def crc32_table() -> List[int]:
    """Reflected CRC-32 lookup table, built on first use and never mutated"""
    global _crc_table
    if _crc_table is None:
        table = []
        for n in range(256):
            c = n
            for _ in range(8):
                c = (_CRC_POLYNOMIAL ^ (c >> 1)) if c & 1 else (c >> 1)
            table.append(c)
        _crc_table = table
    return _crc_table


def crc32(*parts: bytes) -> int:
    """CRC-32 over the concatenation of ``parts``"""
    table = crc32_table()
    c = 0xFFFFFFFF
    for part in parts:
        for byte in part:
            c = table[(c ^ byte) & 0xFF] ^ (c >> 8)
    return c ^ 0xFFFFFFFF


def pixels_per_meter(dpi: float) -> int:
    """DPI converted to pixels per meter, rounded half up"""
    return int(math.floor(dpi * INCHES_PER_METER + 0.5))


def valid_dpi(dpi) -> bool:
    """Finite positive number whose pixels per meter fit the 4-byte pHYs fields"""
    if isinstance(dpi, bool) or not isinstance(dpi, (int, float)):
        return False
    if not math.isfinite(dpi) or dpi <= 0:
        return False
    return 0 < pixels_per_meter(dpi) <= MAX_PIXELS_PER_METER


def build_phys_chunk(dpi: float) -> bytes:
    """Complete pHYs chunk: length, type, 9-byte payload, CRC"""
    ppu = pixels_per_meter(dpi)
    chunk_type = b'pHYs'
    payload = struct.pack('>IIB', ppu, ppu, UNIT_METER)
    return struct.pack('>I', len(payload)) + chunk_type + payload + struct.pack('>I', crc32(chunk_type, payload))


def check_png_header(png_bytes: bytes) -> None:
    """Raise PngChunkInsertionError unless the buffer starts with a signature and a 13-byte IHDR"""
    if len(png_bytes) < IHDR_END:
        raise PngChunkInsertionError(f"buffer too short ({len(png_bytes)} bytes)", length=len(png_bytes))

    if png_bytes[:8] != PNG_SIGNATURE:
        raise PngChunkInsertionError("missing PNG signature", length=len(png_bytes))

    length, chunk_type = struct.unpack('>I4s', png_bytes[8:16])
    if chunk_type != b'IHDR' or length != IHDR_DATA_LENGTH:
        raise PngChunkInsertionError(
            f"first chunk is {chunk_type!r} with length {length}, expected IHDR with length 13",
            length=len(png_bytes)
        )


def insert_phys_chunk(png_bytes: bytes, dpi: float) -> bytes:
    """Insert a pHYs chunk after IHDR; raises PngChunkInsertionError on malformed input"""
    if not valid_dpi(dpi):
        raise PngChunkInsertionError(f"invalid dpi {dpi!r}", length=len(png_bytes))

    png_bytes = bytes(png_bytes)
    check_png_header(png_bytes)
    return png_bytes[:IHDR_END] + build_phys_chunk(dpi) + png_bytes[IHDR_END:]


def embed_dpi(png_bytes: bytes, dpi: float = 300) -> bytes:
    """Stamp a PNG with a physical resolution, returning the input unchanged on failure"""
    try:
        return insert_phys_chunk(png_bytes, dpi)
    except PngChunkInsertionError as e:
        logger.warning(f"Failed to embed DPI: {e.message}")
        return png_bytes


def png_to_data_uri(png_bytes: bytes) -> str:
    return DATA_URI_PREFIX + base64.b64encode(png_bytes).decode('ascii')


def data_uri_to_bytes(data_uri: str) -> bytes:
    """Decode the payload of a base64 data URI"""
    header, sep, payload = data_uri.partition(',')
    if not sep or not header.startswith('data:') or ';base64' not in header:
        raise ValueError("not a base64 data URI")
    return base64.b64decode(payload, validate=True)


def embed_dpi_data_uri(data_uri: str, dpi: float = 300) -> str:
    """Same as embed_dpi but for a PNG data URI"""
    try:
        png_bytes = data_uri_to_bytes(data_uri)
    except (ValueError, binascii.Error) as e:
        logger.warning(f"Failed to embed DPI: {e}")
        return data_uri
    return png_to_data_uri(embed_dpi(png_bytes, dpi))
