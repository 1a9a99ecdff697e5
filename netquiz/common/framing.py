"""
Wire framing for the NetQuiz TCP protocol.

Every value on the wire is big-endian:
- string: 2-byte unsigned length followed by UTF-8 bytes
- int: 4-byte signed
- long: 8-byte signed
- bool: 1 byte (0 or 1)

Encoders return bytes so that callers can assemble a whole record and
write it in one go. Readers raise asyncio.IncompleteReadError when the
peer closes the stream mid-value.
"""

import asyncio
import struct

from netquiz.common.constants import MAX_FRAME_LENGTH


_LENGTH = struct.Struct('>H')
_INT = struct.Struct('>i')
_LONG = struct.Struct('>q')


class FrameError(ValueError):
    """A value cannot be framed or a received frame is not valid."""


def encode_utf(text: str) -> bytes:
    """Encode a string frame."""
    data = text.encode('utf-8')
    if len(data) > MAX_FRAME_LENGTH:
        raise FrameError(f"String frame too long: {len(data)} bytes")
    return _LENGTH.pack(len(data)) + data


def encode_int(value: int) -> bytes:
    return _INT.pack(value)


def encode_long(value: int) -> bytes:
    return _LONG.pack(value)


def encode_bool(value: bool) -> bytes:
    return b'\x01' if value else b'\x00'


async def read_utf(reader: asyncio.StreamReader) -> str:
    """Read one string frame."""
    (length,) = _LENGTH.unpack(await reader.readexactly(_LENGTH.size))
    data = await reader.readexactly(length)
    try:
        return data.decode('utf-8')
    except UnicodeDecodeError as e:
        raise FrameError(f"Invalid UTF-8 in string frame: {e}") from e


async def read_int(reader: asyncio.StreamReader) -> int:
    (value,) = _INT.unpack(await reader.readexactly(_INT.size))
    return value


async def read_long(reader: asyncio.StreamReader) -> int:
    (value,) = _LONG.unpack(await reader.readexactly(_LONG.size))
    return value


async def read_bool(reader: asyncio.StreamReader) -> bool:
    data = await reader.readexactly(1)
    return data != b'\x00'
