"""
Copyright 2025 DNAi inc.

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at

    http://www.apache.org/licenses/LICENSE-2.0

Unless required by applicable law or agreed to in writing, software
distributed under the License is distributed on an "AS IS" BASIS,
WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
See the License for the specific language governing permissions and
limitations under the License.
"""


"""
Utility functions for savezip.

This module provides the table-driven CRC-32 used by the ZIP format, MS-DOS
date/time packing in both directions, and bounds-checked little-endian reads
from an in-memory archive buffer.
"""

import struct
from datetime import datetime
from typing import Optional

from .errors import ZipFormatError

# Reflected form of the ZIP/PNG polynomial 0x04C11DB7
CRC32_POLYNOMIAL = 0xEDB88320


def _make_crc_table() -> tuple[int, ...]:
    table = []
    for n in range(256):
        c = n
        for _ in range(8):
            if c & 1:
                c = CRC32_POLYNOMIAL ^ (c >> 1)
            else:
                c >>= 1
        table.append(c)
    return tuple(table)


CRC32_TABLE = _make_crc_table()


def crc32(data: bytes, value: int = 0) -> int:
    """Calculate the ZIP CRC-32 checksum for data.

    The accumulator starts at ``0xFFFFFFFF``; each byte is folded in through
    the 256-entry remainder table and the result is inverted at the end.
    Passing the previous result as ``value`` continues a running checksum,
    so ``crc32(b, crc32(a)) == crc32(a + b)``.

    Args:
        data: Bytes to calculate CRC32 for.
        value: Running checksum to continue from (0 to start fresh).

    Returns:
        CRC32 value as unsigned 32-bit integer.
    """
    crc = (value & 0xFFFFFFFF) ^ 0xFFFFFFFF
    table = CRC32_TABLE
    for byte in data:
        crc = table[(crc ^ byte) & 0xFF] ^ (crc >> 8)
    return crc ^ 0xFFFFFFFF


def to_dos_date_time(
    year: int, month: int, day: int, hour: int, minute: int, second: int
) -> tuple[int, int]:
    """Pack a civil date/time into MS-DOS date and time fields.

    DOS date format (16 bits):
        Bits 0-4: Day (1-31)
        Bits 5-8: Month (1-12)
        Bits 9-15: Year - 1980 (0-127, so 1980-2107)

    DOS time format (16 bits):
        Bits 0-4: Second / 2 (0-29)
        Bits 5-10: Minute (0-59)
        Bits 11-15: Hour (0-23)

    Odd seconds share a bucket with the even second below them.

    Returns:
        Tuple of (dos_date, dos_time) as 16-bit unsigned integers.

    Raises:
        ZipFormatError: If any component is outside the DOS range. Years
            before 1980 cannot be represented; callers clamp them first.
    """
    if year < 1980 or year > 2107:
        raise ZipFormatError(f"Invalid year value: {year} (must be 1980-2107)")
    if month < 1 or month > 12:
        raise ZipFormatError(f"Invalid month value: {month} (must be 1-12)")
    if day < 1 or day > 31:
        raise ZipFormatError(f"Invalid day value: {day} (must be 1-31)")
    if hour < 0 or hour > 23:
        raise ZipFormatError(f"Invalid hour value: {hour} (must be 0-23)")
    if minute < 0 or minute > 59:
        raise ZipFormatError(f"Invalid minute value: {minute} (must be 0-59)")
    if second < 0 or second > 59:
        raise ZipFormatError(f"Invalid second value: {second} (must be 0-59)")

    dos_date = day | (month << 5) | ((year - 1980) << 9)
    dos_time = (second // 2) | (minute << 5) | (hour << 11)

    return (dos_date & 0xFFFF, dos_time & 0xFFFF)


def timestamp_to_dos_datetime(dt: datetime) -> tuple[int, int]:
    """Convert Python datetime to DOS date and time.

    Years outside 1980-2107 are clamped to the nearest representable
    instant rather than rejected.

    Args:
        dt: datetime object to convert.

    Returns:
        Tuple of (dos_date, dos_time) as 16-bit unsigned integers.
    """
    if dt.year < 1980:
        return to_dos_date_time(1980, 1, 1, 0, 0, 0)
    if dt.year > 2107:
        return to_dos_date_time(2107, 12, 31, 23, 59, 58)
    return to_dos_date_time(dt.year, dt.month, dt.day, dt.hour, dt.minute, dt.second)


def epoch_to_dos_datetime(mod_time: Optional[float] = None) -> tuple[int, int]:
    """Convert a POSIX timestamp (local time) to DOS date and time.

    ``None`` means "now", used for directories and symlinks that carry no
    source timestamp.
    """
    if mod_time is None:
        dt = datetime.now()
    else:
        try:
            dt = datetime.fromtimestamp(mod_time)
        except (OverflowError, OSError, ValueError):
            dt = datetime.now()
    return timestamp_to_dos_datetime(dt)


def dos_datetime_to_timestamp(dos_date: int, dos_time: int) -> datetime:
    """Convert DOS date and time to Python datetime.

    Args:
        dos_date: DOS date value (16-bit unsigned integer).
        dos_time: DOS time value (16-bit unsigned integer).

    Returns:
        datetime object representing the DOS date/time.
    """
    day = dos_date & 0x1F
    month = (dos_date >> 5) & 0x0F
    year = ((dos_date >> 9) & 0x7F) + 1980

    second = (dos_time & 0x1F) * 2
    minute = (dos_time >> 5) & 0x3F
    hour = (dos_time >> 11) & 0x1F

    try:
        return datetime(year, month, day, hour, minute, second)
    except ValueError:
        # If date is invalid, return a default datetime
        return datetime(1980, 1, 1, 0, 0, 0)


def read_exact(data: bytes, offset: int, size: int) -> bytes:
    """Slice exactly 'size' bytes at 'offset', raising ZipFormatError on short read.

    Args:
        data: Archive buffer.
        offset: Start position within the buffer.
        size: Number of bytes to read.

    Returns:
        Exactly 'size' bytes of data.

    Raises:
        ZipFormatError: If the slice would run past the buffer or is invalid.
    """
    if offset < 0 or size < 0:
        raise ZipFormatError(f"Invalid read: offset {offset}, size {size}")
    end = offset + size
    if end > len(data):
        raise ZipFormatError(
            f"Unexpected end of data: expected {size} bytes at {offset}, "
            f"buffer is {len(data)} bytes"
        )
    return bytes(data[offset:end])


def read_uint16(data: bytes, offset: int) -> int:
    """Read a little-endian 16-bit unsigned integer at 'offset'."""
    return struct.unpack("<H", read_exact(data, offset, 2))[0]


def read_uint32(data: bytes, offset: int) -> int:
    """Read a little-endian 32-bit unsigned integer at 'offset'."""
    return struct.unpack("<I", read_exact(data, offset, 4))[0]
