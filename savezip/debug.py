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
Debugging utilities for savezip.

This module provides tools for analyzing ZIP structures in an archive
buffer: a hex dump, a human-readable structure listing and a consistency
check of the offsets and checksums written by ``ZipWriter``.
"""

from typing import Optional

from .attributes import ExternalAttr
from .constants import DATA_DESCRIPTOR_SIZE, FLAG_DATA_DESCRIPTOR, METHOD_TO_NAME
from .errors import ZipError
from .reader import ZipReader
from .structures import (
    parse_central_directory_header,
    parse_data_descriptor,
    parse_local_file_header,
)
from .utils import crc32


def hex_dump(data: bytes, start: int = 0, length: Optional[int] = None, width: int = 16) -> str:
    """Render ``data[start:start + length]`` as offset, hex and ASCII columns.

    Offsets are absolute positions in ``data``, so a dump of a record
    inside an archive lines up with the offsets ``describe_archive`` prints.
    """
    end = len(data) if length is None else min(len(data), start + length)
    rows = []
    for row_start in range(start, end, width):
        row = data[row_start : min(row_start + width, end)]
        hex_column = " ".join(f"{byte:02X}" for byte in row)
        text_column = "".join(chr(byte) if 0x20 <= byte < 0x7F else "." for byte in row)
        rows.append(f"{row_start:08X}  {hex_column:<{width * 3 - 1}}  {text_column}")
    return "\n".join(rows)


def _attr_label(value: int) -> str:
    try:
        return ExternalAttr(value).name.lower()
    except ValueError:
        return f"0x{value:08X}"


def describe_archive(data: bytes) -> str:
    """Describe the structure of an archive buffer.

    Returns:
        Formatted string listing the end record and each directory record.
    """
    reader = ZipReader(data)
    eocd = reader.eocd
    output = [f"Archive size: {len(data)} bytes", "=" * 80]
    output.append(
        f"Central directory: offset 0x{eocd.cd_offset:08X}, size {eocd.cd_size}, "
        f"{eocd.cd_records_total} entries"
    )

    pos = eocd.cd_offset
    for i in range(eocd.cd_records_total):
        header = parse_central_directory_header(data, pos)
        pos += header.size
        method = METHOD_TO_NAME.get(header.compression_method, str(header.compression_method))
        output.append(
            f"  [{i}] {header.filename.decode('utf-8', errors='replace')}\n"
            f"      local header 0x{header.local_header_offset:08X}  {method}  "
            f"{header.compressed_size}/{header.uncompressed_size} bytes  "
            f"crc 0x{header.crc32:08X}  attrs {_attr_label(header.external_attrs)}  "
            f"{header.date_time.isoformat(sep=' ')}"
        )

    return "\n".join(output)


def verify_archive(data: bytes) -> tuple[bool, list[str]]:
    """Cross-check every directory record against the bytes it points at.

    Each local header must sit at its recorded offset with the same CRC and
    sizes, be followed by its payload (and its data descriptor when the entry is
    flagged as having one), and the local
    records must end exactly where the central directory starts.

    Returns:
        Tuple of (is_valid, list_of_errors).
    """
    errors = []
    try:
        reader = ZipReader(data)
    except ZipError as e:
        return False, [f"Error opening archive: {e}"]

    eocd = reader.eocd
    expected_offset = 0
    pos = eocd.cd_offset
    for _ in range(eocd.cd_records_total):
        header = parse_central_directory_header(data, pos)
        pos += header.size
        name = header.filename.decode("utf-8", errors="replace")

        if header.local_header_offset != expected_offset:
            errors.append(
                f"{name}: local header offset {header.local_header_offset}, "
                f"expected {expected_offset}"
            )
        try:
            local = parse_local_file_header(data, header.local_header_offset)
        except ZipError as e:
            errors.append(f"{name}: {e}")
            expected_offset = header.local_header_offset
            continue

        central = (header.crc32, header.compressed_size, header.uncompressed_size)
        local_values = (local.crc32, local.compressed_size, local.uncompressed_size)
        payload_end = header.local_header_offset + local.size + header.compressed_size
        expected_offset = payload_end

        if local.flags & FLAG_DATA_DESCRIPTOR:
            # Streaming writers may leave the local fields zeroed
            if local_values != central and local_values != (0, 0, 0):
                errors.append(f"{name}: local header disagrees with central directory")
            try:
                descriptor = parse_data_descriptor(data, payload_end)
            except ZipError as e:
                errors.append(f"{name}: {e}")
                continue
            descriptor_values = (
                descriptor.crc32,
                descriptor.compressed_size,
                descriptor.uncompressed_size,
            )
            if descriptor_values != central:
                errors.append(f"{name}: data descriptor disagrees with central directory")
            expected_offset = payload_end + DATA_DESCRIPTOR_SIZE
        elif local_values != central:
            errors.append(f"{name}: local header disagrees with central directory")

    if expected_offset != eocd.cd_offset:
        errors.append(
            f"central directory offset {eocd.cd_offset}, local records end at {expected_offset}"
        )

    for entry in reader.entries:
        if entry.is_dir:
            continue
        if crc32(entry.raw_content) != entry.crc32:
            errors.append(f"{entry.name}: CRC32 mismatch")

    return len(errors) == 0, errors
