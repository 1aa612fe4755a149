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
ZIP structure definitions, parsing and serialization.

This module defines dataclasses for the records savezip reads and writes:
local file headers, data descriptors, central directory headers and the
end of central directory record. Parsing works on an in-memory archive
buffer at a given offset; ``to_bytes`` produces the exact on-disk layout.
"""

import struct
from dataclasses import dataclass
from datetime import datetime

from .constants import (
    CENTRAL_DIR_HEADER,
    CENTRAL_DIR_HEADER_SIZE,
    DATA_DESCRIPTOR,
    DATA_DESCRIPTOR_SIZE,
    END_OF_CENTRAL_DIR,
    END_OF_CENTRAL_DIR_SIZE,
    LOCAL_FILE_HEADER,
    LOCAL_FILE_HEADER_SIZE,
)
from .errors import ZipFormatError
from .utils import dos_datetime_to_timestamp, read_exact

_LOCAL_FILE_HEADER_FORMAT = "<IHHHHHIIIHH"
_DATA_DESCRIPTOR_FORMAT = "<IIII"
_CENTRAL_DIR_HEADER_FORMAT = "<IHHHHHHIIIHHHHHII"
_END_OF_CENTRAL_DIR_FORMAT = "<IHHHHIIH"


def _check_signature(found: int, expected: int, what: str) -> None:
    if found != expected:
        raise ZipFormatError(
            f"Invalid {what} signature: 0x{found:08X}, expected 0x{expected:08X}"
        )


@dataclass
class LocalFileHeader:
    """Local file header structure.

    This header appears before each file's compressed data in the ZIP archive.
    """

    version: int
    flags: int
    compression_method: int
    mod_time: int
    mod_date: int
    crc32: int
    compressed_size: int
    uncompressed_size: int
    filename: bytes
    extra: bytes = b""
    signature: int = LOCAL_FILE_HEADER

    @property
    def date_time(self) -> datetime:
        """Get modification date/time as datetime object."""
        return dos_datetime_to_timestamp(self.mod_date, self.mod_time)

    @property
    def size(self) -> int:
        """Serialized size including filename and extra field."""
        return LOCAL_FILE_HEADER_SIZE + len(self.filename) + len(self.extra)

    def to_bytes(self) -> bytes:
        return (
            struct.pack(
                _LOCAL_FILE_HEADER_FORMAT,
                LOCAL_FILE_HEADER,
                self.version,
                self.flags,
                self.compression_method,
                self.mod_time,
                self.mod_date,
                self.crc32,
                self.compressed_size,
                self.uncompressed_size,
                len(self.filename),
                len(self.extra),
            )
            + self.filename
            + self.extra
        )


@dataclass
class DataDescriptor:
    """Data descriptor structure.

    Written after every payload so sizes need not be known before the
    payload is produced. Carries the same CRC32 and sizes as the headers.
    """

    crc32: int
    compressed_size: int
    uncompressed_size: int
    signature: int = DATA_DESCRIPTOR

    @property
    def size(self) -> int:
        return DATA_DESCRIPTOR_SIZE

    def to_bytes(self) -> bytes:
        return struct.pack(
            _DATA_DESCRIPTOR_FORMAT,
            DATA_DESCRIPTOR,
            self.crc32,
            self.compressed_size,
            self.uncompressed_size,
        )


@dataclass
class CentralDirectoryHeader:
    """Central directory header structure.

    This header appears in the central directory and contains information
    about a file entry, including a pointer to the local file header.
    """

    version_made_by: int
    version: int
    flags: int
    compression_method: int
    mod_time: int
    mod_date: int
    crc32: int
    compressed_size: int
    uncompressed_size: int
    external_attrs: int
    local_header_offset: int
    filename: bytes
    extra: bytes = b""
    comment: bytes = b""
    disk_num: int = 0
    internal_attrs: int = 0
    signature: int = CENTRAL_DIR_HEADER

    @property
    def date_time(self) -> datetime:
        """Get modification date/time as datetime object."""
        return dos_datetime_to_timestamp(self.mod_date, self.mod_time)

    @property
    def size(self) -> int:
        """Serialized size including filename, extra field and comment."""
        return (
            CENTRAL_DIR_HEADER_SIZE
            + len(self.filename)
            + len(self.extra)
            + len(self.comment)
        )

    def to_bytes(self) -> bytes:
        return (
            struct.pack(
                _CENTRAL_DIR_HEADER_FORMAT,
                CENTRAL_DIR_HEADER,
                self.version_made_by,
                self.version,
                self.flags,
                self.compression_method,
                self.mod_time,
                self.mod_date,
                self.crc32,
                self.compressed_size,
                self.uncompressed_size,
                len(self.filename),
                len(self.extra),
                len(self.comment),
                self.disk_num,
                self.internal_attrs,
                self.external_attrs,
                self.local_header_offset,
            )
            + self.filename
            + self.extra
            + self.comment
        )


@dataclass
class EndOfCentralDirectory:
    """End of Central Directory record.

    This record marks the end of the central directory and contains
    information needed to locate the central directory.
    """

    cd_records_on_disk: int
    cd_records_total: int
    cd_size: int
    cd_offset: int
    disk_num: int = 0
    cd_disk: int = 0
    comment: bytes = b""
    signature: int = END_OF_CENTRAL_DIR

    @property
    def size(self) -> int:
        return END_OF_CENTRAL_DIR_SIZE + len(self.comment)

    def to_bytes(self) -> bytes:
        return (
            struct.pack(
                _END_OF_CENTRAL_DIR_FORMAT,
                END_OF_CENTRAL_DIR,
                self.disk_num,
                self.cd_disk,
                self.cd_records_on_disk,
                self.cd_records_total,
                self.cd_size,
                self.cd_offset,
                len(self.comment),
            )
            + self.comment
        )


def parse_local_file_header(data: bytes, offset: int) -> LocalFileHeader:
    """Parse a local file header at 'offset' in the archive buffer.

    Raises:
        ZipFormatError: If the signature is invalid or the buffer is truncated.
    """
    fields = struct.unpack(
        _LOCAL_FILE_HEADER_FORMAT, read_exact(data, offset, LOCAL_FILE_HEADER_SIZE)
    )
    (
        signature,
        version,
        flags,
        compression_method,
        mod_time,
        mod_date,
        crc32,
        compressed_size,
        uncompressed_size,
        filename_len,
        extra_len,
    ) = fields
    _check_signature(signature, LOCAL_FILE_HEADER, "local file header")

    pos = offset + LOCAL_FILE_HEADER_SIZE
    filename = read_exact(data, pos, filename_len)
    extra = read_exact(data, pos + filename_len, extra_len)

    return LocalFileHeader(
        version=version,
        flags=flags,
        compression_method=compression_method,
        mod_time=mod_time,
        mod_date=mod_date,
        crc32=crc32,
        compressed_size=compressed_size,
        uncompressed_size=uncompressed_size,
        filename=filename,
        extra=extra,
        signature=signature,
    )


def parse_data_descriptor(data: bytes, offset: int) -> DataDescriptor:
    """Parse a data descriptor at 'offset' in the archive buffer.

    Raises:
        ZipFormatError: If the signature is invalid or the buffer is truncated.
    """
    signature, crc32, compressed_size, uncompressed_size = struct.unpack(
        _DATA_DESCRIPTOR_FORMAT, read_exact(data, offset, DATA_DESCRIPTOR_SIZE)
    )
    _check_signature(signature, DATA_DESCRIPTOR, "data descriptor")
    return DataDescriptor(
        crc32=crc32,
        compressed_size=compressed_size,
        uncompressed_size=uncompressed_size,
        signature=signature,
    )


def parse_central_directory_header(data: bytes, offset: int) -> CentralDirectoryHeader:
    """Parse a central directory header at 'offset' in the archive buffer.

    Raises:
        ZipFormatError: If the signature is invalid or the buffer is truncated.
    """
    fields = struct.unpack(
        _CENTRAL_DIR_HEADER_FORMAT, read_exact(data, offset, CENTRAL_DIR_HEADER_SIZE)
    )
    (
        signature,
        version_made_by,
        version,
        flags,
        compression_method,
        mod_time,
        mod_date,
        crc32,
        compressed_size,
        uncompressed_size,
        filename_len,
        extra_len,
        comment_len,
        disk_num,
        internal_attrs,
        external_attrs,
        local_header_offset,
    ) = fields
    _check_signature(signature, CENTRAL_DIR_HEADER, "central directory header")

    pos = offset + CENTRAL_DIR_HEADER_SIZE
    filename = read_exact(data, pos, filename_len)
    pos += filename_len
    extra = read_exact(data, pos, extra_len)
    pos += extra_len
    comment = read_exact(data, pos, comment_len)

    return CentralDirectoryHeader(
        version_made_by=version_made_by,
        version=version,
        flags=flags,
        compression_method=compression_method,
        mod_time=mod_time,
        mod_date=mod_date,
        crc32=crc32,
        compressed_size=compressed_size,
        uncompressed_size=uncompressed_size,
        external_attrs=external_attrs,
        local_header_offset=local_header_offset,
        filename=filename,
        extra=extra,
        comment=comment,
        disk_num=disk_num,
        internal_attrs=internal_attrs,
        signature=signature,
    )


def parse_eocd(data: bytes, offset: int) -> EndOfCentralDirectory:
    """Parse an End of Central Directory record at 'offset'.

    A comment that claims to run past the end of the buffer is truncated to
    what is present rather than rejected, matching what most readers do.

    Raises:
        ZipFormatError: If the signature is invalid or the buffer is truncated.
    """
    (
        signature,
        disk_num,
        cd_disk,
        cd_records_on_disk,
        cd_records_total,
        cd_size,
        cd_offset,
        comment_len,
    ) = struct.unpack(
        _END_OF_CENTRAL_DIR_FORMAT, read_exact(data, offset, END_OF_CENTRAL_DIR_SIZE)
    )
    _check_signature(signature, END_OF_CENTRAL_DIR, "EOCD")

    comment_start = offset + END_OF_CENTRAL_DIR_SIZE
    comment = bytes(data[comment_start : comment_start + comment_len])

    return EndOfCentralDirectory(
        cd_records_on_disk=cd_records_on_disk,
        cd_records_total=cd_records_total,
        cd_size=cd_size,
        cd_offset=cd_offset,
        disk_num=disk_num,
        cd_disk=cd_disk,
        comment=comment,
        signature=signature,
    )
