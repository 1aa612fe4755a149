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
The in-memory archive member shared by the writer and the reader.
"""

from dataclasses import dataclass
from datetime import datetime

from .attributes import EntryKind, ExternalAttr, encode_external_attr
from .constants import (
    COMP_DEFLATE,
    COMP_STORED,
    FLAG_DATA_DESCRIPTOR,
    FLAG_UTF8,
    MAX_NAME_LENGTH,
    VERSION_DEFAULT,
    VERSION_MADE_BY_DEFAULT,
)
from .errors import ZipFormatError
from .structures import CentralDirectoryHeader, DataDescriptor, LocalFileHeader
from .utils import dos_datetime_to_timestamp


def normalize_name(name: str, kind: EntryKind) -> str:
    """Validate an entry name and bring it into archive form.

    Backslashes become ``/`` and directory names get a trailing ``/``.

    Raises:
        ZipFormatError: If the name is empty, contains NUL bytes, names a
            file with a trailing slash, or is too long to store.
    """
    if "\\" in name:
        name = name.replace("\\", "/")
    if kind is EntryKind.DIRECTORY and not name.endswith("/"):
        name += "/"
    if not name or name == "/":
        raise ZipFormatError("Entry name cannot be empty")
    if "\x00" in name:
        raise ZipFormatError("Entry name cannot contain null bytes")
    if kind is not EntryKind.DIRECTORY and name.endswith("/"):
        raise ZipFormatError(f"Only directory entries may end with '/': {name}")
    if len(name.encode("utf-8")) > MAX_NAME_LENGTH:
        raise ZipFormatError(f"Entry name too long: {name[:40]}...")
    return name


@dataclass
class ZipEntry:
    """One archive member: metadata plus payload.

    ``raw_content`` is the uncompressed data (the link target path for a
    symlink); ``compressed_content`` is what is stored between the local
    header and the data descriptor. ``crc32`` is computed once over
    ``raw_content`` and written to both the local header and the central
    directory record.
    """

    name: str
    kind: EntryKind
    raw_content: bytes
    compressed_content: bytes
    compression_method: int
    crc32: int
    mod_time: int
    mod_date: int
    local_header_offset: int = 0
    executable: bool = False
    flags: int = FLAG_UTF8 | FLAG_DATA_DESCRIPTOR

    @property
    def is_dir(self) -> bool:
        return self.kind is EntryKind.DIRECTORY

    @property
    def is_symlink(self) -> bool:
        return self.kind is EntryKind.SYMLINK

    @property
    def compressed_size(self) -> int:
        return len(self.compressed_content)

    @property
    def uncompressed_size(self) -> int:
        return len(self.raw_content)

    @property
    def external_attrs(self) -> ExternalAttr:
        return encode_external_attr(self.kind, self.executable)

    @property
    def date_time(self) -> datetime:
        """Get modification date/time as datetime object."""
        return dos_datetime_to_timestamp(self.mod_date, self.mod_time)

    @property
    def name_bytes(self) -> bytes:
        return self.name.encode("utf-8")

    def local_header(self) -> LocalFileHeader:
        return LocalFileHeader(
            version=VERSION_DEFAULT,
            flags=self.flags,
            compression_method=self.compression_method,
            mod_time=self.mod_time,
            mod_date=self.mod_date,
            crc32=self.crc32,
            compressed_size=self.compressed_size,
            uncompressed_size=self.uncompressed_size,
            filename=self.name_bytes,
        )

    def data_descriptor(self) -> DataDescriptor:
        return DataDescriptor(
            crc32=self.crc32,
            compressed_size=self.compressed_size,
            uncompressed_size=self.uncompressed_size,
        )

    def central_directory_header(self) -> CentralDirectoryHeader:
        return CentralDirectoryHeader(
            version_made_by=VERSION_MADE_BY_DEFAULT,
            version=VERSION_DEFAULT,
            flags=self.flags,
            compression_method=self.compression_method,
            mod_time=self.mod_time,
            mod_date=self.mod_date,
            crc32=self.crc32,
            compressed_size=self.compressed_size,
            uncompressed_size=self.uncompressed_size,
            external_attrs=int(self.external_attrs),
            local_header_offset=self.local_header_offset,
            filename=self.name_bytes,
        )

    def local_record(self) -> bytes:
        """Local header, payload and data descriptor as written to the archive."""
        return (
            self.local_header().to_bytes()
            + self.compressed_content
            + self.data_descriptor().to_bytes()
        )

    @property
    def local_record_size(self) -> int:
        return (
            self.local_header().size
            + self.compressed_size
            + self.data_descriptor().size
        )


def compression_method_for(kind: EntryKind) -> int:
    """Files are deflated; directories and symlinks are stored verbatim."""
    if kind is EntryKind.FILE:
        return COMP_DEFLATE
    return COMP_STORED
