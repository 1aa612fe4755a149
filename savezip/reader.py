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
ZIP archive reader implementation.

This module provides the ZipReader class, which parses a complete archive
held in memory into a list of ZipEntry objects with decompressed payloads.
"""

import logging
from typing import Iterable, Mapping, Optional, Union

from .attributes import decode_external_attr
from .collaborators import Compressor, ZlibCompressor
from .constants import (
    COMP_DEFLATE,
    COMP_STORED,
    END_OF_CENTRAL_DIR_MAGIC,
    END_OF_CENTRAL_DIR_SIZE,
    FLAG_ENCRYPTED,
    FLAG_UTF8,
    MAX_EOCD_SEARCH,
)
from .entry import ZipEntry
from .errors import ZipCompressionError, ZipFormatError
from .structures import (
    CentralDirectoryHeader,
    EndOfCentralDirectory,
    parse_central_directory_header,
    parse_eocd,
    parse_local_file_header,
)
from .utils import crc32, read_exact

logger = logging.getLogger(__name__)

NameRemapping = Union[Mapping[str, str], Iterable[tuple[str, str]]]


def decode_filename(raw: bytes, flags: int) -> str:
    """Decode an entry name; UTF-8 when flagged or valid, else CP437."""
    if flags & FLAG_UTF8:
        name = raw.decode("utf-8", errors="replace")
    else:
        try:
            name = raw.decode("utf-8")
        except UnicodeDecodeError:
            name = raw.decode("cp437")
    if "\\" in name:
        name = name.replace("\\", "/")
    return name


def remap_name(name: str, remapping: Optional[NameRemapping]) -> str:
    """Apply ordered (search, replace) substring pairs to an entry name."""
    if not remapping:
        return name
    pairs = remapping.items() if isinstance(remapping, Mapping) else remapping
    for search, replace in pairs:
        if search:
            name = name.replace(search, replace)
    return name


class ZipReader:
    """Reader for ZIP archives held in memory.

    The end of central directory record is located by scanning backwards
    from the end of the buffer; its declared offset and size then locate
    the central directory exactly, so signature bytes inside compressed
    payloads cannot be mistaken for directory records.

    Example:
        reader = ZipReader(archive_bytes)
        print(reader.list())
        data = reader.read("file.txt")
    """

    def __init__(self, data: bytes, compressor: Optional[Compressor] = None):
        """Parse an archive buffer.

        Args:
            data: The complete archive.
            compressor: DEFLATE primitive (zlib by default).

        Raises:
            ZipFormatError: If no end record is found or the directory is
                truncated or inconsistent.
        """
        self._data = data
        self.compressor = compressor or ZlibCompressor()
        self.entries: list[ZipEntry] = []
        self._entries: dict[str, ZipEntry] = {}
        self.eocd: Optional[EndOfCentralDirectory] = None

        self._parse_archive()

    def _find_eocd(self) -> tuple[int, EndOfCentralDirectory]:
        """Find and parse the End of Central Directory record.

        Scans backward from the end of the buffer. The record can be
        followed by up to 65535 bytes of comment, so candidates are tried
        from the last one backwards until one is self-consistent.

        Returns:
            Tuple of (record position, EndOfCentralDirectory).

        Raises:
            ZipFormatError: If no valid record can be found.
        """
        data = self._data
        size = len(data)
        if size < END_OF_CENTRAL_DIR_SIZE:
            raise ZipFormatError(
                f"Not a ZIP archive: {size} bytes is shorter than an end record"
            )

        search_start = max(0, size - MAX_EOCD_SEARCH)
        pos = data.rfind(END_OF_CENTRAL_DIR_MAGIC, search_start)
        while pos != -1:
            if pos + END_OF_CENTRAL_DIR_SIZE <= size:
                eocd = parse_eocd(data, pos)
                if eocd.cd_offset + eocd.cd_size <= pos:
                    return pos, eocd
            pos = data.rfind(END_OF_CENTRAL_DIR_MAGIC, search_start, pos)

        raise ZipFormatError("End of Central Directory record not found")

    def _parse_archive(self) -> None:
        """Parse the entire archive structure."""
        _, self.eocd = self._find_eocd()
        if self.eocd.disk_num != 0 or self.eocd.cd_disk != 0:
            raise ZipFormatError("Multi-disk archives are not supported")
        if self.eocd.cd_records_on_disk != self.eocd.cd_records_total:
            raise ZipFormatError(
                f"Entry count mismatch: {self.eocd.cd_records_on_disk} on disk, "
                f"{self.eocd.cd_records_total} total"
            )

        for header in self._parse_central_directory():
            entry = self._build_entry(header)
            self.entries.append(entry)
            self._entries[entry.name] = entry

        logger.debug(f"{len(self.entries)} files found")

    def _parse_central_directory(self) -> list[CentralDirectoryHeader]:
        """Split the central directory into its records.

        Raises:
            ZipFormatError: If a record runs past the declared directory.
        """
        eocd = self.eocd
        cd_end = eocd.cd_offset + eocd.cd_size
        headers = []
        pos = eocd.cd_offset
        for _ in range(eocd.cd_records_total):
            header = parse_central_directory_header(self._data, pos)
            pos += header.size
            if pos > cd_end:
                raise ZipFormatError(
                    f"Central directory record at {pos - header.size} runs past "
                    f"the declared directory end {cd_end}"
                )
            headers.append(header)
        return headers

    def _build_entry(self, header: CentralDirectoryHeader) -> ZipEntry:
        """Resolve one directory record into an entry with its payload."""
        if header.flags & FLAG_ENCRYPTED:
            raise ZipFormatError(
                f"Entry '{header.filename!r}' is encrypted (encryption not supported)"
            )

        # The local header's name is authoritative; the directory copy may
        # have been rewritten by another tool.
        local = parse_local_file_header(self._data, header.local_header_offset)
        name = decode_filename(local.filename, local.flags)

        payload_start = header.local_header_offset + local.size
        payload = read_exact(self._data, payload_start, header.compressed_size)
        raw = self._inflate(name, header.compression_method, payload)

        if crc32(raw) != header.crc32:
            logger.warning(
                f'CRC32 mismatch for "{name}": expected 0x{header.crc32:08X}, '
                f"got 0x{crc32(raw):08X}"
            )

        kind, executable = decode_external_attr(header.external_attrs, name)
        return ZipEntry(
            name=name,
            kind=kind,
            raw_content=raw,
            compressed_content=payload,
            compression_method=header.compression_method,
            crc32=header.crc32,
            mod_time=header.mod_time,
            mod_date=header.mod_date,
            local_header_offset=header.local_header_offset,
            executable=executable,
            flags=header.flags,
        )

    def _inflate(self, name: str, method: int, payload: bytes) -> bytes:
        """Decompress a payload, falling back to the stored bytes on failure."""
        if method == COMP_STORED or not payload:
            return payload
        if method != COMP_DEFLATE:
            logger.warning(
                f'Unsupported compression method {method} for "{name}", '
                f"keeping stored bytes"
            )
            return payload
        try:
            return self.compressor.decompress(payload)
        except ZipCompressionError as e:
            logger.warning(f'Could not inflate "{name}" ({e}), keeping stored bytes')
            return payload

    def remap_names(self, remapping: Optional[NameRemapping]) -> None:
        """Rename every entry through ordered (search, replace) pairs."""
        if not remapping:
            return
        pairs = list(remapping.items() if isinstance(remapping, Mapping) else remapping)
        self._entries = {}
        for entry in self.entries:
            entry.name = remap_name(entry.name, pairs)
            self._entries[entry.name] = entry

    def list(self) -> list[str]:
        """List all entry names in the archive, in directory order."""
        return [entry.name for entry in self.entries]

    def get_info(self, name: str) -> Optional[ZipEntry]:
        """Get a specific entry, or None if it is not in the archive."""
        if "\\" in name:
            name = name.replace("\\", "/")
        return self._entries.get(name)

    def read(self, name: str) -> bytes:
        """Return an entry's uncompressed content.

        Raises:
            KeyError: If the entry is not found.
        """
        entry = self.get_info(name)
        if entry is None:
            raise KeyError(f"Entry not found: {name}")
        return entry.raw_content
