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
ZIP archive writer implementation.

This module provides the ZipWriter class, the write-side accumulator. Entries
are appended one at a time; each is serialized immediately into its local
header, payload and data descriptor, and the running offset advances by
exactly that many bytes. ``finish`` then emits the central directory and end
record and returns the complete archive.
"""

import logging
from typing import Iterable, Optional

from .attributes import EntryKind, looks_executable
from .collaborators import (
    Compressor,
    FileSystem,
    LocalFileSystem,
    NativePlatform,
    Platform,
    ZlibCompressor,
    join_path,
)
from .constants import DEFAULT_COMPRESSION_LEVEL, MAX_ENTRIES, MAX_FILE_SIZE
from .entry import ZipEntry, compression_method_for, normalize_name
from .errors import ZipCompressionError, ZipFormatError
from .structures import EndOfCentralDirectory
from .utils import crc32, epoch_to_dos_datetime

logger = logging.getLogger(__name__)


class ZipWriter:
    """Accumulator for a ZIP archive built in memory.

    The writer owns the entry list and the offset cursor; nothing else
    assigns offsets, so every ``local_header_offset`` matches the bytes
    already produced.

    Example:
        writer = ZipWriter()
        writer.add_entry("hello.txt", b"Hello, World!")
        writer.add_entry("docs/", b"", EntryKind.DIRECTORY)
        data = writer.finish()
    """

    def __init__(
        self,
        compressor: Optional[Compressor] = None,
        filesystem: Optional[FileSystem] = None,
        platform: Optional[Platform] = None,
        compression_level: int = DEFAULT_COMPRESSION_LEVEL,
        log_level: int = logging.DEBUG,
    ):
        """Initialize ZipWriter.

        Args:
            compressor: DEFLATE primitive (zlib by default).
            filesystem: Source of files for ``add_file``/``add_folder``.
            platform: Resolves symlink targets for ``add_folder``.
            compression_level: Deflate level handed to the compressor.
            log_level: Level used for per-entry progress messages.
        """
        if not 0 <= compression_level <= 9:
            raise ZipFormatError(
                f"Invalid compression level: {compression_level} (must be 0-9)"
            )
        self.compressor = compressor or ZlibCompressor()
        self.filesystem = filesystem or LocalFileSystem()
        self.platform = platform or NativePlatform()
        self.compression_level = compression_level
        self.log_level = log_level

        self.entries: list[ZipEntry] = []
        self.failed_entries: list[tuple[str, ZipCompressionError]] = []
        self._records: list[bytes] = []
        self._offset: int = 0
        self._closed: bool = False

    @property
    def offset(self) -> int:
        """Bytes of local records emitted so far."""
        return self._offset

    @property
    def closed(self) -> bool:
        return self._closed

    def _log(self, message: str) -> None:
        logger.log(self.log_level, message)

    def add_entry(
        self,
        name: str,
        content: bytes,
        kind: EntryKind = EntryKind.FILE,
        executable: bool = False,
        mod_time: Optional[float] = None,
    ) -> ZipEntry:
        """Add one entry from bytes.

        Files are deflated; directories and symlinks are stored verbatim
        (a symlink's content is its target path).

        Args:
            name: Entry name (path within the archive).
            content: Uncompressed entry data.
            kind: File, directory or symlink.
            executable: Flag a file for the executable bit on extraction.
            mod_time: POSIX modification time; ``None`` uses the current time.

        Returns:
            The appended ZipEntry with its offset assigned.

        Raises:
            ZipFormatError: If the archive is finished or the name is invalid.
            ZipCompressionError: If the compressor fails; nothing is appended.
        """
        if self._closed:
            raise ZipFormatError("Archive is closed")

        name = normalize_name(name, kind)
        content = bytes(content)
        if len(content) > MAX_FILE_SIZE:
            raise ZipFormatError(f"Entry too large for a classic ZIP: {name}")

        method = compression_method_for(kind)
        if kind is EntryKind.FILE:
            try:
                compressed = self.compressor.compress(content, self.compression_level)
            except ZipCompressionError:
                raise
            except Exception as e:
                raise ZipCompressionError(f"Compression failed for '{name}': {e}") from e
        else:
            compressed = content

        mod_date, dos_time = epoch_to_dos_datetime(mod_time)

        entry = ZipEntry(
            name=name,
            kind=kind,
            raw_content=content,
            compressed_content=compressed,
            compression_method=method,
            crc32=crc32(content),
            mod_time=dos_time,
            mod_date=mod_date,
            local_header_offset=self._offset,
            executable=executable and kind is EntryKind.FILE,
        )
        record = entry.local_record()

        self.entries.append(entry)
        self._records.append(record)
        self._offset += len(record)
        return entry

    def add_file(self, filename: str, path: Optional[str] = None) -> ZipEntry:
        """Add a file from the filesystem collaborator.

        Args:
            filename: Root-relative path of the source file.
            path: Name to store it under (defaults to ``filename``).

        Raises:
            ZipSourceNotFound: If the file cannot be read.
        """
        content = self.filesystem.read(filename)
        info = self.filesystem.stat(filename)
        self._log(f'adding itm: "{filename}"')
        return self.add_entry(
            path or filename,
            content,
            EntryKind.FILE,
            mod_time=info.mod_time if info else None,
        )

    def add_folder(
        self, directory: str, ignore: Optional[Iterable[str]] = None, prefix: str = ""
    ) -> None:
        """Add every item below ``directory``, recursively.

        Directories get their own entries, so empty ones survive. Items
        whose name is in ``ignore`` are skipped at any depth. Files without
        an extension are flagged executable. A file whose compression fails
        is logged, recorded in ``failed_entries`` and skipped.

        Args:
            directory: Root-relative path of the folder to add.
            ignore: Item names to leave out.
            prefix: Archive path the folder's children are stored under.

        Raises:
            ZipSourceNotFound: If a folder cannot be listed or a file read.
        """
        if self._closed:
            raise ZipFormatError("Archive is closed")
        ignored = set(ignore or ())

        for item in self.filesystem.list_directory(directory):
            if item in ignored:
                continue
            source = join_path(directory, item)
            info = self.filesystem.stat(source)
            if info is None:
                continue
            archive_name = prefix + item

            if info.kind is EntryKind.FILE:
                content = self.filesystem.read(source)
                self._log(f'adding itm: "{archive_name}"')
                try:
                    self.add_entry(
                        archive_name,
                        content,
                        EntryKind.FILE,
                        executable=looks_executable(item),
                        mod_time=info.mod_time,
                    )
                except ZipCompressionError as e:
                    logger.error(f'skipping "{archive_name}": {e}')
                    self.failed_entries.append((archive_name, e))

            elif info.kind is EntryKind.DIRECTORY:
                self._log(f'adding dir: "{archive_name}/"')
                self.add_entry(archive_name + "/", b"", EntryKind.DIRECTORY)
                self.add_folder(source, ignored, archive_name + "/")

            elif info.kind is EntryKind.SYMLINK:
                target = self.platform.resolve_symlink_target(source)
                target = target.replace("\n", "")
                self._log(f'adding sym: "{archive_name}" > "{target}"')
                self.add_entry(archive_name, target.encode("utf-8"), EntryKind.SYMLINK)

    def _central_directory(self) -> bytes:
        return b"".join(
            entry.central_directory_header().to_bytes() for entry in self.entries
        )

    def finish(self) -> bytes:
        """Serialize the archive and close the writer.

        Local records come first in append order, then one central
        directory record per entry, then the end record. The writer cannot
        be used afterwards.

        Returns:
            The complete archive as bytes.

        Raises:
            ZipFormatError: If already finished or the archive needs ZIP64.
        """
        if self._closed:
            raise ZipFormatError("Archive is closed")
        self._closed = True

        num_entries = len(self.entries)
        if num_entries > MAX_ENTRIES:
            raise ZipFormatError(f"Too many entries for a classic ZIP: {num_entries}")

        local_data = b"".join(self._records)
        central_dir = self._central_directory()
        if len(local_data) != self._offset:
            raise ZipFormatError(
                f"Offset mismatch: cursor at {self._offset}, "
                f"{len(local_data)} bytes of local records"
            )
        if len(local_data) + len(central_dir) > MAX_FILE_SIZE:
            raise ZipFormatError("Archive too large for a classic ZIP")

        eocd = EndOfCentralDirectory(
            cd_records_on_disk=num_entries,
            cd_records_total=num_entries,
            cd_size=len(central_dir),
            cd_offset=len(local_data),
        )
        return local_data + central_dir + eocd.to_bytes()
