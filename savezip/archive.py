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
Public archive handle.

``Archive`` ties the writer, reader and extractor to a filesystem root and
is the only place exceptions are turned into ``(ok, err)`` results: every
public method returns ``(True, None)`` on success or ``(False, error)``
with a ``ZipError`` describing the failure.

Example:
    archive = Archive(root="saves")
    ok, err = archive.compress("slot1", "backups/slot1.zip", ignore=["cache"])

    ok, err = Archive(root="saves").decompress("backups/slot1.zip", "restored")

    manual = Archive()
    manual.add_file("config.ini", "settings/config.ini")
    manual.add_folder("plugins")
    ok, err = manual.finish("bundle.zip")
"""

import logging
from typing import Iterable, Optional

from .collaborators import (
    Compressor,
    FileSystem,
    LocalFileSystem,
    NativePlatform,
    Platform,
    ZlibCompressor,
)
from .constants import DEFAULT_COMPRESSION_LEVEL
from .errors import PartialExtractionWarning, ZipError, ZipWriteError
from .extract import ArchiveExtractor, ExtractionReport
from .reader import NameRemapping, ZipReader
from .writer import ZipWriter

logger = logging.getLogger(__name__)

Result = tuple[bool, Optional[ZipError]]


class Archive:
    """Handle for compressing a folder to, or decompressing one from, a ZIP file.

    A handle accumulates entries until ``finish`` (or ``compress``) writes
    them out; after that it can no longer be added to. ``decompress`` does
    not touch the accumulated entries.
    """

    def __init__(
        self,
        root: str = ".",
        verbose: bool = False,
        compression_level: int = DEFAULT_COMPRESSION_LEVEL,
        filesystem: Optional[FileSystem] = None,
        compressor: Optional[Compressor] = None,
        platform: Optional[Platform] = None,
    ):
        """Initialize an archive handle.

        Args:
            root: Directory every path given to this handle is relative to.
            verbose: Log per-item progress at INFO instead of DEBUG.
            compression_level: Deflate level for file entries (0-9).
            filesystem: Filesystem collaborator (local, rooted at ``root``).
            compressor: DEFLATE primitive (zlib).
            platform: Symlink/permission collaborator (native, rooted at ``root``).
        """
        self.filesystem = filesystem or LocalFileSystem(root)
        self.compressor = compressor or ZlibCompressor()
        self.platform = platform or NativePlatform(root)
        self.log_level = logging.INFO if verbose else logging.DEBUG
        self.path = ""
        self.warnings: list[PartialExtractionWarning] = []
        self.report: Optional[ExtractionReport] = None
        self._writer = ZipWriter(
            compressor=self.compressor,
            filesystem=self.filesystem,
            platform=self.platform,
            compression_level=compression_level,
            log_level=self.log_level,
        )

    @property
    def writer(self) -> ZipWriter:
        return self._writer

    def decompress(
        self, path: str, output: str = "", remapping: Optional[NameRemapping] = None
    ) -> Result:
        """Extract the archive at ``path`` into the ``output`` folder.

        Args:
            path: Root-relative path of the ZIP file.
            output: Root-relative destination folder, created if missing.
            remapping: Ordered (search, replace) pairs applied to entry names.

        Returns:
            ``(True, None)`` once every entry has been attempted, even if
            some were skipped (see ``warnings``); ``(False, error)`` if the
            archive is missing or malformed.
        """
        try:
            content = self.filesystem.read(path)
            logger.info(f'decompressing "{path}" to "{output}/"')
            reader = ZipReader(content, self.compressor)
            reader.remap_names(remapping)
            extractor = ArchiveExtractor(self.filesystem, self.platform, self.log_level)
            self.report = extractor.extract(reader.entries, output)
        except ZipError as e:
            logger.error(f"decompress failed: {e}")
            return False, e

        self.warnings = list(self.report.warnings)
        logger.info("finished decompression")
        return True, None

    def compress(
        self, source: str, output: str, ignore: Optional[Iterable[str]] = None
    ) -> Result:
        """Compress the folder ``source`` into the ZIP file ``output``."""
        logger.info(f'compressing directory: "{source}"')
        self.path = output
        ok, err = self.add_folder(source, ignore)
        if not ok:
            return ok, err
        logger.log(self.log_level, f'writing files to: "{output}"')
        return self.finish()

    def add_file(self, filename: str, path: Optional[str] = None) -> Result:
        """Add a single file, stored as ``path`` if given."""
        try:
            self._writer.add_file(filename, path)
        except ZipError as e:
            logger.error(f'cannot add "{filename}": {e}')
            return False, e
        return True, None

    def add_folder(self, directory: str, ignore: Optional[Iterable[str]] = None) -> Result:
        """Add a folder's contents (not the folder itself) recursively."""
        logger.log(self.log_level, f'adding dir: "{directory}"')
        try:
            self._writer.add_folder(directory, ignore)
        except ZipError as e:
            logger.error(f'cannot add "{directory}": {e}')
            return False, e
        return True, None

    def finish(self, path: Optional[str] = None) -> Result:
        """Write every added entry to the ZIP file and close the handle.

        Args:
            path: Output path, required unless ``compress`` already set one.

        Returns:
            ``(False, error)`` if the archive could not be written, or if
            some files had to be left out because compression failed (the
            archive is still written without them).
        """
        if path:
            self.path = path
        if not self.path:
            return False, ZipWriteError("No output path given for the archive")

        try:
            data = self._writer.finish()
            self.filesystem.write(self.path, data)
        except ZipError as e:
            logger.error(f'failed to write final zip "{self.path}": {e}')
            return False, e

        if self._writer.failed_entries:
            name, error = self._writer.failed_entries[0]
            logger.error(
                f"{len(self._writer.failed_entries)} entries could not be compressed, "
                f'first was "{name}"'
            )
            return False, error

        logger.info("finished compression")
        return True, None
