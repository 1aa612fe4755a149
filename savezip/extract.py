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
Materialization of parsed entries onto a filesystem.

Extraction runs in two passes. The first writes directories and files,
creating parent folders on demand because some writers never emit
directory entries. The second creates symlinks once everything they may
point at exists, shortest stored target first. That ordering tends to
create links to plain files before links that go through other links; it
is a heuristic, not a guarantee for arbitrary chains.

Entries whose name, or whose symlink target, would reach outside the output
folder are refused. A failure on one entry is logged and recorded as a
PartialExtractionWarning; the remaining entries are still extracted.
"""

import logging
import posixpath
from dataclasses import dataclass, field
from typing import Iterable

from .attributes import EntryKind
from .collaborators import FileSystem, Platform, PlatformName, join_path, parent_path
from .entry import ZipEntry
from .errors import PartialExtractionWarning, ZipError

logger = logging.getLogger(__name__)


@dataclass
class ExtractionReport:
    """What an extraction produced and which entries it had to skip."""

    files: int = 0
    directories: int = 0
    symlinks: int = 0
    warnings: list[PartialExtractionWarning] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.warnings


def _has_drive(path: str) -> bool:
    return len(path) > 1 and path[0].isalpha() and path[1] == ":" and path[2:3] in ("/", "")


def is_safe_name(name: str) -> bool:
    """Reject names that would land outside the output directory."""
    if "\x00" in name or name.startswith("/") or _has_drive(name):
        return False
    return ".." not in name.split("/")


def is_safe_link_target(name: str, target: str) -> bool:
    """Reject symlink targets that point outside the output directory.

    The target is resolved against the link's own folder, so
    ``sub/link -> ../a.txt`` is fine while ``link -> ../a.txt`` is not.
    """
    target = target.replace("\\", "/")
    if not target or "\x00" in target or target.startswith("/") or _has_drive(target):
        return False
    resolved = posixpath.normpath(posixpath.join(parent_path(name), target))
    return resolved != ".." and not resolved.startswith("../")


def symlink_order(entries: Iterable[ZipEntry]) -> list[ZipEntry]:
    """Symlink entries sorted by ascending stored target length (stable)."""
    links = [entry for entry in entries if entry.kind is EntryKind.SYMLINK]
    return sorted(links, key=lambda entry: len(entry.raw_content))


class ArchiveExtractor:
    """Writes ZipEntry objects out through the filesystem and platform collaborators."""

    def __init__(
        self,
        filesystem: FileSystem,
        platform: Platform,
        log_level: int = logging.DEBUG,
    ):
        self.filesystem = filesystem
        self.platform = platform
        self.log_level = log_level

    def _log(self, message: str) -> None:
        logger.log(self.log_level, message)

    def _skip(self, report: ExtractionReport, name: str, reason: object) -> None:
        warning = PartialExtractionWarning(name, str(reason))
        logger.warning(str(warning))
        report.warnings.append(warning)

    def extract(self, entries: list[ZipEntry], output: str = "") -> ExtractionReport:
        """Materialize entries below ``output``.

        Args:
            entries: Parsed entries, in archive order.
            output: Root-relative destination folder ("" for the root).

        Returns:
            ExtractionReport with counts and per-entry warnings.

        Raises:
            ZipWriteError: If the output folder itself cannot be created.
        """
        output = join_path(output)
        self.filesystem.create_directory(output)
        report = ExtractionReport()

        for entry in entries:
            if not is_safe_name(entry.name):
                self._skip(report, entry.name, "entry name escapes the output directory")
                continue
            if entry.kind is EntryKind.SYMLINK:
                continue
            try:
                self._write_entry(entry, output, report)
            except (ZipError, OSError) as e:
                self._skip(report, entry.name, e)

        for entry in symlink_order(entries):
            if not is_safe_name(entry.name):
                continue
            try:
                link_target = entry.raw_content.decode("utf-8")
            except UnicodeDecodeError as e:
                self._skip(report, entry.name, e)
                continue
            if not is_safe_link_target(entry.name, link_target):
                self._skip(
                    report, entry.name, f"symlink target '{link_target}' escapes the output directory"
                )
                continue
            try:
                self._write_symlink(entry.name, link_target, output)
                report.symlinks += 1
            except (ZipError, OSError) as e:
                self._skip(report, entry.name, e)

        self._log("finished writing")
        return report

    def _write_entry(self, entry: ZipEntry, output: str, report: ExtractionReport) -> None:
        target = join_path(output, entry.name)

        if entry.kind is EntryKind.DIRECTORY:
            self.filesystem.create_directory(target)
            self._log(f'writing dir: "{target}/"')
            report.directories += 1
            return

        self.filesystem.create_directory(parent_path(target))
        self.filesystem.write(target, entry.raw_content)
        self._log(f'writing itm: "{target}"')
        report.files += 1

        if entry.executable and self.platform.current_platform() is not PlatformName.WINDOWS:
            self.platform.set_executable(target)

    def _write_symlink(self, name: str, link_target: str, output: str) -> None:
        link_path = join_path(output, name)
        self.filesystem.create_directory(parent_path(link_path))
        self.platform.create_symlink(link_target, link_path)
        self._log(f'writing sym: "{link_path}" > "{link_target}"')
