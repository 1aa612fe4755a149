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
Capability interfaces the codec consumes, and their local implementations.

The writer and reader never touch ``os`` directly. They go through three
narrow collaborators:

- ``FileSystem``: read/write/list/stat paths relative to an application root
- ``Compressor``: the raw DEFLATE primitive
- ``Platform``: symlink creation, executable bit, symlink resolution

Tests substitute in-memory fakes; ``Archive`` wires up the local ones.
"""

import logging
import os
import stat as _stat
import sys
import zlib
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol

from .attributes import EntryKind
from .constants import DEFAULT_COMPRESSION_LEVEL
from .errors import ZipCompressionError, ZipSourceNotFound, ZipWriteError

logger = logging.getLogger(__name__)


@dataclass
class FileInfo:
    """Result of ``FileSystem.stat``: what a path is and when it changed."""

    kind: EntryKind
    mod_time: Optional[float] = None


class FileSystem(Protocol):
    """Filesystem protocol; all paths are ``/``-separated and root-relative."""

    def read(self, path: str) -> bytes:
        ...

    def write(self, path: str, data: bytes) -> None:
        ...

    def create_directory(self, path: str) -> None:
        ...

    def list_directory(self, path: str) -> list[str]:
        ...

    def stat(self, path: str) -> Optional[FileInfo]:
        ...


class Compressor(Protocol):
    """Raw DEFLATE primitive."""

    def compress(self, data: bytes, level: int = DEFAULT_COMPRESSION_LEVEL) -> bytes:
        ...

    def decompress(self, data: bytes) -> bytes:
        ...


class PlatformName(Enum):
    LINUX = "linux"
    MACOS = "macos"
    WINDOWS = "windows"
    OTHER = "other"


class Platform(Protocol):
    """Operating system services that have no filesystem-neutral form."""

    def create_symlink(self, target: str, link_path: str) -> None:
        ...

    def set_executable(self, path: str) -> None:
        ...

    def resolve_symlink_target(self, path: str) -> str:
        ...

    def current_platform(self) -> PlatformName:
        ...


def join_path(*parts: str) -> str:
    """Join root-relative path segments with ``/``, skipping empty ones."""
    segments = []
    for part in parts:
        segments.extend(s for s in part.split("/") if s)
    return "/".join(segments)


def parent_path(path: str) -> str:
    """Directory part of a root-relative path ("" for top-level names)."""
    path = path.rstrip("/")
    if "/" not in path:
        return ""
    return path.rsplit("/", 1)[0]


class _RootedPaths:
    """Maps root-relative ``/`` paths onto the host filesystem."""

    def __init__(self, root: str = "."):
        self.root = os.path.abspath(root)

    def full_path(self, path: str) -> str:
        segments = [s for s in path.replace("\\", "/").split("/") if s]
        return os.path.join(self.root, *segments)


class LocalFileSystem(_RootedPaths):
    """Local filesystem backend rooted at an application directory."""

    def __init__(self, root: str = "."):
        super().__init__(root)
        logger.debug(f"LocalFileSystem initialized: {self.root}")

    def read(self, path: str) -> bytes:
        try:
            with open(self.full_path(path), "rb") as f:
                return f.read()
        except (OSError, ValueError) as e:
            raise ZipSourceNotFound(f"Cannot read '{path}': {e}") from e

    def write(self, path: str, data: bytes) -> None:
        try:
            with open(self.full_path(path), "wb") as f:
                f.write(data)
        except (OSError, ValueError) as e:
            raise ZipWriteError(f"Cannot write '{path}': {e}") from e

    def create_directory(self, path: str) -> None:
        try:
            os.makedirs(self.full_path(path), exist_ok=True)
        except (OSError, ValueError) as e:
            raise ZipWriteError(f"Cannot create directory '{path}': {e}") from e

    def list_directory(self, path: str) -> list[str]:
        try:
            return sorted(os.listdir(self.full_path(path)))
        except (OSError, ValueError) as e:
            raise ZipSourceNotFound(f"Cannot list directory '{path}': {e}") from e

    def stat(self, path: str) -> Optional[FileInfo]:
        try:
            st = os.lstat(self.full_path(path))
        except (OSError, ValueError):
            return None
        if _stat.S_ISLNK(st.st_mode):
            return FileInfo(EntryKind.SYMLINK, st.st_mtime)
        if _stat.S_ISDIR(st.st_mode):
            return FileInfo(EntryKind.DIRECTORY, st.st_mtime)
        if _stat.S_ISREG(st.st_mode):
            return FileInfo(EntryKind.FILE, st.st_mtime)
        # Sockets, fifos and devices are not archived
        return None


class ZlibCompressor:
    """Raw DEFLATE (no zlib header) as stored under ZIP method 8."""

    def compress(self, data: bytes, level: int = DEFAULT_COMPRESSION_LEVEL) -> bytes:
        try:
            compressor = zlib.compressobj(level=level, wbits=-zlib.MAX_WBITS)
            return compressor.compress(data) + compressor.flush()
        except (zlib.error, ValueError) as e:
            raise ZipCompressionError(f"Deflate compression failed: {e}") from e

    def decompress(self, data: bytes) -> bytes:
        try:
            decompressor = zlib.decompressobj(-zlib.MAX_WBITS)
            result = decompressor.decompress(data) + decompressor.flush()
        except zlib.error as e:
            raise ZipCompressionError(f"Deflate decompression failed: {e}") from e
        if not decompressor.eof:
            raise ZipCompressionError("Deflate stream is truncated")
        return result


def detect_platform() -> PlatformName:
    if sys.platform.startswith("win"):
        return PlatformName.WINDOWS
    if sys.platform == "darwin":
        return PlatformName.MACOS
    if sys.platform.startswith("linux"):
        return PlatformName.LINUX
    return PlatformName.OTHER


class NativePlatform(_RootedPaths):
    """Symlink and permission handling through native ``os`` calls."""

    def __init__(self, root: str = "."):
        super().__init__(root)
        self._platform = detect_platform()

    def current_platform(self) -> PlatformName:
        return self._platform

    def create_symlink(self, target: str, link_path: str) -> None:
        """Create ``link_path`` pointing at ``target`` (relative to the link's folder).

        An existing file or link at ``link_path`` is replaced.

        Raises:
            ZipWriteError: If the link cannot be created.
        """
        full_link = self.full_path(link_path)
        host_target = target.replace("/", os.sep)
        try:
            if os.path.lexists(full_link):
                os.remove(full_link)
            target_is_directory = False
            if self._platform is PlatformName.WINDOWS:
                resolved = os.path.join(os.path.dirname(full_link), host_target)
                target_is_directory = os.path.isdir(resolved)
            os.symlink(host_target, full_link, target_is_directory=target_is_directory)
        except (OSError, ValueError) as e:
            raise ZipWriteError(f"Cannot create symlink '{link_path}': {e}") from e

    def set_executable(self, path: str) -> None:
        full = self.full_path(path)
        try:
            mode = os.stat(full).st_mode
            os.chmod(full, mode | _stat.S_IXUSR | _stat.S_IXGRP | _stat.S_IXOTH)
        except (OSError, ValueError) as e:
            raise ZipWriteError(f"Cannot set executable bit on '{path}': {e}") from e

    def resolve_symlink_target(self, path: str) -> str:
        """Return the link's target as a ``/`` path relative to the link's folder."""
        full = self.full_path(path)
        target = os.readlink(full)
        if os.path.isabs(target):
            target = os.path.relpath(target, os.path.dirname(full))
        return target.replace(os.sep, "/").rstrip("\r\n")
