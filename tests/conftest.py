import os
import sys
from typing import Optional

import pytest

from savezip.attributes import EntryKind
from savezip.collaborators import FileInfo, PlatformName, ZlibCompressor, parent_path
from savezip.errors import ZipCompressionError, ZipSourceNotFound, ZipWriteError


def pytest_configure(config) -> None:
    """Register custom markers used across the suite."""
    config.addinivalue_line("markers", "unit: Fast, isolated unit tests")
    config.addinivalue_line("markers", "integration: Round trips through the real filesystem")
    config.addinivalue_line("markers", "requires_symlinks: Creates real symlinks (POSIX hosts only)")
    config.addinivalue_line("markers", "requires_posix_modes: Checks executable bits (POSIX hosts only)")


def _posix_host() -> bool:
    return not sys.platform.startswith("win") and hasattr(os, "symlink")


def pytest_runtest_setup(item) -> None:
    if item.get_closest_marker("requires_symlinks") and not _posix_host():
        pytest.skip("symlink creation needs a POSIX host")
    if item.get_closest_marker("requires_posix_modes") and not _posix_host():
        pytest.skip("executable bits are not tracked on Windows")


class FakeFileSystem:
    """In-memory FileSystem with '/'-separated, root-relative paths."""

    def __init__(self):
        self.files: dict[str, bytes] = {}
        self.dirs: set[str] = {""}
        self.links: dict[str, str] = {}
        self.mtimes: dict[str, float] = {}
        self.fail_writes: set[str] = set()
        self.writes: list[str] = []

    def add_file(self, path: str, data: bytes, mod_time: Optional[float] = None) -> None:
        self.create_directory(parent_path(path))
        self.files[path] = data
        if mod_time is not None:
            self.mtimes[path] = mod_time

    def add_link(self, path: str, target: str) -> None:
        self.create_directory(parent_path(path))
        self.links[path] = target

    def read(self, path: str) -> bytes:
        if path not in self.files:
            raise ZipSourceNotFound(f"Cannot read '{path}'")
        return self.files[path]

    def write(self, path: str, data: bytes) -> None:
        if path in self.fail_writes:
            raise ZipWriteError(f"Cannot write '{path}'")
        self.writes.append(path)
        self.files[path] = data

    def create_directory(self, path: str) -> None:
        path = path.strip("/")
        while True:
            self.dirs.add(path)
            if not path:
                break
            path = parent_path(path)

    def list_directory(self, path: str) -> list[str]:
        path = path.strip("/")
        if path not in self.dirs:
            raise ZipSourceNotFound(f"Cannot list directory '{path}'")
        names = set()
        for known in list(self.files) + list(self.dirs) + list(self.links):
            if known and parent_path(known) == path:
                names.add(known.rsplit("/", 1)[-1])
        return sorted(names)

    def stat(self, path: str) -> Optional[FileInfo]:
        if path in self.links:
            return FileInfo(EntryKind.SYMLINK)
        if path in self.files:
            return FileInfo(EntryKind.FILE, self.mtimes.get(path))
        if path in self.dirs:
            return FileInfo(EntryKind.DIRECTORY)
        return None


class FakePlatform:
    """Records symlink and chmod requests instead of performing them."""

    def __init__(self, filesystem: FakeFileSystem, platform: PlatformName = PlatformName.LINUX):
        self.filesystem = filesystem
        self.platform = platform
        self.symlinks: list[tuple[str, str]] = []
        self.executables: list[str] = []
        self.fail_links: set[str] = set()

    def create_symlink(self, target: str, link_path: str) -> None:
        if link_path in self.fail_links:
            raise OSError(f"cannot link {link_path}")
        self.symlinks.append((target, link_path))
        self.filesystem.links[link_path] = target

    def set_executable(self, path: str) -> None:
        self.executables.append(path)

    def resolve_symlink_target(self, path: str) -> str:
        return self.filesystem.links[path]

    def current_platform(self) -> PlatformName:
        return self.platform


class FailingCompressor(ZlibCompressor):
    """Deflates normally except for payloads containing a marker."""

    def __init__(self, marker: bytes = b"BROKEN"):
        self.marker = marker

    def compress(self, data: bytes, level: int = 9) -> bytes:
        if self.marker in data:
            raise ZipCompressionError("compressor refused payload")
        return super().compress(data, level)


@pytest.fixture
def fake_fs() -> FakeFileSystem:
    return FakeFileSystem()


@pytest.fixture
def fake_platform(fake_fs) -> FakePlatform:
    return FakePlatform(fake_fs)


@pytest.fixture
def save_tree(tmp_path):
    """src/ with a.txt ("hi"), an empty sub/ folder and link -> a.txt."""
    src = tmp_path / "src"
    src.mkdir()
    (src / "a.txt").write_bytes(b"hi")
    (src / "sub").mkdir()
    if _posix_host():
        os.symlink("a.txt", src / "link")
    return tmp_path


@pytest.fixture
def windows_platform(fake_fs) -> FakePlatform:
    return FakePlatform(fake_fs, PlatformName.WINDOWS)


@pytest.fixture
def failing_compressor() -> FailingCompressor:
    """Compressor that refuses any payload containing b"BROKEN"."""
    return FailingCompressor()
