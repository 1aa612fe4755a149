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
Entry kinds and the external attribute scheme.

The 4-byte external attributes field of each central directory record is
used to carry the entry kind: plain file, executable file or symbolic
link. Writer and reader both go through ``encode_external_attr`` and
``decode_external_attr`` so the sentinels only live in one place.
"""

from enum import Enum, IntEnum

from .constants import (
    ATTR_EXECUTABLE,
    ATTR_PLAIN,
    ATTR_SYMLINK,
    S_IFDIR,
    S_IFLNK,
    S_IFMT,
    S_IXANY,
)


class EntryKind(Enum):
    """What an archive member materializes as."""

    FILE = "file"
    DIRECTORY = "directory"
    SYMLINK = "symlink"


class ExternalAttr(IntEnum):
    """Closed set of external attribute values savezip writes."""

    PLAIN = ATTR_PLAIN
    EXECUTABLE = ATTR_EXECUTABLE
    SYMLINK = ATTR_SYMLINK


def encode_external_attr(kind: EntryKind, executable: bool = False) -> ExternalAttr:
    """Return the external attribute value for an entry.

    Symlinks always get the symlink sentinel. Only regular files can be
    flagged executable; directories are written as plain.
    """
    if kind is EntryKind.SYMLINK:
        return ExternalAttr.SYMLINK
    if kind is EntryKind.FILE and executable:
        return ExternalAttr.EXECUTABLE
    return ExternalAttr.PLAIN


def decode_external_attr(external_attrs: int, name: str) -> tuple[EntryKind, bool]:
    """Recover (kind, executable) from an external attribute value.

    The two sentinels are matched exactly first. Anything else is read as
    a Unix mode in the high 16 bits, so archives produced by other tools
    keep their symlinks and execute bits. A trailing ``/`` on the name
    always means directory.
    """
    if name.endswith("/"):
        return EntryKind.DIRECTORY, False
    if external_attrs == ExternalAttr.SYMLINK:
        return EntryKind.SYMLINK, False
    if external_attrs == ExternalAttr.EXECUTABLE:
        return EntryKind.FILE, True

    mode = (external_attrs >> 16) & 0xFFFF
    file_type = mode & S_IFMT
    if file_type == S_IFLNK:
        return EntryKind.SYMLINK, False
    if file_type == S_IFDIR:
        return EntryKind.DIRECTORY, False
    return EntryKind.FILE, bool(mode & S_IXANY)


def looks_executable(filename: str) -> bool:
    """Guess whether a file is executable from its name alone.

    A name without any ``.`` is assumed to be an executable. This is a
    heuristic for hosts that cannot report permission bits, not a
    guarantee: ``README`` or ``Makefile`` are flagged too.
    """
    basename = filename.rstrip("/").rsplit("/", 1)[-1]
    return "." not in basename
