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
SAVEZIP - ZIP codec for save data and game assets.

Reads and writes single-disk ZIP archives that keep directories, symbolic
links and executable bits, using only Python standard library modules.
"""

from .archive import Archive
from .attributes import EntryKind, ExternalAttr
from .entry import ZipEntry
from .errors import (
    PartialExtractionWarning,
    ZipArchiveNotFound,
    ZipCompressionError,
    ZipError,
    ZipFormatError,
    ZipSourceNotFound,
    ZipWriteError,
)
from .extract import ArchiveExtractor, ExtractionReport
from .reader import ZipReader
from .utils import crc32, to_dos_date_time
from .writer import ZipWriter

__all__ = [
    "Archive",
    "ArchiveExtractor",
    "EntryKind",
    "ExternalAttr",
    "ExtractionReport",
    "PartialExtractionWarning",
    "ZipArchiveNotFound",
    "ZipCompressionError",
    "ZipEntry",
    "ZipError",
    "ZipFormatError",
    "ZipReader",
    "ZipSourceNotFound",
    "ZipWriteError",
    "ZipWriter",
    "crc32",
    "to_dos_date_time",
]

__version__ = "0.1.0"
