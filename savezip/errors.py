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
Custom exception classes for savezip.

Lower layers (writer, reader, extractor) raise these. The ``Archive`` handle
catches ``ZipError`` at the public boundary and returns it as the error half
of an ``(ok, err)`` pair.
"""


class ZipError(Exception):
    """Base exception class for all ZIP-related errors."""

    pass


class ZipSourceNotFound(ZipError):
    """Raised when an input file, folder or archive cannot be read.

    This exception is raised when:
    - The archive passed to ``decompress`` does not exist or is unreadable
    - A file handed to ``add_file`` cannot be read
    - The folder handed to ``add_folder`` cannot be listed
    """

    pass


# Reader-side name for the same condition
ZipArchiveNotFound = ZipSourceNotFound


class ZipFormatError(ZipError):
    """Raised when an archive has an invalid format or structure.

    This exception is raised when:
    - The end of central directory record cannot be found
    - A record signature is missing or incorrect
    - A record or payload runs past the end of the buffer
    - An archive handle is used after it was finished
    """

    pass


class ZipCompressionError(ZipError):
    """Raised when the compression primitive fails for an entry."""

    pass


class ZipWriteError(ZipError):
    """Raised when the finished archive cannot be written out."""

    pass


class PartialExtractionWarning(ZipError):
    """One entry could not be materialized during extraction.

    Never raised out of ``decompress``; instances are collected in an
    ``ExtractionReport`` so the remaining entries are still written.
    """

    def __init__(self, name: str, reason: str):
        super().__init__(f"failed to extract '{name}': {reason}")
        self.name = name
        self.reason = reason
