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
ZIP format constants: record signatures, fixed record sizes, compression
methods, flags, version numbers and the external attribute sentinels.

Everything here describes the single-disk, non-ZIP64 subset that savezip
reads and writes.
"""

# ZIP record signatures (magic numbers)
LOCAL_FILE_HEADER = 0x04034B50  # "PK\x03\x04"
CENTRAL_DIR_HEADER = 0x02014B50  # "PK\x01\x02"
END_OF_CENTRAL_DIR = 0x06054B50  # "PK\x05\x06"
DATA_DESCRIPTOR = 0x08074B50  # "PK\x07\x08"

# Byte form of the end record signature, used when scanning a buffer
END_OF_CENTRAL_DIR_MAGIC = b"PK\x05\x06"

# Compression methods
COMP_STORED = 0  # No compression
COMP_DEFLATE = 8  # Raw deflate

# Compression method names (for listings)
METHOD_TO_NAME = {
    COMP_STORED: "stored",
    COMP_DEFLATE: "deflate",
}

# Default deflate level, the archives are built once and read many times
DEFAULT_COMPRESSION_LEVEL = 9

# General purpose bit flags
FLAG_ENCRYPTED = 0x0001  # File is encrypted
FLAG_DATA_DESCRIPTOR = 0x0008  # Data descriptor follows file data
FLAG_UTF8 = 0x0800  # UTF-8 encoding for filename

# ZIP version constants
VERSION_DEFAULT = 20  # Version needed to extract (2.0)
HOST_UNIX = 3  # Host system in the high byte of "version made by"
VERSION_MADE_BY_DEFAULT = (HOST_UNIX << 8) | VERSION_DEFAULT

# Classic ZIP limits (32-bit)
MAX_FILE_SIZE = 0xFFFFFFFF  # 4 GiB - 1
MAX_ENTRIES = 0xFFFF  # 65535 entries
MAX_NAME_LENGTH = 0xFFFF

# Local file header size (fixed part, excluding filename/extra)
LOCAL_FILE_HEADER_SIZE = 30

# Central directory header size (fixed part, excluding filename/extra/comment)
CENTRAL_DIR_HEADER_SIZE = 46

# End of central directory size (fixed part, excluding comment)
END_OF_CENTRAL_DIR_SIZE = 22

# The end record may be followed by a comment of up to 65535 bytes
MAX_EOCD_SEARCH = END_OF_CENTRAL_DIR_SIZE + 0xFFFF

# Data descriptor size (classic, with signature)
DATA_DESCRIPTOR_SIZE = 16

# External file attribute sentinels: a Unix mode in the high 16 bits.
#   0o100755 << 16: regular file, rwxr-xr-x
#   0o120755 << 16: symbolic link, rwxr-xr-x
ATTR_PLAIN = 0
ATTR_EXECUTABLE = 0x81ED0000
ATTR_SYMLINK = 0xA1ED0000

# Unix mode bits looked at when decoding attributes written by other tools
S_IFMT = 0o170000
S_IFLNK = 0o120000
S_IFDIR = 0o040000
S_IXANY = 0o111
