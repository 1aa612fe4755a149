import struct

import pytest

from savezip.constants import (
    CENTRAL_DIR_HEADER,
    DATA_DESCRIPTOR,
    END_OF_CENTRAL_DIR,
    LOCAL_FILE_HEADER,
)
from savezip.errors import ZipFormatError
from savezip.structures import (
    CentralDirectoryHeader,
    DataDescriptor,
    EndOfCentralDirectory,
    LocalFileHeader,
    parse_central_directory_header,
    parse_eocd,
    parse_local_file_header,
)

pytestmark = pytest.mark.unit


def _local_header(name: bytes = b"a.txt") -> LocalFileHeader:
    return LocalFileHeader(
        version=20,
        flags=0x0808,
        compression_method=8,
        mod_time=0x6A3C,
        mod_date=0x5721,
        crc32=0xDEADBEEF,
        compressed_size=4,
        uncompressed_size=2,
        filename=name,
    )


def test_local_header_layout():
    raw = _local_header().to_bytes()
    assert len(raw) == 30 + 5
    assert struct.unpack_from("<I", raw, 0)[0] == LOCAL_FILE_HEADER
    assert struct.unpack_from("<H", raw, 8)[0] == 8
    assert struct.unpack_from("<I", raw, 14)[0] == 0xDEADBEEF
    assert struct.unpack_from("<HH", raw, 26) == (5, 0)
    assert raw[30:] == b"a.txt"


def test_data_descriptor_layout():
    raw = DataDescriptor(crc32=1, compressed_size=2, uncompressed_size=3).to_bytes()
    assert raw == struct.pack("<IIII", DATA_DESCRIPTOR, 1, 2, 3)


def test_central_directory_layout():
    header = CentralDirectoryHeader(
        version_made_by=0x0314,
        version=20,
        flags=0,
        compression_method=0,
        mod_time=0,
        mod_date=0x21,
        crc32=7,
        compressed_size=5,
        uncompressed_size=5,
        external_attrs=0xA1ED0000,
        local_header_offset=1234,
        filename=b"link",
    )
    raw = header.to_bytes()
    assert len(raw) == header.size == 46 + 4
    assert struct.unpack_from("<I", raw, 0)[0] == CENTRAL_DIR_HEADER
    assert struct.unpack_from("<HHHHH", raw, 28) == (4, 0, 0, 0, 0)
    assert struct.unpack_from("<II", raw, 38) == (0xA1ED0000, 1234)
    assert parse_central_directory_header(b"junk" + raw, 4) == header


def test_end_record_layout():
    raw = EndOfCentralDirectory(
        cd_records_on_disk=3, cd_records_total=3, cd_size=150, cd_offset=900
    ).to_bytes()
    assert raw == struct.pack("<IHHHHIIH", END_OF_CENTRAL_DIR, 0, 0, 3, 3, 150, 900, 0)


def test_parse_local_header_at_offset():
    raw = b"\x00" * 7 + _local_header(b"dir/file").to_bytes()
    header = parse_local_file_header(raw, 7)
    assert header.filename == b"dir/file"
    assert header.size == 38


def test_wrong_signature_is_rejected():
    raw = bytearray(_local_header().to_bytes())
    raw[2] = 0x01
    with pytest.raises(ZipFormatError, match="signature"):
        parse_local_file_header(bytes(raw), 0)


def test_truncated_record_is_rejected():
    raw = _local_header(b"long-name.txt").to_bytes()[:-3]
    with pytest.raises(ZipFormatError):
        parse_local_file_header(raw, 0)


def test_end_record_comment_is_read():
    raw = struct.pack("<IHHHHIIH", END_OF_CENTRAL_DIR, 0, 0, 0, 0, 0, 0, 5) + b"hello"
    assert parse_eocd(raw, 0).comment == b"hello"
