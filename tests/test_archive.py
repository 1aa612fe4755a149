import io
import os
import stat
import zipfile

import pytest

from savezip import Archive
from savezip.attributes import EntryKind
from savezip.collaborators import LocalFileSystem, NativePlatform
from savezip.debug import verify_archive
from savezip.errors import (
    ZipArchiveNotFound,
    ZipCompressionError,
    ZipFormatError,
    ZipSourceNotFound,
    ZipWriteError,
)
from savezip.reader import ZipReader
from savezip.writer import ZipWriter

pytestmark = pytest.mark.integration


def _snapshot(folder):
    """Map of relative path -> bytes / 'dir' / ('link', target), not following links."""
    result = {}
    for dirpath, dirnames, filenames in os.walk(folder):
        for name in dirnames + filenames:
            full = os.path.join(dirpath, name)
            rel = os.path.relpath(full, folder).replace(os.sep, "/")
            if os.path.islink(full):
                result[rel] = ("link", os.readlink(full))
            elif os.path.isdir(full):
                result[rel] = "dir"
            else:
                with open(full, "rb") as f:
                    result[rel] = f.read()
    return result


@pytest.mark.requires_symlinks
def test_end_to_end_file_folder_and_symlink(save_tree):
    ok, err = Archive(root=str(save_tree)).compress("src", "out.zip")
    assert (ok, err) == (True, None)

    ok, err = Archive(root=str(save_tree)).decompress("out.zip", "dst")
    assert (ok, err) == (True, None)

    dst = save_tree / "dst"
    assert (dst / "a.txt").read_bytes() == b"hi"
    assert (dst / "sub").is_dir()
    assert list((dst / "sub").iterdir()) == []
    assert os.readlink(dst / "link") == "a.txt"
    assert (dst / "link").read_bytes() == b"hi"


def test_ignore_list_omits_items(tmp_path):
    src = tmp_path / "src"
    (src / "nested").mkdir(parents=True)
    (src / "keep.txt").write_bytes(b"keep")
    (src / "skip.txt").write_bytes(b"skip")
    (src / "nested" / "skip.txt").write_bytes(b"skip")

    ok, _ = Archive(root=str(tmp_path)).compress("src", "out.zip", ignore=["skip.txt"])
    assert ok

    reader = ZipReader((tmp_path / "out.zip").read_bytes())
    assert reader.list() == ["keep.txt", "nested/"]


@pytest.mark.requires_symlinks
def test_round_trip_preserves_tree(tmp_path):
    src = tmp_path / "src"
    (src / "saves" / "slot1").mkdir(parents=True)
    (src / "empty" / "deeper").mkdir(parents=True)
    (src / "saves" / "slot1" / "state.json").write_text('{"level": 3}')
    (src / "saves" / "blob.bin").write_bytes(os.urandom(4096))
    (src / "notes.txt").write_bytes(b"")
    os.symlink("slot1/state.json", src / "saves" / "current")
    os.symlink("saves", src / "saves-link")
    os.symlink(str(src / "notes.txt"), src / "saves" / "absolute")

    ok, err = Archive(root=str(tmp_path)).compress("src", "tree.zip")
    assert ok, err
    assert verify_archive((tmp_path / "tree.zip").read_bytes()) == (True, [])

    ok, err = Archive(root=str(tmp_path)).decompress("tree.zip", "restored")
    assert ok, err

    expected = _snapshot(src)
    # Absolute targets are stored relative to the link's folder
    expected["saves/absolute"] = ("link", "../notes.txt")
    assert _snapshot(tmp_path / "restored") == expected
    assert (tmp_path / "restored" / "saves" / "current").read_text() == '{"level": 3}'


@pytest.mark.requires_posix_modes
def test_extensionless_files_become_executable(tmp_path):
    src = tmp_path / "src"
    src.mkdir()
    (src / "launch").write_bytes(b"#!/bin/sh\necho hi\n")
    (src / "data.txt").write_bytes(b"plain")

    assert Archive(root=str(tmp_path)).compress("src", "out.zip") == (True, None)
    assert Archive(root=str(tmp_path)).decompress("out.zip", "dst") == (True, None)

    assert os.stat(tmp_path / "dst" / "launch").st_mode & stat.S_IXUSR
    assert not os.stat(tmp_path / "dst" / "data.txt").st_mode & stat.S_IXUSR


def test_missing_archive_fails_without_raising(tmp_path):
    ok, err = Archive(root=str(tmp_path)).decompress("nope.zip", "dst")
    assert not ok
    assert isinstance(err, ZipSourceNotFound)
    assert isinstance(err, ZipArchiveNotFound)


def test_malformed_archive_fails_without_raising(tmp_path):
    (tmp_path / "bad.zip").write_bytes(b"this is not a zip")
    ok, err = Archive(root=str(tmp_path)).decompress("bad.zip", "dst")
    assert not ok
    assert isinstance(err, ZipFormatError)


def test_missing_source_folder_fails(tmp_path):
    ok, err = Archive(root=str(tmp_path)).compress("missing", "out.zip")
    assert not ok
    assert isinstance(err, ZipSourceNotFound)
    assert not (tmp_path / "out.zip").exists()


def test_unwritable_output_fails(tmp_path):
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "a.txt").write_bytes(b"hi")
    ok, err = Archive(root=str(tmp_path)).compress("src", "no/such/dir/out.zip")
    assert not ok
    assert isinstance(err, ZipWriteError)


def test_manual_assembly(tmp_path):
    (tmp_path / "examples" / "saves").mkdir(parents=True)
    (tmp_path / "examples" / "saves" / "save1.sav").write_bytes(b"slot one")
    (tmp_path / "plugin").mkdir()
    (tmp_path / "plugin" / "init.lua").write_bytes(b"return {}")

    archive = Archive(root=str(tmp_path))
    assert archive.add_file("examples/saves/save1.sav", "subdir/save1.sav") == (True, None)
    assert archive.add_folder("plugin") == (True, None)
    assert archive.finish("specific.zip") == (True, None)

    with zipfile.ZipFile(io.BytesIO((tmp_path / "specific.zip").read_bytes())) as z:
        assert z.namelist() == ["subdir/save1.sav", "init.lua"]
        assert z.read("subdir/save1.sav") == b"slot one"


def test_finish_requires_a_path(tmp_path):
    ok, err = Archive(root=str(tmp_path)).finish()
    assert not ok
    assert isinstance(err, ZipWriteError)


def test_finish_is_terminal(tmp_path):
    archive = Archive(root=str(tmp_path))
    assert archive.finish("one.zip") == (True, None)
    ok, err = archive.finish("two.zip")
    assert not ok
    assert isinstance(err, ZipFormatError)
    ok, err = archive.add_folder(".")
    assert not ok
    assert not (tmp_path / "two.zip").exists()


def test_add_file_missing_source(tmp_path):
    ok, err = Archive(root=str(tmp_path)).add_file("ghost.txt")
    assert not ok
    assert isinstance(err, ZipSourceNotFound)


def test_compression_failures_are_reported_but_archive_is_written(tmp_path, failing_compressor):
    src = tmp_path / "src"
    src.mkdir()
    (src / "good.txt").write_bytes(b"good")
    (src / "bad.txt").write_bytes(b"BROKEN")

    archive = Archive(root=str(tmp_path), compressor=failing_compressor)
    ok, err = archive.compress("src", "out.zip")

    assert not ok
    assert isinstance(err, ZipCompressionError)
    assert ZipReader((tmp_path / "out.zip").read_bytes()).list() == ["good.txt"]


def test_decompress_with_remapping(tmp_path):
    (tmp_path / "src" / "mods").mkdir(parents=True)
    (tmp_path / "src" / "mods" / "nei.lua").write_bytes(b"-- mod")
    assert Archive(root=str(tmp_path)).compress("src", "mods.zip") == (True, None)

    archive = Archive(root=str(tmp_path))
    ok, _ = archive.decompress("mods.zip", "out/", [("mods/", "plugins/")])
    assert ok
    assert (tmp_path / "out" / "plugins" / "nei.lua").read_bytes() == b"-- mod"
    assert archive.report.files == 1


def test_partial_extraction_is_reported(tmp_path):
    writer = ZipWriter()
    writer.add_entry("../outside.txt", b"nope")
    writer.add_entry("inside.txt", b"yes")
    (tmp_path / "evil.zip").write_bytes(writer.finish())

    archive = Archive(root=str(tmp_path))
    assert archive.decompress("evil.zip", "dst") == (True, None)
    assert [w.name for w in archive.warnings] == ["../outside.txt"]
    assert (tmp_path / "dst" / "inside.txt").read_bytes() == b"yes"
    assert not (tmp_path / "outside.txt").exists()


def test_verbose_logs_items_at_info(tmp_path, caplog):
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "a.txt").write_bytes(b"hi")
    caplog.set_level("INFO", logger="savezip")
    Archive(root=str(tmp_path), verbose=True).compress("src", "out.zip")
    assert 'adding itm: "a.txt"' in caplog.text


def test_decompress_entry_kinds_from_reader(tmp_path):
    (tmp_path / "src" / "d").mkdir(parents=True)
    assert Archive(root=str(tmp_path)).compress("src", "o.zip") == (True, None)
    reader = ZipReader((tmp_path / "o.zip").read_bytes())
    assert reader.entries[0].kind is EntryKind.DIRECTORY


def test_nul_byte_in_entry_name_becomes_a_warning(tmp_path):
    writer = ZipWriter()
    writer.add_entry("good.txt", b"good")
    writer.add_entry("bad_name.txt", b"bad")
    data = writer.finish().replace(b"bad_name.txt", b"bad\x00name.txt")
    (tmp_path / "evil.zip").write_bytes(data)

    archive = Archive(root=str(tmp_path))
    assert archive.decompress("evil.zip", "dst") == (True, None)
    assert [w.name for w in archive.warnings] == ["bad\x00name.txt"]
    assert (tmp_path / "dst" / "good.txt").read_bytes() == b"good"


def test_local_collaborators_wrap_invalid_paths(tmp_path):
    fs = LocalFileSystem(str(tmp_path))
    with pytest.raises(ZipWriteError):
        fs.write("bad\x00name.txt", b"data")
    with pytest.raises(ZipWriteError):
        fs.create_directory("bad\x00dir")
    with pytest.raises(ZipSourceNotFound):
        fs.read("bad\x00name.txt")
    assert fs.stat("bad\x00name.txt") is None
    with pytest.raises(ZipWriteError):
        NativePlatform(str(tmp_path)).create_symlink("a.txt", "bad\x00link")


@pytest.mark.requires_symlinks
def test_escaping_symlink_is_not_created(tmp_path):
    writer = ZipWriter()
    writer.add_entry("escape", b"../../../etc", EntryKind.SYMLINK)
    writer.add_entry("a.txt", b"hi")
    (tmp_path / "evil.zip").write_bytes(writer.finish())

    archive = Archive(root=str(tmp_path))
    assert archive.decompress("evil.zip", "dst") == (True, None)
    assert [w.name for w in archive.warnings] == ["escape"]
    assert not os.path.lexists(tmp_path / "dst" / "escape")
    assert (tmp_path / "dst" / "a.txt").read_bytes() == b"hi"
