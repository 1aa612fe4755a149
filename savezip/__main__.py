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
Command-line interface for SAVEZIP (``savezip``).

Supported commands (via ``python -m savezip``):

- ``compress``   : Compress a folder into an archive
- ``decompress`` : Extract an archive into a folder
- ``list``       : List entries in an archive
- ``inspect``    : Show the archive structure and check its offsets

Example usages:

    # Compress ./saves into saves.zip, leaving out cache folders
    python -m savezip compress saves saves.zip --ignore cache

    # Extract into ./restored, relocating "saves/" to "slot1/"
    python -m savezip decompress saves.zip restored --remap saves/=slot1/

All paths are relative to ``--root`` (the current directory by default).
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from . import Archive, __version__
from .collaborators import LocalFileSystem
from .constants import DEFAULT_COMPRESSION_LEVEL, METHOD_TO_NAME
from .debug import describe_archive, hex_dump, verify_archive
from .errors import ZipError
from .reader import ZipReader


def _print_error(message: str, exit_code: int = 1) -> None:
    """Print an error message to stderr and exit with the given code."""
    sys.stderr.write(f"savezip: {message}\n")
    sys.exit(exit_code)


def _parse_remap(pairs: Optional[List[str]]) -> List[tuple[str, str]]:
    remapping = []
    for pair in pairs or []:
        if "=" not in pair:
            _print_error(f"invalid --remap value '{pair}' (expected FROM=TO)", 2)
        search, replace = pair.split("=", 1)
        remapping.append((search, replace))
    return remapping


def _read_archive(root: Path, path: str) -> ZipReader:
    try:
        return ZipReader(LocalFileSystem(str(root)).read(path))
    except ZipError as e:
        _print_error(str(e))


def _cmd_compress(root: Path, source: str, output: str, ignore: List[str], level: int, verbose: bool) -> None:
    archive = Archive(root=str(root), verbose=verbose, compression_level=level)
    ok, err = archive.compress(source, output, ignore)
    if not ok:
        _print_error(f"compress failed: {err}")


def _cmd_decompress(root: Path, archive_path: str, output: str, remap: List[str], verbose: bool) -> None:
    archive = Archive(root=str(root), verbose=verbose)
    ok, err = archive.decompress(archive_path, output, _parse_remap(remap))
    if not ok:
        _print_error(f"decompress failed: {err}")
    for warning in archive.warnings:
        sys.stderr.write(f"savezip: warning: {warning}\n")


def _cmd_list(root: Path, archive_path: str) -> None:
    reader = _read_archive(root, archive_path)
    for entry in reader.entries:
        method = METHOD_TO_NAME.get(entry.compression_method, str(entry.compression_method))
        flag = "x" if entry.executable else "-"
        kind = entry.kind.value
        line = f"{kind:<9} {flag} {entry.uncompressed_size:>10} {method:<8} {entry.name}"
        if entry.is_symlink:
            line += f" -> {entry.raw_content.decode('utf-8', errors='replace')}"
        print(line)


def _cmd_inspect(root: Path, archive_path: str, hex_bytes: Optional[int], hex_start: int) -> None:
    try:
        data = LocalFileSystem(str(root)).read(archive_path)
        print(describe_archive(data))
    except ZipError as e:
        _print_error(str(e))
    if hex_bytes:
        print()
        print(hex_dump(data, start=hex_start, length=hex_bytes))
    valid, errors = verify_archive(data)
    if valid:
        print("\nStructure OK")
        return
    for error in errors:
        print(f"  ! {error}")
    sys.exit(1)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="savezip", description="ZIP codec for save data")
    parser.add_argument("--version", action="version", version=f"savezip {__version__}")
    parser.add_argument("--root", type=Path, default=Path("."), help="directory all paths are relative to")
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true", help="log every entry")
    verbosity.add_argument("-q", "--quiet", action="store_true", help="only log warnings and errors")

    sub = parser.add_subparsers(dest="command", required=True)

    p_compress = sub.add_parser("compress", help="compress a folder into an archive")
    p_compress.add_argument("source", help="folder to compress")
    p_compress.add_argument("output", help="archive to create")
    p_compress.add_argument("--ignore", action="append", default=[], metavar="NAME", help="item name to leave out (repeatable)")
    p_compress.add_argument("--level", type=int, default=DEFAULT_COMPRESSION_LEVEL, choices=range(10), metavar="0-9", help="deflate level")

    p_decompress = sub.add_parser("decompress", help="extract an archive into a folder")
    p_decompress.add_argument("archive", help="archive to extract")
    p_decompress.add_argument("output", nargs="?", default="", help="destination folder")
    p_decompress.add_argument("--remap", action="append", default=[], metavar="FROM=TO", help="rename entries by substring (repeatable, applied in order)")

    p_list = sub.add_parser("list", help="list entries in an archive")
    p_list.add_argument("archive")

    p_inspect = sub.add_parser("inspect", help="show archive structure and verify offsets")
    p_inspect.add_argument("archive")
    p_inspect.add_argument("--hex", type=int, metavar="BYTES", help="also hex-dump BYTES bytes of the archive")
    p_inspect.add_argument("--at", type=int, default=0, metavar="OFFSET", help="start the hex dump at OFFSET")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)

    level = logging.INFO
    if args.verbose:
        level = logging.DEBUG
    elif args.quiet:
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(name)s > %(levelname)s: %(message)s")

    if args.command == "compress":
        _cmd_compress(args.root, args.source, args.output, args.ignore, args.level, args.verbose)
    elif args.command == "decompress":
        _cmd_decompress(args.root, args.archive, args.output, args.remap, args.verbose)
    elif args.command == "list":
        _cmd_list(args.root, args.archive)
    elif args.command == "inspect":
        _cmd_inspect(args.root, args.archive, args.hex, args.at)
    return 0


if __name__ == "__main__":
    sys.exit(main())
