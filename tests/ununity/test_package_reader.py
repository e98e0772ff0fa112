import io
import logging
import pathlib

import pytest

from tests.create_packages import (
    Record,
    asset,
    corrupt_package,
    create_cut_package,
    create_package,
    create_package_bytes,
    directory,
    pathname,
    random_bytes,
    truncate_package,
)
from tests.ununity.sample_packages import ROCK_DATA, ROCK_META
from ununity import extract_package
from ununity.config import UnunityConfig
from ununity.exceptions import ArchiveEOFError, FormatError, InputError
from ununity.package_reader import classify_entry, open_package
from ununity.types import EntryKind

logger = logging.getLogger(__name__)


@pytest.mark.parametrize(
    "name, size, expected",
    [
        ("0a1b/asset", 10, ("0a1b", EntryKind.CONTENT)),
        ("0a1b/asset.meta", 10, ("0a1b", EntryKind.META_CONTENT)),
        ("0a1b/pathname", 10, ("0a1b", EntryKind.PATH_NAME)),
        ("./0a1b/asset", 10, ("0a1b", EntryKind.CONTENT)),
        ("0a1b/preview.png", 10, ("0a1b", EntryKind.OTHER)),
        ("0a1b/asset", 0, ("0a1b", EntryKind.OTHER)),
        ("0a1b/", 0, ("0a1b", EntryKind.OTHER)),
        ("0a1b", 0, ("0a1b", EntryKind.OTHER)),
        ("asset", 10, ("asset", EntryKind.OTHER)),
        ("asset/asset", 10, ("asset", EntryKind.OTHER)),
    ],
)
def test_classify_entry(name: str, size: int, expected: tuple[str, EntryKind]):
    assert classify_entry(name, size) == expected


def test_iter_entries(sample_package_path: str):
    with open_package(sample_package_path) as package:
        seen = []
        for entry in package.iter_entries():
            data = entry.payload.read() if entry.payload is not None else None
            seen.append((entry.identifier, entry.kind, entry.size, data))

    assert seen[0] == ("0a1b", EntryKind.OTHER, 0, None)
    assert seen[1] == (
        "0a1b",
        EntryKind.PATH_NAME,
        len(b"Assets/Textures/Rock.png\n"),
        b"Assets/Textures/Rock.png\n",
    )
    assert seen[2] == ("0a1b", EntryKind.CONTENT, 1024, ROCK_DATA)
    assert seen[3] == ("0a1b", EntryKind.META_CONTENT, len(ROCK_META), ROCK_META)
    assert [kind for _, kind, _, _ in seen].count(EntryKind.OTHER) == 3
    assert len(seen) == 11


def test_unread_payloads_are_skipped(sample_package_path: str):
    with open_package(sample_package_path) as package:
        identifiers = [entry.identifier for entry in package.iter_entries()]

    assert identifiers.count("2c3d") == 4


def test_partially_read_payload(tmp_path: pathlib.Path):
    path = create_package(
        tmp_path / "p.unitypackage",
        [asset("a", random_bytes(50000)), asset("b", b"second")],
    )
    with open_package(path) as package:
        entries = package.iter_entries()
        first = next(entries)
        assert len(first.payload.read(100)) == 100
        second = next(entries)
        assert second.payload.read() == b"second"


def test_open_file_object(sample_package_records):
    stream = io.BytesIO(create_package_bytes(sample_package_records))

    with open_package(stream) as package:
        kinds = [entry.kind for entry in package.iter_entries()]

    assert kinds.count(EntryKind.CONTENT) == 2
    assert not stream.closed


def test_non_regular_records_are_other(tmp_path: pathlib.Path):
    path = create_package(
        tmp_path / "p.unitypackage",
        [directory("abc"), Record("abc/asset/", None)],
    )
    with open_package(path) as package:
        entries = list(package.iter_entries())

    assert [e.kind for e in entries] == [EntryKind.OTHER, EntryKind.OTHER]
    assert all(e.payload is None for e in entries)


def test_not_gzip(tmp_path: pathlib.Path):
    path = tmp_path / "plain.unitypackage"
    path.write_bytes(b"this is not a gzip stream at all")

    with pytest.raises(FormatError):
        with open_package(str(path)) as package:
            list(package.iter_entries())


def test_empty_file(tmp_path: pathlib.Path):
    path = tmp_path / "empty.unitypackage"
    path.write_bytes(b"")

    with pytest.raises(FormatError):
        with open_package(str(path)) as package:
            list(package.iter_entries())


def test_missing_file(tmp_path: pathlib.Path):
    with pytest.raises(InputError):
        open_package(str(tmp_path / "missing.unitypackage"))


def test_truncated_package(large_package_path: str, tmp_path: pathlib.Path):
    truncated = tmp_path / "truncated.unitypackage"
    truncate_package(pathlib.Path(large_package_path), truncated)

    with pytest.raises(ArchiveEOFError):
        with open_package(str(truncated)) as package:
            for entry in package.iter_entries():
                if entry.payload is not None:
                    entry.payload.read()


def test_corrupted_package(large_package_path: str, tmp_path: pathlib.Path):
    corrupted = tmp_path / "corrupted.unitypackage"
    corrupt_package(pathlib.Path(large_package_path), corrupted)

    with pytest.raises(FormatError):
        with open_package(str(corrupted)) as package:
            for entry in package.iter_entries():
                if entry.payload is not None:
                    entry.payload.read()


def _two_asset_records() -> list[Record]:
    # Each record takes one header block and one data block.
    return [
        pathname("a", "A.txt"),
        asset("a", b"A"),
        pathname("b", "B.txt"),
        asset("b", b"B"),
    ]


@pytest.mark.parametrize(
    "cut_at",
    [2048 + 300, 2048, 2048 + 512 + 100],
    ids=["mid_header", "at_header", "mid_data"],
)
@pytest.mark.parametrize("check_integrity", [True, False])
def test_tar_cut_inside_valid_gzip(
    tmp_path: pathlib.Path, cut_at: int, check_integrity: bool
):
    path = create_cut_package(
        tmp_path / "cut.unitypackage", _two_asset_records(), cut_at
    )
    config = UnunityConfig(check_integrity=check_integrity)

    with pytest.raises(ArchiveEOFError):
        with open_package(path, config=config) as package:
            for entry in package.iter_entries():
                if entry.payload is not None:
                    entry.payload.read()


def test_tar_cut_mid_header_fails_extraction(tmp_path: pathlib.Path):
    path = create_cut_package(
        tmp_path / "cut.unitypackage", _two_asset_records(), 2048 + 300
    )

    with pytest.raises(FormatError):
        extract_package(path, tmp_path / "out")

    # Records before the cut were already written.
    assert (tmp_path / "out" / "A.txt").read_bytes() == b"A"


def test_missing_end_of_archive_block(tmp_path: pathlib.Path):
    # The last record is complete but only one of the two zero blocks follows.
    path = create_cut_package(
        tmp_path / "cut.unitypackage", _two_asset_records(), 4096 + 512
    )

    with pytest.raises(ArchiveEOFError):
        with open_package(path) as package:
            list(package.iter_entries())

    config = UnunityConfig(check_integrity=False)
    with open_package(path, config=config) as package:
        assert len(list(package.iter_entries())) == 4


def test_trailing_garbage_detected_by_integrity_check(
    sample_package_records, tmp_path: pathlib.Path
):
    path = tmp_path / "garbage.unitypackage"
    path.write_bytes(create_package_bytes(sample_package_records) + b"garbage!")

    with pytest.raises(FormatError):
        with open_package(str(path)) as package:
            list(package.iter_entries())

    config = UnunityConfig(check_integrity=False)
    with open_package(str(path), config=config) as package:
        assert len(list(package.iter_entries())) == 11


@pytest.mark.parametrize("copy_buffer_size", [1, 7, 1 << 20])
def test_integrity_check_with_buffer_size(
    sample_package_records, tmp_path: pathlib.Path, copy_buffer_size: int
):
    good = tmp_path / "good.unitypackage"
    good.write_bytes(create_package_bytes(sample_package_records))
    bad = tmp_path / "garbage.unitypackage"
    bad.write_bytes(good.read_bytes() + b"garbage!")
    config = UnunityConfig(copy_buffer_size=copy_buffer_size)

    with open_package(str(good), config=config) as package:
        assert len(list(package.iter_entries())) == 11

    with pytest.raises(FormatError):
        with open_package(str(bad), config=config) as package:
            list(package.iter_entries())


def test_closed_package(sample_package_path: str):
    package = open_package(sample_package_path)
    package.close()

    with pytest.raises(ValueError):
        list(package.iter_entries())


def test_rapidgzip(sample_package_path: str):
    pytest.importorskip("rapidgzip")

    config = UnunityConfig(use_rapidgzip=True)
    with open_package(sample_package_path, config=config) as package:
        contents = {
            (entry.identifier, entry.kind): entry.payload.read()
            for entry in package.iter_entries()
            if entry.payload is not None
        }

    assert contents[("0a1b", EntryKind.CONTENT)] == ROCK_DATA
