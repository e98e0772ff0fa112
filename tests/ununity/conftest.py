import pathlib

import pytest

from tests.create_packages import Record, asset, create_package, pathname
from tests.ununity.sample_packages import LARGE_DATA, sample_records


@pytest.fixture
def sample_package_records() -> list[Record]:
    return sample_records()


@pytest.fixture
def sample_package_path(
    tmp_path: pathlib.Path, sample_package_records: list[Record]
) -> str:
    return create_package(tmp_path / "Sample.unitypackage", sample_package_records)


@pytest.fixture
def large_package_path(tmp_path: pathlib.Path) -> str:
    return create_package(
        tmp_path / "Large.unitypackage",
        [
            asset("9999", LARGE_DATA),
            pathname("9999", "Assets/Large.bin"),
        ],
    )
