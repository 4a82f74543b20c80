from __future__ import annotations

import allure
import pytest

from lp_batch import paths

pytestmark = [
    allure.epic("Batch Runs"),
    allure.feature("Manifest Resolution"),
]


@pytest.mark.parametrize(
    ("path", "expected"),
    [
        ("/x", True),
        ("\\\\server\\share", True),
        ("C:\\x", True),
        ("c:/x", True),
        ("rel/x", False),
        ("x", False),
        ("", False),
        ("1:/x", False),
    ],
)
def test_is_absolute(path: str, expected: bool) -> None:
    assert paths.is_absolute(path) is expected


def test_join_inserts_exactly_one_separator() -> None:
    assert paths.join("/data", "a.mps") == "/data/a.mps"
    assert paths.join("/data/", "a.mps") == "/data/a.mps"
    assert paths.join("C:\\data\\", "a.mps") == "C:\\data\\a.mps"


def test_join_with_empty_side_returns_other_side() -> None:
    assert paths.join("", "a.mps") == "a.mps"
    assert paths.join("/data", "") == "/data"


def test_resolve_keeps_absolute_leaf() -> None:
    assert paths.resolve("/data", "/other/a.mps") == "/other/a.mps"
    assert paths.resolve("/data", "sub/a.mps") == "/data/sub/a.mps"


def test_directory_of() -> None:
    assert paths.directory_of("/srv/lists/datasets.txt") == "/srv/lists"
    assert paths.directory_of("lists\\datasets.txt") == "lists"
    assert paths.directory_of("datasets.txt") == "."
    assert paths.directory_of("/datasets.txt") == "/"


def test_instance_name_drops_directories_and_all_extensions() -> None:
    assert paths.instance_name("/data/netlib/afiro.mps.gz") == "afiro"
    assert paths.instance_name("C:\\data\\qap15.mps") == "qap15"
    assert paths.instance_name("plain") == "plain"
