import pytest

from ssrs_admin.paths import is_root, join_path, normalize_path, split_path


@pytest.mark.parametrize("raw, expected", [
    ("/Sales/Revenue", "/Sales/Revenue"),
    ("Sales\\Revenue", "/Sales/Revenue"),
    ("\\Sales\\Revenue\\", "/Sales/Revenue"),
    ("//Sales///Revenue/", "/Sales/Revenue"),
    ("  /Sales  ", "/Sales"),
    ("", "/"),
    ("/", "/"),
    (None, "/"),
])
def test_normalize_path(raw, expected):
    assert normalize_path(raw) == expected


def test_normalize_keeps_spaces_inside_names():
    assert normalize_path("/Data Sources/Sales DW") == "/Data Sources/Sales DW"


def test_split_path():
    assert split_path("/a/b/c") == ("/a/b", "c")
    assert split_path("/c") == ("/", "c")
    assert split_path("/") == ("/", "")
    assert split_path("a\\b") == ("/a", "b")


def test_join_path():
    assert join_path("/", "Sales") == "/Sales"
    assert join_path("Sales\\", "Revenue") == "/Sales/Revenue"
    assert join_path("/Sales/", "/Revenue") == "/Sales/Revenue"


def test_is_root():
    assert is_root("\\")
    assert not is_root("/Sales")
