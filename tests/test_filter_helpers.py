from filter_helpers import (
    blank_to_none,
    normalize_available,
    normalize_limit,
    normalize_offset,
    normalize_order,
    normalize_sort,
)


def test_blank_to_none():
    assert blank_to_none("") is None
    assert blank_to_none(None) is None
    assert blank_to_none("x") == "x"


def test_normalize_available():
    assert normalize_available("true") is True
    assert normalize_available("available") is True
    assert normalize_available("false") is False
    assert normalize_available(" Borrowed ") is False
    assert normalize_available("maybe") is None
    assert normalize_available(None) is None


def test_normalize_sort_and_order():
    assert normalize_sort("location") == "location"
    assert normalize_sort("password_hash") == "name"
    assert normalize_order("desc") == "desc"
    assert normalize_order("sideways") == "asc"


def test_normalize_limit_and_offset():
    assert normalize_limit(0) == 1
    assert normalize_limit(10_000) == 500
    assert normalize_limit(25) == 25
    assert normalize_offset(-5) == 0
    assert normalize_offset(5) == 5
