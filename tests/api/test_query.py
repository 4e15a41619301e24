"""
Tests for query parameter parsing.
"""

import pytest

from api.query import book_filter_params, coerce_int, pagination_params


@pytest.mark.parametrize("value,expected", [
    (None, 1),
    ("", 1),
    ("abc", 1),
    ("2.5", 1),
    ("3", 3),
    (" 7 ", 7),
    ("10abc", 1),
    ("0", 0),
    ("1000000000000000000", 10**18),
])
def test_coerce_int(value, expected):
    assert coerce_int(value, 1) == expected


def test_out_of_range_values_pass_through():
    """Range checks belong to the stores."""
    params = pagination_params(page="0", limit="-5")

    assert params.page == 0
    assert params.limit == -5


def test_pagination_defaults():
    params = pagination_params(page=None, limit=None)

    assert params.page == 1
    assert params.limit == 10


def test_blank_filters_are_absent():
    params = book_filter_params(author="  ", genre="Fantasy")

    assert params.author is None
    assert params.genre == "Fantasy"
