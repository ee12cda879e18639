"""Tests for list paging and sort parsing."""

from orders.order.repository import clamp_page, parse_sort


class TestClampPage:
    def test_defaults(self):
        assert clamp_page(None, None) == (1, 25)

    def test_zero_size_becomes_one(self):
        assert clamp_page(1, 0) == (1, 1)

    def test_bounds(self):
        assert clamp_page(-3, 10_000) == (1, 200)


class TestParseSort:
    def test_no_sort_is_newest_first(self):
        assert parse_sort(None) == "-created_at"

    def test_field_without_direction_is_ascending(self):
        assert parse_sort("status") == "status"

    def test_explicit_direction(self):
        assert parse_sort("reference:desc") == "-reference"
        assert parse_sort("reference:ASC") == "reference"

    def test_unknown_field_keeps_direction(self):
        assert parse_sort("bogus:desc") == "-created_at"
        assert parse_sort("bogus:asc") == "created_at"
