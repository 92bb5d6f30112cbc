"""Tests for the location string codec."""

import pytest

from codemarks.errors import LocationParseError
from codemarks.location import (
    Location,
    adjust_location,
    format_location,
    locations_overlap,
    normalize_path,
    parse_location,
)


class TestParse:
    def test_single_line(self):
        loc = parse_location("src/main.go:45")
        assert loc == Location("src/main.go", 45, 45, is_range=False)

    def test_range(self):
        loc = parse_location("src/a.ts:5-9")
        assert loc.file_path == "src/a.ts"
        assert loc.start_line == 5
        assert loc.end_line == 9
        assert loc.is_range

    def test_splits_on_last_colon(self):
        loc = parse_location("C:/work/app.py:12")
        assert loc.file_path == "C:/work/app.py"
        assert loc.start_line == 12

    def test_no_colon(self):
        with pytest.raises(LocationParseError):
            parse_location("src/main.go")

    def test_bad_line(self):
        with pytest.raises(LocationParseError):
            parse_location("src/main.go:abc")

    def test_bad_range(self):
        with pytest.raises(LocationParseError):
            parse_location("src/main.go:3-x")

    def test_parse_error_is_value_error(self):
        with pytest.raises(ValueError):
            parse_location("nope")


class TestFormat:
    @pytest.mark.parametrize("text", ["a.go:10", "src/a.ts:5-9", "C:/x/y.py:1"])
    def test_inverse_of_parse(self, text: str):
        assert format_location(parse_location(text)) == text

    def test_collapsed_range(self):
        assert format_location(Location("a.go", 7, 7, is_range=True)) == "a.go:7"

    def test_parsed_single_line_range_collapses(self):
        assert format_location(parse_location("a.go:5-5")) == "a.go:5"


class TestAdjust:
    def test_edit_after_range_unchanged(self):
        loc = Location("a.go", 10, 12, True)
        assert adjust_location(loc, 13, 5) == loc

    def test_edit_before_shifts_both(self):
        loc = Location("a.go", 20, 20)
        assert adjust_location(loc, 5, 3) == Location("a.go", 23, 23)

    def test_edit_at_start_shifts_both(self):
        loc = Location("a.go", 10, 14, True)
        assert adjust_location(loc, 10, -2) == Location("a.go", 8, 12, True)

    def test_shift_floored_at_one(self):
        loc = Location("a.go", 3, 4, True)
        assert adjust_location(loc, 1, -10) == Location("a.go", 1, 1, True)

    def test_edit_inside_moves_end_only(self):
        loc = Location("a.go", 10, 20, True)
        assert adjust_location(loc, 15, 4) == Location("a.go", 10, 24, True)

    def test_edit_inside_end_floored_at_start(self):
        loc = Location("a.go", 10, 20, True)
        assert adjust_location(loc, 12, -50) == Location("a.go", 10, 10, True)


class TestHelpers:
    def test_normalize_backslashes(self):
        assert normalize_path("src\\pkg\\a.py:3") == "src/pkg/a.py:3"

    def test_normalize_strips_workspace_root(self):
        assert normalize_path("/home/me/proj/src/a.py", "/home/me/proj") == "src/a.py"

    def test_normalize_other_root_untouched(self):
        assert normalize_path("/tmp/x.py", "/home/me/proj") == "/tmp/x.py"

    def test_normalize_sibling_directory_untouched(self):
        assert normalize_path("/home/me/proj2/x.go", "/home/me/proj") == "/home/me/proj2/x.go"

    def test_normalize_root_with_trailing_slash(self):
        assert normalize_path("/home/me/proj/src/a.py", "/home/me/proj/") == "src/a.py"

    def test_overlap(self):
        assert locations_overlap(Location("a", 1, 5, True), Location("a", 5, 9, True))
        assert not locations_overlap(Location("a", 1, 4, True), Location("a", 5, 9, True))
        assert not locations_overlap(Location("a", 1, 5, True), Location("b", 1, 5, True))
