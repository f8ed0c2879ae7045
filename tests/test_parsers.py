"""Tests for the phase-list and comma-list parsers."""

from __future__ import annotations

import numpy as np
import pytest

from allocation_qa.core.parsers import (
    as_number,
    format_phase_list,
    is_blank,
    join_phase_list,
    parse_comma_list,
    parse_phase_list,
    split_phase_list,
    strip_list_text,
)


class TestSplitPhaseList:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("[1,2,3]", [1, 2, 3]),
            ("1, 2, 3", [1, 2, 3]),
            (" [ 4 ,5 ] ", [4, 5]),
            ("2-5", [2, 3, 4, 5]),
            ("3-3", [3]),
            ("[2-4]", [2, 3, 4]),
        ],
    )
    def test_valid_forms(self, raw, expected):
        assert split_phase_list(raw) == (expected, [])

    @pytest.mark.parametrize("raw", [None, float("nan"), "", "   ", "[]"])
    def test_empty_values(self, raw):
        assert split_phase_list(raw) == ([], [])

    def test_empty_tokens_are_ignored(self):
        assert split_phase_list("1,,2") == ([1, 2], [])

    def test_bad_tokens_are_reported_and_dropped(self):
        assert split_phase_list("1,x,3") == ([1, 3], ["x"])

    def test_descending_range_is_not_a_range(self):
        phases, bad = split_phase_list("5-2")
        assert phases == []
        assert bad == ["5-2"]

    def test_range_with_comma_falls_back_to_comma_split(self):
        phases, bad = split_phase_list("1-3,5")
        assert phases == [5]
        assert bad == ["1-3"]


class TestFormatting:
    def test_format_is_bracketed(self):
        assert format_phase_list([1, 2, 3]) == "[1,2,3]"
        assert format_phase_list([]) == "[]"

    def test_join_has_no_brackets(self):
        assert join_phase_list([4, 5]) == "4,5"

    def test_parse_of_format_round_trips(self):
        phases = [1, 5, 9]
        assert parse_phase_list(format_phase_list(phases)) == phases

    def test_strip_list_text(self):
        assert strip_list_text(" [1, 2 ,3] ") == "1,2,3"
        assert strip_list_text(None) == ""


class TestCommaList:
    def test_tokens_are_trimmed_and_empties_dropped(self):
        assert parse_comma_list(" a, ,b ,") == ["a", "b"]

    def test_blank_is_empty(self):
        assert parse_comma_list(float("nan")) == []


class TestScalars:
    @pytest.mark.parametrize("value", [None, float("nan"), "", "  "])
    def test_blank(self, value):
        assert is_blank(value)

    @pytest.mark.parametrize("value", [0, "x", [1]])
    def test_not_blank(self, value):
        assert not is_blank(value)

    def test_as_number_accepts_numbers_only(self):
        assert as_number(3) == 3
        assert as_number(2.5) == 2.5
        assert as_number(np.int64(4)) == 4
        assert as_number("3") is None
        assert as_number(True) is None
        assert as_number(float("nan")) is None
