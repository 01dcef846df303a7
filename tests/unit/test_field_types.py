from __future__ import annotations

import pytest

from lead_import.services.field_types import DATE, NUMBER, TEXT, TEXTAREA, URL, detect_field_type


@pytest.mark.parametrize(
    "samples,expected",
    [
        (["1", "2.5", "300", "-4"], NUMBER),
        (["2024-01-02", "2024-02-03", "12/31/2023"], DATE),
        (["https://a.io", "http://b.io", "https://c.io"], URL),
        (["x" * 101, "short", "short"], TEXTAREA),
        (["red", "green", "blue"], TEXT),
        (["1", "2"], TEXT),  # too few samples
        (["", " ", "1", "2"], TEXT),  # blanks are not samples
    ],
)
def test_detect_field_type(samples, expected):
    assert detect_field_type(samples) == expected


def test_majority_threshold():
    # 4 of 5 numeric = 80%
    assert detect_field_type(["1", "2", "3", "4", "n/a"]) == NUMBER
    # 3 of 5 is not enough
    assert detect_field_type(["1", "2", "3", "x", "y"]) == TEXT


def test_nan_and_inf_are_not_numbers():
    assert detect_field_type(["nan", "inf", "-inf"]) == TEXT
