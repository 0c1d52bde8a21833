# tests/test_formatting.py

import pytest

from app.core.formatting import format_cfa, format_phone_number


@pytest.mark.parametrize(
    "amount, expected",
    [
        (140000, "140 000 CFA"),
        (0, "0 CFA"),
        (999, "999 CFA"),
        (1234567.5, "1 234 568 CFA"),
        ("2500", "2 500 CFA"),
        (-15000, "-15 000 CFA"),
        (None, "N/A"),
        ("abc", "N/A"),
        (float("nan"), "N/A"),
    ],
)
def test_format_cfa(amount, expected):
    assert format_cfa(amount) == expected


@pytest.mark.parametrize(
    "number, expected",
    [
        ("90809089", "90 80 90 89"),
        ("90-80-90-89", "90 80 90 89"),
        ("+228 90809089", "22890809089"),
        (90809089, "90 80 90 89"),
        (None, ""),
        ("", ""),
    ],
)
def test_format_phone_number(number, expected):
    assert format_phone_number(number) == expected
