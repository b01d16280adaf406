import math

import pytest

from pl_standardizer.normalizers import amount_or_zero, is_empty_cell, parse_amount


@pytest.mark.parametrize(
    "raw, expected",
    [
        (1200, 1200.0),
        (-35.5, -35.5),
        ("1200", 1200.0),
        ("-35.5", -35.5),
        ("$1,234.56", 1234.56),
        ("(450)", -450.0),
        ("($-1,234.56)", 1234.56),
        ("  +12 ", 12.0),
    ],
)
def test_parse_amount_accepts_accounting_shapes(raw, expected):
    assert parse_amount(raw) == pytest.approx(expected)


@pytest.mark.parametrize("raw", [None, "", "   ", "n/a", "$", "()", True, False, math.nan, "inf"])
def test_parse_amount_rejects_non_numeric(raw):
    assert parse_amount(raw) is None


def test_amount_or_zero_counts_junk_as_zero():
    assert amount_or_zero("abc") == 0.0
    assert amount_or_zero("") == 0.0
    assert amount_or_zero("(10)") == -10.0


def test_is_empty_cell_treats_whitespace_as_data():
    assert is_empty_cell(None)
    assert is_empty_cell("")
    assert not is_empty_cell(" ")
    assert not is_empty_cell(0)


@pytest.mark.parametrize("raw", ["(-5)", "-(5)", "-($5)", "($-5)", "--5"])
def test_nested_signs_cancel_in_either_order(raw):
    assert parse_amount(raw) == 5.0
    assert parse_amount(f"-{raw}") == -5.0
