import pytest

from pl_standardizer import (
    EmptyTableError,
    InsufficientColumnsError,
    InvalidInputError,
    StandardizationError,
    detect_structure,
)
from pl_standardizer.structure import table_columns


def test_label_column_by_name_token_and_amount_columns_in_order():
    table = [
        {"Jan": "100", "Account Name": "Sales", "Feb": "200", "Notes": "x"},
        {"Jan": "40", "Account Name": "COGS", "Feb": "60", "Notes": "y"},
    ]

    s = detect_structure(table)

    assert s.label_column == "Account Name"
    assert s.amount_columns == ("Jan", "Feb")
    assert s.all_columns == ("Jan", "Account Name", "Feb", "Notes")
    assert s.period_count == 2


def test_label_column_falls_back_to_first_column():
    table = [{"Line": "Sales", "Q1": 10, "Q2": 20}]

    s = detect_structure(table)

    assert s.label_column == "Line"
    assert s.amount_columns == ("Q1", "Q2")


def test_numeric_sample_qualifies_unnamed_columns():
    table = [
        {"Item": "Sales", "2024-01": "1,000", "Comment": "ok"},
        {"Item": "Rent", "2024-01": "(500)", "Comment": "fine"},
        {"Item": "Misc", "2024-01": "n/a", "Comment": "meh"},
    ]

    s = detect_structure(table)

    # 2 of 3 sampled cells parse (>= 60%); the comment column never does.
    assert s.amount_columns == ("2024-01",)


def test_empty_strings_do_not_count_as_numeric():
    table = [
        {"Item": "Sales", "A": "", "B": "5"},
        {"Item": "Rent", "A": "", "B": "6"},
        {"Item": "Misc", "A": "1", "B": "7"},
    ]

    s = detect_structure(table)

    assert s.amount_columns == ("B",)


def test_no_qualifying_column_falls_back_to_all_non_label_columns():
    table = [{"Description": "Sales", "Region": "West", "Owner": "Kim"}]

    s = detect_structure(table)

    assert s.label_column == "Description"
    assert s.amount_columns == ("Region", "Owner")


def test_ragged_rows_contribute_their_columns():
    table = [{"Label": "Sales", "Jan": 1}, {"Label": "Rent", "Jan": 2, "Feb": 3}]

    assert table_columns(table) == ("Label", "Jan", "Feb")
    assert detect_structure(table).amount_columns == ("Jan", "Feb")


def test_detection_is_deterministic():
    table = [{"Label": "Sales", "Jan": "1", "Feb": "2", "Mar": "3"}]

    assert detect_structure(table) == detect_structure(list(table))


def test_empty_table_raises():
    with pytest.raises(EmptyTableError):
        detect_structure([])


def test_single_column_raises():
    with pytest.raises(InsufficientColumnsError):
        detect_structure([{"Label": "Sales"}, {"Label": "Rent"}])


def test_missing_table_raises_invalid_input():
    with pytest.raises(InvalidInputError):
        detect_structure(None)  # type: ignore[arg-type]


def test_errors_share_value_error_base():
    assert issubclass(EmptyTableError, StandardizationError)
    assert issubclass(StandardizationError, ValueError)
