import pytest

from pl_standardizer import taxonomy as tx


def test_registry_orders_are_strictly_increasing_in_declaration_order():
    names = tx.category_names()
    orders = [tx.category_order(n) for n in names]

    assert len(names) == 20
    assert names[0] == "Total Revenue"
    assert names[-1] == "Net Income"
    assert orders == sorted(orders)
    assert len(set(orders)) == len(orders)


def test_lookups_for_known_and_unknown_labels():
    assert tx.category_type("Total Revenue") == "revenue"
    assert tx.category_type("Gross Profit") == "calculated"
    assert tx.category_order("Service Revenue") == 1.5
    assert "cogs" in tx.category_keywords("Cost of Goods Sold")

    # Unknown labels (and the Other sentinel) sort last as expenses.
    for label in ("Other", "Mystery Line"):
        assert tx.category_type(label) == "expense"
        assert tx.category_order(label) == 999
        assert tx.category_keywords(label) == frozenset()


def test_is_known_category_accepts_other_sentinel():
    assert tx.is_known_category("Other")
    assert tx.is_known_category("Insurance")
    assert not tx.is_known_category("insurance")


def test_registry_is_read_only():
    with pytest.raises(TypeError):
        tx.STANDARD_CATEGORIES["New"] = tx.STANDARD_CATEGORIES["Insurance"]  # type: ignore[index]


def test_taxonomy_for_prompt_keeps_keyword_declaration_order():
    view = tx.taxonomy_for_prompt()

    assert [v["name"] for v in view] == list(tx.category_names())
    first = view[0]
    assert first["type"] == "revenue"
    assert first["keywords"][:2] == ["revenue", "sales"]


def test_find_best_match_exact_name_is_case_insensitive():
    m = tx.find_best_match("  total revenue ")

    assert m is not None
    assert (m.category, m.confidence, m.match_type) == ("Total Revenue", 1.0, "exact")


def test_find_best_match_exact_keyword():
    m = tx.find_best_match("Payroll")

    assert m is not None
    assert m.category == "Salaries & Benefits"
    assert (m.confidence, m.match_type) == (0.95, "keyword_exact")


def test_find_best_match_prefers_longest_contained_keyword():
    m = tx.find_best_match("Office Rent Expense")

    assert m is not None
    assert m.category == "Rent & Utilities"
    assert m.match_type == "keyword_partial"
    assert m.confidence == pytest.approx(0.8 * len("office rent") / len("office rent expense"))


def test_find_best_match_returns_none_without_hints():
    assert tx.find_best_match("Widgets") is None
    assert tx.find_best_match("   ") is None
    assert tx.find_best_match(42) is None
