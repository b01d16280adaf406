import pydantic
import pytest

from pl_standardizer import MappingRule, MappingRuleStore, Structure
from pl_standardizer.rules import (
    distribute_evenly,
    ensure_monthly_amounts,
    fallback_rules,
    first_rows_by_label,
)

STRUCTURE = Structure(
    label_column="Label",
    amount_columns=("Jan", "Feb"),
    all_columns=("Label", "Jan", "Feb"),
)


def _rule(label: str, target: str, **kw) -> MappingRule:
    return MappingRule(original_label=label, standard_label=target, **kw)


# ---- MappingRule validation ------------------------------------------------------


def test_rule_defaults_and_normalization():
    r = _rule(" Sales ", "  Total Revenue ")

    assert r.original_label == " Sales "
    assert r.standard_label == "Total Revenue"
    assert r.confidence == 1.0
    assert r.provenance == "manual"
    assert r.amount is None
    assert r.monthly_amounts is None


@pytest.mark.parametrize(
    "kwargs",
    [
        {"original_label": "  ", "standard_label": "Other"},
        {"original_label": "Sales", "standard_label": ""},
        {"original_label": "Sales", "standard_label": "Other", "confidence": 1.5},
        {"original_label": "Sales", "standard_label": "Other", "provenance": "robot"},
        {"original_label": "Sales", "standard_label": "Other", "unexpected": 1},
    ],
)
def test_rule_rejects_invalid_fields(kwargs):
    with pytest.raises(pydantic.ValidationError):
        MappingRule(**kwargs)


def test_rule_is_frozen():
    r = _rule("Sales", "Total Revenue")

    with pytest.raises(pydantic.ValidationError):
        r.standard_label = "Other"  # type: ignore[misc]


# ---- Store operations --------------------------------------------------------------


def test_set_is_last_write_wins_per_label():
    store = MappingRuleStore()
    store.set(_rule("Sales", "Other"))
    store.set(_rule("Sales", "Total Revenue"))

    assert len(store) == 1
    assert store.get("Sales").standard_label == "Total Revenue"
    assert "Sales" in store
    assert store.labels() == ("Sales",)


def test_snapshot_is_read_only_and_detached():
    store = MappingRuleStore([_rule("Sales", "Total Revenue")])
    snap = store.snapshot()

    store.set(_rule("Rent", "Rent & Utilities"))

    assert list(snap) == ["Sales"]
    with pytest.raises(TypeError):
        snap["Rent"] = _rule("Rent", "Other")  # type: ignore[index]


def test_update_marks_rule_manual():
    store = MappingRuleStore([_rule("Sales", "Other", provenance="ai", confidence=0.5)])

    updated = store.update("Sales", standard_label="Total Revenue")

    assert updated.provenance == "manual"
    assert updated.standard_label == "Total Revenue"
    assert updated.confidence == 0.5
    assert store.get("Sales") is updated


def test_update_creates_missing_rule_and_validates():
    store = MappingRuleStore()

    store.update("Rent", standard_label="Rent & Utilities")
    assert store.get("Rent").standard_label == "Rent & Utilities"

    with pytest.raises(pydantic.ValidationError):
        store.update("Misc")


def test_set_monthly_amounts_resets_total_to_sum():
    store = MappingRuleStore([_rule("Sales", "Total Revenue", amount=999.0)])

    r = store.set_monthly_amounts("Sales", [10, 15.5])

    assert r.monthly_amounts == (10.0, 15.5)
    assert r.amount == 25.5


def test_remove_returns_previous_rule():
    store = MappingRuleStore([_rule("Sales", "Total Revenue")])

    assert store.remove("Sales").standard_label == "Total Revenue"
    assert store.remove("Sales") is None
    assert len(store) == 0


def test_merge_suggestions_never_overwrites_manual_rules():
    store = MappingRuleStore(
        [
            _rule("Sales", "Total Revenue"),
            _rule("Rent", "Other", provenance="fallback", confidence=0.1),
        ]
    )
    suggested = {
        "Sales": _rule("Sales", "Other Income", provenance="ai", confidence=0.9),
        "Rent": _rule("Rent", "Rent & Utilities", provenance="ai", confidence=0.8),
        "Ads": _rule("Ads", "Marketing Expenses", provenance="ai", confidence=0.7),
    }

    applied = store.merge_suggestions(suggested)

    assert applied == ["Rent", "Ads"]
    assert store.get("Sales").standard_label == "Total Revenue"
    assert store.get("Rent").standard_label == "Rent & Utilities"
    assert store.get("Ads").provenance == "ai"


def test_round_trip_through_plain_mapping_accepts_camel_case():
    raw = {
        "Sales": {
            "standardLabel": "Total Revenue",
            "monthlyAmounts": [100, 200],
            "amount": 300,
            "confidence": 0.9,
            "provenance": "ai",
            "matchType": "keyword_exact",
        },
        "Rent": {"standard_label": "Rent & Utilities"},
    }

    store = MappingRuleStore.from_mapping(raw)

    assert store.get("Sales").monthly_amounts == (100.0, 200.0)
    assert store.get("Rent").provenance == "manual"
    dumped = store.to_dict()
    assert dumped["Sales"]["monthly_amounts"] == [100.0, 200.0]
    assert dict(MappingRuleStore.from_mapping(dumped).snapshot()) == dict(store.snapshot())


def test_from_mapping_rejects_non_object_entries():
    with pytest.raises(ValueError):
        MappingRuleStore.from_mapping({"Sales": "Total Revenue"})


# ---- Seeding helpers ---------------------------------------------------------------


def test_distribute_evenly():
    assert distribute_evenly(90.0, 3) == (30.0, 30.0, 30.0)
    assert distribute_evenly(90.0, 0) == ()


def test_first_rows_by_label_keeps_first_occurrence():
    table = [
        {"Label": "Sales", "Jan": "1"},
        {"Label": 5, "Jan": "2"},
        {"Label": "Sales", "Jan": "3"},
    ]

    rows = first_rows_by_label(table, STRUCTURE)

    assert list(rows) == ["Sales"]
    assert rows["Sales"]["Jan"] == "1"


def test_fallback_rules_map_every_label_to_other():
    table = [
        {"Label": "Sales", "Jan": "10", "Feb": "x"},
        {"Label": "Rent", "Jan": "", "Feb": "5"},
    ]

    rules = fallback_rules(table, STRUCTURE)

    assert set(rules) == {"Sales", "Rent"}
    assert rules["Sales"].standard_label == "Other"
    assert rules["Sales"].confidence == 0.1
    assert rules["Sales"].provenance == "fallback"
    assert rules["Sales"].monthly_amounts == (10.0, 0.0)
    assert rules["Rent"].amount == 5.0


def test_ensure_monthly_amounts_fills_missing_and_mis_sized_vectors():
    table = [
        {"Label": "Sales", "Jan": "10", "Feb": "20"},
        {"Label": "Rent", "Jan": "1", "Feb": "2"},
    ]
    rules = {
        "Sales": _rule("Sales", "Total Revenue"),
        "Rent": _rule("Rent", "Rent & Utilities", monthly_amounts=(7.0,)),
        "Gone": _rule("Gone", "Other"),
        "Kept": _rule("Kept", "Other", monthly_amounts=(1.0, 1.0)),
    }

    out = ensure_monthly_amounts(rules, table, STRUCTURE)

    assert out["Sales"].monthly_amounts == (10.0, 20.0)
    assert out["Rent"].monthly_amounts == (1.0, 2.0)
    assert out["Gone"] is rules["Gone"]
    assert out["Kept"] is rules["Kept"]
    assert rules["Sales"].monthly_amounts is None
