from decimal import Decimal
from types import SimpleNamespace

import pytest

from fuelstation.errors import ValidationError
from fuelstation.services.reconciliation_service import (
    normalize_allocations,
    reconcile,
    summarize_payment_methods,
    validate_allocations,
)


def D(value):
    return Decimal(value)


class TestNormalizeAllocations:
    def test_amounts_become_decimals(self):
        allocations = normalize_allocations([
            {"payment_method": "cash", "amount": 60},
            {"payment_method": "card", "amount": "20.005", "reference": "batch 7"},
        ])
        assert allocations[0] == {"payment_method": "cash", "amount": D("60.00"), "reference": None}
        assert allocations[1]["amount"] == D("20.01")
        assert allocations[1]["reference"] == "batch 7"

    def test_input_is_not_modified(self):
        raw = [{"payment_method": "cash", "amount": 10}]
        normalize_allocations(raw)
        assert raw == [{"payment_method": "cash", "amount": 10}]

    def test_none_is_empty(self):
        assert normalize_allocations(None) == []

    @pytest.mark.parametrize("item", [
        {"payment_method": "cheque", "amount": 10},
        {"payment_method": "cash", "amount": 0},
        {"payment_method": "cash", "amount": -5},
        {"payment_method": "cash", "amount": "0.004"},
        {"payment_method": "cash", "amount": "-0.001"},
        {"payment_method": "cash"},
        "cash",
    ])
    def test_bad_items_are_rejected(self, item):
        with pytest.raises(ValidationError):
            normalize_allocations([item])

    def test_non_list_is_rejected(self):
        with pytest.raises(ValidationError):
            normalize_allocations({"payment_method": "cash", "amount": 1})


class TestValidateAllocations:
    def test_exact_match(self):
        allocations = normalize_allocations([{"payment_method": "cash", "amount": 80}])
        assert validate_allocations(D("80.00"), allocations) == D("80.00")

    def test_one_cent_gap_is_tolerated(self):
        allocations = normalize_allocations([{"payment_method": "cash", "amount": "79.99"}])
        assert validate_allocations(D("80.00"), allocations) == D("79.99")

    def test_shortfall_names_the_gap(self):
        allocations = normalize_allocations([
            {"payment_method": "cash", "amount": 50},
            {"payment_method": "card", "amount": 20},
        ])
        with pytest.raises(ValidationError) as exc:
            validate_allocations(D("80.00"), allocations)
        assert "short" in exc.value.message
        assert "10.00" in exc.value.message

    def test_excess_names_the_gap(self):
        allocations = normalize_allocations([{"payment_method": "card", "amount": 95}])
        with pytest.raises(ValidationError) as exc:
            validate_allocations(D("80.00"), allocations)
        assert "exceeds" in exc.value.message
        assert "15.00" in exc.value.message

    def test_empty_list_only_valid_for_zero_sales(self):
        assert validate_allocations(D("0.00"), []) == D("0.00")
        with pytest.raises(ValidationError):
            validate_allocations(D("12.50"), [])


class TestReconcile:
    def test_balanced_drawer(self):
        allocations = normalize_allocations([{"payment_method": "cash", "amount": 80}])
        result = reconcile(D("100.00"), D("80.00"), D("180.00"), allocations)
        assert result.expected_cash == D("180.00")
        assert result.cash_difference == D("0.00")
        assert result.status == "exact"
        assert result.requires_review is False

    def test_short_drawer_is_negative(self):
        result = reconcile(D("100.00"), D("0.00"), D("95.50"), [])
        assert result.cash_difference == D("-4.50")
        assert result.status == "short"

    def test_over_drawer_is_positive(self):
        result = reconcile(D("100.00"), D("0.00"), D("101.00"), [])
        assert result.status == "over"

    def test_variance_above_threshold_flags_review(self):
        result = reconcile(D("100.00"), D("0.00"), D("80.00"), [], variance_threshold=D("10"))
        assert result.requires_review is True
        assert result.cash_difference == D("-20.00")

    def test_variance_at_threshold_is_not_flagged(self):
        result = reconcile(D("100.00"), D("0.00"), D("110.00"), [], variance_threshold=D("10"))
        assert result.requires_review is False

    def test_to_dict(self):
        result = reconcile(D("100.00"), D("0.00"), D("99.00"), [])
        body = result.to_dict()
        assert body["cash_difference"] == -1.0
        assert body["cash_status"] == "short"


def test_summarize_payment_methods():
    rows = [
        SimpleNamespace(payment_method="cash", amount=D("30.00")),
        SimpleNamespace(payment_method="card", amount=D("20.00")),
        SimpleNamespace(payment_method="cash", amount=D("10.00")),
    ]
    summary = summarize_payment_methods(rows)
    assert summary["by_method"] == {"cash": 40.0, "card": 20.0}
    assert summary["total"] == 60.0
    assert summary["cash_only"] is False


def test_summarize_cash_only():
    summary = summarize_payment_methods([SimpleNamespace(payment_method="cash", amount=D("5.00"))])
    assert summary["cash_only"] is True
