# Overview: Payment reconciliation for shift close; pure calculations, no database work.

"""
Shift Payment Reconciliation

WHY: At close the cashier declares how the shift's sales were paid (cash, card,
bank transfer, mobile payment) and counts the drawer. The declared split must add up
to what was sold; the drawer count is compared against what should be in it.

RULES:
- Every allocation amount is > 0 and uses a known payment method
- sum(allocations) == sales_total within RECONCILIATION_EPSILON, else ValidationError
- expected_cash = opening_cash + sales_total
- cash_difference = closing_cash - expected_cash (negative = short, positive = over)
- cash_difference never blocks the close; above the configured review threshold the
  shift is only flagged (requires_review)
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from ..errors import ValidationError
from ..validation import as_float, optional_text, parse_money, quantize_money, require_choice


# =============================================================================
# PAYMENT METHODS (CONSTANTS)
# =============================================================================

PAYMENT_CASH = "cash"
PAYMENT_CARD = "card"
PAYMENT_BANK_TRANSFER = "bank_transfer"
PAYMENT_MOBILE = "mobile_payment"

PAYMENT_METHODS = (
    PAYMENT_CASH,
    PAYMENT_CARD,
    PAYMENT_BANK_TRANSFER,
    PAYMENT_MOBILE,
)

RECONCILIATION_EPSILON = Decimal("0.01")


@dataclass(frozen=True)
class ReconciliationResult:
    opening_cash: Decimal
    sales_total: Decimal
    closing_cash: Decimal
    expected_cash: Decimal
    cash_difference: Decimal
    allocated_total: Decimal
    requires_review: bool = False

    @property
    def status(self) -> str:
        if self.cash_difference < 0:
            return "short"
        if self.cash_difference > 0:
            return "over"
        return "exact"

    def to_dict(self) -> dict:
        return {
            "opening_cash": as_float(self.opening_cash),
            "sales_total": as_float(self.sales_total),
            "closing_cash": as_float(self.closing_cash),
            "expected_cash": as_float(self.expected_cash),
            "cash_difference": as_float(self.cash_difference),
            "allocated_total": as_float(self.allocated_total),
            "cash_status": self.status,
            "requires_review": self.requires_review,
        }


def normalize_allocations(payment_methods) -> list[dict]:
    """
    Validate raw {payment_method, amount, reference?} items.

    Returns new dicts with Decimal amounts; the input is not modified.
    """
    if payment_methods is None:
        return []
    if not isinstance(payment_methods, (list, tuple)):
        raise ValidationError("payment_methods must be a list")

    allocations = []
    for index, item in enumerate(payment_methods):
        if not isinstance(item, dict):
            raise ValidationError(f"payment_methods[{index}] must be an object")
        method = require_choice(item.get("payment_method"), "payment_method", PAYMENT_METHODS)
        amount = parse_money(item.get("amount"), f"payment_methods[{index}].amount", positive=True)
        allocations.append({
            "payment_method": method,
            "amount": amount,
            "reference": optional_text(item, "reference"),
        })
    return allocations


def validate_allocations(sales_total: Decimal, allocations: list[dict]) -> Decimal:
    """
    Check the allocation sum against the shift's sales total.

    Returns:
        The allocated total

    Raises:
        ValidationError: if the sum differs from sales_total by more than one cent
    """
    allocated = quantize_money(sum((a["amount"] for a in allocations), Decimal("0")))
    gap = allocated - sales_total

    if abs(gap) > RECONCILIATION_EPSILON:
        if gap < 0:
            raise ValidationError(
                f"Payment methods total {allocated:.2f} is short of shift sales "
                f"total {sales_total:.2f} by {-gap:.2f}"
            )
        raise ValidationError(
            f"Payment methods total {allocated:.2f} exceeds shift sales "
            f"total {sales_total:.2f} by {gap:.2f}"
        )
    return allocated


def reconcile(
    opening_cash: Decimal,
    sales_total: Decimal,
    closing_cash: Decimal,
    allocations: list[dict],
    *,
    variance_threshold: Decimal | None = None,
) -> ReconciliationResult:
    allocated = validate_allocations(sales_total, allocations)

    expected_cash = quantize_money(opening_cash + sales_total)
    cash_difference = quantize_money(closing_cash - expected_cash)

    requires_review = (
        variance_threshold is not None and abs(cash_difference) > variance_threshold
    )

    return ReconciliationResult(
        opening_cash=opening_cash,
        sales_total=sales_total,
        closing_cash=closing_cash,
        expected_cash=expected_cash,
        cash_difference=cash_difference,
        allocated_total=allocated,
        requires_review=requires_review,
    )


def summarize_payment_methods(rows) -> dict:
    """
    Per-method totals for display.

    ``cash_only`` is a rendering hint (show "cash only" instead of a breakdown);
    it plays no part in reconciliation.
    """
    totals: dict[str, Decimal] = {}
    for row in rows:
        totals[row.payment_method] = totals.get(row.payment_method, Decimal("0")) + Decimal(str(row.amount))

    overall = quantize_money(sum(totals.values(), Decimal("0")))
    return {
        "by_method": {method: as_float(quantize_money(amount)) for method, amount in totals.items()},
        "total": as_float(overall),
        "cash_only": list(totals) == [PAYMENT_CASH],
    }
