# Overview: Service-layer operations for profit/loss reporting and saved snapshots.

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP

from ..errors import NotFoundError
from ..models import ProfitLossSummary
from ..periods import DateRange
from ..time_utils import utcnow
from ..validation import as_float, optional_text, quantize_money


def profit_margin(total_sales: Decimal, profit: Decimal) -> Decimal:
    """Profit as a percentage of sales, two places; 0 when nothing was sold."""
    if total_sales == 0:
        return Decimal("0")
    return (profit / total_sales * 100).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def calculate_profit_loss(store, date_range: DateRange, include_details: bool = False) -> dict:
    """
    Aggregate sales against expenses and fuel purchases for a resolved period.

    Costs are expenses plus fuel deliveries; profit is sales minus costs.
    """
    total_sales = store.sum_sales(date_range)
    total_expenses = store.sum_expenses(date_range)
    total_fuel_cost = store.sum_fuel_costs(date_range)

    total_costs = quantize_money(total_expenses + total_fuel_cost)
    profit = quantize_money(total_sales - total_costs)

    report = {
        "period": date_range.label,
        "period_type": date_range.period_type,
        "date_range": date_range.to_dict(),
        "total_sales": as_float(total_sales),
        "total_expenses": as_float(total_expenses),
        "total_fuel_cost": as_float(total_fuel_cost),
        "total_costs": as_float(total_costs),
        "profit": as_float(profit),
        "profit_margin": as_float(profit_margin(total_sales, profit)),
    }

    if include_details:
        bounds = {"start_date": date_range.start_date, "end_date": date_range.end_date}
        report["sales"] = [s.to_dict() for s in store.list_sales(**bounds)]
        report["expenses"] = [e.to_dict() for e in store.list_expenses(**bounds)]
        report["fuel_supplies"] = [f.to_dict() for f in store.list_fuel_supplies(**bounds)]

    return report


def get_profit_loss_summary(store, date_range: DateRange) -> list[ProfitLossSummary]:
    """Saved snapshots created within the range, newest first."""
    return store.list_summaries(date_range)


def get_profit_loss_by_id(store, summary_id: int) -> ProfitLossSummary:
    summary = store.get(ProfitLossSummary, summary_id)
    if not summary:
        raise NotFoundError(f"Profit/loss summary {summary_id} not found")
    return summary


def generate_and_save_profit_loss(store, date_range: DateRange, notes: str | None = None) -> ProfitLossSummary:
    """
    Compute and persist a snapshot for the period.

    The snapshot records sales and expenses only (profit = sales - expenses); fuel
    purchases are left out of saved figures. Each call inserts a new row.
    """
    notes = optional_text({"notes": notes}, "notes", max_length=2000)

    total_sales = store.sum_sales(date_range)
    total_expenses = store.sum_expenses(date_range)

    now = utcnow()
    summary = ProfitLossSummary(
        period=date_range.label,
        period_type=date_range.period_type,
        total_sales=total_sales,
        total_expenses=total_expenses,
        profit=quantize_money(total_sales - total_expenses),
        notes=notes,
        created_at=now,
        updated_at=now,
    )

    with store.transaction():
        store.add(summary)

    return summary
