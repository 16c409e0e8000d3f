# Overview: Service-layer operations for fuel sales; keeps shift totals in step with sale rows.

"""
Sales Service

WHY: Every sale recorded against a shift moves that shift's sales_total. Sale
corrections (update/delete) are allowed only while the shift is OPEN and move the
total by the difference, so a closed shift's figures never change.
"""

from __future__ import annotations

from decimal import Decimal

from ..errors import NotFoundError, ValidationError
from ..models import Sale
from ..time_utils import utcnow
from ..validation import (
    to_decimal,
    parse_date_field,
    parse_quantity,
    quantize_money,
    require_choice,
    require_text,
)
from . import shift_service
from .finance_service import PAYMENT_STATUSES
from .reconciliation_service import PAYMENT_METHODS


CLOSED_SHIFT_ADD = "Cannot add sales to a closed shift"
CLOSED_SHIFT_MOVE = "Cannot move sale to a closed shift"
CLOSED_SHIFT_CHANGE = "Cannot modify a sale from a closed shift"
CLOSED_SHIFT_DELETE = "Cannot delete sale from a closed shift"


def calculate_total(quantity: Decimal, price_per_unit: Decimal) -> Decimal:
    """quantity x price_per_unit rounded to cents."""
    return quantize_money(quantity * price_per_unit)


def _optional_meter(data: dict, field: str) -> Decimal | None:
    value = data.get(field)
    if value is None or value == "":
        return None
    number = to_decimal(value, field)
    if number < 0:
        raise ValidationError(f"{field} cannot be negative")
    return number


def _validate_meters(meter_start: Decimal | None, meter_end: Decimal | None) -> None:
    if meter_start is not None and meter_end is not None and meter_start >= meter_end:
        raise ValidationError("meter_end must be greater than meter_start")


def _optional_shift_id(value) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError("shift_id must be an integer")
    return value


def get_sale(store, sale_id: int) -> Sale:
    sale = store.get(Sale, sale_id)
    if not sale:
        raise NotFoundError(f"Sale {sale_id} not found")
    return sale


def list_sales(store, *, shift_id=None, start_date=None, end_date=None, employee_id=None) -> list[Sale]:
    return store.list_sales(
        shift_id=shift_id,
        start_date=parse_date_field(start_date, "start_date", required=False),
        end_date=parse_date_field(end_date, "end_date", required=False),
        employee_id=employee_id,
    )


def record_sale(store, data: dict, *, employee_id: int | None = None) -> Sale:
    """
    Record a sale and attribute it to its shift.

    Request data:
        date, fuel_type, filling_system_id, quantity, price_per_unit (required)
        shift_id, meter_start, meter_end, payment_method, payment_status (optional)

    Raises:
        ValidationError: malformed input
        NotFoundError: shift_id does not exist
        InvalidStateError: shift is CLOSED (nothing is written)
    """
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")

    sale_date = parse_date_field(data.get("date"), "date")
    fuel_type = require_text(data, "fuel_type", max_length=64)
    filling_system_id = data.get("filling_system_id")
    if filling_system_id is None or str(filling_system_id).strip() == "":
        raise ValidationError("filling_system_id is required")

    quantity = parse_quantity(data.get("quantity"), "quantity")
    price_per_unit = parse_quantity(data.get("price_per_unit"), "price_per_unit")
    meter_start = _optional_meter(data, "meter_start")
    meter_end = _optional_meter(data, "meter_end")
    _validate_meters(meter_start, meter_end)

    payment_method = data.get("payment_method")
    if payment_method is not None:
        require_choice(payment_method, "payment_method", PAYMENT_METHODS)
    payment_status = require_choice(data.get("payment_status") or "completed", "payment_status", PAYMENT_STATUSES)

    shift_id = _optional_shift_id(data.get("shift_id"))
    total = calculate_total(quantity, price_per_unit)

    sale = Sale(
        shift_id=shift_id,
        employee_id=employee_id,
        filling_system_id=str(filling_system_id).strip(),
        fuel_type=fuel_type,
        date=sale_date,
        quantity=quantity,
        price_per_unit=price_per_unit,
        total_sales=total,
        meter_start=meter_start,
        meter_end=meter_end,
        payment_method=payment_method,
        payment_status=payment_status,
        created_at=utcnow(),
    )

    with store.transaction():
        if shift_id is not None:
            shift_service.apply_sales_delta(store, shift_id, total, CLOSED_SHIFT_ADD)
        store.add(sale)

    return sale


def update_sale(store, sale_id: int, changes: dict) -> Sale:
    """
    Correct a sale while its shift is still OPEN.

    Recomputes total_sales when quantity or price changes and moves the difference
    between shift totals (same shift: the delta; new shift: remove from old, add to new).
    """
    if not isinstance(changes, dict):
        raise ValidationError("Request body must be a JSON object")

    sale = get_sale(store, sale_id)

    if sale.shift_id is not None:
        shift_service.ensure_shift_open(store, sale.shift_id, CLOSED_SHIFT_CHANGE)

    old_shift_id = sale.shift_id
    new_shift_id = _optional_shift_id(changes["shift_id"]) if "shift_id" in changes else old_shift_id

    quantity = Decimal(str(sale.quantity))
    price_per_unit = Decimal(str(sale.price_per_unit))
    if "quantity" in changes:
        quantity = parse_quantity(changes["quantity"], "quantity")
    if "price_per_unit" in changes:
        price_per_unit = parse_quantity(changes["price_per_unit"], "price_per_unit")

    meter_start = _optional_meter(changes, "meter_start") if "meter_start" in changes else sale.meter_start
    meter_end = _optional_meter(changes, "meter_end") if "meter_end" in changes else sale.meter_end
    _validate_meters(meter_start, meter_end)

    fields = {}
    if "date" in changes:
        fields["date"] = parse_date_field(changes["date"], "date")
    if "fuel_type" in changes:
        fields["fuel_type"] = require_text(changes, "fuel_type", max_length=64)
    if "filling_system_id" in changes:
        value = changes["filling_system_id"]
        if value is None or str(value).strip() == "":
            raise ValidationError("filling_system_id is required")
        fields["filling_system_id"] = str(value).strip()
    if "payment_method" in changes:
        method = changes["payment_method"]
        fields["payment_method"] = require_choice(method, "payment_method", PAYMENT_METHODS) if method is not None else None
    if "payment_status" in changes:
        fields["payment_status"] = require_choice(changes["payment_status"], "payment_status", PAYMENT_STATUSES)

    old_total = Decimal(str(sale.total_sales))
    new_total = calculate_total(quantity, price_per_unit)

    with store.transaction():
        if new_shift_id != old_shift_id:
            if new_shift_id is not None:
                shift_service.apply_sales_delta(store, new_shift_id, new_total, CLOSED_SHIFT_MOVE)
            if old_shift_id is not None:
                shift_service.apply_sales_delta(store, old_shift_id, -old_total, CLOSED_SHIFT_CHANGE)
        elif new_shift_id is not None and new_total != old_total:
            shift_service.apply_sales_delta(store, new_shift_id, new_total - old_total, CLOSED_SHIFT_CHANGE)

        sale.shift_id = new_shift_id
        sale.quantity = quantity
        sale.price_per_unit = price_per_unit
        sale.total_sales = new_total
        sale.meter_start = meter_start
        sale.meter_end = meter_end
        for key, value in fields.items():
            setattr(sale, key, value)
        store.flush()

    return sale


def delete_sale(store, sale_id: int) -> None:
    """Delete a sale; its shift must be OPEN and loses the sale amount."""
    sale = get_sale(store, sale_id)

    with store.transaction():
        if sale.shift_id is not None:
            shift_service.apply_sales_delta(
                store,
                sale.shift_id,
                -Decimal(str(sale.total_sales)),
                CLOSED_SHIFT_DELETE,
            )
        store.delete(sale)
