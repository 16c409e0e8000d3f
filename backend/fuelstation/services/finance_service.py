# Overview: Service-layer operations for expenses, fuel deliveries and the transaction ledger.

"""
Finance Service

WHY: Expenses and fuel deliveries are the cost side of profit/loss. Paying for
either is a financial event and lands in the append-only transactions ledger.

LEDGER INVARIANTS:
- Append-only: rows are inserted, never updated or deleted.
- A ledger row is written in the same transaction as the event it records.
- An expense whose payment is "completed" is final and cannot be deleted.
- A fuel supply with ledger transactions cannot be deleted.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from ..errors import InvalidStateError, NotFoundError, ValidationError
from ..models import Expense, FuelSupply, Transaction
from ..periods import END_OF_DAY
from ..time_utils import parse_iso_datetime, utcnow
from ..validation import (
    optional_text,
    parse_date_field,
    parse_money,
    parse_quantity,
    quantize_money,
    require_choice,
    require_text,
)
from .reconciliation_service import PAYMENT_CASH, PAYMENT_METHODS


PAYMENT_STATUS_PENDING = "pending"
PAYMENT_STATUS_COMPLETED = "completed"
PAYMENT_STATUSES = (PAYMENT_STATUS_PENDING, PAYMENT_STATUS_COMPLETED, "failed", "refunded")

ENTITY_SALE = "sale"
ENTITY_EXPENSE = "expense"
ENTITY_FUEL_SUPPLY = "fuel_supply"
ENTITY_TYPES = (ENTITY_SALE, ENTITY_EXPENSE, ENTITY_FUEL_SUPPLY)


def _optional_method(data: dict) -> str | None:
    method = data.get("payment_method")
    if method is None:
        return None
    return require_choice(method, "payment_method", PAYMENT_METHODS)


# =============================================================================
# LEDGER
# =============================================================================

def append_transaction(
    store,
    *,
    amount: Decimal,
    payment_method: str,
    payment_status: str,
    entity_type: str | None = None,
    entity_id: int | None = None,
    description: str | None = None,
    employee_id: int | None = None,
) -> Transaction:
    """
    Append-only ledger write inside the caller's transaction.

    - No domain logic here.
    - No deletes/updates of existing rows.
    """
    tx = Transaction(
        amount=amount,
        payment_method=payment_method,
        payment_status=payment_status,
        entity_type=entity_type,
        entity_id=entity_id,
        description=description,
        employee_id=employee_id,
        created_at=utcnow(),
    )
    return store.add(tx)


def create_transaction(store, data: dict, *, employee_id: int | None = None) -> Transaction:
    """
    Append a ledger row directly.

    Raises:
        ValidationError: non-positive amount, unknown entity type, or a referenced
            entity that does not exist
    """
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")

    amount = parse_money(data.get("amount"), "amount", positive=True)
    payment_method = require_choice(data.get("payment_method") or PAYMENT_CASH, "payment_method", PAYMENT_METHODS)
    payment_status = require_choice(
        data.get("payment_status") or PAYMENT_STATUS_COMPLETED, "payment_status", PAYMENT_STATUSES
    )

    entity_type = data.get("entity_type")
    entity_id = data.get("entity_id")
    if entity_type is not None or entity_id is not None:
        if entity_type not in ENTITY_TYPES:
            raise ValidationError(f"Unknown entity type: {entity_type}")
        if isinstance(entity_id, bool) or not isinstance(entity_id, int):
            raise ValidationError("entity_id must be an integer")
        if not store.entity_exists(entity_type, entity_id):
            raise ValidationError(f"{entity_type} with ID {entity_id} not found")

    with store.transaction():
        tx = append_transaction(
            store,
            amount=amount,
            payment_method=payment_method,
            payment_status=payment_status,
            entity_type=entity_type,
            entity_id=entity_id,
            description=optional_text(data, "description"),
            employee_id=employee_id,
        )
    return tx


def get_transaction(store, transaction_id: int) -> Transaction:
    tx = store.get(Transaction, transaction_id)
    if not tx:
        raise NotFoundError(f"Transaction {transaction_id} not found")
    return tx


def list_transactions(store, *, entity_type=None, entity_id=None, start_date=None, end_date=None) -> list[Transaction]:
    if entity_type is not None and entity_type not in ENTITY_TYPES:
        raise ValidationError(f"Unknown entity type: {entity_type}")
    try:
        start = parse_iso_datetime(start_date) if start_date else None
        end_day = parse_iso_datetime(end_date) if end_date else None
    except ValueError:
        raise ValidationError("start_date and end_date must be ISO dates")
    # End bound covers the whole end day
    end = datetime.combine(end_day.date(), END_OF_DAY) if end_day else None
    return store.list_transactions(entity_type=entity_type, entity_id=entity_id, start=start, end=end)


# =============================================================================
# EXPENSES
# =============================================================================

def _expense_transaction(store, expense: Expense, employee_id: int | None) -> Transaction:
    description = f"Expense: {expense.description} ({expense.category})" if expense.description else f"Expense ({expense.category})"
    return append_transaction(
        store,
        amount=expense.amount,
        payment_method=expense.payment_method or PAYMENT_CASH,
        payment_status=PAYMENT_STATUS_COMPLETED,
        entity_type=ENTITY_EXPENSE,
        entity_id=expense.id,
        description=description,
        employee_id=employee_id,
    )


def get_expense(store, expense_id: int) -> Expense:
    expense = store.get(Expense, expense_id)
    if not expense:
        raise NotFoundError(f"Expense {expense_id} not found")
    return expense


def list_expenses(store, *, start_date=None, end_date=None, category=None, payment_status=None) -> list[Expense]:
    return store.list_expenses(
        start_date=parse_date_field(start_date, "start_date", required=False),
        end_date=parse_date_field(end_date, "end_date", required=False),
        category=category,
        payment_status=payment_status,
    )


def create_expense(store, data: dict, *, employee_id: int | None = None) -> Expense:
    """
    Record an expense. Created as "completed" it also appends a ledger transaction.
    """
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")

    expense = Expense(
        amount=parse_money(data.get("amount"), "amount", positive=True),
        category=require_text(data, "category", max_length=64),
        description=optional_text(data, "description"),
        date=parse_date_field(data.get("date"), "date"),
        payment_method=_optional_method(data),
        payment_status=require_choice(
            data.get("payment_status") or PAYMENT_STATUS_PENDING, "payment_status", PAYMENT_STATUSES
        ),
        employee_id=employee_id,
        created_at=utcnow(),
        updated_at=utcnow(),
    )

    with store.transaction():
        store.add(expense)
        if expense.payment_status == PAYMENT_STATUS_COMPLETED:
            _expense_transaction(store, expense, employee_id)

    return expense


def update_expense(store, expense_id: int, changes: dict, *, employee_id: int | None = None) -> Expense:
    """
    Update an expense. Moving payment_status into "completed" appends a ledger
    transaction; a transition that was already completed does not add another.
    """
    if not isinstance(changes, dict):
        raise ValidationError("Request body must be a JSON object")

    expense = get_expense(store, expense_id)
    previous_status = expense.payment_status

    fields = {}
    if "amount" in changes:
        fields["amount"] = parse_money(changes["amount"], "amount", positive=True)
    if "category" in changes:
        fields["category"] = require_text(changes, "category", max_length=64)
    if "description" in changes:
        fields["description"] = optional_text(changes, "description")
    if "date" in changes:
        fields["date"] = parse_date_field(changes["date"], "date")
    if "payment_method" in changes:
        fields["payment_method"] = _optional_method(changes)
    if "payment_status" in changes:
        fields["payment_status"] = require_choice(changes["payment_status"], "payment_status", PAYMENT_STATUSES)

    with store.transaction():
        for key, value in fields.items():
            setattr(expense, key, value)
        expense.updated_at = utcnow()
        store.flush()

        if expense.payment_status == PAYMENT_STATUS_COMPLETED and previous_status != PAYMENT_STATUS_COMPLETED:
            _expense_transaction(store, expense, employee_id or expense.employee_id)

    return expense


def delete_expense(store, expense_id: int) -> None:
    expense = get_expense(store, expense_id)
    if expense.payment_status == PAYMENT_STATUS_COMPLETED:
        raise InvalidStateError("Cannot delete an expense with completed payment")
    with store.transaction():
        store.delete(expense)


# =============================================================================
# FUEL SUPPLIES
# =============================================================================

def _supply_transaction(store, supply: FuelSupply, employee_id: int | None) -> Transaction:
    return append_transaction(
        store,
        amount=supply.total_cost,
        payment_method=supply.payment_method,
        payment_status=supply.payment_status,
        entity_type=ENTITY_FUEL_SUPPLY,
        entity_id=supply.id,
        description=f"Fuel supply: {supply.quantity_liters}L @ {supply.price_per_liter}",
        employee_id=employee_id,
    )


def get_fuel_supply(store, supply_id: int) -> FuelSupply:
    supply = store.get(FuelSupply, supply_id)
    if not supply:
        raise NotFoundError(f"Fuel supply {supply_id} not found")
    return supply


def list_fuel_supplies(store, *, start_date=None, end_date=None) -> list[FuelSupply]:
    return store.list_fuel_supplies(
        start_date=parse_date_field(start_date, "start_date", required=False),
        end_date=parse_date_field(end_date, "end_date", required=False),
    )


def create_fuel_supply(store, data: dict, *, employee_id: int | None = None) -> FuelSupply:
    """
    Record a fuel delivery. total_cost is always derived from liters x price.

    When both payment_method and payment_status are supplied, the payment is
    appended to the ledger as a fuel_supply transaction.
    """
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")

    quantity = parse_quantity(data.get("quantity_liters"), "quantity_liters")
    price = parse_quantity(data.get("price_per_liter"), "price_per_liter")
    payment_method = _optional_method(data)
    payment_status = data.get("payment_status")
    if payment_status is not None:
        require_choice(payment_status, "payment_status", PAYMENT_STATUSES)

    supply = FuelSupply(
        fuel_type=require_text(data, "fuel_type", max_length=64),
        provider_name=optional_text(data, "provider_name", max_length=128),
        quantity_liters=quantity,
        price_per_liter=price,
        total_cost=quantize_money(quantity * price),
        delivery_date=parse_date_field(data.get("delivery_date"), "delivery_date"),
        payment_method=payment_method,
        payment_status=payment_status,
        employee_id=employee_id,
        created_at=utcnow(),
        updated_at=utcnow(),
    )

    with store.transaction():
        store.add(supply)
        if payment_method and payment_status:
            _supply_transaction(store, supply, employee_id)

    return supply


def update_fuel_supply(store, supply_id: int, changes: dict, *, employee_id: int | None = None) -> FuelSupply:
    """
    Correct a fuel delivery. total_cost is re-derived from liters x price; a
    supplied total_cost is ignored.

    A payment method/status pair that differs from the stored one (with both set)
    appends a new ledger transaction. Earlier ledger rows are left as written.
    """
    if not isinstance(changes, dict):
        raise ValidationError("Request body must be a JSON object")

    supply = get_fuel_supply(store, supply_id)
    previous_payment = (supply.payment_method, supply.payment_status)

    fields = {}
    if "fuel_type" in changes:
        fields["fuel_type"] = require_text(changes, "fuel_type", max_length=64)
    if "provider_name" in changes:
        fields["provider_name"] = optional_text(changes, "provider_name", max_length=128)
    if "quantity_liters" in changes:
        fields["quantity_liters"] = parse_quantity(changes["quantity_liters"], "quantity_liters")
    if "price_per_liter" in changes:
        fields["price_per_liter"] = parse_quantity(changes["price_per_liter"], "price_per_liter")
    if "delivery_date" in changes:
        fields["delivery_date"] = parse_date_field(changes["delivery_date"], "delivery_date")
    if "payment_method" in changes:
        fields["payment_method"] = _optional_method(changes)
    if "payment_status" in changes:
        status = changes["payment_status"]
        fields["payment_status"] = None if status is None else require_choice(status, "payment_status", PAYMENT_STATUSES)

    quantity = fields.get("quantity_liters", supply.quantity_liters)
    price = fields.get("price_per_liter", supply.price_per_liter)
    fields["total_cost"] = quantize_money(Decimal(str(quantity)) * Decimal(str(price)))

    with store.transaction():
        for key, value in fields.items():
            setattr(supply, key, value)
        supply.updated_at = utcnow()
        store.flush()

        payment = (supply.payment_method, supply.payment_status)
        if all(payment) and payment != previous_payment:
            _supply_transaction(store, supply, employee_id or supply.employee_id)

    return supply


def delete_fuel_supply(store, supply_id: int) -> None:
    """
    Remove a delivery entered by mistake.

    Raises:
        InvalidStateError: the delivery already has ledger transactions
    """
    supply = get_fuel_supply(store, supply_id)
    if store.list_transactions(entity_type=ENTITY_FUEL_SUPPLY, entity_id=supply.id):
        raise InvalidStateError("Cannot delete a fuel supply with recorded payments")
    with store.transaction():
        store.delete(supply)
