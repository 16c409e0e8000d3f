"""
Shift Lifecycle Service

WHY: A shift is the unit of cash accountability at the till. Sales are attributed
to it while it is open; closing it freezes the sales total, records how the sales
were paid, and computes the cash variance.

DESIGN PRINCIPLES:
- One OPEN shift at a time (station-wide, or per employee; see SHIFT_SCOPE)
- OPEN -> CLOSED is the only transition; CLOSED is terminal (no reopen)
- sales_total only changes through the store's atomic increment
- Close, its payment-method rows, and the variance are written in one transaction
"""

from __future__ import annotations

from decimal import Decimal

from ..errors import ConflictError, InvalidStateError, NotFoundError, ValidationError
from ..models import Shift, SHIFT_CLOSED, SHIFT_OPEN
from ..time_utils import utcnow
from ..validation import optional_text, parse_money
from .reconciliation_service import ReconciliationResult, normalize_allocations, reconcile


SCOPE_SYSTEM = "system"
SCOPE_EMPLOYEE = "employee"
SHIFT_SCOPES = (SCOPE_SYSTEM, SCOPE_EMPLOYEE)


# =============================================================================
# READS
# =============================================================================

def get_shift(store, shift_id: int) -> Shift:
    shift = store.get_shift(shift_id)
    if not shift:
        raise NotFoundError(f"Shift {shift_id} not found")
    return shift


def list_shifts(store, *, status: str | None = None, limit: int = 50) -> list[Shift]:
    if status is not None and status not in (SHIFT_OPEN, SHIFT_CLOSED):
        raise ValidationError("status must be OPEN or CLOSED")
    return store.list_shifts(status=status, limit=limit)


def get_system_active_shift(store) -> Shift | None:
    return store.find_open_shift()


def get_active_shift(store, employee_id: int) -> tuple[Shift | None, bool]:
    """
    The employee's OPEN shift, falling back to the station-wide one.

    Returns:
        (shift or None, is_user_specific)
    """
    shift = store.find_open_shift_for_employee(employee_id)
    if shift:
        return shift, True
    return store.find_open_shift(), False


def get_shift_payment_methods(store, shift_id: int):
    get_shift(store, shift_id)
    return store.list_payment_methods(shift_id)


def get_shift_employees(store, shift_id: int):
    return store.list_shift_employees(shift_id)


# =============================================================================
# TRANSITIONS
# =============================================================================

def start_shift(
    store,
    opening_cash,
    employee_ids: list[int] | None = None,
    *,
    acting_employee_id: int | None = None,
    scope: str = SCOPE_SYSTEM,
) -> Shift:
    """
    Open a new shift.

    Args:
        opening_cash: Starting cash in the drawer (>= 0)
        employee_ids: Employees working the shift; defaults to the acting employee.
            The first one becomes the shift's primary employee.
        acting_employee_id: Authenticated employee starting the shift
        scope: "system" (one OPEN shift station-wide) or "employee"

    Raises:
        ValidationError: bad opening cash or employee list
        NotFoundError: unknown employee id
        ConflictError: an OPEN shift already exists in the configured scope
    """
    opening = parse_money(opening_cash, "opening_cash")

    if scope not in SHIFT_SCOPES:
        raise ValidationError(f"Unknown shift scope: {scope}")

    if employee_ids is None or employee_ids == []:
        assigned = [acting_employee_id] if acting_employee_id is not None else []
    elif not isinstance(employee_ids, (list, tuple)):
        raise ValidationError("employee_ids must be a list")
    else:
        assigned = []
        for employee_id in employee_ids:
            if isinstance(employee_id, bool) or not isinstance(employee_id, int):
                raise ValidationError("Invalid employee ID provided")
            if employee_id not in assigned:
                assigned.append(employee_id)

    if not assigned:
        raise ValidationError("At least one employee must be assigned to the shift")

    found = {e.id: e for e in store.get_employees(assigned)}
    missing = [employee_id for employee_id in assigned if employee_id not in found]
    if missing:
        raise NotFoundError(f"Employee {missing[0]} not found")

    with store.transaction():
        if scope == SCOPE_SYSTEM:
            existing = store.find_open_shift()
            if existing:
                raise ConflictError(f"An open shift already exists (shift {existing.id})")
        else:
            for employee_id in assigned:
                existing = store.find_open_shift_for_employee(employee_id)
                if existing:
                    raise ConflictError(
                        f"Employee {found[employee_id].name} already has an open shift (shift {existing.id})"
                    )

        now = utcnow()
        shift = Shift(
            employee_id=assigned[0],
            status=SHIFT_OPEN,
            start_time=now,
            opening_cash=opening,
            sales_total=Decimal("0.00"),
            created_at=now,
            updated_at=now,
        )
        store.insert_shift(shift, assigned)

    return shift


def ensure_shift_open(store, shift_id: int, message: str = "Cannot add sales to a closed shift") -> Shift:
    """Guard for anything that would change a shift's sales."""
    shift = get_shift(store, shift_id)
    if shift.status != SHIFT_OPEN:
        raise InvalidStateError(message)
    return shift


def apply_sales_delta(store, shift_id: int, delta: Decimal, message: str = "Cannot add sales to a closed shift") -> Decimal:
    """
    Move a shift's sales_total by ``delta`` inside the caller's transaction.

    Raises:
        NotFoundError: shift does not exist
        InvalidStateError: shift is CLOSED
    """
    new_total = store.increment_shift_sales(shift_id, delta)
    if new_total is None:
        ensure_shift_open(store, shift_id, message)
        # The shift was OPEN at the guard but not at the UPDATE: it closed in between
        raise InvalidStateError(message)
    return new_total


def record_sale_total(store, shift_id: int, amount) -> Decimal:
    """
    Attribute a sale amount to an OPEN shift and commit.

    Returns:
        The shift's new sales_total
    """
    delta = parse_money(amount, "total_sales")
    with store.transaction():
        return apply_sales_delta(store, shift_id, delta)


def close_shift(
    store,
    shift_id: int,
    closing_cash,
    payment_methods=None,
    notes: str | None = None,
    *,
    variance_threshold: Decimal | None = None,
) -> tuple[Shift, ReconciliationResult]:
    """
    Close a shift and reconcile its payments.

    IMMUTABLE: Once closed, the shift cannot be reopened, and its sales cannot be
    added to, changed or deleted.

    Args:
        closing_cash: Cash counted in the drawer (>= 0)
        payment_methods: [{payment_method, amount, reference?}]; must add up to the
            shift's sales_total within one cent
        notes: Optional closing notes

    Returns:
        (closed shift, reconciliation result with cash_difference)
    """
    closing = parse_money(closing_cash, "closing_cash")
    allocations = normalize_allocations(payment_methods)
    notes = optional_text({"notes": notes}, "notes", max_length=2000)

    with store.transaction():
        # Row lock keeps concurrent sales from moving sales_total under the check
        shift = store.get_shift_for_update(shift_id)
        if not shift:
            raise NotFoundError(f"Shift {shift_id} not found")
        if shift.status != SHIFT_OPEN:
            raise InvalidStateError("Shift is already closed")

        result = reconcile(
            opening_cash=Decimal(str(shift.opening_cash)),
            sales_total=Decimal(str(shift.sales_total)),
            closing_cash=closing,
            allocations=allocations,
            variance_threshold=variance_threshold,
        )

        closed = store.mark_shift_closed(
            shift_id,
            closing_cash=closing,
            cash_difference=result.cash_difference,
            end_time=utcnow(),
            notes=notes,
        )
        if closed is None:
            raise InvalidStateError("Shift is already closed")
        store.insert_payment_methods(shift_id, allocations)

    return closed, result
