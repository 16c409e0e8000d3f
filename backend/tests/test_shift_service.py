from decimal import Decimal

import pytest

from fuelstation.errors import ConflictError, InvalidStateError, NotFoundError, ValidationError
from fuelstation.models import ShiftPaymentMethod, SHIFT_CLOSED, SHIFT_OPEN
from fuelstation.services import shift_service


def test_start_shift_opens_with_zero_sales(memory_store, staff):
    ana, ben = staff
    shift = shift_service.start_shift(memory_store, 100, [ana.id, ben.id])

    assert shift.status == SHIFT_OPEN
    assert shift.opening_cash == Decimal("100.00")
    assert shift.sales_total == Decimal("0.00")
    assert shift.employee_id == ana.id
    assert shift.start_time is not None
    assert shift.end_time is None
    assert [se.employee_id for se in shift_service.get_shift_employees(memory_store, shift.id)] == [ana.id, ben.id]


def test_start_shift_defaults_to_acting_employee(memory_store, staff):
    ana, _ = staff
    shift = shift_service.start_shift(memory_store, 0, acting_employee_id=ana.id)
    assert shift.employee_id == ana.id


def test_start_shift_dedupes_employee_ids(memory_store, staff):
    ana, _ = staff
    shift = shift_service.start_shift(memory_store, 0, [ana.id, ana.id])
    assert len(shift_service.get_shift_employees(memory_store, shift.id)) == 1


@pytest.mark.parametrize("opening_cash", [-1, None, "abc", True])
def test_start_shift_rejects_bad_opening_cash(memory_store, staff, opening_cash):
    with pytest.raises(ValidationError):
        shift_service.start_shift(memory_store, opening_cash, [staff[0].id])


def test_start_shift_requires_an_employee(memory_store):
    with pytest.raises(ValidationError):
        shift_service.start_shift(memory_store, 10, [])


def test_start_shift_unknown_employee(memory_store, staff):
    with pytest.raises(NotFoundError):
        shift_service.start_shift(memory_store, 10, [staff[0].id, 999])


def test_second_open_shift_conflicts_station_wide(memory_store, staff):
    ana, ben = staff
    shift_service.start_shift(memory_store, 100, [ana.id])
    with pytest.raises(ConflictError):
        shift_service.start_shift(memory_store, 50, [ben.id])


def test_employee_scope_allows_one_open_shift_per_employee(memory_store, staff):
    ana, ben = staff
    scope = shift_service.SCOPE_EMPLOYEE
    shift_service.start_shift(memory_store, 100, [ana.id], scope=scope)
    shift_service.start_shift(memory_store, 100, [ben.id], scope=scope)

    with pytest.raises(ConflictError):
        shift_service.start_shift(memory_store, 100, [ana.id], scope=scope)


def test_scenario_balanced_close(memory_store, staff):
    shift = shift_service.start_shift(memory_store, 100, [staff[0].id])
    shift_service.record_sale_total(memory_store, shift.id, 50)
    assert shift_service.record_sale_total(memory_store, shift.id, 30) == Decimal("80.00")

    closed, result = shift_service.close_shift(
        memory_store, shift.id, 180, [{"payment_method": "cash", "amount": 80}]
    )

    assert closed.status == SHIFT_CLOSED
    assert closed.end_time is not None
    assert closed.closing_cash == Decimal("180.00")
    assert closed.cash_difference == Decimal("0.00")
    assert result.cash_difference == Decimal("0.00")
    assert [r.amount for r in shift_service.get_shift_payment_methods(memory_store, shift.id)] == [Decimal("80.00")]


def test_scenario_allocation_mismatch_keeps_shift_open(memory_store, staff):
    shift = shift_service.start_shift(memory_store, 100, [staff[0].id])
    shift_service.record_sale_total(memory_store, shift.id, 80)

    with pytest.raises(ValidationError):
        shift_service.close_shift(
            memory_store,
            shift.id,
            180,
            [{"payment_method": "cash", "amount": 50}, {"payment_method": "card", "amount": 20}],
        )

    assert shift.status == SHIFT_OPEN
    assert shift.closing_cash is None
    assert memory_store.all(ShiftPaymentMethod) == []


def test_scenario_sale_against_closed_shift(memory_store, staff):
    shift = shift_service.start_shift(memory_store, 100, [staff[0].id])
    shift_service.record_sale_total(memory_store, shift.id, 40)
    shift_service.close_shift(memory_store, shift.id, 140, [{"payment_method": "cash", "amount": 40}])

    with pytest.raises(InvalidStateError):
        shift_service.record_sale_total(memory_store, shift.id, 10)
    assert shift.sales_total == Decimal("40.00")


def test_close_reports_short_drawer(memory_store, staff):
    shift = shift_service.start_shift(memory_store, 100, [staff[0].id])
    shift_service.record_sale_total(memory_store, shift.id, 60)

    closed, result = shift_service.close_shift(
        memory_store,
        shift.id,
        150,
        [{"payment_method": "cash", "amount": 40}, {"payment_method": "card", "amount": 20}],
        variance_threshold=Decimal("5"),
    )

    assert closed.cash_difference == Decimal("-10.00")
    assert result.status == "short"
    assert result.requires_review is True


def test_close_with_no_sales_needs_no_payment_methods(memory_store, staff):
    shift = shift_service.start_shift(memory_store, 100, [staff[0].id])
    closed, result = shift_service.close_shift(memory_store, shift.id, 100)
    assert closed.status == SHIFT_CLOSED
    assert result.allocated_total == Decimal("0.00")


def test_close_twice_is_invalid_state(memory_store, staff):
    shift = shift_service.start_shift(memory_store, 0, [staff[0].id])
    shift_service.close_shift(memory_store, shift.id, 0)
    with pytest.raises(InvalidStateError):
        shift_service.close_shift(memory_store, shift.id, 0)


def test_close_unknown_shift(memory_store):
    with pytest.raises(NotFoundError):
        shift_service.close_shift(memory_store, 42, 0)


def test_closed_shift_frees_the_slot(memory_store, staff):
    ana, ben = staff
    first = shift_service.start_shift(memory_store, 0, [ana.id])
    shift_service.close_shift(memory_store, first.id, 0)

    second = shift_service.start_shift(memory_store, 0, [ben.id])
    assert shift_service.get_system_active_shift(memory_store) is second


def test_active_shift_prefers_the_employees_own(memory_store, staff):
    ana, ben = staff
    shift = shift_service.start_shift(memory_store, 0, [ana.id])

    assert shift_service.get_active_shift(memory_store, ana.id) == (shift, True)
    assert shift_service.get_active_shift(memory_store, ben.id) == (shift, False)


def test_no_active_shift(memory_store, staff):
    assert shift_service.get_active_shift(memory_store, staff[0].id) == (None, False)


def test_list_shifts_rejects_unknown_status(memory_store):
    with pytest.raises(ValidationError):
        shift_service.list_shifts(memory_store, status="PAUSED")


def test_sub_cent_allocation_cannot_close_a_shift(memory_store, staff):
    shift = shift_service.start_shift(memory_store, 0, [staff[0].id])

    with pytest.raises(ValidationError):
        shift_service.close_shift(memory_store, shift.id, 0, [{"payment_method": "cash", "amount": "0.004"}])

    assert shift.status == SHIFT_OPEN
    assert memory_store.all(ShiftPaymentMethod) == []
