"""
In-memory store for service tests.

Implements the same methods as fuelstation.store.SqlStore over plain dicts. Writes
made inside transaction() are undone when the block raises.
"""

from __future__ import annotations

from contextlib import contextmanager
from decimal import Decimal

from fuelstation.models import (
    Employee,
    Expense,
    FuelSupply,
    ProfitLossSummary,
    Sale,
    Shift,
    ShiftEmployee,
    ShiftPaymentMethod,
    Transaction,
    SHIFT_CLOSED,
    SHIFT_OPEN,
)
from fuelstation.time_utils import utcnow
from fuelstation.validation import quantize_money


ENTITY_MODELS = {"sale": Sale, "expense": Expense, "fuel_supply": FuelSupply}


def _money(value) -> Decimal:
    return quantize_money(Decimal(str(value or 0)))


class MemoryStore:
    def __init__(self):
        self.rows: dict[type, dict[int, object]] = {}
        self._next_id: dict[type, int] = {}
        self._undo: list | None = None
        self.commits = 0
        self.rollbacks = 0

    # Lifecycle

    def open(self):
        return self

    def close(self):
        pass

    def commit(self):
        self.commits += 1
        self._undo = None

    def rollback(self):
        self.rollbacks += 1
        if self._undo:
            for action in reversed(self._undo):
                action()
        self._undo = None

    @contextmanager
    def transaction(self):
        self._undo = []
        try:
            yield self
            self.commit()
        except BaseException:
            self.rollback()
            raise

    def _log(self, action):
        if self._undo is not None:
            self._undo.append(action)

    def _set(self, obj, **values):
        old = {key: getattr(obj, key) for key in values}
        for key, value in values.items():
            setattr(obj, key, value)

        def undo():
            for key, value in old.items():
                setattr(obj, key, value)
        self._log(undo)

    # Generic

    def add(self, obj):
        model = type(obj)
        table = self.rows.setdefault(model, {})
        if getattr(obj, "id", None) is None:
            self._next_id[model] = self._next_id.get(model, 0) + 1
            obj.id = self._next_id[model]
        if getattr(obj, "created_at", None) is None:
            obj.created_at = utcnow()
        table[obj.id] = obj
        self._log(lambda: table.pop(obj.id, None))
        return obj

    def add_all(self, objs):
        return [self.add(obj) for obj in objs]

    def delete(self, obj):
        table = self.rows.get(type(obj), {})
        table.pop(obj.id, None)
        self._log(lambda: table.__setitem__(obj.id, obj))

    def flush(self):
        pass

    def get(self, model, obj_id):
        return self.rows.get(model, {}).get(obj_id)

    def all(self, model) -> list:
        return list(self.rows.get(model, {}).values())

    def entity_exists(self, entity_type, entity_id):
        return self.get(ENTITY_MODELS[entity_type], entity_id) is not None

    # Employees

    def get_employees(self, employee_ids):
        return [e for e in self.all(Employee) if e.id in set(employee_ids)]

    def find_employee_by_token_hash(self, token_hash):
        for employee in self.all(Employee):
            if employee.api_token_hash == token_hash and employee.status == "active":
                return employee
        return None

    def list_employees(self):
        return sorted(self.all(Employee), key=lambda e: e.id)

    # Shifts

    def get_shift(self, shift_id):
        return self.get(Shift, shift_id)

    def get_shift_for_update(self, shift_id):
        return self.get(Shift, shift_id)

    def _newest_first(self, shifts):
        return sorted(shifts, key=lambda s: (s.start_time, s.id), reverse=True)

    def list_shifts(self, *, status=None, limit=50):
        shifts = [s for s in self.all(Shift) if status is None or s.status == status]
        return self._newest_first(shifts)[:limit]

    def find_open_shift(self):
        shifts = self._newest_first([s for s in self.all(Shift) if s.status == SHIFT_OPEN])
        return shifts[0] if shifts else None

    def find_open_shift_for_employee(self, employee_id):
        assigned = {se.shift_id for se in self.all(ShiftEmployee) if se.employee_id == employee_id}
        shifts = self._newest_first([
            s for s in self.all(Shift)
            if s.status == SHIFT_OPEN and (s.employee_id == employee_id or s.id in assigned)
        ])
        return shifts[0] if shifts else None

    def insert_shift(self, shift, employee_ids):
        self.add(shift)
        for employee_id in employee_ids:
            self.add(ShiftEmployee(shift_id=shift.id, employee_id=employee_id))
        return shift

    def list_shift_employees(self, shift_id):
        return sorted(
            (se for se in self.all(ShiftEmployee) if se.shift_id == shift_id),
            key=lambda se: se.id,
        )

    def increment_shift_sales(self, shift_id, delta):
        shift = self.get(Shift, shift_id)
        if shift is None or shift.status != SHIFT_OPEN:
            return None
        self._set(shift, sales_total=_money(shift.sales_total) + delta, updated_at=utcnow())
        return _money(shift.sales_total)

    def mark_shift_closed(self, shift_id, *, closing_cash, cash_difference, end_time, notes=None):
        shift = self.get(Shift, shift_id)
        if shift is None or shift.status != SHIFT_OPEN:
            return None
        self._set(
            shift,
            status=SHIFT_CLOSED,
            closing_cash=closing_cash,
            cash_difference=cash_difference,
            end_time=end_time,
            notes=notes,
            updated_at=utcnow(),
        )
        return shift

    def insert_payment_methods(self, shift_id, allocations):
        return [
            self.add(ShiftPaymentMethod(
                shift_id=shift_id,
                payment_method=alloc["payment_method"],
                amount=alloc["amount"],
                reference=alloc.get("reference"),
            ))
            for alloc in allocations
        ]

    def list_payment_methods(self, shift_id):
        return sorted(
            (row for row in self.all(ShiftPaymentMethod) if row.shift_id == shift_id),
            key=lambda row: row.id,
        )

    # Sales, expenses, fuel supplies

    @staticmethod
    def _in_days(day, start_date, end_date):
        if start_date and day < start_date:
            return False
        if end_date and day > end_date:
            return False
        return True

    def list_sales(self, *, shift_id=None, start_date=None, end_date=None, employee_id=None):
        sales = [
            s for s in self.all(Sale)
            if (shift_id is None or s.shift_id == shift_id)
            and (employee_id is None or s.employee_id == employee_id)
            and self._in_days(s.date, start_date, end_date)
        ]
        return sorted(sales, key=lambda s: (s.date, s.id), reverse=True)

    def list_expenses(self, *, start_date=None, end_date=None, category=None, payment_status=None):
        expenses = [
            e for e in self.all(Expense)
            if (not category or e.category == category)
            and (not payment_status or e.payment_status == payment_status)
            and self._in_days(e.date, start_date, end_date)
        ]
        return sorted(expenses, key=lambda e: (e.date, e.id), reverse=True)

    def list_fuel_supplies(self, *, start_date=None, end_date=None):
        supplies = [
            f for f in self.all(FuelSupply)
            if self._in_days(f.delivery_date, start_date, end_date)
        ]
        return sorted(supplies, key=lambda f: (f.delivery_date, f.id), reverse=True)

    def sum_sales(self, date_range):
        return _money(sum(
            (Decimal(str(s.total_sales)) for s in self.all(Sale)
             if self._in_days(s.date, date_range.start_date, date_range.end_date)),
            Decimal("0"),
        ))

    def sum_expenses(self, date_range):
        return _money(sum(
            (Decimal(str(e.amount)) for e in self.all(Expense)
             if self._in_days(e.date, date_range.start_date, date_range.end_date)),
            Decimal("0"),
        ))

    def sum_fuel_costs(self, date_range):
        return _money(sum(
            (Decimal(str(f.total_cost)) for f in self.all(FuelSupply)
             if self._in_days(f.delivery_date, date_range.start_date, date_range.end_date)),
            Decimal("0"),
        ))

    # Ledger and snapshots

    def list_transactions(self, *, entity_type=None, entity_id=None, start=None, end=None):
        rows = [
            t for t in self.all(Transaction)
            if (not entity_type or t.entity_type == entity_type)
            and (entity_id is None or t.entity_id == entity_id)
            and (start is None or t.created_at >= start)
            and (end is None or t.created_at <= end)
        ]
        return sorted(rows, key=lambda t: (t.created_at, t.id), reverse=True)

    def list_summaries(self, date_range=None):
        rows = [
            s for s in self.all(ProfitLossSummary)
            if date_range is None or date_range.start <= s.created_at <= date_range.end
        ]
        return sorted(rows, key=lambda s: (s.created_at, s.id), reverse=True)
