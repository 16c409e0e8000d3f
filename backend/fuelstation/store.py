"""
Persistence handle for the shift and finance engine.

The services never touch a global session: they receive a store built by the caller
(per request in the HTTP layer, per command in the CLI, a fake in tests). The store
owns no business rules. It does own the two statements that must be atomic at the
database: the sales_total increment and the OPEN -> CLOSED update.

INVARIANTS:
- increment_shift_sales is a single UPDATE ... SET sales_total = sales_total + :delta
  WHERE status = 'OPEN'; there is no read-modify-write in Python.
- mark_shift_closed only matches OPEN rows, so two racing closes cannot both win.
- Nothing is committed until the service calls commit() (or leaves transaction()).
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import date, datetime
from decimal import Decimal
from functools import wraps
from typing import Callable, Iterable

from sqlalchemy import func, select, update
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from .errors import InternalError, StationError, StoreTimeoutError
from .models import (
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
from .periods import DateRange
from .time_utils import utcnow
from .validation import quantize_money


# PostgreSQL SQLSTATE for "canceling statement due to statement timeout"
QUERY_CANCELED_SQLSTATE = "57014"

ENTITY_MODELS = {
    "sale": Sale,
    "expense": Expense,
    "fuel_supply": FuelSupply,
}


def _is_statement_timeout(exc: OperationalError) -> bool:
    orig = exc.orig
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if code == QUERY_CANCELED_SQLSTATE:
        return True
    return "statement timeout" in str(orig).lower()


def store_call(fn):
    """Translate SQLAlchemy failures into the service error kinds."""
    @wraps(fn)
    def wrapper(self, *args, **kwargs):
        try:
            return fn(self, *args, **kwargs)
        except StationError:
            raise
        except OperationalError as exc:
            if _is_statement_timeout(exc):
                raise StoreTimeoutError("Database operation timed out", cause=exc) from exc
            raise InternalError("Database operation failed", cause=exc) from exc
        except SQLAlchemyError as exc:
            raise InternalError("Database operation failed", cause=exc) from exc
    return wrapper


def _money(value) -> Decimal:
    if value is None:
        return Decimal("0.00")
    return quantize_money(Decimal(str(value)))


class SqlStore:
    """
    SQLAlchemy-backed store.

    Args:
        session_factory: zero-argument callable returning a Session (for Flask,
            ``lambda: db.session``)
    """

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory
        self._session: Session | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def open(self) -> "SqlStore":
        if self._session is None:
            self._session = self._session_factory()
        return self

    def close(self) -> None:
        if self._session is not None:
            self._session.close()
            self._session = None

    @property
    def session(self) -> Session:
        if self._session is None:
            raise InternalError("Store is not open")
        return self._session

    @store_call
    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        if self._session is not None:
            self._session.rollback()

    @contextmanager
    def transaction(self):
        """Commit on success; roll back and re-raise on any failure."""
        try:
            yield self
            self.commit()
        except BaseException:
            self.rollback()
            raise

    # ------------------------------------------------------------------
    # Generic
    # ------------------------------------------------------------------

    @store_call
    def add(self, obj):
        self.session.add(obj)
        self.session.flush()  # assigns obj.id without committing
        return obj

    @store_call
    def add_all(self, objs: Iterable) -> list:
        objs = list(objs)
        self.session.add_all(objs)
        self.session.flush()
        return objs

    @store_call
    def delete(self, obj) -> None:
        self.session.delete(obj)
        self.session.flush()

    @store_call
    def flush(self) -> None:
        self.session.flush()

    @store_call
    def get(self, model, obj_id: int):
        return self.session.get(model, obj_id)

    def entity_exists(self, entity_type: str, entity_id: int) -> bool:
        model = ENTITY_MODELS[entity_type]
        return self.get(model, entity_id) is not None

    # ------------------------------------------------------------------
    # Employees
    # ------------------------------------------------------------------

    @store_call
    def get_employees(self, employee_ids: Iterable[int]) -> list[Employee]:
        ids = list(employee_ids)
        if not ids:
            return []
        return self.session.query(Employee).filter(Employee.id.in_(ids)).all()

    @store_call
    def find_employee_by_token_hash(self, token_hash: str) -> Employee | None:
        return self.session.query(Employee).filter_by(
            api_token_hash=token_hash,
            status="active",
        ).first()

    @store_call
    def list_employees(self) -> list[Employee]:
        return self.session.query(Employee).order_by(Employee.id).all()

    # ------------------------------------------------------------------
    # Shifts
    # ------------------------------------------------------------------

    def get_shift(self, shift_id: int) -> Shift | None:
        return self.get(Shift, shift_id)

    @store_call
    def get_shift_for_update(self, shift_id: int) -> Shift | None:
        """
        Load a shift with a row lock held until commit.

        NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
        """
        return self.session.query(Shift).filter_by(
            id=shift_id
        ).with_for_update().populate_existing().first()

    @store_call
    def list_shifts(self, *, status: str | None = None, limit: int = 50) -> list[Shift]:
        query = self.session.query(Shift)
        if status:
            query = query.filter(Shift.status == status)
        return query.order_by(Shift.start_time.desc(), Shift.id.desc()).limit(limit).all()

    @store_call
    def find_open_shift(self) -> Shift | None:
        """Most recently started OPEN shift, station-wide."""
        return self.session.query(Shift).filter(
            Shift.status == SHIFT_OPEN
        ).order_by(Shift.start_time.desc(), Shift.id.desc()).first()

    @store_call
    def find_open_shift_for_employee(self, employee_id: int) -> Shift | None:
        assigned = select(ShiftEmployee.shift_id).where(ShiftEmployee.employee_id == employee_id)
        return self.session.query(Shift).filter(
            Shift.status == SHIFT_OPEN,
            (Shift.employee_id == employee_id) | Shift.id.in_(assigned),
        ).order_by(Shift.start_time.desc(), Shift.id.desc()).first()

    @store_call
    def insert_shift(self, shift: Shift, employee_ids: Iterable[int]) -> Shift:
        self.session.add(shift)
        self.session.flush()
        for employee_id in employee_ids:
            self.session.add(ShiftEmployee(shift_id=shift.id, employee_id=employee_id, created_at=utcnow()))
        self.session.flush()
        return shift

    @store_call
    def list_shift_employees(self, shift_id: int) -> list[ShiftEmployee]:
        return self.session.query(ShiftEmployee).filter_by(
            shift_id=shift_id
        ).order_by(ShiftEmployee.id).all()

    @store_call
    def increment_shift_sales(self, shift_id: int, delta: Decimal) -> Decimal | None:
        """
        Atomically add ``delta`` to an OPEN shift's sales_total.

        Returns the new total, or None when no OPEN shift with that id exists
        (missing or already CLOSED); the caller decides which error that is.
        """
        self.session.flush()
        table = Shift.__table__
        result = self.session.execute(
            update(table)
            .where(table.c.id == shift_id, table.c.status == SHIFT_OPEN)
            .values(sales_total=table.c.sales_total + delta, updated_at=utcnow())
        )
        if result.rowcount == 0:
            return None
        shift = self.session.get(Shift, shift_id, populate_existing=True)
        return _money(shift.sales_total)

    @store_call
    def mark_shift_closed(
        self,
        shift_id: int,
        *,
        closing_cash: Decimal,
        cash_difference: Decimal,
        end_time: datetime,
        notes: str | None = None,
    ) -> Shift | None:
        """Conditional OPEN -> CLOSED update; None if the shift was not OPEN."""
        self.session.flush()
        table = Shift.__table__
        result = self.session.execute(
            update(table)
            .where(table.c.id == shift_id, table.c.status == SHIFT_OPEN)
            .values(
                status=SHIFT_CLOSED,
                closing_cash=closing_cash,
                cash_difference=cash_difference,
                end_time=end_time,
                notes=notes,
                updated_at=utcnow(),
            )
        )
        if result.rowcount == 0:
            return None
        return self.session.get(Shift, shift_id, populate_existing=True)

    @store_call
    def insert_payment_methods(self, shift_id: int, allocations: Iterable[dict]) -> list[ShiftPaymentMethod]:
        rows = [
            ShiftPaymentMethod(
                shift_id=shift_id,
                payment_method=alloc["payment_method"],
                amount=alloc["amount"],
                reference=alloc.get("reference"),
                created_at=utcnow(),
            )
            for alloc in allocations
        ]
        self.session.add_all(rows)
        self.session.flush()
        return rows

    @store_call
    def list_payment_methods(self, shift_id: int) -> list[ShiftPaymentMethod]:
        return self.session.query(ShiftPaymentMethod).filter_by(
            shift_id=shift_id
        ).order_by(ShiftPaymentMethod.id).all()

    # ------------------------------------------------------------------
    # Sales, expenses, fuel supplies
    # ------------------------------------------------------------------

    @store_call
    def list_sales(
        self,
        *,
        shift_id: int | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
        employee_id: int | None = None,
    ) -> list[Sale]:
        query = self.session.query(Sale)
        if shift_id is not None:
            query = query.filter(Sale.shift_id == shift_id)
        if start_date:
            query = query.filter(Sale.date >= start_date)
        if end_date:
            query = query.filter(Sale.date <= end_date)
        if employee_id is not None:
            query = query.filter(Sale.employee_id == employee_id)
        return query.order_by(Sale.date.desc(), Sale.id.desc()).all()

    @store_call
    def list_expenses(
        self,
        *,
        start_date: date | None = None,
        end_date: date | None = None,
        category: str | None = None,
        payment_status: str | None = None,
    ) -> list[Expense]:
        query = self.session.query(Expense)
        if start_date:
            query = query.filter(Expense.date >= start_date)
        if end_date:
            query = query.filter(Expense.date <= end_date)
        if category:
            query = query.filter(Expense.category == category)
        if payment_status:
            query = query.filter(Expense.payment_status == payment_status)
        return query.order_by(Expense.date.desc(), Expense.id.desc()).all()

    @store_call
    def list_fuel_supplies(
        self,
        *,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> list[FuelSupply]:
        query = self.session.query(FuelSupply)
        if start_date:
            query = query.filter(FuelSupply.delivery_date >= start_date)
        if end_date:
            query = query.filter(FuelSupply.delivery_date <= end_date)
        return query.order_by(FuelSupply.delivery_date.desc(), FuelSupply.id.desc()).all()

    @store_call
    def sum_sales(self, date_range: DateRange) -> Decimal:
        value = self.session.query(
            func.coalesce(func.sum(Sale.total_sales), 0)
        ).filter(
            Sale.date >= date_range.start_date,
            Sale.date <= date_range.end_date,
        ).scalar()
        return _money(value)

    @store_call
    def sum_expenses(self, date_range: DateRange) -> Decimal:
        value = self.session.query(
            func.coalesce(func.sum(Expense.amount), 0)
        ).filter(
            Expense.date >= date_range.start_date,
            Expense.date <= date_range.end_date,
        ).scalar()
        return _money(value)

    @store_call
    def sum_fuel_costs(self, date_range: DateRange) -> Decimal:
        value = self.session.query(
            func.coalesce(func.sum(FuelSupply.total_cost), 0)
        ).filter(
            FuelSupply.delivery_date >= date_range.start_date,
            FuelSupply.delivery_date <= date_range.end_date,
        ).scalar()
        return _money(value)

    # ------------------------------------------------------------------
    # Ledger and snapshots
    # ------------------------------------------------------------------

    @store_call
    def list_transactions(
        self,
        *,
        entity_type: str | None = None,
        entity_id: int | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[Transaction]:
        query = self.session.query(Transaction)
        if entity_type:
            query = query.filter(Transaction.entity_type == entity_type)
        if entity_id is not None:
            query = query.filter(Transaction.entity_id == entity_id)
        if start:
            query = query.filter(Transaction.created_at >= start)
        if end:
            query = query.filter(Transaction.created_at <= end)
        return query.order_by(Transaction.created_at.desc(), Transaction.id.desc()).all()

    @store_call
    def list_summaries(self, date_range: DateRange | None = None) -> list[ProfitLossSummary]:
        query = self.session.query(ProfitLossSummary)
        if date_range is not None:
            query = query.filter(
                ProfitLossSummary.created_at >= date_range.start,
                ProfitLossSummary.created_at <= date_range.end,
            )
        return query.order_by(ProfitLossSummary.created_at.desc(), ProfitLossSummary.id.desc()).all()


# ----------------------------------------------------------------------
# Flask request scope
# ----------------------------------------------------------------------

def get_store() -> SqlStore:
    """Store bound to the current app context, opened on first use."""
    from flask import g
    from .extensions import db

    if "store" not in g:
        g.store = SqlStore(lambda: db.session).open()
    return g.store


def close_store(exc=None) -> None:
    from flask import g

    store = g.pop("store", None)
    if store is not None:
        if exc is not None:
            store.rollback()
        store.close()
