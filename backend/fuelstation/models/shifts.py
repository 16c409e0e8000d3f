from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z
from ..validation import as_float


SHIFT_OPEN = "OPEN"
SHIFT_CLOSED = "CLOSED"


class Shift(db.Model):
    """
    Cashier shift at the station till.

    LIFECYCLE:
    - OPEN: sales may be recorded; sales_total only moves through the atomic
      increment in the store
    - CLOSED: closing cash counted, cash_difference computed, payment-method rows
      written. Terminal; there is no reopen.
    """
    __tablename__ = "shifts"
    __table_args__ = (
        db.Index("ix_shifts_status_start", "status", "start_time"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=True, index=True)

    status = db.Column(db.String(16), nullable=False, default=SHIFT_OPEN, index=True)  # OPEN, CLOSED

    start_time = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    end_time = db.Column(db.DateTime(timezone=True), nullable=True)

    opening_cash = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    closing_cash = db.Column(db.Numeric(12, 2), nullable=True)  # Set when closing
    sales_total = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    cash_difference = db.Column(db.Numeric(12, 2), nullable=True)  # closing - (opening + sales)

    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    employee = db.relationship("Employee", foreign_keys=[employee_id])

    @property
    def is_open(self) -> bool:
        return self.status == SHIFT_OPEN

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "employee_id": self.employee_id,
            "status": self.status,
            "is_active": self.is_open,
            "start_time": to_utc_z(self.start_time),
            "end_time": to_utc_z(self.end_time) if self.end_time else None,
            "opening_cash": as_float(self.opening_cash),
            "closing_cash": as_float(self.closing_cash),
            "sales_total": as_float(self.sales_total),
            "cash_difference": as_float(self.cash_difference),
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class ShiftEmployee(db.Model):
    """Employees assigned to a shift (the first one is also Shift.employee_id)."""
    __tablename__ = "shift_employees"
    __table_args__ = (
        db.UniqueConstraint("shift_id", "employee_id", name="uq_shift_employees_pair"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shift_id = db.Column(db.Integer, db.ForeignKey("shifts.id"), nullable=False, index=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    employee = db.relationship("Employee")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shift_id": self.shift_id,
            "employee_id": self.employee_id,
            "employee_name": self.employee.name if self.employee else None,
            "employee_position": self.employee.position if self.employee else None,
            "created_at": to_utc_z(self.created_at),
        }


class ShiftPaymentMethod(db.Model):
    """
    Payment-method allocation recorded when a shift is closed.

    The amounts across a shift's rows add up to its final sales_total (within one cent).
    """
    __tablename__ = "shift_payment_methods"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    shift_id = db.Column(db.Integer, db.ForeignKey("shifts.id"), nullable=False, index=True)
    payment_method = db.Column(db.String(32), nullable=False)  # cash, card, bank_transfer, mobile_payment
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    reference = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shift_id": self.shift_id,
            "payment_method": self.payment_method,
            "amount": as_float(self.amount),
            "reference": self.reference,
            "created_at": to_utc_z(self.created_at),
        }
