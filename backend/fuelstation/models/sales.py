from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, to_iso_date
from ..validation import as_float


class Sale(db.Model):
    """
    Fuel sale dispensed through a filling system.

    total_sales is always quantity * price_per_unit rounded to cents; it is what the
    owning shift's sales_total is incremented by.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_shift_date", "shift_id", "date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shift_id = db.Column(db.Integer, db.ForeignKey("shifts.id"), nullable=True, index=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=True, index=True)

    filling_system_id = db.Column(db.String(64), nullable=False)
    fuel_type = db.Column(db.String(64), nullable=False)
    date = db.Column(db.Date, nullable=False, index=True)

    quantity = db.Column(db.Numeric(12, 3), nullable=False)
    price_per_unit = db.Column(db.Numeric(12, 3), nullable=False)
    total_sales = db.Column(db.Numeric(12, 2), nullable=False)

    meter_start = db.Column(db.Numeric(14, 3), nullable=True)
    meter_end = db.Column(db.Numeric(14, 3), nullable=True)

    payment_method = db.Column(db.String(32), nullable=True)
    payment_status = db.Column(db.String(16), nullable=False, default="completed", index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shift_id": self.shift_id,
            "employee_id": self.employee_id,
            "filling_system_id": self.filling_system_id,
            "fuel_type": self.fuel_type,
            "date": to_iso_date(self.date),
            "quantity": as_float(self.quantity),
            "price_per_unit": as_float(self.price_per_unit),
            "total_sales": as_float(self.total_sales),
            "meter_start": as_float(self.meter_start),
            "meter_end": as_float(self.meter_end),
            "payment_method": self.payment_method,
            "payment_status": self.payment_status,
            "created_at": to_utc_z(self.created_at),
        }
