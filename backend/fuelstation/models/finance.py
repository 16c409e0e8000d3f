from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, to_iso_date
from ..validation import as_float


class Expense(db.Model):
    """Operating expense. Once payment_status is "completed" it can no longer be deleted."""
    __tablename__ = "expenses"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=True, index=True)

    amount = db.Column(db.Numeric(12, 2), nullable=False)
    category = db.Column(db.String(64), nullable=False, index=True)
    description = db.Column(db.String(255), nullable=True)
    date = db.Column(db.Date, nullable=False, index=True)

    payment_method = db.Column(db.String(32), nullable=True)
    payment_status = db.Column(db.String(16), nullable=False, default="pending", index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "employee_id": self.employee_id,
            "amount": as_float(self.amount),
            "category": self.category,
            "description": self.description,
            "date": to_iso_date(self.date),
            "payment_method": self.payment_method,
            "payment_status": self.payment_status,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class FuelSupply(db.Model):
    """Fuel delivery from a provider. total_cost = quantity_liters * price_per_liter."""
    __tablename__ = "fuel_supplies"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=True, index=True)

    fuel_type = db.Column(db.String(64), nullable=False)
    provider_name = db.Column(db.String(128), nullable=True)
    quantity_liters = db.Column(db.Numeric(12, 3), nullable=False)
    price_per_liter = db.Column(db.Numeric(12, 3), nullable=False)
    total_cost = db.Column(db.Numeric(12, 2), nullable=False)
    delivery_date = db.Column(db.Date, nullable=False, index=True)

    payment_method = db.Column(db.String(32), nullable=True)
    payment_status = db.Column(db.String(16), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "employee_id": self.employee_id,
            "fuel_type": self.fuel_type,
            "provider_name": self.provider_name,
            "quantity_liters": as_float(self.quantity_liters),
            "price_per_liter": as_float(self.price_per_liter),
            "total_cost": as_float(self.total_cost),
            "delivery_date": to_iso_date(self.delivery_date),
            "payment_method": self.payment_method,
            "payment_status": self.payment_status,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Transaction(db.Model):
    """
    Append-only financial ledger.

    Rows are written as a side effect of financial events (completed expense,
    paid fuel delivery) or appended directly. There is no update or delete path.
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.Index("ix_transactions_entity", "entity_type", "entity_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=True, index=True)

    amount = db.Column(db.Numeric(12, 2), nullable=False)
    payment_method = db.Column(db.String(32), nullable=False)
    payment_status = db.Column(db.String(16), nullable=False)

    entity_type = db.Column(db.String(32), nullable=True)  # sale, expense, fuel_supply
    entity_id = db.Column(db.Integer, nullable=True)
    description = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "employee_id": self.employee_id,
            "amount": as_float(self.amount),
            "payment_method": self.payment_method,
            "payment_status": self.payment_status,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "description": self.description,
            "created_at": to_utc_z(self.created_at),
        }


class ProfitLossSummary(db.Model):
    """
    Saved profit/loss snapshot.

    One row per "generate and save" call; repeated calls for the same period add rows.
    Readers wanting current figures take the latest created_at.
    """
    __tablename__ = "profit_loss_summary"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    period = db.Column(db.String(64), nullable=False, index=True)
    period_type = db.Column(db.String(16), nullable=True)

    total_sales = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total_expenses = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    profit = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "period": self.period,
            "period_type": self.period_type,
            "total_sales": as_float(self.total_sales),
            "total_expenses": as_float(self.total_expenses),
            "profit": as_float(self.profit),
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
