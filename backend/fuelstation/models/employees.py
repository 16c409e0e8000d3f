from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Employee(db.Model):
    """
    Station employee.

    Master data is provisioned from the CLI; this table exists so shifts, sales and
    ledger rows can be attributed to a person, and so bearer tokens can be resolved
    to an employee (only the SHA-256 of the token is stored).
    """
    __tablename__ = "employees"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    position = db.Column(db.String(64), nullable=True)
    status = db.Column(db.String(16), nullable=False, default="active", index=True)  # active, inactive

    api_token_hash = db.Column(db.String(64), nullable=True, unique=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Employee id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "position": self.position,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
        }
