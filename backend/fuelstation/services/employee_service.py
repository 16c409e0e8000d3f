# Overview: Service-layer operations for employees and their API tokens.

"""
Employee Token Service

WHY: Writes are attributed to the employee who made them. Each employee holds one
bearer token, issued once from the CLI; only its SHA-256 hash is stored.

SECURITY FEATURES:
- Cryptographically secure random tokens (32 bytes)
- Tokens hashed with SHA-256 before storage (fast, one-way)
- Only active employees resolve from a token
"""

from __future__ import annotations

import hashlib
import secrets

from ..errors import ValidationError
from ..models import Employee
from ..time_utils import utcnow
from ..validation import optional_text, require_text


def generate_token() -> str:
    """64-character hex string (32 bytes of entropy); returned to the caller once."""
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def authenticate_token(store, token: str | None) -> Employee | None:
    """Active employee owning ``token``, else None."""
    if not token:
        return None
    return store.find_employee_by_token_hash(hash_token(token))


def create_employee(store, name: str, position: str | None = None) -> tuple[Employee, str]:
    """
    Create an employee and issue their token.

    Returns (employee, plaintext_token). The plaintext is never stored.
    """
    data = {"name": name, "position": position}
    token = generate_token()
    employee = Employee(
        name=require_text(data, "name", max_length=128),
        position=optional_text(data, "position", max_length=64),
        status="active",
        api_token_hash=hash_token(token),
        created_at=utcnow(),
    )
    with store.transaction():
        store.add(employee)
    return employee, token


def rotate_token(store, employee_id: int) -> str:
    employee = store.get(Employee, employee_id)
    if not employee:
        raise ValidationError(f"Employee {employee_id} not found")
    token = generate_token()
    with store.transaction():
        employee.api_token_hash = hash_token(token)
        store.flush()
    return token
