"""
Error kinds raised by the service layer.

Every failure a caller can act on is one of the classes below. Routes switch on the
class (or its ``kind``), never on message text.
"""

from __future__ import annotations


class StationError(Exception):
    """Base class: machine-readable kind, HTTP status, human message."""

    kind = "internal"
    status_code = 500

    def __init__(self, message: str, *, cause: BaseException | None = None):
        super().__init__(message)
        self.message = message
        self.cause = cause

    def to_dict(self) -> dict:
        return {"error": self.message, "kind": self.kind}


class ValidationError(StationError):
    """400-level input problem."""

    kind = "validation"
    status_code = 400


class InvalidStateError(StationError):
    """Operation attempted against a shift (or record) in the wrong state."""

    kind = "invalid_state"
    status_code = 400


class NotFoundError(StationError):
    kind = "not_found"
    status_code = 404


class ConflictError(StationError):
    """409-level business rule conflict (e.g., a second OPEN shift)."""

    kind = "conflict"
    status_code = 409


class StoreTimeoutError(StationError):
    """A store call exceeded the caller-supplied timeout."""

    kind = "timeout"
    status_code = 504


class InternalError(StationError):
    """Unexpected persistence failure; the original exception is kept on ``cause``."""

    kind = "internal"
    status_code = 500


def error_response(exc: StationError):
    """JSON body + status tuple for a Flask route."""
    from flask import jsonify

    return jsonify(exc.to_dict()), exc.status_code


def internal_error_response():
    """Generic 500 body; the caller logs the exception first."""
    from flask import jsonify

    return jsonify({"error": "Internal server error", "kind": "internal"}), 500
