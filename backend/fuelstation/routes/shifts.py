# Overview: Flask API routes for shift operations; parses input and returns JSON responses.

"""
Shift API Routes

WHY: Cashiers open a shift at the start of their turn, sales are attributed to it,
and closing it reconciles the drawer against what was sold.

DESIGN:
- Shift lifecycle: open -> close (immutable once closed)
- One OPEN shift station-wide by default (SHIFT_SCOPE=employee: one per employee)
- Close requires the payment-method split to match the shift's sales total
"""

from decimal import Decimal

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth
from ..errors import StationError, error_response, internal_error_response
from ..services import sales_service, shift_service
from ..services.reconciliation_service import summarize_payment_methods
from ..store import get_store


shifts_bp = Blueprint("shifts", __name__, url_prefix="/api/shifts")


def _variance_threshold() -> Decimal | None:
    raw = current_app.config.get("CASH_VARIANCE_REVIEW_THRESHOLD")
    if raw is None or raw == "":
        return None
    return Decimal(str(raw))


def _shift_detail(store, shift) -> dict:
    result = shift.to_dict()
    result["employees"] = [se.to_dict() for se in shift_service.get_shift_employees(store, shift.id)]
    return result


@shifts_bp.get("/")
@shifts_bp.get("")
@require_auth
def list_shifts_route():
    """
    List the latest shifts, newest first.

    Query params:
        status: OPEN or CLOSED (optional)
        limit: max rows (default 50)
    """
    try:
        status = request.args.get("status")
        limit = request.args.get("limit", 50, type=int)
        shifts = shift_service.list_shifts(get_store(), status=status, limit=min(max(limit, 1), 200))
        return jsonify({"shifts": [s.to_dict() for s in shifts]}), 200
    except StationError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list shifts")
        return internal_error_response()


@shifts_bp.post("/")
@shifts_bp.post("")
@require_auth
def start_shift_route():
    """
    Open a new shift.

    Request body:
    {
        "opening_cash": 100.00,
        "employee_ids": [1, 2]  (optional; defaults to the caller)
    }

    Returns 409 if an open shift already exists.
    """
    try:
        data = request.get_json(silent=True) or {}
        store = get_store()

        shift = shift_service.start_shift(
            store,
            data.get("opening_cash"),
            data.get("employee_ids"),
            acting_employee_id=g.current_user.id,
            scope=current_app.config.get("SHIFT_SCOPE", shift_service.SCOPE_SYSTEM),
        )
        current_app.logger.info(
            "Shift %s opened by employee %s with opening cash %s",
            shift.id, g.current_user.id, shift.opening_cash,
        )
        return jsonify({"shift": _shift_detail(store, shift)}), 201

    except StationError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to start shift")
        return internal_error_response()


@shifts_bp.get("/active")
@require_auth
def active_shift_route():
    """The caller's OPEN shift, falling back to the station-wide one."""
    try:
        store = get_store()
        shift, is_user_specific = shift_service.get_active_shift(store, g.current_user.id)
        if not shift:
            return jsonify({"error": "No active shift found", "kind": "not_found"}), 404
        return jsonify({
            "shift": _shift_detail(store, shift),
            "is_user_specific": is_user_specific,
        }), 200
    except StationError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load active shift")
        return internal_error_response()


@shifts_bp.get("/system-active")
@require_auth
def system_active_shift_route():
    try:
        store = get_store()
        shift = shift_service.get_system_active_shift(store)
        if not shift:
            return jsonify({"error": "No active shift found", "kind": "not_found"}), 404
        return jsonify({"shift": _shift_detail(store, shift)}), 200
    except StationError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load system active shift")
        return internal_error_response()


@shifts_bp.get("/<int:shift_id>")
@require_auth
def get_shift_route(shift_id: int):
    try:
        store = get_store()
        shift = shift_service.get_shift(store, shift_id)
        return jsonify({"shift": _shift_detail(store, shift)}), 200
    except StationError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load shift")
        return internal_error_response()


@shifts_bp.post("/<int:shift_id>/close")
@require_auth
def close_shift_route(shift_id: int):
    """
    Close a shift and calculate cash variance.

    Request body:
    {
        "closing_cash": 180.00,  // Actual cash counted
        "payment_methods": [
            {"payment_method": "cash", "amount": 60.00},
            {"payment_method": "card", "amount": 20.00, "reference": "batch 42"}
        ],
        "notes": "Quiet evening"  (optional)
    }

    Variance: closing_cash - (opening_cash + sales_total).
    Shift becomes immutable after closing.
    """
    try:
        data = request.get_json(silent=True) or {}

        shift, result = shift_service.close_shift(
            get_store(),
            shift_id,
            data.get("closing_cash"),
            data.get("payment_methods"),
            data.get("notes"),
            variance_threshold=_variance_threshold(),
        )

        current_app.logger.info(
            "Shift %s closed by employee %s: sales %s, cash difference %s",
            shift.id, g.current_user.id, result.sales_total, result.cash_difference,
        )
        if result.requires_review:
            current_app.logger.warning(
                "Shift %s cash difference %s exceeds review threshold",
                shift.id, result.cash_difference,
            )

        return jsonify({
            "shift": shift.to_dict(),
            "reconciliation": result.to_dict(),
        }), 200

    except StationError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to close shift")
        return internal_error_response()


@shifts_bp.get("/<int:shift_id>/payment-methods")
@require_auth
def shift_payment_methods_route(shift_id: int):
    try:
        rows = shift_service.get_shift_payment_methods(get_store(), shift_id)
        return jsonify({
            "payment_methods": [r.to_dict() for r in rows],
            "summary": summarize_payment_methods(rows),
        }), 200
    except StationError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load shift payment methods")
        return internal_error_response()


@shifts_bp.get("/<int:shift_id>/sales")
@require_auth
def shift_sales_route(shift_id: int):
    try:
        store = get_store()
        shift_service.get_shift(store, shift_id)
        sales = sales_service.list_sales(store, shift_id=shift_id)
        return jsonify({"sales": [s.to_dict() for s in sales]}), 200
    except StationError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list shift sales")
        return internal_error_response()
