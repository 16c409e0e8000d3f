# Overview: Flask API routes for fuel sales; parses input and returns JSON responses.

"""
Sales API Routes

Every sale attached to a shift moves that shift's sales total. Sales on a CLOSED
shift cannot be added, changed or deleted.
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth
from ..errors import StationError, error_response, internal_error_response
from ..services import sales_service
from ..store import get_store


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.get("/")
@sales_bp.get("")
@require_auth
def list_sales_route():
    """
    Query params:
        shift_id, employee_id (optional)
        start_date, end_date: YYYY-MM-DD (optional, inclusive)
    """
    try:
        sales = sales_service.list_sales(
            get_store(),
            shift_id=request.args.get("shift_id", type=int),
            start_date=request.args.get("start_date"),
            end_date=request.args.get("end_date"),
            employee_id=request.args.get("employee_id", type=int),
        )
        return jsonify({"sales": [s.to_dict() for s in sales]}), 200
    except StationError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list sales")
        return internal_error_response()


@sales_bp.post("/")
@sales_bp.post("")
@require_auth
def create_sale_route():
    """
    Record a sale.

    Request body:
    {
        "shift_id": 1,
        "date": "2024-03-15",
        "fuel_type": "diesel",
        "filling_system_id": "pump-2",
        "quantity": 40.5,
        "price_per_unit": 1.799,
        "meter_start": 1200.0,  (optional)
        "meter_end": 1240.5,    (optional)
        "payment_method": "card"  (optional)
    }
    """
    try:
        data = request.get_json(silent=True)
        sale = sales_service.record_sale(get_store(), data, employee_id=g.current_user.id)
        return jsonify({"sale": sale.to_dict()}), 201
    except StationError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to record sale")
        return internal_error_response()


@sales_bp.get("/<int:sale_id>")
@require_auth
def get_sale_route(sale_id: int):
    try:
        sale = sales_service.get_sale(get_store(), sale_id)
        return jsonify({"sale": sale.to_dict()}), 200
    except StationError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load sale")
        return internal_error_response()


@sales_bp.put("/<int:sale_id>")
@require_auth
def update_sale_route(sale_id: int):
    try:
        data = request.get_json(silent=True)
        sale = sales_service.update_sale(get_store(), sale_id, data)
        return jsonify({"sale": sale.to_dict()}), 200
    except StationError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update sale")
        return internal_error_response()


@sales_bp.delete("/<int:sale_id>")
@require_auth
def delete_sale_route(sale_id: int):
    try:
        sales_service.delete_sale(get_store(), sale_id)
        return jsonify({"message": "Sale deleted successfully"}), 200
    except StationError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete sale")
        return internal_error_response()
