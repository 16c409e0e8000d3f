# Overview: Flask API routes for expenses, fuel deliveries and the transaction ledger.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth
from ..errors import StationError, error_response, internal_error_response
from ..services import finance_service
from ..store import get_store


finance_bp = Blueprint("finance", __name__, url_prefix="/api")


# =============================================================================
# EXPENSES
# =============================================================================

@finance_bp.get("/expenses")
@require_auth
def list_expenses_route():
    try:
        expenses = finance_service.list_expenses(
            get_store(),
            start_date=request.args.get("start_date"),
            end_date=request.args.get("end_date"),
            category=request.args.get("category"),
            payment_status=request.args.get("payment_status"),
        )
        return jsonify({"expenses": [e.to_dict() for e in expenses]}), 200
    except StationError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list expenses")
        return internal_error_response()


@finance_bp.post("/expenses")
@require_auth
def create_expense_route():
    """
    Request body:
    {
        "amount": 250.00,
        "category": "utilities",
        "date": "2024-03-01",
        "description": "Electricity",  (optional)
        "payment_method": "bank_transfer",  (optional)
        "payment_status": "completed"  (optional, default pending)
    }
    """
    try:
        data = request.get_json(silent=True)
        expense = finance_service.create_expense(get_store(), data, employee_id=g.current_user.id)
        return jsonify({"expense": expense.to_dict()}), 201
    except StationError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create expense")
        return internal_error_response()


@finance_bp.get("/expenses/<int:expense_id>")
@require_auth
def get_expense_route(expense_id: int):
    try:
        expense = finance_service.get_expense(get_store(), expense_id)
        return jsonify({"expense": expense.to_dict()}), 200
    except StationError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load expense")
        return internal_error_response()


@finance_bp.put("/expenses/<int:expense_id>")
@require_auth
def update_expense_route(expense_id: int):
    try:
        data = request.get_json(silent=True)
        expense = finance_service.update_expense(get_store(), expense_id, data, employee_id=g.current_user.id)
        return jsonify({"expense": expense.to_dict()}), 200
    except StationError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update expense")
        return internal_error_response()


@finance_bp.delete("/expenses/<int:expense_id>")
@require_auth
def delete_expense_route(expense_id: int):
    try:
        finance_service.delete_expense(get_store(), expense_id)
        return jsonify({"message": "Expense deleted successfully"}), 200
    except StationError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete expense")
        return internal_error_response()


# =============================================================================
# FUEL SUPPLIES
# =============================================================================

@finance_bp.get("/fuel-supplies")
@require_auth
def list_fuel_supplies_route():
    try:
        supplies = finance_service.list_fuel_supplies(
            get_store(),
            start_date=request.args.get("start_date"),
            end_date=request.args.get("end_date"),
        )
        return jsonify({"fuel_supplies": [s.to_dict() for s in supplies]}), 200
    except StationError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list fuel supplies")
        return internal_error_response()


@finance_bp.post("/fuel-supplies")
@require_auth
def create_fuel_supply_route():
    """
    Request body:
    {
        "fuel_type": "petrol",
        "quantity_liters": 5000,
        "price_per_liter": 1.25,
        "delivery_date": "2024-03-02",
        "provider_name": "Acme Fuels",  (optional)
        "payment_method": "bank_transfer",  (optional)
        "payment_status": "completed"  (optional)
    }
    """
    try:
        data = request.get_json(silent=True)
        supply = finance_service.create_fuel_supply(get_store(), data, employee_id=g.current_user.id)
        return jsonify({"fuel_supply": supply.to_dict()}), 201
    except StationError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to record fuel supply")
        return internal_error_response()


@finance_bp.get("/fuel-supplies/<int:supply_id>")
@require_auth
def get_fuel_supply_route(supply_id: int):
    try:
        supply = finance_service.get_fuel_supply(get_store(), supply_id)
        return jsonify({"fuel_supply": supply.to_dict()}), 200
    except StationError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load fuel supply")
        return internal_error_response()


@finance_bp.put("/fuel-supplies/<int:supply_id>")
@require_auth
def update_fuel_supply_route(supply_id: int):
    """Partial correction; total_cost is recomputed from quantity and price."""
    try:
        data = request.get_json(silent=True)
        supply = finance_service.update_fuel_supply(get_store(), supply_id, data, employee_id=g.current_user.id)
        current_app.logger.info("Fuel supply %s corrected: total cost %s", supply.id, supply.total_cost)
        return jsonify({"fuel_supply": supply.to_dict()}), 200
    except StationError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update fuel supply")
        return internal_error_response()


@finance_bp.delete("/fuel-supplies/<int:supply_id>")
@require_auth
def delete_fuel_supply_route(supply_id: int):
    try:
        finance_service.delete_fuel_supply(get_store(), supply_id)
        current_app.logger.info("Fuel supply %s deleted", supply_id)
        return jsonify({"message": "Fuel supply deleted successfully"}), 200
    except StationError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete fuel supply")
        return internal_error_response()


# =============================================================================
# TRANSACTIONS (append-only)
# =============================================================================

@finance_bp.get("/transactions")
@require_auth
def list_transactions_route():
    try:
        transactions = finance_service.list_transactions(
            get_store(),
            entity_type=request.args.get("entity_type"),
            entity_id=request.args.get("entity_id", type=int),
            start_date=request.args.get("start_date"),
            end_date=request.args.get("end_date"),
        )
        return jsonify({"transactions": [t.to_dict() for t in transactions]}), 200
    except StationError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list transactions")
        return internal_error_response()


@finance_bp.post("/transactions")
@require_auth
def create_transaction_route():
    try:
        data = request.get_json(silent=True)
        tx = finance_service.create_transaction(get_store(), data, employee_id=g.current_user.id)
        return jsonify({"transaction": tx.to_dict()}), 201
    except StationError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create transaction")
        return internal_error_response()


@finance_bp.get("/transactions/<int:transaction_id>")
@require_auth
def get_transaction_route(transaction_id: int):
    try:
        tx = finance_service.get_transaction(get_store(), transaction_id)
        return jsonify({"transaction": tx.to_dict()}), 200
    except StationError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load transaction")
        return internal_error_response()
