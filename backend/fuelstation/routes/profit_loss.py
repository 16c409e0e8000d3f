from flask import Blueprint, current_app, jsonify, request

from ..decorators import require_auth
from ..errors import StationError, error_response, internal_error_response
from ..periods import PERIOD_MONTH, resolve_period
from ..services import profit_loss_service
from ..store import get_store


profit_loss_bp = Blueprint("profit_loss", __name__, url_prefix="/api/profit-loss")


def _requested_range(args):
    # Older clients send "period_type"
    period_type = args.get("period") or args.get("period_type") or PERIOD_MONTH
    return resolve_period(
        period_type,
        args.get("start_date"),
        args.get("end_date"),
    )


@profit_loss_bp.get("/")
@profit_loss_bp.get("")
@require_auth
def calculate_route():
    include_details = request.args.get("include_details", "false").lower() == "true"
    try:
        report = profit_loss_service.calculate_profit_loss(
            get_store(),
            _requested_range(request.args),
            include_details=include_details,
        )
        return jsonify(report), 200
    except StationError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to calculate profit/loss")
        return internal_error_response()


@profit_loss_bp.get("/summary")
@require_auth
def summary_route():
    try:
        summaries = profit_loss_service.get_profit_loss_summary(get_store(), _requested_range(request.args))
        return jsonify({"summaries": [s.to_dict() for s in summaries]}), 200
    except StationError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list profit/loss summaries")
        return internal_error_response()


@profit_loss_bp.get("/<int:summary_id>")
@require_auth
def get_summary_route(summary_id: int):
    try:
        summary = profit_loss_service.get_profit_loss_by_id(get_store(), summary_id)
        return jsonify({"summary": summary.to_dict()}), 200
    except StationError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load profit/loss summary")
        return internal_error_response()


@profit_loss_bp.post("/")
@profit_loss_bp.post("")
@require_auth
def generate_route():
    """
    Save a snapshot for a period. Not idempotent: every call adds a row.

    Request body:
    {
        "period": "month",  ("period_type" also accepted)
        "start_date": "2024-03-01",  (custom only)
        "end_date": "2024-03-31",    (custom only)
        "notes": "Month end"  (optional)
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        summary = profit_loss_service.generate_and_save_profit_loss(
            get_store(),
            _requested_range(data),
            notes=data.get("notes"),
        )
        current_app.logger.info(
            "Profit/loss snapshot %s saved for %s: profit %s",
            summary.id, summary.period, summary.profit,
        )
        return jsonify({"summary": summary.to_dict()}), 201
    except StationError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to save profit/loss snapshot")
        return internal_error_response()
