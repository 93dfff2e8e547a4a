# Overview: Flask API routes for cash-flow reporting and transactions; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_auth, require_permission
from ..services import cashflow_service, forecast_service, reporting_service
from ..services.cashflow_service import CashFlowError
from ..services.reporting_service import ReportError
from ..validation import ValidationError


cashflow_bp = Blueprint("cashflow", __name__, url_prefix="/api/cash-flow")


def _window_from_args():
    return reporting_service.resolve_window(
        period=request.args.get("period"),
        start=request.args.get("start_date") or request.args.get("start"),
        end=request.args.get("end_date") or request.args.get("end"),
    )


@cashflow_bp.get("/dashboard")
@require_auth
@require_permission("VIEW_CASH_FLOW")
def dashboard_route():
    """
    Totals for the window plus all-time balance, burn rate and runway.

    Query params: period (days, default 30) or start_date/end_date.
    """
    try:
        return jsonify(reporting_service.dashboard(_window_from_args())), 200
    except ReportError as exc:
        return jsonify({"error": str(exc)}), exc.status_code
    except Exception:
        current_app.logger.exception("Failed to build cash flow dashboard")
        return jsonify({"error": "Internal server error"}), 500


@cashflow_bp.get("/dashboard/sync")
@require_auth
@require_permission("MANAGE_CASH_FLOW")
def dashboard_with_sync_route():
    """Dashboard; with sync=true completed orders are reconciled first."""
    sync = request.args.get("sync", "false").lower() == "true"
    try:
        report = reporting_service.dashboard_with_sync(_window_from_args(), sync=sync)
        return jsonify(report), 200
    except ReportError as exc:
        return jsonify({"error": str(exc)}), exc.status_code
    except Exception:
        current_app.logger.exception("Failed to build cash flow dashboard with sync")
        return jsonify({"error": "Internal server error"}), 500


@cashflow_bp.get("/history")
@require_auth
@require_permission("VIEW_CASH_FLOW")
def history_route():
    try:
        return jsonify(reporting_service.history(_window_from_args())), 200
    except ReportError as exc:
        return jsonify({"error": str(exc)}), exc.status_code
    except Exception:
        current_app.logger.exception("Failed to build cash flow history")
        return jsonify({"error": "Internal server error"}), 500


@cashflow_bp.get("/by-category")
@require_auth
@require_permission("VIEW_CASH_FLOW")
def by_category_route():
    try:
        return jsonify(reporting_service.by_category(_window_from_args())), 200
    except ReportError as exc:
        return jsonify({"error": str(exc)}), exc.status_code
    except Exception:
        current_app.logger.exception("Failed to build cash flow category breakdown")
        return jsonify({"error": "Internal server error"}), 500


@cashflow_bp.get("/forecast")
@require_auth
@require_permission("VIEW_CASH_FLOW")
def forecast_route():
    """Query params: days (default 90)."""
    try:
        return jsonify(forecast_service.forecast(days=request.args.get("days"))), 200
    except ReportError as exc:
        return jsonify({"error": str(exc)}), exc.status_code
    except Exception:
        current_app.logger.exception("Failed to build cash flow forecast")
        return jsonify({"error": "Internal server error"}), 500


@cashflow_bp.get("/transactions")
@require_auth
@require_permission("VIEW_CASH_FLOW")
def list_transactions_route():
    """
    Query params:
    - page: int (default 1)
    - limit: int (default 10, max 100)
    - type: inflow | outflow
    - category: exact match
    - start_date / end_date: ISO-8601, inclusive
    """
    try:
        result = cashflow_service.list_transactions(
            page=request.args.get("page", 1, type=int),
            limit=request.args.get("limit", 10, type=int),
            tx_type=request.args.get("type"),
            category=request.args.get("category"),
            start=request.args.get("start_date"),
            end=request.args.get("end_date"),
        )
        return jsonify(result), 200
    except ValidationError as exc:
        return jsonify({"error": str(exc)}), exc.status_code
    except Exception:
        current_app.logger.exception("Failed to list cash flow transactions")
        return jsonify({"error": "Internal server error"}), 500


@cashflow_bp.post("/transactions")
@require_auth
@require_permission("MANAGE_CASH_FLOW")
def create_transaction_route():
    payload = request.get_json(silent=True) or {}
    try:
        tx = cashflow_service.create_transaction(payload)
        return jsonify({"transaction": tx.to_dict()}), 201
    except ValidationError as exc:
        return jsonify({"error": str(exc)}), exc.status_code
    except Exception:
        current_app.logger.exception("Failed to create cash flow transaction")
        return jsonify({"error": "Internal server error"}), 500


@cashflow_bp.get("/transactions/<int:transaction_id>")
@require_auth
@require_permission("VIEW_CASH_FLOW")
def get_transaction_route(transaction_id: int):
    try:
        tx = cashflow_service.get_transaction(transaction_id)
        return jsonify({"transaction": tx.to_dict()}), 200
    except CashFlowError as exc:
        return jsonify({"error": str(exc), "details": exc.details}), exc.status_code
    except Exception:
        current_app.logger.exception("Failed to load cash flow transaction")
        return jsonify({"error": "Internal server error"}), 500


@cashflow_bp.put("/transactions/<int:transaction_id>")
@require_auth
@require_permission("MANAGE_CASH_FLOW")
def update_transaction_route(transaction_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        tx = cashflow_service.update_transaction(transaction_id, payload)
        return jsonify({"transaction": tx.to_dict()}), 200
    except CashFlowError as exc:
        return jsonify({"error": str(exc), "details": exc.details}), exc.status_code
    except ValidationError as exc:
        return jsonify({"error": str(exc)}), exc.status_code
    except Exception:
        current_app.logger.exception("Failed to update cash flow transaction")
        return jsonify({"error": "Internal server error"}), 500


@cashflow_bp.delete("/transactions/<int:transaction_id>")
@require_auth
@require_permission("MANAGE_CASH_FLOW")
def delete_transaction_route(transaction_id: int):
    try:
        cashflow_service.delete_transaction(transaction_id)
        return jsonify({"message": "Transaction deleted successfully"}), 200
    except CashFlowError as exc:
        return jsonify({"error": str(exc), "details": exc.details}), exc.status_code
    except Exception:
        current_app.logger.exception("Failed to delete cash flow transaction")
        return jsonify({"error": "Internal server error"}), 500


@cashflow_bp.post("/sync-orders")
@require_auth
@require_permission("MANAGE_CASH_FLOW")
def sync_orders_route():
    """
    Derive transactions for completed orders that have none yet.

    Body (optional): {"start_date", "end_date"} limits the order_date range.
    """
    data = request.get_json(silent=True) or {}
    try:
        window_start = reporting_service.parse_bound(data.get("start_date"), end_of_day=False)
        window_end = reporting_service.parse_bound(data.get("end_date"), end_of_day=True)
        result = cashflow_service.sync_orders_to_transactions(start=window_start, end=window_end)
        return jsonify(result), 200
    except ReportError as exc:
        return jsonify({"error": str(exc)}), exc.status_code
    except Exception:
        current_app.logger.exception("Failed to sync orders to cash flow transactions")
        return jsonify({"error": "Internal server error"}), 500
