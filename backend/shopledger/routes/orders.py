# Overview: Flask API routes for orders; parses input and returns JSON responses.

"""Order API routes with role-based permission enforcement"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_permission
from ..permissions import has_permission
from ..services import order_service
from ..services.auth_service import find_user
from ..services.inventory_service import InventoryError
from ..services.order_service import OrderError


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


def _error_response(e):
    return jsonify({"error": str(e), "details": e.details}), e.status_code


def _orders_payload(orders) -> dict:
    return {"orders": [order.to_dict(include_user=True) for order in orders]}


def _may_view_user(target_user_id: int) -> bool:
    if has_permission(g.current_user.role, "MANAGE_ANY_ORDER"):
        return True
    return target_user_id == g.current_user.id


@orders_bp.get("")
@require_auth
@require_permission("VIEW_ORDERS")
def list_orders_route():
    """
    List orders.

    Admins see every order; customers see their own.
    """
    try:
        orders = order_service.list_orders(user_id=g.current_user.id, role=g.current_user.role)
        return jsonify(_orders_payload(orders)), 200
    except Exception:
        current_app.logger.exception("Failed to list orders")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.post("")
@require_auth
@require_permission("CREATE_ORDER")
def create_order_route():
    """
    Place an order and reserve stock for every line.

    Body: {"products": [{"product_id", "quantity"}], "payment_method", "total_price", "status"?}

    400 on invalid input, unknown product or insufficient stock;
    409 when stock changed concurrently (safe to retry).
    """
    try:
        data = request.get_json(silent=True) or {}

        order = order_service.create_order(
            lines=data.get("products"),
            payment_method=data.get("payment_method"),
            total_price=data.get("total_price"),
            user_id=g.current_user.id,
            status=data.get("status"),
        )
        return jsonify({"order": order.to_dict(include_user=True)}), 201

    except (OrderError, InventoryError) as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.put("/<int:order_id>")
@require_auth
@require_permission("UPDATE_ORDER_STATUS")
def update_order_status_route(order_id: int):
    """
    Change an order's status. Completing an order records its cash flow.

    Customers may only update their own orders.
    """
    try:
        data = request.get_json(silent=True) or {}

        order = order_service.update_order_status(
            order_id=order_id,
            status=data.get("status"),
            user_id=g.current_user.id,
            role=g.current_user.role,
        )
        return jsonify({"order": order.to_dict(include_user=True)}), 200

    except OrderError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update order status")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.delete("/<int:order_id>")
@require_auth
@require_permission("DELETE_OWN_ORDER")
def delete_own_order_route(order_id: int):
    try:
        order_service.delete_order(
            order_id=order_id,
            user_id=g.current_user.id,
            role=g.current_user.role,
        )
        return "", 204

    except OrderError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.delete("/admin/<int:order_id>")
@require_auth
@require_permission("MANAGE_ANY_ORDER")
def delete_any_order_route(order_id: int):
    try:
        order_service.delete_order(
            order_id=order_id,
            user_id=g.current_user.id,
            role=g.current_user.role,
        )
        return "", 204

    except OrderError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete order")
        return jsonify({"error": "Internal server error"}), 500


def _orders_for_user_response(*, user_id=None, username=None):
    user = find_user(user_id=user_id, username=username)
    if user is None:
        return jsonify({"error": "User not found"}), 404
    if not _may_view_user(user.id):
        return jsonify({"error": "Permission denied"}), 403

    orders = order_service.list_orders_for_user(target_user_id=user.id)
    return jsonify(_orders_payload(orders)), 200


@orders_bp.get("/user/<int:user_id>")
@require_auth
@require_permission("VIEW_ORDERS")
def list_orders_by_user_id_route(user_id: int):
    try:
        return _orders_for_user_response(user_id=user_id)
    except Exception:
        current_app.logger.exception("Failed to list orders for user")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("/user")
@require_auth
@require_permission("VIEW_ORDERS")
def list_orders_by_user_lookup_route():
    """Query params: id or username (id wins when both are given)."""
    user_id = request.args.get("id", type=int)
    username = request.args.get("username")

    if user_id is None and not username:
        return jsonify({"error": "id or username is required"}), 400

    try:
        return _orders_for_user_response(user_id=user_id, username=username)
    except Exception:
        current_app.logger.exception("Failed to list orders for user")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("/order/<int:order_id>")
@require_auth
@require_permission("VIEW_ORDERS")
def get_order_route(order_id: int):
    try:
        order = order_service.get_order(order_id)
        # Hide other users' orders from customers
        if not _may_view_user(order.user_id):
            return jsonify({"error": "Order not found"}), 404
        return jsonify({"order": order.to_dict(include_user=True)}), 200
    except OrderError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to fetch order")
        return jsonify({"error": "Internal server error"}), 500
