# Overview: Flask API routes for products operations; parses input and returns JSON responses.

"""
Catalog routes.

- Read operations require VIEW_CATALOG permission
- Write operations (create, update, restock, categories) require MANAGE_CATALOG
"""
from flask import Blueprint, request

from ..decorators import require_auth, require_permission
from ..services import catalog_service
from ..services.inventory_service import InventoryError, ProductNotFoundError, restock
from ..validation import ValidationError, ConflictError, NotFoundError

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
@require_permission("VIEW_CATALOG")
def list_products():
    """
    List products.

    Query params:
    - category_id: int (optional)
    - page: int (optional) - page number (1-indexed). If omitted, returns all items.
    - per_page: int (optional) - items per page (default 20, max 100)
    """
    return catalog_service.list_products(
        category_id=request.args.get("category_id", type=int),
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
    )


@products_bp.get("/<int:product_id>")
@require_auth
@require_permission("VIEW_CATALOG")
def get_product(product_id: int):
    try:
        return catalog_service.get_product(product_id).to_dict()
    except NotFoundError as e:
        return {"error": str(e)}, 404


@products_bp.post("")
@require_auth
@require_permission("MANAGE_CATALOG")
def create_product():
    payload = request.get_json(silent=True) or {}
    try:
        product = catalog_service.create_product(payload)
    except ValidationError as e:
        return {"error": str(e)}, 400
    return product.to_dict(), 201


@products_bp.put("/<int:product_id>")
@require_auth
@require_permission("MANAGE_CATALOG")
def update_product(product_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        product = catalog_service.update_product(product_id, payload)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ValidationError as e:
        return {"error": str(e)}, 400
    return product.to_dict()


@products_bp.post("/<int:product_id>/restock")
@require_auth
@require_permission("MANAGE_CATALOG")
def restock_product(product_id: int):
    """Body: {"quantity": int > 0}. Atomic increment."""
    payload = request.get_json(silent=True) or {}
    try:
        product = restock(product_id, payload.get("quantity"))
    except ProductNotFoundError as e:
        # 404 here, unlike during reservation
        return {"error": str(e), "details": e.details}, 404
    except InventoryError as e:
        return {"error": str(e), "details": e.details}, e.status_code
    return product.to_dict()


@products_bp.get("/categories")
@require_auth
@require_permission("VIEW_CATALOG")
def list_categories():
    return {"categories": [c.to_dict() for c in catalog_service.list_categories()]}


@products_bp.post("/categories")
@require_auth
@require_permission("MANAGE_CATALOG")
def create_category():
    payload = request.get_json(silent=True) or {}
    try:
        category = catalog_service.create_category(payload.get("name"))
    except ValidationError as e:
        return {"error": str(e)}, 400
    except ConflictError as e:
        return {"error": str(e)}, 409
    return category.to_dict(), 201
