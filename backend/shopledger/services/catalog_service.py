# Overview: Service-layer operations for products and categories.

from __future__ import annotations

from ..extensions import db
from ..models import Category, Product
from ..validation import (
    ConflictError,
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    enforce_rules_product,
    validate_payload,
)

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "name_en", "name_vi", "description_en", "description_vi",
        "image", "category_id", "price", "stock_quantity",
    },
    required_on_create={"name_en", "name_vi", "category_id", "price"},
)

# Stock only moves through orders and restock once the product exists
PRODUCT_MUTABLE_FIELDS = PRODUCT_POLICY.writable_fields - {"stock_quantity"}


def list_categories() -> list[Category]:
    return db.session.query(Category).order_by(Category.name.asc()).all()


def create_category(name) -> Category:
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("name is required")
    name = name.strip()
    if db.session.query(Category).filter_by(name=name).first():
        raise ConflictError(f"Category '{name}' already exists")
    category = Category(name=name)
    db.session.add(category)
    db.session.commit()
    return category


def _require_category(category_id: int) -> None:
    if db.session.get(Category, category_id) is None:
        raise ValidationError(f"Category not found: {category_id}")


def list_products(*, category_id: int | None = None, page: int | None = None, per_page: int | None = None) -> dict:
    base_query = db.session.query(Product).order_by(Product.name_en.asc(), Product.id.asc())
    if category_id is not None:
        base_query = base_query.filter(Product.category_id == category_id)

    if page is None:
        products = base_query.all()
        return {"items": [p.to_dict() for p in products], "count": len(products)}

    per_page = min(per_page or 20, 100)
    page = max(page, 1)

    total = base_query.count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1
    products = base_query.offset((page - 1) * per_page).limit(per_page).all()

    return {
        "items": [p.to_dict() for p in products],
        "count": len(products),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product not found")
    return product


def create_product(payload: dict) -> Product:
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
    enforce_rules_product(patch)
    _require_category(patch["category_id"])

    product = Product(**patch)
    if product.stock_quantity is None:
        product.stock_quantity = 0
    db.session.add(product)
    db.session.commit()
    return product


def update_product(product_id: int, payload: dict) -> Product:
    product = get_product(product_id)
    if isinstance(payload, dict) and "stock_quantity" in payload:
        raise ValidationError("stock_quantity cannot be edited directly; use restock")

    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
    enforce_rules_product(patch)
    if "category_id" in patch:
        _require_category(patch["category_id"])

    for key, value in patch.items():
        if key in PRODUCT_MUTABLE_FIELDS:
            setattr(product, key, value)

    db.session.commit()
    return product
