# backend/stockbook/services/products_service.py
"""
Product Catalog Service

Products own their per-size stock counters. Admin edits may change
opening stock, stock in and unit labels; stock sold and closing stock are
moved only by the sales ledger. Whenever an admin edit touches a size,
closing stock is recomputed here:

    closing_stock = opening_stock + stock_in - stock_sold
"""
from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Product, ProductSize
from ..schemas import ProductRequest, ProductSizeRequest, ProductUpdateRequest
from ..validation import ConflictError, NotFoundError, ValidationError
from .concurrency import run_with_retry


DEFAULT_CATALOG = [
    ("Multipurpose Liquid Detergent", [
        ("500ml", "Bottles"), ("750ml", "Bottles"), ("5L", "Containers"), ("20L", "Containers"), ("Box", "Boxes"),
    ]),
    ("Century Forte Bleach", [
        ("500ml", "Bottles"), ("750ml", "Bottles"), ("5L", "Containers"), ("20L", "Containers"), ("Box", "Boxes"),
    ]),
    ("Century Handwash", [
        ("500ml", "Bottles"), ("750ml", "Bottles"), ("5L", "Containers"), ("Box", "Boxes"),
    ]),
    ("Century Tiles Cleaner", [
        ("500ml", "Bottles"), ("750ml", "Bottles"), ("5L", "Containers"), ("20L", "Containers"), ("Box", "Boxes"),
    ]),
    ("Century Toilet Cleaner", [
        ("500ml", "Bottles"), ("750ml", "Bottles"), ("5L", "Containers"), ("20L", "Containers"), ("Box", "Boxes"),
    ]),
]


def _apply_size_patch(size: ProductSize, patch: ProductSizeRequest) -> None:
    if patch.unit is not None:
        size.unit = patch.unit
    if patch.opening_stock is not None:
        size.opening_stock = patch.opening_stock
    if patch.stock_in is not None:
        size.stock_in = patch.stock_in
    if size.recompute_closing_stock() < 0:
        raise ValidationError(
            f"closingStock for size {size.size} would be negative "
            f"({size.opening_stock} + {size.stock_in} - {size.stock_sold})"
        )


def _new_size(patch: ProductSizeRequest) -> ProductSize:
    size = ProductSize(
        size=patch.size,
        unit=patch.unit,
        opening_stock=patch.opening_stock or 0,
        stock_in=patch.stock_in or 0,
        stock_sold=0,
    )
    size.recompute_closing_stock()
    return size


def _name_taken(name: str, exclude_id: int | None = None) -> bool:
    query = db.session.query(Product.id).filter(Product.name == name)
    if exclude_id is not None:
        query = query.filter(Product.id != exclude_id)
    return query.first() is not None


def _commit_unique() -> None:
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("A product with this name already exists.")


def list_products(q: str | None = None) -> list[Product]:
    """All products, optionally filtered by a case-insensitive name substring."""
    query = db.session.query(Product)
    if q:
        query = query.filter(Product.name.ilike(f"%{q.strip()}%"))
    return query.order_by(Product.name.asc(), Product.id.asc()).all()


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product not found")
    return product


def create_product(request: ProductRequest) -> Product:
    """
    Create a product with its sizes.

    Raises:
        ConflictError: If the name is already used
    """
    if _name_taken(request.name):
        raise ConflictError("A product with this name already exists.")

    product = Product(name=request.name, sizes=[_new_size(s) for s in request.sizes])
    db.session.add(product)
    _commit_unique()
    return product


def update_product(product_id: int, request: ProductUpdateRequest) -> Product:
    """
    Apply a partial update.

    Incoming sizes are matched to existing sizes by label; matched sizes get
    the supplied fields merged in and closing stock recomputed. Existing
    sizes not mentioned are left alone, and incoming labels with no match
    are ignored (use add_size for new sizes).
    """
    def _op():
        product = get_product(product_id)

        if request.name is not None and request.name != product.name:
            if _name_taken(request.name, exclude_id=product.id):
                raise ConflictError("A product with this name already exists.")
            product.name = request.name

        if request.sizes is not None:
            by_label = {s.size: s for s in request.sizes}
            for size in product.sizes:
                patch = by_label.get(size.size)
                if patch is not None:
                    _apply_size_patch(size, patch)

        _commit_unique()
        return product

    # A sale moving stock bumps the size version; retry on a fresh read
    return run_with_retry(_op)


def delete_product(product_id: int) -> None:
    """Hard delete. Past sales keep their name snapshots."""
    product = get_product(product_id)
    db.session.delete(product)
    db.session.commit()


def add_size(product_id: int, request: ProductSizeRequest) -> Product:
    product = get_product(product_id)
    if request.unit is None:
        raise ValidationError("unit is required")
    if product.size(request.size) is not None:
        raise ConflictError(f"Size {request.size} already exists for this product.")
    product.sizes.append(_new_size(request))
    db.session.commit()
    return product


def remove_size(product_id: int, label: str) -> Product:
    product = get_product(product_id)
    size = product.size(label)
    if size is None:
        raise NotFoundError("Product size not found")
    product.sizes.remove(size)
    db.session.commit()
    return product


def seed_products() -> dict:
    """Insert DEFAULT_CATALOG, but only into an empty catalog."""
    if db.session.query(Product.id).first() is not None:
        return {"success": True, "message": "Products already exist", "created": 0}

    for name, sizes in DEFAULT_CATALOG:
        product = Product(name=name)
        for label, unit in sizes:
            product.sizes.append(ProductSize(
                size=label,
                unit=unit,
                opening_stock=0,
                stock_in=0,
                stock_sold=0,
                closing_stock=0,
            ))
        db.session.add(product)

    db.session.commit()
    return {"success": True, "message": "Products seeded successfully", "created": len(DEFAULT_CATALOG)}
