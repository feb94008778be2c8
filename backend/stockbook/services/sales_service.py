"""
Sales Service - stock ledger for sale creation and deletion

A sale touches two kinds of rows: the sale document (with its items) and
the stock counters of every product size it sells. Both change in one
database transaction:

1. Validate: resolve every item's product and size and check the summed
   quantity per size against closing stock. Nothing is written until
   every item passes.
2. Commit: decrement each size with a conditional UPDATE
   (closing_stock >= quantity) so two concurrent sales can never take the
   same units, then insert the sale. A zero row count aborts the whole
   transaction.

Deleting a sale returns the units to stock. Items whose product or size
has since disappeared are skipped; the sale is still removed.
"""

from __future__ import annotations

from math import ceil

from flask import current_app
from sqlalchemy import func, or_, update

from ..extensions import db
from ..models import Product, ProductSize, Sale, SaleItem
from ..schemas import SaleRequest, SaleItemRequest
from ..validation import NotFoundError
from stockbook.time_utils import utcnow
from .concurrency import lock_for_update, run_with_retry
from .customer_service import upsert_customer


class SaleError(Exception):
    """Raised for sale operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class ProductNotFoundError(SaleError):
    pass


class SizeNotFoundError(SaleError):
    pass


class InsufficientStockError(SaleError):
    def __init__(self, product: str, size: str, available: int, requested: int):
        super().__init__(
            f"Insufficient stock. Only {available} units available.",
            details={
                "product": product,
                "size": size,
                "available": available,
                "requested": requested,
            },
        )
        self.available = available


def _find_size(product_name: str, label: str, *, lock: bool = False) -> tuple[Product | None, ProductSize | None]:
    product = db.session.query(Product).filter_by(name=product_name).first()
    if product is None:
        return None, None
    query = db.session.query(ProductSize).filter_by(product_id=product.id, size=label)
    if lock:
        query = lock_for_update(query).populate_existing()
    return product, query.first()


def _validate_items(items: list[SaleItemRequest]) -> list[tuple[ProductSize, str, int]]:
    """
    Resolve every item and check availability; returns (size, product name, quantity) per size.

    Lines repeating the same product and size are summed before comparing
    with closing stock.
    """
    demand: dict[int, int] = {}
    resolved: dict[int, tuple[ProductSize, str]] = {}

    for item in items:
        product, size = _find_size(item.product, item.size, lock=True)
        if product is None:
            raise ProductNotFoundError(
                f"Product not found: {item.product}",
                details={"product": item.product},
            )
        if size is None:
            raise SizeNotFoundError(
                f"Product size not found: {item.product} {item.size}",
                details={"product": item.product, "size": item.size},
            )
        demand[size.id] = demand.get(size.id, 0) + item.quantity
        resolved[size.id] = (size, product.name)

    checked = []
    for size_id, quantity in demand.items():
        size, product_name = resolved[size_id]
        if quantity > size.closing_stock:
            raise InsufficientStockError(product_name, size.size, size.closing_stock, quantity)
        checked.append((size, product_name, quantity))
    return checked


def _move_stock(size: ProductSize, quantity: int) -> bool:
    """
    Take (quantity > 0) or return (quantity < 0) units atomically.

    Taking only succeeds while closing_stock >= quantity, returning only
    while stock_sold covers the units; the check and the write are one
    statement, so there is no window between them.
    """
    stmt = (
        update(ProductSize)
        .where(ProductSize.id == size.id)
        .values(
            closing_stock=ProductSize.closing_stock - quantity,
            stock_sold=ProductSize.stock_sold + quantity,
            version_id=ProductSize.version_id + 1,
        )
        .execution_options(synchronize_session=False)
    )
    if quantity > 0:
        stmt = stmt.where(ProductSize.closing_stock >= quantity)
    elif quantity < 0:
        stmt = stmt.where(ProductSize.stock_sold >= -quantity)
    result = db.session.execute(stmt)
    db.session.expire(size)
    return result.rowcount == 1


def create_sale(request: SaleRequest) -> Sale:
    """
    Record a sale and take its items out of stock, all or nothing.

    Raises:
        ProductNotFoundError, SizeNotFoundError, InsufficientStockError
    """
    def _op():
        checked = _validate_items(request.items)

        for size, product_name, quantity in checked:
            if not _move_stock(size, quantity):
                # Another sale took the units after validation
                raise InsufficientStockError(product_name, size.size, size.closing_stock, quantity)

        customer, _ = upsert_customer(request.customer, commit=False)

        sale = Sale(
            date=request.date or utcnow(),
            customer_name=customer.name,
            customer_phone=customer.phone,
            customer_id=customer.id,
            worker_name=request.worker_name,
            payment_method=request.payment_method,
            grand_total=request.grand_total,
            items=[
                SaleItem(
                    product=item.product,
                    size=item.size,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    total=item.total,
                )
                for item in request.items
            ],
        )
        db.session.add(sale)
        db.session.commit()
        return sale

    return run_with_retry(_op)


def delete_sale(sale_id: int) -> dict:
    """
    Delete a sale and put its units back on the shelf.

    Returns the restored and skipped lines. Lines whose product or size no
    longer exists, or whose size has fewer units recorded as sold than the
    line returns, are skipped with a warning rather than blocking the delete.
    """
    def _op():
        sale = lock_for_update(db.session.query(Sale).filter_by(id=sale_id)).first()
        if sale is None:
            raise NotFoundError("Sale not found")

        restored, skipped = [], []
        for line in sale.effective_items():
            if (line["quantity"] or 0) <= 0:
                continue
            entry = {"product": line["product"], "size": line["size"], "quantity": line["quantity"]}
            _, size = _find_size(line["product"], line["size"], lock=True)
            if size is None:
                current_app.logger.warning(
                    "Sale %s: cannot restore stock for %s %s (product or size no longer exists)",
                    sale.id, line["product"], line["size"],
                )
                skipped.append(entry)
                continue
            if not _move_stock(size, -line["quantity"]):
                # Size was recreated since the sale and never sold these units
                current_app.logger.warning(
                    "Sale %s: cannot restore %s units of %s %s (only %s recorded as sold)",
                    sale.id, line["quantity"], line["product"], line["size"], size.stock_sold,
                )
                skipped.append(entry)
                continue
            restored.append(entry)

        db.session.delete(sale)
        db.session.commit()
        return {"restored": restored, "skipped": skipped}

    return run_with_retry(_op)


def get_sale(sale_id: int) -> Sale:
    sale = db.session.get(Sale, sale_id)
    if sale is None:
        raise NotFoundError("Sale not found")
    return sale


def sale_total_expr():
    """grand_total with the legacy single-item total as fallback."""
    return func.coalesce(Sale.grand_total, Sale.legacy_total, 0)


def list_sales(
    *,
    start=None,
    end=None,
    product: str | None = None,
    worker: str | None = None,
    payment_method: str | None = None,
    page: int = 1,
    limit: int | None = None,
) -> dict:
    """
    Filtered, paginated sale listing, newest first.

    start/end are UTC-naive bounds (inclusive).
    """
    limit = min(limit or current_app.config["SALES_PAGE_SIZE"], 100)
    page = max(page or 1, 1)

    filters = []
    if start is not None:
        filters.append(Sale.date >= start)
    if end is not None:
        filters.append(Sale.date <= end)
    if product:
        filters.append(or_(Sale.items.any(SaleItem.product == product), Sale.legacy_product == product))
    if worker:
        filters.append(Sale.worker_name == worker)
    if payment_method:
        filters.append(Sale.payment_method == payment_method)

    total = db.session.query(func.count(Sale.id)).filter(*filters).scalar() or 0
    total_amount = db.session.query(func.coalesce(func.sum(sale_total_expr()), 0)).filter(*filters).scalar()

    sales = (
        db.session.query(Sale)
        .filter(*filters)
        .order_by(Sale.date.desc(), Sale.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    return {
        "sales": sales,
        "pagination": {
            "total": total,
            "pages": ceil(total / limit) if total else 0,
            "page": page,
            "limit": limit,
        },
        "totalAmount": total_amount,
    }
