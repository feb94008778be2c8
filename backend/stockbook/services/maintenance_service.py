# Overview: Service-layer maintenance operations; one-off data repairs.

from __future__ import annotations

from decimal import Decimal

from flask import current_app

from ..extensions import db
from ..models import Sale, SaleItem
from ..models.sales import LEGACY_CUSTOMER_NAME, LEGACY_CUSTOMER_PHONE


def _legacy_sales_query():
    return db.session.query(Sale).filter(
        ~Sale.items.any(),
        Sale.legacy_product.isnot(None),
    )


def migrate_legacy_sales() -> dict:
    """
    Rewrite single-item sales into the items shape.

    Each legacy row gets one SaleItem built from its product/size/quantity/
    price/total, a customer snapshot synthesized from the free-text client
    name, and grand_total set from the old total. Rows that already have
    items are never selected, so running this again finds nothing to do.
    """
    legacy_sales = _legacy_sales_query().order_by(Sale.id.asc()).all()
    found = len(legacy_sales)

    for sale in legacy_sales:
        # Stored as-is; a zero line restores nothing when the sale is deleted
        quantity = max(sale.legacy_quantity or 0, 0)
        total = sale.legacy_total if sale.legacy_total is not None else Decimal("0")
        unit_price = sale.legacy_unit_price
        if unit_price is None:
            unit_price = (total / quantity) if quantity else Decimal("0")

        sale.customer_name = sale.legacy_client_name or LEGACY_CUSTOMER_NAME
        sale.customer_phone = LEGACY_CUSTOMER_PHONE
        sale.items = [
            SaleItem(
                product=sale.legacy_product,
                size=sale.legacy_size or "",
                quantity=quantity,
                unit_price=unit_price,
                total=total,
            )
        ]
        sale.grand_total = total

    db.session.commit()
    if found:
        current_app.logger.info("Migrated %d legacy sales", found)
    return {"found": found, "migrated": found}
