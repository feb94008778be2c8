from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from stockbook.time_utils import to_utc_z

PAYMENT_METHODS = ("Cash", "MoMo")

# Phone recorded on customers synthesized from legacy free-text client names
LEGACY_CUSTOMER_PHONE = "N/A"
LEGACY_CUSTOMER_NAME = "Legacy Customer"


def money(value: Decimal | None) -> float | None:
    if value is None:
        return None
    return float(value)


class Sale(db.Model):
    """
    Settled sale.

    Customer, worker and products are stored as snapshots (name/phone
    strings), not foreign keys, so later catalog or roster edits leave
    history untouched.

    INVARIANT: grand_total == sum(item.total for item in items).

    Rows written by the old single-item schema have no items and keep
    their line in the legacy_* columns until migrated.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_date", "date"),
        db.Index("ix_sales_customer_name", "customer_name"),
        db.Index("ix_sales_worker_name", "worker_name"),
        db.Index("ix_sales_payment_method", "payment_method"),
        db.CheckConstraint("payment_method IN ('Cash', 'MoMo')", name="ck_sales_payment_method"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    date = db.Column(db.DateTime(timezone=True), nullable=False)

    # Customer snapshot; customer_id is informational, not a live reference
    customer_name = db.Column(db.String(255), nullable=True)
    customer_phone = db.Column(db.String(32), nullable=True)
    customer_id = db.Column(db.Integer, nullable=True)

    worker_name = db.Column(db.String(255), nullable=False)
    grand_total = db.Column(db.Numeric(12, 2), nullable=True)
    payment_method = db.Column(db.String(16), nullable=False)

    # Old single-item schema
    legacy_client_name = db.Column(db.String(255), nullable=True)
    legacy_product = db.Column(db.String(255), nullable=True)
    legacy_size = db.Column(db.String(64), nullable=True)
    legacy_quantity = db.Column(db.Integer, nullable=True)
    legacy_unit_price = db.Column(db.Numeric(12, 2), nullable=True)
    legacy_total = db.Column(db.Numeric(12, 2), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    items = db.relationship(
        "SaleItem",
        back_populates="sale",
        cascade="all, delete-orphan",
        order_by="SaleItem.id",
        lazy="selectin",
    )
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def effective_total(self) -> Decimal:
        if self.grand_total is not None:
            return self.grand_total
        return self.legacy_total or Decimal("0")

    def effective_items(self) -> list[dict]:
        """Line items, falling back to the legacy single line for unmigrated rows."""
        if self.items:
            return [
                {"product": i.product, "size": i.size, "quantity": i.quantity, "total": i.total}
                for i in self.items
            ]
        if self.legacy_product is None:
            return []
        return [{
            "product": self.legacy_product,
            "size": self.legacy_size,
            "quantity": self.legacy_quantity or 0,
            "total": self.legacy_total or Decimal("0"),
        }]

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "date": to_utc_z(self.date),
            "customer": {
                "name": self.customer_name,
                "phone": self.customer_phone,
                "id": self.customer_id,
            },
            "workerName": self.worker_name,
            "items": [item.to_dict() for item in self.items],
            "grandTotal": money(self.grand_total),
            "paymentMethod": self.payment_method,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }
        if self.legacy_product is not None:
            data.update({
                "clientName": self.legacy_client_name,
                "product": self.legacy_product,
                "size": self.legacy_size,
                "quantity": self.legacy_quantity,
                "unitPrice": money(self.legacy_unit_price),
                "total": money(self.legacy_total),
            })
        return data


class SaleItem(db.Model):
    """
    Line item owned by a sale; product and size are name snapshots.

    New sales always carry quantity > 0. Zero only appears on lines
    migrated from legacy rows that recorded no quantity.
    """
    __tablename__ = "sale_items"
    __table_args__ = (
        db.CheckConstraint("quantity >= 0", name="ck_sale_items_quantity_nonneg"),
        db.Index("ix_sale_items_product_size", "product", "size"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id", ondelete="CASCADE"), nullable=False, index=True)

    product = db.Column(db.String(255), nullable=False)
    size = db.Column(db.String(64), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(12, 2), nullable=False)
    total = db.Column(db.Numeric(12, 2), nullable=False)

    sale = db.relationship("Sale", back_populates="items")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product": self.product,
            "size": self.size,
            "quantity": self.quantity,
            "unitPrice": money(self.unit_price),
            "total": money(self.total),
        }
