from __future__ import annotations

from ..extensions import db
from stockbook.time_utils import to_utc_z


class Product(db.Model):
    """
    Product master data.

    A product is identified by its unique name and carries one stock
    counter row per size (see ProductSize). Sale items refer to products
    by name snapshot only, so deleting or renaming a product never
    touches historical sales.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("name", name="uq_products_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    sizes = db.relationship(
        "ProductSize",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductSize.id",
        lazy="selectin",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r}>"

    def size(self, label: str) -> "ProductSize | None":
        for s in self.sizes:
            if s.size == label:
                return s
        return None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "sizes": [s.to_dict() for s in self.sizes],
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }


class ProductSize(db.Model):
    """
    Per-size stock counters of a product.

    INVARIANT: closing_stock == opening_stock + stock_in - stock_sold.
    closing_stock is always recomputed or moved together with stock_sold,
    never written from caller input.
    """
    __tablename__ = "product_sizes"
    __table_args__ = (
        db.UniqueConstraint("product_id", "size", name="uq_product_sizes_product_size"),
        db.CheckConstraint("opening_stock >= 0", name="ck_product_sizes_opening_nonneg"),
        db.CheckConstraint("stock_in >= 0", name="ck_product_sizes_stock_in_nonneg"),
        db.CheckConstraint("stock_sold >= 0", name="ck_product_sizes_stock_sold_nonneg"),
        db.CheckConstraint("closing_stock >= 0", name="ck_product_sizes_closing_nonneg"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)

    size = db.Column(db.String(64), nullable=False)
    unit = db.Column(db.String(64), nullable=False)

    opening_stock = db.Column(db.Integer, nullable=False, default=0)
    stock_in = db.Column(db.Integer, nullable=False, default=0)
    stock_sold = db.Column(db.Integer, nullable=False, default=0)
    closing_stock = db.Column(db.Integer, nullable=False, default=0)

    # Bumped by ORM flushes and by the ledger's conditional UPDATEs alike
    version_id = db.Column(db.Integer, nullable=False, default=1)

    product = db.relationship("Product", back_populates="sizes")
    __mapper_args__ = {"version_id_col": version_id}

    def recompute_closing_stock(self) -> int:
        self.closing_stock = (self.opening_stock or 0) + (self.stock_in or 0) - (self.stock_sold or 0)
        return self.closing_stock

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "size": self.size,
            "unit": self.unit,
            "openingStock": self.opening_stock,
            "stockIn": self.stock_in,
            "stockSold": self.stock_sold,
            "closingStock": self.closing_stock,
        }
