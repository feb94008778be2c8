"""
Typed request structures.

Each route parses its JSON body into one of these dataclasses before any
service is called, so the services only ever see normalized, validated
values. Field names on the wire follow the stored document contract
(camelCase).
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any

from .models.sales import PAYMENT_METHODS
from .time_utils import parse_iso_datetime
from .validation import ValidationError, coerce_amount, coerce_int


def _require_dict(payload: Any, what: str = "JSON payload") -> dict:
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError(f"Invalid {what}")
    return payload


def _to_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text if text else None


def _required_text(payload: dict, key: str, *, max_length: int = 255) -> str:
    text = _to_text(payload.get(key))
    if text is None:
        raise ValidationError(f"{key} is required")
    if len(text) > max_length:
        raise ValidationError(f"{key} exceeds max length {max_length}")
    return text


def _optional_text(payload: dict, key: str, *, max_length: int = 255) -> str | None:
    text = _to_text(payload.get(key))
    if text is not None and len(text) > max_length:
        raise ValidationError(f"{key} exceeds max length {max_length}")
    return text


def _counter(payload: dict, key: str) -> int | None:
    raw = payload.get(key)
    if raw is None or raw == "":
        return None
    value = coerce_int(key, raw)
    if value < 0:
        raise ValidationError(f"{key} must be >= 0")
    return value


@dataclass
class ProductSizeRequest:
    size: str
    unit: str | None = None
    opening_stock: int | None = None
    stock_in: int | None = None

    @classmethod
    def from_payload(cls, payload: Any, *, partial: bool = False) -> "ProductSizeRequest":
        payload = _require_dict(payload, "size entry")
        unit = _optional_text(payload, "unit", max_length=64)
        if not partial and unit is None:
            raise ValidationError("unit is required")
        # stockSold and closingStock are owned by the ledger; ignore caller values
        return cls(
            size=_required_text(payload, "size", max_length=64),
            unit=unit,
            opening_stock=_counter(payload, "openingStock"),
            stock_in=_counter(payload, "stockIn"),
        )


def _size_list(raw: Any, *, partial: bool) -> list[ProductSizeRequest]:
    if not isinstance(raw, list):
        raise ValidationError("sizes must be a list")
    sizes = [ProductSizeRequest.from_payload(entry, partial=partial) for entry in raw]
    labels = [s.size for s in sizes]
    if len(labels) != len(set(labels)):
        raise ValidationError("sizes contain duplicate labels")
    return sizes


@dataclass
class ProductRequest:
    name: str
    sizes: list[ProductSizeRequest] = field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: Any) -> "ProductRequest":
        payload = _require_dict(payload)
        raw_sizes = payload.get("sizes")
        return cls(
            name=_required_text(payload, "name"),
            sizes=_size_list(raw_sizes, partial=False) if raw_sizes is not None else [],
        )


@dataclass
class ProductUpdateRequest:
    name: str | None = None
    sizes: list[ProductSizeRequest] | None = None

    @classmethod
    def from_payload(cls, payload: Any) -> "ProductUpdateRequest":
        payload = _require_dict(payload)
        name = None
        if "name" in payload:
            name = _required_text(payload, "name")
        sizes = None
        if payload.get("sizes") is not None:
            sizes = _size_list(payload["sizes"], partial=True)
        return cls(name=name, sizes=sizes)


@dataclass
class CustomerRequest:
    name: str
    phone: str
    email: str | None = None
    address: str | None = None

    @classmethod
    def from_payload(cls, payload: Any) -> "CustomerRequest":
        payload = _require_dict(payload)
        return cls(
            name=_required_text(payload, "name"),
            phone=_required_text(payload, "phone", max_length=32),
            email=_optional_text(payload, "email"),
            address=_optional_text(payload, "address", max_length=1000),
        )


@dataclass
class SaleItemRequest:
    product: str
    size: str
    quantity: int
    unit_price: Decimal

    @property
    def total(self) -> Decimal:
        return self.unit_price * self.quantity

    @classmethod
    def from_payload(cls, payload: Any) -> "SaleItemRequest":
        payload = _require_dict(payload, "sale item")
        if payload.get("quantity") is None:
            raise ValidationError("quantity is required")
        if payload.get("unitPrice") is None:
            raise ValidationError("unitPrice is required")
        quantity = coerce_int("quantity", payload["quantity"])
        if quantity <= 0:
            raise ValidationError("quantity must be > 0")
        # Any client-sent "total" is ignored; it is always quantity * unitPrice
        return cls(
            product=_required_text(payload, "product"),
            size=_required_text(payload, "size", max_length=64),
            quantity=quantity,
            unit_price=coerce_amount("unitPrice", payload["unitPrice"]),
        )


@dataclass
class SaleRequest:
    customer: CustomerRequest
    worker_name: str
    payment_method: str
    items: list[SaleItemRequest]
    date: datetime | None = None

    @property
    def grand_total(self) -> Decimal:
        return sum((item.total for item in self.items), Decimal("0.00"))

    @classmethod
    def from_payload(cls, payload: Any) -> "SaleRequest":
        payload = _require_dict(payload)

        customer_raw = payload.get("customer")
        if customer_raw is None and payload.get("clientName") is not None:
            customer_raw = {"name": payload.get("clientName"), "phone": payload.get("clientPhone")}
        if customer_raw is None:
            raise ValidationError("customer is required")
        customer_raw = _require_dict(customer_raw, "customer")
        customer = CustomerRequest.from_payload(customer_raw)

        payment_method = _to_text(payload.get("paymentMethod"))
        if payment_method not in PAYMENT_METHODS:
            raise ValidationError(f"paymentMethod must be one of: {', '.join(PAYMENT_METHODS)}")

        raw_items = payload.get("items")
        if raw_items is None and payload.get("product") is not None:
            # Single-item body of the old sale form
            raw_items = [{
                "product": payload.get("product"),
                "size": payload.get("size"),
                "quantity": payload.get("quantity"),
                "unitPrice": payload.get("unitPrice"),
            }]
        if not isinstance(raw_items, list) or not raw_items:
            raise ValidationError("items must be a non-empty list")

        sale_date = None
        if payload.get("date"):
            try:
                sale_date = parse_iso_datetime(str(payload["date"]))
            except ValueError:
                raise ValidationError("date must be an ISO-8601 datetime")

        return cls(
            customer=customer,
            worker_name=_required_text(payload, "workerName"),
            payment_method=payment_method,
            items=[SaleItemRequest.from_payload(item) for item in raw_items],
            date=sale_date,
        )
