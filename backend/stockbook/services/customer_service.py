# Overview: Service-layer operations for the customer directory.

from __future__ import annotations

from flask import current_app
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Customer
from ..schemas import CustomerRequest


def find_customers(search: str | None = None, *, limit: int | None = None) -> list[Customer]:
    """Type-ahead search: case-insensitive substring of name or phone, capped."""
    if limit is None:
        limit = current_app.config["CUSTOMER_SEARCH_LIMIT"]

    query = db.session.query(Customer)
    if search and search.strip():
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(Customer.name.ilike(pattern), Customer.phone.ilike(pattern)))
    return query.order_by(Customer.id.asc()).limit(limit).all()


def _apply(customer: Customer, request: CustomerRequest) -> None:
    customer.name = request.name
    if request.email:
        customer.email = request.email
    if request.address:
        customer.address = request.address


def _find_by_phone(phone: str) -> Customer | None:
    return db.session.query(Customer).filter_by(phone=phone).first()


def upsert_customer(request: CustomerRequest, *, commit: bool = True) -> tuple[Customer, bool]:
    """
    Find-or-create by exact phone; returns (customer, created).

    An existing customer gets the new name and any supplied optional fields;
    otherwise a new record is created. Repeating the call with the same phone
    updates the one record rather than adding another.

    The insert runs in a savepoint: if a concurrent request registered the
    same phone after our lookup, the unique constraint rejects the insert
    and that row is updated instead.

    With commit=False the change is only flushed so a caller can fold it
    into a larger transaction.
    """
    customer = _find_by_phone(request.phone)
    created = customer is None

    if created:
        customer = Customer(phone=request.phone)
        _apply(customer, request)
        try:
            with db.session.begin_nested():
                db.session.add(customer)
        except IntegrityError:
            customer = _find_by_phone(request.phone)
            if customer is None:
                raise
            created = False
            _apply(customer, request)
    else:
        _apply(customer, request)

    if commit:
        db.session.commit()
    else:
        db.session.flush()
    return customer, created
