"""
Pytest fixtures for stockbook backend tests.

Provides an in-memory database, a test client and small catalog fixtures.
"""

import pytest
from stockbook import create_app
from stockbook.extensions import db
from stockbook.models import Product, ProductSize, Worker
from stockbook.schemas import SaleRequest


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'STORE_TIMEZONE': 'UTC',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


def make_product(session, name: str, sizes: dict[str, int], unit: str = "Bottles") -> Product:
    """Product whose sizes start with the given opening (and closing) stock."""
    product = Product(name=name)
    for label, opening in sizes.items():
        product.sizes.append(ProductSize(
            size=label,
            unit=unit,
            opening_stock=opening,
            stock_in=0,
            stock_sold=0,
            closing_stock=opening,
        ))
    session.add(product)
    session.commit()
    return product


@pytest.fixture(scope='function')
def soap(db_session):
    """Soap with 5 units of 500ml and 20 units of 5L."""
    return make_product(db_session, "Soap", {"500ml": 5, "5L": 20})


@pytest.fixture(scope='function')
def bleach(db_session):
    return make_product(db_session, "Bleach", {"750ml": 8})


@pytest.fixture(scope='function')
def worker(db_session):
    worker = Worker(name="Alice", phone="0788000001", role="Cashier", active=True)
    db_session.add(worker)
    db_session.commit()
    return worker


def sale_payload(items, *, payment_method="Cash", worker_name="Alice",
                 customer_name="John Doe", customer_phone="0788123456", **extra) -> dict:
    """JSON body for a sale; items are (product, size, quantity, unit_price) tuples."""
    payload = {
        "customer": {"name": customer_name, "phone": customer_phone},
        "workerName": worker_name,
        "paymentMethod": payment_method,
        "items": [
            {"product": p, "size": s, "quantity": q, "unitPrice": price}
            for p, s, q, price in items
        ],
    }
    payload.update(extra)
    return payload


def sale_request(items, **kwargs) -> SaleRequest:
    return SaleRequest.from_payload(sale_payload(items, **kwargs))


def size_of(product_name: str, label: str) -> ProductSize:
    """Fresh read of a product size's counters."""
    db.session.expire_all()
    product = db.session.query(Product).filter_by(name=product_name).one()
    return db.session.query(ProductSize).filter_by(product_id=product.id, size=label).one()
