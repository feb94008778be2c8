import pytest

from stockbook.models import Customer
from stockbook.schemas import CustomerRequest
from stockbook.services import customer_service
from stockbook.validation import ValidationError


def test_upsert_same_phone_keeps_one_record(db_session):
    first, created = customer_service.upsert_customer(CustomerRequest(name="John Doe", phone="0788123456"))
    second, created_again = customer_service.upsert_customer(CustomerRequest(
        name="John D.", phone="0788123456", email="john@example.com",
    ))

    assert created is True
    assert created_again is False
    assert first.id == second.id
    assert db_session.query(Customer).count() == 1
    assert second.name == "John D."
    assert second.email == "john@example.com"


def test_upsert_keeps_optional_fields_when_omitted(db_session):
    customer_service.upsert_customer(CustomerRequest(
        name="Jane", phone="0788000002", email="jane@example.com", address="Kigali",
    ))
    customer, _ = customer_service.upsert_customer(CustomerRequest(name="Jane K", phone="0788000002"))

    assert customer.email == "jane@example.com"
    assert customer.address == "Kigali"


def test_search_is_case_insensitive_on_name_and_phone(db_session):
    customer_service.upsert_customer(CustomerRequest(name="Marie Uwase", phone="0788111111"))
    customer_service.upsert_customer(CustomerRequest(name="Paul", phone="0722999999"))

    assert [c.name for c in customer_service.find_customers("marie")] == ["Marie Uwase"]
    assert [c.name for c in customer_service.find_customers("0722")] == ["Paul"]


def test_search_is_capped(app, db_session):
    for i in range(15):
        customer_service.upsert_customer(CustomerRequest(name=f"Customer {i}", phone=f"07880000{i:02d}"))

    assert len(customer_service.find_customers("customer")) == app.config["CUSTOMER_SEARCH_LIMIT"] == 10
    assert len(customer_service.find_customers("", limit=3)) == 3


@pytest.mark.parametrize("payload", [
    {"name": "No Phone"},
    {"phone": "0788000000"},
    {"name": "  ", "phone": "0788000000"},
    "not a dict",
])
def test_customer_request_requires_name_and_phone(payload):
    with pytest.raises(ValidationError):
        CustomerRequest.from_payload(payload)


def test_upsert_recovers_when_phone_registered_concurrently(db_session, monkeypatch):
    customer_service.upsert_customer(CustomerRequest(name="First Writer", phone="0788777777"))

    real_find = customer_service._find_by_phone
    calls = []

    def find_missing_once(phone):
        # The lookup misses the row another request committed a moment ago
        calls.append(phone)
        if len(calls) == 1:
            return None
        return real_find(phone)

    monkeypatch.setattr(customer_service, "_find_by_phone", find_missing_once)

    customer, created = customer_service.upsert_customer(CustomerRequest(name="Second Writer", phone="0788777777"))

    assert created is False
    assert len(calls) == 2
    assert db_session.query(Customer).count() == 1
    assert db_session.query(Customer).one().name == "Second Writer"
    assert customer.name == "Second Writer"
