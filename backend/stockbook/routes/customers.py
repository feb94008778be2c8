# Overview: Flask API routes for the customer directory.

from flask import Blueprint, request, jsonify, current_app

from ..services import customer_service
from ..schemas import CustomerRequest
from ..validation import ValidationError


customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
def search_customers():
    """Type-ahead search by name or phone (at most CUSTOMER_SEARCH_LIMIT results)."""
    customers = customer_service.find_customers(request.args.get("search"))
    return jsonify([c.to_dict() for c in customers]), 200


@customers_bp.post("")
def upsert_customer_route():
    """Create the customer, or update the one already registered under this phone."""
    try:
        customer_request = CustomerRequest.from_payload(request.get_json(silent=True))
        customer, created = customer_service.upsert_customer(customer_request)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to process customer")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(customer.to_dict()), 201 if created else 200
