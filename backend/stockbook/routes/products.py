# Overview: Flask API routes for the product catalog; parses input and returns JSON responses.

# backend/stockbook/routes/products.py
"""
Product catalog routes.

Size counters in request bodies use the stored field names (openingStock,
stockIn, ...). stockSold and closingStock are never taken from input;
closing stock is recomputed server-side.
"""
from flask import Blueprint, request, jsonify, current_app

from ..services import products_service
from ..services.concurrency import TransientStoreError
from ..schemas import ProductRequest, ProductSizeRequest, ProductUpdateRequest
from ..validation import ValidationError, ConflictError, NotFoundError


products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
def list_products():
    """
    List all products.

    Query params:
    - q: str (optional) - case-insensitive name filter
    """
    products = products_service.list_products(q=request.args.get("q"))
    return jsonify([p.to_dict() for p in products]), 200


@products_bp.post("")
def create_product_route():
    payload = request.get_json(silent=True)

    try:
        product_request = ProductRequest.from_payload(payload)
        product = products_service.create_product(product_request)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(product.to_dict()), 201


@products_bp.post("/seed")
def seed_products_route():
    try:
        result = products_service.seed_products()
    except Exception:
        current_app.logger.exception("Failed to seed products")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify(result), 200


@products_bp.get("/<int:product_id>")
def get_product_route(product_id: int):
    try:
        product = products_service.get_product(product_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify(product.to_dict()), 200


@products_bp.put("/<int:product_id>")
def update_product_route(product_id: int):
    """
    Update name and/or sizes.

    Sizes are matched by label; closingStock is recomputed for each matched size.
    """
    payload = request.get_json(silent=True)

    try:
        update = ProductUpdateRequest.from_payload(payload)
        product = products_service.update_product(product_id, update)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except TransientStoreError:
        current_app.logger.exception("Store unavailable while updating product")
        return jsonify({"error": "Store temporarily unavailable, please retry"}), 503
    except Exception:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(product.to_dict()), 200


@products_bp.delete("/<int:product_id>")
def delete_product_route(product_id: int):
    try:
        products_service.delete_product(product_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to delete product")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"message": "Product deleted successfully"}), 200


@products_bp.post("/<int:product_id>/sizes")
def add_size_route(product_id: int):
    payload = request.get_json(silent=True)

    try:
        size_request = ProductSizeRequest.from_payload(payload)
        product = products_service.add_size(product_id, size_request)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409

    return jsonify(product.to_dict()), 201


@products_bp.delete("/<int:product_id>/sizes/<label>")
def remove_size_route(product_id: int, label: str):
    try:
        product = products_service.remove_size(product_id, label)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404

    return jsonify(product.to_dict()), 200
