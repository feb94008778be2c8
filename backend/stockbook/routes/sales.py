# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/stockbook/routes/sales.py
"""Sales API routes"""

from flask import Blueprint, request, jsonify, current_app

from ..models.sales import money
from ..schemas import SaleRequest
from ..services import sales_service, maintenance_service
from ..services.concurrency import TransientStoreError
from ..services.sales_service import SaleError, ProductNotFoundError, SizeNotFoundError
from ..time_utils import local_day_bounds, parse_calendar_date
from ..validation import ValidationError, NotFoundError


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.get("")
def list_sales_route():
    """
    List sales, newest first.

    Query params:
    - startDate, endDate: YYYY-MM-DD (optional, inclusive local days)
    - product, worker, paymentMethod: exact-match filters (optional)
    - page: int (default 1), limit: int (default 20, max 100)
    """
    tz = current_app.config["STORE_TIMEZONE"]
    try:
        start_day = parse_calendar_date(request.args.get("startDate"))
        end_day = parse_calendar_date(request.args.get("endDate"))
    except ValueError:
        return jsonify({"error": "startDate and endDate must be YYYY-MM-DD"}), 400

    start = local_day_bounds(start_day, tz)[0] if start_day else None
    end = local_day_bounds(end_day, tz)[1] if end_day else None

    result = sales_service.list_sales(
        start=start,
        end=end,
        product=request.args.get("product"),
        worker=request.args.get("worker"),
        payment_method=request.args.get("paymentMethod"),
        page=request.args.get("page", 1, type=int),
        limit=request.args.get("limit", type=int),
    )

    return jsonify({
        "sales": [s.to_dict() for s in result["sales"]],
        "pagination": result["pagination"],
        "totalAmount": money(result["totalAmount"]),
    }), 200


@sales_bp.post("")
def create_sale_route():
    """
    Create a sale and take its items out of stock.

    Body: {customer: {name, phone, email?, address?}, workerName,
    paymentMethod: Cash|MoMo, items: [{product, size, quantity, unitPrice}], date?}
    """
    try:
        sale_request = SaleRequest.from_payload(request.get_json(silent=True))
        sale = sales_service.create_sale(sale_request)
        return jsonify(sale.to_dict()), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except (ProductNotFoundError, SizeNotFoundError) as e:
        return jsonify({"error": str(e), "details": e.details}), 404
    except SaleError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except TransientStoreError:
        current_app.logger.exception("Store unavailable while creating sale")
        return jsonify({"error": "Store temporarily unavailable, please retry"}), 503
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/<int:sale_id>")
def get_sale_route(sale_id: int):
    try:
        sale = sales_service.get_sale(sale_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify(sale.to_dict()), 200


@sales_bp.delete("/<int:sale_id>")
def delete_sale_route(sale_id: int):
    """Delete a sale and restore its stock (best effort per item)."""
    try:
        result = sales_service.delete_sale(sale_id)
        return jsonify({"message": "Sale deleted successfully", **result}), 200

    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except TransientStoreError:
        current_app.logger.exception("Store unavailable while deleting sale")
        return jsonify({"error": "Store temporarily unavailable, please retry"}), 503
    except Exception:
        current_app.logger.exception("Failed to delete sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.post("/migrate-legacy")
def migrate_legacy_sales_route():
    try:
        result = maintenance_service.migrate_legacy_sales()
    except Exception:
        current_app.logger.exception("Legacy sale migration failed")
        return jsonify({"error": "Migration failed"}), 500

    return jsonify({
        "message": f"Successfully migrated {result['migrated']} legacy sales.",
        **result,
    }), 200
