# Overview: Flask API routes for shop workers.

from flask import Blueprint, request, jsonify, current_app

from ..models import Worker
from ..services import worker_service
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    ValidationError,
    NotFoundError,
)

WORKER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "phone", "role", "active"},
    required_on_create={"name", "phone", "role"},
)

workers_bp = Blueprint("workers", __name__, url_prefix="/api/workers")


@workers_bp.get("")
def list_workers():
    """
    List workers.

    Query params:
    - all: "true" to include inactive workers (default: active only)
    """
    include_inactive = request.args.get("all", "false").lower() == "true"
    workers = worker_service.list_workers(include_inactive=include_inactive)
    return jsonify([w.to_dict() for w in workers]), 200


@workers_bp.post("")
def create_worker_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Worker, payload=payload, policy=WORKER_POLICY, partial=False)
        worker = worker_service.create_worker(patch=patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create worker")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(worker.to_dict()), 201


@workers_bp.put("/<int:worker_id>")
def update_worker_route(worker_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Worker, payload=payload, policy=WORKER_POLICY, partial=True)
        worker = worker_service.update_worker(worker_id, patch=patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to update worker")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(worker.to_dict()), 200


@workers_bp.delete("/<int:worker_id>")
def delete_worker_route(worker_id: int):
    try:
        worker_service.delete_worker(worker_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to delete worker")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"message": "Worker deleted successfully"}), 200
