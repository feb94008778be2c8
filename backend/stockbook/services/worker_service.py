# Overview: Service-layer operations for shop workers.

from __future__ import annotations

from ..extensions import db
from ..models import Worker
from ..validation import NotFoundError

WORKER_MUTABLE_FIELDS = {"name", "phone", "role", "active"}


def apply_worker_patch(w: Worker, patch: dict) -> None:
    for k, v in patch.items():
        if k not in WORKER_MUTABLE_FIELDS:
            continue
        setattr(w, k, v)


def list_workers(include_inactive: bool = False) -> list[Worker]:
    query = db.session.query(Worker)
    if not include_inactive:
        query = query.filter(Worker.active.is_(True))
    return query.order_by(Worker.name.asc(), Worker.id.asc()).all()


def get_worker(worker_id: int) -> Worker:
    worker = db.session.get(Worker, worker_id)
    if worker is None:
        raise NotFoundError("Worker not found")
    return worker


def create_worker(*, patch: dict) -> Worker:
    """Create worker from a validated patch dict."""
    worker = Worker(active=True)
    apply_worker_patch(worker, patch)
    db.session.add(worker)
    db.session.commit()
    return worker


def update_worker(worker_id: int, *, patch: dict) -> Worker:
    worker = get_worker(worker_id)
    apply_worker_patch(worker, patch)
    db.session.commit()
    return worker


def delete_worker(worker_id: int) -> None:
    """Hard delete. Sales keep the worker's name as recorded."""
    worker = get_worker(worker_id)
    db.session.delete(worker)
    db.session.commit()
