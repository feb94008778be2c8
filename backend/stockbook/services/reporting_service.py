# Overview: Service-layer operations for reporting; read-only aggregates over the sale ledger.

from __future__ import annotations

from datetime import date, datetime

from flask import current_app
from sqlalchemy import case, func

from stockbook.extensions import db
from stockbook.models import Product, ProductSize, Sale, SaleItem
from stockbook.models.sales import money
from stockbook.time_utils import local_day_bounds, local_today, parse_calendar_date, to_utc_z
from .sales_service import sale_total_expr


class ReportError(Exception):
    """Raised when report generation fails."""
    pass


def _tz() -> str:
    return current_app.config["STORE_TIMEZONE"]


def _parse_day(value: str | None) -> date | None:
    try:
        return parse_calendar_date(value)
    except ValueError:
        raise ReportError(f"Invalid date: {value}")


def _sales_filters(start: datetime | None, end: datetime | None, worker: str | None = None) -> list:
    filters = []
    if start is not None:
        filters.append(Sale.date >= start)
    if end is not None:
        filters.append(Sale.date <= end)
    if worker:
        filters.append(Sale.worker_name == worker)
    return filters


def _totals(filters: list) -> dict:
    total = sale_total_expr()
    row = db.session.query(
        func.coalesce(func.sum(total), 0).label("total_sales"),
        func.coalesce(func.sum(case((Sale.payment_method == "Cash", total), else_=0)), 0).label("cash_sales"),
        func.coalesce(func.sum(case((Sale.payment_method == "MoMo", total), else_=0)), 0).label("momo_sales"),
        func.count(Sale.id).label("count"),
    ).filter(*filters).one()
    return {
        "totalSales": money(row.total_sales),
        "cashSales": money(row.cash_sales),
        "momoSales": money(row.momo_sales),
        "count": int(row.count or 0),
    }


def _product_breakdown(sales: list[Sale], *, sort_by_quantity: bool = False) -> list[dict]:
    """Quantity and revenue per (product, size), in first-seen order unless sorted."""
    groups: dict[tuple[str, str], dict] = {}
    for sale in sales:
        for line in sale.effective_items():
            key = (line["product"], line["size"])
            row = groups.setdefault(key, {"product": key[0], "size": key[1], "quantity": 0, "total": 0})
            row["quantity"] += line["quantity"] or 0
            row["total"] += line["total"] or 0

    rows = [{**row, "total": money(row["total"])} for row in groups.values()]
    if sort_by_quantity:
        rows.sort(key=lambda r: r["quantity"], reverse=True)
    return rows


def top_products(limit: int | None = None) -> list[dict]:
    """All-time best sellers by quantity, grouped by product and size."""
    if limit is None:
        limit = current_app.config["TOP_PRODUCTS_LIMIT"]
    quantity = func.sum(SaleItem.quantity).label("quantity")
    rows = (
        db.session.query(SaleItem.product, SaleItem.size, quantity)
        .group_by(SaleItem.product, SaleItem.size)
        .order_by(quantity.desc())
        .limit(limit)
        .all()
    )
    return [{"product": r.product, "size": r.size, "quantity": int(r.quantity or 0)} for r in rows]


def low_stock_alerts(threshold: int | None = None) -> list[dict]:
    """Every product size whose closing stock is below the threshold."""
    if threshold is None:
        threshold = current_app.config["LOW_STOCK_THRESHOLD"]
    rows = (
        db.session.query(Product.name, ProductSize.size, ProductSize.closing_stock)
        .join(ProductSize, ProductSize.product_id == Product.id)
        .filter(ProductSize.closing_stock < threshold)
        .order_by(Product.name.asc(), ProductSize.id.asc())
        .all()
    )
    return [{"product": r.name, "size": r.size, "stock": r.closing_stock} for r in rows]


def dashboard(today: date | None = None) -> dict:
    today = today or local_today(_tz())
    start, end = local_day_bounds(today, _tz())
    stats = _totals(_sales_filters(start, end))

    size_count = db.session.query(func.count(ProductSize.id)).scalar() or 0
    units_on_hand = db.session.query(func.coalesce(func.sum(ProductSize.closing_stock), 0)).scalar()

    return {
        "date": today.isoformat(),
        "todayTotalSales": stats["totalSales"],
        "todayCashSales": stats["cashSales"],
        "todayMoMoSales": stats["momoSales"],
        "totalSalesToday": stats["totalSales"],
        "todayTransactionCount": stats["count"],
        "totalProducts": int(size_count),
        "totalStockUnits": int(units_on_hand or 0),
        "topProducts": top_products(),
        "lowStockAlerts": low_stock_alerts(),
    }


def daily_report(day: str | date | None = None) -> dict:
    if isinstance(day, str) or day is None:
        day = _parse_day(day) or local_today(_tz())
    start, end = local_day_bounds(day, _tz())
    filters = _sales_filters(start, end)

    stats = _totals(filters)
    sales = db.session.query(Sale).filter(*filters).order_by(Sale.date.asc(), Sale.id.asc()).all()

    return {
        "date": to_utc_z(start),
        "totalSales": stats["totalSales"],
        "cashSales": stats["cashSales"],
        "momoSales": stats["momoSales"],
        "transactionCount": stats["count"],
        "sales": [s.to_dict() for s in sales],
        "productBreakdown": _product_breakdown(sales),
    }


def custom_report(
    *,
    start_date: str | None = None,
    end_date: str | None = None,
    worker: str | None = None,
) -> dict:
    """
    Summary over an arbitrary date range.

    With both dates the range is [start of start_date, end of end_date]; with
    only start_date it is open-ended. worker "all" or empty means every worker.
    """
    start_day = _parse_day(start_date)
    end_day = _parse_day(end_date)
    if start_day and end_day and end_day < start_day:
        raise ReportError("endDate must not be before startDate")

    start = end = None
    if start_day:
        start, _ = local_day_bounds(start_day, _tz())
        if end_day:
            _, end = local_day_bounds(end_day, _tz())

    if worker == "all":
        worker = None
    filters = _sales_filters(start, end, worker)

    sales = db.session.query(Sale).filter(*filters).order_by(Sale.date.desc(), Sale.id.desc()).all()

    return {
        "summary": _totals(filters),
        "products": _product_breakdown(sales, sort_by_quantity=True),
        "sales": [s.to_dict() for s in sales],
    }
