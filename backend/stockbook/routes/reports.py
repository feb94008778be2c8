from flask import Blueprint, jsonify, request, current_app

from stockbook.services import reporting_service


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/dashboard")
def dashboard():
    try:
        return jsonify(reporting_service.dashboard()), 200
    except Exception:
        current_app.logger.exception("Failed to fetch dashboard stats")
        return jsonify({"error": "Failed to fetch dashboard stats"}), 500


@reports_bp.get("/daily")
def daily_report():
    try:
        report = reporting_service.daily_report(request.args.get("date"))
        return jsonify(report), 200
    except reporting_service.ReportError as exc:
        return jsonify({"error": str(exc)}), 400
    except Exception:
        current_app.logger.exception("Failed to generate daily report")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.get("/custom")
def custom_report():
    try:
        report = reporting_service.custom_report(
            start_date=request.args.get("startDate"),
            end_date=request.args.get("endDate"),
            worker=request.args.get("worker"),
        )
        return jsonify(report), 200
    except reporting_service.ReportError as exc:
        return jsonify({"error": str(exc)}), 400
    except Exception:
        current_app.logger.exception("Failed to generate custom report")
        return jsonify({"error": "Internal server error"}), 500
