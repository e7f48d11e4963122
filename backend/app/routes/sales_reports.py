# Overview: Flask API routes for sales reports; returns JSON or a PDF download.

# backend/app/routes/sales_reports.py
"""Sales report routes (admin only). Only DELIVERED orders are counted."""

from flask import Blueprint, Response, request, jsonify

from ..services import sales_report_service
from ..decorators import require_admin


sales_reports_bp = Blueprint("sales_reports", __name__, url_prefix="/api/reports/sales")


@sales_reports_bp.get("")
@require_admin
def sales_report_route():
    """Query params: startDate, endDate (YYYY-MM-DD, both required, inclusive)"""
    report = sales_report_service.build_sales_report(request.args.get("startDate"), request.args.get("endDate"))
    return jsonify({"success": True, "message": "Sales report generated successfully", "data": report})


@sales_reports_bp.post("/pdf")
@require_admin
def sales_report_pdf_route():
    data = request.get_json(silent=True) or {}
    report = sales_report_service.build_sales_report(data.get("startDate"), data.get("endDate"))
    pdf = sales_report_service.render_sales_pdf(report)
    return Response(
        pdf,
        mimetype="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{sales_report_service.report_filename(report)}"'},
    )
