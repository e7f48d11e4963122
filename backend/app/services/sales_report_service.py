# Overview: Service-layer operations for sales reports (JSON and PDF); encapsulates business logic and database work.

from __future__ import annotations

from io import BytesIO

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle
from sqlalchemy.orm import selectinload

from ..extensions import db
from ..models import Order, Product
from app.errors import ValidationError
from app.time_utils import utcnow
from app.validation import format_rupees
from .report_service import expense_total, percentage, parse_range, period_label


def _parse_report_range(start_value, end_value):
    if not start_value or not end_value:
        raise ValidationError("Start date and end date are required")
    try:
        start, end = parse_range(start_value, end_value)
    except ValidationError:
        raise ValidationError("Invalid date format")
    if start > end:
        raise ValidationError("Start date must be before end date")
    return start, end


def build_sales_report(start_value, end_value) -> dict:
    """Delivered-order sales between two dates, products ranked by revenue."""
    start, end = _parse_report_range(start_value, end_value)

    orders = (
        db.session.query(Order)
        .options(selectinload(Order.items))
        .filter(Order.status == "DELIVERED", Order.delivered_at >= start, Order.delivered_at <= end)
        .all()
    )

    products: dict[int, dict] = {}
    total_sold = 0
    for order in orders:
        for item in order.items:
            total_sold += item.quantity
            entry = products.get(item.product_id)
            if entry is None:
                product = db.session.get(Product, item.product_id) if item.product_id else None
                entry = products[item.product_id] = {
                    "productId": item.product_id,
                    "productName": product.name if product else item.product_name,
                    "category": product.category if product else "UNKNOWN",
                    "quantitySold": 0,
                    "revenueCents": 0,
                }
            entry["quantitySold"] += item.quantity
            entry["revenueCents"] += item.line_total_cents

    revenue = sum(order.total_cents for order in orders)
    expenses = expense_total(start, end)
    gross = revenue - expenses
    return {
        "period": period_label(start, end),
        "summary": {
            "totalRevenueCents": revenue,
            "totalOrders": len(orders),
            "totalProductsSold": total_sold,
            "averageOrderValueCents": round(revenue / len(orders)) if orders else 0,
        },
        "productsSold": sorted(products.values(), key=lambda p: p["revenueCents"], reverse=True),
        "profitMargins": {
            "totalRevenueCents": revenue,
            "totalExpensesCents": expenses,
            "grossProfitCents": gross,
            "profitMargin": percentage(gross, revenue),
        },
    }


def report_filename(report: dict) -> str:
    period = report["period"]
    return f"sales-report-{period['startDate']}-to-{period['endDate']}.pdf"


def render_sales_pdf(report: dict) -> bytes:
    buffer = BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=A4, leftMargin=18 * mm, rightMargin=18 * mm, title="Sales Report")
    styles = getSampleStyleSheet()
    summary = report["summary"]
    margins = report["profitMargins"]
    period = report["period"]

    story = [
        Paragraph("Sales Report", styles["Title"]),
        Paragraph(f"Period: {period['startDate']} - {period['endDate']}", styles["Normal"]),
        Spacer(1, 8 * mm),
        Paragraph("Summary", styles["Heading2"]),
        Paragraph(f"Total Revenue: {format_rupees(summary['totalRevenueCents'])}", styles["Normal"]),
        Paragraph(f"Total Orders: {summary['totalOrders']}", styles["Normal"]),
        Paragraph(f"Total Products Sold: {summary['totalProductsSold']}", styles["Normal"]),
        Paragraph(f"Average Order Value: {format_rupees(summary['averageOrderValueCents'])}", styles["Normal"]),
        Spacer(1, 6 * mm),
        Paragraph("Profit Margins", styles["Heading2"]),
        Paragraph(f"Total Revenue: {format_rupees(margins['totalRevenueCents'])}", styles["Normal"]),
        Paragraph(f"Total Expenses: {format_rupees(margins['totalExpensesCents'])}", styles["Normal"]),
        Paragraph(f"Gross Profit: {format_rupees(margins['grossProfitCents'])}", styles["Normal"]),
        Paragraph(f"Profit Margin: {margins['profitMargin']:.2f}%", styles["Normal"]),
        Spacer(1, 6 * mm),
        Paragraph("Products Sold", styles["Heading2"]),
    ]

    if not report["productsSold"]:
        story.append(Paragraph("No products sold in this period.", styles["Normal"]))
    else:
        rows = [["Product", "Category", "Quantity", "Revenue"]]
        for product in report["productsSold"]:
            rows.append(
                [
                    product["productName"][:30],
                    product["category"],
                    str(product["quantitySold"]),
                    format_rupees(product["revenueCents"]),
                ]
            )
        table = Table(rows, repeatRows=1, colWidths=[70 * mm, 40 * mm, 25 * mm, 35 * mm])
        table.setStyle(
            TableStyle(
                [
                    ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                    ("LINEBELOW", (0, 0), (-1, 0), 0.75, colors.black),
                    ("ALIGN", (2, 1), (-1, -1), "RIGHT"),
                    ("FONTSIZE", (0, 1), (-1, -1), 9),
                ]
            )
        )
        story.append(table)

    story.append(Spacer(1, 10 * mm))
    story.append(Paragraph(f"Generated on: {utcnow().strftime('%Y-%m-%d %H:%M')} UTC", styles["Italic"]))

    doc.build(story)
    return buffer.getvalue()
