# Overview: Flask API routes for profit, expense and budget reports; parses input and returns JSON responses.

# backend/app/routes/reports.py
"""
Finance reporting routes (admin only).

Income counts DELIVERED orders by delivery date. Amounts are returned in
paisa (*Cents keys); request bodies take rupees.
"""

from flask import Blueprint, request, jsonify, g

from ..services import report_service
from ..validation import parse_pagination, pagination_meta
from ..decorators import require_admin


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/dashboard")
@require_admin
def dashboard_route():
    return jsonify({"success": True, "data": report_service.dashboard_summary()})


# =============================================================================
# PROFIT
# =============================================================================

@reports_bp.get("/profit")
@require_admin
def profit_summary_route():
    """Query params: startDate, endDate (YYYY-MM-DD). Defaults to month to date."""
    return jsonify({"success": True, "data": report_service.profit_summary(request.args)})


@reports_bp.get("/profit/detailed")
@require_admin
def profit_detailed_route():
    return jsonify({"success": True, "data": report_service.yearly_profit_report(request.args.get("year"))})


# =============================================================================
# EXPENSES
# =============================================================================

@reports_bp.post("/expenses")
@require_admin
def add_expense_route():
    """
    Request body:
    {
        "category": "RAW_MATERIALS",
        "amount": 12500,
        "description": "Epoxy resin 5L",
        "date": "2026-03-14",
        "receiptUrl": "...",     (optional)
        "isRecurring": false     (optional)
    }

    Adding an expense re-evaluates that month's budget for the category.
    """
    data = request.get_json(silent=True) or {}
    expense, alert = report_service.add_expense(data, user_id=g.current_user.id)
    return jsonify({
        "success": True,
        "message": "Expense added successfully",
        "data": expense.to_dict(),
        "budgetAlert": alert,
    }), 201


@reports_bp.get("/expenses")
@require_admin
def list_expenses_route():
    """Query params: category, startDate, endDate, sortBy, sortOrder, page, limit"""
    page, limit = parse_pagination(request.args, default_limit=20)
    expenses, total, amount = report_service.list_expenses(request.args, page=page, limit=limit)
    return jsonify({
        "success": True,
        "count": len(expenses),
        "summary": {"totalAmountCents": amount},
        "pagination": pagination_meta(page, limit, total),
        "data": [e.to_dict() for e in expenses],
    })


@reports_bp.get("/expenses/by-category")
@require_admin
def expenses_by_category_route():
    return jsonify({"success": True, "data": report_service.expenses_by_category(request.args)})


@reports_bp.get("/expenses/total")
@require_admin
def expense_totals_route():
    return jsonify({"success": True, "data": report_service.expense_totals(request.args)})


# =============================================================================
# BUDGETS
# =============================================================================

@reports_bp.post("/budgets")
@require_admin
def set_budget_route():
    """
    Request body:
    {
        "category": "PACKAGING",
        "limitAmount": 20000,
        "month": 3,
        "year": 2026
    }
    """
    data = request.get_json(silent=True) or {}
    budget = report_service.set_budget(data)
    return jsonify({"success": True, "message": "Budget set successfully", "data": budget.to_dict()})


@reports_bp.get("/budgets")
@require_admin
def list_budgets_route():
    """Query params: month, year (default current period)"""
    return jsonify({"success": True, "data": report_service.budgets_with_spending(request.args)})
