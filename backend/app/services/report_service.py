# Overview: Service-layer operations for profit, expense and budget reporting; encapsulates business logic and database work.

"""
Finance Reporting Service

Income is recognised on delivery: only DELIVERED orders count, dated by
delivered_at. Expenses are dated by expense_date. All amounts are paisa.

BUDGET ALERTS:
- One Budget per (category, month, year)
- Thresholds are checked highest first (100, 90, 80); the first reached
  threshold whose flag is still clear fires, sets its flag, logs a warning
  and notifies every active admin in-app
- At most one alert fires per evaluation
"""

from __future__ import annotations

import calendar
from datetime import datetime, time

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Budget, Expense, Order, Product, User
from ..models.finance import BUDGET_ALERT_THRESHOLDS, EXPENSE_CATEGORIES
from app.errors import ValidationError
from app.time_utils import end_of_day, month_bounds, to_iso_date, utcnow
from app.validation import parse_bool, parse_choice, parse_date_arg, parse_int, parse_money_cents
from . import notification_service


EXPENSE_SORT_FIELDS = {
    "date": Expense.expense_date,
    "amount": Expense.amount_cents,
    "category": Expense.category,
    "createdAt": Expense.created_at,
}


def percentage(part: int, whole: int) -> float:
    return round(part / whole * 100, 2) if whole else 0.0


def parse_range(start_value, end_value) -> tuple[datetime | None, datetime | None]:
    """Date-only end bounds are inclusive of the whole day."""
    start = parse_date_arg(start_value, "startDate")
    end = parse_date_arg(end_value, "endDate")
    if end is not None and end.time() == time.min:
        end = end_of_day(end)
    return start, end


def delivered_revenue(start: datetime | None, end: datetime | None) -> tuple[int, int]:
    """(revenue_cents, order_count) for orders delivered in [start, end]."""
    query = db.session.query(func.coalesce(func.sum(Order.total_cents), 0), func.count(Order.id)).filter(
        Order.status == "DELIVERED"
    )
    if start is not None:
        query = query.filter(Order.delivered_at >= start)
    if end is not None:
        query = query.filter(Order.delivered_at <= end)
    revenue, count = query.one()
    return int(revenue or 0), int(count or 0)


def expense_total(start: datetime | None, end: datetime | None, category: str | None = None) -> int:
    query = db.session.query(func.coalesce(func.sum(Expense.amount_cents), 0))
    if start is not None:
        query = query.filter(Expense.expense_date >= start)
    if end is not None:
        query = query.filter(Expense.expense_date <= end)
    if category:
        query = query.filter(Expense.category == category)
    return int(query.scalar() or 0)


# =============================================================================
# PROFIT
# =============================================================================

def dashboard_summary() -> dict:
    now = utcnow()
    month_start, _ = month_bounds(now.year, now.month)
    revenue, _ = delivered_revenue(month_start, None)
    expenses = expense_total(month_start, None)
    return {
        "totalOrders": db.session.query(Order).count(),
        "pendingOrders": db.session.query(Order).filter(Order.status == "PENDING").count(),
        "monthlyRevenueCents": revenue,
        "monthlyExpensesCents": expenses,
        "monthlyProfitCents": revenue - expenses,
        "newUsersThisMonth": db.session.query(User).filter(User.created_at >= month_start).count(),
        "lowStockAlerts": db.session.query(Product)
        .filter(Product.is_active.is_(True), Product.stock <= current_app.config["LOW_STOCK_THRESHOLD"])
        .count(),
    }


def profit_summary(args) -> dict:
    now = utcnow()
    start, end = parse_range(args.get("startDate"), args.get("endDate"))
    if start is None:
        start = month_bounds(now.year, now.month)[0]
    if end is None:
        end = now

    income, order_count = delivered_revenue(start, end)
    expenses = expense_total(start, end)
    net = income - expenses
    return {
        "period": {"start": start.isoformat(), "end": end.isoformat()},
        "totalIncomeCents": income,
        "totalExpensesCents": expenses,
        "netProfitCents": net,
        "profitMargin": percentage(net, income),
        "orderCount": order_count,
    }


def yearly_profit_report(year=None) -> dict:
    year = parse_int(year, "year", minimum=1) if year not in (None, "") else utcnow().year
    monthly = []
    for month in range(1, 13):
        start, end = month_bounds(year, month)
        income, order_count = delivered_revenue(start, end)
        expenses = expense_total(start, end)
        monthly.append(
            {
                "month": month,
                "monthName": calendar.month_name[month],
                "incomeCents": income,
                "expensesCents": expenses,
                "profitCents": income - expenses,
                "orderCount": order_count,
            }
        )

    income = sum(m["incomeCents"] for m in monthly)
    profit = sum(m["profitCents"] for m in monthly)
    return {
        "year": year,
        "monthly": monthly,
        "yearly": {
            "incomeCents": income,
            "expensesCents": sum(m["expensesCents"] for m in monthly),
            "profitCents": profit,
            "orderCount": sum(m["orderCount"] for m in monthly),
            "profitMargin": percentage(profit, income),
        },
    }


# =============================================================================
# EXPENSES
# =============================================================================

def add_expense(data: dict, *, user_id: int) -> tuple[Expense, int | None]:
    """Record an expense then evaluate its month's budget. Returns (expense, alert_threshold)."""
    if not all(data.get(k) not in (None, "") for k in ("category", "amount", "description", "date")):
        raise ValidationError("Category, amount, description, and date are required")

    category = parse_choice(data["category"], EXPENSE_CATEGORIES, "category")
    amount = parse_money_cents(data["amount"], "amount")
    if amount <= 0:
        raise ValidationError("amount must be greater than 0")
    expense_date = parse_date_arg(data["date"], "date")

    expense = Expense(
        category=category,
        amount_cents=amount,
        description=str(data["description"]).strip(),
        expense_date=expense_date,
        receipt_url=data.get("receiptUrl") or None,
        is_recurring=parse_bool(data.get("isRecurring", False)),
        created_by_id=user_id,
    )
    db.session.add(expense)
    db.session.commit()

    return expense, check_budget_alert(category, expense_date)


def list_expenses(args, *, page: int, limit: int):
    """Returns (expenses, total_count, total_amount_cents)."""
    query = db.session.query(Expense)
    if args.get("category"):
        query = query.filter(Expense.category == args["category"].strip().upper())
    start, end = parse_range(args.get("startDate"), args.get("endDate"))
    if start is not None:
        query = query.filter(Expense.expense_date >= start)
    if end is not None:
        query = query.filter(Expense.expense_date <= end)

    total = query.count()
    amount = int(query.with_entities(func.coalesce(func.sum(Expense.amount_cents), 0)).scalar() or 0)

    column = EXPENSE_SORT_FIELDS.get(args.get("sortBy") or "date", Expense.expense_date)
    ordering = column.asc() if (args.get("sortOrder") or "desc").lower() == "asc" else column.desc()
    expenses = query.order_by(ordering, Expense.id.desc()).offset((page - 1) * limit).limit(limit).all()
    return expenses, total, amount


def expenses_by_category(args) -> dict:
    year = parse_int(args["year"], "year", minimum=1) if args.get("year") else utcnow().year
    month = parse_int(args["month"], "month", minimum=1) if args.get("month") else None
    if month is not None:
        if month > 12:
            raise ValidationError("month must be between 1 and 12")
        start, end = month_bounds(year, month)
    else:
        start, end = month_bounds(year, 1)[0], month_bounds(year, 12)[1]

    rows = (
        db.session.query(Expense.category, func.sum(Expense.amount_cents), func.count(Expense.id))
        .filter(Expense.expense_date >= start, Expense.expense_date <= end)
        .group_by(Expense.category)
        .all()
    )
    total = sum(int(amount or 0) for _, amount, _ in rows)
    breakdown = [
        {
            "category": category,
            "amountCents": int(amount or 0),
            "count": count,
            "percentage": percentage(int(amount or 0), total),
        }
        for category, amount, count in rows
    ]
    breakdown.sort(key=lambda row: row["amountCents"], reverse=True)
    return {
        "period": f"{year}-{month}" if month else str(year),
        "totalExpensesCents": total,
        "byCategory": breakdown,
    }


def expense_totals(args) -> dict:
    start, end = parse_range(args.get("startDate"), args.get("endDate"))
    query = db.session.query(
        func.coalesce(func.sum(Expense.amount_cents), 0),
        func.count(Expense.id),
        func.avg(Expense.amount_cents),
    )
    if start is not None:
        query = query.filter(Expense.expense_date >= start)
    if end is not None:
        query = query.filter(Expense.expense_date <= end)
    total, count, average = query.one()
    return {
        "totalExpensesCents": int(total or 0),
        "expenseCount": int(count or 0),
        "averageExpenseCents": round(float(average or 0)),
    }


# =============================================================================
# BUDGETS
# =============================================================================

def _parse_period(month, year) -> tuple[int, int]:
    month = parse_int(month, "month", minimum=1)
    if month > 12:
        raise ValidationError("month must be between 1 and 12")
    return month, parse_int(year, "year", minimum=1)


def set_budget(data: dict) -> Budget:
    """Upsert the limit for (category, month, year)."""
    if not all(data.get(k) not in (None, "") for k in ("category", "limitAmount", "month", "year")):
        raise ValidationError("Category, limit amount, month, and year are required")
    category = parse_choice(data["category"], EXPENSE_CATEGORIES, "category")
    limit_cents = parse_money_cents(data["limitAmount"], "limitAmount")
    if limit_cents <= 0:
        raise ValidationError("limitAmount must be greater than 0")
    month, year = _parse_period(data["month"], data["year"])

    budget = db.session.query(Budget).filter_by(category=category, month=month, year=year).first()
    if budget is None:
        budget = Budget(category=category, month=month, year=year, limit_cents=limit_cents)
        db.session.add(budget)
    else:
        budget.limit_cents = limit_cents
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        budget = db.session.query(Budget).filter_by(category=category, month=month, year=year).one()
        budget.limit_cents = limit_cents
        db.session.commit()
    return budget


def budget_status(percent: float) -> str:
    if percent >= 100:
        return "EXCEEDED"
    if percent >= 80:
        return "WARNING"
    return "OK"


def budgets_with_spending(args) -> list[dict]:
    now = utcnow()
    month, year = _parse_period(args.get("month") or now.month, args.get("year") or now.year)
    start, end = month_bounds(year, month)

    spending = dict(
        db.session.query(Expense.category, func.sum(Expense.amount_cents))
        .filter(Expense.expense_date >= start, Expense.expense_date <= end)
        .group_by(Expense.category)
        .all()
    )
    budgets = (
        db.session.query(Budget)
        .filter_by(month=month, year=year)
        .order_by(Budget.category)
        .all()
    )
    result = []
    for budget in budgets:
        spent = int(spending.get(budget.category) or 0)
        percent = percentage(spent, budget.limit_cents)
        data = budget.to_dict()
        data.update(
            {
                "spentCents": spent,
                "remainingCents": budget.limit_cents - spent,
                "percentage": percent,
                "status": budget_status(percent),
            }
        )
        result.append(data)
    return result


def check_budget_alert(category: str, when: datetime) -> int | None:
    """Evaluate the budget covering `when`. Returns the threshold that fired, if any."""
    budget = db.session.query(Budget).filter_by(category=category, month=when.month, year=when.year).first()
    if budget is None or not budget.limit_cents:
        return None

    start, end = month_bounds(when.year, when.month)
    spent = expense_total(start, end, category)
    percent = percentage(spent, budget.limit_cents)

    for threshold in BUDGET_ALERT_THRESHOLDS:
        if percent >= threshold and not budget.alert_sent(threshold):
            budget.mark_alert_sent(threshold)
            db.session.commit()
            current_app.logger.warning(
                "Budget alert: %s at %.2f%% of its %s/%s limit (threshold %s%%)",
                category,
                percent,
                when.month,
                when.year,
                threshold,
            )
            notification_service.notify_admins(
                title="Budget alert",
                message=f"{category} spending has reached {threshold}% of the budget for {when.month}/{when.year}.",
                related_data={"budgetId": budget.id, "threshold": threshold, "percentage": percent},
            )
            return threshold
    return None


def recheck_budgets(month: int, year: int) -> list[tuple[str, int]]:
    """Re-evaluate every budget for one period. Returns [(category, threshold)] for alerts fired."""
    fired = []
    when = datetime(year, month, 1)
    for budget in db.session.query(Budget).filter_by(month=month, year=year).order_by(Budget.category).all():
        threshold = check_budget_alert(budget.category, when)
        if threshold is not None:
            fired.append((budget.category, threshold))
    return fired


def period_label(start: datetime, end: datetime) -> dict:
    return {"startDate": to_iso_date(start.date()), "endDate": to_iso_date(end.date())}
