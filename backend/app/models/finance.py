from __future__ import annotations

from ..extensions import db
from app.time_utils import to_utc_z

EXPENSE_CATEGORIES = (
    "RAW_MATERIALS",
    "PACKAGING",
    "SHIPPING",
    "MARKETING",
    "UTILITIES",
    "EQUIPMENT",
    "SALARIES",
    "RENT",
    "MISCELLANEOUS",
)

# Alert thresholds checked highest first
BUDGET_ALERT_THRESHOLDS = (100, 90, 80)


class Expense(db.Model):
    __tablename__ = "expenses"
    __table_args__ = (
        db.Index("ix_expenses_category_date", "category", "expense_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    category = db.Column(db.String(32), nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False)
    description = db.Column(db.Text, nullable=False)
    expense_date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    receipt_url = db.Column(db.String(255), nullable=True)
    is_recurring = db.Column(db.Boolean, nullable=False, default=False)
    created_by_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "category": self.category,
            "amountCents": self.amount_cents,
            "description": self.description,
            "date": to_utc_z(self.expense_date),
            "receiptUrl": self.receipt_url,
            "isRecurring": self.is_recurring,
            "createdById": self.created_by_id,
            "createdAt": to_utc_z(self.created_at),
        }


class Budget(db.Model):
    """
    Monthly spending limit per expense category.

    The alert flags record which thresholds have already been announced so
    each fires at most once per budget period.
    """
    __tablename__ = "budgets"
    __table_args__ = (
        db.UniqueConstraint("category", "month", "year", name="uq_budgets_category_period"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    category = db.Column(db.String(32), nullable=False)
    month = db.Column(db.Integer, nullable=False)
    year = db.Column(db.Integer, nullable=False)
    limit_cents = db.Column(db.Integer, nullable=False)

    alert_80_sent = db.Column(db.Boolean, nullable=False, default=False)
    alert_90_sent = db.Column(db.Boolean, nullable=False, default=False)
    alert_100_sent = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def alert_sent(self, threshold: int) -> bool:
        return bool(getattr(self, f"alert_{threshold}_sent"))

    def mark_alert_sent(self, threshold: int) -> None:
        setattr(self, f"alert_{threshold}_sent", True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "category": self.category,
            "month": self.month,
            "year": self.year,
            "limitCents": self.limit_cents,
            "alert80Sent": self.alert_80_sent,
            "alert90Sent": self.alert_90_sent,
            "alert100Sent": self.alert_100_sent,
            "updatedAt": to_utc_z(self.updated_at),
        }
