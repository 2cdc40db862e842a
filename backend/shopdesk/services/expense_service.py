# Overview: Service-layer operations for expenses; categories, records and statistics.

from __future__ import annotations

from ..extensions import db
from ..models import Expense, ExpenseCategory, Shop
from ..validation import (
    ConflictError,
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    enforce_rules_expense,
    validate_payload,
)
from .salary_service import period_bounds
from shopdesk.time_utils import get_zone, local_today, parse_iso_date


EXPENSE_POLICY = ModelValidationPolicy(
    writable_fields={"category_id", "description", "amount_cents", "expense_date"},
    required_on_create={"description", "amount_cents"},
)

UNCATEGORIZED = "Uncategorized"


# =============================================================================
# CATEGORIES
# =============================================================================

def create_category(shop_id: int, name: str) -> ExpenseCategory:
    name = (name or "").strip()
    if not name:
        raise ValidationError("name is required")
    if len(name) > 120:
        raise ValidationError("name exceeds max length 120")

    exists = (
        db.session.query(ExpenseCategory)
        .filter(ExpenseCategory.shop_id == shop_id, db.func.lower(ExpenseCategory.name) == name.lower())
        .first()
    )
    if exists:
        raise ConflictError("Category already exists")

    category = ExpenseCategory(shop_id=shop_id, name=name)
    db.session.add(category)
    db.session.commit()
    return category


def list_categories(shop_id: int) -> list[ExpenseCategory]:
    return (
        db.session.query(ExpenseCategory)
        .filter_by(shop_id=shop_id)
        .order_by(ExpenseCategory.name.asc())
        .all()
    )


def get_category(shop_id: int, category_id: int) -> ExpenseCategory:
    category = db.session.query(ExpenseCategory).filter_by(id=category_id, shop_id=shop_id).first()
    if not category:
        raise NotFoundError("Category not found")
    return category


def delete_category(shop_id: int, category_id: int) -> int:
    """Delete a category; its expenses stay and become uncategorized. Returns how many moved."""
    category = get_category(shop_id, category_id)
    moved = (
        db.session.query(Expense)
        .filter_by(shop_id=shop_id, category_id=category.id)
        .update({Expense.category_id: None}, synchronize_session=False)
    )
    db.session.delete(category)
    db.session.commit()
    return moved


# =============================================================================
# RECORDS
# =============================================================================

def _check_category(shop_id: int, patch: dict) -> None:
    if patch.get("category_id") is not None:
        get_category(shop_id, patch["category_id"])


def create_expense(shop: Shop, payload: dict) -> Expense:
    patch = validate_payload(model=Expense, payload=payload, policy=EXPENSE_POLICY, partial=False)
    enforce_rules_expense(patch)
    _check_category(shop.id, patch)

    if patch.get("expense_date") is None:
        patch["expense_date"] = local_today(get_zone(shop.timezone))

    expense = Expense(shop_id=shop.id, **patch)
    db.session.add(expense)
    db.session.commit()
    return expense


def get_expense(shop_id: int, expense_id: int) -> Expense:
    expense = db.session.query(Expense).filter_by(id=expense_id, shop_id=shop_id).first()
    if not expense:
        raise NotFoundError("Expense not found")
    return expense


def update_expense(shop_id: int, expense_id: int, payload: dict) -> Expense:
    expense = get_expense(shop_id, expense_id)

    patch = validate_payload(model=Expense, payload=payload, policy=EXPENSE_POLICY, partial=True)
    enforce_rules_expense(patch)
    _check_category(shop_id, patch)
    if "expense_date" in patch and patch["expense_date"] is None:
        raise ValidationError("expense_date cannot be null")

    for key, value in patch.items():
        setattr(expense, key, value)

    db.session.commit()
    return expense


def delete_expense(shop_id: int, expense_id: int) -> None:
    expense = get_expense(shop_id, expense_id)
    db.session.delete(expense)
    db.session.commit()


def list_expenses(
    shop_id: int,
    category_id: int | None = None,
    search: str | None = None,
    start: str | None = None,
    end: str | None = None,
) -> list[Expense]:
    """start/end are inclusive YYYY-MM-DD dates."""
    query = db.session.query(Expense).filter(Expense.shop_id == shop_id)

    if category_id is not None:
        query = query.filter(Expense.category_id == category_id)
    if search:
        query = query.filter(Expense.description.ilike(f"%{search.strip()}%"))

    try:
        start_day = parse_iso_date(start) if start else None
        end_day = parse_iso_date(end) if end else None
    except ValueError:
        raise ValidationError("start/end must be ISO-8601 dates (YYYY-MM-DD)")

    if start_day:
        query = query.filter(Expense.expense_date >= start_day)
    if end_day:
        query = query.filter(Expense.expense_date <= end_day)

    return query.order_by(Expense.expense_date.desc(), Expense.id.desc()).all()


def expense_statistics(shop: Shop) -> dict:
    totals = db.session.query(
        db.func.coalesce(db.func.sum(Expense.amount_cents), 0),
        db.func.count(Expense.id),
    ).filter(Expense.shop_id == shop.id).one()

    by_category_rows = (
        db.session.query(ExpenseCategory.name, db.func.sum(Expense.amount_cents), db.func.count(Expense.id))
        .select_from(Expense)
        .outerjoin(ExpenseCategory, Expense.category_id == ExpenseCategory.id)
        .filter(Expense.shop_id == shop.id)
        .group_by(ExpenseCategory.name)
        .all()
    )
    by_category = {
        (name or UNCATEGORIZED): {"amount_cents": int(amount or 0), "count": count}
        for name, amount, count in by_category_rows
    }

    today = local_today(get_zone(shop.timezone))
    first, last = period_bounds(today.strftime("%Y-%m"))
    month_total = db.session.query(db.func.coalesce(db.func.sum(Expense.amount_cents), 0)).filter(
        Expense.shop_id == shop.id,
        Expense.expense_date >= first,
        Expense.expense_date <= last,
    ).scalar()

    return {
        "total_amount_cents": int(totals[0] or 0),
        "count": totals[1],
        "by_category": by_category,
        "current_month": today.strftime("%Y-%m"),
        "current_month_amount_cents": int(month_total or 0),
    }
