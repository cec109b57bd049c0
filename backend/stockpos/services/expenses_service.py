# Overview: Service-layer operations for expenses; encapsulates business logic and database work.

from __future__ import annotations

from datetime import datetime

from ..extensions import db
from ..models import Expense
from ..validation import ModelValidationPolicy
from .store_scope import get_scoped, resolve_store, scoped_query
from stockpos.time_utils import utcnow

EXPENSE_POLICY = ModelValidationPolicy(
    writable_fields={"description", "amount", "category", "payment_method", "date"},
    required_on_create={"description", "amount", "category"},
)


def list_expenses(
    caller,
    *,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    category: str | None = None,
) -> list[Expense]:
    filters = {"category": category} if category else {}
    q = scoped_query(Expense, caller, **filters)
    if start_date is not None:
        q = q.filter(Expense.date >= start_date)
    if end_date is not None:
        q = q.filter(Expense.date <= end_date)
    return q.order_by(Expense.date.desc(), Expense.id.desc()).all()


def get_expense(caller, expense_id: int) -> Expense | None:
    return get_scoped(Expense, caller, expense_id)


def create_expense(caller, *, patch: dict, store_id: int | None = None) -> Expense:
    store = resolve_store(caller, store_id)
    expense = Expense(store_id=store.id, user_id=caller.user_id, **patch)
    if expense.date is None:
        expense.date = utcnow()
    db.session.add(expense)
    db.session.commit()
    return expense


def update_expense(caller, expense_id: int, patch: dict) -> Expense | None:
    expense = get_expense(caller, expense_id)
    if expense is None:
        return None
    for k, v in patch.items():
        setattr(expense, k, v)
    db.session.commit()
    return expense


def delete_expense(caller, expense_id: int) -> bool:
    expense = get_expense(caller, expense_id)
    if expense is None:
        return False
    db.session.delete(expense)
    db.session.commit()
    return True
