# Overview: Flask API routes for expenses; parses input and returns JSON responses.

from flask import Blueprint, request, g, current_app

from ..decorators import require_auth, require_roles
from ..extensions import db
from ..models import Expense
from ..services import expenses_service
from ..services.expenses_service import EXPENSE_POLICY
from ..services.store_scope import StoreContextError
from ..validation import PAYMENT_METHODS, ValidationError, parse_date, parse_store_id, validate_payload

expenses_bp = Blueprint("expenses", __name__, url_prefix="/api/expenses")

EXPENSE_ROLES = ("admin", "manager")


def _check_payment_method(patch: dict) -> None:
    method = patch.get("payment_method")
    if method is not None and method not in PAYMENT_METHODS:
        raise ValidationError(f"payment_method must be one of: {', '.join(PAYMENT_METHODS)}")


@expenses_bp.get("")
@require_auth
@require_roles(*EXPENSE_ROLES)
def list_expenses_route():
    try:
        start_date = parse_date(request.args.get("start_date"), "start_date")
        end_date = parse_date(request.args.get("end_date"), "end_date", end_of_day=True)
    except ValidationError as e:
        return {"error": str(e)}, 400

    expenses = expenses_service.list_expenses(
        g.caller,
        start_date=start_date,
        end_date=end_date,
        category=request.args.get("category"),
    )
    return {"items": [e.to_dict() for e in expenses], "count": len(expenses)}, 200


@expenses_bp.post("")
@require_auth
@require_roles(*EXPENSE_ROLES)
def create_expense_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Expense, payload=payload, policy=EXPENSE_POLICY, partial=False)
        _check_payment_method(patch)
        store_id = parse_store_id(payload.get("store_id"))
        expense = expenses_service.create_expense(g.caller, patch=patch, store_id=store_id)
    except (ValidationError, StoreContextError) as e:
        return {"error": str(e)}, 400
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create expense")
        return {"error": "Internal server error"}, 500

    return expense.to_dict(), 201


@expenses_bp.put("/<int:expense_id>")
@require_auth
@require_roles(*EXPENSE_ROLES)
def update_expense_route(expense_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Expense, payload=payload, policy=EXPENSE_POLICY, partial=True)
        _check_payment_method(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    expense = expenses_service.update_expense(g.caller, expense_id, patch)
    if expense is None:
        return {"error": "Expense not found"}, 404
    return expense.to_dict(), 200


@expenses_bp.delete("/<int:expense_id>")
@require_auth
@require_roles(*EXPENSE_ROLES)
def delete_expense_route(expense_id: int):
    if not expenses_service.delete_expense(g.caller, expense_id):
        return {"error": "Expense not found"}, 404
    return {"ok": True}, 200
