# Overview: Flask API routes for reports; parses input and returns JSON responses.

from flask import Blueprint, request, g

from ..decorators import require_auth, require_roles
from ..services import reporting_service
from ..validation import ValidationError, parse_date


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")

REPORT_ROLES = ("admin", "manager")


def _range():
    return (
        parse_date(request.args.get("start_date"), "start_date"),
        parse_date(request.args.get("end_date"), "end_date", end_of_day=True),
    )


@reports_bp.get("/sales-summary")
@require_auth
@require_roles(*REPORT_ROLES)
def sales_summary_route():
    try:
        start, end = _range()
    except ValidationError as exc:
        return {"error": str(exc)}, 400

    report = reporting_service.sales_summary(
        g.caller, start=start, end=end, store_id=request.args.get("store_id", type=int)
    )
    return report, 200


@reports_bp.get("/inventory-valuation")
@require_auth
@require_roles(*REPORT_ROLES)
def inventory_valuation_route():
    report = reporting_service.inventory_valuation(g.caller, store_id=request.args.get("store_id", type=int))
    return report, 200


@reports_bp.get("/profit")
@require_auth
@require_roles(*REPORT_ROLES)
def profit_route():
    try:
        start, end = _range()
    except ValidationError as exc:
        return {"error": str(exc)}, 400

    report = reporting_service.profit_report(
        g.caller, start=start, end=end, store_id=request.args.get("store_id", type=int)
    )
    return report, 200
