# Overview: Flask API route for the dashboard summary.

from flask import Blueprint, request

from ..decorators import require_any_permission, require_auth
from ..errors import ValidationError
from ..responses import ok
from ..services import dashboard_service
from ..time_utils import parse_iso_datetime


dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/dashboard")


def _date_arg(name: str):
    try:
        return parse_iso_datetime(request.args.get(name))
    except ValueError:
        raise ValidationError(f"{name} must be an ISO-8601 date")


@dashboard_bp.get("/summary")
@require_auth
@require_any_permission("dashboard:read", "reports:read")
def summary_route():
    """Entity counts, invoice status breakdown, paid sales (optionally start/end bounded), low stock."""
    return ok(dashboard_service.get_summary(start=_date_arg("start"), end=_date_arg("end")))
