from __future__ import annotations

from flask import Flask, request

from ..common.datetime_utils import parse_iso_date
from ..common.http import current_user_id, json_endpoint, ok
from ..core.exceptions import InvalidFormatError
from ..container import Container


def register(app: Flask, container: Container) -> None:
    @app.route("/api/reports/<kind>", methods=["GET"], endpoint="reports_period")
    @json_endpoint
    def reports_period(kind: str):
        day = None
        if request.args.get("date"):
            try:
                day = parse_iso_date(request.args["date"])
            except ValueError:
                raise InvalidFormatError("Invalid date, use YYYY-MM-DD")
        return ok(container.report_service.report(current_user_id(container), kind, day=day))
