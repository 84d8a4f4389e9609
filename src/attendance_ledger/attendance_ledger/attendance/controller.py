from __future__ import annotations

from flask import Flask

from ..common.datetime_utils import parse_iso_date
from ..common.http import current_user_id, json_endpoint, ok
from ..core.exceptions import InvalidFormatError
from ..container import Container


def register(app: Flask, container: Container) -> None:
    @app.route("/api/attendance/start", methods=["POST"], endpoint="attendance_start")
    @json_endpoint
    def attendance_start():
        user_id = current_user_id(container)
        return ok(container.attendance_service.start_work(user_id), 201)

    @app.route("/api/attendance/end", methods=["POST"], endpoint="attendance_end")
    @json_endpoint
    def attendance_end():
        user_id = current_user_id(container)
        return ok(container.attendance_service.end_work(user_id), 201)

    @app.route("/api/attendance/status", methods=["GET"], endpoint="attendance_status")
    @json_endpoint
    def attendance_status():
        return ok(container.attendance_service.status(current_user_id(container)))

    @app.route("/api/attendance/history", methods=["GET"], endpoint="attendance_history")
    @json_endpoint
    def attendance_history():
        return ok(container.attendance_service.history_dates(current_user_id(container)))

    @app.route("/api/attendance/history/<day>", methods=["GET"], endpoint="attendance_day")
    @json_endpoint
    def attendance_day(day: str):
        try:
            work_date = parse_iso_date(day)
        except ValueError:
            raise InvalidFormatError("Invalid date, use YYYY-MM-DD")
        return ok(container.attendance_service.day(current_user_id(container), work_date))
