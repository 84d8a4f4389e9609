from __future__ import annotations

from flask import Flask, request

from ..common.datetime_utils import parse_iso_date
from ..common.http import current_user_id, json_endpoint, ok
from ..core.constants import SELECT_ALL_KEY
from ..core.exceptions import InvalidFormatError
from ..container import Container


def _field(name: str) -> str:
    body = request.get_json(silent=True) or {}
    value = body.get(name)
    if value is None or str(value).strip() == "":
        raise InvalidFormatError(f"{name} is required")
    return str(value)


def register(app: Flask, container: Container) -> None:
    flows = container.correction_service

    @app.route("/api/corrections", methods=["POST"], endpoint="corrections_invoke")
    @json_endpoint
    def corrections_invoke():
        body = request.get_json(silent=True) or {}
        work_date = None
        if body.get("date"):
            try:
                work_date = parse_iso_date(str(body["date"]))
            except ValueError:
                raise InvalidFormatError("Invalid date, use YYYY-MM-DD")
        step = flows.invoke(
            current_user_id(container),
            invoking_context=body.get("context"),
            work_date=work_date,
            page=int(body.get("page") or 0),
        )
        return ok(step, 201 if step.session_id else 200)

    @app.route("/api/corrections/<session_id>/action", methods=["POST"], endpoint="corrections_action")
    @json_endpoint
    def corrections_action(session_id: str):
        return ok(flows.choose_action(session_id, current_user_id(container), _field("action")))

    @app.route("/api/corrections/<session_id>/page", methods=["POST"], endpoint="corrections_page")
    @json_endpoint
    def corrections_page(session_id: str):
        try:
            page = int(_field("page"))
        except ValueError:
            raise InvalidFormatError("page must be a number")
        return ok(flows.change_page(session_id, current_user_id(container), page))

    @app.route("/api/corrections/<session_id>/target", methods=["POST"], endpoint="corrections_target")
    @json_endpoint
    def corrections_target(session_id: str):
        key = _field("selection_key")
        user_id = current_user_id(container)
        if key.strip() == SELECT_ALL_KEY:
            return ok(flows.pick_all(session_id, user_id))
        return ok(flows.pick_target(session_id, user_id, key))

    @app.route("/api/corrections/<session_id>/kind", methods=["POST"], endpoint="corrections_kind")
    @json_endpoint
    def corrections_kind(session_id: str):
        return ok(flows.pick_kind(session_id, current_user_id(container), _field("kind")))

    @app.route("/api/corrections/<session_id>/time", methods=["POST"], endpoint="corrections_time")
    @json_endpoint
    def corrections_time(session_id: str):
        body = request.get_json(silent=True) or {}
        return ok(flows.submit_time(session_id, current_user_id(container), str(body.get("time") or "")))

    @app.route("/api/corrections/<session_id>/confirm", methods=["POST"], endpoint="corrections_confirm")
    @json_endpoint
    def corrections_confirm(session_id: str):
        return ok(flows.confirm(session_id, current_user_id(container)))

    @app.route("/api/corrections/<session_id>/decline", methods=["POST"], endpoint="corrections_decline")
    @json_endpoint
    def corrections_decline(session_id: str):
        return ok(flows.decline(session_id, current_user_id(container)))

    @app.route("/api/corrections/<session_id>/cancel", methods=["POST"], endpoint="corrections_cancel")
    @json_endpoint
    def corrections_cancel(session_id: str):
        return ok(flows.cancel(session_id, current_user_id(container)))
