from __future__ import annotations

from functools import wraps

from flask import jsonify, request

from ..core.exceptions import DomainError, StorageError
from ..presenter.serializers import to_payload
from .logging import get_logger

logger = get_logger(__name__)

EXTERNAL_ID_HEADER = "X-External-Id"
USERNAME_HEADER = "X-Username"


def current_user_id(container) -> int:
    """Resolve the caller's platform identity to a ledger user id."""
    body = request.get_json(silent=True) or {}
    external_id = request.headers.get(EXTERNAL_ID_HEADER) or body.get("external_id") or ""
    username = request.headers.get(USERNAME_HEADER) or body.get("username")
    return container.user_service.resolve(external_id, username).user_id


def ok(view, status: int = 200):
    return jsonify({"success": True, "data": to_payload(view)}), status


def json_endpoint(view):
    """Translate domain errors to 400 and storage failures to 503."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        try:
            return view(*args, **kwargs)
        except DomainError as e:
            return jsonify({"success": False, "code": e.code, "message": str(e)}), 400
        except StorageError as e:
            logger.error("Storage failure in %s: %s", request.path, e)
            return jsonify({"success": False, "code": e.code, "message": "Storage unavailable, please try again"}), 503

    return wrapper
