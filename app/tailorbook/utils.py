from __future__ import annotations

from typing import Any

from flask import current_app, jsonify, request

from app.tailorbook.storage import Storage, storage_from_config


def request_payload() -> dict[str, Any]:
    """JSON body when present, otherwise form fields."""
    if request.is_json:
        data = request.get_json(silent=True)
        return data if isinstance(data, dict) else {}
    return request.form.to_dict()


def error_response(message: str, status: int, *, fields: list | None = None):
    body: dict[str, Any] = {"error": message}
    if fields:
        body["fields"] = [{"field": e.field, "message": e.message} for e in fields]
    return jsonify(body), status


def current_storage() -> Storage:
    """The app's blob store (create_app installs one; tests may swap it)."""
    storage = current_app.extensions.get("storage")
    if storage is None:
        storage = storage_from_config(current_app.config)
        current_app.extensions["storage"] = storage
    return storage
