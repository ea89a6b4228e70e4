from __future__ import annotations

from flask import Blueprint, current_app, jsonify

from app.tailorbook.db import db_session
from app.tailorbook.modules.whatsapp_dispatch.service import send_customer_summary
from app.tailorbook.modules.whatsapp_dispatch.whatsapp_client import (
    WhatsAppClient,
    WhatsAppNotConfigured,
    whatsapp_client_from_config,
)
from app.tailorbook.utils import current_storage, error_response

bp = Blueprint("whatsapp_dispatch", __name__)


def _client() -> WhatsAppClient:
    client = current_app.extensions.get("whatsapp_client")
    if client is None:
        client = whatsapp_client_from_config(current_app.config)
    return client


@bp.post("/customers/<customer_id>/send-whatsapp")
def send_whatsapp(customer_id: str):
    s = db_session()
    try:
        client = _client()
    except WhatsAppNotConfigured as e:
        current_app.logger.error("WhatsApp send refused: %s", e)
        return error_response(str(e), 503)
    try:
        outcome = send_customer_summary(s, current_storage(), client, customer_id)
    except LookupError:
        return error_response("Customer not found.", 404)
    except ValueError as e:
        return error_response(str(e), 400)
    s.commit()
    return jsonify(outcome.to_dict()), (200 if outcome.ok else 502)
