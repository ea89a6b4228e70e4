from __future__ import annotations

from flask import Blueprint, jsonify

from app.tailorbook.db import db_session
from app.tailorbook.modules.customer_profiles.service import get_customer_by_id
from app.tailorbook.modules.measurements.fields import SUMMARY_FIELDS
from app.tailorbook.modules.measurements.service import (
    get_measurement,
    measurement_values,
    parse_measurement_payload,
    save_measurement,
)
from app.tailorbook.modules.measurements.summary import build_measurement_block
from app.tailorbook.utils import error_response, request_payload

bp = Blueprint("measurements", __name__)


@bp.get("/customers/<customer_id>/measurements")
def measurements_get(customer_id: str):
    s = db_session()
    if not get_customer_by_id(s, customer_id):
        return error_response("Customer not found.", 404)
    m = get_measurement(s, customer_id)
    return jsonify(
        {
            "customer_id": customer_id,
            "exists": m is not None,
            "values": measurement_values(m),
            "fields": [{"key": f.key, "label": f.label, "numeric": f.numeric} for f in SUMMARY_FIELDS],
            "updated_at": m.updated_at.isoformat() if m else None,
        }
    )


@bp.put("/customers/<customer_id>/measurements")
def measurements_save(customer_id: str):
    s = db_session()
    if not get_customer_by_id(s, customer_id):
        return error_response("Customer not found.", 404)
    values, errs = parse_measurement_payload(request_payload())
    if errs:
        return error_response("Invalid measurements.", 400, fields=errs)
    m = save_measurement(s, customer_id, values)
    s.commit()
    return jsonify({"customer_id": customer_id, "values": measurement_values(m)})


@bp.get("/customers/<customer_id>/measurements/summary")
def measurements_summary(customer_id: str):
    s = db_session()
    if not get_customer_by_id(s, customer_id):
        return error_response("Customer not found.", 404)
    return jsonify({"customer_id": customer_id, "text": build_measurement_block(get_measurement(s, customer_id))})
