from __future__ import annotations

from flask import Blueprint, jsonify, request

from app.tailorbook.db import db_session
from app.tailorbook.modules.customer_images.service import list_customer_images, resolve_image_url
from app.tailorbook.modules.customer_profiles.service import (
    create_customer,
    delete_customer,
    get_customer_by_id,
    list_customers,
    update_customer,
    validate_customer_payload,
)
from app.tailorbook.modules.measurements.service import get_measurement, measurement_values
from app.tailorbook.utils import current_storage, error_response, request_payload

bp = Blueprint("customer_profiles", __name__)


@bp.get("/customers")
def customers_list():
    s = db_session()
    q = (request.args.get("q") or "").strip()
    customers = list_customers(s, q=q or None)
    return jsonify({"customers": [c.to_dict() for c in customers], "count": len(customers)})


@bp.post("/customers")
def customers_create():
    s = db_session()
    payload = request_payload()
    errs = validate_customer_payload(payload)
    if errs:
        return error_response("Invalid customer.", 400, fields=errs)
    c = create_customer(s, payload)
    s.commit()
    return jsonify({"customer": c.to_dict()}), 201


@bp.get("/customers/<customer_id>")
def customer_detail(customer_id: str):
    s = db_session()
    c = get_customer_by_id(s, customer_id)
    if not c:
        return error_response("Customer not found.", 404)
    m = get_measurement(s, c.id)
    storage = current_storage()
    images = [
        {
            "id": img.id,
            "file_path": img.file_path,
            "file_name": img.file_name,
            "url": resolve_image_url(storage, img.file_path),
            "created_at": img.created_at.isoformat(),
        }
        for img in list_customer_images(s, c.id)
    ]
    return jsonify(
        {
            "customer": c.to_dict(),
            "measurements": measurement_values(m) if m else None,
            "images": images,
        }
    )


@bp.put("/customers/<customer_id>")
def customer_update(customer_id: str):
    s = db_session()
    c = get_customer_by_id(s, customer_id)
    if not c:
        return error_response("Customer not found.", 404)
    payload = request_payload()
    errs = validate_customer_payload(payload)
    if errs:
        return error_response("Invalid customer.", 400, fields=errs)
    update_customer(s, c, payload)
    s.commit()
    return jsonify({"customer": c.to_dict()})


@bp.delete("/customers/<customer_id>")
def customer_delete(customer_id: str):
    s = db_session()
    c = get_customer_by_id(s, customer_id)
    if not c:
        return error_response("Customer not found.", 404)
    # StorageError propagates to the app-level 502 handler; remaining rows stay for a retry.
    delete_customer(s, current_storage(), c)
    return jsonify({"ok": True})
