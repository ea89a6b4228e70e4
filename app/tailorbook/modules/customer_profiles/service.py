"""
Customer records.

Customer is the root entity: its Measurement and CustomerImage rows have no
life of their own. The database does not cascade; delete_customer() removes
the children (and their blobs) itself.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.tailorbook.audit import record_event
from app.tailorbook.modules.customer_images.models import CustomerImage
from app.tailorbook.modules.customer_images.service import delete_customer_image
from app.tailorbook.modules.customer_profiles.models import Customer
from app.tailorbook.modules.customer_profiles.utils import clean_optional_text, is_valid_local_phone
from app.tailorbook.modules.measurements.models import Measurement
from app.tailorbook.storage import Storage

logger = logging.getLogger(__name__)

_EDITABLE_FIELDS = ("name", "phone", "email", "address", "notes")


@dataclass(frozen=True)
class ValidationError:
    field: str
    message: str


def validate_customer_payload(payload: dict[str, Any]) -> list[ValidationError]:
    errs: list[ValidationError] = []
    if not (clean_optional_text(payload.get("name")) or ""):
        errs.append(ValidationError("name", "Name is required."))
    phone = clean_optional_text(payload.get("phone"))
    if phone is not None and not is_valid_local_phone(phone):
        errs.append(ValidationError("phone", "Phone must be exactly 10 digits."))
    return errs


def get_customer_by_id(s: Session, customer_id: str) -> Customer | None:
    return s.get(Customer, customer_id)


def list_customers(s: Session, *, q: str | None = None, limit: int | None = None) -> list[Customer]:
    """Newest first; `q` matches a substring of the name (case-insensitive) or the phone."""
    query = s.query(Customer)
    q = (q or "").strip()
    if q:
        like = f"%{q}%"
        query = query.filter(or_(Customer.name.ilike(like), Customer.phone.like(like)))
    query = query.order_by(Customer.created_at.desc(), Customer.id.asc())
    if limit:
        query = query.limit(limit)
    return query.all()


def _snapshot(c: Customer) -> dict[str, Any]:
    return {f: getattr(c, f) for f in _EDITABLE_FIELDS}


def create_customer(s: Session, payload: dict[str, Any]) -> Customer:
    """Caller validates first (validate_customer_payload) and commits."""
    c = Customer(
        name=clean_optional_text(payload.get("name")) or "",
        phone=clean_optional_text(payload.get("phone")),
        email=clean_optional_text(payload.get("email")),
        address=clean_optional_text(payload.get("address")),
        notes=clean_optional_text(payload.get("notes")),
    )
    if not c.name:
        raise ValueError("name is required")
    s.add(c)
    s.flush()
    record_event(
        s,
        action="customer.create",
        entity_type="Customer",
        entity_id=c.id,
        metadata={"name": c.name},
    )
    return c


def update_customer(s: Session, c: Customer, payload: dict[str, Any]) -> Customer:
    """
    Full replacement of the editable fields (missing keys clear optional fields).
    Concurrent edits are last-write-wins.
    """
    before = _snapshot(c)

    name = clean_optional_text(payload.get("name"))
    if not name:
        raise ValueError("name is required")
    c.name = name
    c.phone = clean_optional_text(payload.get("phone"))
    c.email = clean_optional_text(payload.get("email"))
    c.address = clean_optional_text(payload.get("address"))
    c.notes = clean_optional_text(payload.get("notes"))
    c.updated_at = datetime.utcnow()

    after = _snapshot(c)
    fields_changed = [k for k in before if before[k] != after[k]]
    record_event(
        s,
        action="customer.update",
        entity_type="Customer",
        entity_id=c.id,
        metadata={"before": before, "after": after, "fields_changed": fields_changed},
    )
    return c


def delete_customer(s: Session, storage: Storage, c: Customer) -> None:
    """
    Delete a customer with its measurement and every photo (blob, then row).

    Photos are removed one by one and each removal commits on its own. If a
    blob cannot be removed the StorageError propagates: that photo row, any
    photos after it, the measurement and the customer all stay, so the call
    can simply be repeated.
    """
    images = (
        s.query(CustomerImage)
        .filter(CustomerImage.customer_id == c.id)
        .order_by(CustomerImage.created_at.desc(), CustomerImage.id.desc())
        .all()
    )
    for img in images:
        delete_customer_image(s, storage, image_id=img.id, file_path=img.file_path)

    s.query(Measurement).filter(Measurement.customer_id == c.id).delete(synchronize_session=False)
    customer_id = c.id
    name = c.name
    s.delete(c)
    record_event(
        s,
        action="customer.delete",
        entity_type="Customer",
        entity_id=customer_id,
        metadata={"name": name, "images_removed": len(images)},
    )
    s.commit()
    logger.info("Deleted customer id=%s with %d photo(s)", customer_id, len(images))
