from __future__ import annotations

import math
from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session

from app.tailorbook.audit import record_event
from app.tailorbook.modules.customer_profiles.service import ValidationError
from app.tailorbook.modules.measurements.fields import FIELDS_BY_KEY, MEASUREMENT_FIELDS, NOTES_FIELD, SUMMARY_FIELDS
from app.tailorbook.modules.measurements.models import Measurement


def get_measurement(s: Session, customer_id: str) -> Measurement | None:
    return s.query(Measurement).filter(Measurement.customer_id == customer_id).one_or_none()


def measurement_values(m: Measurement | None) -> dict[str, Any]:
    """Every registry field, None where unset (form pre-fill shape)."""
    return {f.key: (getattr(m, f.key) if m is not None else None) for f in SUMMARY_FIELDS}


def _parse_number(raw: Any) -> float | None:
    if raw is None:
        return None
    if isinstance(raw, bool):
        raise ValueError("not a number")
    try:
        if isinstance(raw, (int, float)):
            value = float(raw)
        else:
            text = str(raw).strip()
            if not text:
                return None
            value = float(text)
    except OverflowError:
        raise ValueError("not a finite number")
    if math.isnan(value) or math.isinf(value):
        raise ValueError("not a finite number")
    return value


def parse_measurement_payload(payload: dict[str, Any]) -> tuple[dict[str, Any], list[ValidationError]]:
    """
    Convert form/JSON input into column values.
    Blank input becomes None; "0" stays 0.0. Unknown keys are rejected.
    """
    values: dict[str, Any] = {}
    errs: list[ValidationError] = []
    for key in payload:
        if key not in FIELDS_BY_KEY:
            errs.append(ValidationError(key, "Unknown measurement field."))
    for f in MEASUREMENT_FIELDS:
        try:
            value = _parse_number(payload.get(f.key))
        except (TypeError, ValueError):
            errs.append(ValidationError(f.key, f"{f.label} must be a number."))
            continue
        if value is not None and value < 0:
            errs.append(ValidationError(f.key, f"{f.label} cannot be negative."))
            continue
        values[f.key] = value
    notes = payload.get(NOTES_FIELD.key)
    values[NOTES_FIELD.key] = (str(notes).strip() or None) if notes is not None else None
    return values, errs


def save_measurement(s: Session, customer_id: str, values: dict[str, Any]) -> Measurement:
    """
    Singleton upsert keyed by customer_id. Every registry field is replaced, so
    a field missing from `values` is cleared. Caller commits.
    """
    now = datetime.utcnow()
    m = get_measurement(s, customer_id)
    created = m is None
    if m is None:
        m = Measurement(customer_id=customer_id, created_at=now)
        s.add(m)
    for f in SUMMARY_FIELDS:
        setattr(m, f.key, values.get(f.key))
    m.updated_at = now
    s.flush()
    record_event(
        s,
        action="measurement.save",
        entity_type="Measurement",
        entity_id=str(m.id),
        metadata={
            "customer_id": customer_id,
            "created": created,
            "fields_set": [f.key for f in SUMMARY_FIELDS if values.get(f.key) not in (None, "")],
        },
    )
    return m
