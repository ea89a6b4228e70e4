import json
from typing import Any

from flask import g, has_app_context
from sqlalchemy.orm import Session

from app.tailorbook.models import ActivityEvent


def record_event(
    s: Session,
    *,
    action: str,
    entity_type: str | None = None,
    entity_id: str | None = None,
    metadata: dict[str, Any] | None = None,
    request_id: str | None = None,
) -> ActivityEvent:
    """
    Append-only activity event helper. The caller owns the commit.
    """
    rid = request_id
    if rid is None and has_app_context():
        rid = getattr(g, "request_id", None)
    ev = ActivityEvent(
        request_id=rid,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        metadata_json=json.dumps(metadata, sort_keys=True, default=str) if metadata else None,
    )
    s.add(ev)
    return ev
