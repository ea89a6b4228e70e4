from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class ActivityEvent(Base):
    """
    Append-only activity trail.
    entity_id is a string: customer uuids and integer image ids both fit.
    """

    __tablename__ = "activity_events"
    __table_args__ = (
        Index("idx_activity_events_entity", "entity_type", "entity_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    request_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    action: Mapped[str] = mapped_column(String(128), nullable=False)  # e.g. "image.upload"
    entity_type: Mapped[str | None] = mapped_column(String(128), nullable=True)  # e.g. "CustomerImage"
    entity_id: Mapped[str | None] = mapped_column(String(128), nullable=True)

    metadata_json: Mapped[str | None] = mapped_column(Text, nullable=True)  # small JSON string


# Ensure module models are imported so Base.metadata includes their tables.
# (Kept at bottom to avoid circular imports.)
from app.tailorbook.modules.customer_profiles.models import Customer  # noqa: E402,F401
from app.tailorbook.modules.measurements.models import Measurement  # noqa: E402,F401
from app.tailorbook.modules.customer_images.models import CustomerImage  # noqa: E402,F401
