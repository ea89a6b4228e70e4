from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.tailorbook.models import Base


class Measurement(Base):
    """
    One measurement profile per customer (customer_id is unique).
    NULL means "not measured"; 0 is a real value.
    """

    __tablename__ = "measurements"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    customer_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("customers.id"), nullable=False, unique=True
    )

    neck: Mapped[float | None] = mapped_column(Float, nullable=True)
    shoulder_width: Mapped[float | None] = mapped_column(Float, nullable=True)
    chest: Mapped[float | None] = mapped_column(Float, nullable=True)
    bust: Mapped[float | None] = mapped_column(Float, nullable=True)
    waist: Mapped[float | None] = mapped_column(Float, nullable=True)
    hip: Mapped[float | None] = mapped_column(Float, nullable=True)
    sleeve_length: Mapped[float | None] = mapped_column(Float, nullable=True)
    arm_circumference: Mapped[float | None] = mapped_column(Float, nullable=True)
    back_length: Mapped[float | None] = mapped_column(Float, nullable=True)
    front_length: Mapped[float | None] = mapped_column(Float, nullable=True)
    inseam: Mapped[float | None] = mapped_column(Float, nullable=True)
    outseam: Mapped[float | None] = mapped_column(Float, nullable=True)
    thigh: Mapped[float | None] = mapped_column(Float, nullable=True)
    knee: Mapped[float | None] = mapped_column(Float, nullable=True)
    calf: Mapped[float | None] = mapped_column(Float, nullable=True)
    wrist: Mapped[float | None] = mapped_column(Float, nullable=True)
    under_bust: Mapped[float | None] = mapped_column(Float, nullable=True)
    armhole: Mapped[float | None] = mapped_column(Float, nullable=True)
    bicep: Mapped[float | None] = mapped_column(Float, nullable=True)
    elbow: Mapped[float | None] = mapped_column(Float, nullable=True)
    short_sleeve_length: Mapped[float | None] = mapped_column(Float, nullable=True)
    back_width: Mapped[float | None] = mapped_column(Float, nullable=True)
    front_width: Mapped[float | None] = mapped_column(Float, nullable=True)
    shoulder_to_apex: Mapped[float | None] = mapped_column(Float, nullable=True)
    apex_to_apex: Mapped[float | None] = mapped_column(Float, nullable=True)
    shoulder_to_waist: Mapped[float | None] = mapped_column(Float, nullable=True)
    waist_to_hip: Mapped[float | None] = mapped_column(Float, nullable=True)
    waist_to_knee: Mapped[float | None] = mapped_column(Float, nullable=True)
    waist_to_ankle: Mapped[float | None] = mapped_column(Float, nullable=True)
    full_length: Mapped[float | None] = mapped_column(Float, nullable=True)
    top_length: Mapped[float | None] = mapped_column(Float, nullable=True)
    kurta_length: Mapped[float | None] = mapped_column(Float, nullable=True)
    blouse_length: Mapped[float | None] = mapped_column(Float, nullable=True)
    front_neck_depth: Mapped[float | None] = mapped_column(Float, nullable=True)
    back_neck_depth: Mapped[float | None] = mapped_column(Float, nullable=True)
    collar: Mapped[float | None] = mapped_column(Float, nullable=True)
    rise: Mapped[float | None] = mapped_column(Float, nullable=True)
    ankle: Mapped[float | None] = mapped_column(Float, nullable=True)
    trouser_length: Mapped[float | None] = mapped_column(Float, nullable=True)
    height: Mapped[float | None] = mapped_column(Float, nullable=True)

    custom_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
