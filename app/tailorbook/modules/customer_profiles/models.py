from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.tailorbook.models import Base


def _new_id() -> str:
    return str(uuid.uuid4())


class Customer(Base):
    __tablename__ = "customers"
    __table_args__ = (
        Index("idx_customers_name", "name"),
        Index("idx_customers_phone", "phone"),
        Index("idx_customers_created_at", "created_at"),
    )

    # Opaque id; also the folder name of the customer's photos in the bucket.
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)

    name: Mapped[str] = mapped_column(Text, nullable=False)
    phone: Mapped[str | None] = mapped_column(String(10), nullable=True)
    email: Mapped[str | None] = mapped_column(Text, nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "phone": self.phone,
            "email": self.email,
            "address": self.address,
            "notes": self.notes,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
