from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.tailorbook.models import Base


class CustomerImage(Base):
    """
    Pointer to one photo blob. file_path is the bucket key: {customer_id}/{epoch_millis}.jpg
    """

    __tablename__ = "customer_images"
    __table_args__ = (
        Index("idx_customer_images_customer_id", "customer_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    customer_id: Mapped[str] = mapped_column(String(36), ForeignKey("customers.id"), nullable=False)

    file_path: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    file_name: Mapped[str | None] = mapped_column(Text, nullable=True)  # original upload name, display only

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
