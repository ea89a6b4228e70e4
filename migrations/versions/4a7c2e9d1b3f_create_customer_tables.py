"""create customers, measurements, customer_images, activity_events

Revision ID: 4a7c2e9d1b3f
Revises:
Create Date: 2026-10-17

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


# revision identifiers, used by Alembic.
revision: str = "4a7c2e9d1b3f"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

MEASUREMENT_COLUMNS = (
    "neck",
    "shoulder_width",
    "chest",
    "bust",
    "waist",
    "hip",
    "sleeve_length",
    "arm_circumference",
    "back_length",
    "front_length",
    "inseam",
    "outseam",
    "thigh",
    "knee",
    "calf",
    "wrist",
    "under_bust",
    "armhole",
    "bicep",
    "elbow",
    "short_sleeve_length",
    "back_width",
    "front_width",
    "shoulder_to_apex",
    "apex_to_apex",
    "shoulder_to_waist",
    "waist_to_hip",
    "waist_to_knee",
    "waist_to_ankle",
    "full_length",
    "top_length",
    "kurta_length",
    "blouse_length",
    "front_neck_depth",
    "back_neck_depth",
    "collar",
    "rise",
    "ankle",
    "trouser_length",
    "height",
)


def _timestamp(name: str) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=False),
        nullable=False,
        server_default=sa.func.current_timestamp(),
    )


def upgrade() -> None:
    bind = op.get_bind()
    insp = inspect(bind)
    existing_tables = set(insp.get_table_names())

    if "customers" not in existing_tables:
        op.create_table(
            "customers",
            sa.Column("id", sa.String(36), primary_key=True, nullable=False),
            sa.Column("name", sa.Text(), nullable=False),
            sa.Column("phone", sa.String(10), nullable=True),
            sa.Column("email", sa.Text(), nullable=True),
            sa.Column("address", sa.Text(), nullable=True),
            sa.Column("notes", sa.Text(), nullable=True),
            _timestamp("created_at"),
            _timestamp("updated_at"),
        )
        op.create_index("idx_customers_name", "customers", ["name"])
        op.create_index("idx_customers_phone", "customers", ["phone"])
        op.create_index("idx_customers_created_at", "customers", ["created_at"])

    if "measurements" not in existing_tables:
        op.create_table(
            "measurements",
            sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
            sa.Column("customer_id", sa.String(36), nullable=False),
            *[sa.Column(name, sa.Float(), nullable=True) for name in MEASUREMENT_COLUMNS],
            sa.Column("custom_notes", sa.Text(), nullable=True),
            _timestamp("created_at"),
            _timestamp("updated_at"),
            # No ON DELETE CASCADE: the application deletes children itself.
            sa.ForeignKeyConstraint(["customer_id"], ["customers.id"]),
            sa.UniqueConstraint("customer_id", name="uq_measurements_customer_id"),
        )

    if "customer_images" not in existing_tables:
        op.create_table(
            "customer_images",
            sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
            sa.Column("customer_id", sa.String(36), nullable=False),
            sa.Column("file_path", sa.Text(), nullable=False),
            sa.Column("file_name", sa.Text(), nullable=True),
            _timestamp("created_at"),
            sa.ForeignKeyConstraint(["customer_id"], ["customers.id"]),
            sa.UniqueConstraint("file_path", name="uq_customer_images_file_path"),
        )
        op.create_index("idx_customer_images_customer_id", "customer_images", ["customer_id", "created_at"])

    if "activity_events" not in existing_tables:
        op.create_table(
            "activity_events",
            sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
            _timestamp("created_at"),
            sa.Column("request_id", sa.String(64), nullable=True),
            sa.Column("action", sa.String(128), nullable=False),
            sa.Column("entity_type", sa.String(128), nullable=True),
            sa.Column("entity_id", sa.String(128), nullable=True),
            sa.Column("metadata_json", sa.Text(), nullable=True),
        )
        op.create_index("idx_activity_events_entity", "activity_events", ["entity_type", "entity_id"])


def downgrade() -> None:
    op.drop_index("idx_activity_events_entity", table_name="activity_events")
    op.drop_table("activity_events")

    op.drop_index("idx_customer_images_customer_id", table_name="customer_images")
    op.drop_table("customer_images")

    op.drop_table("measurements")

    op.drop_index("idx_customers_created_at", table_name="customers")
    op.drop_index("idx_customers_phone", table_name="customers")
    op.drop_index("idx_customers_name", table_name="customers")
    op.drop_table("customers")
