"""initial valet schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql
import core.db.fields


# revision identifiers, used by Alembic.
revision: str = "0001_initial"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSON = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")
ACTIVE_ROW = sa.text("status != 'DELIVERED'")


def _timestamp(name: str, nullable: bool = True) -> sa.Column:
    return sa.Column(name, core.db.fields.TZAwareDateTime(timezone=True), nullable=nullable)


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "tenants",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("slug", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("country", sa.String(length=64), nullable=True),
        sa.Column("currency", sa.String(length=8), nullable=True),
        sa.Column("key_storage_mode", sa.String(length=10), server_default="off", nullable=False),
        sa.Column("key_storage_slots_count", sa.Integer(), nullable=True),
        sa.Column("geofence", JSON, nullable=True),
        sa.Column("new_ticket_required", JSON, nullable=True),
        _timestamp("created_at", nullable=False),
        _timestamp("updated_at", nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_tenants_slug", "tenants", ["slug"], unique=True)

    op.create_table(
        "tenant_users",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("tenant_id", sa.UUID(), nullable=False),
        sa.Column("uid", sa.String(length=128), nullable=False),
        sa.Column("email", sa.String(length=120), nullable=True),
        sa.Column("name", sa.String(length=120), nullable=True),
        sa.Column("role", sa.String(length=20), server_default="valet", nullable=False),
        sa.Column("active", sa.Boolean(), server_default="1", nullable=False),
        _timestamp("created_at", nullable=False),
        _timestamp("updated_at", nullable=False),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id", "uid", name="uq_tenant_users_uid"),
    )
    op.create_index("ix_tenant_users_tenant_id", "tenant_users", ["tenant_id"])

    op.create_table(
        "tickets",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("tenant_id", sa.UUID(), nullable=False),
        sa.Column("ticket_number", sa.String(length=16), nullable=False),
        sa.Column("status", sa.String(length=20), server_default="PARKED", nullable=False),
        sa.Column("plate_number", sa.String(length=32), nullable=True),
        sa.Column("car_meta", JSON, nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("photo_urls", JSON, nullable=True),
        sa.Column("public_id", sa.String(length=16), nullable=False),
        sa.Column("token_hash", sa.String(length=64), nullable=False),
        sa.Column("slot_number", sa.Integer(), nullable=True),
        sa.Column("tag_number", sa.String(length=64), nullable=True),
        _timestamp("arrived_at"),
        _timestamp("parked_at"),
        _timestamp("requested_at"),
        _timestamp("in_progress_at"),
        _timestamp("ready_at"),
        _timestamp("delivered_at"),
        sa.Column("assigned_to_user_id", sa.UUID(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
        _timestamp("created_at", nullable=False),
        _timestamp("updated_at", nullable=False),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.ForeignKeyConstraint(["assigned_to_user_id"], ["tenant_users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("public_id"),
    )
    op.create_index("ix_tickets_status", "tickets", ["status"])
    op.create_index("ix_tickets_tenant_updated", "tickets", ["tenant_id", "updated_at"])
    op.create_index(
        "uq_tickets_active_slot",
        "tickets",
        ["tenant_id", "slot_number"],
        unique=True,
        postgresql_where=ACTIVE_ROW,
        sqlite_where=ACTIVE_ROW,
    )
    op.create_index(
        "uq_tickets_active_tag",
        "tickets",
        ["tenant_id", "tag_number"],
        unique=True,
        postgresql_where=ACTIVE_ROW,
        sqlite_where=ACTIVE_ROW,
    )

    op.create_table(
        "public_tickets",
        sa.Column("public_id", sa.String(length=16), nullable=False),
        sa.Column("tenant_id", sa.UUID(), nullable=False),
        sa.Column("ticket_id", sa.UUID(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        _timestamp("requested_at"),
        _timestamp("ready_at"),
        _timestamp("delivered_at"),
        _timestamp("updated_at", nullable=False),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.ForeignKeyConstraint(["ticket_id"], ["tickets.id"]),
        sa.PrimaryKeyConstraint("public_id"),
        sa.UniqueConstraint("ticket_id"),
    )

    op.create_table(
        "events",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("tenant_id", sa.UUID(), nullable=False),
        sa.Column("ticket_id", sa.UUID(), nullable=True),
        sa.Column("actor_user_id", sa.UUID(), nullable=True),
        sa.Column("type", sa.String(length=32), nullable=False),
        _timestamp("at", nullable=False),
        sa.Column("meta", JSON, nullable=True),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.ForeignKeyConstraint(["ticket_id"], ["tickets.id"]),
        sa.ForeignKeyConstraint(["actor_user_id"], ["tenant_users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_events_tenant_id", "events", ["tenant_id"])
    op.create_index("ix_events_ticket_id", "events", ["ticket_id"])

    op.create_table(
        "push_subscriptions",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("tenant_id", sa.UUID(), nullable=False),
        sa.Column("public_id", sa.String(length=16), nullable=False),
        sa.Column("endpoint", sa.String(length=2048), nullable=False),
        sa.Column("p256dh", sa.String(length=255), nullable=False),
        sa.Column("auth", sa.String(length=255), nullable=False),
        sa.Column("expiration_time", sa.BigInteger(), nullable=True),
        _timestamp("created_at", nullable=False),
        _timestamp("updated_at", nullable=False),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "tenant_id", "public_id", "endpoint", name="uq_push_subscriptions_endpoint"
        ),
    )
    op.create_index("ix_push_subscriptions_public_id", "push_subscriptions", ["public_id"])

    op.create_table(
        "shifts",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("tenant_id", sa.UUID(), nullable=False),
        sa.Column("user_id", sa.UUID(), nullable=False),
        _timestamp("check_in_at", nullable=False),
        _timestamp("check_out_at"),
        sa.Column("check_in_location", JSON, nullable=False),
        sa.Column("check_out_location", JSON, nullable=True),
        sa.Column("device_id", sa.String(length=128), nullable=True),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.ForeignKeyConstraint(["user_id"], ["tenant_users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_shifts_user_id", "shifts", ["user_id"])
    op.create_index("ix_shifts_tenant_check_in", "shifts", ["tenant_id", "check_in_at"])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table("shifts")
    op.drop_table("push_subscriptions")
    op.drop_table("events")
    op.drop_table("public_tickets")
    op.drop_index("uq_tickets_active_tag", table_name="tickets")
    op.drop_index("uq_tickets_active_slot", table_name="tickets")
    op.drop_table("tickets")
    op.drop_table("tenant_users")
    op.drop_table("tenants")
