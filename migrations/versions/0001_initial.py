"""initial inventory schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


class GUID(sa.TypeDecorator):
    impl = sa.CHAR
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            from sqlalchemy.dialects.postgresql import UUID

            return dialect.type_descriptor(UUID(as_uuid=True))
        return dialect.type_descriptor(sa.CHAR(36))


ITEM_STATUS_SHAPE = (
    "(status = 'IN_INVENTORY' AND current_holder_id IS NULL AND sell_price IS NULL)"
    " OR (status = 'WITH_EMPLOYEE' AND current_holder_id IS NOT NULL AND sell_price IS NULL)"
    " OR (status = 'SOLD' AND sell_price IS NOT NULL)"
)


def upgrade() -> None:
    op.create_table(
        "tenants",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False, unique=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_table(
        "users",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("tenant_id", GUID(), sa.ForeignKey("tenants.id"), nullable=True, index=True),
        sa.Column("username", sa.String(length=150), nullable=False),
        sa.Column("role", sa.String(length=50), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)

    op.create_table(
        "item_types",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("tenant_id", GUID(), sa.ForeignKey("tenants.id"), nullable=False, index=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("description", sa.String(length=500), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_by", GUID(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.UniqueConstraint("tenant_id", "name", name="uq_item_types_tenant_name"),
    )
    op.create_index("ix_item_types_tenant_active", "item_types", ["tenant_id", "is_active"], unique=False)

    op.create_table(
        "item_groupings",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column(
            "item_type_id",
            GUID(),
            sa.ForeignKey("item_types.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=50), nullable=False),
        sa.Column("units_per_group", sa.Integer(), nullable=False),
        sa.Column("weight_label", sa.String(length=20), nullable=True),
        sa.UniqueConstraint("item_type_id", "name", name="uq_item_groupings_type_name"),
        sa.CheckConstraint("units_per_group >= 1", name="ck_item_groupings_units_positive"),
    )

    op.create_table(
        "items",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("tenant_id", GUID(), sa.ForeignKey("tenants.id"), nullable=False),
        sa.Column("item_type_id", GUID(), sa.ForeignKey("item_types.id"), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("current_holder_id", GUID(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("sell_price", sa.Numeric(12, 2), nullable=True),
        sa.Column("sale_to_id", GUID(), nullable=True),
        sa.Column("sold_at", sa.DateTime(), nullable=True),
        sa.Column("returned_at", sa.DateTime(), nullable=True),
        sa.Column("revision", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_by", GUID(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.CheckConstraint(ITEM_STATUS_SHAPE, name="ck_items_status_shape"),
    )
    op.create_index(
        "ix_items_selection",
        "items",
        ["tenant_id", "item_type_id", "status", "created_at"],
        unique=False,
    )
    op.create_index("ix_items_current_holder_id", "items", ["current_holder_id"], unique=False)

    op.create_table(
        "item_status_changes",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column(
            "item_id",
            GUID(),
            sa.ForeignKey("items.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("sequence", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("holder_id", GUID(), nullable=True),
        sa.Column("changed_by", GUID(), nullable=False),
        sa.Column("notes", sa.String(length=500), nullable=True),
        sa.Column("changed_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("item_id", "sequence", name="uq_item_status_changes_item_sequence"),
    )

    op.create_table(
        "idempotency_records",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("tenant_id", GUID(), nullable=False, index=True),
        sa.Column("endpoint", sa.String(length=255), nullable=False),
        sa.Column("method", sa.String(length=10), nullable=False),
        sa.Column("idempotency_key", sa.String(length=255), nullable=False),
        sa.Column("request_hash", sa.String(length=64), nullable=False),
        sa.Column("state", sa.String(length=20), nullable=False),
        sa.Column("status_code", sa.Integer(), nullable=True),
        sa.Column("response_body", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.UniqueConstraint("tenant_id", "endpoint", "method", "idempotency_key", name="uq_idempotency"),
    )

    op.create_table(
        "audit_events",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("tenant_id", GUID(), nullable=True, index=True),
        sa.Column("user_id", GUID(), nullable=True, index=True),
        sa.Column("trace_id", sa.String(length=64), nullable=True),
        sa.Column("actor", sa.String(length=150), nullable=False),
        sa.Column("action", sa.String(length=255), nullable=False),
        sa.Column("entity_type", sa.String(length=100), nullable=False),
        sa.Column("entity_id", sa.String(length=255), nullable=True),
        sa.Column("before_payload", sa.JSON(), nullable=True),
        sa.Column("after_payload", sa.JSON(), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column("result", sa.String(length=20), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("audit_events")
    op.drop_table("idempotency_records")
    op.drop_table("item_status_changes")
    op.drop_index("ix_items_current_holder_id", table_name="items")
    op.drop_index("ix_items_selection", table_name="items")
    op.drop_table("items")
    op.drop_table("item_groupings")
    op.drop_index("ix_item_types_tenant_active", table_name="item_types")
    op.drop_table("item_types")
    op.drop_index("ix_users_username", table_name="users")
    op.drop_table("users")
    op.drop_table("tenants")
