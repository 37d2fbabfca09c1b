"""initial schema

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def _money(name: str) -> sa.Column:
    return sa.Column(name, sa.Numeric(18, 2), nullable=False, server_default=sa.text("0"))


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("first_name", sa.String(length=200), nullable=True),
        sa.Column("last_name", sa.String(length=200), nullable=True),
        sa.Column("email", sa.String(length=200), nullable=True),
        sa.Column("role", sa.String(length=50), nullable=False, server_default="User"),
        sa.Column("password_hash", sa.String(length=200), nullable=True),
        sa.Column("language", sa.String(length=50), nullable=True),
        sa.Column("phone_number", sa.String(length=20), nullable=True),
        sa.Column("address", sa.String(length=1000), nullable=True),
        sa.Column("street", sa.String(length=500), nullable=True),
        sa.Column("city", sa.String(length=100), nullable=True),
        sa.Column("state", sa.String(length=100), nullable=True),
        sa.Column("postal_code", sa.String(length=20), nullable=True),
        sa.Column("country", sa.String(length=100), nullable=True),
        sa.Column("id_number", sa.String(length=100), nullable=True),
        sa.Column("profile_image_url", sa.String(length=500), nullable=True),
        sa.Column("preferred_contact_method", sa.String(length=50), nullable=True),
        sa.Column("notifications_enabled", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("notes", sa.String(length=2000), nullable=True),
        sa.Column("two_factor_auth", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("login_notification", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("task_assign_notification", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column(
            "disable_recurring_payment_notification",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("false"),
        ),
        sa.Column("all_events", sa.String(length=50), nullable=True),
        sa.Column("invoice_created", sa.String(length=50), nullable=True),
        sa.Column("invoice_sent", sa.String(length=50), nullable=True),
        sa.Column("quote_created", sa.String(length=50), nullable=True),
        sa.Column("quote_sent", sa.String(length=50), nullable=True),
        sa.Column("quote_view", sa.String(length=50), nullable=True),
        sa.Column("payment_details", sa.String(length=50), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "clients",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("client_id_formatted", sa.String(length=32), nullable=True, unique=True),
        sa.Column("client_name", sa.String(length=200), nullable=False),
        sa.Column("client_id_number", sa.String(length=100), nullable=True),
        sa.Column("client_contact_number", sa.String(length=50), nullable=True),
        sa.Column("client_address", sa.String(length=1000), nullable=True),
        sa.Column("client_email", sa.String(length=200), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=True),
        sa.Column("number", sa.String(length=100), nullable=True),
        sa.Column("group", sa.String(length=100), nullable=True),
        sa.Column("assigned_user", sa.String(length=200), nullable=True),
        sa.Column("id_number", sa.String(length=100), nullable=True),
        sa.Column("vat_number", sa.String(length=100), nullable=True),
        sa.Column("website", sa.String(length=300), nullable=True),
        sa.Column("phone", sa.String(length=50), nullable=True),
        sa.Column("routing_id", sa.String(length=100), nullable=True),
        sa.Column("valid_vat", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("tax_exempt", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("classification", sa.String(length=100), nullable=True),
        sa.Column("billing_street", sa.String(length=300), nullable=True),
        sa.Column("billing_suite", sa.String(length=100), nullable=True),
        sa.Column("billing_city", sa.String(length=100), nullable=True),
        sa.Column("billing_state", sa.String(length=100), nullable=True),
        sa.Column("billing_postal_code", sa.String(length=20), nullable=True),
        sa.Column("billing_country", sa.String(length=100), nullable=True),
        sa.Column("shipping_street", sa.String(length=300), nullable=True),
        sa.Column("shipping_suite", sa.String(length=100), nullable=True),
        sa.Column("shipping_city", sa.String(length=100), nullable=True),
        sa.Column("shipping_state", sa.String(length=100), nullable=True),
        sa.Column("shipping_postal_code", sa.String(length=20), nullable=True),
        sa.Column("shipping_country", sa.String(length=100), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column(
            "created_by_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("created_date", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_clients_created_date", "clients", ["created_date"])
    op.create_index("ix_clients_assigned_user", "clients", ["assigned_user"])

    op.create_table(
        "client_contacts",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column(
            "client_id",
            sa.Integer(),
            sa.ForeignKey("clients.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("first_name", sa.String(length=200), nullable=False, server_default=""),
        sa.Column("last_name", sa.String(length=200), nullable=False, server_default=""),
        sa.Column("email", sa.String(length=200), nullable=False, server_default=""),
        sa.Column("phone", sa.String(length=50), nullable=False, server_default=""),
        sa.Column("add_to_invoices", sa.Boolean(), nullable=False, server_default=sa.text("false")),
    )
    op.create_index("ix_client_contacts_client_id", "client_contacts", ["client_id"])

    op.create_table(
        "items",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.String(length=1000), nullable=True),
        _money("price"),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("image_url", sa.String(length=500), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.CheckConstraint("price >= 0", name="ck_items_price_non_negative"),
    )
    op.create_index("ix_items_created_at", "items", ["created_at"])

    op.create_table(
        "quotations",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("quote_number", sa.String(length=50), nullable=False),
        sa.Column("po_number", sa.String(length=100), nullable=True),
        sa.Column(
            "client_id",
            sa.Integer(),
            sa.ForeignKey("clients.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("client_name", sa.String(length=200), nullable=True),
        sa.Column("quote_date", sa.DateTime(), nullable=False),
        sa.Column("valid_until", sa.DateTime(), nullable=True),
        _money("partial_deposit"),
        sa.Column("discount_type", sa.String(length=20), nullable=False, server_default="amount"),
        _money("discount"),
        _money("subtotal"),
        _money("discount_amount"),
        _money("total"),
        _money("net_amount"),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="Draft"),
        sa.Column("project", sa.String(length=200), nullable=True),
        sa.Column("assigned_user", sa.String(length=200), nullable=True),
        sa.Column("exchange_rate", sa.Numeric(18, 6), nullable=True),
        sa.Column("vendor", sa.String(length=200), nullable=True),
        sa.Column("design", sa.String(length=100), nullable=True),
        sa.Column("inclusive_taxes", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column(
            "created_by_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("created_by_email", sa.String(length=200), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_quotations_quote_date", "quotations", ["quote_date"])
    op.create_index("ix_quotations_created_by_email", "quotations", ["created_by_email"])
    op.create_index("ix_quotations_status", "quotations", ["status"])

    op.create_table(
        "quotation_items",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column(
            "quotation_id",
            sa.Integer(),
            sa.ForeignKey("quotations.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("position", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("item_name", sa.String(length=200), nullable=False),
        sa.Column("description", sa.String(length=1000), nullable=True),
        sa.Column("unit_cost", sa.Numeric(18, 2), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("line_total", sa.Numeric(18, 2), nullable=False),
        sa.CheckConstraint("quantity >= 0", name="ck_quotation_items_quantity_non_negative"),
    )
    op.create_index("ix_quotation_items_quotation_id", "quotation_items", ["quotation_id"])

    op.create_table(
        "activity_logs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("entity_name", sa.String(length=100), nullable=False),
        sa.Column("record_id", sa.Integer(), nullable=False),
        sa.Column("action_type", sa.String(length=50), nullable=False),
        sa.Column("description", sa.String(length=500), nullable=True),
        sa.Column("performed_by", sa.String(length=200), nullable=True),
        sa.Column("performed_by_email", sa.String(length=200), nullable=True),
        sa.Column("performed_by_role", sa.String(length=50), nullable=True),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("timestamp", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_activity_logs_entity_record", "activity_logs", ["entity_name", "record_id"])
    op.create_index("ix_activity_logs_timestamp", "activity_logs", ["timestamp"])
    op.create_index("ix_activity_logs_user_id", "activity_logs", ["user_id"])


def downgrade() -> None:
    op.drop_index("ix_activity_logs_user_id", table_name="activity_logs")
    op.drop_index("ix_activity_logs_timestamp", table_name="activity_logs")
    op.drop_index("ix_activity_logs_entity_record", table_name="activity_logs")
    op.drop_table("activity_logs")

    op.drop_index("ix_quotation_items_quotation_id", table_name="quotation_items")
    op.drop_table("quotation_items")

    op.drop_index("ix_quotations_status", table_name="quotations")
    op.drop_index("ix_quotations_created_by_email", table_name="quotations")
    op.drop_index("ix_quotations_quote_date", table_name="quotations")
    op.drop_table("quotations")

    op.drop_index("ix_items_created_at", table_name="items")
    op.drop_table("items")

    op.drop_index("ix_client_contacts_client_id", table_name="client_contacts")
    op.drop_table("client_contacts")

    op.drop_index("ix_clients_assigned_user", table_name="clients")
    op.drop_index("ix_clients_created_date", table_name="clients")
    op.drop_table("clients")

    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
