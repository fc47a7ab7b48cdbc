"""initial schema

Revision ID: 5c1f0e2a9b7d
Revises:
Create Date: 2026-10-18 09:00:00

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "5c1f0e2a9b7d"
down_revision = None
branch_labels = None
depends_on = None

AMOUNT = sa.Numeric(15, 4)


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("username", sa.String(length=50), nullable=False),
        sa.Column("display_name", sa.String(length=100), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)

    op.create_table(
        "currencies",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("slug", sa.String(length=100), nullable=False),
        sa.Column("symbol", sa.String(length=10), nullable=False),
        sa.Column("decimal_places", sa.Integer(), nullable=False),
        sa.Column("exchange_rate", sa.Numeric(15, 6), nullable=False),
        sa.Column("is_default", sa.Boolean(), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("decimal_places >= 0 AND decimal_places <= 4", name="valid_decimal_places"),
    )
    op.create_index("ix_currencies_slug", "currencies", ["slug"], unique=True)

    op.create_table(
        "items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("item_type", sa.String(length=16), nullable=False),
        sa.Column("rarity", sa.String(length=16), nullable=False),
        sa.Column("is_tradeable", sa.Boolean(), nullable=False),
        sa.Column("is_stackable", sa.Boolean(), nullable=False),
        sa.Column("max_stack_size", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )

    op.create_table(
        "trades",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("requester_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("recipient_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("requester_offer", sa.JSON(), nullable=False),
        sa.Column("recipient_offer", sa.JSON(), nullable=False),
        sa.Column("requester_value", AMOUNT, nullable=False),
        sa.Column("recipient_value", AMOUNT, nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column("decline_reason", sa.Text(), nullable=True),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.CheckConstraint("requester_id <> recipient_id", name="distinct_parties"),
    )
    op.create_index("ix_trades_requester_id", "trades", ["requester_id"])
    op.create_index("ix_trades_recipient_id", "trades", ["recipient_id"])
    op.create_index("ix_trades_status", "trades", ["status"])
    op.create_index("ix_trades_expires_at", "trades", ["expires_at"])

    op.create_table(
        "user_currencies",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("currency_id", sa.Integer(), sa.ForeignKey("currencies.id"), nullable=False),
        sa.Column("balance", AMOUNT, nullable=False),
        sa.Column("total_earned", AMOUNT, nullable=False),
        sa.Column("total_spent", AMOUNT, nullable=False),
        sa.Column("last_transaction_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("user_id", "currency_id", name="user_currency_unique"),
        sa.CheckConstraint("balance >= 0", name="non_negative_balance"),
    )
    op.create_index("ix_user_currencies_user_id", "user_currencies", ["user_id"])
    op.create_index("ix_user_currencies_currency_id", "user_currencies", ["currency_id"])

    op.create_table(
        "currency_transactions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("currency_id", sa.Integer(), sa.ForeignKey("currencies.id"), nullable=False),
        sa.Column("amount", AMOUNT, nullable=False),
        sa.Column("transaction_type", sa.String(length=16), nullable=False),
        sa.Column("reference_type", sa.String(length=16), nullable=True),
        sa.Column("reference_id", sa.Integer(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("balance_after", AMOUNT, nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_currency_transactions_user_id", "currency_transactions", ["user_id"])
    op.create_index("ix_currency_transactions_currency_id", "currency_transactions", ["currency_id"])
    op.create_index("ix_currency_transactions_transaction_type", "currency_transactions", ["transaction_type"])
    op.create_index("ix_currency_transactions_reference_id", "currency_transactions", ["reference_id"])
    op.create_index("ix_currency_transactions_created_at", "currency_transactions", ["created_at"])

    op.create_table(
        "user_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("item_id", sa.Integer(), sa.ForeignKey("items.id"), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("acquired_method", sa.String(length=16), nullable=False),
        sa.Column("acquired_at", sa.DateTime(), nullable=False),
        sa.Column("last_used_at", sa.DateTime(), nullable=True),
        sa.UniqueConstraint("user_id", "item_id", name="user_item_unique"),
        sa.CheckConstraint("quantity >= 0", name="non_negative_quantity"),
    )
    op.create_index("ix_user_items_user_id", "user_items", ["user_id"])
    op.create_index("ix_user_items_item_id", "user_items", ["item_id"])

    op.create_table(
        "item_reservations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("item_id", sa.Integer(), sa.ForeignKey("items.id"), nullable=False),
        sa.Column("trade_id", sa.Integer(), sa.ForeignKey("trades.id"), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("reserved_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("trade_id", "item_id", name="trade_item_unique"),
        sa.CheckConstraint("quantity > 0", name="positive_reservation"),
    )
    op.create_index("ix_item_reservations_user_id", "item_reservations", ["user_id"])
    op.create_index("ix_item_reservations_item_id", "item_reservations", ["item_id"])
    op.create_index("ix_item_reservations_trade_id", "item_reservations", ["trade_id"])

    op.create_table(
        "unique_tokens",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("item_id", sa.Integer(), sa.ForeignKey("items.id"), nullable=False),
        sa.Column("token_uid", sa.String(length=64), nullable=False, unique=True),
        sa.Column("owner_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("original_owner_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("rarity", sa.String(length=16), nullable=False),
        sa.Column("upgrade_level", sa.Integer(), nullable=False),
        sa.Column("is_tradeable", sa.Boolean(), nullable=False),
        sa.Column("is_reserved", sa.Boolean(), nullable=False),
        sa.Column("reserved_for_trade", sa.Integer(), sa.ForeignKey("trades.id"), nullable=True),
        sa.Column("minted_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_unique_tokens_item_id", "unique_tokens", ["item_id"])
    op.create_index("ix_unique_tokens_owner_id", "unique_tokens", ["owner_id"])
    op.create_index("ix_unique_tokens_reserved_for_trade", "unique_tokens", ["reserved_for_trade"])

    op.create_table(
        "token_transfers",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("token_id", sa.Integer(), sa.ForeignKey("unique_tokens.id"), nullable=False),
        sa.Column("from_user_id", sa.Integer(), nullable=True),
        sa.Column("to_user_id", sa.Integer(), nullable=False),
        sa.Column("transfer_type", sa.String(length=16), nullable=False),
        sa.Column("trade_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_token_transfers_token_id", "token_transfers", ["token_id"])

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("action", sa.String(length=100), nullable=False),
        sa.Column("object_type", sa.String(length=16), nullable=False),
        sa.Column("object_id", sa.Integer(), nullable=True),
        sa.Column("details", sa.JSON(), nullable=True),
        sa.Column("severity", sa.String(length=8), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_audit_logs_user_id", "audit_logs", ["user_id"])
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"])
    op.create_index("ix_audit_logs_created_at", "audit_logs", ["created_at"])

    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("type", sa.String(length=32), nullable=False),
        sa.Column("title", sa.String(length=128), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("data", sa.Text(), nullable=True),
        sa.Column("is_read", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("read_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])


def downgrade() -> None:
    op.drop_table("notifications")
    op.drop_table("audit_logs")
    op.drop_table("token_transfers")
    op.drop_table("unique_tokens")
    op.drop_table("item_reservations")
    op.drop_table("user_items")
    op.drop_table("currency_transactions")
    op.drop_table("user_currencies")
    op.drop_table("trades")
    op.drop_table("items")
    op.drop_table("currencies")
    op.drop_table("users")
