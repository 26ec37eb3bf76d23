"""Financings and payment ledger

Revision ID: 3f2a9c1d7b40
Revises:
Create Date: 2026-10-18 10:12:31.402117

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f2a9c1d7b40'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "accounts",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("account_type", sa.String(), nullable=False, server_default="checking"),
        sa.Column("balance", sa.Float(), nullable=False, server_default="0"),
    )
    op.create_index("ix_accounts_user_id", "accounts", ["user_id"])

    op.create_table(
        "categories",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("kind", sa.String(), nullable=False, server_default="expense"),
    )
    op.create_index("ix_categories_user_id", "categories", ["user_id"])

    op.create_table(
        "creditors",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("document_number", sa.String(), nullable=True),
    )
    op.create_index("ix_creditors_user_id", "creditors", ["user_id"])

    op.create_table(
        "financings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("creditor_id", sa.Integer(), sa.ForeignKey("creditors.id"), nullable=False),
        sa.Column("financing_type", sa.String(), nullable=False, server_default="other"),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("total_amount", sa.Float(), nullable=False),
        sa.Column("interest_rate", sa.Float(), nullable=False),
        sa.Column("term_months", sa.Integer(), nullable=False),
        sa.Column("amortization_method", sa.String(), nullable=False, server_default="SAC"),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("monthly_payment", sa.Float(), nullable=False),
        sa.Column("current_balance", sa.Float(), nullable=False, server_default="0"),
        sa.Column("total_paid", sa.Float(), nullable=False, server_default="0"),
        sa.Column("total_interest_paid", sa.Float(), nullable=False, server_default="0"),
        sa.Column("paid_installments", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("status", sa.String(), nullable=False, server_default="active"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_financings_user_id", "financings", ["user_id"])
    op.create_index("ix_financings_creditor_id", "financings", ["creditor_id"])
    op.create_index("ix_financings_status", "financings", ["status"])

    op.create_table(
        "transactions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("account_id", sa.Integer(), sa.ForeignKey("accounts.id"), nullable=False),
        sa.Column("category_id", sa.Integer(), sa.ForeignKey("categories.id"), nullable=True),
        sa.Column("financing_payment_id", sa.Integer(), nullable=True),
        sa.Column("type", sa.String(), nullable=False),
        sa.Column("amount", sa.Float(), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("payment_method", sa.String(), nullable=True),
        sa.Column("transaction_date", sa.Date(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_transactions_user_id", "transactions", ["user_id"])
    op.create_index("ix_transactions_account_id", "transactions", ["account_id"])
    op.create_index("ix_transactions_financing_payment_id", "transactions", ["financing_payment_id"])
    op.create_index("ix_transactions_user_date", "transactions", ["user_id", "transaction_date"])

    op.create_table(
        "financing_payments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("financing_id", sa.Integer(), sa.ForeignKey("financings.id"), nullable=False),
        sa.Column("account_id", sa.Integer(), sa.ForeignKey("accounts.id"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("transaction_id", sa.Integer(), sa.ForeignKey("transactions.id"), nullable=True),
        sa.Column("installment_number", sa.Integer(), nullable=True),
        sa.Column("payment_amount", sa.Float(), nullable=False),
        sa.Column("principal_amount", sa.Float(), nullable=False),
        sa.Column("interest_amount", sa.Float(), nullable=False, server_default="0"),
        sa.Column("discount_amount", sa.Float(), nullable=False, server_default="0"),
        sa.Column("balance_before", sa.Float(), nullable=False),
        sa.Column("balance_after", sa.Float(), nullable=False),
        sa.Column("payment_date", sa.Date(), nullable=False),
        sa.Column("payment_method", sa.String(), nullable=False),
        sa.Column("payment_type", sa.String(), nullable=False, server_default="scheduled"),
        sa.Column("observations", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.UniqueConstraint("financing_id", "installment_number", name="ux_financing_payments_installment"),
    )
    op.create_index("ix_financing_payments_financing_id", "financing_payments", ["financing_id"])
    op.create_index("ix_financing_payments_account_id", "financing_payments", ["account_id"])
    op.create_index("ix_financing_payments_user_id", "financing_payments", ["user_id"])
    op.create_index("ix_financing_payments_transaction_id", "financing_payments", ["transaction_id"])
    op.create_index("ix_financing_payments_payment_date", "financing_payments", ["payment_date"])


def downgrade():
    op.drop_table("financing_payments")
    op.drop_table("transactions")
    op.drop_table("financings")
    op.drop_table("creditors")
    op.drop_table("categories")
    op.drop_table("accounts")
    op.drop_table("users")
