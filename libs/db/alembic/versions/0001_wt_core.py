# ruff: noqa: I001
"""Shared-finance core tables: profiles, shared accounts, transactions.

Revision ID: 0001_wt_core
Revises: None
Create Date: 2026-10-19
"""

from __future__ import annotations  # ruff: noqa: I001

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = "0001_wt_core"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
    ]


def upgrade() -> None:
    # wt_profiles
    op.create_table(
        "wt_profiles",
        sa.Column("user_id", sa.String(), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("avatar_url", sa.Text(), nullable=True),
        *_timestamps(),
    )

    # wt_shared_accounts
    op.create_table(
        "wt_shared_accounts",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("member_a_id", sa.String(), nullable=False, unique=True),
        sa.Column("member_b_id", sa.String(), nullable=True, unique=True),
        sa.Column("invitation_code", sa.String(), nullable=False, unique=True),
        sa.Column("joined_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "member_b_id IS NULL OR member_b_id <> member_a_id",
            name="ck_wt_sa_distinct_members",
        ),
    )

    # wt_transactions
    op.create_table(
        "wt_transactions",
        sa.Column(
            "id",
            sa.BigInteger().with_variant(sa.Integer(), "sqlite"),
            primary_key=True,
            autoincrement=True,
        ),
        sa.Column("owner_id", sa.String(), nullable=False),
        sa.Column(
            "shared_account_id",
            sa.String(),
            sa.ForeignKey("wt_shared_accounts.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("amount", sa.BigInteger(), nullable=False),
        sa.Column("category", sa.String(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("split_type", sa.String(), nullable=True),
        sa.Column("member_a_share", sa.Numeric(20, 4), nullable=True),
        sa.Column("member_b_share", sa.Numeric(20, 4), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("0")),
        *_timestamps(),
        sa.CheckConstraint("amount >= 0", name="ck_wt_tx_amount_non_negative"),
        sa.CheckConstraint(
            "split_type IS NULL OR split_type in ('equal','percentage','custom')",
            name="ck_wt_tx_split_type",
        ),
        sa.CheckConstraint(
            "(shared_account_id IS NULL) = (split_type IS NULL)",
            name="ck_wt_tx_split_iff_shared",
        ),
    )
    op.create_index("ix_wt_transactions_owner_id", "wt_transactions", ["owner_id"])
    op.create_index(
        "ix_wt_transactions_shared_account_id", "wt_transactions", ["shared_account_id"]
    )


def downgrade() -> None:
    op.drop_index("ix_wt_transactions_shared_account_id", table_name="wt_transactions")
    op.drop_index("ix_wt_transactions_owner_id", table_name="wt_transactions")
    op.drop_table("wt_transactions")
    op.drop_table("wt_shared_accounts")
    op.drop_table("wt_profiles")
