from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


# ---------------------------
# Reference: wt_profiles
# ---------------------------


class WtProfile(Base):
    __tablename__ = "wt_profiles"

    # Identity-provider user id; the store never issues these itself.
    user_id: Mapped[str] = mapped_column(String, primary_key=True)
    # Full name as registered; the app only ever displays the first word.
    name: Mapped[str] = mapped_column(Text, nullable=False)
    avatar_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )


# ---------------------------
# Core: wt_shared_accounts
# ---------------------------


class WtSharedAccount(Base):
    __tablename__ = "wt_shared_accounts"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    # Creator. A member belongs to at most one account on either side; the
    # cross-column rule (a member is never both A somewhere and B elsewhere)
    # is enforced in the service layer.
    member_a_id: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    # Set exactly once when the invitation is accepted.
    member_b_id: Mapped[str | None] = mapped_column(String, nullable=True, unique=True)
    invitation_code: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    joined_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )

    __table_args__ = (
        CheckConstraint(
            "member_b_id IS NULL OR member_b_id <> member_a_id",
            name="ck_wt_sa_distinct_members",
        ),
    )


# ---------------------------
# Core: wt_transactions
# ---------------------------


class WtTransaction(Base):
    __tablename__ = "wt_transactions"

    # SQLite only autoincrements INTEGER PRIMARY KEY columns.
    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True
    )
    owner_id: Mapped[str] = mapped_column(String, nullable=False)
    shared_account_id: Mapped[str | None] = mapped_column(
        String,
        ForeignKey("wt_shared_accounts.id", ondelete="CASCADE"),
        nullable=True,
    )
    date: Mapped[date] = mapped_column(Date, nullable=False)
    # Integer minor units (cents for USD, yen for JPY).
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    category: Mapped[str | None] = mapped_column(String, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    split_type: Mapped[str | None] = mapped_column(String, nullable=True)
    # Minor units for equal/custom splits, percentage points for percentage splits.
    member_a_share: Mapped[Decimal | None] = mapped_column(Numeric(20, 4), nullable=True)
    member_b_share: Mapped[Decimal | None] = mapped_column(Numeric(20, 4), nullable=True)
    # Optimistic concurrency token; bumped on every update.
    version: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )

    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_wt_tx_amount_non_negative"),
        CheckConstraint(
            "split_type IS NULL OR split_type in ('equal','percentage','custom')",
            name="ck_wt_tx_split_type",
        ),
        CheckConstraint(
            "(shared_account_id IS NULL) = (split_type IS NULL)",
            name="ck_wt_tx_split_iff_shared",
        ),
        Index("ix_wt_transactions_owner_id", "owner_id"),
        Index("ix_wt_transactions_shared_account_id", "shared_account_id"),
    )


__all__ = [
    "Base",
    "WtProfile",
    "WtSharedAccount",
    "WtTransaction",
]
