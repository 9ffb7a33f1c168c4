"""Data models and type aliases for ``wise_together``.

The canonical :class:`Transaction` is a validated pydantic model: its ``split``
is present if and only if ``shared_account_id`` is present, dates are
normalized to ``YYYY-MM-DD`` and amounts are integer minor units. Shared
accounts and partner profiles are small frozen dataclasses since they are only
ever read by the core.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from .normalizers import first_name, normalize_date, percent_of, to_minor_units

# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class Category(StrEnum):
    GROCERIES = "Groceries"
    RENT = "Rent"
    UTILITIES = "Utilities"
    INSURANCE = "Insurance"
    TRANSPORTATION = "Transportation"
    DINING_OUT = "Dining Out"
    ENTERTAINMENT = "Entertainment"
    HEALTHCARE = "Healthcare"
    PERSONAL_CARE = "Personal Care"
    MISCELLANEOUS = "Miscellaneous"


# Order is significant: category breakdowns are emitted in this order.
CATEGORIES: tuple[str, ...] = tuple(c.value for c in Category)

# Placeholder value of the category picker meaning "not yet chosen".
UNSELECTED_CATEGORY = "-- Select Category --"


class SplitType(StrEnum):
    EQUAL = "equal"
    PERCENTAGE = "percentage"
    CUSTOM = "custom"


class Member(StrEnum):
    """Side of a shared account: ``A`` is the creator, ``B`` the invited partner."""

    A = "member_a"
    B = "member_b"

    def other(self) -> Member:
        return Member.B if self is Member.A else Member.A


def equal_shares(amount: int) -> tuple[int, int]:
    """Split ``amount`` in two; an odd remainder goes to member A."""

    half, remainder = divmod(amount, 2)
    return half + remainder, half


# ---------------------------------------------------------------------------
# Split
# ---------------------------------------------------------------------------


class Split(BaseModel):
    """Persisted division of a shared transaction between the two members.

    Shares are stored in the policy's own unit: minor units for ``equal`` and
    ``custom``, percentage points for ``percentage``. ``None`` marks a missing
    share on a degraded record; arithmetic treats it as zero.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    split_type: SplitType
    member_a_share: Decimal | None = None
    member_b_share: Decimal | None = None

    def currency_shares(self, amount: int) -> tuple[int, int]:
        """Return ``(member_a, member_b)`` in minor units for ``amount``.

        Equal splits are always derived from ``amount``. Percentage splits
        that add up to 100 put the rounding remainder on member B so the two
        legs sum to ``amount`` exactly; anything else is converted leg by leg
        without repair.
        """

        if self.split_type is SplitType.EQUAL:
            return equal_shares(amount)

        a = self.member_a_share if self.member_a_share is not None else Decimal(0)
        b = self.member_b_share if self.member_b_share is not None else Decimal(0)
        if self.split_type is SplitType.PERCENTAGE:
            a_minor = percent_of(amount, a)
            if a + b == 100:
                return a_minor, amount - a_minor
            return a_minor, percent_of(amount, b)
        return int(a), int(b)

    def share_of(self, member: Member, amount: int) -> int:
        a, b = self.currency_shares(amount)
        return a if member is Member.A else b

    @property
    def is_degraded(self) -> bool:
        """True when shares are missing, or zero on both legs for a non-equal policy."""

        if self.split_type is SplitType.EQUAL:
            return False
        if self.member_a_share is None or self.member_b_share is None:
            return True
        return self.member_a_share == 0 and self.member_b_share == 0


# ---------------------------------------------------------------------------
# Transaction
# ---------------------------------------------------------------------------


class Transaction(BaseModel):
    """A personal or shared expense.

    ``id`` is assigned by the store and absent for unsaved records. ``version``
    is bumped by the store on every update and used for optimistic
    concurrency checks.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", str_strip_whitespace=True)

    id: str | None = None
    owner_id: str
    shared_account_id: str | None = None
    date: str
    amount: int
    category: str | None = None
    description: str | None = None
    split: Split | None = None
    version: int = 0

    @field_validator("date", mode="before")
    @classmethod
    def _normalize_date(cls, v: Any) -> str:
        return normalize_date(v)

    @field_validator("amount", mode="before")
    @classmethod
    def _coerce_amount(cls, v: Any) -> int:
        return to_minor_units(v)

    @field_validator("shared_account_id", "description", "category")
    @classmethod
    def _blank_to_none(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        return v

    @model_validator(mode="after")
    def _split_iff_shared(self) -> Transaction:
        if self.shared_account_id is not None and self.split is None:
            raise ValueError("shared transactions require a split")
        if self.shared_account_id is None and self.split is not None:
            raise ValueError("personal transactions cannot carry a split")
        return self

    @property
    def is_shared(self) -> bool:
        return self.shared_account_id is not None


type Transactions = Sequence[Transaction]
"""An ordered collection of transactions (input order is preserved by the core)."""


# ---------------------------------------------------------------------------
# Shared account and profiles
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class SharedAccount:
    """A pairing of at most two members.

    ``member_a_id`` created the account; ``member_b_id`` is set once the
    partner accepts the invitation and never changes afterwards.
    """

    id: str
    member_a_id: str
    member_b_id: str | None = None
    invitation_code: str | None = None

    @property
    def is_complete(self) -> bool:
        return self.member_b_id is not None

    @property
    def members(self) -> tuple[str, ...]:
        if self.member_b_id is None:
            return (self.member_a_id,)
        return (self.member_a_id, self.member_b_id)

    def side_of(self, member_id: str) -> Member | None:
        if member_id == self.member_a_id:
            return Member.A
        if self.member_b_id is not None and member_id == self.member_b_id:
            return Member.B
        return None

    def partner_of(self, member_id: str) -> str | None:
        side = self.side_of(member_id)
        if side is Member.A:
            return self.member_b_id
        if side is Member.B:
            return self.member_a_id
        return None


@dataclass(frozen=True, slots=True)
class UserProfile:
    """Partner display data: first name only, plus an optional avatar."""

    display_name: str
    avatar_url: str | None = None

    @classmethod
    def from_full_name(cls, name: str | None, avatar_url: str | None = None) -> UserProfile:
        return cls(display_name=first_name(name), avatar_url=avatar_url or None)


# ---------------------------------------------------------------------------
# Lookup cache file schema
# ---------------------------------------------------------------------------


class CachedSharedAccount(BaseModel):
    model_config = ConfigDict(strict=True, extra="forbid")

    id: str
    member_a_id: str
    member_b_id: str | None = None
    invitation_code: str | None = None


class CachedProfile(BaseModel):
    model_config = ConfigDict(strict=True, extra="forbid")

    display_name: str
    avatar_url: str | None = None


class LookupCacheFile(BaseModel):
    """Top-level schema for one lookup cache JSON file.

    Exactly one of ``account``/``profile`` is set, matching the key prefix.
    """

    model_config = ConfigDict(strict=True, extra="forbid")

    schema_version: int
    key: str
    stored_at: float
    account: CachedSharedAccount | None = None
    profile: CachedProfile | None = None

    @model_validator(mode="after")
    def _one_payload(self) -> LookupCacheFile:
        if (self.account is None) == (self.profile is None):
            raise ValueError("exactly one of account/profile must be set")
        return self


__all__ = [
    "CATEGORIES",
    "CachedProfile",
    "CachedSharedAccount",
    "Category",
    "LookupCacheFile",
    "Member",
    "SharedAccount",
    "Split",
    "SplitType",
    "Transaction",
    "Transactions",
    "UNSELECTED_CATEGORY",
    "UserProfile",
    "equal_shares",
]
