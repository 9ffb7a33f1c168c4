"""Interactive split editor for shared transactions.

The editor state is a tagged union of frozen dataclasses
(:class:`EqualSplit`, :class:`PercentageSplit`, :class:`CustomSplit`). Every
operation is a pure function returning a new state; nothing here performs I/O.

Rules
-----
- Choosing a policy always starts from that policy's neutral state. Shares
  never carry over from one policy to another.
- Editing one member's share immediately sets the other member's share to the
  complement (``100 - p`` for percentages, ``amount - v`` for custom amounts).
- Out-of-range, non-numeric and premature edits (amount unknown or zero) are
  rejected: the very same state object is returned, unchanged and unclamped.
- Equal splits give an odd remainder to member A (101 -> 51/50).
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Any

from .logging_setup import get_logger
from .models import Member, Split, SplitType, equal_shares
from .normalizers import to_decimal

_logger = get_logger("wise_together.split_engine")

_HUNDRED = Decimal(100)
_ZERO = Decimal(0)
_PERCENT_QUANTUM = Decimal("0.0001")


class SplitError(ValueError):
    """Raised when an unbalanced editor state is turned into a persisted split."""


# ---------------------------------------------------------------------------
# States
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class EqualSplit:
    amount: int | None = None

    @property
    def policy(self) -> SplitType:
        return SplitType.EQUAL

    @property
    def member_a_share(self) -> int:
        return equal_shares(self.amount or 0)[0]

    @property
    def member_b_share(self) -> int:
        return equal_shares(self.amount or 0)[1]


@dataclass(frozen=True, slots=True)
class PercentageSplit:
    """Shares are percentage points; an accepted edit keeps them summing to 100."""

    amount: int | None = None
    member_a_share: Decimal = _ZERO
    member_b_share: Decimal = _ZERO

    @property
    def policy(self) -> SplitType:
        return SplitType.PERCENTAGE


@dataclass(frozen=True, slots=True)
class CustomSplit:
    """Shares are minor units; an accepted edit keeps them summing to ``amount``."""

    amount: int | None = None
    member_a_share: int = 0
    member_b_share: int = 0

    @property
    def policy(self) -> SplitType:
        return SplitType.CUSTOM


type SplitState = EqualSplit | PercentageSplit | CustomSplit


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------


def new_split(policy: SplitType | str, amount: int | None = None) -> SplitState:
    """Return the neutral state for ``policy``."""

    match SplitType(policy):
        case SplitType.EQUAL:
            return EqualSplit(amount=amount)
        case SplitType.PERCENTAGE:
            return PercentageSplit(amount=amount)
        case SplitType.CUSTOM:
            return CustomSplit(amount=amount)


def change_policy(state: SplitState, policy: SplitType | str) -> SplitState:
    """Switch to ``policy``; shares are reset even when the policy is unchanged."""

    return new_split(policy, state.amount)


def set_amount(state: SplitState, amount: int | None) -> SplitState:
    """Update the transaction total behind the split.

    Equal splits follow the amount. Percentages are unaffected. A custom split
    keeps member A's value and rebalances member B while A still fits in the
    new total; otherwise it falls back to the neutral 0/0 state.
    """

    if amount is not None and amount < 0:
        raise ValueError(f"amount must be non-negative, got {amount}")
    match state:
        case EqualSplit() | PercentageSplit():
            return replace(state, amount=amount)
        case CustomSplit():
            if amount and state.member_a_share <= amount and is_balanced(state):
                return CustomSplit(
                    amount=amount,
                    member_a_share=state.member_a_share,
                    member_b_share=amount - state.member_a_share,
                )
            return CustomSplit(amount=amount)


def explain_rejection(state: SplitState, member: Member | str, raw: Any) -> str | None:
    """Return why ``edit_share(state, member, raw)`` would be rejected, else ``None``."""

    Member(member)
    if isinstance(state, EqualSplit):
        return "equal splits cannot be edited"
    if not state.amount:
        return "enter the total amount before splitting it"
    value = to_decimal(raw)
    if value is None:
        return f"not a number: {raw!r}"
    if isinstance(state, PercentageSplit):
        if not _ZERO <= value <= _HUNDRED:
            return "percentage must be between 0 and 100"
        # Persisted with four decimal places (wt_transactions share columns)
        if value != value.quantize(_PERCENT_QUANTUM):
            return "percentage supports at most 4 decimal places"
        return None
    if value != value.to_integral_value():
        return "custom amounts must be whole minor units"
    if not _ZERO <= value <= state.amount:
        return "amount must be between 0 and the transaction total"
    return None


def edit_share(state: SplitState, member: Member | str, raw: Any) -> SplitState:
    """Set ``member``'s share to ``raw`` and the other share to the complement.

    Returns ``state`` itself when the edit is rejected.
    """

    side = Member(member)
    reason = explain_rejection(state, side, raw)
    if reason is not None:
        _logger.debug(
            "split_edit:rejected policy=%s member=%s value=%r reason=%s",
            state.policy,
            side,
            raw,
            reason,
        )
        return state

    value = to_decimal(raw)
    assert value is not None  # checked by explain_rejection
    match state:
        case PercentageSplit():
            mine, other = value, _HUNDRED - value
        case CustomSplit():
            assert state.amount is not None
            mine, other = int(value), state.amount - int(value)
        case _:  # pragma: no cover - equal splits are rejected above
            return state

    if side is Member.A:
        return replace(state, member_a_share=mine, member_b_share=other)
    return replace(state, member_a_share=other, member_b_share=mine)


# ---------------------------------------------------------------------------
# Balance and persistence
# ---------------------------------------------------------------------------


def is_balanced(state: SplitState) -> bool:
    """Whether the shares satisfy the policy's sum invariant.

    The untouched 0/0 state of a percentage or custom split is never balanced.
    """

    match state:
        case EqualSplit():
            return state.amount is not None
        case PercentageSplit():
            return state.member_a_share + state.member_b_share == _HUNDRED
        case CustomSplit():
            if not state.amount:
                return False
            return state.member_a_share + state.member_b_share == state.amount


def currency_shares(state: SplitState) -> tuple[int, int]:
    """Shares converted to minor units (``(0, 0)`` while the amount is unknown)."""

    return to_split_unchecked(state).currency_shares(state.amount or 0)


def to_split_unchecked(state: SplitState) -> Split:
    if isinstance(state, EqualSplit):
        a, b = equal_shares(state.amount or 0)
        return Split(split_type=SplitType.EQUAL, member_a_share=Decimal(a), member_b_share=Decimal(b))
    return Split(
        split_type=state.policy,
        member_a_share=Decimal(state.member_a_share),
        member_b_share=Decimal(state.member_b_share),
    )


def to_split(state: SplitState) -> Split:
    """Return the persisted :class:`Split`; raises :class:`SplitError` if unbalanced."""

    if not is_balanced(state):
        raise SplitError(
            f"{state.policy} split is not balanced: "
            f"{state.member_a_share} + {state.member_b_share} (amount={state.amount})"
        )
    return to_split_unchecked(state)


def from_split(split: Split, amount: int | None) -> SplitState:
    """Rebuild an editor state from a persisted split (edit mode)."""

    a = split.member_a_share if split.member_a_share is not None else _ZERO
    b = split.member_b_share if split.member_b_share is not None else _ZERO
    match split.split_type:
        case SplitType.EQUAL:
            return EqualSplit(amount=amount)
        case SplitType.PERCENTAGE:
            return PercentageSplit(amount=amount, member_a_share=a, member_b_share=b)
        case SplitType.CUSTOM:
            return CustomSplit(amount=amount, member_a_share=int(a), member_b_share=int(b))


__all__ = [
    "CustomSplit",
    "EqualSplit",
    "PercentageSplit",
    "SplitError",
    "SplitState",
    "change_policy",
    "currency_shares",
    "edit_share",
    "explain_rejection",
    "from_split",
    "is_balanced",
    "new_split",
    "set_amount",
    "to_split",
]
