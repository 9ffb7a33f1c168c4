"""Derived views over a list of transactions.

Everything here is a pure function of its inputs (transactions, the viewing
member, the shared account and the partner profile) and is recomputed by the
caller whenever one of them changes. Amounts stay in integer minor units; no
intermediate rounding happens while summing.

Degraded records (a shared transaction whose split is missing or zero on both
legs) are not repaired. Their shares count as zero and a warning is logged so
the anomaly is visible to operators.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from .logging_setup import get_logger
from .models import CATEGORIES, Member, SharedAccount, Transaction, UserProfile

_logger = get_logger("wise_together.aggregate")

PARTNER_FALLBACK_LABEL = "your partner"


# ---------------------------------------------------------------------------
# Result shapes
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class CategoryBreakdown:
    """Parallel sequences: ``labels[i]`` totals ``totals[i]`` minor units."""

    labels: tuple[str, ...] = ()
    totals: tuple[int, ...] = ()

    def as_dict(self) -> dict[str, int]:
        return dict(zip(self.labels, self.totals, strict=True))


@dataclass(frozen=True, slots=True)
class Reconciliation:
    """Who paid and who owes what on one shared transaction, for one viewer."""

    transaction_id: str | None
    paid_label: str
    paid_amount: int
    owed_label: str
    owed_amount: int
    viewer_paid: bool


@dataclass(frozen=True, slots=True)
class AggregatedView:
    personal_transactions: tuple[Transaction, ...] = ()
    shared_transactions: tuple[Transaction, ...] = ()
    personal_total: int = 0
    shared_total: int = 0
    category_labels: tuple[str, ...] = ()
    category_totals: tuple[int, ...] = ()
    reconciliations: tuple[Reconciliation, ...] = ()
    net_balance: int = 0


EMPTY_VIEW = AggregatedView()


# ---------------------------------------------------------------------------
# Partition and totals
# ---------------------------------------------------------------------------


def partition(
    transactions: Iterable[Transaction],
) -> tuple[tuple[Transaction, ...], tuple[Transaction, ...]]:
    """Split into ``(personal, shared)`` keeping input order within each side."""

    personal: list[Transaction] = []
    shared: list[Transaction] = []
    for tx in transactions:
        (shared if tx.shared_account_id is not None else personal).append(tx)
    return tuple(personal), tuple(shared)


def sum_amounts(transactions: Iterable[Transaction]) -> int:
    return sum((tx.amount for tx in transactions), 0)


def category_breakdown(transactions: Iterable[Transaction]) -> CategoryBreakdown:
    """Total per category in enumeration order, omitting categories that sum to 0.

    Transactions whose category is unset or outside the enumeration are not
    counted.
    """

    sums = dict.fromkeys(CATEGORIES, 0)
    for tx in transactions:
        if tx.category in sums:
            sums[tx.category] += tx.amount
    present = [(c, total) for c, total in sums.items() if total != 0]
    return CategoryBreakdown(
        labels=tuple(c for c, _ in present),
        totals=tuple(t for _, t in present),
    )


# ---------------------------------------------------------------------------
# Reconciliation
# ---------------------------------------------------------------------------


def partner_label(partner: UserProfile | None) -> str:
    if partner is not None and partner.display_name:
        return partner.display_name
    return PARTNER_FALLBACK_LABEL


def _counterparty_side(tx: Transaction, account: SharedAccount | None) -> Member:
    """Side of the member who did not pay for ``tx``."""

    owner_side = account.side_of(tx.owner_id) if account is not None else None
    if owner_side is None:
        _logger.warning(
            "reconcile:owner_not_in_account tx_id=%s owner_id=%s account_id=%s; "
            "using member B's share",
            tx.id,
            tx.owner_id,
            account.id if account is not None else None,
        )
        return Member.B
    return owner_side.other()


def counterparty_share(tx: Transaction, account: SharedAccount | None) -> int:
    """Minor units owed to the payer of ``tx`` by the other member.

    Missing or degraded splits count as zero (logged, never raised).
    """

    if tx.split is None:
        _logger.warning("reconcile:missing_split tx_id=%s; treating shares as 0", tx.id)
        return 0
    if tx.split.is_degraded:
        _logger.warning(
            "reconcile:degraded_split tx_id=%s split_type=%s a=%s b=%s amount=%d",
            tx.id,
            tx.split.split_type,
            tx.split.member_a_share,
            tx.split.member_b_share,
            tx.amount,
        )
    return tx.split.share_of(_counterparty_side(tx, account), tx.amount)


def reconcile(
    tx: Transaction,
    viewer_id: str,
    account: SharedAccount | None,
    partner: UserProfile | None = None,
) -> Reconciliation:
    """Describe ``tx`` from ``viewer_id``'s point of view.

    The payer sees "<partner> owes you <share>"; the other member sees
    "you owe <share>". The share is the non-paying member's share in both
    views.
    """

    name = partner_label(partner)
    owed = counterparty_share(tx, account)
    viewer_paid = tx.owner_id == viewer_id
    if viewer_paid:
        paid_label, owed_label = "you paid", f"{name} owes you"
    else:
        paid_label, owed_label = f"{name} paid", "you owe"
    return Reconciliation(
        transaction_id=tx.id,
        paid_label=paid_label,
        paid_amount=tx.amount,
        owed_label=owed_label,
        owed_amount=owed,
        viewer_paid=viewer_paid,
    )


def net_balance(
    shared: Iterable[Transaction],
    viewer_id: str,
    account: SharedAccount | None,
) -> int:
    """Net position across shared transactions.

    Positive: the partner owes the viewer. Negative: the viewer owes the
    partner.
    """

    balance = 0
    for tx in shared:
        owed = counterparty_share(tx, account)
        balance += owed if tx.owner_id == viewer_id else -owed
    return balance


# ---------------------------------------------------------------------------
# Dashboard summary
# ---------------------------------------------------------------------------


def summarize(
    transactions: Sequence[Transaction] | None,
    viewer_id: str,
    account: SharedAccount | None = None,
    partner: UserProfile | None = None,
) -> AggregatedView:
    """Build every derived view the dashboard needs.

    ``None`` (no usable list from the store) behaves like an empty list.
    """

    if not transactions:
        return EMPTY_VIEW
    personal, shared = partition(transactions)
    breakdown = category_breakdown(transactions)
    rows = tuple(reconcile(tx, viewer_id, account, partner) for tx in shared)
    return AggregatedView(
        personal_transactions=personal,
        shared_transactions=shared,
        personal_total=sum_amounts(personal),
        shared_total=sum_amounts(shared),
        category_labels=breakdown.labels,
        category_totals=breakdown.totals,
        reconciliations=rows,
        net_balance=sum(r.owed_amount if r.viewer_paid else -r.owed_amount for r in rows),
    )


__all__ = [
    "AggregatedView",
    "CategoryBreakdown",
    "EMPTY_VIEW",
    "PARTNER_FALLBACK_LABEL",
    "Reconciliation",
    "category_breakdown",
    "counterparty_share",
    "net_balance",
    "partition",
    "partner_label",
    "reconcile",
    "summarize",
]
