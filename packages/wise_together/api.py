"""Public API interfaces and orchestration for the ``wise_together`` package.

The functions here wire the pure core (split engine, validation gate,
aggregator) to the store and lookup collaborators:

- :func:`load_dashboard` fetches the viewer's shared account, the partner's
  profile and the visible transactions, then builds the aggregated view.
  Store failures degrade to an empty view instead of propagating.
- :func:`submit_transaction` validates raw form input and creates or updates
  the transaction.
- :func:`remove_transaction` deletes one.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from .accounts import AccountError
from .aggregate import EMPTY_VIEW, AggregatedView, partner_label, summarize
from .logging_setup import get_logger
from .models import SharedAccount, Transaction, UserProfile
from .split_engine import SplitState
from .store import AccountDirectory, StoreError, TransactionStore
from .validation import build_transaction

_logger = get_logger("wise_together.api")


@dataclass(frozen=True, slots=True)
class Dashboard:
    """Everything one viewer sees on load.

    ``error`` carries the collaborator failure message when the view had to
    fall back to empty aggregates.
    """

    viewer_id: str
    account: SharedAccount | None = None
    partner: UserProfile | None = None
    view: AggregatedView = EMPTY_VIEW
    error: str | None = None

    @property
    def partner_name(self) -> str:
        return partner_label(self.partner)

    @property
    def degraded(self) -> bool:
        return self.error is not None


def load_dashboard(
    store: TransactionStore,
    directory: AccountDirectory,
    viewer_id: str,
) -> Dashboard:
    """Fetch and aggregate the viewer's personal and shared transactions."""

    try:
        account = directory.find_shared_account_by_member(viewer_id)
        partner_id = account.partner_of(viewer_id) if account is not None else None
        partner = directory.get_profile(partner_id) if partner_id is not None else None
        transactions = store.list_transactions(
            viewer_id, account.id if account is not None else None
        )
    except (StoreError, SQLAlchemyError) as exc:
        _logger.error("dashboard:load_failed viewer_id=%s error=%s", viewer_id, exc)
        return Dashboard(viewer_id=viewer_id, error=str(exc))

    view = summarize(transactions, viewer_id, account, partner)
    _logger.debug(
        "dashboard:loaded viewer_id=%s personal=%d shared=%d",
        viewer_id,
        len(view.personal_transactions),
        len(view.shared_transactions),
    )
    return Dashboard(viewer_id=viewer_id, account=account, partner=partner, view=view)


def submit_transaction(
    store: TransactionStore,
    directory: AccountDirectory,
    form: Mapping[str, Any],
    *,
    viewer_id: str,
    split_state: SplitState | None = None,
    existing: Transaction | None = None,
) -> Transaction:
    """Validate ``form`` and persist it.

    A ``split_state`` makes the transaction shared with the viewer's shared
    account. ``existing`` switches to update mode; its ``version`` is passed
    through so a concurrent edit raises
    :class:`~wise_together.store.StaleTransactionError`.

    Raises :class:`~wise_together.validation.TransactionValidationError` on
    invalid input and :class:`~wise_together.accounts.AccountError` when a
    shared submission has no complete shared account behind it, or when the
    partner who did not pay tries to turn a shared transaction personal.
    """

    if (
        existing is not None
        and existing.is_shared
        and split_state is None
        and existing.owner_id != viewer_id
    ):
        # Would file the partner's payment as their personal expense
        raise AccountError("Only the member who paid can make a shared transaction personal")

    shared_account_id = None
    if split_state is not None:
        account = directory.find_shared_account_by_member(viewer_id)
        if account is None:
            raise AccountError("You are not part of a shared account")
        if not account.is_complete:
            raise AccountError("Your partner has not joined the shared account yet")
        shared_account_id = account.id

    tx = build_transaction(
        form,
        owner_id=existing.owner_id if existing is not None else viewer_id,
        shared_account_id=shared_account_id,
        split_state=split_state,
        transaction_id=existing.id if existing is not None else None,
        version=existing.version if existing is not None else 0,
    )
    if existing is not None and existing.id is not None:
        return store.update_transaction(existing.id, tx)
    return store.create_transaction(tx)


def remove_transaction(store: TransactionStore, transaction_id: str) -> None:
    store.delete_transaction(transaction_id)


__all__ = [
    "Dashboard",
    "load_dashboard",
    "remove_transaction",
    "submit_transaction",
]
