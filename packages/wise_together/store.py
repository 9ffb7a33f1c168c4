# ruff: noqa: I001
"""Persistence integration for wise_together.

The core never talks to a database directly; it consumes two narrow
interfaces:

- :class:`TransactionStore`: list/create/update/delete transactions.
- :class:`AccountDirectory`: look up a member's shared account and a
  partner's profile.

:class:`SqlStore` implements both on top of the shared ``libs/db`` package
(``db.client.session_scope`` and the ``Wt*`` ORM models in
``db.models.finance``). Each public method runs in its own transaction.

Updates use optimistic concurrency: the caller's ``Transaction.version`` must
match the stored row, otherwise :class:`StaleTransactionError` is raised and
nothing is written.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import AbstractContextManager, contextmanager
from datetime import date
from typing import Protocol, runtime_checkable

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from db.client import session_scope
from db.models.finance import WtProfile, WtSharedAccount, WtTransaction

from .logging_setup import get_logger
from .models import SharedAccount, Split, SplitType, Transaction, UserProfile

_logger = get_logger("wise_together.store")


class StoreError(RuntimeError):
    """Base class for failures reported by a store implementation."""


class NotFoundError(StoreError):
    """The requested record does not exist."""


class StaleTransactionError(StoreError):
    """The transaction changed since the caller read it."""

    def __init__(self, transaction_id: str, expected: int, actual: int) -> None:
        self.transaction_id = transaction_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"transaction {transaction_id} was modified concurrently "
            f"(expected version {expected}, found {actual})"
        )


# ---------------------------------------------------------------------------
# Interfaces
# ---------------------------------------------------------------------------


@runtime_checkable
class TransactionStore(Protocol):
    def list_transactions(
        self, owner_id: str, shared_account_id: str | None = None
    ) -> list[Transaction]: ...

    def create_transaction(self, tx: Transaction) -> Transaction: ...

    def update_transaction(self, transaction_id: str, tx: Transaction) -> Transaction: ...

    def delete_transaction(self, transaction_id: str) -> None: ...


@runtime_checkable
class AccountDirectory(Protocol):
    def find_shared_account_by_member(self, member_id: str) -> SharedAccount | None: ...

    def get_profile(self, member_id: str) -> UserProfile | None: ...


# ---------------------------------------------------------------------------
# Row <-> model mapping
# ---------------------------------------------------------------------------


def _to_transaction(row: WtTransaction) -> Transaction:
    split = None
    if row.split_type is not None:
        split = Split(
            split_type=SplitType(row.split_type),
            member_a_share=row.member_a_share,
            member_b_share=row.member_b_share,
        )
    return Transaction(
        id=str(row.id),
        owner_id=row.owner_id,
        shared_account_id=row.shared_account_id,
        date=row.date.isoformat(),
        amount=int(row.amount),
        category=row.category,
        description=row.description,
        split=split,
        version=row.version,
    )


def _apply(row: WtTransaction, tx: Transaction) -> None:
    row.owner_id = tx.owner_id
    row.shared_account_id = tx.shared_account_id
    row.date = date.fromisoformat(tx.date)
    row.amount = tx.amount
    row.category = tx.category
    row.description = tx.description
    if tx.split is None:
        row.split_type = None
        row.member_a_share = None
        row.member_b_share = None
    else:
        row.split_type = tx.split.split_type.value
        row.member_a_share = tx.split.member_a_share
        row.member_b_share = tx.split.member_b_share


def to_shared_account(row: WtSharedAccount) -> SharedAccount:
    return SharedAccount(
        id=row.id,
        member_a_id=row.member_a_id,
        member_b_id=row.member_b_id,
        invitation_code=row.invitation_code,
    )


def _row_id(transaction_id: str) -> int:
    try:
        return int(transaction_id)
    except (TypeError, ValueError):
        raise NotFoundError(f"transaction {transaction_id!r} not found") from None


def _flush(session: Session, tx: Transaction) -> None:
    try:
        session.flush()
    except IntegrityError as exc:
        raise StoreError(
            f"transaction rejected by the database (owner_id={tx.owner_id}, "
            f"shared_account_id={tx.shared_account_id}): {exc.orig}"
        ) from exc


# ---------------------------------------------------------------------------
# SQL implementation
# ---------------------------------------------------------------------------


class SqlStore:
    """SQLAlchemy-backed :class:`TransactionStore` and :class:`AccountDirectory`.

    Parameters
    ----------
    database_url:
        Optional override for ``DATABASE_URL``.
    session_factory:
        Callable returning a transactional context manager yielding a
        :class:`~sqlalchemy.orm.Session`. Defaults to ``db.client.session_scope``.
    """

    def __init__(
        self,
        *,
        database_url: str | None = None,
        session_factory: Callable[[], AbstractContextManager[Session]] | None = None,
    ) -> None:
        self._database_url = database_url
        self._session_factory = session_factory

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Transactional session; driver and SQL errors surface as :class:`StoreError`."""

        factory = self._session_factory
        scope = factory() if factory is not None else session_scope(database_url=self._database_url)
        try:
            with scope as s:
                yield s
        except SQLAlchemyError as exc:
            _logger.error("store:database_error error=%s", exc)
            raise StoreError(f"database error: {exc}") from exc

    # -- transactions -------------------------------------------------------

    def list_transactions(
        self, owner_id: str, shared_account_id: str | None = None
    ) -> list[Transaction]:
        """Owner's personal transactions plus every transaction of the shared account.

        Ordered by date (newest first), then by id.
        """

        personal = (WtTransaction.owner_id == owner_id) & WtTransaction.shared_account_id.is_(None)
        clause = personal
        if shared_account_id is not None:
            clause = or_(personal, WtTransaction.shared_account_id == shared_account_id)
        stmt = select(WtTransaction).where(clause).order_by(
            WtTransaction.date.desc(), WtTransaction.id.desc()
        )
        with self.session() as s:
            return [_to_transaction(row) for row in s.scalars(stmt)]

    def get_transaction(self, transaction_id: str) -> Transaction:
        with self.session() as s:
            row = s.get(WtTransaction, _row_id(transaction_id))
            if row is None:
                raise NotFoundError(f"transaction {transaction_id!r} not found")
            return _to_transaction(row)

    def create_transaction(self, tx: Transaction) -> Transaction:
        row = WtTransaction()
        _apply(row, tx)
        row.version = 0
        with self.session() as s:
            s.add(row)
            _flush(s, tx)
            created = _to_transaction(row)
        _logger.info(
            "store:create tx_id=%s owner_id=%s shared=%s amount=%d",
            created.id,
            created.owner_id,
            created.is_shared,
            created.amount,
        )
        return created

    def update_transaction(self, transaction_id: str, tx: Transaction) -> Transaction:
        """Overwrite the stored transaction with ``tx``.

        ``tx.version`` must equal the stored version; on success the version
        is incremented.
        """

        with self.session() as s:
            row = s.get(WtTransaction, _row_id(transaction_id), with_for_update=True)
            if row is None:
                raise NotFoundError(f"transaction {transaction_id!r} not found")
            if row.version != tx.version:
                _logger.warning(
                    "store:stale_update tx_id=%s expected=%d actual=%d",
                    transaction_id,
                    tx.version,
                    row.version,
                )
                raise StaleTransactionError(transaction_id, tx.version, row.version)
            _apply(row, tx)
            row.version = row.version + 1
            row.updated_at = func.now()
            _flush(s, tx)
            updated = _to_transaction(row)
        _logger.info("store:update tx_id=%s version=%d", updated.id, updated.version)
        return updated

    def delete_transaction(self, transaction_id: str) -> None:
        with self.session() as s:
            row = s.get(WtTransaction, _row_id(transaction_id))
            if row is None:
                raise NotFoundError(f"transaction {transaction_id!r} not found")
            s.delete(row)
        _logger.info("store:delete tx_id=%s", transaction_id)

    # -- accounts and profiles ---------------------------------------------

    def find_shared_account_by_member(self, member_id: str) -> SharedAccount | None:
        stmt = select(WtSharedAccount).where(
            or_(WtSharedAccount.member_a_id == member_id, WtSharedAccount.member_b_id == member_id)
        )
        with self.session() as s:
            row = s.scalars(stmt).first()
            return to_shared_account(row) if row is not None else None

    def get_profile(self, member_id: str) -> UserProfile | None:
        with self.session() as s:
            row = s.get(WtProfile, member_id)
            if row is None:
                return None
            return UserProfile.from_full_name(row.name, row.avatar_url)

    def upsert_profile(self, member_id: str, name: str, avatar_url: str | None = None) -> None:
        with self.session() as s:
            row = s.get(WtProfile, member_id)
            if row is None:
                s.add(WtProfile(user_id=member_id, name=name, avatar_url=avatar_url))
            else:
                row.name = name
                row.avatar_url = avatar_url


__all__ = [
    "AccountDirectory",
    "NotFoundError",
    "SqlStore",
    "StaleTransactionError",
    "StoreError",
    "TransactionStore",
    "to_shared_account",
]
