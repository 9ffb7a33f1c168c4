"""Shared-account lifecycle: create, invite, join.

A shared account pairs exactly two members. The creator becomes member A and
receives an invitation code; the partner becomes member B by accepting that
code. Membership never changes after the partner joins.

Service functions take a SQLAlchemy session; callers own the transaction
scope (``with db.client.session_scope() as s: ...``). Domain violations raise
:class:`AccountError` (a ``ValueError``) with a message fit for end users.
"""

from __future__ import annotations

import os
import secrets
import uuid
from datetime import UTC, datetime
from urllib.parse import urlencode

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from db.models.finance import WtSharedAccount

from .logging_setup import get_logger
from .models import SharedAccount
from .store import to_shared_account

_logger = get_logger("wise_together.accounts")

DEFAULT_APP_BASE_URL = "http://localhost:5173"
INVITE_PATH = "/invite"


class AccountError(ValueError):
    """A shared-account operation is not allowed for this member."""


def app_base_url() -> str:
    """Return ``WT_APP_BASE_URL`` without a trailing slash."""

    raw = os.getenv("WT_APP_BASE_URL")
    base = raw.strip() if raw and raw.strip() else DEFAULT_APP_BASE_URL
    return base.rstrip("/")


def new_invitation_code() -> str:
    return secrets.token_urlsafe(16)


def _membership(session: Session, member_id: str) -> WtSharedAccount | None:
    stmt = select(WtSharedAccount).where(
        or_(WtSharedAccount.member_a_id == member_id, WtSharedAccount.member_b_id == member_id)
    )
    return session.scalars(stmt).first()


def create_shared_account(
    session: Session,
    *,
    member_id: str,
    account_id: str | None = None,
) -> SharedAccount:
    """Create a shared account with ``member_id`` as member A.

    Raises :class:`AccountError` when the member already belongs to an account.
    """

    member_id = member_id.strip()
    if not member_id:
        raise AccountError("member id is required")
    if _membership(session, member_id) is not None:
        raise AccountError("You already belong to a shared account")

    row = WtSharedAccount(
        id=account_id or uuid.uuid4().hex,
        member_a_id=member_id,
        invitation_code=new_invitation_code(),
    )
    session.add(row)
    try:
        session.flush()
    except IntegrityError as exc:
        raise AccountError("You already belong to a shared account") from exc

    _logger.info("accounts:create account_id=%s member_a=%s", row.id, member_id)
    return to_shared_account(row)


def invitation_link(account: SharedAccount, *, base_url: str | None = None) -> str:
    """Return the URL the partner opens to join ``account``."""

    if account.invitation_code is None:
        raise AccountError("This shared account has no invitation code")
    if account.is_complete:
        raise AccountError("This shared account already has two members")
    base = (base_url or app_base_url()).rstrip("/")
    return f"{base}{INVITE_PATH}?{urlencode({'code': account.invitation_code})}"


def accept_invitation(session: Session, *, code: str, member_id: str) -> SharedAccount:
    """Join the account behind ``code`` as member B.

    Rules
    -----
    - The code must match an existing account.
    - A member cannot join the account they created.
    - An account holds at most two members; member B is set exactly once.
    - A member belongs to at most one shared account.
    """

    code = code.strip()
    member_id = member_id.strip()
    if not code:
        raise AccountError("Invitation code is required")

    row = session.scalars(
        select(WtSharedAccount).where(WtSharedAccount.invitation_code == code).with_for_update()
    ).first()
    if row is None:
        raise AccountError("Invitation code is not valid")
    if row.member_a_id == member_id:
        raise AccountError("You cannot join your own shared account")
    if row.member_b_id is not None:
        if row.member_b_id == member_id:
            return to_shared_account(row)
        raise AccountError("This shared account already has two members")
    existing = _membership(session, member_id)
    if existing is not None:
        raise AccountError("You already belong to a shared account")

    row.member_b_id = member_id
    row.joined_at = datetime.now(UTC)
    row.updated_at = func.now()
    try:
        session.flush()
    except IntegrityError as exc:
        raise AccountError("You already belong to a shared account") from exc

    _logger.info("accounts:join account_id=%s member_b=%s", row.id, member_id)
    return SharedAccount(
        id=row.id,
        member_a_id=row.member_a_id,
        member_b_id=member_id,
        invitation_code=row.invitation_code,
    )


__all__ = [
    "AccountError",
    "accept_invitation",
    "app_base_url",
    "create_shared_account",
    "invitation_link",
]
