"""DB helpers for tests: bootstrap a temporary SQLite DB and seed members."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from pathlib import Path

from db import Base
from db.client import get_engine, session_scope
from db.models.finance import WtProfile, WtSharedAccount, WtTransaction
from sqlalchemy import text as sql_text


def bootstrap_sqlite_db(db_file: Path) -> str:
    """Create a SQLite database file, initialize schema, and return the URL.

    Using a file-backed SQLite DB ensures multiple SQLAlchemy connections share
    the same state (in-memory DBs are per-connection by default).
    """

    url = f"sqlite+pysqlite:///{db_file}"
    db_file.parent.mkdir(parents=True, exist_ok=True)
    engine = get_engine(database_url=url)
    Base.metadata.create_all(bind=engine)
    _assert_transactions_schema_in_sync(url)
    return url


def seed_pair(
    *,
    database_url: str,
    account_id: str = "acct-1",
    member_a: str = "alice",
    member_b: str | None = "bob",
    names: dict[str, str] | None = None,
) -> None:
    """Insert a shared account and, optionally, profiles for its members."""

    with session_scope(database_url=database_url) as session:
        session.add(
            WtSharedAccount(
                id=account_id,
                member_a_id=member_a,
                member_b_id=member_b,
                invitation_code=f"code-{account_id}",
            )
        )
        for user_id, name in (names or {}).items():
            session.add(WtProfile(user_id=user_id, name=name))


def insert_raw_transaction(
    *,
    database_url: str,
    owner_id: str,
    amount: int,
    day: date,
    category: str | None = None,
    shared_account_id: str | None = None,
    split_type: str | None = None,
    member_a_share: Decimal | None = None,
    member_b_share: Decimal | None = None,
) -> int:
    """Insert a row directly, bypassing model validation (e.g. degraded splits)."""

    with session_scope(database_url=database_url) as session:
        row = WtTransaction(
            owner_id=owner_id,
            shared_account_id=shared_account_id,
            date=day,
            amount=amount,
            category=category,
            split_type=split_type,
            member_a_share=member_a_share,
            member_b_share=member_b_share,
            version=0,
        )
        session.add(row)
        session.flush()
        return row.id


def _assert_transactions_schema_in_sync(database_url: str) -> None:
    """Quick sanity check: ORM column set matches SQLite table column set."""

    expected = {c.name for c in WtTransaction.__table__.columns}
    with session_scope(database_url=database_url) as session:
        rows = session.execute(sql_text("PRAGMA table_info('wt_transactions')")).fetchall()
        got = {row[1] for row in rows}  # (cid, name, type, notnull, dflt_value, pk)
    missing = expected - got
    extra = got - expected
    assert not missing and not extra, (
        f"wt_transactions schema drift: missing={missing or '∅'}, extra={extra or '∅'}"
    )
