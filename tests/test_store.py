from datetime import date
from decimal import Decimal

import pytest

from wise_together.models import SharedAccount, Split, SplitType, Transaction
from wise_together.store import (
    AccountDirectory,
    NotFoundError,
    SqlStore,
    StaleTransactionError,
    StoreError,
    TransactionStore,
)

from tests.helpers.db import insert_raw_transaction, seed_pair


def _tx(
    owner: str,
    amount: int,
    *,
    shared: bool = False,
    split: Split | None = None,
    day: str = "2026-01-10",
    description: str | None = None,
) -> Transaction:
    if shared and split is None:
        split = Split(split_type=SplitType.EQUAL, member_a_share=Decimal(0), member_b_share=Decimal(0))
    return Transaction(
        owner_id=owner,
        shared_account_id="acct-1" if shared else None,
        date=day,
        amount=amount,
        category="Groceries",
        description=description,
        split=split,
    )


def test_sql_store_satisfies_both_interfaces(database_url):
    store = SqlStore(database_url=database_url)
    assert isinstance(store, TransactionStore)
    assert isinstance(store, AccountDirectory)


def test_create_and_list_personal_and_shared(database_url):
    seed_pair(database_url=database_url)
    store = SqlStore()

    mine = store.create_transaction(_tx("alice", 1200, description="lunch"))
    theirs = store.create_transaction(_tx("bob", 900))
    shared = store.create_transaction(
        _tx(
            "bob",
            10000,
            shared=True,
            day="2026-01-12",
            split=Split(
                split_type=SplitType.PERCENTAGE,
                member_a_share=Decimal("33.3333"),
                member_b_share=Decimal("66.6667"),
            ),
        )
    )

    assert mine.id is not None and mine.version == 0
    listed = store.list_transactions("alice", "acct-1")
    assert [t.id for t in listed] == [shared.id, mine.id]
    assert theirs.id not in {t.id for t in listed}

    loaded = listed[0]
    assert loaded.split is not None
    assert loaded.split.member_a_share == Decimal("33.3333")
    assert loaded.split.currency_shares(loaded.amount) == (3333, 6667)

    # Without a shared account only personal rows are visible
    assert [t.id for t in store.list_transactions("alice")] == [mine.id]


def test_update_bumps_version_and_detects_stale_writes(database_url):
    store = SqlStore()
    created = store.create_transaction(_tx("alice", 500))

    updated = store.update_transaction(created.id, created.model_copy(update={"amount": 750}))
    assert updated.version == 1
    assert store.get_transaction(created.id).amount == 750

    # A second writer still holding version 0 must not overwrite
    with pytest.raises(StaleTransactionError) as info:
        store.update_transaction(created.id, created.model_copy(update={"amount": 1}))
    assert (info.value.expected, info.value.actual) == (0, 1)
    assert store.get_transaction(created.id).amount == 750


def test_delete_and_not_found(database_url):
    store = SqlStore()
    created = store.create_transaction(_tx("alice", 500))
    store.delete_transaction(created.id)

    with pytest.raises(NotFoundError):
        store.get_transaction(created.id)
    with pytest.raises(NotFoundError):
        store.delete_transaction(created.id)
    with pytest.raises(NotFoundError):
        store.update_transaction("not-a-number", created)


def test_shared_transaction_for_unknown_account_is_a_store_error(database_url):
    store = SqlStore()
    with pytest.raises(StoreError):
        store.create_transaction(_tx("alice", 100, shared=True))


def test_account_and_profile_lookups(database_url):
    seed_pair(database_url=database_url, names={"bob": "Bob Builder"})
    store = SqlStore()

    expected = SharedAccount(
        id="acct-1", member_a_id="alice", member_b_id="bob", invitation_code="code-acct-1"
    )
    assert store.find_shared_account_by_member("alice") == expected
    assert store.find_shared_account_by_member("bob") == expected
    assert store.find_shared_account_by_member("carol") is None

    profile = store.get_profile("bob")
    assert profile is not None and profile.display_name == "Bob"
    assert store.get_profile("alice") is None

    store.upsert_profile("alice", "Alice Liddell", "https://example.test/a.png")
    store.upsert_profile("alice", "Alicia Liddell")
    assert store.get_profile("alice").display_name == "Alicia"


def test_degraded_rows_load_without_repair(database_url):
    seed_pair(database_url=database_url)
    tx_id = insert_raw_transaction(
        database_url=database_url,
        owner_id="alice",
        amount=800,
        day=date(2026, 1, 3),
        shared_account_id="acct-1",
        split_type="custom",
    )
    (loaded,) = SqlStore().list_transactions("bob", "acct-1")
    assert loaded.id == str(tx_id)
    assert loaded.split is not None and loaded.split.is_degraded


def test_database_errors_surface_as_store_errors(tmp_path):
    store = SqlStore(database_url=f"sqlite+pysqlite:///{tmp_path / 'unmigrated.sqlite3'}")
    with pytest.raises(StoreError, match="database error"):
        store.list_transactions("alice")
    with pytest.raises(StoreError):
        store.get_profile("alice")
    with pytest.raises(StoreError):
        store.upsert_profile("alice", "Alice")
