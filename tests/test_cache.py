from __future__ import annotations

import json
import os
from pathlib import Path

import pytest

from wise_together.cache import CachedDirectory, cache_key, cache_ttl_seconds
from wise_together.models import SharedAccount, UserProfile

ACCOUNT = SharedAccount(id="acct", member_a_id="alice", member_b_id="bob", invitation_code="c0de")


class FakeDirectory:
    """Counts lookups so tests can tell cache hits from misses."""

    def __init__(self) -> None:
        self.accounts: dict[str, SharedAccount] = {"alice": ACCOUNT, "bob": ACCOUNT}
        self.profiles: dict[str, UserProfile] = {"bob": UserProfile("Bob", "https://a/b.png")}
        self.calls: list[tuple[str, str]] = []

    def find_shared_account_by_member(self, member_id: str) -> SharedAccount | None:
        self.calls.append(("account", member_id))
        return self.accounts.get(member_id)

    def get_profile(self, member_id: str) -> UserProfile | None:
        self.calls.append(("profile", member_id))
        return self.profiles.get(member_id)


class Clock:
    def __init__(self, now: float = 1_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def _lookups_dir() -> Path:
    return Path(os.environ["WT_CACHE_DIR"]) / "lookups"


def test_account_lookup_is_served_from_disk_until_expiry():
    inner, clock = FakeDirectory(), Clock()
    cached = CachedDirectory(inner, ttl_seconds=60, clock=clock)

    assert cached.find_shared_account_by_member("alice") == ACCOUNT
    assert (_lookups_dir() / "shared_account_alice.json").exists()

    # A fresh wrapper reads the same file
    again = CachedDirectory(inner, ttl_seconds=60, clock=clock)
    assert again.find_shared_account_by_member("alice") == ACCOUNT
    assert inner.calls == [("account", "alice")]

    clock.now += 60
    assert cached.find_shared_account_by_member("alice") == ACCOUNT
    assert inner.calls == [("account", "alice"), ("account", "alice")]


def test_profile_lookup_and_refresh():
    inner, clock = FakeDirectory(), Clock()
    cached = CachedDirectory(inner, ttl_seconds=60, clock=clock)

    assert cached.get_profile("bob") == UserProfile("Bob", "https://a/b.png")
    inner.profiles["bob"] = UserProfile("Robert")
    assert cached.get_profile("bob").display_name == "Bob"
    assert cached.get_profile("bob", refresh=True).display_name == "Robert"
    assert cached.get_profile("bob").display_name == "Robert"


def test_misses_are_not_cached():
    inner = FakeDirectory()
    cached = CachedDirectory(inner, ttl_seconds=60, clock=Clock())

    assert cached.find_shared_account_by_member("carol") is None
    assert cached.get_profile("carol") is None
    assert not list(_lookups_dir().glob("*.json"))

    inner.accounts["carol"] = SharedAccount(id="acct2", member_a_id="carol")
    assert cached.find_shared_account_by_member("carol").id == "acct2"


def test_invalidate_drops_both_entries():
    inner = FakeDirectory()
    cached = CachedDirectory(inner, ttl_seconds=60, clock=Clock())
    cached.find_shared_account_by_member("bob")
    cached.get_profile("bob")
    assert len(list(_lookups_dir().glob("*.json"))) == 2

    cached.invalidate("bob")
    assert not list(_lookups_dir().glob("*.json"))


@pytest.mark.parametrize(
    "payload",
    [
        "{not json",
        json.dumps({"schema_version": 1, "key": "shared_account_alice", "stored_at": 1.0}),
        json.dumps({"schema_version": 99, "key": "shared_account_alice", "stored_at": 1e12,
                    "account": {"id": "x", "member_a_id": "alice"}}),
    ],
)
def test_malformed_entries_are_discarded(payload):
    inner, clock = FakeDirectory(), Clock()
    path = _lookups_dir() / "shared_account_alice.json"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(payload, encoding="utf-8")

    cached = CachedDirectory(inner, ttl_seconds=60, clock=clock)
    assert cached.find_shared_account_by_member("alice") == ACCOUNT
    assert inner.calls == [("account", "alice")]
    # Rewritten with a valid entry
    assert json.loads(path.read_text(encoding="utf-8"))["account"]["id"] == "acct"


def test_member_ids_cannot_escape_the_cache_dir():
    assert cache_key("shared_account_", "google|123/../x") == "shared_account_google%7C123%2F..%2Fx"


def test_ttl_from_env(monkeypatch: pytest.MonkeyPatch):
    assert cache_ttl_seconds() == 86400
    monkeypatch.setenv("WT_CACHE_TTL_SECONDS", "5")
    assert cache_ttl_seconds() == 5
    monkeypatch.setenv("WT_CACHE_TTL_SECONDS", "-1")
    with pytest.raises(RuntimeError):
        cache_ttl_seconds()
