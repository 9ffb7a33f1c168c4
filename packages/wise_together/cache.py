"""On-disk TTL cache for shared-account and partner-profile lookups.

The dashboard looks up the viewer's shared account and the partner's profile
on every load, yet both change rarely. :class:`CachedDirectory` wraps any
:class:`~wise_together.store.AccountDirectory` and keeps successful lookups
on disk for ``WT_CACHE_TTL_SECONDS`` (24 hours by default).

Cache layout (relative to the cache root, default: ``./.cache``):

  ``<cache_root>/lookups/shared_account_<member_id>.json``
  ``<cache_root>/lookups/partner_profile_<member_id>.json``

Misses are never cached (a member without an account, a missing profile), so
a partner joining later is picked up on the next load. Expired, unreadable or
malformed files are deleted and treated as misses.

Atomicity: writes target ``.tmp`` first and then ``os.replace`` into place.
"""

from __future__ import annotations

import contextlib
import json
import os
import time
from collections.abc import Callable
from pathlib import Path
from urllib.parse import quote

from pydantic import ValidationError

from .logging_setup import get_logger
from .models import (
    CachedProfile,
    CachedSharedAccount,
    LookupCacheFile,
    SharedAccount,
    UserProfile,
)
from .store import AccountDirectory

# Bump only when the on-disk JSON shape changes.
SCHEMA_VERSION: int = 1

DEFAULT_TTL_SECONDS: int = 24 * 60 * 60

ACCOUNT_PREFIX = "shared_account_"
PROFILE_PREFIX = "partner_profile_"

_logger = get_logger("wise_together.cache")


# ----------------------------------------------------------------------------
# Cache root and settings
# ----------------------------------------------------------------------------


def _get_cache_root() -> Path:
    """Return the cache root directory.

    Default: ``./.cache`` under the current working directory.
    Override: ``WT_CACHE_DIR`` environment variable (absolute or relative).
    """

    root = os.getenv("WT_CACHE_DIR")
    if root and root.strip():
        return Path(root).expanduser().resolve()
    return (Path.cwd() / ".cache").resolve()


def cache_ttl_seconds() -> float:
    raw = os.getenv("WT_CACHE_TTL_SECONDS")
    if raw is None or not raw.strip():
        return float(DEFAULT_TTL_SECONDS)
    try:
        ttl = float(raw)
    except ValueError:
        raise RuntimeError(f"WT_CACHE_TTL_SECONDS must be a number, got {raw!r}") from None
    if ttl < 0:
        raise RuntimeError(f"WT_CACHE_TTL_SECONDS must be >= 0, got {raw!r}")
    return ttl


def cache_key(prefix: str, member_id: str) -> str:
    # Member ids come from the identity provider and may contain '/' or '|'
    return prefix + quote(member_id, safe="-_.@")


# ----------------------------------------------------------------------------
# File I/O
# ----------------------------------------------------------------------------


def _lookups_dir() -> Path:
    d = _get_cache_root() / "lookups"
    d.mkdir(parents=True, exist_ok=True)
    return d


def _entry_path(key: str) -> Path:
    return _lookups_dir() / f"{key}.json"


def _discard(path: Path) -> None:
    with contextlib.suppress(FileNotFoundError):
        path.unlink()


def _read_entry(key: str, *, ttl: float, now: float) -> LookupCacheFile | None:
    path = _entry_path(key)
    if not path.exists():
        return None

    try:
        parsed = LookupCacheFile.model_validate_json(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, ValidationError):
        _logger.debug("lookup_cache:read_failed; discarding path=%s", os.fspath(path), exc_info=True)
        _discard(path)
        return None

    if parsed.schema_version != SCHEMA_VERSION or parsed.key != key:
        _discard(path)
        return None
    if now - parsed.stored_at >= ttl:
        _logger.debug("lookup_cache:expired key=%s age=%.0fs", key, now - parsed.stored_at)
        _discard(path)
        return None
    return parsed


def _write_entry(entry: LookupCacheFile) -> None:
    path = _entry_path(entry.key)
    tmp = path.with_suffix(path.suffix + ".tmp")
    try:
        tmp.write_text(
            json.dumps(entry.model_dump(mode="json"), ensure_ascii=False, separators=(",", ":")),
            encoding="utf-8",
        )
        os.replace(tmp, path)
    except Exception:
        with contextlib.suppress(FileNotFoundError):
            tmp.unlink()
        raise


# ----------------------------------------------------------------------------
# Directory wrapper
# ----------------------------------------------------------------------------


class CachedDirectory:
    """:class:`AccountDirectory` that remembers lookups on disk.

    Parameters
    ----------
    inner:
        Directory consulted on a miss.
    ttl_seconds:
        Entry lifetime. Defaults to ``WT_CACHE_TTL_SECONDS`` (86400). ``0``
        disables reads from the cache.
    clock:
        Returns the current time in seconds; injectable for tests.
    """

    def __init__(
        self,
        inner: AccountDirectory,
        *,
        ttl_seconds: float | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._inner = inner
        self._ttl = cache_ttl_seconds() if ttl_seconds is None else float(ttl_seconds)
        self._clock = clock

    def find_shared_account_by_member(
        self, member_id: str, *, refresh: bool = False
    ) -> SharedAccount | None:
        key = cache_key(ACCOUNT_PREFIX, member_id)
        if not refresh:
            hit = _read_entry(key, ttl=self._ttl, now=self._clock())
            if hit is not None and hit.account is not None:
                _logger.debug("lookup_cache:hit key=%s", key)
                return SharedAccount(**hit.account.model_dump())

        account = self._inner.find_shared_account_by_member(member_id)
        if account is None:
            _discard(_entry_path(key))
            return None
        _write_entry(
            LookupCacheFile(
                schema_version=SCHEMA_VERSION,
                key=key,
                stored_at=float(self._clock()),
                account=CachedSharedAccount(
                    id=account.id,
                    member_a_id=account.member_a_id,
                    member_b_id=account.member_b_id,
                    invitation_code=account.invitation_code,
                ),
            )
        )
        return account

    def get_profile(self, member_id: str, *, refresh: bool = False) -> UserProfile | None:
        key = cache_key(PROFILE_PREFIX, member_id)
        if not refresh:
            hit = _read_entry(key, ttl=self._ttl, now=self._clock())
            if hit is not None and hit.profile is not None:
                _logger.debug("lookup_cache:hit key=%s", key)
                return UserProfile(
                    display_name=hit.profile.display_name, avatar_url=hit.profile.avatar_url
                )

        profile = self._inner.get_profile(member_id)
        if profile is None:
            _discard(_entry_path(key))
            return None
        _write_entry(
            LookupCacheFile(
                schema_version=SCHEMA_VERSION,
                key=key,
                stored_at=float(self._clock()),
                profile=CachedProfile(
                    display_name=profile.display_name, avatar_url=profile.avatar_url
                ),
            )
        )
        return profile

    def invalidate(self, member_id: str) -> None:
        """Drop both cached lookups for ``member_id``."""

        for prefix in (ACCOUNT_PREFIX, PROFILE_PREFIX):
            _discard(_entry_path(cache_key(prefix, member_id)))


__all__ = [
    "CachedDirectory",
    "cache_key",
    "cache_ttl_seconds",
]
