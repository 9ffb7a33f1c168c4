"""Shared SQLAlchemy models registry for the workspace database.

Currently includes the shared-finance models used by ``wise_together``.
"""

from .finance import Base, WtProfile, WtSharedAccount, WtTransaction

__all__ = [
    "Base",
    "WtProfile",
    "WtSharedAccount",
    "WtTransaction",
]
