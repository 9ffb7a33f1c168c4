"""Public interface for the ``wise_together`` package.

This module exposes the pure core (split engine, validation gate, aggregator)
and its models as the stable import surface. There is no runtime logic here,
only symbol re-exports. Store, cache and orchestration helpers live in
``wise_together.store``, ``wise_together.cache`` and ``wise_together.api``
and pull in the database layer, so they are imported explicitly.
"""

from .aggregate import (
    EMPTY_VIEW,
    AggregatedView,
    CategoryBreakdown,
    Reconciliation,
    category_breakdown,
    net_balance,
    partition,
    reconcile,
    summarize,
)
from .models import (
    CATEGORIES,
    UNSELECTED_CATEGORY,
    Category,
    Member,
    SharedAccount,
    Split,
    SplitType,
    Transaction,
    Transactions,
    UserProfile,
)
from .split_engine import (
    CustomSplit,
    EqualSplit,
    PercentageSplit,
    SplitError,
    SplitState,
    change_policy,
    currency_shares,
    edit_share,
    is_balanced,
    new_split,
    set_amount,
    to_split,
)
from .validation import (
    TransactionValidationError,
    build_transaction,
    validate_transaction_form,
)

__all__ = [
    # Split engine
    "CustomSplit",
    "EqualSplit",
    "PercentageSplit",
    "SplitError",
    "SplitState",
    "change_policy",
    "currency_shares",
    "edit_share",
    "is_balanced",
    "new_split",
    "set_amount",
    "to_split",
    # Validation
    "TransactionValidationError",
    "build_transaction",
    "validate_transaction_form",
    # Aggregation
    "AggregatedView",
    "CategoryBreakdown",
    "EMPTY_VIEW",
    "Reconciliation",
    "category_breakdown",
    "net_balance",
    "partition",
    "reconcile",
    "summarize",
    # Models / types
    "CATEGORIES",
    "Category",
    "Member",
    "SharedAccount",
    "Split",
    "SplitType",
    "Transaction",
    "Transactions",
    "UNSELECTED_CATEGORY",
    "UserProfile",
]
