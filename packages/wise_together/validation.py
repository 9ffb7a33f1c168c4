"""Field-level validation gate for transaction submissions.

``validate_transaction_form`` never raises for bad input: it returns a mapping
of field name to message with every violated field present, so a form can
highlight all of them at once. ``build_transaction`` is the smart constructor
used by callers that want a :class:`~wise_together.models.Transaction` or an
exception carrying the same mapping.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from .models import CATEGORIES, UNSELECTED_CATEGORY, Transaction
from .normalizers import (
    AMOUNT_RE,
    currency_exponent,
    fractional_digits,
    normalize_date,
    parse_amount,
    parse_date,
)
from .split_engine import SplitState, is_balanced, set_amount, to_split

DATE_REQUIRED = "Date is required"
DATE_INVALID = "Enter a valid date"
AMOUNT_REQUIRED = "Amount is required"
AMOUNT_NOT_NUMERIC = "Amount must be a number"
AMOUNT_TOO_PRECISE = "Amount has too many decimal places"
CATEGORY_REQUIRED = "Please select a category"
SPLIT_UNBALANCED = "Split shares must add up to the total"

type FormErrors = dict[str, str]


class TransactionValidationError(ValueError):
    """Raised by :func:`build_transaction`; ``errors`` maps field -> message."""

    def __init__(self, errors: Mapping[str, str]) -> None:
        self.errors: FormErrors = dict(errors)
        fields = ", ".join(sorted(self.errors))
        super().__init__(f"invalid transaction fields: {fields}")


def _text(form: Mapping[str, Any], key: str) -> str:
    v = form.get(key)
    if v is None:
        return ""
    return str(v).strip()


def validate_date(raw: Any) -> str | None:
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return DATE_REQUIRED
    if parse_date(raw) is None:
        return DATE_INVALID
    return None


def validate_amount(text: str, *, exponent: int | None = None) -> str | None:
    if not text:
        return AMOUNT_REQUIRED
    if not AMOUNT_RE.fullmatch(text):
        return AMOUNT_NOT_NUMERIC
    exp = currency_exponent() if exponent is None else exponent
    if fractional_digits(text) > exp:
        return AMOUNT_TOO_PRECISE
    return None


def validate_category(text: str) -> str | None:
    if not text or text == UNSELECTED_CATEGORY or text not in CATEGORIES:
        return CATEGORY_REQUIRED
    return None


def validate_transaction_form(
    form: Mapping[str, Any],
    *,
    split_state: SplitState | None = None,
    exponent: int | None = None,
) -> FormErrors:
    """Return every field-level error for ``form`` (empty when valid).

    ``form`` holds the raw user input: ``date``, ``amount`` (decimal text in
    major units), ``category`` and an optional ``description``. When
    ``split_state`` is given (shared submissions) and the amount is usable,
    the split's balance is checked against that amount as well.
    """

    errors: FormErrors = {}

    date_error = validate_date(form.get("date"))
    if date_error:
        errors["date"] = date_error

    amount_text = _text(form, "amount")
    amount_error = validate_amount(amount_text, exponent=exponent)
    if amount_error:
        errors["amount"] = amount_error

    category_error = validate_category(_text(form, "category"))
    if category_error:
        errors["category"] = category_error

    # An unusable amount is already reported; the split is only judged against a real total
    if split_state is not None and not amount_error:
        amount = parse_amount(amount_text, exponent=exponent)
        if not is_balanced(set_amount(split_state, amount)):
            errors["split"] = SPLIT_UNBALANCED

    return errors


def build_transaction(
    form: Mapping[str, Any],
    *,
    owner_id: str,
    shared_account_id: str | None = None,
    split_state: SplitState | None = None,
    transaction_id: str | None = None,
    version: int = 0,
    exponent: int | None = None,
) -> Transaction:
    """Validate ``form`` and build a :class:`Transaction`.

    A shared transaction (``shared_account_id`` set) requires ``split_state``;
    a personal one must not have it. Raises :class:`TransactionValidationError`
    with the full error mapping on failure.
    """

    if shared_account_id is not None and split_state is None:
        raise TransactionValidationError({"split": SPLIT_UNBALANCED})
    if shared_account_id is None and split_state is not None:
        raise ValueError("split_state given for a personal transaction")

    errors = validate_transaction_form(form, split_state=split_state, exponent=exponent)
    if errors:
        raise TransactionValidationError(errors)

    amount = parse_amount(_text(form, "amount"), exponent=exponent)
    split = None
    if split_state is not None:
        split = to_split(set_amount(split_state, amount))

    return Transaction(
        id=transaction_id,
        owner_id=owner_id,
        shared_account_id=shared_account_id,
        date=normalize_date(form.get("date")),
        amount=amount,
        category=_text(form, "category"),
        description=_text(form, "description") or None,
        split=split,
        version=version,
    )


__all__ = [
    "FormErrors",
    "TransactionValidationError",
    "build_transaction",
    "validate_amount",
    "validate_category",
    "validate_date",
    "validate_transaction_form",
]
