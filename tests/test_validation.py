from decimal import Decimal

import pytest

from wise_together.models import UNSELECTED_CATEGORY, Member, SplitType
from wise_together.split_engine import edit_share, new_split
from wise_together.validation import (
    AMOUNT_NOT_NUMERIC,
    AMOUNT_REQUIRED,
    AMOUNT_TOO_PRECISE,
    CATEGORY_REQUIRED,
    DATE_INVALID,
    DATE_REQUIRED,
    SPLIT_UNBALANCED,
    TransactionValidationError,
    build_transaction,
    validate_transaction_form,
)


def test_all_invalid_fields_are_reported_together():
    errors = validate_transaction_form({"date": "", "amount": "12.34", "category": ""})
    assert errors == {"date": DATE_REQUIRED, "category": CATEGORY_REQUIRED}


def test_valid_form_has_no_errors():
    form = {"date": "2026-02-28", "amount": "12.34", "category": "Groceries"}
    assert validate_transaction_form(form) == {}


@pytest.mark.parametrize(
    ("amount", "message"),
    [
        ("", AMOUNT_REQUIRED),
        ("   ", AMOUNT_REQUIRED),
        ("1,000", AMOUNT_NOT_NUMERIC),
        ("$12", AMOUNT_NOT_NUMERIC),
        ("-5", AMOUNT_NOT_NUMERIC),
        ("12.", AMOUNT_NOT_NUMERIC),
        ("abc", AMOUNT_NOT_NUMERIC),
        ("１２.５０", AMOUNT_NOT_NUMERIC),
        ("1.234", AMOUNT_TOO_PRECISE),
    ],
)
def test_amount_errors(amount, message):
    errors = validate_transaction_form({"date": "2026-01-01", "amount": amount, "category": "Rent"})
    assert errors == {"amount": message}


def test_unselected_and_unknown_categories_are_rejected():
    for category in (UNSELECTED_CATEGORY, "Gadgets", None):
        errors = validate_transaction_form({"date": "2026-01-01", "amount": "1", "category": category})
        assert errors == {"category": CATEGORY_REQUIRED}


def test_impossible_calendar_date_is_invalid():
    errors = validate_transaction_form({"date": "2026-02-30", "amount": "1", "category": "Rent"})
    assert errors == {"date": DATE_INVALID}


def test_exponent_zero_rejects_fractions(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("WT_CURRENCY_EXPONENT", "0")
    form = {"date": "2026-01-01", "amount": "10.5", "category": "Rent"}
    assert validate_transaction_form(form) == {"amount": AMOUNT_TOO_PRECISE}


def test_unbalanced_split_is_reported_only_with_a_usable_amount():
    untouched = new_split(SplitType.PERCENTAGE)
    form = {"date": "2026-01-01", "amount": "100", "category": "Rent"}
    assert validate_transaction_form(form, split_state=untouched) == {"split": SPLIT_UNBALANCED}

    bad_amount = dict(form, amount="x")
    assert validate_transaction_form(bad_amount, split_state=untouched) == {"amount": AMOUNT_NOT_NUMERIC}


def test_build_personal_transaction():
    tx = build_transaction(
        {"date": "2026-03-01", "amount": "12.34", "category": "Dining Out", "description": "  "},
        owner_id="alice",
    )
    assert tx.amount == 1234
    assert tx.date == "2026-03-01"
    assert tx.split is None
    assert tx.description is None
    assert not tx.is_shared


def test_build_shared_transaction_converts_split():
    # Percentages survive the amount update done by the gate
    state = edit_share(new_split("percentage", 1), Member.A, 70)
    tx = build_transaction(
        {"date": "2026-03-01", "amount": "100.00", "category": "Rent"},
        owner_id="alice",
        shared_account_id="acct",
        split_state=state,
    )
    assert tx.split is not None
    assert tx.split.split_type is SplitType.PERCENTAGE
    assert tx.split.member_a_share == Decimal(70)
    assert tx.split.currency_shares(tx.amount) == (7000, 3000)


def test_build_transaction_raises_with_every_error():
    with pytest.raises(TransactionValidationError) as info:
        build_transaction({"date": "", "amount": "", "category": ""}, owner_id="alice")
    assert set(info.value.errors) == {"date", "amount", "category"}


def test_shared_transaction_requires_split_state():
    form = {"date": "2026-03-01", "amount": "1", "category": "Rent"}
    with pytest.raises(TransactionValidationError) as info:
        build_transaction(form, owner_id="alice", shared_account_id="acct")
    assert info.value.errors == {"split": SPLIT_UNBALANCED}

    with pytest.raises(ValueError):
        build_transaction(form, owner_id="alice", split_state=new_split("equal"))


def test_us_style_date_is_accepted_and_stored_as_iso():
    form = {"date": "10/19/2026", "amount": "4.20", "category": "Groceries"}
    assert validate_transaction_form(form) == {}
    assert build_transaction(form, owner_id="alice").date == "2026-10-19"
