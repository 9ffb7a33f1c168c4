from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from wise_together.models import Split, SplitType, Transaction, UserProfile
from wise_together.normalizers import (
    currency_exponent,
    first_name,
    format_amount,
    normalize_date,
    parse_amount,
    parse_date,
    percent_of,
    to_decimal,
    to_minor_units,
)


def test_parse_amount_to_minor_units():
    assert parse_amount("12.34") == 1234
    assert parse_amount("12.3") == 1230
    assert parse_amount("7") == 700
    assert parse_amount("0.01") == 1
    assert parse_amount("1500", exponent=0) == 1500


@pytest.mark.parametrize("text", ["", "1,000", "1.234", "-1", "1e3", "¥100", "１２.５０", "٣"])
def test_parse_amount_rejects(text):
    with pytest.raises(ValueError):
        parse_amount(text)


def test_currency_exponent_from_env(monkeypatch: pytest.MonkeyPatch):
    assert currency_exponent() == 2
    monkeypatch.setenv("WT_CURRENCY_EXPONENT", "0")
    assert currency_exponent() == 0
    assert parse_amount("100") == 100
    monkeypatch.setenv("WT_CURRENCY_EXPONENT", "nine")
    with pytest.raises(RuntimeError):
        currency_exponent()


def test_format_amount():
    assert format_amount(123456) == "$1,234.56"
    assert format_amount(-50) == "-$0.50"
    assert format_amount(1500, exponent=0, symbol="¥") == "¥1,500"


def test_percent_of_rounds_half_up():
    assert percent_of(10000, Decimal(70)) == 7000
    assert percent_of(1, Decimal(50)) == 1
    assert percent_of(3, Decimal("16.5")) == 0


def test_to_decimal_only_accepts_finite_numbers():
    assert to_decimal("12.5") == Decimal("12.5")
    assert to_decimal(0.1) == Decimal("0.1")
    assert to_decimal(7) == Decimal(7)
    for bad in (None, True, "", "x", "NaN", "Infinity", float("inf")):
        assert to_decimal(bad) is None


def test_to_minor_units():
    assert to_minor_units(250) == 250
    assert to_minor_units("2.50") == 250
    assert to_minor_units(Decimal("2.5")) == 250
    for bad in (True, -1, 2.5):
        with pytest.raises(ValueError):
            to_minor_units(bad)


def test_dates_normalize_to_iso_calendar_day():
    assert normalize_date("2026-01-31") == "2026-01-31"
    assert normalize_date(date(2026, 1, 31)) == "2026-01-31"
    assert normalize_date("2026-01-31T10:00:00") == "2026-01-31"
    # Aware timestamps are taken in UTC
    tz = timezone(timedelta(hours=9))
    assert normalize_date(datetime(2026, 2, 1, 3, 0, tzinfo=tz)) == "2026-01-31"
    # US-style exports, with or without a trailing time
    assert normalize_date("10/19/2026") == "2026-10-19"
    assert normalize_date("01/05/2026 14:30") == "2026-01-05"
    assert parse_date("31/01/2026") is None
    assert parse_date("02/30/2026") is None
    with pytest.raises(ValueError):
        normalize_date("")


def test_first_name_and_profile():
    assert first_name("Ada Lovelace") == "Ada"
    assert first_name("  Grace  ") == "Grace"
    assert first_name(None) == ""
    assert UserProfile.from_full_name("Ada Lovelace", "").avatar_url is None


def test_transaction_model_enforces_split_iff_shared():
    with pytest.raises(ValueError):
        Transaction(owner_id="a", shared_account_id="acct", date="2026-01-01", amount=1)
    with pytest.raises(ValueError):
        Transaction(
            owner_id="a", date="2026-01-01", amount=1, split=Split(split_type=SplitType.EQUAL)
        )
    tx = Transaction(owner_id="a", shared_account_id=" ", date="2026-01-01", amount="1.50")
    assert tx.shared_account_id is None
    assert tx.amount == 150
