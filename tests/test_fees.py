from __future__ import annotations

from dataclasses import replace
from datetime import date

import pytest

from fees import (
    build_fee,
    current_period_start,
    fee_amount,
    has_active_membership,
    membership_status,
    payment_status,
    period_dates,
    remaining_balance,
)

TODAY = date(2024, 6, 15)


@pytest.mark.parametrize(
    "start, period, expected",
    [
        ("2024-01-01", "3_months", ("2024-01-01", "2024-03-31", "2023-12-25")),
        ("2024-01-31", "1_year", ("2024-01-31", "2025-01-30", "2024-01-24")),
        (date(2024, 11, 30), "3_months", ("2024-11-30", "2025-02-27", "2024-11-23")),
        ("2024-03-01", "5_months", ("2024-03-01", "2024-07-31", "2024-02-23")),
    ],
)
def test_period_dates(start, period, expected):
    assert period_dates(start, period) == expected


def test_period_dates_unknown_period():
    with pytest.raises(ValueError):
        period_dates("2024-01-01", "2_weeks")


def test_fee_amounts():
    assert fee_amount("6_months") == 75000
    assert fee_amount("1_year") == 150000
    assert fee_amount("weekly") == 0


def test_build_fee():
    fee = build_fee(7, "6_months", "2024-02-01", amount_paid=10000, notes="First half")
    assert fee.id is None
    assert (fee.member_id, fee.amount, fee.amount_paid) == (7, 75000, 10000)
    assert (fee.start_date, fee.end_date, fee.due_date) == ("2024-02-01", "2024-07-31", "2024-01-25")
    assert fee.notes == "First half"


@pytest.mark.parametrize(
    "paid, start, expected",
    [
        (45000, "2024-06-01", "paid"),
        (50000, "2024-06-01", "paid"),
        ("20,000", "2024-06-01", "partial"),
        (0, "2024-06-01", "overdue"),
        (0, "2024-06-22", "pending"),
        (None, "2024-07-01", "pending"),
    ],
)
def test_payment_status(paid, start, expected):
    fee = build_fee(1, "3_months", start, amount_paid=paid)
    assert payment_status(fee, TODAY) == expected


def test_due_day_itself_is_not_overdue():
    fee = build_fee(1, "3_months", "2024-06-22")
    assert fee.due_date == "2024-06-15"
    assert payment_status(fee, TODAY) == "pending"


def test_remaining_balance():
    assert remaining_balance(build_fee(1, "3_months", "2024-06-01", amount_paid=20000)) == 25000
    assert remaining_balance(build_fee(1, "3_months", "2024-06-01", amount_paid=60000)) == 0
    assert remaining_balance(build_fee(1, "3_months", "2024-06-01", amount_paid="abc")) == 45000


def test_current_period_start():
    assert current_period_start(TODAY) == "2024-01-01"


def test_membership_status_active():
    fee = build_fee(1, "1_year", "2024-01-01", amount_paid=150000)
    standing = membership_status([fee], TODAY)
    assert standing.status == "active"
    assert standing.expiry_date == "2024-12-31"
    assert has_active_membership([fee], TODAY) is True


def test_membership_status_partial_is_pending():
    fee = build_fee(1, "1_year", "2024-01-01", amount_paid=50000)
    assert membership_status([fee], TODAY).status == "pending"
    assert has_active_membership([fee], TODAY) is False


def test_membership_status_overdue():
    fee = build_fee(1, "3_months", "2024-06-01")
    assert membership_status([fee], TODAY).status == "overdue"


def test_membership_status_expired():
    old = build_fee(1, "3_months", "2023-10-01", amount_paid=45000)
    older = build_fee(1, "3_months", "2023-07-01", amount_paid=45000)
    standing = membership_status([older, old], TODAY)
    assert standing.status == "expired"
    assert standing.fee is old
    assert has_active_membership([older, old], TODAY) is False


def test_membership_status_paid_ahead():
    upcoming = build_fee(1, "6_months", "2024-07-01", amount_paid=75000)
    standing = membership_status([upcoming], TODAY)
    assert standing.status == "active"
    assert standing.expiry_date == "2024-12-31"


def test_membership_status_without_fees():
    assert membership_status([], TODAY).status == "pending"


def test_membership_status_skips_unreadable_dates():
    broken = replace(build_fee(1, "3_months", "2024-06-01"), start_date="", end_date="soon")
    assert membership_status([broken], TODAY).status == "pending"
