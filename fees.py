"""
fees.py
Membership fee periods, due dates and payment standing.

A fee covers ``months`` whole months from its start date, ending the day before
the same date ``months`` later, and falls due a week before the period starts.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Sequence

from aggregation import safe_amount
from models import FEE_DUE_DAYS_BEFORE, FEE_STRUCTURES, FeeStructure, MembershipFee, MembershipStanding
from utils import add_months, parse_iso, parse_record_date


def fee_structure(period: str) -> FeeStructure | None:
    return next((s for s in FEE_STRUCTURES if s.period == period), None)


def fee_amount(period: str) -> int:
    structure = fee_structure(period)
    return structure.amount if structure else 0


def period_dates(start: str | date, period: str) -> tuple[str, str, str]:
    """(start, end, due) as ISO dates. Raises ValueError for an unknown period."""
    structure = fee_structure(period)
    if structure is None:
        raise ValueError(f"Invalid payment period: {period}")
    first = start if isinstance(start, date) else parse_iso(start)
    last = add_months(first, structure.months) - timedelta(days=1)
    due = first - timedelta(days=FEE_DUE_DAYS_BEFORE)
    return first.isoformat(), last.isoformat(), due.isoformat()


def build_fee(member_id: int, period: str, start: str | date, amount_paid=0, payment_method: str | None = None,
              paid_date: str | None = None, notes: str | None = None) -> MembershipFee:
    first, last, due = period_dates(start, period)
    return MembershipFee(
        id=None,
        member_id=member_id,
        period=period,
        amount=fee_amount(period),
        amount_paid=amount_paid,
        start_date=first,
        end_date=last,
        due_date=due,
        payment_method=payment_method,
        paid_date=paid_date,
        notes=notes,
    )


def payment_status(fee: MembershipFee, today: date | None = None) -> str:
    today = today or date.today()
    amount = safe_amount(fee.amount)
    paid = safe_amount(fee.amount_paid)
    if paid >= amount:
        return "paid"
    if paid > 0:
        return "partial"
    due = parse_record_date(fee.due_date)
    if due is not None and today > due:
        return "overdue"
    return "pending"


def remaining_balance(fee: MembershipFee) -> float:
    return max(0.0, safe_amount(fee.amount) - safe_amount(fee.amount_paid))


def current_period_start(today: date | None = None) -> str:
    """New fees default to starting at the beginning of the current year."""
    return (today or date.today()).replace(month=1, day=1).isoformat()


def has_active_membership(fees: Sequence[MembershipFee], today: date | None = None) -> bool:
    today = today or date.today()
    return any(
        payment_status(fee, today) == "paid" and (parse_record_date(fee.end_date) or date.min) >= today
        for fee in fees
    )


def membership_status(fees: Sequence[MembershipFee], today: date | None = None) -> MembershipStanding:
    """
    Standing of one member from their fees:
    the fee covering today decides, then a paid future fee, then expiry of the latest fee.
    """
    today = today or date.today()

    for fee in fees:
        start = parse_record_date(fee.start_date)
        end = parse_record_date(fee.end_date)
        if start is None or end is None or not start <= today <= end:
            continue
        status = payment_status(fee, today)
        if status == "paid":
            return MembershipStanding("active", fee, fee.end_date)
        if status == "partial":
            return MembershipStanding("pending", fee)
        if status == "overdue":
            return MembershipStanding("overdue", fee)

    for fee in fees:
        start = parse_record_date(fee.start_date)
        if start is not None and start > today and payment_status(fee, today) == "paid":
            return MembershipStanding("active", fee, fee.end_date)

    dated = [(end, fee) for fee in fees if (end := parse_record_date(fee.end_date)) is not None]
    if dated:
        end, latest = max(dated, key=lambda pair: pair[0])
        if end < today:
            return MembershipStanding("expired", latest)

    return MembershipStanding("pending")
