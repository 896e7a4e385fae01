from __future__ import annotations

from collections import defaultdict
from dataclasses import replace

import pytest

import db
import store
from fees import build_fee
from models import Attendance, Collections, Contribution, Event, Expense, InventoryItem, Leadership, Member


@pytest.fixture
def temp_db(tmp_path, monkeypatch):
    """Point the app at a fresh SQLite file and isolate store subscribers."""
    monkeypatch.setattr(db, "DB_FILE", tmp_path / "team.db")
    monkeypatch.setattr(store, "_subscribers", defaultdict(list))
    db.init_db()
    return db.DB_FILE


def make_member(mid, name="Player", status="active", position="Striker", jersey=9):
    return Member(
        id=mid,
        name=name,
        position=position,
        jersey_number=jersey,
        email=f"{name.lower().replace(' ', '.')}@example.com",
        phone="0700000000",
        status=status,
        date_joined="2024-01-01",
    )


def make_contribution(cid, amount, date="2024-06-01", member_id=1, type="monetary"):
    return Contribution(
        id=cid,
        member_id=member_id,
        type=type,
        amount=amount,
        description="Subscription",
        payment_method="cash",
        date=date,
    )


def make_expense(xid, amount, date="2024-06-01", category="equipment"):
    return Expense(
        id=xid,
        category=category,
        amount=amount,
        description="Balls",
        payment_method="cash",
        date=date,
    )


@pytest.fixture
def club() -> Collections:
    members = [
        make_member(1, "Joseph Okello", position="Goalkeeper", jersey=1),
        make_member(2, "Brian Ssemakula", position="Centre-back", jersey=4),
        make_member(3, "Ivan Mugisha", position="Central Midfielder", jersey=8),
        make_member(4, "Allan Kato", status="injured", jersey=9),
        make_member(5, "Peter Wasswa", position="Coach", jersey=0),
    ]
    events = [
        Event(id=1, type="training", date="2024-06-05", time="18:00", location="Main Field"),
        Event(id=2, type="training", date="2024-06-12", time="18:00", location="Main Field", description="Set pieces"),
        Event(
            id=3,
            type="friendly",
            date="2024-06-08",
            time="15:00",
            location="Victory Park",
            opponent="FC Victory",
            is_completed=True,
        ),
        Event(id=4, type="training", date="2024-06-20", time="18:00", location="Main Field"),
    ]
    attendance = [
        Attendance(id=1, event_id=1, member_id=1, status="present"),
        Attendance(id=2, event_id=1, member_id=2, status="present"),
        Attendance(id=3, event_id=1, member_id=3, status="absent"),
        Attendance(id=4, event_id=2, member_id=1, status="present"),
        Attendance(id=5, event_id=2, member_id=2, status="late"),
        Attendance(id=6, event_id=2, member_id=3, status="present"),
        Attendance(id=7, event_id=2, member_id=5, status="present"),
    ]
    contributions = [
        make_contribution(1, 20000, date="2024-06-01", member_id=1),
        make_contribution(2, "25,000", date="2024-06-10", member_id=2),
        make_contribution(3, None, date="2024-06-11", member_id=3, type="in-kind"),
        make_contribution(4, 15000, date="2024-04-03", member_id=3),
    ]
    expenses = [
        make_expense(1, 30000, date="2024-06-08", category="referees"),
        make_expense(2, "abc", date="2024-06-09"),
    ]
    leadership = [Leadership(id=1, member_id=3, role="Captain", start_date="2024-02-01")]
    membership_fees = [
        replace(build_fee(1, "1_year", "2024-01-01", amount_paid=150000, payment_method="cash"), id=1),
        replace(build_fee(2, "3_months", "2024-06-01", amount_paid="20,000"), id=2),
        replace(build_fee(3, "3_months", "2024-05-01"), id=3),
        replace(build_fee(404, "6_months", "2024-04-01"), id=4),
    ]
    inventory = [
        InventoryItem(id=1, name="Match Balls", category="Balls", current_stock=2, min_stock=5, max_stock=20,
                      condition="good", location="Store room"),
        InventoryItem(id=2, name="Cones", category="Training Equipment", current_stock=40, min_stock=10,
                      max_stock=30, condition="fair"),
        InventoryItem(id=3, name="First Aid Kit", category="Medical Supplies", current_stock=1, min_stock=1,
                      max_stock=2, condition="needs_replacement"),
    ]
    return Collections(
        members=members,
        events=events,
        contributions=contributions,
        expenses=expenses,
        attendance=attendance,
        leadership=leadership,
        membership_fees=membership_fees,
        inventory=inventory,
    )
