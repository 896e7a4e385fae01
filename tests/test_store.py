from __future__ import annotations

import pytest

import db
import store
from conftest import make_contribution, make_expense, make_member
from feed import DashboardFeed
from fees import build_fee
from models import Event, InventoryItem, Leadership, MatchDetails


def test_init_db_creates_tables(temp_db):
    names = {r["name"] for r in db.fetch_all("SELECT name FROM sqlite_master WHERE type='table'")}
    assert {"members", "events", "attendance", "contributions", "expenses", "leadership", "membership_fees", "inventory"} <= names
    # safe to run again
    db.init_db()


def test_members_round_trip_sorted_by_name(temp_db):
    store.add_member(make_member(None, "zoe Nakato"))
    mid = store.add_member(make_member(None, "Allan Kato", status="injured"))
    members = store.get_all_members()
    assert [m.name for m in members] == ["Allan Kato", "zoe Nakato"]
    assert members[0].id == mid
    assert members[0].status == "injured"


def test_update_and_delete_member(temp_db):
    mid = store.add_member(make_member(None, "Brian"))
    store.update_member_status(mid, "suspended")
    assert store.get_all_members()[0].status == "suspended"
    store.delete_member(mid)
    assert store.get_all_members() == []


def test_contribution_amounts_kept_raw(temp_db):
    store.add_contribution(make_contribution(None, "100"))
    store.add_contribution(make_contribution(None, None, type="in-kind"))
    assert {c.amount for c in store.get_all_contributions()} == {"100", None}


def test_events_and_match_details(temp_db):
    eid = store.add_event(
        Event(id=None, type="friendly", date="2024-06-08", time="15:00", location="Park", opponent="FC Victory")
    )
    store.record_match_result(
        eid, MatchDetails(home_score=2, away_score=1, result="win", venue="home", goal_scorers=(3, 4))
    )
    event = store.get_all_events()[0]
    assert event.is_completed is True
    assert event.match_details.result == "win"
    assert event.match_details.goal_scorers == (3, 4)
    assert event.label == "vs FC Victory"


def test_unreadable_match_details_are_ignored(temp_db):
    eid = store.add_event(Event(id=None, type="friendly", date="2024-06-08", time=None, location="Park"))
    db.execute("UPDATE events SET match_details_json = ? WHERE id = ?", ("{not json", eid))
    assert store.get_all_events()[0].match_details is None


def test_set_attendance_upserts(temp_db):
    eid = store.add_event(Event(id=None, type="training", date="2024-06-05", time="18:00", location="Field"))
    mid = store.add_member(make_member(None, "Ivan"))
    store.set_attendance(eid, {mid: "absent"})
    store.set_attendance(eid, {mid: "present"}, {mid: "Arrived early"})
    records = store.get_all_attendance()
    assert len(records) == 1
    assert records[0].status == "present"
    assert records[0].notes == "Arrived early"


def test_leadership_end(temp_db):
    lid = store.add_leadership(Leadership(id=None, member_id=1, role="Captain", start_date="2024-01-01"))
    store.end_leadership(lid, "2024-06-01")
    role = store.get_all_leadership()[0]
    assert role.is_active is False
    assert role.end_date == "2024-06-01"


def test_load_collections(temp_db):
    store.add_member(make_member(None, "Joseph"))
    store.add_expense(make_expense(None, 30000))
    collections = store.load_collections()
    assert len(collections.members) == 1
    assert len(collections.expenses) == 1
    assert collections.events == []
    assert collections.attendance == []


def test_subscribe_receives_fresh_collection(temp_db):
    seen = []
    unsubscribe = store.subscribe_to_members(seen.append)
    store.add_member(make_member(None, "Joseph"))
    assert len(seen) == 1
    assert [m.name for m in seen[0]] == ["Joseph"]

    unsubscribe()
    store.add_member(make_member(None, "Brian"))
    assert len(seen) == 1


def test_failing_subscriber_does_not_block_others(temp_db):
    seen = []

    def broken(_snapshot):
        raise RuntimeError("boom")

    store.subscribe_to_expenses(broken)
    store.subscribe_to_expenses(seen.append)
    store.add_expense(make_expense(None, 100))
    assert len(seen) == 1


def test_subscribe_unknown_collection(temp_db):
    with pytest.raises(KeyError):
        store.subscribe("payroll", lambda _: None)


def test_null_match_score_keeps_dashboard_alive(temp_db):
    store.add_member(make_member(None, "Joseph"))
    eid = store.add_event(Event(id=None, type="friendly", date="2024-06-08", time="15:00", location="Park"))
    db.execute(
        "UPDATE events SET is_completed = 1, match_details_json = ? WHERE id = ?",
        ('{"home_score": null, "away_score": 1, "result": "loss"}', eid),
    )
    details = store.get_all_events()[0].match_details
    assert (details.home_score, details.away_score, details.result) == (0, 1, "loss")

    feed = DashboardFeed()
    assert feed.refresh() is True
    assert feed.data.stats.total_members == 1
    assert feed.data.results.losses == 1


@pytest.mark.parametrize("payload", ["[]", "5", '"win"', "null"])
def test_match_details_that_are_not_objects_are_ignored(temp_db, payload):
    store.add_member(make_member(None, "Joseph"))
    eid = store.add_event(Event(id=None, type="friendly", date="2024-06-08", time=None, location="Park"))
    db.execute("UPDATE events SET is_completed = 1, match_details_json = ? WHERE id = ?", (payload, eid))
    assert store.get_all_events()[0].match_details is None
    assert DashboardFeed().refresh() is True


def test_match_details_keep_cards_and_assists(temp_db):
    eid = store.add_event(Event(id=None, type="friendly", date="2024-06-08", time=None, location="Park"))
    store.record_match_result(
        eid,
        MatchDetails(home_score=1, away_score=1, result="draw", goal_scorers=(3,), assists=(2,),
                     yellow_cards=(2, 4), red_cards=(4,), man_of_the_match=3),
    )
    details = store.get_all_events()[0].match_details
    assert details.assists == (2,)
    assert details.yellow_cards == (2, 4)
    assert details.red_cards == (4,)
    assert details.man_of_the_match == 3
    assert details.involves(4) is True
    assert details.involves(9) is False


def test_membership_fees_round_trip(temp_db):
    seen = []
    store.subscribe_to_membership_fees(seen.append)
    older = store.add_membership_fee(build_fee(1, "3_months", "2024-01-01"))
    newer = store.add_membership_fee(build_fee(1, "1_year", "2024-06-01", amount_paid=50000))
    fees = store.get_all_membership_fees()
    assert [f.id for f in fees] == [newer, older]
    assert fees[0].amount == 150000
    assert fees[0].end_date == "2025-05-31"

    store.record_fee_payment(older, 45000, "2024-01-02", "mobile_money")
    paid = next(f for f in store.get_all_membership_fees() if f.id == older)
    assert paid.amount_paid == 45000
    assert paid.payment_method == "mobile_money"

    store.delete_membership_fee(newer)
    assert [f.id for f in store.get_all_membership_fees()] == [older]
    assert len(seen) == 4


def test_inventory_round_trip(temp_db):
    seen = []
    store.subscribe_to_inventory(seen.append)
    store.add_inventory_item(
        InventoryItem(id=None, name="cones", category="Training Equipment", current_stock=30,
                      min_stock=10, max_stock=40, condition="good")
    )
    iid = store.add_inventory_item(
        InventoryItem(id=None, name="Balls", category="Balls", current_stock=8, min_stock=5,
                      max_stock=20, condition="fair", location="Store room")
    )
    items = store.get_all_inventory()
    assert [i.name for i in items] == ["Balls", "cones"]
    assert items[0].location == "Store room"

    store.update_inventory_stock(iid, 2, "poor")
    balls = next(i for i in store.get_all_inventory() if i.id == iid)
    assert (balls.current_stock, balls.condition) == (2, "poor")

    store.delete_inventory_item(iid)
    assert [i.name for i in store.get_all_inventory()] == ["cones"]
    assert len(seen) == 4


def test_load_collections_includes_fees_and_inventory(temp_db):
    store.add_membership_fee(build_fee(1, "6_months", "2024-01-01"))
    collections = store.load_collections()
    assert len(collections.membership_fees) == 1
    assert collections.inventory == []
    assert set(store.COLLECTION_NAMES) >= {"membership_fees", "inventory"}
