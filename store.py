"""
store.py
Data access layer: get_all_* / subscribe_to_* per entity over the SQLite tables.

Writes go through the add/update/delete helpers below so that subscribers get
the fresh collection pushed to them, the same way the dashboard expects
real-time listeners to behave.
"""

from __future__ import annotations

import json
import logging
import math
import sqlite3
import threading
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from typing import Callable

import db
from models import (
    Attendance,
    Collections,
    Contribution,
    Event,
    Expense,
    InventoryItem,
    Leadership,
    MatchDetails,
    Member,
    MembershipFee,
)

logger = logging.getLogger(__name__)

Unsubscribe = Callable[[], None]

_subscribers: dict[str, list[Callable]] = defaultdict(list)
_subscribers_lock = threading.Lock()


# ---------- Row conversion ----------

def _row_to_member(row: sqlite3.Row) -> Member:
    return Member(
        id=row["id"],
        name=row["name"],
        position=row["position"],
        jersey_number=int(row["jersey_number"]),
        email=row["email"] or "",
        phone=row["phone"] or "",
        status=row["status"],
        date_joined=row["date_joined"],
        avatar_url=row["avatar_url"],
    )


def _score(value) -> int:
    """Scores are coerced like money amounts: anything unreadable counts as 0."""
    if value is None or isinstance(value, bool):
        return 0
    try:
        score = float(str(value).strip()) if isinstance(value, str) else float(value)
    except (TypeError, ValueError):
        return 0
    return int(score) if math.isfinite(score) and score > 0 else 0


def _member_ids(value) -> tuple[int, ...]:
    if not isinstance(value, (list, tuple)):
        return ()
    return tuple(v for v in value if isinstance(v, int) and not isinstance(v, bool))


def _parse_match_details(raw) -> MatchDetails | None:
    if not raw:
        return None
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Ignoring unreadable match details: %r", raw)
        return None
    if not isinstance(data, dict):
        logger.warning("Ignoring match details that are not an object: %r", raw)
        return None
    motm = data.get("man_of_the_match")
    return MatchDetails(
        home_score=_score(data.get("home_score")),
        away_score=_score(data.get("away_score")),
        result=str(data.get("result") or "draw"),
        venue=data.get("venue"),
        goal_scorers=_member_ids(data.get("goal_scorers")),
        assists=_member_ids(data.get("assists")),
        yellow_cards=_member_ids(data.get("yellow_cards")),
        red_cards=_member_ids(data.get("red_cards")),
        man_of_the_match=motm if isinstance(motm, int) and not isinstance(motm, bool) else None,
        match_report=data.get("match_report"),
    )


def _dump_match_details(details: MatchDetails | None) -> str | None:
    if details is None:
        return None
    return json.dumps(
        {
            "home_score": details.home_score,
            "away_score": details.away_score,
            "result": details.result,
            "venue": details.venue,
            "goal_scorers": list(details.goal_scorers),
            "assists": list(details.assists),
            "yellow_cards": list(details.yellow_cards),
            "red_cards": list(details.red_cards),
            "man_of_the_match": details.man_of_the_match,
            "match_report": details.match_report,
        }
    )


def _row_to_event(row: sqlite3.Row) -> Event:
    return Event(
        id=row["id"],
        type=row["type"],
        date=row["date"],
        time=row["time"],
        location=row["location"],
        description=row["description"],
        opponent=row["opponent"],
        is_completed=bool(row["is_completed"]),
        match_details=_parse_match_details(row["match_details_json"]),
    )


def _row_to_attendance(row: sqlite3.Row) -> Attendance:
    return Attendance(
        id=row["id"],
        event_id=row["event_id"],
        member_id=row["member_id"],
        status=row["status"],
        notes=row["notes"],
    )


def _row_to_contribution(row: sqlite3.Row) -> Contribution:
    return Contribution(
        id=row["id"],
        member_id=row["member_id"],
        type=row["type"],
        amount=row["amount"],
        description=row["description"] or "",
        payment_method=row["payment_method"],
        date=row["date"],
        event_id=row["event_id"],
    )


def _row_to_expense(row: sqlite3.Row) -> Expense:
    return Expense(
        id=row["id"],
        category=row["category"],
        amount=row["amount"],
        description=row["description"] or "",
        payment_method=row["payment_method"],
        date=row["date"],
        receipt=row["receipt"],
        event_id=row["event_id"],
    )


def _row_to_leadership(row: sqlite3.Row) -> Leadership:
    return Leadership(
        id=row["id"],
        member_id=row["member_id"],
        role=row["role"],
        start_date=row["start_date"],
        end_date=row["end_date"],
        is_active=bool(row["is_active"]),
    )


def _row_to_membership_fee(row: sqlite3.Row) -> MembershipFee:
    return MembershipFee(
        id=row["id"],
        member_id=row["member_id"],
        period=row["period"],
        amount=row["amount"],
        amount_paid=row["amount_paid"],
        start_date=row["start_date"],
        end_date=row["end_date"],
        due_date=row["due_date"],
        payment_method=row["payment_method"],
        paid_date=row["paid_date"],
        notes=row["notes"],
    )


def _row_to_inventory_item(row: sqlite3.Row) -> InventoryItem:
    return InventoryItem(
        id=row["id"],
        name=row["name"],
        category=row["category"],
        current_stock=int(row["current_stock"] or 0),
        min_stock=int(row["min_stock"] or 0),
        max_stock=int(row["max_stock"] or 0),
        condition=row["condition"],
        location=row["location"] or "",
        description=row["description"] or "",
    )


# ---------- Reads ----------

def get_all_members() -> list[Member]:
    rows = db.fetch_all("SELECT * FROM members ORDER BY name COLLATE NOCASE ASC")
    return [_row_to_member(r) for r in rows]


def get_all_events() -> list[Event]:
    rows = db.fetch_all("SELECT * FROM events ORDER BY date ASC, time ASC")
    return [_row_to_event(r) for r in rows]


def get_all_attendance() -> list[Attendance]:
    rows = db.fetch_all("SELECT * FROM attendance ORDER BY id ASC")
    return [_row_to_attendance(r) for r in rows]


def get_all_contributions() -> list[Contribution]:
    rows = db.fetch_all("SELECT * FROM contributions ORDER BY date DESC, id DESC")
    return [_row_to_contribution(r) for r in rows]


def get_all_expenses() -> list[Expense]:
    rows = db.fetch_all("SELECT * FROM expenses ORDER BY date DESC, id DESC")
    return [_row_to_expense(r) for r in rows]


def get_all_leadership() -> list[Leadership]:
    rows = db.fetch_all("SELECT * FROM leadership ORDER BY role ASC")
    return [_row_to_leadership(r) for r in rows]


def get_all_membership_fees() -> list[MembershipFee]:
    rows = db.fetch_all("SELECT * FROM membership_fees ORDER BY start_date DESC, id DESC")
    return [_row_to_membership_fee(r) for r in rows]


def get_all_inventory() -> list[InventoryItem]:
    rows = db.fetch_all("SELECT * FROM inventory ORDER BY category ASC, name COLLATE NOCASE ASC")
    return [_row_to_inventory_item(r) for r in rows]


_GETTERS: dict[str, Callable[[], list]] = {
    "members": get_all_members,
    "events": get_all_events,
    "contributions": get_all_contributions,
    "expenses": get_all_expenses,
    "attendance": get_all_attendance,
    "leadership": get_all_leadership,
    "membership_fees": get_all_membership_fees,
    "inventory": get_all_inventory,
}
COLLECTION_NAMES = tuple(_GETTERS)


def load_collections() -> Collections:
    """
    Fetch every collection in parallel and join before returning.
    Any fetch error propagates; callers decide how to degrade.
    """
    with ThreadPoolExecutor(max_workers=len(_GETTERS)) as pool:
        futures = {name: pool.submit(getter) for name, getter in _GETTERS.items()}
        return Collections(**{name: future.result() for name, future in futures.items()})


# ---------- Subscriptions ----------

def subscribe(collection: str, callback: Callable[[list], None]) -> Unsubscribe:
    if collection not in _GETTERS:
        raise KeyError(f"Unknown collection: {collection}")
    with _subscribers_lock:
        _subscribers[collection].append(callback)

    def unsubscribe() -> None:
        with _subscribers_lock:
            if callback in _subscribers[collection]:
                _subscribers[collection].remove(callback)

    return unsubscribe


def subscribe_to_members(callback: Callable[[list[Member]], None]) -> Unsubscribe:
    return subscribe("members", callback)


def subscribe_to_events(callback: Callable[[list[Event]], None]) -> Unsubscribe:
    return subscribe("events", callback)


def subscribe_to_attendance(callback: Callable[[list[Attendance]], None]) -> Unsubscribe:
    return subscribe("attendance", callback)


def subscribe_to_contributions(callback: Callable[[list[Contribution]], None]) -> Unsubscribe:
    return subscribe("contributions", callback)


def subscribe_to_expenses(callback: Callable[[list[Expense]], None]) -> Unsubscribe:
    return subscribe("expenses", callback)


def subscribe_to_leadership(callback: Callable[[list[Leadership]], None]) -> Unsubscribe:
    return subscribe("leadership", callback)


def subscribe_to_membership_fees(callback: Callable[[list[MembershipFee]], None]) -> Unsubscribe:
    return subscribe("membership_fees", callback)


def subscribe_to_inventory(callback: Callable[[list[InventoryItem]], None]) -> Unsubscribe:
    return subscribe("inventory", callback)


def _notify(collection: str) -> None:
    with _subscribers_lock:
        callbacks = list(_subscribers[collection])
    if not callbacks:
        return
    snapshot = _GETTERS[collection]()
    for callback in callbacks:
        try:
            callback(snapshot)
        except Exception:
            logger.exception("Subscriber for %s failed", collection)


# ---------- Writes ----------

def add_member(member: Member) -> int:
    mid = db.execute(
        """
        INSERT INTO members(name, position, jersey_number, email, phone, status, date_joined, avatar_url)
        VALUES(?,?,?,?,?,?,?,?)
        """,
        (
            member.name,
            member.position,
            member.jersey_number,
            member.email,
            member.phone,
            member.status,
            member.date_joined,
            member.avatar_url,
        ),
    )
    _notify("members")
    return mid


def update_member_status(member_id: int, status: str) -> None:
    db.execute("UPDATE members SET status = ? WHERE id = ?", (status, member_id))
    _notify("members")


def delete_member(member_id: int) -> None:
    db.execute("DELETE FROM members WHERE id = ?", (member_id,))
    _notify("members")


def add_event(event: Event) -> int:
    eid = db.execute(
        """
        INSERT INTO events(type, date, time, location, description, opponent, is_completed, match_details_json)
        VALUES(?,?,?,?,?,?,?,?)
        """,
        (
            event.type,
            event.date,
            event.time,
            event.location,
            event.description,
            event.opponent,
            int(event.is_completed),
            _dump_match_details(event.match_details),
        ),
    )
    _notify("events")
    return eid


def record_match_result(event_id: int, details: MatchDetails) -> None:
    db.execute(
        "UPDATE events SET is_completed = 1, match_details_json = ? WHERE id = ?",
        (_dump_match_details(details), event_id),
    )
    _notify("events")


def delete_event(event_id: int) -> None:
    db.execute("DELETE FROM events WHERE id = ?", (event_id,))
    _notify("events")


def set_attendance(event_id: int, statuses: dict[int, str], notes: dict[int, str] | None = None) -> None:
    """Upsert one attendance row per member for the given event."""
    notes = notes or {}
    db.executemany(
        """
        INSERT INTO attendance(event_id, member_id, status, notes) VALUES(?,?,?,?)
        ON CONFLICT(event_id, member_id) DO UPDATE SET status=excluded.status, notes=excluded.notes
        """,
        [(event_id, member_id, status, notes.get(member_id)) for member_id, status in statuses.items()],
    )
    _notify("attendance")


def add_contribution(contribution: Contribution) -> int:
    cid = db.execute(
        """
        INSERT INTO contributions(member_id, type, amount, description, payment_method, date, event_id)
        VALUES(?,?,?,?,?,?,?)
        """,
        (
            contribution.member_id,
            contribution.type,
            contribution.amount,
            contribution.description,
            contribution.payment_method,
            contribution.date,
            contribution.event_id,
        ),
    )
    _notify("contributions")
    return cid


def delete_contribution(contribution_id: int) -> None:
    db.execute("DELETE FROM contributions WHERE id = ?", (contribution_id,))
    _notify("contributions")


def add_expense(expense: Expense) -> int:
    xid = db.execute(
        """
        INSERT INTO expenses(category, amount, description, payment_method, date, receipt, event_id)
        VALUES(?,?,?,?,?,?,?)
        """,
        (
            expense.category,
            expense.amount,
            expense.description,
            expense.payment_method,
            expense.date,
            expense.receipt,
            expense.event_id,
        ),
    )
    _notify("expenses")
    return xid


def delete_expense(expense_id: int) -> None:
    db.execute("DELETE FROM expenses WHERE id = ?", (expense_id,))
    _notify("expenses")


def add_leadership(role: Leadership) -> int:
    lid = db.execute(
        "INSERT INTO leadership(member_id, role, start_date, end_date, is_active) VALUES(?,?,?,?,?)",
        (role.member_id, role.role, role.start_date, role.end_date, int(role.is_active)),
    )
    _notify("leadership")
    return lid


def end_leadership(leadership_id: int, end_date: str) -> None:
    db.execute(
        "UPDATE leadership SET is_active = 0, end_date = ? WHERE id = ?",
        (end_date, leadership_id),
    )
    _notify("leadership")


def add_membership_fee(fee: MembershipFee) -> int:
    fid = db.execute(
        """
        INSERT INTO membership_fees(member_id, period, amount, amount_paid, start_date, end_date, due_date,
            payment_method, paid_date, notes)
        VALUES(?,?,?,?,?,?,?,?,?,?)
        """,
        (
            fee.member_id,
            fee.period,
            fee.amount,
            fee.amount_paid,
            fee.start_date,
            fee.end_date,
            fee.due_date,
            fee.payment_method,
            fee.paid_date,
            fee.notes,
        ),
    )
    _notify("membership_fees")
    return fid


def record_fee_payment(fee_id: int, amount_paid, paid_date: str, payment_method: str | None) -> None:
    """Replace the running amount paid on a fee."""
    db.execute(
        "UPDATE membership_fees SET amount_paid = ?, paid_date = ?, payment_method = ? WHERE id = ?",
        (amount_paid, paid_date, payment_method, fee_id),
    )
    _notify("membership_fees")


def delete_membership_fee(fee_id: int) -> None:
    db.execute("DELETE FROM membership_fees WHERE id = ?", (fee_id,))
    _notify("membership_fees")


def add_inventory_item(item: InventoryItem) -> int:
    iid = db.execute(
        """
        INSERT INTO inventory(name, category, current_stock, min_stock, max_stock, condition, location, description)
        VALUES(?,?,?,?,?,?,?,?)
        """,
        (
            item.name,
            item.category,
            item.current_stock,
            item.min_stock,
            item.max_stock,
            item.condition,
            item.location,
            item.description,
        ),
    )
    _notify("inventory")
    return iid


def update_inventory_stock(item_id: int, current_stock: int, condition: str) -> None:
    db.execute(
        "UPDATE inventory SET current_stock = ?, condition = ? WHERE id = ?",
        (current_stock, condition, item_id),
    )
    _notify("inventory")


def delete_inventory_item(item_id: int) -> None:
    db.execute("DELETE FROM inventory WHERE id = ?", (item_id,))
    _notify("inventory")
