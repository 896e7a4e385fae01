"""
utils.py
Validation, dates, money formatting, CSV exports, sample data.
"""

from __future__ import annotations

import math
from datetime import date, datetime, time, timedelta
import pandas as pd

import store
from models import (
    ATTENDANCE_STATUSES,
    Contribution,
    Event,
    Expense,
    Leadership,
    MatchDetails,
    Member,
)


def today_iso() -> str:
    return date.today().isoformat()


def parse_iso(d: str) -> date:
    return date.fromisoformat(d)


def parse_record_datetime(value) -> datetime | None:
    """
    Parse a stored date/datetime into a naive local datetime.
    Returns None for anything unreadable instead of raising.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        return datetime.combine(value, time.min)
    else:
        text = str(value).strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            return None
    if dt.tzinfo is not None:
        dt = dt.astimezone().replace(tzinfo=None)
    return dt


def parse_record_date(value) -> date | None:
    dt = parse_record_datetime(value)
    return dt.date() if dt else None


def add_months(start: date, months: int) -> date:
    """
    Add months while keeping day in valid range (e.g., Jan 31 + 1 month => Feb 28/29).
    Negative values step backwards.
    """
    y = start.year + (start.month - 1 + months) // 12
    m = (start.month - 1 + months) % 12 + 1
    # last day of target month
    if m == 12:
        next_month = date(y + 1, 1, 1)
    else:
        next_month = date(y, m + 1, 1)
    last_day = next_month - timedelta(days=1)
    day = min(start.day, last_day.day)
    return date(y, m, day)


def format_ugx(amount) -> str:
    try:
        value = float(amount)
    except (TypeError, ValueError):
        return "UGX 0"
    if not math.isfinite(value):
        return "UGX 0"
    return f"UGX {round(value):,}"


def format_date(value, fmt: str = "%b %d, %Y") -> str:
    dt = parse_record_datetime(value)
    if dt is None:
        return "Invalid date"
    return dt.strftime(fmt)


def validate_member_inputs(name: str, jersey_number, email: str, date_joined: str) -> list[str]:
    errors: list[str] = []
    if not name.strip():
        errors.append("Name is required.")
    try:
        if int(jersey_number) < 0:
            errors.append("Jersey number must be positive.")
    except (TypeError, ValueError):
        errors.append("Jersey number must be a whole number.")
    if email.strip() and "@" not in email:
        errors.append("Email address looks invalid.")
    try:
        parse_iso(date_joined)
    except ValueError:
        errors.append("Join date must be a valid ISO date (YYYY-MM-DD).")
    return errors


def validate_event_inputs(event_type: str, event_date: str, location: str, opponent: str | None) -> list[str]:
    errors: list[str] = []
    if not location.strip():
        errors.append("Location is required.")
    if event_type == "friendly" and not (opponent or "").strip():
        errors.append("Opponent is required for friendlies.")
    try:
        parse_iso(event_date)
    except ValueError:
        errors.append("Event date must be a valid ISO date (YYYY-MM-DD).")
    return errors


def validate_amount(amount, required: bool = True) -> list[str]:
    if amount in (None, "") and not required:
        return []
    try:
        value = float(amount)
    except (TypeError, ValueError):
        return ["Amount must be numeric."]
    if not math.isfinite(value) or value <= 0:
        return ["Amount must be > 0."]
    return []


def records_to_csv_bytes(records, columns: list[tuple[str, str]]) -> bytes:
    """
    ``columns`` is a list of (attribute, header label) pairs; the labels become the CSV header.
    """
    rows = [{label: getattr(r, attr, None) for attr, label in columns} for r in records]
    df = pd.DataFrame(rows, columns=[label for _, label in columns])
    return df.to_csv(index=False).encode("utf-8")


def records_to_frame(records) -> pd.DataFrame:
    """Flatten dataclass records for st.dataframe."""
    return pd.DataFrame([vars(r) for r in records])


def insert_sample_data() -> None:
    """
    Insert a small squad, a few sessions and some money movements
    (safe to run multiple times: adds new rows each time).
    """
    today = date.today()

    squad = [
        ("Joseph Okello", "Goalkeeper", 1, "active"),
        ("Brian Ssemakula", "Centre-back", 4, "active"),
        ("Ivan Mugisha", "Central Midfielder", 8, "active"),
        ("Allan Kato", "Striker", 9, "injured"),
        ("Moses Lubega", "Left Winger", 11, "active"),
        ("Peter Wasswa", "Coach", 0, "active"),
    ]
    ids = []
    for name, position, jersey, status in squad:
        ids.append(
            store.add_member(
                Member(
                    id=None,
                    name=name,
                    position=position,
                    jersey_number=jersey,
                    email=f"{name.split()[0].lower()}@example.com",
                    phone="0700000000",
                    status=status,
                    date_joined=(today - timedelta(days=120)).isoformat(),
                )
            )
        )

    # Trainings on the last three Wednesdays
    for weeks_ago in (3, 2, 1):
        day = today - timedelta(days=7 * weeks_ago)
        eid = store.add_event(
            Event(id=None, type="training", date=day.isoformat(), time="18:00", location="Main Field")
        )
        statuses = {
            mid: ATTENDANCE_STATUSES[(i + weeks_ago) % 3] for i, mid in enumerate(ids)
        }
        store.set_attendance(eid, statuses)

    store.add_event(
        Event(
            id=None,
            type="friendly",
            date=(today - timedelta(days=10)).isoformat(),
            time="15:00",
            location="Victory Park",
            opponent="FC Victory",
            is_completed=True,
            match_details=MatchDetails(
                home_score=2, away_score=1, result="win", venue="home", goal_scorers=(ids[3], ids[4])
            ),
        )
    )
    store.add_event(
        Event(
            id=None,
            type="training",
            date=(today + timedelta(days=2)).isoformat(),
            time="18:00",
            location="Main Field",
            description="Passing and tactical play",
        )
    )

    for i, mid in enumerate(ids[:4]):
        store.add_contribution(
            Contribution(
                id=None,
                member_id=mid,
                type="monetary",
                amount=20000 + 5000 * i,
                description="Monthly subscription",
                payment_method="mobile money",
                date=(today - timedelta(days=5 * i)).isoformat(),
            )
        )
    store.add_contribution(
        Contribution(
            id=None,
            member_id=ids[5],
            type="in-kind",
            amount=None,
            description="Set of training cones",
            payment_method=None,
            date=today.isoformat(),
        )
    )
    store.add_expense(
        Expense(
            id=None,
            category="referees",
            amount=30000,
            description="Referee fee vs FC Victory",
            payment_method="cash",
            date=(today - timedelta(days=10)).isoformat(),
        )
    )
    store.add_leadership(
        Leadership(id=None, member_id=ids[2], role="Captain", start_date=(today - timedelta(days=90)).isoformat())
    )
