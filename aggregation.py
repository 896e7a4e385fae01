"""
aggregation.py
Pure functions turning fetched collections into the numbers the dashboard and reports show.

Nothing here touches the database. Every function takes the full in-memory
collections plus an optional [start, end] window of local days, and is safe to
re-run on every data change.
"""

from __future__ import annotations

import logging
import math
from collections import Counter
from dataclasses import replace
from datetime import date, datetime, time, timedelta
from typing import Callable, Iterable, Sequence, TypeVar

from models import (
    ATTENDANCE_WINDOW_DAYS,
    CONTRIBUTION_TARGET,
    DEFENSIVE_BONUS_SHARE,
    DEFENSIVE_POSITIONS,
    FINANCIAL_TREND_MONTHS,
    NO_DATA_MONTH,
    RATING_WEIGHTS,
    RECENT_RESULT_LIMIT,
    RECENT_TRANSACTION_DAYS,
    RECENT_TRANSACTION_LIMIT,
    STAFF_POSITIONS,
    UNKNOWN_MEMBER,
    UPCOMING_EVENT_LIMIT,
    AttendanceSummary,
    AttendanceTrend,
    Collections,
    Contribution,
    DashboardData,
    DashboardStats,
    Event,
    Expense,
    FinancialSummary,
    FinancialTrend,
    InventoryItem,
    MatchRecord,
    Member,
    PlayerAnalytics,
    PositionShare,
    TeamAnalytics,
    Transaction,
)
from utils import add_months, parse_iso, parse_record_date, parse_record_datetime

logger = logging.getLogger(__name__)

T = TypeVar("T")

_END_OF_DAY = time(23, 59, 59, 999999)


# ---------- Numbers ----------

def safe_amount(value) -> float:
    """
    Coerce a stored amount to a float. Missing or malformed values count as 0.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        if isinstance(value, str):
            amount = float(value.replace(",", "").strip())
        else:
            amount = float(value)
    except (TypeError, ValueError):
        return 0.0
    return amount if math.isfinite(amount) else 0.0


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def total_contributions(contributions: Iterable[Contribution]) -> float:
    return sum(
        safe_amount(c.amount) for c in contributions if c.type == "monetary" and c.amount is not None
    )


def total_expenses(expenses: Iterable[Expense]) -> float:
    return sum(safe_amount(e.amount) for e in expenses if e.amount is not None)


def attendance_rate(present: int, total_members: int) -> float:
    if total_members <= 0:
        return 0.0
    return max(0.0, min(100.0, present / total_members * 100))


# ---------- Dates ----------

def _as_date(value) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return parse_iso(str(value))


def filter_by_date_range(
    records: Sequence[T],
    start=None,
    end=None,
    key: Callable[[T], object] = lambda r: r.date,
) -> list[T]:
    """
    Keep records whose local day falls in [start, end], both ends inclusive.

    With no bounds at all the records are returned untouched. Otherwise records
    whose date cannot be read are dropped.
    """
    start_day = _as_date(start)
    end_day = _as_date(end)
    if start_day is None and end_day is None:
        return list(records)

    kept = []
    for record in records:
        day = parse_record_date(key(record))
        if day is None:
            continue
        if start_day is not None and day < start_day:
            continue
        if end_day is not None and day > end_day:
            continue
        kept.append(record)
    return kept


def event_start(event: Event) -> datetime | None:
    """Event date combined with its kick-off time; no time means end of that day."""
    day = parse_record_date(event.date)
    if day is None:
        return None
    if event.time:
        try:
            hours, minutes = (int(part) for part in event.time.split(":")[:2])
            return datetime.combine(day, time(hours, minutes))
        except ValueError:
            pass
    return datetime.combine(day, _END_OF_DAY)


def _month_bounds(day: date) -> tuple[date, date]:
    first = day.replace(day=1)
    return first, add_months(first, 1) - timedelta(days=1)


# ---------- Stats ----------

def compute_stats(collections: Collections, start=None, end=None, now: datetime | None = None) -> DashboardStats:
    """
    Session counts cover the window (or the current calendar month when there is none);
    money totals cover the window (or all time).
    """
    now = now or datetime.now()
    members = collections.members
    active = [m for m in members if m.status == "active"]

    if start is None and end is None:
        period_start, period_end = _month_bounds(now.date())
    else:
        period_start, period_end = start, end
    events = filter_by_date_range(collections.events, period_start, period_end)

    contributions = round_half_up(total_contributions(filter_by_date_range(collections.contributions, start, end)))
    expenses = round_half_up(total_expenses(filter_by_date_range(collections.expenses, start, end)))

    return DashboardStats(
        total_members=len(members),
        active_members=len(active),
        training_sessions=sum(1 for e in events if e.type == "training"),
        friendlies=sum(1 for e in events if e.type == "friendly"),
        total_contributions=contributions,
        total_expenses=expenses,
        remaining_balance=contributions - expenses,
    )


# ---------- Attendance ----------

def attendance_trends(
    collections: Collections,
    start=None,
    end=None,
    now: datetime | None = None,
    window_days: int = ATTENDANCE_WINDOW_DAYS,
) -> list[AttendanceTrend]:
    """
    One point per training session that has already taken place, oldest first.
    Without an explicit window the trailing ``window_days`` are used.
    """
    now = now or datetime.now()
    if not collections.attendance or not collections.events:
        return []

    if start is None and end is None:
        start = (now - timedelta(days=window_days)).date()

    trainings = []
    for event in filter_by_date_range([e for e in collections.events if e.type == "training"], start, end):
        begins = event_start(event)
        if begins is not None and begins <= now:
            trainings.append((begins, event))
    trainings.sort(key=lambda pair: pair[0])

    active_count = sum(1 for m in collections.members if m.status == "active")
    present = Counter(a.event_id for a in collections.attendance if a.status == "present")

    return [
        AttendanceTrend(
            date=event.date,
            present_count=present[event.id],
            total_members=active_count,
            attendance_rate=attendance_rate(present[event.id], active_count),
            event_id=event.id,
            description=event.description or "Training Session",
        )
        for _, event in trainings
    ]


def attendance_summary(trends: Sequence[AttendanceTrend]) -> AttendanceSummary | None:
    if not trends:
        return None

    counts = [t.present_count for t in trends]
    rates = [t.attendance_rate for t in trends]

    mid = len(rates) // 2
    first_half, second_half = rates[:mid], rates[mid:]
    first_avg = sum(first_half) / len(first_half) if first_half else 0
    second_avg = sum(second_half) / len(second_half) if second_half else 0

    trend, change = "stable", 0.0
    if first_avg > 0:
        change = (second_avg - first_avg) / first_avg * 100
        if change > 5:
            trend = "up"
        elif change < -5:
            trend = "down"

    return AttendanceSummary(
        average_attendance=round_half_up(sum(counts) / len(counts)),
        highest_attendance=max(counts),
        lowest_attendance=min(counts),
        total_sessions=len(trends),
        attendance_rate=round_half_up(sum(rates) / len(rates)),
        trend=trend,
        trend_percentage=round_half_up(abs(change)),
    )


# ---------- Money ----------

def financial_trends(
    contributions: Sequence[Contribution],
    expenses: Sequence[Expense],
    months: int = FINANCIAL_TREND_MONTHS,
    now: datetime | None = None,
) -> list[FinancialTrend]:
    """
    Month-by-month totals for the trailing ``months`` calendar months, oldest first.
    Quiet months are skipped; a single "No Data" entry stands in when all are quiet.
    A non-positive window has no months and yields an empty list.
    """
    if months <= 0:
        return []
    current = (now or datetime.now()).date().replace(day=1)
    monthly: list[FinancialTrend] = []

    for offset in range(months - 1, -1, -1):
        month_start, month_end = _month_bounds(add_months(current, -offset))
        month_in = total_contributions(filter_by_date_range(contributions, month_start, month_end))
        month_out = total_expenses(filter_by_date_range(expenses, month_start, month_end))
        if month_in > 0 or month_out > 0:
            rounded_in, rounded_out = round_half_up(month_in), round_half_up(month_out)
            monthly.append(
                FinancialTrend(
                    month=month_start.strftime("%b"),
                    contributions=rounded_in,
                    expenses=rounded_out,
                    net=rounded_in - rounded_out,
                )
            )

    if not monthly:
        return [FinancialTrend(month=NO_DATA_MONTH, contributions=0, expenses=0, net=0)]
    return monthly


def financial_summary(
    contributions: Sequence[Contribution],
    expenses: Sequence[Expense],
    trends: Sequence[FinancialTrend],
) -> FinancialSummary:
    contributed = round_half_up(total_contributions(contributions))
    spent = round_half_up(total_expenses(expenses))
    real_months = [t for t in trends if t.month != NO_DATA_MONTH]
    average = round_half_up(sum(t.net for t in real_months) / len(real_months)) if real_months else 0
    return FinancialSummary(
        total_contributions=contributed,
        total_expenses=spent,
        net_balance=contributed - spent,
        monthly_average=average,
    )


def member_names(members: Iterable[Member]) -> dict:
    return {m.id: m.name for m in members}


def recent_transactions(
    collections: Collections,
    now: datetime | None = None,
    days: int | None = RECENT_TRANSACTION_DAYS,
    limit: int = RECENT_TRANSACTION_LIMIT,
) -> list[Transaction]:
    """
    Latest monetary contributions and expenses, newest first.
    ``days=None`` drops the trailing cutoff (used when the caller already windowed the data).
    """
    now = now or datetime.now()
    cutoff = (now - timedelta(days=days)).date() if days is not None else None
    names = member_names(collections.members)
    items: list[tuple[datetime, Transaction]] = []

    for c in collections.contributions:
        if c.type != "monetary" or c.amount is None:
            continue
        when = parse_record_datetime(c.date)
        if when is None or (cutoff is not None and when.date() < cutoff):
            continue
        items.append(
            (
                when,
                Transaction(
                    id=c.id,
                    kind="contribution",
                    amount=safe_amount(c.amount),
                    description=c.description,
                    date=c.date,
                    member_name=names.get(c.member_id, UNKNOWN_MEMBER),
                    payment_method=c.payment_method,
                ),
            )
        )

    for e in collections.expenses:
        if e.amount is None:
            continue
        when = parse_record_datetime(e.date)
        if when is None or (cutoff is not None and when.date() < cutoff):
            continue
        items.append(
            (
                when,
                Transaction(
                    id=e.id,
                    kind="expense",
                    amount=safe_amount(e.amount),
                    description=e.description,
                    date=e.date,
                    category=e.category,
                    payment_method=e.payment_method,
                ),
            )
        )

    items.sort(key=lambda pair: pair[0], reverse=True)
    return [t for _, t in items[:limit]]


# ---------- Squad & fixtures ----------

def upcoming_events(events: Sequence[Event], now: datetime | None = None, limit: int = UPCOMING_EVENT_LIMIT) -> list[Event]:
    now = now or datetime.now()
    ahead = [(begins, e) for e in events if (begins := event_start(e)) is not None and begins >= now]
    ahead.sort(key=lambda pair: pair[0])
    return [e for _, e in ahead[:limit]]


def position_distribution(members: Sequence[Member]) -> list[PositionShare]:
    players = [m for m in members if m.status == "active" and m.position not in STAFF_POSITIONS]
    if not players:
        return []
    counts = Counter(m.position for m in players)
    shares = [
        PositionShare(position=position, count=count, percentage=round_half_up(count / len(players) * 100))
        for position, count in counts.items()
    ]
    return sorted(shares, key=lambda s: (-s.count, s.position))


def recent_results(events: Sequence[Event], now: datetime | None = None, limit: int = RECENT_RESULT_LIMIT) -> MatchRecord:
    today = (now or datetime.now()).date()
    played = []
    for e in events:
        day = parse_record_date(e.date)
        if e.type == "friendly" and e.is_completed and e.match_details and day is not None and day <= today:
            played.append((day, e))
    played.sort(key=lambda pair: pair[0], reverse=True)
    matches = [e for _, e in played[:limit]]

    results = Counter(m.match_details.result for m in matches)
    wins = results["win"]
    return MatchRecord(
        matches=matches,
        wins=wins,
        draws=results["draw"],
        losses=results["loss"],
        win_rate=round_half_up(wins / len(matches) * 100) if matches else 0,
    )


# ---------- Player analytics ----------

def _member_matches(member_id: int, matches: Sequence[Event]) -> list[Event]:
    return [m for m in matches if m.match_details.involves(member_id)]


def _analyse_player(
    member: Member,
    collections: Collections,
    played: Sequence[Event],
    matches: Sequence[Event],
) -> PlayerAnalytics:
    joined = parse_record_date(member.date_joined)
    eligible = {e.id for e in played if joined is None or (parse_record_date(e.date) or date.min) >= joined}
    known_events = {e.id for e in collections.events}

    records = [a for a in collections.attendance if a.member_id == member.id]
    counted = [a for a in records if a.event_id in eligible]
    attended = sum(1 for a in counted if a.status == "present")
    late = sum(1 for a in counted if a.status == "late")
    excused = sum(1 for a in counted if a.status == "excused")

    total_system = len(played)
    if eligible:
        rate = attended / len(eligible) * 100
        system_rate = attended / total_system * 100
    elif records:
        # Only attended sessions from before the join date: rate over their own records
        present_anywhere = sum(1 for a in records if a.status == "present" and a.event_id in known_events)
        rate = present_anywhere / len(records) * 100
        system_rate = present_anywhere / total_system * 100 if total_system else 0.0
    else:
        rate = system_rate = 0.0
    attendance_score = min(100.0, rate)

    involved = _member_matches(member.id, matches)
    goals = sum(m.match_details.goal_scorers.count(member.id) for m in matches)
    assists = sum(m.match_details.assists.count(member.id) for m in matches)
    yellows = sum(m.match_details.yellow_cards.count(member.id) for m in matches)
    reds = sum(m.match_details.red_cards.count(member.id) for m in matches)
    motm = sum(1 for m in matches if m.match_details.man_of_the_match == member.id)

    bonus = 0
    if member.position in DEFENSIVE_POSITIONS and involved:
        team_goals = sum(len(m.match_details.goal_scorers) for m in involved)
        bonus = round_half_up(team_goals * DEFENSIVE_BONUS_SHARE)
    raw_performance = goals * 10 + assists * 5 + motm * 15 + bonus + len(involved) * 2 - yellows * 2 - reds * 10
    performance = max(0, min(100, raw_performance))

    own = [c for c in collections.contributions if c.member_id == member.id]
    monetary = [c for c in own if c.type == "monetary"]
    amount = total_contributions(own)
    contribution_score = max(0.0, min(100.0, amount / CONTRIBUTION_TARGET * 100))

    overall = round_half_up(
        attendance_score * RATING_WEIGHTS["attendance"]
        + performance * RATING_WEIGHTS["performance"]
        + contribution_score * RATING_WEIGHTS["contribution"]
    )

    return PlayerAnalytics(
        member=member,
        attended_sessions=attended,
        total_sessions=len(eligible) if eligible else len(records),
        total_system_sessions=total_system,
        attendance_rate=rate,
        system_wide_attendance_rate=system_rate,
        late_arrivals=late,
        excused_absences=excused,
        attendance_score=attendance_score,
        goals_scored=goals,
        assists=assists,
        yellow_cards=yellows,
        red_cards=reds,
        man_of_the_match_awards=motm,
        matches_played=len(involved),
        performance_score=performance,
        total_contributions=len(own),
        monetary_contributions=len(monetary),
        in_kind_contributions=len(own) - len(monetary),
        total_contribution_amount=amount,
        contribution_score=contribution_score,
        overall_rating=overall,
    )


def player_analytics(collections: Collections, now: datetime | None = None) -> list[PlayerAnalytics]:
    """
    Per-player attendance, match and contribution scores for active members, best rated first.

    Sessions count once they have started and only from the member's join date on.
    The overall rating weighs attendance 50%, performance 35% and contributions 15%.
    """
    now = now or datetime.now()
    played = [e for e in collections.events if (begins := event_start(e)) is not None and begins <= now]
    matches = [e for e in collections.events if e.type == "friendly" and e.is_completed and e.match_details]

    analytics = [
        _analyse_player(member, collections, played, matches)
        for member in collections.members
        if member.status == "active"
    ]
    return sorted(analytics, key=lambda p: (-p.overall_rating, p.member.name.lower()))


def team_analytics(analytics: Sequence[PlayerAnalytics]) -> TeamAnalytics:
    if not analytics:
        return TeamAnalytics()
    return TeamAnalytics(
        total_players=len(analytics),
        average_rating=round_half_up(sum(p.overall_rating for p in analytics) / len(analytics)),
        top_performer=max(analytics, key=lambda p: p.overall_rating),
        attendance_leader=max(analytics, key=lambda p: (p.system_wide_attendance_rate, p.attended_sessions)),
        top_scorer=max(analytics, key=lambda p: p.goals_scored),
    )


# ---------- Inventory ----------

def stock_status(current: int, minimum: int, maximum: int) -> str:
    if current <= 0:
        return "out_of_stock"
    if current < minimum:
        return "low_stock"
    if maximum > 0 and current > maximum:
        return "overstocked"
    return "in_stock"


def low_stock_items(items: Sequence[InventoryItem]) -> list[InventoryItem]:
    return [i for i in items if stock_status(i.current_stock, i.min_stock, i.max_stock) in ("low_stock", "out_of_stock")]


# ---------- Everything ----------

def build_dashboard(collections: Collections, start=None, end=None, now: datetime | None = None) -> DashboardData:
    """
    Aggregate every dashboard panel in one pass.
    Any failure is logged and the empty dashboard is returned instead.
    """
    now = now or datetime.now()
    try:
        windowed = start is not None or end is not None
        contributions = filter_by_date_range(collections.contributions, start, end)
        expenses = filter_by_date_range(collections.expenses, start, end)
        in_window = replace(collections, contributions=contributions, expenses=expenses)

        trends = attendance_trends(collections, start=start, end=end, now=now)
        money = financial_trends(collections.contributions, collections.expenses, now=now)
        return DashboardData(
            stats=compute_stats(collections, start=start, end=end, now=now),
            attendance_trends=trends,
            attendance_summary=attendance_summary(trends),
            financial_trends=money,
            financial_summary=financial_summary(collections.contributions, collections.expenses, money),
            recent_transactions=recent_transactions(
                in_window, now=now, days=None if windowed else RECENT_TRANSACTION_DAYS
            ),
            upcoming_events=upcoming_events(collections.events, now=now),
            positions=position_distribution(collections.members),
            results=recent_results(collections.events, now=now),
        )
    except Exception:
        logger.exception("Failed to aggregate dashboard data")
        return DashboardData.empty()
