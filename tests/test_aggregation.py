from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime

import pytest

from aggregation import (
    attendance_rate,
    attendance_summary,
    attendance_trends,
    build_dashboard,
    compute_stats,
    event_start,
    filter_by_date_range,
    financial_trends,
    low_stock_items,
    player_analytics,
    position_distribution,
    recent_results,
    recent_transactions,
    safe_amount,
    stock_status,
    team_analytics,
    total_contributions,
    total_expenses,
    upcoming_events,
)
from conftest import make_contribution, make_expense, make_member
from models import (
    NO_DATA_MONTH,
    UNKNOWN_MEMBER,
    Attendance,
    Collections,
    DashboardData,
    Event,
    InventoryItem,
    MatchDetails,
    TeamAnalytics,
)

NOW = datetime(2024, 6, 15, 12, 0)


@pytest.mark.parametrize(
    "raw, expected",
    [
        (100, 100.0),
        ("50", 50.0),
        ("1,250", 1250.0),
        (" 12.5 ", 12.5),
        (None, 0.0),
        ("abc", 0.0),
        (float("nan"), 0.0),
        (float("inf"), 0.0),
        (True, 0.0),
        ([], 0.0),
    ],
)
def test_safe_amount(raw, expected):
    assert safe_amount(raw) == expected


def test_total_contributions_skips_null_amounts():
    contributions = [
        make_contribution(1, "100"),
        make_contribution(2, None),
        make_contribution(3, "50"),
    ]
    assert total_contributions(contributions) == 150


def test_total_contributions_ignores_in_kind():
    contributions = [make_contribution(1, 100), make_contribution(2, 500, type="in-kind")]
    assert total_contributions(contributions) == 100


def test_total_expenses_coerces_malformed_amounts():
    assert total_expenses([make_expense(1, "abc"), make_expense(2, "40"), make_expense(3, None)]) == 40


@pytest.mark.parametrize(
    "present, members, expected",
    [(0, 0, 0.0), (5, 0, 0.0), (3, 4, 75.0), (12, 10, 100.0), (0, 10, 0.0)],
)
def test_attendance_rate_bounds(present, members, expected):
    rate = attendance_rate(present, members)
    assert rate == expected
    assert 0 <= rate <= 100


def test_filter_by_date_range_is_inclusive():
    records = [
        make_contribution(1, 1, date="2023-12-31"),
        make_contribution(2, 1, date="2024-01-01"),
        make_contribution(3, 1, date="2024-01-15"),
        make_contribution(4, 1, date="2024-01-31T23:30:00"),
        make_contribution(5, 1, date="2024-02-01"),
    ]
    kept = filter_by_date_range(records, date(2024, 1, 1), date(2024, 1, 31))
    assert [r.id for r in kept] == [2, 3, 4]


def test_filter_by_date_range_accepts_iso_strings_and_open_ends():
    records = [make_contribution(1, 1, date="2024-01-01"), make_contribution(2, 1, date="2024-03-01")]
    assert [r.id for r in filter_by_date_range(records, "2024-02-01", None)] == [2]
    assert [r.id for r in filter_by_date_range(records, None, "2024-02-01")] == [1]


def test_filter_by_date_range_without_bounds_keeps_everything():
    records = [make_contribution(1, 1, date="not a date"), make_contribution(2, 1)]
    assert filter_by_date_range(records) == records


def test_filter_by_date_range_drops_unreadable_dates_when_bounded():
    records = [make_contribution(1, 1, date="not a date"), make_contribution(2, 1, date="2024-06-01")]
    assert [r.id for r in filter_by_date_range(records, start="2024-01-01")] == [2]


def test_event_start_without_time_is_end_of_day():
    event = Event(id=1, type="training", date="2024-06-15", time=None, location="Field")
    assert event_start(event) == datetime(2024, 6, 15, 23, 59, 59, 999999)


def test_compute_stats_defaults(club):
    stats = compute_stats(club, now=NOW)
    assert stats.total_members == 5
    assert stats.active_members == 4
    # June sessions, including the one still to come
    assert stats.training_sessions == 3
    assert stats.friendlies == 1
    assert stats.total_contributions == 60000
    assert stats.total_expenses == 30000
    assert stats.remaining_balance == 30000


def test_compute_stats_window(club):
    stats = compute_stats(club, start=date(2024, 6, 1), end=date(2024, 6, 9), now=NOW)
    assert stats.training_sessions == 1
    assert stats.friendlies == 1
    assert stats.total_contributions == 20000
    assert stats.total_expenses == 30000
    assert stats.remaining_balance == -10000


@pytest.mark.parametrize(
    "incoming, outgoing",
    [
        ([100.4, 0.4], [50.5]),
        (["10.5", "10.5", None], ["0.49"]),
        ([], [12.5]),
        ([1e6, "2,500.75"], ["abc", 999.5]),
    ],
)
def test_balance_identity(incoming, outgoing):
    collections = Collections(
        contributions=[make_contribution(i, amount) for i, amount in enumerate(incoming)],
        expenses=[make_expense(i, amount) for i, amount in enumerate(outgoing)],
    )
    stats = compute_stats(collections, now=NOW)
    assert stats.total_contributions - stats.total_expenses == stats.remaining_balance


def test_attendance_trends(club):
    trends = attendance_trends(club, now=NOW)
    assert [t.event_id for t in trends] == [1, 2]
    assert [t.present_count for t in trends] == [2, 3]
    assert [t.attendance_rate for t in trends] == [50.0, 75.0]
    assert trends[1].description == "Set pieces"
    assert all(t.total_members == 4 for t in trends)


def test_attendance_trends_empty_without_attendance():
    events = [
        Event(id=i, type="training", date=f"2024-06-{day:02d}", time="18:00", location="Field")
        for i, day in enumerate((1, 5, 10), start=1)
    ]
    collections = Collections(members=[make_member(1)], events=events, attendance=[])
    assert attendance_trends(collections, start=date(2024, 5, 16), end=date(2024, 6, 15), now=NOW) == []


def test_attendance_trends_without_active_members_rate_is_zero():
    collections = Collections(
        members=[make_member(1, status="inactive")],
        events=[Event(id=1, type="training", date="2024-06-10", time="18:00", location="Field")],
        attendance=[Attendance(id=1, event_id=1, member_id=1, status="present")],
    )
    trends = attendance_trends(collections, now=NOW)
    assert trends[0].total_members == 0
    assert trends[0].attendance_rate == 0


def test_attendance_summary(club):
    summary = attendance_summary(attendance_trends(club, now=NOW))
    assert summary.total_sessions == 2
    assert summary.average_attendance == 3
    assert summary.highest_attendance == 3
    assert summary.lowest_attendance == 2
    assert summary.attendance_rate == 63
    assert summary.trend == "up"
    assert summary.trend_percentage == 50


def test_attendance_summary_empty():
    assert attendance_summary([]) is None


def test_financial_trends_skip_quiet_months(club):
    trends = financial_trends(club.contributions, club.expenses, now=NOW)
    assert [t.month for t in trends] == ["Apr", "Jun"]
    assert trends[0].contributions == 15000
    assert trends[1].contributions == 45000
    assert trends[1].expenses == 30000
    assert all(t.net == t.contributions - t.expenses for t in trends)


def test_financial_trends_sentinel_when_empty():
    trends = financial_trends([], [make_expense(1, 100, date="2020-01-01")], now=NOW)
    assert len(trends) == 1
    assert trends[0].month == NO_DATA_MONTH
    assert (trends[0].contributions, trends[0].expenses, trends[0].net) == (0, 0, 0)


def test_financial_trends_never_exceed_window():
    contributions = [make_contribution(i, 100, date=f"2024-{month:02d}-10") for i, month in enumerate(range(1, 7))]
    contributions += [make_contribution(10 + i, 100, date=f"2023-{month:02d}-10") for i, month in enumerate(range(1, 13))]
    trends = financial_trends(contributions, [], now=NOW)
    assert len(trends) == 6
    assert [t.month for t in trends] == ["Jan", "Feb", "Mar", "Apr", "May", "Jun"]
    assert len(financial_trends(contributions, [], months=3, now=NOW)) == 3


def test_recent_transactions_order_and_placeholder(club):
    orphan = make_contribution(9, 5000, date="2024-06-14", member_id=99)
    collections = Collections(members=club.members, contributions=club.contributions + [orphan], expenses=club.expenses)
    transactions = recent_transactions(collections, now=NOW)
    assert [(t.kind, t.id) for t in transactions] == [
        ("contribution", 9),
        ("contribution", 2),
        ("expense", 2),
        ("expense", 1),
        ("contribution", 1),
    ]
    assert transactions[0].member_name == UNKNOWN_MEMBER
    assert transactions[1].member_name == "Brian Ssemakula"
    assert transactions[1].amount == 25000


def test_recent_transactions_capped():
    expenses = [make_expense(i, 100 + i, date=f"2024-06-{i + 1:02d}") for i in range(14)]
    transactions = recent_transactions(Collections(expenses=expenses), now=NOW)
    assert len(transactions) == 10
    assert transactions[0].id == 13
    dates = [t.date for t in transactions]
    assert dates == sorted(dates, reverse=True)


def test_upcoming_events(club):
    assert [e.id for e in upcoming_events(club.events, now=NOW)] == [4]


def test_position_distribution_excludes_staff_and_inactive(club):
    shares = position_distribution(club.members)
    assert [s.position for s in shares] == ["Central Midfielder", "Centre-back", "Goalkeeper"]
    assert all(s.count == 1 and s.percentage == 33 for s in shares)


def test_recent_results_counts():
    def friendly(eid, day, result):
        return Event(
            id=eid,
            type="friendly",
            date=day,
            time="15:00",
            location="Park",
            opponent="Rivals",
            is_completed=True,
            match_details=MatchDetails(home_score=1, away_score=0, result=result),
        )

    events = [
        friendly(1, "2024-05-01", "win"),
        friendly(2, "2024-05-08", "loss"),
        friendly(3, "2024-05-15", "win"),
        friendly(4, "2024-07-01", "draw"),
    ]
    record = recent_results(events, now=NOW)
    assert [e.id for e in record.matches] == [3, 2, 1]
    assert (record.wins, record.draws, record.losses) == (2, 0, 1)
    assert record.win_rate == 67


def test_build_dashboard(club):
    data = build_dashboard(club, now=NOW)
    assert data.stats.total_contributions == 60000
    assert len(data.attendance_trends) == 2
    assert data.attendance_summary.trend == "up"
    assert data.financial_summary.net_balance == 30000
    assert data.financial_summary.monthly_average == 15000
    assert len(data.recent_transactions) == 4
    assert [e.id for e in data.upcoming_events] == [4]


def test_build_dashboard_window_drops_trailing_cutoff(club):
    data = build_dashboard(club, start=date(2024, 4, 1), end=date(2024, 4, 30), now=NOW)
    assert [t.id for t in data.recent_transactions] == [4]
    assert data.stats.total_contributions == 15000
    assert data.attendance_trends == []


def test_build_dashboard_empty_collections():
    data = build_dashboard(Collections(), now=NOW)
    assert data.stats.total_members == 0
    assert data.attendance_trends == []
    assert data.financial_trends[0].month == NO_DATA_MONTH


def test_build_dashboard_degrades_on_bad_records():
    data = build_dashboard(Collections(members=[None]), now=NOW)
    assert data == DashboardData.empty()


def test_financial_trends_empty_window():
    assert financial_trends([make_contribution(1, 100, date="2024-06-01")], [], months=0, now=NOW) == []


# ---------- Player analytics ----------

def _with_match(club: Collections) -> Collections:
    details = MatchDetails(
        home_score=2,
        away_score=1,
        result="win",
        goal_scorers=(3, 3),
        assists=(2,),
        yellow_cards=(2,),
        man_of_the_match=3,
    )
    events = [replace(e, match_details=details) if e.id == 3 else e for e in club.events]
    return replace(club, events=events)


def test_player_analytics_scores(club):
    players = player_analytics(_with_match(club), now=NOW)
    by_id = {p.member.id: p for p in players}

    # injured members are left out, staff are not
    assert [p.member.id for p in players] == [1, 3, 2, 5]

    keeper = by_id[1]
    assert (keeper.attended_sessions, keeper.total_sessions, keeper.total_system_sessions) == (2, 3, 3)
    assert keeper.contribution_score == pytest.approx(40)
    assert keeper.performance_score == 0
    assert keeper.overall_rating == 39

    scorer = by_id[3]
    assert (scorer.goals_scored, scorer.man_of_the_match_awards, scorer.matches_played) == (2, 1, 1)
    assert scorer.performance_score == 37
    assert scorer.in_kind_contributions == 1
    assert scorer.total_contribution_amount == 15000
    assert scorer.overall_rating == 34

    defender = by_id[2]
    assert (defender.assists, defender.yellow_cards, defender.late_arrivals) == (1, 1, 1)
    # assist 5, booking -2, appearance 2, share of the two team goals 1
    assert defender.performance_score == 6
    assert defender.overall_rating == 26


def test_player_analytics_counts_sessions_from_join_date(club):
    late_joiner = replace(club.members[0], date_joined="2024-06-10")
    collections = replace(club, members=[late_joiner])
    (player,) = player_analytics(collections, now=NOW)
    assert (player.attended_sessions, player.total_sessions) == (1, 1)
    assert player.attendance_rate == pytest.approx(100)
    assert player.system_wide_attendance_rate == pytest.approx(100 / 3)


def test_player_analytics_ignores_sessions_not_yet_played(club):
    (player,) = player_analytics(replace(club, members=[club.members[0]]), now=datetime(2024, 6, 6))
    assert player.total_system_sessions == 1
    assert player.attended_sessions == 1


def test_performance_score_floors_at_zero(club):
    details = MatchDetails(home_score=0, away_score=3, result="loss", yellow_cards=(3,), red_cards=(3,))
    events = [replace(e, match_details=details) if e.id == 3 else e for e in club.events]
    players = player_analytics(replace(club, events=events), now=NOW)
    assert next(p for p in players if p.member.id == 3).performance_score == 0


def test_team_analytics(club):
    team = team_analytics(player_analytics(_with_match(club), now=NOW))
    assert team.total_players == 4
    assert team.average_rating == 29
    assert team.top_performer.member.id == 1
    assert team.top_scorer.member.id == 3
    assert team.attendance_leader.member.id == 1


def test_team_analytics_empty():
    assert team_analytics([]) == TeamAnalytics()


# ---------- Inventory ----------

@pytest.mark.parametrize(
    "current, minimum, maximum, expected",
    [
        (0, 5, 20, "out_of_stock"),
        (3, 5, 20, "low_stock"),
        (5, 5, 20, "in_stock"),
        (25, 5, 20, "overstocked"),
        (25, 5, 0, "in_stock"),
    ],
)
def test_stock_status(current, minimum, maximum, expected):
    assert stock_status(current, minimum, maximum) == expected


def test_low_stock_items():
    items = [
        InventoryItem(id=1, name="Balls", category="Balls", current_stock=2, min_stock=5, max_stock=20, condition="good"),
        InventoryItem(id=2, name="Bibs", category="Training Equipment", current_stock=0, min_stock=1, max_stock=30,
                      condition="fair"),
        InventoryItem(id=3, name="Cones", category="Training Equipment", current_stock=30, min_stock=10, max_stock=25,
                      condition="good"),
    ]
    assert [i.id for i in low_stock_items(items)] == [1, 2]
