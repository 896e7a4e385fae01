"""
app.py
Streamlit team management dashboard (roster, fixtures, attendance, money, reports).
Run: streamlit run app.py
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
import pandas as pd
import streamlit as st

import db
import fees
import store
import utils
from aggregation import (
    build_dashboard,
    low_stock_items,
    member_names,
    player_analytics,
    round_half_up,
    safe_amount,
    stock_status,
    team_analytics,
)
from feed import DashboardFeed
from models import (
    ATTENDANCE_STATUSES,
    CLUB_NAME,
    CLUB_SLUG,
    CONTRIBUTION_TYPES,
    EXPENSE_CATEGORIES,
    FEE_STRUCTURES,
    INVENTORY_CATEGORIES,
    INVENTORY_CONDITIONS,
    LEADERSHIP_ROLES,
    MATCH_RESULTS,
    MEMBER_STATUSES,
    NO_DATA_MONTH,
    PAYMENT_METHODS,
    POSITIONS,
    UNKNOWN_MEMBER,
    VENUES,
    Contribution,
    Event,
    Expense,
    InventoryItem,
    Leadership,
    MatchDetails,
    Member,
)
from reports import REPORT_KINDS, ReportDateRangeError, ReportError, export_report

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

st.set_page_config(page_title=f"{CLUB_NAME} Team Management", layout="wide")


def init_once():
    db.init_db()


@st.cache_resource
def get_feed() -> DashboardFeed:
    # One feed per server process; store writes push refreshes into it
    feed = DashboardFeed()
    feed.start()
    return feed


# ---------- Shared helpers ----------

def member_options(members, active_only: bool = False) -> dict[str, int]:
    chosen = [m for m in members if m.status == "active"] if active_only else members
    return {f"{m.name} (#{m.jersey_number}) - ID {m.id}": m.id for m in chosen}


def show_errors(errors: list[str]) -> bool:
    for e in errors:
        st.error(e)
    return bool(errors)


def date_window(key: str):
    """Optional start/end pickers; returns (start, end) or (None, None)."""
    use_range = st.checkbox("Filter by date range", value=False, key=f"{key}_use_range")
    if not use_range:
        return None, None
    c1, c2 = st.columns(2)
    with c1:
        start = st.date_input("Start date", value=date.today() - timedelta(days=30), key=f"{key}_start")
    with c2:
        end = st.date_input("End date", value=date.today(), key=f"{key}_end")
    return start, end


# ---------- Pages ----------

def dashboard_page():
    st.header("📊 Dashboard")

    feed = get_feed()
    start, end = date_window("dashboard")
    if start is not None and end is not None and end < start:
        st.error("End date must be on or after the start date.")
        return
    if (start, end) == (None, None):
        data = feed.data
    else:
        # Windowed views are computed on demand from the feed's latest snapshot
        data = build_dashboard(feed.collections, start=start, end=end)

    stats = data.stats
    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Active members", stats.active_members, help=f"{stats.total_members} on the roster")
    c2.metric("Training sessions", stats.training_sessions)
    c3.metric("Friendlies", stats.friendlies)
    c4.metric("Balance", utils.format_ugx(stats.remaining_balance))

    c1, c2 = st.columns(2)
    c1.metric("Total contributions", utils.format_ugx(stats.total_contributions))
    c2.metric("Total expenses", utils.format_ugx(stats.total_expenses))

    st.divider()

    left, right = st.columns(2)
    with left:
        st.subheader("Training attendance")
        if data.attendance_trends:
            df = pd.DataFrame(
                {
                    "date": [t.date for t in data.attendance_trends],
                    "attendance rate (%)": [round(t.attendance_rate, 1) for t in data.attendance_trends],
                }
            ).set_index("date")
            st.line_chart(df)
            summary = data.attendance_summary
            if summary:
                arrow = {"up": "⬆️", "down": "⬇️"}.get(summary.trend, "➡️")
                st.caption(
                    f"Average {summary.average_attendance} present over {summary.total_sessions} sessions "
                    f"({summary.attendance_rate}%) {arrow} {summary.trend_percentage}%"
                )
        else:
            st.info("No Training Data")
            st.caption("Attendance trends appear once training sessions have recorded attendance.")

    with right:
        st.subheader("Monthly finances")
        trends = data.financial_trends
        if trends and trends[0].month != NO_DATA_MONTH:
            df = pd.DataFrame(
                {
                    "month": [t.month for t in trends],
                    "contributions": [t.contributions for t in trends],
                    "expenses": [t.expenses for t in trends],
                }
            ).set_index("month")
            st.bar_chart(df)
            st.caption(f"Monthly average net: {utils.format_ugx(data.financial_summary.monthly_average)}")
        else:
            st.caption("No financial activity in the last six months.")

    st.divider()

    left, right = st.columns(2)
    with left:
        st.subheader("Recent transactions")
        if data.recent_transactions:
            rows = [
                {
                    "date": utils.format_date(t.date),
                    "type": t.kind,
                    "description": t.description,
                    "who/what": t.member_name if t.kind == "contribution" else t.category,
                    "amount": ("+" if t.kind == "contribution" else "-") + utils.format_ugx(t.amount),
                }
                for t in data.recent_transactions
            ]
            st.dataframe(pd.DataFrame(rows), use_container_width=True, hide_index=True)
        else:
            st.caption("No transactions in this period.")

    with right:
        st.subheader("Upcoming events")
        if data.upcoming_events:
            rows = [
                {"date": utils.format_date(e.date), "time": e.time, "event": e.label, "location": e.location}
                for e in data.upcoming_events
            ]
            st.dataframe(pd.DataFrame(rows), use_container_width=True, hide_index=True)
        else:
            st.caption("Nothing scheduled.")

    left, right = st.columns(2)
    with left:
        st.subheader("Recent results")
        record = data.results
        if record.matches:
            st.write(
                f"W **{record.wins}** | D **{record.draws}** | L **{record.losses}** | "
                f"Win rate **{record.win_rate}%**"
            )
            rows = [
                {
                    "date": utils.format_date(e.date),
                    "opponent": e.opponent,
                    "score": f"{e.match_details.home_score} - {e.match_details.away_score}",
                    "result": e.match_details.result,
                }
                for e in record.matches
            ]
            st.dataframe(pd.DataFrame(rows), use_container_width=True, hide_index=True)
        else:
            st.caption("No completed friendlies yet.")

    with right:
        st.subheader("Squad by position")
        if data.positions:
            df = pd.DataFrame(
                {"position": [p.position for p in data.positions], "players": [p.count for p in data.positions]}
            ).set_index("position")
            st.bar_chart(df)
        else:
            st.caption("No active players.")


def member_form():
    st.subheader("➕ Add Member")

    col1, col2, col3 = st.columns(3)
    with col1:
        name = st.text_input("Full name")
        position = st.selectbox("Position", POSITIONS)
        jersey = st.text_input("Jersey number", value="0")
    with col2:
        email = st.text_input("Email")
        phone = st.text_input("Phone")
    with col3:
        status = st.selectbox("Status", MEMBER_STATUSES)
        joined = st.date_input("Date joined", value=date.today()).isoformat()

    if st.button("Save member", type="primary"):
        errors = utils.validate_member_inputs(name, jersey, email, joined)
        if show_errors(errors):
            return
        store.add_member(
            Member(
                id=None,
                name=name.strip(),
                position=position,
                jersey_number=int(jersey),
                email=email.strip(),
                phone=phone.strip(),
                status=status,
                date_joined=joined,
            )
        )
        st.success("Member added.")
        st.rerun()


def members_page():
    st.header("👥 Members")

    members = store.get_all_members()

    with st.sidebar:
        st.subheader("Search & Filters")
        search = st.text_input("Search (name/email)")
        status_filter = st.selectbox("Status", ["All"] + MEMBER_STATUSES)

    shown = [
        m
        for m in members
        if (status_filter == "All" or m.status == status_filter)
        and (not search.strip() or search.strip().lower() in f"{m.name} {m.email}".lower())
    ]
    if shown:
        st.dataframe(utils.records_to_frame(shown), use_container_width=True, hide_index=True)
    else:
        st.caption("No members match.")

    st.divider()

    options = member_options(members)
    if options:
        colA, colB = st.columns([1, 2])
        with colA:
            st.subheader("Select member")
            chosen = st.selectbox("Member", ["(none)"] + list(options.keys()))
        with colB:
            if chosen != "(none)":
                member_id = options[chosen]
                st.subheader("Member actions")
                c1, c2 = st.columns(2)
                with c1:
                    new_status = st.selectbox("Change status", MEMBER_STATUSES)
                    if st.button("Update status"):
                        store.update_member_status(member_id, new_status)
                        st.success("Status updated.")
                        st.rerun()
                with c2:
                    delete_confirm = st.checkbox("Confirm delete", value=False, key="del_member_confirm")
                    if st.button("Delete", type="secondary", disabled=not delete_confirm):
                        store.delete_member(member_id)
                        st.success("Member deleted.")
                        st.rerun()
        st.divider()

    member_form()


def event_form(event_type: str):
    st.subheader("➕ Schedule " + ("training" if event_type == "training" else "friendly"))

    col1, col2, col3 = st.columns(3)
    with col1:
        event_date = st.date_input("Date", value=date.today(), key=f"{event_type}_date").isoformat()
        event_time = st.time_input("Time", key=f"{event_type}_time").strftime("%H:%M")
    with col2:
        location = st.text_input("Location", key=f"{event_type}_location")
        opponent = st.text_input("Opponent", key=f"{event_type}_opponent") if event_type == "friendly" else None
    with col3:
        description = st.text_input("Description (optional)", key=f"{event_type}_description")

    if st.button("Save event", type="primary", key=f"{event_type}_save"):
        errors = utils.validate_event_inputs(event_type, event_date, location, opponent)
        if show_errors(errors):
            return
        store.add_event(
            Event(
                id=None,
                type=event_type,
                date=event_date,
                time=event_time,
                location=location.strip(),
                description=description.strip() or None,
                opponent=opponent.strip() if opponent else None,
            )
        )
        st.success("Event scheduled.")
        st.rerun()


def events_table(events):
    if not events:
        st.caption("No events yet.")
        return
    rows = [
        {
            "id": e.id,
            "date": e.date,
            "time": e.time,
            "event": e.label,
            "location": e.location,
            "completed": e.is_completed,
        }
        for e in events
    ]
    st.dataframe(pd.DataFrame(rows), use_container_width=True, hide_index=True)


def delete_event_control(events, key: str):
    options = {f"{e.date} {e.label} - ID {e.id}": e.id for e in events}
    if not options:
        return
    chosen = st.selectbox("Delete event", ["(none)"] + list(options.keys()), key=f"{key}_delete_pick")
    confirm = st.checkbox("Confirm delete", value=False, key=f"{key}_delete_confirm")
    if st.button("Delete event", disabled=chosen == "(none)" or not confirm, key=f"{key}_delete"):
        store.delete_event(options[chosen])
        st.success("Event deleted.")
        st.rerun()


def training_page():
    st.header("🏃 Training")
    events = [e for e in store.get_all_events() if e.type == "training"]
    events_table(events)
    delete_event_control(events, "training")
    st.divider()
    event_form("training")


def friendlies_page():
    st.header("⚽ Friendlies")
    events = [e for e in store.get_all_events() if e.type == "friendly"]
    events_table(events)
    delete_event_control(events, "friendly")

    st.divider()

    pending = {f"{e.date} {e.label} - ID {e.id}": e.id for e in events if not e.is_completed}
    st.subheader("Record result")
    if not pending:
        st.caption("No open friendlies.")
    else:
        chosen = st.selectbox("Match", list(pending.keys()))
        members = store.get_all_members()
        names = member_options(members)
        c1, c2, c3 = st.columns(3)
        with c1:
            home = st.number_input("Our score", min_value=0, step=1)
            away = st.number_input("Their score", min_value=0, step=1)
        with c2:
            venue = st.selectbox("Venue", VENUES)
            suggested = "win" if home > away else "loss" if home < away else "draw"
            result = st.selectbox("Result", MATCH_RESULTS, index=MATCH_RESULTS.index(suggested))
        with c3:
            scorers = st.multiselect("Goal scorers", list(names.keys()))
            assists = st.multiselect("Assists", list(names.keys()))
            motm = st.selectbox("Man of the match", ["(none)"] + list(names.keys()))
        c1, c2 = st.columns(2)
        yellows = c1.multiselect("Yellow cards", list(names.keys()))
        reds = c2.multiselect("Red cards", list(names.keys()))
        report = st.text_area("Match report (optional)")

        if st.button("Save result", type="primary"):
            store.record_match_result(
                pending[chosen],
                MatchDetails(
                    home_score=int(home),
                    away_score=int(away),
                    result=result,
                    venue=venue,
                    goal_scorers=tuple(names[s] for s in scorers),
                    assists=tuple(names[s] for s in assists),
                    yellow_cards=tuple(names[s] for s in yellows),
                    red_cards=tuple(names[s] for s in reds),
                    man_of_the_match=names.get(motm),
                    match_report=report.strip() or None,
                ),
            )
            st.success("Result recorded.")
            st.rerun()

    st.divider()
    event_form("friendly")


def attendance_page():
    st.header("📋 Attendance")

    events = store.get_all_events()
    members = store.get_all_members()
    if not events:
        st.info("No events yet. Schedule a training or friendly first.")
        return
    if not members:
        st.info("No members yet. Add a member first.")
        return

    options = {f"{e.date} {e.label} - ID {e.id}": e.id for e in reversed(events)}
    chosen = st.selectbox("Event", list(options.keys()))
    event_id = options[chosen]

    existing = {a.member_id: a for a in store.get_all_attendance() if a.event_id == event_id}
    active = [m for m in members if m.status == "active" or m.id in existing]

    statuses: dict[int, str] = {}
    notes: dict[int, str] = {}
    for m in active:
        c1, c2, c3 = st.columns([2, 1, 2])
        current = existing.get(m.id)
        c1.write(f"**{m.name}** (#{m.jersey_number}, {m.position})")
        statuses[m.id] = c2.selectbox(
            "Status",
            ATTENDANCE_STATUSES,
            index=ATTENDANCE_STATUSES.index(current.status) if current else 1,
            key=f"att_{event_id}_{m.id}",
            label_visibility="collapsed",
        )
        note = c3.text_input(
            "Notes",
            value=(current.notes or "") if current else "",
            key=f"att_note_{event_id}_{m.id}",
            label_visibility="collapsed",
        )
        if note.strip():
            notes[m.id] = note.strip()

    if st.button("Save attendance", type="primary"):
        store.set_attendance(event_id, statuses, notes)
        st.success("Attendance saved.")
        st.rerun()

    present = sum(1 for s in statuses.values() if s == "present")
    st.caption(f"{present} of {len(active)} marked present.")


def transactions_page():
    st.header("💳 Contributions & Expenses")

    members = store.get_all_members()
    names = member_names(members)

    tab_in, tab_out = st.tabs(["Contributions", "Expenses"])

    with tab_in:
        options = member_options(members)
        if not options:
            st.info("No members yet. Add a member first.")
        else:
            st.subheader("Add contribution")
            c1, c2, c3 = st.columns(3)
            with c1:
                chosen = st.selectbox("Member", list(options.keys()))
                kind = st.selectbox("Type", CONTRIBUTION_TYPES)
            with c2:
                amount = st.text_input("Amount (UGX)", value="", disabled=kind != "monetary")
                method = st.selectbox("Payment method", PAYMENT_METHODS, disabled=kind != "monetary")
            with c3:
                paid_on = st.date_input("Date", value=date.today(), key="contribution_date").isoformat()
                description = st.text_input("Description", key="contribution_description")

            if st.button("Record contribution", type="primary"):
                monetary = kind == "monetary"
                if not show_errors(utils.validate_amount(amount) if monetary else []):
                    store.add_contribution(
                        Contribution(
                            id=None,
                            member_id=options[chosen],
                            type=kind,
                            amount=float(amount) if monetary else None,
                            description=description.strip(),
                            payment_method=method if monetary else None,
                            date=paid_on,
                        )
                    )
                    st.success("Contribution recorded.")
                    st.rerun()

        st.divider()
        contributions = store.get_all_contributions()
        if contributions:
            rows = [
                {
                    "id": c.id,
                    "date": c.date,
                    "member": names.get(c.member_id, UNKNOWN_MEMBER),
                    "type": c.type,
                    "amount": utils.format_ugx(c.amount) if c.type == "monetary" else "N/A",
                    "description": c.description,
                    "method": c.payment_method,
                }
                for c in contributions
            ]
            st.dataframe(pd.DataFrame(rows), use_container_width=True, hide_index=True)
            pick = st.selectbox("Delete contribution ID", ["(none)"] + [str(c.id) for c in contributions])
            if st.button("Delete contribution", disabled=pick == "(none)"):
                store.delete_contribution(int(pick))
                st.success("Contribution deleted.")
                st.rerun()
        else:
            st.caption("No contributions yet.")

    with tab_out:
        st.subheader("Add expense")
        c1, c2, c3 = st.columns(3)
        with c1:
            category = st.selectbox("Category", EXPENSE_CATEGORIES)
            amount = st.text_input("Amount (UGX)", value="", key="expense_amount")
        with c2:
            method = st.selectbox("Payment method", PAYMENT_METHODS, key="expense_method")
            spent_on = st.date_input("Date", value=date.today(), key="expense_date").isoformat()
        with c3:
            description = st.text_input("Description", key="expense_description")
            receipt = st.text_input("Receipt reference (optional)")

        if st.button("Record expense", type="primary"):
            if not show_errors(utils.validate_amount(amount)):
                store.add_expense(
                    Expense(
                        id=None,
                        category=category,
                        amount=float(amount),
                        description=description.strip(),
                        payment_method=method,
                        date=spent_on,
                        receipt=receipt.strip() or None,
                    )
                )
                st.success("Expense recorded.")
                st.rerun()

        st.divider()
        expenses = store.get_all_expenses()
        if expenses:
            st.dataframe(utils.records_to_frame(expenses), use_container_width=True, hide_index=True)
            pick = st.selectbox("Delete expense ID", ["(none)"] + [str(e.id) for e in expenses])
            if st.button("Delete expense", disabled=pick == "(none)"):
                store.delete_expense(int(pick))
                st.success("Expense deleted.")
                st.rerun()
        else:
            st.caption("No expenses yet.")


def leadership_page():
    st.header("🎖️ Leadership")

    members = store.get_all_members()
    names = member_names(members)
    roles = store.get_all_leadership()

    if roles:
        rows = [
            {
                "id": r.id,
                "member": names.get(r.member_id, UNKNOWN_MEMBER),
                "role": r.role,
                "start": r.start_date,
                "end": r.end_date,
                "active": r.is_active,
            }
            for r in roles
        ]
        st.dataframe(pd.DataFrame(rows), use_container_width=True, hide_index=True)

        active = {f"{r.role} - {names.get(r.member_id, UNKNOWN_MEMBER)}": r.id for r in roles if r.is_active}
        if active:
            chosen = st.selectbox("End role", ["(none)"] + list(active.keys()))
            if st.button("End role", disabled=chosen == "(none)"):
                store.end_leadership(active[chosen], utils.today_iso())
                st.success("Role ended.")
                st.rerun()
    else:
        st.caption("No leadership roles assigned.")

    st.divider()

    options = member_options(members, active_only=True)
    if not options:
        st.info("No active members to assign.")
        return
    st.subheader("Assign role")
    c1, c2, c3 = st.columns(3)
    with c1:
        chosen = st.selectbox("Member", list(options.keys()), key="leader_member")
    with c2:
        role = st.selectbox("Role", LEADERSHIP_ROLES)
    with c3:
        start = st.date_input("Start date", value=date.today(), key="leader_start").isoformat()
    if st.button("Assign", type="primary"):
        store.add_leadership(Leadership(id=None, member_id=options[chosen], role=role, start_date=start))
        st.success("Role assigned.")
        st.rerun()


def analytics_page():
    st.header("📈 Player Analytics")

    players = player_analytics(get_feed().collections)
    if not players:
        st.info("No active players to analyse yet.")
        return

    team = team_analytics(players)
    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Active players", team.total_players)
    c2.metric("Average rating", team.average_rating)
    c3.metric("Top performer", team.top_performer.member.name)
    c4.metric("Top scorer", f"{team.top_scorer.member.name} ({team.top_scorer.goals_scored})")

    c1, c2 = st.columns(2)
    with c1:
        positions = sorted({p.member.position for p in players})
        position = st.selectbox("Position", ["All"] + positions)
    with c2:
        sort_by = st.selectbox("Sort by", ["Overall rating", "Attendance", "Performance", "Contributions", "Name"])

    shown = [p for p in players if position == "All" or p.member.position == position]
    sort_keys = {
        "Overall rating": lambda p: -p.overall_rating,
        "Attendance": lambda p: -p.attendance_rate,
        "Performance": lambda p: -p.performance_score,
        "Contributions": lambda p: -p.total_contribution_amount,
        "Name": lambda p: p.member.name.lower(),
    }
    shown.sort(key=sort_keys[sort_by])

    rows = [
        {
            "Player": p.member.name,
            "Position": p.member.position,
            "Attended": f"{p.attended_sessions}/{p.total_sessions}",
            "Attendance %": round_half_up(p.attendance_rate),
            "Late": p.late_arrivals,
            "Goals": p.goals_scored,
            "Assists": p.assists,
            "MOTM": p.man_of_the_match_awards,
            "Cards": f"{p.yellow_cards}Y / {p.red_cards}R",
            "Contributed": utils.format_ugx(p.total_contribution_amount),
            "Attendance score": round_half_up(p.attendance_score),
            "Performance": p.performance_score,
            "Contribution score": round_half_up(p.contribution_score),
            "Rating": p.overall_rating,
        }
        for p in shown
    ]
    st.dataframe(pd.DataFrame(rows), use_container_width=True, hide_index=True)
    st.caption("Rating weighs attendance 50%, match performance 35% and contributions 15%.")


def membership_fees_page():
    st.header("🪪 Membership Fees")

    members = store.get_all_members()
    names = member_names(members)
    all_fees = store.get_all_membership_fees()
    today = date.today()

    if all_fees:
        rows = [
            {
                "id": f.id,
                "member": names.get(f.member_id, UNKNOWN_MEMBER),
                "period": f.period,
                "start": f.start_date,
                "end": f.end_date,
                "due": f.due_date,
                "amount": utils.format_ugx(safe_amount(f.amount)),
                "paid": utils.format_ugx(safe_amount(f.amount_paid)),
                "balance": utils.format_ugx(fees.remaining_balance(f)),
                "status": fees.payment_status(f, today),
            }
            for f in all_fees
        ]
        st.dataframe(pd.DataFrame(rows), use_container_width=True, hide_index=True)

        standings = {m.id: fees.membership_status([f for f in all_fees if f.member_id == m.id], today) for m in members}
        c1, c2, c3 = st.columns(3)
        c1.metric("Active memberships", sum(1 for s in standings.values() if s.status == "active"))
        c2.metric("Overdue", sum(1 for s in standings.values() if s.status == "overdue"))
        c3.metric("Outstanding", utils.format_ugx(sum(fees.remaining_balance(f) for f in all_fees)))

        open_fees = {
            f"{names.get(f.member_id, UNKNOWN_MEMBER)} {f.period} from {f.start_date} - ID {f.id}": f
            for f in all_fees
            if fees.remaining_balance(f) > 0
        }
        if open_fees:
            st.subheader("Record payment")
            chosen = st.selectbox("Fee", list(open_fees.keys()))
            fee = open_fees[chosen]
            c1, c2 = st.columns(2)
            with c1:
                paying = st.number_input("Amount received (UGX)", min_value=0, step=5000,
                                         value=int(fees.remaining_balance(fee)))
            with c2:
                method = st.selectbox("Payment method", PAYMENT_METHODS, key="fee_pay_method")
            if st.button("Record payment", type="primary"):
                store.record_fee_payment(fee.id, safe_amount(fee.amount_paid) + paying, today.isoformat(), method)
                st.success("Payment recorded.")
                st.rerun()

        st.subheader("Delete fee")
        delete_options = {f"{names.get(f.member_id, UNKNOWN_MEMBER)} {f.period} - ID {f.id}": f.id for f in all_fees}
        chosen = st.selectbox("Fee", ["(none)"] + list(delete_options.keys()), key="fee_delete")
        confirm = st.checkbox("I understand this will permanently delete the fee.", key="fee_delete_confirm")
        if st.button("Delete fee", disabled=chosen == "(none)" or not confirm):
            store.delete_membership_fee(delete_options[chosen])
            st.success("Fee deleted.")
            st.rerun()
    else:
        st.caption("No membership fees recorded.")

    st.divider()

    options = member_options(members)
    if not options:
        st.info("No members yet. Add a member first.")
        return
    st.subheader("New fee")
    structures = {f"{s.label} - {utils.format_ugx(s.amount)}": s.period for s in FEE_STRUCTURES}
    c1, c2, c3 = st.columns(3)
    with c1:
        chosen = st.selectbox("Member", list(options.keys()), key="fee_member")
        plan = st.selectbox("Period", list(structures.keys()))
    with c2:
        start = st.date_input("Start date", value=utils.parse_iso(fees.current_period_start(today)), key="fee_start")
        paid = st.number_input("Amount paid now (UGX)", min_value=0, step=5000)
    with c3:
        method = st.selectbox("Payment method", PAYMENT_METHODS, key="fee_method")
        notes = st.text_input("Notes (optional)")

    period = structures[plan]
    first, last, due = fees.period_dates(start, period)
    st.caption(f"Covers {utils.format_date(first)} to {utils.format_date(last)}, due {utils.format_date(due)}.")
    if st.button("Save fee", type="primary"):
        store.add_membership_fee(
            fees.build_fee(
                options[chosen],
                period,
                start,
                amount_paid=paid,
                payment_method=method if paid else None,
                paid_date=today.isoformat() if paid else None,
                notes=notes.strip() or None,
            )
        )
        st.success("Fee saved.")
        st.rerun()


def inventory_page():
    st.header("📦 Inventory")

    items = store.get_all_inventory()
    if items:
        c1, c2 = st.columns(2)
        c1.metric("Items", len(items))
        c2.metric("Low or out of stock", len(low_stock_items(items)))

        category = st.selectbox("Category", ["All"] + INVENTORY_CATEGORIES)
        shown = [i for i in items if category == "All" or i.category == category]
        rows = [
            {
                "id": i.id,
                "name": i.name,
                "category": i.category,
                "stock": i.current_stock,
                "min": i.min_stock,
                "max": i.max_stock,
                "condition": i.condition,
                "status": stock_status(i.current_stock, i.min_stock, i.max_stock),
                "location": i.location,
            }
            for i in shown
        ]
        st.dataframe(pd.DataFrame(rows), use_container_width=True, hide_index=True)

        st.subheader("Update stock")
        options = {f"{i.name} ({i.category}) - ID {i.id}": i for i in items}
        chosen = st.selectbox("Item", list(options.keys()))
        item = options[chosen]
        c1, c2 = st.columns(2)
        with c1:
            stock = st.number_input("Current stock", min_value=0, step=1, value=item.current_stock)
        with c2:
            condition = st.selectbox("Condition", INVENTORY_CONDITIONS, index=INVENTORY_CONDITIONS.index(item.condition))
        b1, b2 = st.columns(2)
        with b1:
            if st.button("Update", type="primary"):
                store.update_inventory_stock(item.id, int(stock), condition)
                st.success("Stock updated.")
                st.rerun()
        with b2:
            confirm = st.checkbox("I understand this will permanently delete the item.", key="item_delete_confirm")
            if st.button("Delete item", disabled=not confirm):
                store.delete_inventory_item(item.id)
                st.success("Item deleted.")
                st.rerun()
    else:
        st.caption("No inventory items yet.")

    st.divider()

    st.subheader("Add item")
    with st.form("add_item", clear_on_submit=True):
        c1, c2, c3 = st.columns(3)
        with c1:
            name = st.text_input("Name")
            category = st.selectbox("Category", INVENTORY_CATEGORIES, key="item_category")
        with c2:
            current = st.number_input("Current stock", min_value=0, step=1, key="item_stock")
            minimum = st.number_input("Minimum stock", min_value=0, step=1, value=1)
            maximum = st.number_input("Maximum stock", min_value=0, step=1, value=10)
        with c3:
            condition = st.selectbox("Condition", INVENTORY_CONDITIONS, index=1, key="item_condition")
            location = st.text_input("Location")
            description = st.text_input("Description")
        submitted = st.form_submit_button("Add item")

    if submitted:
        errors = []
        if not name.strip():
            errors.append("Name is required.")
        if maximum and minimum > maximum:
            errors.append("Minimum stock cannot be above maximum stock.")
        if not show_errors(errors):
            store.add_inventory_item(
                InventoryItem(
                    id=None,
                    name=name.strip(),
                    category=category,
                    current_stock=int(current),
                    min_stock=int(minimum),
                    max_stock=int(maximum),
                    condition=condition,
                    location=location.strip(),
                    description=description.strip(),
                )
            )
            st.success("Item added.")
            st.rerun()


def reports_page():
    st.header("🧾 Reports")

    collections = get_feed().collections

    st.subheader("PDF reports")
    labels = {
        "dashboard": "Dashboard overview",
        "members": "Members",
        "transactions": "Contributions & expenses",
        "events": "All events",
        "training": "Training sessions",
        "friendlies": "Friendly matches",
        "attendance": "Attendance",
        "leadership": "Leadership",
        "analytics": "Player analytics",
        "fees": "Membership fees",
        "inventory": "Inventory",
    }
    kind = st.selectbox("Report", list(REPORT_KINDS), format_func=labels.get)
    start, end = date_window("reports")

    if st.button("Generate PDF", type="primary"):
        try:
            st.session_state.report_file = export_report(kind, collections, start=start, end=end)
        except ReportDateRangeError as e:
            st.session_state.report_file = None
            st.error(str(e))
        except ReportError as e:
            st.session_state.report_file = None
            logger.exception("Report export failed")
            st.error(f"Could not generate the report: {e}")

    report_file = st.session_state.get("report_file")
    if report_file:
        st.download_button(
            f"Download {report_file.filename}",
            data=report_file.content,
            file_name=report_file.filename,
            mime=report_file.mime,
        )

    st.divider()

    st.subheader("Export to CSV")
    names = member_names(collections.members)
    if collections.members:
        st.download_button(
            "Download members.csv",
            data=utils.records_to_csv_bytes(
                collections.members,
                [("id", "ID"), ("name", "Name"), ("position", "Position"), ("jersey_number", "Jersey"),
                 ("email", "Email"), ("phone", "Phone"), ("status", "Status"), ("date_joined", "Date Joined")],
            ),
            file_name=f"{CLUB_SLUG}-members.csv",
            mime="text/csv",
        )
    else:
        st.caption("No members to export.")

    if collections.contributions:
        df = pd.DataFrame(
            [
                {
                    "Date": c.date,
                    "Member": names.get(c.member_id, UNKNOWN_MEMBER),
                    "Type": c.type,
                    "Amount": c.amount,
                    "Description": c.description,
                    "Payment Method": c.payment_method,
                }
                for c in collections.contributions
            ]
        )
        st.download_button(
            "Download contributions.csv",
            data=df.to_csv(index=False).encode("utf-8"),
            file_name=f"{CLUB_SLUG}-contributions.csv",
            mime="text/csv",
        )
    else:
        st.caption("No contributions to export.")

    if collections.expenses:
        st.download_button(
            "Download expenses.csv",
            data=utils.records_to_csv_bytes(
                collections.expenses,
                [("date", "Date"), ("category", "Category"), ("amount", "Amount"),
                 ("description", "Description"), ("payment_method", "Payment Method")],
            ),
            file_name=f"{CLUB_SLUG}-expenses.csv",
            mime="text/csv",
        )
    else:
        st.caption("No expenses to export.")


def settings_page():
    st.header("⚙️ Settings")

    st.subheader("Database")
    st.caption(f"Using {db.DB_FILE} (set TEAM_DB_FILE to change).")

    st.divider()

    st.subheader("Sample data")
    st.caption("Insert a small squad, sessions, a friendly and some money movements (adds new rows each run).")
    if st.button("Insert sample data"):
        utils.insert_sample_data()
        st.success("Sample data inserted.")
        st.rerun()


def main_app():
    st.sidebar.title(f"⚽ {CLUB_NAME}")
    st.sidebar.caption("Team Management Portal")

    pages = [
        "Dashboard",
        "Members",
        "Training",
        "Friendlies",
        "Attendance",
        "Transactions",
        "Leadership",
        "Analytics",
        "Membership Fees",
        "Inventory",
        "Reports",
        "Settings",
    ]
    if "page" not in st.session_state:
        st.session_state.page = "Dashboard"
    st.session_state.page = st.sidebar.radio("Navigate", pages, index=pages.index(st.session_state.page))

    if st.session_state.page == "Dashboard":
        dashboard_page()
    elif st.session_state.page == "Members":
        members_page()
    elif st.session_state.page == "Training":
        training_page()
    elif st.session_state.page == "Friendlies":
        friendlies_page()
    elif st.session_state.page == "Attendance":
        attendance_page()
    elif st.session_state.page == "Transactions":
        transactions_page()
    elif st.session_state.page == "Leadership":
        leadership_page()
    elif st.session_state.page == "Analytics":
        analytics_page()
    elif st.session_state.page == "Membership Fees":
        membership_fees_page()
    elif st.session_state.page == "Inventory":
        inventory_page()
    elif st.session_state.page == "Reports":
        reports_page()
    elif st.session_state.page == "Settings":
        settings_page()


# --------- App entry ---------

def run():
    init_once()
    main_app()


if __name__ == "__main__":
    run()
