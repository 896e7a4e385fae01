"""
reports.py
Paginated PDF exports (dashboard, roster, money, events, attendance, leadership,
player analytics, membership fees, inventory).

Layout runs top-down with a vertical cursor. Each page goes
HEADER -> STATS_BLOCK -> (SECTION_HEADING -> TABLE)* -> FOOTER, and a page break
is taken whenever the next block would run into the space reserved for the footer.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date, datetime
from enum import Enum
from io import BytesIO
from typing import Callable, Sequence

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.units import mm
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas

from aggregation import (
    attendance_summary,
    attendance_trends,
    build_dashboard,
    filter_by_date_range,
    low_stock_items,
    member_names,
    player_analytics,
    round_half_up,
    safe_amount,
    stock_status,
    team_analytics,
    total_contributions,
    total_expenses,
)
from fees import fee_structure, payment_status, remaining_balance
from models import (
    CLUB_NAME,
    CLUB_SLUG,
    UNKNOWN_EVENT,
    UNKNOWN_MEMBER,
    Attendance,
    Collections,
    Contribution,
    DashboardData,
    Event,
    Expense,
    InventoryItem,
    Leadership,
    Member,
    MembershipFee,
)
from utils import format_date, format_ugx, parse_iso, parse_record_date

logger = logging.getLogger(__name__)


# =============================================================================
# Errors
# =============================================================================

class ReportError(Exception):
    """Base class for report export errors."""


class ReportDateRangeError(ReportError, ValueError):
    """Raised when a filtered export gets an unusable date range."""


class ReportLayoutError(ReportError):
    """Raised when blocks are added to a page out of order."""


# =============================================================================
# Theme
# =============================================================================

COLORS = {
    "primary": colors.HexColor("#4f4fe6"),
    "yellow": colors.HexColor("#eab308"),
    "secondary": colors.HexColor("#f43f4e"),
    "green": colors.HexColor("#22c55e"),
    "red": colors.HexColor("#ef4444"),
    "gray": colors.HexColor("#6b7280"),
    "dark_gray": colors.HexColor("#374151"),
    "light_gray": colors.HexColor("#f3f4f6"),
    "white": colors.white,
    "black": colors.black,
}

# Stat box fills
BOX = {
    "blue": colors.HexColor("#dbeafe"),
    "green": colors.HexColor("#d1fae5"),
    "lime": colors.HexColor("#dcfce7"),
    "amber": colors.HexColor("#fef3c7"),
    "rose": colors.HexColor("#fee2e2"),
    "indigo": colors.HexColor("#e0e7ff"),
    "pink": colors.HexColor("#fce7f3"),
}

FONTS = {"title": 18, "subtitle": 14, "heading": 12, "body": 10, "small": 8}
REGULAR = "Helvetica"
BOLD = "Helvetica-Bold"
ITALIC = "Helvetica-Oblique"

MARGIN = 20 * mm
FOOTER_RESERVE = 30 * mm
CELL_PADDING = 2.5 * mm
STAT_BOX_HEIGHT = 25 * mm
STAT_BOX_GAP = 10
ELLIPSIS = "..."


class Stage(Enum):
    HEADER = "header"
    STATS_BLOCK = "stats_block"
    SECTION_HEADING = "section_heading"
    TABLE = "table"
    FOOTER = "footer"


_NEXT_STAGES = {
    None: {Stage.HEADER},
    Stage.HEADER: {Stage.STATS_BLOCK, Stage.SECTION_HEADING, Stage.FOOTER},
    Stage.STATS_BLOCK: {Stage.SECTION_HEADING, Stage.FOOTER},
    Stage.SECTION_HEADING: {Stage.TABLE},
    Stage.TABLE: {Stage.SECTION_HEADING, Stage.FOOTER},
    Stage.FOOTER: set(),
}


@dataclass(frozen=True)
class StatBox:
    label: str
    value: str
    color: colors.Color = BOX["blue"]


@dataclass(frozen=True)
class Column:
    header: str
    width: float | None = None  # points; None sizes to content
    align: str = "left"


@dataclass(frozen=True)
class ReportFile:
    filename: str
    content: bytes
    mime: str = "application/pdf"


# =============================================================================
# Text helpers
# =============================================================================

def fit_text(text: str, font: str, size: float, max_width: float) -> str:
    """Truncate ``text`` with an ellipsis so it fits in ``max_width`` points."""
    t = text or ""
    if stringWidth(t, font, size) <= max_width:
        return t
    if stringWidth(ELLIPSIS, font, size) > max_width:
        return ""
    lo, hi = 0, len(t)
    best = ELLIPSIS
    while lo <= hi:
        mid = (lo + hi) // 2
        candidate = t[:mid].rstrip() + ELLIPSIS
        if stringWidth(candidate, font, size) <= max_width:
            best = candidate
            lo = mid + 1
        else:
            hi = mid - 1
    return best


def column_widths(columns: Sequence[Column], rows: Sequence[Sequence[str]], available: float,
                  size: float = FONTS["body"]) -> list[float]:
    """
    Size columns to their content, never wider than ``available`` in total.
    Oversubscribed tables shrink every column by the same factor; spare room
    goes to the content-sized columns.
    """
    natural = []
    for i, col in enumerate(columns):
        if col.width is not None:
            natural.append(col.width)
            continue
        widest = stringWidth(col.header, BOLD, size)
        for row in rows:
            if i < len(row):
                widest = max(widest, stringWidth(str(row[i]), REGULAR, size))
        natural.append(min(widest + 2 * CELL_PADDING, available * 0.4))

    total = sum(natural)
    if total <= 0:
        return [available / len(columns)] * len(columns) if columns else []
    if total > available:
        scale = available / total
        return [w * scale for w in natural]

    flexible = [i for i, col in enumerate(columns) if col.width is None] or list(range(len(columns)))
    spare = (available - total) / len(flexible)
    return [w + spare if i in flexible else w for i, w in enumerate(natural)]


def _title_case(value: str | None) -> str:
    return (value or "").capitalize()


# =============================================================================
# Canvas with "Page i of N" footers
# =============================================================================

class _NumberedCanvas(canvas.Canvas):
    """Defers page output until save() so every footer knows the page total."""

    def __init__(self, *args, footer: Callable[[canvas.Canvas, int], None] | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self._saved_page_states: list[dict] = []
        self._footer = footer

    def showPage(self):
        self._saved_page_states.append(dict(self.__dict__))
        self._startPage()

    def save(self):
        total = len(self._saved_page_states)
        for state in self._saved_page_states:
            self.__dict__.update(state)
            if self._footer is not None:
                self._footer(self, total)
            super().showPage()
        super().save()


# =============================================================================
# Layout engine
# =============================================================================

class BaseReport:
    def __init__(self, orientation: str = "portrait", generated_at: datetime | None = None):
        self.pagesize = landscape(A4) if orientation == "landscape" else A4
        self.page_width, self.page_height = self.pagesize
        self.generated_at = generated_at or datetime.now()
        self._buffer = BytesIO()
        self.canvas = _NumberedCanvas(self._buffer, pagesize=self.pagesize, footer=self._draw_footer)
        self.y = MARGIN
        self.page_count = 1
        self.stage: Stage | None = None

    # ---- cursor ----

    @property
    def content_width(self) -> float:
        return self.page_width - 2 * MARGIN

    @property
    def content_bottom(self) -> float:
        return self.page_height - FOOTER_RESERVE

    def _ty(self, y: float) -> float:
        """Top-down cursor position to ReportLab's bottom-up coordinate."""
        return self.page_height - y

    def _advance(self, stage: Stage) -> None:
        if stage not in _NEXT_STAGES[self.stage]:
            current = self.stage.value if self.stage else "start"
            raise ReportLayoutError(f"Cannot add {stage.value} after {current}")
        self.stage = stage

    def new_page(self) -> None:
        self.canvas.showPage()
        self.page_count += 1
        self.y = MARGIN

    def check_page_break(self, required: float) -> bool:
        if self.y + required > self.content_bottom:
            self.new_page()
            return True
        return False

    def _text(self, text: str, x: float, y: float, font: str = REGULAR, size: float = FONTS["body"],
              color=COLORS["dark_gray"], align: str = "left") -> None:
        c = self.canvas
        c.setFont(font, size)
        c.setFillColor(color)
        if align == "right":
            c.drawRightString(x, self._ty(y), text)
        elif align == "center":
            c.drawCentredString(x, self._ty(y), text)
        else:
            c.drawString(x, self._ty(y), text)

    # ---- blocks ----

    def add_header(self, title: str, subtitle: str | None = None) -> None:
        self._advance(Stage.HEADER)
        c = self.canvas
        badge = 20 * mm
        c.setFillColor(COLORS["primary"])
        c.roundRect(MARGIN, self._ty(MARGIN + badge), badge, badge, 3 * mm, fill=1, stroke=0)
        initials = "".join(word[0] for word in CLUB_NAME.split()[:2]).upper()
        self._text(initials, MARGIN + badge / 2, MARGIN + badge / 2 + 2 * mm, BOLD, FONTS["subtitle"],
                   COLORS["white"], align="center")

        self._text(CLUB_NAME.upper(), MARGIN + 25 * mm, MARGIN + 8 * mm, BOLD, FONTS["title"], COLORS["primary"])
        self._text("Team Management Portal", MARGIN + 25 * mm, MARGIN + 15 * mm, REGULAR, FONTS["subtitle"])
        self._text(fit_text(title, BOLD, FONTS["title"], self.content_width), MARGIN, MARGIN + 35 * mm,
                   BOLD, FONTS["title"])
        if subtitle:
            self._text(fit_text(subtitle, REGULAR, FONTS["body"], self.content_width), MARGIN, MARGIN + 42 * mm,
                       REGULAR, FONTS["body"], COLORS["gray"])
        self.y = MARGIN + 50 * mm

    def add_stats(self, stats: Sequence[StatBox]) -> None:
        self._advance(Stage.STATS_BLOCK)
        if not stats:
            return
        self.check_page_break(STAT_BOX_HEIGHT)
        c = self.canvas
        box_width = (self.content_width - STAT_BOX_GAP * (len(stats) - 1)) / len(stats)
        inner = box_width - 2 * mm
        for i, stat in enumerate(stats):
            x = MARGIN + i * (box_width + STAT_BOX_GAP)
            c.setFillColor(stat.color)
            c.setStrokeColor(COLORS["gray"])
            c.rect(x, self._ty(self.y + STAT_BOX_HEIGHT), box_width, STAT_BOX_HEIGHT, fill=1, stroke=1)
            centre = x + box_width / 2
            self._text(fit_text(stat.label, REGULAR, FONTS["small"], inner), centre, self.y + 8 * mm,
                       REGULAR, FONTS["small"], align="center")
            self._text(fit_text(stat.value, BOLD, FONTS["heading"], inner), centre, self.y + 18 * mm,
                       BOLD, FONTS["heading"], align="center")
        self.y += STAT_BOX_HEIGHT + 15

    def add_section(self, heading: str) -> None:
        self._advance(Stage.SECTION_HEADING)
        # Keep the heading together with the table header and its first row
        row_height = FONTS["body"] + 2 * CELL_PADDING
        self.check_page_break(10 * mm + 2 * row_height)
        self._text(heading, MARGIN, self.y + FONTS["subtitle"], BOLD, FONTS["subtitle"])
        self.y += 10 * mm

    def add_table(self, columns: Sequence[Column], rows: Sequence[Sequence[str]],
                  head_fill=COLORS["primary"], head_text=COLORS["white"]) -> None:
        self._advance(Stage.TABLE)
        size = FONTS["body"]
        row_height = size + 2 * CELL_PADDING
        widths = column_widths(columns, rows, self.content_width, size)

        self.check_page_break(2 * row_height)
        self._draw_table_header(columns, widths, row_height, head_fill, head_text)

        for index, row in enumerate(rows):
            if self.check_page_break(row_height):
                self._draw_table_header(columns, widths, row_height, head_fill, head_text)
            if index % 2 == 1:
                self.canvas.setFillColor(COLORS["light_gray"])
                self.canvas.rect(MARGIN, self._ty(self.y + row_height), sum(widths), row_height, fill=1, stroke=0)
            self._draw_row(columns, widths, [str(cell) for cell in row], row_height, REGULAR, COLORS["dark_gray"])
            self.y += row_height

        if not rows:
            self._text("No records", MARGIN + CELL_PADDING, self.y + row_height / 2 + size * 0.35,
                       ITALIC, size, COLORS["gray"])
            self.y += row_height
        self.y += 10 * mm

    def _draw_table_header(self, columns, widths, row_height, fill, text_color) -> None:
        self.canvas.setFillColor(fill)
        self.canvas.rect(MARGIN, self._ty(self.y + row_height), sum(widths), row_height, fill=1, stroke=0)
        self._draw_row(columns, widths, [col.header for col in columns], row_height, BOLD, text_color)
        self.y += row_height

    def _draw_row(self, columns, widths, cells, row_height, font, color) -> None:
        size = FONTS["body"]
        baseline = self.y + row_height / 2 + size * 0.35
        x = MARGIN
        for col, width, cell in zip(columns, widths, cells):
            text = fit_text(cell, font, size, width - 2 * CELL_PADDING)
            if col.align == "right":
                self._text(text, x + width - CELL_PADDING, baseline, font, size, color, align="right")
            elif col.align == "center":
                self._text(text, x + width / 2, baseline, font, size, color, align="center")
            else:
                self._text(text, x + CELL_PADDING, baseline, font, size, color)
            x += width

    def _draw_footer(self, c: canvas.Canvas, total_pages: int) -> None:
        c.saveState()
        c.setStrokeColor(COLORS["light_gray"])
        c.line(MARGIN, 15 * mm, self.page_width - MARGIN, 15 * mm)
        c.setFont(REGULAR, FONTS["small"])
        c.setFillColor(COLORS["gray"])
        c.drawRightString(self.page_width - MARGIN, 10 * mm, f"Page {c.getPageNumber()} of {total_pages}")
        stamp = f"Generated on {self.generated_at:%b %d, %Y} at {self.generated_at:%H:%M:%S}"
        c.drawString(MARGIN, 10 * mm, stamp)
        c.restoreState()

    def finish(self) -> bytes:
        self._advance(Stage.FOOTER)
        self.canvas.showPage()
        self.canvas.save()
        return self._buffer.getvalue()


# =============================================================================
# Date ranges & file names
# =============================================================================

def _coerce_day(value, label: str) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return parse_iso(str(value))
    except ValueError:
        raise ReportDateRangeError(f"{label} must be a valid ISO date (YYYY-MM-DD).") from None


def validate_date_range(start=None, end=None) -> tuple[date | None, date | None]:
    start_day = _coerce_day(start, "Start date")
    end_day = _coerce_day(end, "End date")
    if start_day is not None and end_day is not None and end_day < start_day:
        raise ReportDateRangeError("End date must be on or after the start date.")
    return start_day, end_day


def report_filename(slug: str, start: date | None = None, end: date | None = None) -> str:
    base = f"{CLUB_SLUG}-{slug}"
    if start is not None or end is not None:
        first = start.isoformat() if start else "start"
        last = end.isoformat() if end else "open"
        base = f"{base}_{first}_to_{last}"
    return f"{base}.pdf"


def range_label(start: date | None, end: date | None) -> str | None:
    if start is None and end is None:
        return None
    first = format_date(start) if start else "the beginning"
    last = format_date(end) if end else "today"
    return f"{first} - {last}"


# =============================================================================
# Row builders (lookup misses fall back to placeholders)
# =============================================================================

def contribution_rows(contributions: Sequence[Contribution], members: Sequence[Member]) -> list[list[str]]:
    names = member_names(members)
    return [
        [
            format_date(c.date),
            names.get(c.member_id, UNKNOWN_MEMBER),
            _title_case(c.type),
            format_ugx(c.amount) if c.type == "monetary" and c.amount is not None else "N/A",
            c.description,
            c.payment_method or "N/A",
        ]
        for c in contributions
    ]


def expense_rows(expenses: Sequence[Expense]) -> list[list[str]]:
    return [
        [
            format_date(e.date),
            _title_case(e.category),
            format_ugx(e.amount),
            e.description,
            e.payment_method or "N/A",
        ]
        for e in expenses
    ]


def attendance_rows(collections: Collections) -> list[list[str]]:
    members = {m.id: m for m in collections.members}
    events = {e.id: e for e in collections.events}

    def event_day(record: Attendance) -> date:
        event = events.get(record.event_id)
        return (parse_record_date(event.date) if event else None) or date.min

    rows = []
    for record in sorted(collections.attendance, key=event_day, reverse=True):
        member = members.get(record.member_id)
        event = events.get(record.event_id)
        rows.append(
            [
                format_date(event.date) if event else "N/A",
                ("Training" if event.type == "training" else event.label) if event else UNKNOWN_EVENT,
                member.name if member else UNKNOWN_MEMBER,
                _title_case(record.status),
                record.notes or "No notes",
            ]
        )
    return rows


def leadership_rows(leadership: Sequence[Leadership], members: Sequence[Member]) -> list[list[str]]:
    names = member_names(members)
    return [
        [
            names.get(role.member_id, UNKNOWN_MEMBER),
            role.role,
            format_date(role.start_date),
            "Active" if role.is_active else "Inactive",
        ]
        for role in sorted(leadership, key=lambda r: r.role)
    ]


def _is_upcoming(event: Event, today: date) -> bool:
    day = parse_record_date(event.date)
    return day is not None and day > today


# =============================================================================
# Reports
# =============================================================================

def dashboard_report(data: DashboardData, start: date | None = None, end: date | None = None,
                     now: datetime | None = None) -> bytes:
    now = now or datetime.now()
    report = BaseReport(generated_at=now)
    report.add_header("Dashboard Overview", range_label(start, end) or f"Generated on {now:%b %d, %Y}")
    stats = data.stats
    report.add_stats(
        [
            StatBox("Active Members", str(stats.active_members), BOX["blue"]),
            StatBox("Training Sessions", str(stats.training_sessions), BOX["lime"]),
            StatBox("Friendly Matches", str(stats.friendlies), BOX["amber"]),
            StatBox("Total Contributions", format_ugx(stats.total_contributions), BOX["green"]),
        ]
    )

    balance = stats.remaining_balance
    report.add_section("Financial Summary")
    report.add_table(
        [Column("Item"), Column("Amount", align="right")],
        [
            ["Total Contributions", format_ugx(stats.total_contributions)],
            ["Total Expenses", format_ugx(stats.total_expenses)],
            ["Available Balance" if balance >= 0 else "Deficit", format_ugx(abs(balance))],
        ],
    )

    report.add_section("Monthly Trends")
    report.add_table(
        [Column("Month"), Column("Contributions", align="right"), Column("Expenses", align="right"),
         Column("Net", align="right")],
        [[t.month, format_ugx(t.contributions), format_ugx(t.expenses), format_ugx(t.net)]
         for t in data.financial_trends],
    )

    if data.attendance_trends:
        report.add_section("Training Attendance")
        report.add_table(
            [Column("Date"), Column("Session"), Column("Present", align="center"),
             Column("Active Members", align="center"), Column("Rate", align="right")],
            [[format_date(t.date), t.description, str(t.present_count), str(t.total_members),
              f"{round_half_up(t.attendance_rate)}%"] for t in data.attendance_trends],
        )

    if data.upcoming_events:
        report.add_section("Upcoming Events")
        report.add_table(
            [Column("Date"), Column("Type"), Column("Description"), Column("Location")],
            [
                [
                    format_date(e.date),
                    "Training" if e.type == "training" else f"Friendly vs {e.opponent or 'TBD'}",
                    e.description or "No description",
                    e.location,
                ]
                for e in data.upcoming_events
            ],
        )

    if data.recent_transactions:
        report.add_section("Recent Transactions")
        report.add_table(
            [Column("Date"), Column("Type"), Column("Description"), Column("Amount", align="right")],
            [
                [
                    format_date(t.date),
                    _title_case(t.kind),
                    t.description,
                    f"{'+' if t.kind == 'contribution' else '-'}{format_ugx(t.amount)}",
                ]
                for t in data.recent_transactions
            ],
        )
    return report.finish()


def members_report(members: Sequence[Member], now: datetime | None = None) -> bytes:
    report = BaseReport(orientation="landscape", generated_at=now)
    report.add_header("Team Members", f"Total: {len(members)} members")
    by_status = {status: sum(1 for m in members if m.status == status) for status in ("active", "inactive", "injured")}
    report.add_stats(
        [
            StatBox("Total Members", str(len(members)), BOX["blue"]),
            StatBox("Active", str(by_status["active"]), BOX["green"]),
            StatBox("Inactive", str(by_status["inactive"]), BOX["amber"]),
            StatBox("Injured", str(by_status["injured"]), BOX["rose"]),
        ]
    )
    report.add_section("Squad")
    report.add_table(
        [
            Column("Jersey #", width=20 * mm, align="center"),
            Column("Name"),
            Column("Position"),
            Column("Status", align="center"),
            Column("Email"),
            Column("Phone"),
            Column("Date Joined"),
        ],
        [
            [str(m.jersey_number), m.name, m.position, _title_case(m.status), m.email, m.phone,
             format_date(m.date_joined)]
            for m in sorted(members, key=lambda m: m.name.lower())
        ],
    )
    return report.finish()


def transactions_report(contributions: Sequence[Contribution], expenses: Sequence[Expense],
                        members: Sequence[Member], subtitle: str | None = None,
                        now: datetime | None = None) -> bytes:
    now = now or datetime.now()
    contributed = round_half_up(total_contributions(contributions))
    spent = round_half_up(total_expenses(expenses))
    balance = contributed - spent

    report = BaseReport(orientation="landscape", generated_at=now)
    report.add_header("Contributions & Expenses", subtitle or f"Financial Report - {now:%b %d, %Y}")
    report.add_stats(
        [
            StatBox("Total Contributions", format_ugx(contributed), BOX["green"]),
            StatBox("Total Expenses", format_ugx(spent), BOX["rose"]),
            StatBox("Available Balance" if balance >= 0 else "Deficit", format_ugx(abs(balance)),
                    BOX["blue"] if balance >= 0 else BOX["amber"]),
        ]
    )
    if contributions:
        report.add_section("Contributions")
        report.add_table(
            [Column("Date"), Column("Member"), Column("Type"), Column("Amount", align="right"),
             Column("Description"), Column("Payment Method")],
            contribution_rows(contributions, members),
            head_fill=COLORS["green"],
        )
    if expenses:
        report.add_section("Expenses")
        report.add_table(
            [Column("Date"), Column("Category"), Column("Amount", align="right"), Column("Description"),
             Column("Payment Method")],
            expense_rows(expenses),
            head_fill=COLORS["red"],
        )
    return report.finish()


def events_report(events: Sequence[Event], event_type: str = "all", now: datetime | None = None) -> bytes:
    now = now or datetime.now()
    today = now.date()
    chosen = list(events) if event_type == "all" else [e for e in events if e.type == event_type]
    title = {"all": "All Events", "training": "Training Sessions", "friendly": "Friendly Matches"}[event_type]

    upcoming = sum(1 for e in chosen if _is_upcoming(e, today))
    boxes = [
        StatBox("Total Events", str(len(chosen)), BOX["blue"]),
        StatBox("Upcoming", str(upcoming), BOX["green"]),
        StatBox("Past", str(len(chosen) - upcoming), BOX["amber"]),
    ]
    if event_type == "all":
        boxes += [
            StatBox("Training", str(sum(1 for e in chosen if e.type == "training")), BOX["indigo"]),
            StatBox("Friendlies", str(sum(1 for e in chosen if e.type == "friendly")), BOX["pink"]),
        ]

    report = BaseReport(generated_at=now)
    report.add_header(title, f"Total: {len(chosen)} events")
    report.add_stats(boxes)
    report.add_section("Schedule")
    report.add_table(
        [Column("Date"), Column("Time"), Column("Type"), Column("Description/Opponent"), Column("Location"),
         Column("Status")],
        [
            [
                format_date(e.date),
                e.time or "",
                _title_case(e.type),
                e.label,
                e.location,
                "Upcoming" if _is_upcoming(e, today) else "Past",
            ]
            for e in sorted(chosen, key=lambda e: parse_record_date(e.date) or date.min)
        ],
    )

    results = [e for e in chosen if e.type == "friendly" and e.is_completed and e.match_details]
    if results:
        report.add_section("Results")
        report.add_table(
            [Column("Date"), Column("Opponent"), Column("Score", align="center"), Column("Result", align="center"),
             Column("Venue")],
            [
                [
                    format_date(e.date),
                    e.opponent or "TBD",
                    f"{e.match_details.home_score} - {e.match_details.away_score}",
                    _title_case(e.match_details.result),
                    _title_case(e.match_details.venue) or "N/A",
                ]
                for e in sorted(results, key=lambda e: parse_record_date(e.date) or date.min, reverse=True)
            ],
        )
    return report.finish()


def attendance_report(collections: Collections, start: date | None = None, end: date | None = None,
                      now: datetime | None = None) -> bytes:
    now = now or datetime.now()
    rows = attendance_rows(collections)
    summary = attendance_summary(attendance_trends(collections, start=start or date.min, end=end, now=now))

    report = BaseReport(generated_at=now)
    report.add_header("Attendance Report", range_label(start, end) or f"{len(rows)} attendance records")
    report.add_stats(
        [
            StatBox("Total Sessions", str(summary.total_sessions if summary else 0), BOX["blue"]),
            StatBox("Average Attendance", str(summary.average_attendance if summary else 0), BOX["green"]),
            StatBox("Highest Attendance", str(summary.highest_attendance if summary else 0), BOX["lime"]),
            StatBox("Lowest Attendance", str(summary.lowest_attendance if summary else 0), BOX["amber"]),
        ]
    )
    report.add_section("Attendance Records")
    report.add_table(
        [Column("Date"), Column("Event"), Column("Member"), Column("Status", align="center"), Column("Notes")],
        rows,
    )
    return report.finish()


def leadership_report(leadership: Sequence[Leadership], members: Sequence[Member],
                      now: datetime | None = None) -> bytes:
    active = sum(1 for role in leadership if role.is_active)
    report = BaseReport(generated_at=now)
    report.add_header("Leadership Structure", f"{len(leadership)} leadership positions")
    report.add_stats(
        [
            StatBox("Total Positions", str(len(leadership)), BOX["blue"]),
            StatBox("Active Roles", str(active), BOX["green"]),
            StatBox("Inactive Roles", str(len(leadership) - active), BOX["amber"]),
        ]
    )
    report.add_section("Roles")
    report.add_table(
        [Column("Member"), Column("Role"), Column("Start Date"), Column("Status", align="center")],
        leadership_rows(leadership, members),
        head_fill=COLORS["yellow"],
        head_text=COLORS["black"],
    )
    return report.finish()


def player_analytics_report(collections: Collections, subtitle: str | None = None,
                            now: datetime | None = None) -> bytes:
    now = now or datetime.now()
    players = player_analytics(collections, now=now)
    team = team_analytics(players)

    report = BaseReport(orientation="landscape", generated_at=now)
    report.add_header("Player Analytics", subtitle or f"{team.total_players} active players")
    report.add_stats(
        [
            StatBox("Active Players", str(team.total_players), BOX["blue"]),
            StatBox("Average Rating", str(team.average_rating), BOX["green"]),
            StatBox("Top Performer", team.top_performer.member.name if team.top_performer else "N/A", BOX["amber"]),
            StatBox("Top Scorer", team.top_scorer.member.name if team.top_scorer else "N/A", BOX["pink"]),
        ]
    )
    report.add_section("Ratings")
    report.add_table(
        [
            Column("Player"),
            Column("Position"),
            Column("Attendance", align="right"),
            Column("Late", align="center"),
            Column("Excused", align="center"),
            Column("Goals", align="center"),
            Column("Assists", align="center"),
            Column("MOTM", align="center"),
            Column("Contributed", align="right"),
            Column("Rating", align="right"),
        ],
        [
            [
                p.member.name,
                p.member.position,
                f"{p.attended_sessions}/{p.total_sessions} ({round_half_up(p.attendance_rate)}%)",
                str(p.late_arrivals),
                str(p.excused_absences),
                str(p.goals_scored),
                str(p.assists),
                str(p.man_of_the_match_awards),
                format_ugx(p.total_contribution_amount),
                str(p.overall_rating),
            ]
            for p in players
        ],
    )
    return report.finish()


def _period_label(period: str) -> str:
    structure = fee_structure(period)
    return structure.label if structure else period


def membership_fees_report(fees_due: Sequence[MembershipFee], members: Sequence[Member],
                           now: datetime | None = None) -> bytes:
    now = now or datetime.now()
    today = now.date()
    names = member_names(members)
    statuses = [payment_status(fee, today) for fee in fees_due]
    collected = round_half_up(sum(safe_amount(fee.amount_paid) for fee in fees_due))
    outstanding = round_half_up(sum(remaining_balance(fee) for fee in fees_due))

    report = BaseReport(orientation="landscape", generated_at=now)
    report.add_header("Membership Fees", f"{len(fees_due)} fee records")
    report.add_stats(
        [
            StatBox("Collected", format_ugx(collected), BOX["green"]),
            StatBox("Outstanding", format_ugx(outstanding), BOX["rose"]),
            StatBox("Paid", str(statuses.count("paid")), BOX["blue"]),
            StatBox("Overdue", str(statuses.count("overdue")), BOX["amber"]),
        ]
    )
    report.add_section("Fees")
    report.add_table(
        [Column("Member"), Column("Period"), Column("Start"), Column("End"), Column("Due"),
         Column("Amount", align="right"), Column("Paid", align="right"), Column("Status", align="center")],
        [
            [
                names.get(fee.member_id, UNKNOWN_MEMBER),
                _period_label(fee.period),
                format_date(fee.start_date),
                format_date(fee.end_date),
                format_date(fee.due_date),
                format_ugx(fee.amount),
                format_ugx(fee.amount_paid),
                _title_case(status),
            ]
            for fee, status in zip(fees_due, statuses)
        ],
    )
    return report.finish()


def inventory_report(items: Sequence[InventoryItem], now: datetime | None = None) -> bytes:
    statuses = [stock_status(i.current_stock, i.min_stock, i.max_stock) for i in items]
    report = BaseReport(generated_at=now)
    report.add_header("Inventory", f"{len(items)} items")
    report.add_stats(
        [
            StatBox("Items", str(len(items)), BOX["blue"]),
            StatBox("Low / Out of Stock", str(len(low_stock_items(items))), BOX["amber"]),
            StatBox("Needs Replacement", str(sum(1 for i in items if i.condition == "needs_replacement")), BOX["rose"]),
        ]
    )
    report.add_section("Stock")
    report.add_table(
        [Column("Item"), Column("Category"), Column("Stock", align="center"), Column("Min / Max", align="center"),
         Column("Condition"), Column("Status"), Column("Location")],
        [
            [
                i.name,
                i.category,
                str(i.current_stock),
                f"{i.min_stock} / {i.max_stock}",
                i.condition.replace("_", " ").capitalize(),
                status.replace("_", " ").capitalize(),
                i.location,
            ]
            for i, status in zip(items, statuses)
        ],
    )
    return report.finish()


# =============================================================================
# Entry point used by the UI
# =============================================================================

REPORT_KINDS = {
    "dashboard": "dashboard",
    "members": "members",
    "transactions": "contributions-expenses",
    "events": "events",
    "training": "training",
    "friendlies": "friendly",
    "attendance": "attendance",
    "leadership": "leadership",
    "analytics": "player-analytics",
    "fees": "membership-fees",
    "inventory": "inventory",
}


def _window(collections: Collections, start: date | None, end: date | None) -> Collections:
    if start is None and end is None:
        return collections
    events = filter_by_date_range(collections.events, start, end)
    kept_events = {e.id for e in events}
    return replace(
        collections,
        events=events,
        contributions=filter_by_date_range(collections.contributions, start, end),
        expenses=filter_by_date_range(collections.expenses, start, end),
        attendance=[a for a in collections.attendance if a.event_id in kept_events],
        membership_fees=filter_by_date_range(collections.membership_fees, start, end, key=lambda f: f.start_date),
    )


def export_report(kind: str, collections: Collections, start=None, end=None,
                  now: datetime | None = None) -> ReportFile:
    """
    Build one report. The date range is validated before anything is rendered.
    """
    if kind not in REPORT_KINDS:
        raise ReportError(f"Unknown report: {kind}")
    start_day, end_day = validate_date_range(start, end)
    now = now or datetime.now()
    scoped = _window(collections, start_day, end_day)

    if kind == "dashboard":
        content = dashboard_report(build_dashboard(collections, start_day, end_day, now=now), start_day, end_day, now)
    elif kind == "members":
        content = members_report(scoped.members, now=now)
    elif kind == "transactions":
        content = transactions_report(scoped.contributions, scoped.expenses, scoped.members,
                                      subtitle=range_label(start_day, end_day), now=now)
    elif kind == "events":
        content = events_report(scoped.events, "all", now=now)
    elif kind == "training":
        content = events_report(scoped.events, "training", now=now)
    elif kind == "friendlies":
        content = events_report(scoped.events, "friendly", now=now)
    elif kind == "attendance":
        content = attendance_report(scoped, start_day, end_day, now=now)
    elif kind == "analytics":
        content = player_analytics_report(scoped, subtitle=range_label(start_day, end_day), now=now)
    elif kind == "fees":
        content = membership_fees_report(scoped.membership_fees, scoped.members, now=now)
    elif kind == "inventory":
        content = inventory_report(scoped.inventory, now=now)
    elif kind == "leadership":
        content = leadership_report(scoped.leadership, scoped.members, now=now)

    filename = report_filename(REPORT_KINDS[kind], start_day, end_day)
    logger.info("Exported %s (%d bytes)", filename, len(content))
    return ReportFile(filename=filename, content=content)
