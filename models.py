"""
models.py
Domain records (members, events, money) and the aggregate shapes the dashboard renders.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any

CLUB_NAME = "Fitholics FC"
CLUB_SLUG = "fitholics-fc"

MEMBER_STATUSES = ["active", "inactive", "injured", "suspended"]
EVENT_TYPES = ["training", "friendly"]
ATTENDANCE_STATUSES = ["present", "absent", "late", "excused"]
CONTRIBUTION_TYPES = ["monetary", "in-kind"]
PAYMENT_METHODS = ["cash", "bank transfer", "mobile money", "other"]
MATCH_RESULTS = ["win", "draw", "loss"]
VENUES = ["home", "away", "neutral"]

POSITIONS = [
    "Goalkeeper",
    "Centre-back",
    "Left-back",
    "Right-back",
    "Sweeper",
    "Defensive Midfielder",
    "Central Midfielder",
    "Attacking Midfielder",
    "Left Midfielder",
    "Right Midfielder",
    "Left Winger",
    "Right Winger",
    "Centre Forward",
    "Striker",
    "Second Striker",
    "Coach",
    "Manager",
]
# Staff positions are left out of the squad position chart
STAFF_POSITIONS = {"Coach", "Manager"}

EXPENSE_CATEGORIES = [
    "equipment",
    "transport",
    "medical",
    "facilities",
    "referees",
    "food",
    "uniforms",
    "training",
    "administration",
    "other",
]

LEADERSHIP_ROLES = [
    "Head Coach",
    "Assistant Coach",
    "Goalkeeping Coach",
    "Fitness Trainer",
    "Physiotherapist",
    "Captain",
    "Vice Captain",
    "Chairman",
    "Vice Chairman",
    "Team Manager",
    "Secretary",
    "Treasurer",
    "Public Relations Officer",
    "Equipment Manager",
    "Welfare Officer",
    "Events Coordinator",
    "Fundraising Officer",
]

# Aggregation windows
ATTENDANCE_WINDOW_DAYS = 60
FINANCIAL_TREND_MONTHS = 6
RECENT_TRANSACTION_DAYS = 30
RECENT_TRANSACTION_LIMIT = 10
UPCOMING_EVENT_LIMIT = 5
RECENT_RESULT_LIMIT = 8

UNKNOWN_MEMBER = "Unknown Member"
UNKNOWN_EVENT = "Unknown Event"
NO_DATA_MONTH = "No Data"

# Player analytics
DEFENSIVE_POSITIONS = {"Goalkeeper", "Centre-back", "Left-back", "Right-back", "Sweeper"}
DEFENSIVE_BONUS_SHARE = 0.3
CONTRIBUTION_TARGET = 50000  # UGX that scores a full 100
RATING_WEIGHTS = {"attendance": 0.5, "performance": 0.35, "contribution": 0.15}

# Membership fees
FEE_DUE_DAYS_BEFORE = 7
FEE_STATUSES = ["paid", "partial", "pending", "overdue"]

# Inventory
INVENTORY_CATEGORIES = [
    "Training Equipment",
    "Match Equipment",
    "Safety Gear",
    "Maintenance Tools",
    "Office Supplies",
    "Medical Supplies",
    "Other",
]
INVENTORY_CONDITIONS = ["excellent", "good", "fair", "poor", "needs_replacement"]


# ---------- Records ----------

@dataclass(frozen=True)
class Member:
    id: int | None
    name: str
    position: str
    jersey_number: int
    email: str
    phone: str
    status: str  # active/inactive/injured/suspended
    date_joined: str
    avatar_url: str | None = None


@dataclass(frozen=True)
class MatchDetails:
    home_score: int
    away_score: int
    result: str  # win/draw/loss, from the club's side
    venue: str | None = None
    goal_scorers: tuple[int, ...] = ()
    assists: tuple[int, ...] = ()
    yellow_cards: tuple[int, ...] = ()
    red_cards: tuple[int, ...] = ()
    man_of_the_match: int | None = None
    match_report: str | None = None

    def involves(self, member_id: int) -> bool:
        return (
            member_id in self.goal_scorers
            or member_id in self.assists
            or member_id in self.yellow_cards
            or member_id in self.red_cards
            or self.man_of_the_match == member_id
        )


@dataclass(frozen=True)
class Event:
    id: int | None
    type: str  # training/friendly
    date: str
    time: str | None
    location: str
    description: str | None = None
    opponent: str | None = None
    is_completed: bool = False
    match_details: MatchDetails | None = None

    @property
    def label(self) -> str:
        if self.type == "training":
            return self.description or "Training Session"
        return f"vs {self.opponent or 'TBD'}"


@dataclass(frozen=True)
class Attendance:
    id: int | None
    event_id: int
    member_id: int
    status: str  # present/absent/late/excused
    notes: str | None = None


@dataclass(frozen=True)
class Contribution:
    id: int | None
    member_id: int
    type: str  # monetary/in-kind
    amount: Any  # raw value from the store, parsed with aggregation.safe_amount
    description: str
    payment_method: str | None
    date: str
    event_id: int | None = None


@dataclass(frozen=True)
class Expense:
    id: int | None
    category: str
    amount: Any
    description: str
    payment_method: str | None
    date: str
    receipt: str | None = None
    event_id: int | None = None


@dataclass(frozen=True)
class Leadership:
    id: int | None
    member_id: int
    role: str
    start_date: str
    end_date: str | None = None
    is_active: bool = True


@dataclass(frozen=True)
class FeeStructure:
    period: str
    months: int
    amount: int
    savings: int
    label: str


FEE_STRUCTURES = [
    FeeStructure("3_months", 3, 45000, 0, "3 Months"),
    FeeStructure("5_months", 5, 75000, 0, "5 Months"),
    FeeStructure("6_months", 6, 75000, 15000, "6 Months"),
    FeeStructure("1_year", 12, 150000, 30000, "1 Year"),
]


@dataclass(frozen=True)
class MembershipFee:
    id: int | None
    member_id: int
    period: str  # one of FEE_STRUCTURES
    amount: Any
    amount_paid: Any
    start_date: str
    end_date: str
    due_date: str
    payment_method: str | None = None
    paid_date: str | None = None
    notes: str | None = None


@dataclass(frozen=True)
class InventoryItem:
    id: int | None
    name: str
    category: str
    current_stock: int
    min_stock: int
    max_stock: int
    condition: str  # excellent/good/fair/poor/needs_replacement
    location: str = ""
    description: str = ""


@dataclass(frozen=True)
class Collections:
    """Everything the dashboard reads, fetched in one go."""

    members: list[Member] = field(default_factory=list)
    events: list[Event] = field(default_factory=list)
    contributions: list[Contribution] = field(default_factory=list)
    expenses: list[Expense] = field(default_factory=list)
    attendance: list[Attendance] = field(default_factory=list)
    leadership: list[Leadership] = field(default_factory=list)
    membership_fees: list[MembershipFee] = field(default_factory=list)
    inventory: list[InventoryItem] = field(default_factory=list)


# ---------- Aggregates ----------

@dataclass(frozen=True)
class DashboardStats:
    total_members: int = 0
    active_members: int = 0
    training_sessions: int = 0
    friendlies: int = 0
    total_contributions: int = 0
    total_expenses: int = 0
    remaining_balance: int = 0


@dataclass(frozen=True)
class AttendanceTrend:
    date: str
    present_count: int
    total_members: int
    attendance_rate: float
    event_id: int | None = None
    description: str = "Training Session"


@dataclass(frozen=True)
class AttendanceSummary:
    average_attendance: int
    highest_attendance: int
    lowest_attendance: int
    total_sessions: int
    attendance_rate: int
    trend: str  # up/down/stable
    trend_percentage: int


@dataclass(frozen=True)
class FinancialTrend:
    month: str
    contributions: int
    expenses: int
    net: int


@dataclass(frozen=True)
class FinancialSummary:
    total_contributions: int = 0
    total_expenses: int = 0
    net_balance: int = 0
    monthly_average: int = 0


@dataclass(frozen=True)
class Transaction:
    id: int | None
    kind: str  # contribution/expense
    amount: float
    description: str
    date: str
    member_name: str | None = None
    category: str | None = None
    payment_method: str | None = None


@dataclass(frozen=True)
class PositionShare:
    position: str
    count: int
    percentage: int


@dataclass(frozen=True)
class MatchRecord:
    matches: list[Event] = field(default_factory=list)
    wins: int = 0
    draws: int = 0
    losses: int = 0
    win_rate: int = 0


@dataclass(frozen=True)
class PlayerAnalytics:
    member: Member
    attended_sessions: int
    total_sessions: int
    total_system_sessions: int
    attendance_rate: float
    system_wide_attendance_rate: float
    late_arrivals: int
    excused_absences: int
    attendance_score: float
    goals_scored: int
    assists: int
    yellow_cards: int
    red_cards: int
    man_of_the_match_awards: int
    matches_played: int
    performance_score: int
    total_contributions: int
    monetary_contributions: int
    in_kind_contributions: int
    total_contribution_amount: float
    contribution_score: float
    overall_rating: int


@dataclass(frozen=True)
class TeamAnalytics:
    total_players: int = 0
    average_rating: int = 0
    top_performer: PlayerAnalytics | None = None
    attendance_leader: PlayerAnalytics | None = None
    top_scorer: PlayerAnalytics | None = None


@dataclass(frozen=True)
class MembershipStanding:
    status: str  # active/expired/pending/overdue
    fee: MembershipFee | None = None
    expiry_date: str | None = None


@dataclass(frozen=True)
class DashboardData:
    stats: DashboardStats
    attendance_trends: list[AttendanceTrend]
    attendance_summary: AttendanceSummary | None
    financial_trends: list[FinancialTrend]
    financial_summary: FinancialSummary
    recent_transactions: list[Transaction]
    upcoming_events: list[Event]
    positions: list[PositionShare]
    results: MatchRecord

    @classmethod
    def empty(cls) -> "DashboardData":
        return cls(
            stats=DashboardStats(),
            attendance_trends=[],
            attendance_summary=None,
            financial_trends=[],
            financial_summary=FinancialSummary(),
            recent_transactions=[],
            upcoming_events=[],
            positions=[],
            results=MatchRecord(),
        )
