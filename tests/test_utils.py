from __future__ import annotations

from datetime import date, datetime

import pytest

import store
import utils
from aggregation import build_dashboard
from conftest import make_member


@pytest.mark.parametrize(
    "start, months, expected",
    [
        (date(2024, 1, 31), 1, date(2024, 2, 29)),
        (date(2023, 1, 31), 1, date(2023, 2, 28)),
        (date(2024, 11, 15), 2, date(2025, 1, 15)),
        (date(2024, 3, 31), -1, date(2024, 2, 29)),
        (date(2024, 1, 15), -1, date(2023, 12, 15)),
    ],
)
def test_add_months(start, months, expected):
    assert utils.add_months(start, months) == expected


def test_parse_record_datetime_variants():
    assert utils.parse_record_datetime("2024-06-01") == datetime(2024, 6, 1)
    assert utils.parse_record_datetime(date(2024, 6, 1)) == datetime(2024, 6, 1)
    assert utils.parse_record_datetime("2024-06-01T10:00:00Z").tzinfo is None
    assert utils.parse_record_datetime("") is None
    assert utils.parse_record_datetime("June first") is None
    assert utils.parse_record_date("2024-06-01T23:00:00") == date(2024, 6, 1)


def test_format_ugx():
    assert utils.format_ugx(1234567.6) == "UGX 1,234,568"
    assert utils.format_ugx("2500") == "UGX 2,500"
    assert utils.format_ugx(None) == "UGX 0"
    assert utils.format_ugx("abc") == "UGX 0"


def test_format_date():
    assert utils.format_date("2024-03-05") == "Mar 05, 2024"
    assert utils.format_date("garbage") == "Invalid date"


def test_validate_member_inputs():
    assert utils.validate_member_inputs("Joseph", "1", "joseph@example.com", "2024-01-01") == []
    errors = utils.validate_member_inputs(" ", "ten", "not-an-email", "01/01/2024")
    assert len(errors) == 4
    assert "Jersey number must be positive." in utils.validate_member_inputs("Joseph", "-3", "", "2024-01-01")


def test_validate_event_inputs():
    assert utils.validate_event_inputs("training", "2024-06-01", "Field", None) == []
    assert utils.validate_event_inputs("friendly", "2024-06-01", "Park", " ") == [
        "Opponent is required for friendlies."
    ]
    assert len(utils.validate_event_inputs("friendly", "soon", "", None)) == 3


@pytest.mark.parametrize(
    "amount, required, expected",
    [
        ("2500", True, []),
        ("0", True, ["Amount must be > 0."]),
        ("-5", True, ["Amount must be > 0."]),
        ("abc", True, ["Amount must be numeric."]),
        ("", True, ["Amount must be numeric."]),
        ("", False, []),
    ],
)
def test_validate_amount(amount, required, expected):
    assert utils.validate_amount(amount, required=required) == expected


def test_records_to_csv_bytes():
    members = [make_member(1, "Joseph Okello"), make_member(2, "Allan Kato", status="injured")]
    content = utils.records_to_csv_bytes(members, [("name", "Name"), ("status", "Status")])
    lines = content.decode("utf-8").splitlines()
    assert lines == ["Name,Status", "Joseph Okello,active", "Allan Kato,injured"]


def test_records_to_csv_bytes_empty():
    assert utils.records_to_csv_bytes([], [("name", "Name")]).decode("utf-8").strip() == "Name"


def test_records_to_frame():
    df = utils.records_to_frame([make_member(1, "Joseph Okello")])
    assert list(df["name"]) == ["Joseph Okello"]


def test_insert_sample_data(temp_db):
    utils.insert_sample_data()
    collections = store.load_collections()
    assert len(collections.members) == 6
    assert len(collections.contributions) == 5
    data = build_dashboard(collections)
    assert data.stats.total_contributions == 110000
    assert data.stats.total_expenses == 30000
    assert data.stats.remaining_balance == 80000
    assert len(data.attendance_trends) == 3
    assert data.results.wins == 1
