"""
db.py
SQLite helpers + initialization (creates DB/tables for the club roster, calendar and ledger).
"""

from __future__ import annotations

import os
import sqlite3
from contextlib import contextmanager
from pathlib import Path

DB_FILE = Path(os.getenv("TEAM_DB_FILE", str(Path(__file__).with_name("team.db"))))


@contextmanager
def get_conn():
    conn = sqlite3.connect(DB_FILE, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
        conn.commit()
    finally:
        conn.close()


def execute(sql: str, params: tuple = ()) -> int:
    with get_conn() as conn:
        cur = conn.execute(sql, params)
        return cur.lastrowid


def executemany(sql: str, seq_of_params: list[tuple]) -> None:
    with get_conn() as conn:
        conn.executemany(sql, seq_of_params)


def fetch_all(sql: str, params: tuple = ()) -> list[sqlite3.Row]:
    with get_conn() as conn:
        cur = conn.execute(sql, params)
        return cur.fetchall()


def _create_tables() -> None:
    execute(
        """
        CREATE TABLE IF NOT EXISTS members (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            position TEXT NOT NULL,
            jersey_number INTEGER NOT NULL,
            email TEXT NOT NULL DEFAULT '',
            phone TEXT NOT NULL DEFAULT '',
            status TEXT NOT NULL CHECK(status IN ('active','inactive','injured','suspended')),
            date_joined TEXT NOT NULL,
            avatar_url TEXT
        )
        """
    )

    execute(
        """
        CREATE TABLE IF NOT EXISTS events (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            type TEXT NOT NULL CHECK(type IN ('training','friendly')),
            date TEXT NOT NULL,
            time TEXT,
            location TEXT NOT NULL,
            description TEXT,
            opponent TEXT,
            is_completed INTEGER NOT NULL DEFAULT 0,
            match_details_json TEXT
        )
        """
    )

    execute(
        """
        CREATE TABLE IF NOT EXISTS attendance (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            event_id INTEGER NOT NULL,
            member_id INTEGER NOT NULL,
            status TEXT NOT NULL CHECK(status IN ('present','absent','late','excused')),
            notes TEXT,
            UNIQUE(event_id, member_id),
            FOREIGN KEY(event_id) REFERENCES events(id) ON DELETE CASCADE,
            FOREIGN KEY(member_id) REFERENCES members(id) ON DELETE CASCADE
        )
        """
    )

    # amount is left untyped: legacy rows may hold text or NULL
    execute(
        """
        CREATE TABLE IF NOT EXISTS contributions (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            member_id INTEGER NOT NULL,
            type TEXT NOT NULL CHECK(type IN ('monetary','in-kind')),
            amount,
            description TEXT NOT NULL DEFAULT '',
            payment_method TEXT,
            date TEXT NOT NULL,
            event_id INTEGER,
            FOREIGN KEY(member_id) REFERENCES members(id) ON DELETE CASCADE
        )
        """
    )

    execute(
        """
        CREATE TABLE IF NOT EXISTS expenses (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            category TEXT NOT NULL,
            amount,
            description TEXT NOT NULL DEFAULT '',
            payment_method TEXT,
            date TEXT NOT NULL,
            receipt TEXT,
            event_id INTEGER
        )
        """
    )

    execute(
        """
        CREATE TABLE IF NOT EXISTS leadership (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            member_id INTEGER NOT NULL,
            role TEXT NOT NULL,
            start_date TEXT NOT NULL,
            end_date TEXT,
            is_active INTEGER NOT NULL DEFAULT 1,
            FOREIGN KEY(member_id) REFERENCES members(id) ON DELETE CASCADE
        )
        """
    )

    execute(
        """
        CREATE TABLE IF NOT EXISTS membership_fees (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            member_id INTEGER NOT NULL,
            period TEXT NOT NULL,
            amount,
            amount_paid,
            start_date TEXT NOT NULL,
            end_date TEXT NOT NULL,
            due_date TEXT NOT NULL,
            payment_method TEXT,
            paid_date TEXT,
            notes TEXT,
            FOREIGN KEY(member_id) REFERENCES members(id) ON DELETE CASCADE
        )
        """
    )

    execute(
        """
        CREATE TABLE IF NOT EXISTS inventory (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            category TEXT NOT NULL,
            current_stock INTEGER NOT NULL DEFAULT 0,
            min_stock INTEGER NOT NULL DEFAULT 0,
            max_stock INTEGER NOT NULL DEFAULT 0,
            condition TEXT NOT NULL CHECK(condition IN ('excellent','good','fair','poor','needs_replacement')),
            location TEXT NOT NULL DEFAULT '',
            description TEXT NOT NULL DEFAULT ''
        )
        """
    )


def init_db() -> None:
    """
    Initialize the database.
    - Create tables (safe to call on every startup)
    """
    DB_FILE.parent.mkdir(parents=True, exist_ok=True)
    _create_tables()
