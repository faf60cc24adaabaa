#!/usr/bin/env python3
# Copyright 2026 DivTrack
# SPDX-License-Identifier: MIT
"""SQLite-backed keyed records for the quote and dividend caches.

This module provides a thin wrapper around ``sqlite3`` exposing the four
operations the cache layer needs: ``find_one``, ``upsert``, ``delete_many``
and ``find_many``. The symbol is the primary key of each table.

Freshness rules and provider fallback live in
:mod:`divtrack.core.data.quote_cache`.
"""

from __future__ import annotations

import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

QUOTES_TABLE = "stock_quotes"
DIVIDENDS_TABLE = "dividend_records"

_TABLE_COLUMNS: Dict[str, Dict[str, str]] = {
    QUOTES_TABLE: {
        "price": "REAL NOT NULL",
        "change": "REAL NOT NULL",
        "change_percent": "REAL NOT NULL",
        "dividend_yield_pct": "REAL",
        "last_updated": "TEXT NOT NULL",
        "source": "TEXT NOT NULL",
    },
    DIVIDENDS_TABLE: {
        "dividend_per_share": "REAL NOT NULL",
        "ex_date": "TEXT",
        "record_date": "TEXT",
        "payment_date": "TEXT",
        "source": "TEXT NOT NULL",
    },
}

_TS_FORMAT = "%Y-%m-%dT%H:%M:%S.%f+00:00"


def format_ts(dt: datetime) -> str:
    """Fixed-width UTC timestamp so string comparison in SQL orders correctly."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).strftime(_TS_FORMAT)


def parse_ts(value: str) -> datetime:
    dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


class CacheRepository:
    """Keyed record store for one cache table."""

    def __init__(self, db_path: Path, table: str) -> None:
        """
        Parameters
        ----------
        db_path:
            Path to the SQLite database file. Parent directories are created.
        table:
            ``stock_quotes`` or ``dividend_records``.
        """
        if table not in _TABLE_COLUMNS:
            raise ValueError(f"unknown cache table: {table}")
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.table = table
        self._columns = _TABLE_COLUMNS[table]
        self._write_lock = threading.Lock()
        self._init_db()

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #
    def _get_connection(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.db_path), timeout=30)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self) -> None:
        cols = ",\n".join(f"{name} {typ}" for name, typ in self._columns.items())
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {self.table} (
                    symbol TEXT PRIMARY KEY,
                    {cols},
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )
            cursor.execute(
                f"CREATE INDEX IF NOT EXISTS idx_{self.table}_updated_at ON {self.table}(updated_at)"
            )
            conn.commit()
        finally:
            conn.close()

    def _row_to_dict(self, row: sqlite3.Row) -> Dict[str, Any]:
        d = dict(row)
        d["created_at"] = parse_ts(d["created_at"])
        d["updated_at"] = parse_ts(d["updated_at"])
        return d

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #
    def find_one(self, symbol: str) -> Optional[Dict[str, Any]]:
        conn = self._get_connection()
        try:
            row = conn.execute(
                f"SELECT * FROM {self.table} WHERE symbol = ?", (symbol,)
            ).fetchone()
            return self._row_to_dict(row) if row else None
        finally:
            conn.close()

    def upsert(self, symbol: str, fields: Mapping[str, Any], now: datetime) -> Dict[str, Any]:
        """Create the row or overwrite every field; ``created_at`` survives updates."""
        unknown = set(fields) - set(self._columns)
        if unknown:
            raise ValueError(f"unknown fields for {self.table}: {sorted(unknown)}")
        values = {name: fields.get(name) for name in self._columns}
        ts = format_ts(now)
        names = list(values)
        insert_cols = ", ".join(["symbol", *names, "created_at", "updated_at"])
        placeholders = ", ".join([":symbol", *(f":{n}" for n in names), ":created_at", ":updated_at"])
        updates = ", ".join([*(f"{n} = excluded.{n}" for n in names), "updated_at = excluded.updated_at"])
        with self._write_lock:
            conn = self._get_connection()
            try:
                conn.execute(
                    f"""
                    INSERT INTO {self.table} ({insert_cols})
                    VALUES ({placeholders})
                    ON CONFLICT(symbol) DO UPDATE SET {updates}
                    """,
                    {**values, "symbol": symbol, "created_at": ts, "updated_at": ts},
                )
                conn.commit()
            finally:
                conn.close()
        saved = self.find_one(symbol)
        if saved is None:
            raise RuntimeError(f"upsert of {symbol} into {self.table} did not persist")
        return saved

    def delete_many(
        self,
        symbol: Optional[str] = None,
        updated_before: Optional[datetime] = None,
    ) -> int:
        """Delete rows matching every given filter. No filter deletes everything."""
        clauses: List[str] = []
        params: List[Any] = []
        if symbol is not None:
            clauses.append("symbol = ?")
            params.append(symbol)
        if updated_before is not None:
            clauses.append("updated_at < ?")
            params.append(format_ts(updated_before))
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        with self._write_lock:
            conn = self._get_connection()
            try:
                cursor = conn.execute(f"DELETE FROM {self.table}{where}", params)
                conn.commit()
                return cursor.rowcount
            finally:
                conn.close()

    def find_many(self, updated_since: Optional[datetime] = None) -> List[Dict[str, Any]]:
        conn = self._get_connection()
        try:
            if updated_since is None:
                rows = conn.execute(f"SELECT * FROM {self.table} ORDER BY symbol").fetchall()
            else:
                rows = conn.execute(
                    f"SELECT * FROM {self.table} WHERE updated_at >= ? ORDER BY symbol",
                    (format_ts(updated_since),),
                ).fetchall()
            return [self._row_to_dict(r) for r in rows]
        finally:
            conn.close()

    def count(self) -> int:
        conn = self._get_connection()
        try:
            return int(conn.execute(f"SELECT COUNT(*) FROM {self.table}").fetchone()[0])
        finally:
            conn.close()


__all__ = [
    "CacheRepository",
    "DIVIDENDS_TABLE",
    "QUOTES_TABLE",
    "format_ts",
    "parse_ts",
]
