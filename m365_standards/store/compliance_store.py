"""
SQLite-backed compliance store.
Persists standard log entries, raised alerts, comparison fields and
baseline (best-practice) fields, keyed by tenant.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import time
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger("m365_standards.store")


class ComplianceStore:
    """
    Persistent store backed by SQLite.
    Features:
      - Upsert per (tenant, field) for comparison and baseline fields
      - Append-only log and alert tables
      - Connection-per-call, so concurrent runs for different tenants are safe
      - Values stored as JSON so bools, strings and objects round-trip
    """

    def __init__(self, db_path: str | Path):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(str(self.db_path))

    def _init_db(self):
        """Initialize the store schema."""
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS log_entries (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    timestamp REAL NOT NULL,
                    surface TEXT NOT NULL,
                    tenant TEXT NOT NULL,
                    severity TEXT NOT NULL,
                    message TEXT NOT NULL,
                    data TEXT
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS alerts (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    timestamp REAL NOT NULL,
                    tenant TEXT NOT NULL,
                    standard_name TEXT NOT NULL,
                    standard_id TEXT,
                    message TEXT NOT NULL,
                    payload TEXT
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS comparison_fields (
                    tenant TEXT NOT NULL,
                    field_name TEXT NOT NULL,
                    value TEXT,
                    updated_at REAL NOT NULL,
                    PRIMARY KEY (tenant, field_name)
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS baseline_fields (
                    tenant TEXT NOT NULL,
                    field_name TEXT NOT NULL,
                    value TEXT,
                    value_type TEXT NOT NULL,
                    updated_at REAL NOT NULL,
                    PRIMARY KEY (tenant, field_name)
                )
            """)
            conn.commit()

    # --- Log sink backing ---

    def add_log_entry(
        self,
        surface: str,
        tenant: str,
        message: str,
        severity: str,
        data: Optional[dict] = None,
    ):
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO log_entries (timestamp, surface, tenant, severity, message, data)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (time.time(), surface, tenant, severity, message,
                 json.dumps(data, default=str) if data is not None else None),
            )
            conn.commit()

    def get_log_entries(self, tenant: Optional[str] = None, limit: int = 100) -> list[dict]:
        query = "SELECT timestamp, surface, tenant, severity, message, data FROM log_entries"
        args: tuple = ()
        if tenant:
            query += " WHERE tenant = ?"
            args = (tenant,)
        query += " ORDER BY id DESC LIMIT ?"
        with self._connect() as conn:
            rows = conn.execute(query, args + (limit,)).fetchall()
        return [
            {
                "timestamp": r[0],
                "surface": r[1],
                "tenant": r[2],
                "severity": r[3],
                "message": r[4],
                "data": json.loads(r[5]) if r[5] else None,
            }
            for r in rows
        ]

    # --- Alert sink ---

    def raise_alert(
        self,
        message: str,
        payload: Any,
        tenant: str,
        standard_name: str,
        standard_id: str,
    ):
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO alerts (timestamp, tenant, standard_name, standard_id, message, payload)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (time.time(), tenant, standard_name, standard_id, message,
                 json.dumps(payload, default=str)),
            )
            conn.commit()
        logger.warning(f"[{tenant}] ALERT {standard_name}: {message}")

    def get_alerts(self, tenant: Optional[str] = None) -> list[dict]:
        query = "SELECT timestamp, tenant, standard_name, standard_id, message, payload FROM alerts"
        args: tuple = ()
        if tenant:
            query += " WHERE tenant = ?"
            args = (tenant,)
        with self._connect() as conn:
            rows = conn.execute(query + " ORDER BY id", args).fetchall()
        return [
            {
                "timestamp": r[0],
                "tenant": r[1],
                "standard_name": r[2],
                "standard_id": r[3],
                "message": r[4],
                "payload": json.loads(r[5]) if r[5] else None,
            }
            for r in rows
        ]

    # --- Comparison / baseline field stores ---

    def set_comparison_field(self, field_name: str, value: Any, tenant: str):
        with self._connect() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO comparison_fields (tenant, field_name, value, updated_at)
                VALUES (?, ?, ?, ?)
                """,
                (tenant, field_name, json.dumps(value, default=str), time.time()),
            )
            conn.commit()
        logger.debug(f"[{tenant}] comparison field {field_name} = {value!r}")

    def get_comparison_field(self, field_name: str, tenant: str) -> Optional[Any]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT value FROM comparison_fields WHERE tenant = ? AND field_name = ?",
                (tenant, field_name),
            ).fetchone()
        return json.loads(row[0]) if row and row[0] is not None else None

    def set_baseline_field(self, field_name: str, value: Any, value_type: str, tenant: str):
        with self._connect() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO baseline_fields
                    (tenant, field_name, value, value_type, updated_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (tenant, field_name, json.dumps(value, default=str), value_type, time.time()),
            )
            conn.commit()
        logger.debug(f"[{tenant}] baseline field {field_name} = {value!r} ({value_type})")

    def get_baseline_field(self, field_name: str, tenant: str) -> Optional[dict]:
        with self._connect() as conn:
            row = conn.execute(
                """
                SELECT value, value_type FROM baseline_fields
                WHERE tenant = ? AND field_name = ?
                """,
                (tenant, field_name),
            ).fetchone()
        if row is None:
            return None
        return {"value": json.loads(row[0]) if row[0] else None, "value_type": row[1]}
