"""SQLite-backed local report store."""
from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator, Optional

from .config import AppConfig
from .errors import SyncError

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS reports (
    report_id INTEGER PRIMARY KEY AUTOINCREMENT,
    report_type TEXT NOT NULL,
    subtype TEXT,
    employee_id TEXT,
    payload TEXT NOT NULL,
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
)
"""


@dataclass
class Database:
    db_path: Path

    @classmethod
    def from_config(cls, config: AppConfig) -> "Database":
        if not config.db_is_sqlite:
            raise ValueError("Only SQLite URLs are supported by the local report store.")
        path_str = config.db_url.split("sqlite:///")[-1]
        db_path = Path(path_str).expanduser()
        db_path.parent.mkdir(parents=True, exist_ok=True)
        return cls(db_path=db_path)

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    @contextmanager
    def begin(self) -> Iterator[sqlite3.Connection]:
        with self.connect() as conn:
            try:
                yield conn
                conn.commit()
            except Exception:
                conn.rollback()
                raise


class LocalReportStore:
    """Offline implementation of the sync client protocol.

    Payloads are stored verbatim as JSON, so dates keep whatever encoding the
    caller sent, exactly like the remote store.
    """

    def __init__(self, db: Database):
        self._db = db
        with self._db.begin() as conn:
            conn.execute(SCHEMA_SQL)

    @classmethod
    def from_config(cls, config: AppConfig) -> "LocalReportStore":
        return cls(Database.from_config(config))

    def list(self, employee_id: Optional[str] = None) -> list[dict[str, Any]]:
        query = "SELECT report_id, payload FROM reports"
        params: tuple = ()
        if employee_id:
            query += " WHERE employee_id=?"
            params = (str(employee_id),)
        query += " ORDER BY report_id"
        with self._db.connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [self._decode(row) for row in rows]

    def create(self, payload: dict[str, Any]) -> dict[str, Any]:
        body = {key: value for key, value in payload.items() if key != "id"}
        with self._db.begin() as conn:
            cur = conn.execute(
                "INSERT INTO reports(report_type, subtype, employee_id, payload) VALUES (?, ?, ?, ?)",
                (
                    body.get("type") or "",
                    body.get("subtype"),
                    _owner(body),
                    json.dumps(body, ensure_ascii=False),
                ),
            )
            report_id = cur.lastrowid
        return {"id": report_id, **body}

    def update(self, record_id: Any, payload: dict[str, Any]) -> dict[str, Any]:
        body = {key: value for key, value in payload.items() if key != "id"}
        with self._db.begin() as conn:
            cur = conn.execute(
                """
                UPDATE reports
                SET report_type=?, subtype=?, employee_id=?, payload=?, updated_at=datetime('now')
                WHERE report_id=?
                """,
                (
                    body.get("type") or "",
                    body.get("subtype"),
                    _owner(body),
                    json.dumps(body, ensure_ascii=False),
                    record_id,
                ),
            )
            if cur.rowcount == 0:
                raise SyncError(f"Report {record_id} not found", status_code=404)
        return {"id": int(record_id), **body}

    def delete(self, record_id: Any) -> None:
        with self._db.begin() as conn:
            cur = conn.execute("DELETE FROM reports WHERE report_id=?", (record_id,))
            if cur.rowcount == 0:
                raise SyncError(f"Report {record_id} not found", status_code=404)

    @staticmethod
    def _decode(row: sqlite3.Row) -> dict[str, Any]:
        payload = json.loads(row["payload"])
        payload["id"] = row["report_id"]
        return payload


def _owner(payload: dict[str, Any]) -> Optional[str]:
    owner = payload.get("employeeId") or payload.get("submittedBy")
    return str(owner) if owner else None
