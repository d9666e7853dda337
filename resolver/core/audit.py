"""Audit sinks for resolution events: logging-only and SQLite-backed."""

import json
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Protocol

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

# ── Event Types ──────────────────────────────────────────────────────

ANALYSIS_START = "analysis_start"
ANALYSIS_COMPLETE = "analysis_complete"
ANALYSIS_ERROR = "analysis_error"

ACTIONS = (ANALYSIS_START, ANALYSIS_COMPLETE, ANALYSIS_ERROR)


class AuditEvent(BaseModel):
    """One audit record emitted by the engine."""

    action: str
    resource: str = "document"
    resource_id: str
    user_id: str = "system"
    details: dict = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class AuditSink(Protocol):
    """One-way receiver of audit events."""

    def log_action(self, event: AuditEvent) -> None: ...


# ── Logging Sink ─────────────────────────────────────────────────────


class LoggingAuditSink:
    """Writes audit events to the standard logger and keeps nothing."""

    def __init__(self, name: str = "resolver.audit"):
        self._logger = logging.getLogger(name)

    def log_action(self, event: AuditEvent) -> None:
        level = logging.ERROR if event.action == ANALYSIS_ERROR else logging.INFO
        self._logger.log(
            level,
            "%s %s/%s: %s",
            event.action,
            event.resource,
            event.resource_id,
            json.dumps(event.details, default=str, sort_keys=True),
        )


# ── SQLite Sink ──────────────────────────────────────────────────────

_SCHEMA = """
CREATE TABLE IF NOT EXISTS audit_logs (
    id              INTEGER PRIMARY KEY,
    user_id         TEXT NOT NULL,
    action          TEXT NOT NULL,
    resource        TEXT NOT NULL,
    resource_id     TEXT NOT NULL,
    details         TEXT NOT NULL DEFAULT '{}',  -- JSON object
    timestamp       TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_audit_resource ON audit_logs(resource_id);
CREATE INDEX IF NOT EXISTS idx_audit_action   ON audit_logs(action);
"""


class SQLiteAuditLog:
    """Append-only SQLite audit trail of resolution events."""

    def __init__(self, db_path: str | Path):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(self.db_path))
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(_SCHEMA)
        self._conn.commit()

    def log_action(self, event: AuditEvent) -> None:
        """Record an event. Unknown actions are rejected."""
        if event.action not in ACTIONS:
            raise ValueError(f"Invalid audit action: {event.action}")

        self._conn.execute(
            """INSERT INTO audit_logs
               (user_id, action, resource, resource_id, details, timestamp)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (
                event.user_id,
                event.action,
                event.resource,
                event.resource_id,
                json.dumps(event.details, default=str),
                event.timestamp.isoformat(),
            ),
        )
        self._conn.commit()

    def get_audit_logs(
        self,
        user_id: Optional[str] = None,
        resource_id: Optional[str] = None,
        action: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[AuditEvent]:
        """Return events matching every given filter, oldest first."""
        clauses: list[str] = []
        params: list = []
        if user_id:
            clauses.append("user_id = ?")
            params.append(user_id)
        if resource_id:
            clauses.append("resource_id = ?")
            params.append(resource_id)
        if action:
            clauses.append("action = ?")
            params.append(action)
        if start:
            clauses.append("timestamp >= ?")
            params.append(start.isoformat())
        if end:
            clauses.append("timestamp <= ?")
            params.append(end.isoformat())

        query = "SELECT * FROM audit_logs"
        if clauses:
            query += " WHERE " + " AND ".join(clauses)
        query += " ORDER BY id"

        rows = self._conn.execute(query, params).fetchall()
        return [
            AuditEvent(
                action=r["action"],
                resource=r["resource"],
                resource_id=r["resource_id"],
                user_id=r["user_id"],
                details=json.loads(r["details"]),
                timestamp=datetime.fromisoformat(r["timestamp"]),
            )
            for r in rows
        ]

    def counts_by_action(self) -> dict[str, int]:
        rows = self._conn.execute(
            "SELECT action, COUNT(*) AS cnt FROM audit_logs GROUP BY action"
        ).fetchall()
        return {r["action"]: r["cnt"] for r in rows}

    def close(self) -> None:
        self._conn.close()


# ── Helpers ──────────────────────────────────────────────────────────


def emit(sink: Optional[AuditSink], event: AuditEvent) -> None:
    """Deliver an event without letting sink failures reach the caller."""
    if sink is None:
        return
    try:
        sink.log_action(event)
    except Exception as exc:
        logger.warning("Audit delivery failed for %s/%s: %s", event.action, event.resource_id, exc)
