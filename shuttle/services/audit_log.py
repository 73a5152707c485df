from __future__ import annotations

import json
import logging
import sqlite3
from dataclasses import dataclass
from pathlib import Path

from shuttle.db.database import get_connection

logger = logging.getLogger(__name__)

IMPORT_ROSTER = "IMPORT_ROSTER"
UPDATE_ROSTER = "UPDATE_ROSTER"
CREATE_TOURNAMENT = "CREATE_TOURNAMENT"
REPORT_RESULT = "REPORT_RESULT"
CLOSE_TOURNAMENT = "CLOSE_TOURNAMENT"
CREATE_MATCH = "CREATE_MATCH"
DELETE_MATCH = "DELETE_MATCH"
EXPORT_FILE = "EXPORT_FILE"
ERROR = "ERROR"

EVENT_TYPES = [
    IMPORT_ROSTER,
    UPDATE_ROSTER,
    CREATE_TOURNAMENT,
    REPORT_RESULT,
    CLOSE_TOURNAMENT,
    CREATE_MATCH,
    DELETE_MATCH,
    EXPORT_FILE,
    ERROR,
]

_LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}

_EVENT_COLUMNS = "id, event_type, title, details, level, tournament_id, context_json, created_at"


@dataclass(frozen=True)
class AuditEvent:
    id: int
    event_type: str
    title: str
    details: str
    level: str
    tournament_id: str | None
    context: dict[str, object]
    created_at: str

    def as_line(self) -> str:
        scope = f" [{self.tournament_id}]" if self.tournament_id else ""
        return (
            f"[{self.created_at}] {self.level.upper()} {self.event_type}{scope}"
            f" | {self.title} | {self.details}"
        )


def _decode_context(raw: str | None) -> dict[str, object]:
    try:
        value = json.loads(raw or "{}")
    except json.JSONDecodeError:
        return {}
    return value if isinstance(value, dict) else {}


def _filters(
    event_type: str | None, query: str, tournament_id: str | None
) -> tuple[str, list[object]]:
    clauses: list[str] = []
    params: list[object] = []
    if event_type:
        clauses.append("event_type = ?")
        params.append(event_type)
    if tournament_id:
        clauses.append("tournament_id = ?")
        params.append(tournament_id)
    term = query.strip()
    if term:
        clauses.append("(title LIKE ? OR details LIKE ?)")
        params.extend([f"%{term}%"] * 2)
    if not clauses:
        return "", params
    return "WHERE " + " AND ".join(clauses), params


class AuditLogService:
    """Persistent journal of roster and tournament operations.

    Every event is mirrored to the module logger so that console logging and
    the stored journal stay in step.
    """

    def __init__(self, connection: sqlite3.Connection | None = None) -> None:
        self._connection = connection or get_connection()

    def log_event(
        self,
        event_type: str,
        title: str,
        details: str,
        level: str = "info",
        context: dict[str, object] | None = None,
        tournament_id: str | None = None,
    ) -> int:
        logger.log(_LOG_LEVELS.get(level, logging.INFO), "%s: %s (%s)", event_type, title, details)
        with self._connection:
            cursor = self._connection.execute(
                """
                INSERT INTO audit_log (event_type, title, details, level, tournament_id, context_json)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    event_type,
                    title,
                    details,
                    level,
                    tournament_id,
                    json.dumps(context or {}, ensure_ascii=False),
                ),
            )
        return int(cursor.lastrowid)

    def log_error(
        self,
        title: str,
        error: BaseException,
        *,
        tournament_id: str | None = None,
        context: dict[str, object] | None = None,
    ) -> int:
        payload = {**(context or {}), "error_type": type(error).__name__}
        return self.log_event(
            ERROR,
            title,
            str(error),
            level="error",
            context=payload,
            tournament_id=tournament_id,
        )

    def list_events(
        self,
        event_type: str | None = None,
        query: str = "",
        tournament_id: str | None = None,
    ) -> list[AuditEvent]:
        """Return matching events, newest first."""
        where_sql, params = _filters(event_type, query, tournament_id)
        rows = self._connection.execute(
            f"SELECT {_EVENT_COLUMNS} FROM audit_log {where_sql} ORDER BY id DESC",
            params,
        ).fetchall()
        return [
            AuditEvent(
                id=int(row["id"]),
                event_type=str(row["event_type"]),
                title=str(row["title"]),
                details=str(row["details"] or ""),
                level=str(row["level"] or "info"),
                tournament_id=row["tournament_id"],
                context=_decode_context(row["context_json"]),
                created_at=str(row["created_at"]),
            )
            for row in rows
        ]

    def export_txt(
        self,
        path: str | Path,
        event_type: str | None = None,
        query: str = "",
        tournament_id: str | None = None,
    ) -> Path:
        output_path = Path(path)
        events = self.list_events(event_type=event_type, query=query, tournament_id=tournament_id)
        output_path.write_text("\n".join(event.as_line() for event in events), encoding="utf-8")
        return output_path
