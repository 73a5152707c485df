"""SQLite repositories for roster entities."""

from __future__ import annotations

import sqlite3
from typing import Any

from shuttle.domain.models import Classification


def _row_to_dict(row: sqlite3.Row | None) -> dict[str, Any] | None:
    if row is None:
        return None
    return dict(row)


class PlayerRepository:
    """Repository for player data access."""

    def __init__(self, connection: sqlite3.Connection) -> None:
        self._connection = connection

    def _next_position(self) -> int:
        row = self._connection.execute(
            "SELECT COALESCE(MAX(position), -1) + 1 FROM players"
        ).fetchone()
        return int(row[0])

    def create(self, data: dict[str, Any], *, commit: bool = True) -> str:
        classification = Classification.parse(data.get("classification"))
        position = data.get("position")
        if position is None:
            position = self._next_position()
        self._connection.execute(
            """
            INSERT INTO players (id, name, classification, position)
            VALUES (?, ?, ?, ?)
            """,
            (
                data["id"],
                data.get("name"),
                classification.value,
                position,
            ),
        )
        if commit:
            self._connection.commit()
        return str(data["id"])

    def get(self, player_id: str) -> dict[str, Any] | None:
        row = self._connection.execute(
            "SELECT * FROM players WHERE id = ?", (player_id,)
        ).fetchone()
        return _row_to_dict(row)

    def get_by_name(self, name: str) -> dict[str, Any] | None:
        row = self._connection.execute(
            "SELECT * FROM players WHERE name = ?", (name,)
        ).fetchone()
        return _row_to_dict(row)

    def update(self, player_id: str, data: dict[str, Any], *, commit: bool = True) -> None:
        self._connection.execute(
            """
            UPDATE players
            SET name = ?,
                classification = ?,
                position = ?,
                updated_at = CURRENT_TIMESTAMP
            WHERE id = ?
            """,
            (
                data.get("name"),
                Classification.parse(data.get("classification")).value,
                data.get("position", 0),
                player_id,
            ),
        )
        if commit:
            self._connection.commit()

    def set_classification(self, player_id: str, classification: Classification) -> None:
        self._connection.execute(
            """
            UPDATE players
            SET classification = ?,
                updated_at = CURRENT_TIMESTAMP
            WHERE id = ?
            """,
            (Classification.parse(classification).value, player_id),
        )
        self._connection.commit()

    def delete(self, player_id: str, *, commit: bool = True) -> None:
        self._connection.execute("DELETE FROM players WHERE id = ?", (player_id,))
        if commit:
            self._connection.commit()

    def list(self) -> list[dict[str, Any]]:
        rows = self._connection.execute(
            "SELECT * FROM players ORDER BY position, name"
        ).fetchall()
        return [dict(row) for row in rows]

    def list_participants(self) -> list[dict[str, Any]]:
        rows = self._connection.execute(
            """
            SELECT * FROM players
            WHERE classification != 'none'
            ORDER BY position, name
            """
        ).fetchall()
        return [dict(row) for row in rows]

    def search(self, term: str) -> list[dict[str, Any]]:
        like_term = f"%{term}%"
        rows = self._connection.execute(
            """
            SELECT * FROM players
            WHERE name LIKE ?
            ORDER BY position, name
            """,
            (like_term,),
        ).fetchall()
        return [dict(row) for row in rows]

    def classification_map(self) -> dict[str, Classification]:
        rows = self._connection.execute(
            "SELECT id, classification FROM players"
        ).fetchall()
        return {str(row["id"]): Classification.parse(row["classification"]) for row in rows}
