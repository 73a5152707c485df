from __future__ import annotations

import sqlite3
from datetime import date
from pathlib import Path
from typing import Iterable

from shuttle.db.repositories import PlayerRepository
from shuttle.domain.models import Classification, Player, generate_id
from shuttle.services.audit_log import EXPORT_FILE, UPDATE_ROSTER, AuditLogService
from shuttle.services.export_service import ExportService, roster_csv_filename

CLASSIFICATION_CYCLE = {
    Classification.NONE: Classification.NORMAL,
    Classification.NORMAL: Classification.SEED,
    Classification.SEED: Classification.SEPARATED,
    Classification.SEPARATED: Classification.NONE,
}


def _to_player(row: dict[str, object]) -> Player:
    return Player(id=str(row["id"]), name=str(row["name"]))


def normalize_names(names: Iterable[object]) -> list[str]:
    """Trim names, drop blanks and keep the first occurrence of each."""
    seen: set[str] = set()
    result: list[str] = []
    for value in names:
        if value is None:
            continue
        name = str(value).strip()
        if not name or name in seen:
            continue
        seen.add(name)
        result.append(name)
    return result


class RosterService:
    def __init__(self, connection: sqlite3.Connection) -> None:
        self._connection = connection
        self._player_repo = PlayerRepository(connection)
        self._audit_log = AuditLogService(connection)

    def players(self) -> list[Player]:
        return [_to_player(row) for row in self._player_repo.list()]

    def search(self, term: str) -> list[Player]:
        return [_to_player(row) for row in self._player_repo.search(term)]

    def add_player(self, name: str) -> Player:
        clean = name.strip()
        if not clean:
            raise ValueError("Player name cannot be empty.")
        if self._player_repo.get_by_name(clean) is not None:
            raise ValueError(f"Player '{clean}' is already on the roster.")
        player_id = self._player_repo.create({"id": generate_id(), "name": clean})
        return Player(id=player_id, name=clean)

    def rename_player(self, player_id: str, name: str) -> Player:
        row = self._player_repo.get(player_id)
        if row is None:
            raise ValueError("Player not found.")
        clean = name.strip()
        if not clean:
            raise ValueError("Player name cannot be empty.")
        existing = self._player_repo.get_by_name(clean)
        if existing is not None and existing["id"] != player_id:
            raise ValueError(f"Player '{clean}' is already on the roster.")
        row["name"] = clean
        self._player_repo.update(player_id, row)
        return Player(id=player_id, name=clean)

    def remove_player(self, player_id: str) -> None:
        self._player_repo.delete(player_id)

    def replace_roster(self, names: Iterable[object], *, source: str = "list") -> list[Player]:
        """Replace the roster with ``names``.

        Players whose name is already on the roster keep their id and
        classification; everyone else is created, and players missing from
        ``names`` are removed.
        """
        wanted = normalize_names(names)
        existing = {str(row["name"]): row for row in self._player_repo.list()}
        kept_ids: set[str] = set()
        created = 0
        with self._connection:
            for position, name in enumerate(wanted):
                row = existing.get(name)
                if row is None:
                    self._player_repo.create(
                        {"id": generate_id(), "name": name, "position": position},
                        commit=False,
                    )
                    created += 1
                    continue
                kept_ids.add(str(row["id"]))
                row["position"] = position
                self._player_repo.update(str(row["id"]), row, commit=False)
            removed = [row for row in existing.values() if str(row["id"]) not in kept_ids]
            for row in removed:
                self._player_repo.delete(str(row["id"]), commit=False)

        self._audit_log.log_event(
            UPDATE_ROSTER,
            "Roster replaced",
            f"{len(wanted)} players from {source}: {created} added, {len(removed)} removed.",
            context={"source": source, "added": created, "removed": len(removed)},
        )
        return self.players()

    def classification(self, player_id: str) -> Classification:
        row = self._player_repo.get(player_id)
        if row is None:
            raise ValueError("Player not found.")
        return Classification.parse(row["classification"])

    def set_classification(self, player_id: str, classification: Classification | str) -> None:
        if self._player_repo.get(player_id) is None:
            raise ValueError("Player not found.")
        self._player_repo.set_classification(player_id, Classification.parse(classification))

    def cycle_classification(self, player_id: str) -> Classification:
        """Advance none -> normal -> seed -> separated -> none."""
        next_value = CLASSIFICATION_CYCLE[self.classification(player_id)]
        self._player_repo.set_classification(player_id, next_value)
        return next_value

    def participants(self) -> list[Player]:
        return [_to_player(row) for row in self._player_repo.list_participants()]

    def classification_map(self) -> dict[str, Classification]:
        return self._player_repo.classification_map()

    def export_csv(self, directory: str | Path, today: date | None = None) -> Path:
        """Write the roster to ``badminton_players_<date>.csv`` in ``directory``."""
        path = Path(directory) / roster_csv_filename(today)
        output_path = ExportService().export_roster_csv(path, self.players())
        self._audit_log.log_event(
            EXPORT_FILE,
            "Roster exported",
            f"Roster written to {output_path}.",
            context={"path": str(output_path), "format": "csv"},
        )
        return output_path
