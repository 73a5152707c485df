"""Caller-side tournament workflow.

The session owns at most one running tournament plus an in-memory history of
earlier ones. It is the only writer of the tournaments it holds, so callers
embedding it in a concurrent host must serialize access per session.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

from shuttle.domain.builder import Shuffle, build_knockout, build_round_robin
from shuttle.domain.models import MatchKind, Rejected, Tournament
from shuttle.domain.scores import InvalidScoreError, validate_scores, winner_for_scores
from shuttle.domain.updater import apply_result
from shuttle.services.audit_log import (
    CLOSE_TOURNAMENT,
    CREATE_TOURNAMENT,
    EXPORT_FILE,
    REPORT_RESULT,
    AuditLogService,
)
from shuttle.services.export_service import ExportService
from shuttle.services.roster import RosterService
from shuttle.settings import get_bye_label

logger = logging.getLogger(__name__)


class InsufficientPlayersError(ValueError):
    def __init__(self, rejection: Rejected) -> None:
        self.rejection = rejection
        super().__init__(
            f"Not enough players selected: {rejection.provided} selected, "
            f"at least {rejection.required} required."
        )


class TournamentSession:
    def __init__(self, connection: sqlite3.Connection, shuffle: Shuffle | None = None) -> None:
        self._connection = connection
        self._roster = RosterService(connection)
        self._audit_log = AuditLogService(connection)
        self._export_service = ExportService()
        self.shuffle = shuffle
        self.current: Tournament | None = None
        self.history: list[Tournament] = []

    def _archive_current(self) -> None:
        if self.current is not None:
            self._save_to_history(self.current)

    def _save_to_history(self, tournament: Tournament) -> None:
        entries = [item for item in self.history if item.id != tournament.id]
        entries.insert(0, tournament)
        entries.sort(key=lambda item: item.created_at, reverse=True)
        self.history = entries

    def _start(self, result: Tournament | Rejected, label: str) -> Tournament:
        if isinstance(result, Rejected):
            self._audit_log.log_event(
                CREATE_TOURNAMENT,
                f"{label} not created",
                f"{result.provided} players selected, {result.required} required.",
                level="warning",
                context={"required": result.required, "provided": result.provided},
            )
            raise InsufficientPlayersError(result)

        self._archive_current()
        self.current = result
        self._audit_log.log_event(
            CREATE_TOURNAMENT,
            f"{label} created",
            f"{len(result.matches)} matches over {result.rounds} rounds.",
            context={
                "format": result.format.value,
                "kind": result.kind.value,
                "competitors": sum(1 for c in result.competitors.values() if not c.is_bye),
            },
            tournament_id=result.id,
        )
        return result

    def start_knockout(self, kind: MatchKind | str) -> Tournament:
        kind = MatchKind(kind)
        result = build_knockout(
            self._roster.participants(),
            self._roster.classification_map(),
            kind,
            shuffle=self.shuffle,
            bye_label=get_bye_label(),
        )
        return self._start(result, f"Knockout ({kind.value})")

    def start_group_cycle(self) -> Tournament:
        result = build_round_robin(
            self._roster.participants(),
            self._roster.classification_map(),
            shuffle=self.shuffle,
        )
        return self._start(result, "Group cycle (6 teams)")

    def report_score(self, match_id: str, score_a: object, score_b: object) -> Tournament:
        """Validate a score pair and record it on the running tournament."""
        tournament = self._require_current()
        match = tournament.get_match(match_id)
        try:
            parsed_a, parsed_b = validate_scores(score_a, score_b)
        except InvalidScoreError as exc:
            logger.info("Rejected score %r:%r for %s: %s", score_a, score_b, match_id, exc)
            raise
        winner_id = winner_for_scores(match, parsed_a, parsed_b)
        apply_result(tournament, match_id, winner_id, parsed_a, parsed_b)
        winner = tournament.competitor(winner_id)
        self._audit_log.log_event(
            REPORT_RESULT,
            f"Result {match_id}",
            f"{parsed_a}:{parsed_b}, winner {winner.name if winner else winner_id}.",
            context={"match_id": match_id, "score_a": parsed_a, "score_b": parsed_b},
            tournament_id=tournament.id,
        )
        return tournament

    def export_xlsx(self, path: str | Path) -> Path:
        tournament = self._require_current()
        try:
            output_path = self._export_service.export_tournament_xlsx(path, tournament)
        except (OSError, ValueError) as exc:
            self._audit_log.log_error(
                "Tournament export failed",
                exc,
                tournament_id=tournament.id,
                context={"path": str(path)},
            )
            raise
        self._audit_log.log_event(
            EXPORT_FILE,
            "Tournament exported",
            f"Bracket written to {output_path}.",
            context={"path": str(output_path), "format": "xlsx"},
            tournament_id=tournament.id,
        )
        return output_path

    def close(self, save: bool = True) -> None:
        tournament = self.current
        if tournament is None:
            return
        if save:
            self._save_to_history(tournament)
        self.current = None
        self._audit_log.log_event(
            CLOSE_TOURNAMENT,
            "Tournament closed",
            "Saved to history." if save else "Discarded.",
            context={"saved": save, "status": tournament.status.value},
            tournament_id=tournament.id,
        )

    def resume(self, tournament_id: str) -> Tournament:
        for item in self.history:
            if item.id == tournament_id:
                if self.current is not None and self.current.id != tournament_id:
                    self._archive_current()
                self.current = item
                return item
        raise ValueError("Tournament not found in history.")

    def delete_from_history(self, tournament_id: str) -> None:
        self.history = [item for item in self.history if item.id != tournament_id]

    def _require_current(self) -> Tournament:
        if self.current is None:
            raise ValueError("No tournament is running.")
        return self.current
