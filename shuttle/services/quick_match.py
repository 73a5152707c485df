from __future__ import annotations

import random
import sqlite3
from dataclasses import dataclass, field
from datetime import datetime
from typing import Sequence

from shuttle.domain.builder import Shuffle
from shuttle.domain.models import MatchKind, Player, generate_id
from shuttle.services.audit_log import CREATE_MATCH, DELETE_MATCH, AuditLogService

PLAYERS_PER_TEAM = {
    MatchKind.SINGLES: 1,
    MatchKind.DOUBLES: 2,
}


@dataclass(frozen=True)
class QuickMatch:
    id: str
    kind: MatchKind
    team_a: tuple[Player, ...]
    team_b: tuple[Player, ...]
    created_at: datetime = field(default_factory=datetime.now)


def _check_team(team: Sequence[Player], size: int, label: str) -> None:
    if len(team) > size:
        raise ValueError(f"{label} can have at most {size} player(s).")


def fill_teams(
    roster: Sequence[Player],
    kind: MatchKind | str,
    team_a: Sequence[Player] = (),
    team_b: Sequence[Player] = (),
    *,
    shuffle: Shuffle | None = None,
) -> tuple[list[Player], list[Player]]:
    """Complete both teams with randomly drawn players not already picked."""
    kind = MatchKind(kind)
    size = PLAYERS_PER_TEAM[kind]
    _check_team(team_a, size, "Team A")
    _check_team(team_b, size, "Team B")

    picked = {player.id for player in [*team_a, *team_b]}
    available = [player for player in roster if player.id not in picked]
    needed_a = size - len(team_a)
    needed_b = size - len(team_b)
    if len(available) < needed_a + needed_b:
        raise ValueError("Not enough remaining players to complete the match.")

    (shuffle or random.shuffle)(available)
    filled_a = [*team_a, *available[:needed_a]]
    filled_b = [*team_b, *available[needed_a : needed_a + needed_b]]
    return filled_a, filled_b


def create_quick_match(
    kind: MatchKind | str,
    team_a: Sequence[Player],
    team_b: Sequence[Player],
) -> QuickMatch:
    kind = MatchKind(kind)
    size = PLAYERS_PER_TEAM[kind]
    if len(team_a) != size or len(team_b) != size:
        raise ValueError(f"A {kind.value} match needs {size} player(s) per team.")
    overlap = {p.id for p in team_a} & {p.id for p in team_b}
    if overlap:
        raise ValueError("A player cannot be on both teams.")
    return QuickMatch(id=generate_id(), kind=kind, team_a=tuple(team_a), team_b=tuple(team_b))


def _team_names(team: Sequence[Player]) -> str:
    return " & ".join(player.name for player in team)


class QuickMatchLog:
    """One-off matches played outside a tournament, newest first."""

    def __init__(self, connection: sqlite3.Connection) -> None:
        self._audit_log = AuditLogService(connection)
        self.matches: list[QuickMatch] = []

    def add(self, match: QuickMatch) -> QuickMatch:
        self.matches.insert(0, match)
        self._audit_log.log_event(
            CREATE_MATCH,
            f"Quick {match.kind.value} match",
            f"{_team_names(match.team_a)} vs {_team_names(match.team_b)}",
            context={
                "match_id": match.id,
                "team_a": [player.id for player in match.team_a],
                "team_b": [player.id for player in match.team_b],
            },
        )
        return match

    def create(
        self,
        kind: MatchKind | str,
        team_a: Sequence[Player],
        team_b: Sequence[Player],
    ) -> QuickMatch:
        return self.add(create_quick_match(kind, team_a, team_b))

    def delete(self, match_id: str) -> None:
        remaining = [match for match in self.matches if match.id != match_id]
        if len(remaining) == len(self.matches):
            raise ValueError("Match not found.")
        self.matches = remaining
        self._audit_log.log_event(
            DELETE_MATCH,
            "Quick match deleted",
            f"Match {match_id} removed from the log.",
            context={"match_id": match_id},
        )
