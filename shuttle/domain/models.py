"""In-memory tournament data model."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from uuid import uuid4

BYE_ID = "__bye__"
DEFAULT_BYE_LABEL = "BYE"

FINAL_GOLD_ID = "FINAL-GOLD"
FINAL_BRONZE_ID = "FINAL-BRONZE"


def generate_id() -> str:
    return uuid4().hex


class Classification(str, Enum):
    SEED = "seed"
    SEPARATED = "separated"
    NORMAL = "normal"
    NONE = "none"

    @classmethod
    def parse(cls, value: object) -> "Classification":
        """Return the classification for a stored value, ``NONE`` when unknown."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value or "").strip().lower())
        except ValueError:
            return cls.NONE


class MatchKind(str, Enum):
    SINGLES = "singles"
    DOUBLES = "doubles"


class TournamentFormat(str, Enum):
    KNOCKOUT = "knockout"
    ROUND_ROBIN_6 = "round-robin-6"


class TournamentStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"


class MatchGroup(str, Enum):
    A = "A"
    B = "B"
    FINALS = "Finals"


class RejectionReason(str, Enum):
    INSUFFICIENT_PLAYERS = "InsufficientPlayers"


@dataclass(frozen=True)
class Player:
    id: str
    name: str


@dataclass(frozen=True)
class Rejected:
    reason: RejectionReason
    required: int = 0
    provided: int = 0


@dataclass
class CompetitorStats:
    wins: int = 0
    points: int = 0
    played: int = 0


@dataclass
class Competitor:
    id: str
    name: str
    players: tuple[Player, ...] = ()
    is_seed: bool = False
    is_separated: bool = False
    is_bye: bool = False
    stats: CompetitorStats | None = None

    @property
    def is_regular(self) -> bool:
        return not (self.is_seed or self.is_separated or self.is_bye)


@dataclass
class Match:
    id: str
    round: int
    match_index: int
    competitor_a_id: str | None = None
    competitor_b_id: str | None = None
    group: MatchGroup | None = None
    score_a: int | None = None
    score_b: int | None = None
    winner_id: str | None = None
    next_match_id: str | None = None

    @property
    def has_scores(self) -> bool:
        return self.score_a is not None and self.score_b is not None

    def competitor_ids(self) -> tuple[str | None, str | None]:
        return self.competitor_a_id, self.competitor_b_id

    def reset_result(self) -> None:
        self.winner_id = None
        self.score_a = None
        self.score_b = None


@dataclass
class Tournament:
    id: str
    kind: MatchKind
    format: TournamentFormat
    matches: list[Match]
    rounds: int
    competitors: dict[str, Competitor] = field(default_factory=dict)
    status: TournamentStatus = TournamentStatus.ACTIVE
    champion_id: str | None = None
    created_at: datetime = field(default_factory=datetime.now)

    def competitor(self, competitor_id: str | None) -> Competitor | None:
        if competitor_id is None:
            return None
        return self.competitors[competitor_id]

    @property
    def champion(self) -> Competitor | None:
        return self.competitor(self.champion_id)

    def get_match(self, match_id: str) -> Match:
        for match in self.matches:
            if match.id == match_id:
                return match
        raise KeyError(match_id)

    def matches_in_group(self, group: MatchGroup) -> list[Match]:
        return [match for match in self.matches if match.group == group]

    def final_match(self) -> Match | None:
        """Return the match that decides the champion."""
        if self.format == TournamentFormat.ROUND_ROBIN_6:
            target_id = FINAL_GOLD_ID
            return next((m for m in self.matches if m.id == target_id), None)
        return next((m for m in self.matches if m.round == self.rounds), None)
