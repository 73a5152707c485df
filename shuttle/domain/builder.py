"""Bracket construction for knockout and group-cycle tournaments."""

from __future__ import annotations

import logging
import random
from typing import Callable, Mapping, Sequence

from shuttle.domain.models import (
    BYE_ID,
    DEFAULT_BYE_LABEL,
    FINAL_BRONZE_ID,
    FINAL_GOLD_ID,
    Classification,
    Competitor,
    CompetitorStats,
    Match,
    MatchGroup,
    MatchKind,
    Player,
    Rejected,
    RejectionReason,
    Tournament,
    TournamentFormat,
    generate_id,
)
from shuttle.domain.seeding import (
    bracket_size,
    first_open_slot,
    opponent_index,
    seeding_indices,
    total_rounds,
)
from shuttle.domain.updater import recompute

logger = logging.getLogger(__name__)

Shuffle = Callable[[list], None]

MIN_PLAYERS = {
    MatchKind.SINGLES: 2,
    MatchKind.DOUBLES: 4,
}
ROUND_ROBIN_MIN_PLAYERS = 12
ROUND_ROBIN_TEAMS = 6
GROUP_SIZE = 3
GROUP_PAIRINGS = ((0, 1), (1, 2), (0, 2))

ClassificationMap = Mapping[str, Classification | str]


def knockout_match_id(round_number: int, match_index: int) -> str:
    return f"R{round_number}-M{match_index}"


def group_match_id(group: MatchGroup, match_index: int) -> str:
    return f"G{group.value}-M{match_index}"


def _classification_of(player: Player, classification: ClassificationMap) -> Classification:
    return Classification.parse(classification.get(player.id))


def make_team(first: Player, second: Player) -> Competitor:
    return Competitor(
        id=f"team-{first.id}-{second.id}",
        name=f"{first.name} & {second.name}",
        players=(first, second),
    )


def make_competitors(players: Sequence[Player], kind: MatchKind) -> list[Competitor]:
    """Turn an already shuffled player list into competitors."""
    if kind == MatchKind.SINGLES:
        return [Competitor(id=p.id, name=p.name, players=(p,)) for p in players]
    competitors: list[Competitor] = []
    for idx in range(0, len(players) - 1, 2):
        competitors.append(make_team(players[idx], players[idx + 1]))
    return competitors


def classify_competitors(
    competitors: Sequence[Competitor], classification: ClassificationMap
) -> None:
    for competitor in competitors:
        tags = {_classification_of(p, classification) for p in competitor.players}
        competitor.is_seed = Classification.SEED in tags
        competitor.is_separated = not competitor.is_seed and Classification.SEPARATED in tags


def place_competitors(
    competitors: Sequence[Competitor],
    *,
    shuffle: Shuffle,
) -> list[str]:
    """Return the round-1 slot assignment as competitor ids.

    Seeds take the preferred slots first, separated competitors next. While
    byes are still available, every seed whose opponent slot is empty gets a
    bye there. Remaining byes and regular competitors fill what is left in a
    shuffled order.
    """
    size = bracket_size(len(competitors))
    slots: list[str | None] = [None] * size
    priority = seeding_indices(size)

    seeds = [c for c in competitors if c.is_seed]
    separated = [c for c in competitors if c.is_separated]
    regulars = [c for c in competitors if c.is_regular]

    for competitor in [*seeds, *separated]:
        index = first_open_slot(slots, priority)
        if index is not None:
            slots[index] = competitor.id

    seed_ids = {c.id for c in seeds}
    byes_needed = size - len(competitors)
    for index in range(size):
        if byes_needed <= 0:
            break
        if slots[index] in seed_ids:
            opponent = opponent_index(index)
            if slots[opponent] is None:
                slots[opponent] = BYE_ID
                byes_needed -= 1

    pool = [c.id for c in regulars] + [BYE_ID] * byes_needed
    shuffle(pool)
    open_slots = [index for index, occupant in enumerate(slots) if occupant is None]
    for index, competitor_id in zip(open_slots, pool):
        slots[index] = competitor_id

    return [occupant if occupant is not None else BYE_ID for occupant in slots]


def knockout_skeleton(size: int) -> list[Match]:
    rounds = total_rounds(size)
    matches: list[Match] = []
    for round_number in range(1, rounds + 1):
        match_count = size // (2**round_number)
        for match_index in range(match_count):
            next_match_id = (
                knockout_match_id(round_number + 1, match_index // 2)
                if round_number < rounds
                else None
            )
            matches.append(
                Match(
                    id=knockout_match_id(round_number, match_index),
                    round=round_number,
                    match_index=match_index,
                    next_match_id=next_match_id,
                )
            )
    return matches


def build_knockout(
    players: Sequence[Player],
    classification: ClassificationMap,
    kind: MatchKind,
    *,
    shuffle: Shuffle | None = None,
    bye_label: str = DEFAULT_BYE_LABEL,
) -> Tournament | Rejected:
    """Build a single-elimination tournament, or reject it for lack of players."""
    shuffle = shuffle or random.shuffle
    kind = MatchKind(kind)
    required = MIN_PLAYERS[kind]
    if len(players) < required:
        logger.info("Knockout rejected: %s players, %s required", len(players), required)
        return Rejected(RejectionReason.INSUFFICIENT_PLAYERS, required, len(players))

    if any(player.id == BYE_ID for player in players):
        raise ValueError(f"Player id {BYE_ID!r} is reserved for byes.")

    shuffled = list(players)
    shuffle(shuffled)
    competitors = make_competitors(shuffled, kind)
    if len(competitors) < 2:
        return Rejected(RejectionReason.INSUFFICIENT_PLAYERS, required, len(players))
    classify_competitors(competitors, classification)

    size = bracket_size(len(competitors))
    slots = place_competitors(competitors, shuffle=shuffle)
    matches = knockout_skeleton(size)
    for match in matches:
        if match.round != 1:
            continue
        match.competitor_a_id = slots[match.match_index * 2]
        match.competitor_b_id = slots[match.match_index * 2 + 1]

    arena = {c.id: c for c in competitors}
    arena[BYE_ID] = Competitor(id=BYE_ID, name=bye_label, is_bye=True)
    tournament = Tournament(
        id=generate_id(),
        kind=kind,
        format=TournamentFormat.KNOCKOUT,
        matches=matches,
        rounds=total_rounds(size),
        competitors=arena,
    )
    logger.info(
        "Knockout %s built: %s competitors, size %s, %s byes",
        tournament.id,
        len(competitors),
        size,
        size - len(competitors),
    )
    recompute(tournament)
    return tournament


def build_round_robin(
    players: Sequence[Player],
    classification: ClassificationMap | None = None,
    *,
    shuffle: Shuffle | None = None,
) -> Tournament | Rejected:
    """Build the six-team group cycle: two groups of three, then two finals."""
    shuffle = shuffle or random.shuffle
    if len(players) < ROUND_ROBIN_MIN_PLAYERS:
        logger.info(
            "Group cycle rejected: %s players, %s required",
            len(players),
            ROUND_ROBIN_MIN_PLAYERS,
        )
        return Rejected(
            RejectionReason.INSUFFICIENT_PLAYERS, ROUND_ROBIN_MIN_PLAYERS, len(players)
        )

    shuffled = list(players)
    shuffle(shuffled)
    teams = make_competitors(shuffled[: ROUND_ROBIN_TEAMS * 2], MatchKind.DOUBLES)
    for team in teams:
        team.stats = CompetitorStats()

    matches: list[Match] = []
    for group, members in (
        (MatchGroup.A, teams[:GROUP_SIZE]),
        (MatchGroup.B, teams[GROUP_SIZE : GROUP_SIZE * 2]),
    ):
        for pairing_index, (first, second) in enumerate(GROUP_PAIRINGS):
            matches.append(
                Match(
                    id=group_match_id(group, pairing_index),
                    round=1,
                    match_index=len(matches),
                    group=group,
                    competitor_a_id=members[first].id,
                    competitor_b_id=members[second].id,
                )
            )
    matches.append(Match(id=FINAL_GOLD_ID, round=2, match_index=0, group=MatchGroup.FINALS))
    matches.append(Match(id=FINAL_BRONZE_ID, round=2, match_index=1, group=MatchGroup.FINALS))

    tournament = Tournament(
        id=generate_id(),
        kind=MatchKind.DOUBLES,
        format=TournamentFormat.ROUND_ROBIN_6,
        matches=matches,
        rounds=2,
        competitors={team.id: team for team in teams},
    )
    logger.info("Group cycle %s built with %s teams", tournament.id, len(teams))
    recompute(tournament)
    return tournament
