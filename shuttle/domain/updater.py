"""Recomputation of derived tournament state after results change.

Every call re-derives winners from byes, successor slots, group statistics,
finals participants, the champion and the status from the current match
results. Running it twice without a result change leaves the tournament
unchanged.
"""

from __future__ import annotations

import logging

from shuttle.domain.models import (
    FINAL_BRONZE_ID,
    FINAL_GOLD_ID,
    Competitor,
    CompetitorStats,
    Match,
    MatchGroup,
    Tournament,
    TournamentFormat,
    TournamentStatus,
)

logger = logging.getLogger(__name__)

GROUPS = (MatchGroup.A, MatchGroup.B)


def recompute(tournament: Tournament) -> None:
    if tournament.format == TournamentFormat.ROUND_ROBIN_6:
        _update_round_robin(tournament)
    else:
        _update_knockout(tournament)


def apply_result(
    tournament: Tournament,
    match_id: str,
    winner_id: str,
    score_a: int | None = None,
    score_b: int | None = None,
) -> None:
    """Record a match result and recompute the tournament."""
    match = tournament.get_match(match_id)
    if winner_id not in (match.competitor_a_id, match.competitor_b_id):
        raise ValueError(f"Competitor {winner_id!r} does not play in match {match_id}.")
    match.winner_id = winner_id
    if score_a is not None:
        match.score_a = score_a
    if score_b is not None:
        match.score_b = score_b
    logger.debug("Result for %s: winner %s (%s:%s)", match_id, winner_id, score_a, score_b)
    recompute(tournament)


def _infer_bye_winner(tournament: Tournament, match: Match) -> None:
    if match.winner_id is not None:
        return
    competitor_a = tournament.competitor(match.competitor_a_id)
    competitor_b = tournament.competitor(match.competitor_b_id)
    if competitor_a is None or competitor_b is None:
        return
    if competitor_b.is_bye and not competitor_a.is_bye:
        match.winner_id = competitor_a.id
    elif competitor_a.is_bye and not competitor_b.is_bye:
        match.winner_id = competitor_b.id
    elif competitor_a.is_bye and competitor_b.is_bye:
        # Two byes only meet in degenerate brackets; slot A advances.
        match.winner_id = competitor_a.id


def _propagate(match: Match, next_match: Match) -> None:
    advancing = match.winner_id
    if match.match_index % 2 == 0:
        if next_match.competitor_a_id != advancing:
            next_match.competitor_a_id = advancing
            next_match.reset_result()
    elif next_match.competitor_b_id != advancing:
        next_match.competitor_b_id = advancing
        next_match.reset_result()


def _update_knockout(tournament: Tournament) -> None:
    by_id = {match.id: match for match in tournament.matches}
    for match in sorted(tournament.matches, key=lambda item: item.round):
        _infer_bye_winner(tournament, match)
        if match.next_match_id is None:
            continue
        next_match = by_id.get(match.next_match_id)
        if next_match is not None:
            _propagate(match, next_match)
    _update_status(tournament, tournament.final_match())


def _update_status(tournament: Tournament, final_match: Match | None) -> None:
    previous = tournament.status
    if final_match is not None and final_match.winner_id is not None:
        tournament.champion_id = final_match.winner_id
        tournament.status = TournamentStatus.COMPLETED
    else:
        tournament.champion_id = None
        tournament.status = TournamentStatus.ACTIVE
    if previous != tournament.status:
        logger.info("Tournament %s is now %s", tournament.id, tournament.status.value)


def _group_competitors(tournament: Tournament, matches: list[Match]) -> list[Competitor]:
    seen: dict[str, Competitor] = {}
    for match in matches:
        for competitor_id in match.competitor_ids():
            if competitor_id is not None and competitor_id not in seen:
                seen[competitor_id] = tournament.competitors[competitor_id]
    return list(seen.values())


def _recalculate_stats(tournament: Tournament) -> None:
    group_matches = [m for m in tournament.matches if m.group in GROUPS]
    teams = _group_competitors(tournament, group_matches)
    for team in teams:
        team.stats = CompetitorStats()

    for match in group_matches:
        if match.winner_id is None or not match.has_scores:
            continue
        team_a = tournament.competitor(match.competitor_a_id)
        team_b = tournament.competitor(match.competitor_b_id)
        if team_a is None or team_b is None:
            continue
        team_a.stats.played += 1
        team_b.stats.played += 1
        team_a.stats.points += int(match.score_a)
        team_b.stats.points += int(match.score_b)
        if match.winner_id == team_a.id:
            team_a.stats.wins += 1
        else:
            team_b.stats.wins += 1


def group_standings(tournament: Tournament, group: MatchGroup) -> list[Competitor]:
    """Rank a group by wins, then points; equal teams keep discovery order."""
    teams = _group_competitors(tournament, tournament.matches_in_group(group))
    return sorted(
        teams,
        key=lambda team: (
            -(team.stats.wins if team.stats else 0),
            -(team.stats.points if team.stats else 0),
        ),
    )


def is_group_complete(tournament: Tournament, group: MatchGroup) -> bool:
    matches = tournament.matches_in_group(group)
    return bool(matches) and all(match.winner_id is not None for match in matches)


def _seat_finalists(final: Match, competitor_a: Competitor, competitor_b: Competitor) -> None:
    changed = False
    if final.competitor_a_id != competitor_a.id:
        final.competitor_a_id = competitor_a.id
        changed = True
    if final.competitor_b_id != competitor_b.id:
        final.competitor_b_id = competitor_b.id
        changed = True
    if changed:
        final.reset_result()


def _clear_final(final: Match) -> None:
    final.competitor_a_id = None
    final.competitor_b_id = None
    final.reset_result()


def _update_round_robin(tournament: Tournament) -> None:
    _recalculate_stats(tournament)
    standings = {group: group_standings(tournament, group) for group in GROUPS}
    groups_done = all(is_group_complete(tournament, group) for group in GROUPS)

    finals = {m.id: m for m in tournament.matches_in_group(MatchGroup.FINALS)}
    gold = finals.get(FINAL_GOLD_ID)
    bronze = finals.get(FINAL_BRONZE_ID)

    if groups_done:
        group_a, group_b = standings[MatchGroup.A], standings[MatchGroup.B]
        if gold is not None:
            _seat_finalists(gold, group_a[0], group_b[0])
        if bronze is not None:
            _seat_finalists(bronze, group_a[1], group_b[1])
    else:
        for final in (gold, bronze):
            if final is not None:
                _clear_final(final)

    _update_status(tournament, gold)
