import copy
import random
import unittest

from shuttle.domain.builder import build_knockout
from shuttle.domain.models import (
    BYE_ID,
    Classification,
    MatchKind,
    Player,
    Rejected,
    RejectionReason,
    Tournament,
    TournamentFormat,
    TournamentStatus,
)
from shuttle.domain.updater import apply_result, recompute
from tests.helpers.roster_factory import keep_order, make_players


def _build(count: int, kind=MatchKind.SINGLES, classification=None) -> Tournament:
    tournament = build_knockout(
        make_players(count), classification or {}, kind, shuffle=keep_order
    )
    assert isinstance(tournament, Tournament)
    return tournament


class KnockoutBuilderTests(unittest.TestCase):
    def test_rejects_below_minimum(self) -> None:
        cases = [(MatchKind.SINGLES, 0), (MatchKind.SINGLES, 1), (MatchKind.DOUBLES, 3)]
        for kind, count in cases:
            with self.subTest(kind=kind, count=count):
                result = build_knockout(make_players(count), {}, kind, shuffle=keep_order)
                self.assertIsInstance(result, Rejected)
                self.assertEqual(result.reason, RejectionReason.INSUFFICIENT_PLAYERS)
                self.assertEqual(result.provided, count)

    def test_size_and_rounds_follow_competitor_count(self) -> None:
        for count in range(2, 18):
            with self.subTest(count=count):
                tournament = build_knockout(
                    make_players(count), {}, MatchKind.SINGLES, shuffle=random.Random(count).shuffle
                )
                size = 1
                while size < count:
                    size *= 2
                round_one = [m for m in tournament.matches if m.round == 1]
                self.assertEqual(len(round_one) * 2, size)
                self.assertEqual(2**tournament.rounds, size)
                self.assertEqual(len(tournament.matches), size - 1)
                slots = [cid for m in round_one for cid in (m.competitor_a_id, m.competitor_b_id)]
                self.assertEqual(slots.count(BYE_ID), size - count)

    def test_skeleton_links_winners_forward(self) -> None:
        tournament = _build(8)
        self.assertEqual(tournament.get_match("R1-M0").next_match_id, "R2-M0")
        self.assertEqual(tournament.get_match("R1-M3").next_match_id, "R2-M1")
        self.assertEqual(tournament.get_match("R2-M1").next_match_id, "R3-M0")
        self.assertIsNone(tournament.get_match("R3-M0").next_match_id)
        self.assertEqual(tournament.format, TournamentFormat.KNOCKOUT)
        self.assertEqual(tournament.status, TournamentStatus.ACTIVE)

    def test_five_singles_players_without_seeds(self) -> None:
        tournament = _build(5)
        self.assertEqual(tournament.rounds, 3)
        self.assertEqual(len([m for m in tournament.matches if m.round == 1]), 4)

        # Slots are poured in order: p1..p5 then three byes.
        m2 = tournament.get_match("R1-M2")
        self.assertEqual((m2.competitor_a_id, m2.competitor_b_id), ("p5", BYE_ID))
        self.assertEqual(m2.winner_id, "p5")
        self.assertIsNone(m2.score_a)
        self.assertIsNone(m2.score_b)

        m3 = tournament.get_match("R1-M3")
        self.assertEqual(m3.winner_id, BYE_ID)

        semi = tournament.get_match("R2-M1")
        self.assertEqual((semi.competitor_a_id, semi.competitor_b_id), ("p5", BYE_ID))
        self.assertEqual(semi.winner_id, "p5")
        final = tournament.get_match("R3-M0")
        self.assertEqual(final.competitor_b_id, "p5")
        self.assertIsNone(final.competitor_a_id)

    def test_seeds_take_top_and_bottom_and_face_byes(self) -> None:
        classification = {"p1": Classification.SEED, "p2": "seed"}
        tournament = _build(5, classification=classification)

        m0 = tournament.get_match("R1-M0")
        m3 = tournament.get_match("R1-M3")
        self.assertEqual((m0.competitor_a_id, m0.competitor_b_id), ("p1", BYE_ID))
        self.assertEqual((m3.competitor_a_id, m3.competitor_b_id), (BYE_ID, "p2"))
        self.assertEqual(m0.winner_id, "p1")
        self.assertEqual(m3.winner_id, "p2")
        self.assertTrue(tournament.competitors["p1"].is_seed)
        self.assertFalse(tournament.competitors["p3"].is_seed)

    def test_seeds_always_get_byes_when_available(self) -> None:
        classification = {"p1": "seed", "p4": "seed", "p6": "separated"}
        for seed in range(20):
            with self.subTest(seed=seed):
                tournament = build_knockout(
                    make_players(6),
                    classification,
                    MatchKind.SINGLES,
                    shuffle=random.Random(seed).shuffle,
                )
                for match in tournament.matches:
                    if match.round != 1:
                        continue
                    pair = {match.competitor_a_id, match.competitor_b_id}
                    if pair & {"p1", "p4"}:
                        self.assertIn(BYE_ID, pair)

    def test_separated_competitors_are_spread_apart(self) -> None:
        classification = {"p1": "separated", "p2": "separated"}
        tournament = _build(4, classification=classification)
        self.assertEqual(tournament.get_match("R1-M0").competitor_a_id, "p1")
        self.assertEqual(tournament.get_match("R1-M1").competitor_b_id, "p2")
        self.assertTrue(tournament.competitors["p1"].is_separated)

    def test_seed_takes_priority_over_separated_in_a_pair(self) -> None:
        classification = {"p1": "separated", "p2": "seed", "p3": "separated"}
        tournament = _build(4, kind=MatchKind.DOUBLES, classification=classification)
        first = tournament.competitors["team-p1-p2"]
        second = tournament.competitors["team-p3-p4"]
        self.assertTrue(first.is_seed)
        self.assertFalse(first.is_separated)
        self.assertTrue(second.is_separated)

    def test_doubles_pairs_consecutive_players_and_drops_the_odd_one(self) -> None:
        tournament = _build(5, kind=MatchKind.DOUBLES)
        teams = {cid for cid, c in tournament.competitors.items() if not c.is_bye}
        self.assertEqual(teams, {"team-p1-p2", "team-p3-p4"})
        self.assertEqual(tournament.competitors["team-p1-p2"].name, "Player 1 & Player 2")
        self.assertEqual(tournament.kind, MatchKind.DOUBLES)

    def test_four_doubles_players_crown_champion_after_one_result(self) -> None:
        tournament = _build(4, kind=MatchKind.DOUBLES)
        self.assertEqual(tournament.rounds, 1)
        self.assertEqual(len(tournament.matches), 1)
        final = tournament.matches[0]
        self.assertIsNone(final.next_match_id)

        apply_result(tournament, final.id, "team-p3-p4", 15, 21)

        self.assertEqual(tournament.status, TournamentStatus.COMPLETED)
        self.assertEqual(tournament.champion_id, "team-p3-p4")
        self.assertEqual(tournament.champion.name, "Player 3 & Player 4")

    def test_bye_label_is_configurable(self) -> None:
        tournament = build_knockout(
            make_players(3), {}, MatchKind.SINGLES, shuffle=keep_order, bye_label="輪空"
        )
        self.assertEqual(tournament.competitors[BYE_ID].name, "輪空")

    def test_player_named_bye_keeps_its_own_competitor(self) -> None:
        players = [Player(id="bye", name="Bye Lee"), *make_players(2)]
        tournament = build_knockout(players, {}, MatchKind.SINGLES, shuffle=keep_order)

        self.assertEqual(tournament.competitors["bye"].name, "Bye Lee")
        self.assertFalse(tournament.competitors["bye"].is_bye)
        self.assertTrue(tournament.competitors[BYE_ID].is_bye)
        self.assertEqual(tournament.get_match("R1-M0").competitor_ids(), ("bye", "p1"))

    def test_reserved_bye_id_is_refused(self) -> None:
        players = [Player(id=BYE_ID, name="Imposter"), *make_players(2)]
        with self.assertRaises(ValueError):
            build_knockout(players, {}, MatchKind.SINGLES, shuffle=keep_order)


class KnockoutUpdaterTests(unittest.TestCase):
    def test_results_propagate_to_champion(self) -> None:
        tournament = _build(4)
        apply_result(tournament, "R1-M0", "p1", 21, 10)
        apply_result(tournament, "R1-M1", "p4", 19, 21)

        final = tournament.get_match("R2-M0")
        self.assertEqual((final.competitor_a_id, final.competitor_b_id), ("p1", "p4"))
        self.assertEqual(tournament.status, TournamentStatus.ACTIVE)

        apply_result(tournament, "R2-M0", "p4", 18, 21)
        self.assertEqual(tournament.status, TournamentStatus.COMPLETED)
        self.assertEqual(tournament.champion_id, "p4")

    def test_correcting_an_early_result_retracts_downstream_winners(self) -> None:
        tournament = _build(8)
        for match_id, winner in [("R1-M0", "p1"), ("R1-M1", "p3"), ("R1-M2", "p5"), ("R1-M3", "p7")]:
            apply_result(tournament, match_id, winner, 21, 12)
        apply_result(tournament, "R2-M0", "p1", 21, 17)
        apply_result(tournament, "R2-M1", "p5", 21, 19)
        apply_result(tournament, "R3-M0", "p1", 21, 14)
        self.assertEqual(tournament.champion_id, "p1")

        apply_result(tournament, "R1-M0", "p2", 12, 21)

        semi = tournament.get_match("R2-M0")
        final = tournament.get_match("R3-M0")
        self.assertEqual(semi.competitor_a_id, "p2")
        self.assertIsNone(semi.winner_id)
        self.assertIsNone(semi.score_a)
        self.assertIsNone(final.competitor_a_id)
        self.assertEqual(final.competitor_b_id, "p5")
        self.assertIsNone(final.winner_id)
        self.assertIsNone(tournament.champion_id)
        self.assertEqual(tournament.status, TournamentStatus.ACTIVE)
        self.assertEqual(tournament.get_match("R2-M1").winner_id, "p5")

    def test_same_winner_resubmitted_keeps_downstream_results(self) -> None:
        tournament = _build(4)
        apply_result(tournament, "R1-M0", "p1", 21, 10)
        apply_result(tournament, "R1-M1", "p3", 21, 10)
        apply_result(tournament, "R2-M0", "p3", 10, 21)

        apply_result(tournament, "R1-M0", "p1", 21, 19)

        self.assertEqual(tournament.get_match("R1-M0").score_b, 19)
        self.assertEqual(tournament.get_match("R2-M0").winner_id, "p3")
        self.assertEqual(tournament.champion_id, "p3")

    def test_recompute_is_idempotent(self) -> None:
        tournament = build_knockout(
            make_players(11),
            {"p2": "seed", "p7": "separated"},
            MatchKind.SINGLES,
            shuffle=random.Random(7).shuffle,
        )
        for match in [m for m in tournament.matches if m.round == 1]:
            if match.winner_id is None:
                apply_result(tournament, match.id, match.competitor_a_id, 21, 15)

        snapshot = copy.deepcopy(tournament)
        recompute(tournament)
        self.assertEqual(tournament, snapshot)
        recompute(tournament)
        self.assertEqual(tournament, snapshot)

    def test_unknown_match_and_foreign_winner_are_rejected(self) -> None:
        tournament = _build(4)
        with self.assertRaises(KeyError):
            apply_result(tournament, "R9-M9", "p1", 21, 3)
        with self.assertRaises(ValueError):
            apply_result(tournament, "R1-M0", "p3", 21, 3)


if __name__ == "__main__":
    unittest.main()
