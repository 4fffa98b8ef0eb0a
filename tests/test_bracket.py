"""
Unit tests for knockout bracket structure and topology.
"""
import math
import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from cupengine.bracket import (
    advancement_target,
    build_knockout_matches,
    champion,
    generate_bracket,
    get_round_name,
    is_bye,
    knockout_round_count,
    knockout_rounds,
    matches_per_round,
    slot_has_feeder,
)
from cupengine.errors import MalformedBracketTopology
from cupengine.models import Match, MatchSkeleton, COMPLETED, GROUP_STAGE


def round_summary(skeletons):
    sizes = {}
    names = {}
    for skeleton in skeletons:
        sizes[skeleton.round_order] = sizes.get(skeleton.round_order, 0) + 1
        names[skeleton.round_order] = skeleton.round_name
    return [sizes[r] for r in sorted(sizes)], [names[r] for r in sorted(names)]


class TestRoundNames:
    """Tests for round naming by rounds remaining."""

    def test_standard_names(self):
        """Test names counted back from the Final."""
        assert get_round_name(8, 3) == "Final"
        assert get_round_name(8, 2) == "Semi-Final"
        assert get_round_name(8, 1) == "Quarter-Final"
        assert get_round_name(16, 1) == "Round of 16"
        assert get_round_name(32, 1) == "Round of 32"

    def test_generic_name_for_deep_brackets(self):
        """Test rounds further than five from the Final."""
        assert get_round_name(64, 1) == "Round 1"
        assert get_round_name(64, 2) == "Round of 32"

    def test_round_count(self):
        """Test ceil(log2(N)) rounds."""
        assert knockout_round_count(2) == 1
        assert knockout_round_count(3) == 2
        assert knockout_round_count(8) == 3
        assert knockout_round_count(9) == 4

    def test_round_count_too_small(self):
        """Test that fewer than two participants is rejected."""
        with pytest.raises(ValueError):
            knockout_round_count(1)


class TestGenerateBracket:
    """Tests for bracket skeleton generation."""

    def test_eight_participants(self):
        """Test a power-of-two bracket."""
        sizes, names = round_summary(generate_bracket(8))
        assert sizes == [4, 2, 1]
        assert names == ["Quarter-Final", "Semi-Final", "Final"]

    def test_six_participants(self):
        """Test a non-power-of-two bracket keeps standard names."""
        sizes, names = round_summary(generate_bracket(6))
        assert sizes == [3, 2, 1]
        assert names == ["Quarter-Final", "Semi-Final", "Final"]

    def test_two_participants(self):
        """Test the smallest bracket is a single Final."""
        assert generate_bracket(2) == [MatchSkeleton("Final", 1, 1)]

    def test_nine_participants(self):
        """Test odd round sizes round up."""
        sizes, names = round_summary(generate_bracket(9))
        assert sizes == [5, 3, 2, 1]
        assert names == ["Round of 16", "Quarter-Final", "Semi-Final", "Final"]

    def test_match_order_is_one_indexed(self):
        """Test match order restarts at 1 every round."""
        skeletons = generate_bracket(8)
        assert [(s.round_order, s.match_order) for s in skeletons] == [
            (1, 1), (1, 2), (1, 3), (1, 4), (2, 1), (2, 2), (3, 1)
        ]

    @pytest.mark.slow
    @pytest.mark.parametrize("count", range(2, 70))
    def test_binary_merge_tree(self, count):
        """Test round r holds ceil(M / 2^(r-1)) matches ending in one Final."""
        sizes = matches_per_round(count)
        first = math.ceil(count / 2)
        assert len(sizes) == knockout_round_count(count)
        assert sizes == [math.ceil(first / 2 ** r) for r in range(len(sizes))]
        assert sizes[-1] == 1


class TestBuildKnockoutMatches:
    """Tests for knockout match construction."""

    def test_ids_names_and_periods(self):
        """Test ids, round names and one period per round."""
        matches = build_knockout_matches(8, periods=[30, 31, 32])
        assert [m.id for m in matches] == ["R1-M1", "R1-M2", "R1-M3", "R1-M4", "R2-M1", "R2-M2", "R3-M1"]
        assert matches[0].round_name == "Quarter-Final"
        assert matches[-1].round_name == "Final"
        assert [m.periods for m in matches] == [[30]] * 4 + [[31]] * 2 + [[32]]

    def test_short_period_list_reuses_last(self):
        """Test rounds past the period list reuse its last entry."""
        matches = build_knockout_matches(8, periods=[30, 31])
        assert matches[-1].periods == [31]

    def test_first_round_seeding(self):
        """Test seeding pairs into round one."""
        matches = build_knockout_matches(3, first_round=[("A", "B"), ("C", None)])
        assert (matches[0].team1, matches[0].team2) == ("A", "B")
        assert (matches[1].team1, matches[1].team2) == ("C", None)
        assert matches[2].participants() == []

    def test_too_many_first_round_pairs(self):
        """Test that extra pairs are rejected."""
        with pytest.raises(ValueError):
            build_knockout_matches(4, first_round=[("A", "B"), ("C", "D"), ("E", "F")])

    def test_linked_rounds(self):
        """Test explicit feeder references, including an unfed bye slot."""
        matches = {m.id: m for m in build_knockout_matches(6, link_rounds=True)}
        assert matches["R1-M1"].team1_from_match is None
        assert (matches["R2-M1"].team1_from_match, matches["R2-M1"].team2_from_match) == ("R1-M1", "R1-M2")
        assert (matches["R2-M2"].team1_from_match, matches["R2-M2"].team2_from_match) == ("R1-M3", None)
        assert (matches["R3-M1"].team1_from_match, matches["R3-M1"].team2_from_match) == ("R2-M1", "R2-M2")


class TestTopology:
    """Tests for advancement targets and byes."""

    def test_positional_targets(self):
        """Test matches feed the next round two at a time."""
        matches = build_knockout_matches(6)
        rounds = knockout_rounds(matches)
        by_id = {m.id: m for m in matches}

        target, slot = advancement_target(by_id["R1-M1"], rounds)
        assert (target.id, slot) == ("R2-M1", "team1")
        target, slot = advancement_target(by_id["R1-M2"], rounds)
        assert (target.id, slot) == ("R2-M1", "team2")
        target, slot = advancement_target(by_id["R1-M3"], rounds)
        assert (target.id, slot) == ("R2-M2", "team1")
        assert advancement_target(by_id["R3-M1"], rounds) is None

    def test_explicit_targets(self):
        """Test back-references win over positional pairing."""
        matches = build_knockout_matches(4, link_rounds=True)
        by_id = {m.id: m for m in matches}
        by_id["R2-M1"].team1_from_match = "R1-M2"
        by_id["R2-M1"].team2_from_match = "R1-M1"
        rounds = knockout_rounds(matches)

        target, slot = advancement_target(by_id["R1-M1"], rounds)
        assert (target.id, slot) == ("R2-M1", "team2")

    def test_missing_next_round(self):
        """Test a multi-match round without a following round is malformed."""
        matches = [Match(id="R1-M1", match_order=1), Match(id="R1-M2", match_order=2)]
        with pytest.raises(MalformedBracketTopology):
            advancement_target(matches[0], knockout_rounds(matches))

    def test_missing_back_reference(self):
        """Test a non-final match nobody references is malformed."""
        matches = build_knockout_matches(4, link_rounds=True)
        by_id = {m.id: m for m in matches}
        by_id["R2-M1"].team2_from_match = None
        with pytest.raises(MalformedBracketTopology):
            advancement_target(by_id["R1-M2"], knockout_rounds(matches))

    def test_duplicate_back_reference(self):
        """Test a match referenced by two slots is malformed."""
        matches = build_knockout_matches(4, link_rounds=True)
        by_id = {m.id: m for m in matches}
        by_id["R2-M1"].team2_from_match = "R1-M1"
        with pytest.raises(MalformedBracketTopology):
            advancement_target(by_id["R1-M1"], knockout_rounds(matches))

    def test_group_matches_are_not_knockout_rounds(self):
        """Test that group matches are left out of the bracket."""
        matches = build_knockout_matches(2) + [Match(id="G1", stage=GROUP_STAGE)]
        assert [m.id for r in knockout_rounds(matches).values() for m in r] == ["R1-M1"]

    def test_slot_feeders(self):
        """Test which slots have a feeding match."""
        matches = build_knockout_matches(6)
        rounds = knockout_rounds(matches)
        by_id = {m.id: m for m in matches}
        assert not slot_has_feeder(by_id["R1-M1"], "team1", rounds)
        assert slot_has_feeder(by_id["R2-M2"], "team1", rounds)
        assert not slot_has_feeder(by_id["R2-M2"], "team2", rounds)

    def test_byes(self):
        """Test bye detection in round one and in an odd later round."""
        matches = build_knockout_matches(6, first_round=[("A", "B"), ("C", "D"), ("E", None)])
        rounds = knockout_rounds(matches)
        by_id = {m.id: m for m in matches}
        assert is_bye(by_id["R1-M3"], rounds)
        assert not is_bye(by_id["R1-M1"], rounds)

        by_id["R2-M2"].team1 = "E"
        assert is_bye(by_id["R2-M2"], rounds)
        by_id["R2-M1"].team1 = "A"
        assert not is_bye(by_id["R2-M1"], rounds)

    def test_champion(self):
        """Test champion is the Final's winner."""
        matches = build_knockout_matches(2, first_round=[("A", "B")])
        assert champion(matches) is None
        matches[0].status = COMPLETED
        matches[0].winner = "B"
        assert champion(matches) == "B"
        assert champion([]) is None
