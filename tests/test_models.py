"""
Unit tests for the data models (Group, Fixture, Match, Standing, PeriodScore).
"""
import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from cupengine.models import (
    Fixture, Group, Match, PeriodScore, Standing,
    COMPLETED, PENDING, PENDING_FILLED, PENDING_UNFILLED,
)


class TestGroup:
    """Tests for the Group model."""

    def test_group_creation(self):
        """Test creating a group keeps member order."""
        group = Group("Group A", [3, 1, 2])
        assert group.name == "Group A"
        assert group.participants == [3, 1, 2]

    def test_group_repr(self):
        """Test group string representation."""
        assert "Group A" in repr(Group("Group A", ["X"]))


class TestFixture:
    """Tests for the Fixture model."""

    def test_fixture_pair_is_unordered(self):
        """Test that a fixture's pair ignores home/away order."""
        assert Fixture("A", "B", 1).pair == Fixture("B", "A", 1).pair

    def test_fixture_rejects_self_pairing(self):
        """Test that a participant cannot play itself."""
        with pytest.raises(ValueError):
            Fixture("A", "A", 1)


class TestMatch:
    """Tests for the Match model."""

    def test_match_defaults(self):
        """Test a new match is pending and unfilled."""
        match = Match(id="R1-M1")
        assert match.status == PENDING
        assert match.state == PENDING_UNFILLED
        assert match.winner is None
        assert match.periods == []

    def test_match_states(self):
        """Test the read-model state follows slots and status."""
        match = Match(id="R1-M1", team1="A")
        assert match.state == PENDING_UNFILLED
        match.team2 = "B"
        assert match.state == PENDING_FILLED
        match.status = COMPLETED
        assert match.state == COMPLETED

    def test_match_rejects_self_pairing(self):
        """Test that a match cannot pair a participant with itself."""
        with pytest.raises(ValueError):
            Match(id="R1-M1", team1="A", team2="A")

    def test_match_draw(self):
        """Test that a completed match without winner is a draw."""
        match = Match(id="R1-M1", team1="A", team2="B", status=COMPLETED,
                      team1_score=50, team2_score=50)
        assert match.is_draw

    def test_match_dict_round_trip_and_equality(self):
        """Test to_dict/from_dict preserve every field."""
        match = Match(id="R2-M1", round_order=2, team1=7, periods=[4], team1_from_match="R1-M1")
        restored = Match.from_dict(match.to_dict())
        assert restored == match
        restored.team2 = 9
        assert restored != match

    def test_match_copy_is_independent(self):
        """Test copies do not share the periods list."""
        match = Match(id="R1-M1", periods=[1])
        clone = match.copy()
        clone.periods.append(2)
        assert match.periods == [1]

    def test_score_for(self):
        """Test score lookup per participant."""
        match = Match(id="M", team1="A", team2="B", team1_score=10, team2_score=3)
        assert match.score_for("A") == 10
        assert match.score_for("B") == 3
        with pytest.raises(KeyError):
            match.score_for("C")


class TestStanding:
    """Tests for the Standing model."""

    def test_points_difference(self):
        """Test points difference is derived from for/against."""
        standing = Standing("A", "Group A")
        standing.points_for = 120
        standing.points_against = 90
        assert standing.points_difference == 30
        assert standing.to_dict()['points_difference'] == 30


class TestPeriodScore:
    """Tests for PeriodScore."""

    def test_net_subtracts_penalty(self):
        """Test net score is raw score minus penalty."""
        assert PeriodScore(64, 4).net == 60

    def test_missing_penalty_is_zero(self):
        """Test a None penalty counts as zero."""
        assert PeriodScore(50, None).net == 50
