"""
Shared pytest fixtures for cup engine tests.

Running tests:
    pytest tests/                  - full suite
    pytest tests/ -m "not slow"   - skip the larger property sweeps
"""
import pytest
import sys
import os

# Add src directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from cupengine.bracket import build_knockout_matches
from cupengine.feeds import StaticScoreFeed
from cupengine.models import Group, Match, COMPLETED, GROUP_STAGE


def completed_group_match(match_id, group, team1, team2, score1, score2):
    """A finished group match with the given aggregate scores."""
    if score1 > score2:
        winner = team1
    elif score2 > score1:
        winner = team2
    else:
        winner = None
    return Match(id=match_id, stage=GROUP_STAGE, group=group, team1=team1, team2=team2,
                 team1_score=score1, team2_score=score2, status=COMPLETED, winner=winner,
                 periods=[1])


@pytest.fixture
def sample_group():
    """Four participants in Group A."""
    return Group("Group A", ["A", "B", "C", "D"])


@pytest.fixture
def sample_group_results():
    """
    Completed Group A results:
    A 60-50 B, C 40-40 D, A 30-70 C, B 55-45 D.
    """
    return [
        completed_group_match("A1", "Group A", "A", "B", 60, 50),
        completed_group_match("A2", "Group A", "C", "D", 40, 40),
        completed_group_match("A3", "Group A", "A", "C", 30, 70),
        completed_group_match("A4", "Group A", "B", "D", 55, 45),
    ]


@pytest.fixture
def four_team_knockout():
    """A 4-participant knockout: (A vs B), (C vs D), Final. Round 1 scores periods 1 and 2."""
    matches = build_knockout_matches(4, periods=[1, 3], first_round=[("A", "B"), ("C", "D")])
    for match in matches:
        if match.round_order == 1:
            match.periods = [1, 2]
    return matches


@pytest.fixture
def score_feed():
    """Empty in-memory feed; tests add the facts they need."""
    return StaticScoreFeed()


@pytest.fixture
def groups_file(tmp_path):
    """groups.yaml with two groups of four numeric entries."""
    path = tmp_path / "groups.yaml"
    path.write_text(
        "Group A:\n  - 1\n  - 2\n  - 3\n  - 4\n"
        "Group B:\n  - 5\n  - 6\n  - 7\n  - 8\n"
    )
    return str(path)
