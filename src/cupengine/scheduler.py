"""
Round-robin scheduling for group play.
"""
import string
from itertools import combinations
from typing import Dict, List, Optional, Sequence

from cupengine.errors import InvalidGroupSize
from cupengine.models import Fixture, Group, Match, GROUP_STAGE


def get_group_letter(index: int) -> str:
    """Group letter from a zero-based index (0 -> 'A')."""
    return string.ascii_uppercase[index]


def get_group_name(index: int) -> str:
    return f"Group {get_group_letter(index)}"


def matchdays_for_group_size(group_size: int) -> int:
    """Rounds needed for a full round robin: N-1 for even N, N for odd N."""
    return group_size - 1 if group_size % 2 == 0 else group_size


def expected_group_matches(num_groups: int, group_size: int) -> int:
    return num_groups * group_size * (group_size - 1) // 2


def _rotation_order(participants: Sequence) -> List[tuple]:
    """
    All pairs ordered by the round they take in a circle-method rotation.

    One participant stays fixed while the rest rotate one place per round;
    odd groups get a None placeholder whose opponent sits out that round.
    """
    circle = list(participants)
    if len(circle) % 2:
        circle.append(None)
    size = len(circle)

    ordered = []
    for _ in range(size - 1):
        for i in range(size // 2):
            home, away = circle[i], circle[size - 1 - i]
            if home is not None and away is not None:
                ordered.append((home, away))
        circle = [circle[0], circle[-1]] + circle[1:-1]
    return ordered


def schedule(participants: Sequence) -> List[Fixture]:
    """
    Build a round-robin fixture list partitioned into matchdays.

    Matchdays are filled greedily: each one takes every remaining pair
    whose participants are both still free that day. Pairs are offered in
    rotation order, which makes the greedy fill produce N-1 full matchdays
    for even groups and N matchdays with one idle participant for odd ones.
    """
    participants = list(participants)
    if len(participants) < 2:
        raise InvalidGroupSize(len(participants))
    if len(set(participants)) != len(participants):
        raise ValueError(f"Participants must be unique: {participants}")

    remaining = _rotation_order(participants)
    fixtures = []
    matchday = 0
    while remaining:
        matchday += 1
        busy = set()
        deferred = []
        for team1, team2 in remaining:
            if team1 in busy or team2 in busy:
                deferred.append((team1, team2))
                continue
            fixtures.append(Fixture(team1, team2, matchday))
            busy.update((team1, team2))
        remaining = deferred
    return fixtures


def fixtures_by_matchday(fixtures: Sequence[Fixture]) -> Dict[int, List[Fixture]]:
    rounds = {}
    for fixture in fixtures:
        rounds.setdefault(fixture.matchday, []).append(fixture)
    return dict(sorted(rounds.items()))


def idle_participants(participants: Sequence, fixtures: Sequence[Fixture]) -> Dict[int, List]:
    """Participants sitting out each matchday (the bye in odd groups)."""
    idle = {}
    for matchday, day_fixtures in fixtures_by_matchday(fixtures).items():
        playing = set()
        for fixture in day_fixtures:
            playing.update((fixture.team1, fixture.team2))
        idle[matchday] = [p for p in participants if p not in playing]
    return idle


def all_pairs(participants: Sequence) -> List[frozenset]:
    return [frozenset(pair) for pair in combinations(participants, 2)]


def build_group_matches(group: Group, periods: Optional[Sequence] = None) -> List[Match]:
    """
    Turn a group's round-robin schedule into pending group matches.

    `periods` lists one scoring period per matchday; matchday N scores on
    periods[N-1]. Without periods the matches are created with none
    assigned.
    """
    fixtures = schedule(group.participants)
    matches = []
    order_in_day = {}
    for fixture in fixtures:
        order_in_day[fixture.matchday] = order_in_day.get(fixture.matchday, 0) + 1
        match_order = order_in_day[fixture.matchday]
        match_periods = []
        if periods:
            if fixture.matchday > len(periods):
                raise ValueError(
                    f"{group.name} needs {matchdays_for_group_size(len(group.participants))} "
                    f"periods, got {len(periods)}")
            match_periods = [periods[fixture.matchday - 1]]
        matches.append(Match(
            id=f"{group.name}-MD{fixture.matchday}-M{match_order}",
            stage=GROUP_STAGE,
            group=group.name,
            round_order=fixture.matchday,
            match_order=match_order,
            matchday=fixture.matchday,
            team1=fixture.team1,
            team2=fixture.team2,
            periods=match_periods,
        ))
    return matches
