"""
Group standings with deterministic tie-breaks.

Ranking: tournament points -> points difference -> points for -> fallback
key (participant id ascending unless the caller supplies another).
Standings are always rebuilt from the completed matches; nothing is
patched incrementally.
"""
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from cupengine.models import Group, HeadToHead, Match, Standing, GROUP_STAGE

WIN_POINTS = 3
DRAW_POINTS = 1
LOSS_POINTS = 0

DEFAULT_QUALIFIERS = 2


def _default_fallback(participant):
    # Mixed int/str ids still compare: type name first, then value.
    return (type(participant).__name__, participant)


def _group_matches(group: Group, matches: Iterable[Match]) -> List[Match]:
    members = set(group.participants)
    selected = []
    for match in matches:
        if match.stage != GROUP_STAGE:
            continue
        if not match.is_completed or not match.is_filled:
            continue
        if match.group is not None and match.group != group.name:
            continue
        if match.team1 not in members or match.team2 not in members:
            continue
        selected.append(match)
    return selected


def calculate_standings(group: Group, matches: Iterable[Match],
                        qualifiers: int = DEFAULT_QUALIFIERS,
                        fallback_key: Optional[Callable] = None) -> List[Standing]:
    """
    Compute ranked standings for one group.

    Only completed group-stage matches between two members of the group
    count; knockout meetings of the same pair are left out. Scores
    are the match's aggregate scores; the strictly higher scorer gets a
    win, equal scores are a draw.
    """
    fallback_key = fallback_key or _default_fallback
    table = {participant: Standing(participant, group.name) for participant in group.participants}

    for match in _group_matches(group, matches):
        team1 = table[match.team1]
        team2 = table[match.team2]
        score1 = match.team1_score or 0
        score2 = match.team2_score or 0

        team1.matches_played += 1
        team2.matches_played += 1
        team1.points_for += score1
        team1.points_against += score2
        team2.points_for += score2
        team2.points_against += score1

        if score1 > score2:
            _record_win(team1, team2)
        elif score2 > score1:
            _record_win(team2, team1)
        else:
            for standing in (team1, team2):
                standing.draws += 1
                standing.tournament_points += DRAW_POINTS

    ranked = sorted(
        table.values(),
        key=lambda s: (-s.tournament_points, -s.points_difference, -s.points_for,
                       fallback_key(s.participant))
    )
    _assign_positions(ranked, qualifiers)
    return ranked


def _record_win(winner: Standing, loser: Standing):
    winner.wins += 1
    winner.tournament_points += WIN_POINTS
    loser.losses += 1
    loser.tournament_points += LOSS_POINTS


def _assign_positions(ranked: List[Standing], qualifiers: int):
    for index, standing in enumerate(ranked):
        standing.position = index + 1
        standing.qualified = index < qualifiers


def calculate_all_standings(groups: Sequence[Group], matches: Sequence[Match],
                            qualifiers: int = DEFAULT_QUALIFIERS,
                            fallback_key: Optional[Callable] = None) -> Dict[str, List[Standing]]:
    """Standings for every group, keyed by group name."""
    return {
        group.name: calculate_standings(group, matches, qualifiers, fallback_key)
        for group in groups
    }


def head_to_head(a, b, matches: Iterable[Match]) -> HeadToHead:
    """Result of the completed group match between a and b, from a's side."""
    for match in matches:
        if match.stage != GROUP_STAGE or not match.is_completed or {match.team1, match.team2} != {a, b}:
            continue
        score_a = match.score_for(a) or 0
        score_b = match.score_for(b) or 0
        if score_a > score_b:
            return HeadToHead.A_WINS
        if score_b > score_a:
            return HeadToHead.B_WINS
        return HeadToHead.TIED
    return HeadToHead.NO_RESULT


def apply_head_to_head(standings: List[Standing], matches: Sequence[Match],
                       qualifiers: int = DEFAULT_QUALIFIERS) -> List[Standing]:
    """
    Optional extra tie-break layer on top of calculate_standings.

    Only pairs level on every default criterion are touched: when exactly
    two standings tie and their direct match had a winner, the winner is
    placed first. Ties of three or more keep their fallback order.
    Positions and qualification are reassigned on the returned list.
    """
    reordered = list(standings)
    index = 0
    while index < len(reordered):
        end = index + 1
        while end < len(reordered) and \
                reordered[end].sort_values() == reordered[index].sort_values():
            end += 1
        if end - index == 2:
            first, second = reordered[index], reordered[index + 1]
            if head_to_head(first.participant, second.participant, matches) is HeadToHead.B_WINS:
                reordered[index], reordered[index + 1] = second, first
        index = end
    _assign_positions(reordered, qualifiers)
    return reordered


def is_group_stage_complete(matches: Iterable[Match]) -> bool:
    group_matches = [m for m in matches if m.stage == GROUP_STAGE]
    if not group_matches:
        return False
    return all(m.is_completed for m in group_matches)


def completed_groups(matches: Iterable[Match]) -> set:
    """Names of groups whose every match is completed."""
    status = {}
    for match in matches:
        if match.stage != GROUP_STAGE or match.group is None:
            continue
        status[match.group] = status.get(match.group, True) and match.is_completed
    return {name for name, done in status.items() if done}
