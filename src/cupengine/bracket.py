"""
Knockout bracket structure and topology.

A bracket for N participants has ceil(log2(N)) rounds. Round 1 holds
ceil(N/2) matches and every later round halves the previous count,
rounding up, until the single Final. Byes are not placeholders: a
non-power-of-two field simply leaves one slot of a round-1 match empty,
and an odd round sends its last match's winner alone into the next round.
"""
import math
from typing import Dict, List, Optional, Sequence, Tuple

from cupengine.errors import MalformedBracketTopology
from cupengine.models import Match, MatchSkeleton, KNOCKOUT_STAGE

ROUND_NAMES = {
    1: "Final",
    2: "Semi-Final",
    3: "Quarter-Final",
    4: "Round of 16",
    5: "Round of 32",
}


def knockout_round_count(participant_count: int) -> int:
    if participant_count < 2:
        raise ValueError(f"A knockout needs at least 2 participants, got {participant_count}")
    return math.ceil(math.log2(participant_count))


def get_round_name(participant_count: int, round_order: int) -> str:
    """Round name keyed by how many rounds remain up to and including the Final."""
    rounds_remaining = knockout_round_count(participant_count) - round_order + 1
    return ROUND_NAMES.get(rounds_remaining, f"Round {round_order}")


def matches_per_round(participant_count: int) -> List[int]:
    sizes = []
    in_round = math.ceil(participant_count / 2)
    for _ in range(knockout_round_count(participant_count)):
        sizes.append(in_round)
        in_round = math.ceil(in_round / 2)
    return sizes


def generate_bracket(participant_count: int) -> List[MatchSkeleton]:
    """Empty match skeletons for every knockout round, in play order."""
    skeletons = []
    for round_index, size in enumerate(matches_per_round(participant_count)):
        round_order = round_index + 1
        round_name = get_round_name(participant_count, round_order)
        for match_order in range(1, size + 1):
            skeletons.append(MatchSkeleton(round_name, round_order, match_order))
    return skeletons


def match_id(round_order: int, match_order: int) -> str:
    return f"R{round_order}-M{match_order}"


def build_knockout_matches(participant_count: int, periods: Optional[Sequence] = None,
                           first_round: Optional[Sequence[Tuple]] = None,
                           link_rounds: bool = False) -> List[Match]:
    """
    Create pending knockout matches from the bracket skeleton.

    periods: one scoring period per round; rounds past the end of the list
        reuse its last entry.
    first_round: optional (team1, team2) pairs seeded into round 1 in order;
        None leaves a slot empty.
    link_rounds: record team1_from_match/team2_from_match on later rounds
        instead of relying on positional pairing.
    """
    periods = list(periods or [])
    first_round = list(first_round or [])
    skeletons = generate_bracket(participant_count)
    if len(first_round) > matches_per_round(participant_count)[0]:
        raise ValueError(f"{len(first_round)} first-round pairs for a "
                         f"{participant_count}-participant bracket")

    sizes = matches_per_round(participant_count)
    matches = []
    for skeleton in skeletons:
        round_order, match_order = skeleton.round_order, skeleton.match_order
        match = Match(
            id=match_id(round_order, match_order),
            stage=KNOCKOUT_STAGE,
            round_name=skeleton.round_name,
            round_order=round_order,
            match_order=match_order,
        )
        if periods:
            match.periods = [periods[min(round_order, len(periods)) - 1]]
        if round_order == 1 and match_order <= len(first_round):
            match.team1, match.team2 = first_round[match_order - 1]
        if link_rounds and round_order > 1:
            previous_size = sizes[round_order - 2]
            match.team1_from_match = match_id(round_order - 1, 2 * match_order - 1)
            if 2 * match_order <= previous_size:
                match.team2_from_match = match_id(round_order - 1, 2 * match_order)
        matches.append(match)
    return matches


def knockout_rounds(matches: Sequence[Match]) -> Dict[int, List[Match]]:
    """Knockout matches grouped by round, each round sorted by match order."""
    rounds = {}
    for match in matches:
        if match.stage != KNOCKOUT_STAGE:
            continue
        rounds.setdefault(match.round_order, []).append(match)
    return {order: sorted(rounds[order], key=lambda m: m.match_order) for order in sorted(rounds)}


def _uses_back_references(rounds: Dict[int, List[Match]]) -> bool:
    return any(
        m.team1_from_match is not None or m.team2_from_match is not None
        for round_matches in rounds.values() for m in round_matches
    )


def _is_final_round(rounds: Dict[int, List[Match]], round_order: int) -> bool:
    return round_order == max(rounds) and len(rounds[round_order]) == 1


def advancement_target(match: Match, rounds: Dict[int, List[Match]]) -> Optional[Tuple[Match, str]]:
    """
    The (match, slot) that receives this match's winner, or None for the Final.

    Raises MalformedBracketTopology when a non-final match has no single
    valid target in the following round.
    """
    if _uses_back_references(rounds):
        targets = []
        for round_matches in rounds.values():
            for candidate in round_matches:
                if candidate.team1_from_match == match.id:
                    targets.append((candidate, 'team1'))
                if candidate.team2_from_match == match.id:
                    targets.append((candidate, 'team2'))
        if not targets:
            if _is_final_round(rounds, match.round_order):
                return None
            raise MalformedBracketTopology(f"No match is fed by {match.id}")
        if len(targets) > 1:
            raise MalformedBracketTopology(
                f"{match.id} feeds several slots: {[(t.id, slot) for t, slot in targets]}")
        target, slot = targets[0]
        if target.round_order != match.round_order + 1:
            raise MalformedBracketTopology(
                f"{match.id} (round {match.round_order}) feeds {target.id} "
                f"in round {target.round_order}")
        return target, slot

    if _is_final_round(rounds, match.round_order):
        return None
    next_round = rounds.get(match.round_order + 1)
    if not next_round:
        raise MalformedBracketTopology(
            f"Round {match.round_order} has {len(rounds[match.round_order])} matches "
            f"but no following round")
    target_order = (match.match_order + 1) // 2
    for candidate in next_round:
        if candidate.match_order == target_order:
            slot = 'team1' if match.match_order % 2 == 1 else 'team2'
            return candidate, slot
    raise MalformedBracketTopology(
        f"{match.id} should feed match {target_order} of round {match.round_order + 1}, "
        f"which does not exist")


def slot_has_feeder(match: Match, slot: str, rounds: Dict[int, List[Match]]) -> bool:
    """Whether some earlier match will send a winner into this slot."""
    first_round = min(rounds) if rounds else match.round_order
    if match.round_order == first_round:
        return False
    if _uses_back_references(rounds):
        return getattr(match, f"{slot}_from_match") is not None
    feeder_order = 2 * match.match_order - (1 if slot == 'team1' else 0)
    previous = rounds.get(match.round_order - 1, [])
    return any(m.match_order == feeder_order for m in previous)


def is_bye(match: Match, rounds: Dict[int, List[Match]]) -> bool:
    """
    A pending match with one participant whose empty slot nothing will fill.

    Round-1 slots are seeded in one go, so an empty round-1 slot next to a
    seeded one is a bye.
    """
    present = match.participants()
    if match.is_completed or len(present) != 1:
        return False
    empty_slot = 'team2' if match.team1 is not None else 'team1'
    return not slot_has_feeder(match, empty_slot, rounds)


def champion(matches: Sequence[Match]):
    """Winner of the Final, or None while it is undecided."""
    rounds = knockout_rounds(matches)
    if not rounds:
        return None
    final_round = rounds[max(rounds)]
    if len(final_round) != 1:
        return None
    return final_round[0].winner
