"""
Resolve an abstract knockout seeding plan into concrete participants.

A plan maps match slots to group finishing positions written as
group_<Letter>_<N> ("group_A_1" is the Group A winner, "group_B_2" the
Group B runner-up). Slot keys are (match_key, slot) tuples where slot is
'team1' or 'team2'.
"""
import math
import re
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from cupengine.errors import DuplicatePositionError, IncompleteSeedingError, InvalidSeedingPosition
from cupengine.models import Group, Match, Standing, SLOTS
from cupengine.standings import calculate_all_standings, completed_groups

POSITION_PATTERN = re.compile(r'^group_([A-Z])_(\d+)$')


def parse_position(position: str) -> Tuple[str, int]:
    """'group_A_1' -> ('A', 1)."""
    found = POSITION_PATTERN.match(position or '')
    if not found or int(found.group(2)) < 1:
        raise InvalidSeedingPosition(position)
    return found.group(1), int(found.group(2))


def flatten_matchups(matchups: Mapping[str, Mapping[str, Optional[str]]]) -> Dict[Tuple[str, str], Optional[str]]:
    """{'match_1': {'team1': 'group_A_1', 'team2': 'group_B_2'}} -> slot-keyed plan."""
    plan = {}
    for match_key, slots in matchups.items():
        for slot in SLOTS:
            plan[(match_key, slot)] = slots.get(slot)
    return plan


def _group_standings(letter: str, standings_by_group: Mapping[str, List[Standing]]):
    for name in (f"Group {letter}", letter):
        if name in standings_by_group:
            return name, standings_by_group[name]
    return None, None


def validate_seeding(plan: Mapping[Tuple[str, str], Optional[str]], num_groups: int,
                     qualifiers_per_group: int):
    """
    Check a plan before resolving it.

    Every position may appear once. The plan must list exactly the slots of
    the first knockout round for num_groups * qualifiers_per_group
    participants, and fill one slot per qualifier; the remaining slot of an
    odd field is the bye and maps to None.
    """
    slots_by_position = {}
    for slot_key, position in plan.items():
        if position is None:
            continue
        parse_position(position)
        slots_by_position.setdefault(position, []).append(slot_key)
    for position, slot_keys in slots_by_position.items():
        if len(slot_keys) > 1:
            raise DuplicatePositionError(position, sorted(slot_keys))

    qualifiers = num_groups * qualifiers_per_group
    expected_slots = 2 * math.ceil(qualifiers / 2)
    if len(plan) != expected_slots:
        raise IncompleteSeedingError(expected_slots, len(plan))
    if len(slots_by_position) != qualifiers:
        raise IncompleteSeedingError(qualifiers, len(slots_by_position))


def resolve_position(position: str, standings_by_group: Mapping[str, List[Standing]],
                     final_groups: Optional[Iterable[str]] = None):
    """Participant at the given finishing position, or None if not known yet."""
    letter, rank = parse_position(position)
    name, standings = _group_standings(letter, standings_by_group)
    if standings is None:
        return None
    if final_groups is not None and name not in set(final_groups):
        return None
    for standing in standings:
        if standing.position == rank:
            return standing.participant
    return None


def resolve_seeding(plan: Mapping[Tuple[str, str], Optional[str]],
                    standings_by_group: Mapping[str, List[Standing]],
                    qualifiers_per_group: int = 2,
                    final_groups: Optional[Iterable[str]] = None,
                    num_groups: Optional[int] = None) -> Dict[Tuple[str, str], object]:
    """
    Map every slot of the plan to a participant (or None).

    final_groups names the groups whose play has concluded; slots seeded
    from any other group resolve to None. When omitted every group in
    standings_by_group is taken as final.
    """
    if num_groups is None:
        num_groups = len(standings_by_group)
    validate_seeding(plan, num_groups, qualifiers_per_group)
    final_groups = set(final_groups) if final_groups is not None else None

    resolved = {}
    for slot_key, position in plan.items():
        if position is None:
            resolved[slot_key] = None
            continue
        resolved[slot_key] = resolve_position(position, standings_by_group, final_groups)
    return resolved


def apply_seeding(matches: Sequence[Match], resolved: Mapping[Tuple[str, str], object]) -> List[Match]:
    """
    Fill first-round slots from a resolved plan.

    Match keys refer to match ids. Slots that already hold a participant
    are left alone. Returns the matches that changed.
    """
    by_id = {match.id: match for match in matches}
    changed = {}
    for (match_key, slot), participant in sorted(resolved.items(), key=lambda item: item[0]):
        if participant is None:
            continue
        match = by_id.get(match_key)
        if match is None:
            raise KeyError(f"Seeding refers to unknown match {match_key!r}")
        if getattr(match, slot) is not None:
            continue
        other = match.team2 if slot == 'team1' else match.team1
        if other == participant:
            raise ValueError(f"Seeding pairs {participant!r} with itself in {match_key}")
        setattr(match, slot, participant)
        changed[match.id] = match
    return list(changed.values())


def seed_from_groups(matches: Sequence[Match], plan: Mapping[Tuple[str, str], Optional[str]],
                     groups: Sequence[Group], qualifiers_per_group: int = 2,
                     fallback_key=None) -> List[Match]:
    """
    Seed the first knockout round once every group has finished.

    Nothing is filled while any group still has a pending match, so the
    first round is always seeded in one go. Returns the matches that changed.
    """
    finished = completed_groups(matches)
    if any(group.name not in finished for group in groups):
        return []
    standings = calculate_all_standings(groups, matches, qualifiers_per_group, fallback_key)
    resolved = resolve_seeding(plan, standings, qualifiers_per_group,
                               final_groups=finished, num_groups=len(groups))
    return apply_seeding(matches, resolved)
