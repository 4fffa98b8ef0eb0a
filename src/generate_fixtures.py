"""
Print the round-robin schedule for every group, and optionally write a
new tournament file holding the group matches and an empty knockout
bracket.

Usage:
    python src/generate_fixtures.py data/groups.yaml
    python src/generate_fixtures.py data/groups.yaml --periods 1 2 3 \
        --knockout-periods 4 5 --output data/tournament.yaml
"""
import argparse
import os
import sys

import yaml

from cupengine.bracket import build_knockout_matches
from cupengine.errors import InvalidGroupSize
from cupengine.models import Group
from cupengine.scheduler import build_group_matches, fixtures_by_matchday, idle_participants, schedule


def load_groups(file_path):
    """groups.yaml maps group names to participant lists."""
    with open(file_path, mode='r', encoding='utf-8') as file:
        groups_data = yaml.safe_load(file) or {}
    return [Group(name, participants or []) for name, participants in groups_data.items()]


def print_schedule(groups):
    first_group = True
    for group in sorted(groups, key=lambda g: g.name):
        if not first_group:
            print()
        print(f"# {group.name}")
        try:
            fixtures = schedule(group.participants)
        except InvalidGroupSize as e:
            print(f"Warning: {group.name} skipped: {e}")
            first_group = False
            continue
        idle = idle_participants(group.participants, fixtures)
        for matchday, day_fixtures in fixtures_by_matchday(fixtures).items():
            print(f"Matchday {matchday}")
            for fixture in day_fixtures:
                print(f"  {fixture.team1} vs {fixture.team2}")
            if idle[matchday]:
                print(f"  bye: {', '.join(str(p) for p in idle[matchday])}")
        first_group = False


def build_tournament(name, groups, periods, knockout_periods, qualifiers_per_group, link_rounds=False):
    matches = []
    for group in groups:
        matches.extend(build_group_matches(group, periods))
    qualifiers = qualifiers_per_group * len(groups)
    if qualifiers >= 2:
        matches.extend(build_knockout_matches(qualifiers, knockout_periods, link_rounds=link_rounds))
    return {
        'tournament': name,
        'qualifiers_per_group': qualifiers_per_group,
        'groups': {group.name: list(group.participants) for group in groups},
        'matches': [match.to_dict() for match in matches],
    }


def main(argv=None):
    parser = argparse.ArgumentParser(description="Generate group fixtures and an empty knockout bracket")
    parser.add_argument('groups_file', nargs='?', help="YAML file mapping group names to participants")
    parser.add_argument('--periods', nargs='*', type=int, default=[], help="Scoring period per matchday")
    parser.add_argument('--knockout-periods', nargs='*', type=int, default=[], help="Scoring period per knockout round")
    parser.add_argument('--qualifiers', type=int, default=2, help="Qualifiers per group")
    parser.add_argument('--link-rounds', action='store_true', help="Record explicit feeder matches")
    parser.add_argument('--name', default='cup', help="Tournament name")
    parser.add_argument('--output', help="Write a tournament file instead of only printing")
    args = parser.parse_args(argv)

    base_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    groups_file = args.groups_file or os.path.join(base_dir, 'data', 'groups.yaml')

    groups = load_groups(groups_file)
    if not groups:
        print(f"No groups loaded. Check {groups_file}")
        return 1

    print_schedule(groups)

    if args.output:
        tournament = build_tournament(args.name, groups, args.periods, args.knockout_periods,
                                      args.qualifiers, args.link_rounds)
        with open(args.output, mode='w', encoding='utf-8') as file:
            yaml.dump(tournament, file, default_flow_style=False, sort_keys=False)
        print(f"\nWrote {len(tournament['matches'])} matches to {args.output}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
