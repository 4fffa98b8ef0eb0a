# Entry point for resolving a cup from the latest score data

import argparse
import logging
import os
import sys
from functools import partial

import yaml

from cupengine.bracket import champion, knockout_rounds
from cupengine.config import load_settings
from cupengine.feeds import HistoryScoreFeed, StaticScoreFeed
from cupengine.locking import run_locked_pass
from cupengine.models import Group, Match
from cupengine.seeding import flatten_matchups, seed_from_groups
from cupengine.standings import calculate_all_standings


def load_tournament(file_path):
    with open(file_path, mode='r', encoding='utf-8') as file:
        return yaml.safe_load(file) or {}


def load_matches(file_path):
    return [Match.from_dict(data) for data in load_tournament(file_path).get('matches', [])]


def save_matches(file_path, updated):
    """Write changed matches back into the tournament file, keyed by id."""
    tournament = load_tournament(file_path)
    changes = {match.id: match.to_dict() for match in updated}
    tournament['matches'] = [changes.get(data['id'], data) for data in tournament.get('matches', [])]
    with open(file_path, mode='w', encoding='utf-8') as file:
        yaml.dump(tournament, file, default_flow_style=False, sort_keys=False)


def get_groups(tournament):
    return [Group(name, participants) for name, participants in (tournament.get('groups') or {}).items()]


def print_standings(groups, matches, qualifiers):
    for group_name, standings in calculate_all_standings(groups, matches, qualifiers).items():
        print(f"\n# {group_name}")
        print("  Pos  Team          P  W  D  L    PF    PA   Diff  Pts")
        for s in standings:
            marker = '*' if s.qualified else ' '
            print(f"  {s.position:>2}{marker}  {str(s.participant):<12} {s.matches_played:>2} {s.wins:>2} "
                  f"{s.draws:>2} {s.losses:>2} {s.points_for:>5} {s.points_against:>5} "
                  f"{s.points_difference:>6} {s.tournament_points:>4}")


def print_bracket(matches):
    for round_order, round_matches in knockout_rounds(matches).items():
        print(f"\n# {round_matches[0].round_name or f'Round {round_order}'}")
        for match in round_matches:
            team1 = match.team1 if match.team1 is not None else 'TBD'
            team2 = match.team2 if match.team2 is not None else ('BYE' if match.is_bye else 'TBD')
            line = f"  {match.id}: {team1} vs {team2} [{match.state}]"
            if match.is_completed and not match.is_bye:
                line += f" {match.team1_score}-{match.team2_score}"
                line += f", winner {match.winner}" if match.winner is not None else ", draw"
            print(line)
    winner = champion(matches)
    if winner is not None:
        print(f"\nChampion: {winner}")


def main(argv=None):
    parser = argparse.ArgumentParser(description="Resolve cup matches from score data")
    parser.add_argument('tournament_file', help="Tournament YAML written by generate_fixtures.py")
    parser.add_argument('--scores', help="YAML file of per-period summaries; omit to use the live feed")
    parser.add_argument('--settings', help="Settings YAML")
    parser.add_argument('--rebuild', action='store_true', help="Reset all results and resolve from scratch")
    parser.add_argument('--verbose', '-v', action='store_true')
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format='%(asctime)s %(levelname)s %(name)s: %(message)s')

    settings = load_settings(args.settings)
    tournament = load_tournament(args.tournament_file)
    if not tournament.get('matches'):
        print(f"No matches loaded. Check {args.tournament_file}")
        return 1

    if args.scores:
        feed = StaticScoreFeed.from_yaml(args.scores)
    else:
        feed = HistoryScoreFeed(settings['feed']['base_url'], settings['feed']['timeout_seconds'])

    qualifiers = tournament.get('qualifiers_per_group', settings['qualifiers_per_group'])
    groups = get_groups(tournament)
    seeding = None
    if tournament.get('seeding') and groups:
        seeding = partial(seed_from_groups, plan=flatten_matchups(tournament['seeding']),
                          groups=groups, qualifiers_per_group=qualifiers)

    result = run_locked_pass(
        tournament.get('tournament', os.path.basename(args.tournament_file)),
        settings['data_dir'],
        partial(load_matches, args.tournament_file),
        partial(save_matches, args.tournament_file),
        feed,
        full_rebuild=args.rebuild,
        lock_timeout=settings['lock']['timeout_seconds'],
        max_workers=settings['feed']['max_workers'],
        timeout=settings['feed']['timeout_seconds'],
        seeding=seeding,
    )

    print(f"Completed {len(result.completed)} matches, advanced {len(result.advanced)} winners, "
          f"{len(result.updated)} matches changed")
    if groups:
        print_standings(groups, result.matches, qualifiers)
    print_bracket(result.matches)
    return 0


if __name__ == '__main__':
    sys.exit(main())
