# Command-line entry point for running a group stage tournament

import argparse
import logging
import os
import sys

from core.engine import TournamentEngine
from core.errors import TournamentError


def default_data_dir():
    script_dir = os.path.dirname(__file__)
    base_dir = os.path.dirname(script_dir)
    return os.environ.get('TOURNAMENT_DATA_DIR', os.path.join(base_dir, 'data'))


def _team_names(engine, category_id=None, division_id=None):
    return {t.id: t.name for t in engine.list_teams(category_id, division_id)}


def print_teams(engine, args):
    teams = engine.list_teams(args.category, args.division)
    if not teams:
        print("No teams registered.")
        return
    for team in teams:
        status = "eliminated" if team.is_eliminated else "active"
        print(f"{team.id}  {team.name}  W{team.wins} L{team.losses}  ({status})")


def add_team(engine, args):
    team = engine.create_team(args.name, args.category, args.division)
    print(f"Registered {team.name}: {team.id}")


def print_groups(engine, args):
    names = _team_names(engine, args.category, args.division)
    groups = engine.list_groups_with_teams(args.category, args.division)
    if not groups:
        print("No groups generated.")
        return
    first_group = True
    for group, memberships in groups:
        if not first_group:
            print()
        winner = names.get(group.winner_team_id, group.winner_team_id)
        suffix = f" - winner: {winner}" if group.is_completed else ""
        print(f"# {group.group_name} ({group.id}){suffix}")
        for membership in memberships:
            marker = "*" if membership.is_winner else " "
            print(f" {marker} {names.get(membership.team_id, membership.team_id)}"
                  f"  W{membership.wins} L{membership.losses}")
        first_group = False


def print_matches(engine, args):
    names = _team_names(engine, args.category, args.division)
    matches = engine.list_matches(args.category, args.division, status=args.status)
    if not matches:
        print("No matches.")
        return
    for match in matches:
        team1 = names.get(match.team1_id, match.team1_id)
        team2 = names.get(match.team2_id, match.team2_id)
        result = f" -> {names.get(match.winner_id, match.winner_id)}" if match.is_completed else ""
        print(f"{match.id}  {match.round_name}: {team1} vs {team2}{result}")


def generate(engine, args):
    groups = engine.generate_first_stage(args.category, args.division)
    print(f"Created {len(groups)} groups for stage 1.")


def record(engine, args):
    match = engine.record_match_result(args.match_id, args.winner_id)
    print(f"Recorded {match.round_name} match {match.match_number}.")


def set_winner(engine, args):
    group = engine.set_group_winner(args.group_id, args.winner_id)
    print(f"{group.group_name} completed.")


def advance(engine, args):
    result = engine.advance_stage(args.category, args.division)
    print(result.message)
    if result.champion_id:
        champion = engine.get_team(result.champion_id)
        print(f"Champion: {champion.name}")


def reset(engine, args):
    deleted = engine.reset_groups(args.category, args.division)
    print(f"Deleted {deleted} groups.")


def status(engine, args):
    stage = engine.current_stage(args.category, args.division)
    print(f"Stage {stage}: {engine.stage_status(args.category, args.division)}")


def build_parser():
    parser = argparse.ArgumentParser(description="Group stage tournament runner")
    parser.add_argument('--data-dir', default=default_data_dir(),
                        help="Directory holding the tournament YAML files")
    parser.add_argument('-v', '--verbose', action='store_true', help="Log engine activity")
    subparsers = parser.add_subparsers(dest='command', required=True)

    def pair_command(name, handler, help_text, required=True):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument('--category', type=int, required=required)
        sub.add_argument('--division', type=int, required=required)
        sub.set_defaults(handler=handler)
        return sub

    pair_command('teams', print_teams, "List teams", required=False)
    sub = pair_command('add-team', add_team, "Register a team")
    sub.add_argument('name')
    pair_command('groups', print_groups, "Show groups and standings", required=False)
    sub = pair_command('matches', print_matches, "List matches", required=False)
    sub.add_argument('--status', choices=['pending', 'completed'])
    pair_command('generate', generate, "Generate stage 1 groups (deletes existing groups)")
    pair_command('advance', advance, "Advance group winners to the next stage")
    pair_command('reset', reset, "Delete all groups and matches")
    pair_command('status', status, "Show the current stage")

    sub = subparsers.add_parser('record', help="Record a match winner")
    sub.add_argument('match_id')
    sub.add_argument('winner_id')
    sub.set_defaults(handler=record)

    sub = subparsers.add_parser('winner', help="Set a group winner")
    sub.add_argument('group_id')
    sub.add_argument('winner_id')
    sub.set_defaults(handler=set_winner)
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING,
                        format='%(levelname)s %(name)s: %(message)s')
    engine = TournamentEngine(args.data_dir)
    try:
        args.handler(engine, args)
    except TournamentError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
