"""
Stage generation: shuffling contestants into groups and pairing matches.

Stage 1 is built from every eligible team of a (category, division) pair;
later stages are built from the previous stage's group winners.
"""
import math
import random
import logging
from typing import List, Optional, Sequence, Tuple

from core.errors import InsufficientContestants
from core.models import Group, Match
from core.queries import eligible_teams, get_team
from core.resolution import set_group_winner
from core.settings import validate_group_size

logger = logging.getLogger(__name__)


def group_letter(index: int) -> str:
    """Spreadsheet-style label for a 0-based group index: A..Z, AA, AB, ..."""
    label = ''
    index += 1
    while index > 0:
        index, remainder = divmod(index - 1, 26)
        label = chr(65 + remainder) + label
    return label


def group_name(index: int, stage_number: int = 1) -> str:
    """Display name of a group; later stages carry the stage number."""
    if stage_number == 1:
        return f"Group {group_letter(index)}"
    return f"Stage {stage_number} - Group {group_letter(index)}"


def calculate_group_count(num_teams: int, group_size: int) -> int:
    """Number of groups needed for the given number of teams."""
    if num_teams <= 0:
        return 0
    return math.ceil(num_teams / group_size)


def partition_into_groups(team_ids: Sequence, group_size: int) -> List[list]:
    """Split an ordered list into consecutive chunks of at most group_size.

    Only the last chunk may be smaller.
    """
    validate_group_size(group_size)
    return [list(team_ids[i:i + group_size]) for i in range(0, len(team_ids), group_size)]


def pair_members(members: Sequence) -> Tuple[List[tuple], Optional[str]]:
    """Pair members two-by-two in order.

    Returns (pairs, unpaired) where unpaired is the odd member out, or None.
    """
    pairs = [(members[i], members[i + 1]) for i in range(0, len(members) - 1, 2)]
    unpaired = members[-1] if len(members) % 2 else None
    return pairs, unpaired


def shuffled(items: Sequence, rng: Optional[random.Random] = None) -> list:
    result = list(items)
    (rng or random).shuffle(result)
    return result


def delete_all_groups(store, category_id, division_id):
    """Remove every match and group of the pair; memberships go with their group."""
    with store.transaction():
        matches_deleted = store.delete('matches', category_id=category_id, division_id=division_id)
        groups_deleted = store.delete('groups', category_id=category_id, division_id=division_id)
    logger.info('Reset category %s division %s: deleted %d groups and %d matches',
                category_id, division_id, groups_deleted, matches_deleted)
    return groups_deleted


def _create_stage(store, category_id, division_id, team_ids, stage_number, group_size,
                  rng=None, auto_complete_byes=False) -> list:
    """Shuffle team_ids into groups for one stage. Returns the created groups."""
    order = shuffled(team_ids, rng)
    created = []
    with store.transaction():
        for index, members in enumerate(partition_into_groups(order, group_size)):
            name = group_name(index, stage_number)
            group = store.insert('groups', {
                'category_id': category_id,
                'division_id': division_id,
                'stage_number': stage_number,
                'group_number': index + 1,
                'group_name': name,
                'winner_team_id': None,
                'is_completed': False,
            })

            for team_id in members:
                store.insert('group_teams', {
                    'group_id': group['id'],
                    'team_id': team_id,
                    'wins': 0,
                    'losses': 0,
                    'matches_played': 0,
                    'is_winner': False,
                })

            pairs, unpaired = pair_members(members)
            for match_number, (team1_id, team2_id) in enumerate(pairs, start=1):
                store.insert('matches', {
                    'category_id': category_id,
                    'division_id': division_id,
                    'group_id': group['id'],
                    'group_number': index + 1,
                    'stage_number': stage_number,
                    'round_name': name,
                    'round_number': stage_number,
                    'match_number': match_number,
                    'team1_id': team1_id,
                    'team2_id': team2_id,
                    'winner_id': None,
                    'status': Match.PENDING,
                })
            if unpaired is not None:
                logger.debug('%s: %s has no opponent', name, unpaired)

            if auto_complete_byes and len(members) == 1:
                # Bye: a lone member wins its group outright
                group = set_group_winner(store, group['id'], members[0]).to_dict()
                logger.info('%s completed by bye for %s', name, members[0])

            created.append(Group.from_dict(group))
    logger.info('Created stage %d for category %s division %s: %d teams in %d groups of up to %d',
                stage_number, category_id, division_id, len(order), len(created), group_size)
    return created


def generate_first_stage(store, category_id, division_id, group_size, rng=None,
                         auto_complete_byes=False) -> list:
    """Start the tournament for a pair from scratch.

    Existing groups and matches of the pair are deleted and every eligible
    team's counters are reset before the teams are shuffled into groups.
    """
    validate_group_size(group_size)
    with store.transaction():
        teams = eligible_teams(store, category_id, division_id)
        if len(teams) < 2:
            logger.warning('Cannot generate groups for category %s division %s: %d eligible teams',
                           category_id, division_id, len(teams))
            raise InsufficientContestants(len(teams))

        delete_all_groups(store, category_id, division_id)

        for team in teams:
            store.update('teams', team.id, wins=0, losses=0, is_eliminated=False)

        return _create_stage(store, category_id, division_id, [t.id for t in teams],
                             1, group_size, rng=rng, auto_complete_byes=auto_complete_byes)


def generate_next_stage(store, category_id, division_id, winners, stage_number, group_size,
                        rng=None, auto_complete_byes=False) -> list:
    """Seed the given winners into the groups of a new stage.

    Winners keep their cumulative counters.
    """
    validate_group_size(group_size)
    if len(set(winners)) != len(winners):
        raise ValueError('Each team can be seeded into a stage only once')
    with store.transaction():
        for team_id in winners:
            get_team(store, team_id)
        return _create_stage(store, category_id, division_id, list(winners), stage_number,
                             group_size, rng=rng, auto_complete_byes=auto_complete_byes)


def generate_bracket(store, category_id, division_id, rng=None) -> list:
    """Create group-less Round 1 knockout matches for every team of the pair.

    Existing matches of the pair are deleted first. Returns the created matches.
    """
    with store.transaction():
        teams = store.select('teams', category_id=category_id, division_id=division_id)
        if len(teams) < 2:
            raise InsufficientContestants(len(teams))
        store.delete('matches', category_id=category_id, division_id=division_id)

        pairs, _ = pair_members(shuffled([t['id'] for t in teams], rng))
        created = []
        for match_number, (team1_id, team2_id) in enumerate(pairs, start=1):
            created.append(store.insert('matches', {
                'category_id': category_id,
                'division_id': division_id,
                'group_id': None,
                'group_number': None,
                'stage_number': None,
                'round_name': 'Round 1',
                'round_number': 1,
                'match_number': match_number,
                'team1_id': team1_id,
                'team2_id': team2_id,
                'winner_id': None,
                'status': Match.PENDING,
            }))
    logger.info('Created %d Round 1 matches for category %s division %s',
                len(created), category_id, division_id)
    return [Match.from_dict(r) for r in created]
