"""
Recording match results and declaring group winners.
"""
import logging

from core.errors import (
    InvalidWinner, MatchAlreadyResolved, GroupAlreadyCompleted, NotAMember, TeamNotFound,
)
from core.models import Team, Group, Match
from core.queries import get_match, get_group, find_membership

logger = logging.getLogger(__name__)


def apply_team_delta(store, team_id, wins=0, losses=0, eliminated=None) -> Team:
    """Adjust a team's global counters and elimination flag in one write.

    This is the only path the resolvers use to change a team's standing.
    """
    with store.transaction():
        record = store.get('teams', team_id)
        if record is None:
            raise TeamNotFound(team_id)
        changes = {
            'wins': (record.get('wins') or 0) + wins,
            'losses': (record.get('losses') or 0) + losses,
        }
        if eliminated is not None:
            changes['is_eliminated'] = eliminated
        return Team.from_dict(store.update('teams', team_id, **changes))


def _bump_membership(store, group_id, team_id, wins=0, losses=0):
    membership = find_membership(store, group_id, team_id)
    if membership is None:
        return
    store.update('group_teams', membership.id,
                 wins=membership.wins + wins,
                 losses=membership.losses + losses,
                 matches_played=membership.matches_played + 1)


def record_match_result(store, match_id, winner_id) -> Match:
    """Complete a match and update both teams' counters.

    The loser is eliminated unless it is already the declared winner of
    the match's group. When the match belongs to a group, the two
    memberships' per-group counters are updated in the same transaction.
    """
    with store.transaction():
        match = get_match(store, match_id)
        if match.is_completed:
            logger.warning('Match %s already resolved (winner %s)', match_id, match.winner_id)
            raise MatchAlreadyResolved(f'Match {match_id} has already been resolved')
        if not match.has_team(winner_id):
            logger.warning('Rejected winner %s for match %s', winner_id, match_id)
            raise InvalidWinner(f'Team {winner_id} is not playing in match {match_id}')
        loser_id = match.opponent_of(winner_id)
        group = get_group(store, match.group_id) if match.group_id else None
        # A group winner already declared stays in the tournament
        eliminate_loser = not (group is not None and group.is_completed
                               and group.winner_team_id == loser_id)

        updated = store.update('matches', match_id, winner_id=winner_id, status=Match.COMPLETED)

        apply_team_delta(store, winner_id, wins=1)
        if loser_id:
            apply_team_delta(store, loser_id, losses=1, eliminated=True if eliminate_loser else None)

        if match.group_id:
            _bump_membership(store, match.group_id, winner_id, wins=1)
            if loser_id:
                _bump_membership(store, match.group_id, loser_id, losses=1)

    logger.info('Match %s (%s) won by %s over %s', match_id, match.round_name, winner_id, loser_id)
    return Match.from_dict(updated)


def set_group_winner(store, group_id, winner_id) -> Group:
    """Declare a group's winner and eliminate every other member.

    Matches of the group do not have to be completed first, so this also
    serves as a manual override: the winner stays in the tournament even if
    it lost a group match. Members' win/loss counters are not touched.
    """
    with store.transaction():
        group = get_group(store, group_id)
        if group.is_completed:
            logger.warning('Group %s already completed (winner %s)', group.group_name, group.winner_team_id)
            raise GroupAlreadyCompleted(f'{group.group_name} already has a winner')
        if find_membership(store, group_id, winner_id) is None:
            raise NotAMember(f'Team {winner_id} is not a member of {group.group_name}')

        updated = store.update('groups', group_id, winner_team_id=winner_id, is_completed=True)

        store.update_where('group_teams', {'is_winner': False}, group_id=group_id)
        store.update_where('group_teams', {'is_winner': True}, group_id=group_id, team_id=winner_id)

        eliminated = []
        for membership in store.select('group_teams', group_id=group_id):
            if membership['team_id'] != winner_id:
                apply_team_delta(store, membership['team_id'], eliminated=True)
                eliminated.append(membership['team_id'])
        # A manually chosen winner may have lost a group match
        apply_team_delta(store, winner_id, eliminated=False)

    logger.info('%s won by %s; eliminated %d team(s)', group.group_name, winner_id, len(eliminated))
    return Group.from_dict(updated)
