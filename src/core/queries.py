"""
Read-side queries and team registration over the entity store.
"""
import logging
from typing import List, Optional

from core.errors import TeamNotFound, GroupNotFound, MatchNotFound
from core.models import Team, Group, GroupMembership, Match

logger = logging.getLogger(__name__)

# Fields a caller may set on a team directly. Counters and flags are
# owned by the resolvers.
TEAM_EDITABLE_FIELDS = {
    'name', 'category_id', 'division_id', 'robot_name',
    'robot_description', 'rank_position', 'is_qualified',
}


def _filters(**kwargs) -> dict:
    """Drop unset filters so None means 'any'."""
    return {k: v for k, v in kwargs.items() if v is not None}


# ----------------------------------------------------------------------
# Teams
# ----------------------------------------------------------------------

def list_teams(store, category_id=None, division_id=None) -> List[Team]:
    """Teams ordered by wins, most first."""
    records = store.select('teams', **_filters(category_id=category_id, division_id=division_id))
    teams = [Team.from_dict(r) for r in records]
    teams.sort(key=lambda t: -(t.wins or 0))
    return teams


def get_team(store, team_id) -> Team:
    record = store.get('teams', team_id)
    if record is None:
        raise TeamNotFound(team_id)
    return Team.from_dict(record)


def eligible_teams(store, category_id, division_id) -> List[Team]:
    records = store.select('teams', category_id=category_id, division_id=division_id,
                           is_eliminated=False)
    return [Team.from_dict(r) for r in records]


def create_team(store, name, category_id, division_id, **fields) -> Team:
    name = (name or '').strip()
    if not name:
        raise ValueError('Team name is required')
    unknown = set(fields) - TEAM_EDITABLE_FIELDS
    if unknown:
        raise ValueError(f'Unknown team fields: {", ".join(sorted(unknown))}')
    team = Team(name=name, category_id=category_id, division_id=division_id, **fields)
    record = team.to_dict()
    for key in ('id', 'created_at', 'updated_at'):
        record.pop(key)
    created = Team.from_dict(store.insert('teams', record))
    logger.info('Registered team %s (%s) in category %s division %s',
                created.name, created.id, category_id, division_id)
    return created


def update_team(store, team_id, **changes) -> Team:
    unknown = set(changes) - TEAM_EDITABLE_FIELDS
    if unknown:
        raise ValueError(f'Fields cannot be edited: {", ".join(sorted(unknown))}')
    record = store.update('teams', team_id, **changes)
    if record is None:
        raise TeamNotFound(team_id)
    return Team.from_dict(record)


def delete_team(store, team_id):
    with store.transaction():
        if store.get('teams', team_id) is None:
            raise TeamNotFound(team_id)
        store.delete('teams', id=team_id)
    logger.info('Deleted team %s', team_id)


# ----------------------------------------------------------------------
# Groups
# ----------------------------------------------------------------------

def list_groups(store, category_id=None, division_id=None, stage_number=None) -> List[Group]:
    """Groups ordered by stage, then group number."""
    records = store.select('groups', **_filters(
        category_id=category_id, division_id=division_id, stage_number=stage_number))
    groups = [Group.from_dict(r) for r in records]
    groups.sort(key=lambda g: (g.stage_number or 0, g.group_number or 0))
    return groups


def get_group(store, group_id) -> Group:
    record = store.get('groups', group_id)
    if record is None:
        raise GroupNotFound(group_id)
    return Group.from_dict(record)


def get_group_teams(store, group_id) -> List[GroupMembership]:
    """Memberships of a group, best per-group record first."""
    memberships = [GroupMembership.from_dict(r) for r in store.select('group_teams', group_id=group_id)]
    memberships.sort(key=lambda m: -(m.wins or 0))
    return memberships


def list_groups_with_teams(store, category_id=None, division_id=None) -> list:
    """Return (group, memberships) pairs in stage/group order."""
    return [(group, get_group_teams(store, group.id))
            for group in list_groups(store, category_id, division_id)]


def current_stage(store, category_id, division_id) -> int:
    """Highest stage number among the pair's groups, 0 if none exist."""
    stages = [r.get('stage_number') or 0
              for r in store.select('groups', category_id=category_id, division_id=division_id)]
    return max(stages, default=0)


# ----------------------------------------------------------------------
# Matches
# ----------------------------------------------------------------------

def list_matches(store, category_id=None, division_id=None, status=None,
                 group_id=None, stage_number=None) -> List[Match]:
    """Matches ordered by round, then match number."""
    records = store.select('matches', **_filters(
        category_id=category_id, division_id=division_id, status=status,
        group_id=group_id, stage_number=stage_number))
    matches = [Match.from_dict(r) for r in records]
    matches.sort(key=lambda m: (m.round_number or 0, m.group_number or 0, m.match_number or 0))
    return matches


def get_match(store, match_id) -> Match:
    record = store.get('matches', match_id)
    if record is None:
        raise MatchNotFound(match_id)
    return Match.from_dict(record)


def get_team_matches(store, team_id) -> List[Match]:
    """Every match the team played or is scheduled for, newest first."""
    records = store.select('matches', team1_id=team_id) + store.select('matches', team2_id=team_id)
    matches = [Match.from_dict(r) for r in records]
    matches.sort(key=lambda m: m.created_at or '', reverse=True)
    return matches


def find_membership(store, group_id, team_id) -> Optional[GroupMembership]:
    records = store.select('group_teams', group_id=group_id, team_id=team_id)
    return GroupMembership.from_dict(records[0]) if records else None
