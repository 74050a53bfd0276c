"""
TournamentEngine: the operations callers use, bound to one data directory.

Every mutating operation runs in a single store transaction and notifies
change subscribers once it has committed.
"""

from core import queries
from core.advancement import advance_stage, stage_status
from core.notifications import ChangeNotifier
from core.resolution import record_match_result, set_group_winner
from core.seeding import delete_all_groups, generate_first_stage, generate_bracket
from core.settings import load_settings, group_size_for
from core.store import EntityStore


STAGE_KINDS = ('teams', 'groups', 'group_teams', 'matches')


class TournamentEngine:
    def __init__(self, data_dir, settings=None, notifier=None, rng=None):
        self.data_dir = data_dir
        self.settings = settings if settings is not None else load_settings(data_dir)
        self.store = EntityStore(data_dir, lock_timeout=self.settings.get('lock_timeout_seconds', 10))
        self.notifier = notifier or ChangeNotifier()
        self.rng = rng

    def group_size(self, category_id) -> int:
        return group_size_for(self.settings, category_id)

    @property
    def auto_complete_byes(self) -> bool:
        return bool(self.settings.get('auto_complete_byes', False))

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_teams(self, category_id=None, division_id=None):
        return queries.list_teams(self.store, category_id, division_id)

    def get_team(self, team_id):
        return queries.get_team(self.store, team_id)

    def get_team_matches(self, team_id):
        queries.get_team(self.store, team_id)
        return queries.get_team_matches(self.store, team_id)

    def list_groups(self, category_id=None, division_id=None, stage_number=None):
        return queries.list_groups(self.store, category_id, division_id, stage_number)

    def get_group(self, group_id):
        return queries.get_group(self.store, group_id)

    def get_group_teams(self, group_id):
        queries.get_group(self.store, group_id)
        return queries.get_group_teams(self.store, group_id)

    def list_groups_with_teams(self, category_id=None, division_id=None):
        return queries.list_groups_with_teams(self.store, category_id, division_id)

    def list_matches(self, category_id=None, division_id=None, status=None,
                     group_id=None, stage_number=None):
        return queries.list_matches(self.store, category_id, division_id, status,
                                    group_id, stage_number)

    def current_stage(self, category_id, division_id) -> int:
        return queries.current_stage(self.store, category_id, division_id)

    def stage_status(self, category_id, division_id) -> str:
        return stage_status(self.store, category_id, division_id)

    # ------------------------------------------------------------------
    # Team registration
    # ------------------------------------------------------------------

    def create_team(self, name, category_id, division_id, **fields):
        team = queries.create_team(self.store, name, category_id, division_id, **fields)
        self.notifier.notify(('teams',), 'create', category_id=category_id,
                             division_id=division_id, ids=[team.id])
        return team

    def update_team(self, team_id, **changes):
        team = queries.update_team(self.store, team_id, **changes)
        self.notifier.notify(('teams',), 'update', category_id=team.category_id,
                             division_id=team.division_id, ids=[team_id])
        return team

    def delete_team(self, team_id):
        queries.delete_team(self.store, team_id)
        self.notifier.notify(('teams', 'group_teams'), 'delete', ids=[team_id])

    # ------------------------------------------------------------------
    # Tournament progression
    # ------------------------------------------------------------------

    def generate_first_stage(self, category_id, division_id):
        groups = generate_first_stage(self.store, category_id, division_id,
                                      self.group_size(category_id), rng=self.rng,
                                      auto_complete_byes=self.auto_complete_byes)
        self.notifier.notify(STAGE_KINDS, 'generate', category_id=category_id,
                             division_id=division_id, ids=[g.id for g in groups])
        return groups

    def record_match_result(self, match_id, winner_id):
        match = record_match_result(self.store, match_id, winner_id)
        kinds = ('matches', 'teams', 'group_teams') if match.group_id else ('matches', 'teams')
        self.notifier.notify(kinds, 'update', category_id=match.category_id,
                             division_id=match.division_id, ids=[match_id])
        return match

    def set_group_winner(self, group_id, winner_id):
        group = set_group_winner(self.store, group_id, winner_id)
        self.notifier.notify(('groups', 'group_teams', 'teams'), 'update',
                             category_id=group.category_id, division_id=group.division_id,
                             ids=[group_id])
        return group

    def advance_stage(self, category_id, division_id):
        result = advance_stage(self.store, category_id, division_id,
                               self.group_size(category_id), rng=self.rng,
                               auto_complete_byes=self.auto_complete_byes)
        if result.advanced:
            self.notifier.notify(('groups', 'group_teams', 'matches'), 'generate',
                                 category_id=category_id, division_id=division_id)
        return result

    def reset_groups(self, category_id, division_id):
        deleted = delete_all_groups(self.store, category_id, division_id)
        self.notifier.notify(('groups', 'group_teams', 'matches'), 'delete',
                             category_id=category_id, division_id=division_id)
        return deleted

    def generate_bracket(self, category_id, division_id):
        matches = generate_bracket(self.store, category_id, division_id, rng=self.rng)
        self.notifier.notify(('matches',), 'generate', category_id=category_id,
                             division_id=division_id, ids=[m.id for m in matches])
        return matches
