"""
Entity records for the tournament engine.

Records are persisted as plain dicts; these classes give them attribute
access and a stable field set. Unknown keys in stored data are dropped.
"""


class Record:
    kind = None
    fields = ()
    defaults = {}

    def __init__(self, **values):
        for name in self.fields:
            default = self.defaults.get(name)
            if isinstance(default, (list, dict)):
                default = type(default)(default)
            setattr(self, name, values.get(name, default))

    @classmethod
    def from_dict(cls, data):
        return cls(**{k: v for k, v in data.items() if k in cls.fields})

    def to_dict(self):
        return {name: getattr(self, name) for name in self.fields}

    def __eq__(self, other):
        return type(self) is type(other) and self.to_dict() == other.to_dict()

    def __repr__(self):
        return f"{type(self).__name__}(id={getattr(self, 'id', None)})"


class Team(Record):
    kind = 'teams'
    fields = (
        'id', 'name', 'category_id', 'division_id',
        'robot_name', 'robot_description', 'rank_position',
        'wins', 'losses', 'is_eliminated', 'is_qualified',
        'created_at', 'updated_at',
    )
    defaults = {'wins': 0, 'losses': 0, 'is_eliminated': False, 'is_qualified': False}

    def __repr__(self):
        return (f"Team(name={self.name}, wins={self.wins}, losses={self.losses}, "
                f"eliminated={self.is_eliminated})")


class Group(Record):
    kind = 'groups'
    fields = (
        'id', 'category_id', 'division_id', 'stage_number', 'group_number',
        'group_name', 'winner_team_id', 'is_completed',
        'created_at', 'updated_at',
    )
    defaults = {'is_completed': False}

    def __repr__(self):
        return f"Group(name={self.group_name}, stage={self.stage_number}, winner={self.winner_team_id})"


class GroupMembership(Record):
    kind = 'group_teams'
    fields = (
        'id', 'group_id', 'team_id', 'wins', 'losses', 'matches_played',
        'is_winner', 'created_at', 'updated_at',
    )
    defaults = {'wins': 0, 'losses': 0, 'matches_played': 0, 'is_winner': False}


class Match(Record):
    kind = 'matches'
    fields = (
        'id', 'category_id', 'division_id', 'group_id', 'group_number',
        'stage_number', 'round_name', 'round_number', 'match_number',
        'team1_id', 'team2_id', 'winner_id', 'status',
        'created_at', 'updated_at',
    )
    defaults = {'status': 'pending', 'round_number': 1, 'match_number': 1}

    PENDING = 'pending'
    COMPLETED = 'completed'

    @property
    def is_completed(self):
        return self.status == self.COMPLETED

    def has_team(self, team_id):
        return team_id is not None and team_id in (self.team1_id, self.team2_id)

    def opponent_of(self, team_id):
        """Return the other team's id, or None if team_id is not in the match."""
        if team_id == self.team1_id:
            return self.team2_id
        if team_id == self.team2_id:
            return self.team1_id
        return None

    def __repr__(self):
        return f"Match(round={self.round_name}, {self.team1_id} vs {self.team2_id}, status={self.status})"
