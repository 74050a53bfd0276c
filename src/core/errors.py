"""
Errors raised by the tournament engine.

Every precondition failure is a TournamentError carrying a stable ``code``
and the HTTP status the web layer answers with. Store and I/O failures are
not wrapped and reach the caller unchanged.
"""


class TournamentError(Exception):
    """Base class for engine precondition failures."""
    code = 'tournament_error'
    status = 400

    def __init__(self, message=None):
        super().__init__(message or self.__doc__)
        self.message = message or self.__doc__

    def to_dict(self):
        return {'success': False, 'error': self.message, 'code': self.code}


class InsufficientContestants(TournamentError):
    """Need at least 2 teams to generate groups."""
    code = 'insufficient_contestants'

    def __init__(self, found=0):
        super().__init__(f'Need at least 2 teams to generate groups ({found} eligible)')
        self.found = found


class NoGroupsFound(TournamentError):
    """No groups found for current stage."""
    code = 'no_groups_found'


class GroupAlreadyCompleted(TournamentError):
    """Group already has a winner."""
    code = 'group_already_completed'
    status = 409


class MatchAlreadyResolved(TournamentError):
    """Match result has already been recorded."""
    code = 'match_already_resolved'
    status = 409


class InvalidWinner(TournamentError):
    """Winner must be one of the match's two teams."""
    code = 'invalid_winner'


class NotAMember(TournamentError):
    """Winner must be a member of the group."""
    code = 'not_a_member'


class InvalidGroupSize(TournamentError):
    """Group size must be at least 2."""
    code = 'invalid_group_size'


class EntityNotFound(TournamentError):
    """Entity not found."""
    code = 'not_found'
    status = 404
    kind = 'entity'

    def __init__(self, entity_id=None):
        super().__init__(f'{self.kind.capitalize()} not found: {entity_id}')
        self.entity_id = entity_id


class TeamNotFound(EntityNotFound):
    code = 'team_not_found'
    kind = 'team'


class GroupNotFound(EntityNotFound):
    code = 'group_not_found'
    kind = 'group'


class MatchNotFound(EntityNotFound):
    code = 'match_not_found'
    kind = 'match'
