"""
Deciding whether a stage is finished and moving its winners on.
"""
import logging

from core.errors import NoGroupsFound
from core.queries import current_stage, list_groups
from core.seeding import generate_next_stage

logger = logging.getLogger(__name__)

STAGE_EMPTY = 'empty'
STAGE_OPEN = 'open'
STAGE_RESOLVED = 'resolved'
STAGE_FINAL = 'final'


class AdvanceResult:
    """Outcome of an advancement attempt. Non-advancing outcomes are not errors."""
    ADVANCED = 'advanced'
    INCOMPLETE = 'incomplete'
    NO_WINNERS = 'no_winners'
    CHAMPION = 'champion'

    def __init__(self, outcome, message, stage_number, champion_id=None,
                 incomplete_groups=0, advanced_count=0):
        self.outcome = outcome
        self.message = message
        self.stage_number = stage_number
        self.champion_id = champion_id
        self.incomplete_groups = incomplete_groups
        self.advanced_count = advanced_count

    @property
    def advanced(self):
        return self.outcome == self.ADVANCED

    def to_dict(self):
        return {
            'advanced': self.advanced,
            'outcome': self.outcome,
            'message': self.message,
            'stage_number': self.stage_number,
            'champion_id': self.champion_id,
            'incomplete_groups': self.incomplete_groups,
            'advanced_count': self.advanced_count,
        }

    def __repr__(self):
        return f"AdvanceResult(outcome={self.outcome}, stage={self.stage_number})"


def _current_groups(store, category_id, division_id):
    stage = current_stage(store, category_id, division_id)
    if stage == 0:
        raise NoGroupsFound(f'No groups found for category {category_id} division {division_id}')
    groups = list_groups(store, category_id, division_id, stage)
    if not groups:
        raise NoGroupsFound(f'No groups found for stage {stage}')
    return stage, groups


def stage_status(store, category_id, division_id) -> str:
    """Classify the current stage as empty, open, resolved or final."""
    try:
        _, groups = _current_groups(store, category_id, division_id)
    except NoGroupsFound:
        return STAGE_EMPTY
    if any(not g.is_completed for g in groups):
        return STAGE_OPEN
    winners = [g.winner_team_id for g in groups if g.winner_team_id]
    return STAGE_FINAL if len(winners) == 1 else STAGE_RESOLVED


def advance_stage(store, category_id, division_id, group_size, rng=None,
                  auto_complete_byes=False) -> AdvanceResult:
    """Move the current stage's group winners into a new stage.

    Returns a non-advancing result while groups are still open, and a
    champion result once the stage has a single winner.
    """
    with store.transaction():
        stage, groups = _current_groups(store, category_id, division_id)

        incomplete = [g for g in groups if not g.is_completed]
        if incomplete:
            logger.info('Stage %d of category %s division %s: %d group(s) still open',
                        stage, category_id, division_id, len(incomplete))
            return AdvanceResult(
                AdvanceResult.INCOMPLETE,
                f'{len(incomplete)} group(s) still need a winner selected',
                stage, incomplete_groups=len(incomplete))

        winners = [g.winner_team_id for g in groups if g.winner_team_id]

        if not winners:
            return AdvanceResult(AdvanceResult.NO_WINNERS, 'No winners to advance', stage)

        if len(winners) == 1:
            logger.info('Category %s division %s decided: champion %s', category_id, division_id, winners[0])
            return AdvanceResult(
                AdvanceResult.CHAMPION,
                'Tournament complete! Champion has been crowned!',
                stage, champion_id=winners[0])

        next_stage = stage + 1
        generate_next_stage(store, category_id, division_id, winners, next_stage, group_size,
                            rng=rng, auto_complete_byes=auto_complete_byes)

    return AdvanceResult(
        AdvanceResult.ADVANCED,
        f'Advanced {len(winners)} winners to Stage {next_stage}',
        next_stage, advanced_count=len(winners))
