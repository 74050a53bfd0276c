"""
Tests for recording match results and declaring group winners.
"""
import pytest
import threading
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from core.errors import (
    InvalidWinner, MatchAlreadyResolved, MatchNotFound,
    GroupAlreadyCompleted, GroupNotFound, NotAMember, TeamNotFound, TournamentError,
)
from core.queries import get_team, get_group, get_group_teams, list_matches, find_membership
from core.resolution import apply_team_delta, record_match_result, set_group_winner
from core.seeding import generate_first_stage
from core.store import EntityStore


@pytest.fixture
def stage(store, make_teams, rng):
    """Five teams in one group of five: two matches and one unpaired team."""
    teams = make_teams(5)
    groups = generate_first_stage(store, 2, 1, 5, rng=rng)
    return teams, groups[0]


class TestApplyTeamDelta:

    def test_increments_counters(self, store, make_teams):
        team = make_teams(1)[0]
        apply_team_delta(store, team.id, wins=2)
        updated = apply_team_delta(store, team.id, losses=1, eliminated=True)
        assert updated.wins == 2
        assert updated.losses == 1
        assert updated.is_eliminated is True

    def test_leaves_flag_alone_when_not_given(self, store, make_teams):
        team = make_teams(1)[0]
        apply_team_delta(store, team.id, eliminated=True)
        assert apply_team_delta(store, team.id, wins=1).is_eliminated is True

    def test_unknown_team(self, store):
        with pytest.raises(TeamNotFound):
            apply_team_delta(store, 'missing', wins=1)


class TestRecordMatchResult:
    """Match Resolver behaviour."""

    def test_winner_and_loser_counters(self, store, stage):
        match = list_matches(store, 2, 1)[0]
        result = record_match_result(store, match.id, match.team2_id)

        assert result.status == 'completed'
        assert result.winner_id == match.team2_id

        winner = get_team(store, match.team2_id)
        loser = get_team(store, match.team1_id)
        assert (winner.wins, winner.losses, winner.is_eliminated) == (1, 0, False)
        assert (loser.wins, loser.losses, loser.is_eliminated) == (0, 1, True)

    def test_membership_counters_follow_match(self, store, stage):
        match = list_matches(store, 2, 1)[0]
        record_match_result(store, match.id, match.team1_id)

        winner = find_membership(store, match.group_id, match.team1_id)
        loser = find_membership(store, match.group_id, match.team2_id)
        assert (winner.wins, winner.losses, winner.matches_played) == (1, 0, 1)
        assert (loser.wins, loser.losses, loser.matches_played) == (0, 1, 1)

    def test_invalid_winner(self, store, stage):
        teams, _ = stage
        match = list_matches(store, 2, 1)[0]
        outsider = next(t.id for t in teams if not match.has_team(t.id))
        with pytest.raises(InvalidWinner):
            record_match_result(store, match.id, outsider)
        assert list_matches(store, 2, 1)[0].status == 'pending'

    def test_second_call_rejected_without_double_count(self, store, stage):
        match = list_matches(store, 2, 1)[0]
        record_match_result(store, match.id, match.team1_id)
        with pytest.raises(MatchAlreadyResolved):
            record_match_result(store, match.id, match.team1_id)
        assert get_team(store, match.team1_id).wins == 1
        assert get_team(store, match.team2_id).losses == 1

    def test_winner_is_immutable(self, store, stage):
        match = list_matches(store, 2, 1)[0]
        record_match_result(store, match.id, match.team1_id)
        with pytest.raises(MatchAlreadyResolved):
            record_match_result(store, match.id, match.team2_id)
        assert list_matches(store, 2, 1)[0].winner_id == match.team1_id

    def test_unknown_match(self, store):
        with pytest.raises(MatchNotFound):
            record_match_result(store, 'missing', 'someone')


class TestSetGroupWinner:
    """Group Resolver behaviour."""

    def test_completes_group_and_eliminates_others(self, store, stage):
        teams, group = stage
        winner = teams[2]
        result = set_group_winner(store, group.id, winner.id)

        assert result.is_completed is True
        assert result.winner_team_id == winner.id
        for team in teams:
            assert get_team(store, team.id).is_eliminated is (team.id != winner.id)

    def test_membership_flags(self, store, stage):
        teams, group = stage
        set_group_winner(store, group.id, teams[0].id)
        flags = {m.team_id: m.is_winner for m in get_group_teams(store, group.id)}
        assert flags[teams[0].id] is True
        assert sum(flags.values()) == 1

    def test_counters_untouched(self, store, stage):
        teams, group = stage
        set_group_winner(store, group.id, teams[0].id)
        for team in teams:
            fresh = get_team(store, team.id)
            assert (fresh.wins, fresh.losses) == (0, 0)

    def test_does_not_require_completed_matches(self, store, stage):
        teams, group = stage
        set_group_winner(store, group.id, teams[4].id)
        assert all(m.status == 'pending' for m in list_matches(store, group_id=group.id))

    def test_override_reinstates_match_loser(self, store, stage):
        """A team that lost its match can still be declared group winner."""
        _, group = stage
        match = list_matches(store, group_id=group.id)[0]
        record_match_result(store, match.id, match.team1_id)
        assert get_team(store, match.team2_id).is_eliminated is True

        set_group_winner(store, group.id, match.team2_id)

        reinstated = get_team(store, match.team2_id)
        assert reinstated.is_eliminated is False
        assert reinstated.losses == 1
        assert get_team(store, match.team1_id).is_eliminated is True

    def test_late_match_loss_keeps_winner_in(self, store, stage):
        """A pending match recorded after adjudication does not eliminate the group winner."""
        _, group = stage
        match = list_matches(store, group_id=group.id)[0]
        set_group_winner(store, group.id, match.team1_id)

        record_match_result(store, match.id, match.team2_id)

        winner = get_team(store, match.team1_id)
        assert winner.is_eliminated is False
        assert winner.losses == 1
        assert get_group(store, group.id).winner_team_id == match.team1_id
        assert get_team(store, match.team2_id).is_eliminated is True

    def test_already_completed(self, store, stage):
        teams, group = stage
        set_group_winner(store, group.id, teams[0].id)
        with pytest.raises(GroupAlreadyCompleted):
            set_group_winner(store, group.id, teams[1].id)
        assert get_group(store, group.id).winner_team_id == teams[0].id
        assert get_team(store, teams[1].id).is_eliminated is True

    def test_not_a_member(self, store, stage, make_teams):
        _, group = stage
        outsider = make_teams(1, division_id=7, prefix="Outsider")[0]
        with pytest.raises(NotAMember):
            set_group_winner(store, group.id, outsider.id)
        fresh = get_group(store, group.id)
        assert fresh.is_completed is False
        assert fresh.winner_team_id is None

    def test_unknown_group(self, store):
        with pytest.raises(GroupNotFound):
            set_group_winner(store, 'missing', 'someone')

    def test_completed_iff_winner(self, store, stage):
        teams, group = stage
        before = get_group(store, group.id)
        assert before.is_completed == (before.winner_team_id is not None)
        set_group_winner(store, group.id, teams[1].id)
        after = get_group(store, group.id)
        assert after.is_completed == (after.winner_team_id is not None)


def run_concurrently(data_dir, count, action):
    """Run action(store) in count threads at once, each with its own store.

    Returns the outcome of each call: 'ok' or the raised exception's class.
    """
    barrier = threading.Barrier(count)
    outcomes = []

    def worker():
        own_store = EntityStore(data_dir)
        barrier.wait()
        try:
            action(own_store)
            outcomes.append('ok')
        except TournamentError as e:
            outcomes.append(type(e))

    threads = [threading.Thread(target=worker) for _ in range(count)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    return outcomes


class TestConcurrentResolution:
    """Resolvers called at the same time on one data directory."""

    def test_one_group_winner(self, store, data_dir, stage):
        teams, group = stage
        picks = [t.id for t in teams[:4]]

        outcomes = run_concurrently(data_dir, 4,
                                    lambda s: set_group_winner(s, group.id, picks.pop()))

        assert outcomes.count('ok') == 1
        assert outcomes.count(GroupAlreadyCompleted) == 3
        winners = [m for m in get_group_teams(store, group.id) if m.is_winner]
        assert len(winners) == 1
        assert get_group(store, group.id).winner_team_id == winners[0].team_id
        assert not get_team(store, winners[0].team_id).is_eliminated

    def test_match_counted_once(self, store, data_dir, stage):
        match = list_matches(store, 2, 1)[0]

        outcomes = run_concurrently(data_dir, 4,
                                    lambda s: record_match_result(s, match.id, match.team1_id))

        assert outcomes.count('ok') == 1
        assert outcomes.count(MatchAlreadyResolved) == 3
        assert get_team(store, match.team1_id).wins == 1
        assert get_team(store, match.team2_id).losses == 1
        assert find_membership(store, match.group_id, match.team1_id).matches_played == 1
