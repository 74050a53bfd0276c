"""
Tests for the command-line entry point.
"""
import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from main import main, build_parser
from core.engine import TournamentEngine


def run(data_dir, *argv):
    return main(['--data-dir', data_dir, *argv])


class TestCommands:

    def test_add_and_list_teams(self, data_dir, capsys):
        assert run(data_dir, 'add-team', '--category', '2', '--division', '1', 'Sparky') == 0
        assert run(data_dir, 'teams') == 0
        out = capsys.readouterr().out
        assert "Registered Sparky" in out
        assert "Sparky  W0 L0  (active)" in out

    def test_generate_and_show_groups(self, data_dir, capsys):
        for name in ("A", "B", "C"):
            run(data_dir, 'add-team', '--category', '1', '--division', '1', name)
        assert run(data_dir, 'generate', '--category', '1', '--division', '1') == 0
        assert run(data_dir, 'groups', '--category', '1', '--division', '1') == 0
        out = capsys.readouterr().out
        assert "Created 2 groups for stage 1." in out
        assert "# Group A" in out
        assert "# Group B" in out

    def test_generate_error_exit_code(self, data_dir, capsys):
        assert run(data_dir, 'generate', '--category', '2', '--division', '1') == 1
        assert "Need at least 2 teams" in capsys.readouterr().err

    def test_record_winner_and_advance(self, data_dir, capsys):
        engine = TournamentEngine(data_dir)
        for name in ("A", "B"):
            engine.create_team(name, 2, 1)
        engine.generate_first_stage(2, 1)
        match = engine.list_matches(2, 1)[0]
        group = engine.list_groups(2, 1)[0]

        assert run(data_dir, 'record', match.id, match.team1_id) == 0
        assert run(data_dir, 'winner', group.id, match.team1_id) == 0
        assert run(data_dir, 'advance', '--category', '2', '--division', '1') == 0
        assert run(data_dir, 'status', '--category', '2', '--division', '1') == 0

        out = capsys.readouterr().out
        assert "Group A completed." in out
        assert "Champion:" in out
        assert "Stage 1: final" in out

    def test_reset(self, data_dir, capsys):
        engine = TournamentEngine(data_dir)
        for name in ("A", "B", "C", "D"):
            engine.create_team(name, 2, 1)
        engine.generate_first_stage(2, 1)
        assert run(data_dir, 'reset', '--category', '2', '--division', '1') == 0
        assert "Deleted 1 groups." in capsys.readouterr().out
        assert engine.list_groups(2, 1) == []

    def test_pair_required_for_generate(self, data_dir):
        with pytest.raises(SystemExit):
            build_parser().parse_args(['--data-dir', data_dir, 'generate'])
