"""Tests for the terminal client."""

import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from cli.play import parse_command, play
from manor.core.board import load_board
from manor.core.moves import parse_turn
from manor.core.state import GameState
from manor.ai.search import SearchConfig


def feed(monkeypatch, lines):
    answers = iter(lines)

    def fake_input(prompt=''):
        try:
            return next(answers)
        except StopIteration:
            raise EOFError

    monkeypatch.setattr('builtins.input', fake_input)


class TestParseCommand:
    @pytest.mark.parametrize('text, command', [
        ('q', 'quit'), ('exit', 'quit'), ('?', 'help'), ('u', 'undo'),
        ('hint', 'hint'), ('history', 'history'), ('turns', 'turns'),
    ])
    def test_keywords(self, text, command):
        assert parse_command(text) == (command, None)

    def test_turn(self):
        assert parse_command('1@4 4@3;') == ('turn', parse_turn('1@4 4@3;'))

    def test_rooms(self):
        assert parse_command('rooms 2') == ('rooms', 2)
        assert parse_command('rooms') == ('rooms', 1)
        assert parse_command('rooms far') == (None, None)

    def test_save_keeps_path_case(self):
        assert parse_command('save Games/One.txt') == ('save', 'Games/One.txt')

    def test_blank_and_garbage(self):
        assert parse_command('   ') == (None, None)
        assert parse_command('north') == (None, None)


class TestPlay:
    def test_turn_history_and_undo(self, monkeypatch, capsys):
        feed(monkeypatch, ['1@2;', 'history', 'undo', 'q'])
        state = GameState.new_game(load_board('tiny'))
        final = play(state, set(), SearchConfig(depth=1), 'tiny')
        assert final.turn_id == 1
        out = capsys.readouterr().out
        assert "(P1)1@2<-1;" in out
        assert "Turn undone." in out

    def test_illegal_turn_is_reported(self, monkeypatch, capsys):
        feed(monkeypatch, ['3@2;'])
        state = GameState.new_game(load_board('tiny'))
        final = play(state, set(), SearchConfig(depth=1), 'tiny')
        assert final == state
        assert "Illegal turn: player P1 tried to move non-auxiliary P3" in capsys.readouterr().out

    def test_ai_replies(self, monkeypatch):
        feed(monkeypatch, ['1@2;'])
        state = GameState.new_game(load_board('tiny'))
        final = play(state, {2}, SearchConfig(depth=1), 'tiny')
        assert final.ply >= 2

    def test_save(self, monkeypatch, tmp_path):
        path = tmp_path / "game.txt"
        feed(monkeypatch, ['1@2;', f'save {path}'])
        play(GameState.new_game(load_board('tiny')), set(), SearchConfig(depth=1), 'tiny')
        assert path.read_text().endswith("1@2;")
