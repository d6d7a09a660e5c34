"""Tests for game records and turn summaries."""

import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from manor.core.board import load_board
from manor.core.moves import Turn, TurnNotationError, parse_turn
from manor.core.notation import (
    GameRecord, game_to_text, normal_turn_history, normal_turns, record_from_state,
    summaries_since_normal, text_to_game, turn_summary,
)
from manor.core.state import GameState, IllegalTurnError


def play(*turns, board='tiny', closed_wings=()):
    state = GameState.new_game(load_board(board, closed_wings))
    for text in turns:
        state = state.apply_turn(parse_turn(text))
    return state


def winning_state():
    state = GameState.new_game(load_board('tiny'))
    state.strengths[0] = 10
    state.failures[2] = state.weapons[2] = 0
    state.move_cards[2] = 1
    state.player_room_ids = [1, 3, 3, 3]
    state.target_room_id = 1
    return state.apply_turn(parse_turn("1@1;"))


class TestGameRecord:
    def test_from_state(self):
        state = play("1@2;", "3@2;")
        record = GameRecord.from_state(state)
        assert record.board_name == "tiny"
        assert record.num_players == 2
        assert record.result == "*"
        assert [str(t) for t in record.turns] == ["1@2;", "3@2;"]

    def test_to_text(self):
        record = GameRecord.from_state(play("1@2;", "3@2;"), date="2026.01.02")
        assert record.to_text() == (
            '[Event "Manor Game"]\n'
            '[Date "2026.01.02"]\n'
            '[Board "tiny"]\n'
            '[Players "2"]\n'
            '[ClosedWings ""]\n'
            '[Result "*"]\n'
            '\n'
            '1@2; 3@2;'
        )

    def test_roundtrip_replays_same_state(self):
        state = play("1@2;", "3@2;")
        replayed = text_to_game(game_to_text(state))
        assert replayed == state
        assert replayed.ply == 2

    def test_closed_wings_roundtrip(self):
        state = play("1@2;", board='manor', closed_wings=['West'])
        text = game_to_text(state, 'manor')
        assert '[ClosedWings "west"]' in text
        replayed = text_to_game(text)
        assert replayed.board.closed_wings == ('west',)
        assert replayed == state

    def test_result_records_winner(self):
        record = record_from_state(winning_state())
        assert record.result == "P1"

    def test_long_games_wrap(self):
        record = GameRecord(turns=[Turn.single(0, 1)] * 40)
        lines = record.to_text().split('\n')[7:]
        assert len(lines) > 1
        assert all(len(line) <= 80 for line in lines)
        assert sum(len(line.split()) for line in lines) == 40

    def test_from_text_tags(self):
        text = '[Board "manor"]\n[Players "3"]\n[Result "P2"]\n\n1@2;\n1@3;'
        record = GameRecord.from_text(text)
        assert record.board_name == "manor"
        assert record.num_players == 3
        assert record.result == "P2"
        assert len(record.turns) == 2

    def test_malformed_record(self):
        with pytest.raises(TurnNotationError):
            GameRecord.from_text('[Board "tiny"]\n\n1@2; 3@')

    def test_illegal_turn_in_record(self):
        with pytest.raises(IllegalTurnError):
            text_to_game('[Board "tiny"]\n\n3@2;')


class TestSummaries:
    def test_start(self):
        assert turn_summary(GameState.new_game(load_board('tiny'))) == "(start)"

    def test_normal_turn_history(self):
        state = play("1@2;", "3@2;")
        assert normal_turn_history(state) == "(P1)1@2<-1; (P3)3@2<-1;"
        assert [str(t) for t in normal_turns(state)] == ["1@2;", "3@2;"]

    def test_summaries_include_auxiliary_turns(self):
        state = play("1@2;")
        assert summaries_since_normal(state) == "(P1)1@2<-1;\n(p2)2@4<-1;"

    def test_move_cards_and_attack(self):
        assert normal_turn_history(play("1@3;")) == "(P1M)1@3<-1;"
        assert normal_turn_history(play("1@4;")) == "(P1MMA)1@4<-1;"

    def test_loot(self):
        state = GameState.new_game(load_board('tiny'))
        state.player_room_ids = [1, 3, 3, 3]
        state = state.apply_turn(parse_turn("1@1;"))
        assert normal_turn_history(state) == "(P1L)1@1(1);"

    def test_win(self):
        assert normal_turn_history(winning_state()) == "(P1A)1@1(1)(P1 won);"

    def test_verbose(self):
        state = play("1@2;")
        text = summaries_since_normal(state, verbose=True)
        assert "    MOVE P1: R1 to R2 (1mp)" in text
        assert "    TARGET MOVE: R4 to R1" in text
        assert "    MOVE p2: R1 to R4 (3mp)" in text

    def test_verbose_win(self):
        text = turn_summary(winning_state(), verbose=True)
        assert "    ATTACK:" in text
        assert "    WINNER: P1" in text
