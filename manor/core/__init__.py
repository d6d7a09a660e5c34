"""Core game logic: board graph, rules, state and turn notation."""

from .board import Board, Room, BoardSpec, InvalidBoardError, load_board, available_boards
from .rules import Ruleset, DEFAULT_RULES, PlayerAction, PlayerKind, Roster
from .moves import PlayerMove, Turn, TurnNotationError, parse_turn, parse_turns
from .state import GameState, IllegalTurnError
