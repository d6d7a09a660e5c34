"""
Game records and turn summaries.

Record format example:
```
[Event "Manor Game"]
[Date "2026.10.19"]
[Board "tiny"]
[Players "2"]
[ClosedWings ""]
[Result "*"]

1@2; 3@2 2@3; 1@3;
```

Tags are followed by every normal turn in turn notation. Forced auxiliary
sub-turns are not written; replaying the normal turns from the start state
reproduces them.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from .board import load_board
from .moves import Turn, parse_turns, turns_to_text
from .rules import DEFAULT_RULES, Ruleset
from .state import GameState


@dataclass
class GameRecord:
    """Board, player count and normal turns: enough to rebuild any state."""

    board_name: str = "tiny"
    num_players: int = 2
    closed_wings: list[str] = field(default_factory=list)
    event: str = "Manor Game"
    date: str = field(default_factory=lambda: date.today().strftime("%Y.%m.%d"))
    result: str = "*"  # "*" while ongoing, otherwise the winner, e.g. "P1"

    turns: list[Turn] = field(default_factory=list)

    @classmethod
    def from_state(cls, state: GameState, board_name: Optional[str] = None, **metadata) -> GameRecord:
        """Create a record from a state with history."""
        record = cls(board_name=board_name or state.board.name,
                     num_players=state.num_players,
                     closed_wings=list(state.board.closed_wings), **metadata)
        record.turns = normal_turns(state)
        if state.has_winner:
            record.result = state.player_text(state.winner)
        return record

    def to_text(self) -> str:
        lines = [
            f'[Event "{self.event}"]',
            f'[Date "{self.date}"]',
            f'[Board "{self.board_name}"]',
            f'[Players "{self.num_players}"]',
            f'[ClosedWings "{",".join(self.closed_wings)}"]',
            f'[Result "{self.result}"]',
            '',
        ]

        # Word wrap at 80 chars
        current_line = ""
        for word in turns_to_text(self.turns).split():
            if len(current_line) + len(word) + 1 > 80:
                lines.append(current_line)
                current_line = word
            else:
                current_line = f"{current_line} {word}".strip()
        if current_line:
            lines.append(current_line)

        return '\n'.join(lines)

    @classmethod
    def from_text(cls, text: str) -> GameRecord:
        """Parse a record; malformed turns raise TurnNotationError."""
        record = cls()

        tag_pattern = r'\[(\w+)\s+"([^"]*)"\]'
        for match in re.finditer(tag_pattern, text):
            tag, value = match.groups()
            tag_lower = tag.lower()
            if tag_lower == 'event':
                record.event = value
            elif tag_lower == 'date':
                record.date = value
            elif tag_lower == 'board':
                record.board_name = value
            elif tag_lower == 'players':
                record.num_players = int(value)
            elif tag_lower == 'closedwings':
                record.closed_wings = [w for w in value.split(',') if w]
            elif tag_lower == 'result':
                record.result = value

        record.turns = parse_turns(re.sub(tag_pattern, '', text))
        return record

    def replay(self, rules: Ruleset = DEFAULT_RULES) -> GameState:
        """Re-apply every turn from the start state, validating each one."""
        board = load_board(self.board_name, self.closed_wings)
        state = GameState.new_game(board, self.num_players, rules)
        for turn in self.turns:
            state = state.apply_turn(turn)
        return state


def _states_in_order(state: GameState) -> list[GameState]:
    states = []
    current: Optional[GameState] = state
    while current is not None:
        states.append(current)
        current = current.prev_state
    states.reverse()
    return states


def normal_turns(state: GameState) -> list[Turn]:
    """Normal turns along the history chain, oldest first."""
    return [s.prev_turn for s in _states_in_order(state)
            if s.prev_state is not None and s.prev_state.is_normal_turn]


def turn_summary(state: GameState, verbose: bool = False) -> str:
    """
    Describe the turn that produced `state` from its predecessor.

    Short form: `(P1ML)1@4<-2;` is player, one `M` per move card spent,
    `L` for loot or `A` for attack, then each piece that moved with its old
    room. The verbose form adds one line per event and the next state.
    """
    prev = state.prev_state
    if prev is None:
        return "(start)"

    board = state.board
    mover = prev.current_player
    short_moves = []
    verbose_moves = []
    total_dist = 0

    for player_id in state.roster.player_ids():
        old_room = prev.player_room_ids[player_id]
        new_room = state.player_room_ids[player_id]
        if old_room != new_room:
            dist = board.distance_between(old_room, new_room)
            total_dist += dist
            short_moves.append(f"{player_id + 1}@{new_room}<-{old_room}")
            verbose_moves.append(f"    MOVE {state.player_text(player_id)}: "
                                 f"R{old_room} to R{new_room} ({dist}mp)")

    if not short_moves:
        room = state.player_room_ids[mover]
        short_moves.append(f"{mover + 1}@{room}({room})")
        verbose_moves.append(f"    MOVE {state.player_text(mover)}: stayed at R{room}")

    attacked = len(prev.attack_history) != len(state.attack_history)
    looted = not attacked and state.weapons[mover] > prev.weapons[mover]
    action = 'A' if attacked else 'L' if looted else ''
    move_marks = 'M' * max(total_dist - 1, 0) if prev.is_normal_turn else ''
    win_text = f"({state.player_text(state.winner)} won)" if state.has_winner else ''

    short = f"({state.player_text(mover)}{move_marks}{action}){' '.join(short_moves)}{win_text};"
    if not verbose:
        return short

    ply_text = f"/{prev.ply}" if prev.is_normal_turn else ''
    lines = [f"  Turn{prev.turn_id}{ply_text}, {short}"] + verbose_moves

    if looted:
        lines.append(f"    LOOT {state.player_text(mover)}: now {state.player_text_long(mover)}")
    elif attacked:
        weapon_bonus = state.rules.strength_per_weapon if state.weapons[mover] < prev.weapons[mover] else 0.0
        strength = prev.strengths[mover] + weapon_bonus
        history = ','.join(str(pid + 1) for pid in state.attack_history)
        lines.append(f"    ATTACK: strength={strength:.1f} hist={history}")

    if state.has_winner:
        lines.append(f"    WINNER: {state.player_text(state.winner)}")
    else:
        lines.append(f"    TARGET MOVE: R{prev.target_room_id} to R{state.target_room_id}")
        if state.player_room_ids[state.current_player] == state.target_room_id:
            lines.append(f"    TARGET ACTIVATES: {state.player_text()}")
        lines.append("    start of next turn...")
        lines.append(state.summary("   "))

    return '\n'.join(lines)


def normal_turn_history(state: GameState) -> str:
    """Short summaries of every normal turn, oldest first."""
    return ' '.join(turn_summary(s) for s in _states_in_order(state)
                    if s.prev_state is not None and s.prev_state.is_normal_turn)


def summaries_since_normal(state: GameState, verbose: bool = False) -> str:
    """Summaries from the last normal turn up to `state`, including forced sub-turns."""
    summaries = []
    current = state
    while current.prev_state is not None:
        summaries.append(turn_summary(current, verbose))
        if current.prev_state.is_normal_turn:
            break
        current = current.prev_state
    return '\n'.join(reversed(summaries))


def record_from_state(state: GameState, board_name: Optional[str] = None, **metadata) -> GameRecord:
    return GameRecord.from_state(state, board_name, **metadata)


def game_to_text(state: GameState, board_name: Optional[str] = None, **metadata) -> str:
    return record_from_state(state, board_name, **metadata).to_text()


def text_to_game(text: str) -> GameState:
    return GameRecord.from_text(text).replay()
