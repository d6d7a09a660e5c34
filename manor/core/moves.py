"""
Turn representation and notation.

A move is written `<player number>@<room id>` with 1-based player numbers,
moves are space separated and a turn ends with `;`:

    1@4 3@9;
"""

from __future__ import annotations

import re
from dataclasses import dataclass


class TurnNotationError(ValueError):
    """Raised for text that is not valid turn notation."""


_MOVE_RE = re.compile(r'^(\d+)@(\d+)$')


@dataclass(frozen=True)
class PlayerMove:
    player_id: int
    room_id: int

    def __str__(self) -> str:
        return f"{self.player_id + 1}@{self.room_id}"


@dataclass(frozen=True)
class Turn:
    moves: tuple[PlayerMove, ...]

    @staticmethod
    def single(player_id: int, room_id: int) -> Turn:
        return Turn((PlayerMove(player_id, room_id),))

    @staticmethod
    def dual(player_a: int, room_a: int, player_b: int, room_b: int) -> Turn:
        return Turn((PlayerMove(player_a, room_a), PlayerMove(player_b, room_b)))

    def __len__(self) -> int:
        return len(self.moves)

    def __iter__(self):
        return iter(self.moves)

    def __str__(self) -> str:
        return ' '.join(str(m) for m in self.moves) + ';'


def parse_move(text: str) -> PlayerMove:
    match = _MOVE_RE.match(text.strip())
    if not match:
        raise TurnNotationError(f"invalid move '{text}', expected <player>@<room>")
    player_num, room_id = int(match.group(1)), int(match.group(2))
    if player_num < 1:
        raise TurnNotationError(f"invalid player number {player_num} in '{text}'")
    return PlayerMove(player_num - 1, room_id)


def parse_turn(text: str) -> Turn:
    """Parse one turn such as `1@4 3@9;` (the trailing `;` is optional)."""
    body = text.strip()
    if body.endswith(';'):
        body = body[:-1]
    if ';' in body:
        raise TurnNotationError(f"expected a single turn, got '{text}'")
    tokens = body.split()
    if not tokens:
        raise TurnNotationError("empty turn")
    return Turn(tuple(parse_move(token) for token in tokens))


def parse_turns(text: str) -> list[Turn]:
    """Parse a sequence of `;`-terminated turns."""
    chunks = text.split(';')
    if chunks[-1].strip():
        raise TurnNotationError(f"unterminated turn '{chunks[-1].strip()}'")
    return [parse_turn(chunk) for chunk in chunks[:-1]]


def turns_to_text(turns: list[Turn]) -> str:
    return ' '.join(str(t) for t in turns)
