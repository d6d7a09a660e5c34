"""
Rule constants and player roster.

A match has either two normal players plus two auxiliary pieces interleaved
with them, or three or more normal players and no auxiliaries:

    with auxiliaries:  0=P1  1=p2 (sides with P3)  2=P3  3=p4 (sides with P1)
    free-for-all:      0=P1  1=P2  2=P3 ...
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from enum import Enum, IntEnum


HEURISTIC_SCORE_WIN = sys.float_info.max
HEURISTIC_SCORE_LOSS = -sys.float_info.max

NO_PLAYER = -1
NUM_NORMAL_PLAYERS_WITH_AUXILIARIES = 2

JUST_OVER_ONE_THIRD = 11 / 32


@dataclass(frozen=True)
class Ruleset:
    """Immutable rule constants threaded through state and scoring."""
    starting_move_cards: float = 2.0
    starting_weapons: float = 2.0
    starting_failures: float = 4.0
    starting_strength: int = 1

    move_cards_per_loot: float = JUST_OVER_ONE_THIRD
    weapons_per_loot: float = JUST_OVER_ONE_THIRD
    failures_per_loot: float = JUST_OVER_ONE_THIRD

    clovers_per_move_card: float = 1.0
    clovers_per_weapon: float = 1.0
    clovers_per_failure: float = 50 / 24
    strength_per_weapon: float = 53 / 24

    # An auxiliary that saw the target before moving blocks the attack
    auxiliaries_are_nosy: bool = False

    decay_normal: float = 0.9
    decay_auxiliary: float = 0.5
    ambush_weight: float = 0.0


DEFAULT_RULES = Ruleset()


class PlayerAction(Enum):
    NONE = 'none'
    LOOT = 'loot'
    ATTACK = 'attack'


class PlayerKind(IntEnum):
    NORMAL = 0
    AUXILIARY = 1


class Roster:
    """Fixed-size player roster, selected once per match."""

    has_auxiliaries = False

    def __init__(self, num_normal_players: int, num_all_players: int):
        self.num_normal_players = num_normal_players
        self.num_all_players = num_all_players

    @staticmethod
    def for_players(num_normal_players: int) -> Roster:
        if num_normal_players < NUM_NORMAL_PLAYERS_WITH_AUXILIARIES:
            raise ValueError(f"need at least 2 players, got {num_normal_players}")
        if num_normal_players == NUM_NORMAL_PLAYERS_WITH_AUXILIARIES:
            return AuxiliaryRoster()
        return FreeForAllRoster(num_normal_players)

    def player_ids(self) -> range:
        return range(self.num_all_players)

    def is_valid(self, player_id: int) -> bool:
        return 0 <= player_id < self.num_all_players

    def kind(self, player_id: int) -> PlayerKind:
        return PlayerKind.AUXILIARY if self.is_auxiliary(player_id) else PlayerKind.NORMAL

    def is_auxiliary(self, player_id: int) -> bool:
        return False

    def normal_player_id(self, player_id: int) -> int:
        return player_id

    def player_text(self, player_id: int) -> str:
        prefix = 'p' if self.is_auxiliary(player_id) else 'P'
        return f"{prefix}{player_id + 1}"

    def __eq__(self, other) -> bool:
        return (type(self) is type(other)
                and self.num_normal_players == other.num_normal_players)

    def __hash__(self) -> int:
        return hash((type(self).__name__, self.num_normal_players))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.num_normal_players})"


class AuxiliaryRoster(Roster):
    """Two normal players, each allied with one auxiliary piece."""

    has_auxiliaries = True

    def __init__(self):
        super().__init__(2, 4)

    def is_auxiliary(self, player_id: int) -> bool:
        return player_id % 2 == 1

    def normal_player_id(self, player_id: int) -> int:
        return 0 if player_id in (0, 3) else 2

    def allied_auxiliary(self, player_id: int) -> int:
        return 3 if player_id in (0, 3) else 1

    def opposing_normal(self, player_id: int) -> int:
        return 2 if player_id in (0, 3) else 0

    def opposing_auxiliary(self, player_id: int) -> int:
        return self.allied_auxiliary(self.opposing_normal(player_id))


class FreeForAllRoster(Roster):
    def __init__(self, num_normal_players: int):
        super().__init__(num_normal_players, num_normal_players)
