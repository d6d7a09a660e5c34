"""
Game state and the deterministic turn-resolution rules.

A state is advanced either by `apply_turn`, which validates the turn and
links the new state to its predecessor for undo and history, or by the
unchecked `after_turn` that search uses on turns it generated itself.
"""

from __future__ import annotations

import logging
from typing import Iterator, Optional

from .board import Board
from .heuristic import heuristic_score
from .moves import PlayerMove, Turn
from .rules import (
    DEFAULT_RULES, HEURISTIC_SCORE_LOSS, HEURISTIC_SCORE_WIN, NO_PLAYER,
    PlayerAction, PlayerKind, Roster, Ruleset,
)


logger = logging.getLogger(__name__)

MAX_MOVES_PER_TURN = 2


class IllegalTurnError(ValueError):
    """Raised when a submitted turn breaks the rules; the state is unchanged."""


class GameState:
    """
    Complete game state.

    Attributes:
        target_room_id: room the target currently occupies
        player_room_ids: room of every piece, indexed by player id
        move_cards, weapons, failures: card holdings (fractional after looting)
        strengths: attack strength per piece, +1 after each attack it makes
        current_player: id of the piece whose turn it is
        turn_id: turn counter, starts at 1 and counts auxiliary sub-turns too
        attack_history: ids of attackers in order
        winner: NO_PLAYER until an attack succeeds
        prev_turn: last normal turn applied
        prev_state: predecessor in the history chain, never mutated once linked
    """

    __slots__ = [
        'board', 'roster', 'rules', 'target_room_id', 'player_room_ids',
        'move_cards', 'weapons', 'failures', 'strengths', 'current_player',
        'turn_id', 'attack_history', 'winner', 'prev_turn', 'prev_state',
    ]

    def __init__(
        self,
        board: Board,
        roster: Roster,
        rules: Ruleset,
        target_room_id: int,
        player_room_ids: list[int],
        move_cards: list[float],
        weapons: list[float],
        failures: list[float],
        strengths: list[int],
        current_player: int = 0,
        turn_id: int = 1,
        attack_history: Optional[list[int]] = None,
        winner: int = NO_PLAYER,
        prev_turn: Optional[Turn] = None,
        prev_state: Optional[GameState] = None,
    ):
        self.board = board
        self.roster = roster
        self.rules = rules
        self.target_room_id = target_room_id
        self.player_room_ids = player_room_ids
        self.move_cards = move_cards
        self.weapons = weapons
        self.failures = failures
        self.strengths = strengths
        self.current_player = current_player
        self.turn_id = turn_id
        self.attack_history = attack_history if attack_history is not None else []
        self.winner = winner
        self.prev_turn = prev_turn
        self.prev_state = prev_state

    @classmethod
    def new_game(
        cls,
        board: Board,
        num_players: int = 2,
        rules: Ruleset = DEFAULT_RULES,
    ) -> GameState:
        """Create the starting position: every piece in the player start room."""
        roster = Roster.for_players(num_players)
        n = roster.num_all_players
        return cls(
            board=board,
            roster=roster,
            rules=rules,
            target_room_id=board.target_start_room_id,
            player_room_ids=[board.player_start_room_id] * n,
            move_cards=[rules.starting_move_cards] * n,
            weapons=[rules.starting_weapons] * n,
            failures=[rules.starting_failures] * n,
            strengths=[rules.starting_strength] * n,
        )

    def copy(self) -> GameState:
        """Independent copy; the history chain is shared, not duplicated."""
        return GameState(
            board=self.board,
            roster=self.roster,
            rules=self.rules,
            target_room_id=self.target_room_id,
            player_room_ids=self.player_room_ids.copy(),
            move_cards=self.move_cards.copy(),
            weapons=self.weapons.copy(),
            failures=self.failures.copy(),
            strengths=self.strengths.copy(),
            current_player=self.current_player,
            turn_id=self.turn_id,
            attack_history=self.attack_history.copy(),
            winner=self.winner,
            prev_turn=self.prev_turn,
            prev_state=self.prev_state,
        )

    # Queries

    @property
    def num_players(self) -> int:
        """Number of normal players."""
        return self.roster.num_normal_players

    @property
    def num_all_players(self) -> int:
        return self.roster.num_all_players

    @property
    def has_winner(self) -> bool:
        return self.winner != NO_PLAYER

    def is_terminal(self) -> bool:
        return self.has_winner

    @property
    def is_normal_turn(self) -> bool:
        return self.roster.kind(self.current_player) == PlayerKind.NORMAL

    @property
    def ply(self) -> int:
        """Number of normal turns played so far along the history chain."""
        count = 0
        for prev in self._history():
            if prev.is_normal_turn:
                count += 1
        return count

    def _history(self) -> Iterator[GameState]:
        state = self.prev_state
        while state is not None:
            yield state
            state = state.prev_state

    def player_text(self, player_id: Optional[int] = None) -> str:
        if player_id is None:
            player_id = self.current_player
        return self.roster.player_text(player_id)

    def player_clovers(self, player_id: int) -> float:
        """Defensive value of a player's cards."""
        rules = self.rules
        return (self.failures[player_id] * rules.clovers_per_failure
                + self.weapons[player_id] * rules.clovers_per_weapon
                + self.move_cards[player_id] * rules.clovers_per_move_card)

    def player_sees_player(self, player_a: int, player_b: int) -> bool:
        return bool(self.board.sight[self.player_room_ids[player_a], self.player_room_ids[player_b]])

    def target_moves_until_room(self, room_id: int) -> int:
        """Number of target advances before it reaches room_id."""
        order = self.board.room_ids_in_visit_order(self.target_room_id)
        return order.index(room_id)

    def reachable_rooms(self, player_id: Optional[int], steps: int) -> list[int]:
        """Rooms within `steps` moves of a piece; None means the target."""
        room_id = self.target_room_id if player_id is None else self.player_room_ids[player_id]
        return self.board.reachable_rooms(room_id, steps)

    def prev_player_id(self) -> int:
        """Player who made the most recent normal turn, or NO_PLAYER."""
        for prev in self._history():
            if prev.is_normal_turn:
                return prev.current_player
        return NO_PLAYER

    def previous_normal_state(self) -> Optional[GameState]:
        """State before the last normal turn, for undo."""
        for prev in self._history():
            if prev.is_normal_turn:
                return prev
        return None

    def heuristic_score(self, player_id: int) -> float:
        return heuristic_score(self, player_id)

    # Turn validation

    def turn_problem(self, turn: Turn) -> Optional[str]:
        """Reason the turn is illegal, or None if it can be applied."""
        if self.has_winner:
            return f"game is over, {self.player_text(self.winner)} won"
        if not self.is_normal_turn:
            return f"{self.player_text()} is an auxiliary and moves automatically"
        if len(turn.moves) == 0:
            return "turn has no moves"
        if len(turn.moves) > MAX_MOVES_PER_TURN:
            return f"turn has {len(turn.moves)} moves, at most {MAX_MOVES_PER_TURN} allowed"

        for move in turn.moves:
            if not self.roster.is_valid(move.player_id):
                return f"invalid player number {move.player_id + 1}"
            if move.room_id not in self.board:
                return f"invalid room id {move.room_id}"

        movers = [move.player_id for move in turn.moves]
        if len(set(movers)) != len(movers):
            return f"player {self.player_text(movers[0])} moved more than once"

        for move in turn.moves:
            if move.player_id != self.current_player and not self.roster.is_auxiliary(move.player_id):
                return (f"player {self.player_text()} tried to move "
                        f"non-auxiliary {self.player_text(move.player_id)}")

        total_dist = self._total_distance(turn)
        if self.move_cards[self.current_player] < max(total_dist - 1, 0):
            return f"player {self.player_text()} used too many move points ({total_dist})"

        return None

    def check_turn(self, turn: Turn) -> None:
        """Raise IllegalTurnError if the turn cannot be applied."""
        problem = self.turn_problem(turn)
        if problem is not None:
            raise IllegalTurnError(problem)

    def is_legal_turn(self, turn: Turn) -> bool:
        return self.turn_problem(turn) is None

    def _total_distance(self, turn: Turn) -> int:
        distance = self.board.distance
        return int(sum(distance[self.player_room_ids[m.player_id], m.room_id] for m in turn.moves))

    # Turn generation

    def possible_turns(self) -> list[Turn]:
        """Every turn available to the current player, without duplicates."""
        if self.has_winner:
            return []

        current = self.current_player
        dist_allowed = int(self.move_cards[current]) + 1
        turns = self._single_turns(dist_allowed, current)

        if self.roster.has_auxiliaries:
            allied = self.roster.allied_auxiliary(current)
            opposing = self.roster.opposing_auxiliary(current)
            turns.extend(self._single_turns(dist_allowed, allied))
            turns.extend(self._single_turns(dist_allowed, opposing))

            if self.move_cards[current] > 0:
                turns.extend(self._dual_turns(dist_allowed, current, allied))
                turns.extend(self._dual_turns(dist_allowed, current, opposing))
                turns.extend(self._dual_turns(dist_allowed, allied, opposing))

        return turns

    def _single_turns(self, dist_allowed: int, player_id: int) -> list[Turn]:
        row = self.board.distance[self.player_room_ids[player_id]]
        return [Turn.single(player_id, room_id)
                for room_id in self.board.room_ids if row[room_id] <= dist_allowed]

    def _dual_turns(self, dist_allowed: int, player_a: int, player_b: int) -> list[Turn]:
        src_a = self.player_room_ids[player_a]
        src_b = self.player_room_ids[player_b]
        row_a = self.board.distance[src_a]
        row_b = self.board.distance[src_b]
        room_ids = self.board.room_ids
        turns = []

        for dst_a in room_ids:
            remaining = dist_allowed - row_a[dst_a]
            if remaining <= 0 or dst_a == src_a:
                continue
            move_a = PlayerMove(player_a, dst_a)
            for dst_b in room_ids:
                if row_b[dst_b] > remaining or dst_b == src_b:
                    continue
                turns.append(Turn((move_a, PlayerMove(player_b, dst_b))))

        return turns

    # Transitions

    def apply_turn(self, turn: Turn) -> GameState:
        """Validate a turn and return the resulting state linked to this one."""
        self.check_turn(turn)
        new_state = self.after_turn(turn, record_history=True)
        logger.debug(f"Applied {turn} -> {new_state}")
        return new_state

    def after_turn(self, turn: Turn, in_place: bool = False, record_history: bool = False) -> GameState:
        """
        Resolve a normal turn and any forced auxiliary sub-turns after it.

        No validation is done. With in_place the state itself is advanced and
        returned; otherwise a copy is. With record_history each resolved turn
        is linked to a snapshot of the state before it.
        """
        if in_place:
            state = self
            if record_history:
                state.prev_state = self.copy()
        else:
            state = self.copy()
            if record_history:
                state.prev_state = self

        state._resolve_normal_turn(turn)
        while not state.has_winner and not state.is_normal_turn:
            if record_history:
                state.prev_state = state.copy()
            state._resolve_auxiliary_turn()
        return state

    def best_action_allowed(self, moved_auxiliary_saw_target: bool = False) -> PlayerAction:
        """Action the current player may take from its room."""
        current = self.current_player
        room_id = self.player_room_ids[current]
        sight = self.board.sight

        for player_id in self.roster.player_ids():
            if player_id != current and sight[room_id, self.player_room_ids[player_id]]:
                return PlayerAction.NONE

        if room_id == self.target_room_id and not (
                self.rules.auxiliaries_are_nosy and moved_auxiliary_saw_target):
            return PlayerAction.ATTACK

        if sight[room_id, self.target_room_id]:
            return PlayerAction.NONE
        return PlayerAction.LOOT

    def _resolve_normal_turn(self, turn: Turn) -> None:
        current = self.current_player
        self.move_cards[current] -= max(self._total_distance(turn) - 1, 0)

        moved_auxiliary_saw_target = False
        for move in turn.moves:
            old_room = self.player_room_ids[move.player_id]
            if move.player_id != current and self.board.sight[old_room, self.target_room_id]:
                moved_auxiliary_saw_target = True
            self.player_room_ids[move.player_id] = move.room_id

        self.prev_turn = turn

        action = self.best_action_allowed(moved_auxiliary_saw_target)
        if action == PlayerAction.ATTACK:
            if self._process_attack():
                self.winner = current
        elif action == PlayerAction.LOOT:
            self.move_cards[current] += self.rules.move_cards_per_loot
            self.weapons[current] += self.rules.weapons_per_loot
            self.failures[current] += self.rules.failures_per_loot

        if not self.has_winner:
            self._advance_target()
        self.turn_id += 1

    def _resolve_auxiliary_turn(self) -> None:
        """Auxiliary attacks if it can, otherwise retreats one room."""
        current = self.current_player
        action = self.best_action_allowed()
        if action != PlayerAction.ATTACK:
            room_id = self.player_room_ids[current]
            self.player_room_ids[current] = self.board.next_room_id(room_id, -1)
            action = self.best_action_allowed()

        if action == PlayerAction.ATTACK and self._process_attack():
            self.current_player = self.roster.normal_player_id(current)
            self.winner = self.current_player

        if not self.has_winner:
            self._advance_target()
        self.turn_id += 1

    def _advance_target(self) -> None:
        """
        Move the target one room and pass the turn on.

        Once every piece has had a turn, the first piece found in the
        target's new room, scanning from the next player, takes the turn.
        """
        n = self.num_all_players
        self.target_room_id = self.board.next_room_id(self.target_room_id, 1)
        self.current_player = (self.current_player + 1) % n

        if self.turn_id >= n:
            for offset in range(n):
                player_id = (self.current_player + offset) % n
                if self.player_room_ids[player_id] == self.target_room_id:
                    self.current_player = player_id
                    break

    def _process_attack(self) -> bool:
        """Resolve an attack by the current player; True if it succeeds."""
        attacker = self.current_player
        attack = float(self.strengths[attacker])
        self.strengths[attacker] += 1
        self.attack_history.append(attacker)

        if self.roster.has_auxiliaries:
            if self.is_normal_turn:
                attack = self._use_weapon(attacker, attack)
            defender = self.roster.opposing_normal(attacker)
            attack = self._defend(defender, attack)
            return attack > 0

        defensive_clovers = self._defensive_clovers()
        if defensive_clovers <= 2 * attack:
            attack = self._use_weapon(attacker, attack)
        if defensive_clovers < attack:
            return True

        # Defenders take their turn counter-clockwise from the attacker
        n = self.num_all_players
        defender = attacker
        while attack > 0:
            defender = (defender - 1) % n
            if defender == attacker:
                return True
            attack = self._defend(defender, attack)
        return False

    def _defensive_clovers(self) -> float:
        attacking_side = self.roster.normal_player_id(self.current_player)
        return sum(
            self.player_clovers(player_id)
            for player_id in range(self.num_players)
            if player_id != self.current_player and player_id != attacking_side
            and not self.roster.is_auxiliary(player_id)
        )

    def _use_weapon(self, player_id: int, attack: float) -> float:
        if self.weapons[player_id] >= 1:
            self.weapons[player_id] -= 1
            attack += self.rules.strength_per_weapon
        return attack

    def _defend(self, defender: int, attack: float) -> float:
        """Spend failures, then weapons, then move cards against an attack."""
        rules = self.rules
        for cards, clovers_per_card in ((self.failures, rules.clovers_per_failure),
                                        (self.weapons, rules.clovers_per_weapon),
                                        (self.move_cards, rules.clovers_per_move_card)):
            if attack > 0 and cards[defender] > 0:
                used = min(cards[defender], attack / clovers_per_card)
                cards[defender] -= used
                attack -= used * clovers_per_card
        return attack

    # Display

    def summary(self, indent: str = '') -> str:
        """Human-readable description of the state."""
        score = self.heuristic_score(self.roster.normal_player_id(self.current_player))
        if score == HEURISTIC_SCORE_WIN:
            score_text = 'WIN'
        elif score == HEURISTIC_SCORE_LOSS:
            score_text = 'LOSS'
        else:
            score_text = f"{score:+.2f}"

        lines = [f"{indent}Turn {self.turn_id}, {self.player_text()}, HeuScore={score_text}"]
        history = ','.join(str(pid + 1) for pid in self.attack_history)
        lines.append(f"{indent}  AttackHist={{{history}}}")

        watchers = [str(pid + 1) for pid in self.roster.player_ids()
                    if self.board.sight[self.player_room_ids[pid], self.target_room_id]]
        seen_text = f"seen by players{{{','.join(watchers)}}}" if watchers else 'unseen by players'
        lines.append(f"{indent}  Target@R{self.target_room_id}, {seen_text}")

        for player_id in self.roster.player_ids():
            line = f"{indent}  {self.player_text_long(player_id)}"
            if player_id == self.current_player:
                line += ' *'
            if self.player_room_ids[player_id] == self.target_room_id:
                line += ' T'
            lines.append(line)

        if self.has_winner:
            lines.append(f"{indent}  Winner: {self.player_text(self.winner)}")
        return '\n'.join(lines)

    def player_text_long(self, player_id: int) -> str:
        text = (f"{self.player_text(player_id)}(R{self.player_room_ids[player_id]:02d},"
                f"S{self.strengths[player_id]}")
        if not self.roster.is_auxiliary(player_id):
            text += (f",M{self.move_cards[player_id]:.1f},W{self.weapons[player_id]:.1f},"
                     f"F{self.failures[player_id]:.1f},C{self.player_clovers(player_id):.1f}")
        return text + ')'

    def _key(self) -> tuple:
        return (self.board.name, self.roster, self.rules, self.target_room_id,
                tuple(self.player_room_ids), tuple(self.move_cards), tuple(self.weapons),
                tuple(self.failures), tuple(self.strengths), self.current_player,
                self.turn_id, tuple(self.attack_history), self.winner, self.prev_turn)

    def __eq__(self, other) -> bool:
        if not isinstance(other, GameState):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def __str__(self) -> str:
        rooms = ','.join(str(r) for r in self.player_room_ids)
        return f"T{self.turn_id},{self.player_text()},[{self.target_room_id},{rooms}],{self.prev_turn}"

    def __repr__(self) -> str:
        return f"GameState({self})"
