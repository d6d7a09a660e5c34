"""
Heuristic position evaluation.

Scores are from the point of view of one normal player. Finished games score
HEURISTIC_SCORE_WIN or HEURISTIC_SCORE_LOSS; everything else is a weighted
sum of strength, cards and how soon each side can reach the target.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .board import UNREACHABLE
from .rules import HEURISTIC_SCORE_LOSS, HEURISTIC_SCORE_WIN

if TYPE_CHECKING:
    from .state import GameState


TURN_BONUS = 0.95
TARGET_ADVANTAGE_WEIGHT = 0.9
WEAPON_WEIGHT = 0.5
FAILURE_WEIGHT = 0.125


def heuristic_score(state: GameState, player_id: int) -> float:
    """Appraise the state for `player_id` (a normal player)."""
    roster = state.roster
    if state.has_winner:
        if player_id == roster.normal_player_id(state.winner):
            return HEURISTIC_SCORE_WIN
        return HEURISTIC_SCORE_LOSS

    if roster.has_auxiliaries:
        ally = roster.allied_auxiliary(player_id)
        opponent = roster.opposing_normal(player_id)
        opponent_ally = roster.allied_auxiliary(opponent)
        rooms = state.player_room_ids

        my_strength = state.strengths[player_id] + state.strengths[ally]
        opponent_strength = state.strengths[opponent] + state.strengths[opponent_ally]
        is_my_turn = player_id == state.current_player

        # Proximity is measured for the side to move
        if is_my_turn:
            advantage = target_score(state, rooms[player_id], rooms[ally],
                                     rooms[opponent], rooms[opponent_ally])
        else:
            advantage = -target_score(state, rooms[opponent], rooms[opponent_ally],
                                      rooms[player_id], rooms[ally])

        score = (_misc_score(state, player_id, my_strength, is_my_turn, advantage)
                 - _misc_score(state, opponent, opponent_strength, not is_my_turn, -advantage))
        if state.rules.ambush_weight:
            score += state.rules.ambush_weight * (ambush_score(state, player_id)
                                                  - ambush_score(state, opponent))
        return score

    score = 0.0
    others_weight = -1.0 / (roster.num_normal_players - 1)
    for pid in roster.player_ids():
        weight = 1.0 if roster.normal_player_id(pid) == player_id else others_weight
        score += weight * _misc_score(state, pid, state.strengths[pid],
                                      pid == state.current_player, 0.0)
    return score


def _misc_score(
    state: GameState,
    player_id: int,
    strength: int,
    is_turn: bool,
    target_advantage: float,
) -> float:
    strength = float(strength)
    turn_bonus = TURN_BONUS if is_turn else 0.0
    return (strength
            + 0.5 * strength * (state.move_cards[player_id] + turn_bonus
                                + target_advantage * TARGET_ADVANTAGE_WEIGHT)
            + WEAPON_WEIGHT * state.weapons[player_id]
            + FAILURE_WEIGHT * state.failures[player_id])


def target_score(
    state: GameState,
    my_room: int,
    ally_auxiliary_room: int,
    enemy_room: int,
    enemy_auxiliary_room: int,
) -> float:
    """
    How much closer the given side is to the target's future path.

    Each piece is placed at the index where the target will meet it along its
    patrol, counted from the room the target will be in once the pieces that
    have not yet moved this round have had their turns.
    """
    board = state.board
    rules = state.rules
    players_not_had_turn = state.num_all_players - state.turn_id
    delta = max(players_not_had_turn + 1, 1)
    next_room = board.next_room_id(state.target_room_id, delta)
    patrol = [state.target_room_id] + board.room_ids_in_visit_order(next_room)

    my_dist = UNREACHABLE
    for i in range(1 if players_not_had_turn > 0 else 0, len(patrol)):
        if patrol[i] == my_room or (i > 0 and board.distance[my_room, patrol[i]] <= 1):
            my_dist = i
            break

    return (rules.decay_normal ** my_dist
            + rules.decay_auxiliary ** _patrol_index(patrol, ally_auxiliary_room)
            - rules.decay_normal ** _patrol_index(patrol, enemy_room)
            - rules.decay_auxiliary ** _patrol_index(patrol, enemy_auxiliary_room))


def _patrol_index(patrol: list[int], room_id: int) -> int:
    """Index of room_id in the patrol after the current room, or -1."""
    for i in range(1, len(patrol)):
        if patrol[i] == room_id:
            return i
    return -1


def ambush_score(state: GameState, player_id: int) -> float:
    """1.0 when the player's auxiliary waits unseen on the opposing player's route."""
    roster = state.roster
    if not roster.has_auxiliaries:
        return 0.0
    rooms = state.player_room_ids
    enemy_room = rooms[roster.opposing_normal(player_id)]
    ally_room = rooms[roster.allied_auxiliary(player_id)]
    return 1.0 if ally_room in state.board.ambush_rooms.get(enemy_room, ()) else 0.0
