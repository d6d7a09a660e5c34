"""
Depth-limited minimax search.

Two-player matches use negamax with alpha-beta pruning. Matches with three
or more players use plain depth-limited maximisation, re-scoring each line
from the moving player's point of view whenever the side to move changes,
since there is no zero-sum negation between independent sides.
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from functools import cmp_to_key
from typing import Iterable, Optional

from ..core.moves import Turn
from ..core.rules import HEURISTIC_SCORE_LOSS, HEURISTIC_SCORE_WIN
from ..core.state import GameState
from .cancellation import CancellationToken, NeverCancel, cancel_after


logger = logging.getLogger(__name__)

ALPHA_INITIAL = HEURISTIC_SCORE_LOSS
BETA_INITIAL = HEURISTIC_SCORE_WIN


@dataclass
class SearchConfig:
    """Configuration for a search."""
    depth: int = 2
    workers: int = 1              # >1 searches root children on a thread pool
    time_limit: Optional[float] = None  # seconds, None for no limit


@dataclass
class SearchResult:
    """Best turn found, its appraisal and the leaf state of the principal line."""
    turn: Optional[Turn]
    appraisal: float
    ending_state: Optional[GameState]
    states_visited: int = 0

    @staticmethod
    def empty() -> SearchResult:
        return SearchResult(None, -math.inf, None)

    @staticmethod
    def from_state(player_id: int, state: GameState) -> SearchResult:
        return SearchResult(None, state.heuristic_score(player_id), state)

    def with_turn(self, turn: Optional[Turn]) -> SearchResult:
        return SearchResult(turn, self.appraisal, self.ending_state)


def compare_scores(a: float, b: float) -> int:
    """Three-way compare that treats incomparable (NaN) scores as equal."""
    if a < b:
        return -1
    if a > b:
        return 1
    return 0


_descending = cmp_to_key(lambda x, y: compare_scores(y[0], x[0]))


def ordered_children(state: GameState, depth: int) -> Iterable[GameState]:
    """
    Child states in search order.

    Above the last level, children are sorted best-first by the mover's own
    heuristic; the sort is stable so equal scores keep generation order.
    """
    turns = state.possible_turns()
    if depth <= 1:
        return (state.after_turn(turn) for turn in turns)

    mover = state.current_player
    scored = []
    for turn in turns:
        child = state.after_turn(turn)
        scored.append((child.heuristic_score(mover), child))
    scored.sort(key=_descending)
    return [child for _, child in scored]


class TreeSearch:
    """
    Search driver holding the cancellation token and the visited counter.

    `shared_floor` is set by the parallel search: between siblings, nodes
    where the root player moves raise alpha to the floor and nodes where the
    opponent moves lower beta to its negation.
    """

    def __init__(
        self,
        token: Optional[CancellationToken] = None,
        shared_floor=None,
        root_player: Optional[int] = None,
    ):
        self.token = token or NeverCancel()
        self.shared_floor = shared_floor
        self.root_player = root_player
        self.states_visited = 0

    def find_best_turn(self, state: GameState, depth: int) -> SearchResult:
        self.states_visited = 0
        if state.num_players == 2:
            result = self.two_player(state.copy(), depth, ALPHA_INITIAL, BETA_INITIAL)
        else:
            result = self.many_players(state.copy(), state.current_player, depth)
        result.states_visited = self.states_visited
        return result

    def two_player(self, state: GameState, depth: int, alpha: float, beta: float) -> SearchResult:
        """Negamax with alpha-beta; appraisals are from the mover's point of view."""
        self.states_visited += 1
        if state.has_winner or depth == 0:
            return SearchResult.from_state(state.current_player, state)

        mover = state.current_player
        best = SearchResult.empty()

        for child in ordered_children(state, depth):
            if self.token.cancelled:
                break
            if self.shared_floor is not None:
                alpha, beta = self._tighten(mover, alpha, beta)
                if best.appraisal >= beta:
                    break

            same_side = child.current_player == mover
            if same_side:
                hypo = self.two_player(child, depth - 1, alpha, beta)
            else:
                hypo = self.two_player(child, depth - 1, -beta, -alpha)
                hypo.appraisal = -hypo.appraisal

            # Cancelled before the child scored anything
            if hypo.ending_state is None:
                break

            if best.appraisal < hypo.appraisal:
                best = hypo.with_turn(child.prev_turn)
                if best.appraisal > alpha:
                    alpha = best.appraisal
                    if alpha >= beta:
                        break

        return best

    def _tighten(self, mover: int, alpha: float, beta: float) -> tuple[float, float]:
        floor = self.shared_floor.value
        if mover == self.root_player:
            return max(alpha, floor), beta
        return alpha, min(beta, -floor)

    def many_players(self, state: GameState, analysis_player: int, depth: int) -> SearchResult:
        """
        Depth-limited maximisation for three or more players.

        The returned appraisal is from `analysis_player`'s point of view; when
        a child hands the turn to a different player, its line is re-scored
        from this node's mover's point of view.
        """
        self.states_visited += 1
        if state.has_winner or depth == 0:
            return SearchResult.from_state(analysis_player, state)

        mover = state.current_player
        best = SearchResult.empty()

        for turn in state.possible_turns():
            if self.token.cancelled:
                break
            child = state.after_turn(turn)
            hypo = self.many_players(child, mover, depth - 1)

            if child.current_player != mover and hypo.ending_state is not None:
                hypo.appraisal = hypo.ending_state.heuristic_score(mover)

            if best.appraisal < hypo.appraisal:
                best = hypo.with_turn(child.prev_turn)
                if best.ending_state is not None and best.ending_state.winner == analysis_player:
                    break

        return best


def find_best_turn(
    state: GameState,
    depth: int,
    token: Optional[CancellationToken] = None,
    workers: int = 1,
) -> SearchResult:
    """
    Find the best turn for the current player, searching `depth` turns ahead.

    Cancelling the token stops the search between sibling evaluations and
    returns the best result found so far, which has no turn if nothing
    finished.
    """
    start = time.time()
    if workers > 1 and state.num_players == 2:
        from .parallel import find_best_turn_parallel
        result = find_best_turn_parallel(state, depth, token, workers)
    else:
        result = TreeSearch(token).find_best_turn(state, depth)

    logger.info(f"Search depth={depth} turn={result.turn} appraisal={result.appraisal:.3f} "
                f"states={result.states_visited} time={time.time() - start:.2f}s")
    return result


def search_with_config(state: GameState, config: SearchConfig,
                       token: Optional[CancellationToken] = None) -> SearchResult:
    """Run a search, tripping a timer-driven token when a time limit is set."""
    timer = None
    if token is None and config.time_limit is not None:
        timer = cancel_after(config.time_limit)
        token = timer
    try:
        return find_best_turn(state, config.depth, token, config.workers)
    finally:
        if timer is not None:
            timer.stop()
