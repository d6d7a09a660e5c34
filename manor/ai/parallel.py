"""
Parallel two-player search.

Root children are dealt round-robin to worker threads. Workers share one
lock-guarded alpha floor that only ever rises; each worker searches its
children with the window the floor allows and publishes any exact
improvement. A child whose result does not beat the floor current when it
finishes is only known as an upper bound, so once every worker is done,
bounded results that tie the best score are re-searched with a full window.
That makes the chosen turn and appraisal identical to the serial search.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional

from ..core.state import GameState
from .cancellation import CancellationToken, NeverCancel
from .search import ALPHA_INITIAL, BETA_INITIAL, SearchResult, TreeSearch, ordered_children


logger = logging.getLogger(__name__)


class SharedAlpha:
    """Best root appraisal proven so far; it never decreases."""

    def __init__(self, value: float = ALPHA_INITIAL):
        self._value = value
        self._lock = threading.Lock()

    @property
    def value(self) -> float:
        with self._lock:
            return self._value

    def raise_to(self, value: float) -> bool:
        """Raise the floor to `value` if higher; True if it was raised."""
        with self._lock:
            if value > self._value:
                self._value = value
                return True
            return False


@dataclass
class _RootOutcome:
    index: int
    result: SearchResult
    exact: bool
    states_visited: int


def _search_partition(
    root: GameState,
    children: list[tuple[int, GameState]],
    depth: int,
    floor: SharedAlpha,
    token: CancellationToken,
) -> list[_RootOutcome]:
    mover = root.current_player
    search = TreeSearch(token, shared_floor=floor, root_player=mover)
    outcomes = []

    for index, child in children:
        if token.cancelled:
            break
        search.states_visited = 0
        alpha = floor.value
        if child.current_player == mover:
            hypo = search.two_player(child, depth - 1, alpha, BETA_INITIAL)
        else:
            hypo = search.two_player(child, depth - 1, -BETA_INITIAL, -alpha)
            hypo.appraisal = -hypo.appraisal

        # A cancelled subtree may be incomplete; it only counts if it has a line
        if token.cancelled and hypo.ending_state is None:
            break
        exact = floor.raise_to(hypo.appraisal)
        outcomes.append(_RootOutcome(index, hypo.with_turn(child.prev_turn),
                                     exact, search.states_visited))

    return outcomes


def find_best_turn_parallel(
    state: GameState,
    depth: int,
    token: Optional[CancellationToken] = None,
    workers: int = 4,
) -> SearchResult:
    """Two-player search with root children split across `workers` threads."""
    token = token or NeverCancel()
    if (state.has_winner or depth == 0 or token.cancelled or workers <= 1
            or state.num_players != 2):
        return TreeSearch(token).find_best_turn(state, depth)

    root = state.copy()
    children = list(enumerate(ordered_children(root, depth)))
    floor = SharedAlpha()
    partitions = [children[i::workers] for i in range(workers)]

    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = [pool.submit(_search_partition, root, part, depth, floor, token)
                   for part in partitions if part]
        outcomes = [outcome for future in futures for outcome in future.result()]

    states_visited = 1 + sum(o.states_visited for o in outcomes)
    if not outcomes:
        result = SearchResult.empty()
        result.states_visited = states_visited
        return result

    by_index = {o.index: o for o in outcomes}
    best_score = max(o.result.appraisal for o in outcomes)
    chosen: Optional[SearchResult] = None
    verifier = TreeSearch(token)

    for index, child in children:
        outcome = by_index.get(index)
        if outcome is None or outcome.result.appraisal < best_score:
            continue
        if outcome.exact:
            chosen = outcome.result
            break
        if token.cancelled:
            continue

        verifier.states_visited = 0
        exact = verifier.two_player(child, depth - 1, ALPHA_INITIAL, BETA_INITIAL)
        if child.current_player != root.current_player:
            exact.appraisal = -exact.appraisal
        states_visited += verifier.states_visited
        if exact.appraisal == best_score:
            chosen = exact.with_turn(child.prev_turn)
            break

    if chosen is None:
        # Cancelled during verification: fall back to the best exact result
        exact_outcomes = [o for o in outcomes if o.exact] or outcomes
        chosen = max(sorted(exact_outcomes, key=lambda o: o.index),
                     key=lambda o: o.result.appraisal).result

    chosen.states_visited = states_visited
    logger.debug(f"Parallel search over {len(children)} root children with {workers} workers")
    return chosen
