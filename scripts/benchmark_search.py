#!/usr/bin/env python3
"""Measure search cost by depth and worker count."""

import argparse
import logging
import sys
import time
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from manor.core.board import load_board
from manor.core.state import GameState
from manor.ai.search import TreeSearch
from manor.ai.parallel import find_best_turn_parallel


def measure(state: GameState, depth: int, workers: int) -> dict:
    """Time one search and report the states it visited."""
    start = time.time()
    if workers > 1:
        result = find_best_turn_parallel(state, depth, workers=workers)
    else:
        result = TreeSearch().find_best_turn(state, depth)
    elapsed = time.time() - start

    return {
        'turn': str(result.turn),
        'appraisal': result.appraisal,
        'states': result.states_visited,
        'seconds': elapsed,
        'states_per_sec': result.states_visited / elapsed if elapsed > 0 else 0.0,
    }


def main():
    parser = argparse.ArgumentParser(description='Benchmark the tree search')
    parser.add_argument('--board', type=str, default='manor')
    parser.add_argument('--players', type=int, default=2)
    parser.add_argument('--max-depth', type=int, default=3)
    parser.add_argument('--workers', type=int, nargs='+', default=[1, 2, 4])
    args = parser.parse_args()

    logging.basicConfig(level=logging.WARNING)

    state = GameState.new_game(load_board(args.board), args.players)
    branching = len(state.possible_turns())
    print(f"Board: {args.board}, players: {args.players}, root turns: {branching}")

    for depth in range(1, args.max_depth + 1):
        print(f"\n=== depth {depth} ===")
        for workers in args.workers:
            stats = measure(state, depth, workers)
            print(f"workers={workers:<2d} turn={stats['turn']:<12} "
                  f"appraisal={stats['appraisal']:+.3f} states={stats['states']:<8d} "
                  f"time={stats['seconds']:.2f}s ({stats['states_per_sec']:.0f}/s)")

        # B^d = states, so B = states^(1/d)
        stats = measure(state, depth, 1)
        print(f"Effective branching factor: {stats['states'] ** (1 / depth):.1f}")


if __name__ == '__main__':
    main()
