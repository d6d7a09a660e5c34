#!/usr/bin/env python3
"""
Terminal-based Manor game client.

Play against the search AI, or watch the AI play every side.
"""

from __future__ import annotations
import argparse
import logging
import sys
from pathlib import Path

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from manor.core.board import available_boards, load_board
from manor.core.moves import TurnNotationError, parse_turn
from manor.core.notation import GameRecord, normal_turn_history, summaries_since_normal
from manor.core.state import GameState, IllegalTurnError
from manor.ai.search import SearchConfig, search_with_config


def print_board(state: GameState) -> None:
    """Print every room with the pieces in it.

    Symbols:
        T = the target
        P1, P3 = normal players (upper case)
        p2, p4 = auxiliary pieces (lower case)
        * marks the piece whose turn it is
    """
    board = state.board
    print()
    for room_id in board.room_ids:
        occupants = []
        if state.target_room_id == room_id:
            occupants.append('T')
        for player_id in state.roster.player_ids():
            if state.player_room_ids[player_id] == room_id:
                mark = '*' if player_id == state.current_player else ''
                occupants.append(state.player_text(player_id) + mark)
        neighbours = ','.join(str(r) for r in board.rooms[room_id].adjacent)
        print(f"  R{room_id:02d} {board.room_name(room_id):<16} [{neighbours:<10}] {' '.join(occupants)}")
    print()
    print(state.summary())
    print()


def parse_command(text: str):
    """Parse user input into (command, argument)."""
    text = text.strip()
    words = text.lower().split()
    if not words:
        return None, None

    if words[0] in ['q', 'quit', 'exit']:
        return 'quit', None
    if words[0] in ['h', 'help', '?']:
        return 'help', None
    if words[0] in ['u', 'undo']:
        return 'undo', None
    if words[0] in ['hint']:
        return 'hint', None
    if words[0] in ['hist', 'history']:
        return 'history', None
    if words[0] in ['t', 'turns']:
        return 'turns', None
    if words[0] == 'rooms':
        try:
            return 'rooms', int(words[1]) if len(words) > 1 else 1
        except ValueError:
            print(f"Invalid distance: {words[1]}")
            return None, None
    if words[0] == 'save' and len(words) > 1:
        return 'save', text.split(maxsplit=1)[1]

    try:
        return 'turn', parse_turn(text)
    except TurnNotationError as e:
        print(f"{e}. Use notation like '1@4 4@3;'")
        return None, None


def ai_turn(state: GameState, config: SearchConfig) -> GameState:
    print(f"AI thinking for {state.player_text()} (depth {config.depth})...")
    result = search_with_config(state, config)
    if result.turn is None:
        # Out of time before any line finished; take the first turn on offer
        turn = state.possible_turns()[0]
    else:
        turn = result.turn
    print(f"AI plays: {turn}  appraisal={result.appraisal:+.3f}  states={result.states_visited}")
    state = state.apply_turn(turn)
    print(summaries_since_normal(state, verbose=True))
    return state


def play(
    state: GameState,
    ai_players: set[int],
    config: SearchConfig,
    board_name: str,
) -> GameState:
    """Play a game with humans entering turns for players not in ai_players."""
    print("\n=== Manor ===")
    print("Commands: turn (e.g. '1@4 4@3;'), 'hint', 'rooms N', 'undo', 'history', 'q' quit")

    while not state.is_terminal():
        print_board(state)

        if state.current_player in ai_players:
            state = ai_turn(state, config)
            continue

        print(f"Your turn ({state.player_text()})")
        try:
            user_input = input("> ")
        except EOFError:
            return state

        command, arg = parse_command(user_input)
        if command == 'quit':
            print("Thanks for playing!")
            return state
        elif command == 'help':
            print("Enter turns like '1@4;' or '1@4 4@3;' (player number @ room id)")
            print("'hint' asks the AI, 'rooms N' lists rooms within N moves, 'turns' lists legal turns")
        elif command == 'hint':
            result = search_with_config(state, config)
            print(f"Hint: {result.turn}  appraisal={result.appraisal:+.3f}")
        elif command == 'rooms':
            print(f"Rooms within {arg}: {state.reachable_rooms(state.current_player, arg)}")
        elif command == 'turns':
            print(' '.join(str(t) for t in state.possible_turns()))
        elif command == 'history':
            print(normal_turn_history(state))
        elif command == 'save':
            Path(arg).write_text(GameRecord.from_state(state, board_name).to_text())
            print(f"Saved to {arg}")
        elif command == 'undo':
            previous = state.previous_normal_state()
            # Undo AI turns too, back to a human turn
            while previous is not None and previous.current_player in ai_players:
                previous = previous.previous_normal_state()
            if previous is None:
                print("Nothing to undo.")
            else:
                state = previous
                print("Turn undone.")
        elif command == 'turn':
            try:
                state = state.apply_turn(arg)
            except IllegalTurnError as e:
                print(f"Illegal turn: {e}")
                continue
            print(summaries_since_normal(state, verbose=True))

    print_board(state)
    print(f"Game over. Winner: {state.player_text(state.winner)}")
    return state


def main():
    parser = argparse.ArgumentParser(description='Manor Terminal Client')
    parser.add_argument('--board', type=str, default='tiny',
                        help=f"Board name ({', '.join(available_boards())}) or JSON path")
    parser.add_argument('--players', type=int, default=2, help='Number of normal players')
    parser.add_argument('--closed-wing', action='append', default=[], help='Wing to close (repeatable)')
    parser.add_argument('--depth', type=int, default=2, help='Search depth in turns')
    parser.add_argument('--time-limit', type=float, default=None, help='Seconds per AI turn')
    parser.add_argument('--workers', type=int, default=1, help='Search threads')
    parser.add_argument('--ai', type=int, action='append', default=None,
                        help='Player number the AI controls (repeatable, default: all but 1)')
    parser.add_argument('--watch', action='store_true', help='Watch AI play every side')
    parser.add_argument('--replay', type=str, help='Load a saved game record and continue it')
    parser.add_argument('-v', '--verbose', action='store_true', help='Debug logging')

    args = parser.parse_args()
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format='%(asctime)s %(levelname)s %(name)s: %(message)s')

    if args.replay:
        record = GameRecord.from_text(Path(args.replay).read_text())
        state = record.replay()
        board_name = record.board_name
        print(f"Replayed {len(record.turns)} turns from {args.replay}")
    else:
        board = load_board(args.board, args.closed_wing)
        state = GameState.new_game(board, args.players)
        board_name = args.board

    if args.watch:
        ai_players = set(state.roster.player_ids())
    elif args.ai:
        ai_players = {n - 1 for n in args.ai}
    else:
        ai_players = set(state.roster.player_ids()) - {0}

    config = SearchConfig(depth=args.depth, workers=args.workers, time_limit=args.time_limit)
    play(state, ai_players, config, board_name)


if __name__ == '__main__':
    main()
