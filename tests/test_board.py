"""Tests for the board graph and board loading."""

import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from manor.core.board import (
    Board, BoardSpec, InvalidBoardError, Room, UNREACHABLE,
    available_boards, load_board,
)


def path_rooms():
    return [
        Room(1, "A", (2,), (2,)),
        Room(2, "B", (1, 3), (1, 3)),
        Room(3, "C", (2, 4), (2, 4)),
        Room(4, "D", (3,), (3,)),
    ]


def all_boards():
    return [
        load_board('tiny'),
        load_board('manor'),
        load_board('manor', ['East']),
        load_board('manor', ['West', 'East']),
    ]


class TestConstruction:
    def test_adjacency_and_distance(self):
        board = Board.build("path", path_rooms(), 1, 1)
        assert board.adjacency[1, 2]
        assert board.adjacency[2, 1]
        assert not board.adjacency[1, 3]
        assert board.adjacency_count[2] == 2
        assert board.distance[1, 4] == 3
        assert board.distance[4, 1] == 3

    def test_matrices_sized_by_largest_id(self):
        rooms = [Room(3, "A", (7,), ()), Room(7, "B", (3,), ())]
        board = Board.build("sparse", rooms, 3, 7)
        assert board.adjacency.shape == (8, 8)
        assert board.room_ids == [3, 7]
        assert board.distance[3, 7] == 1

    def test_disconnected_rooms_unreachable(self):
        rooms = [Room(1, "A"), Room(2, "B")]
        board = Board("split", {r.id: r for r in rooms}, 1, 2)
        assert board.distance[1, 2] == UNREACHABLE

    def test_manor_distances(self):
        board = load_board('manor')
        assert board.distance[1, 7] == 4
        assert board.distance[3, 10] == 4
        assert board.distance[1, 11] == 2
        assert board.distance_between(11, 1) == 2

    @pytest.mark.parametrize('board', all_boards(), ids=lambda b: f"{b.name}{b.closed_wings}")
    def test_symmetric_matrices(self, board):
        assert (board.adjacency == board.adjacency.T).all()
        assert (board.sight == board.sight.T).all()

    @pytest.mark.parametrize('board', all_boards(), ids=lambda b: f"{b.name}{b.closed_wings}")
    def test_distance_diagonal_and_triangle_inequality(self, board):
        d = board.distance
        for a in board.room_ids:
            assert d[a, a] == 0
            for b in board.room_ids:
                for c in board.room_ids:
                    assert d[a, c] <= d[a, b] + d[b, c]

    def test_self_sight(self):
        board = load_board('tiny')
        for room_id in board.room_ids:
            assert board.sight[room_id, room_id]


class TestRoomOrder:
    def test_next_room_wraps(self):
        board = Board.build("path", path_rooms(), 1, 1)
        assert board.next_room_id(4, 1) == 1
        assert board.next_room_id(1, -1) == 4
        assert board.next_room_id(1, -2) == 3
        assert board.next_room_id(2, 9) == 3

    def test_next_room_is_cyclic_bijection(self):
        board = load_board('manor')
        for room_id in board.room_ids:
            for k in range(-30, 31):
                assert board.next_room_id(board.next_room_id(room_id, k), -k) == room_id

    def test_next_room_with_sparse_ids(self):
        rooms = [Room(3, "A", (7,), ()), Room(7, "B", (3, 10), ()), Room(10, "C", (7,), ())]
        board = Board.build("sparse", rooms, 3, 7)
        assert board.next_room_id(10, 1) == 3
        assert board.next_room_id(3, -1) == 10

    def test_visit_order(self):
        board = Board.build("path", path_rooms(), 1, 1)
        assert board.room_ids_in_visit_order(2) == [2, 3, 4, 1]
        assert board.room_ids_in_visit_order(1) == [1, 2, 3, 4]

    def test_room_is_seen_by(self):
        board = load_board('tiny')
        assert board.room_is_seen_by(1, [3, 2])
        assert not board.room_is_seen_by(2, [3, 4])
        assert not board.room_is_seen_by(1, [])

    def test_reachable_rooms(self):
        board = Board.build("path", path_rooms(), 1, 1)
        assert board.reachable_rooms(1, 1) == [1, 2]
        assert board.reachable_rooms(2, 2) == [1, 2, 3, 4]
        assert board.reachable_rooms(4, 0) == [4]

    def test_reachable_rooms_skips_disconnected(self):
        rooms = [Room(1, "A"), Room(2, "B")]
        board = Board("split", {r.id: r for r in rooms}, 1, 2)
        assert board.reachable_rooms(1, 5000) == [1]
        assert board.reachable_rooms(2, UNREACHABLE) == [2]


class TestValidation:
    def test_bundled_boards_valid(self):
        for board in all_boards():
            assert board.validate() == []

    def test_self_adjacency(self):
        rooms = [Room(1, "A", (1, 2), (2,)), Room(2, "B", (1,), (1,))]
        with pytest.raises(InvalidBoardError) as excinfo:
            Board.build("bad", rooms, 1, 2)
        assert "room 1 is in own adjacent list" in excinfo.value.problems

    def test_self_visibility(self):
        rooms = [Room(1, "A", (2,), (1,)), Room(2, "B", (1,), ())]
        with pytest.raises(InvalidBoardError) as excinfo:
            Board.build("bad", rooms, 1, 2)
        assert "room 1 is in own visible list" in excinfo.value.problems

    def test_asymmetric_adjacency(self):
        rooms = [Room(1, "A", (2,), (2,)), Room(2, "B", (), (1,))]
        with pytest.raises(InvalidBoardError) as excinfo:
            Board.build("bad", rooms, 1, 2)
        assert excinfo.value.problems == ["Adjacency[1,2] contradiction"]

    def test_asymmetric_visibility(self):
        rooms = [Room(1, "A", (2,), (2,)), Room(2, "B", (1,), ())]
        with pytest.raises(InvalidBoardError) as excinfo:
            Board.build("bad", rooms, 1, 2)
        assert excinfo.value.problems == ["Visibility[1,2] contradiction"]

    def test_reports_every_problem(self):
        rooms = [Room(1, "A", (2, 5), (2,)), Room(2, "B", (1,), ())]
        with pytest.raises(InvalidBoardError) as excinfo:
            Board.build("bad", rooms, 1, 9)
        problems = excinfo.value.problems
        assert "room 1 lists nonexistent adjacent rooms 5" in problems
        assert "Adjacency[1,5] contradiction" in problems
        assert "Visibility[1,2] contradiction" in problems
        assert "bad start room 9 for target" in problems
        assert len(problems) == 4

    def test_duplicate_room(self):
        rooms = [Room(1, "A", (2,), ()), Room(2, "B", (1,), ()), Room(2, "C", (1,), ())]
        with pytest.raises(InvalidBoardError) as excinfo:
            Board.build("bad", rooms, 1, 2)
        assert "room 2 is listed more than once" in excinfo.value.problems

    def test_error_is_value_error(self):
        with pytest.raises(ValueError):
            Board.build("bad", [Room(1, "A", (1,), ())], 1, 1)


class TestClosedWings:
    def test_closed_rooms_removed(self):
        board = load_board('manor', ['West'])
        assert 10 not in board.room_ids
        assert 11 not in board.room_ids
        assert board.rooms[9].adjacent == (5, 8)
        assert board.rooms[12].adjacent == (1,)
        assert board.closed_wings == ('west',)

    def test_first_open_start_room(self):
        assert load_board('manor').target_start_room_id == 7
        assert load_board('manor', ['east']).target_start_room_id == 8

    def test_missing_start_room(self):
        spec = BoardSpec.model_validate({
            "name": "lonely",
            "player_start_room_ids": [1],
            "target_start_room_ids": [2],
            "wings": [{"name": "Annex", "room_ids": [2]}],
            "rooms": [
                {"id": 1, "name": "A", "adjacent": [2], "visible": []},
                {"id": 2, "name": "B", "adjacent": [1], "visible": []},
            ],
        })
        with pytest.raises(InvalidBoardError) as excinfo:
            Board.from_spec(spec, ['Annex'])
        assert excinfo.value.problems == ["missing start room for target"]

    def test_missing_start_room_reported_with_room_problems(self):
        spec = BoardSpec.model_validate({
            "name": "lopsided",
            "player_start_room_ids": [9],
            "target_start_room_ids": [2],
            "rooms": [
                {"id": 1, "name": "A", "adjacent": [2], "visible": []},
                {"id": 2, "name": "B", "adjacent": [], "visible": []},
            ],
        })
        with pytest.raises(InvalidBoardError) as excinfo:
            Board.from_spec(spec)
        assert excinfo.value.problems == [
            "missing start room for player",
            "Adjacency[1,2] contradiction",
        ]

    def test_unknown_wing(self):
        with pytest.raises(InvalidBoardError):
            load_board('manor', ['Attic'])


class TestAmbush:
    def test_ambush_rooms(self):
        # Ring 1..6 with shortcuts 1-3 and 2-5, nothing visible
        edges = {(1, 2), (2, 3), (3, 4), (4, 5), (5, 6), (6, 1), (1, 3), (2, 5)}
        rooms = [
            Room(r, str(r), tuple(sorted({b for a, b in edges if a == r} | {a for a, b in edges if b == r})), ())
            for r in range(1, 7)
        ]
        board = Board.build("ring", rooms, 1, 4)
        assert board.ambush_rooms == {2: frozenset({3})}

    def test_no_ambush_on_tiny(self):
        assert load_board('tiny').ambush_rooms == {}


class TestLoading:
    def test_available_boards(self):
        boards = available_boards()
        assert 'tiny' in boards
        assert 'manor' in boards

    def test_unknown_board(self):
        with pytest.raises(ValueError):
            load_board('nowhere')

    def test_load_from_path(self, tmp_path):
        path = tmp_path / "two.json"
        path.write_text(
            '{"name": "two", "player_start_room_ids": [1], "target_start_room_ids": [2],'
            ' "rooms": [{"id": 1, "adjacent": [2], "visible": [2]},'
            ' {"id": 2, "adjacent": [1], "visible": [1]}]}'
        )
        board = load_board(path)
        assert board.name == "two"
        assert board.room_ids == [1, 2]
        assert board.player_start_room_id == 1
        assert board.target_start_room_id == 2

    def test_tiny_layout(self):
        board = load_board('tiny')
        assert board.room_ids == [1, 2, 3, 4]
        assert board.player_start_room_id == 1
        assert board.target_start_room_id == 4
        assert board.room_name(1) == "Porch"
