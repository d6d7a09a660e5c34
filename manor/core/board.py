"""
Board connectivity, visibility and distance model.

Matrices are indexed directly by room id, so they are sized to the largest
referenced id plus one; indices that are not rooms stay unconnected.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional, Union

import numpy as np
from pydantic import BaseModel


logger = logging.getLogger(__name__)

UNREACHABLE = 999

BOARDS_DIR = Path(__file__).parent / 'boards'


class InvalidBoardError(ValueError):
    """Raised with every problem found while building a board."""

    def __init__(self, problems: list[str]):
        self.problems = list(problems)
        super().__init__("invalid board: " + "; ".join(self.problems))


# Board file models

class RoomSpec(BaseModel):
    id: int
    name: str = ''
    adjacent: list[int] = []
    visible: list[int] = []


class WingSpec(BaseModel):
    name: str
    room_ids: list[int]


class BoardSpec(BaseModel):
    name: str
    player_start_room_ids: list[int]
    target_start_room_ids: list[int]
    wings: list[WingSpec] = []
    rooms: list[RoomSpec]


@dataclass(frozen=True)
class Room:
    id: int
    name: str = ''
    adjacent: tuple[int, ...] = ()
    visible: tuple[int, ...] = ()

    def without(self, closed_room_ids: set[int]) -> Room:
        """Copy of this room with references to closed rooms removed."""
        return Room(
            self.id,
            self.name,
            tuple(r for r in self.adjacent if r not in closed_room_ids),
            tuple(r for r in self.visible if r not in closed_room_ids),
        )


@dataclass
class Board:
    """
    Immutable room graph for one match configuration.

    Attributes:
        adjacency: symmetric bool matrix, True on the diagonal
        sight: symmetric bool matrix, True on the diagonal
        distance: all-pairs shortest path lengths, UNREACHABLE when disconnected
        ambush_rooms: room an enemy stands in -> rooms from which an
            auxiliary can approach it unseen
    """
    name: str
    rooms: dict[int, Room]
    player_start_room_id: int
    target_start_room_id: int
    closed_wings: tuple[str, ...] = ()
    room_ids: list[int] = field(init=False)
    adjacency: np.ndarray = field(init=False, repr=False)
    sight: np.ndarray = field(init=False, repr=False)
    distance: np.ndarray = field(init=False, repr=False)
    adjacency_count: np.ndarray = field(init=False, repr=False)
    ambush_rooms: dict[int, frozenset[int]] = field(init=False, repr=False)

    def __post_init__(self):
        self.room_ids = sorted(self.rooms)
        self._index = {room_id: i for i, room_id in enumerate(self.room_ids)}

        referenced = [r for room in self.rooms.values()
                      for r in (room.id, *room.adjacent, *room.visible)]
        dim = max([r for r in referenced if r >= 0], default=0) + 1

        self.adjacency = np.zeros((dim, dim), dtype=bool)
        self.sight = np.zeros((dim, dim), dtype=bool)
        self.adjacency_count = np.zeros(dim, dtype=np.int32)

        for room in self.rooms.values():
            if room.id < 0:
                continue
            self.adjacency[room.id, room.id] = True
            self.sight[room.id, room.id] = True
            self.adjacency_count[room.id] = len(room.adjacent)
            for other in room.adjacent:
                if other >= 0:
                    self.adjacency[room.id, other] = True
            for other in room.visible:
                if other >= 0:
                    self.sight[room.id, other] = True

        self.distance = adjacency_to_distance(self.adjacency)
        self.ambush_rooms = compute_ambush_rooms(self.room_ids, self.distance, self.sight)

    @classmethod
    def build(
        cls,
        name: str,
        rooms: Iterable[Room],
        player_start_room_id: int,
        target_start_room_id: int,
        closed_wings: Iterable[str] = (),
    ) -> Board:
        """Build a board and raise InvalidBoardError if it has any problem."""
        rooms = list(rooms)
        problems = []
        seen = set()
        for room in rooms:
            if room.id in seen:
                problems.append(f"room {room.id} is listed more than once")
            if room.id < 0:
                problems.append(f"room id {room.id} is negative")
            seen.add(room.id)

        board = cls(name, {room.id: room for room in rooms},
                    player_start_room_id, target_start_room_id, tuple(closed_wings))
        problems.extend(board.validate())
        if problems:
            raise InvalidBoardError(problems)
        logger.debug(f"Built board {name} with {len(board.room_ids)} rooms")
        return board

    @classmethod
    def from_spec(cls, spec: BoardSpec, closed_wings: Iterable[str] = ()) -> Board:
        """Build a board from a board file, leaving out rooms in closed wings."""
        closed_names = {name.lower() for name in closed_wings}
        known_wings = {wing.name.lower() for wing in spec.wings}
        problems = [f"unknown wing {name}" for name in sorted(closed_names - known_wings)]

        closed_room_ids = {
            room_id
            for wing in spec.wings if wing.name.lower() in closed_names
            for room_id in wing.room_ids
        }
        rooms = [
            Room(r.id, r.name, tuple(r.adjacent), tuple(r.visible)).without(closed_room_ids)
            for r in spec.rooms if r.id not in closed_room_ids
        ]
        open_ids = {room.id for room in rooms}

        def first_open(candidates: list[int], role: str) -> Optional[int]:
            for room_id in candidates:
                if room_id in open_ids:
                    return room_id
            problems.append(f"missing start room for {role}")
            return None

        player_start = first_open(spec.player_start_room_ids, 'player')
        target_start = first_open(spec.target_start_room_ids, 'target')
        if not problems:
            return cls.build(spec.name, rooms, player_start, target_start, sorted(closed_names))

        # Check the rooms too, standing any missing start on an open room
        placeholder = min(open_ids, default=-1)
        try:
            cls.build(spec.name, rooms,
                      placeholder if player_start is None else player_start,
                      placeholder if target_start is None else target_start,
                      sorted(closed_names))
        except InvalidBoardError as e:
            problems.extend(e.problems)
        raise InvalidBoardError(problems)

    def validate(self) -> list[str]:
        """Return every problem found, or an empty list for a good board."""
        problems = []
        all_rooms = set(self.rooms)

        for room_id in self.room_ids:
            room = self.rooms[room_id]
            if room.id in room.adjacent:
                problems.append(f"room {room.id} is in own adjacent list")
            if room.id in room.visible:
                problems.append(f"room {room.id} is in own visible list")

            missing = sorted(set(room.adjacent) - all_rooms)
            if missing:
                problems.append(f"room {room.id} lists nonexistent adjacent rooms "
                                + ", ".join(str(r) for r in missing))
            missing = sorted(set(room.visible) - all_rooms)
            if missing:
                problems.append(f"room {room.id} lists nonexistent visible rooms "
                                + ", ".join(str(r) for r in missing))

        for r1, r2 in zip(*np.nonzero(self.adjacency != self.adjacency.T)):
            if r1 < r2:
                problems.append(f"Adjacency[{r1},{r2}] contradiction")
        for r1, r2 in zip(*np.nonzero(self.sight != self.sight.T)):
            if r1 < r2:
                problems.append(f"Visibility[{r1},{r2}] contradiction")

        if self.player_start_room_id not in all_rooms:
            problems.append(f"bad start room {self.player_start_room_id} for player")
        if self.target_start_room_id not in all_rooms:
            problems.append(f"bad start room {self.target_start_room_id} for target")

        return problems

    def next_room_id(self, room_id: int, delta: int) -> int:
        """Room `delta` steps along the sorted room order, wrapping both ways."""
        index = (self._index[room_id] + delta) % len(self.room_ids)
        return self.room_ids[index]

    def room_ids_in_visit_order(self, start_room_id: int) -> list[int]:
        """All rooms in the order the target visits them, starting at start_room_id."""
        start = self._index[start_room_id]
        return self.room_ids[start:] + self.room_ids[:start]

    def room_is_seen_by(self, room_id: int, other_room_ids: Iterable[int]) -> bool:
        return any(self.sight[room_id, other] for other in other_room_ids)

    def distance_between(self, room_a: int, room_b: int) -> int:
        return int(self.distance[room_a, room_b])

    def reachable_rooms(self, room_id: int, steps: int) -> list[int]:
        row = self.distance[room_id]
        return [r for r in self.room_ids if row[r] <= steps and row[r] < UNREACHABLE]

    def room_name(self, room_id: int) -> str:
        return self.rooms[room_id].name

    def __contains__(self, room_id: int) -> bool:
        return room_id in self.rooms

    def __eq__(self, other) -> bool:
        if not isinstance(other, Board):
            return NotImplemented
        return (self.name == other.name and self.rooms == other.rooms
                and self.player_start_room_id == other.player_start_room_id
                and self.target_start_room_id == other.target_start_room_id)

    def __hash__(self) -> int:
        return hash((self.name, tuple(self.room_ids)))


def adjacency_to_distance(adjacency: np.ndarray) -> np.ndarray:
    """All-pairs shortest paths by min-plus relaxation until nothing improves."""
    distance = np.where(adjacency, 1, UNREACHABLE).astype(np.int64)
    np.fill_diagonal(distance, 0)

    while True:
        # distance[i, k] + distance[k, j], minimised over k
        relaxed = np.minimum(distance, (distance[:, :, None] + distance[None, :, :]).min(axis=1))
        if np.array_equal(relaxed, distance):
            return distance
        distance = relaxed


def compute_ambush_rooms(
    room_ids: list[int],
    distance: np.ndarray,
    sight: np.ndarray,
) -> dict[int, frozenset[int]]:
    """
    Find rooms from which an auxiliary can approach an enemy unseen.

    Walking the target's cyclic order, the room one step ahead of r is an
    enemy room when the room two steps ahead is within one move of r, and an
    ally room when the room three steps ahead is within one move of r but not
    visible from it. An ally room works against an enemy room if it sees
    neither the enemy room nor the room before it, and is not two rooms back.
    """
    if not room_ids:
        return {}
    index = {room_id: i for i, room_id in enumerate(room_ids)}
    n = len(room_ids)

    def step(room_id: int, delta: int) -> int:
        return room_ids[(index[room_id] + delta) % n]

    enemy_rooms = set()
    ally_rooms = set()
    for room_id in room_ids:
        plus1, plus2, plus3 = step(room_id, 1), step(room_id, 2), step(room_id, 3)
        if distance[room_id, plus2] <= 1:
            enemy_rooms.add(plus1)
        if distance[room_id, plus3] <= 1 and not sight[plus1, plus3]:
            ally_rooms.add(plus1)

    ambush = {}
    for enemy in enemy_rooms:
        minus1, minus2 = step(enemy, -1), step(enemy, -2)
        working = frozenset(
            ally for ally in ally_rooms
            if not sight[ally, enemy] and not sight[ally, minus1] and ally != minus2
        )
        if working:
            ambush[enemy] = working
    return ambush


def available_boards() -> list[str]:
    return sorted(path.stem for path in BOARDS_DIR.glob('*.json'))


def load_board_spec(name_or_path: Union[str, Path]) -> BoardSpec:
    path = Path(name_or_path)
    if path.suffix != '.json':
        path = BOARDS_DIR / f"{name_or_path}.json"
    if not path.exists():
        raise ValueError(f"unknown board {name_or_path} (available: {', '.join(available_boards())})")
    return BoardSpec.model_validate_json(path.read_text())


def load_board(name_or_path: Union[str, Path], closed_wings: Iterable[str] = ()) -> Board:
    """Load a bundled board by name, or a board JSON file by path."""
    board = Board.from_spec(load_board_spec(name_or_path), closed_wings)
    logger.info(f"Loaded board {board.name} ({len(board.room_ids)} rooms)")
    return board
