"""
FastAPI server for the Manor game engine.

Provides a REST API to create games, submit and validate turns, query
reachable rooms and ask the search AI for a turn. Games live in memory for
the lifetime of the process.
"""

from __future__ import annotations
import asyncio
import logging
import time
import uuid
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from manor.core.board import InvalidBoardError, available_boards, load_board
from manor.core.moves import TurnNotationError, parse_turn
from manor.core.notation import GameRecord, normal_turn_history
from manor.core.state import GameState, IllegalTurnError
from manor.ai.search import SearchConfig, search_with_config


logger = logging.getLogger(__name__)

VERSION = "0.1.0"


# --- Pydantic Models ---

class CreateGameRequest(BaseModel):
    board: str = "tiny"
    players: int = Field(2, ge=2, le=8)
    closed_wings: list[str] = []


class CreateGameResponse(BaseModel):
    game_id: str


class PlayerInfo(BaseModel):
    player_id: int
    text: str
    auxiliary: bool
    room_id: int
    strength: int
    move_cards: float
    weapons: float
    failures: float


class GameStateResponse(BaseModel):
    game_id: str
    board: str
    turn_id: int
    ply: int
    current_player: int
    current_player_text: str
    target_room_id: int
    players: list[PlayerInfo]
    status: str
    winner: Optional[int] = None
    summary: str
    history: str


class TurnRequest(BaseModel):
    turn: str  # e.g. "1@4 4@3;"


class TurnCheckResponse(BaseModel):
    legal: bool
    reason: Optional[str] = None


class TurnsResponse(BaseModel):
    turns: list[str]


class ReachableResponse(BaseModel):
    piece: str
    steps: int
    room_ids: list[int]


class AITurnRequest(BaseModel):
    depth: int = Field(2, ge=0, le=8)
    time_limit: Optional[float] = Field(None, gt=0)
    workers: int = Field(1, ge=1, le=16)
    apply: bool = True


class AITurnResponse(BaseModel):
    turn: Optional[str]
    appraisal: Optional[float]
    states_visited: int
    time_ms: int
    game_state: GameStateResponse


class RecordResponse(BaseModel):
    text: str


class BoardsResponse(BaseModel):
    boards: list[str]


class HealthResponse(BaseModel):
    status: str
    version: str


# --- Game Storage ---

class Game:
    """Represents an active game session."""

    def __init__(self, game_id: str, state: GameState, board_name: str):
        self.game_id = game_id
        self.state = state
        self.board_name = board_name

    def to_response(self) -> GameStateResponse:
        """Convert to API response."""
        state = self.state
        players = [
            PlayerInfo(
                player_id=pid,
                text=state.player_text(pid),
                auxiliary=state.roster.is_auxiliary(pid),
                room_id=state.player_room_ids[pid],
                strength=state.strengths[pid],
                move_cards=state.move_cards[pid],
                weapons=state.weapons[pid],
                failures=state.failures[pid],
            )
            for pid in state.roster.player_ids()
        ]
        return GameStateResponse(
            game_id=self.game_id,
            board=self.board_name,
            turn_id=state.turn_id,
            ply=state.ply,
            current_player=state.current_player,
            current_player_text=state.player_text(),
            target_room_id=state.target_room_id,
            players=players,
            status="finished" if state.is_terminal() else "playing",
            winner=state.winner if state.has_winner else None,
            summary=state.summary(),
            history=normal_turn_history(state),
        )


games: dict[str, Game] = {}


app = FastAPI(
    title="Manor Engine",
    description="Rules engine and search AI for the Manor board game",
    version=VERSION,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_game(game_id: str) -> Game:
    if game_id not in games:
        raise HTTPException(status_code=404, detail="Game not found")
    return games[game_id]


def parse_turn_or_400(text: str):
    try:
        return parse_turn(text)
    except TurnNotationError as e:
        raise HTTPException(status_code=400, detail=str(e))


# --- REST Endpoints ---

@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse(status="ok", version=VERSION)


@app.get("/boards", response_model=BoardsResponse)
async def list_boards():
    return BoardsResponse(boards=available_boards())


@app.post("/games", response_model=CreateGameResponse)
async def create_game(request: CreateGameRequest = None):
    """Create a new game."""
    if request is None:
        request = CreateGameRequest()

    if request.board not in available_boards():
        raise HTTPException(status_code=400, detail=f"Unknown board {request.board}")
    try:
        board = load_board(request.board, request.closed_wings)
    except InvalidBoardError as e:
        raise HTTPException(status_code=400, detail=e.problems)

    game_id = str(uuid.uuid4())[:8]
    games[game_id] = Game(game_id, GameState.new_game(board, request.players), request.board)
    logger.info(f"Created game {game_id} on {request.board} with {request.players} players")
    return CreateGameResponse(game_id=game_id)


@app.get("/games/{game_id}", response_model=GameStateResponse)
async def get_game_state(game_id: str):
    """Get current game state."""
    return get_game(game_id).to_response()


@app.post("/games/{game_id}/turn", response_model=GameStateResponse)
async def submit_turn(game_id: str, request: TurnRequest):
    """Validate and apply a turn."""
    game = get_game(game_id)
    turn = parse_turn_or_400(request.turn)

    if game.state.is_terminal():
        raise HTTPException(status_code=409, detail="Game already finished")

    try:
        game.state = game.state.apply_turn(turn)
    except IllegalTurnError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return game.to_response()


@app.post("/games/{game_id}/check", response_model=TurnCheckResponse)
async def check_turn(game_id: str, request: TurnRequest):
    """Validate a turn without applying it."""
    game = get_game(game_id)
    turn = parse_turn_or_400(request.turn)
    reason = game.state.turn_problem(turn)
    return TurnCheckResponse(legal=reason is None, reason=reason)


@app.get("/games/{game_id}/turns", response_model=TurnsResponse)
async def list_turns(game_id: str):
    """All turns available to the current player."""
    game = get_game(game_id)
    return TurnsResponse(turns=[str(t) for t in game.state.possible_turns()])


@app.get("/games/{game_id}/reachable", response_model=ReachableResponse)
async def reachable_rooms(game_id: str, player: Optional[int] = None, steps: int = 1):
    """Rooms within `steps` of a player (1-based number), or of the target if omitted."""
    game = get_game(game_id)
    if player is not None and not game.state.roster.is_valid(player - 1):
        raise HTTPException(status_code=400, detail=f"invalid player number {player}")
    if steps < 0:
        raise HTTPException(status_code=400, detail="steps must be non-negative")

    player_id = None if player is None else player - 1
    piece = "target" if player_id is None else game.state.player_text(player_id)
    return ReachableResponse(piece=piece, steps=steps,
                             room_ids=game.state.reachable_rooms(player_id, steps))


@app.post("/games/{game_id}/undo", response_model=GameStateResponse)
async def undo_turn(game_id: str):
    """Undo the last normal turn, including any auxiliary turns after it."""
    game = get_game(game_id)
    previous = game.state.previous_normal_state()
    if previous is None:
        raise HTTPException(status_code=400, detail="Nothing to undo")
    game.state = previous
    return game.to_response()


@app.post("/games/{game_id}/ai", response_model=AITurnResponse)
async def get_ai_turn(game_id: str, request: AITurnRequest = None):
    """Search for the best turn and, unless apply is false, play it."""
    if request is None:
        request = AITurnRequest()

    game = get_game(game_id)
    if game.state.is_terminal():
        raise HTTPException(status_code=409, detail="Game already finished")

    start_time = time.time()
    config = SearchConfig(depth=request.depth, workers=request.workers, time_limit=request.time_limit)
    searched = game.state
    result = await asyncio.to_thread(search_with_config, searched, config)
    elapsed_ms = int((time.time() - start_time) * 1000)

    if game.state is not searched:
        raise HTTPException(status_code=409, detail="Game changed during search")

    if result.turn is not None and request.apply:
        try:
            game.state = searched.apply_turn(result.turn)
        except IllegalTurnError as e:
            raise HTTPException(status_code=400, detail=str(e))

    return AITurnResponse(
        turn=str(result.turn) if result.turn is not None else None,
        appraisal=result.appraisal if result.turn is not None else None,
        states_visited=result.states_visited,
        time_ms=elapsed_ms,
        game_state=game.to_response(),
    )


@app.get("/games/{game_id}/record", response_model=RecordResponse)
async def get_record(game_id: str):
    """Game record: board, player count and normal turns."""
    game = get_game(game_id)
    return RecordResponse(text=GameRecord.from_state(game.state, game.board_name).to_text())


@app.delete("/games/{game_id}")
async def delete_game(game_id: str):
    get_game(game_id)
    del games[game_id]
    return {"deleted": game_id}


if __name__ == "__main__":
    import uvicorn
    logging.basicConfig(level=logging.INFO)
    uvicorn.run(app, host="0.0.0.0", port=8000)
