import datetime
import logging
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload
from typing import Any, List, Optional, Literal
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .config import DRAW_POLICY, GAMES_LIST_LIMIT
from .db import get_db
from .engine import Game, Move, apply_move, create_game
from .locks import GameLocks
from .models import (
    GameRecord, InconsistentGameRecord, PlayerStatRecord, SessionStatsStore, new_record, to_game, write_back,
)
from .stats import record_outcome

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")

game_locks = GameLocks()

# --- Pydantic Schemas ---

class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

class GameState(CamelModel):
    id: str
    board: List[str] = Field(..., description="9 cells, row-major: 'X', 'O' or '' when empty")
    current_player: Literal["X", "O"]
    winner: Optional[Literal["X", "O"]]
    is_draw: bool
    status: Literal["in_progress", "won", "draw"]
    total_moves: int
    move_history: List[Move]
    created_at: datetime.datetime
    updated_at: datetime.datetime

class MoveResponse(GameState):
    move: Move

class MoveRequest(BaseModel):
    # Left untyped: the engine decides what a valid position is, so true, "4" or 4.5 get InvalidPosition.
    position: Any = Field(..., description="Board index for the move (0-8)")
    player: str = Field(..., description="Mark making the move: 'X' or 'O'")

class PlayerStatSchema(BaseModel):
    id: int
    player_name: str
    wins: int
    losses: int
    draws: int
    total_games: int
    created_at: Optional[datetime.datetime]
    updated_at: Optional[datetime.datetime]

    model_config = ConfigDict(from_attributes=True)

# --- Persistence helpers ---

async def _load_game(db: AsyncSession, game_id: str, for_update: bool = False) -> Optional[GameRecord]:
    stmt = select(GameRecord).options(selectinload(GameRecord.moves)).where(GameRecord.id == game_id)
    if for_update:
        stmt = stmt.with_for_update()
    result = await db.execute(stmt)
    return result.scalars().first()

def _as_game(record: GameRecord) -> Game:
    try:
        return to_game(record)
    except InconsistentGameRecord as e:
        logger.error(f"Refusing corrupt game record: {e}")
        raise HTTPException(status_code=500, detail="Stored game is inconsistent")

def _record_stats(session, winner: Optional[str], is_draw: bool) -> List[str]:
    return record_outcome(SessionStatsStore(session), winner, is_draw, DRAW_POLICY)

def _game_fields(game: Game) -> dict:
    return dict(game.model_dump(), status=game.status, total_moves=game.total_moves)

def _to_gamestate(game: Game) -> GameState:
    return GameState(**_game_fields(game))

# --- REST Endpoints ---

# PUBLIC_INTERFACE
@router.post("/games", response_model=GameState, status_code=201, summary="Create new game", tags=["Game"])
async def create_new_game(db: AsyncSession = Depends(get_db)):
    """Creates a new Tic Tac Toe game with an empty board and X to move."""
    game = create_game()
    db.add(new_record(game))
    await db.commit()
    logger.info("Created game %s", game.id)
    return _to_gamestate(game)

# PUBLIC_INTERFACE
@router.get("/games", response_model=List[GameState], summary="List recent games", tags=["Game"])
async def list_games(db: AsyncSession = Depends(get_db)):
    """Lists the most recent games, newest first, with their move history."""
    result = await db.execute(
        select(GameRecord)
        .options(selectinload(GameRecord.moves))
        .order_by(GameRecord.created_at.desc())
        .limit(GAMES_LIST_LIMIT)
    )
    return [_to_gamestate(_as_game(record)) for record in result.scalars().all()]

# PUBLIC_INTERFACE
@router.get("/games/{game_id}", response_model=GameState, summary="Get game state", tags=["Game"])
async def get_game_state(game_id: str, db: AsyncSession = Depends(get_db)):
    """Get the current board, turn and outcome for a game."""
    record = await _load_game(db, game_id)
    if not record:
        raise HTTPException(status_code=404, detail="Game not found")
    return _to_gamestate(_as_game(record))

# PUBLIC_INTERFACE
@router.post(
    "/games/{game_id}/move",
    response_model=MoveResponse,
    summary="Make move",
    tags=["Game"],
    responses={400: {"description": "Move rejected by the game rules"}},
)
async def make_move(game_id: str, request: MoveRequest, db: AsyncSession = Depends(get_db)):
    """Makes a move in the selected game. Validates turn, checks win/draw, updates board, moves and stats."""
    async with game_locks.get(game_id):
        async with db.begin():
            record = await _load_game(db, game_id, for_update=True)
            if not record:
                raise HTTPException(status_code=404, detail="Game not found")

            result = apply_move(_as_game(record), request.position, request.player)
            if not result.ok:
                logger.info("Rejected move %s:%s on game %s: %s", request.player, request.position, game_id, result.error.value)
                return JSONResponse(status_code=400, content={"detail": result.message, "error": result.error.value})

            game = result.game
            db.add(write_back(record, game))
            if result.finished:
                await db.run_sync(_record_stats, game.winner, game.is_draw)
                logger.info("Game %s finished: winner=%s draw=%s", game_id, game.winner, game.is_draw)

    return MoveResponse(**_game_fields(game), move=game.move_history[-1])

# PUBLIC_INTERFACE
@router.get("/stats", response_model=List[PlayerStatSchema], summary="Player statistics", tags=["Stats"])
async def get_stats(db: AsyncSession = Depends(get_db)):
    """Returns every stats row ordered by wins, most first."""
    result = await db.execute(
        select(PlayerStatRecord).order_by(PlayerStatRecord.wins.desc(), PlayerStatRecord.player_name)
    )
    return result.scalars().all()
