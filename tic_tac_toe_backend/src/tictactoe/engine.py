"""Rules engine for a single Tic Tac Toe game.

Everything here is pure: ``create_game`` builds a fresh game value and
``apply_move`` returns a new value instead of touching the one it was given.
Storing games, locking them while a move is applied and updating player
stats once a game ends are left to the caller (see ``routes.py``).
"""
import datetime
import logging
import uuid
from enum import Enum
from typing import Iterable, List, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field

from .rules import (
    BOARD_SIZE,
    EMPTY,
    FIRST_PLAYER,
    WIN_PATTERNS,
    Mark,
    empty_board,
    filled_count,
    is_valid_position,
    other_mark,
)

logger = logging.getLogger(__name__)


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


# PUBLIC_INTERFACE
class Move(BaseModel):
    """A single accepted move."""
    player: Mark
    position: int = Field(..., ge=0, le=BOARD_SIZE - 1)


# PUBLIC_INTERFACE
class Game(BaseModel):
    """State of one game. Treat as immutable; apply_move hands back a new one."""
    id: str
    board: List[str] = Field(default_factory=empty_board, min_length=BOARD_SIZE, max_length=BOARD_SIZE)
    current_player: Mark = FIRST_PLAYER
    winner: Optional[Mark] = None
    is_draw: bool = False
    move_history: List[Move] = Field(default_factory=list)
    created_at: datetime.datetime
    updated_at: datetime.datetime

    @property
    def is_finished(self) -> bool:
        return self.winner is not None or self.is_draw

    @property
    def status(self) -> str:
        if self.winner is not None:
            return "won"
        if self.is_draw:
            return "draw"
        return "in_progress"

    @property
    def total_moves(self) -> int:
        return len(self.move_history)


# PUBLIC_INTERFACE
class MoveError(str, Enum):
    """Reasons a move gets rejected."""
    INVALID_POSITION = "InvalidPosition"
    NOT_PLAYERS_TURN = "NotPlayersTurn"
    POSITION_OCCUPIED = "PositionOccupied"
    GAME_ALREADY_FINISHED = "GameAlreadyFinished"


ERROR_MESSAGES = {
    MoveError.INVALID_POSITION: "Invalid position",
    MoveError.NOT_PLAYERS_TURN: "Not your turn",
    MoveError.POSITION_OCCUPIED: "Position already taken",
    MoveError.GAME_ALREADY_FINISHED: "Game is already finished",
}


# PUBLIC_INTERFACE
class MoveResult(BaseModel):
    """Outcome of apply_move.

    On failure ``game`` is the untouched input and ``error`` says why.
    """
    model_config = ConfigDict(frozen=True)

    game: Game
    error: Optional[MoveError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def finished(self) -> bool:
        """True when the move just ended the game and stats should be recorded."""
        return self.ok and self.game.is_finished

    @property
    def message(self) -> Optional[str]:
        return ERROR_MESSAGES[self.error] if self.error else None

    @classmethod
    def success(cls, game: Game) -> "MoveResult":
        return cls(game=game)

    @classmethod
    def failure(cls, game: Game, error: MoveError) -> "MoveResult":
        return cls(game=game, error=error)


# PUBLIC_INTERFACE
def check_winner(board: Sequence[str]) -> Optional[Mark]:
    """Returns the mark owning a completed line, scanning rows, cols, then diagonals."""
    for a, b, c in WIN_PATTERNS:
        if board[a] != EMPTY and board[a] == board[b] == board[c]:
            return board[a]
    return None


# PUBLIC_INTERFACE
def check_draw(board: Sequence[str]) -> bool:
    """A full board with no completed line. A win on the last cell is not a draw."""
    return check_winner(board) is None and filled_count(board) == BOARD_SIZE


# PUBLIC_INTERFACE
def current_turn(board: Sequence[str]) -> Mark:
    """X always starts; if even number of marks, it's X's turn, else O's."""
    return FIRST_PLAYER if filled_count(board) % 2 == 0 else other_mark(FIRST_PLAYER)


# PUBLIC_INTERFACE
def create_game(game_id: Optional[str] = None, now: Optional[datetime.datetime] = None) -> Game:
    """Creates a new game with an empty board and X to move."""
    now = now or utcnow()
    game = Game(id=game_id or str(uuid.uuid4()), created_at=now, updated_at=now)
    logger.debug("Created game %s", game.id)
    return game


def _validate_move(game: Game, position, player) -> Optional[MoveError]:
    # Finished first: any move against an ended game reports that, whatever else is wrong with it.
    if game.is_finished:
        return MoveError.GAME_ALREADY_FINISHED
    if not is_valid_position(position):
        return MoveError.INVALID_POSITION
    if player != game.current_player:
        return MoveError.NOT_PLAYERS_TURN
    if game.board[position] != EMPTY:
        return MoveError.POSITION_OCCUPIED
    return None


# PUBLIC_INTERFACE
def apply_move(game: Game, position, player, now: Optional[datetime.datetime] = None) -> MoveResult:
    """Validates and applies one move. Returns a MoveResult; never raises for a bad move."""
    error = _validate_move(game, position, player)
    if error is not None:
        logger.debug("Rejected move %s:%s on game %s: %s", player, position, game.id, error.value)
        return MoveResult.failure(game, error)

    board = list(game.board)
    board[position] = player
    winner = check_winner(board)
    is_draw = check_draw(board)

    updated = game.model_copy(update={
        "board": board,
        "move_history": [*game.move_history, Move(player=player, position=position)],
        "winner": winner,
        "is_draw": is_draw,
        # Flipped even on the final move; ended games reject further moves anyway.
        "current_player": other_mark(player),
        "updated_at": now or utcnow(),
    })
    return MoveResult.success(updated)


# PUBLIC_INTERFACE
def replay(moves: Iterable[Tuple[str, int]], game_id: Optional[str] = None) -> MoveResult:
    """Rebuilds a game from (player, position) pairs, stopping at the first rejected move."""
    result = MoveResult.success(create_game(game_id))
    for player, position in moves:
        result = apply_move(result.game, position, player)
        if not result.ok:
            break
    return result


# PUBLIC_INTERFACE
def find_inconsistency(game: Game) -> Optional[str]:
    """Checks a game loaded from storage against the rules. Returns what is wrong, or None."""
    if game.current_player != current_turn(game.board):
        return f"current player {game.current_player} does not match a board with {filled_count(game.board)} marks"
    result = replay((move.player, move.position) for move in game.move_history)
    if not result.ok:
        return f"move {result.game.total_moves + 1} of the history is rejected: {result.error.value}"
    replayed = result.game
    if replayed.board != game.board:
        return "board does not match the move history"
    if (replayed.winner, replayed.is_draw) != (game.winner, game.is_draw):
        return "outcome does not match the board"
    return None
