import datetime
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, relationship

from .db import Base
from .engine import Game, Move, find_inconsistency, utcnow
from .rules import EMPTY

# Empty cells are stored as "-" so the board fits a fixed 9-char column ("---------", "XO---O---", etc.).
EMPTY_CELL = "-"


class InconsistentGameRecord(ValueError):
    """A stored game whose board, turn, history and outcome disagree."""


# Game 'winner' can be null, "X" or "O"; draws are flagged separately in 'is_draw'.
# PUBLIC_INTERFACE
class GameRecord(Base):
    """Stored state of a single Tic Tac Toe match."""
    __tablename__ = "games"
    id = Column(String(36), primary_key=True, index=True)
    board = Column(String(9), nullable=False, default=EMPTY_CELL * 9)
    current_player = Column(String(1), nullable=False, default="X")
    winner = Column(String(1), nullable=True)
    is_draw = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    moves = relationship("MoveRecord", back_populates="game", order_by="MoveRecord.id")


# PUBLIC_INTERFACE
class MoveRecord(Base):
    """Stores an individual move in the game."""
    __tablename__ = "moves"
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    game_id = Column(String(36), ForeignKey("games.id"), nullable=False, index=True)
    player = Column(String(1), nullable=False)
    position = Column(Integer, nullable=False)  # 0 to 8 board position
    created_at = Column(DateTime(timezone=True), default=utcnow)

    game = relationship("GameRecord", back_populates="moves")


# PUBLIC_INTERFACE
class PlayerStatRecord(Base):
    """Cumulative counters per stats key ("X", "O" or "Draw")."""
    __tablename__ = "player_stats"
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    player_name = Column(String(32), unique=True, nullable=False, index=True)
    wins = Column(Integer, nullable=False, default=0)
    losses = Column(Integer, nullable=False, default=0)
    draws = Column(Integer, nullable=False, default=0)
    total_games = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


def board_to_column(board) -> str:
    return "".join(cell if cell != EMPTY else EMPTY_CELL for cell in board)


def board_from_column(value: str) -> list:
    return [cell if cell != EMPTY_CELL else EMPTY for cell in value]


def _as_utc(value: datetime.datetime) -> datetime.datetime:
    # SQLite hands timestamps back naive.
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=datetime.timezone.utc)
    return value


# PUBLIC_INTERFACE
def to_game(record: GameRecord) -> Game:
    """Builds the engine's Game value from a stored record. Moves must be loaded.

    Raises InconsistentGameRecord when the row could not have come from legal play.
    """
    game = Game(
        id=record.id,
        board=board_from_column(record.board),
        current_player=record.current_player,
        winner=record.winner,
        is_draw=bool(record.is_draw),
        move_history=[Move(player=m.player, position=m.position) for m in record.moves],
        created_at=_as_utc(record.created_at),
        updated_at=_as_utc(record.updated_at),
    )
    problem = find_inconsistency(game)
    if problem:
        raise InconsistentGameRecord(f"Game {record.id}: {problem}")
    return game


# PUBLIC_INTERFACE
def new_record(game: Game) -> GameRecord:
    """Row for a freshly created game."""
    return GameRecord(
        id=game.id,
        board=board_to_column(game.board),
        current_player=game.current_player,
        winner=game.winner,
        is_draw=game.is_draw,
        created_at=game.created_at,
        updated_at=game.updated_at,
    )


# PUBLIC_INTERFACE
def write_back(record: GameRecord, game: Game) -> MoveRecord:
    """Copies an accepted move's result onto ``record`` and returns the new move row to add."""
    last = game.move_history[-1]
    record.board = board_to_column(game.board)
    record.current_player = game.current_player
    record.winner = game.winner
    record.is_draw = game.is_draw
    record.updated_at = game.updated_at
    return MoveRecord(game_id=record.id, player=last.player, position=last.position, created_at=game.updated_at)


# PUBLIC_INTERFACE
class SessionStatsStore:
    """StatsStore over a synchronous Session; run it through AsyncSession.run_sync.

    Counters are bumped in SQL (UPDATE ... SET col = col + 1), never read and
    written back from Python.
    """

    def __init__(self, session: Session):
        self.session = session

    def increment(self, player_name: str, counter: str) -> None:
        if self._bump(player_name, counter) == 0:
            self._insert(player_name, counter)

    def _bump(self, player_name: str, counter: str) -> int:
        column = getattr(PlayerStatRecord, counter)
        result = self.session.execute(
            update(PlayerStatRecord)
            .where(PlayerStatRecord.player_name == player_name)
            .values({column: column + 1, PlayerStatRecord.total_games: PlayerStatRecord.total_games + 1,
                     PlayerStatRecord.updated_at: utcnow()})
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def _insert(self, player_name: str, counter: str) -> None:
        row = PlayerStatRecord(player_name=player_name, wins=0, losses=0, draws=0, total_games=1)
        setattr(row, counter, 1)
        try:
            with self.session.begin_nested():
                self.session.add(row)
        except IntegrityError:
            # Another game created the row after our UPDATE matched nothing.
            self._bump(player_name, counter)
