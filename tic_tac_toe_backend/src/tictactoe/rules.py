"""Board constants and mark helpers shared by the engine and the stats aggregator."""
from typing import Literal, Sequence

Mark = Literal["X", "O"]

MARK_X: Mark = "X"
MARK_O: Mark = "O"
MARKS = (MARK_X, MARK_O)
EMPTY = ""

BOARD_SIZE = 9
FIRST_PLAYER: Mark = MARK_X

# Stats key used for drawn games under the sentinel draw policy.
DRAW_KEY = "Draw"

WIN_PATTERNS = (
    (0, 1, 2), (3, 4, 5), (6, 7, 8),  # Rows
    (0, 3, 6), (1, 4, 7), (2, 5, 8),  # Cols
    (0, 4, 8), (2, 4, 6),             # Diagonals
)


# PUBLIC_INTERFACE
def is_mark(value) -> bool:
    """True for "X" or "O"."""
    return value in MARKS


# PUBLIC_INTERFACE
def other_mark(mark: Mark) -> Mark:
    """Returns the opposing mark."""
    return MARK_O if mark == MARK_X else MARK_X


# PUBLIC_INTERFACE
def is_valid_position(position) -> bool:
    """Board positions are plain ints 0-8; bools are rejected."""
    return isinstance(position, int) and not isinstance(position, bool) and 0 <= position < BOARD_SIZE


def empty_board() -> list:
    return [EMPTY] * BOARD_SIZE


def filled_count(board: Sequence[str]) -> int:
    return sum(1 for cell in board if cell != EMPTY)

