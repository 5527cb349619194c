"""3x3 board state plus the pure win/draw helpers every move source relies on."""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .errors import CellOccupied, GameEnded, InvalidMove

EMPTY = " "
X = "X"
O = "O"
MARKS = (X, O)
CENTER = 4
CORNERS = (0, 2, 6, 8)
EDGES = (1, 3, 5, 7)

# Scan order matters: the first completed line is the one drawn on screen.
WIN_LINES: Tuple[Tuple[int, int, int], ...] = (
    (0, 1, 2),
    (3, 4, 5),
    (6, 7, 8),
    (0, 3, 6),
    (1, 4, 7),
    (2, 5, 8),
    (0, 4, 8),
    (2, 4, 6),
)


def new_cells() -> List[str]:
    return [EMPTY] * 9


def opponent(mark: str) -> str:
    return O if mark == X else X


def winning_line(cells: List[str]) -> Optional[Tuple[int, int, int]]:
    for a, b, c in WIN_LINES:
        if cells[a] != EMPTY and cells[a] == cells[b] == cells[c]:
            return a, b, c
    return None


def check_winner(cells: List[str]) -> Optional[str]:
    line = winning_line(cells)
    if line is None:
        return None
    return cells[line[0]]


def board_full(cells: List[str]) -> bool:
    return all(cell != EMPTY for cell in cells)


def is_draw(cells: List[str]) -> bool:
    return board_full(cells) and check_winner(cells) is None


def is_terminal(cells: List[str]) -> bool:
    return check_winner(cells) is not None or board_full(cells)


def empty_cells(cells: List[str]) -> List[int]:
    return [idx for idx, cell in enumerate(cells) if cell == EMPTY]


def next_mark(cells: List[str]) -> str:
    """X always opens, so X is to move whenever the counts are level."""
    return X if cells.count(X) == cells.count(O) else O


def find_winning_move(cells: List[str], mark: str) -> Optional[int]:
    """Return the first empty cell that completes a line for ``mark``, if any."""
    for idx in range(9):
        if cells[idx] != EMPTY:
            continue
        cells[idx] = mark
        won = check_winner(cells) == mark
        cells[idx] = EMPTY
        if won:
            return idx
    return None


@dataclass
class Board:
    """Mutable board owned by a game session.

    ``place`` is the only mutator; it refuses occupied cells, out-of-turn
    marks, and any move once ``running`` has been cleared.
    """

    cells: List[str] = field(default_factory=new_cells)
    running: bool = True

    def place(self, index: int, mark: str) -> None:
        if not self.running:
            raise GameEnded()
        if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index <= 8:
            raise InvalidMove(f"Cell index must be 0-8, got {index!r}.")
        if mark not in MARKS:
            raise InvalidMove(f"Unknown mark {mark!r}.")
        if self.cells[index] != EMPTY:
            raise CellOccupied(index)
        expected = next_mark(self.cells)
        if mark != expected:
            raise InvalidMove(f"It is {expected}'s turn, not {mark}'s.")
        self.cells[index] = mark

    def winner(self) -> Optional[str]:
        return check_winner(self.cells)

    def winning_line(self) -> Optional[Tuple[int, int, int]]:
        return winning_line(self.cells)

    def is_full(self) -> bool:
        return board_full(self.cells)

    def is_draw(self) -> bool:
        return is_draw(self.cells)

    def empty_cells(self) -> List[int]:
        return empty_cells(self.cells)

    def reset(self) -> None:
        self.cells = new_cells()
        self.running = True

    def copy(self) -> "Board":
        return Board(cells=list(self.cells), running=self.running)
