"""Full-depth minimax over the 3x3 board.

Scores are from O's point of view: +10 when O has a line, -10 when X does,
0 for a full board. There is no depth discount, so every won position scores
the same no matter how many plies away the win is. Among equally scored
moves the first one in cell-scan order (0 through 8) is kept.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from .board import EMPTY, O, X, board_full, check_winner, opponent

WIN_SCORE = 10
LOSS_SCORE = -10
DRAW_SCORE = 0

_MINIMAX_CACHE: Dict[Tuple[str, str], int] = {}
# 5478 legal positions exist, so this never evicts during normal play.
MINIMAX_CACHE_LIMIT = 8192


@dataclass(frozen=True)
class SearchResult:
    index: Optional[int]
    score: int


def clear_cache() -> None:
    _MINIMAX_CACHE.clear()


def _terminal_score(cells: List[str]) -> Optional[int]:
    winner = check_winner(cells)
    if winner == O:
        return WIN_SCORE
    if winner == X:
        return LOSS_SCORE
    if board_full(cells):
        return DRAW_SCORE
    return None


def _minimax(cells: List[str], to_move: str) -> int:
    terminal = _terminal_score(cells)
    if terminal is not None:
        return terminal

    key = ("".join(cells), to_move)
    cached = _MINIMAX_CACHE.get(key)
    if cached is not None:
        return cached

    maximizing = to_move == O
    best_score = LOSS_SCORE - 1 if maximizing else WIN_SCORE + 1
    for idx in range(9):
        if cells[idx] != EMPTY:
            continue
        cells[idx] = to_move
        score = _minimax(cells, opponent(to_move))
        cells[idx] = EMPTY
        if maximizing:
            best_score = max(best_score, score)
        else:
            best_score = min(best_score, score)

    if len(_MINIMAX_CACHE) >= MINIMAX_CACHE_LIMIT:
        _MINIMAX_CACHE.clear()
    _MINIMAX_CACHE[key] = best_score
    return best_score


def search(cells: List[str], to_move: str) -> SearchResult:
    """Return the optimal move for ``to_move`` and its game-theoretic value.

    ``cells`` is left untouched; the search runs on a scratch copy.
    ``index`` is None when the position is already decided.
    """
    scratch = list(cells)
    terminal = _terminal_score(scratch)
    if terminal is not None:
        return SearchResult(None, terminal)

    maximizing = to_move == O
    best_idx: Optional[int] = None
    best_score = 0
    for idx in range(9):
        if scratch[idx] != EMPTY:
            continue
        scratch[idx] = to_move
        score = _minimax(scratch, opponent(to_move))
        scratch[idx] = EMPTY
        if best_idx is None or (score > best_score if maximizing else score < best_score):
            best_idx = idx
            best_score = score
    return SearchResult(best_idx, best_score)


def best_hint(cells: List[str], mark: str) -> Optional[int]:
    """Suggest the strongest move for ``mark`` (used for the player's hint)."""
    return search(cells, mark).index
