"""Move sources for the automated side, one per difficulty."""

import logging
import random
from typing import Callable, Dict, List, Optional

from .board import CENTER, CORNERS, EMPTY, O, empty_cells, find_winning_move, opponent, winning_line
from .memory import PREDICT_MIN_GAMES, RECOMMEND_MIN_GAMES, OpponentModel, predict_counter, recommend
from .search import search

logger = logging.getLogger(__name__)

REACTIVE = "reactive"
OPTIMAL = "optimal"
ADAPTIVE = "adaptive"
DIFFICULTIES = (REACTIVE, OPTIMAL, ADAPTIVE)
DIFFICULTY_ALIASES = {"easy": REACTIVE, "medium": OPTIMAL, "hard": ADAPTIVE}
DEFAULT_DIFFICULTY = ADAPTIVE

# Reactive play skips an available block one time in five.
BLOCK_PROBABILITY = 0.8

MoveFn = Callable[..., int]


def _completes_line(cells: List[str], idx: int, mark: str) -> bool:
    cells[idx] = mark
    line = winning_line(cells)
    cells[idx] = EMPTY
    return line is not None and idx in line


def _one_ply_threat(cells: List[str], mark: str) -> Optional[int]:
    for idx in empty_cells(cells):
        if _completes_line(cells, idx, mark):
            return idx
    return None


def reactive_move(cells: List[str], mark: str = O, rng: Optional[random.Random] = None, **_context) -> int:
    """Heuristic play: win, usually block, then center, corners, anything."""
    rng = rng or random
    board = list(cells)
    open_spots = empty_cells(board)
    if not open_spots:
        raise ValueError("No empty cells left to play.")

    win_idx = _one_ply_threat(board, mark)
    if win_idx is not None:
        return win_idx

    block_idx = _one_ply_threat(board, opponent(mark))
    if block_idx is not None and rng.random() < BLOCK_PROBABILITY:
        return block_idx

    if board[CENTER] == EMPTY:
        return CENTER

    corners = [idx for idx in CORNERS if board[idx] == EMPTY]
    if corners:
        return rng.choice(corners)

    return rng.choice(open_spots)


def optimal_move(cells: List[str], mark: str = O, **_context) -> int:
    """Exact search; never loses and never settles for a draw it could win."""
    result = search(cells, mark)
    if result.index is None:
        raise ValueError("No move to search for on a finished board.")
    return result.index


def adaptive_move(
    cells: List[str],
    mark: str = O,
    model: Optional[OpponentModel] = None,
    sequence: Optional[List[int]] = None,
    rng: Optional[random.Random] = None,
    **_context,
) -> int:
    """Win, block, then lean on remembered games before falling back to search."""
    board = list(cells)
    if not empty_cells(board):
        raise ValueError("No empty cells left to play.")

    win_idx = find_winning_move(board, mark)
    if win_idx is not None:
        return win_idx

    block_idx = find_winning_move(board, opponent(mark))
    if block_idx is not None:
        return block_idx

    if model is not None:
        if model.games_learned >= RECOMMEND_MIN_GAMES:
            suggestion = recommend(model, empty_cells(board), list(sequence or []), rng)
            if suggestion is not None:
                logger.debug("Adaptive move %d recalled from memory.", suggestion)
                return suggestion
        if model.games_learned >= PREDICT_MIN_GAMES:
            counter = predict_counter(model, board, mark)
            if counter is not None:
                logger.debug("Adaptive move %d counters the usual opening.", counter)
                return counter

    return optimal_move(board, mark)


def random_move(cells: List[str], rng: Optional[random.Random] = None, **_context) -> int:
    """Uniformly random legal move; an arbitrary opponent for arenas and tests."""
    rng = rng or random
    open_spots = empty_cells(cells)
    if not open_spots:
        raise ValueError("No empty cells left to play.")
    return rng.choice(open_spots)


POLICIES: Dict[str, MoveFn] = {
    REACTIVE: reactive_move,
    OPTIMAL: optimal_move,
    ADAPTIVE: adaptive_move,
}


def normalize_difficulty(name: Optional[str]) -> str:
    """Map user input (including easy/medium/hard) onto a difficulty name."""
    if not name:
        return DEFAULT_DIFFICULTY
    key = name.strip().lower()
    key = DIFFICULTY_ALIASES.get(key, key)
    if key not in POLICIES:
        raise ValueError(f"Unknown difficulty {name!r}; choose from {', '.join(DIFFICULTIES)}.")
    return key


def choose_policy(name: Optional[str]) -> MoveFn:
    return POLICIES[normalize_difficulty(name)]


def difficulty_display_label(difficulty: str) -> str:
    reference = {v: k for k, v in DIFFICULTY_ALIASES.items()}
    return f"{difficulty.capitalize()} ({reference[difficulty]})"
