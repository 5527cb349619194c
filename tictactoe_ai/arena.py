"""
Automated-vs-automated rounds.
Pit two move sources against each other for a number of rounds and tally the results; nothing is persisted unless a model store is passed.
"""

import logging
import random
from typing import Callable, Dict, List, Optional, Tuple

from .board import O, X, Board, opponent
from .memory import OpponentModel, outcome_for, record_outcome
from .policy import ADAPTIVE, OPTIMAL, REACTIVE, adaptive_move, optimal_move, random_move, reactive_move
from .search import clear_cache

logger = logging.getLogger(__name__)

DRAW = "Draw"
RANDOM = "random"

ARENA_PLAYERS: Dict[str, Callable[..., int]] = {
    RANDOM: random_move,
    REACTIVE: reactive_move,
    OPTIMAL: optimal_move,
    ADAPTIVE: adaptive_move,
}
# The opponent model describes a human X, so the adaptive side only plays O.
O_ONLY = {ADAPTIVE}


def play_round(
    x_fn: Callable[..., int],
    o_fn: Callable[..., int],
    rng: Optional[random.Random] = None,
    model: Optional[OpponentModel] = None,
) -> Tuple[str, List[int]]:
    """Play one game to the end; returns (winner or "Draw", move sequence)."""
    board = Board()
    sequence: List[int] = []
    current = X
    while True:
        move_fn = x_fn if current == X else o_fn
        idx = move_fn(list(board.cells), mark=current, model=model, sequence=list(sequence), rng=rng)
        board.place(idx, current)
        sequence.append(idx)
        winner = board.winner()
        if winner:
            return winner, sequence
        if board.is_full():
            return DRAW, sequence
        current = opponent(current)


def aggregate_winner(scores: Dict[str, int]) -> str:
    if scores.get(X, 0) > scores.get(O, 0):
        return X
    if scores.get(O, 0) > scores.get(X, 0):
        return O
    return DRAW


def run_arena(
    ai_x: str,
    ai_o: str,
    rounds: int,
    seed: Optional[int] = None,
    model: Optional[OpponentModel] = None,
    store=None,
    verbose: bool = False,
) -> Dict[str, object]:
    if ai_x not in ARENA_PLAYERS or ai_o not in ARENA_PLAYERS:
        raise ValueError("Unknown AI selection")
    if ai_x in O_ONLY:
        raise ValueError(f"{ai_x} can only play as O")
    rounds = max(1, rounds)
    rng = random.Random(seed)
    learning = ai_o == ADAPTIVE
    if learning and model is None:
        model = OpponentModel()
    clear_cache()

    scores = {X: 0, O: 0, DRAW: 0}
    for i in range(1, rounds + 1):
        winner, sequence = play_round(ARENA_PLAYERS[ai_x], ARENA_PLAYERS[ai_o], rng=rng, model=model)
        scores[winner] += 1
        if learning:
            record_outcome(model, sequence, outcome_for(None if winner == DRAW else winner, O), store)
        if winner == DRAW:
            result = f"Round {i}: Draw."
        else:
            name = ai_x if winner == X else ai_o
            result = f"Round {i}: {winner} ({name}) wins."
        logger.debug("%s sequence=%s", result, sequence)
        if verbose:
            print(result)

    summary: Dict[str, object] = {
        "ai_x": ai_x,
        "ai_o": ai_o,
        "rounds": rounds,
        "seed": seed,
        "scores": scores,
        "winner": aggregate_winner(scores),
    }
    logger.info("Arena %s vs %s over %d rounds: %s", ai_x, ai_o, rounds, scores)
    return summary


def run_optimal_batch(rounds: int) -> int:
    """Optimal vs optimal; returns how many games did not end in a draw."""
    failures = 0
    for _ in range(max(0, rounds)):
        winner, _sequence = play_round(optimal_move, optimal_move)
        if winner != DRAW:
            failures += 1
    return failures
