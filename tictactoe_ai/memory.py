"""Cross-session memory of how a particular human plays.

The model is plain counting: opening frequencies, the last few won and lost
move sequences, and the human's own move subsequences. ``record_outcome`` is
the only function that changes it.
"""

import logging
import random
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .board import CENTER, CORNERS, EDGES, EMPTY, O

logger = logging.getLogger(__name__)

SEQUENCE_CAPACITY = 30
PATTERN_CAPACITY = 50
RECOMMEND_MIN_GAMES = 3
PREDICT_MIN_GAMES = 5

OUTCOME_WIN = "win"
OUTCOME_LOSS = "loss"
OUTCOME_DRAW = "draw"
OUTCOMES = (OUTCOME_WIN, OUTCOME_LOSS, OUTCOME_DRAW)

STYLE_UNKNOWN = "unknown"
STYLE_MIXED = "mixed"
STYLE_LABELS = {
    "corner": "corner-preferring",
    "center": "center-preferring",
    "edge": "edge-preferring",
}


@dataclass
class OpponentModel:
    opening_counts: Dict[int, int] = field(default_factory=dict)
    winning_sequences: List[List[int]] = field(default_factory=list)
    losing_sequences: List[List[int]] = field(default_factory=list)
    player_patterns: List[List[int]] = field(default_factory=list)
    games_learned: int = 0

    def preferred_opening(self) -> Optional[int]:
        """Most frequent recorded opening; ties go to the lower cell index."""
        best: Optional[int] = None
        best_count = 0
        for idx in sorted(self.opening_counts):
            count = self.opening_counts[idx]
            if count > best_count:
                best, best_count = idx, count
        return best


@dataclass
class PlayStyle:
    label: str
    percentages: Dict[str, float]
    samples: int

    def describe(self) -> str:
        if self.samples == 0:
            return "Play style: unknown (no games recorded yet)."
        parts = ", ".join(f"{name} {pct:.0f}%" for name, pct in self.percentages.items())
        return f"Play style: {self.label} over {self.samples} games ({parts})."


def outcome_for(winner: Optional[str], automated_mark: str = O) -> str:
    """Translate a board winner into an outcome for the automated side."""
    if winner is None or winner == "Draw":
        return OUTCOME_DRAW
    return OUTCOME_WIN if winner == automated_mark else OUTCOME_LOSS


def recommend(
    model: OpponentModel,
    empty_squares: List[int],
    current_sequence: List[int],
    rng: Optional[random.Random] = None,
) -> Optional[int]:
    """Suggest a move from remembered games, or None when nothing matches.

    A stored loss sharing the first two moves steers away from the move that
    came third in that game (and only that move). Failing that, a stored win
    sharing the opening is replayed one move further.
    """
    rng = rng or random
    if len(current_sequence) < 2 or not empty_squares:
        return None
    prefix = list(current_sequence[:2])

    for lost in model.losing_sequences:
        if len(lost) < 3 or lost[:2] != prefix:
            continue
        trap = lost[2]
        candidates = [idx for idx in empty_squares if idx != trap]
        if candidates:
            return rng.choice(candidates)

    depth = len(current_sequence)
    for won in model.winning_sequences:
        if len(won) <= depth or won[:2] != prefix:
            continue
        follow_up = won[depth]
        if follow_up in empty_squares:
            return follow_up
    return None


def predict_counter(model: OpponentModel, cells: List[str], mark: str = O) -> Optional[int]:
    """Answer the human's habitual opening before the automated side has moved.

    A habitual corner opener is met in the center, or in the opposite corner
    when the center is already gone. Other habits leave the choice to search.
    """
    if cells.count(mark) > 0:
        return None
    preferred = model.preferred_opening()
    if preferred is None or preferred not in CORNERS:
        return None
    if cells[CENTER] == EMPTY:
        return CENTER
    opposite = 8 - preferred
    if cells[opposite] == EMPTY:
        return opposite
    return None


def classify(model: OpponentModel) -> PlayStyle:
    counts = {"corner": 0, "center": 0, "edge": 0}
    for pattern in model.player_patterns:
        if not pattern:
            continue
        first = pattern[0]
        if first in CORNERS:
            counts["corner"] += 1
        elif first == CENTER:
            counts["center"] += 1
        elif first in EDGES:
            counts["edge"] += 1

    total = sum(counts.values())
    if total == 0:
        return PlayStyle(STYLE_UNKNOWN, {name: 0.0 for name in counts}, 0)

    percentages = {name: count * 100.0 / total for name, count in counts.items()}
    top = max(counts.values())
    leaders = [name for name, count in counts.items() if count == top]
    label = STYLE_LABELS[leaders[0]] if len(leaders) == 1 else STYLE_MIXED
    return PlayStyle(label, percentages, total)


def _append_bounded(items: List[List[int]], entry: List[int], capacity: int) -> None:
    items.append(entry)
    overflow = len(items) - capacity
    if overflow > 0:
        del items[:overflow]


def record_outcome(model: OpponentModel, sequence: List[int], outcome: str, store=None) -> bool:
    """Fold one finished game into ``model`` and persist it right away.

    ``outcome`` is from the automated side's point of view. Returns True only
    when ``store`` accepted the write; the in-memory model is updated either way.
    """
    if outcome not in OUTCOMES:
        raise ValueError(f"Unknown outcome {outcome!r}")
    moves = [int(idx) for idx in sequence]

    if moves:
        _append_bounded(model.player_patterns, moves[0::2], PATTERN_CAPACITY)
        model.opening_counts[moves[0]] = model.opening_counts.get(moves[0], 0) + 1
    if outcome == OUTCOME_WIN:
        _append_bounded(model.winning_sequences, moves, SEQUENCE_CAPACITY)
    elif outcome == OUTCOME_LOSS:
        _append_bounded(model.losing_sequences, moves, SEQUENCE_CAPACITY)
    model.games_learned += 1

    logger.info(
        "Learned game %d (%s): sequence=%s, stored wins=%d, losses=%d",
        model.games_learned,
        outcome,
        moves,
        len(model.winning_sequences),
        len(model.losing_sequences),
    )

    if store is None:
        return False
    return store.save(model)
