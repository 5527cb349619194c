"""Terminal tic-tac-toe: you (X) vs. an automated O that learns your habits across sessions."""

import argparse
import json
import logging
import os
import random
import sys
import time
from typing import Callable, List, Optional

from . import persistence
from .arena import ARENA_PLAYERS, run_arena, run_optimal_batch
from .board import EMPTY
from .errors import TicTacToeError
from .logs import LOG_DIR, init_logger, shutdown_logger
from .memory import OpponentModel, classify
from .persistence import ModelStore, load_model, set_safe_mode
from .policy import DEFAULT_DIFFICULTY, DIFFICULTIES, DIFFICULTY_ALIASES, normalize_difficulty
from .search import best_hint
from .session import DEFAULT_AI_DELAY_MS, GameSession

logger = logging.getLogger(__name__)

MAX_INVALID_TRIES = 5


class SleepScheduler:
    """Blocking delay before the automated move, for terminal pacing."""

    def schedule(self, delay_ms: int, callback: Callable[[], None]) -> None:
        if delay_ms > 0:
            time.sleep(delay_ms / 1000.0)
        callback()
        return None

    def cancel(self, handle) -> None:
        return None


def print_board(cells: List[str]) -> None:
    print("\nCurrent board:")
    print("   1   2   3")
    for r in range(3):
        row_cells = cells[r * 3 : (r + 1) * 3]
        print(f"{r + 1}  " + " | ".join(row_cells))
        if r < 2:
            print("  --+---+--")
    print()


def parse_move(text: str) -> Optional[int]:
    """Accept a single spot 1-9 or "row,col" (1-3 each); returns a cell index."""
    parts = text.replace(",", " ").split()
    if len(parts) == 1 and parts[0].isdigit():
        single = int(parts[0])
        if 1 <= single <= 9:
            return single - 1
        return None

    if len(parts) != 2 or not all(part.isdigit() for part in parts):
        return None

    row, col = (int(parts[0]), int(parts[1]))
    if not (1 <= row <= 3 and 1 <= col <= 3):
        return None
    return (row - 1) * 3 + (col - 1)


def get_player_move(cells: List[str], mark: str) -> Optional[int]:
    """Prompt for a valid move; return None if the player quits the round."""
    attempts = 0
    while True:
        move_text = input(f"Player {mark}, enter a spot 1-9 or row,col (h for hint, q to quit): ").strip()
        if move_text.lower() in {"q", "quit"}:
            return None
        if move_text.lower() in {"h", "hint"}:
            hint_idx = best_hint(cells, mark)
            if hint_idx is None:
                print("No available moves to suggest.")
            else:
                r, c = divmod(hint_idx, 3)
                print(f"Hint: try spot {hint_idx + 1} (row {r + 1}, column {c + 1}).")
            continue

        idx = parse_move(move_text)
        if idx is None:
            open_moves = [str(i + 1) for i, v in enumerate(cells) if v == EMPTY]
            print(f"Please enter a spot 1-9 or a row,col from 1 to 3. Open spots: {', '.join(open_moves)}")
        elif cells[idx] != EMPTY:
            print("That spot is already taken. Choose another.")
        else:
            return idx

        attempts += 1
        if attempts >= MAX_INVALID_TRIES:
            confirm = input("Too many invalid tries. Quit this round? (y/n): ").strip().lower()
            if confirm in {"y", "yes"}:
                return None
            attempts = 0


def play_round(session: GameSession) -> Optional[str]:
    """Play the session's current game; returns the winner, "Draw", or None on quit."""
    print(f"\nNew round! Mode: {session.label()}.")
    while session.running:
        print_board(session.board.cells)
        print(session.status_text())
        idx = get_player_move(session.board.cells, session.current)
        if idx is None:
            print("Exiting round by request. No score recorded for this round.")
            return None
        before = len(session.sequence)
        if not session.handle_cell(idx):
            continue
        if session.vs_cpu and len(session.sequence) > before + 1:
            ai_idx = session.sequence[-1]
            ai_row, ai_col = divmod(ai_idx, 3)
            print(f"Computer plays at row {ai_row + 1}, column {ai_col + 1}.")

    print_board(session.board.cells)
    print(session.status_text())
    ends = session.winning_endpoints()
    if ends is not None:
        print(f"Winning line: spot {ends[0] + 1} to spot {ends[1] + 1}.")
    if session.last_save_ok is False and session.vs_cpu:
        print("(Opponent model kept in memory only.)")
    return session.last_winner or "Draw"


def print_scores(session: GameSession) -> None:
    print(f"Scores: X={session.scores['X']}  O={session.scores['O']}  Draws={session.draws}  Games={session.total_games}")


def play_session(session: GameSession, difficulty: Optional[str], vs_cpu: bool, non_interactive: bool = False) -> None:
    session.start(difficulty, vs_cpu=vs_cpu)
    try:
        while True:
            result = play_round(session)
            print_scores(session)
            if non_interactive:
                break
            if result is None:
                choice = input("Start a new round? (y/n): ").strip().lower()
            else:
                choice = input("Play again? (y/n): ").strip().lower()
            if choice not in {"y", "yes"}:
                break
            session.restart()
    finally:
        session.exit_to_menu()


def show_profile(model: OpponentModel) -> None:
    print("\nOpponent profile:")
    print(classify(model).describe())
    print(f"- Games learned: {model.games_learned}")
    preferred = model.preferred_opening()
    print(f"- Favourite opening: {'n/a' if preferred is None else f'spot {preferred + 1}'}")
    counts = ", ".join(f"{idx + 1}: {count}" for idx, count in sorted(model.opening_counts.items()))
    print(f"- Opening counts: {counts or '(none)'}")
    print(f"- Remembered wins: {len(model.winning_sequences)}, losses: {len(model.losing_sequences)}")


def choose_difficulty(preferred: Optional[str] = None) -> str:
    if preferred:
        return normalize_difficulty(preferred)
    options = {str(i): name for i, name in enumerate(DIFFICULTIES, start=1)}
    while True:
        choice = input(
            "Choose difficulty - 1: Reactive (easy), 2: Optimal (medium), 3: Adaptive (hard) [3]: "
        ).strip().lower()
        if not choice:
            return DEFAULT_DIFFICULTY
        choice = options.get(choice, choice)
        try:
            return normalize_difficulty(choice)
        except ValueError:
            print("Please enter 1, 2, 3, or a difficulty name (easy/medium/hard).")


def run_doctor(store: ModelStore) -> None:
    print("Tic-Tac-Toe AI diagnostics")
    print(f"- Python: {sys.version.split()[0]}")
    print(f"- Safe mode: {store.safe_mode}")
    print(f"- Data directory: {persistence.DATA_DIR}")
    print(f"- Model file: {store.file_path}")
    print(f"- Model status: {store.status()}")
    print(f"- Backup file: {store.backup_path} ({'present' if os.path.exists(store.backup_path) else 'missing'})")
    print(f"- Log directory: {LOG_DIR}")


def reset_model(session: GameSession, store: ModelStore) -> None:
    session.model = store.reset()
    if store.safe_mode:
        print(persistence.SAFE_MODE_MESSAGE)
    print("Opponent model reset.")


def main_menu(session: GameSession, store: ModelStore, difficulty: Optional[str] = None) -> None:
    print("Tic-Tac-Toe AI")
    while True:
        print(
            "\nMain menu:\n"
            "1) Play vs CPU\n"
            "2) Play vs player\n"
            "3) Show opponent profile\n"
            "4) Reset opponent model\n"
            "5) Quit\n"
        )
        choice = input("Select an option: ").strip().lower()
        if choice in {"1", "cpu", "c"}:
            play_session(session, choose_difficulty(difficulty), vs_cpu=True)
        elif choice in {"2", "player", "p"}:
            play_session(session, None, vs_cpu=False)
        elif choice in {"3", "profile"}:
            show_profile(session.model)
        elif choice in {"4", "reset", "r"}:
            confirm = input("Forget everything learned about you? (y/n): ").strip().lower()
            if confirm in {"y", "yes"}:
                reset_model(session, store)
        elif choice in {"5", "quit", "q", "exit"}:
            break
        else:
            print("Please choose 1-5 or a listed command.")
    print("\nThanks for playing!")


def _difficulty_arg(value: str) -> str:
    try:
        return normalize_difficulty(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from None


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Tic-Tac-Toe against an automated opponent that adapts to you.")
    difficulty_names = ", ".join(list(DIFFICULTIES) + list(DIFFICULTY_ALIASES))
    parser.add_argument("--difficulty", type=_difficulty_arg, help=f"Difficulty to start with ({difficulty_names}).")
    parser.add_argument("--vs-player", action="store_true", help="Two players share the board (no computer).")
    parser.add_argument("--start", action="store_true", help="Skip the main menu and start a game immediately.")
    parser.add_argument(
        "--non-interactive",
        action="store_true",
        help="Stop after the first game instead of asking to play again.",
    )
    parser.add_argument("--model-file", help="Path of the opponent model JSON file.")
    safe = parser.add_mutually_exclusive_group()
    safe.add_argument("--safe-mode", dest="safe_mode", action="store_true", help="Disable persistence during this run.")
    safe.add_argument("--persist", dest="safe_mode", action="store_false", help="Force persistence during this run.")
    parser.set_defaults(safe_mode=None)
    parser.add_argument(
        "--delay-ms",
        type=int,
        default=DEFAULT_AI_DELAY_MS,
        help=f"Pause before the computer moves, in milliseconds (default {DEFAULT_AI_DELAY_MS}).",
    )
    parser.add_argument("--seed", type=int, help="Seed the random choices for reproducible games.")
    parser.add_argument("--verbose", action="store_true", help="Log debug details to the log file.")
    parser.add_argument("--profile", action="store_true", help="Print the opponent profile and exit.")
    parser.add_argument("--reset-model", action="store_true", help="Forget the learned opponent model and exit.")
    parser.add_argument(
        "--doctor",
        action="store_true",
        help="Run diagnostics (paths, safe mode, model integrity) and exit.",
    )
    parser.add_argument("--batch-optimal", type=int, default=0, help="Run N optimal-vs-optimal games; fail on any win.")

    arena = parser.add_argument_group("arena (automated vs automated)")
    ai_names = list(ARENA_PLAYERS.keys())
    arena.add_argument("--arena", action="store_true", help="Run headless rounds between two move sources.")
    arena.add_argument("--ai-x", choices=ai_names, default="optimal", help="Move source playing X.")
    arena.add_argument("--ai-o", choices=ai_names, default="optimal", help="Move source playing O.")
    arena.add_argument("--rounds", type=int, default=5, help="How many rounds to play (default 5).")
    arena.add_argument(
        "--output",
        choices=("text", "json"),
        default="text",
        help="Choose text (default) or json summary output.",
    )
    arena.add_argument("--result-file", help="Optional path to write the summary JSON.")
    arena.add_argument(
        "--expect-winner",
        choices=("X", "O", "Draw"),
        help="Exit non-zero unless the aggregate winner matches (ties become Draw).",
    )
    return parser.parse_args(argv)


def run_arena_command(args: argparse.Namespace) -> None:
    try:
        summary = run_arena(args.ai_x, args.ai_o, rounds=args.rounds, seed=args.seed, verbose=args.output == "text")
    except ValueError as exc:
        print(f"Arena not started: {exc}")
        raise SystemExit(2)
    if args.output == "json":
        payload = json.dumps(summary, indent=2)
        print(payload)
        if args.result_file:
            try:
                with open(args.result_file, "w", encoding="utf-8") as f:
                    f.write(payload)
            except OSError as exc:
                print(f"Could not write result file: {exc}")
    else:
        print("\nFinal scores:")
        for name, val in summary["scores"].items():  # type: ignore[union-attr]
            print(f"- {name}: {val}")
    if args.expect_winner and summary["winner"] != args.expect_winner:
        print(f"Expected winner {args.expect_winner}, but got {summary['winner']}.")
        raise SystemExit(1)


def main(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)
    if args.safe_mode is not None:
        set_safe_mode(args.safe_mode)
    store = ModelStore(args.model_file) if args.model_file else ModelStore()
    if args.doctor:
        run_doctor(store)
        return

    init_logger(level=logging.DEBUG if args.verbose else logging.INFO)
    try:
        if args.batch_optimal and args.batch_optimal > 0:
            failures = run_optimal_batch(args.batch_optimal)
            if failures:
                print(f"Optimal batch failures: {failures}")
                raise SystemExit(1)
            print(f"Optimal batch ({args.batch_optimal}) passed: every game drawn.")
            return

        if args.arena:
            run_arena_command(args)
            return

        if args.reset_model:
            store.reset()
            print("Opponent model reset.")
            return

        model = load_model(store)
        if args.profile:
            show_profile(model)
            return

        session = GameSession(
            model=model,
            store=store,
            scheduler=SleepScheduler(),
            delay_ms=args.delay_ms,
            rng=random.Random(args.seed),
        )
        if args.start or args.vs_player:
            try:
                play_session(session, args.difficulty, vs_cpu=not args.vs_player, non_interactive=args.non_interactive)
            except TicTacToeError as exc:
                print(f"Could not start the game: {exc}")
                raise SystemExit(1)
        else:
            main_menu(session, store, args.difficulty)
    finally:
        shutdown_logger()


if __name__ == "__main__":
    main()
