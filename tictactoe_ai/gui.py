"""
Tkinter window for the adaptive tic-tac-toe opponent.
The UI is a thin layer over GameSession: it draws marks, the status line, scores and the winning line, and forwards clicks.
"""

import argparse
import atexit
import logging
import tkinter as tk
from pathlib import Path
from tkinter import messagebox, ttk
from typing import Optional

from .memory import OpponentModel, classify
from .persistence import ModelStore, load_model, set_safe_mode
from .policy import DIFFICULTIES, normalize_difficulty
from .logs import init_logger, shutdown_logger
from .session import DEFAULT_AI_DELAY_MS, GameSession, SessionState, TkScheduler
from .settings import GUI_DEFAULTS, GUI_SETTINGS_FILE, load_settings, save_settings

logger = logging.getLogger(__name__)

PALETTE = {
    "BG": "#0f172a",
    "PANEL": "#1e293b",
    "ACCENT": "#38bdf8",
    "TEXT": "#e2e8f0",
    "MUTED": "#94a3b8",
    "O": "#f97316",
    "CELL": "#233244",
    "LINE": "#facc15",
}
FONTS = {
    "board": ("Segoe UI", 36, "bold"),
    "text": ("Segoe UI", 11, "normal"),
    "title": ("Segoe UI", 14, "bold"),
}
CELL_SIZE = 110
BOARD_PAD = 8


def cell_center(idx: int) -> tuple:
    r, c = divmod(idx, 3)
    return BOARD_PAD + c * CELL_SIZE + CELL_SIZE // 2, BOARD_PAD + r * CELL_SIZE + CELL_SIZE // 2


def cell_at(x: float, y: float) -> Optional[int]:
    col = int((x - BOARD_PAD) // CELL_SIZE)
    row = int((y - BOARD_PAD) // CELL_SIZE)
    if 0 <= row < 3 and 0 <= col < 3:
        return row * 3 + col
    return None


class TicTacToeGUI:
    def __init__(
        self,
        root: tk.Tk,
        session: Optional[GameSession] = None,
        settings_path: Optional[Path] = None,
    ) -> None:
        self.root = root
        self.root.title("Tic-Tac-Toe AI")
        self.root.configure(bg=PALETTE["BG"])
        self.settings_path = Path(settings_path) if settings_path else GUI_SETTINGS_FILE
        settings = load_settings(self.settings_path, GUI_DEFAULTS)
        try:
            difficulty = normalize_difficulty(str(settings["difficulty"]))
        except ValueError:
            difficulty = GUI_DEFAULTS["difficulty"]
        try:
            delay_ms = max(0, int(settings["delay_ms"]))
        except (TypeError, ValueError):
            delay_ms = DEFAULT_AI_DELAY_MS

        self.session = session or GameSession()
        self.session.scheduler = TkScheduler(root)
        self.session.delay_ms = delay_ms
        self.session.subscribe(self._on_session_change)

        self.diff_var = tk.StringVar(value=difficulty)
        self.status_var = tk.StringVar(value=self.session.status_text())
        self.score_var = tk.StringVar(value="")
        self.profile_var = tk.StringVar(value="")

        self._configure_style()
        self.menu_frame = self._build_menu_screen()
        self.game_frame = self._build_game_screen()
        self.root.report_callback_exception = self._handle_exception
        self._show_menu()

    def _configure_style(self) -> None:
        style = ttk.Style(self.root)
        style.configure("App.TFrame", background=PALETTE["BG"])
        style.configure("App.TLabel", background=PALETTE["BG"], foreground=PALETTE["TEXT"], font=FONTS["text"])
        style.configure("Muted.TLabel", background=PALETTE["BG"], foreground=PALETTE["MUTED"], font=FONTS["text"])
        style.configure("Title.TLabel", background=PALETTE["BG"], foreground=PALETTE["ACCENT"], font=FONTS["title"])

    def _build_menu_screen(self) -> ttk.Frame:
        frame = ttk.Frame(self.root, padding=16, style="App.TFrame")
        ttk.Label(frame, text="Tic-Tac-Toe", style="Title.TLabel").grid(row=0, column=0, columnspan=2, pady=(0, 10))

        ttk.Label(frame, text="Difficulty:", style="App.TLabel").grid(row=1, column=0, sticky="w", padx=(0, 6))
        diff_menu = ttk.Combobox(frame, textvariable=self.diff_var, state="readonly", values=list(DIFFICULTIES), width=12)
        diff_menu.grid(row=1, column=1, sticky="w")

        ttk.Button(frame, text="Play vs CPU", command=self.start_vs_cpu).grid(row=2, column=0, columnspan=2, sticky="ew", pady=(10, 4))
        ttk.Button(frame, text="Play vs Player", command=self.start_vs_player).grid(row=3, column=0, columnspan=2, sticky="ew", pady=4)
        ttk.Button(frame, text="Reset Opponent Model", command=self._reset_model).grid(row=4, column=0, columnspan=2, sticky="ew", pady=(12, 4))
        ttk.Label(frame, textvariable=self.profile_var, style="Muted.TLabel", wraplength=320, justify="left").grid(
            row=5, column=0, columnspan=2, sticky="w", pady=(8, 0)
        )
        return frame

    def _build_game_screen(self) -> ttk.Frame:
        frame = ttk.Frame(self.root, padding=12, style="App.TFrame")
        ttk.Label(frame, textvariable=self.status_var, style="Title.TLabel").grid(row=0, column=0, columnspan=2, pady=(0, 8))

        side = BOARD_PAD * 2 + CELL_SIZE * 3
        self.canvas = tk.Canvas(frame, width=side, height=side, bg=PALETTE["PANEL"], highlightthickness=0)
        self.canvas.grid(row=1, column=0, columnspan=2)
        self.canvas.bind("<Button-1>", self._on_canvas_click)

        ttk.Label(frame, textvariable=self.score_var, style="App.TLabel").grid(row=2, column=0, columnspan=2, pady=(8, 8))
        ttk.Button(frame, text="Restart", command=self.restart).grid(row=3, column=0, sticky="ew", padx=(0, 4))
        ttk.Button(frame, text="Back to Menu", command=self.back_to_menu).grid(row=3, column=1, sticky="ew", padx=(4, 0))
        return frame

    def _handle_exception(self, exc_type, exc_value, exc_traceback) -> None:
        logger.error("Unhandled UI error", exc_info=(exc_type, exc_value, exc_traceback))
        messagebox.showerror("Error", f"Something went wrong: {exc_value}")

    # -- screens ---------------------------------------------------------

    def _show_menu(self) -> None:
        self.game_frame.pack_forget()
        self.profile_var.set(self._profile_text())
        self.menu_frame.pack(fill="both", expand=True)

    def _show_game(self) -> None:
        self.menu_frame.pack_forget()
        self.game_frame.pack(fill="both", expand=True)

    def _profile_text(self) -> str:
        model = self.session.model
        return f"{classify(model).describe()} Games learned: {model.games_learned}."

    def start_vs_cpu(self) -> None:
        self._start(vs_cpu=True)

    def start_vs_player(self) -> None:
        self._start(vs_cpu=False)

    def _start(self, vs_cpu: bool) -> None:
        difficulty = normalize_difficulty(self.diff_var.get())
        self._save_settings()
        self._show_game()
        self.session.start(difficulty, vs_cpu=vs_cpu)

    def restart(self) -> None:
        self.session.restart()

    def back_to_menu(self) -> None:
        self.session.exit_to_menu()
        self._show_menu()

    def _reset_model(self) -> None:
        if not messagebox.askyesno("Reset opponent model", "Forget everything learned about your play?"):
            return
        store = self.session.store
        if store is not None:
            self.session.model = store.reset()
        else:
            self.session.model = OpponentModel()
        self.profile_var.set(self._profile_text())

    def _save_settings(self) -> None:
        save_settings(
            self.settings_path,
            {"difficulty": self.diff_var.get(), "delay_ms": self.session.delay_ms},
        )

    # -- board -----------------------------------------------------------

    def _on_canvas_click(self, event) -> None:
        idx = cell_at(event.x, event.y)
        if idx is not None:
            self.session.handle_cell(idx)

    def _on_session_change(self, session: GameSession) -> None:
        self.status_var.set(session.status_text())
        self.score_var.set(
            f"X: {session.scores['X']}   O: {session.scores['O']}   Draws: {session.draws}   Games: {session.total_games}"
        )
        if session.state is not SessionState.MENU:
            self._draw_board()

    def _draw_board(self) -> None:
        self.canvas.delete("all")
        for idx in range(9):
            r, c = divmod(idx, 3)
            x0 = BOARD_PAD + c * CELL_SIZE
            y0 = BOARD_PAD + r * CELL_SIZE
            self.canvas.create_rectangle(
                x0 + 3, y0 + 3, x0 + CELL_SIZE - 3, y0 + CELL_SIZE - 3, fill=PALETTE["CELL"], outline=PALETTE["PANEL"]
            )
            mark = self.session.board.cells[idx]
            if mark.strip():
                color = PALETTE["ACCENT"] if mark == "X" else PALETTE["O"]
                x, y = cell_center(idx)
                self.canvas.create_text(x, y, text=mark, fill=color, font=FONTS["board"])

        ends = self.session.winning_endpoints()
        if ends is not None:
            x0, y0 = cell_center(ends[0])
            x1, y1 = cell_center(ends[1])
            self.canvas.create_line(x0, y0, x1, y1, fill=PALETTE["LINE"], width=6, capstyle="round", tags="win_line")


def _parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Tkinter window for Tic-Tac-Toe AI")
    parser.add_argument("--headless", action="store_true", help="Start GUI in withdrawn mode (no visible window).")
    safe = parser.add_mutually_exclusive_group()
    safe.add_argument("--safe-mode", dest="safe_mode", action="store_true", help="Disable persistence during this run.")
    safe.add_argument("--persist", dest="safe_mode", action="store_false", help="Force persistence during this run.")
    parser.set_defaults(safe_mode=None)
    parser.add_argument("--model-file", help="Path of the opponent model JSON file.")
    return parser.parse_args(argv)


def main(argv=None) -> None:
    args = _parse_args(argv)
    if args.safe_mode is not None:
        set_safe_mode(args.safe_mode)
    init_logger()
    atexit.register(shutdown_logger)
    store = ModelStore(args.model_file) if args.model_file else ModelStore()
    root = tk.Tk()
    if args.headless:
        root.withdraw()
    TicTacToeGUI(root, session=GameSession(model=load_model(store), store=store))
    root.mainloop()


if __name__ == "__main__":
    main()
