#!/usr/bin/env python3
"""
  ∞  L I F E  ∞
  Conway's Game of Life on a torus, in your terminal.

  The universe wraps at every edge: gliders leaving on the right come back on
  the left. Each terminal character shows two cells stacked vertically using
  half-blocks, and the view can be panned around the torus when the universe
  is larger than the screen.

  Controls:
    q         quit               SPACE     play / pause
    n         single step (paused)
    r         randomise          c         clear
    i         restore the last seed
    +/-       ticks per frame    arrows    pan (wraps around)
    h         home (re-centre)
    g / p     stamp a glider / pulsar at the view centre
    mouse     toggle cell        ctrl+click glider    ctrl+shift+click pulsar
    w         save current state to life.dat
    W         save the seed state to life_initial.dat
    o         load life.dat

  Stats are always logged to life_stats.csv beside this script.
"""

from __future__ import annotations

import argparse
import curses
import logging
import time
from pathlib import Path
from typing import IO, ClassVar

import numpy as np
from numpy.typing import NDArray

from universe import (
    DEFAULT_HEIGHT,
    DEFAULT_WIDTH,
    SEED_STRATEGIES,
    SEED_SYMMETRIC,
    Universe,
    UniverseError,
)

logger = logging.getLogger(__name__)

# ── Half-block characters ───────────────────────────────────────────────
UPPER_HALF = "\u2580"  # ▀  top pixel alive
LOWER_HALF = "\u2584"  # ▄  bottom pixel alive
FULL_BLOCK = "\u2588"  # █  both alive

ALIVE_COLOR: int = 214   # amber on 256-colour terminals
MIN_TICKS: int = 1
MAX_TICKS: int = 100
FRAME_DELAY_MS: float = 30.0

SCRIPT_DIR = Path(__file__).resolve().parent
LOG_PATH = SCRIPT_DIR / "life_stats.csv"
SAVE_PATH = Path("life.dat")
SAVE_INITIAL_PATH = Path("life_initial.dat")


# ═══════════════════════════════════════════════════════════════════════
#  Stats logger
# ═══════════════════════════════════════════════════════════════════════

class StatsLogger:
    """Writes simulation telemetry to CSV."""

    HEADER: ClassVar[str] = "gen,time_s,population,ticks_per_frame,event\n"

    def __init__(self, path: Path) -> None:
        self._path = path
        self._fh: IO[str] | None = None
        self._t0: float = time.monotonic()

    def open(self) -> None:
        try:
            self._fh = open(self._path, "w")
            self._fh.write(self.HEADER)
            self._fh.flush()
        except OSError as exc:
            logger.warning("stats log disabled: %s", exc)
            self._fh = None

    def log(self, gen: int, pop: int, ticks: int, event: str = "") -> None:
        if self._fh is None:
            return
        t = time.monotonic() - self._t0
        self._fh.write(f"{gen},{t:.1f},{pop},{ticks},{event}\n")
        # Flush on events or periodically
        if event or gen % 50 == 0:
            try:
                self._fh.flush()
            except OSError:
                pass

    def close(self) -> None:
        if self._fh is not None:
            try:
                self._fh.close()
            except OSError:
                pass
            self._fh = None


# ═══════════════════════════════════════════════════════════════════════
#  Save / load
# ═══════════════════════════════════════════════════════════════════════

def save_cells(path: Path, cells: NDArray[np.uint8]) -> int:
    """Write packed cell bytes to ``path``; returns the byte count."""
    data = cells.tobytes()
    path.write_bytes(data)
    return len(data)


def load_cells(universe: Universe, path: Path) -> int:
    """Import a packed bitmap from ``path`` into ``universe``."""
    data = path.read_bytes()
    universe.set_state(data)
    return len(data)


# ═══════════════════════════════════════════════════════════════════════
#  Viewer state
# ═══════════════════════════════════════════════════════════════════════

class Viewer:
    """
    Interactive state around a universe: camera, play state and speed.

    The camera is the top-left cell of the view. It wraps around the torus,
    so panning never hits an edge. Each terminal row covers two cell rows.
    """

    def __init__(self, universe: Universe, term_rows: int, term_cols: int) -> None:
        self.universe = universe
        self.generation: int = 0
        self.paused: bool = True
        self.ticks_per_frame: int = MIN_TICKS
        self.message: str = ""

        self.cam_y: int = 0
        self.cam_x: int = 0
        self.resize(term_rows, term_cols)

        # FPS readout, refreshed once per second
        self.fps: int = 0
        self._frames: int = 0
        self._fps_t0: float = time.monotonic()

    def resize(self, term_rows: int, term_cols: int) -> None:
        u = self.universe
        self.view_h: int = max(1, min(term_rows * 2, u.height))
        self.view_w: int = max(1, min(term_cols, u.width))
        self.home()

    def home(self) -> None:
        """Centre the view on the universe."""
        u = self.universe
        self.cam_y = (u.height - self.view_h) // 2
        self.cam_x = (u.width - self.view_w) // 2

    def pan(self, dy: int, dx: int) -> None:
        self.cam_y = (self.cam_y + dy) % self.universe.height
        self.cam_x = (self.cam_x + dx) % self.universe.width

    def visible_grid(self) -> NDArray[np.bool_]:
        """The (view_h, view_w) window of the torus under the camera."""
        grid = self.universe.grid()
        rows = np.arange(self.cam_y, self.cam_y + self.view_h)
        cols = np.arange(self.cam_x, self.cam_x + self.view_w)
        return grid.take(rows, axis=0, mode="wrap").take(cols, axis=1, mode="wrap")

    def cell_at(self, term_y: int, term_x: int) -> tuple[int, int]:
        """Map a terminal position to the (row, col) of its top cell."""
        u = self.universe
        return (self.cam_y + term_y * 2) % u.height, (self.cam_x + term_x) % u.width

    def view_center(self) -> tuple[int, int]:
        u = self.universe
        return (
            (self.cam_y + self.view_h // 2) % u.height,
            (self.cam_x + self.view_w // 2) % u.width,
        )

    def faster(self) -> None:
        self.ticks_per_frame = min(MAX_TICKS, self.ticks_per_frame + 1)

    def slower(self) -> None:
        self.ticks_per_frame = max(MIN_TICKS, self.ticks_per_frame - 1)

    def step(self, force: bool = False) -> int:
        """Advance one frame; returns the number of generations run."""
        if self.paused and not force:
            return 0
        # A forced step while paused runs exactly one generation
        ticks = 1 if self.paused else self.ticks_per_frame
        self.universe.tick_many(ticks)
        self.generation += ticks
        return ticks

    def count_frame(self) -> None:
        now = time.monotonic()
        if now - self._fps_t0 > 1.0:
            self.fps = self._frames
            self._frames = 0
            self._fps_t0 = now
        else:
            self._frames += 1

    # ── Host actions ────────────────────────────────────────────────

    def randomise(self) -> None:
        self.universe.randomise()
        self.generation = 0

    def clear(self) -> None:
        self.universe.clear()
        self.generation = 0

    def restore(self) -> str:
        try:
            self.universe.restore()
        except UniverseError as exc:
            self.message = str(exc)
            return ""
        self.generation = 0
        return "restore"

    def save(self, path: Path, initial: bool = False) -> str:
        u = self.universe
        cells = u.initial_cells() if initial else u.cells()
        try:
            n = save_cells(path, cells)
        except OSError as exc:
            self.message = f"save failed: {exc}"
            return ""
        self.message = f"saved {n} bytes to {path}"
        return "save"

    def load(self, path: Path) -> str:
        try:
            n = load_cells(self.universe, path)
        except (OSError, UniverseError) as exc:
            self.message = f"load failed: {exc}"
            return ""
        self.message = f"loaded {n} bytes from {path}"
        self.generation = 0
        return "load"

    def click(self, term_y: int, term_x: int, ctrl: bool, shift: bool) -> None:
        row, col = self.cell_at(term_y, term_x)
        if ctrl and shift:
            self.universe.add_pulsar(row, col)
        elif ctrl:
            self.universe.add_glider(row, col)
        else:
            self.universe.toggle_cell(row, col)


# ═══════════════════════════════════════════════════════════════════════
#  Rendering
# ═══════════════════════════════════════════════════════════════════════

def half_block_rows(grid: NDArray[np.bool_]) -> list[str]:
    """Fold cell rows pairwise into half-block text lines."""
    if grid.shape[0] % 2:
        grid = np.vstack([grid, np.zeros((1, grid.shape[1]), dtype=np.bool_)])
    top = grid[0::2]
    bot = grid[1::2]
    # 0 = empty, 1 = top only, 2 = bottom only, 3 = both
    codes = top.astype(np.int8) + 2 * bot.astype(np.int8)
    glyphs = np.array([" ", UPPER_HALF, LOWER_HALF, FULL_BLOCK])
    return ["".join(row) for row in glyphs[codes]]


def status_line(viewer: Viewer) -> str:
    state = "paused" if viewer.paused else "playing"
    u = viewer.universe
    left = (
        f"  gen {viewer.generation:,}  pop {u.population():,}  "
        f"{u.height}x{u.width}  ticks/frame {viewer.ticks_per_frame}  "
        f"fps {viewer.fps}  {state}"
    )
    if viewer.message:
        left += f"  | {viewer.message}"
    return left


def render(stdscr: curses.window, viewer: Viewer, attr: int) -> None:
    max_y, max_x = stdscr.getmaxyx()
    lines = half_block_rows(viewer.visible_grid())

    for y, line in enumerate(lines[: max_y - 1]):
        try:
            stdscr.addstr(y, 0, line[:max_x], attr)
        except curses.error:
            pass

    status = status_line(viewer)[: max_x - 1]
    try:
        stdscr.addstr(max_y - 1, 0, status, curses.A_DIM)
    except curses.error:
        pass


# ═══════════════════════════════════════════════════════════════════════
#  Main loop
# ═══════════════════════════════════════════════════════════════════════

def _setup_colors() -> int:
    attr = curses.A_BOLD
    if curses.has_colors():
        curses.start_color()
        curses.use_default_colors()
        color = ALIVE_COLOR if curses.COLORS >= 256 else curses.COLOR_WHITE
        curses.init_pair(1, color, -1)
        attr |= curses.color_pair(1)
    return attr


def main(stdscr: curses.window, args: argparse.Namespace) -> None:
    curses.curs_set(0)
    stdscr.nodelay(True)
    stdscr.timeout(0)
    curses.mousemask(curses.ALL_MOUSE_EVENTS)
    attr = _setup_colors()

    universe = Universe(args.width, args.height, seed=args.seed)
    max_y, max_x = stdscr.getmaxyx()
    viewer = Viewer(universe, max_y - 1, max_x)
    viewer.ticks_per_frame = max(MIN_TICKS, min(MAX_TICKS, args.ticks))
    if args.load is not None:
        viewer.load(args.load)

    stats = StatsLogger(LOG_PATH)
    stats.open()

    try:
        while True:
            event = ""

            # ── Input ──────────────────────────────────────────────
            try:
                key = stdscr.getch()
            except curses.error:
                key = -1

            if key in (ord("q"), ord("Q")):
                break
            elif key == ord(" "):
                viewer.paused = not viewer.paused
            elif key in (ord("n"), ord("N")):
                if viewer.paused:
                    viewer.step(force=True)
                    event = "step"
            elif key in (ord("r"), ord("R")):
                viewer.randomise()
                event = "randomise"
            elif key in (ord("c"), ord("C")):
                viewer.clear()
                event = "clear"
            elif key in (ord("i"), ord("I")):
                event = viewer.restore()
            elif key in (ord("+"), ord("=")):
                viewer.faster()
            elif key in (ord("-"), ord("_")):
                viewer.slower()
            elif key in (ord("h"), ord("H")):
                viewer.home()
            elif key in (ord("g"), ord("G")):
                universe.add_glider(*viewer.view_center())
            elif key in (ord("p"), ord("P")):
                universe.add_pulsar(*viewer.view_center())
            elif key == ord("w"):
                event = viewer.save(SAVE_PATH)
            elif key == ord("W"):
                event = viewer.save(SAVE_INITIAL_PATH, initial=True)
            elif key in (ord("o"), ord("O")):
                event = viewer.load(args.load or SAVE_PATH)
            elif key == curses.KEY_UP:
                viewer.pan(-4, 0)
            elif key == curses.KEY_DOWN:
                viewer.pan(4, 0)
            elif key == curses.KEY_LEFT:
                viewer.pan(0, -8)
            elif key == curses.KEY_RIGHT:
                viewer.pan(0, 8)
            elif key == curses.KEY_MOUSE:
                try:
                    _, mx, my, _, bstate = curses.getmouse()
                    if bstate & (curses.BUTTON1_CLICKED | curses.BUTTON1_PRESSED):
                        viewer.click(
                            my, mx,
                            ctrl=bool(bstate & curses.BUTTON_CTRL),
                            shift=bool(bstate & curses.BUTTON_SHIFT),
                        )
                except curses.error:
                    pass
            elif key == curses.KEY_RESIZE:
                max_y, max_x = stdscr.getmaxyx()
                viewer.resize(max_y - 1, max_x)

            # ── Simulate ───────────────────────────────────────────
            viewer.step()
            viewer.count_frame()

            # ── Log ────────────────────────────────────────────────
            if event or (not viewer.paused and viewer.generation % 10 == 0):
                stats.log(
                    gen=viewer.generation,
                    pop=universe.population(),
                    ticks=viewer.ticks_per_frame,
                    event=event,
                )

            # ── Render ─────────────────────────────────────────────
            stdscr.erase()
            render(stdscr, viewer, attr)
            stdscr.refresh()

            time.sleep(FRAME_DELAY_MS / 1000.0)
    finally:
        stats.close()


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Conway's Game of Life on a torus")
    parser.add_argument("--width", type=int, default=DEFAULT_WIDTH,
                        help=f"Universe width in cells (default: {DEFAULT_WIDTH})")
    parser.add_argument("--height", type=int, default=DEFAULT_HEIGHT,
                        help=f"Universe height in cells (default: {DEFAULT_HEIGHT})")
    parser.add_argument("--seed", choices=SEED_STRATEGIES, default=SEED_SYMMETRIC,
                        help="Random seeding strategy (default: symmetric)")
    parser.add_argument("--ticks", type=int, default=MIN_TICKS,
                        help="Generations per frame (default: 1)")
    parser.add_argument("--load", type=Path, default=None,
                        help="Packed .dat state to load at start")
    return parser.parse_args(argv)


def cli() -> None:
    try:
        curses.wrapper(main, parse_args())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    cli()
