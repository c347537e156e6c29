"""
Toroidal Game of Life universe.

The universe is a fixed-size grid whose edges wrap around: the row above row 0
is the last row and the column left of column 0 is the last column. Cells are
stored one bit each, packed row-major and least-significant-bit first inside
every byte, which is also the on-disk ``.dat`` format read by ``set_state``:

    index = row * width + column
    alive = (cells[index // 8] >> (index % 8)) & 1

Every mutation happens in place on the ``Universe`` instance. Generations are
computed from a full snapshot of the previous one, so no partially-updated
grid is ever observable from outside.

Seeding comes in two named flavours:
  symmetric   one random draw per cell of a fundamental wedge, mirrored to all
              eight images (both flips and both diagonals)
  window      an independent coin flip for each cell in a small centred square
"""

from __future__ import annotations

import logging
import random
from typing import Callable, Iterable

import numpy as np
from numpy.typing import NDArray
from scipy.ndimage import convolve

logger = logging.getLogger(__name__)

# ── Defaults ────────────────────────────────────────────────────────────
DEFAULT_WIDTH: int = 100
DEFAULT_HEIGHT: int = 100
SPAWN_SIZE: int = 10          # side of the centred window for window seeding
SYMMETRIC_START: int = 40     # band offset from the edges for symmetric seeding
MAX_CELLS: int = 2**32 - 1    # width * height must fit an unsigned 32-bit int

SEED_SYMMETRIC: str = "symmetric"
SEED_WINDOW: str = "window"
SEED_STRATEGIES: list[str] = [SEED_SYMMETRIC, SEED_WINDOW]

# ── Convolution kernel (reused every generation) ──────────────────────
NEIGHBOR_KERNEL: NDArray = np.array([[1, 1, 1], [1, 0, 1], [1, 1, 1]], dtype=np.int16)

# ── Stamps (row, col offsets relative to the anchor) ───────────────────
GLIDER: list[tuple[int, int]] = [(-2, -1), (-1, 0), (0, -2), (0, -1), (0, 0)]

# One quadrant of the pulsar; mirrored through the four sign combinations.
PULSAR_QUADRANT: list[tuple[int, int]] = [
    (1, 2), (1, 3), (1, 4),
    (2, 1), (3, 1), (4, 1),
    (6, 2), (6, 3), (6, 4),
    (2, 6), (3, 6), (4, 6),
]
QUADRANTS: list[tuple[int, int]] = [(1, 1), (1, -1), (-1, 1), (-1, -1)]

RandomSource = Callable[[], float]


# ═══════════════════════════════════════════════════════════════════════
#  Errors
# ═══════════════════════════════════════════════════════════════════════

class UniverseError(ValueError):
    """Base class for rejected universe operations."""


class InvalidLength(UniverseError):
    """A state buffer is too short for the current grid."""


class InvalidDimension(UniverseError):
    """A width or height is zero, negative or overflows the cell count."""


# ═══════════════════════════════════════════════════════════════════════
#  Bit packing
# ═══════════════════════════════════════════════════════════════════════

def packed_size(height: int, width: int) -> int:
    """Number of bytes needed to hold ``height * width`` cells."""
    return (height * width + 7) // 8


def pack_grid(grid: NDArray[np.bool_]) -> NDArray[np.uint8]:
    """Pack a (height, width) boolean grid into LSB-first row-major bytes."""
    return np.packbits(grid.reshape(-1), bitorder="little")


def unpack_grid(packed: NDArray[np.uint8], height: int, width: int) -> NDArray[np.bool_]:
    """Inverse of ``pack_grid``; trailing padding bits are ignored."""
    bits = np.unpackbits(packed, count=height * width, bitorder="little")
    return bits.reshape(height, width).astype(np.bool_)


def _validate_dimensions(height: int, width: int) -> None:
    if width < 1 or height < 1:
        raise InvalidDimension(f"grid must be at least 1x1, got {height}x{width}")
    if width * height > MAX_CELLS:
        raise InvalidDimension(
            f"{height}x{width} grid overflows the {MAX_CELLS} cell limit"
        )


# ═══════════════════════════════════════════════════════════════════════
#  Seeding
# ═══════════════════════════════════════════════════════════════════════

def random_cells(
    height: int, width: int, rng: RandomSource = random.random, spawn_size: int = SPAWN_SIZE
) -> NDArray[np.uint8]:
    """Coin-flip every cell of a centred square window; the rest stay dead.

    The window bounds are inclusive, so it spans ``spawn_size + 1`` cells per
    side (clipped to the grid). Draws happen in row-major order.
    """
    grid = np.zeros((height, width), dtype=np.bool_)

    min_x = max(0, width // 2 - spawn_size // 2)
    max_x = min(width - 1, min_x + spawn_size)
    min_y = max(0, height // 2 - spawn_size // 2)
    max_y = min(height - 1, min_y + spawn_size)

    for row in range(min_y, max_y + 1):
        for col in range(min_x, max_x + 1):
            grid[row, col] = rng() < 0.5
    return pack_grid(grid)


def random_symmetric(
    height: int, width: int, rng: RandomSource = random.random, start: int = SYMMETRIC_START
) -> NDArray[np.uint8]:
    """Seed an 8-way symmetric pattern in the band past ``start``.

    Each (x, y) with ``start <= x < width // 2`` and ``x <= y < height // 2``
    gets one draw, written to all eight mirror images. The four images that
    use ``x`` as a row and ``y`` as a column are skipped when they fall off
    the grid, which only happens when one side is at least twice the other.
    On square grids the result is invariant under both flips and both
    diagonal reflections; on other grids under both flips.
    """
    grid = np.zeros((height, width), dtype=np.bool_)
    h, w = height, width
    mid_x = w // 2
    mid_y = h // 2

    for x in range(start, mid_x):
        for y in range(x, mid_y):
            cell = rng() < 0.5
            grid[y, x] = cell
            grid[h - 1 - y, x] = cell
            grid[y, w - 1 - x] = cell
            grid[h - 1 - y, w - 1 - x] = cell
            if x < h and y < w:
                grid[x, y] = cell
                grid[h - 1 - x, y] = cell
                grid[x, w - 1 - y] = cell
                grid[h - 1 - x, w - 1 - y] = cell
    return pack_grid(grid)


# ═══════════════════════════════════════════════════════════════════════
#  Generation step
# ═══════════════════════════════════════════════════════════════════════

def step_grid(
    grid: NDArray[np.bool_],
    grid_buf: NDArray[np.int16] | None = None,
    neighbor_buf: NDArray[np.int16] | None = None,
) -> NDArray[np.bool_]:
    """Compute the next generation of ``grid`` on a torus.

    ``grid`` itself is never written. The optional int16 buffers let a caller
    running many generations avoid reallocating them every step.
    """
    if grid_buf is None:
        grid_buf = np.empty(grid.shape, dtype=np.int16)
    if neighbor_buf is None:
        neighbor_buf = np.empty(grid.shape, dtype=np.int16)

    np.copyto(grid_buf, grid)
    convolve(grid_buf, NEIGHBOR_KERNEL, output=neighbor_buf, mode="wrap")
    n = neighbor_buf

    # Underpopulation (< 2) and overpopulation (> 3) kill live cells,
    # 2 or 3 keep them, exactly 3 brings a dead cell to life.
    n_is_3 = n == 3
    survive = grid & (n_is_3 | (n == 2))
    birth = ~grid & n_is_3
    return survive | birth


# ═══════════════════════════════════════════════════════════════════════
#  The universe
# ═══════════════════════════════════════════════════════════════════════

class Universe:
    """
    A width x height Game of Life on a torus.

    The cell storage is owned exclusively by the instance. ``cells()`` and
    ``initial_cells()`` hand out read-only views of it without copying; a
    view is only valid until the next mutating call (tick, seeding, resizing,
    stamping, import), which may replace or rewrite the backing array.
    """

    def __init__(
        self,
        width: int = DEFAULT_WIDTH,
        height: int = DEFAULT_HEIGHT,
        *,
        rng: RandomSource = random.random,
        seed: str = SEED_SYMMETRIC,
        spawn_size: int = SPAWN_SIZE,
        band_start: int = SYMMETRIC_START,
    ) -> None:
        _validate_dimensions(height, width)
        if seed not in SEED_STRATEGIES:
            raise ValueError(f"unknown seed strategy {seed!r}, expected one of {SEED_STRATEGIES}")

        self._width: int = width
        self._height: int = height
        self.rng: RandomSource = rng
        self.seed: str = seed
        self.spawn_size: int = spawn_size
        self.band_start: int = band_start

        self._cells: NDArray[np.uint8] = self._seed()
        self._initial_cells: NDArray[np.uint8] = self._cells.copy()
        logger.debug("Universe created: %dx%d, %s seed", height, width, seed)

    @classmethod
    def new(cls) -> Universe:
        """A 100x100 universe with a symmetric random seed."""
        return cls()

    # ── Seeding ─────────────────────────────────────────────────────

    def _seed(self) -> NDArray[np.uint8]:
        if self.seed == SEED_WINDOW:
            return random_cells(self._height, self._width, self.rng, self.spawn_size)
        return random_symmetric(self._height, self._width, self.rng, self.band_start)

    def randomise(self) -> None:
        """Re-seed the grid and remember the new seed as the initial state."""
        self._cells = self._seed()
        self._initial_cells = self._cells.copy()
        logger.debug("Universe re-seeded (%s)", self.seed)

    reset = randomise

    def clear(self) -> None:
        size = packed_size(self._height, self._width)
        self._cells = np.zeros(size, dtype=np.uint8)
        self._initial_cells = self._cells.copy()

    def restore(self) -> None:
        """Bring back the state recorded at the last seeding."""
        if self._initial_cells.size != packed_size(self._height, self._width):
            raise InvalidLength(
                "initial cells were recorded for a different grid size; "
                "reseed or clear after resizing"
            )
        self._cells = self._initial_cells.copy()

    # ── Dimensions ──────────────────────────────────────────────────

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    def set_width(self, width: int) -> None:
        """Set the width of the universe.

        Resets all cells to the dead state.
        """
        _validate_dimensions(self._height, width)
        self._width = width
        self._cells = np.zeros(packed_size(self._height, width), dtype=np.uint8)
        logger.debug("Universe resized to %dx%d", self._height, width)

    def set_height(self, height: int) -> None:
        """Set the height of the universe.

        Resets all cells to the dead state.
        """
        _validate_dimensions(height, self._width)
        self._height = height
        self._cells = np.zeros(packed_size(height, self._width), dtype=np.uint8)
        logger.debug("Universe resized to %dx%d", height, self._width)

    # ── Read access ─────────────────────────────────────────────────

    def cells(self) -> NDArray[np.uint8]:
        """Read-only view of the packed cell bytes (no copy)."""
        view = self._cells.view()
        view.flags.writeable = False
        return view

    def initial_cells(self) -> NDArray[np.uint8]:
        """Read-only view of the packed cells recorded at seed time."""
        view = self._initial_cells.view()
        view.flags.writeable = False
        return view

    def grid(self) -> NDArray[np.bool_]:
        """The cells unpacked into a (height, width) boolean array copy."""
        return unpack_grid(self._cells, self._height, self._width)

    def _index(self, row: int, col: int) -> int:
        return (row % self._height) * self._width + (col % self._width)

    def is_alive(self, row: int, col: int) -> bool:
        idx = self._index(row, col)
        return bool((self._cells[idx >> 3] >> (idx & 7)) & 1)

    def population(self) -> int:
        return int(np.unpackbits(self._cells).sum())

    def live_neighbor_count(self, row: int, col: int) -> int:
        count = 0
        for dr in (-1, 0, 1):
            for dc in (-1, 0, 1):
                if dr == 0 and dc == 0:
                    continue
                count += self.is_alive(row + dr, col + dc)
        return count

    # ── State import ────────────────────────────────────────────────

    def set_state(self, buffer: bytes | bytearray | memoryview | NDArray) -> None:
        """Replace every cell from a packed LSB-first bitmap.

        The buffer must hold at least ``ceil(width * height / 8)`` bytes;
        anything past that is ignored. Numpy arrays must hold integer byte
        values; other dtypes or values outside 0..255 are rejected.
        """
        if isinstance(buffer, np.ndarray):
            if buffer.dtype != np.bool_ and not np.issubdtype(buffer.dtype, np.integer):
                raise TypeError(f"state buffer must hold bytes, got dtype {buffer.dtype}")
            if buffer.size and (buffer.min() < 0 or buffer.max() > 255):
                raise UniverseError("state buffer values must be bytes in 0..255")
            data = buffer.astype(np.uint8).reshape(-1)
        else:
            data = np.frombuffer(bytes(buffer), dtype=np.uint8)
        needed = packed_size(self._height, self._width)
        if data.size < needed:
            raise InvalidLength(
                f"state buffer holds {data.size} bytes, "
                f"{self._height}x{self._width} grid needs {needed}"
            )
        grid = unpack_grid(data[:needed], self._height, self._width)
        self._cells = pack_grid(grid)
        logger.debug("Universe state imported from %d bytes", data.size)

    # ── Simulation ──────────────────────────────────────────────────

    def tick(self) -> None:
        self.tick_many(1)

    def tick_many(self, ticks: int) -> None:
        """Advance ``ticks`` generations; the new state is stored once at the end."""
        if ticks < 0:
            raise ValueError(f"ticks must be non-negative, got {ticks}")
        if ticks == 0:
            return

        grid = self.grid()
        # Pre-allocated buffers for the per-generation hot path
        grid_buf = np.empty(grid.shape, dtype=np.int16)
        neighbor_buf = np.empty(grid.shape, dtype=np.int16)
        for _ in range(ticks):
            grid = step_grid(grid, grid_buf, neighbor_buf)
        self._cells = pack_grid(grid)

    # ── Mutation & stamping ─────────────────────────────────────────

    def toggle_cell(self, row: int, col: int) -> None:
        idx = self._index(row, col)
        self._cells[idx >> 3] ^= np.uint8(1 << (idx & 7))

    def set_cells(self, points: Iterable[tuple[int, int]]) -> None:
        """Set cells alive from (row, col) pairs; coordinates wrap around."""
        for row, col in points:
            idx = self._index(row, col)
            self._cells[idx >> 3] |= np.uint8(1 << (idx & 7))

    def add_glider(self, row: int, col: int) -> None:
        self.set_cells((row + dr, col + dc) for dr, dc in GLIDER)

    def add_pulsar(self, row: int, col: int) -> None:
        for q_row, q_col in QUADRANTS:
            self.set_cells(
                (row + q_row * dr, col + q_col * dc) for dr, dc in PULSAR_QUADRANT
            )

    def __repr__(self) -> str:
        return f"Universe({self._height}x{self._width}, population={self.population()})"
