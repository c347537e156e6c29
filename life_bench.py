#!/usr/bin/env python3
"""
Profiling harness for the toroidal universe.

Runs the step function headlessly under cProfile, then prints a ranked
breakdown of where time is spent.

Usage:
  python3 life_bench.py                   # 500 frames, summary
  python3 life_bench.py -n 1000           # 1000 frames
  python3 life_bench.py --ticks 8         # 8 generations per frame
  python3 life_bench.py --line-timing     # per-frame component timing
  python3 life_bench.py --dump prof.out   # dump cProfile binary for snakeviz etc.
"""

from __future__ import annotations

import argparse
import cProfile
import pstats
import time
from io import StringIO

import numpy as np

from life import half_block_rows
from universe import (
    DEFAULT_HEIGHT,
    DEFAULT_WIDTH,
    SEED_STRATEGIES,
    SEED_SYMMETRIC,
    Universe,
)


def simulate_frame_work(universe: Universe, ticks: int) -> dict[str, float]:
    """
    Run one host frame without curses, timing each component.

    Returns a dict of component → seconds.
    """
    timings: dict[str, float] = {}

    t0 = time.perf_counter()
    universe.tick_many(ticks)
    timings["tick_many"] = time.perf_counter() - t0

    t0 = time.perf_counter()
    grid = universe.grid()
    timings["unpack"] = time.perf_counter() - t0

    t0 = time.perf_counter()
    half_block_rows(grid)
    timings["half_blocks"] = time.perf_counter() - t0

    t0 = time.perf_counter()
    universe.population()
    timings["population"] = time.perf_counter() - t0

    return timings


def run_benchmark(
    n_frames: int,
    ticks: int = 1,
    width: int = DEFAULT_WIDTH,
    height: int = DEFAULT_HEIGHT,
    seed: str = SEED_SYMMETRIC,
    line_timing: bool = False,
    dump_path: str | None = None,
) -> None:
    """Run the benchmark for n_frames and report results."""

    universe = Universe(width, height, seed=seed)
    # Seed a few long-lived patterns so the grid doesn't die out early
    for k in range(4):
        universe.add_glider(height * k // 4 + 5, width * k // 4 + 5)
    universe.add_pulsar(height // 4, width // 4)

    print(f"Universe: {height}x{width}  Seed: {seed}  "
          f"Frames: {n_frames}  Ticks/frame: {ticks}")
    print()

    # ── Per-frame component timing ─────────────────────────────────
    if line_timing:
        frame_times: dict[str, list[float]] = {}
        total_times: list[float] = []

        for frame in range(n_frames):
            frame_t0 = time.perf_counter()
            for k, v in simulate_frame_work(universe, ticks).items():
                frame_times.setdefault(k, []).append(v)
            total_times.append(time.perf_counter() - frame_t0)

            if (frame + 1) % 100 == 0:
                avg_ms = sum(total_times[-100:]) / 100 * 1000
                print(f"  frame {frame + 1}/{n_frames}  "
                      f"avg {avg_ms:.1f}ms/frame  "
                      f"pop {universe.population():,}")

        print()
        print("=== Per-Frame Component Breakdown (ms) ===")
        print(f"{'Component':<25} {'Mean':>8} {'P50':>8} {'P95':>8} {'P99':>8} {'Max':>8}")
        print("-" * 73)

        def stats_line(name: str, data: list[float]) -> str:
            arr = np.array(data) * 1000  # to ms
            return (f"{name:<25} {arr.mean():8.2f} {np.median(arr):8.2f} "
                    f"{np.percentile(arr, 95):8.2f} {np.percentile(arr, 99):8.2f} "
                    f"{arr.max():8.2f}")

        for k in sorted(frame_times.keys()):
            print(stats_line(k, frame_times[k]))
        print(stats_line("TOTAL", total_times))

        gens = n_frames * ticks
        total_s = sum(total_times)
        print(f"\nGenerations: {gens:,}  ({gens / total_s:,.0f} gen/s)")
        cells_per_s = gens * width * height / total_s
        print(f"Cell updates: {cells_per_s:,.0f}/s")
        return

    # ── cProfile run ───────────────────────────────────────────────
    def profiled_run() -> None:
        for _ in range(n_frames):
            simulate_frame_work(universe, ticks)

    profiler = cProfile.Profile()
    wall_t0 = time.perf_counter()
    profiler.runctx("profiled_run()", globals(), locals())
    wall_dt = time.perf_counter() - wall_t0

    print(f"Wall time: {wall_dt:.2f}s  ({wall_dt / n_frames * 1000:.1f}ms/frame)")
    print(f"Effective FPS: {n_frames / wall_dt:.1f}")
    print()

    # Dump binary if requested
    if dump_path:
        profiler.dump_stats(dump_path)
        print(f"Profile data saved to: {dump_path}")
        print(f"  View with: python3 -m pstats {dump_path}")
        print()

    # Print top functions by cumulative time
    buf = StringIO()
    ps = pstats.Stats(profiler, stream=buf)
    ps.sort_stats("cumulative")
    ps.print_stats(30)
    print(buf.getvalue())

    # Also show by tottime (self-time, no subcalls)
    buf2 = StringIO()
    ps2 = pstats.Stats(profiler, stream=buf2)
    ps2.sort_stats("tottime")
    ps2.print_stats(20)
    print("\n=== By Self-Time (tottime) ===")
    print(buf2.getvalue())


def main() -> None:
    parser = argparse.ArgumentParser(description="Profile the toroidal universe")
    parser.add_argument("-n", "--frames", type=int, default=500,
                        help="Number of frames to simulate (default: 500)")
    parser.add_argument("--ticks", type=int, default=1,
                        help="Generations per frame (default: 1)")
    parser.add_argument("--width", type=int, default=DEFAULT_WIDTH,
                        help=f"Universe width (default: {DEFAULT_WIDTH})")
    parser.add_argument("--height", type=int, default=DEFAULT_HEIGHT,
                        help=f"Universe height (default: {DEFAULT_HEIGHT})")
    parser.add_argument("--seed", choices=SEED_STRATEGIES, default=SEED_SYMMETRIC,
                        help="Random seeding strategy (default: symmetric)")
    parser.add_argument("--line-timing", action="store_true",
                        help="Per-frame component timing instead of cProfile")
    parser.add_argument("--dump", type=str, default=None,
                        help="Dump cProfile binary to this path")
    args = parser.parse_args()

    run_benchmark(
        n_frames=args.frames,
        ticks=args.ticks,
        width=args.width,
        height=args.height,
        seed=args.seed,
        line_timing=args.line_timing,
        dump_path=args.dump,
    )


if __name__ == "__main__":
    main()
