"""
Multi-N tick performance of the V-Life simulator.

Runs Simulator.update at 100, 250, 500 cells and reports median/p90,
comparing cKDTree pair search against the O(n^2) fallback.
"""

# Pin threading for stable measurement
import os
os.environ.update({
    'OPENBLAS_NUM_THREADS': '1',
    'MKL_NUM_THREADS': '1',
    'NUMEXPR_NUM_THREADS': '1',
    'OMP_NUM_THREADS': '1'
})

import numpy as np
import time
import gc

from vlife.simulation import Simulator
from vlife.tests.perf_harness import build_world

TARGET_MS = 1000.0 / 60.0  # One 60 Hz frame


def run_tick_perf_test(cell_count: int, use_ckdtree: bool, runs: int = 30) -> dict:
    """
    Time Simulator.update at a given population.

    Args:
        cell_count: Number of initial cells
        use_ckdtree: Pair search mode
        runs: Number of measured ticks

    Returns:
        Dict with p50, p90, min, max, contacts
    """
    world = build_world(N=cell_count, seed=42, evolution=True, use_ckdtree=use_ckdtree)
    sim = Simulator(world)

    # Warmup
    for _ in range(3):
        sim.update()

    # Measure (GC disabled for stable timing)
    gc.collect()
    gc.disable()

    times_ns = []
    try:
        for _ in range(runs):
            start = time.perf_counter_ns()
            sim.update()
            times_ns.append(time.perf_counter_ns() - start)
    finally:
        gc.enable()

    times_ms = np.array(times_ns) / 1_000_000
    return {
        'cell_count': cell_count,
        'use_ckdtree': use_ckdtree,
        'runs': runs,
        'p50_ms': np.percentile(times_ms, 50),
        'p90_ms': np.percentile(times_ms, 90),
        'min_ms': np.min(times_ms),
        'max_ms': np.max(times_ms),
        'contacts': len(sim.physics.contacts())
    }


def main():
    """Run multi-N tick performance validation."""
    print("=" * 80)
    print("V-Life Tick Multi-N Performance")
    print("=" * 80)
    print()

    test_sizes = [100, 250, 500]

    results = []

    for cell_count in test_sizes:
        for use_ckdtree in (True, False):
            mode = "cKDTree" if use_ckdtree else "O(n^2)"
            print(f"[N = {cell_count}, {mode}]")

            result = run_tick_perf_test(cell_count, use_ckdtree)

            print(f"  p50: {result['p50_ms']:.3f}ms")
            print(f"  p90: {result['p90_ms']:.3f}ms")
            print(f"  min: {result['min_ms']:.3f}ms, max: {result['max_ms']:.3f}ms")
            print(f"  Contacts: {result['contacts']}")

            if result['p50_ms'] >= TARGET_MS:
                print(f"  WARNING: p50 {result['p50_ms']:.3f}ms >= {TARGET_MS:.1f}ms frame budget")
            else:
                headroom_pct = ((TARGET_MS - result['p50_ms']) / TARGET_MS) * 100
                print(f"  PASS: {headroom_pct:.1f}% headroom under the 60 Hz frame")

            results.append(result)
            print()

    print("=" * 80)
    print("Summary Table")
    print("=" * 80)
    print()
    print("| Cells | Pair search | p50 (ms) | p90 (ms) | Contacts |")
    print("|-------|-------------|----------|----------|----------|")
    for r in results:
        mode = "cKDTree" if r['use_ckdtree'] else "O(n^2)"
        print(f"| {r['cell_count']:5d} | {mode:11s} | {r['p50_ms']:8.3f} | {r['p90_ms']:8.3f} | {r['contacts']:8d} |")

    print()
    print("=" * 80)


if __name__ == '__main__':
    main()
