"""
Command-line runner for the V-Life simulation.

Runs a headless simulation from a world YAML file and optionally writes
the final snapshot (JSON) and the genome rank (YAML).

Example:
  vlife --config data/world/default.yaml --ticks 600
  python -m vlife --cells 200 --seed 7 --snapshot out/snapshot.json
"""

import argparse
import dataclasses
import json
import sys
from pathlib import Path
from typing import List, Optional

from .loader import DataLoadError, load_world, save_rank
from .simulation import Simulator
from .constants import DEFAULT_RUN_TICKS, TICK_SUMMARY_INTERVAL

DEFAULT_CONFIG = Path("data") / "world" / "default.yaml"
DEFAULT_SCHEMA_DIR = Path("schemas")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vlife",
        description="Run a headless V-Life cell simulation.",
    )
    parser.add_argument("--config", "-c", type=Path, default=DEFAULT_CONFIG,
                        help=f"World YAML file (default: {DEFAULT_CONFIG})")
    parser.add_argument("--schema-dir", type=Path, default=DEFAULT_SCHEMA_DIR,
                        help=f"Directory with JSON schemas (default: {DEFAULT_SCHEMA_DIR})")
    parser.add_argument("--ticks", type=int, default=None,
                        help="Ticks to run (default: simulation.max_ticks or "
                             f"{DEFAULT_RUN_TICKS})")
    parser.add_argument("--seed", type=int, default=None, help="Override the world seed")
    parser.add_argument("--cells", type=int, default=None,
                        help="Override simulation.num_initial_cells")
    parser.add_argument("--summary-every", type=int, default=TICK_SUMMARY_INTERVAL,
                        help="Print a tick summary every N ticks (0 = never)")
    parser.add_argument("--snapshot", type=Path, default=None,
                        help="Write the final snapshot as JSON to this path")
    parser.add_argument("--save-rank", type=Path, default=None,
                        help="Write the ranked genomes as YAML to this path")
    parser.add_argument("--quiet", "-q", action="store_true",
                        help="Suppress tick summaries")
    return parser


def run(args: argparse.Namespace) -> Simulator:
    world = load_world(args.config, args.schema_dir)
    if args.seed is not None:
        world = dataclasses.replace(world, seed=args.seed)
    if args.cells is not None:
        world.simulation.num_initial_cells = args.cells

    ticks = args.ticks
    if ticks is None:
        ticks = world.simulation.max_ticks or DEFAULT_RUN_TICKS

    sim = Simulator(world)
    summary_every = 0 if args.quiet else args.summary_every
    for _ in range(ticks):
        sim.update()
        if summary_every and sim.tick_count % summary_every == 0:
            sim.print_tick_summary()

    if not args.quiet:
        population = sim.get_population_stats()
        print(f"[OK] Ran {sim.tick_count} ticks: {population['cell_count']} cells, "
              f"{population['deaths']} deaths, {population['births']} births")

    if args.snapshot is not None:
        args.snapshot.parent.mkdir(parents=True, exist_ok=True)
        with open(args.snapshot, 'w') as f:
            json.dump(sim.get_snapshot(), f, indent=2)
        print(f"[OK] Snapshot written: {args.snapshot}")

    if args.save_rank is not None:
        save_rank(args.save_rank, sim.rank)
        print(f"[OK] Rank written: {args.save_rank} ({len(sim.rank)} genomes)")

    return sim


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.ticks is not None and args.ticks < 0:
        parser.error("--ticks must be >= 0")
    if args.cells is not None and args.cells < 0:
        parser.error("--cells must be >= 0")

    try:
        run(args)
    except (DataLoadError, RuntimeError) as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
