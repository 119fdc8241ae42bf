"""
Command-line driver: sweep a grid world until it converges.

Examples:
    python -m dpgrid --rows 4 --cols 8 --buffering in_place
    python -m dpgrid --family action_grid --rows 4 --cols 4 --combination greedy --improve-policy
    python -m dpgrid --manual          # one sweep per Enter, 'q' to quit
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from dpgrid.grid_spec import Boundary, Buffering, Combination, Family, GridOptions
from dpgrid.grid_world import GridWorld
from dpgrid.utils import print_grid

logger = logging.getLogger("dpgrid")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dpgrid",
        description="Dynamic-programming sweeps on a rectangular grid world",
    )
    parser.add_argument("--rows", type=int, default=4, help="Number of grid rows")
    parser.add_argument("--cols", type=int, default=8, help="Number of grid columns")
    parser.add_argument("--family", choices=[f.value for f in Family],
                        default=Family.REWARD_GRID.value, help="State family")
    parser.add_argument("--buffering", choices=[b.value for b in Buffering],
                        default=Buffering.SYNCHRONOUS.value, help="Sweep buffering mode")
    parser.add_argument("--combination", choices=[c.value for c in Combination],
                        default=Combination.EXPECTATION.value, help="Value combination mode")
    parser.add_argument("--boundary", choices=[b.value for b in Boundary],
                        default=Boundary.BOUNCE.value, help="Out-of-grid move behaviour")
    parser.add_argument("--improve-policy", action="store_true",
                        help="Recompute the greedy policy after every sweep")
    parser.add_argument("--tolerance", type=float, default=0.0,
                        help="Convergence tolerance (0 = exact equality)")
    parser.add_argument("--max-sweeps", type=int, default=10_000,
                        help="Stop after this many sweeps")
    parser.add_argument("--manual", action="store_true",
                        help="Wait for Enter before every sweep ('q' quits)")
    parser.add_argument("--precision", type=int, default=2, help="Decimals in printed values")
    parser.add_argument("--plot", action="store_true", help="Show the final grid with matplotlib")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log per-sweep deltas")
    return parser


def run_manual(world: GridWorld, max_sweeps: int, precision: int, show_policy: bool) -> None:
    """Single-step the world, one sweep per line read from stdin."""
    print_grid(world, precision=precision, show_policy=show_policy)
    while world.sweeps < max_sweeps and not world.converged:
        line = sys.stdin.readline()
        if not line or line.strip().lower() == "q":
            break
        report_step(world, world.step())
        print_grid(world, precision=precision, show_policy=show_policy)


def report_step(world: GridWorld, converged: bool) -> None:
    if converged:
        logger.info("Converged after %d steps.", world.sweeps - 1)
    else:
        logger.info("Steps: %d", world.sweeps)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        options = GridOptions(
            family=args.family,
            buffering=args.buffering,
            combination=args.combination,
            improve_policy=args.improve_policy,
            boundary=args.boundary,
            tolerance=args.tolerance,
        )
        world = GridWorld(args.rows, args.cols, options)
    except ValueError as e:
        logger.error("Invalid configuration: %s", e)
        return 2

    show_policy = args.improve_policy
    if args.manual:
        run_manual(world, args.max_sweeps, args.precision, show_policy)
    else:
        while world.sweeps < args.max_sweeps:
            converged = world.step()
            report_step(world, converged)
            if converged:
                break
        print_grid(world, precision=args.precision, show_policy=show_policy)

    if not world.converged:
        logger.warning("Did not converge within %d sweeps", world.sweeps)

    if args.plot:
        import matplotlib.pyplot as plt
        from dpgrid.utils import visualize_values

        visualize_values(world, show_policy=show_policy)
        plt.show()

    return 0 if world.converged else 1


if __name__ == "__main__":
    sys.exit(main())
