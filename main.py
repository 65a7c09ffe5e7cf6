"""
Repo Borrow Cost Runner
=======================

Loads owned collateral, the external borrow market and a set of repo deals,
then prices the cheapest borrow for every deal:

  - greedy low-to-high rating fill first
  - lattice search fallback (backtracking, or --fallback milp) when the greedy
    result overcommits or leaves a quota unmet

Without CSV paths the built-in problem_data instance is used.

CSV formats:
  collateral : id,bondType,creditRating,quantity,price
  market     : id,bondType,creditRating,borrowRate
  deals      : id,totalValueRequired,ratingRequirements,typeRequirements
               (requirements as "AAA:30;AA:20")
"""

import argparse
import logging
import sys
import time
from decimal import InvalidOperation

import problem_data
from allocation_engine import DEFAULT_FALLBACK, FALLBACKS, allocate
from allocation_errors import AllocationError
from collateral_backtrack import DEFAULT_MAX_NODES, DEFAULT_STEP_PERCENT
from collateral_report import print_borrow_market, print_deals, print_failure, print_inventory, print_results
from data_loader import load_bonds, load_borrow_market, load_repo_deals
from repo_models import HUNDRED, to_decimal


def step_percent_arg(text):
    """argparse type for --step-percent: a number in (0, 100]."""
    try:
        step = to_decimal(text)
    except InvalidOperation:
        raise argparse.ArgumentTypeError(f"not a number: {text!r}") from None
    if not step.is_finite() or step <= 0 or step > HUNDRED:
        raise argparse.ArgumentTypeError(f"must be in (0, 100], got {text}")
    return step


def build_parser():
    parser = argparse.ArgumentParser(description="Price the cheapest external borrow for repo deals.")
    parser.add_argument("--collateral", help="owned collateral CSV")
    parser.add_argument("--market", help="borrow market CSV")
    parser.add_argument("--deals", help="repo deals CSV")
    parser.add_argument("--fallback", choices=sorted(FALLBACKS), default=DEFAULT_FALLBACK)
    parser.add_argument("--step-percent", type=step_percent_arg, default=DEFAULT_STEP_PERCENT,
                        help="fallback lattice step as a percent of deal value (default: %(default)s)")
    parser.add_argument("--max-nodes", type=int, default=DEFAULT_MAX_NODES,
                        help="fallback node budget (default: %(default)s)")
    parser.add_argument("--time-limit", type=float, default=None,
                        help="fallback time limit in seconds")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return parser


def load_inputs(args):
    collateral = load_bonds(args.collateral) if args.collateral else problem_data.COLLATERAL
    market = load_borrow_market(args.market) if args.market else problem_data.BORROW_MARKET
    deals = load_repo_deals(args.deals) if args.deals else problem_data.DEALS
    return collateral, market, deals


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.fallback == "milp" and HUNDRED % args.step_percent != 0:
        parser.error(f"--fallback milp needs a --step-percent that divides 100, got {args.step_percent}")
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        collateral, market, deals = load_inputs(args)
    except AllocationError as exc:
        print(f"Error loading inputs: {exc}", file=sys.stderr)
        return 1

    print("\n" + "#" * 80)
    print("#  REPO BORROW COST: greedy rating fill with "
          f"{args.fallback} fallback ({args.step_percent}% steps)")
    print("#" * 80)

    print_inventory(collateral)
    print_borrow_market(market)
    print_deals(deals)
    print()

    failures = 0
    for deal in deals:
        t0 = time.perf_counter()
        try:
            result = allocate(
                deal, market,
                fallback=args.fallback,
                step_percent=args.step_percent,
                max_nodes=args.max_nodes,
                time_limit=args.time_limit,
            )
        except AllocationError as exc:
            failures += 1
            print_failure(deal, exc)
            continue
        elapsed_ms = (time.perf_counter() - t0) * 1000
        print_results(deal, result)
        print(f"  solved in {elapsed_ms:.1f} ms\n")
        sys.stdout.flush()

    print(f"{len(deals) - failures} of {len(deals)} deals allocated.")
    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
