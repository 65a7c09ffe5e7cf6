"""
Fallback option - lot allocation as a Mixed-Integer Program (MIP)
==================================================================

The backtracking search walks a lattice of lots (each lot = step_percent% of
the deal value).  The same lattice can be handed to a MIP solver, which finds
the cheapest lattice point without enumerating it:

  Decision variables (all integer):
    n[i] = number of lots borrowed from candidate i

  min  sum_i( rate[i] * n[i] )
  s.t. sum_i( n[i] ) = total_lots                        (cover the deal exactly)
       sum_{i has rating r}( n[i] ) >= ceil(need_r / lot) for each rating r
       sum_{i has type t}( n[i] )   >= ceil(need_t / lot) for each type t
       0 <= n[i] <= total_lots

Thresholds are rounded up to whole lots in exact decimal before the model is
built, so the float arrays the solver sees hold only small integers and the
rates.  The solution is turned back into Decimal amounts, re-checked by the
shared validator and costed in Decimal.

We use scipy.optimize.milp (HiGHS branch-and-bound) to solve it.
"""

import logging
import time
from decimal import ROUND_CEILING, Decimal

import numpy as np
from scipy.optimize import Bounds, LinearConstraint, milp

from allocation_errors import SearchBudgetExceeded, UnfulfillableConstraint
from allocation_validator import (allocation_cost, describe_credits, entries_from_pairs,
                                  is_valid_allocation, requirement_thresholds)
from collateral_backtrack import DEFAULT_MAX_NODES, DEFAULT_STEP_PERCENT, DEFAULT_TIME_LIMIT, lattice_step
from repo_models import Allocation, AllocationResult, same_label

LOGGER = logging.getLogger(__name__)

_LIMIT_REACHED = 1
_INFEASIBLE = 2


def _total_lots(deal, lot):
    lots = deal.total_value_required / lot
    if lots != lots.to_integral_value():
        raise ValueError("milp fallback needs a step_percent that divides 100")
    return int(lots)


def _min_lots(amount, lot):
    return int((amount / lot).to_integral_value(rounding=ROUND_CEILING))


def build_model(deal, candidates, lot):
    """
    Build the MIP arrays for one deal.

    Returns
    -------
    c           : np.ndarray - objective coefficients (rate per lot)
    constraints : scipy LinearConstraint
    bounds      : scipy Bounds
    total_lots  : int
    """
    num_vars = len(candidates)
    total_lots = _total_lots(deal, lot)

    # --- Objective: minimise borrow cost (rate per lot; lot size is a constant factor) ---
    c = np.array([float(cand.borrow_rate) for cand in candidates])

    A_rows = []
    lb_cons = []
    ub_cons = []

    # (a) Cover the deal exactly: sum_i n[i] = total_lots
    A_rows.append(np.ones(num_vars))
    lb_cons.append(total_lots)
    ub_cons.append(total_lots)

    # (b) Rating and type minimums
    ratings, types = requirement_thresholds(deal)
    for thresholds, attr in ((ratings, "credit_rating"), (types, "type")):
        for label, needed in thresholds.items():
            row = np.zeros(num_vars)
            for i, cand in enumerate(candidates):
                if same_label(getattr(cand, attr), label):
                    row[i] = 1.0
            A_rows.append(row)
            lb_cons.append(_min_lots(needed, lot))
            ub_cons.append(np.inf)

    constraints = LinearConstraint(np.array(A_rows), lb_cons, ub_cons)
    bounds = Bounds(np.zeros(num_vars), np.full(num_vars, total_lots))
    return c, constraints, bounds, total_lots


def solve_mip(deal, candidates, step_percent=DEFAULT_STEP_PERCENT,
              max_nodes=DEFAULT_MAX_NODES, time_limit=DEFAULT_TIME_LIMIT):
    """
    Solve the lot lattice with scipy's MIP solver.

    Parameters match solve_backtracking.  Returns an AllocationResult with
    strategy "milp".

    Raises
    ------
    UnfulfillableConstraint  if the lattice has no valid point
    SearchBudgetExceeded     if the solver stops on its node / time limit
    """
    candidates = tuple(candidates)
    lot = lattice_step(deal, step_percent)
    if not candidates:
        raise UnfulfillableConstraint(deal.id, "no borrow candidates to search")

    c, constraints, bounds, total_lots = build_model(deal, candidates, lot)

    t0 = time.perf_counter()
    options = {"presolve": True, "mip_rel_gap": 0.0}
    if max_nodes is not None:
        options["node_limit"] = max_nodes
    if time_limit is not None:
        options["time_limit"] = time_limit

    result = milp(c, integrality=np.ones(len(candidates), dtype=int), bounds=bounds,
                  constraints=constraints, options=options)

    if result.status == _INFEASIBLE:
        raise UnfulfillableConstraint(
            deal.id, f"no combination in {step_percent}% steps satisfies the requirements")
    if result.status == _LIMIT_REACHED:
        nodes = getattr(result, "mip_node_count", 0) or 0
        raise SearchBudgetExceeded(nodes, time.perf_counter() - t0, result.message)
    if not result.success:
        raise UnfulfillableConstraint(deal.id, f"solver stopped without a solution: {result.message}")

    lots = np.rint(result.x).astype(int)
    pairs = [(cand, lot * int(n)) for cand, n in zip(candidates, lots) if n > 0]
    if not is_valid_allocation(deal, entries_from_pairs(pairs)):
        raise UnfulfillableConstraint(deal.id, "solver returned an allocation that fails validation")

    total_cost = allocation_cost(pairs)
    LOGGER.info("milp for deal %s: %d of %d lots placed, cost %s",
                deal.id, int(lots.sum()), total_lots, total_cost)
    allocations = tuple(
        Allocation.from_candidate(cand, amount, describe_credits(deal, cand))
        for cand, amount in pairs
    )
    return AllocationResult(
        deal_id=deal.id,
        total_cost=total_cost,
        allocations=allocations,
        strategy="milp",
    )
