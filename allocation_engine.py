"""
External borrow cost engine
===========================

Two-tier strategy for one repo deal:

  PRIMARY   greedy low-to-high rating fill (collateral_greedy)
     |
     |  UnfulfillableConstraint only
     v
  FALLBACK  lattice search (collateral_backtrack, or collateral_mip)
     |
     v
  FAILED    MissingSupply, a second UnfulfillableConstraint,
            or SearchBudgetExceeded

MissingSupply never reaches the fallback: if no bond carries a required
label, no amount of searching will find one.
"""

import enum
import logging

from allocation_errors import AllocationError, UnfulfillableConstraint
from collateral_backtrack import (DEFAULT_MAX_NODES, DEFAULT_STEP_PERCENT, DEFAULT_TIME_LIMIT,
                                  solve_backtracking)
from collateral_greedy import RATING_ORDER, solve_greedy
from collateral_mip import solve_mip

LOGGER = logging.getLogger(__name__)

FALLBACKS = {
    "backtracking": solve_backtracking,
    "milp": solve_mip,
}
DEFAULT_FALLBACK = "backtracking"


class EngineState(enum.Enum):
    PRIMARY = "primary"
    FALLBACK = "fallback"
    FAILED = "failed"


def _enter(deal, state):
    LOGGER.info("deal %s: %s", deal.id, state.value)
    return state


def allocate(deal, candidates, *, fallback=DEFAULT_FALLBACK, rating_order=RATING_ORDER,
             step_percent=DEFAULT_STEP_PERCENT, max_nodes=DEFAULT_MAX_NODES,
             time_limit=DEFAULT_TIME_LIMIT):
    """
    Cheapest allocation of borrowed bonds for one deal.

    Parameters
    ----------
    deal         : RepoDeal
    candidates   : iterable of BorrowCandidate (copied, never modified)
    fallback     : "backtracking" (default) or "milp"
    rating_order : credit ratings weakest to strongest for the greedy pass
    step_percent : fallback lattice step, percent of the deal value
    max_nodes    : fallback node budget (None for unbounded)
    time_limit   : fallback wall-clock budget in seconds (None for unbounded)

    Returns
    -------
    AllocationResult
    """
    try:
        search = FALLBACKS[fallback]
    except KeyError:
        raise ValueError(f"unknown fallback {fallback!r}, expected one of {sorted(FALLBACKS)}") from None

    candidates = tuple(candidates)
    state = _enter(deal, EngineState.PRIMARY)
    try:
        try:
            return solve_greedy(deal, candidates, rating_order=rating_order)
        except UnfulfillableConstraint as exc:
            LOGGER.info("deal %s: greedy rejected (%s)", deal.id, exc.reason)

        state = _enter(deal, EngineState.FALLBACK)
        return search(deal, candidates, step_percent=step_percent,
                      max_nodes=max_nodes, time_limit=time_limit)
    except AllocationError as exc:
        LOGGER.warning("deal %s failed during %s: %s", deal.id, state.value, exc)
        _enter(deal, EngineState.FAILED)
        raise


def calculate_external_borrow_cost(deal, candidates, **options):
    """Total borrow cost (Decimal) of the cheapest allocation; see allocate()."""
    return allocate(deal, candidates, **options).total_cost
