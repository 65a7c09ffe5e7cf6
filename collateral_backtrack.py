"""
Fallback strategy - bounded backtracking search
================================================

When the greedy passes cannot certify an allocation, enumerate allocations on
a coarse lattice instead:

  - every amount is a multiple of `step_percent`% of the deal value
    (20% by default, so at most five slices per deal)
  - candidates are visited in market order; at each one the search branches
    over 0, 1, 2, ... steps up to the value still uncovered, then moves on to
    the next candidate.  The 0 branch skips the candidate.
  - a branch is complete once the deal value is covered; it is checked
    against the deal's ORIGINAL percentage requirements

The cheapest valid combination wins; the first one found wins ties.  Branches
whose running cost already matches the incumbent are cut, since rates are
non-negative and a longer branch can only cost more.

The search is exponential in the number of candidates.  A node budget and an
optional wall-clock limit turn a runaway search into SearchBudgetExceeded.
"""

import logging
import time
from decimal import Decimal

from allocation_errors import SearchBudgetExceeded, UnfulfillableConstraint
from allocation_validator import describe_credits, entries_from_pairs, is_valid_allocation
from repo_models import HUNDRED, Allocation, AllocationResult, to_decimal

LOGGER = logging.getLogger(__name__)

DEFAULT_STEP_PERCENT = Decimal(20)
DEFAULT_MAX_NODES = 2_000_000
DEFAULT_TIME_LIMIT = None  # seconds; None means nodes only

_CLOCK_EVERY = 1024


def lattice_step(deal, step_percent=DEFAULT_STEP_PERCENT):
    """Dollar size of one search step."""
    step_percent = to_decimal(step_percent)
    if step_percent <= 0 or step_percent > HUNDRED:
        raise ValueError(f"step_percent must be in (0, 100], got {step_percent}")
    return deal.total_value_required * step_percent / HUNDRED


class _Search:

    def __init__(self, deal, candidates, step, max_nodes, time_limit):
        self.deal = deal
        self.candidates = candidates
        self.step = step
        self.max_nodes = max_nodes
        self.time_limit = time_limit
        self.nodes = 0
        self.started = time.perf_counter()
        self.best_cost = None
        self.best_pairs = None

    def _check_budget(self):
        if self.max_nodes is not None and self.nodes > self.max_nodes:
            raise SearchBudgetExceeded(self.nodes, self.elapsed(), f"{self.max_nodes:,} nodes")
        if self.time_limit is not None and self.nodes % _CLOCK_EVERY == 0:
            if self.elapsed() > self.time_limit:
                raise SearchBudgetExceeded(self.nodes, self.elapsed(), f"{self.time_limit}s")

    def elapsed(self):
        return time.perf_counter() - self.started

    def _amounts(self, remaining):
        amount = Decimal(0)
        while amount < remaining:
            yield amount
            amount += self.step
        yield remaining

    def _complete(self, chosen, cost):
        if not is_valid_allocation(self.deal, entries_from_pairs(chosen)):
            return
        if self.best_cost is None or cost < self.best_cost:
            LOGGER.debug("new best %s after %d nodes: %s", cost, self.nodes,
                         [(c.id, str(amount)) for c, amount in chosen])
            self.best_cost = cost
            self.best_pairs = list(chosen)

    def explore(self, index, remaining, chosen, cost):
        self.nodes += 1
        self._check_budget()

        if self.best_cost is not None and cost >= self.best_cost:
            return
        if remaining <= 0:
            self._complete(chosen, cost)
            return
        if index == len(self.candidates):
            return

        candidate = self.candidates[index]
        for amount in self._amounts(remaining):
            if amount == 0:
                self.explore(index + 1, remaining, chosen, cost)
                continue
            chosen.append((candidate, amount))
            self.explore(index + 1, remaining - amount, chosen, cost + candidate.cost_of(amount))
            chosen.pop()


def solve_backtracking(deal, candidates, step_percent=DEFAULT_STEP_PERCENT,
                       max_nodes=DEFAULT_MAX_NODES, time_limit=DEFAULT_TIME_LIMIT):
    """
    Exhaustively search the step lattice for the cheapest valid allocation.

    Parameters
    ----------
    deal         : RepoDeal
    candidates   : sequence of BorrowCandidate, explored in this order
    step_percent : lattice step as a percentage of the deal value
    max_nodes    : int or None - recursion nodes allowed before giving up
    time_limit   : float or None - seconds allowed before giving up

    Returns
    -------
    AllocationResult with strategy "backtracking"

    Raises
    ------
    UnfulfillableConstraint  if no lattice point satisfies every requirement
    SearchBudgetExceeded     if the node or time budget runs out first
    """
    candidates = tuple(candidates)
    search = _Search(deal, candidates, lattice_step(deal, step_percent), max_nodes, time_limit)
    search.explore(0, deal.total_value_required, [], Decimal(0))

    LOGGER.info("backtracking for deal %s: %d nodes in %.3fs", deal.id, search.nodes, search.elapsed())
    if search.best_pairs is None:
        raise UnfulfillableConstraint(
            deal.id, f"no combination in {to_decimal(step_percent)}% steps satisfies the requirements")

    allocations = tuple(
        Allocation.from_candidate(c, amount, describe_credits(deal, c))
        for c, amount in search.best_pairs
    )
    return AllocationResult(
        deal_id=deal.id,
        total_cost=search.best_cost,
        allocations=allocations,
        strategy="backtracking",
    )
