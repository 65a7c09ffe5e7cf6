"""
Primary strategy - low-to-high credit rating greedy fill
=========================================================

Fills a repo deal's requirements in three passes:

  1. RATINGS - walk the credit scale from weakest to strongest.  Each rating
     with outstanding need is filled in one block by the cheapest bond of that
     rating.  If that bond's type also has outstanding need, the same dollars
     reduce the type need (floored at zero).

  2. TYPES - every type still short is filled in one block by the cheapest
     bond of that type.

  3. UNCONSTRAINED - whatever deal value is still uncovered goes to the
     cheapest bond in the whole market.

The passes never split a requirement across bonds, so they can overcommit
(e.g. 60% AAA + 60% Municipal with no AAA municipal available).  Such a
result is rejected with UnfulfillableConstraint and the caller may fall back
to the exhaustive search.

Ties on rate go to the first candidate in market order.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal

from allocation_errors import MissingSupply, UnfulfillableConstraint
from repo_models import HUNDRED, UNCONSTRAINED, Allocation, AllocationResult, same_label

LOGGER = logging.getLogger(__name__)

# Weakest to strongest.
RATING_ORDER = ("B", "BB", "BBB", "A", "AA", "AAA")


@dataclass
class _GreedyState:
    """Working bookkeeping for one call; never stored on the deal."""

    remaining: Decimal
    rating_left: dict
    type_left: dict
    allocations: list = field(default_factory=list)

    def allocate(self, candidate, amount, credited):
        self.allocations.append(Allocation.from_candidate(candidate, amount, credited))
        self.remaining -= amount
        LOGGER.debug("allocated %s to %s (%s/%s @ %s%%) for %s", amount, candidate.id,
                     candidate.credit_rating, candidate.type, candidate.borrow_rate,
                     sorted(credited))


def _cheapest(candidates, predicate=None):
    # min() keeps the first of equal keys, which gives the market-order tie-break
    pool = [c for c in candidates if predicate is None or predicate(c)]
    if not pool:
        return None
    return min(pool, key=lambda c: c.borrow_rate)


def _matching_key(mapping, label):
    for key in mapping:
        if same_label(key, label):
            return key
    return None


def _check_supply(deal, candidates):
    # a label nobody carries can never be met, by this pass or the fallback
    for kind, requirements, attr in (("rating", deal.rating_requirements, "credit_rating"),
                                     ("type", deal.type_requirements, "type")):
        for label, pct in requirements.items():
            if pct > 0 and _cheapest(candidates, lambda c: same_label(getattr(c, attr), label)) is None:
                raise MissingSupply(label, kind)


def _start_state(deal):
    total = deal.total_value_required
    return _GreedyState(
        remaining=total,
        rating_left={k: total * v / HUNDRED for k, v in deal.rating_requirements.items()},
        type_left={k: total * v / HUNDRED for k, v in deal.type_requirements.items()},
    )


def _fill_ratings(state, candidates, rating_order):
    for rating in rating_order:
        key = _matching_key(state.rating_left, rating)
        if key is None or state.rating_left[key] <= 0:
            continue
        needed = state.rating_left[key]

        bond = _cheapest(candidates, lambda c: same_label(c.credit_rating, rating))
        if bond is None:
            raise MissingSupply(key, "rating")

        credited = {key}
        type_key = _matching_key(state.type_left, bond.type)
        if type_key is not None and state.type_left[type_key] > 0:
            # overlap credit: the same dollars count against the type quota
            state.type_left[type_key] = max(state.type_left[type_key] - needed, Decimal(0))
            credited.add(type_key)

        state.rating_left[key] = Decimal(0)
        state.allocate(bond, needed, credited)


def _fill_types(state, candidates):
    for bond_type, needed in state.type_left.items():
        if needed <= 0:
            continue
        bond = _cheapest(candidates, lambda c: same_label(c.type, bond_type))
        if bond is None:
            raise MissingSupply(bond_type, "type")
        state.type_left[bond_type] = Decimal(0)
        state.allocate(bond, needed, {bond_type})


def _fill_unconstrained(state, candidates):
    if state.remaining <= 0:
        return
    bond = _cheapest(candidates)
    if bond is None:
        raise MissingSupply(UNCONSTRAINED, "any")
    state.allocate(bond, state.remaining, {UNCONSTRAINED})


def solve_greedy(deal, candidates, rating_order=RATING_ORDER):
    """
    Run the three greedy passes for one deal.

    Parameters
    ----------
    deal         : RepoDeal
    candidates   : sequence of BorrowCandidate (not modified)
    rating_order : credit ratings from weakest to strongest.  Rating
                   requirements outside this order (with supply) are left
                   to the fallback.

    Returns
    -------
    AllocationResult with strategy "greedy"

    Raises
    ------
    MissingSupply            if a required label has no candidate at all,
                             checked for every label before any pass runs
    UnfulfillableConstraint  if a quota is left unmet or value is overcommitted
    """
    candidates = tuple(candidates)
    _check_supply(deal, candidates)
    state = _start_state(deal)

    _fill_ratings(state, candidates, rating_order)
    _fill_types(state, candidates)
    _fill_unconstrained(state, candidates)

    unmet = [label for label, left in list(state.rating_left.items()) + list(state.type_left.items())
             if left > 0]
    if unmet and state.remaining <= 0:
        raise UnfulfillableConstraint(
            deal.id, f"deal value exhausted with requirements unmet: {', '.join(unmet)}")

    allocated = sum((a.amount for a in state.allocations), Decimal(0))
    if allocated > deal.total_value_required:
        raise UnfulfillableConstraint(
            deal.id, f"allocated {allocated} exceeds required {deal.total_value_required}")

    total_cost = sum((a.cost for a in state.allocations), Decimal(0))
    LOGGER.info("greedy allocation for deal %s: %d slices, cost %s",
                deal.id, len(state.allocations), total_cost)
    return AllocationResult(
        deal_id=deal.id,
        total_cost=total_cost,
        allocations=tuple(state.allocations),
        strategy="greedy",
    )
