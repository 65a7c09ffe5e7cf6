"""
Requirement checks shared by every allocation strategy.

Thresholds are always recomputed from the deal's original percentage maps so a
strategy's own working state can never leak into the verdict.  An entry is a
(credit_rating, bond_type, amount) triple.
"""

from decimal import Decimal

from repo_models import HUNDRED, UNCONSTRAINED, same_label


def requirement_thresholds(deal):
    """Dollar thresholds per rating and per type, percentages of 0 left out."""
    total = deal.total_value_required
    ratings = {label: total * pct / HUNDRED
               for label, pct in deal.rating_requirements.items() if pct > 0}
    types = {label: total * pct / HUNDRED
             for label, pct in deal.type_requirements.items() if pct > 0}
    return ratings, types


def entries_from_allocations(allocations):
    return [(a.credit_rating, a.bond_type, a.amount) for a in allocations]


def entries_from_pairs(pairs):
    return [(c.credit_rating, c.type, amount) for c, amount in pairs]


def credited_totals(entries):
    """Sum allocated amounts per case-folded rating and per case-folded type."""
    by_rating = {}
    by_type = {}
    for rating, bond_type, amount in entries:
        r, t = rating.casefold(), bond_type.casefold()
        by_rating[r] = by_rating.get(r, Decimal(0)) + amount
        by_type[t] = by_type.get(t, Decimal(0)) + amount
    return by_rating, by_type


def unmet_requirements(deal, entries):
    """Return [(kind, label, shortfall)] for every threshold the entries miss."""
    ratings, types = requirement_thresholds(deal)
    by_rating, by_type = credited_totals(entries)
    unmet = []
    for kind, thresholds, credited in (("rating", ratings, by_rating),
                                       ("type", types, by_type)):
        for label, needed in thresholds.items():
            have = credited.get(label.casefold(), Decimal(0))
            if have < needed:
                unmet.append((kind, label, needed - have))
    return unmet


def is_valid_allocation(deal, entries):
    entries = list(entries)
    allocated = sum((amount for _, _, amount in entries), Decimal(0))
    if allocated != deal.total_value_required:
        return False
    return not unmet_requirements(deal, entries)


def allocation_cost(pairs):
    """Exact Decimal cost of (candidate, amount) pairs."""
    return sum((c.cost_of(amount) for c, amount in pairs), Decimal(0))


def describe_credits(deal, candidate):
    """Requirement labels a candidate counts towards, or {"Unconstrained"}."""
    ratings, types = requirement_thresholds(deal)
    labels = {label for label in ratings if same_label(label, candidate.credit_rating)}
    labels |= {label for label in types if same_label(label, candidate.type)}
    return labels or {UNCONSTRAINED}
