"""Console reports for loaded inputs and allocation results."""

from allocation_validator import credited_totals, entries_from_allocations, requirement_thresholds


def format_allocation(allocation):
    return (f"Bond {allocation.candidate_id} ({allocation.credit_rating}/{allocation.bond_type} "
            f"@ {allocation.rate}%) -> ${allocation.amount:,.2f} used for "
            f"{sorted(allocation.credited)}")


def print_inventory(bonds):
    print("\n==================== Collateral Bonds ====================")
    for bond in bonds:
        print(f"  {bond.id:8s} {bond.type:12s} {bond.credit_rating:5s} "
              f"qty {bond.quantity:>8,d} @ {bond.price:>9,.2f}  MV ${bond.market_value:>16,.2f}")
    print(f"Loaded {len(bonds)} internal collateral bonds.")


def print_borrow_market(candidates):
    print("\n==================== Borrow Market Bonds ====================")
    for cand in candidates:
        print(f"  {cand.id:8s} {cand.type:12s} {cand.credit_rating:5s} rate {cand.borrow_rate}%")
    print(f"Loaded {len(candidates)} external market bonds.")


def print_deals(deals):
    print("\n==================== Repo Deals ====================")
    for deal in deals:
        ratings = ", ".join(f"{k} {v}%" for k, v in deal.rating_requirements.items()) or "none"
        types = ", ".join(f"{k} {v}%" for k, v in deal.type_requirements.items()) or "none"
        print(f"  {deal.id:8s} ${deal.total_value_required:>16,.2f}  ratings: {ratings}  types: {types}")
    print(f"Loaded {len(deals)} repo deals.")


def print_results(deal, result):
    """Pretty-print one deal's allocation breakdown and requirement coverage."""
    print("=" * 80)
    print(f"ALLOCATION BREAKDOWN FOR DEAL {deal.id}  (strategy: {result.strategy})")
    print("=" * 80)
    for allocation in result.allocations:
        print(f"  {format_allocation(allocation)}")

    ratings, types = requirement_thresholds(deal)
    by_rating, by_type = credited_totals(entries_from_allocations(result.allocations))
    if ratings or types:
        print("\n--- REQUIREMENT COVERAGE ---")
        for kind, thresholds, credited in (("rating", ratings, by_rating), ("type", types, by_type)):
            for label, needed in thresholds.items():
                have = credited.get(label.casefold(), 0)
                print(f"  {kind:6s} {label:12s} required ${needed:>16,.2f}  "
                      f"allocated ${have:>16,.2f}")

    print(f"\n  {'TOTAL allocated':>20s}: ${result.total_allocated:>16,.2f}")
    print(f"  {'Total Borrow Cost':>20s}: ${result.total_cost:>16,.2f}")
    print()


def print_failure(deal, error):
    print(f"Deal {deal.id}: allocation failed ({type(error).__name__}): {error}")
