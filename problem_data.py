"""
Shared problem data for repo borrow cost runs.

main.py falls back to this instance when no CSV files are given, and the
tests use it as a realistic market.
"""

from decimal import Decimal

from repo_models import Bond, BorrowCandidate, RepoDeal

# ---------------------------------------------------------------------------
# OWNED COLLATERAL (inventory only)
# ---------------------------------------------------------------------------
COLLATERAL = [
    Bond("C001", "Treasury",  "AAA", 1_200, Decimal("99.50")),
    Bond("C002", "Municipal", "AA",    800, Decimal("101.25")),
    Bond("C003", "Corporate", "A",     500, Decimal("97.80")),
    Bond("C004", "Corporate", "BBB",   300, Decimal("94.10")),
]

# ---------------------------------------------------------------------------
# EXTERNAL BORROW MARKET (rates in percent)
# ---------------------------------------------------------------------------
BORROW_MARKET = [
    BorrowCandidate("M001", "Treasury",  "AAA", Decimal("1.10")),
    BorrowCandidate("M002", "Municipal", "AAA", Decimal("1.85")),
    BorrowCandidate("M003", "Municipal", "AA",  Decimal("1.40")),
    BorrowCandidate("M004", "Corporate", "A",   Decimal("1.95")),
    BorrowCandidate("M005", "Corporate", "BBB", Decimal("2.60")),
    BorrowCandidate("M006", "Agency",    "AA",  Decimal("1.05")),
    BorrowCandidate("M007", "Corporate", "BB",  Decimal("3.40")),
]

# ---------------------------------------------------------------------------
# REPO DEALS (requirements in percent of total value)
# ---------------------------------------------------------------------------
DEALS = [
    RepoDeal(
        "D001", Decimal(10_000_000),
        rating_requirements={"AAA": Decimal(40), "A": Decimal(10)},
        type_requirements={"Municipal": Decimal(20)},
    ),
    RepoDeal(
        "D002", Decimal(5_000_000),
        rating_requirements={"BBB": Decimal(20), "AA": Decimal(30)},
        type_requirements={"Corporate": Decimal(30)},
    ),
    # Greedy fills AAA with Treasury and Municipal separately, overcommitting;
    # the fallback shares lots of the AAA Municipal bond between both quotas.
    RepoDeal(
        "D003", Decimal(2_000_000),
        rating_requirements={"AAA": Decimal(60)},
        type_requirements={"Municipal": Decimal(60)},
    ),
]
