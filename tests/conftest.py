from decimal import Decimal

import pytest

from repo_models import BorrowCandidate, RepoDeal


@pytest.fixture
def scenario_deal() -> RepoDeal:
    return RepoDeal(
        "R1", Decimal(1_000_000),
        rating_requirements={"AAA": Decimal(30)},
        type_requirements={"Municipal": Decimal(20)},
    )


@pytest.fixture
def scenario_market() -> list[BorrowCandidate]:
    return [
        BorrowCandidate("A1", "Municipal", "AAA", Decimal("1.5")),
        BorrowCandidate("A2", "Corporate", "BBB", Decimal("2.0")),
        BorrowCandidate("A3", "Municipal", "A", Decimal("1.0")),
    ]


@pytest.fixture
def overlap_deal() -> RepoDeal:
    # 60% + 60%: only an AAA municipal bond can count towards both
    return RepoDeal(
        "R2", Decimal(1_000_000),
        rating_requirements={"AAA": Decimal(60)},
        type_requirements={"Municipal": Decimal(60)},
    )


@pytest.fixture
def overlap_market() -> list[BorrowCandidate]:
    return [
        BorrowCandidate("C1", "Corporate", "AAA", Decimal("1.0")),
        BorrowCandidate("M1", "Municipal", "A", Decimal("1.0")),
        BorrowCandidate("X1", "Municipal", "AAA", Decimal("2.0")),
    ]
