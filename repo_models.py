"""
Domain records for repo collateral borrowing
=============================================

  Bond             - owned collateral (inventory only)
  BorrowCandidate  - a bond obtainable from the external borrow market
  RepoDeal         - a repo agreement and its rating / type requirements
  Allocation       - one slice of borrowed value credited to requirements
  AllocationResult - what the engine hands back: cost + breakdown

All money is decimal.Decimal.  Records are frozen; the engine keeps its own
working state per call and never writes back onto a deal.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from types import MappingProxyType

from allocation_errors import InvalidDealDefinition

HUNDRED = Decimal(100)
UNCONSTRAINED = "Unconstrained"


def to_decimal(value):
    """Coerce int / str / float / Decimal to Decimal (floats via their repr)."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(value)


def same_label(a, b):
    return a.casefold() == b.casefold()


def _lookup(mapping, label):
    for key, value in mapping.items():
        if same_label(key, label):
            return value
    return Decimal(0)


@dataclass(frozen=True)
class Bond:
    id: str
    type: str
    credit_rating: str
    quantity: int
    price: Decimal

    def __post_init__(self):
        object.__setattr__(self, "price", to_decimal(self.price))
        if self.quantity < 0 or not self.price.is_finite() or self.price < 0:
            raise ValueError(f"Bond {self.id}: quantity and price must be non-negative")

    @property
    def market_value(self):
        return self.price * self.quantity


@dataclass(frozen=True)
class BorrowCandidate:
    id: str
    type: str
    credit_rating: str
    borrow_rate: Decimal  # percent, 1.75 means 1.75%

    def __post_init__(self):
        object.__setattr__(self, "borrow_rate", to_decimal(self.borrow_rate))
        if not self.borrow_rate.is_finite() or self.borrow_rate < 0:
            raise ValueError(f"BorrowCandidate {self.id}: borrow rate must be a non-negative number")

    def cost_of(self, amount):
        return self.borrow_rate / HUNDRED * amount


@dataclass(frozen=True)
class RepoDeal:
    """
    A repo agreement needing `total_value_required` of collateral.

    rating_requirements / type_requirements map a label to the minimum
    percentage (0-100) of the total that must come from bonds carrying it.
    The two maps are independent: one bond can count towards both.
    """

    id: str
    total_value_required: Decimal
    rating_requirements: dict = field(default_factory=dict)
    type_requirements: dict = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "total_value_required", to_decimal(self.total_value_required))
        object.__setattr__(self, "rating_requirements", MappingProxyType(
            {k: to_decimal(v) for k, v in self.rating_requirements.items()}))
        object.__setattr__(self, "type_requirements", MappingProxyType(
            {k: to_decimal(v) for k, v in self.type_requirements.items()}))
        self.validate()

    def required_value_for_rating(self, rating):
        return self.total_value_required * _lookup(self.rating_requirements, rating) / HUNDRED

    def required_value_for_type(self, bond_type):
        return self.total_value_required * _lookup(self.type_requirements, bond_type) / HUNDRED

    def validate(self):
        if not self.total_value_required.is_finite() or self.total_value_required <= 0:
            raise InvalidDealDefinition(self.id, "total value required must be positive")
        for kind, requirements in (("rating", self.rating_requirements),
                                   ("type", self.type_requirements)):
            for label, pct in requirements.items():
                if not label or not label.strip():
                    raise InvalidDealDefinition(self.id, f"empty {kind} label")
                if not pct.is_finite() or pct < 0 or pct > HUNDRED:
                    raise InvalidDealDefinition(self.id, f"{kind} {label} at {pct}% is outside [0, 100]")
            total = sum(requirements.values(), Decimal(0))
            if total > HUNDRED:
                raise InvalidDealDefinition(self.id, f"{kind} requirements sum to {total}%")


@dataclass(frozen=True)
class Allocation:
    candidate_id: str
    bond_type: str
    credit_rating: str
    rate: Decimal
    amount: Decimal
    credited: frozenset

    @classmethod
    def from_candidate(cls, candidate, amount, credited):
        return cls(
            candidate_id=candidate.id,
            bond_type=candidate.type,
            credit_rating=candidate.credit_rating,
            rate=candidate.borrow_rate,
            amount=amount,
            credited=frozenset(credited),
        )

    @property
    def cost(self):
        return self.rate / HUNDRED * self.amount


@dataclass(frozen=True)
class AllocationResult:
    deal_id: str
    total_cost: Decimal
    allocations: tuple
    strategy: str

    @property
    def total_allocated(self):
        return sum((a.amount for a in self.allocations), Decimal(0))
