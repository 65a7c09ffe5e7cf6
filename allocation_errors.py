"""
Allocation failures
===================

Every way an allocation attempt can fail is a distinct exception so the
caller can tell "no bond of that rating exists" apart from "the heuristic
overcommitted" apart from "the search ran out of budget".

  MissingSupply            - no candidate bears a required label (fatal)
  UnfulfillableConstraint  - a strategy could not certify a valid allocation
                             (recoverable once: triggers the fallback search)
  InvalidDealDefinition    - bad requirement percentages, raised when the
                             deal is built
  SearchBudgetExceeded     - fallback search hit its node / time cap (fatal)
  DataLoadError            - malformed CSV input (loader only)
"""


class AllocationError(Exception):
    """Base class for every allocation failure."""


class MissingSupply(AllocationError):
    """No borrow candidate exists for a required rating or type."""

    def __init__(self, label, kind="rating"):
        self.label = label
        self.kind = kind
        if kind == "any":
            message = "Borrow market is empty"
        else:
            message = f"No bond found for {kind}: {label}"
        super().__init__(message)


class UnfulfillableConstraint(AllocationError):
    """A complete strategy ran but produced no valid, non-overcommitted allocation."""

    def __init__(self, deal_id, reason):
        self.deal_id = deal_id
        self.reason = reason
        super().__init__(f"Deal {deal_id}: {reason}")


class InvalidDealDefinition(AllocationError, ValueError):
    """Requirement percentages are negative, above 100, or sum above 100."""

    def __init__(self, deal_id, reason):
        self.deal_id = deal_id
        self.reason = reason
        super().__init__(f"Invalid rating/type requirement proportions in RepoDeal {deal_id}: {reason}")


class SearchBudgetExceeded(AllocationError):
    """The fallback search explored more nodes (or time) than allowed."""

    def __init__(self, nodes, elapsed, limit):
        self.nodes = nodes
        self.elapsed = elapsed
        self.limit = limit
        super().__init__(
            f"Search budget exceeded after {nodes:,} nodes in {elapsed:.2f}s (limit: {limit})"
        )


class DataLoadError(AllocationError, ValueError):
    """A CSV file is missing columns or holds a malformed row."""

    def __init__(self, path, reason, row=None):
        self.path = str(path)
        self.row = row
        self.reason = reason
        where = f"{self.path}" if row is None else f"{self.path}, row {row}"
        super().__init__(f"{where}: {reason}")
