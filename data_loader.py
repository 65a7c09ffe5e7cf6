"""CSV loading for collateral, borrow market and repo deal files."""

import logging
from decimal import Decimal, InvalidOperation

import pandas as pd

from allocation_errors import DataLoadError, InvalidDealDefinition
from repo_models import Bond, BorrowCandidate, RepoDeal

LOGGER = logging.getLogger(__name__)

BOND_COLUMNS = ["id", "bondType", "creditRating", "quantity", "price"]
MARKET_COLUMNS = ["id", "bondType", "creditRating", "borrowRate"]
DEAL_COLUMNS = ["id", "totalValueRequired", "ratingRequirements", "typeRequirements"]


def _read_frame(path, columns):
    try:
        # strings only: numbers go through Decimal, never float
        frame = pd.read_csv(path, dtype=str, keep_default_na=False, skipinitialspace=True)
    except (OSError, pd.errors.ParserError, pd.errors.EmptyDataError) as exc:
        raise DataLoadError(path, f"cannot read CSV ({exc})") from exc
    frame.columns = [str(col).strip() for col in frame.columns]
    missing = [col for col in columns if col not in frame.columns]
    if missing:
        raise DataLoadError(path, f"missing columns: {', '.join(missing)}")
    return frame


def _rows(frame):
    # row numbers as seen in the file (header is line 1)
    for idx, row in frame.iterrows():
        yield int(idx) + 2, {key: str(value).strip() for key, value in row.items()}


def _label(path, row_num, value, column):
    if not value:
        raise DataLoadError(path, f"empty {column}", row=row_num)
    return value


def _decimal(path, row_num, value, column):
    try:
        number = Decimal(value)
    except InvalidOperation:
        raise DataLoadError(path, f"{column} is not a number: {value!r}", row=row_num) from None
    if not number.is_finite() or number < 0:
        raise DataLoadError(path, f"{column} must be a non-negative number: {value!r}", row=row_num)
    return number


def parse_requirements(text):
    """
    Parse "AAA:30;AA:20" into {"AAA": Decimal("30"), "AA": Decimal("20")}.

    An empty string means no requirements.  Raises ValueError on malformed
    pairs.
    """
    requirements = {}
    for part in text.split(";"):
        part = part.strip()
        if not part:
            continue
        label, sep, pct = part.partition(":")
        label = label.strip()
        if not sep or not label:
            raise ValueError(f"expected LABEL:PERCENT, got {part!r}")
        try:
            value = Decimal(pct.strip())
        except InvalidOperation:
            raise ValueError(f"percentage for {label} is not a number: {pct!r}") from None
        if not value.is_finite():
            raise ValueError(f"percentage for {label} must be finite: {pct!r}")
        requirements[label] = value
    return requirements


def load_bonds(path):
    frame = _read_frame(path, BOND_COLUMNS)
    bonds = []
    for row_num, row in _rows(frame):
        quantity = row["quantity"]
        if not (quantity.isascii() and quantity.isdigit()):
            raise DataLoadError(path, f"quantity must be a non-negative integer: {quantity!r}", row=row_num)
        bonds.append(Bond(
            id=_label(path, row_num, row["id"], "id"),
            type=_label(path, row_num, row["bondType"], "bondType"),
            credit_rating=_label(path, row_num, row["creditRating"], "creditRating"),
            quantity=int(quantity),
            price=_decimal(path, row_num, row["price"], "price"),
        ))
    LOGGER.info("loaded %d collateral bonds from %s", len(bonds), path)
    return bonds


def load_borrow_market(path):
    frame = _read_frame(path, MARKET_COLUMNS)
    candidates = []
    for row_num, row in _rows(frame):
        candidates.append(BorrowCandidate(
            id=_label(path, row_num, row["id"], "id"),
            type=_label(path, row_num, row["bondType"], "bondType"),
            credit_rating=_label(path, row_num, row["creditRating"], "creditRating"),
            borrow_rate=_decimal(path, row_num, row["borrowRate"], "borrowRate"),
        ))
    LOGGER.info("loaded %d borrow market bonds from %s", len(candidates), path)
    return candidates


def load_repo_deals(path):
    """
    Load repo deals.  Requirement cells use parse_requirements() syntax.

    Malformed cells raise DataLoadError; percentages that break the deal
    rules raise InvalidDealDefinition from the RepoDeal constructor.
    """
    frame = _read_frame(path, DEAL_COLUMNS)
    deals = []
    for row_num, row in _rows(frame):
        deal_id = _label(path, row_num, row["id"], "id")
        total = _decimal(path, row_num, row["totalValueRequired"], "totalValueRequired")
        try:
            ratings = parse_requirements(row["ratingRequirements"])
            types = parse_requirements(row["typeRequirements"])
        except ValueError as exc:
            raise DataLoadError(path, str(exc), row=row_num) from exc
        try:
            deals.append(RepoDeal(deal_id, total, ratings, types))
        except InvalidDealDefinition:
            LOGGER.error("rejected deal %s at %s row %d", deal_id, path, row_num)
            raise
    LOGGER.info("loaded %d repo deals from %s", len(deals), path)
    return deals
