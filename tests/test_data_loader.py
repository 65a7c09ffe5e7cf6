from decimal import Decimal

import pytest

from allocation_errors import DataLoadError, InvalidDealDefinition
from data_loader import load_bonds, load_borrow_market, load_repo_deals, parse_requirements


def _write(tmp_path, name, text):
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return str(path)


def test_load_bonds(tmp_path) -> None:
    path = _write(tmp_path, "collateral.csv",
                  "id,bondType,creditRating,quantity,price\n"
                  "C1, Treasury, AAA, 100, 99.50\n"
                  "C2,Municipal,AA,5,101.125\n")
    bonds = load_bonds(path)
    assert [b.id for b in bonds] == ["C1", "C2"]
    assert bonds[0].type == "Treasury"
    assert bonds[0].quantity == 100
    assert bonds[1].price == Decimal("101.125")


def test_load_borrow_market_keeps_exact_rates(tmp_path) -> None:
    path = _write(tmp_path, "market.csv",
                  "id,bondType,creditRating,borrowRate\n"
                  "M1,Municipal,AAA,1.10\n"
                  "M2,Corporate,BBB,2.6\n")
    market = load_borrow_market(path)
    assert market[0].borrow_rate == Decimal("1.10")
    assert str(market[0].borrow_rate) == "1.10"
    assert market[1].credit_rating == "BBB"


def test_load_repo_deals(tmp_path) -> None:
    path = _write(tmp_path, "deals.csv",
                  "id,totalValueRequired,ratingRequirements,typeRequirements\n"
                  "D1,1000000,AAA:30;AA:10,Municipal:20\n"
                  "D2,500000,,\n")
    deals = load_repo_deals(path)
    assert deals[0].required_value_for_rating("AAA") == Decimal(300_000)
    assert dict(deals[0].type_requirements) == {"Municipal": Decimal(20)}
    assert dict(deals[1].rating_requirements) == {}


def test_missing_columns(tmp_path) -> None:
    path = _write(tmp_path, "market.csv", "id,bondType,borrowRate\nM1,Municipal,1.1\n")
    with pytest.raises(DataLoadError, match="creditRating"):
        load_borrow_market(path)


def test_bad_number_names_the_row(tmp_path) -> None:
    path = _write(tmp_path, "market.csv",
                  "id,bondType,creditRating,borrowRate\n"
                  "M1,Municipal,AAA,1.10\n"
                  "M2,Corporate,BBB,cheap\n")
    with pytest.raises(DataLoadError) as excinfo:
        load_borrow_market(path)
    assert excinfo.value.row == 3
    assert "borrowRate" in str(excinfo.value)


def test_negative_values_are_rejected(tmp_path) -> None:
    path = _write(tmp_path, "market.csv",
                  "id,bondType,creditRating,borrowRate\nM1,Municipal,AAA,-1\n")
    with pytest.raises(DataLoadError, match="non-negative"):
        load_borrow_market(path)
    path = _write(tmp_path, "collateral.csv",
                  "id,bondType,creditRating,quantity,price\nC1,Treasury,AAA,-4,99\n")
    with pytest.raises(DataLoadError, match="quantity"):
        load_bonds(path)


def test_empty_label_is_rejected(tmp_path) -> None:
    path = _write(tmp_path, "market.csv",
                  "id,bondType,creditRating,borrowRate\nM1,,AAA,1.0\n")
    with pytest.raises(DataLoadError, match="bondType"):
        load_borrow_market(path)


def test_invalid_deal_percentages(tmp_path) -> None:
    path = _write(tmp_path, "deals.csv",
                  "id,totalValueRequired,ratingRequirements,typeRequirements\n"
                  "D1,1000,AAA:60;AA:50,\n")
    with pytest.raises(InvalidDealDefinition):
        load_repo_deals(path)


def test_malformed_requirement_cell(tmp_path) -> None:
    path = _write(tmp_path, "deals.csv",
                  "id,totalValueRequired,ratingRequirements,typeRequirements\n"
                  "D1,1000,AAA=60,\n")
    with pytest.raises(DataLoadError) as excinfo:
        load_repo_deals(path)
    assert excinfo.value.row == 2


def test_missing_file(tmp_path) -> None:
    with pytest.raises(DataLoadError, match="cannot read"):
        load_bonds(str(tmp_path / "nope.csv"))


def test_parse_requirements() -> None:
    assert parse_requirements("") == {}
    assert parse_requirements(" AAA : 30 ; AA:12.5 ;") == {"AAA": Decimal(30), "AA": Decimal("12.5")}
    with pytest.raises(ValueError):
        parse_requirements("AAA:lots")
    with pytest.raises(ValueError):
        parse_requirements(":30")


def test_non_finite_requirement_is_rejected(tmp_path) -> None:
    path = _write(tmp_path, "deals.csv",
                  "id,totalValueRequired,ratingRequirements,typeRequirements\n"
                  "D1,1000,AAA:nan,\n")
    with pytest.raises(DataLoadError, match="finite") as excinfo:
        load_repo_deals(path)
    assert excinfo.value.row == 2
    with pytest.raises(ValueError):
        parse_requirements("AA:Infinity")


def test_non_ascii_quantity_is_rejected(tmp_path) -> None:
    path = _write(tmp_path, "collateral.csv",
                  "id,bondType,creditRating,quantity,price\nC1,Treasury,AAA,²,99\n")
    with pytest.raises(DataLoadError, match="quantity"):
        load_bonds(path)


def test_errors_report_the_given_path(tmp_path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    _write(tmp_path, "market.csv", "id,bondType,borrowRate\nM1,Municipal,1.1\n")
    with pytest.raises(DataLoadError) as excinfo:
        load_borrow_market("market.csv")
    assert excinfo.value.path == "market.csv"
