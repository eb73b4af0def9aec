from decimal import Decimal

from utils.parsing import Defaulted, Ok, parse_decimal, parse_optional_decimal, parse_quantity


def test_parse_decimal_accepts_numbers_and_numeric_strings():
    assert parse_decimal(12) == Ok(Decimal("12"))
    assert parse_decimal("1,250.50") == Ok(Decimal("1250.50"))
    assert parse_decimal(0.1).value == Decimal("0.1")
    assert parse_decimal(Decimal("3.25")).value == Decimal("3.25")


def test_parse_decimal_defaults_instead_of_raising():
    for raw in ("abc", None, "", "   ", [], {}, True, float("nan"), float("inf"), "NaN"):
        result = parse_decimal(raw)
        assert isinstance(result, Defaulted), raw
        assert result.value == Decimal("0")
        assert result.defaulted


def test_parse_decimal_rejects_negative_money():
    result = parse_decimal("-5")
    assert isinstance(result, Defaulted)
    assert result.reason == "negative"
    assert result.raw == "-5"


def test_parse_quantity_truncates_and_defaults():
    assert parse_quantity("25") == Ok(25)
    assert parse_quantity(2.9) == Ok(2)
    assert parse_quantity("x").value == 0
    assert parse_quantity(-3).defaulted
    assert not parse_quantity(7).defaulted


def test_parse_optional_decimal_keeps_missing_as_none():
    assert parse_optional_decimal(None) == Ok(None)
    assert parse_optional_decimal("18") == Ok(Decimal("18"))
    assert parse_optional_decimal("bad").value is None
