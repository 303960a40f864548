from decimal import Decimal

from utils import mask_email, money, to_decimal


def test_to_decimal_parses_and_rounds():
    assert to_decimal("10.005") == Decimal("10.01")
    assert to_decimal(12) == Decimal("12.00")
    assert to_decimal(" 7.5 ") == Decimal("7.50")


def test_to_decimal_rejects_unusable_values():
    for value in (None, True, "", "abc", "NaN", "Infinity", "-inf", [1]):
        assert to_decimal(value) is None


def test_to_decimal_rejects_amounts_too_large_to_store():
    assert to_decimal("1e30") is None
    assert to_decimal("1" + "0" * 40) is None
    assert to_decimal("-1e16") is None
    assert to_decimal("10000000000000000") is None
    assert to_decimal("9999999999999999.99") == Decimal("9999999999999999.99")


def test_money_defaults_to_zero():
    assert money(None) == Decimal("0.00")
    assert money("3.456") == Decimal("3.46")


def test_mask_email():
    assert mask_email("john.doe@example.com") == "jo***@example.com"
    assert mask_email("ab@x.com") == "ab***@x.com"
    assert mask_email("a@x.com") == "a***@x.com"
    assert mask_email("") == ""
