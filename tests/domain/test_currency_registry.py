"""Currency registry and minor-unit rounding."""

from decimal import Decimal

import pytest

from purchase_ledger.domain.currency import CurrencyRegistry, round_to_minor_unit
from purchase_ledger.exceptions import InvalidCurrencyError


class TestCurrencyRegistry:

    def test_krw_has_no_decimals(self):
        assert CurrencyRegistry.get_decimal_places("KRW") == 0

    def test_usd_has_two_decimals(self):
        assert CurrencyRegistry.get_decimal_places("USD") == 2

    def test_validate_normalizes_case(self):
        assert CurrencyRegistry.validate(" krw ") == "KRW"

    @pytest.mark.parametrize("code", ["", None, "XXX", "KRWW"])
    def test_validate_rejects_unknown(self, code):
        with pytest.raises(InvalidCurrencyError):
            CurrencyRegistry.validate(code)

    def test_is_valid(self):
        assert CurrencyRegistry.is_valid("EUR")
        assert not CurrencyRegistry.is_valid("ABC")


class TestRoundToMinorUnit:

    @pytest.mark.parametrize(
        "amount,currency,expected",
        [
            ("1234.5", "KRW", "1235"),
            ("1234.49", "KRW", "1234"),
            ("0.5", "KRW", "1"),
            ("10.005", "USD", "10.01"),
            ("10.004", "USD", "10.00"),
            ("1.2345", "KWD", "1.235"),
        ],
    )
    def test_half_up(self, amount, currency, expected):
        assert round_to_minor_unit(Decimal(amount), currency) == Decimal(expected)
