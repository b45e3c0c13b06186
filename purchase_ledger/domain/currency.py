"""Currency -- ISO 4217 registry and minor-unit rounding for ledger amounts."""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import ClassVar

from purchase_ledger.exceptions import InvalidCurrencyError


@dataclass(frozen=True)
class CurrencyInfo:
    """Information about a single ISO 4217 currency."""

    code: str
    decimal_places: int
    name: str

    @property
    def minor_unit(self) -> Decimal:
        """Smallest representable amount, e.g. Decimal("0.01") for USD."""
        return Decimal(1).scaleb(-self.decimal_places)


class CurrencyRegistry:
    """Registry of the ISO 4217 currencies the ledger accepts."""

    _CURRENCIES: ClassVar[dict[str, CurrencyInfo]] = {
        # Zero decimal currencies
        "KRW": CurrencyInfo("KRW", 0, "South Korean Won"),
        "JPY": CurrencyInfo("JPY", 0, "Japanese Yen"),
        "VND": CurrencyInfo("VND", 0, "Vietnamese Dong"),
        "CLP": CurrencyInfo("CLP", 0, "Chilean Peso"),
        "ISK": CurrencyInfo("ISK", 0, "Icelandic Krona"),
        # Two decimal currencies
        "USD": CurrencyInfo("USD", 2, "US Dollar"),
        "EUR": CurrencyInfo("EUR", 2, "Euro"),
        "GBP": CurrencyInfo("GBP", 2, "Pound Sterling"),
        "CHF": CurrencyInfo("CHF", 2, "Swiss Franc"),
        "CAD": CurrencyInfo("CAD", 2, "Canadian Dollar"),
        "AUD": CurrencyInfo("AUD", 2, "Australian Dollar"),
        "NZD": CurrencyInfo("NZD", 2, "New Zealand Dollar"),
        "CNY": CurrencyInfo("CNY", 2, "Chinese Yuan"),
        "HKD": CurrencyInfo("HKD", 2, "Hong Kong Dollar"),
        "SGD": CurrencyInfo("SGD", 2, "Singapore Dollar"),
        "INR": CurrencyInfo("INR", 2, "Indian Rupee"),
        "SEK": CurrencyInfo("SEK", 2, "Swedish Krona"),
        "NOK": CurrencyInfo("NOK", 2, "Norwegian Krone"),
        "DKK": CurrencyInfo("DKK", 2, "Danish Krone"),
        "TWD": CurrencyInfo("TWD", 2, "New Taiwan Dollar"),
        # Three decimal currencies
        "BHD": CurrencyInfo("BHD", 3, "Bahraini Dinar"),
        "KWD": CurrencyInfo("KWD", 3, "Kuwaiti Dinar"),
        "JOD": CurrencyInfo("JOD", 3, "Jordanian Dinar"),
    }

    @classmethod
    def is_valid(cls, code: str | None) -> bool:
        """Check if a currency code is known."""
        if not code or not isinstance(code, str):
            return False
        return code.upper().strip() in cls._CURRENCIES

    @classmethod
    def validate(cls, code: str | None) -> str:
        """Validate and normalize a currency code.

        Raises:
            InvalidCurrencyError: If the code is empty or unknown.
        """
        if not code or not isinstance(code, str):
            raise InvalidCurrencyError(str(code))
        normalized = code.upper().strip()
        if normalized not in cls._CURRENCIES:
            raise InvalidCurrencyError(code)
        return normalized

    @classmethod
    def get_info(cls, code: str) -> CurrencyInfo:
        return cls._CURRENCIES[cls.validate(code)]

    @classmethod
    def get_decimal_places(cls, code: str) -> int:
        return cls.get_info(code).decimal_places

    @classmethod
    def all_codes(cls) -> frozenset[str]:
        """Get all valid currency codes."""
        return frozenset(cls._CURRENCIES.keys())


def round_to_minor_unit(amount: Decimal, currency: str) -> Decimal:
    """Round half-up to the currency's minor unit (integer won for KRW)."""
    info = CurrencyRegistry.get_info(currency)
    return amount.quantize(info.minor_unit, rounding=ROUND_HALF_UP)
