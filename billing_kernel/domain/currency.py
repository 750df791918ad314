"""Currency -- ISO 4217 registry and peso display formatting."""

import re
from dataclasses import dataclass
from decimal import Decimal
from typing import ClassVar


@dataclass(frozen=True)
class CurrencyInfo:
    """Information about a single ISO 4217 currency."""

    code: str
    decimal_places: int
    name: str

    @property
    def quantize_string(self) -> str:
        """String for Decimal.quantize() to round to this currency's precision."""
        if self.decimal_places == 0:
            return "1"
        return "0." + "0" * self.decimal_places


class CurrencyRegistry:
    """Registry of the currencies a utility can bill in, with their minor units."""

    _CURRENCIES: ClassVar[dict[str, CurrencyInfo]] = {
        "CLP": CurrencyInfo("CLP", 0, "Chilean Peso"),
        "CLF": CurrencyInfo("CLF", 4, "Chilean Unidad de Fomento"),
        "ARS": CurrencyInfo("ARS", 2, "Argentine Peso"),
        "BOB": CurrencyInfo("BOB", 2, "Boliviano"),
        "COP": CurrencyInfo("COP", 2, "Colombian Peso"),
        "MXN": CurrencyInfo("MXN", 2, "Mexican Peso"),
        "PEN": CurrencyInfo("PEN", 2, "Peruvian Sol"),
        "PYG": CurrencyInfo("PYG", 0, "Paraguayan Guarani"),
        "UYU": CurrencyInfo("UYU", 2, "Uruguayan Peso"),
        "USD": CurrencyInfo("USD", 2, "US Dollar"),
        "EUR": CurrencyInfo("EUR", 2, "Euro"),
    }

    @classmethod
    def is_valid(cls, code: str) -> bool:
        return code in cls._CURRENCIES

    @classmethod
    def get_info(cls, code: str) -> CurrencyInfo | None:
        return cls._CURRENCIES.get(code)

    @classmethod
    def get_decimal_places(cls, code: str) -> int:
        """Decimal places for a currency code.

        Raises:
            ValueError: If the code is not registered.
        """
        info = cls._CURRENCIES.get(code)
        if info is None:
            raise ValueError(f"Unknown currency code: {code}")
        return info.decimal_places

    @classmethod
    def all_codes(cls) -> frozenset[str]:
        return frozenset(cls._CURRENCIES)


# ---------------------------------------------------------------------------
# Peso display format: "$1.234.567", "-$5.000"
# ---------------------------------------------------------------------------

_CLP_STRIP = re.compile(r"[$.\s]")


def format_clp(amount: Decimal | int) -> str:
    """Format a whole-peso amount the way boletas print it.

    Dots group thousands, no decimals, ``$`` prefix after the sign.
    Fractions are rounded half-up first.
    """
    from billing_kernel.domain.values import round_half_up

    value = int(round_half_up(Decimal(amount)))
    grouped = f"{abs(value):,}".replace(",", ".")
    sign = "-" if value < 0 else ""
    return f"{sign}${grouped}"


def parse_clp(text: str) -> int:
    """Parse a peso string like ``"$1.234.567"`` back to an integer.

    Returns 0 for text that is not a number.
    """
    cleaned = _CLP_STRIP.sub("", text or "").replace(",", ".")
    integral = cleaned.split(".", 1)[0]
    try:
        return int(integral)
    except ValueError:
        return 0
