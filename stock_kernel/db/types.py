"""
Module: stock_kernel.db.types
Responsibility: Annotated type aliases and helpers for quantity, cost and
    rate columns.  Centralizes precision, rounding, and currency validation so
    every model and service uses identical definitions.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/, and selectors/.

Invariants enforced:
    - No floats.  Quantities and costs use Decimal with 9 decimal places,
      conversion factors and FX rates use 18.
    - round_quantity() is the one rounding function for values written to
      the stock ledger and movement log.
    - validate_currency() rejects anything that is not ISO 4217.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Annotated

from sqlalchemy import String

from stock_kernel.db.base import PortableDecimal
from stock_kernel.exceptions import InvalidCurrencyError, InvalidQuantityError

# Quantity or monetary amount: 38 digits, 9 decimal places
Quantity = Annotated[Decimal, PortableDecimal(38, 9)]
Money = Quantity

# Conversion factor or FX rate: 38 digits, 18 decimal places
Rate = Annotated[Decimal, PortableDecimal(38, 18)]

Currency = Annotated[str, String(3)]
ShortCode = Annotated[str, String(50)]
LongText = Annotated[str, String(4000)]

QUANTITY_DECIMAL_PLACES = 9
RATE_DECIMAL_PLACES = 18
DEFAULT_ROUNDING = ROUND_HALF_UP

ZERO = Decimal("0")


def round_quantity(
    value: Decimal,
    decimal_places: int = QUANTITY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Quantize a quantity or cost to the stored precision.

    Every value persisted to stock_levels or stock_movements passes through
    here so the in-memory value equals what the database returns.
    """
    return value.quantize(Decimal(1).scaleb(-decimal_places), rounding=rounding)


def to_decimal(value, field: str) -> Decimal:
    """
    Coerce an int, str or Decimal to a finite Decimal.

    Floats are refused; binary fractions have no place in stock quantities.

    Raises:
        InvalidQuantityError: value is a float, unparseable, or not finite.
    """
    if isinstance(value, bool) or isinstance(value, float):
        raise InvalidQuantityError(field, value, "must be Decimal, int or str")
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value))
    except (ArithmeticError, ValueError) as exc:
        raise InvalidQuantityError(field, value, "not a number") from exc
    if not result.is_finite():
        raise InvalidQuantityError(field, value, "must be finite")
    return result


# ISO 4217 currency codes
ISO_4217_CURRENCIES: frozenset[str] = frozenset({
    "USD", "EUR", "GBP", "JPY", "CHF", "CAD", "AUD", "NZD",
    "AED", "AFN", "ALL", "AMD", "ANG", "AOA", "ARS", "AWG", "AZN",
    "BAM", "BBD", "BDT", "BGN", "BHD", "BIF", "BMD", "BND", "BOB", "BOV", "BRL", "BSD", "BTN", "BWP", "BYN", "BZD",
    "CDF", "CHE", "CHW", "CLF", "CLP", "CNY", "COP", "COU", "CRC", "CUC", "CUP", "CVE", "CZK",
    "DJF", "DKK", "DOP", "DZD",
    "EGP", "ERN", "ETB",
    "FJD", "FKP",
    "GEL", "GHS", "GIP", "GMD", "GNF", "GTQ", "GYD",
    "HKD", "HNL", "HTG", "HUF",
    "IDR", "ILS", "INR", "IQD", "IRR", "ISK",
    "JMD", "JOD",
    "KES", "KGS", "KHR", "KMF", "KPW", "KRW", "KWD", "KYD", "KZT",
    "LAK", "LBP", "LKR", "LRD", "LSL", "LYD",
    "MAD", "MDL", "MGA", "MKD", "MMK", "MNT", "MOP", "MRU", "MUR", "MVR", "MWK", "MXN", "MXV", "MYR", "MZN",
    "NAD", "NGN", "NIO", "NOK", "NPR",
    "OMR",
    "PAB", "PEN", "PGK", "PHP", "PKR", "PLN", "PYG",
    "QAR",
    "RON", "RSD", "RUB", "RWF",
    "SAR", "SBD", "SCR", "SDG", "SEK", "SGD", "SHP", "SLE", "SOS", "SRD", "SSP", "STN", "SVC", "SYP", "SZL",
    "THB", "TJS", "TMT", "TND", "TOP", "TRY", "TTD", "TWD", "TZS",
    "UAH", "UGX", "USN", "UYI", "UYU", "UYW", "UZS",
    "VED", "VES", "VND", "VUV",
    "WST",
    "XAF", "XAG", "XAU", "XCD", "XDR", "XOF", "XPF",
    "YER",
    "ZAR", "ZMW", "ZWL",
})


def validate_currency(currency: str) -> str:
    """
    Return the upper-cased, trimmed code iff it is a valid ISO 4217 code.

    Raises:
        InvalidCurrencyError: If the currency code is not valid.
    """
    if not currency or not isinstance(currency, str):
        raise InvalidCurrencyError(str(currency))
    normalized = currency.upper().strip()
    if normalized not in ISO_4217_CURRENCIES:
        raise InvalidCurrencyError(currency)
    return normalized
