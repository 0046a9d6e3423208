import logging
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable

log = logging.getLogger(__name__)

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
CURRENCY_SYMBOL = "$"
THOUSANDS_SEPARATOR = ","
RANGE_SEPARATOR = "-"
# strip() cutset applied to every quantity token: space, hyphen and the "pieces" suffix
QUANTITY_TRIM_CHARS = " -pieces"
DEFAULT_LANDED_SURCHARGE = Decimal("1.80")
DEFAULT_CURRENCY_MARKERS = ("US$", "MX$", "USD", "MXN")
# quantity * price must still fit the default 28-digit decimal context
MAX_INTEGER_DIGITS = 12
# widest landed price: two 12-digit factors plus the surcharge carry
MAX_AMOUNT_DIGITS = 2 * MAX_INTEGER_DIGITS + 1


class PriceParseError(ValueError):
    def __init__(self, raw: str, reason: str):
        super().__init__(f"Unparseable price {raw!r}: {reason}")
        self.raw = raw
        self.reason = reason


class QuantityParseError(ValueError):
    def __init__(self, raw: str):
        super().__init__(f"No numeric quantity in {raw!r}")
        self.raw = raw


def to_money(value: Decimal | float | int | str) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def format_money(value: Decimal) -> str:
    return f"{CURRENCY_SYMBOL}{to_money(value)}"


def strip_currency_markers(text: str, markers: Iterable[str]) -> str:
    """Remove locale currency markers such as ``US$`` before price parsing."""
    for marker in sorted(markers, key=len, reverse=True):
        text = text.replace(marker, "")
    return text


def read_decimal(text: str, max_integer_digits: int = MAX_INTEGER_DIGITS) -> Decimal | None:
    """Finite decimal small enough to be quantized to cents, or None."""
    try:
        value = Decimal(text)
    except InvalidOperation:
        return None
    if not value.is_finite() or value.adjusted() >= max_integer_digits:
        return None
    return value


def parse_price(raw: str, max_integer_digits: int = MAX_INTEGER_DIGITS) -> Decimal:
    """Parse a scraped price string into a non-negative amount.

    ``"$1,234.50"`` gives ``1234.50`` and ranges such as ``"3.99-4.72"`` give the
    upper bound. Raises PriceParseError for anything that is not a number.
    """
    cleaned = raw.replace(CURRENCY_SYMBOL, "").replace(THOUSANDS_SEPARATOR, "").strip()

    candidate = cleaned
    if RANGE_SEPARATOR in cleaned:
        parts = cleaned.split(RANGE_SEPARATOR)
        if len(parts) == 2 and parts[1].strip():
            candidate = parts[1].strip()

    if not candidate:
        raise PriceParseError(raw, "empty")

    value = read_decimal(candidate, max_integer_digits)
    if value is None:
        raise PriceParseError(raw, "not a number")
    if value < 0:
        raise PriceParseError(raw, "negative")
    return value if value else ZERO


def price_or_zero(raw: str, max_integer_digits: int = MAX_INTEGER_DIGITS) -> Decimal:
    try:
        return parse_price(raw, max_integer_digits)
    except PriceParseError as e:
        log.debug(f"Price degraded to zero: {e}")
        return ZERO


def parse_quantity(raw: str) -> Decimal:
    """Return the first numeric token of a quantity label, e.g. ``"2 - 49 pieces"`` -> 2."""
    for token in raw.split():
        value = read_decimal(token.strip(QUANTITY_TRIM_CHARS))
        if value is not None:
            return value
    raise QuantityParseError(raw)


def landed_price(quantity: Decimal, unit_price: Decimal, surcharge: Decimal) -> Decimal | None:
    """Quantity-scaled price plus the per-order handling surcharge.

    Returns None when either input is not strictly positive, meaning the
    headline tier should keep its unit price.
    """
    if quantity <= 0 or unit_price <= 0:
        return None
    return to_money(quantity * unit_price + surcharge)
