import math
import re

from listing_worker.reconciliation.models import NUMBER_TYPE, AttributeValue

_NON_NUMERIC = re.compile(r"[^\d.,\-]")
# Leading number of the cleaned text, the way a lenient float parser reads it.
_LEADING_NUMBER = re.compile(r"-?(?:\d+(?:\.\d*)?|\.\d+)")


def coerce_value(value: object, attribute_type: str) -> AttributeValue | object:
    """Convert a raw value to the catalog type of its attribute.

    Numeric attributes keep only digits, separators and the minus sign, read
    a comma as the decimal separator and yield None when nothing parses.
    Values of string attributes are passed through unchanged.
    """
    if attribute_type != NUMBER_TYPE:
        return value
    if value is None:
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    return parse_number(str(value))


def parse_number(text: str) -> int | float | None:
    """Parse "19 мм" as 19 and "2,1" as 2.1; None when there is no number."""
    cleaned = _NON_NUMERIC.sub("", text).replace(",", ".")
    match = _LEADING_NUMBER.match(cleaned)
    if match is None:
        return None
    number = float(match.group(0))
    if not math.isfinite(number):
        return None
    if number.is_integer():
        return int(number)
    return number
