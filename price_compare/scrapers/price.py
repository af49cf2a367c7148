"""Price text parsing shared by the harvesters and the orchestrator."""

import re

CURRENCY_NOISE_RE = re.compile(r"[₹$€£,\s]")
NUMBER_RE = re.compile(r"\d+(?:\.\d+)?(?:[eE][+-]?\d+)?")


def extract_price(text: str | None) -> float:
    """Convert heterogeneous price text into a number.

    Currency symbols, whitespace and thousands separators are stripped and the
    first decimal-or-integer number is returned. Text without a number is an
    unknown price, not an error.

    Args:
        text: Raw price text such as "₹1,299.99" or "Rs. 450".

    Returns:
        Parsed price, 0.0 if no number is present.
    """
    if not text:
        return 0.0

    cleaned = CURRENCY_NOISE_RE.sub("", str(text))
    match = NUMBER_RE.search(cleaned)
    if not match:
        return 0.0
    return float(match.group(0))


def coerce_price_text(value: object, currency_symbol: str) -> str:
    """Render a scalar price value as currency-prefixed text.

    Args:
        value: Price as found in structured data (string or number).
        currency_symbol: Prefix for the rendered price.

    Returns:
        Text like "₹1299", empty when the value carries no number.
    """
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        return ""

    match = NUMBER_RE.search(CURRENCY_NOISE_RE.sub("", str(value)))
    if not match:
        return ""
    return f"{currency_symbol}{match.group(0)}"
