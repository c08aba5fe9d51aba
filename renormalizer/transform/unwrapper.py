# renormalizer/transform/unwrapper.py
"""
Value unwrapping for JSON columns that were serialized more than once.

A corrupted cell holds a JSON string whose content is another JSON string,
possibly many layers deep. unwrap() peels string layers until it reaches
a value that should be stored as-is:

- object/array: stored as the JSON text that decodes to it
- boolean: stored as the decoded boolean
- number: stored as the decoded number, unless it is beyond the
  safe-integer threshold, in which case the last string layer is kept
- anything that stops parsing: the last layer that did parse is kept

JSON null at any layer is not something we know how to store and aborts.
"""

import re
from typing import Any, Optional, Union

import msgspec

from ..types import StoredValue, UnwrapOutcome, UnsupportedValueError, NumberTooBigError


MAX_SAFE_INTEGER = 2 ** 53 - 1

# String forms the post-check reads as numbers: decimal literals,
# signed Infinity, and unsigned hex/octal/binary integer literals
DECIMAL_TEXT = re.compile(r'[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?')
INFINITY_TEXT = re.compile(r'[+-]?Infinity')
RADIX_TEXT = re.compile(r'0([xX][0-9a-fA-F]+|[oO][0-7]+|[bB][01]+)')


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def exceeds_safe_integer(number) -> bool:
    return abs(number) > MAX_SAFE_INTEGER


def _decode(candidate: StoredValue) -> Any:
    # Raises msgspec.DecodeError when the candidate is not JSON
    if isinstance(candidate, (str, bytes)):
        return msgspec.json.decode(candidate)
    return candidate


def unwrap(raw: StoredValue) -> UnwrapOutcome:
    if raw is None:
        return UnwrapOutcome(value=None)

    current = raw
    last_good = raw
    layers = 0

    while True:
        try:
            parsed = _decode(current)
        except msgspec.DecodeError:
            return UnwrapOutcome(value=last_good, layers=layers)

        if isinstance(parsed, (dict, list)):
            return UnwrapOutcome(value=current, layers=layers)

        if isinstance(parsed, str):
            last_good = current
            current = parsed
            layers += 1
            continue

        if isinstance(parsed, bool):
            return UnwrapOutcome(value=parsed, layers=layers)

        if is_number(parsed):
            if exceeds_safe_integer(parsed):
                return UnwrapOutcome(value=last_good, layers=layers, precision_guarded=True)
            return UnwrapOutcome(value=parsed, layers=layers)

        type_name = "null" if parsed is None else type(parsed).__name__
        raise UnsupportedValueError(f"Unknown type: {type_name}", value=raw)


def numeric_value(text: str) -> Optional[Union[int, float]]:
    """
    Read ``text`` as a number the way a loosely typed comparison would.

    Surrounding whitespace is ignored. Returns None when the text is not
    a numeric literal. Blank text is not treated as zero.
    """
    text = text.strip()
    if DECIMAL_TEXT.fullmatch(text):
        return float(text)
    if INFINITY_TEXT.fullmatch(text):
        return float(text.replace("Infinity", "inf"))
    if RADIX_TEXT.fullmatch(text):
        return int(text, 0)
    return None


def check_precision(value: StoredValue) -> None:
    """Reject a normalized value that reads as a number past MAX_SAFE_INTEGER."""
    if is_number(value):
        number = value
    elif isinstance(value, str):
        number = numeric_value(value)
        if number is None:
            return
    else:
        return

    if exceeds_safe_integer(number):
        raise NumberTooBigError(f"Number too big: {value}", value=value)


def normalize(raw: StoredValue) -> StoredValue:
    outcome = unwrap(raw)
    check_precision(outcome.value)
    return outcome.value
