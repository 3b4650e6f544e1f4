# upsd_monitor/services/variables.py

from __future__ import annotations

import re
from typing import Dict, Iterable

from upsd_monitor.models.device import DeviceVariable, Value


# Text emitted for a value the server never reported.
ABSENT_TEXT = "<nil>"

INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1

_INT_LITERAL = re.compile(r"[+-]?\d+")
_FLOAT_LITERAL = re.compile(r"[+-]?(\d+\.\d*|\.\d+|\d+)([eE][+-]?\d+)?")

# Identity and free-text variables stay strings even when they look numeric
# (serials like "0123", firmware like "02.1").
TEXT_SUFFIXES = (
    ".serial",
    ".model",
    ".mfr",
    ".firmware",
    ".date",
    ".status",
    ".version",
    ".type",
    ".name",
    ".id",
    ".desc",
    ".contact",
    ".location",
    ".vendorid",
    ".productid",
)
TEXT_NAMES = frozenset({"ups.firmware.aux", "battery.mfr.date", "driver.version.internal"})


# ============================================================================
# Value typing
# ============================================================================

def decode_text(raw) -> str:
    if isinstance(raw, bytes):
        return raw.decode("utf-8", errors="replace")
    return str(raw)


def is_text_variable(name: str) -> bool:
    return name in TEXT_NAMES or name.endswith(TEXT_SUFFIXES)


def coerce_value(name: str, raw) -> Value:
    """Type one raw protocol value: int, float or str."""
    if raw is None:
        return None
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        return raw

    text = decode_text(raw)
    if is_text_variable(name):
        return text

    stripped = text.strip()
    if _INT_LITERAL.fullmatch(stripped):
        return int(stripped)
    if _FLOAT_LITERAL.fullmatch(stripped):
        return float(stripped)
    return text


# ============================================================================
# Normalizer
# ============================================================================

def normalize_variables(variables: Iterable[DeviceVariable]) -> Dict[str, Value]:
    """Key a device's variable list by name; the last duplicate wins."""
    result: Dict[str, Value] = {}
    for variable in variables:
        result[variable.name] = variable.value
    return result


# ============================================================================
# Conversions for downstream use
# ============================================================================

def as_text(value: Value) -> str:
    if value is None:
        return ABSENT_TEXT
    return str(value)


def as_int64(value: Value) -> int | None:
    """Return the value only when it is a genuine signed 64-bit integer."""
    if not isinstance(value, int):
        return None
    if value < INT64_MIN or value > INT64_MAX:
        return None
    return value
