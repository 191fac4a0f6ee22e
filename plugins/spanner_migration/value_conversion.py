"""
Row Value Conversion Module

Converts raw source values (as returned by the database driver) into the
Python values a Spanner client expects for each target column type.
"""

from datetime import date, datetime, time as dt_time
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict
import math

import pendulum

from spanner_migration.ddl import Type, TypeName

INT64_MIN = -(1 << 63)
INT64_MAX = (1 << 63) - 1

_TRUE_STRINGS = {"1", "t", "true", "y", "yes"}
_FALSE_STRINGS = {"0", "f", "false", "n", "no"}


class ValueConversionError(ValueError):
    """Raised when a source value cannot be represented in its Spanner type."""


def _as_text(value: Any) -> str:
    if isinstance(value, (bytes, bytearray, memoryview)):
        try:
            return bytes(value).decode('utf-8')
        except UnicodeDecodeError as e:
            raise ValueConversionError(f"Invalid UTF-8 text: {e}")
    return str(value)


def convert_bool(value: Any, spanner_type: Type, tz: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        if value in (0, 1):
            return bool(value)
        raise ValueConversionError(f"Integer {value} is not a boolean")
    if isinstance(value, (bytes, bytearray)) and len(value) == 1 and value[0] in (0, 1):
        # BIT(1) columns arrive as a single byte
        return bool(value[0])
    text = _as_text(value).strip().lower()
    if text in _TRUE_STRINGS:
        return True
    if text in _FALSE_STRINGS:
        return False
    raise ValueConversionError(f"Cannot convert {value!r} to BOOL")


def convert_int64(value: Any, spanner_type: Type, tz: str) -> int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        result = value
    elif isinstance(value, float):
        if not value.is_integer():
            raise ValueConversionError(f"Float {value!r} is not an integer")
        result = int(value)
    elif isinstance(value, Decimal):
        if not value.is_finite() or value != value.to_integral_value():
            raise ValueConversionError(f"Decimal {value} is not an integer")
        result = int(value)
    else:
        try:
            result = int(_as_text(value).strip())
        except ValueError:
            raise ValueConversionError(f"Cannot convert {value!r} to INT64")
    if not INT64_MIN <= result <= INT64_MAX:
        raise ValueConversionError(f"Integer {result} out of INT64 range")
    return result


def convert_float64(value: Any, spanner_type: Type, tz: str) -> float:
    if isinstance(value, bool):
        raise ValueConversionError(f"Cannot convert boolean {value!r} to FLOAT64")
    if isinstance(value, (int, float, Decimal)):
        return float(value)
    try:
        return float(_as_text(value).strip())
    except ValueError:
        raise ValueConversionError(f"Cannot convert {value!r} to FLOAT64")


def convert_numeric(value: Any, spanner_type: Type, tz: str) -> Decimal:
    if isinstance(value, bool):
        raise ValueConversionError(f"Cannot convert boolean {value!r} to NUMERIC")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, float):
        if not math.isfinite(value):
            raise ValueConversionError(f"Non-finite float {value!r} cannot be NUMERIC")
        result = Decimal(repr(value))
    else:
        try:
            result = Decimal(_as_text(value).strip())
        except InvalidOperation:
            raise ValueConversionError(f"Cannot convert {value!r} to NUMERIC")
    if not result.is_finite():
        raise ValueConversionError(f"Non-finite value {value!r} cannot be NUMERIC")
    return result


def convert_string(value: Any, spanner_type: Type, tz: str) -> Any:
    if isinstance(value, datetime):
        text = value.isoformat(sep=' ')
    elif isinstance(value, (date, dt_time)):
        text = value.isoformat()
    else:
        text = _as_text(value)
    if spanner_type.is_array:
        # MySQL SET values arrive as comma-separated members
        return text.split(',') if text else []
    return text


def convert_bytes(value: Any, spanner_type: Type, tz: str) -> bytes:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, str):
        return value.encode('utf-8')
    if isinstance(value, int) and value >= 0:
        # BIT(n) values may arrive as bool or int; keep the bit pattern big-endian
        value = int(value)
        return value.to_bytes(max(1, (value.bit_length() + 7) // 8), "big")
    raise ValueConversionError(f"Cannot convert {type(value).__name__} to BYTES")


def convert_date(value: Any, spanner_type: Type, tz: str) -> date:
    if isinstance(value, datetime):
        raise ValueConversionError(f"Datetime {value!r} is not a date")
    if isinstance(value, date):
        return value
    try:
        parsed = pendulum.parse(_as_text(value).strip(), exact=True)
    except ValueError as e:
        raise ValueConversionError(f"Cannot convert {value!r} to DATE: {e}")
    if not isinstance(parsed, pendulum.Date) or isinstance(parsed, datetime):
        raise ValueConversionError(f"Value {value!r} is not a date")
    return date(parsed.year, parsed.month, parsed.day)


def convert_timestamp(value: Any, spanner_type: Type, tz: str) -> datetime:
    if isinstance(value, datetime):
        result = pendulum.instance(value, tz=tz)
    elif isinstance(value, date):
        raise ValueConversionError(f"Date {value!r} has no time component")
    else:
        try:
            result = pendulum.parse(_as_text(value).strip(), tz=tz)
        except ValueError as e:
            raise ValueConversionError(f"Cannot convert {value!r} to TIMESTAMP: {e}")
        if not isinstance(result, datetime):
            raise ValueConversionError(f"Value {value!r} is not a timestamp")
    return result.in_timezone("UTC")


CONVERTERS: Dict[TypeName, Callable[[Any, Type, str], Any]] = {
    TypeName.BOOL: convert_bool,
    TypeName.INT64: convert_int64,
    TypeName.FLOAT64: convert_float64,
    TypeName.NUMERIC: convert_numeric,
    TypeName.STRING: convert_string,
    TypeName.BYTES: convert_bytes,
    TypeName.DATE: convert_date,
    TypeName.TIMESTAMP: convert_timestamp,
}

_missing = set(TypeName) - set(CONVERTERS)
if _missing:
    raise ImportError(f"No value converter for Spanner types: {sorted(t.value for t in _missing)}")


def convert_value(value: Any, spanner_type: Type, tz: str = "UTC") -> Any:
    """
    Convert one non-null source value to its Spanner representation.

    Args:
        value: Raw value from the source row
        spanner_type: Target column type
        tz: Timezone used for naive source datetimes

    Returns:
        Converted value

    Raises:
        ValueConversionError: If the value does not fit the target type
    """
    return CONVERTERS[spanner_type.name](value, spanner_type, tz)
