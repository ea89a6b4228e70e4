from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal
from typing import Any

from app.tailorbook.modules.measurements.fields import SUMMARY_FIELDS

NO_MEASUREMENTS_PLACEHOLDER = "(No measurements saved)"


def format_measurement_value(value: Any) -> str:
    """30.0 -> "30", 30.25 -> "30.25"; strings pass through untouched."""
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, Decimal):
        if value == value.to_integral_value():
            return str(value.quantize(Decimal(1)))
        return format(value.normalize(), "f")
    return str(value)


def _read(measurement: Any, key: str) -> Any:
    if isinstance(measurement, Mapping):
        return measurement.get(key)
    return getattr(measurement, key, None)


def build_measurement_block(measurement: Any) -> str:
    """
    Reduce a sparse measurement record to "<label>: <value>" lines.

    `measurement` may be a Measurement row, a plain mapping (keys outside the
    registry are ignored) or None. Fields that are None or "" are skipped;
    zero is kept. Output order is registry order regardless of which fields
    are populated.
    """
    if measurement is None:
        return NO_MEASUREMENTS_PLACEHOLDER
    lines: list[str] = []
    for f in SUMMARY_FIELDS:
        value = _read(measurement, f.key)
        if value is None or value == "":
            continue
        lines.append(f"{f.label}: {format_measurement_value(value)}")
    if not lines:
        return NO_MEASUREMENTS_PLACEHOLDER
    return "\n".join(lines)
