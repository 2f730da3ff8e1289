# ============================================================================
# src/labsync/extraction/status.py
# ============================================================================
"""
Status resolution for lab values.

One function covers both the plain min/max comparison and the critical
band: pass critical_threshold_percent=None to get only low/normal/high.

Non-numeric input never degrades to "normal". It comes back as
Unparseable so callers have to decide what to show.
"""

import math
from dataclasses import dataclass
from typing import Any, Optional, Union

from ..constants.report_types import ParameterStatus
from ..config import threshold_settings


@dataclass(frozen=True)
class NumericStatus:
    """Value parsed as a number and compared to its bounds."""
    status: ParameterStatus
    value: float

    @property
    def is_numeric(self) -> bool:
        return True


@dataclass(frozen=True)
class Unparseable:
    """Value could not be read as a finite number."""
    raw: Any

    @property
    def status(self) -> ParameterStatus:
        return ParameterStatus.UNPARSEABLE

    @property
    def is_numeric(self) -> bool:
        return False


StatusResult = Union[NumericStatus, Unparseable]


def to_number(value: Any) -> Optional[float]:
    """Convert int/float/numeric string to a finite float, else None."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip().replace(",", "")
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def resolve_status(
    value: Any,
    ref_min: Optional[float] = None,
    ref_max: Optional[float] = None,
    critical_threshold_percent: Optional[float] = None,
) -> StatusResult:
    """
    Resolve the status of a value against an optional reference range.

    Args:
        value: Number or numeric string
        ref_min: Lower bound of the reference range (None = unchecked)
        ref_max: Upper bound of the reference range (None = unchecked)
        critical_threshold_percent: Percent of the bound beyond which
            low/high escalate to critical-low/critical-high. None disables
            the critical tiers.

    Returns:
        NumericStatus, or Unparseable when value is not a finite number
    """
    number = to_number(value)
    if number is None:
        return Unparseable(raw=value)

    low = to_number(ref_min)
    high = to_number(ref_max)
    pct = critical_threshold_percent

    if low is not None and number < low:
        if pct is not None and number < low - abs(low) * pct / 100.0:
            return NumericStatus(ParameterStatus.CRITICAL_LOW, number)
        return NumericStatus(ParameterStatus.LOW, number)

    if high is not None and number > high:
        if pct is not None and number > high + abs(high) * pct / 100.0:
            return NumericStatus(ParameterStatus.CRITICAL_HIGH, number)
        return NumericStatus(ParameterStatus.HIGH, number)

    return NumericStatus(ParameterStatus.NORMAL, number)


def determine_status(
    value: Any,
    ref_min: Optional[float] = None,
    ref_max: Optional[float] = None,
) -> ParameterStatus:
    """Plain low/normal/high status (unparseable for non-numeric values)."""
    return resolve_status(value, ref_min, ref_max).status


def get_test_status(
    value: Any,
    ref_min: Optional[float] = None,
    ref_max: Optional[float] = None,
    critical_threshold_percent: Optional[float] = None,
) -> ParameterStatus:
    """Status including critical tiers, using the configured band by default."""
    if critical_threshold_percent is None:
        critical_threshold_percent = threshold_settings.CRITICAL_THRESHOLD_PERCENT
    return resolve_status(value, ref_min, ref_max, critical_threshold_percent).status
