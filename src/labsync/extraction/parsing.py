# ============================================================================
# src/labsync/extraction/parsing.py
# ============================================================================
"""
Parsing utilities for lab value extraction.
"""

import re
from typing import Optional, Tuple

from ..constants.report_types import ParameterStatus

# "4.0-11.0", "4.0 – 11.0"
RANGE_PATTERN = re.compile(r'(\d+\.?\d*)\s*[-–—]\s*(\d+\.?\d*)')

# Labelled reference ranges, most specific first
LABELLED_RANGE_PATTERNS = [
    re.compile(r'\(\s*(?:reference|ref\.?|normal|range)?\s*:?\s*(\d+\.?\d*)\s*[-–—]\s*(\d+\.?\d*)[^)]*\)', re.IGNORECASE),
    re.compile(r'reference\s*(?:range)?\s*:?\s*(\d+\.?\d*)\s*[-–—]\s*(\d+\.?\d*)', re.IGNORECASE),
    re.compile(r'normal\s*(?:range)?\s*:?\s*(\d+\.?\d*)\s*[-–—]\s*(\d+\.?\d*)', re.IGNORECASE),
    re.compile(r'ref\.?\s*range\s*:?\s*(\d+\.?\d*)\s*[-–—]\s*(\d+\.?\d*)', re.IGNORECASE),
    re.compile(r'range\s*:?\s*(\d+\.?\d*)\s*[-–—]\s*(\d+\.?\d*)', re.IGNORECASE),
]

HIGH_TERMS = frozenset({'positive', 'abnormal', 'present', 'high', 'elevated'})
BORDERLINE_TERMS = frozenset({'trace', 'few', 'rare', 'occasional'})


def parse_numeric_value(value_str: str) -> Optional[float]:
    """
    Extract numeric value from string.

    Handles values like:
    - "12.5"
    - "1024 High"  (value with embedded flag)
    - "< 0.5"      (less-than values)

    Rejects unit-like strings ("x10E3/uL", "g/dL") that would otherwise
    produce a bogus number.
    """
    if not value_str:
        return None

    value_str = value_str.strip()

    unit_patterns = [
        r'^x?10E\d',
        r'^[a-zA-Z]+/[a-zA-Z]+',
        r'^/[a-zA-Z]+',
        r'^\d*E\d+/',
    ]
    for pattern in unit_patterns:
        if re.match(pattern, value_str, re.IGNORECASE):
            return None

    match = re.match(r'^[<>]?\s*(\d+(?:\.\d+)?)', value_str)
    if match:
        return float(match.group(1))

    return None


def parse_reference_range(ref_str: str) -> Optional[Tuple[Optional[float], Optional[float]]]:
    """
    Parse reference range string into (low, high) tuple.

    Handles:
    - "12.0-15.5" or "12.0 - 15.5"
    - "4.5-11.0 x10E3/uL"
    - ">=10" or "> 5.0"  -> (10.0, None)
    - "<=100" or "< 0.5" -> (None, 100.0)
    - "Negative" or "Non-Reactive" -> None

    Open bounds come back as None rather than 0/inf so status resolution
    skips them.
    """
    if not ref_str:
        return None

    ref_str = ref_str.strip()

    qualitative_patterns = [
        r'^negative$', r'^positive$', r'^non[\-\s]?reactive$',
        r'^reactive$', r'^normal$', r'^abnormal$', r'^see\s+', r'^n/a$'
    ]
    for pattern in qualitative_patterns:
        if re.match(pattern, ref_str, re.IGNORECASE):
            return None

    range_match = RANGE_PATTERN.search(ref_str)
    if range_match:
        return float(range_match.group(1)), float(range_match.group(2))

    gt_match = re.match(r'^[>≥]\s*=?\s*(\d+\.?\d*)', ref_str)
    if gt_match:
        return float(gt_match.group(1)), None

    lt_match = re.match(r'^[<≤]\s*=?\s*(\d+\.?\d*)', ref_str)
    if lt_match:
        return None, float(lt_match.group(1))

    return None


def find_reference_range(
    text: str,
    start: int,
    end: int,
    window: int,
) -> Optional[Tuple[float, float]]:
    """
    Look for a labelled reference range around text[start:end].

    The rest of the line after the value is searched first, then the part
    of the same line before it, each capped at window chars. Ranges on
    other lines belong to other parameters and are never used.
    """
    after = text[end:end + window].split('\n', 1)[0]

    for pattern in LABELLED_RANGE_PATTERNS:
        match = pattern.search(after)
        if match:
            return float(match.group(1)), float(match.group(2))

    # Bare "min - max" after the value
    bare = RANGE_PATTERN.search(after)
    if bare:
        return float(bare.group(1)), float(bare.group(2))

    before = text[max(0, start - window):start]
    before = before.rsplit('\n', 1)[-1]
    for pattern in LABELLED_RANGE_PATTERNS:
        match = pattern.search(before)
        if match:
            return float(match.group(1)), float(match.group(2))

    return None


def categorical_status(value: str) -> ParameterStatus:
    """Status for qualitative results such as "Positive" or "Trace"."""
    term = value.strip().lower()
    if term in HIGH_TERMS:
        return ParameterStatus.HIGH
    if term in BORDERLINE_TERMS:
        return ParameterStatus.BORDERLINE
    return ParameterStatus.NORMAL


def is_likely_lab_test(name: str) -> bool:
    """
    Determine if a string is likely a lab test name.

    Returns True for strings that look like lab test names,
    False for headers, dates, page markers and other non-test content.
    """
    if not name or len(name.strip()) < 2:
        return False

    name = name.strip()
    name_lower = name.lower()

    if name.isdigit():
        return False

    non_test_patterns = [
        r'^(test|result|value|unit|reference|range|flag|status|date|time)s?$',
        r'^(patient|name|dob|id|mrn|specimen|collected|received|age|phone)$',
        r'^(page|of|\d+)$',
        r'^-+$',
        r'^=+$',
    ]
    for pattern in non_test_patterns:
        if re.match(pattern, name_lower):
            return False

    return 2 <= len(name) <= 60 and re.search(r'[a-zA-Z]', name) is not None


def clean_label(label: str) -> str:
    """Trim a captured label down to the test name (drop leading bullets/noise)."""
    label = label.strip().strip('-*•·.').strip()
    return re.sub(r'\s+', ' ', label)
