# ============================================================================
# src/labsync/extraction/strategies.py
# ============================================================================
"""
Parameter Extraction Strategies

Each strategy turns raw report text into TestParameters one way:

1. CategoryRangeStrategy: per-parameter patterns for the report type, with
   a reference range looked up next to the value
2. LabelledValueStrategy: "label: value unit" lines whose label names a
   parameter of the report type (no reference range)
3. GenericPatternStrategy: any "name: value unit (ref min-max)" or
   "name value unit range: min-max" line
4. TableRowStrategy: multi-space separated "name  value  unit  min-max" rows,
   plus CBC name-variant line scanning
5. StructuredTableStrategy: header row of parameter names followed by rows
   of values (one column per parameter)

try_extract() returns None when the strategy finds nothing.
"""

import logging
import re
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence, Tuple

from ..config import threshold_settings
from ..constants.report_types import ParameterStatus, ReportType
from ..core.models import ReferenceRange, TestParameter
from .parameter_tables import (
    CBC_NAME_VARIATIONS,
    HEADER_TOKENS,
    ParameterDefinition,
    full_parameter_name,
    get_parameter_table,
)
from .parsing import (
    RANGE_PATTERN,
    categorical_status,
    clean_label,
    find_reference_range,
    is_likely_lab_test,
)
from .status import resolve_status

logger = logging.getLogger(__name__)

_UNIT = r'[a-zA-Zμµ%][\w/%^.]*'
_NOT_RANGE_WORD = r'(?!(?:reference|ref|normal|range)\b)'

# "Glucose, Fasting: 95 mg/dL"
LABELLED_VALUE_PATTERN = re.compile(
    r'^[ \t\-*•]*(?P<label>[A-Za-z][\w ,/()\-]*?)[ \t]*[:=][ \t]*'
    r'(?P<value>[<>]?[\d.]+)[ \t]*(?P<unit>' + _NOT_RANGE_WORD + _UNIT + r')?',
    re.MULTILINE | re.IGNORECASE,
)

# "Vitamin D: 32 ng/mL (Reference: 30-100)" / "Ferritin 80 ng/mL range: 20-250"
GENERIC_LINE_PATTERN = re.compile(
    r'^[ \t\-*•]*(?P<name>[A-Za-z][\w ,/()\-]*?)(?:[ \t]*[:=][ \t]*|[ \t]+)'
    r'(?P<value>\d+(?:\.\d+)?)(?![\d.])[ \t]*(?P<unit>' + _NOT_RANGE_WORD + _UNIT + r')?'
    r'(?:[ \t]*\(?[ \t]*(?:reference|ref\.?|normal)?[ \t]*(?:range)?[ \t]*:?[ \t]*'
    r'(?P<min>\d+(?:\.\d+)?)[ \t]*[-–][ \t]*(?P<max>\d+(?:\.\d+)?)'
    r'[ \t]*(?P<range_unit>' + _UNIT + r')?\)?)?',
    re.MULTILINE | re.IGNORECASE,
)

# "Hemoglobin    14.2   g/dL   13.5-17.5" / "WBC   7.2   4.5-11.0 K/uL"
TABLE_ROW_PATTERN = re.compile(
    r'^(?P<name>[A-Za-z][\w ,/()\-]*?)\s{2,}(?P<value>\d+(?:\.\d+)?)(?![\d.])'
    r'(?:[ \t]+(?P<unit>' + _UNIT + r'))?'
    r'(?:\s{2,}(?:(?:H|L|High|Low)\s+)?(?P<min>\d+(?:\.\d+)?)\s*[-–]\s*(?P<max>\d+(?:\.\d+)?)'
    r'(?:\s*(?P<range_unit>' + _UNIT + r'))?)?',
    re.IGNORECASE,
)

COLUMN_SPLIT = re.compile(r'\s{2,}|\t')
FIRST_NUMBER = re.compile(r'\d+(?:\.\d+)?')
FIRST_WORD_UNIT = re.compile(r'[a-zA-Zμµ/%]+')
# A number standing on its own, not the digit in "T4" or "CO2"
STANDALONE_NUMBER = re.compile(r'(?<![\w.])\d+(?:\.\d+)?(?![\w])')


def header_tokens(text: str) -> List[str]:
    """Known parameter tokens named in text (lower-case)."""
    lowered = text.lower()
    return [t for t in HEADER_TOKENS if re.search(rf'\b{t}\b', lowered)]


def is_table_header(line: str, min_matches: Optional[int] = None) -> bool:
    """
    True for a line naming several parameters and holding no values.

    Such a line heads a structured table whose values sit on the rows
    below; reading it as a result row would pair a name with the wrong
    column.
    """
    if min_matches is None:
        min_matches = threshold_settings.MIN_HEADER_MATCHES
    if STANDALONE_NUMBER.search(line):
        return False
    return len(header_tokens(line)) >= min_matches


def make_parameter(
    name: str,
    value: str,
    unit: str = "",
    reference: Optional[Tuple[Optional[float], Optional[float]]] = None,
    critical_threshold_percent: Optional[float] = None,
) -> TestParameter:
    """
    Build a TestParameter whose status always agrees with value and range.

    Numeric values are stored as floats, anything else keeps its text and
    gets the unparseable status.
    """
    ref_min, ref_max = reference if reference else (None, None)
    outcome = resolve_status(value, ref_min, ref_max, critical_threshold_percent)
    stored = outcome.value if outcome.is_numeric else value
    reference_range = None
    if ref_min is not None or ref_max is not None:
        reference_range = ReferenceRange(min=ref_min, max=ref_max)
    return TestParameter(
        name=name,
        value=stored,
        unit=(unit or "").strip(),
        status=outcome.status,
        reference_range=reference_range,
    )


def _range_from_groups(match: re.Match) -> Optional[Tuple[float, float]]:
    if match.group('min') and match.group('max'):
        return float(match.group('min')), float(match.group('max'))
    return None


class ExtractionStrategy(ABC):
    """One way of reading parameters out of report text."""

    name = "strategy"

    def __init__(self, critical_threshold_percent: Optional[float] = None):
        self.critical_threshold_percent = critical_threshold_percent
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @abstractmethod
    def try_extract(self, text: str) -> Optional[List[TestParameter]]:
        """Return extracted parameters, or None when nothing was found."""
        pass

    def _parameter(self, name, value, unit="", reference=None) -> TestParameter:
        return make_parameter(name, value, unit, reference, self.critical_threshold_percent)

    @staticmethod
    def _result(parameters: List[TestParameter]) -> Optional[List[TestParameter]]:
        return parameters or None


class CategoryRangeStrategy(ExtractionStrategy):
    """Report-type parameter table with reference ranges found near each value."""

    name = "category_range"

    def __init__(
        self,
        report_type: ReportType,
        range_window: Optional[int] = None,
        critical_threshold_percent: Optional[float] = None,
    ):
        super().__init__(critical_threshold_percent)
        self.report_type = report_type
        self.definitions = get_parameter_table(report_type)
        if range_window is None:
            range_window = (
                threshold_settings.CBC_RANGE_CONTEXT_CHARS
                if report_type == ReportType.CBC
                else threshold_settings.DEFAULT_RANGE_CONTEXT_CHARS
            )
        self.range_window = range_window

    def try_extract(self, text: str) -> Optional[List[TestParameter]]:
        parameters = []
        for definition in self.definitions:
            match = definition.value_regex.search(text)
            if not match:
                continue
            parameters.append(self._from_match(definition, match, text))
        return self._result(parameters)

    def _from_match(self, definition: ParameterDefinition, match: re.Match, text: str) -> TestParameter:
        raw_value = match.group('value')
        unit = match.group('unit') or ''

        if definition.categorical and not raw_value[:1].isdigit():
            return TestParameter(
                name=definition.name,
                value=raw_value,
                unit=unit.strip(),
                status=categorical_status(raw_value),
            )

        reference = find_reference_range(text, match.start(), match.end(), self.range_window)
        return self._parameter(definition.name, raw_value, unit, reference)


class LabelledValueStrategy(ExtractionStrategy):
    """
    "label: value unit" lines mapped onto the report type's parameters.

    Catches labels with qualifiers the per-parameter patterns reject
    ("Glucose, Fasting", "ALT (SGPT)"). No reference range is read, so
    numeric values resolve to normal.
    """

    name = "labelled_value"

    def __init__(self, report_type: ReportType, critical_threshold_percent: Optional[float] = None):
        super().__init__(critical_threshold_percent)
        self.report_type = report_type
        self.definitions = get_parameter_table(report_type)

    def try_extract(self, text: str) -> Optional[List[TestParameter]]:
        found: Dict[str, TestParameter] = {}
        for match in LABELLED_VALUE_PATTERN.finditer(text):
            label = clean_label(match.group('label'))
            definition = next((d for d in self.definitions if d.matches_label(label)), None)
            if definition is None or definition.name in found:
                continue
            found[definition.name] = self._parameter(
                definition.name, match.group('value'), match.group('unit') or ''
            )
        return self._result(list(found.values()))


class GenericPatternStrategy(ExtractionStrategy):
    """Any line shaped like a lab result, whatever the report type."""

    name = "generic_pattern"

    def try_extract(self, text: str) -> Optional[List[TestParameter]]:
        found: Dict[str, TestParameter] = {}
        for match in GENERIC_LINE_PATTERN.finditer(text):
            name = clean_label(match.group('name'))
            if not is_likely_lab_test(name):
                continue
            key = name.lower()
            if key in found:
                continue
            unit = match.group('unit') or match.group('range_unit') or ''
            found[key] = self._parameter(name, match.group('value'), unit, _range_from_groups(match))
        return self._result(list(found.values()))


class TableRowStrategy(ExtractionStrategy):
    """
    Rows of a results table with columns separated by two or more spaces.

    For CBC reports, lines that mention a known CBC name variant are also
    scanned for a value and range, filling names the row pattern missed.
    """

    name = "table_row"

    def __init__(self, report_type: ReportType = ReportType.OTHER, critical_threshold_percent: Optional[float] = None):
        super().__init__(critical_threshold_percent)
        self.report_type = report_type

    def try_extract(self, text: str) -> Optional[List[TestParameter]]:
        found: Dict[str, TestParameter] = {}
        lines = text.splitlines()

        for line in lines:
            if is_table_header(line):
                continue
            match = TABLE_ROW_PATTERN.match(line.strip())
            if not match:
                continue
            name = clean_label(match.group('name'))
            if not is_likely_lab_test(name) or name.lower() in found:
                continue
            unit = match.group('unit') or match.group('range_unit') or ''
            found[name.lower()] = self._parameter(name, match.group('value'), unit, _range_from_groups(match))

        if self.report_type == ReportType.CBC:
            for parameter in self._scan_cbc_lines(lines):
                if parameter.name.lower() not in found:
                    found[parameter.name.lower()] = parameter

        return self._result(list(found.values()))

    def _scan_cbc_lines(self, lines: Sequence[str]) -> List[TestParameter]:
        parameters = []
        seen = set()
        for index, raw_line in enumerate(lines):
            line = raw_line.strip().lower()
            if not line or is_table_header(line):
                continue

            # Longest matching variant wins so "mchc" is not read as "mch"
            best = None
            for canonical, variations in CBC_NAME_VARIATIONS.items():
                for variation in variations:
                    hit = re.search(rf'\b{re.escape(variation)}', line)
                    if hit and (best is None or len(variation) > best[1]):
                        best = (canonical, len(variation), hit.end())
            if best is None or best[0] in seen:
                continue

            canonical, _, name_end = best
            next_line = lines[index + 1].strip() if index + 1 < len(lines) else ''
            rest = line[name_end:]

            range_match = RANGE_PATTERN.search(rest) or RANGE_PATTERN.search(next_line)
            value_source = RANGE_PATTERN.sub(' ', rest)
            value_match = FIRST_NUMBER.search(value_source) or FIRST_NUMBER.search(RANGE_PATTERN.sub(' ', next_line))
            if not value_match:
                continue

            after_value = value_source[value_match.end():] if value_match.string is value_source else ''
            unit_match = FIRST_WORD_UNIT.search(after_value)
            reference = (float(range_match.group(1)), float(range_match.group(2))) if range_match else None

            parameters.append(self._parameter(
                canonical,
                value_match.group(0),
                unit_match.group(0) if unit_match else '',
                reference,
            ))
            seen.add(canonical)
        return parameters


class StructuredTableStrategy(ExtractionStrategy):
    """
    Header row listing several parameters, values in the rows beneath.

        WBC      RBC      Hemoglobin
        7.2      4.8      14.2
        4.5-11   4.2-5.9  13.5-17.5
    """

    name = "structured_table"

    def __init__(
        self,
        scan_lines: Optional[int] = None,
        min_header_matches: Optional[int] = None,
        critical_threshold_percent: Optional[float] = None,
    ):
        super().__init__(critical_threshold_percent)
        self.scan_lines = scan_lines or threshold_settings.STRUCTURED_TABLE_SCAN_LINES
        self.min_header_matches = min_header_matches or threshold_settings.MIN_HEADER_MATCHES

    def try_extract(self, text: str) -> Optional[List[TestParameter]]:
        lines = text.splitlines()
        found: Dict[str, TestParameter] = {}

        for i, raw_header in enumerate(lines):
            header = raw_header.lower()
            if not is_table_header(header, self.min_header_matches):
                continue

            header_parts = [p.strip() for p in COLUMN_SPLIT.split(header.strip())]
            if len(header_parts) < 3:
                continue

            self.logger.debug(f"Structured table header at line {i}: {header.strip()}")

            for j in range(i + 1, min(i + 1 + self.scan_lines, len(lines))):
                value_line = lines[j].strip()
                if not value_line:
                    continue
                value_parts = COLUMN_SPLIT.split(value_line)
                if len(value_parts) < len(header_parts):
                    continue

                for k, param_name in enumerate(header_parts):
                    if len(param_name) < 2 or not header_tokens(param_name):
                        continue
                    full_name = full_parameter_name(param_name)
                    if full_name in found:
                        continue

                    value_text = value_parts[k]
                    value_match = FIRST_NUMBER.search(value_text)
                    if not value_match:
                        continue

                    unit_match = FIRST_WORD_UNIT.search(value_text[value_match.end():])
                    reference = self._column_range(value_text, lines, j, k)
                    found[full_name] = self._parameter(
                        full_name,
                        value_match.group(0),
                        unit_match.group(0) if unit_match else '',
                        reference,
                    )

        return self._result(list(found.values()))

    @staticmethod
    def _column_range(value_text: str, lines: Sequence[str], row: int, column: int) -> Optional[Tuple[float, float]]:
        """Range in the value cell, else in the same column of the next two lines."""
        match = RANGE_PATTERN.search(value_text)
        if match:
            return float(match.group(1)), float(match.group(2))

        for offset in (1, 2):
            if row + offset >= len(lines):
                break
            candidate = lines[row + offset].strip()
            if not candidate:
                continue
            parts = COLUMN_SPLIT.split(candidate)
            cell = parts[column] if column < len(parts) else candidate
            match = RANGE_PATTERN.search(cell) or RANGE_PATTERN.search(candidate)
            if match:
                return float(match.group(1)), float(match.group(2))
        return None


def default_strategies(
    report_type: ReportType,
    critical_threshold_percent: Optional[float] = None,
) -> List[ExtractionStrategy]:
    """
    Cascade order for a report type.

    Types with a parameter table start with their own patterns; the rest go
    straight to the generic and table strategies.
    """
    tail: List[ExtractionStrategy] = [
        GenericPatternStrategy(critical_threshold_percent),
        TableRowStrategy(report_type, critical_threshold_percent),
        StructuredTableStrategy(critical_threshold_percent=critical_threshold_percent),
    ]
    if not get_parameter_table(report_type):
        return tail
    return [
        CategoryRangeStrategy(report_type, critical_threshold_percent=critical_threshold_percent),
        LabelledValueStrategy(report_type, critical_threshold_percent),
    ] + tail
