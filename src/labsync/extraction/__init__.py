# ============================================================================
# src/labsync/extraction/__init__.py
# ============================================================================
"""
Lab parameter extraction: status rules, parameter tables, strategy cascade.
"""

from .status import (
    NumericStatus,
    Unparseable,
    resolve_status,
    determine_status,
    get_test_status,
    to_number,
)
from .strategies import (
    ExtractionStrategy,
    CategoryRangeStrategy,
    LabelledValueStrategy,
    GenericPatternStrategy,
    TableRowStrategy,
    StructuredTableStrategy,
    default_strategies,
    make_parameter,
)
from .parameter_extractor import ParameterExtractor, ExtractionResult
from .placeholders import add_missing_parameters

__all__ = [
    'NumericStatus',
    'Unparseable',
    'resolve_status',
    'determine_status',
    'get_test_status',
    'to_number',
    'ExtractionStrategy',
    'CategoryRangeStrategy',
    'LabelledValueStrategy',
    'GenericPatternStrategy',
    'TableRowStrategy',
    'StructuredTableStrategy',
    'default_strategies',
    'make_parameter',
    'ParameterExtractor',
    'ExtractionResult',
    'add_missing_parameters',
]
