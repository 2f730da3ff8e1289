# ============================================================================
# src/labsync/extraction/placeholders.py
# ============================================================================
"""
Placeholder filling for panels with a known parameter set.
"""

from typing import List, Sequence

from ..constants.report_types import ParameterStatus, ReportType
from ..core.models import TestParameter
from .parameter_tables import EXPECTED_PARAMETERS, find_definition


def add_missing_parameters(
    parameters: Sequence[TestParameter],
    report_type: ReportType,
) -> List[TestParameter]:
    """
    Append a "not available" entry for each expected parameter that is absent.

    Only CBC, lipid and metabolic panels have an expected set. Extracted
    parameters keep their order and come first; placeholders follow in the
    panel's order. Existing names are matched case-insensitively and through
    aliases, so running this twice adds nothing the second time.
    """
    result = list(parameters)
    expected = EXPECTED_PARAMETERS.get(report_type)
    if not expected:
        return result

    present = {p.name.lower() for p in result}
    for parameter in result:
        definition = find_definition(parameter.name, report_type)
        if definition:
            present.add(definition.name.lower())

    for name in expected:
        if name.lower() in present:
            continue
        definition = find_definition(name, report_type)
        result.append(TestParameter(
            name=name,
            value="",
            unit=definition.default_unit if definition else "",
            status=ParameterStatus.NOT_AVAILABLE,
        ))
        present.add(name.lower())

    return result
