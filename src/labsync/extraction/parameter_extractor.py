# ============================================================================
# src/labsync/extraction/parameter_extractor.py
# ============================================================================
"""
Parameter Extractor

Runs an ordered list of extraction strategies and keeps the first non-empty
result. Names coming out of the generic strategies are mapped onto the
report type's canonical names so "WBC" and "White Blood Cell Count" never
appear as two parameters.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Callable, List, Optional, Sequence

from ..constants.report_types import ReportType
from ..core.models import TestParameter
from .parameter_tables import find_definition
from .strategies import ExtractionStrategy, default_strategies

StrategyFactory = Callable[[ReportType, Optional[float]], List[ExtractionStrategy]]


@dataclass
class ExtractionResult:
    """Parameters plus which strategy produced them."""
    parameters: List[TestParameter] = field(default_factory=list)
    strategy: Optional[str] = None
    attempted: List[str] = field(default_factory=list)

    @property
    def found(self) -> bool:
        return bool(self.parameters)


class ParameterExtractor:
    """
    Extract lab parameters from report text.

    Pass an explicit strategy list to fix the cascade, or leave it out to
    get the default order for each report type.
    """

    def __init__(
        self,
        strategies: Optional[Sequence[ExtractionStrategy]] = None,
        critical_threshold_percent: Optional[float] = None,
        strategy_factory: StrategyFactory = default_strategies,
    ):
        self.strategies = list(strategies) if strategies is not None else None
        self.critical_threshold_percent = critical_threshold_percent
        self.strategy_factory = strategy_factory
        self.logger = logging.getLogger(__name__)

    def strategies_for(self, report_type: ReportType) -> List[ExtractionStrategy]:
        if self.strategies is not None:
            return self.strategies
        return self.strategy_factory(report_type, self.critical_threshold_percent)

    def extract(self, text: str, report_type: ReportType = ReportType.OTHER) -> List[TestParameter]:
        return self.extract_with_details(text, report_type).parameters

    def extract_with_details(self, text: str, report_type: ReportType = ReportType.OTHER) -> ExtractionResult:
        result = ExtractionResult()
        if not text or not text.strip():
            return result

        for strategy in self.strategies_for(report_type):
            result.attempted.append(strategy.name)
            parameters = strategy.try_extract(text)
            if not parameters:
                self.logger.debug(f"{strategy.name}: nothing found")
                continue

            result.parameters = self._canonicalize(parameters, report_type)
            result.strategy = strategy.name
            self.logger.info(
                f"Extracted {len(result.parameters)} parameters "
                f"({report_type.value}) with {strategy.name}"
            )
            return result

        self.logger.info(f"No parameters found in {report_type.value} report")
        return result

    @staticmethod
    def _canonicalize(parameters: Sequence[TestParameter], report_type: ReportType) -> List[TestParameter]:
        """Map names onto the report type's table and drop repeats (first wins)."""
        seen = set()
        canonical = []
        for parameter in parameters:
            definition = find_definition(parameter.name, report_type)
            if definition and definition.name != parameter.name:
                parameter = replace(parameter, name=definition.name)
            key = parameter.name.lower()
            if key in seen:
                continue
            seen.add(key)
            canonical.append(parameter)
        return canonical
