from .report_classifier import (
    ReportClassifier,
    ClassificationResult,
    guess_report_type,
)

__all__ = ['ReportClassifier', 'ClassificationResult', 'guess_report_type']
