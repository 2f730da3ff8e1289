# ============================================================================
# src/labsync/classifiers/report_classifier.py
# ============================================================================
"""
Report Classification

Keyword scoring over the report text (and file name):

1. KEYWORD SCORE
   - Each category owns weighted patterns
   - Combination rules (e.g. hemoglobin + hematocrit + platelets) add a bonus

2. RESOLVE
   - Highest score wins
   - Ties go to the category listed first in CATEGORY_PRIORITY

3. HEURISTIC FALLBACK
   - Nothing scored: filename keywords, then content keywords
   - Default OTHER

Microbiology and ECG reports have no category of their own and land in OTHER.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from ..config import threshold_settings
from ..constants.report_types import ReportType

logger = logging.getLogger(__name__)

MICROBIOLOGY = "MICROBIOLOGY"

# Tie-break order, first wins
CATEGORY_PRIORITY: Tuple[str, ...] = (
    ReportType.CBC.value,
    ReportType.LIPID_PANEL.value,
    ReportType.METABOLIC_PANEL.value,
    ReportType.IMAGING.value,
    ReportType.PATHOLOGY.value,
    MICROBIOLOGY,
    ReportType.URINALYSIS.value,
    ReportType.THYROID_PANEL.value,
)

CATEGORY_REPORT_TYPES: Dict[str, ReportType] = {
    category: (ReportType.OTHER if category == MICROBIOLOGY else ReportType(category))
    for category in CATEGORY_PRIORITY
}


@dataclass
class CategoryRules:
    """Weighted keyword patterns for one category."""
    keywords: Dict[str, float]
    # All patterns present -> bonus
    combinations: List[Tuple[Tuple[str, ...], float]] = field(default_factory=list)


CLASSIFICATION_RULES: Dict[str, CategoryRules] = {
    ReportType.CBC.value: CategoryRules(
        keywords={
            r'complete\s+blood\s+count': 3.0,
            r'\bcbc\b': 2.0,
            r'\bwbc\b': 1.0,
            r'\brbc\b': 1.0,
        },
        combinations=[((r'h[ae]moglobin', r'hematocrit', r'platelets?'), 2.0)],
    ),
    ReportType.LIPID_PANEL.value: CategoryRules(
        keywords={
            r'lipid\s+panel': 3.0,
            r'cholesterol': 1.0,
            r'triglycerides?': 1.0,
        },
        combinations=[((r'\bldl\b', r'\bhdl\b'), 3.0)],
    ),
    ReportType.METABOLIC_PANEL.value: CategoryRules(
        keywords={
            r'metabolic\s+panel': 3.0,
            r'comprehensive\s+metabolic': 3.0,
            r'\bcmp\b': 2.0,
        },
        combinations=[((r'glucose', r'calcium', r'albumin'), 2.0)],
    ),
    ReportType.IMAGING.value: CategoryRules(
        keywords={
            r'imaging\s+report': 3.0,
            r'radiology': 2.0,
            r'x-ray': 2.0,
            r'\bmri\b': 2.0,
            r'ct\s+scan': 2.0,
            r'ultrasound': 2.0,
            r'\.dcm\b': 2.0,
            r'impression:': 1.0,
        },
    ),
    ReportType.PATHOLOGY.value: CategoryRules(
        keywords={
            r'pathology': 2.0,
            r'biopsy': 2.0,
            r'histology': 2.0,
            r'cytology': 2.0,
            r'specimen': 1.0,
        },
    ),
    MICROBIOLOGY: CategoryRules(
        keywords={
            r'microbiology': 3.0,
            r'culture': 1.0,
            r'sensitivity': 1.0,
            r'gram\s+stain': 2.0,
            r'bacteri(?:a|al)': 1.0,
            r'fungal': 1.0,
        },
    ),
    ReportType.URINALYSIS.value: CategoryRules(
        keywords={
            r'urinalysis': 3.0,
            r'urine\s+analysis': 3.0,
        },
        combinations=[
            ((r'urine', r'specific\s+gravity'), 2.0),
            ((r'urine', r'leukocytes?'), 2.0),
        ],
    ),
    ReportType.THYROID_PANEL.value: CategoryRules(
        keywords={
            r'thyroid': 2.0,
            r'\btsh\b': 2.0,
            r'\bt3\b': 1.0,
            r'\bt4\b': 1.0,
            r'free\s+t4': 1.0,
        },
    ),
}

# Secondary heuristic: (keywords, report type), checked in order
FILENAME_HINTS: List[Tuple[Tuple[str, ...], ReportType]] = [
    (('cbc', 'blood', 'hematology'), ReportType.CBC),
    (('lipid', 'cholesterol'), ReportType.LIPID_PANEL),
    (('ecg', 'ekg'), ReportType.OTHER),
    (('xray', 'x-ray', 'radiograph'), ReportType.IMAGING),
    (('metabolic', 'chemistry'), ReportType.METABOLIC_PANEL),
    (('mri', 'ct', 'ultrasound'), ReportType.IMAGING),
    (('urine', 'urinalysis'), ReportType.URINALYSIS),
]

CONTENT_HINTS: List[Tuple[Tuple[str, ...], ReportType]] = FILENAME_HINTS + [
    (('thyroid', 'tsh', 't3', 't4'), ReportType.THYROID_PANEL),
    (('pathology', 'biopsy', 'specimen'), ReportType.PATHOLOGY),
]


@dataclass
class ClassificationResult:
    report_type: ReportType
    confidence: float
    scores: Dict[str, float] = field(default_factory=dict)
    method: str = "keyword_score"
    category: Optional[str] = None

    def to_dict(self):
        return {
            "reportType": self.report_type.value,
            "category": self.category or self.report_type.value,
            "confidence": round(self.confidence, 3),
            "scores": self.scores,
            "method": self.method,
        }


def _contains_word(text: str, word: str) -> bool:
    return re.search(rf'(?<![a-z0-9]){re.escape(word)}(?![a-z0-9])', text) is not None


def guess_report_type(file_name: str = "", text: str = "") -> ReportType:
    """
    Keyword guess from the file name, then the content.

    Used when scoring finds nothing; always returns a type (OTHER by default).
    """
    name = (file_name or "").lower()
    for words, report_type in FILENAME_HINTS:
        if any(_contains_word(name, w) for w in words):
            return report_type

    content = (text or "").lower()
    for words, report_type in CONTENT_HINTS:
        if any(_contains_word(content, w) for w in words):
            return report_type

    return ReportType.OTHER


class ReportClassifier:
    """Scores report text against each category's keyword rules."""

    def __init__(
        self,
        rules: Optional[Dict[str, CategoryRules]] = None,
        min_score: Optional[float] = None,
    ):
        self.rules = rules or CLASSIFICATION_RULES
        self.min_score = min_score if min_score is not None else threshold_settings.MIN_CLASSIFICATION_SCORE
        self.logger = logging.getLogger(__name__)

    def score(self, text: str, file_name: str = "") -> Dict[str, float]:
        """Score per category for text plus file name."""
        haystack = f"{(text or '').lower()}\n{(file_name or '').lower()}"
        scores = {}
        for category, rules in self.rules.items():
            total = sum(
                weight for pattern, weight in rules.keywords.items()
                if re.search(pattern, haystack)
            )
            for patterns, bonus in rules.combinations:
                if all(re.search(p, haystack) for p in patterns):
                    total += bonus
            scores[category] = total
        return scores

    def classify(self, text: str, file_name: str = "") -> ClassificationResult:
        scores = self.score(text, file_name)
        best = self._resolve(scores)

        if best is None:
            report_type = guess_report_type(file_name, text)
            self.logger.debug(f"No keyword score, heuristic guess: {report_type.value}")
            return ClassificationResult(
                report_type=report_type,
                confidence=0.0,
                scores=scores,
                method="heuristic",
            )

        total = sum(scores.values())
        confidence = scores[best] / total if total else 0.0
        report_type = CATEGORY_REPORT_TYPES.get(best, ReportType.OTHER)

        self.logger.info(
            f"Classified as {best} (score {scores[best]:.1f}, confidence {confidence:.2f})"
        )
        return ClassificationResult(
            report_type=report_type,
            confidence=confidence,
            scores=scores,
            method="keyword_score",
            category=best,
        )

    def _resolve(self, scores: Dict[str, float]) -> Optional[str]:
        """Highest score at or above min_score; ties go to the higher priority."""
        ranked = [
            category for category in CATEGORY_PRIORITY
            if scores.get(category, 0.0) >= self.min_score
        ]
        ranked += [
            category for category in scores
            if category not in CATEGORY_PRIORITY and scores[category] >= self.min_score
        ]
        if not ranked:
            return None
        # max() keeps the first of equal scores, i.e. the priority order
        return max(ranked, key=lambda c: scores[c])
