# ============================================================================
# src/labsync/ai/trends.py
# ============================================================================
"""
Trend analysis over dated measurements of one test.

The slope is a least-squares fit of value against time in days, so the
direction threshold of 0.0001 is per day.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Sequence, Union

from ..core.models import MedicalReport
from ..extraction.status import to_number
from ..utils.exceptions import InsufficientDataError

SLOPE_THRESHOLD = 0.0001
MIN_POINTS = 2
SECONDS_PER_DAY = 86400


@dataclass
class TrendPoint:
    date: datetime
    value: float
    report_id: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"date": self.date.isoformat(), "value": self.value, "reportId": self.report_id}


@dataclass
class TrendResult:
    metric: str
    minimum: float
    maximum: float
    average: float
    slope: float
    direction: str
    percent_change: float
    insights: List[str] = field(default_factory=list)
    points: List[TrendPoint] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "metric": self.metric,
            "statistics": {
                "min": self.minimum,
                "max": self.maximum,
                "average": round(self.average, 4),
                "percentChange": f"{self.percent_change:.2f}%",
                "direction": self.direction,
            },
            "insights": list(self.insights),
            "dataPoints": len(self.points),
            "points": [p.to_dict() for p in self.points],
        }


def parse_date(value: Union[str, datetime]) -> datetime:
    if isinstance(value, datetime):
        return value
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    # Mixing naive and aware datetimes breaks the regression
    return parsed.replace(tzinfo=None)


def _insights(metric: str, direction: str, maximum: float) -> List[str]:
    name = metric.lower()
    if 'glucose' in name:
        if direction == 'increasing':
            return ['Your glucose levels have been trending upward, which may require attention']
        if direction == 'decreasing' and maximum > 120:
            return ['Your glucose levels are improving, but were previously elevated']
    elif 'cholesterol' in name:
        if direction == 'decreasing':
            return ['Your cholesterol levels are showing improvement']
        if direction == 'increasing':
            return ['Your cholesterol levels are trending upward, consider dietary adjustments']
    return []


def compute_trend(points: Sequence[TrendPoint], metric: str = "") -> TrendResult:
    """
    Statistics and direction for at least two points.

    Raises:
        InsufficientDataError: fewer than two points
    """
    if len(points) < MIN_POINTS:
        raise InsufficientDataError(
            "Insufficient data for trend analysis",
            required=MIN_POINTS,
            available=len(points),
        )

    ordered = sorted(points, key=lambda p: p.date)
    values = [p.value for p in ordered]
    times = [p.date.timestamp() / SECONDS_PER_DAY for p in ordered]

    average = sum(values) / len(values)
    x_mean = sum(times) / len(times)
    numerator = sum((x - x_mean) * (y - average) for x, y in zip(times, values))
    denominator = sum((x - x_mean) ** 2 for x in times)
    slope = numerator / denominator if denominator else 0.0

    if slope > SLOPE_THRESHOLD:
        direction = 'increasing'
    elif slope < -SLOPE_THRESHOLD:
        direction = 'decreasing'
    else:
        direction = 'stable'

    first, last = values[0], values[-1]
    percent_change = ((last - first) / first) * 100 if first else 0.0

    maximum = max(values)
    return TrendResult(
        metric=metric,
        minimum=min(values),
        maximum=maximum,
        average=average,
        slope=slope,
        direction=direction,
        percent_change=percent_change,
        insights=_insights(metric, direction, maximum),
        points=list(ordered),
    )


def collect_points(reports: Sequence[MedicalReport], test_name: str) -> List[TrendPoint]:
    """Numeric values of test_name across reports, dated by report date or upload date."""
    wanted = test_name.strip().lower()
    points = []
    for report in reports:
        for parameter in report.results:
            if parameter.name.strip().lower() != wanted:
                continue
            value = to_number(parameter.value)
            if value is None:
                continue
            try:
                date = parse_date(report.report_date or report.upload_date)
            except ValueError:
                date = parse_date(report.upload_date)
            points.append(TrendPoint(date=date, value=value, report_id=report.id))
            break
    return points
