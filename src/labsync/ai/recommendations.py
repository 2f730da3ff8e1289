# ============================================================================
# src/labsync/ai/recommendations.py
# ============================================================================
"""
Personalized Recommendations and Health Plans

Rule-based generators driven by report type, abnormal results and optional
patient context:

    patient_context = {
        "age": 52,
        "lifestyle": {"smoking": "yes", "alcohol": "occasional",
                      "stress": "high", "exercise": "sedentary"},
        "preferences": {"dietaryPreferences": "vegetarian",
                        "exercisePreferences": "swimming"},
        "medications": ["atorvastatin"],
    }

Every generator returns a de-duplicated list (first occurrence wins) and
falls back to its default list if rule evaluation fails.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence

from ..config import ai_settings
from ..constants.report_types import ParameterStatus, ReportType
from ..core.models import MedicalReport, TestParameter
from .client import LLMClient
from .prompts import build_health_plan_prompt

logger = logging.getLogger(__name__)

HIGH = "high"
LOW = "low"

DEFAULT_DIETARY = [
    'Maintain a balanced diet with plenty of fruits, vegetables, and whole grains',
    'Stay hydrated by drinking adequate water throughout the day',
    'Limit processed foods, added sugars, and excessive salt intake',
]

DEFAULT_EXERCISE = [
    'Aim for at least 150 minutes of moderate-intensity aerobic activity per week',
    'Include strength training exercises at least twice per week',
    'Find physical activities you enjoy to help maintain consistency',
]

DEFAULT_LIFESTYLE = [
    'Ensure 7-8 hours of quality sleep each night',
    'Practice stress management techniques such as meditation, deep breathing, or mindfulness',
    'Maintain a consistent daily routine for meals and physical activity',
    'Stay hydrated by drinking adequate water throughout the day',
    'Limit screen time, especially before bedtime',
    'Take regular breaks during extended periods of sitting',
    'Consider keeping a health journal to track symptoms and identify patterns',
]

DEFAULT_MEDICATION_NOTES = [
    'Continue taking all prescribed medications as directed by your healthcare provider',
    'Do not start or stop any medications without consulting your healthcare provider',
    'Keep an updated list of all medications, including over-the-counter drugs and supplements',
    'Take medications at the same time each day to establish a routine',
    'Use pill organizers or reminder apps if you have trouble remembering to take medications',
    'Store medications according to instructions (some may need refrigeration or protection from light)',
    'Be aware of potential drug interactions, including with foods, supplements, and alcohol',
]

DEFAULT_FOLLOW_UP = (
    'Schedule a follow-up appointment with your healthcare provider in 3-6 months. '
    'Book an appointment with your primary care physician to review results and adjust your health plan as needed.'
)

DEFAULT_GOALS = [
    {'description': 'Schedule all recommended follow-up appointments', 'timeframe': 'short-term'},
    {'description': 'Establish consistent healthy eating and exercise habits', 'timeframe': 'short-term'},
    {'description': 'Increase daily physical activity', 'timeframe': '1 month'},
    {'description': 'Improve nutrition by adding more fruits and vegetables', 'timeframe': '2 weeks'},
    {'description': 'Achieve and maintain all health metrics within normal ranges', 'timeframe': 'long-term'},
    {'description': 'Develop sustainable lifestyle habits for long-term health', 'timeframe': 'long-term'},
]

FALLBACK_PLAN_SUMMARY = (
    'We recommend maintaining a healthy lifestyle and consulting with your healthcare '
    'provider for personalized guidance.'
)


def _dedupe(items: Sequence[str]) -> List[str]:
    return list(dict.fromkeys(items))


def _direction(parameter: TestParameter) -> Optional[str]:
    if parameter.status in (ParameterStatus.HIGH, ParameterStatus.CRITICAL_HIGH):
        return HIGH
    if parameter.status in (ParameterStatus.LOW, ParameterStatus.CRITICAL_LOW):
        return LOW
    return None


def _abnormal(results: Sequence[TestParameter]) -> List[tuple]:
    """(lower-cased name, "high"/"low") for each out-of-range result."""
    flagged = []
    for parameter in results or []:
        direction = _direction(parameter)
        if direction:
            flagged.append((parameter.name.lower(), direction))
    return flagged


def _has_high(abnormal: Sequence[tuple], *terms: str) -> bool:
    return any(d == HIGH and any(t in name for t in terms) for name, d in abnormal)


def _context_text(context: Optional[Dict[str, Any]], *keys: str) -> str:
    value: Any = context or {}
    for key in keys:
        if not isinstance(value, dict):
            return ""
        value = value.get(key)
    return value.lower() if isinstance(value, str) else ""


def generate_dietary_recommendations(
    report_type: ReportType,
    results: Sequence[TestParameter],
    patient_context: Optional[Dict[str, Any]] = None,
) -> List[str]:
    recommendations = [
        'Maintain a balanced diet with plenty of fruits, vegetables, and whole grains',
        'Stay hydrated by drinking adequate water throughout the day',
    ]

    if report_type == ReportType.LIPID_PANEL:
        recommendations += [
            'Increase intake of omega-3 fatty acids from sources like fatty fish, flaxseeds, and walnuts',
            'Reduce consumption of saturated and trans fats found in fried foods and processed meats',
            'Include soluble fiber from oats, beans, and fruits to help lower cholesterol',
        ]
    elif report_type == ReportType.METABOLIC_PANEL:
        recommendations += [
            'Limit added sugars and refined carbohydrates to help maintain healthy blood glucose levels',
            'Choose complex carbohydrates with lower glycemic index like whole grains and legumes',
            'Maintain consistent meal timing to help regulate blood sugar',
        ]
    elif report_type == ReportType.CBC:
        recommendations += [
            'Include iron-rich foods like lean meats, beans, and leafy greens if hemoglobin is low',
            'Consume vitamin C alongside iron-rich plant foods to enhance absorption',
        ]

    for name, direction in _abnormal(results):
        if any(t in name for t in ('cholesterol', 'ldl', 'triglyceride')):
            if direction == HIGH:
                recommendations += [
                    'Limit dietary cholesterol by reducing consumption of egg yolks and organ meats',
                    'Increase consumption of plant sterols found in vegetable oils, nuts, and seeds',
                ]
        elif 'glucose' in name or 'a1c' in name:
            if direction == HIGH:
                recommendations += [
                    'Monitor carbohydrate intake and focus on low-glycemic index foods',
                    'Include protein and healthy fats with each meal to slow glucose absorption',
                ]
        elif 'sodium' in name and direction == HIGH:
            recommendations.append(
                'Reduce sodium intake by limiting processed foods, canned soups, and adding less salt while cooking'
            )
        elif 'potassium' in name and direction == LOW:
            recommendations.append(
                'Increase potassium intake through foods like bananas, oranges, potatoes, and leafy greens'
            )

    preferences = _context_text(patient_context, 'preferences', 'dietaryPreferences')
    if 'vegetarian' in preferences or 'vegan' in preferences:
        recommendations += [
            'Ensure adequate protein intake through plant sources like legumes, tofu, tempeh, and seitan',
            'Consider vitamin B12 supplementation or fortified foods if following a vegan diet',
        ]
    elif 'keto' in preferences or 'low carb' in preferences:
        recommendations += [
            'Focus on healthy fats from avocados, olive oil, nuts, and seeds',
            'Include low-carb vegetables like leafy greens, broccoli, and cauliflower',
        ]

    return _dedupe(recommendations)


def generate_exercise_recommendations(
    report_type: ReportType,
    results: Sequence[TestParameter],
    patient_context: Optional[Dict[str, Any]] = None,
) -> List[str]:
    recommendations = [
        'Aim for at least 150 minutes of moderate-intensity aerobic activity per week',
        'Include strength training exercises at least twice per week',
    ]

    age = (patient_context or {}).get('age')
    try:
        age = int(age) if age is not None else None
    except (TypeError, ValueError):
        age = None
    if age is not None:
        if age >= 65:
            recommendations += [
                'Include balance exercises like tai chi or yoga to prevent falls',
                'Start with lower intensity activities and gradually increase as tolerated',
            ]
        elif age >= 40:
            recommendations += [
                'Include flexibility exercises to maintain joint mobility',
                'Consider activities that are gentle on the joints like swimming or cycling',
            ]

    if report_type == ReportType.LIPID_PANEL:
        recommendations += [
            'Prioritize regular aerobic exercise like brisk walking, swimming, or cycling to help improve cholesterol levels',
            'Aim for 30-40 minutes of moderate-intensity exercise most days of the week',
        ]
    elif report_type == ReportType.METABOLIC_PANEL:
        recommendations += [
            'Include both aerobic and resistance training to help improve insulin sensitivity',
            'Consider short walks after meals to help manage blood glucose levels',
        ]

    for name, direction in _abnormal(results):
        if direction != HIGH:
            continue
        if 'glucose' in name or 'a1c' in name:
            recommendations += [
                'Break up periods of sitting with short bouts of activity throughout the day',
                "Monitor blood glucose before and after exercise to understand your body's response",
            ]
        elif 'cholesterol' in name or 'ldl' in name:
            recommendations.append(
                'Increase duration of aerobic exercise sessions gradually to 45-60 minutes when possible'
            )
        elif 'blood pressure' in name:
            recommendations += [
                'Avoid high-intensity exercises until blood pressure is better controlled',
                'Focus on moderate activities like walking, swimming, or cycling',
            ]

    preferences = _context_text(patient_context, 'preferences', 'exercisePreferences')
    if 'walking' in preferences or 'hiking' in preferences:
        recommendations.append('Gradually increase walking duration and intensity, aiming for 10,000 steps daily')
    elif 'swim' in preferences:
        recommendations.append('Swimming is excellent low-impact exercise; aim for 2-3 sessions per week')
    elif 'yoga' in preferences or 'pilates' in preferences:
        recommendations.append('Complement yoga or pilates with some aerobic activity for cardiovascular benefits')

    return _dedupe(recommendations)


def generate_lifestyle_modifications(
    report_type: ReportType,
    results: Sequence[TestParameter],
    patient_context: Optional[Dict[str, Any]] = None,
) -> List[str]:
    try:
        recommendations = [
            'Ensure 7-8 hours of quality sleep each night',
            'Practice stress management techniques such as meditation, deep breathing, or mindfulness',
        ]

        if 'yes' in _context_text(patient_context, 'lifestyle', 'smoking'):
            recommendations.append(
                'Consider a smoking cessation program or talk to your healthcare provider about quitting resources'
            )
        alcohol = _context_text(patient_context, 'lifestyle', 'alcohol')
        if alcohol and 'none' not in alcohol:
            recommendations.append(
                'Limit alcohol consumption to moderate levels (up to 1 drink per day for women, '
                'up to 2 drinks per day for men)'
            )
        stress = _context_text(patient_context, 'lifestyle', 'stress')
        if 'high' in stress or 'moderate' in stress:
            recommendations += [
                'Incorporate regular stress-reduction activities like yoga, tai chi, or hobbies you enjoy',
                'Consider time management strategies to reduce daily stressors',
            ]

        if report_type in (ReportType.LIPID_PANEL, ReportType.METABOLIC_PANEL):
            recommendations += [
                'Maintain a consistent daily routine for meals and physical activity',
                'Keep a food and activity journal to identify patterns and areas for improvement',
            ]

        for name, direction in _abnormal(results):
            if direction != HIGH:
                continue
            if 'glucose' in name or 'a1c' in name:
                recommendations += [
                    'Monitor blood glucose regularly as recommended by your healthcare provider',
                    'Learn to recognize and manage stress, which can affect blood glucose levels',
                ]
            elif 'cholesterol' in name or 'ldl' in name:
                recommendations.append(
                    'Consider using a heart-healthy cooking method like baking, steaming, or grilling instead of frying'
                )
            elif 'blood pressure' in name:
                recommendations += [
                    'Reduce sodium intake and consider following the DASH diet approach',
                    'Monitor your blood pressure regularly at home if recommended by your healthcare provider',
                ]

        return _dedupe(recommendations) or list(DEFAULT_LIFESTYLE)
    except Exception as e:
        logger.error(f"Lifestyle recommendations failed: {e}", exc_info=True)
        return list(DEFAULT_LIFESTYLE)


def generate_medication_notes(
    report_type: ReportType,
    results: Sequence[TestParameter],
    patient_context: Optional[Dict[str, Any]] = None,
) -> List[str]:
    try:
        notes = [
            'Continue taking all prescribed medications as directed by your healthcare provider',
            'Do not start or stop any medications without consulting your healthcare provider',
        ]

        medications = (patient_context or {}).get('medications')
        if isinstance(medications, list) and medications:
            notes += [
                'Keep an updated list of all medications, including over-the-counter drugs and supplements',
                'Report any side effects or concerns about your medications to your healthcare provider',
            ]

        abnormal = _abnormal(results)
        if report_type == ReportType.LIPID_PANEL and _has_high(abnormal, 'cholesterol', 'ldl'):
            notes += [
                'Discuss with your healthcare provider whether cholesterol-lowering medications might be appropriate',
                'If already on cholesterol medication, ensure regular follow-up to assess effectiveness',
            ]
        elif report_type == ReportType.METABOLIC_PANEL and _has_high(abnormal, 'glucose', 'a1c'):
            notes += [
                'Discuss with your healthcare provider about potential need for glucose-lowering medications',
                'If taking diabetes medications, monitor blood glucose as directed and report any unusual patterns',
            ]

        for name, direction in abnormal:
            if direction != LOW:
                continue
            if 'vitamin d' in name:
                notes.append('Discuss vitamin D supplementation with your healthcare provider')
            elif 'iron' in name:
                notes.append(
                    'Discuss iron supplementation with your healthcare provider, especially if experiencing fatigue'
                )
            elif 'b12' in name:
                notes.append('Consider vitamin B12 supplementation after consulting with your healthcare provider')

        return _dedupe(notes) or list(DEFAULT_MEDICATION_NOTES)
    except Exception as e:
        logger.error(f"Medication notes failed: {e}", exc_info=True)
        return list(DEFAULT_MEDICATION_NOTES)


FOLLOW_UP_BY_TYPE = {
    ReportType.LIPID_PANEL: (
        'Schedule a follow-up lipid panel in 3 months to assess progress. ',
        'Schedule your next lipid panel in 12 months if all values remain normal. ',
    ),
    ReportType.METABOLIC_PANEL: (
        'Schedule a follow-up metabolic panel in 3-6 months to monitor changes. ',
        'Schedule your next metabolic panel in 12 months if all values remain normal. ',
    ),
    ReportType.CBC: (
        'Schedule a follow-up CBC in 3 months to monitor blood cell counts. ',
        'Schedule your next CBC in 12 months as part of your annual check-up. ',
    ),
}


def generate_follow_up_schedule(report_type: ReportType, results: Sequence[TestParameter]) -> str:
    if report_type in FOLLOW_UP_BY_TYPE:
        abnormal_text, normal_text = FOLLOW_UP_BY_TYPE[report_type]
        schedule = abnormal_text if _abnormal(results) else normal_text
    elif report_type == ReportType.IMAGING:
        schedule = 'Discuss follow-up imaging needs with your specialist based on these findings. '
    else:
        schedule = 'Schedule a follow-up appointment with your healthcare provider in 3-6 months. '

    return schedule + (
        'Book an appointment with your primary care physician to review results '
        'and adjust your health plan as needed.'
    )


def generate_health_goals(
    report_type: ReportType,
    results: Sequence[TestParameter],
    patient_context: Optional[Dict[str, Any]] = None,
) -> List[Dict[str, str]]:
    try:
        goals = [
            {'description': 'Schedule all recommended follow-up appointments', 'timeframe': 'short-term'},
            {'description': 'Establish consistent healthy eating and exercise habits', 'timeframe': 'short-term'},
        ]

        abnormal = _abnormal(results)
        if report_type == ReportType.LIPID_PANEL and _has_high(abnormal, 'cholesterol', 'ldl'):
            goals += [
                {'description': 'Reduce LDL cholesterol by 10-15% through diet and exercise', 'timeframe': '3 months'},
                {'description': 'Increase HDL cholesterol through regular physical activity', 'timeframe': '6 months'},
            ]
        elif report_type == ReportType.METABOLIC_PANEL and _has_high(abnormal, 'glucose', 'a1c'):
            goals += [
                {'description': 'Achieve fasting glucose levels within normal range', 'timeframe': '3 months'},
                {'description': 'Maintain consistent carbohydrate intake throughout the day', 'timeframe': '1 month'},
            ]

        if 'yes' in _context_text(patient_context, 'lifestyle', 'smoking'):
            goals += [
                {'description': 'Reduce smoking by 50% as a step toward quitting', 'timeframe': '2 months'},
                {'description': 'Quit smoking completely', 'timeframe': 'long-term'},
            ]
        if 'sedentary' in _context_text(patient_context, 'lifestyle', 'exercise'):
            goals.append({
                'description': 'Incorporate at least 30 minutes of physical activity daily',
                'timeframe': '1 month',
            })

        goals += [
            {'description': 'Achieve and maintain all health metrics within normal ranges', 'timeframe': 'long-term'},
            {'description': 'Develop sustainable lifestyle habits for long-term health', 'timeframe': 'long-term'},
        ]
        return goals
    except Exception as e:
        logger.error(f"Health goals failed: {e}", exc_info=True)
        return [dict(goal) for goal in DEFAULT_GOALS]


def personalized_recommendations(
    report_type: ReportType,
    results: Sequence[TestParameter],
    patient_context: Optional[Dict[str, Any]] = None,
) -> Dict[str, List[str]]:
    """Dietary, exercise and lifestyle lists attached to every analysis."""
    try:
        return {
            'dietary': generate_dietary_recommendations(report_type, results, patient_context),
            'exercise': generate_exercise_recommendations(report_type, results, patient_context),
            'lifestyle': generate_lifestyle_modifications(report_type, results, patient_context),
        }
    except Exception as e:
        logger.error(f"Personalized recommendations failed: {e}", exc_info=True)
        return fallback_recommendations()


def fallback_recommendations() -> Dict[str, List[str]]:
    return {
        'dietary': list(DEFAULT_DIETARY),
        'exercise': list(DEFAULT_EXERCISE),
        'lifestyle': list(DEFAULT_LIFESTYLE[:3]),
    }


class HealthPlanService:
    """
    Builds the health plan for a stored report.

    The LLM, when available, only writes the summary paragraph. Every list in
    the plan comes from the rule generators above.
    """

    def __init__(self, client: Optional[LLMClient] = None, timeout: Optional[float] = None):
        self.client = client
        self.timeout = timeout or ai_settings.AI_REQUEST_TIMEOUT
        self.logger = logging.getLogger(__name__)

    async def generate_health_plan(
        self,
        report: MedicalReport,
        patient_data: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        results = report.results
        return {
            'summary': await self._summary(report, patient_data),
            'dietaryRecommendations': generate_dietary_recommendations(report.type, results, patient_data),
            'exerciseRecommendations': generate_exercise_recommendations(report.type, results, patient_data),
            'lifestyleChanges': generate_lifestyle_modifications(report.type, results, patient_data),
            'medicationNotes': generate_medication_notes(report.type, results, patient_data),
            'followUpSchedule': generate_follow_up_schedule(report.type, results),
            'goals': generate_health_goals(report.type, results, patient_data),
        }

    async def _summary(self, report: MedicalReport, patient_data: Optional[Dict[str, Any]]) -> str:
        if self.client is None:
            return FALLBACK_PLAN_SUMMARY

        prompt = build_health_plan_prompt(report, patient_data)
        try:
            response = await asyncio.wait_for(self.client.generate(prompt), timeout=self.timeout)
        except asyncio.TimeoutError:
            self.logger.warning(f"Health plan summary timed out after {self.timeout}s, using fallback")
            return FALLBACK_PLAN_SUMMARY
        except Exception as e:
            self.logger.warning(f"Health plan summary failed, using fallback: {e}")
            return FALLBACK_PLAN_SUMMARY

        text = (response.get('text') or '').strip()
        return text or FALLBACK_PLAN_SUMMARY
