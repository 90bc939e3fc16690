"""Comparison service for SmartBuild.

Reconciles an AI estimate against a manually entered one, field by field.
Pure computation: no model calls, no persistence.
"""

from typing import Dict, Optional, Tuple

import structlog

from models.comparison import (
    COMPARED_FIELDS,
    AccuracyTier,
    ComparisonResult,
    FieldVariance,
    ManualEstimate,
    VarianceTier,
)
from models.estimation import EstimationResponse

logger = structlog.get_logger()

ACCURACY_INSIGHTS = {
    AccuracyTier.EXCELLENT: "Excellent accuracy! The AI estimate closely matches your manual estimate.",
    AccuracyTier.GOOD: "Good accuracy. Minor differences may be due to different assumptions or market data.",
    AccuracyTier.MODERATE: "Moderate accuracy. Consider reviewing the project specifications and market conditions.",
    AccuracyTier.REVIEW_REQUIRED: "Significant differences detected. Review project details and consider updating AI training data.",
}


def calculate_variance(ai_value: float, manual_value: float) -> Optional[float]:
    """Percentage difference of the manual value relative to the AI value.

    Returns None when the AI value is zero; the field is then not comparable.
    """
    if ai_value == 0:
        return None
    return (manual_value - ai_value) / ai_value * 100


def classify_variance(variance: Optional[float]) -> VarianceTier:
    if variance is None:
        return VarianceTier.NOT_COMPARABLE
    magnitude = abs(variance)
    if magnitude < 5:
        return VarianceTier.EXCELLENT
    if magnitude < 15:
        return VarianceTier.GOOD
    return VarianceTier.SIGNIFICANT


def classify_accuracy(accuracy: float) -> Tuple[AccuracyTier, str]:
    """Accuracy tier and the insight shown for it."""
    if accuracy > 90:
        tier = AccuracyTier.EXCELLENT
    elif accuracy > 80:
        tier = AccuracyTier.GOOD
    elif accuracy > 60:
        tier = AccuracyTier.MODERATE
    else:
        tier = AccuracyTier.REVIEW_REQUIRED
    return tier, ACCURACY_INSIGHTS[tier]


def _ai_values(estimate: EstimationResponse) -> Dict[str, float]:
    breakdown = estimate.cost_breakdown
    return {
        "total_cost": estimate.estimated_cost,
        "materials": breakdown.materials,
        "labor": breakdown.labor,
        "equipment": breakdown.equipment,
        "overhead": breakdown.overhead,
        "timeline": estimate.timeline,
    }


class ComparisonService:
    """AI vs. manual estimate comparison."""

    def compare(self, ai_estimate: EstimationResponse, manual_estimate: ManualEstimate) -> ComparisonResult:
        """Per-field variance plus an overall accuracy score.

        Accuracy is ``max(0, 100 - mean(|variance|))`` over the comparable
        fields, and 0 when no field is comparable.
        """
        ai_values = _ai_values(ai_estimate)
        variance = {}
        for field in COMPARED_FIELDS:
            ai_value = ai_values[field]
            manual_value = getattr(manual_estimate, field)
            value = calculate_variance(ai_value, manual_value)
            variance[field] = FieldVariance(
                field=field,
                ai_value=ai_value,
                manual_value=manual_value,
                variance=value,
                tier=classify_variance(value),
            )

        comparable = [v.variance for v in variance.values() if v.variance is not None]
        if comparable:
            mean_abs = sum(abs(v) for v in comparable) / len(comparable)
            accuracy = max(0.0, 100 - mean_abs)
        else:
            accuracy = 0.0
        tier, insight = classify_accuracy(accuracy)

        logger.info(
            "estimates_compared",
            accuracy=round(accuracy, 2),
            accuracy_tier=tier.value,
            comparable_fields=len(comparable),
        )

        return ComparisonResult(
            ai_estimate=ai_estimate,
            manual_estimate=manual_estimate,
            variance=variance,
            accuracy=accuracy,
            accuracy_tier=tier,
            insight=insight,
        )
