"""Comparison models for SmartBuild.

Ephemeral records produced when an AI estimate is reconciled against a
manually entered estimate. Nothing here is persisted.
"""

from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, Field

from models.estimation import EstimationResponse


COMPARED_FIELDS = ("total_cost", "materials", "labor", "equipment", "overhead", "timeline")


class VarianceTier(str, Enum):
    """Qualitative bucket for a single field's variance."""

    EXCELLENT = "excellent"            # |variance| < 5
    GOOD = "good"                      # |variance| < 15
    SIGNIFICANT = "significant"        # review required
    NOT_COMPARABLE = "not_comparable"  # AI value was zero


class AccuracyTier(str, Enum):
    """Qualitative bucket for the overall accuracy score."""

    EXCELLENT = "excellent"            # > 90
    GOOD = "good"                      # > 80
    MODERATE = "moderate"              # > 60
    REVIEW_REQUIRED = "review_required"


class ManualEstimate(BaseModel):
    """A manually entered estimate with the same shape as an AI estimate."""

    total_cost: float = Field(..., ge=0, alias="totalCost")
    materials: float = Field(default=0.0, ge=0)
    labor: float = Field(default=0.0, ge=0)
    equipment: float = Field(default=0.0, ge=0)
    overhead: float = Field(default=0.0, ge=0)
    timeline: float = Field(default=0.0, ge=0, description="Duration in days")
    notes: str = Field(default="")

    class Config:
        populate_by_name = True

    @classmethod
    def from_estimation(cls, estimate: EstimationResponse, notes: str = "") -> "ManualEstimate":
        """Seed a manual estimate from an AI estimate (useful as an editing baseline)."""
        return cls(
            total_cost=estimate.estimated_cost,
            materials=estimate.cost_breakdown.materials,
            labor=estimate.cost_breakdown.labor,
            equipment=estimate.cost_breakdown.equipment,
            overhead=estimate.cost_breakdown.overhead,
            timeline=estimate.timeline,
            notes=notes,
        )


class FieldVariance(BaseModel):
    """Variance for one compared field.

    ``variance`` is ``None`` when the AI value is zero and the field cannot
    be compared.
    """

    field: str
    ai_value: float = Field(..., alias="aiValue")
    manual_value: float = Field(..., alias="manualValue")
    variance: Optional[float] = Field(default=None, description="(manual - ai) / ai * 100")
    tier: VarianceTier

    class Config:
        populate_by_name = True

    @property
    def is_comparable(self) -> bool:
        return self.variance is not None


class ComparisonResult(BaseModel):
    """AI vs. manual estimate reconciliation."""

    ai_estimate: EstimationResponse = Field(..., alias="aiEstimate")
    manual_estimate: ManualEstimate = Field(..., alias="manualEstimate")
    variance: Dict[str, FieldVariance] = Field(default_factory=dict)
    accuracy: float = Field(..., ge=0, le=100)
    accuracy_tier: AccuracyTier = Field(..., alias="accuracyTier")
    insight: str = Field(default="")

    class Config:
        populate_by_name = True

    def variance_of(self, field: str) -> Optional[float]:
        """Raw variance percentage for a field (None if not comparable)."""
        return self.variance[field].variance

    @property
    def comparable_fields(self) -> int:
        return sum(1 for v in self.variance.values() if v.is_comparable)
