"""Risk models for SmartBuild.

Risk records carry probability and impact on a 0-100 scale; the risk score
is always probability * impact / 100 rounded half up, and an assessment's overall
score is always the mean of its risk scores rounded half up.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

from utils.rounding import round_half_up


# =============================================================================
# ENUMS
# =============================================================================


class RiskCategory(str, Enum):
    """The eight risk categories analysed for every project."""

    WEATHER = "weather"
    SUPPLY_CHAIN = "supply_chain"
    WORKFORCE = "workforce"
    REGULATORY = "regulatory"
    FINANCIAL = "financial"
    TECHNICAL = "technical"
    SAFETY = "safety"
    ENVIRONMENTAL = "environmental"


class RiskStatus(str, Enum):
    """Risk handling status."""

    IDENTIFIED = "identified"
    MONITORING = "monitoring"
    MITIGATING = "mitigating"
    RESOLVED = "resolved"


class RiskLevel(str, Enum):
    """Coarse risk level used by the weather assessment."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# =============================================================================
# HELPERS
# =============================================================================


def compute_risk_score(probability: int, impact: int) -> int:
    """Risk score for a probability/impact pair (both 0-100)."""
    return round_half_up(probability * impact / 100)


def compute_overall_score(risks: List["Risk"]) -> int:
    """Rounded mean of the risk scores (0 for an empty list)."""
    if not risks:
        return 0
    return round_half_up(sum(r.risk_score for r in risks) / len(risks))


# =============================================================================
# RISK MODEL
# =============================================================================


class Risk(BaseModel):
    """A single identified project risk."""

    id: str = Field(..., description="Risk identifier")
    category: RiskCategory = Field(..., description="Risk category")
    description: str = Field(..., description="What could go wrong")
    probability: int = Field(..., ge=0, le=100, description="Likelihood 0-100")
    impact: int = Field(..., ge=0, le=100, description="Severity 0-100")
    risk_score: Optional[int] = Field(
        default=None, ge=0, le=100, alias="riskScore",
        description="probability * impact / 100, rounded half up"
    )
    mitigation: str = Field(..., description="Mitigation strategy")
    status: RiskStatus = Field(default=RiskStatus.IDENTIFIED)

    class Config:
        populate_by_name = True

    @model_validator(mode="after")
    def validate_risk_score(self) -> "Risk":
        """Derive the score when absent; reject a score that disagrees."""
        expected = compute_risk_score(self.probability, self.impact)
        if self.risk_score is None:
            self.risk_score = expected
        elif self.risk_score != expected:
            raise ValueError(
                f"risk_score must equal probability * impact / 100 rounded half up, got: "
                f"probability={self.probability}, impact={self.impact}, "
                f"risk_score={self.risk_score} (expected {expected})"
            )
        return self


# =============================================================================
# RISK ASSESSMENT MODEL
# =============================================================================


class RiskAssessment(BaseModel):
    """A versioned risk assessment for a project.

    Updates replace the whole record; the most recent assessment wins.
    """

    id: Optional[str] = Field(default=None)
    project_id: str = Field(..., alias="projectId")
    risks: List[Risk] = Field(default_factory=list)
    overall_risk_score: Optional[int] = Field(
        default=None, ge=0, le=100, alias="overallRiskScore"
    )
    recommendations: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")

    class Config:
        populate_by_name = True

    @model_validator(mode="after")
    def validate_overall_score(self) -> "RiskAssessment":
        """Overall score is always the rounded mean of the risk scores."""
        expected = compute_overall_score(self.risks)
        if self.overall_risk_score is None:
            self.overall_risk_score = expected
        elif self.overall_risk_score != expected:
            raise ValueError(
                f"overall_risk_score must be the rounded mean of risk scores "
                f"({expected}), got {self.overall_risk_score}"
            )
        return self

    def get_risks_by_category(self, category: RiskCategory) -> List[Risk]:
        """Risks in a single category."""
        return [r for r in self.risks if r.category == category]

    def get_top_risks(self, limit: int = 3) -> List[Risk]:
        """Highest-scoring risks first."""
        return sorted(self.risks, key=lambda r: r.risk_score, reverse=True)[:limit]

    def to_firestore_dict(self) -> dict:
        """Convert to Firestore-compatible dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class WeatherRiskAssessment(BaseModel):
    """Weather-specific risk summary for a location and date window."""

    risk_level: RiskLevel = Field(default=RiskLevel.MEDIUM, alias="riskLevel")
    seasonal_factors: List[str] = Field(default_factory=list, alias="seasonalFactors")
    recommendations: List[str] = Field(default_factory=list)

    class Config:
        populate_by_name = True
