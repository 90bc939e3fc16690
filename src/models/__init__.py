"""SmartBuild domain models."""

from models.project import (
    EstimationRequest,
    HistoricalProject,
    Project,
    ProjectStatus,
    ProjectType,
)
from models.estimation import (
    AvailabilityStatus,
    CostBreakdown,
    EstimationMethod,
    EstimationResponse,
    MarketConditions,
    Material,
    MaterialCategory,
    ProjectEstimate,
    SkillType,
    WorkforceRequirement,
)
from models.risk import (
    Risk,
    RiskAssessment,
    RiskCategory,
    RiskLevel,
    RiskStatus,
    WeatherRiskAssessment,
)
from models.comparison import (
    AccuracyTier,
    ComparisonResult,
    FieldVariance,
    ManualEstimate,
    VarianceTier,
)

__all__ = [
    "EstimationRequest",
    "HistoricalProject",
    "Project",
    "ProjectStatus",
    "ProjectType",
    "AvailabilityStatus",
    "CostBreakdown",
    "EstimationMethod",
    "EstimationResponse",
    "MarketConditions",
    "Material",
    "MaterialCategory",
    "ProjectEstimate",
    "SkillType",
    "WorkforceRequirement",
    "Risk",
    "RiskAssessment",
    "RiskCategory",
    "RiskLevel",
    "RiskStatus",
    "WeatherRiskAssessment",
    "AccuracyTier",
    "ComparisonResult",
    "FieldVariance",
    "ManualEstimate",
    "VarianceTier",
]
