"""Estimation models for SmartBuild.

This module defines the output of the estimation flow: the headline cost
estimate with its four-way breakdown, plus the secondary material,
workforce and market-condition records.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


# =============================================================================
# ENUMS
# =============================================================================


class EstimationMethod(str, Enum):
    """How a stored project estimate was produced."""

    AI_GENERATED = "ai_generated"
    MANUAL = "manual"
    HYBRID = "hybrid"


class MaterialCategory(str, Enum):
    """Material categories."""

    CONCRETE = "concrete"
    STEEL = "steel"
    LUMBER = "lumber"
    ELECTRICAL = "electrical"
    PLUMBING = "plumbing"
    ROOFING = "roofing"
    INSULATION = "insulation"
    FLOORING = "flooring"
    FIXTURES = "fixtures"
    OTHER = "other"


class AvailabilityStatus(str, Enum):
    """Availability of a material or trade."""

    AVAILABLE = "available"
    LIMITED = "limited"
    UNAVAILABLE = "unavailable"
    BACKORDERED = "backordered"


class SkillType(str, Enum):
    """Workforce skill types."""

    GENERAL_LABOR = "general_labor"
    CARPENTER = "carpenter"
    ELECTRICIAN = "electrician"
    PLUMBER = "plumber"
    MASON = "mason"
    ROOFER = "roofer"
    HVAC_TECH = "hvac_tech"
    HEAVY_EQUIPMENT = "heavy_equipment"
    PROJECT_MANAGER = "project_manager"
    ENGINEER = "engineer"
    ARCHITECT = "architect"


# =============================================================================
# ESTIMATION RESPONSE
# =============================================================================


class CostBreakdown(BaseModel):
    """Four-way split of an estimated cost.

    Not required to sum exactly to the estimated cost when extracted from
    model text; fallback breakdowns always do.
    """

    materials: float = Field(..., ge=0)
    labor: float = Field(..., ge=0)
    equipment: float = Field(..., ge=0)
    overhead: float = Field(..., ge=0)

    class Config:
        frozen = True

    @property
    def total(self) -> float:
        """Sum of the four parts."""
        return self.materials + self.labor + self.equipment + self.overhead


class EstimationResponse(BaseModel):
    """Structured result of one estimation call. Immutable."""

    estimated_cost: float = Field(..., ge=0, alias="estimatedCost")
    cost_breakdown: CostBreakdown = Field(..., alias="costBreakdown")
    timeline: int = Field(..., gt=0, description="Estimated duration in days")
    confidence: int = Field(..., ge=0, le=100, description="Confidence 0-100")
    assumptions: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    risks: List[str] = Field(default_factory=list)

    class Config:
        populate_by_name = True
        frozen = True

    @field_validator("confidence", mode="before")
    @classmethod
    def clamp_confidence(cls, v):
        """Out-of-range confidence is clamped rather than rejected."""
        if isinstance(v, (int, float)):
            return int(max(0, min(100, v)))
        return v

    def to_firestore_dict(self) -> dict:
        """Convert to Firestore-compatible dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)


class ProjectEstimate(BaseModel):
    """An estimation response pinned to a project."""

    id: Optional[str] = Field(default=None)
    project_id: str = Field(..., alias="projectId")
    estimate: EstimationResponse
    method: EstimationMethod = Field(default=EstimationMethod.AI_GENERATED)
    created_by: str = Field(default="system", alias="createdBy")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")

    class Config:
        populate_by_name = True


# =============================================================================
# SECONDARY RECORDS
# =============================================================================


class Material(BaseModel):
    """A priced material line item."""

    id: str
    name: str
    category: MaterialCategory = Field(default=MaterialCategory.OTHER)
    unit: str = Field(default="unit")
    base_price: float = Field(default=0.0, ge=0, alias="basePrice")
    current_price: float = Field(default=0.0, ge=0, alias="currentPrice")
    supplier: Optional[str] = Field(default=None)
    availability: AvailabilityStatus = Field(default=AvailabilityStatus.AVAILABLE)
    lead_time: int = Field(default=7, ge=0, alias="leadTime", description="Lead time in days")

    class Config:
        populate_by_name = True

    @field_validator("category", mode="before")
    @classmethod
    def coerce_category(cls, v):
        """Unknown categories from model output collapse to 'other'."""
        if isinstance(v, str) and v.lower() in {c.value for c in MaterialCategory}:
            return v.lower()
        if isinstance(v, MaterialCategory):
            return v
        return MaterialCategory.OTHER


class WorkforceRequirement(BaseModel):
    """Crew requirement for one skill type."""

    id: str
    project_id: str = Field(default="temp", alias="projectId")
    skill_type: SkillType = Field(default=SkillType.GENERAL_LABOR, alias="skillType")
    required_count: int = Field(default=1, ge=0, alias="requiredCount")
    duration: int = Field(default=30, ge=0, description="Duration in days")
    hourly_rate: float = Field(default=25.0, ge=0, alias="hourlyRate")
    availability: AvailabilityStatus = Field(default=AvailabilityStatus.AVAILABLE)

    class Config:
        populate_by_name = True

    @field_validator("skill_type", mode="before")
    @classmethod
    def coerce_skill_type(cls, v):
        """Unknown skill types from model output collapse to general labor."""
        if isinstance(v, SkillType):
            return v
        if isinstance(v, str):
            normalized = v.strip().lower().replace(" ", "_").replace("-", "_")
            if normalized in {s.value for s in SkillType}:
                return normalized
        return SkillType.GENERAL_LABOR

    @field_validator("availability", mode="before")
    @classmethod
    def coerce_availability(cls, v):
        if isinstance(v, str) and v.lower() in {a.value for a in AvailabilityStatus}:
            return v.lower()
        if isinstance(v, AvailabilityStatus):
            return v
        return AvailabilityStatus.AVAILABLE

    @property
    def labor_cost(self) -> float:
        """Crew cost assuming 8-hour working days."""
        return self.required_count * self.duration * 8 * self.hourly_rate


class MarketConditions(BaseModel):
    """Regional market adjustment for a project type."""

    material_cost_multiplier: float = Field(
        default=1.0, ge=0.8, le=1.5, alias="materialCostMultiplier"
    )
    labor_cost_multiplier: float = Field(
        default=1.0, ge=0.8, le=1.5, alias="laborCostMultiplier"
    )
    market_insights: List[str] = Field(default_factory=list, alias="marketInsights")

    class Config:
        populate_by_name = True
