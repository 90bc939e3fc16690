"""Project models for SmartBuild.

Pydantic models for construction projects, estimation requests,
and completed historical projects.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


# =============================================================================
# ENUMS
# =============================================================================


class ProjectType(str, Enum):
    """Construction project types."""

    RESIDENTIAL_NEW = "residential_new"
    RESIDENTIAL_RENOVATION = "residential_renovation"
    COMMERCIAL_NEW = "commercial_new"
    COMMERCIAL_RENOVATION = "commercial_renovation"
    INFRASTRUCTURE = "infrastructure"
    INDUSTRIAL = "industrial"


class ProjectStatus(str, Enum):
    """Project lifecycle status.

    planning -> estimation -> approved -> in_progress -> completed,
    with on_hold and cancelled as side branches. Transitions are not enforced.
    """

    PLANNING = "planning"
    ESTIMATION = "estimation"
    APPROVED = "approved"
    IN_PROGRESS = "in_progress"
    ON_HOLD = "on_hold"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# =============================================================================
# PROJECT MODEL
# =============================================================================


class Project(BaseModel):
    """A construction project owned by a user."""

    id: str = Field(..., description="Project ID")
    name: str = Field(..., description="Project name")
    description: str = Field(default="", description="Free-text description")
    type: ProjectType = Field(..., description="Project type")
    location: str = Field(..., description="City / region")
    start_date: datetime = Field(..., alias="startDate")
    estimated_end_date: datetime = Field(..., alias="estimatedEndDate")
    actual_end_date: Optional[datetime] = Field(default=None, alias="actualEndDate")
    status: ProjectStatus = Field(default=ProjectStatus.PLANNING)
    budget: float = Field(default=0.0, ge=0, description="Approved budget")
    estimated_cost: float = Field(default=0.0, ge=0, alias="estimatedCost")
    actual_cost: float = Field(default=0.0, ge=0, alias="actualCost")
    owner_id: str = Field(..., alias="ownerId")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")

    class Config:
        populate_by_name = True

    def to_firestore_dict(self) -> dict:
        """Convert to Firestore-compatible dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# =============================================================================
# ESTIMATION REQUEST
# =============================================================================


class EstimationRequest(BaseModel):
    """Input to the estimation flow. Immutable."""

    project_type: ProjectType = Field(..., alias="projectType")
    size: float = Field(..., gt=0, description="Project size in square feet")
    location: str = Field(..., description="Free-text location")
    specifications: str = Field(default="", description="Free-text specifications")
    timeline: Optional[str] = Field(default=None, description="Desired timeline, free text")
    special_requirements: List[str] = Field(
        default_factory=list,
        alias="specialRequirements",
        description="Ordered list of special requirements"
    )

    class Config:
        populate_by_name = True
        frozen = True


# =============================================================================
# HISTORICAL PROJECT
# =============================================================================


class HistoricalProject(BaseModel):
    """A completed project kept for calibrating future estimates."""

    id: Optional[str] = Field(default=None)
    project_type: ProjectType = Field(..., alias="projectType")
    size: float = Field(..., gt=0)
    location: str
    estimated_cost: float = Field(..., ge=0, alias="estimatedCost")
    actual_cost: float = Field(..., ge=0, alias="actualCost")
    estimated_duration: int = Field(..., ge=0, alias="estimatedDuration")
    actual_duration: int = Field(..., ge=0, alias="actualDuration")
    completed_at: datetime = Field(..., alias="completedAt")
    success_factors: List[str] = Field(default_factory=list, alias="successFactors")
    challenges: List[str] = Field(default_factory=list)

    class Config:
        populate_by_name = True

    @property
    def cost_overrun_percent(self) -> Optional[float]:
        """Actual vs. estimated cost, as a percentage of the estimate."""
        if self.estimated_cost == 0:
            return None
        return (self.actual_cost - self.estimated_cost) / self.estimated_cost * 100
