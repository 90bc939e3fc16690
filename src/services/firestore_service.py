"""Firestore service for SmartBuild.

Provides CRUD operations for projects, estimates, risk assessments and
historical projects.
"""

from typing import Any, Dict, List, Optional
from datetime import datetime, timezone
import inspect
import structlog

from firebase_admin import firestore

from config.errors import SmartBuildError, ErrorCode
from models.estimation import EstimationMethod, EstimationResponse, ProjectEstimate
from models.project import HistoricalProject, Project, ProjectType
from models.risk import RiskAssessment

logger = structlog.get_logger()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FirestoreService:
    """Service for Firestore operations.

    Records are stored as camelCase documents produced by each model's
    ``to_firestore_dict``. Listing queries filter on a single field and sort
    in memory, so no composite indexes are needed.

    Note: Firebase Admin SDK for Python is synchronous. Methods are
    marked async for interface compatibility but operations are sync.
    """

    COLLECTION_PROJECTS = "projects"
    COLLECTION_ESTIMATES = "estimates"
    COLLECTION_RISK_ASSESSMENTS = "riskAssessments"
    COLLECTION_HISTORICAL_PROJECTS = "historicalProjects"

    def __init__(self, db=None):
        """Initialize FirestoreService.

        Args:
            db: Optional Firestore client. If not provided, uses default.
        """
        self._db = db

    @property
    def db(self):
        """Get Firestore client (lazy initialization)."""
        if self._db is None:
            self._db = firestore.client()
        return self._db

    async def _maybe_await(self, result: Any) -> Any:
        """Await result if it is awaitable (supports AsyncMock in unit tests)."""
        if inspect.isawaitable(result):
            return await result
        return result

    def _query(self, collection: str, field: str, value: Any):
        return self.db.collection(collection).where(
            filter=firestore.FieldFilter(field, "==", value)
        )

    @staticmethod
    def _docs_to_dicts(docs) -> List[Dict[str, Any]]:
        return [{**(doc.to_dict() or {}), "id": doc.id} for doc in docs]

    @staticmethod
    def _newest_first(records: List[Dict[str, Any]], key: str) -> List[Dict[str, Any]]:
        return sorted(records, key=lambda r: str(r.get(key) or ""), reverse=True)

    # =========================================================================
    # PROJECTS
    # =========================================================================

    async def save_project(self, project: Project) -> str:
        """Create or replace a project document.

        Sets ``createdAt`` on first save and bumps ``updatedAt`` every time.

        Raises:
            SmartBuildError: If Firestore operation fails.
        """
        try:
            now = _utcnow()
            stamped = project.model_copy(update={
                "created_at": project.created_at or now,
                "updated_at": now,
            })
            doc_ref = self.db.collection(self.COLLECTION_PROJECTS).document(project.id)
            await self._maybe_await(doc_ref.set(stamped.to_firestore_dict()))
            logger.info("project_saved", project_id=project.id, status=project.status.value)
            return project.id

        except Exception as e:
            logger.error("project_save_failed", project_id=project.id, error=str(e))
            raise SmartBuildError(
                code=ErrorCode.FIRESTORE_WRITE_FAILED,
                message=f"Failed to save project: {str(e)}",
                details={"project_id": project.id}
            )

    async def get_project(self, project_id: str) -> Optional[Project]:
        """Fetch a project by ID, or None if it does not exist.

        Raises:
            SmartBuildError: If Firestore operation fails.
        """
        try:
            doc_ref = self.db.collection(self.COLLECTION_PROJECTS).document(project_id)
            doc = await self._maybe_await(doc_ref.get())

            if doc.exists:
                return Project(**{**doc.to_dict(), "id": doc.id})
            return None

        except Exception as e:
            logger.error("project_get_failed", project_id=project_id, error=str(e))
            raise SmartBuildError(
                code=ErrorCode.FIRESTORE_ERROR,
                message=f"Failed to get project: {str(e)}",
                details={"project_id": project_id}
            )

    async def get_projects_by_owner(self, owner_id: str) -> List[Project]:
        """All projects owned by a user, newest first."""
        try:
            docs = self._query(self.COLLECTION_PROJECTS, "ownerId", owner_id).stream()
            records = self._newest_first(self._docs_to_dicts(docs), "createdAt")
            return [Project(**record) for record in records]

        except Exception as e:
            logger.error("projects_list_failed", owner_id=owner_id, error=str(e))
            raise SmartBuildError(
                code=ErrorCode.FIRESTORE_ERROR,
                message=f"Failed to list projects: {str(e)}",
                details={"owner_id": owner_id}
            )

    async def delete_project(self, project_id: str) -> None:
        """Delete a project together with its estimates and risk assessments.

        Raises:
            SmartBuildError: If Firestore operation fails.
        """
        try:
            for collection in (self.COLLECTION_ESTIMATES, self.COLLECTION_RISK_ASSESSMENTS):
                for doc in self._query(collection, "projectId", project_id).stream():
                    await self._maybe_await(doc.reference.delete())

            doc_ref = self.db.collection(self.COLLECTION_PROJECTS).document(project_id)
            await self._maybe_await(doc_ref.delete())

            logger.info("project_deleted", project_id=project_id)

        except Exception as e:
            logger.error("project_delete_failed", project_id=project_id, error=str(e))
            raise SmartBuildError(
                code=ErrorCode.FIRESTORE_ERROR,
                message=f"Failed to delete project: {str(e)}",
                details={"project_id": project_id}
            )

    # =========================================================================
    # ESTIMATES
    # =========================================================================

    async def save_estimate(
        self,
        project_id: str,
        response: EstimationResponse,
        method: EstimationMethod = EstimationMethod.AI_GENERATED,
        created_by: str = "system"
    ) -> str:
        """Store an estimation response against a project.

        Returns:
            The generated estimate ID.

        Raises:
            SmartBuildError: If Firestore operation fails.
        """
        try:
            doc_ref = self.db.collection(self.COLLECTION_ESTIMATES).document()
            record = ProjectEstimate(
                project_id=project_id,
                estimate=response,
                method=method,
                created_by=created_by,
                created_at=_utcnow(),
            )
            await self._maybe_await(
                doc_ref.set(record.model_dump(mode="json", by_alias=True, exclude_none=True))
            )

            logger.info(
                "estimate_saved",
                project_id=project_id,
                estimate_id=doc_ref.id,
                method=method.value,
                estimated_cost=response.estimated_cost
            )
            return doc_ref.id

        except Exception as e:
            logger.error("estimate_save_failed", project_id=project_id, error=str(e))
            raise SmartBuildError(
                code=ErrorCode.FIRESTORE_WRITE_FAILED,
                message=f"Failed to save estimate: {str(e)}",
                details={"project_id": project_id}
            )

    async def get_estimates_by_project(self, project_id: str) -> List[ProjectEstimate]:
        """All estimates for a project, newest first."""
        try:
            docs = self._query(self.COLLECTION_ESTIMATES, "projectId", project_id).stream()
            records = self._newest_first(self._docs_to_dicts(docs), "createdAt")
            return [ProjectEstimate(**record) for record in records]

        except Exception as e:
            logger.error("estimates_list_failed", project_id=project_id, error=str(e))
            raise SmartBuildError(
                code=ErrorCode.FIRESTORE_ERROR,
                message=f"Failed to list estimates: {str(e)}",
                details={"project_id": project_id}
            )

    # =========================================================================
    # RISK ASSESSMENTS
    # =========================================================================

    async def save_risk_assessment(self, assessment: RiskAssessment) -> str:
        """Store a new risk assessment, assigning its ID and timestamps.

        Returns:
            The generated assessment ID.
        """
        try:
            doc_ref = self.db.collection(self.COLLECTION_RISK_ASSESSMENTS).document()
            now = _utcnow()
            stamped = assessment.model_copy(update={
                "id": doc_ref.id,
                "created_at": now,
                "updated_at": now,
            })
            await self._maybe_await(doc_ref.set(stamped.to_firestore_dict()))

            logger.info(
                "risk_assessment_saved",
                project_id=assessment.project_id,
                assessment_id=doc_ref.id,
                risk_count=len(assessment.risks),
                overall_risk_score=assessment.overall_risk_score
            )
            return doc_ref.id

        except Exception as e:
            logger.error("risk_assessment_save_failed", project_id=assessment.project_id, error=str(e))
            raise SmartBuildError(
                code=ErrorCode.FIRESTORE_WRITE_FAILED,
                message=f"Failed to save risk assessment: {str(e)}",
                details={"project_id": assessment.project_id}
            )

    async def update_risk_assessment(self, assessment: RiskAssessment) -> None:
        """Replace a stored assessment and bump ``updatedAt``.

        Raises:
            SmartBuildError: ASSESSMENT_NOT_FOUND if the assessment has no ID,
                or a FIRESTORE_* code if the write fails.
        """
        if not assessment.id:
            raise SmartBuildError(
                code=ErrorCode.ASSESSMENT_NOT_FOUND,
                message="Cannot update a risk assessment that has not been saved",
                details={"project_id": assessment.project_id}
            )

        try:
            stamped = assessment.model_copy(update={
                "created_at": assessment.created_at or _utcnow(),
                "updated_at": _utcnow(),
            })
            doc_ref = self.db.collection(self.COLLECTION_RISK_ASSESSMENTS).document(assessment.id)
            await self._maybe_await(doc_ref.set(stamped.to_firestore_dict()))
            logger.info("risk_assessment_updated", assessment_id=assessment.id)

        except Exception as e:
            logger.error("risk_assessment_update_failed", assessment_id=assessment.id, error=str(e))
            raise SmartBuildError(
                code=ErrorCode.FIRESTORE_WRITE_FAILED,
                message=f"Failed to update risk assessment: {str(e)}",
                details={"assessment_id": assessment.id}
            )

    async def get_risk_assessments_by_project(self, project_id: str) -> List[RiskAssessment]:
        """All assessments for a project, newest first."""
        try:
            docs = self._query(self.COLLECTION_RISK_ASSESSMENTS, "projectId", project_id).stream()
            records = self._newest_first(self._docs_to_dicts(docs), "createdAt")
            return [RiskAssessment(**record) for record in records]

        except Exception as e:
            logger.error("risk_assessments_list_failed", project_id=project_id, error=str(e))
            raise SmartBuildError(
                code=ErrorCode.FIRESTORE_ERROR,
                message=f"Failed to list risk assessments: {str(e)}",
                details={"project_id": project_id}
            )

    async def get_latest_risk_assessment(self, project_id: str) -> Optional[RiskAssessment]:
        """Most recently created assessment for a project, if any."""
        assessments = await self.get_risk_assessments_by_project(project_id)
        return assessments[0] if assessments else None

    # =========================================================================
    # HISTORICAL PROJECTS
    # =========================================================================

    async def save_historical_project(self, project: HistoricalProject) -> str:
        """Store a completed project for calibration.

        Returns:
            The document ID (the project's own ID when it has one).
        """
        try:
            collection = self.db.collection(self.COLLECTION_HISTORICAL_PROJECTS)
            doc_ref = collection.document(project.id) if project.id else collection.document()
            data = project.model_dump(mode="json", by_alias=True, exclude_none=True)
            await self._maybe_await(doc_ref.set(data))

            logger.info(
                "historical_project_saved",
                historical_project_id=doc_ref.id,
                project_type=project.project_type.value
            )
            return doc_ref.id

        except Exception as e:
            logger.error("historical_project_save_failed", error=str(e))
            raise SmartBuildError(
                code=ErrorCode.FIRESTORE_WRITE_FAILED,
                message=f"Failed to save historical project: {str(e)}",
                details={"project_type": project.project_type.value}
            )

    async def get_historical_projects_by_type(self, project_type: ProjectType) -> List[HistoricalProject]:
        """Completed projects of one type, most recently completed first."""
        try:
            docs = self._query(
                self.COLLECTION_HISTORICAL_PROJECTS, "projectType", project_type.value
            ).stream()
            records = self._newest_first(self._docs_to_dicts(docs), "completedAt")
            return [HistoricalProject(**record) for record in records]

        except Exception as e:
            logger.error("historical_projects_list_failed", project_type=project_type.value, error=str(e))
            raise SmartBuildError(
                code=ErrorCode.FIRESTORE_ERROR,
                message=f"Failed to list historical projects: {str(e)}",
                details={"project_type": project_type.value}
            )
