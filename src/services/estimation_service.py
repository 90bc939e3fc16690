"""Estimation service for SmartBuild.

Asks the language model for a cost estimate in free text, scrapes the
structured fields out of the answer, and fills anything missing from the
rule-based fallbacks. The public operations never raise: on any upstream or
parse failure they return a complete fallback result.
"""

from typing import Any, Dict, List, Optional

import structlog

from models.estimation import (
    AvailabilityStatus,
    CostBreakdown,
    EstimationResponse,
    MarketConditions,
    Material,
    WorkforceRequirement,
)
from models.project import EstimationRequest, ProjectType
from config.errors import LLMResponseError
from services import fallbacks
from services.llm_service import LLMService
from services.text_extraction import (
    extract_confidence,
    extract_duration_days,
    extract_labeled_amount,
    extract_section_items,
    extract_total_cost,
)
from utils.sampling import PlausibleRangeSampler
from utils.service_logger import (
    DEFAULTED,
    DERIVED,
    EXTRACTED,
    log_extraction_summary,
    log_fallback_used,
)

logger = structlog.get_logger()

BREAKDOWN_FIELDS = ("materials", "labor", "equipment", "overhead")

# Section headers in the estimation answer and where each section ends
ASSUMPTIONS_HEADER = "assumption"
RECOMMENDATIONS_HEADER = "recommendation"
RISKS_HEADER = "risk factor"


class EstimationService:
    """AI-backed cost estimation with rule-based fallback.

    Args:
        llm_service: Model used for the estimate and the material list.
        sampler: Source of the bounded jitter in fallback material prices.
        analysis_llm_service: Model used for market and workforce analysis
            (defaults to ``llm_service``).
    """

    def __init__(
        self,
        llm_service: Optional[LLMService] = None,
        sampler: Optional[PlausibleRangeSampler] = None,
        analysis_llm_service: Optional[LLMService] = None,
    ):
        self.llm = llm_service or LLMService()
        self.analysis_llm = analysis_llm_service or self.llm
        self.sampler = sampler or PlausibleRangeSampler()

    # =========================================================================
    # ESTIMATE
    # =========================================================================

    async def generate_estimation(self, request: EstimationRequest) -> EstimationResponse:
        """Produce a cost estimate for a project request.

        Falls back to the rule-based estimate (confidence 75) when the model
        call fails.
        """
        try:
            response = await self.llm.send(self.build_estimation_prompt(request))
        except Exception as e:
            log_fallback_used(
                "estimation",
                reason="llm_failed",
                error=str(e),
                project_type=request.project_type.value,
            )
            return fallbacks.generate_fallback_estimation(request)

        try:
            estimation = self.parse_estimation_response(response["content"], request)
        except Exception as e:
            log_fallback_used(
                "estimation",
                reason="parse_failed",
                error=str(e),
                project_type=request.project_type.value,
            )
            return fallbacks.generate_fallback_estimation(request)

        logger.info(
            "estimation_generated",
            project_type=request.project_type.value,
            estimated_cost=estimation.estimated_cost,
            timeline=estimation.timeline,
            confidence=estimation.confidence,
            tokens_used=response.get("tokens_used", 0),
        )
        return estimation

    def parse_estimation_response(self, content: str, request: EstimationRequest) -> EstimationResponse:
        """Turn the model's free text into an EstimationResponse.

        Each field is taken from the text when present, otherwise derived
        from another extracted field, otherwise taken from the fallbacks.
        """
        provenance: Dict[str, str] = {}

        total = extract_total_cost(content)
        if total is None or total <= 0:
            total = fallbacks.calculate_fallback_cost(request)
            provenance["estimated_cost"] = DEFAULTED
        else:
            provenance["estimated_cost"] = EXTRACTED

        parts = {}
        for name in BREAKDOWN_FIELDS:
            value = extract_labeled_amount(content, name)
            if value is None:
                parts[name] = fallbacks.derive_cost_share(total, name)
                provenance[name] = DERIVED
            else:
                parts[name] = value
                provenance[name] = EXTRACTED

        timeline = extract_duration_days(content)
        if not timeline:
            timeline = fallbacks.calculate_fallback_timeline(request)
            provenance["timeline"] = DEFAULTED
        else:
            provenance["timeline"] = EXTRACTED

        confidence = extract_confidence(content)
        if confidence is None:
            confidence = fallbacks.NOMINAL_CONFIDENCE
            provenance["confidence"] = DEFAULTED
        else:
            provenance["confidence"] = EXTRACTED

        assumptions = extract_section_items(
            content, ASSUMPTIONS_HEADER,
            stop_headers=(RECOMMENDATIONS_HEADER, RISKS_HEADER), max_items=6,
        )
        recommendations = extract_section_items(
            content, RECOMMENDATIONS_HEADER,
            stop_headers=(RISKS_HEADER, ASSUMPTIONS_HEADER), max_items=5,
        )
        risks = extract_section_items(content, RISKS_HEADER, max_items=5)

        for name, items in (
            ("assumptions", assumptions),
            ("recommendations", recommendations),
            ("risks", risks),
        ):
            provenance[name] = EXTRACTED if items else DEFAULTED

        log_extraction_summary("estimation", provenance, project_type=request.project_type.value)

        return EstimationResponse(
            estimated_cost=total,
            cost_breakdown=CostBreakdown(**parts),
            timeline=timeline,
            confidence=confidence,
            assumptions=assumptions or list(fallbacks.DEFAULT_ASSUMPTIONS),
            recommendations=recommendations or list(fallbacks.DEFAULT_RECOMMENDATIONS),
            risks=risks or list(fallbacks.DEFAULT_RISKS),
        )

    def build_estimation_prompt(self, request: EstimationRequest) -> str:
        special = ", ".join(request.special_requirements) or "None"
        return f"""You are an expert construction cost estimator with 20+ years of experience. Analyze this construction project and provide a detailed cost estimate.

Project Details:
- Type: {request.project_type.value}
- Size: {request.size:g} square feet
- Location: {request.location}
- Specifications: {request.specifications or "Standard"}
- Timeline: {request.timeline or "Flexible"}
- Special Requirements: {special}

Please provide a comprehensive analysis including:

1. TOTAL ESTIMATED COST (be realistic based on current market conditions)

2. COST BREAKDOWN:
   - Materials (45-50% of total)
   - Labor (30-35% of total)
   - Equipment (10-15% of total)
   - Overhead & Profit (8-12% of total)

3. TIMELINE ESTIMATE (in days)

4. CONFIDENCE LEVEL (0-100%)

5. KEY ASSUMPTIONS (list 4-6 critical assumptions)

6. RECOMMENDATIONS (3-5 actionable recommendations)

7. RISK FACTORS (3-5 potential risks that could impact cost/timeline)

Consider regional cost variations, current material prices and availability, labor market conditions, seasonal factors, project complexity, and permit requirements.

Format your response as a structured analysis with clear sections. Be specific with dollar amounts and percentages."""

    # =========================================================================
    # MARKET CONDITIONS
    # =========================================================================

    async def analyze_market_conditions(self, location: str, project_type: ProjectType) -> MarketConditions:
        """Regional material/labor multipliers, each clamped to 0.8-1.5."""
        prompt = f"""Analyze current construction market conditions for {location} focusing on {project_type.value} projects.
Provide insights on:
1. Material cost trends and availability
2. Labor market conditions and rates
3. Regional economic factors affecting construction
4. Seasonal considerations

Format your response as JSON with materialCostMultiplier (0.8-1.5), laborCostMultiplier (0.8-1.5), and marketInsights array."""

        try:
            result = await self.analysis_llm.generate_json(prompt)
            conditions = self._market_conditions_from(result["content"])
        except LLMResponseError as e:
            log_fallback_used("market_analysis", reason="parse_failed", error=str(e), location=location)
            return fallbacks.fallback_market_conditions("Unable to parse market analysis")
        except Exception as e:
            log_fallback_used("market_analysis", reason="llm_failed", error=str(e), location=location)
            return fallbacks.fallback_market_conditions()

        logger.info(
            "market_conditions_analyzed",
            location=location,
            material_multiplier=conditions.material_cost_multiplier,
            labor_multiplier=conditions.labor_cost_multiplier,
        )
        return conditions

    @staticmethod
    def _market_conditions_from(data: Any) -> MarketConditions:
        if not isinstance(data, dict):
            raise LLMResponseError("Market analysis is not a JSON object", raw_content=str(data))
        try:
            material = _clamp_multiplier(data.get("materialCostMultiplier"))
            labor = _clamp_multiplier(data.get("laborCostMultiplier"))
        except (TypeError, ValueError) as e:
            raise LLMResponseError("Market multipliers are not numeric", raw_content=str(data)) from e

        insights = data.get("marketInsights")
        if not isinstance(insights, list) or not insights:
            insights = ["Market analysis unavailable"]
        return MarketConditions(
            material_cost_multiplier=material,
            labor_cost_multiplier=labor,
            market_insights=[str(i) for i in insights],
        )

    # =========================================================================
    # MATERIALS
    # =========================================================================

    async def generate_material_list(self, request: EstimationRequest) -> List[Material]:
        """Priced material list; the six staple materials on failure."""
        prompt = f"""Generate a detailed material list for a {request.project_type.value} project of {request.size:g} sq ft in {request.location}.

Project specifications: {request.specifications or "Standard"}

For each material, provide:
- Name and category
- Estimated quantity needed
- Unit of measurement
- Current market price per unit
- Supplier recommendations
- Lead time considerations

Focus on major materials like concrete, steel, lumber, electrical, plumbing, roofing, etc.

Format as JSON array with fields: name, category, quantity, unit, basePrice, currentPrice, supplier, leadTime."""

        try:
            result = await self.llm.generate_json(prompt)
            items = result["content"]
            if not isinstance(items, list) or not items:
                raise LLMResponseError("Material list is not a non-empty JSON array", raw_content=str(items))
            materials = [_material_from(item, index) for index, item in enumerate(items)]
        except Exception as e:
            log_fallback_used(
                "material_list",
                reason="parse_failed" if isinstance(e, LLMResponseError) else "llm_failed",
                error=str(e),
            )
            return fallbacks.fallback_material_list(self.sampler)

        logger.info("material_list_generated", count=len(materials))
        return materials

    # =========================================================================
    # WORKFORCE
    # =========================================================================

    async def generate_workforce_requirements(self, request: EstimationRequest) -> List[WorkforceRequirement]:
        """Crew requirements per skill type; a minimal four-trade crew on failure."""
        prompt = f"""Analyze workforce requirements for a {request.project_type.value} project of {request.size:g} sq ft.

Project specifications: {request.specifications or "Standard"}
Timeline: {request.timeline or "Flexible"}

Determine required:
- Skill types and specializations needed
- Number of workers per skill type
- Duration each skill type is needed
- Current hourly rates in {request.location}
- Availability considerations

Format as JSON array with fields: skillType, requiredCount, duration, hourlyRate, availability."""

        try:
            result = await self.analysis_llm.generate_json(prompt)
            items = result["content"]
            if not isinstance(items, list) or not items:
                raise LLMResponseError("Workforce list is not a non-empty JSON array", raw_content=str(items))
            workforce = [_workforce_from(item, index) for index, item in enumerate(items)]
        except Exception as e:
            log_fallback_used(
                "workforce_requirements",
                reason="parse_failed" if isinstance(e, LLMResponseError) else "llm_failed",
                error=str(e),
            )
            return fallbacks.fallback_workforce_requirements()

        logger.info("workforce_requirements_generated", count=len(workforce))
        return workforce


# =============================================================================
# JSON RECORD HELPERS
# =============================================================================


def _clamp_multiplier(value: Any) -> float:
    if value is None or value == 0:
        return 1.0
    return max(0.8, min(1.5, float(value)))


def _material_from(item: Dict[str, Any], index: int) -> Material:
    base_price = item.get("basePrice") or 0
    return Material(
        id=f"material_{index}",
        name=item.get("name") or "Unknown Material",
        category=item.get("category") or "other",
        unit=item.get("unit") or "unit",
        base_price=base_price,
        current_price=item.get("currentPrice") or base_price,
        supplier=item.get("supplier"),
        availability=AvailabilityStatus.AVAILABLE,
        lead_time=item.get("leadTime") or 7,
    )


def _workforce_from(item: Dict[str, Any], index: int) -> WorkforceRequirement:
    return WorkforceRequirement(
        id=f"workforce_{index}",
        project_id="temp",
        skill_type=item.get("skillType") or "general_labor",
        required_count=item.get("requiredCount") or 1,
        duration=item.get("duration") or 30,
        hourly_rate=item.get("hourlyRate") or 25,
        availability=item.get("availability") or "available",
    )
