"""Risk analysis service for SmartBuild.

Asks the language model for a risk narrative across the eight risk
categories and scrapes per-category records out of it. Probability or impact
values the text leaves out are filled with sampled placeholders; the risk
score is always recomputed from probability and impact.

None of the public operations raise. Each falls back to its canned
counterpart in ``services.fallbacks``.
"""

import time
from datetime import datetime
from typing import Any, Dict, List, Optional

import structlog

from models.project import Project
from models.risk import (
    Risk,
    RiskAssessment,
    RiskCategory,
    RiskLevel,
    RiskStatus,
    WeatherRiskAssessment,
    compute_risk_score,
)
from config.errors import LLMResponseError
from services import fallbacks
from services.llm_service import LLMService
from services.text_extraction import (
    clamp,
    extract_category_section,
    extract_labeled_text,
    extract_list_items,
    extract_percentage,
    extract_risk_score,
    extract_section_items,
)
from utils.sampling import PlausibleRangeSampler
from utils.service_logger import (
    EXTRACTED,
    SAMPLED,
    log_extraction_summary,
    log_fallback_used,
)

logger = structlog.get_logger()

CATEGORY_NAMES = [c.value for c in RiskCategory]


class RiskAnalysisService:
    """AI-backed risk analysis with rule-based fallback.

    Args:
        llm_service: Model used for single-category and weather analysis.
        sampler: Source of placeholder probability/impact values.
        analysis_llm_service: Model used for the full assessment and the
            mitigation plan (defaults to ``llm_service``).
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
    # FULL ASSESSMENT
    # =========================================================================

    async def generate_risk_assessment(self, project: Project) -> RiskAssessment:
        """Risk assessment for a project, without id or timestamps."""
        try:
            response = await self.analysis_llm.send(self.build_risk_analysis_prompt(project))
            assessment = self.parse_risk_assessment(response["content"], project.id)
        except Exception as e:
            log_fallback_used("risk_assessment", reason="llm_failed", error=str(e), project_id=project.id)
            return fallbacks.fallback_risk_assessment(project.id)

        logger.info(
            "risk_assessment_generated",
            project_id=project.id,
            risk_count=len(assessment.risks),
            overall_risk_score=assessment.overall_risk_score,
        )
        return assessment

    def parse_risk_assessment(self, content: str, project_id: str) -> RiskAssessment:
        """Build an assessment from the model's free text."""
        risks = self.extract_risks(content)
        if not risks:
            log_fallback_used("risk_extraction", reason="no_categories_found", project_id=project_id)
            risks = fallbacks.fallback_risks()

        recommendations = extract_section_items(
            content, "recommendation",
            stop_headers=("critical", "success"),
            min_length=15, max_items=6,
        )
        return RiskAssessment(
            project_id=project_id,
            risks=risks,
            recommendations=recommendations or list(fallbacks.RISK_MANAGEMENT_RECOMMENDATIONS),
        )

    def extract_risks(self, content: str) -> List[Risk]:
        """One risk per category section found in the text, in category order."""
        risks = []
        for category in RiskCategory:
            section = extract_category_section(content, category.value, CATEGORY_NAMES)
            if section is None:
                continue
            risks.append(self._risk_from_section(category, section, index=len(risks) + 1))
        return risks

    def _risk_from_section(self, category: RiskCategory, section: str, index: int) -> Risk:
        provenance: Dict[str, str] = {}

        probability = extract_percentage(section, "probability")
        if probability is None:
            probability = self.sampler.risk_placeholder()
            provenance["probability"] = SAMPLED
        else:
            provenance["probability"] = EXTRACTED

        impact = extract_percentage(section, "impact")
        if impact is None:
            impact = self.sampler.risk_placeholder()
            provenance["impact"] = SAMPLED
        else:
            provenance["impact"] = EXTRACTED

        score = compute_risk_score(probability, impact)
        stated = extract_risk_score(section)
        if stated is not None and stated != score:
            logger.debug(
                "risk_score_recomputed",
                category=category.value,
                stated=stated,
                computed=score,
            )

        description = extract_labeled_text(
            section, "description", ("probability", "impact", "mitigation")
        ) or fallbacks.default_risk_description(category)
        mitigation = extract_labeled_text(
            section, "mitigation", ("status",)
        ) or fallbacks.default_mitigation(category)

        log_extraction_summary("risk", provenance, category=category.value)

        return Risk(
            id=f"risk_{category.value}_{index}",
            category=category,
            description=description,
            probability=probability,
            impact=impact,
            risk_score=score,
            mitigation=mitigation,
            status=_status_from(extract_labeled_text(section, "status")),
        )

    def build_risk_analysis_prompt(self, project: Project) -> str:
        return f"""You are a senior construction risk analyst with 25+ years of experience. Analyze this construction project for potential risks and provide a comprehensive risk assessment.

Project Details:
- Name: {project.name}
- Type: {project.type.value}
- Location: {project.location}
- Budget: ${project.budget:,.0f}
- Start Date: {project.start_date:%Y-%m-%d}
- Estimated End Date: {project.estimated_end_date:%Y-%m-%d}
- Status: {project.status.value}
- Description: {project.description}

Analyze risks in these categories:
1. WEATHER - Seasonal conditions, extreme weather events
2. SUPPLY_CHAIN - Material availability, price volatility, delivery delays
3. WORKFORCE - Labor availability, skill shortages, productivity
4. REGULATORY - Permits, inspections, code changes
5. FINANCIAL - Budget overruns, payment delays, economic factors
6. TECHNICAL - Design issues, construction complexity, technology
7. SAFETY - Workplace safety, accident risks, compliance
8. ENVIRONMENTAL - Environmental impact, contamination, regulations

For each significant risk, provide:
- Category
- Description
- Probability (0-100%)
- Impact (0-100%)
- Risk score (probability x impact / 100)
- Mitigation strategy
- Status (identified/monitoring/mitigating/resolved)

Also provide:
- Top 5 recommendations for risk management
- Critical success factors

Format your response with clear sections and specific, actionable insights."""

    # =========================================================================
    # SINGLE CATEGORY
    # =========================================================================

    async def analyze_specific_risk(self, project: Project, category: RiskCategory) -> Risk:
        """Detailed analysis of one risk category."""
        prompt = f"""Analyze the {category.value} risk for this construction project:

Project: {project.name}
Type: {project.type.value}
Location: {project.location}
Budget: ${project.budget:,.0f}
Timeline: {project.start_date:%Y-%m-%d} to {project.estimated_end_date:%Y-%m-%d}

Provide a detailed analysis of {category.value} risks including:
1. Specific risk description
2. Probability (0-100%)
3. Impact severity (0-100%)
4. Mitigation strategies
5. Current status

Format as JSON with fields: description, probability, impact, mitigation, status."""

        try:
            result = await self.llm.generate_json(prompt)
            risk = _risk_from_json(result["content"], category)
        except Exception as e:
            log_fallback_used(
                "specific_risk",
                reason="parse_failed" if isinstance(e, LLMResponseError) else "llm_failed",
                error=str(e),
                category=category.value,
            )
            return fallbacks.fallback_risk(category)

        logger.info("specific_risk_analyzed", category=category.value, risk_score=risk.risk_score)
        return risk

    # =========================================================================
    # MITIGATION PLAN
    # =========================================================================

    async def generate_mitigation_plan(self, risks: List[Risk]) -> List[str]:
        """Up to eight actionable mitigation strategies for the given risks."""
        risk_lines = "\n".join(
            f"{r.category.value}: {r.description} (Score: {r.risk_score})" for r in risks
        )
        prompt = f"""Based on these identified construction project risks, generate a comprehensive mitigation plan:

{risk_lines}

Provide 5-8 specific, actionable mitigation strategies that address the highest priority risks. Focus on:
1. Preventive measures
2. Contingency planning
3. Risk monitoring
4. Response procedures

Format as a simple list, one complete mitigation strategy per line."""

        try:
            response = await self.analysis_llm.send(prompt)
        except Exception as e:
            log_fallback_used("mitigation_plan", reason="llm_failed", error=str(e))
            return fallbacks.fallback_mitigation_strategies()

        strategies = extract_list_items(response["content"], min_length=20, max_items=8)
        if not strategies:
            log_fallback_used("mitigation_plan", reason="no_items_found")
            return fallbacks.fallback_mitigation_strategies()
        return strategies

    # =========================================================================
    # WEATHER
    # =========================================================================

    async def assess_weather_risk(
        self,
        location: str,
        start_date: datetime,
        end_date: datetime,
    ) -> WeatherRiskAssessment:
        """Weather risk level and seasonal factors for a location and window."""
        prompt = f"""Analyze weather-related construction risks for {location} from {start_date:%Y-%m-%d} to {end_date:%Y-%m-%d}.

Consider:
1. Seasonal weather patterns
2. Historical weather data
3. Climate-related construction challenges
4. Regional weather risks

Provide risk level (low/medium/high), seasonal factors, and recommendations.
Format as JSON with fields: riskLevel, seasonalFactors (array), recommendations (array)."""

        try:
            result = await self.llm.generate_json(prompt)
            assessment = _weather_from_json(result["content"])
        except Exception as e:
            log_fallback_used(
                "weather_risk",
                reason="parse_failed" if isinstance(e, LLMResponseError) else "llm_failed",
                error=str(e),
                location=location,
            )
            return fallbacks.fallback_weather_assessment()

        logger.info("weather_risk_assessed", location=location, risk_level=assessment.risk_level.value)
        return assessment


# =============================================================================
# JSON RECORD HELPERS
# =============================================================================


def _status_from(value: Optional[str]) -> RiskStatus:
    words = str(value or "").lower().split()
    if words:
        word = words[0].strip(".,;:()")
        for status in RiskStatus:
            if status.value == word:
                return status
    return RiskStatus.IDENTIFIED


def _risk_from_json(data: Any, category: RiskCategory) -> Risk:
    if not isinstance(data, dict):
        raise LLMResponseError("Risk analysis is not a JSON object", raw_content=str(data))
    probability = clamp(int(data.get("probability") or 50))
    impact = clamp(int(data.get("impact") or 50))
    return Risk(
        id=f"risk_{int(time.time() * 1000)}",
        category=category,
        description=data.get("description") or f"{category.value} risk analysis",
        probability=probability,
        impact=impact,
        risk_score=compute_risk_score(probability, impact),
        mitigation=data.get("mitigation") or "Standard mitigation strategies apply",
        status=_status_from(data.get("status")),
    )


def _weather_from_json(data: Any) -> WeatherRiskAssessment:
    if not isinstance(data, dict):
        raise LLMResponseError("Weather assessment is not a JSON object", raw_content=str(data))
    level = str(data.get("riskLevel") or "medium").lower()
    if level not in {l.value for l in RiskLevel}:
        level = RiskLevel.MEDIUM.value
    return WeatherRiskAssessment(
        risk_level=level,
        seasonal_factors=data.get("seasonalFactors") or ["Seasonal weather variations"],
        recommendations=data.get("recommendations") or ["Monitor weather forecasts regularly"],
    )
