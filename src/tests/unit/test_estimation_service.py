"""Unit tests for the estimation service."""

import pytest
from unittest.mock import AsyncMock

from config.errors import LLMError, LLMResponseError, ErrorCode
from models.estimation import AvailabilityStatus, MaterialCategory, SkillType
from models.project import EstimationRequest, ProjectType
from services import fallbacks
from services.estimation_service import EstimationService
from tests.fixtures.mock_llm_responses import (
    ESTIMATION_MISSING_MATERIALS,
    ESTIMATION_WITH_SCALED_TOTAL,
    STRUCTURED_ESTIMATION,
    UNSTRUCTURED_ESTIMATION,
    get_market_conditions_json,
    get_material_list_json,
    get_workforce_json,
)


@pytest.fixture
def service(fake_llm, seeded_sampler):
    return EstimationService(llm_service=fake_llm, sampler=seeded_sampler)


def llm_text(content: str) -> dict:
    return {"content": content, "tokens_used": 120}


class TestGenerateEstimation:
    """Tests for EstimationService.generate_estimation."""

    @pytest.mark.asyncio
    async def test_structured_response(self, service, fake_llm, sample_estimation_request):
        fake_llm.send.return_value = llm_text(STRUCTURED_ESTIMATION)

        estimation = await service.generate_estimation(sample_estimation_request)

        assert estimation.estimated_cost == 320000
        assert estimation.cost_breakdown.materials == 150400
        assert estimation.cost_breakdown.labor == 105600
        assert estimation.cost_breakdown.equipment == 38400
        assert estimation.cost_breakdown.overhead == 25600
        assert estimation.timeline == 120
        assert estimation.confidence == 80
        assert estimation.assumptions == [
            "Standard wood-frame construction with slab foundation",
            "Permits approved within 30 days of submission",
            "No major weather disruptions during framing",
        ]
        assert estimation.recommendations == [
            "Lock in lumber pricing before framing begins",
            "Book electrical and plumbing subcontractors early",
        ]
        assert estimation.risks == [
            "Lumber price volatility over the build period",
            "Inspection delays at the county permit office",
        ]

    @pytest.mark.asyncio
    async def test_missing_materials_derived_from_total(self, service, fake_llm, sample_estimation_request):
        fake_llm.send.return_value = llm_text(ESTIMATION_MISSING_MATERIALS)

        estimation = await service.generate_estimation(sample_estimation_request)

        assert estimation.estimated_cost == 200000
        assert estimation.cost_breakdown.materials == round(200000 * 0.47)
        assert estimation.cost_breakdown.labor == 66000
        assert estimation.timeline == 75
        assert estimation.confidence == 70

    @pytest.mark.asyncio
    async def test_empty_sections_use_default_catalogs(self, service, fake_llm, sample_estimation_request):
        fake_llm.send.return_value = llm_text(ESTIMATION_MISSING_MATERIALS)

        estimation = await service.generate_estimation(sample_estimation_request)

        assert estimation.assumptions == fallbacks.DEFAULT_ASSUMPTIONS
        assert estimation.recommendations == fallbacks.DEFAULT_RECOMMENDATIONS
        assert estimation.risks == fallbacks.DEFAULT_RISKS

    @pytest.mark.asyncio
    async def test_unstructured_response_uses_fallback_values(self, service, fake_llm, sample_estimation_request):
        fake_llm.send.return_value = llm_text(UNSTRUCTURED_ESTIMATION)

        estimation = await service.generate_estimation(sample_estimation_request)

        assert estimation.estimated_cost == 300000
        assert estimation.cost_breakdown.total == 300000
        assert estimation.timeline == 90
        # Model answered, so confidence is the nominal default, not the degraded one
        assert estimation.confidence == 85

    @pytest.mark.asyncio
    async def test_scaled_total(self, service, fake_llm, sample_estimation_request):
        fake_llm.send.return_value = llm_text(ESTIMATION_WITH_SCALED_TOTAL)

        estimation = await service.generate_estimation(sample_estimation_request)

        assert estimation.estimated_cost == 1200000
        assert estimation.cost_breakdown.materials == 564000
        assert estimation.timeline == 240
        assert estimation.confidence == 90

    @pytest.mark.asyncio
    async def test_upstream_failure_returns_fallback(self, service, fake_llm):
        fake_llm.send.side_effect = LLMError(code=ErrorCode.LLM_ERROR, message="connection reset")
        request = EstimationRequest(
            project_type=ProjectType.RESIDENTIAL_NEW,
            size=2000,
            location="Austin, Texas",
        )

        estimation = await service.generate_estimation(request)

        assert estimation.estimated_cost == 300000
        assert estimation.timeline == 90
        assert estimation.confidence == 75
        assert estimation.assumptions == fallbacks.FALLBACK_ASSUMPTIONS
        assert estimation.cost_breakdown.total == 300000

    @pytest.mark.asyncio
    async def test_unexpected_exception_returns_fallback(self, service, fake_llm, sample_estimation_request):
        fake_llm.send.side_effect = RuntimeError("boom")

        estimation = await service.generate_estimation(sample_estimation_request)

        assert estimation == fallbacks.generate_fallback_estimation(sample_estimation_request)

    @pytest.mark.asyncio
    async def test_prompt_includes_request_details(self, service, fake_llm, sample_estimation_request):
        fake_llm.send.return_value = llm_text(STRUCTURED_ESTIMATION)

        await service.generate_estimation(sample_estimation_request)

        prompt = fake_llm.send.call_args[0][0]
        assert "residential_new" in prompt
        assert "2000 square feet" in prompt
        assert "Austin, Texas" in prompt
        assert "Solar-ready roof" in prompt


class TestMarketConditions:
    """Tests for EstimationService.analyze_market_conditions."""

    @pytest.mark.asyncio
    async def test_multipliers_are_clamped(self, service, fake_llm):
        fake_llm.generate_json.return_value = {"content": get_market_conditions_json(), "tokens_used": 80}

        conditions = await service.analyze_market_conditions("Denver, CO", ProjectType.COMMERCIAL_NEW)

        assert conditions.material_cost_multiplier == 1.5
        assert conditions.labor_cost_multiplier == 0.8
        assert conditions.market_insights == ["Steel prices rising", "Tight labor market for electricians"]

    @pytest.mark.asyncio
    async def test_missing_fields_default_to_neutral(self, service, fake_llm):
        fake_llm.generate_json.return_value = {"content": {}, "tokens_used": 10}

        conditions = await service.analyze_market_conditions("Denver, CO", ProjectType.INDUSTRIAL)

        assert conditions.material_cost_multiplier == 1.0
        assert conditions.labor_cost_multiplier == 1.0
        assert conditions.market_insights == ["Market analysis unavailable"]

    @pytest.mark.asyncio
    async def test_unparseable_response(self, service, fake_llm):
        fake_llm.generate_json.side_effect = LLMResponseError("LLM did not return valid JSON", raw_content="nope")

        conditions = await service.analyze_market_conditions("Denver, CO", ProjectType.INDUSTRIAL)

        assert conditions.material_cost_multiplier == 1.0
        assert conditions.market_insights == ["Unable to parse market analysis"]

    @pytest.mark.asyncio
    async def test_upstream_failure(self, service, fake_llm):
        fake_llm.generate_json.side_effect = LLMError(code=ErrorCode.LLM_RATE_LIMIT, message="slow down")

        conditions = await service.analyze_market_conditions("Denver, CO", ProjectType.INDUSTRIAL)

        assert conditions.market_insights == ["Market analysis unavailable"]

    @pytest.mark.asyncio
    async def test_uses_analysis_model_when_configured(self, fake_llm, seeded_sampler):
        analysis_llm = AsyncMock()
        analysis_llm.generate_json.return_value = {"content": {"materialCostMultiplier": 1.1}, "tokens_used": 5}
        service = EstimationService(fake_llm, seeded_sampler, analysis_llm_service=analysis_llm)

        conditions = await service.analyze_market_conditions("Denver, CO", ProjectType.INDUSTRIAL)

        assert conditions.material_cost_multiplier == 1.1
        analysis_llm.generate_json.assert_awaited_once()
        fake_llm.generate_json.assert_not_awaited()


class TestMaterialList:
    """Tests for EstimationService.generate_material_list."""

    @pytest.mark.asyncio
    async def test_parses_and_defaults_fields(self, service, fake_llm, sample_estimation_request):
        fake_llm.generate_json.return_value = {"content": get_material_list_json(), "tokens_used": 200}

        materials = await service.generate_material_list(sample_estimation_request)

        assert len(materials) == 2
        assert materials[0].id == "material_0"
        assert materials[0].current_price == 142.5
        assert materials[0].lead_time == 5
        assert materials[1].name == "Glass Curtain Wall"
        assert materials[1].category == MaterialCategory.OTHER
        assert materials[1].unit == "unit"
        assert materials[1].lead_time == 7
        assert materials[1].availability == AvailabilityStatus.AVAILABLE

    @pytest.mark.asyncio
    async def test_non_list_response_falls_back(self, service, fake_llm, sample_estimation_request):
        fake_llm.generate_json.return_value = {"content": {"materials": []}, "tokens_used": 20}

        materials = await service.generate_material_list(sample_estimation_request)

        assert [m.name for m in materials][:2] == ["Concrete", "Rebar"]
        assert len(materials) == 6

    @pytest.mark.asyncio
    async def test_upstream_failure_falls_back(self, service, fake_llm, sample_estimation_request):
        fake_llm.generate_json.side_effect = LLMError(code=ErrorCode.LLM_ERROR, message="timeout")

        materials = await service.generate_material_list(sample_estimation_request)

        assert len(materials) == 6


class TestWorkforceRequirements:
    """Tests for EstimationService.generate_workforce_requirements."""

    @pytest.mark.asyncio
    async def test_parses_and_coerces(self, service, fake_llm, sample_estimation_request):
        fake_llm.generate_json.return_value = {"content": get_workforce_json(), "tokens_used": 90}

        crew = await service.generate_workforce_requirements(sample_estimation_request)

        assert [w.skill_type for w in crew] == [
            SkillType.ELECTRICIAN, SkillType.HEAVY_EQUIPMENT, SkillType.GENERAL_LABOR,
        ]
        assert crew[0].labor_cost == 3 * 40 * 8 * 48
        assert crew[1].duration == 30
        assert crew[1].hourly_rate == 25
        assert crew[2].availability == AvailabilityStatus.LIMITED
        assert all(w.project_id == "temp" for w in crew)

    @pytest.mark.asyncio
    async def test_invalid_json_falls_back(self, service, fake_llm, sample_estimation_request):
        fake_llm.generate_json.side_effect = LLMResponseError("bad json", raw_content="{")

        crew = await service.generate_workforce_requirements(sample_estimation_request)

        assert len(crew) == 4
        assert crew[0].skill_type == SkillType.GENERAL_LABOR
