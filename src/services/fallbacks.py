"""Rule-based fallback generators for SmartBuild.

Deterministic calculators that produce the same shape of output as the
model-backed services. They are used whenever the model call fails or its
text cannot be parsed into anything usable, and they never raise.

The only randomness is the bounded price/lead-time jitter in the fallback
material list, drawn from an injected sampler.
"""

from typing import Dict, List, Optional

from models.estimation import (
    AvailabilityStatus,
    CostBreakdown,
    EstimationResponse,
    MarketConditions,
    Material,
    MaterialCategory,
    SkillType,
    WorkforceRequirement,
)
from models.project import EstimationRequest, ProjectType
from models.risk import (
    Risk,
    RiskAssessment,
    RiskCategory,
    RiskLevel,
    RiskStatus,
    WeatherRiskAssessment,
    compute_risk_score,
)
from utils.rounding import round_half_up
from utils.sampling import PlausibleRangeSampler


# =============================================================================
# COST / TIMELINE TABLES
# =============================================================================

# Dollars per square foot
BASE_RATE_PER_SQFT: Dict[ProjectType, int] = {
    ProjectType.RESIDENTIAL_NEW: 150,
    ProjectType.RESIDENTIAL_RENOVATION: 120,
    ProjectType.COMMERCIAL_NEW: 200,
    ProjectType.COMMERCIAL_RENOVATION: 180,
    ProjectType.INFRASTRUCTURE: 300,
    ProjectType.INDUSTRIAL: 250,
}
DEFAULT_BASE_RATE = 150

# Days per 1,000 square feet
TIMELINE_DAYS_PER_1000_SQFT: Dict[ProjectType, int] = {
    ProjectType.RESIDENTIAL_NEW: 45,
    ProjectType.RESIDENTIAL_RENOVATION: 30,
    ProjectType.COMMERCIAL_NEW: 60,
    ProjectType.COMMERCIAL_RENOVATION: 45,
    ProjectType.INFRASTRUCTURE: 90,
    ProjectType.INDUSTRIAL: 75,
}
DEFAULT_TIMELINE_MULTIPLIER = 45

# Checked in order; first tier with a matching substring wins.
LOCATION_TIERS = (
    (1.4, ("new york", "san francisco", "los angeles")),
    (1.2, ("chicago", "boston", "seattle")),
    (0.9, ("florida", "arizona")),
)

# Shares of total cost; must sum to 1.0
COST_SHARES = (
    ("materials", 0.47),
    ("labor", 0.33),
    ("equipment", 0.12),
    ("overhead", 0.08),
)

DEGRADED_CONFIDENCE = 75
NOMINAL_CONFIDENCE = 85


# =============================================================================
# CANNED TEXT
# =============================================================================

FALLBACK_ASSUMPTIONS = [
    "Standard construction materials and methods",
    "Normal weather conditions during construction",
    "Adequate skilled workforce availability",
    "No major regulatory or permit delays",
]

FALLBACK_RECOMMENDATIONS = [
    "Consider bulk material purchasing for cost savings",
    "Schedule critical path activities early",
    "Maintain 10% contingency for unforeseen costs",
]

FALLBACK_RISKS = [
    "Weather delays during construction season",
    "Material price volatility",
    "Skilled labor availability",
]

# Substituted when the model answered but a narrative section came back empty
DEFAULT_ASSUMPTIONS = FALLBACK_ASSUMPTIONS + [
    "Site is accessible and prepared for construction",
    "Current market prices remain stable",
]

DEFAULT_RECOMMENDATIONS = [
    "Secure material contracts early to lock in pricing",
    "Schedule critical path activities during favorable weather",
    "Maintain 10-15% contingency budget for unforeseen costs",
    "Pre-qualify and book skilled contractors in advance",
    "Implement regular progress monitoring and cost tracking",
]

DEFAULT_RISKS = [
    "Weather delays during construction season",
    "Material price volatility and supply chain disruptions",
    "Skilled labor shortages in specialized trades",
    "Permit approval delays or requirement changes",
    "Site conditions different from initial assessment",
]

RISK_MANAGEMENT_RECOMMENDATIONS = [
    "Implement comprehensive project monitoring and reporting systems",
    "Maintain adequate contingency reserves for unforeseen circumstances",
    "Establish clear communication protocols with all stakeholders",
    "Conduct regular risk assessment reviews throughout project lifecycle",
    "Develop and maintain strong supplier and contractor relationships",
    "Ensure proper insurance coverage for identified risks",
]

MITIGATION_STRATEGIES = [
    "Implement weekly risk review meetings with project team",
    "Maintain 15% budget contingency for unforeseen costs",
    "Establish backup suppliers for critical materials",
    "Create detailed weather monitoring and response procedures",
    "Develop workforce contingency plans with backup contractors",
    "Implement strict change order approval processes",
]

RISK_DESCRIPTIONS: Dict[RiskCategory, str] = {
    RiskCategory.WEATHER: "Seasonal weather conditions may impact construction timeline",
    RiskCategory.SUPPLY_CHAIN: "Material availability and pricing volatility risks",
    RiskCategory.WORKFORCE: "Skilled labor availability and productivity challenges",
    RiskCategory.REGULATORY: "Permit approval and regulatory compliance requirements",
    RiskCategory.FINANCIAL: "Budget management and cost control challenges",
    RiskCategory.TECHNICAL: "Technical complexity and design implementation risks",
    RiskCategory.SAFETY: "Workplace safety and accident prevention requirements",
    RiskCategory.ENVIRONMENTAL: "Environmental compliance and impact management",
}

RISK_MITIGATIONS: Dict[RiskCategory, str] = {
    RiskCategory.WEATHER: "Monitor weather forecasts and schedule weather-sensitive work appropriately",
    RiskCategory.SUPPLY_CHAIN: "Establish reliable supplier relationships and maintain material inventory buffers",
    RiskCategory.WORKFORCE: "Pre-qualify contractors and maintain backup labor resources",
    RiskCategory.REGULATORY: "Submit permits early and maintain regular communication with authorities",
    RiskCategory.FINANCIAL: "Implement strict budget controls and maintain adequate contingency reserves",
    RiskCategory.TECHNICAL: "Conduct thorough design reviews and maintain technical expertise on team",
    RiskCategory.SAFETY: "Implement comprehensive safety protocols and regular training programs",
    RiskCategory.ENVIRONMENTAL: "Ensure environmental compliance and implement monitoring procedures",
}

# (description, probability, impact) for single-category fallbacks
RISK_TEMPLATES: Dict[RiskCategory, tuple] = {
    RiskCategory.WEATHER: ("Weather-related construction delays", 60, 45),
    RiskCategory.SUPPLY_CHAIN: ("Material supply and pricing issues", 50, 65),
    RiskCategory.WORKFORCE: ("Labor availability and skill challenges", 55, 60),
    RiskCategory.REGULATORY: ("Permit and regulatory compliance risks", 35, 75),
    RiskCategory.FINANCIAL: ("Budget and financial management risks", 45, 80),
    RiskCategory.TECHNICAL: ("Technical and design complexity risks", 40, 70),
    RiskCategory.SAFETY: ("Workplace safety and accident risks", 30, 90),
    RiskCategory.ENVIRONMENTAL: ("Environmental compliance and impact risks", 25, 85),
}

# (id, category, description, probability, impact, mitigation, status)
FALLBACK_RISK_CATALOG = (
    (
        "risk_weather_1", RiskCategory.WEATHER,
        "Potential weather delays during construction season", 65, 40,
        "Schedule critical outdoor work during favorable weather windows",
        RiskStatus.IDENTIFIED,
    ),
    (
        "risk_supply_2", RiskCategory.SUPPLY_CHAIN,
        "Material price volatility and availability issues", 45, 70,
        "Secure material contracts early and maintain supplier relationships",
        RiskStatus.MONITORING,
    ),
    (
        "risk_workforce_3", RiskCategory.WORKFORCE,
        "Skilled labor shortage in specialized trades", 55, 60,
        "Pre-book qualified contractors and maintain backup options",
        RiskStatus.IDENTIFIED,
    ),
    (
        "risk_financial_4", RiskCategory.FINANCIAL,
        "Budget overrun due to scope changes", 40, 85,
        "Implement strict change order process and maintain contingency fund",
        RiskStatus.IDENTIFIED,
    ),
)

# (name, category, unit, base price)
BASE_MATERIALS = (
    ("Concrete", MaterialCategory.CONCRETE, "cubic yard", 120.0),
    ("Rebar", MaterialCategory.STEEL, "ton", 800.0),
    ("Lumber", MaterialCategory.LUMBER, "board foot", 2.5),
    ("Electrical Wire", MaterialCategory.ELECTRICAL, "linear foot", 1.2),
    ("PVC Pipe", MaterialCategory.PLUMBING, "linear foot", 3.5),
    ("Roofing Shingles", MaterialCategory.ROOFING, "square", 150.0),
)

# (skill, crew size, days, hourly rate)
BASE_WORKFORCE = (
    (SkillType.GENERAL_LABOR, 4, 60, 25.0),
    (SkillType.CARPENTER, 2, 45, 35.0),
    (SkillType.ELECTRICIAN, 1, 20, 45.0),
    (SkillType.PLUMBER, 1, 15, 42.0),
)


# =============================================================================
# COST & TIMELINE
# =============================================================================


def get_base_rate(project_type: ProjectType) -> int:
    """Base construction cost per square foot for a project type."""
    return BASE_RATE_PER_SQFT.get(project_type, DEFAULT_BASE_RATE)


def get_location_multiplier(location: str) -> float:
    """Regional cost multiplier; first matching tier wins, 1.0 if none match."""
    lowered = (location or "").lower()
    for multiplier, places in LOCATION_TIERS:
        if any(place in lowered for place in places):
            return multiplier
    return 1.0


def get_size_multiplier(size: float) -> float:
    """Economies of scale for large projects, premium for small ones."""
    if size > 10000:
        return 0.85
    if size > 5000:
        return 0.9
    if size < 1000:
        return 1.2
    return 1.0


def get_timeline_multiplier(project_type: ProjectType) -> int:
    """Days of work per 1,000 square feet for a project type."""
    return TIMELINE_DAYS_PER_1000_SQFT.get(project_type, DEFAULT_TIMELINE_MULTIPLIER)


def calculate_fallback_cost(request: EstimationRequest) -> int:
    """size x base rate x location multiplier x size multiplier, rounded."""
    return round_half_up(
        request.size
        * get_base_rate(request.project_type)
        * get_location_multiplier(request.location)
        * get_size_multiplier(request.size)
    )


def calculate_fallback_timeline(request: EstimationRequest) -> int:
    """Duration in days from size and project type (at least one day)."""
    days = round_half_up(request.size / 1000 * get_timeline_multiplier(request.project_type))
    return max(1, days)


def derive_cost_share(total_cost: float, category: str) -> int:
    """A single category's fixed share of the total, rounded."""
    share = dict(COST_SHARES)[category]
    return round_half_up(total_cost * share)


def split_cost_breakdown(total_cost: float) -> CostBreakdown:
    """Fixed percentage split whose four parts sum exactly to the total.

    Rounding residue lands on overhead.
    """
    materials = derive_cost_share(total_cost, "materials")
    labor = derive_cost_share(total_cost, "labor")
    equipment = derive_cost_share(total_cost, "equipment")
    overhead = round_half_up(total_cost) - materials - labor - equipment
    return CostBreakdown(
        materials=materials,
        labor=labor,
        equipment=equipment,
        overhead=max(0, overhead),
    )


def generate_fallback_estimation(request: EstimationRequest) -> EstimationResponse:
    """Complete rule-based estimate with degraded confidence."""
    estimated_cost = calculate_fallback_cost(request)
    return EstimationResponse(
        estimated_cost=estimated_cost,
        cost_breakdown=split_cost_breakdown(estimated_cost),
        timeline=calculate_fallback_timeline(request),
        confidence=DEGRADED_CONFIDENCE,
        assumptions=list(FALLBACK_ASSUMPTIONS),
        recommendations=list(FALLBACK_RECOMMENDATIONS),
        risks=list(FALLBACK_RISKS),
    )


# =============================================================================
# MATERIALS / WORKFORCE / MARKET
# =============================================================================


def fallback_material_list(sampler: Optional[PlausibleRangeSampler] = None) -> List[Material]:
    """Six staple materials with current price within 0.9x-1.1x of base."""
    sampler = sampler or PlausibleRangeSampler()
    materials = []
    for index, (name, category, unit, base_price) in enumerate(BASE_MATERIALS):
        materials.append(Material(
            id=f"material_{index}",
            name=name,
            category=category,
            unit=unit,
            base_price=base_price,
            current_price=round(base_price * sampler.uniform(0.9, 1.1), 2),
            availability=AvailabilityStatus.AVAILABLE,
            lead_time=sampler.randint(7, 20),
        ))
    return materials


def fallback_workforce_requirements(project_id: str = "temp") -> List[WorkforceRequirement]:
    """Minimal crew: general labor, carpentry, electrical, plumbing."""
    return [
        WorkforceRequirement(
            id=f"workforce_{index}",
            project_id=project_id,
            skill_type=skill,
            required_count=count,
            duration=days,
            hourly_rate=rate,
            availability=AvailabilityStatus.AVAILABLE,
        )
        for index, (skill, count, days, rate) in enumerate(BASE_WORKFORCE)
    ]


def fallback_market_conditions(insight: str = "Market analysis unavailable") -> MarketConditions:
    """Neutral market: no material or labor adjustment."""
    return MarketConditions(
        material_cost_multiplier=1.0,
        labor_cost_multiplier=1.0,
        market_insights=[insight],
    )


# =============================================================================
# RISK
# =============================================================================


def default_risk_description(category: RiskCategory) -> str:
    return RISK_DESCRIPTIONS.get(category, "General project risk factors")


def default_mitigation(category: RiskCategory) -> str:
    return RISK_MITIGATIONS.get(category, "Implement standard risk management practices")


def fallback_risks() -> List[Risk]:
    """Canned weather, supply chain, workforce and financial risks."""
    return [
        Risk(
            id=risk_id,
            category=category,
            description=description,
            probability=probability,
            impact=impact,
            risk_score=compute_risk_score(probability, impact),
            mitigation=mitigation,
            status=status,
        )
        for risk_id, category, description, probability, impact, mitigation, status
        in FALLBACK_RISK_CATALOG
    ]


def fallback_risk(category: RiskCategory, risk_id: Optional[str] = None) -> Risk:
    """Template risk for a single category."""
    description, probability, impact = RISK_TEMPLATES.get(
        category, RISK_TEMPLATES[RiskCategory.TECHNICAL]
    )
    return Risk(
        id=risk_id or f"risk_{category.value}",
        category=category,
        description=description,
        probability=probability,
        impact=impact,
        mitigation=default_mitigation(category),
        status=RiskStatus.IDENTIFIED,
    )


def fallback_risk_assessment(project_id: str) -> RiskAssessment:
    """Assessment built entirely from the canned catalog."""
    return RiskAssessment(
        project_id=project_id,
        risks=fallback_risks(),
        recommendations=list(RISK_MANAGEMENT_RECOMMENDATIONS),
    )


def fallback_mitigation_strategies() -> List[str]:
    return list(MITIGATION_STRATEGIES)


def fallback_weather_assessment() -> WeatherRiskAssessment:
    return WeatherRiskAssessment(
        risk_level=RiskLevel.MEDIUM,
        seasonal_factors=[
            "Seasonal temperature variations",
            "Precipitation patterns",
            "Wind conditions",
        ],
        recommendations=[
            "Monitor weather forecasts daily",
            "Schedule outdoor work during favorable conditions",
            "Maintain weather protection equipment",
        ],
    )
