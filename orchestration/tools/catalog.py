"""Default real-estate intelligence catalog: tools, dependency groups and chains"""
from typing import Dict, List, Mapping, Optional, Union
import logging

from orchestration.core.registry import ToolRegistry
from orchestration.health.groups import HealthRegistry
from orchestration.health.probes import BaseProbe, HttpProbe, ProbeFunction
from orchestration.models import (
    ChainDefinition,
    ChainStep,
    ComplexityTier,
    ToolCategory,
    ToolDescriptor,
)
from orchestration.tools.base import BaseTool, ToolFunction

logger = logging.getLogger(__name__)

DAY = 24 * 60 * 60

# group id -> (display name, probe URL or None when the host must supply a probe)
DEPENDENCY_GROUPS: Dict[str, tuple] = {
    "census": ("US Census Bureau", "https://api.census.gov/data.json"),
    "bls": ("Bureau of Labor Statistics", "https://api.bls.gov/publicAPI/v2/timeseries/data/"),
    "hud": ("HUD USPS crosswalk", "https://www.huduser.gov/hudapi/public/usps"),
    "fbi": ("FBI Crime Data Explorer", "https://api.usa.gov/crime/fbi/cde/estimate/state/"),
    "noaa": ("NOAA climate data", "https://www.ncei.noaa.gov/access/services/search/v1/data"),
    "bea": ("Bureau of Economic Analysis", "https://apps.bea.gov/api/data"),
    "foursquare": ("Foursquare places", "https://api.foursquare.com/v3/places/search"),
    "database": ("Property database", None),
    "llm": ("LLM gateway", None),
}


def _location_schema(**extra) -> Dict:
    properties = {
        "address": {"type": "string", "minLength": 1},
        "zip_code": {"type": "string", "pattern": "^[0-9]{5}$"},
        "state": {"type": "string", "minLength": 2, "maxLength": 2},
    }
    properties.update(extra)
    return {
        "type": "object",
        "properties": properties,
        "anyOf": [{"required": ["address"]}, {"required": ["zip_code"]}],
    }


def _property_schema(**extra) -> Dict:
    properties = {
        "property_id": {"type": "string", "minLength": 1},
        "address": {"type": "string", "minLength": 1},
    }
    properties.update(extra)
    return {
        "type": "object",
        "properties": properties,
        "anyOf": [{"required": ["property_id"]}, {"required": ["address"]}],
    }


TOOL_DESCRIPTORS: List[ToolDescriptor] = [
    # External data sources
    ToolDescriptor(
        id="census_demographics",
        name="Census demographics",
        description="Population, income and household data from the American Community Survey",
        category=ToolCategory.DATA,
        parameter_schema=_location_schema(year={"type": "integer", "minimum": 2010}),
        dependencies=["census"],
        cacheable=True,
        cache_ttl_seconds=DAY,
        tags=["demographics", "public-data"],
    ),
    ToolDescriptor(
        id="bls_employment",
        name="BLS employment",
        description="Local unemployment and employment series",
        category=ToolCategory.DATA,
        parameter_schema=_location_schema(series_id={"type": "string"}),
        dependencies=["bls"],
        cacheable=True,
        cache_ttl_seconds=DAY,
        tags=["employment", "public-data"],
    ),
    ToolDescriptor(
        id="hud_vacancy",
        name="HUD vacancy",
        description="Residential and business vacancy from the USPS crosswalk",
        category=ToolCategory.DATA,
        parameter_schema=_location_schema(),
        dependencies=["hud"],
        cacheable=True,
        cache_ttl_seconds=DAY,
        tags=["housing", "public-data"],
    ),
    ToolDescriptor(
        id="fbi_crime",
        name="FBI crime estimates",
        description="State and agency crime estimates",
        category=ToolCategory.DATA,
        parameter_schema=_location_schema(),
        dependencies=["fbi"],
        cacheable=True,
        cache_ttl_seconds=7 * DAY,
        tags=["crime", "public-data"],
    ),
    ToolDescriptor(
        id="noaa_climate",
        name="NOAA climate",
        description="Climate normals and extreme-weather history",
        category=ToolCategory.DATA,
        parameter_schema=_location_schema(),
        dependencies=["noaa"],
        cacheable=True,
        cache_ttl_seconds=7 * DAY,
        tags=["climate", "public-data"],
    ),
    ToolDescriptor(
        id="bea_economics",
        name="BEA economic indicators",
        description="Regional GDP and personal income",
        category=ToolCategory.DATA,
        parameter_schema=_location_schema(),
        dependencies=["bea"],
        cacheable=True,
        cache_ttl_seconds=DAY,
        tags=["economics", "public-data"],
    ),
    ToolDescriptor(
        id="foursquare_amenities",
        name="Nearby amenities",
        description="Points of interest around a location",
        category=ToolCategory.DATA,
        parameter_schema=_location_schema(
            radius_meters={"type": "integer", "minimum": 100, "maximum": 50000},
        ),
        dependencies=["foursquare"],
        cacheable=True,
        cache_ttl_seconds=DAY,
        complexity=ComplexityTier.SIMPLE,
        tags=["amenities"],
    ),
    ToolDescriptor(
        id="market_trends",
        name="Market trends",
        description="Rent and price trends built from employment and economic series",
        category=ToolCategory.DATA,
        parameter_schema=_location_schema(
            timeframe_years={"type": "integer", "minimum": 1, "maximum": 20},
        ),
        dependencies=["bls", "bea"],
        cacheable=True,
        cache_ttl_seconds=DAY,
        complexity=ComplexityTier.RESEARCH,
        tags=["market"],
    ),
    # Analysis
    ToolDescriptor(
        id="quick_analysis",
        name="Quick property analysis",
        description="Preliminary cap rate and cash-on-cash estimate",
        category=ToolCategory.ANALYSIS,
        parameter_schema=_property_schema(),
        dependencies=["database"],
        cacheable=True,
        cache_ttl_seconds=3600,
        complexity=ComplexityTier.SIMPLE,
        tags=["underwriting"],
    ),
    ToolDescriptor(
        id="property_analysis",
        name="Property analysis",
        description="Full underwriting with financial metrics and projections",
        category=ToolCategory.ANALYSIS,
        parameter_schema=_property_schema(include_projections={"type": "boolean"}),
        dependencies=["database"],
        cacheable=True,
        cache_ttl_seconds=3600,
        complexity=ComplexityTier.RESEARCH,
        fallback_tool="quick_analysis",
        tags=["underwriting"],
    ),
    ToolDescriptor(
        id="market_comparables",
        name="Market comparables",
        description="Comparable sales and rents within a radius",
        category=ToolCategory.ANALYSIS,
        parameter_schema=_property_schema(
            radius_miles={"type": "number", "exclusiveMinimum": 0},
            limit={"type": "integer", "minimum": 1, "maximum": 50},
        ),
        dependencies=["database"],
        cacheable=True,
        cache_ttl_seconds=3600,
        tags=["comparables"],
    ),
    ToolDescriptor(
        id="risk_assessment",
        name="Risk assessment",
        description="Crime, climate and regulatory risk profile",
        category=ToolCategory.ANALYSIS,
        parameter_schema=_property_schema(include_regulatory={"type": "boolean"}),
        dependencies=["fbi", "noaa"],
        complexity=ComplexityTier.STANDARD,
        tags=["risk"],
    ),
    ToolDescriptor(
        id="investment_recommendation",
        name="Investment recommendation",
        description="Buy, hold or pass recommendation with a confidence score",
        category=ToolCategory.ANALYSIS,
        parameter_schema={
            "type": "object",
            "properties": {
                "confidence_threshold": {"type": "number", "minimum": 0, "maximum": 1},
            },
        },
        dependencies=["llm"],
        complexity=ComplexityTier.RESEARCH,
        tags=["recommendation"],
    ),
    # Reporting
    ToolDescriptor(
        id="report_generation",
        name="Report generation",
        description="Render an HTML or PDF report from compiled analysis",
        category=ToolCategory.COMMUNICATION,
        parameter_schema={
            "type": "object",
            "properties": {
                "format": {"type": "string", "enum": ["html", "pdf", "markdown"]},
                "include_branding": {"type": "boolean"},
            },
        },
        dependencies=["llm"],
        complexity=ComplexityTier.RESEARCH,
        tags=["report"],
    ),
    ToolDescriptor(
        id="executive_summary",
        name="Executive summary",
        description="Key metrics summary for a report",
        category=ToolCategory.COMMUNICATION,
        parameter_schema={
            "type": "object",
            "properties": {"key_metrics_only": {"type": "boolean"}},
        },
        dependencies=["llm"],
        complexity=ComplexityTier.SIMPLE,
        tags=["report"],
    ),
    # Opportunity scanning
    ToolDescriptor(
        id="opportunity_search",
        name="Opportunity search",
        description="Listings matching investment criteria",
        category=ToolCategory.AUTOMATION,
        parameter_schema={
            "type": "object",
            "properties": {
                "market": {"type": "string", "minLength": 1},
                "min_cap_rate": {"type": "number", "minimum": 0},
                "include_off_market": {"type": "boolean"},
            },
            "required": ["market"],
        },
        dependencies=["database"],
        cacheable=True,
        cache_ttl_seconds=900,
        tags=["opportunities"],
    ),
    ToolDescriptor(
        id="opportunity_ranking",
        name="Opportunity ranking",
        description="Weighted ranking by IRR, risk and location",
        category=ToolCategory.AUTOMATION,
        parameter_schema={
            "type": "object",
            "properties": {
                "weight_irr": {"type": "number", "minimum": 0, "maximum": 1},
                "weight_risk": {"type": "number", "minimum": 0, "maximum": 1},
                "weight_location": {"type": "number", "minimum": 0, "maximum": 1},
            },
        },
        complexity=ComplexityTier.SIMPLE,
        tags=["opportunities"],
    ),
    ToolDescriptor(
        id="alert_generation",
        name="Alert generation",
        description="Notify on high-priority opportunities",
        category=ToolCategory.AUTOMATION,
        parameter_schema={
            "type": "object",
            "properties": {"threshold": {"type": "string", "enum": ["all", "high-priority"]}},
        },
        complexity=ComplexityTier.SIMPLE,
        tags=["opportunities", "alerts"],
    ),
    # Conversation memory
    ToolDescriptor(
        id="memory_store",
        name="Store memory",
        description="Persist a fact for later recall",
        category=ToolCategory.INTEGRATION,
        parameter_schema={
            "type": "object",
            "properties": {
                "key": {"type": "string", "minLength": 1},
                "value": {},
                "session_id": {"type": "string"},
            },
            "required": ["key", "value"],
        },
        dependencies=["database"],
        complexity=ComplexityTier.SIMPLE,
        tags=["memory"],
    ),
    ToolDescriptor(
        id="memory_recall",
        name="Recall memory",
        description="Look up previously stored facts",
        category=ToolCategory.INTEGRATION,
        parameter_schema={
            "type": "object",
            "properties": {
                "key": {"type": "string", "minLength": 1},
                "session_id": {"type": "string"},
            },
            "required": ["key"],
        },
        dependencies=["database"],
        complexity=ComplexityTier.SIMPLE,
        tags=["memory"],
    ),
]


DEFAULT_CHAINS: List[ChainDefinition] = [
    ChainDefinition(
        id="comprehensive_property_analysis",
        name="Comprehensive Property Analysis",
        description="Complete property underwriting with market comparables and risk assessment",
        category=ToolCategory.ANALYSIS,
        steps=[
            ChainStep(
                tool_id="property_analysis",
                params={"include_projections": True},
                required=True,
                output_mapping={"property_id": "property_id", "analysis": "financial_metrics"},
            ),
            ChainStep(
                tool_id="market_comparables",
                params={"radius_miles": 5, "limit": 10},
                output_mapping={"comparables": "market_data"},
            ),
            ChainStep(
                tool_id="risk_assessment",
                params={"include_regulatory": True},
                output_mapping={"risk_factors": "risk_profile"},
            ),
            ChainStep(
                tool_id="investment_recommendation",
                params={"confidence_threshold": 0.7},
                output_mapping={"recommendation": "final_recommendation"},
            ),
        ],
        triggers=["analyze property", "underwrite deal", "full property analysis"],
    ),
    ChainDefinition(
        id="market_intelligence_research",
        name="Market Intelligence Research",
        description="Market research with demographic and economic context",
        category=ToolCategory.DATA,
        steps=[
            ChainStep(tool_id="census_demographics", output_mapping={"demographics": "population_data"}),
            ChainStep(tool_id="bls_employment", output_mapping={"employment": "employment_data"}),
            ChainStep(tool_id="bea_economics", output_mapping={"economics": "economic_context"}),
            ChainStep(
                tool_id="market_trends",
                params={"timeframe_years": 5},
                output_mapping={"trends": "market_direction"},
            ),
        ],
        triggers=["market research", "analyze market", "market intelligence"],
    ),
    ChainDefinition(
        id="automated_reporting_suite",
        name="Automated Reporting Suite",
        description="Generate a report with an executive summary",
        category=ToolCategory.COMMUNICATION,
        steps=[
            ChainStep(
                tool_id="report_generation",
                params={"format": "html", "include_branding": True},
                required=True,
                output_mapping={"report": "generated_report"},
            ),
            ChainStep(
                tool_id="executive_summary",
                params={"key_metrics_only": True},
                output_mapping={"summary": "executive_summary"},
            ),
        ],
        triggers=["generate report", "create summary", "prepare presentation"],
    ),
    ChainDefinition(
        id="investment_opportunity_scanner",
        name="Investment Opportunity Scanner",
        description="Scan for investment opportunities matching criteria",
        category=ToolCategory.AUTOMATION,
        steps=[
            ChainStep(
                tool_id="opportunity_search",
                params={"include_off_market": True},
                required=True,
                output_mapping={"opportunities": "investment_targets"},
            ),
            ChainStep(
                tool_id="opportunity_ranking",
                params={"weight_irr": 0.4, "weight_risk": 0.3, "weight_location": 0.3},
                output_mapping={"rankings": "prioritized_opportunities"},
            ),
            ChainStep(
                tool_id="alert_generation",
                params={"threshold": "high-priority"},
                # Only alert when the ranking produced something
                condition=lambda data: bool(data.get("prioritized_opportunities")),
                output_mapping={"alerts": "investment_alerts"},
            ),
        ],
        triggers=["find opportunities", "scan market", "investment alerts"],
    ),
]


def build_registry(
    handlers: Mapping[str, Union[BaseTool, ToolFunction]],
    registry: Optional[ToolRegistry] = None,
) -> ToolRegistry:
    """
    Register every catalog tool that has a handler.

    Tool business logic is supplied by the host; tools without a
    handler are left out and reported once.
    """
    registry = registry or ToolRegistry()
    unknown = sorted(set(handlers) - {d.id for d in TOOL_DESCRIPTORS})
    if unknown:
        raise ValueError(f"Handlers supplied for tools not in the catalog: {unknown}")

    missing = []
    for descriptor in TOOL_DESCRIPTORS:
        handler = handlers.get(descriptor.id)
        if handler is None:
            missing.append(descriptor.id)
            continue
        registry.register(descriptor, handler)

    if missing:
        logger.info(f"Catalog tools without handlers (not registered): {missing}")
    return registry


def register_dependency_groups(
    groups: HealthRegistry,
    probes: Optional[Mapping[str, Union[BaseProbe, ProbeFunction]]] = None,
    http_probes: bool = True,
) -> HealthRegistry:
    """
    Register the catalog's dependency groups.

    ``probes`` overrides the default probe of a group. With
    ``http_probes`` disabled, only explicitly supplied probes are used.
    """
    probes = probes or {}
    for group_id, (name, url) in DEPENDENCY_GROUPS.items():
        probe = probes.get(group_id)
        if probe is None and http_probes and url:
            probe = HttpProbe(url, timeout_seconds=groups.config.probe_timeout_seconds)
        groups.register(group_id, name=name, probe=probe)
    return groups
