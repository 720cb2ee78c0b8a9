"""Default tool catalog and chain recommendations"""
import pytest
from jsonschema import Draft7Validator

from orchestration.health import HealthRegistry, HttpProbe
from orchestration.models import ChainDefinition, ChainStep, ToolCategory
from orchestration.strategies import ChainCatalog
from orchestration.tools import MockTool
from orchestration.tools.catalog import (
    DEFAULT_CHAINS,
    DEPENDENCY_GROUPS,
    TOOL_DESCRIPTORS,
    build_registry,
    register_dependency_groups,
)

TOOL_IDS = {d.id for d in TOOL_DESCRIPTORS}


class TestDefaultCatalog:
    def test_ids_unique(self):
        assert len(TOOL_IDS) == len(TOOL_DESCRIPTORS)

    @pytest.mark.parametrize("descriptor", TOOL_DESCRIPTORS, ids=lambda d: d.id)
    def test_schema_is_valid(self, descriptor):
        Draft7Validator.check_schema(descriptor.parameter_schema)

    def test_dependencies_resolve(self):
        for descriptor in TOOL_DESCRIPTORS:
            for dependency in descriptor.dependencies:
                assert dependency in DEPENDENCY_GROUPS or dependency in TOOL_IDS

    def test_fallbacks_exist(self):
        for descriptor in TOOL_DESCRIPTORS:
            if descriptor.fallback_tool:
                assert descriptor.fallback_tool in TOOL_IDS

    def test_chain_steps_reference_catalog_tools(self):
        for chain in DEFAULT_CHAINS:
            for step in chain.steps:
                assert step.tool_id in TOOL_IDS, f"{chain.id}: {step.tool_id}"


class TestBuildRegistry:
    def test_registers_tools_with_handlers(self):
        registry = build_registry({
            "census_demographics": MockTool(),
            "memory_recall": lambda params, context: None,
        })

        assert registry.list_all() == ["census_demographics", "memory_recall"]

    def test_rejects_handlers_for_unknown_tools(self):
        with pytest.raises(ValueError):
            build_registry({"zillow_scrape": MockTool()})


class TestDependencyGroups:
    def test_http_probes_for_public_apis(self):
        groups = register_dependency_groups(HealthRegistry())

        assert set(groups.ids()) == set(DEPENDENCY_GROUPS)
        assert isinstance(groups.get("census").probe, HttpProbe)
        assert groups.get("database").probe is None

    def test_explicit_probes_only(self):
        groups = register_dependency_groups(
            HealthRegistry(),
            probes={"database": lambda: True},
            http_probes=False,
        )

        assert groups.get("census").probe is None
        assert groups.get("database").probe is not None


class TestRecommend:
    @pytest.fixture
    def catalog(self):
        return ChainCatalog(DEFAULT_CHAINS)

    def test_trigger_and_category(self, catalog):
        chains = catalog.recommend("Can you analyze property 100 Congress Ave?")

        assert [c.id for c in chains] == ["comprehensive_property_analysis"]

    def test_market_research(self, catalog):
        chains = catalog.recommend("I need market research for Austin")

        assert chains[0].id == "market_intelligence_research"

    def test_no_match(self, catalog):
        assert catalog.recommend("hello there") == []

    def test_limit(self, catalog):
        assert len(catalog.recommend("analyze market research data report scan", limit=2)) == 2

    def test_category_keyword_alone_is_enough(self):
        catalog = ChainCatalog([
            ChainDefinition(
                id="summary",
                name="Summary",
                category=ToolCategory.COMMUNICATION,
                steps=[ChainStep(tool_id="executive_summary")],
            ),
        ])

        assert [c.id for c in catalog.recommend("write a summary")] == ["summary"]

    def test_duplicate_chain_rejected(self, catalog):
        with pytest.raises(ValueError):
            catalog.register(DEFAULT_CHAINS[0])
