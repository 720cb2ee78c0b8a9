"""Tool registry"""
import pytest

from orchestration.core import ToolRegistry
from orchestration.models import (
    ComplexityTier,
    DuplicateToolError,
    RegistryFrozenError,
    ToolCategory,
    UnknownToolError,
)
from orchestration.tools import FunctionTool, MockTool

from tests.helpers import make_descriptor


@pytest.fixture
def registry():
    registry = ToolRegistry()
    registry.register(
        make_descriptor(
            "property_analysis",
            category=ToolCategory.ANALYSIS,
            complexity=ComplexityTier.RESEARCH,
            dependencies=["database"],
            fallback_tool="quick_analysis",
        ),
        MockTool(),
    )
    registry.register(
        make_descriptor(
            "market_comparables",
            category=ToolCategory.ANALYSIS,
            dependencies=["database"],
        ),
        MockTool(),
    )
    registry.register(
        make_descriptor(
            "quick_analysis",
            category=ToolCategory.ANALYSIS,
            complexity=ComplexityTier.SIMPLE,
        ),
        MockTool(),
    )
    registry.register(make_descriptor("census_demographics", dependencies=["census"]), MockTool())
    return registry


class TestRegistration:
    def test_get_registered(self, registry):
        descriptor = registry.get("property_analysis")

        assert descriptor.name == "Property Analysis"
        assert "property_analysis" in registry
        assert len(registry) == 4

    def test_duplicate_rejected(self, registry):
        with pytest.raises(DuplicateToolError):
            registry.register(make_descriptor("quick_analysis"), MockTool())

    def test_frozen_registry_rejects_registration(self, registry):
        registry.freeze()

        assert registry.frozen
        with pytest.raises(RegistryFrozenError):
            registry.register(make_descriptor("memory_store"), MockTool())

    def test_unknown_tool(self, registry):
        with pytest.raises(UnknownToolError):
            registry.get("nope")
        assert not registry.exists("nope")

    def test_function_handler_is_wrapped(self, registry):
        registry.register(make_descriptor("memory_recall"), lambda params, context: params)

        assert isinstance(registry.get_handler("memory_recall"), FunctionTool)

    def test_non_callable_handler_rejected(self, registry):
        with pytest.raises(TypeError):
            registry.register(make_descriptor("memory_recall"), "not a tool")


class TestLookup:
    def test_list_by_category_keeps_registration_order(self, registry):
        ids = [d.id for d in registry.list_by_category(ToolCategory.ANALYSIS)]

        assert ids == ["property_analysis", "market_comparables", "quick_analysis"]

    def test_dependents_of(self, registry):
        assert registry.dependents_of("database") == ["property_analysis", "market_comparables"]

    def test_alternatives_put_fallback_first(self, registry):
        alternatives = [d.id for d in registry.alternatives_for("property_analysis")]

        assert alternatives == ["quick_analysis", "market_comparables"]

    def test_alternatives_require_lower_complexity(self, registry):
        assert [d.id for d in registry.alternatives_for("market_comparables")] == ["quick_analysis"]
        assert registry.alternatives_for("quick_analysis") == []

    def test_search(self, registry):
        found = registry.search(query="comparables")

        assert [d.id for d in found] == ["market_comparables"]

    def test_unresolved_dependencies(self, registry):
        missing = registry.unresolved_dependencies(["census"])

        assert missing == {
            "property_analysis": ["database"],
            "market_comparables": ["database"],
        }

    def test_statistics(self, registry):
        stats = registry.get_statistics()

        assert stats["total_tools"] == 4
        assert stats["by_category"] == {"analysis": 3, "data": 1}


class TestClose:
    @pytest.mark.asyncio
    async def test_close_closes_handlers(self, registry):
        handler = registry.get_handler("quick_analysis")

        await registry.close()

        assert handler.closed
