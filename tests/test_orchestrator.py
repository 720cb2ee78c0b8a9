"""Orchestrator lifecycle and wiring"""
import pytest
from jsonschema.exceptions import SchemaError

from orchestration.models import RegistryFrozenError
from orchestration.tools import MockTool

from tests.helpers import make_descriptor


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_context_manager_starts_and_stops(self, orchestrator):
        handler = MockTool()
        orchestrator.register_tool(make_descriptor("memory_store"), handler)

        async with orchestrator:
            assert orchestrator.registry.frozen
            assert orchestrator.health_monitor.running
            assert orchestrator.cache_sweeper.running
            result = await orchestrator.execute("memory_store", {"key": "k"})
            assert result.success

        assert not orchestrator.health_monitor.running
        assert not orchestrator.cache_sweeper.running
        assert handler.closed

    @pytest.mark.asyncio
    async def test_registration_closed_after_start(self, orchestrator):
        await orchestrator.start(background=False)

        with pytest.raises(RegistryFrozenError):
            orchestrator.register_tool(make_descriptor("memory_store"), MockTool())

        await orchestrator.stop()

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self, orchestrator):
        await orchestrator.start()
        await orchestrator.start()

        assert orchestrator.get_status()["started"]
        await orchestrator.stop()
        assert not orchestrator.get_status()["started"]


class TestRegistration:
    def test_malformed_schema_rejected(self, orchestrator):
        with pytest.raises(SchemaError):
            orchestrator.register_tool(
                make_descriptor("broken", parameter_schema={"type": 12}),
                MockTool(),
            )
        assert "broken" not in orchestrator.registry

    @pytest.mark.asyncio
    async def test_unknown_dependency_logged_at_start(self, orchestrator, caplog):
        orchestrator.register_tool(make_descriptor("memory_store", dependencies=["redis"]), MockTool())

        with caplog.at_level("WARNING", logger="orchestration.orchestrator"):
            await orchestrator.start(background=False)

        assert "redis" in caplog.text


class TestStatus:
    @pytest.mark.asyncio
    async def test_status_reflects_activity(self, orchestrator):
        orchestrator.register_group("census")
        orchestrator.register_tool(make_descriptor("census_demographics", cacheable=True), MockTool())

        await orchestrator.execute("census_demographics", {"zip_code": "78701"})
        await orchestrator.execute("census_demographics", {"zip_code": "78701"})
        status = orchestrator.get_status()

        assert status["cache"]["hits"] == 1
        assert status["metrics"]["tools"]["census_demographics"]["total_executions"] == 2
        assert status["health"]["groups"]["census"]["health_score"] == 1.0
        assert status["circuit_breakers"]["census_demographics"]["state"] == "closed"

    @pytest.mark.asyncio
    async def test_check_health_runs_probes(self, orchestrator):
        orchestrator.register_group("census", probe=lambda: False)

        scores = await orchestrator.check_health()

        assert scores["census"] == pytest.approx(0.7)
