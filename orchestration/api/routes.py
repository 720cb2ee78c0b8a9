"""Read-only operational endpoints"""
from typing import TYPE_CHECKING

from fastapi import APIRouter, HTTPException

if TYPE_CHECKING:
    from orchestration.orchestrator import Orchestrator


def create_router(orchestrator: "Orchestrator") -> APIRouter:
    router = APIRouter(prefix="/orchestration", tags=["orchestration"])

    @router.get("/status")
    async def status():
        return orchestrator.get_status()

    @router.get("/tools")
    async def tools():
        return {
            "tools": orchestrator.registry.describe(),
            "statistics": orchestrator.registry.get_statistics(),
        }

    @router.get("/breakers")
    async def breakers():
        return {
            "breakers": orchestrator.circuit_breaker.get_status(),
            "open": orchestrator.circuit_breaker.get_all_open(),
        }

    @router.get("/breakers/{tool_id}")
    async def breaker(tool_id: str):
        if not orchestrator.registry.exists(tool_id):
            raise HTTPException(status_code=404, detail=f"Tool not found: {tool_id}")
        return orchestrator.circuit_breaker.get_status(tool_id)

    @router.get("/metrics")
    async def metrics():
        return orchestrator.metrics.snapshot()

    @router.get("/health")
    async def health():
        return orchestrator.health_monitor.get_status()

    @router.get("/cache")
    async def cache():
        return orchestrator.cache.get_status()

    @router.get("/chains")
    async def chains(q: str = ""):
        found = orchestrator.recommend_chains(q) if q else orchestrator.catalog.list_all()
        return {
            "chains": [
                {
                    "id": chain.id,
                    "name": chain.name,
                    "category": chain.category.value,
                    "steps": [step.tool_id for step in chain.steps],
                }
                for chain in found
            ]
        }

    return router
