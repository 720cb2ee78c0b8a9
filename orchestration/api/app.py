from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI

from .routes import create_router

if TYPE_CHECKING:
    from orchestration.orchestrator import Orchestrator


def create_app(orchestrator: "Orchestrator") -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await orchestrator.start()
        try:
            yield
        finally:
            await orchestrator.stop()

    app = FastAPI(title="Tool Orchestration", lifespan=lifespan)
    app.state.orchestrator = orchestrator
    app.include_router(create_router(orchestrator))

    return app
