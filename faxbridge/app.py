from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from faxbridge.application import BridgeService, configure_bridge_service, get_bridge_service
from faxbridge.routes import jobs, webhooks


def create_app(service: BridgeService | None = None, *, watch: bool = True) -> FastAPI:
    if service is not None:
        configure_bridge_service(service)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        bridge = get_bridge_service()
        # a spool that cannot be watched aborts start-up
        bridge.start(watch=watch)
        try:
            yield
        finally:
            await asyncio.to_thread(bridge.stop)

    app = FastAPI(title="Fax Spool Bridge", version="0.1.0", lifespan=lifespan)

    app.include_router(webhooks.router)
    app.include_router(jobs.router, prefix="/api")

    @app.get("/", include_in_schema=False)
    async def root() -> JSONResponse:
        """Provide a lightweight landing page for container checks."""
        bridge = get_bridge_service()
        return JSONResponse(
            {
                "message": "Fax Spool Bridge",
                "spool": str(bridge.spool.root),
                "watching": bridge.watcher.running,
                "in_flight": len(bridge.registry),
                "unpaired": len(bridge.cache),
            }
        )

    return app


app = create_app()
