"""FastAPI application factory."""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from herder import __version__
from herder.config.schema import HerderConfig
from herder.fleet.controller import FleetController
from herder.server.routes import create_router


def create_app(
    config: HerderConfig,
    controller: Optional[FleetController] = None,
    start_loops: bool = True,
) -> FastAPI:
    """Create and configure FastAPI application.

    Args:
        config: Herder configuration
        controller: Pre-built controller (built from config if None)
        start_loops: Start the reconciliation and job loops with the app

    Returns:
        Configured FastAPI app
    """
    controller = controller or FleetController.from_config(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if start_loops:
            await controller.start()
        try:
            yield
        finally:
            await controller.close()

    app = FastAPI(
        title="Herder",
        description="Fleet keep-alive and job control for remote worker instances",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.controller = controller

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(create_router(controller))

    return app
