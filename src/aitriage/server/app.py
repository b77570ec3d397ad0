"""FastAPI application factory."""

import contextlib
from collections.abc import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from aitriage import __version__
from aitriage.config.schema import TriageConfig
from aitriage.engine import TriageEngine, create_engine
from aitriage.server.routes import create_router


def create_app(config: TriageConfig, engine: TriageEngine | None = None) -> FastAPI:
    """Create and configure FastAPI application.

    Args:
        config: aitriage configuration
        engine: Pre-built engine (built from config if None)

    Returns:
        Configured FastAPI app
    """
    engine = engine or create_engine(config)

    @contextlib.asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await engine.start()
        try:
            yield
        finally:
            await engine.stop()

    app = FastAPI(
        title="aitriage",
        description="Local privacy triage for in-browser AI usage",
        version=__version__,
        lifespan=lifespan,
    )

    # Browser extensions call from their own origin
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(create_router(config, engine))
    app.state.engine = engine
    return app
