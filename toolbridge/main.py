"""FastAPI application exposing the tool catalog."""

import uuid
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from toolbridge.api.routers import health, resources, tools
from toolbridge.infra.config import load_provider_configs
from toolbridge.infra.logging import app_logger
from toolbridge.infra.middleware import RequestIDMiddleware, RequestLoggingMiddleware, setup_cors
from toolbridge.services.tool_catalog import ToolCatalog


def create_app(catalog: Optional[ToolCatalog] = None) -> FastAPI:
    """
    Create the application.

    Args:
        catalog: Pre-built catalog. When omitted, the lifespan builds one from
            MCP_PROVIDERS and cleans it up on shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app_logger.info("Application starting up")
        owned = None
        if catalog is not None:
            app.state.catalog = catalog
        else:
            owned = ToolCatalog()
            providers = load_provider_configs()
            if providers:
                await owned.initialize(providers)
            else:
                app_logger.warning("No MCP providers configured; serving an empty catalog")
            app.state.catalog = owned

        yield

        app_logger.info("Application shutting down")
        if owned is not None:
            await owned.cleanup()

    app = FastAPI(
        title="Tool Bridge API",
        description="""
        Tool Bridge connects to remote MCP tool providers, catalogs their tools,
        and routes validated invocations to the provider that owns each tool.

        ## Authentication

        When `BRIDGE_API_KEY` is set, endpoints require:
        - Header: `X-API-Key: <your-api-key>`
        - Query parameter: `?api_key=<your-api-key>`
        """,
        version="1.0.0",
        lifespan=lifespan,
        tags_metadata=[
            {"name": "Tools", "description": "List and invoke cataloged tools"},
            {"name": "Resources", "description": "Resource templates and resource reads"},
            {"name": "Health", "description": "Health check and monitoring endpoints"},
        ],
    )

    # Last added runs outermost: request IDs are assigned before access logging
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    setup_cors(app)

    app.include_router(health.router)
    app.include_router(tools.router)
    app.include_router(resources.router)

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle all other exceptions."""
        error_id = str(uuid.uuid4())
        app_logger.error(f"Unhandled exception: {exc}", exc_info=True, extra={"error_id": error_id})
        return JSONResponse(
            status_code=500,
            content={"detail": f"Internal server error. Error ID: {error_id}"},
        )

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host="0.0.0.0",
        port=8000,
        timeout_keep_alive=30,
        timeout_graceful_shutdown=30,
    )
