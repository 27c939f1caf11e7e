"""Health check API router."""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from toolbridge.infra.metrics import get_metrics_response

router = APIRouter()


def _provider_status(request: Request):
    catalog = getattr(request.app.state, "catalog", None)
    if catalog is None:
        return None, []
    return catalog, [
        {"url": connection.url, "connected": bool(connection.connected)}
        for connection in catalog.connections
    ]


@router.get("/health", tags=["Health"])
async def health_check(request: Request):
    """Process health plus a per-provider connection summary."""
    catalog, providers = _provider_status(request)
    return {
        "status": "ok",
        "service": "toolbridge",
        "version": "1.0.0",
        "providers": providers,
        "tools": len(catalog) if catalog is not None else 0,
    }


@router.get("/health/live", tags=["Health"])
async def liveness_probe():
    """Liveness probe - indicates if the process is running."""
    return {"status": "alive"}


@router.get("/health/ready", tags=["Health"])
async def readiness_probe(request: Request):
    """Readiness probe - at least one provider connection is up."""
    catalog, providers = _provider_status(request)
    if any(p["connected"] for p in providers):
        return {"status": "ready", "providers": len(providers), "tools": len(catalog)}
    return JSONResponse(status_code=503, content={"status": "not_ready", "providers": providers})


@router.get("/metrics", tags=["Health"])
async def metrics():
    """Prometheus metrics endpoint."""
    return get_metrics_response()
