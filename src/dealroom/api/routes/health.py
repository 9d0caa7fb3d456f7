"""Health check endpoint."""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

router = APIRouter()


@router.get("/health")
async def health(request: Request):
    """Report whether the live catalog subscription is up."""
    catalog = request.app.state.catalog
    if catalog.error is not None or not catalog.running:
        error = catalog.error.message if catalog.error else "catalog subscription closed"
        return JSONResponse(status_code=503, content={"status": "unhealthy", "error": error})
    return {"status": "ok", "loading": catalog.loading}
