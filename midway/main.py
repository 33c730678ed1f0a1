"""
FastAPI application.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from midway.config import get_settings
from midway.db import SessionLocal
from midway.detours.calculator import DetourCalculator
from midway.detours.routes import router as detour_router
from midway.detours.service import DetourSearchService
from midway.errors import MidwayError
from midway.places.routes import router as places_router
from midway.places.store import SqlPlaceStore
from midway.providers.factory import build_providers

settings = get_settings()

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    providers = build_providers(settings)
    calculator = DetourCalculator(
        providers.directions,
        SqlPlaceStore(SessionLocal),
        max_concurrency=settings.max_concurrent_route_requests,
    )
    app.state.providers = providers
    app.state.search_service = DetourSearchService(
        providers.directions, providers.geocoding, calculator, settings,
    )
    try:
        yield
    finally:
        await providers.aclose()


app = FastAPI(
    title="Midway Waypoint API",
    description="Recommends places to stop at between two points with the least detour",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error(status_code: int, body: dict) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": body})


@app.exception_handler(MidwayError)
async def midway_error_handler(request: Request, exc: MidwayError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.code} {exc.message}")
    return _error(exc.status_code, exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    details = [
        {"field": ".".join(str(p) for p in err["loc"] if p != "body"), "message": err["msg"]}
        for err in exc.errors()
    ]
    return _error(400, {
        "code": "VALIDATION_ERROR",
        "message": "Invalid request",
        "details": details,
    })


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return _error(500, {"code": "INTERNAL_ERROR", "message": "An unexpected error occurred"})


app.include_router(detour_router)
app.include_router(places_router)


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "provider": settings.map_provider}
