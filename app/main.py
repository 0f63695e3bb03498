"""
PARTTH Dispute Service - FastAPI Application

Main entry point for the escrow dispute resolution API.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager

from app.routers import disputes, salas
from app.config import get_settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
    logger.info("PARTTH dispute API starting up (store=%s)", settings.store_backend)
    yield
    logger.info("PARTTH dispute API shutting down")


app = FastAPI(
    title="PARTTH Disputes API",
    description="""
    Escrow dispute resolution for the PARTTH marketplace.

    ## Features
    - Marcas and Socios open disputes on a sala, freezing the contested funds
    - Automatic verdicts weigh evidence, track record and communication
    - Confident verdicts release funds; ambiguous cases go to human mediation
    """,
    version="1.0.0",
    lifespan=lifespan
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    """Render errors as ``{"error": ...}``."""
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=422,
        content={"error": "Payload inválido", "details": jsonable_errors(exc)}
    )


def jsonable_errors(exc: RequestValidationError) -> list:
    return [
        {"loc": list(err.get("loc", [])), "msg": err.get("msg", "")}
        for err in exc.errors()
    ]


# Register routers
app.include_router(disputes.router)
app.include_router(salas.router)


@app.get("/")
async def root():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": "PARTTH Disputes API",
        "version": "1.0.0"
    }


@app.get("/health")
async def health_check():
    """Detailed health check."""
    settings = get_settings()

    return {
        "status": "healthy",
        "supabase_configured": settings.supabase_configured,
        "store_backend": settings.store_backend,
        "auto_resolve_min_confidence": settings.auto_resolve_min_confidence,
        "mediation_sla_hours": settings.mediation_sla_hours
    }
