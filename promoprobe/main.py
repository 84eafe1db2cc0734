"""PromoProbe — FastAPI Application Entry Point.

Promo code validation service: probes the redemption page for each code and
classifies the response as valid, invalid or pending.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from promoprobe.database import init_db, test_connection
from promoprobe.scheduler.jobs import start_scheduler, stop_scheduler
from promoprobe.api.validation_routes import router as validation_router
from promoprobe.api.code_routes import router as code_router
from promoprobe.core.logging import get_logger

logger = get_logger("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle."""
    logger.info("🚀 PromoProbe starting up...")
    # Test connection first
    db_ok = test_connection()
    if db_ok:
        try:
            init_db()
        except Exception as e:
            logger.error(f"❌ Table creation failed: {e}")
    else:
        logger.error("❌ Database NOT connected — endpoints will fail")
    start_scheduler()
    yield
    stop_scheduler()
    logger.info("PromoProbe shut down")


app = FastAPI(
    title="PromoProbe",
    description="Validate promo codes against the redemption page and classify each as valid, invalid or pending.",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed or missing input is a 400, not FastAPI's default 422."""
    logger.warning(f"Rejected request to {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=400,
        content={"detail": "Invalid request", "errors": jsonable_errors(exc)},
    )


def jsonable_errors(exc: RequestValidationError) -> list:
    return [
        {"loc": list(err.get("loc", [])), "msg": err.get("msg", "")}
        for err in exc.errors()
    ]


# Routers
app.include_router(validation_router)
app.include_router(code_router)


@app.get("/health", tags=["System"])
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": "promoprobe",
        "version": "1.0.0",
    }
