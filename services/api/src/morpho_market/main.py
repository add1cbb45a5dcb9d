import logging
import os
from contextlib import asynccontextmanager

from apscheduler.schedulers.background import BackgroundScheduler
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from services.api.src.morpho_market.routes import api_router, dashboard_router

logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler: BackgroundScheduler | None = None


def run_ingestion() -> None:
    """Run one market ingestion pass; failures are logged, never raised."""
    from services.api.src.morpho_market.jobs.ingest_market import run_ingestion as ingest

    logger.info("Starting market ingestion...")
    try:
        result = ingest()
        logger.info(
            f"Market ingestion done: {len(result.activities)} activities, "
            f"{len(result.positions)} positions, database "
            f"{'ok' if result.db_success else 'failed'}"
        )
    except Exception as e:
        logger.error(f"Market ingestion failed: {e}", exc_info=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables and optionally start the hourly ingestion scheduler."""
    global scheduler

    if os.getenv("INIT_DB_ON_STARTUP", "true").lower() == "true":
        from services.api.src.morpho_market.db.engine import get_db_engine, init_db

        try:
            init_db(get_db_engine())
        except SQLAlchemyError as e:
            logger.error(f"Database initialisation failed: {e}")

    # Hourly ingestion at the top of each hour
    if os.getenv("ENABLE_SCHEDULED_INGESTION", "false").lower() == "true":
        logger.info("Starting ingestion scheduler (every hour at :00)")

        scheduler = BackgroundScheduler()
        scheduler.add_job(
            run_ingestion,
            "cron",
            minute=0,
            id="ingestion",
            name="Morpho Blue market ingestion",
        )
        scheduler.start()

        if os.getenv("RUN_INGESTION_ON_STARTUP", "false").lower() == "true":
            logger.info("Running initial ingestion...")
            run_ingestion()

    yield

    # Shutdown scheduler
    if scheduler is not None:
        scheduler.shutdown(wait=False)
        scheduler = None
        logger.info("Scheduler shutdown complete")


app = FastAPI(title="Morpho Blue Market Tracker API", lifespan=lifespan)

# CORS for a separately hosted frontend
cors_origins = [
    "http://localhost:3000",
    "https://localhost:3000",
]

if os.getenv("CORS_ORIGIN"):
    cors_origins.append(os.getenv("CORS_ORIGIN"))

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Store failures become a structured 500 instead of a partial response."""
    logger.error(f"Error handling {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"error": str(exc)})


app.include_router(api_router)
app.include_router(dashboard_router)


@app.get("/api")
def root() -> dict[str, str]:
    return {"service": "morpho-market-tracker-api", "docs": "/docs"}


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
