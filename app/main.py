"""
FastAPI application with database pool and connection service lifecycle.
"""

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from app.config import settings
from app.db.pool import db_pool
from app.features.connections import MemberDirectory, build_connection_service, connections_router
from app.infrastructure.observability.logging import get_logger, log_request, setup_logging
from app.routes import health

# Setup logging before creating the app
setup_logging(log_level=settings.LOG_LEVEL)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the pool and build the service graph; tear both down on shutdown."""
    logger.info("Application starting", environment=settings.environment, debug=settings.debug)

    try:
        await db_pool.initialize()
    except Exception as e:
        logger.error("Failed to initialize services", error=str(e))
        raise

    members = MemberDirectory()
    app.state.member_directory = members
    app.state.connection_service = build_connection_service(members)
    logger.info("All services initialized successfully")

    yield

    logger.info("Application shutting down")
    members.clear()
    app.state.connection_service = None
    await db_pool.close()
    logger.info("All services closed successfully")


app = FastAPI(
    title="Guild Connections",
    description="Voice and text social-connection graphs for community guilds",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(health.router)
app.include_router(connections_router)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log HTTP requests with timing."""
    start_time = time.time()
    response = await call_next(request)
    process_time = (time.time() - start_time) * 1000

    log_request(
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=round(process_time, 2),
        guild_id=request.path_params.get("guild_id"),
    )
    return response


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
