from fastapi import FastAPI, Request, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import time
import logging

from sleepdata.core.config import settings
from sleepdata.core import database
from sleepdata.core.database import create_db_pool, close_db_pool
from sleepdata.api.routes import sleep

# Simple logging setup
logging.basicConfig(level=getattr(logging, settings.log_level.upper()))
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info(f"Starting {settings.app_name} v{settings.version} in {settings.environment} mode")
    await create_db_pool()
    logger.info("Database connection pool created")
    yield
    # Shutdown
    logger.info(f"Shutting down {settings.app_name}")
    await close_db_pool()
    logger.info("Database connection pool closed")


app = FastAPI(
    title=settings.app_name,
    version=settings.version,
    lifespan=lifespan,
)

# Mobile app reads from anywhere
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["*"],
)

# Simple request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time.time()

    response = await call_next(request)

    process_time = time.time() - start_time
    logger.info(f"{request.method} {request.url} - {response.status_code} - {process_time:.4f}s")

    return response

# Include routers
app.include_router(sleep.router)


@app.get("/")
async def root():
    return {
        "message": f"{settings.app_name} API",
        "version": settings.version,
        "environment": settings.environment,
        "lookback_days": settings.lookback_days,
        "aggregation_policy": settings.aggregation_policy,
        "status": "running"
    }


@app.get("/health")
async def health_check():
    """Enhanced health check for load balancer"""
    try:
        if database.pool is None:
            raise HTTPException(status_code=503, detail="Database pool not initialized")

        async with database.pool.acquire() as conn:
            await conn.fetchval("SELECT 1")

        return {
            "status": "healthy",
            "version": settings.version,
            "environment": settings.environment,
            "database": "connected",
            "timestamp": time.time()
        }
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        raise HTTPException(status_code=503, detail=f"Health check failed: {str(e)}")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "sleepdata.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower()
    )
