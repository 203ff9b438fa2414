from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn
import logging
from contextlib import asynccontextmanager

from dogerek.core.config import settings
from dogerek.core.database import init_db, AsyncSessionLocal
from dogerek.core.logging_config import setup_logging
from dogerek.api.v1 import admin, common
from dogerek.services.sync_jobs import sync_job_manager, recover_interrupted_runs
from dogerek.utils.formatters import format_response

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Initialize database
    await init_db()

    async with AsyncSessionLocal() as db:
        await recover_interrupted_runs(db)

    yield

    # Stop any sync still running
    await sync_job_manager.shutdown()


app = FastAPI(
    title="Dogerek API",
    description="University club administration backend with HEMIS roster sync",
    version="1.0.0",
    lifespan=lifespan
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routers
app.include_router(admin.router, prefix="/api/admin", tags=["admin"])
app.include_router(common.router, prefix="/api/common", tags=["common"])


@app.get("/")
async def root():
    return {"message": "Dogerek API is running"}


@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "version": "1.0.0",
        "sync_running": sync_job_manager.is_running
    }


@app.exception_handler(HTTPException)
async def http_exception_handler(request, exc):
    return JSONResponse(
        status_code=exc.status_code,
        content=format_response(False, None, str(exc.detail), str(exc.detail)),
        headers=getattr(exc, "headers", None)
    )


@app.exception_handler(Exception)
async def general_exception_handler(request, exc):
    logger.exception(f"Unhandled error on {request.url.path}")
    return JSONResponse(
        status_code=500,
        content=format_response(False, None, "Internal server error", str(exc))
    )


if __name__ == "__main__":
    uvicorn.run(
        "dogerek.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level="info" if not settings.DEBUG else "debug"
    )
