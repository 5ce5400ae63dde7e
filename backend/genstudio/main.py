import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from genstudio.core.config import settings
from genstudio.core.logging import setup_logging
from genstudio.core.exceptions import (
    GenStudioException, genstudio_exception_handler, general_exception_handler
)
from genstudio.api.v1.api import api_router
from genstudio.services.job_tracking.cleanup import cleanup_expired_jobs
from genstudio.services.job_tracking.initiator import JobInitiator
from genstudio.services.job_tracking.reader import StatusReader
from genstudio.services.job_tracking.scheduler import get_scheduler
from genstudio.services.job_tracking.store import MemoryStore, get_job_store

# Set up logging
setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management"""
    # Startup
    store = get_job_store()
    scheduler = get_scheduler(store)
    app.state.store = store
    app.state.scheduler = scheduler
    app.state.initiator = JobInitiator(store, scheduler)
    app.state.reader = StatusReader(store)

    cleanup_task = None
    if isinstance(store, MemoryStore):
        cleanup_task = asyncio.create_task(cleanup_expired_jobs(store))

    yield

    # Shutdown
    if cleanup_task is not None:
        cleanup_task.cancel()
        await asyncio.gather(cleanup_task, return_exceptions=True)
    await scheduler.shutdown()
    await store.close()


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="Asynchronous video and website generation jobs",
        version="1.0.0",
        openapi_url=f"{settings.API_V1_STR}/openapi.json",
        lifespan=lifespan
    )

    # Exception handlers
    app.add_exception_handler(GenStudioException, genstudio_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[str(origin).rstrip("/") for origin in settings.BACKEND_CORS_ORIGINS],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include API router
    app.include_router(api_router, prefix=settings.API_V1_STR)

    @app.get("/")
    async def root():
        return {"message": f"{settings.PROJECT_NAME} is running"}

    @app.get("/health")
    async def health_check():
        return {"status": "healthy"}

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("genstudio.main:app", host="0.0.0.0", port=8000, reload=True)
