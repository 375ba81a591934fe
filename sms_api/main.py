from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging
import time

from .core.config import settings
from .core.cache import cache_manager
from .core.database import close_db_connections, health_check_db
from .core.error_handlers import register_exception_handlers
from .core.logging import setup_logging
from .core.rate_limiter import api_rate_limit

# Import all routers
from .routers import (
    health, counts, users, sessions, students, parents, teachers, classes, fees, fee_assignments,
    payments, payment_reminders, announcements, events, audit, dashboard, financial_reports,
)

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting School Management API")

    # Initialize cache
    await cache_manager.initialize()
    logger.info("Cache initialized")

    if not await health_check_db():
        logger.warning("Database is not reachable at startup")

    yield

    logger.info("Shutting down School Management API")
    await cache_manager.close()
    await close_db_connections()
    logger.info("Shutdown complete")


app = FastAPI(
    title="School Management API",
    description="Students, staff, classes, fees, payments, announcements and events with role based access",
    version=settings.app_version,
    lifespan=lifespan
)


@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)
    logger.info(f"{request.method} {request.url.path} - {response.status_code} - {process_time:.3f}s")
    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Cache", "X-Total-Count", "X-Process-Time"],
    max_age=3600,
)

register_exception_handlers(app)

# Include all routers
app.include_router(health.router)
for api_router in (
    counts.router, users.router, sessions.router, students.router, parents.router, teachers.router, classes.router,
    fees.router, fee_assignments.router, payments.router, payment_reminders.router,
    announcements.router, events.router, audit.router, dashboard.router, financial_reports.router,
):
    app.include_router(api_router, dependencies=[Depends(api_rate_limit)])


@app.get("/")
async def root():
    return {
        "message": "School Management API",
        "version": settings.app_version,
        "environment": settings.environment,
        "status": "active"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("sms_api.main:app", host="0.0.0.0", port=8000, reload=True)
