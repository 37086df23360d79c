import logging
import os
import time
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError

# Load env before settings are read by the imports below
if "PYTEST_CURRENT_TEST" not in os.environ:
    load_dotenv()

from dailyreflect.api import health, insights, milestones, progress, reflections, streaks
from dailyreflect.core.config import settings, validate_config
from dailyreflect.core.database import create_all_tables, get_database_url
from dailyreflect.core.errors import (
    AppError,
    app_error_handler,
    http_error_handler,
    request_validation_handler,
    unhandled_exception_handler,
)
from dailyreflect.core.logging import configure_logging
from dailyreflect.core.middleware.request_id import RequestIdMiddleware

configure_logging(settings.ENV, settings.LOG_LEVEL)
validate_config(strict=getattr(settings, "CONFIG_STRICT", False))


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger = logging.getLogger("dailyreflect")
    logger.info("Starting dailyreflect engine...")
    app.state.startup_time = time.time()
    if get_database_url():
        create_all_tables()
    try:
        yield
    finally:
        logger.info("Stopping dailyreflect engine...")


app = FastAPI(title="dailyreflect - Consistency & Progress Engine", lifespan=lifespan)

# Middlewares
app.add_middleware(RequestIdMiddleware)

app.add_exception_handler(AppError, app_error_handler)
app.add_exception_handler(HTTPException, http_error_handler)
app.add_exception_handler(RequestValidationError, request_validation_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

app.include_router(reflections.router)
app.include_router(streaks.router)
app.include_router(milestones.router)
app.include_router(progress.router)
app.include_router(insights.router)
app.include_router(health.router)
