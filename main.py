"""FastAPI application entry point."""

from dotenv import load_dotenv

load_dotenv()

import logging

from api.routes import downloads, exports, health, jobs, orders, templates, webhooks
from core.error_handlers import (
    handle_app_error,
    handle_http_error,
    handle_pydantic_error,
    handle_unknown_error,
    handle_validation_error,
)
from core.lifespan import lifespan
from core.middleware import trace_id_middleware
from core.openapi import custom_openapi
from core.settings import app_settings
from core.validation import validate_all_settings
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from gst.core.exceptions import BaseError
from gst.core.logging_config import configure_structured_logging
from pydantic_core import ValidationError as PydanticCoreValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

# Configure logging
configure_structured_logging(level=app_settings.LOG_LEVEL, json_format=app_settings.LOG_JSON)
logger = logging.getLogger(__name__)

# Validate environment before starting application
validate_all_settings()

import urllib3

# Suppress urllib3 SSL verification warnings (MinIO uses self-signed certs in dev)
urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

# Initialize FastAPI app
app = FastAPI(
    title="GST Order Documents API",
    version=app_settings.APP_VERSION,
    description="GST calculation, invoices and exports for commerce orders",
    docs_url="/docs",
    redoc_url="/redoc",
    root_path=app_settings.ROOT_PATH,
    lifespan=lifespan,
)

# Custom OpenAPI
app.openapi = lambda: custom_openapi(app)

# 1. Register Middleware
app.middleware("http")(trace_id_middleware)

# 2. Register Exception Handlers
app.add_exception_handler(RequestValidationError, handle_validation_error)
app.add_exception_handler(PydanticCoreValidationError, handle_pydantic_error)
app.add_exception_handler(StarletteHTTPException, handle_http_error)
app.add_exception_handler(BaseError, handle_app_error)
app.add_exception_handler(Exception, handle_unknown_error)

# Routes
app.include_router(health.router)
app.include_router(jobs.router)
app.include_router(downloads.router)
app.include_router(exports.router)
app.include_router(orders.router)
app.include_router(templates.router)
app.include_router(webhooks.router)
