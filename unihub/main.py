"""
UniHub - Main Application

FastAPI backend for a campus-only marketplace and freelance job board:
- MongoDB for all data (pymongo)
- OTP email login with JWT access tokens and stored refresh tokens
- Cloudinary for product/profile images
- Brevo / SMTP for transactional email

Run: uvicorn unihub.main:app --reload
"""

import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from unihub import __version__
from unihub.api.routes import api_router
from unihub.core.config import get_settings
from unihub.core.errors import AppError
from unihub.db.mongodb import create_mongo_client, get_mongo_db, init_mongo_indexes, test_mongo_connection
from unihub.services.image_store import CloudinaryImageStore
from unihub.services.mailers import build_mailer

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the MongoDB client and outbound services for the process lifetime."""
    settings = get_settings()
    client = create_mongo_client(settings)
    app.state.db = get_mongo_db(client, settings)
    app.state.mailer = build_mailer(settings)
    app.state.image_store = CloudinaryImageStore(settings)

    try:
        init_mongo_indexes(app.state.db)
    except Exception as e:
        logger.warning("MongoDB index initialization failed: %s", e)

    logger.info("UniHub started (%s)", settings.environment)
    try:
        yield
    finally:
        client.close()
        logger.info("MongoDB client closed")


# ============================================================
# ERROR HANDLERS
# ============================================================

def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "message": message})


async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return _error(exc.status_code, exc.message)


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404 and exc.detail == "Not Found":
        return _error(404, "Route not found")
    return _error(exc.status_code, str(exc.detail))


async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path"))
        message = f"{field}: {first.get('msg')}" if field else first.get("msg", "Invalid input")
    else:
        message = "Invalid input"
    return _error(400, message)


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error(500, "Internal server error")


# ============================================================
# APP FACTORY
# ============================================================

def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    app = FastAPI(
        title="UniHub API",
        description="""
    Campus-restricted marketplace and freelance job board.

    ## Features
    - **Auth**: OTP email login, JWT access tokens, refresh tokens
    - **Users**: Profile setup, university email verification
    - **Jobs**: Post, apply, start, submit, complete, confirm, review
    - **Products**: List, reserve, sell, buyer interest emails
    - **Wishlist**: Save products
    - **Upload**: Images via Cloudinary
    """,
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.started_at = time.monotonic()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    # Include API routes
    app.include_router(api_router, prefix="/api")

    @app.get("/health", tags=["Health"])
    def health_check(request: Request):
        """Store connectivity and process uptime."""
        db = getattr(request.app.state, "db", None)
        connected = db is not None and test_mongo_connection(db)
        return {
            "success": True,
            "service": "unihub-backend",
            "status": "healthy" if connected else "degraded",
            "environment": settings.environment,
            "db": "connected" if connected else "disconnected",
            "uptime_seconds": round(time.monotonic() - request.app.state.started_at, 2),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    return app


app = create_app()
