import time
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
from adsync.api.routes import router as api_router
from adsync.config import Settings
from adsync.db import Database
from adsync.errors import Internal, RateLimited, ServiceError, describe_validation_errors
from adsync.rate_limit import RateLimiter
from adsync.scheduler import build_scheduler
from adsync.utils import logger, utc_now

VERSION = "1.0.0"


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def create_app(settings: Settings = None, database: Database = None, clock=utc_now) -> FastAPI:
    settings = settings or Settings.from_env()
    database = database or Database.from_settings(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        database.create_schema()
        scheduler = None
        if settings.scheduler_enabled:
            scheduler = build_scheduler(database, settings)
            scheduler.start()
            logger.info("Scheduler started")
        logger.info("Database ready")
        try:
            yield
        finally:
            if scheduler is not None:
                scheduler.shutdown(wait=False)
            database.close()
            logger.info("Database connection closed")

    # create FastAPI instance
    app = FastAPI(title="adsync", version=VERSION, lifespan=lifespan)
    app.state.settings = settings
    app.state.database = database
    app.state.clock = clock
    app.state.started_at = time.monotonic()
    app.state.rate_limiter = RateLimiter(settings.rate_limit_max, settings.rate_limit_window)

    @app.middleware("http")
    async def log_and_limit(request: Request, call_next):
        logger.info("%s %s", request.method, request.url.path)
        client = request.client.host if request.client else "unknown"
        if not app.state.rate_limiter.allow(client):
            err = RateLimited()
            return _error(err.status_code, err.message)
        return await call_next(request)

    # added last so it wraps rate-limited responses too
    if settings.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError):
        return _error(exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return _error(400, describe_validation_errors(exc.errors()))

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return _error(404, "Endpoint not found")
        return _error(exc.status_code, str(exc.detail))

    @app.exception_handler(SQLAlchemyError)
    async def store_error_handler(request: Request, exc: SQLAlchemyError):
        logger.exception("Store failure on %s %s: %s", request.method, request.url.path, exc)
        err = Internal()
        return _error(err.status_code, err.message)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s: %s", request.method, request.url.path, exc)
        err = Internal()
        return _error(err.status_code, err.message)

    app.include_router(api_router, prefix=settings.api_prefix)

    @app.get("/")
    def index():
        prefix = settings.api_prefix
        return {
            "message": "Classified ads sync API",
            "version": VERSION,
            "endpoints": {
                "health": f"{prefix}/health",
                "advertisements": f"{prefix}/advertisements",
                "sync": f"{prefix}/advertisements/sync",
                "stats": f"{prefix}/advertisements/stats",
            },
        }

    return app
