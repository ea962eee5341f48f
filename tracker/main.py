# tracker/main.py
import logging
from contextlib import asynccontextmanager
from typing import Optional
import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import create_async_engine

from tracker.core.config import Settings, settings as default_settings
from tracker.core.errors import TrackerError
from tracker.core.logging import setup_logging
from tracker.database.sql_repository import SqlTrackerRepository
from tracker.routers.v1 import auth, catalog, health, student, teacher
from tracker.schemas.envelope import fail
from tracker.services.event_service import EventPublisher, NullEventPublisher
from tracker.storage.s3_store import S3ObjectStore

logger = logging.getLogger("tracker.api")


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(TrackerError)
    async def tracker_error_handler(request: Request, exc: TrackerError):
        return JSONResponse(
            status_code=exc.status_code,
            content=fail(exc.message, exc.error_code, exc.details),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = [
            {"field": ".".join(str(part) for part in err.get("loc", ())), "error": err.get("msg")}
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=400,
            content=fail("Invalid request", "VALIDATION_ERROR", {"errors": errors}),
        )

    @app.exception_handler(IntegrityError)
    async def integrity_error_handler(request: Request, exc: IntegrityError):
        logger.warning("Integrity constraint violated", extra={"path": request.url.path})
        return JSONResponse(status_code=409, content=fail("Record already exists", "CONFLICT"))

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError):
        logger.exception("Database error", extra={"path": request.url.path})
        return JSONResponse(status_code=500, content=fail("Database operation failed", str(exc)))

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error", extra={"path": request.url.path})
        return JSONResponse(status_code=500, content=fail("Internal server error", str(exc)))


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or default_settings
    setup_logging(settings.log_level, settings.sql_echo)
    engine = create_async_engine(settings.database_url, echo=settings.sql_echo, pool_pre_ping=True)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        repo = SqlTrackerRepository(engine)
        await repo.ensure_schema()
        app.state.repo = repo

        app.state.object_store = S3ObjectStore(
            settings.s3_bucket,
            endpoint_url=settings.s3_endpoint_url,
            access_key_id=settings.s3_access_key_id,
            secret_access_key=settings.s3_secret_access_key,
            region=settings.s3_region,
        )

        if settings.rabbitmq_url:
            publisher = EventPublisher(settings.rabbitmq_url, exchange_name=settings.events_exchange)
        else:
            publisher = NullEventPublisher()
        app.state.publisher = publisher
        await publisher.start()

        try:
            yield
        finally:
            try:
                await publisher.stop()
            finally:
                await engine.dispose()

    app = FastAPI(
        title="Task Tracker",
        description="Backend per task, consegne e valutazioni degli studenti",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins, allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
        expose_headers=["Content-Length"],
        max_age=600,
    )

    register_exception_handlers(app)

    app.include_router(health.router, tags=["health"])
    app.include_router(auth.router, tags=["auth"])
    app.include_router(student.router, tags=["student"])
    app.include_router(teacher.router, tags=["teacher"])
    app.include_router(catalog.router, tags=["catalog"])
    return app


app = create_app()


def run() -> None:
    # log_config=None: resta attiva la configurazione di setup_logging
    uvicorn.run("tracker.main:app", host=default_settings.host, port=default_settings.port, log_config=None)


if __name__ == "__main__":
    run()
