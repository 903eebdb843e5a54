import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.core.config import Settings, settings as default_settings
from app.core.logging_config import setup_logging
from app.db.base import Base
from app.db.session import AsyncSessionLocal, async_engine
from app.exceptions import AppException
from app.services.floor_store import SessionFactory, build_floor_store
from app.services.object_storage import S3StorageClient, StorageClient

from app.api.routers.health import router as health_router
from app.api.routers.floors import router as floors_router
from app.api.routers.storage import router as storage_router
from app.api.routers.admin import router as admin_router

logger = logging.getLogger(__name__)


def _format_validation_error(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "; ".join(parts) or "Invalid request"


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppException)
    async def app_exception_handler(_request: Request, exc: AppException):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(_request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"error": _format_validation_error(exc)})

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})


def create_app(
    settings: Settings = default_settings,
    storage: Optional[StorageClient] = None,
    session_factory: Optional[SessionFactory] = None,
    engine=None,
) -> FastAPI:
    """
    Собирает приложение. Клиент S3, фабрика сессий и хранилище этажей
    создаются здесь один раз и живут в app.state до остановки процесса.
    """
    setup_logging(settings)

    if storage is None and settings.s3_configured:
        storage = S3StorageClient.from_settings(settings)
    session_factory = session_factory or AsyncSessionLocal
    engine = engine or async_engine

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        # таблица admin нужна в обоих режимах (профиль администратора)
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        yield
        await engine.dispose()

    app = FastAPI(
        title=settings.APP_NAME,
        version="1.0.0",
        debug=settings.DEBUG,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.storage_client = storage if settings.s3_configured else None
    app.state.floor_store = build_floor_store(settings, session_factory, app.state.storage_client)
    logger.info("Floor storage mode: %s", app.state.floor_store.mode)

    register_exception_handlers(app)

    # Подключаем роутеры
    app.include_router(health_router, tags=["health"])
    app.include_router(floors_router)
    app.include_router(storage_router)
    app.include_router(admin_router)

    return app


app = create_app()
