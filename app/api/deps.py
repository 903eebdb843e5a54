# app/api/deps.py

from typing import AsyncGenerator, Optional

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import AsyncSessionLocal
from app.services.floor_store import FloorStore
from app.services.object_storage import StorageClient


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Зависимость FastAPI, возвращающая асинхронную сессию SQLAlchemy.
    Сессия автоматически открывается при входе в контекст и закрывается по выходу.
    """
    async with AsyncSessionLocal() as session:
        yield session


def get_floor_store(request: Request) -> FloorStore:
    """Хранилище этажей, выбранное один раз при старте приложения."""
    return request.app.state.floor_store


def get_storage_client(request: Request) -> Optional[StorageClient]:
    """Клиент S3 или None, если хранилище не сконфигурировано."""
    return request.app.state.storage_client
