import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends

from app.api.deps import get_floor_store
from app.exceptions import AppException, ServiceError
from app.schemas.floor import FloorListResponse, PublishRequest
from app.services.floor_normalizer import floors_to_json
from app.services.floor_store import FloorStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/floors", tags=["floors"])


@router.get(
    "",
    response_model=FloorListResponse,
    summary="Получить опубликованные этажи",
    description="Возвращает все опубликованные этажи по возрастанию sortOrder."
)
async def list_floors(store: FloorStore = Depends(get_floor_store)):
    try:
        floors = await store.list_floors()
    except AppException:
        raise
    except Exception:
        logger.exception("Failed to fetch published floors (%s)", store.mode)
        raise ServiceError("Failed to load published floors")
    return {"floors": floors_to_json(floors)}


@router.put(
    "",
    response_model=FloorListResponse,
    summary="Опубликовать этажи",
    description="Атомарно заменяет весь набор опубликованных этажей."
)
@router.put("/publish", response_model=FloorListResponse, include_in_schema=False)
async def publish_floors(
    payload: Optional[PublishRequest] = Body(None),
    store: FloorStore = Depends(get_floor_store),
):
    try:
        floors = await store.publish_all(payload.floors if payload is not None else None)
    except AppException:
        raise
    except Exception:
        logger.exception("Failed to publish floors (%s)", store.mode)
        raise ServiceError("Failed to publish floors")
    return {"floors": floors_to_json(floors)}


@router.delete(
    "/{floor_id}",
    summary="Удалить этаж",
    description="Удаляет один опубликованный этаж по его ID."
)
async def delete_floor(
    floor_id: str,
    store: FloorStore = Depends(get_floor_store),
):
    try:
        return await store.delete_by_id(floor_id)
    except AppException:
        raise
    except Exception:
        logger.exception("Failed to delete floor %s (%s)", floor_id, store.mode)
        raise ServiceError("Failed to delete floor")
