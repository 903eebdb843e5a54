# app/api/routers/health.py
from fastapi import APIRouter, Depends

from app.api.deps import get_floor_store
from app.services.floor_store import FloorStore

router = APIRouter()


@router.get("/health", summary="Health check")
async def health_check(store: FloorStore = Depends(get_floor_store)):
    return {"status": "ok", "storage_mode": store.mode}
