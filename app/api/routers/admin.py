import logging
from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_db_session
from app.exceptions import AppException, ServiceError
from app.schemas.admin import AdminProfileOut
from app.services.admin import get_admin_profile
from app.services.security import get_current_admin_id

logger = logging.getLogger(__name__)

router = APIRouter(tags=["admin"])


@router.get(
    "/me",
    response_model=AdminProfileOut,
    summary="Профиль текущего администратора",
    description="Возвращает email и tags администратора из Bearer-токена."
)
@router.get("/admin/me", response_model=AdminProfileOut, include_in_schema=False)
async def read_me(
    admin_id: Any = Depends(get_current_admin_id),
    db: AsyncSession = Depends(get_db_session),
):
    try:
        return await get_admin_profile(db, admin_id)
    except AppException:
        raise
    except Exception:
        logger.exception("Failed to load admin profile id=%s", admin_id)
        raise ServiceError("Server error")
