import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Request, UploadFile

from app.api.deps import get_storage_client
from app.exceptions import AppException, ServiceError
from app.schemas.storage import UploadOut
from app.services.image_upload import upload_floor_image
from app.services.object_storage import StorageClient

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/storage", tags=["storage"])


@router.post(
    "/floors",
    response_model=UploadOut,
    summary="Загрузить изображение этажа",
    description="Сохраняет изображение в S3 и возвращает ключ и публичный URL."
)
async def upload_floor(
    request: Request,
    image: Optional[UploadFile] = File(None),
    storage: Optional[StorageClient] = Depends(get_storage_client),
):
    settings = request.app.state.settings
    data = None
    if image is not None and storage is not None:
        # читаем на байт больше лимита, чтобы заметить превышение
        data = await image.read(settings.MAX_UPLOAD_BYTES + 1)
    try:
        return await upload_floor_image(
            storage,
            data,
            image.filename if image is not None else None,
            image.content_type if image is not None else None,
            max_bytes=settings.MAX_UPLOAD_BYTES,
            public_read=settings.S3_PUBLIC_READ_ACL,
        )
    except AppException:
        raise
    except Exception:
        logger.exception("Failed to upload floor image")
        raise ServiceError("Failed to upload image to storage.")
