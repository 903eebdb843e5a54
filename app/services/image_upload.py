import logging
import re
import time
from typing import Optional

from fastapi.concurrency import run_in_threadpool

from app.exceptions import ServiceUnavailableError, ValidationError
from app.services.object_storage import StorageClient

logger = logging.getLogger(__name__)

DEFAULT_FILENAME = "floor.png"
DEFAULT_CONTENT_TYPE = "image/png"
_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9.\-_]")


def sanitize_filename(filename: Optional[str]) -> str:
    return _UNSAFE_CHARS.sub("_", filename or DEFAULT_FILENAME)


def build_object_key(filename: Optional[str], now_ms: Optional[int] = None) -> str:
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"floors/{now_ms}-{sanitize_filename(filename)}"


async def upload_floor_image(
    storage: Optional[StorageClient],
    data: Optional[bytes],
    filename: Optional[str],
    content_type: Optional[str],
    *,
    max_bytes: int,
    public_read: bool = True,
) -> dict:
    """
    Кладёт изображение этажа в объектное хранилище.

    Returns:
        {"key": ключ объекта, "url": публичный URL}
    """
    if storage is None:
        raise ServiceUnavailableError("S3 is not configured on the server.")
    if not data:
        raise ValidationError("Image file is required.")
    if len(data) > max_bytes:
        raise ValidationError(f"Image exceeds the {max_bytes // (1024 * 1024)} MB upload limit.")

    key = build_object_key(filename)
    await run_in_threadpool(
        lambda: storage.put_object(
            key,
            data,
            content_type or DEFAULT_CONTENT_TYPE,
            public_read=public_read,
        )
    )
    logger.info("Uploaded floor image %s (%d bytes)", key, len(data))
    return {"key": key, "url": storage.public_url(key)}
