from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from fastapi import Header, Request
from jose import jwt, JWTError

from app.core.config import Settings, settings as default_settings
from app.exceptions import UnauthorizedError


def create_access_token(
    admin_id: Any,
    expires_delta: Optional[timedelta] = None,
    settings: Settings = default_settings,
) -> str:
    """
    Выпускает токен администратора в том же формате, что проверяет
    get_current_admin_id: полезная нагрузка {"adminId": ..., "exp": ...}.
    """
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.JWT_EXPIRE_MINUTES)
    to_encode = {
        "adminId": admin_id,
        "exp": datetime.now(timezone.utc) + expires_delta,
    }
    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_admin_token(token: str, settings: Settings = default_settings) -> Any:
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        raise UnauthorizedError("Invalid token")
    admin_id = payload.get("adminId")
    if admin_id is None:
        raise UnauthorizedError("Invalid token")
    return admin_id


async def get_current_admin_id(
    request: Request,
    authorization: Optional[str] = Header(None),
) -> Any:
    """
    Зависимость FastAPI: проверяет Bearer-токен из заголовка Authorization
    и возвращает adminId из полезной нагрузки. Секрет берётся из настроек,
    с которыми собрано приложение (app.state.settings). Сессий, обновления
    и отзыва токенов нет: подписанный и не просроченный токен всегда принимается.
    """
    if not authorization:
        raise UnauthorizedError("Missing Authorization header")
    parts = authorization.split()
    if len(parts) < 2 or not parts[1]:
        raise UnauthorizedError("No token provided")
    return decode_admin_token(parts[1], request.app.state.settings)
