from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.admin import Admin
from app.exceptions import NotFoundError


async def get_admin_profile(db: AsyncSession, admin_id: Any) -> dict:
    """
    Публичный профиль администратора: только email и tags.
    Токен может пережить удаление учётной записи, тогда NotFoundError.
    """
    # только целое или строка из цифр: 1.9 и True не должны найти admin 1
    if isinstance(admin_id, int) and not isinstance(admin_id, bool):
        pk = admin_id
    elif isinstance(admin_id, str) and admin_id.isascii() and admin_id.isdigit():
        pk = int(admin_id)
    else:
        raise NotFoundError("Admin not found")
    result = await db.execute(select(Admin.email, Admin.tags).where(Admin.id == pk))
    row = result.first()
    if row is None:
        raise NotFoundError("Admin not found")
    return {"email": row.email, "tags": row.tags}
