"""
Хранилище опубликованных этажей.

Два варианта с одним контрактом (list_floors / publish_all / delete_by_id):
- RelationalFloorStore: строки в таблице published_floors;
- ManifestFloorStore: один JSON-манифест в S3.

Вариант выбирается один раз при старте (build_floor_store) по наличию полного
набора учётных данных S3 и дальше не меняется.
"""
import json
import logging
from typing import Any, Callable, List, Optional, Protocol, Tuple

from fastapi.concurrency import run_in_threadpool
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings
from app.db.models.floor import PublishedFloor
from app.exceptions import ConflictError, InvalidFloorError, NotFoundError, ValidationError
from app.services.floor_normalizer import (
    FloorRecord,
    coerce_north_offset,
    default_walkable,
    floors_to_json,
    normalize_floor,
    normalize_floors,
    sort_floors,
    utc_now_iso,
)
from app.services.object_storage import (
    ObjectNotFound,
    PreconditionFailed,
    StorageClient,
)

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], AsyncSession]


class FloorStore(Protocol):
    mode: str

    async def list_floors(self) -> List[FloorRecord]:
        ...

    async def publish_all(self, raw_floors: Any) -> List[FloorRecord]:
        ...

    async def delete_by_id(self, floor_id: str) -> dict:
        """Возвращает тело ответа: {"floor": ...} или {"floors": [...]}."""
        ...


def row_to_record(row: PublishedFloor) -> FloorRecord:
    created_at = row.created_at.isoformat() if row.created_at is not None else utc_now_iso()
    return FloorRecord(
        id=row.id,
        name=row.name,
        image_url=row.image_url,
        points=row.points or [],
        walkable=row.walkable or default_walkable(),
        sort_order=row.sort_order or 0,
        north_offset=coerce_north_offset(row.north_offset),
        created_at=created_at,
    )


class RelationalFloorStore:
    mode = "database"

    def __init__(self, session_factory: SessionFactory):
        self.session_factory = session_factory

    async def _select_ordered(self, db: AsyncSession) -> List[PublishedFloor]:
        # id растёт в порядке вставки, это и есть порядок отправки при равном sortOrder
        result = await db.execute(
            select(PublishedFloor).order_by(PublishedFloor.sort_order, PublishedFloor.id)
        )
        return list(result.scalars().all())

    async def list_floors(self) -> List[FloorRecord]:
        async with self.session_factory() as db:
            rows = await self._select_ordered(db)
        return [row_to_record(row) for row in rows]

    async def publish_all(self, raw_floors: Any) -> List[FloorRecord]:
        normalized = normalize_floors(raw_floors, assign_id=False)
        async with self.session_factory() as db:
            # delete + insert в одной транзакции: либо новый набор целиком, либо старый
            async with db.begin():
                await db.execute(delete(PublishedFloor))
                db.add_all([
                    PublishedFloor(
                        name=floor.name,
                        image_url=floor.image_url,
                        points=floor.points,
                        walkable=floor.walkable,
                        sort_order=floor.sort_order,
                        north_offset=floor.north_offset,
                    )
                    for floor in normalized
                ])
            rows = await self._select_ordered(db)
        logger.info("Published %d floors to the database", len(rows))
        return [row_to_record(row) for row in rows]

    async def delete_by_id(self, floor_id: str) -> dict:
        try:
            pk = int(str(floor_id).strip())
        except ValueError:
            raise ValidationError("Invalid floor id")
        async with self.session_factory() as db:
            async with db.begin():
                floor = await db.get(PublishedFloor, pk)
                if floor is None:
                    raise NotFoundError("Floor not found")
                record = row_to_record(floor)
                await db.delete(floor)
        logger.info("Deleted floor id=%s from the database", pk)
        return {"floor": record.to_json()}


class ManifestFloorStore:
    """
    Этажи хранятся одним JSON-документом {"updatedAt": ..., "floors": [...]}.

    Публикация перезаписывает документ целиком. Удаление: чтение, фильтр и
    запись с If-Match на прочитанный ETag; если документ успел измениться,
    операция повторяется с новым содержимым (до write_attempts раз).
    """

    mode = "manifest"

    def __init__(
        self,
        storage: StorageClient,
        manifest_key: str = "floors/manifest.json",
        conditional_writes: bool = True,
        write_attempts: int = 3,
    ):
        self.storage = storage
        self.manifest_key = manifest_key
        self.conditional_writes = conditional_writes
        self.write_attempts = max(1, write_attempts)

    async def read_manifest(self) -> Tuple[List[Any], Optional[str]]:
        """
        Returns:
            (сырые этажи из манифеста, ETag); отсутствующий манифест: ([], None).
        """
        try:
            stored = await run_in_threadpool(self.storage.get_object, self.manifest_key)
        except ObjectNotFound:
            return [], None
        payload = json.loads(stored.body.decode("utf-8") or "{}")
        floors = payload.get("floors") if isinstance(payload, dict) else None
        return (floors if isinstance(floors, list) else []), stored.etag

    async def write_manifest(
        self,
        floors: List[dict],
        *,
        if_match: Optional[str] = None,
        if_none_match: Optional[str] = None,
    ) -> None:
        body = json.dumps({"updatedAt": utc_now_iso(), "floors": floors}, indent=2)
        await run_in_threadpool(
            lambda: self.storage.put_object(
                self.manifest_key,
                body.encode("utf-8"),
                "application/json",
                cache_control="no-cache",
                if_match=if_match,
                if_none_match=if_none_match,
            )
        )

    def _normalize_entries(self, raw_floors: List[Any]) -> List[FloorRecord]:
        # документ мог записать клиент со старой схемой, нормализуем каждый этаж,
        # этажи без изображения пропускаем; порядок документа сохраняется
        floors = []
        for index, raw in enumerate(raw_floors):
            try:
                floors.append(normalize_floor(raw, index))
            except InvalidFloorError as exc:
                logger.warning("Skipping manifest entry %d: %s", index, exc.message)
        return floors

    def _normalize_stored(self, raw_floors: List[Any]) -> List[FloorRecord]:
        return sort_floors(self._normalize_entries(raw_floors))

    async def list_floors(self) -> List[FloorRecord]:
        raw_floors, _ = await self.read_manifest()
        return self._normalize_stored(raw_floors)

    async def publish_all(self, raw_floors: Any) -> List[FloorRecord]:
        normalized = normalize_floors(raw_floors, assign_id=True)
        await self.write_manifest(floors_to_json(normalized))
        logger.info("Published %d floors to manifest %s", len(normalized), self.manifest_key)
        return sort_floors(normalized)

    async def delete_by_id(self, floor_id: str) -> dict:
        target = str(floor_id)
        for attempt in range(1, self.write_attempts + 1):
            raw_floors, etag = await self.read_manifest()
            # записываем нормализованные этажи: синтезированные floor-{n} закрепляются
            # за этажами и не сдвигаются после удаления
            floors = self._normalize_entries(raw_floors)
            remaining = [floor for floor in floors if floor.id != target]
            if len(remaining) == len(floors):
                raise NotFoundError("Floor not found")

            conditions = {}
            if self.conditional_writes:
                if etag:
                    conditions["if_match"] = etag
                else:
                    conditions["if_none_match"] = "*"
            try:
                await self.write_manifest(floors_to_json(remaining), **conditions)
            except PreconditionFailed:
                logger.warning(
                    "Manifest %s changed during delete of floor %s (attempt %d/%d)",
                    self.manifest_key, target, attempt, self.write_attempts,
                )
                continue
            logger.info("Deleted floor id=%s from manifest %s", target, self.manifest_key)
            return {"floors": floors_to_json(sort_floors(remaining))}
        raise ConflictError("Floor manifest was modified concurrently")


def build_floor_store(
    settings: Settings,
    session_factory: SessionFactory,
    storage: Optional[StorageClient] = None,
) -> FloorStore:
    if settings.s3_configured and storage is not None:
        return ManifestFloorStore(
            storage,
            manifest_key=settings.S3_MANIFEST_KEY,
            conditional_writes=settings.S3_CONDITIONAL_WRITES,
            write_attempts=settings.S3_MANIFEST_WRITE_ATTEMPTS,
        )
    return RelationalFloorStore(session_factory)
