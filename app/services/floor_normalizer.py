"""
Приведение «сырых» этажей от клиента к каноническому виду.

Клиент (редактор карт) присылает этажи в свободной форме: часть полей может
отсутствовать, числа приходят строками, изображение передаётся либо ссылкой
(`url`), либо прямо в теле (`imageData`). Здесь все необязательные поля
получают значения по умолчанию, так что наружу никогда не уходит этаж
с пустым полем.
"""
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, List, Mapping, Sequence

from app.exceptions import InvalidFloorError, ValidationError

DEFAULT_WALKABLE_COLOR = "#9F9383"
DEFAULT_WALKABLE_TOLERANCE = 12


def default_walkable() -> dict:
    return {"color": DEFAULT_WALKABLE_COLOR, "tolerance": DEFAULT_WALKABLE_TOLERANCE}


def utc_now_iso() -> str:
    """ISO-8601 в UTC с миллисекундами и суффиксом Z, как у JS Date.toISOString()."""
    now = datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


@dataclass
class FloorRecord:
    id: Any
    name: str
    image_url: str
    points: list = field(default_factory=list)
    walkable: dict = field(default_factory=default_walkable)
    sort_order: int = 0
    north_offset: float = 0.0
    created_at: str | None = None

    def to_json(self) -> dict:
        """Представление этажа для API и манифеста (camelCase, как ждёт фронтенд)."""
        return {
            "id": self.id,
            "name": self.name,
            "imageData": self.image_url,
            "url": self.image_url,
            "points": self.points,
            "walkable": self.walkable,
            "sortOrder": self.sort_order,
            "northOffset": self.north_offset,
            "createdAt": self.created_at,
        }


def coerce_north_offset(value: Any) -> float:
    """
    Число, строка с числом -> float; всё остальное, а также NaN и ±inf -> 0.
    """
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        result = float(value)
    elif isinstance(value, str):
        try:
            result = float(value.strip())
        except ValueError:
            return 0.0
    else:
        return 0.0
    return result if math.isfinite(result) else 0.0


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def resolve_image_url(raw: Mapping[str, Any]) -> str:
    for key in ("url", "imageData"):
        value = raw.get(key)
        if isinstance(value, str) and value.strip():
            return value
    raise InvalidFloorError("Each floor requires a URL or imageData.")


def normalize_floor(raw: Any, index: int = 0, *, assign_id: bool = True) -> FloorRecord:
    """
    Приводит один этаж к каноническому виду.

    Args:
        raw: объект этажа в том виде, в каком его прислал клиент.
        index: позиция этажа в пакете публикации.
        assign_id: синтезировать `floor-{n}`, если id не задан (режим манифеста).
            В реляционном режиме id назначает БД, и поле остаётся None.

    Raises:
        InvalidFloorError: если этаж не объект или у него нет ни url, ни imageData.
    """
    if not isinstance(raw, Mapping):
        raise InvalidFloorError(f"Floor at position {index} must be an object.")

    image_url = resolve_image_url(raw)

    floor_id = raw.get("id")
    if floor_id in (None, ""):
        floor_id = f"floor-{index + 1}" if assign_id else None
    else:
        floor_id = str(floor_id)

    points = raw.get("points")
    walkable = raw.get("walkable")
    sort_order = raw.get("sortOrder")
    # 1.0 из JSON: тот же порядок, что и 1; дробные, NaN и ±inf заменяются позицией
    if isinstance(sort_order, float) and sort_order.is_integer():
        sort_order = int(sort_order)
    elif not _is_number(sort_order) or isinstance(sort_order, float):
        sort_order = index
    name = raw.get("name")
    created_at = raw.get("createdAt")

    return FloorRecord(
        id=floor_id,
        name=str(name) if name else f"Floor {index + 1}",
        image_url=image_url,
        points=points if isinstance(points, list) else [],
        walkable=walkable if isinstance(walkable, dict) and walkable else default_walkable(),
        sort_order=sort_order,
        north_offset=coerce_north_offset(raw.get("northOffset")),
        created_at=created_at if isinstance(created_at, str) and created_at else utc_now_iso(),
    )


def normalize_floors(raw_floors: Any, *, assign_id: bool = True) -> List[FloorRecord]:
    """
    Нормализует пакет этажей для публикации. Любая ошибка прерывает весь пакет,
    так что до записи дело не доходит.
    """
    if not isinstance(raw_floors, list) or not raw_floors:
        raise ValidationError("Floors array is required")
    return [
        normalize_floor(raw, index, assign_id=assign_id)
        for index, raw in enumerate(raw_floors)
    ]


def sort_floors(floors: Iterable[FloorRecord]) -> List[FloorRecord]:
    # sorted() стабилен: при равном sortOrder сохраняется порядок отправки
    return sorted(floors, key=lambda f: f.sort_order)


def floors_to_json(floors: Sequence[FloorRecord]) -> List[dict]:
    return [f.to_json() for f in floors]
