from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field


class PublishRequest(BaseModel):
    floors: Optional[List[Any]] = Field(
        None,
        description="Полный набор этажей; заменяет все опубликованные этажи",
    )


class FloorOut(BaseModel):
    id: Union[int, str] = Field(..., description="ID этажа: число (БД) или строка (манифест)")
    name: str = Field(..., description="Название этажа")
    imageData: str = Field(..., description="Ссылка на изображение или data: URL")
    url: str = Field(..., description="То же значение, что imageData")
    points: List[Any] = Field(..., description="Точки-оверлеи карты")
    walkable: Dict[str, Any] = Field(..., description="Подсказка для проходимых областей")
    sortOrder: int = Field(..., description="Порядок отображения")
    northOffset: float = Field(..., description="Поворот относительно севера, градусы")
    createdAt: str = Field(..., description="Время создания, ISO-8601")


class FloorListResponse(BaseModel):
    floors: List[FloorOut]
