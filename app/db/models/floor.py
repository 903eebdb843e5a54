from sqlalchemy import Column, Integer, String, Float, JSON, DateTime, func

from app.db.base import Base


class PublishedFloor(Base):
    __tablename__ = "published_floors"
    __mapper_args__ = {"eager_defaults": True}

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    image_url = Column(
        String,
        nullable=False,
        comment="URL изображения этажа или data: URL с самим изображением"
    )
    points = Column(
        JSON,
        nullable=False,
        default=list,
        comment="Точки-оверлеи карты, формат определяет фронтенд"
    )
    walkable = Column(
        JSON,
        nullable=False,
        comment="Подсказка для проходимых областей: {color, tolerance}"
    )
    sort_order = Column(Integer, nullable=False, default=0, index=True)
    north_offset = Column(Float, nullable=False, default=0.0, comment="Поворот карты относительно севера, градусы")

    created_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )
