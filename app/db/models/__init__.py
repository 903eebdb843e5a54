# Пакет моделей базы данных
# Здесь импортируются все модели, чтобы Alembic мог их обнаружить
from .admin import Admin
from .floor import PublishedFloor
