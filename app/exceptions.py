class AppException(Exception):
    """
    Базовый класс для всех исключений приложения.
    status_code: HTTP-код, с которым ошибка уходит клиенту,
    message: безопасный для клиента текст.
    """
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class UnauthorizedError(AppException):
    """
    Отсутствующий, некорректный или просроченный токен.
    """
    status_code = 401
    default_message = "Invalid token"


class ValidationError(AppException):
    """
    Ошибка валидации входных данных.
    """
    status_code = 400
    default_message = "Bad request"


class InvalidFloorError(ValidationError):
    """
    Этаж не удалось привести к каноническому виду.
    """
    default_message = "Each floor requires a URL or imageData."


class NotFoundError(AppException):
    """
    Ресурс не найден (например, при поиске в БД).
    """
    status_code = 404
    default_message = "Not found"


class ConflictError(AppException):
    """
    Манифест изменён другим запросом во время чтения-изменения-записи.
    """
    status_code = 409
    default_message = "Resource was modified concurrently"


class ServiceUnavailableError(AppException):
    """
    Нужный бэкенд (например, S3) не сконфигурирован.
    """
    status_code = 500
    default_message = "Service is not configured"


class ServiceError(AppException):
    """
    Ошибка на уровне бизнес-логики (сервисов) или хранилища.
    """
    status_code = 500
