from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Окружение: production, development, testing
    ENV: str = Field(
        "production",
        description="Application environment",
    )
    DEBUG: bool = Field(
        False,
        description="Turn on debug mode (reload, detailed errors)",
    )
    APP_NAME: str = Field(
        "Floor Admin Server",
        description="Application name for docs/title",
    )

    # Подключение к БД (async URL: postgresql+asyncpg://..., sqlite+aiosqlite://...)
    DATABASE_URL: str = Field(...)

    # JWT
    JWT_SECRET: str = Field(
        ...,
        description="Shared secret used to sign and verify admin tokens",
    )
    JWT_ALGORITHM: str = Field("HS256")
    JWT_EXPIRE_MINUTES: int = Field(
        120,
        description="Lifetime of tokens issued by create_access_token",
    )

    # Объектное хранилище (S3 или S3-совместимое)
    S3_ACCESS_KEY: Optional[str] = None
    S3_SECRET_KEY: Optional[str] = None
    S3_REGION: Optional[str] = None
    S3_BUCKET: Optional[str] = None
    S3_ENDPOINT_URL: Optional[str] = Field(
        None,
        description="Custom endpoint for S3-compatible storage",
    )
    S3_PUBLIC_BASE_URL: Optional[str] = Field(
        None,
        description="Public base URL for uploaded objects (CDN, custom domain)",
    )
    S3_MANIFEST_KEY: str = Field(
        "floors/manifest.json",
        description="Object key of the published floors manifest",
    )
    S3_CONDITIONAL_WRITES: bool = Field(
        True,
        description="Use If-Match / If-None-Match when rewriting the manifest",
    )
    S3_MANIFEST_WRITE_ATTEMPTS: int = Field(3, ge=1)
    S3_PUBLIC_READ_ACL: bool = Field(
        True,
        description="Upload floor images with the public-read ACL",
    )

    # Загрузка изображений
    MAX_UPLOAD_BYTES: int = Field(
        25 * 1024 * 1024,
        description="Upper limit for a single floor image upload",
    )

    # CORS
    FRONTEND_URL: Optional[str] = None
    CORS_ORIGINS: List[str] = Field(
        default_factory=lambda: ["http://localhost:3000", "http://localhost:5173"],
    )

    # Логи
    LOG_LEVEL: str = Field(
        "INFO",
        description="Logging level",
    )
    LOG_DIR: str = Field(
        "logs",
        description="Directory for log files",
    )
    LOG_FILENAME: str = Field(
        "floor_admin.log",
        description="Log file name",
    )

    model_config = {
        "env_file": ".env",
        "case_sensitive": True,
        "extra": "ignore",
    }

    @property
    def s3_configured(self) -> bool:
        """
        Полный набор учётных данных S3 является единственным переключателем
        между реляционным хранением этажей и манифестом в S3.
        """
        return all(
            (self.S3_ACCESS_KEY, self.S3_SECRET_KEY, self.S3_REGION, self.S3_BUCKET)
        )

    @property
    def cors_origins(self) -> List[str]:
        origins = list(self.CORS_ORIGINS)
        if self.FRONTEND_URL:
            origins.append(self.FRONTEND_URL)
        return origins


settings = Settings()
