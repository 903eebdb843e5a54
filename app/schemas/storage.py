from pydantic import BaseModel, Field


class UploadOut(BaseModel):
    key: str = Field(..., description="Ключ объекта в бакете")
    url: str = Field(..., description="Публичный URL изображения")
