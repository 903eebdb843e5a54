from pydantic import BaseModel, Field


class AdminProfileOut(BaseModel):
    email: str = Field(..., examples=["admin@example.com"])
    tags: str = Field(..., examples=["RDP"])
