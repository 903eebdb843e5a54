from sqlalchemy import Column, Integer, String, DateTime, func
from app.db.base import Base


class Admin(Base):
    __tablename__ = "admin"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password = Column(String(255), nullable=False, comment="bcrypt-хэш, наружу не отдаётся")
    tags = Column(String(255), nullable=False, default="RDP", server_default="RDP")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
