from datetime import datetime
from typing import Optional
from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column
from app.db import Base, utcnow

class User(Base):
    __tablename__ = "users"

    id:            Mapped[str]           = mapped_column(String(64), primary_key=True)
    username:      Mapped[str]           = mapped_column(String(50), unique=True, nullable=False)
    profile_image: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    intro:         Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at:    Mapped[datetime]      = mapped_column(default=utcnow, nullable=False)
