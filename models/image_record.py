"""SQLAlchemy model for the media gallery."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, String, Text

from core.database import Base


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ImageRecord(Base):
    """One uploaded image, as listed by the admin gallery."""

    __tablename__ = "images"

    id = Column(Integer, primary_key=True, autoincrement=True)
    url = Column(String(1024), nullable=False)
    title = Column(String(512), nullable=True)
    alt_tag = Column("alt-tag", String(512), nullable=True)
    folder = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    width = Column(Integer, nullable=True)
    height = Column(Integer, nullable=True)
    size = Column(Integer, nullable=True)
    format = Column(String(32), nullable=True)
    uploaded_at = Column(DateTime(timezone=True), default=_utc_now)
