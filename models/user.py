"""Admin accounts for the session-login path of the admin endpoints."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String
from werkzeug.security import check_password_hash, generate_password_hash

from core.database import Base

ADMIN_ID = "admin"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True)
    username = Column(String(50), unique=True, nullable=False)
    password_hash = Column(String(256), nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    def set_password(self, password: str) -> None:
        self.password_hash = generate_password_hash(password, method="pbkdf2:sha256")

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)

    @classmethod
    def upsert_admin(cls, session, username: str, password: str) -> "User":
        """Seed the single admin row, renaming it and resetting its password if it exists."""
        user = session.get(cls, ADMIN_ID) or cls(id=ADMIN_ID)
        user.username = username
        user.set_password(password)
        session.add(user)
        return user
