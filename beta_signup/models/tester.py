"""Tester model for one person's signup record for one app"""

import hashlib
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import relationship

from beta_signup.db.database import Base


def normalize_email(email: str) -> str:
    return email.strip().lower()


def tester_key(app_id: str, email: str) -> str:
    """Deterministic primary key for the (app, email) pair.

    Two concurrent inserts for the same tester collide on this key instead of
    producing two records.
    """
    raw = f"{app_id}\x00{normalize_email(email)}".encode("utf-8")
    return hashlib.sha256(raw).hexdigest()


class Tester(Base):
    """Tracks group membership and the code handed to a tester."""

    __tablename__ = "testers"
    __table_args__ = (
        UniqueConstraint("app_id", "email", name="uq_testers_app_email"),
    )

    id = Column(String(64), primary_key=True)
    app_id = Column(String(255), ForeignKey("apps.id", ondelete="CASCADE"), nullable=False, index=True)
    email = Column(String(320), nullable=False)
    has_joined_group = Column(Boolean, default=False, nullable=False)
    # Set at most once, never cleared
    promotional_code = Column(String(255), nullable=True)
    joined_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    # Relationships
    app = relationship("App", back_populates="testers")

    @property
    def has_code(self) -> bool:
        return self.promotional_code is not None

    def __repr__(self):
        return f"<Tester(app_id='{self.app_id}', email='{self.email}', joined={self.has_joined_group})>"
