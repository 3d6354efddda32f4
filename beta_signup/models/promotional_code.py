"""PromotionalCode model for the per-app pool of Play Store codes"""

import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Index, String
from sqlalchemy.orm import relationship

from beta_signup.db.database import Base


class PromotionalCode(Base):
    """One single-use code. Available while ``redeemed_at`` is NULL."""

    __tablename__ = "promotional_codes"
    __table_args__ = (
        Index("ix_promotional_codes_app_id_redeemed_at", "app_id", "redeemed_at"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    app_id = Column(String(255), ForeignKey("apps.id", ondelete="CASCADE"), nullable=False, index=True)
    code = Column(String(255), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    redeemed_at = Column(DateTime, nullable=True)
    redeemed_by = Column(String(320), nullable=True)

    # Relationships
    app = relationship("App", back_populates="promotional_codes")

    @property
    def is_available(self) -> bool:
        return self.redeemed_at is None

    def __repr__(self):
        state = "available" if self.is_available else f"redeemed by {self.redeemed_by}"
        return f"<PromotionalCode(id={self.id}, app_id='{self.app_id}', {state})>"
