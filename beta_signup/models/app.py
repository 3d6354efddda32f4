"""App model for a registered Android application"""

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, String, Text
from sqlalchemy.orm import relationship

from beta_signup.db.database import Base


class App(Base):
    """Root record for one Android app running a beta program.

    The primary key is the Play Store package id (``com.example.app``) so
    registering the same listing twice resolves to the same row.
    """

    __tablename__ = "apps"

    id = Column(String(255), primary_key=True)
    app_name = Column(String(255), nullable=False)
    google_group_email = Column(String(320), nullable=False)
    play_store_url = Column(String(500), nullable=False)
    icon_url = Column(String(500), nullable=True)
    owner_email = Column(String(320), nullable=False, index=True)

    # Authorizes the "complete" link in the Google Group welcome message
    app_id_secret = Column(String(64), nullable=False)

    # Delegated Google credential (Fernet-encrypted), only kept when the
    # owner asked for automatic group management
    manage_group_automatically = Column(Boolean, default=False, nullable=False)
    owner_access_token_encrypted = Column(Text, nullable=True)
    owner_refresh_token_encrypted = Column(Text, nullable=True)

    # False means registration crashed midway; such rows are replaced on re-registration
    is_setup_complete = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    # Relationships
    promotional_codes = relationship(
        "PromotionalCode", back_populates="app", cascade="all, delete-orphan", passive_deletes=True
    )
    testers = relationship(
        "Tester", back_populates="app", cascade="all, delete-orphan", passive_deletes=True
    )

    @property
    def has_owner_credential(self) -> bool:
        return bool(self.manage_group_automatically and self.owner_access_token_encrypted)

    def __repr__(self):
        return f"<App(id='{self.id}', group='{self.google_group_email}')>"
