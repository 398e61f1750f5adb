"""ProviderToken model for per-provider OAuth credentials."""

from sqlalchemy import Column, DateTime, ForeignKey, JSON, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid

from database import Base


class ProviderToken(Base):
    """OAuth credential held for one (user, streaming provider) pair."""

    __tablename__ = "provider_tokens"
    __table_args__ = (
        UniqueConstraint("user_id", "provider_name", name="uq_provider_tokens_user_provider"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    provider_name = Column(String, nullable=False)  # prime-video, espn-plus, ...
    access_token_encrypted = Column(Text, nullable=False)
    refresh_token_encrypted = Column(Text, nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    provider_user_id = Column(String, nullable=True)
    provider_email = Column(String, nullable=True)
    provider_metadata = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    user = relationship("User", back_populates="provider_tokens")
