"""OAuthPendingState model binding an authorization attempt to its callback."""

from sqlalchemy import Column, DateTime, String, UniqueConstraint
from sqlalchemy.sql import func
import uuid

from database import Base


class OAuthPendingState(Base):
    """Single-use anti-CSRF nonce issued when a viewer starts connecting a provider."""

    __tablename__ = "oauth_pending_states"
    __table_args__ = (
        UniqueConstraint("user_id", "provider_name", name="uq_oauth_pending_states_user_provider"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, nullable=False, index=True)
    provider_name = Column(String, nullable=False)
    state = Column(String, nullable=False, unique=True, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
