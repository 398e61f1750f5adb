"""UserServiceSelection model for the streaming services a viewer has picked."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid

from database import Base


class UserServiceSelection(Base):
    """Per-user connected flag for a streaming service, independent of any OAuth token."""

    __tablename__ = "user_services"
    __table_args__ = (
        UniqueConstraint("user_id", "service_name", name="uq_user_services_user_service"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    service_name = Column(String, nullable=False)
    connected = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    user = relationship("User", back_populates="services")
