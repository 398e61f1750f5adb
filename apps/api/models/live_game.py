"""LiveGame model: the read cache of aggregated sporting events."""

from sqlalchemy import Boolean, Column, DateTime, String
from sqlalchemy.sql import func
import uuid

from database import Base


class LiveGame(Base):
    """Denormalized event row, replaced wholesale on every aggregation sync."""

    __tablename__ = "live_games"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    event_id = Column(String, nullable=True)
    league = Column(String, nullable=False)
    match = Column(String, nullable=False)
    network = Column(String, nullable=False)
    app = Column(String, nullable=False, index=True)  # source provider id
    link = Column(String, nullable=False)
    start_time = Column(DateTime(timezone=True), nullable=False, index=True)
    is_live = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
