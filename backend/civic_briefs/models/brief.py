from sqlalchemy import Column, String, Text, Integer, JSON, DateTime
from datetime import datetime

from ..core.db import Base


class Brief(Base):
    __tablename__ = "briefs"

    # Same value as the pipeline job id, so finalizing a redelivered job overwrites
    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    type = Column(String, nullable=False, default="daily")  # "daily" | "weekly"
    audio_url = Column(String, nullable=False)
    duration = Column(Integer, nullable=False)
    transcript = Column(Text, nullable=True)
    written_digest = Column(Text, nullable=True)
    bills_covered = Column(JSON, nullable=True)
    policy_areas = Column(JSON, nullable=True)
    generated_at = Column(DateTime, default=datetime.utcnow)
    created_at = Column(DateTime, default=datetime.utcnow)
