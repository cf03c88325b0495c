from sqlalchemy import Column, String, Text, DateTime
from datetime import datetime

from ..core.db import Base


class User(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True)
    email = Column(String, nullable=True, index=True)
    name = Column(String, nullable=True)
    state = Column(String(2), nullable=True)
    district = Column(String, nullable=True)
    # JSON-encoded list of policy interests, e.g. '["healthcare", "education"]'
    interests = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
