from sqlalchemy import Column, String, Text, Float, DateTime

from ..core.db import Base


class Bill(Base):
    __tablename__ = "bills"

    id = Column(String, primary_key=True)
    bill_number = Column(String, nullable=True)
    title = Column(Text, nullable=False)
    summary = Column(Text, nullable=True)
    plain_english_summary = Column(Text, nullable=True)
    # Free-text category tags, matched with LIKE against user interests
    issue_categories = Column(Text, nullable=True)
    impact_score = Column(Float, nullable=True, index=True)
    latest_action_date = Column(DateTime, nullable=True, index=True)
