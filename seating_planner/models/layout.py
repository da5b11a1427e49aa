"""
Layout model: one stored snapshot per event layout
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, JSON

from seating_planner.core.db import Base

class Layout(Base):
    __tablename__ = "layouts"

    id = Column(Integer, primary_key=True, index=True)
    scope_key = Column(String(255), unique=True, nullable=False, index=True)
    room = Column(JSON, nullable=False, default=dict)
    tables = Column(JSON, nullable=False, default=list)
    fixtures = Column(JSON, nullable=False, default=list)
    guests = Column(JSON, nullable=False, default=list)
    groups = Column(JSON, nullable=False, default=list)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_snapshot_dict(self) -> dict:
        return {
            "room": self.room or {},
            "tables": self.tables or [],
            "fixtures": self.fixtures or [],
            "guests": self.guests or [],
            "groups": self.groups or [],
        }
