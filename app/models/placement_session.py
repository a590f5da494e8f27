"""
PlacementSession model - correlates a student's attempt before submission
"""
from sqlalchemy import Column, Integer, String, TIMESTAMP, func
from app.database import Base
from app.models.placement_test import JSONType


class PlacementSession(Base):
    """
    Placement sessions table - one row per attempt token
    """
    __tablename__ = "placement_sessions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    student_id = Column(Integer, nullable=True, index=True)
    session_token = Column(String(128), unique=True, nullable=False)
    session_type = Column(String(50), default="test_attempt")
    session_data = Column(JSONType)  # {"test_id": ..., "started_at": ...}
    status = Column(String(20), default="active")  # active, completed
    ip_address = Column(String(45))
    user_agent = Column(String(255))
    created_at = Column(TIMESTAMP, server_default=func.now())
    expires_at = Column(TIMESTAMP)

    def __repr__(self):
        return f"<PlacementSession(token={self.session_token}, status={self.status})>"
