"""
Database models package
"""
from app.models.placement_test import PlacementTest
from app.models.placement_session import PlacementSession
from app.models.placement_result import PlacementResult

__all__ = ["PlacementTest", "PlacementSession", "PlacementResult"]
