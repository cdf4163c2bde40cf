"""
Recommendation history: background dispatch and the Postgres sink.
"""

from .dispatcher import HistoryDispatcher, build_records
from .repository import RecommendationHistoryRepository

__all__ = ["HistoryDispatcher", "RecommendationHistoryRepository", "build_records"]
