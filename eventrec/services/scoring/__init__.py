"""
Event scoring package.

Provides the multi-factor scorer (standard and cold-start paths) and the
geo helpers it builds on.
"""

from .geo import MAX_DISTANCE_KM, distance_km, geo_score
from .service import ScoringService

__all__ = ["MAX_DISTANCE_KM", "ScoringService", "distance_km", "geo_score"]
