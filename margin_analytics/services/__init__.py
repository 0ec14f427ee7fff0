"""Service modules"""
from .analytics import AnalyticsService, BorrowerDetail

__all__ = ["AnalyticsService", "BorrowerDetail"]
