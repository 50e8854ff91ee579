"""
External analysis service integration
"""

from .client import AnalysisClient, AnalysisResult

__all__ = ["AnalysisClient", "AnalysisResult"]
