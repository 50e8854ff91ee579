"""
Scheduled maintenance hooks
"""

from .cleanup import RetentionCleanupTrigger, CLEANUP_TOKEN_HEADER

__all__ = ["RetentionCleanupTrigger", "CLEANUP_TOKEN_HEADER"]
