"""
Account management for the compliance core
"""

from .onboarding import AccountService

__all__ = ["AccountService"]
