"""
Privacy-preserving utilities for the compliance core
Action policies and data minimization
"""

from .actions import ActionPolicy, GatedActions, ACTION_POLICIES, WRITABLE_ACTIONS, get_action_policy
from .minimizer import DataMinimizer

__all__ = [
    "ActionPolicy",
    "GatedActions",
    "ACTION_POLICIES",
    "WRITABLE_ACTIONS",
    "get_action_policy",
    "DataMinimizer",
]
