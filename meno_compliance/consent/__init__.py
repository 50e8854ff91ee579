"""
Consent management module for the compliance core
Durable consent records and the consent gate
"""

from .models import Permission, ConsentSubmission, ConsentRecord
from .store import ConsentStore
from .gate import ConsentGate, GateDecision, decide

__all__ = [
    "Permission",
    "ConsentSubmission",
    "ConsentRecord",
    "ConsentStore",
    "ConsentGate",
    "GateDecision",
    "decide",
]
