"""
Data minimization for the compliance core
Strip undeclared fields and withhold sensitive content when consent is denied
"""

from typing import Any, Dict, Mapping

from ..consent.gate import GateDecision
from ..constants import CONSENT_REQUIRED_SENTINEL
from .actions import ActionPolicy


class DataMinimizer:
    """
    Pure payload transformer.

    Only fields declared by the action policy survive. When the gate
    denied the action the sensitive field is replaced by a sentinel
    marker, which must never be treated as analyzable content.
    """

    def __init__(self, sentinel: str = CONSENT_REQUIRED_SENTINEL):
        self.sentinel = sentinel

    def sanitize(self, policy: ActionPolicy, payload: Mapping[str, Any],
                 decision: GateDecision) -> Dict[str, Any]:
        sanitized = {key: value for key, value in payload.items() if key in policy.fields}

        if not decision.allowed and policy.sensitive_field in sanitized:
            sanitized[policy.sensitive_field] = self.sentinel

        return sanitized

    def is_sentinel(self, value: Any) -> bool:
        return value == self.sentinel
