"""
Gated action catalogue for the compliance core
Required permissions and minimal field sets per client action
"""

from dataclasses import dataclass
from typing import Dict, FrozenSet, Optional

from ..consent.models import Permission
from ..exceptions import InvalidArgumentError


@dataclass(frozen=True)
class ActionPolicy:
    """Consent and data-minimization policy of one client action"""
    name: str
    required_permissions: FrozenSet[Permission]
    fields: FrozenSet[str]
    sensitive_field: Optional[str] = None


class GatedActions:
    SAVE_JOURNAL_ENTRY = ActionPolicy(
        name="save_journal_entry",
        required_permissions=frozenset({Permission.DATA_PROCESSING}),
        fields=frozenset({"text", "isShared"}),
        sensitive_field="text",
    )
    REQUEST_ANALYSIS = ActionPolicy(
        name="request_analysis",
        required_permissions=frozenset({Permission.SENTIMENT_ANALYSIS}),
        fields=frozenset({"text"}),
        sensitive_field="text",
    )
    ANONYMIZE_USER_DATA = ActionPolicy(
        name="anonymize_user_data",
        required_permissions=frozenset({Permission.ANONYMIZED_LICENSING}),
        fields=frozenset(),
    )


ACTION_POLICIES: Dict[str, ActionPolicy] = {
    policy.name: policy for policy in (
        GatedActions.SAVE_JOURNAL_ENTRY,
        GatedActions.REQUEST_ANALYSIS,
        GatedActions.ANONYMIZE_USER_DATA,
    )
}

# Actions a client may submit through the generic gated-write path
WRITABLE_ACTIONS: FrozenSet[str] = frozenset({GatedActions.SAVE_JOURNAL_ENTRY.name})


def get_action_policy(action: str) -> ActionPolicy:
    """Look up an action policy; unknown actions are invalid input"""
    policy = ACTION_POLICIES.get(action)
    if policy is None:
        raise InvalidArgumentError(f"Unknown action: {action}", field="action")
    return policy
