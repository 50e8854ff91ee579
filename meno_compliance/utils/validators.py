"""
Input validators for the compliance core

Validation of caller-supplied identifiers and invite codes before they
reach the store.
"""

import re
from typing import Any, Optional

from ..exceptions import InvalidArgumentError

# =============================================================================
# REGEX PATTERNS
# =============================================================================

USER_ID_PATTERN = re.compile(r"^[a-zA-Z0-9_-]{1,128}$")
INVITE_CODE_PATTERN = re.compile(r"^[A-Za-z0-9_-]{4,64}$")

# =============================================================================
# VALIDATION FUNCTIONS
# =============================================================================

def validate_user_id(
    user_id: Any,
    field_name: str = "uid",
    required: bool = True
) -> Optional[str]:
    """
    Validate user ID format.

    Args:
        user_id: User ID to validate
        field_name: Field name for error messages
        required: Whether the field is required

    Returns:
        Validated user ID string or None

    Raises:
        InvalidArgumentError: If validation fails
    """
    if user_id is None or (isinstance(user_id, str) and not user_id.strip()):
        if required:
            raise InvalidArgumentError(f"{field_name} is required", field=field_name)
        return None

    if not isinstance(user_id, str):
        raise InvalidArgumentError(f"{field_name} must be a string", field=field_name)

    user_id = user_id.strip()

    if not USER_ID_PATTERN.match(user_id):
        raise InvalidArgumentError(
            f"{field_name} contains invalid characters",
            field=field_name
        )

    return user_id


def validate_invite_code(code: Any, field_name: str = "inviteCode") -> str:
    """
    Validate an invite code.

    Raises:
        InvalidArgumentError: If the code is missing or malformed
    """
    if code is None or (isinstance(code, str) and not code.strip()):
        raise InvalidArgumentError("Invite code is required.", field=field_name)

    if not isinstance(code, str):
        raise InvalidArgumentError(f"{field_name} must be a string", field=field_name)

    code = code.strip()

    if not INVITE_CODE_PATTERN.match(code):
        raise InvalidArgumentError(f"{field_name} is malformed", field=field_name)

    return code
