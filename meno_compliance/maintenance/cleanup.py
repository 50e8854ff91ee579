"""
Data retention cleanup trigger
Authenticated, idempotent entry point for the scheduled retention sweep
"""

import hmac
from typing import Any, Dict, Optional

import structlog

from ..config import ComplianceConfig, get_config
from ..exceptions import CleanupAuthError

logger = structlog.get_logger(__name__)

CLEANUP_TOKEN_HEADER = "X-Cleanup-Token"


class RetentionCleanupTrigger:
    """
    Invoked on a timer. Safe to call any number of times and needs no body.

    The sweep itself is not implemented yet; only the trigger contract is.
    """

    def __init__(self, config: Optional[ComplianceConfig] = None):
        self.config = config or get_config()

    def authenticate(self, token: Optional[str]) -> None:
        """Reject the trigger unless it presents the shared secret"""
        secret = self.config.cleanup_trigger_secret
        if not secret or not token:
            logger.warning("Cleanup trigger rejected", reason="missing_secret_or_token")
            raise CleanupAuthError()
        if not hmac.compare_digest(secret.encode("utf-8"), token.encode("utf-8")):
            logger.warning("Cleanup trigger rejected", reason="token_mismatch")
            raise CleanupAuthError()

    def run(self, token: Optional[str]) -> Dict[str, Any]:
        self.authenticate(token)
        logger.info("Data cleanup function triggered",
                    retention_period_days=self.config.retention_period_days)
        return {"success": True, "message": "Cleanup not yet implemented."}
