"""
Identity provider boundary for the compliance core
Verification of provider-issued tokens into a trusted caller context
"""

from datetime import datetime, timedelta, UTC
from typing import Any, Dict, Optional

import jwt
import structlog
from pydantic import BaseModel

from .audit.models import RequestMetadata
from .config import ComplianceConfig, get_config
from .constants import DEFAULT_IP_ADDRESS, DEFAULT_USER_AGENT
from .exceptions import UnauthenticatedError

logger = structlog.get_logger(__name__)


class CallerContext(BaseModel):
    """Verified caller identity plus client metadata of the current request"""
    uid: str
    ip_address: str = DEFAULT_IP_ADDRESS
    user_agent: str = DEFAULT_USER_AGENT

    @property
    def metadata(self) -> RequestMetadata:
        return RequestMetadata(ip_address=self.ip_address, user_agent=self.user_agent)


def create_identity_token(uid: str, config: Optional[ComplianceConfig] = None,
                          expires_in_minutes: int = 60,
                          extra_claims: Optional[Dict[str, Any]] = None) -> str:
    """Issue a token the way the identity provider does (development and tests)"""
    config = config or get_config()
    now = datetime.now(UTC)
    payload: Dict[str, Any] = {
        **(extra_claims or {}),
        "sub": uid,
        "iat": now,
        "exp": now + timedelta(minutes=expires_in_minutes),
    }
    if config.identity_issuer:
        payload["iss"] = config.identity_issuer
    return jwt.encode(payload, config.identity_secret, algorithm=config.identity_algorithm)


def verify_identity_token(token: str, config: Optional[ComplianceConfig] = None) -> Dict[str, Any]:
    """
    Verify and decode an identity token.

    Raises:
        UnauthenticatedError: If the token is expired, malformed or unsigned
    """
    config = config or get_config()
    options = {
        "verify_signature": True,
        "verify_exp": True,
        "verify_iat": True,
        "require": ["exp", "iat", "sub"],
    }
    try:
        payload = jwt.decode(
            token,
            config.identity_secret,
            algorithms=[config.identity_algorithm],
            issuer=config.identity_issuer,
            options=options,
        )
    except jwt.ExpiredSignatureError:
        logger.warning("Identity token expired")
        raise UnauthenticatedError("Token has expired.")
    except jwt.InvalidTokenError as e:
        logger.warning("Identity token invalid", error=str(e))
        raise UnauthenticatedError("Invalid token.")

    logger.debug("Identity token verified", subject=payload.get("sub"))
    return payload


def extract_bearer_token(authorization_header: Optional[str]) -> str:
    """Extract the token from an Authorization header"""
    if not authorization_header:
        raise UnauthenticatedError()

    if not authorization_header.startswith("Bearer "):
        raise UnauthenticatedError("Invalid authorization header format.")

    return authorization_header[7:]


def caller_from_headers(authorization_header: Optional[str],
                        ip_address: Optional[str] = None,
                        user_agent: Optional[str] = None,
                        config: Optional[ComplianceConfig] = None) -> CallerContext:
    """Build a verified caller context from request headers"""
    payload = verify_identity_token(extract_bearer_token(authorization_header), config)
    return CallerContext(
        uid=str(payload["sub"]),
        ip_address=ip_address or DEFAULT_IP_ADDRESS,
        user_agent=user_agent or DEFAULT_USER_AGENT,
    )
