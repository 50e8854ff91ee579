"""
Compliance configuration management for MenoWellness
Store, identity, analysis service and retention settings
"""

from typing import Optional
from pydantic_settings import BaseSettings
from pydantic import Field

from .constants import RetentionDefaults


class ComplianceConfig(BaseSettings):
    """Compliance core configuration settings"""

    # Durable store settings
    database_url: str = Field(default="sqlite:///meno_compliance.db")
    store_max_retries: int = Field(default=3, description="Retries for transient store errors")
    invite_lock_enabled: bool = Field(
        default=True,
        description="Serialize redemptions per invite code inside this process"
    )

    # Identity provider settings
    identity_secret: str = Field(default="change-me", description="Token verification key")
    identity_algorithm: str = Field(default="HS256")
    identity_issuer: Optional[str] = Field(default=None)

    # External analysis service settings
    analysis_api_url: Optional[str] = Field(default=None)
    analysis_focus: str = Field(default="Menopause Analysis")
    analysis_timeout_seconds: float = Field(default=30.0)

    # Retention settings
    cleanup_trigger_secret: Optional[str] = Field(default=None)
    retention_period_days: int = Field(default=RetentionDefaults.PERIOD_DAYS)  # 7 years
    retention_jurisdiction: str = Field(default=RetentionDefaults.JURISDICTION)

    # Environment-specific overrides
    debug_mode: bool = Field(default=False)
    log_level: str = Field(default="INFO")

    model_config = {"env_prefix": "MENO_", "case_sensitive": False}


# Global configuration instance
compliance_config = ComplianceConfig()


def get_config() -> ComplianceConfig:
    """Get the global configuration instance"""
    return compliance_config


def update_config(**kwargs) -> ComplianceConfig:
    """Update configuration with new values"""
    global compliance_config
    for key, value in kwargs.items():
        if hasattr(compliance_config, key):
            setattr(compliance_config, key, value)
    return compliance_config
