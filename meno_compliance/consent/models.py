"""
Consent data models for the compliance core
Fixed schema of named permission flags and the current consent record
"""

from datetime import datetime
from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class Permission(str, Enum):
    """Named consent flags a user grants or revokes"""
    DATA_PROCESSING = "dataProcessing"                  # Storing journal data at all
    SENTIMENT_ANALYSIS = "sentimentAnalysis"            # Sending text to the analysis service
    ANONYMIZED_LICENSING = "anonymizedLicensing"        # Licensing anonymized data
    RESEARCH_PARTICIPATION = "researchParticipation"    # Research studies

    @property
    def field_name(self) -> str:
        return PERMISSION_FIELDS[self]


PERMISSION_FIELDS: Dict[Permission, str] = {
    Permission.DATA_PROCESSING: "data_processing",
    Permission.SENTIMENT_ANALYSIS: "sentiment_analysis",
    Permission.ANONYMIZED_LICENSING: "anonymized_licensing",
    Permission.RESEARCH_PARTICIPATION: "research_participation",
}


class ConsentSubmission(BaseModel):
    """Permission flags submitted by the owning user; unknown keys are ignored"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    data_processing: Optional[bool] = None
    sentiment_analysis: Optional[bool] = None
    anonymized_licensing: Optional[bool] = None
    research_participation: Optional[bool] = None

    def flags(self) -> Dict[Permission, bool]:
        """Resolved flags; an omitted permission is not granted"""
        return {p: bool(getattr(self, p.field_name)) for p in Permission}

    @classmethod
    def cleared(cls) -> "ConsentSubmission":
        return cls(**{p.field_name: False for p in Permission})


class ConsentRecord(BaseModel):
    """Current consent record of a user"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    user_id: str
    data_processing: bool = False
    sentiment_analysis: bool = False
    anonymized_licensing: bool = False
    research_participation: bool = False

    granted_at: Optional[datetime] = None
    withdrawn_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def is_granted(self, permission: Permission) -> bool:
        return bool(getattr(self, permission.field_name))

    def is_withdrawn(self) -> bool:
        """A withdrawal at or after the latest grant voids every flag"""
        if self.withdrawn_at is None:
            return False
        if self.granted_at is None:
            return True
        return self.withdrawn_at >= self.granted_at

    def permissions(self) -> Dict[str, bool]:
        return {p.value: self.is_granted(p) for p in Permission}
