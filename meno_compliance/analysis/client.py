"""
External sentiment-analysis service client
JSON-over-HTTP calls with failures classified into distinct kinds
"""

from typing import Any, Dict, Optional

import httpx
import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..config import ComplianceConfig, get_config
from ..constants import AnalysisFailureKinds
from ..exceptions import AnalysisServiceError

logger = structlog.get_logger(__name__)


class AnalysisResult(BaseModel):
    """Sentiment / crisis-assessment result; extra keys from the service are kept"""
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    crisis_assessment: Optional[Dict[str, Any]] = Field(default=None, alias="crisisAssessment")

    @property
    def risk_level(self) -> Optional[str]:
        if not self.crisis_assessment:
            return None
        level = self.crisis_assessment.get("risk_level")
        return str(level) if level is not None else None


class AnalysisClient:
    """Client for the external analysis service"""

    def __init__(
        self,
        base_url: Optional[str] = None,
        focus: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        config: Optional[ComplianceConfig] = None,
    ):
        config = config or get_config()
        self.base_url = base_url if base_url is not None else config.analysis_api_url
        self.focus = focus or config.analysis_focus
        self.timeout_seconds = timeout_seconds or config.analysis_timeout_seconds
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.base_url)

    async def analyze(self, text: str) -> AnalysisResult:
        """
        Send text for analysis.

        Raises:
            AnalysisServiceError: kind tells configuration, network, timeout,
                non-2xx and malformed-response failures apart
        """
        if not self.configured:
            raise AnalysisServiceError(
                AnalysisFailureKinds.NOT_CONFIGURED,
                "The analysis service is not configured correctly.",
            )

        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds,
                                         transport=self._transport) as client:
                response = await client.post(self.base_url, json={"text": text, "focus": self.focus})
        except httpx.TimeoutException as exc:
            logger.warning("Analysis service timed out", error=str(exc))
            raise AnalysisServiceError(AnalysisFailureKinds.TIMEOUT,
                                       "The analysis service timed out.") from exc
        except httpx.RequestError as exc:
            logger.warning("Analysis service unreachable", error=str(exc))
            raise AnalysisServiceError(AnalysisFailureKinds.UNAVAILABLE,
                                       "The analysis service is unavailable.") from exc

        if not response.is_success:
            message = "API call failed"
            try:
                body = response.json()
                if isinstance(body, dict) and body.get("error"):
                    message = str(body["error"])
            except ValueError:
                pass
            logger.warning("Analysis service returned an error",
                           status_code=response.status_code, message=message)
            raise AnalysisServiceError(AnalysisFailureKinds.HTTP_ERROR, message,
                                       status_code=response.status_code)

        try:
            return AnalysisResult.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            logger.warning("Analysis service returned an invalid body", error=str(exc))
            raise AnalysisServiceError(AnalysisFailureKinds.INVALID_RESPONSE,
                                       "The analysis service returned an invalid response.") from exc
