"""
MenoWellness Compliance Core - FastAPI Application
Provides onboarding, consent management, gated writes, analysis requests
and partner invite redemption
"""

from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

import structlog
from fastapi import Body, Depends, FastAPI, Header, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from .config import ComplianceConfig
from .consent import ConsentSubmission
from .constants import SERVICE_NAME, SERVICE_VERSION
from .exceptions import ComplianceError
from .identity import CallerContext, caller_from_headers
from .maintenance import CLEANUP_TOKEN_HEADER
from .service import CompliancePlatform
from .store import init_database

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger()

# Global settings
settings = ComplianceConfig()

# Initialized in lifespan unless injected beforehand (tests)
platform: Optional[CompliancePlatform] = None


class OnboardRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    uid: str
    email: Optional[str] = None
    display_name: Optional[str] = Field(default=None, alias="displayName")


class RedeemInviteRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    invite_code: Optional[str] = Field(default=None, alias="inviteCode")


class AnalysisRequest(BaseModel):
    text: Optional[str] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    global platform

    logger.info("Starting MenoWellness Compliance Core", version=SERVICE_VERSION)

    if platform is None:
        database = init_database(settings.database_url)
        platform = CompliancePlatform(database, config=settings)
        logger.info("Compliance services initialized")

    yield

    logger.info("Shutting down MenoWellness Compliance Core")


# Create FastAPI app
app = FastAPI(
    title="MenoWellness Compliance Core",
    description="Consent gate, audit trail and partner invite redemption for MenoWellness",
    version=SERVICE_VERSION,
    lifespan=lifespan
)


@app.exception_handler(ComplianceError)
async def compliance_error_handler(request: Request, exc: ComplianceError) -> JSONResponse:
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())


def get_platform() -> CompliancePlatform:
    if platform is None:
        raise HTTPException(status_code=503, detail="Compliance platform not available")
    return platform


def get_caller(
    request: Request,
    authorization: Optional[str] = Header(default=None),
    user_agent: Optional[str] = Header(default=None),
) -> Optional[CallerContext]:
    """Verified caller, or None when the request carries no credentials"""
    if authorization is None:
        return None
    ip_address = request.client.host if request.client else None
    return caller_from_headers(authorization, ip_address, user_agent, settings)


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "components": {
            "compliance_platform": platform is not None,
            "analysis_service_configured": bool(platform and platform.analysis_client.configured),
        },
    }


@app.post("/users/onboard")
async def onboard_user(
    body: OnboardRequest,
    caller: Optional[CallerContext] = Depends(get_caller),
    service: CompliancePlatform = Depends(get_platform),
):
    """Create or update the caller's account"""
    return await service.onboard_user(caller, body.uid, body.email, body.display_name)


@app.post("/invites/redeem")
async def redeem_invite(
    body: RedeemInviteRequest,
    caller: Optional[CallerContext] = Depends(get_caller),
    service: CompliancePlatform = Depends(get_platform),
):
    """Accept a partner invite and link both accounts"""
    return await service.redeem_invite(caller, body.invite_code)


@app.get("/consent")
async def get_consent(
    caller: Optional[CallerContext] = Depends(get_caller),
    service: CompliancePlatform = Depends(get_platform),
):
    """Get the caller's current consent record"""
    record = await service.get_consent(caller)
    return {
        "user_id": caller.uid,
        "consent": record.model_dump(by_alias=True, mode="json") if record else None,
    }


@app.post("/consent")
async def submit_consent(
    body: ConsentSubmission,
    caller: Optional[CallerContext] = Depends(get_caller),
    service: CompliancePlatform = Depends(get_platform),
):
    """Submit consent preferences"""
    record = await service.submit_consent(caller, body)
    return {"success": True, "consent": record.model_dump(by_alias=True, mode="json")}


@app.post("/consent/withdraw")
async def withdraw_consent(
    caller: Optional[CallerContext] = Depends(get_caller),
    service: CompliancePlatform = Depends(get_platform),
):
    """Withdraw every consent flag"""
    record = await service.withdraw_consent(caller)
    return {"success": True, "consent": record.model_dump(by_alias=True, mode="json")}


@app.post("/actions/{action}")
async def gated_write(
    action: str,
    payload: Dict[str, Any] = Body(...),
    caller: Optional[CallerContext] = Depends(get_caller),
    service: CompliancePlatform = Depends(get_platform),
):
    """Run a consent-gated write"""
    return await service.gated_write(caller, action, payload)


@app.post("/analysis")
async def request_analysis(
    body: AnalysisRequest,
    caller: Optional[CallerContext] = Depends(get_caller),
    service: CompliancePlatform = Depends(get_platform),
):
    """Request sentiment analysis of journal text"""
    result = await service.request_analysis(caller, body.text)
    return result.model_dump(by_alias=True)


@app.post("/users/anonymize")
async def anonymize_user_data(
    caller: Optional[CallerContext] = Depends(get_caller),
    service: CompliancePlatform = Depends(get_platform),
):
    """Anonymize the caller's data for research"""
    return await service.anonymize_user_data(caller)


@app.api_route("/maintenance/cleanup", methods=["GET", "POST"])
async def cleanup_expired_data(
    cleanup_token: Optional[str] = Header(default=None, alias=CLEANUP_TOKEN_HEADER),
    service: CompliancePlatform = Depends(get_platform),
):
    """Scheduled data retention cleanup trigger"""
    return service.cleanup_expired_data(cleanup_token)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
