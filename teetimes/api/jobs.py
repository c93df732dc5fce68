"""
Scheduled job endpoints for Cloud Scheduler integration.

The in-process scheduler warms the cache on its own interval; this endpoint
lets an external scheduler trigger the same run, for deployments that scale
to zero between requests. It is secured with OIDC token authentication
(preferred) or an API key, and shares the in-process overlap guard, so a
trigger that arrives during a run is skipped.
"""

import logging
from datetime import datetime
from enum import Enum

from fastapi import APIRouter, Depends, Header, HTTPException
from google.auth import exceptions as google_auth_exceptions
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token

from teetimes.models.schemas import CamelModel
from teetimes.services.context import ServiceContext, get_context

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/jobs", tags=["jobs"])


class WarmCacheStatus(str, Enum):
    COMPLETED = "completed"
    SKIPPED = "skipped"


class WarmCacheResponse(CamelModel):
    status: WarmCacheStatus
    executed_at: datetime
    total: int = 0
    succeeded: int = 0
    failed: int = 0


def verify_oidc_token(authorization: str, expected_email: str, audience: str) -> bool:
    """
    Verify an OIDC token from Cloud Scheduler.

    Returns True only if the token is valid for the configured audience and
    was issued to the configured service account. Without both settings
    OIDC is refused.
    """
    if not authorization.startswith("Bearer "):
        return False

    if not expected_email or not audience:
        logger.warning(
            "OIDC token rejected: SCHEDULER_SERVICE_ACCOUNT and OIDC_AUDIENCE must both be set"
        )
        return False

    token = authorization[7:]

    try:
        claims = id_token.verify_oauth2_token(  # type: ignore[no-untyped-call]
            token, google_requests.Request(), audience=audience
        )

        email = claims.get("email", "")
        if email != expected_email:
            logger.warning(f"OIDC token email mismatch: expected {expected_email}, got {email}")
            return False

        logger.info(f"OIDC token verified for service account: {email}")
        return True
    except google_auth_exceptions.GoogleAuthError as e:
        logger.warning(f"OIDC token verification failed: {e}")
        return False
    except ValueError as e:
        logger.warning(f"OIDC token validation error: {e}")
        return False


def verify_scheduler_auth(
    authorization: str | None = Header(None, description="Bearer token for OIDC authentication"),
    x_scheduler_api_key: str | None = Header(
        None, description="API key for scheduler authentication"
    ),
    ctx: ServiceContext = Depends(get_context),
) -> None:
    """Accept a valid OIDC bearer token or the configured X-Scheduler-API-Key."""
    settings = ctx.settings
    if authorization and verify_oidc_token(
        authorization, settings.scheduler_service_account, settings.oidc_audience
    ):
        return

    if x_scheduler_api_key:
        if not settings.scheduler_api_key:
            raise HTTPException(status_code=500, detail="Scheduler API key not configured")
        if x_scheduler_api_key == settings.scheduler_api_key:
            return
        raise HTTPException(status_code=401, detail="Invalid scheduler API key")

    raise HTTPException(
        status_code=401,
        detail="Authentication required. Provide OIDC token or X-Scheduler-API-Key header.",
    )


@router.post("/warm-cache", response_model=WarmCacheResponse)
async def warm_cache(
    _: None = Depends(verify_scheduler_auth),
    ctx: ServiceContext = Depends(get_context),
) -> WarmCacheResponse:
    """Warm today's and tomorrow's tee sheets for every course."""
    result = await ctx.scheduler.run_once()
    if result is None:
        return WarmCacheResponse(status=WarmCacheStatus.SKIPPED, executed_at=ctx.scheduler.now())

    return WarmCacheResponse(
        status=WarmCacheStatus.COMPLETED,
        executed_at=result.started_at,
        total=result.total,
        succeeded=result.succeeded,
        failed=result.failed,
    )
