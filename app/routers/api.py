"""
app/routers/api.py — Application form API
Endpoints: /api/applications, /api/roles, /api/log/{level}
Errors raised by services are mapped to responses in app/main.py.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse

from app.clients.discord_client import DiscordClient
from app.config import Settings
from app.core.dependencies import get_app_settings, get_application_limiter, get_discord
from app.core.rate_limiter import RATE_LIMITS, RateLimiter, client_ip, limiter
from app.models import ApplicationBody, LogBody, Role
from app.services import applications as applications_service
from app.services import feedback as feedback_service

router = APIRouter()


# ──────────────────────────────────────────────────────────────────────────────
# POST /api/applications — course application, one per IP per window
# ──────────────────────────────────────────────────────────────────────────────

@router.post("/applications", response_class=PlainTextResponse)
async def submit_application(
    request: Request,
    body: ApplicationBody,
    discord: DiscordClient = Depends(get_discord),
    application_limiter: RateLimiter = Depends(get_application_limiter),
    settings: Settings = Depends(get_app_settings),
) -> str:
    """
    Forward a course application to the moderators' channel with
    Accept / Reject buttons.
    404 if the applicant is not in the guild, 429 inside the rate-limit window.
    """
    await applications_service.submit_application(
        body=body,
        ip=client_ip(request, settings.trusted_proxy_ips),
        discord=discord,
        limiter=application_limiter,
        settings=settings,
    )
    return "Application Sent"


# ──────────────────────────────────────────────────────────────────────────────
# GET /api/roles — guild roles for the application form
# ──────────────────────────────────────────────────────────────────────────────

@router.get("/roles", response_model=list[Role])
@limiter.limit(RATE_LIMITS["roles"])
async def list_roles(
    request: Request,
    discord: DiscordClient = Depends(get_discord),
    settings: Settings = Depends(get_app_settings),
) -> list[Role]:
    return await discord.list_roles(settings.guild_id)


# ──────────────────────────────────────────────────────────────────────────────
# POST /api/log/{level} — client-side log relay
# ──────────────────────────────────────────────────────────────────────────────

@router.post("/log/{level}", response_class=PlainTextResponse)
async def relay_log(
    level: str,
    body: Optional[LogBody] = None,
    discord: DiscordClient = Depends(get_discord),
    settings: Settings = Depends(get_app_settings),
) -> str:
    """Levels log / warn / error are colored; any other level is relayed as-is."""
    body = body or LogBody()
    await feedback_service.relay_log(level, body.message, body.data, discord, settings)
    return "SUCCESS"
