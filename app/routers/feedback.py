"""
app/routers/feedback.py — Site feedback endpoints
Endpoints: /feedback/bug, /feedback/suggestion
An unknown user id answers 200 "ERROR: USER NOT FOUND"; the site's feedback
widget reads the body, not the status.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from app.clients.discord_client import DiscordClient
from app.config import Settings
from app.core.dependencies import get_app_settings, get_discord
from app.core.errors import UserNotFoundError
from app.models import BugReportBody, SuggestionBody
from app.services import feedback as feedback_service

router = APIRouter()


@router.post("/bug", response_class=PlainTextResponse)
async def report_bug(
    body: BugReportBody,
    discord: DiscordClient = Depends(get_discord),
    settings: Settings = Depends(get_app_settings),
) -> str:
    try:
        await feedback_service.report_bug(body, discord, settings)
    except UserNotFoundError as exc:
        return exc.message
    return "SUCCESS"


@router.post("/suggestion", response_class=PlainTextResponse)
async def submit_suggestion(
    body: SuggestionBody,
    discord: DiscordClient = Depends(get_discord),
    settings: Settings = Depends(get_app_settings),
) -> str:
    try:
        await feedback_service.submit_suggestion(body, discord, settings)
    except UserNotFoundError as exc:
        return exc.message
    return "SUCCESS"
