"""
app/services/feedback.py — Log relay, bug reports and suggestions
Each forwards one embed to the log channel. None are rate limited.
"""
from __future__ import annotations

from typing import Any

from app.clients.discord_client import DiscordClient
from app.config import Settings
from app.core import logging as app_logging
from app.core.errors import UserNotFoundError
from app.models import BugReportBody, SuggestionBody
from app.services.notifications import (
    build_bug_notification,
    build_log_notification,
    build_suggestion_notification,
)

USER_NOT_FOUND_MESSAGE = "ERROR: USER NOT FOUND"


async def relay_log(
    level: str,
    message: str,
    data: Any,
    discord: DiscordClient,
    settings: Settings,
) -> None:
    """Forward a client log line to the log channel and mirror it to the console."""
    app_logging.relay_to_console(level, message, data)
    await discord.send_message(
        settings.log_channel_id,
        build_log_notification(level, message, data),
    )


async def report_bug(body: BugReportBody, discord: DiscordClient, settings: Settings) -> None:
    """Raises UserNotFoundError before anything is forwarded."""
    try:
        user = await discord.fetch_user(body.user)
    except UserNotFoundError as exc:
        app_logging.log_feedback("bug", body.user, False, error=exc.detail)
        raise UserNotFoundError(USER_NOT_FOUND_MESSAGE, detail=exc.detail) from exc

    await discord.send_message(settings.log_channel_id, build_bug_notification(user, body))
    app_logging.log_feedback("bug", body.user, True)


async def submit_suggestion(
    body: SuggestionBody,
    discord: DiscordClient,
    settings: Settings,
) -> None:
    try:
        user = await discord.fetch_user(body.user)
    except UserNotFoundError as exc:
        app_logging.log_feedback("suggestion", body.user, False, error=exc.detail)
        raise UserNotFoundError(USER_NOT_FOUND_MESSAGE, detail=exc.detail) from exc

    await discord.send_message(settings.log_channel_id, build_suggestion_notification(user, body))
    app_logging.log_feedback("suggestion", body.user, True)
