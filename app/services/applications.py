"""
app/services/applications.py — Course application submission
resolve member → rate-limit by client IP → resolve course names →
build notification → forward to the applications channel.
"""
from __future__ import annotations

from typing import Optional

from loguru import logger

from app.clients.discord_client import DiscordClient
from app.config import Settings
from app.core import logging as app_logging
from app.core.errors import MemberNotFoundError, RateLimitedError, UpstreamError
from app.core.rate_limiter import RateLimiter
from app.models import ApplicationBody
from app.services.notifications import build_application_notification

RATE_LIMITED_MESSAGE = (
    "Looks like you are sending us too many requests too quickly. "
    "Please try again in a few minutes"
)
MISSING_IP_MESSAGE = "Could not identify your connection. Please try again later."


def member_not_found_message(invite_url: str) -> str:
    return (
        "User not found. Please join the server before sending another "
        f"application ({invite_url})"
    )


async def resolve_course_names(
    discord: DiscordClient,
    guild_id: str,
    course_ids: list[str],
) -> list[str]:
    """
    Map course role ids to role names. Unknown ids, or every id when the
    role directory is unreachable, fall back to the raw id.
    """
    try:
        roles = await discord.list_roles(guild_id)
    except UpstreamError as exc:
        logger.warning(f"Role directory unavailable, showing raw course ids: {exc.detail}")
        return list(course_ids)

    names = {role.id: role.name for role in roles}
    return [names.get(course_id, course_id) for course_id in course_ids]


async def _apply_rate_limit(
    limiter: RateLimiter,
    ip: Optional[str],
    settings: Settings,
    member_id: str,
) -> Optional[int]:
    """Returns the recorded timestamp, or None when no entry was recorded."""
    await limiter.purge()

    if ip is None:
        if settings.rate_limit_missing_ip == "reject":
            app_logging.log_application(member_id, None, "rate_limited")
            raise RateLimitedError(MISSING_IP_MESSAGE, detail="client ip unavailable")
        logger.warning(f"No client IP for application from {member_id}; rate limit skipped")
        return None

    now = limiter.clock()
    if not await limiter.check(ip, now):
        app_logging.log_application(member_id, ip, "rate_limited")
        raise RateLimitedError(RATE_LIMITED_MESSAGE, detail=f"ip {ip} inside window")
    return now


async def submit_application(
    body: ApplicationBody,
    ip: Optional[str],
    discord: DiscordClient,
    limiter: RateLimiter,
    settings: Settings,
) -> str:
    """
    Forward a course application for moderator review.
    Returns the id of the posted message.

    Raises MemberNotFoundError (no rate-limit entry recorded),
    RateLimitedError, or UpstreamError. Any failure after the rate-limit
    check releases the entry it recorded.
    """
    try:
        member = await discord.fetch_member(settings.guild_id, body.member_id)
    except MemberNotFoundError as exc:
        app_logging.log_application(body.member_id, ip, "member_not_found")
        raise MemberNotFoundError(
            member_not_found_message(settings.invite_url), detail=exc.detail
        ) from exc

    recorded_at = await _apply_rate_limit(limiter, ip, settings, body.member_id)

    try:
        course_names = await resolve_course_names(discord, settings.guild_id, body.courses)
        notification = build_application_notification(
            member,
            course_names,
            body,
            settings.accept_emoji_id,
            settings.reject_emoji_id,
        )
        message_id = await discord.send_message(settings.applications_channel_id, notification)
    except Exception:
        # Nothing reached the moderators; let the applicant retry
        if ip is not None and recorded_at is not None:
            await limiter.release(ip, recorded_at)
        app_logging.log_application(body.member_id, ip, "forward_failed", len(body.courses))
        raise

    app_logging.log_application(body.member_id, ip, "sent", len(body.courses))
    return message_id
