"""
app/services/notifications.py — Discord embed builders
Pure functions: validated request data + resolved Discord identities in,
Notification out. No I/O.
"""
from __future__ import annotations

import json
from typing import Any, Optional

from app.models import (
    ActionRow,
    ApplicationBody,
    BugReportBody,
    Button,
    ButtonStyle,
    DiscordUser,
    Embed,
    EmbedAuthor,
    EmbedField,
    EmbedImage,
    Emoji,
    GuildMember,
    Notification,
    SuggestionBody,
)

# ── Discord embed limits ──────────────────────────────────────────────────────
TITLE_LIMIT = 256
DESCRIPTION_LIMIT = 4096
FIELD_NAME_LIMIT = 256
FIELD_VALUE_LIMIT = 1024
AUTHOR_NAME_LIMIT = 256
EMBED_TOTAL_LIMIT = 6000  # title + description + fields + author

# ── Embed colors ──────────────────────────────────────────────────────────────
COLOR_YELLOW = 0xFEE75C
COLOR_ORANGE = 0xE67E22
COLOR_RED = 0xED4245
COLOR_LUMINOUS_VIVID_PINK = 0xE91E63

LEVEL_COLORS: dict[str, int] = {
    "log": COLOR_YELLOW,
    "warn": COLOR_ORANGE,
    "error": COLOR_RED,
}

APPLICATION_TITLE = "New course Application"
NONE_TEXT = "None"


def _clip(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - 1] + "…"


def _field(name: str, value: Optional[str], inline: bool = True) -> EmbedField:
    # Discord rejects empty field values
    value = value if value else NONE_TEXT
    return EmbedField(
        name=_clip(name, FIELD_NAME_LIMIT),
        value=_clip(value, FIELD_VALUE_LIMIT),
        inline=inline,
    )


def _embed_length(embed: Embed) -> int:
    """Characters Discord counts towards the per-embed total."""
    total = len(embed.title or "") + len(embed.description or "")
    total += sum(len(f.name) + len(f.value) for f in embed.fields)
    if embed.author is not None:
        total += len(embed.author.name)
    return total


def _fit_embed(embed: Embed) -> Embed:
    """
    Shrink the longest free text (field values or description) until the
    embed fits EMBED_TOTAL_LIMIT. Fields are shortened, never dropped.
    """
    excess = _embed_length(embed) - EMBED_TOTAL_LIMIT
    while excess > 0:
        sizes = [len(f.value) for f in embed.fields]
        sizes.append(len(embed.description or ""))
        longest = max(sizes)
        if longest <= 1:
            break
        runner_up = max((s for s in sizes if s < longest), default=1)
        limit = max(longest - excess, runner_up, 1)
        index = sizes.index(longest)
        if index < len(embed.fields):
            embed.fields[index].value = _clip(embed.fields[index].value, limit)
        else:
            embed.description = _clip(embed.description, limit)
        excess = _embed_length(embed) - EMBED_TOTAL_LIMIT
    return embed


# ──────────────────────────────────────────────────────────────────────────────
# Course applications
# ──────────────────────────────────────────────────────────────────────────────

def build_application_embed(
    member: Optional[GuildMember],
    course_names: list[str],
    body: ApplicationBody,
) -> Embed:
    """
    Embed for moderators reviewing a course application.
    `member` may be None, in which case the embed carries no avatar or mention.
    """
    fields = [
        _field("User", member.user.mention if member else "Unknown"),
        _field("Age", body.age),
        _field("Experience", body.experience_details),
        _field("Time Dedication", body.time_dedication),
        _field("Misc", body.misc),
        _field("Courses", "\n".join(course_names)),
    ]

    embed = Embed(
        title=APPLICATION_TITLE,
        description=_clip(",".join(body.courses), DESCRIPTION_LIMIT),
        fields=fields,
    )
    if member is not None:
        avatar = member.user.avatar_url()
        if avatar:
            embed.thumbnail = EmbedImage(url=avatar)
    return _fit_embed(embed)


def build_decision_row(member_id: str, accept_emoji_id: str, reject_emoji_id: str) -> ActionRow:
    """Accept / Reject buttons whose custom ids carry the applicant id."""
    accept = Button(
        label="Accept",
        custom_id=f"accept_{member_id}",
        style=ButtonStyle.SUCCESS.value,
        emoji=Emoji(id=accept_emoji_id) if accept_emoji_id else None,
    )
    reject = Button(
        label="Reject",
        custom_id=f"reject_{member_id}",
        style=ButtonStyle.DANGER.value,
        emoji=Emoji(id=reject_emoji_id) if reject_emoji_id else None,
    )
    return ActionRow(components=[accept, reject])


def build_application_notification(
    member: Optional[GuildMember],
    course_names: list[str],
    body: ApplicationBody,
    accept_emoji_id: str,
    reject_emoji_id: str,
) -> Notification:
    return Notification(
        embeds=[build_application_embed(member, course_names, body)],
        components=[build_decision_row(body.member_id, accept_emoji_id, reject_emoji_id)],
    )


# ──────────────────────────────────────────────────────────────────────────────
# Log relay
# ──────────────────────────────────────────────────────────────────────────────

def build_log_notification(level: str, message: str, data: Any) -> Notification:
    data_json = json.dumps(data, default=str)
    description = f"{level}: {message}\n```json\n{data_json}\n```"
    embed = Embed(
        title=_clip(level, TITLE_LIMIT),
        description=_clip(description, DESCRIPTION_LIMIT),
        color=LEVEL_COLORS.get(level, COLOR_LUMINOUS_VIVID_PINK),
    )
    return Notification(embeds=[embed])


# ──────────────────────────────────────────────────────────────────────────────
# Feedback
# ──────────────────────────────────────────────────────────────────────────────

def _feedback_embed(user: DiscordUser, title: str, description: str) -> Embed:
    avatar = user.display_avatar_url()
    return Embed(
        title=_clip(title, TITLE_LIMIT),
        description=_clip(description, DESCRIPTION_LIMIT) if description else None,
        thumbnail=EmbedImage(url=avatar),
        author=EmbedAuthor(name=_clip(user.username, AUTHOR_NAME_LIMIT), icon_url=avatar),
    )


def build_bug_notification(user: DiscordUser, body: BugReportBody) -> Notification:
    title = f"{body.type}: {body.title} ({user.tag})"
    return Notification(embeds=[_feedback_embed(user, title, body.desc)])


def build_suggestion_notification(user: DiscordUser, body: SuggestionBody) -> Notification:
    title = f"Suggestion: {body.title} ({user.tag})"
    return Notification(embeds=[_feedback_embed(user, title, body.desc)])
