"""
app/models.py — All Pydantic data schemas
Request bodies, Discord resources (users, members, roles) and the outgoing
notification payload (embeds + message components).
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

DISCORD_CDN = "https://cdn.discordapp.com"


# ──────────────────────────────────────────────────────────────────────────────
# Enumerations
# ──────────────────────────────────────────────────────────────────────────────

class LoggingLevel(str, Enum):
    LOG = "log"
    WARNING = "warn"
    ERROR = "error"


class ButtonStyle(int, Enum):
    PRIMARY = 1
    SECONDARY = 2
    SUCCESS = 3
    DANGER = 4


class ComponentType(int, Enum):
    ACTION_ROW = 1
    BUTTON = 2


# ──────────────────────────────────────────────────────────────────────────────
# Request bodies
# ──────────────────────────────────────────────────────────────────────────────

def _stringify(v: Any) -> Any:
    # Form frontends post numbers for free-text fields such as age
    if isinstance(v, (int, float)) and not isinstance(v, bool):
        return str(v)
    return v


class ApplicationBody(BaseModel):
    """POST /api/applications request body."""
    model_config = ConfigDict(populate_by_name=True)

    member_id: str = Field(
        min_length=1,
        validation_alias=AliasChoices("memberId", "member_id", "id"),
    )
    courses: list[str] = Field(min_length=1)
    age: str = Field(min_length=1)
    experience_details: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("experienceDetails", "experience_details"),
    )
    time_dedication: str = Field(
        min_length=1,
        validation_alias=AliasChoices("timeDedication", "time_dedication"),
    )
    misc: Optional[str] = None

    @field_validator("member_id", "age", "time_dedication", mode="before")
    @classmethod
    def coerce_numbers(cls, v: Any) -> Any:
        return _stringify(v)

    @field_validator("courses", mode="before")
    @classmethod
    def coerce_course_ids(cls, v: Any) -> Any:
        if isinstance(v, list):
            return [_stringify(c) for c in v]
        return v


class LogBody(BaseModel):
    """POST /api/log/{level} request body."""
    message: str = ""
    data: Any = None


class BugReportBody(BaseModel):
    """POST /feedback/bug request body. `type` is e.g. LESSON_GLITCH, SITE_CRASH."""
    title: str
    user: str
    type: str = "BUG"
    desc: str = ""

    @field_validator("user", mode="before")
    @classmethod
    def coerce_user(cls, v: Any) -> Any:
        return _stringify(v)


class SuggestionBody(BaseModel):
    """POST /feedback/suggestion request body."""
    title: str
    user: str
    desc: str = ""

    @field_validator("user", mode="before")
    @classmethod
    def coerce_user(cls, v: Any) -> Any:
        return _stringify(v)


# ──────────────────────────────────────────────────────────────────────────────
# Discord resources
# ──────────────────────────────────────────────────────────────────────────────

class DiscordUser(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    username: str
    discriminator: str = "0"
    global_name: Optional[str] = None
    avatar: Optional[str] = None
    bot: bool = False

    @property
    def tag(self) -> str:
        """username#discriminator, or the bare username for migrated accounts."""
        if self.discriminator and self.discriminator != "0":
            return f"{self.username}#{self.discriminator}"
        return self.username

    @property
    def mention(self) -> str:
        return f"<@{self.id}>"

    def avatar_url(self) -> Optional[str]:
        """Custom avatar URL, or None when the user never set one."""
        if not self.avatar:
            return None
        ext = "gif" if self.avatar.startswith("a_") else "png"
        return f"{DISCORD_CDN}/avatars/{self.id}/{self.avatar}.{ext}"

    def display_avatar_url(self) -> str:
        """Custom avatar, falling back to Discord's default avatar."""
        custom = self.avatar_url()
        if custom:
            return custom
        if self.discriminator and self.discriminator != "0":
            index = int(self.discriminator) % 5
        else:
            index = (int(self.id) >> 22) % 6
        return f"{DISCORD_CDN}/embed/avatars/{index}.png"


class GuildMember(BaseModel):
    model_config = ConfigDict(extra="ignore")

    user: DiscordUser
    nick: Optional[str] = None
    roles: list[str] = []

    @property
    def id(self) -> str:
        return self.user.id


class Role(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    color: int = 0
    position: int = 0
    hoist: bool = False
    managed: bool = False
    mentionable: bool = False


# ──────────────────────────────────────────────────────────────────────────────
# Outgoing notification — Discord embed + components payload
# ──────────────────────────────────────────────────────────────────────────────

class EmbedField(BaseModel):
    name: str
    value: str
    inline: bool = False


class EmbedImage(BaseModel):
    url: str


class EmbedAuthor(BaseModel):
    name: str
    icon_url: Optional[str] = None


class Embed(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    color: Optional[int] = None
    fields: list[EmbedField] = []
    thumbnail: Optional[EmbedImage] = None
    author: Optional[EmbedAuthor] = None


class Emoji(BaseModel):
    id: str


class Button(BaseModel):
    type: int = ComponentType.BUTTON.value
    label: str
    custom_id: str
    style: int
    emoji: Optional[Emoji] = None


class ActionRow(BaseModel):
    type: int = ComponentType.ACTION_ROW.value
    components: list[Button] = []


class Notification(BaseModel):
    """A message for a destination channel, optionally carrying actions."""
    embeds: list[Embed] = []
    components: list[ActionRow] = []

    def to_payload(self) -> dict[str, Any]:
        """Discord `Create Message` JSON body."""
        payload = self.model_dump(mode="json", exclude_none=True)
        if not payload.get("components"):
            payload.pop("components", None)
        return payload
