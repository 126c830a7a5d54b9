"""
tests/conftest.py — Shared pytest fixtures
"""
from __future__ import annotations

import os

os.environ.setdefault("DISCORD_BOT_TOKEN", "test-token")
os.environ.setdefault("LOG_CHANNEL_ID", "500000000000000001")
os.environ.setdefault("ENVIRONMENT", "testing")

import pytest
from fastapi.testclient import TestClient

from app.config import get_settings
from app.core.dependencies import get_application_limiter, get_discord
from app.core.errors import MemberNotFoundError, UpstreamError, UserNotFoundError
from app.core.rate_limiter import InMemoryRateLimitStore, RateLimiter
from app.main import app
from app.models import DiscordUser, GuildMember, Notification, Role

KNOWN_MEMBER_ID = "123"
KNOWN_USER_ID = "222222222222222222"


class FakeClock:
    def __init__(self, start: int = 1_700_000_000_000) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class FakeDiscordClient:
    """In-memory stand-in for DiscordClient that records forwarded messages."""

    def __init__(self) -> None:
        self.members: dict[str, GuildMember] = {}
        self.users: dict[str, DiscordUser] = {}
        self.roles: list[Role] = []
        self.sent: list[tuple[str, Notification]] = []
        self.fail_send = False
        self.fail_roles = False
        self.member_lookups = 0

    async def fetch_member(self, guild_id: str, user_id: str) -> GuildMember:
        self.member_lookups += 1
        member = self.members.get(user_id)
        if member is None:
            raise MemberNotFoundError(detail=f"member {user_id} not in guild {guild_id}")
        return member

    async def fetch_user(self, user_id: str) -> DiscordUser:
        user = self.users.get(user_id)
        if user is None:
            raise UserNotFoundError(detail=f"user {user_id} not found")
        return user

    async def list_roles(self, guild_id: str) -> list[Role]:
        if self.fail_roles:
            raise UpstreamError(detail="roles unavailable", upstream_status=503)
        return list(self.roles)

    async def send_message(self, channel_id: str, notification: Notification) -> str:
        if self.fail_send:
            raise UpstreamError(detail="channel unreachable", upstream_status=403)
        self.sent.append((channel_id, notification))
        return str(len(self.sent))

    async def fetch_channel(self, channel_id: str) -> dict:
        return {"id": channel_id, "name": "logs"}

    async def aclose(self) -> None:
        pass


@pytest.fixture
def settings():
    return get_settings()


@pytest.fixture
def member() -> GuildMember:
    return GuildMember(
        user=DiscordUser(id=KNOWN_MEMBER_ID, username="ada", avatar="abc123"),
        roles=[],
    )


@pytest.fixture
def user() -> DiscordUser:
    return DiscordUser(id=KNOWN_USER_ID, username="grace", discriminator="1906")


@pytest.fixture
def discord(member, user) -> FakeDiscordClient:
    fake = FakeDiscordClient()
    fake.members[member.id] = member
    fake.users[user.id] = user
    fake.roles = [
        Role(id="A", name="Python 101", position=2),
        Role(id="B", name="Web Basics", position=1),
    ]
    return fake


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def application_limiter(settings, clock) -> RateLimiter:
    return RateLimiter(InMemoryRateLimitStore(), settings.rate_limit_window_ms, clock=clock)


@pytest.fixture
def client(discord, application_limiter):
    app.dependency_overrides[get_discord] = lambda: discord
    app.dependency_overrides[get_application_limiter] = lambda: application_limiter
    # Not used as a context manager: lifespan would open a real Discord client
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def application_body() -> dict:
    return {
        "memberId": KNOWN_MEMBER_ID,
        "courses": ["A"],
        "age": "20",
        "timeDedication": "5h",
    }


def sent_to(discord: FakeDiscordClient, channel_id: str) -> list[Notification]:
    return [n for c, n in discord.sent if c == channel_id]
