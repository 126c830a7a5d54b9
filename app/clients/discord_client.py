"""
app/clients/discord_client.py — Discord REST API client
Membership, user and role directories plus message forwarding, over
httpx.AsyncClient with a bot token. No retries: a failed call raises.
"""
from __future__ import annotations

import time
from typing import Any, Optional

import httpx
from loguru import logger

from app.config import Settings, get_settings
from app.core import logging as app_logging
from app.core.errors import MemberNotFoundError, UpstreamError, UserNotFoundError
from app.models import DiscordUser, GuildMember, Notification, Role

USER_AGENT = "DiscordBot (https://programmingsimplified.org, 1.0.0)"

# Statuses that mean "no such member/user" for a lookup. Discord answers 400
# for ids that are not valid snowflakes.
_LOOKUP_MISS_STATUSES = {400, 404}


def _is_snowflake(value: str) -> bool:
    return value.isdigit() and len(value) <= 20


class DiscordClient:
    def __init__(
        self,
        settings: Optional[Settings] = None,
        http: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._http = http or httpx.AsyncClient(
            base_url=self.settings.discord_api_base,
            headers={
                "Authorization": f"Bot {self.settings.discord_bot_token}",
                "User-Agent": USER_AGENT,
            },
            timeout=self.settings.discord_timeout_seconds,
        )
        self._roles_cache: dict[str, tuple[float, list[Role]]] = {}

    async def aclose(self) -> None:
        await self._http.aclose()

    # ──────────────────────────────────────────────────────────────────────────
    # Transport
    # ──────────────────────────────────────────────────────────────────────────

    async def _request(self, method: str, route: str, **kwargs: Any) -> httpx.Response:
        start = time.monotonic()
        try:
            response = await self._http.request(method, route, **kwargs)
        except httpx.HTTPError as exc:
            latency = (time.monotonic() - start) * 1000
            app_logging.log_discord_call(method, route, None, latency, error=str(exc))
            raise UpstreamError(detail=f"{method} {route}: {exc}") from exc

        latency = (time.monotonic() - start) * 1000
        error = None if response.is_success else response.text[:500]
        app_logging.log_discord_call(method, route, response.status_code, latency, error=error)
        return response

    @staticmethod
    def _raise_for_status(response: httpx.Response, method: str, route: str) -> None:
        if not response.is_success:
            raise UpstreamError(
                detail=f"{method} {route} -> {response.status_code}: {response.text[:500]}",
                upstream_status=response.status_code,
            )

    # ──────────────────────────────────────────────────────────────────────────
    # Membership directory
    # ──────────────────────────────────────────────────────────────────────────

    async def fetch_member(self, guild_id: str, user_id: str) -> GuildMember:
        """Resolve a member of `guild_id`. Raises MemberNotFoundError."""
        if not _is_snowflake(user_id):
            raise MemberNotFoundError(detail=f"invalid member id {user_id!r}")

        route = f"/guilds/{guild_id}/members/{user_id}"
        response = await self._request("GET", route)
        if response.status_code in _LOOKUP_MISS_STATUSES:
            raise MemberNotFoundError(detail=f"member {user_id} not in guild {guild_id}")
        self._raise_for_status(response, "GET", route)
        return GuildMember.model_validate(response.json())

    # ──────────────────────────────────────────────────────────────────────────
    # User directory
    # ──────────────────────────────────────────────────────────────────────────

    async def fetch_user(self, user_id: str) -> DiscordUser:
        """Resolve any Discord user. Raises UserNotFoundError."""
        if not _is_snowflake(user_id):
            raise UserNotFoundError(detail=f"invalid user id {user_id!r}")

        route = f"/users/{user_id}"
        response = await self._request("GET", route)
        if response.status_code in _LOOKUP_MISS_STATUSES:
            raise UserNotFoundError(detail=f"user {user_id} not found")
        self._raise_for_status(response, "GET", route)
        return DiscordUser.model_validate(response.json())

    # ──────────────────────────────────────────────────────────────────────────
    # Role directory
    # ──────────────────────────────────────────────────────────────────────────

    async def list_roles(self, guild_id: str) -> list[Role]:
        """
        Guild roles, highest position first, without @everyone.
        Cached for `roles_cache_ttl_seconds`.
        """
        cached = self._roles_cache.get(guild_id)
        if cached and cached[0] > time.monotonic():
            return cached[1]

        route = f"/guilds/{guild_id}/roles"
        response = await self._request("GET", route)
        self._raise_for_status(response, "GET", route)

        roles = [
            Role.model_validate(r)
            for r in response.json()
            if str(r.get("id")) != guild_id  # @everyone shares the guild id
        ]
        roles.sort(key=lambda r: r.position, reverse=True)

        ttl = self.settings.roles_cache_ttl_seconds
        if ttl > 0:
            self._roles_cache[guild_id] = (time.monotonic() + ttl, roles)
        logger.debug(f"Fetched {len(roles)} roles for guild {guild_id}")
        return roles

    # ──────────────────────────────────────────────────────────────────────────
    # Channels / message forwarding
    # ──────────────────────────────────────────────────────────────────────────

    async def fetch_channel(self, channel_id: str) -> dict[str, Any]:
        route = f"/channels/{channel_id}"
        response = await self._request("GET", route)
        self._raise_for_status(response, "GET", route)
        return response.json()

    async def send_message(self, channel_id: str, notification: Notification) -> str:
        """Post a notification to a channel. Returns the new message id."""
        route = f"/channels/{channel_id}/messages"
        response = await self._request("POST", route, json=notification.to_payload())
        self._raise_for_status(response, "POST", route)
        return str(response.json().get("id", ""))
