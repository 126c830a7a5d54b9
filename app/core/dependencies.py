"""
app/core/dependencies.py — FastAPI dependency providers
Shared collaborators live on app.state; tests swap them via
app.dependency_overrides.
"""
from __future__ import annotations

from fastapi import Request

from app.clients.discord_client import DiscordClient
from app.config import Settings, get_settings
from app.core.rate_limiter import RateLimiter


def get_app_settings() -> Settings:
    return get_settings()


def get_discord(request: Request) -> DiscordClient:
    return request.app.state.discord


def get_application_limiter(request: Request) -> RateLimiter:
    return request.app.state.application_limiter
