"""
app/config.py — Pydantic BaseSettings configuration
Discord credentials, destination channels, rate-limit window and CORS policy.
"""
from __future__ import annotations

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Application ────────────────────────────────────────────────────────────
    environment: str = "development"
    log_level: str = "INFO"
    port: int = 3000

    # ── Discord REST API ──────────────────────────────────────────────────────
    discord_bot_token: str
    discord_api_base: str = "https://discord.com/api/v10"
    discord_timeout_seconds: float = 10.0

    # ── Guild / channels ──────────────────────────────────────────────────────
    guild_id: str = "877584374521008199"
    applications_channel_id: str = "903888105143173150"
    log_channel_id: str

    # ── Application review buttons ────────────────────────────────────────────
    accept_emoji_id: str = "889310059501342751"
    reject_emoji_id: str = "889310059975311380"

    # ── Application rate limit ────────────────────────────────────────────────
    # One accepted application per client IP per window
    application_rate_limit_seconds: int = 300
    # What to do when the client IP cannot be determined: "allow" | "reject"
    rate_limit_missing_ip: str = "allow"
    # Peers whose proxy headers (X-Forwarded-For etc.) are believed.
    # Addresses or CIDR networks; "*" trusts every peer.
    trusted_proxy_ips: list[str] = ["127.0.0.1", "::1"]

    # ── Role directory cache ──────────────────────────────────────────────────
    roles_cache_ttl_seconds: int = 60

    # ── User-facing text ──────────────────────────────────────────────────────
    invite_url: str = "programmingsimplified.org/discord"

    # ── CORS ──────────────────────────────────────────────────────────────────
    cors_allow_origins: list[str] = ["*"]

    @field_validator("environment")
    @classmethod
    def validate_env(cls, v: str) -> str:
        allowed = {"development", "production", "testing"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v

    @field_validator("rate_limit_missing_ip")
    @classmethod
    def validate_missing_ip_policy(cls, v: str) -> str:
        v = v.lower()
        if v not in {"allow", "reject"}:
            raise ValueError("rate_limit_missing_ip must be 'allow' or 'reject'")
        return v

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def rate_limit_window_ms(self) -> int:
        return self.application_rate_limit_seconds * 1000


@lru_cache()
def get_settings() -> Settings:
    """Return cached Settings instance. Use this everywhere."""
    return Settings()
