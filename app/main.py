"""
app/main.py — FastAPI application entry point
Includes: lifespan management (logging, Discord client), CORS, rate limiting,
          security headers, error → HTTP mapping, ping keep-alive endpoint.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from loguru import logger
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from app.clients.discord_client import DiscordClient
from app.config import get_settings
from app.core import logging as app_logging
from app.core.errors import BridgeError, UpstreamError
from app.core.logging import setup_logging
from app.core.rate_limiter import RATE_LIMITS, InMemoryRateLimitStore, RateLimiter, limiter
from app.routers import api, feedback

settings = get_settings()

VERSION = "1.0.0"


# ──────────────────────────────────────────────────────────────────────────────
# Application Lifespan
# ──────────────────────────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    FastAPI lifespan: startup → yield → shutdown.
    Startup: logging, settings check, Discord client, log channel check.
    """
    setup_logging(settings.log_level)
    logger.info("Course applications bridge starting up...")

    _validate_env()

    app.state.discord = DiscordClient(settings)

    # The log channel receives every relay and feedback message
    try:
        channel = await app.state.discord.fetch_channel(settings.log_channel_id)
        logger.info(f"Log channel resolved: #{channel.get('name', settings.log_channel_id)}")
    except UpstreamError as exc:
        logger.error(f"Log channel {settings.log_channel_id} unreachable (non-fatal): {exc.detail}")

    logger.info("Startup complete.")
    yield
    await app.state.discord.aclose()
    logger.info("Shutting down course applications bridge.")


def _validate_env() -> None:
    """Log loudly when critical settings are missing or left as placeholders."""
    required = [
        ("discord_bot_token", "DISCORD_BOT_TOKEN"),
        ("log_channel_id", "LOG_CHANNEL_ID"),
        ("guild_id", "GUILD_ID"),
        ("applications_channel_id", "APPLICATIONS_CHANNEL_ID"),
    ]
    missing = []
    for attr, env_name in required:
        val = getattr(settings, attr, None)
        if not val or val in ("change-me", "your-token-here"):
            missing.append(env_name)

    if missing:
        msg = f"Missing or placeholder env vars: {', '.join(missing)}"
        logger.critical(msg)
        logger.warning("App will start but Discord calls will fail until credentials are set.")


# ──────────────────────────────────────────────────────────────────────────────
# FastAPI App
# ──────────────────────────────────────────────────────────────────────────────

app = FastAPI(
    title="Course Applications Bridge",
    description=(
        "Forwards course applications, bug reports, suggestions and client "
        "logs from the website into Discord."
    ),
    version=VERSION,
    docs_url="/docs" if not settings.is_production else None,
    redoc_url=None,
    lifespan=lifespan,
)

# ── Course application gate: one per client IP per window ─────────────────────
app.state.application_limiter = RateLimiter(
    InMemoryRateLimitStore(),
    window_ms=settings.rate_limit_window_ms,
)

# ── Rate limiting — fastapi/slowapi ───────────────────────────────────────────
app.state.limiter = limiter
app.add_exception_handler(
    RateLimitExceeded,
    lambda req, exc: JSONResponse(
        status_code=429,
        content={"error": "Rate limit exceeded. Slow down."},
    ),
)
app.add_middleware(SlowAPIMiddleware)

# ── CORS — the website posts straight from the browser ────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_credentials=False,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


# ── Security headers middleware ───────────────────────────────────────────────
@app.middleware("http")
async def add_security_headers(request: Request, call_next) -> Response:
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    if settings.is_production:
        response.headers["Strict-Transport-Security"] = (
            "max-age=31536000; includeSubDomains"
        )
    return response


# ── Error mapping ─────────────────────────────────────────────────────────────
@app.exception_handler(BridgeError)
async def handle_bridge_error(request: Request, exc: BridgeError) -> PlainTextResponse:
    if isinstance(exc, UpstreamError):
        app_logging.log_error(
            "api", request.url.path, exc,
            {"detail": exc.detail, "upstream_status": exc.upstream_status},
        )
    else:
        logger.info(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.detail}")
    return PlainTextResponse(exc.message or "Error", status_code=exc.status_code)


@app.exception_handler(Exception)
async def handle_unexpected_error(request: Request, exc: Exception) -> PlainTextResponse:
    app_logging.log_error("api", request.url.path, exc, {"method": request.method})
    return PlainTextResponse("Internal Server Error", status_code=500)


# ── Routers ───────────────────────────────────────────────────────────────────
app.include_router(api.router, prefix="/api", tags=["api"])
app.include_router(feedback.router, prefix="/feedback", tags=["feedback"])


# ── Ping keep-alive endpoint ──────────────────────────────────────────────────
@app.get("/api/ping", tags=["health"])
@limiter.limit(RATE_LIMITS["ping"])
async def ping(request: Request):
    """Does NOT call Discord."""
    return {"status": "ok", "version": VERSION}


def run() -> None:
    """Console entry point: serve on the configured port."""
    import uvicorn

    uvicorn.run("app.main:app", host="0.0.0.0", port=settings.port)
