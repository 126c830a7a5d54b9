"""
app/core/rate_limiter.py — Rate limiting
Two layers:
  * RateLimiter: one accepted course application per client IP per window,
    backed by an injectable RateLimitStore.
  * slowapi `limiter`: per-minute abuse limits decorated onto read endpoints.
"""
from __future__ import annotations

import asyncio
import ipaddress
import time
from typing import Callable, Iterable, Optional, Protocol

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from app.config import get_settings

DEFAULT_WINDOW_MS = 5 * 60 * 1000  # 5 minutes


def now_ms() -> int:
    return int(time.time() * 1000)


# ──────────────────────────────────────────────────────────────────────────────
# Client IP resolution
# ──────────────────────────────────────────────────────────────────────────────

# Checked in order; the first usable value wins
_IP_HEADERS = (
    "x-client-ip",
    "x-forwarded-for",
    "cf-connecting-ip",
    "fastly-client-ip",
    "true-client-ip",
    "x-real-ip",
    "x-cluster-client-ip",
    "x-forwarded",
    "forwarded-for",
)


def _parse_forwarded(value: str) -> Optional[str]:
    """Extract the first `for=` address from an RFC 7239 Forwarded header."""
    for part in value.split(","):
        for pair in part.split(";"):
            key, _, addr = pair.strip().partition("=")
            if key.lower() == "for" and addr:
                addr = addr.strip('"')
                if addr.startswith("["):
                    return addr[1:].split("]")[0]
                return addr.split(":")[0] if addr.count(":") == 1 else addr
    return None


def is_trusted_proxy(peer: Optional[str], trusted: Iterable[str]) -> bool:
    if not peer:
        return False
    try:
        peer_addr = ipaddress.ip_address(peer)
    except ValueError:
        peer_addr = None
    for entry in trusted:
        if entry == "*" or entry == peer:
            return True
        if peer_addr is None:
            continue
        try:
            if peer_addr in ipaddress.ip_network(entry, strict=False):
                return True
        except ValueError:
            continue
    return False


def client_ip(request: Request, trusted_proxies: Optional[Iterable[str]] = None) -> Optional[str]:
    """
    Requester IP. Proxy headers are only read when the socket peer is one of
    `trusted_proxies` (default: settings.trusted_proxy_ips); otherwise the
    peer itself is the client. Returns None when nothing usable is present.
    """
    peer = request.client.host if request.client and request.client.host else None
    if trusted_proxies is None:
        trusted_proxies = get_settings().trusted_proxy_ips
    if not is_trusted_proxy(peer, trusted_proxies):
        return peer

    for header in _IP_HEADERS:
        value = request.headers.get(header)
        if not value:
            continue
        # X-Forwarded-For may hold a chain: client, proxy1, proxy2
        first = value.split(",")[0].strip()
        if first and first.lower() != "unknown":
            return first

    forwarded = request.headers.get("forwarded")
    if forwarded:
        addr = _parse_forwarded(forwarded)
        if addr:
            return addr

    return peer


def _limiter_key(request: Request) -> str:
    return client_ip(request) or get_remote_address(request)


# ──────────────────────────────────────────────────────────────────────────────
# slowapi limiter — read endpoints only
# ──────────────────────────────────────────────────────────────────────────────

limiter = Limiter(key_func=_limiter_key)

RATE_LIMITS = {
    # Role listing: the application form fetches it once per page load
    "roles": "30/minute",
    # Ping keep-alive
    "ping": "60/minute",
}


# ──────────────────────────────────────────────────────────────────────────────
# Application rate limit store
# ──────────────────────────────────────────────────────────────────────────────

class RateLimitStore(Protocol):
    """Client identifier → last accepted submission timestamp (ms)."""

    def get(self, key: str) -> Optional[int]: ...

    def set(self, key: str, timestamp_ms: int) -> None: ...

    def delete(self, key: str) -> None: ...

    def purge(self, now: int, window_ms: int) -> int: ...

    def items(self) -> Iterable[tuple[str, int]]: ...


class InMemoryRateLimitStore:
    """Process-local store. Entries are lost on restart."""

    def __init__(self, entries: Optional[dict[str, int]] = None) -> None:
        self._entries: dict[str, int] = dict(entries or {})

    def get(self, key: str) -> Optional[int]:
        return self._entries.get(key)

    def set(self, key: str, timestamp_ms: int) -> None:
        self._entries[key] = timestamp_ms

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def purge(self, now: int, window_ms: int) -> int:
        """Remove every entry whose age is >= window. Returns count removed."""
        expired = [k for k, ts in self._entries.items() if now - ts >= window_ms]
        for k in expired:
            del self._entries[k]
        return len(expired)

    def items(self) -> Iterable[tuple[str, int]]:
        return list(self._entries.items())

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries


class RateLimiter:
    """
    Fixed-window gate: a key may pass at most once per `window_ms`.

    check() is a check-and-set under an asyncio.Lock, so two requests from
    the same key that are in flight at once cannot both be allowed.
    """

    def __init__(
        self,
        store: Optional[RateLimitStore] = None,
        window_ms: int = DEFAULT_WINDOW_MS,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.store: RateLimitStore = store if store is not None else InMemoryRateLimitStore()
        self.window_ms = window_ms
        self.clock = clock
        self._lock = asyncio.Lock()

    def _expired(self, timestamp_ms: int, now: int) -> bool:
        return now - timestamp_ms >= self.window_ms

    async def purge(self, now: Optional[int] = None) -> int:
        now = self.clock() if now is None else now
        async with self._lock:
            return self.store.purge(now, self.window_ms)

    async def check(self, key: str, now: Optional[int] = None) -> bool:
        """
        Allow and record `now` if the key is absent or expired.
        A rejected check leaves the stored timestamp untouched.
        """
        now = self.clock() if now is None else now
        async with self._lock:
            last = self.store.get(key)
            if last is not None and not self._expired(last, now):
                return False
            self.store.set(key, now)
            return True

    async def release(self, key: str, timestamp_ms: int) -> bool:
        """Drop the entry for `key` only if it still holds `timestamp_ms`."""
        async with self._lock:
            if self.store.get(key) == timestamp_ms:
                self.store.delete(key)
                return True
            return False
