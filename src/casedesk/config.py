"""SDK configuration for casedesk.

:class:`CasedeskConfig` is a frozen-friendly dataclass that captures every
tuneable knob exposed by the SDK.  Instances are passed to both
:class:`CasedeskClient` and :class:`AsyncCasedeskClient`.
"""

from __future__ import annotations

import dataclasses
import os
from dataclasses import dataclass
from typing import Any

DEFAULT_STORAGE_BUCKET = "legal-bot"
"""Storage bucket holding files uploaded through the Telegram bot."""


@dataclass
class CasedeskConfig:
    """Complete configuration for a casedesk client.

    Parameters
    ----------
    url:
        Supabase project URL, e.g. ``https://xyz.supabase.co``.  **Required.**
    api_key:
        Project API key (anon or service role).  **Required.**  Never logged.
    access_token:
        Optional user JWT sent as the bearer token instead of *api_key*.
    schema:
        Postgres schema exposed through PostgREST.
    storage_bucket:
        Bucket used for client document downloads.
    signed_url_ttl_seconds:
        Lifetime of signed URLs created when a direct download fails.
    currency:
        Unit suffix used when presenting amounts (``"1500 PLN"``).
    retry_max_attempts:
        Maximum number of attempts per read request for retryable errors.
        Partial updates issued by an edit session are always sent once.
    retry_base_delay:
        Base delay (seconds) for exponential backoff.
    retry_max_delay:
        Upper cap (seconds) on computed backoff delay.
    retry_jitter:
        Add random jitter to backoff intervals.
    rate_limit_rps:
        Target requests per second for client-side pacing (token bucket).
    timeout_seconds:
        HTTP request timeout in seconds.  Bounds every save round-trip.
    http_proxy:
        Optional HTTP/HTTPS proxy URL.
    debug_dump_payload:
        Write the (redacted) request/response payloads to *stderr*.
    """

    # ── Core ────────────────────────────────────────────────────────────
    url: str = ""

    api_key: str = ""

    access_token: str | None = None

    schema: str = "public"

    # ── Storage ─────────────────────────────────────────────────────────
    storage_bucket: str = DEFAULT_STORAGE_BUCKET

    signed_url_ttl_seconds: int = 3600

    # ── Presentation ────────────────────────────────────────────────────
    currency: str = "PLN"

    # ── Retry & rate ────────────────────────────────────────────────────
    retry_max_attempts: int = 3

    retry_base_delay: float = 0.5

    retry_max_delay: float = 10.0

    retry_jitter: bool = True

    rate_limit_rps: float = 10.0

    # ── HTTP ────────────────────────────────────────────────────────────
    timeout_seconds: float = 15.0

    http_proxy: str | None = None

    # ── Observability ──────────────────────────────────────────────────
    metrics: Any | None = None

    # ── Debug ───────────────────────────────────────────────────────────
    debug_dump_payload: bool = False

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        from urllib.parse import urlparse

        self.url = self.url.rstrip("/")
        parsed = urlparse(self.url)
        if parsed.scheme == "http" and parsed.hostname not in (
            "localhost",
            "127.0.0.1",
            "::1",
        ):
            raise ValueError(
                f"url uses insecure HTTP for non-local host '{parsed.hostname}'. "
                "Use HTTPS to protect your API key, or target localhost for testing."
            )

        if self.retry_max_attempts < 1:
            raise ValueError(f"retry_max_attempts must be >= 1, got {self.retry_max_attempts}")
        if self.retry_base_delay < 0:
            raise ValueError(f"retry_base_delay must be >= 0, got {self.retry_base_delay}")
        if self.retry_max_delay < 0:
            raise ValueError(f"retry_max_delay must be >= 0, got {self.retry_max_delay}")
        if self.rate_limit_rps <= 0:
            raise ValueError(f"rate_limit_rps must be > 0, got {self.rate_limit_rps}")
        if self.timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be > 0, got {self.timeout_seconds}")
        if self.signed_url_ttl_seconds <= 0:
            raise ValueError(
                f"signed_url_ttl_seconds must be > 0, got {self.signed_url_ttl_seconds}"
            )

    @property
    def bearer_token(self) -> str:
        """Token sent in the ``Authorization`` header."""
        return self.access_token or self.api_key

    @classmethod
    def from_env(cls, **overrides: Any) -> CasedeskConfig:
        """Build a config from ``SUPABASE_URL`` and a key variable.

        ``SUPABASE_SERVICE_ROLE_KEY`` wins over ``SUPABASE_ANON_KEY``.
        Keyword arguments override anything read from the environment.
        """
        values: dict[str, Any] = {
            "url": os.environ.get("SUPABASE_URL", ""),
            "api_key": (
                os.environ.get("SUPABASE_SERVICE_ROLE_KEY")
                or os.environ.get("SUPABASE_ANON_KEY", "")
            ),
        }
        values.update(overrides)
        return cls(**values)

    def __repr__(self) -> str:
        """Mask secrets to prevent accidental credential leakage."""
        parts: list[str] = []
        for f in dataclasses.fields(self):
            val = getattr(self, f.name)
            if f.name in ("api_key", "access_token") and val is not None:
                masked = f"...{val[-4:]}" if len(val) >= 4 else "****"
                parts.append(f"{f.name}='{masked}'")
            else:
                parts.append(f"{f.name}={val!r}")
        return f"CasedeskConfig({', '.join(parts)})"
