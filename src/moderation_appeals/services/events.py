"""Event publisher for downstream moderation notifications.

This module provides the EventPublisher class that hands domain events to the
platform's event gateway. It includes:

- HTTP client with short-lived bearer tokens and idempotency keys
- Circuit breaker pattern for fault tolerance
- Metrics collection for monitoring

Publication is best-effort from the workflow's point of view: callers catch
``EventPublishError`` and carry on.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
import time
from collections import defaultdict
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from uuid import uuid4

import httpx
from jose import jwt

from moderation_appeals.core.settings import settings
from moderation_appeals.db.time import isoformat_utc, utcnow

# Configure logger for this module
logger = logging.getLogger(__name__)

# HTTP status codes
HTTP_OK = 200
HTTP_INTERNAL_SERVER_ERROR = 500

EVENT_SCHEMA_VERSION = 1

# Event types emitted by the moderation service
USER_TRUST_UPDATED = "user.trust.updated"


class EventPublishError(RuntimeError):
    """Base exception raised when an event cannot be handed to the gateway."""


class EventPublisherDisabledError(EventPublishError):
    """Raised when publication is attempted while the publisher is disabled."""


class CircuitState(Enum):
    """Circuit breaker states for fault tolerance."""

    CLOSED = "closed"      # Normal operation - requests allowed
    OPEN = "open"          # Circuit is open - requests blocked
    HALF_OPEN = "half_open"  # Testing if gateway is back - limited requests allowed


@dataclass
class PublisherMetrics:
    """Metrics collection for publish attempts."""

    request_count: int = 0
    success_count: int = 0
    error_count: int = 0
    total_response_time: float = 0.0
    max_response_time: float = 0.0
    error_counts_by_type: dict[str, int] = field(default_factory=lambda: defaultdict(int))
    event_type_counts: dict[str, int] = field(default_factory=lambda: defaultdict(int))

    def record_request(
        self, event_type: str, response_time: float, success: bool, error_type: str | None = None
    ) -> None:
        """Record a publish attempt."""
        self.request_count += 1
        self.total_response_time += response_time
        self.max_response_time = max(self.max_response_time, response_time)
        self.event_type_counts[event_type] += 1

        if success:
            self.success_count += 1
        else:
            self.error_count += 1
            if error_type:
                self.error_counts_by_type[error_type] += 1

    def get_average_response_time(self) -> float:
        return self.total_response_time / self.request_count if self.request_count > 0 else 0.0

    def get_success_rate(self) -> float:
        """Get success rate as a percentage."""
        return (self.success_count / self.request_count * 100) if self.request_count > 0 else 0.0


@dataclass
class CircuitBreaker:
    """Circuit breaker guarding the event gateway."""

    failure_threshold: int = 5
    recovery_timeout: float = 60.0
    success_threshold: int = 3

    _state: CircuitState = CircuitState.CLOSED
    _failure_count: int = 0
    _success_count: int = 0
    _last_failure_time: float = 0.0

    def is_open(self) -> bool:
        """Check if circuit is open."""
        if self._state == CircuitState.OPEN:
            # Check if we should transition to half-open
            if time.time() - self._last_failure_time > self.recovery_timeout:
                self._state = CircuitState.HALF_OPEN
                self._success_count = 0
            return self._state == CircuitState.OPEN
        return False

    def record_success(self) -> None:
        if self._state == CircuitState.HALF_OPEN:
            self._success_count += 1
            if self._success_count >= self.success_threshold:
                self._state = CircuitState.CLOSED
                self._failure_count = 0
        elif self._state == CircuitState.CLOSED:
            self._failure_count = 0

    def record_failure(self) -> None:
        self._failure_count += 1
        self._last_failure_time = time.time()

        if self._state == CircuitState.HALF_OPEN or self._failure_count >= self.failure_threshold:
            self._state = CircuitState.OPEN

    @property
    def state(self) -> CircuitState:
        return self._state

    def status(self) -> dict[str, Any]:
        return {
            "state": self._state.value,
            "failure_count": self._failure_count,
            "success_count": self._success_count,
            "last_failure_time": self._last_failure_time,
            "is_open": self.is_open(),
        }


@dataclass(frozen=True)
class EventPublisherConfig:
    """Immutable configuration for event publication."""

    enabled: bool
    base_url: str | None
    source: str
    shared_secret: str | None
    audience: str
    token_ttl_seconds: int
    timeout_seconds: float


def load_event_publisher_config() -> EventPublisherConfig:
    """Build configuration object from global settings."""

    return EventPublisherConfig(
        enabled=bool(settings.events_enabled and settings.events_base_url),
        base_url=settings.events_base_url,
        source=settings.events_source,
        shared_secret=settings.events_shared_secret,
        audience=settings.events_audience,
        token_ttl_seconds=settings.events_token_ttl_seconds,
        timeout_seconds=float(settings.events_http_timeout_seconds),
    )


def build_event_envelope(
    event_type: str,
    payload: Mapping[str, Any],
    *,
    source: str,
    event_id: str | None = None,
    actor_id: str | None = None,
) -> dict[str, Any]:
    """Wrap a payload in the platform's versioned event envelope."""
    return {
        "id": event_id or str(uuid4()),
        "type": event_type,
        "timestamp": isoformat_utc(utcnow()),
        "version": EVENT_SCHEMA_VERSION,
        "payload": dict(payload),
        "metadata": {
            "source": source,
            "userId": actor_id,
        },
    }


class EventPublisher:
    """HTTP client wrapper for the platform event gateway."""

    def __init__(self, config: EventPublisherConfig | None = None) -> None:
        self.config = config or load_event_publisher_config()
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()
        self._circuit_breaker = CircuitBreaker()
        self._metrics = PublisherMetrics()

    @property
    def enabled(self) -> bool:
        return self.config.enabled and bool(self.config.base_url)

    async def _ensure_client(self) -> httpx.AsyncClient:
        if not self.enabled:
            raise EventPublisherDisabledError("Event publication is not enabled")

        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    base_url=self.config.base_url or "",
                    timeout=httpx.Timeout(self.config.timeout_seconds),
                )

        return self._client

    def _build_auth_headers(self, *, idempotency_key: str | None = None) -> dict[str, str]:
        headers = {
            "X-Event-Source": self.config.source,
        }

        if self.config.shared_secret:
            now = int(time.time())
            claims = {
                "iss": self.config.source,
                "aud": self.config.audience,
                "iat": now,
                "exp": now + max(1, self.config.token_ttl_seconds),
                "jti": secrets.token_hex(8),
            }
            token = jwt.encode(claims, self.config.shared_secret, algorithm="HS256")
            headers["Authorization"] = f"Bearer {token}"

        if idempotency_key:
            headers["Idempotency-Key"] = idempotency_key

        return headers

    async def publish(
        self,
        event_type: str,
        payload: Mapping[str, Any],
        *,
        event_id: str | None = None,
        actor_id: str | None = None,
    ) -> bool:
        """Send one event to the gateway.

        Args:
            event_type: Dotted event name, e.g. ``user.trust.updated``.
            payload: Event body; must be JSON serialisable.
            event_id: Stable identifier, doubles as the idempotency key.
            actor_id: User on whose behalf the event is emitted.

        Returns:
            True if the gateway accepted the event, False if it rejected it.

        Raises:
            EventPublisherDisabledError: If publication is disabled.
            EventPublishError: On transport failures, 5xx responses or an open circuit.
        """
        if self._circuit_breaker.is_open():
            raise EventPublishError("Event gateway circuit breaker is open")

        client = await self._ensure_client()
        envelope = build_event_envelope(
            event_type,
            payload,
            source=self.config.source,
            event_id=event_id,
            actor_id=actor_id,
        )
        headers = self._build_auth_headers(idempotency_key=envelope["id"])

        start_time = time.time()
        try:
            response = await client.post("/events", json=envelope, headers=headers)
        except httpx.HTTPError as exc:
            self._circuit_breaker.record_failure()
            self._metrics.record_request(
                event_type, time.time() - start_time, False, "network_error"
            )
            raise EventPublishError(f"Event publication failed: {exc}") from exc

        response_time = time.time() - start_time
        if response.status_code >= HTTP_INTERNAL_SERVER_ERROR:
            self._circuit_breaker.record_failure()
            self._metrics.record_request(
                event_type, response_time, False, f"http_{response.status_code}"
            )
            raise EventPublishError(f"Event gateway responded with {response.status_code}")

        self._circuit_breaker.record_success()
        success = response.is_success
        self._metrics.record_request(
            event_type,
            response_time,
            success,
            None if success else f"http_{response.status_code}",
        )
        return success

    async def health_check(self) -> dict[str, Any]:
        """Report gateway reachability along with breaker state."""
        if not self.enabled:
            return {
                "status": "disabled",
                "enabled": False,
                "error": "Event publication is disabled",
            }

        try:
            client = await self._ensure_client()
            response = await client.get("/health", headers=self._build_auth_headers())
        except (EventPublishError, httpx.HTTPError, OSError) as e:
            return {
                "status": "error",
                "enabled": True,
                "error": str(e),
                "circuit_breaker": self._circuit_breaker.status(),
            }

        return {
            "status": "healthy" if response.status_code == HTTP_OK else "unhealthy",
            "enabled": True,
            "gateway_status_code": response.status_code,
            "circuit_breaker": self._circuit_breaker.status(),
        }

    def get_metrics(self) -> dict[str, Any]:
        return {
            "request_count": self._metrics.request_count,
            "success_count": self._metrics.success_count,
            "error_count": self._metrics.error_count,
            "success_rate": self._metrics.get_success_rate(),
            "average_response_time": self._metrics.get_average_response_time(),
            "max_response_time": self._metrics.max_response_time,
            "error_counts_by_type": dict(self._metrics.error_counts_by_type),
            "event_type_counts": dict(self._metrics.event_type_counts),
        }

    async def close(self) -> None:
        """Clean up underlying HTTP client resources."""

        async with self._client_lock:
            if self._client is not None:
                await self._client.aclose()
                self._client = None


class _EventPublisherSingleton:
    """Singleton wrapper for EventPublisher."""

    _instance: EventPublisher | None = None

    @classmethod
    def get_instance(cls) -> EventPublisher:
        if cls._instance is None:
            cls._instance = EventPublisher()
        return cls._instance


def get_event_publisher() -> EventPublisher:
    """Return a singleton event publisher instance."""
    return _EventPublisherSingleton.get_instance()
