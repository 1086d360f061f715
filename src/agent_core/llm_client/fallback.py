"""Model fallback resolver.

``FallbackModel`` puts an ordered list of candidate models behind the
``StreamingModel`` interface. A call tries the candidates in order until one
of them opens its stream; failures are classified so that quota exhaustion
(and, for multiplexed chains, rate limiting) puts a candidate into cooldown
for a while.

Only the opening of a stream is retried: once a candidate has produced its
first event, later errors propagate to the caller unchanged.
"""

import asyncio
import threading
import time
from collections.abc import AsyncIterator, Callable, Iterable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Any

from agent_core.llm_client.types import (
    AllModelsCoolingDown,
    LLMAborted,
    Message,
    StreamEvent,
    StreamingModel,
    endpoint_key,
)
from agent_core.telemetry import (
    ALL_MODELS_COOLING_DOWN,
    MODEL_COOLDOWN_SKIPPED,
    MODEL_COOLDOWN_STARTED,
    MODEL_FALLBACK,
    get_logger,
)

log = get_logger(__name__)

DEFAULT_COOLDOWN_SECONDS = 30 * 60


class FallbackReason(str, Enum):
    """Why a candidate failed."""

    RATE_LIMIT = "rate-limit"
    QUOTA_WINDOW = "quota-window"
    AUTH = "auth"
    NETWORK = "network"
    UNKNOWN = "unknown"


_QUOTA_MARKERS = (
    "quota",
    "usage limit",
    "time window",
    "monthly limit",
    "daily limit",
    "insufficient_quota",
)
_RATE_LIMIT_MARKERS = ("rate limit", "too many requests", "status 429")
_AUTH_MARKERS = ("unauthorized", "forbidden", "invalid api key", "status 401", "status 403")
_NETWORK_MARKERS = ("timeout", "timed out", "network", "fetch failed", "econn")


def classify_fallback_reason(error: BaseException) -> FallbackReason:
    """Classify a model failure.

    A ``status`` (or ``status_code``) attribute wins when it is 429, 401 or
    403; otherwise the lowercased message is matched against marker phrases,
    quota first.
    """
    status = getattr(error, "status", None)
    if status is None:
        status = getattr(error, "status_code", None)
    if status == 429:
        return FallbackReason.RATE_LIMIT
    if status in (401, 403):
        return FallbackReason.AUTH

    message = str(error).lower()
    if any(marker in message for marker in _QUOTA_MARKERS):
        return FallbackReason.QUOTA_WINDOW
    if any(marker in message for marker in _RATE_LIMIT_MARKERS):
        return FallbackReason.RATE_LIMIT
    if any(marker in message for marker in _AUTH_MARKERS):
        return FallbackReason.AUTH
    if isinstance(error, (TimeoutError, ConnectionError)) or any(
        marker in message for marker in _NETWORK_MARKERS
    ):
        return FallbackReason.NETWORK
    return FallbackReason.UNKNOWN


@dataclass(frozen=True)
class FallbackEvent:
    """Passed to the fallback observer each time the chain moves on.

    Attributes:
        failed_endpoint: Candidate that failed or was skipped.
        error: The failure (a synthetic error for skipped, cooled candidates).
        reason: Classified reason.
        selected_endpoint: Candidate tried next.
        fallback_index: Position of the selected candidate in the chain.
    """

    failed_endpoint: str
    error: BaseException
    reason: FallbackReason
    selected_endpoint: str
    fallback_index: int


FallbackObserver = Callable[[FallbackEvent], None]


@dataclass(frozen=True)
class _Cooldown:
    until: float
    reason: FallbackReason


class CandidateCoolingDown(Exception):
    """Synthetic error reported for a candidate skipped because of cooldown."""

    pass


class FallbackModel:
    """Streams from the first available candidate of an ordered chain.

    The cooldown map is the only mutable state and may be shared by many
    concurrent sessions, so it is guarded by a lock. Cooldowns are kept per
    chain position: a provider/model pair listed twice cools each entry
    independently.
    """

    notify_on_skip = True

    def __init__(
        self,
        candidates: Sequence[StreamingModel],
        on_fallback: FallbackObserver | None = None,
        cooldown_seconds: float = DEFAULT_COOLDOWN_SECONDS,
        cooldown_reasons: Iterable[FallbackReason | str] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the resolver.

        Args:
            candidates: Primary model followed by its fallbacks.
            on_fallback: Observer called whenever the chain moves to the next candidate.
            cooldown_seconds: How long a candidate is skipped after a cooldown-triggering failure.
            cooldown_reasons: Reasons that trigger cooldown. Defaults to ``{quota-window}``.
            clock: Monotonic time source, injectable for tests.

        Raises:
            ValueError: If no candidates are given.
        """
        if not candidates:
            raise ValueError("FallbackModel needs at least one candidate")
        self.candidates: tuple[StreamingModel, ...] = tuple(candidates)
        self.on_fallback = on_fallback
        self.cooldown_seconds = cooldown_seconds
        if cooldown_reasons is None:
            cooldown_reasons = self.default_cooldown_reasons()
        self.cooldown_reasons = frozenset(FallbackReason(reason) for reason in cooldown_reasons)
        self._clock = clock
        self._lock = threading.Lock()
        self._cooldowns: dict[int, _Cooldown] = {}

        self.provider = f"fallback({','.join(model.provider for model in self.candidates)})"
        self.model_id = f"fallback({','.join(model.model_id for model in self.candidates)})"

    @classmethod
    def default_cooldown_reasons(cls) -> frozenset[FallbackReason]:
        return frozenset({FallbackReason.QUOTA_WINDOW})

    async def stream(
        self, messages: Sequence[Message], tools: Sequence[dict[str, Any]]
    ) -> AsyncIterator[StreamEvent]:
        """Stream from the first candidate that opens successfully.

        Raises:
            AllModelsCoolingDown: Every candidate is in cooldown.
            Exception: The last candidate's error once the chain is exhausted.
        """
        last_error: BaseException | None = None
        attempted = False

        for index, candidate in enumerate(self.candidates):
            key = endpoint_key(candidate)
            cooldown = self._active_cooldown(index)
            if cooldown is not None:
                self._skip_cooled(index, key, cooldown)
                continue

            attempted = True
            iterator = candidate.stream(messages, tools).__aiter__()
            try:
                first = await anext(iterator)
            except StopAsyncIteration:
                return
            except (asyncio.CancelledError, LLMAborted):
                raise
            except Exception as e:
                last_error = e
                self._record_failure(index, key, e)
                continue

            try:
                yield first
                async for event in iterator:
                    yield event
            finally:
                aclose = getattr(iterator, "aclose", None)
                if aclose is not None:
                    await aclose()
            return

        if not attempted or last_error is None:
            log.error(ALL_MODELS_COOLING_DOWN, chain=self.model_id)
            raise AllModelsCoolingDown(f"all configured models are in cooldown: {self.model_id}")
        raise last_error

    def _active_cooldown(self, index: int) -> _Cooldown | None:
        now = self._clock()
        with self._lock:
            cooldown = self._cooldowns.get(index)
            if cooldown is None:
                return None
            if cooldown.until > now:
                return cooldown
            del self._cooldowns[index]
            return None

    def _next_index(self, index: int) -> int | None:
        nxt = index + 1
        return nxt if nxt < len(self.candidates) else None

    def _skip_cooled(self, index: int, key: str, cooldown: _Cooldown) -> None:
        remaining = max(cooldown.until - self._clock(), 0.0)
        log.info(
            MODEL_COOLDOWN_SKIPPED,
            endpoint=key,
            reason=cooldown.reason.value,
            remaining_seconds=round(remaining, 1),
        )
        nxt = self._next_index(index)
        if self.notify_on_skip and nxt is not None:
            error = CandidateCoolingDown(
                f"Model in cooldown ({cooldown.reason.value}) for another {remaining:.0f}s"
            )
            self._notify(key, error, cooldown.reason, nxt)

    def _record_failure(self, index: int, key: str, error: Exception) -> None:
        reason = classify_fallback_reason(error)
        if reason in self.cooldown_reasons and self.cooldown_seconds > 0:
            with self._lock:
                self._cooldowns[index] = _Cooldown(self._clock() + self.cooldown_seconds, reason)
            log.warning(
                MODEL_COOLDOWN_STARTED,
                endpoint=key,
                reason=reason.value,
                cooldown_seconds=self.cooldown_seconds,
            )

        nxt = self._next_index(index)
        if nxt is not None:
            self._notify(key, error, reason, nxt)

    def _notify(self, failed_key: str, error: BaseException, reason: FallbackReason, index: int) -> None:
        selected_key = endpoint_key(self.candidates[index])
        log.warning(
            MODEL_FALLBACK,
            failed_endpoint=failed_key,
            selected_endpoint=selected_key,
            reason=reason.value,
            fallback_index=index,
            error=str(error),
        )
        if self.on_fallback is not None:
            self.on_fallback(
                FallbackEvent(
                    failed_endpoint=failed_key,
                    error=error,
                    reason=reason,
                    selected_endpoint=selected_key,
                    fallback_index=index,
                )
            )

    def status(self) -> list[dict[str, Any]]:
        """Describe every candidate and its cooldown, for dashboards."""
        now = self._clock()
        wall_now = datetime.now(UTC)
        with self._lock:
            cooldowns = dict(self._cooldowns)

        entries: list[dict[str, Any]] = []
        for index, candidate in enumerate(self.candidates):
            cooldown = cooldowns.get(index)
            in_cooldown = cooldown is not None and cooldown.until > now
            remaining = cooldown.until - now if cooldown is not None and in_cooldown else 0.0
            entries.append(
                {
                    "index": index,
                    "provider": candidate.provider,
                    "model_id": candidate.model_id,
                    "in_cooldown": in_cooldown,
                    "cooldown_until": (wall_now + timedelta(seconds=remaining)).isoformat()
                    if in_cooldown
                    else None,
                    "cooldown_remaining_seconds": remaining,
                    "cooldown_reason": cooldown.reason.value if cooldown is not None and in_cooldown else None,
                }
            )
        return entries

    def reset_cooldowns(self) -> None:
        with self._lock:
            self._cooldowns.clear()


class MultiplexedFallbackModel(FallbackModel):
    """Chain of models served through one multiplexed endpoint.

    Rate limits on such an endpoint are usually per model, so they trigger
    cooldown as well, and cooled candidates are skipped without notifying
    the observer.
    """

    notify_on_skip = False

    @classmethod
    def default_cooldown_reasons(cls) -> frozenset[FallbackReason]:
        return frozenset({FallbackReason.QUOTA_WINDOW, FallbackReason.RATE_LIMIT})
