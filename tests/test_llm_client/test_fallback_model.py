"""Tests for the model fallback resolver."""

import asyncio

import pytest

from agent_core.llm_client.fallback import (
    CandidateCoolingDown,
    FallbackEvent,
    FallbackModel,
    FallbackReason,
    MultiplexedFallbackModel,
    classify_fallback_reason,
)
from agent_core.llm_client.types import (
    AllModelsCoolingDown,
    LLMAborted,
    LLMClientError,
    LLMRateLimit,
    LLMServerError,
    TextDelta,
)

QUOTA_ERROR = LLMServerError("usage limit reached for this time window")


async def collect(model) -> list:
    return [event async for event in model.stream([], [])]


class TestFallback:
    """Test moving along the chain."""

    @pytest.mark.asyncio
    async def test_primary_success_no_callback(self, fake_model) -> None:
        """Test a healthy primary is used and nobody is notified."""
        events: list[FallbackEvent] = []
        primary = fake_model("a", "1", text="primary")
        secondary = fake_model("b", "2")
        chain = FallbackModel([primary, secondary], on_fallback=events.append)

        stream = await collect(chain)

        assert stream[0] == TextDelta(text="primary")
        assert events == []
        assert secondary.opened == 0

    @pytest.mark.asyncio
    async def test_primary_failure_falls_back_once(self, fake_model) -> None:
        """Test one failure produces exactly one fallback and one callback."""
        events: list[FallbackEvent] = []
        primary = fake_model("a", "1", error=RuntimeError("boom"))
        secondary = fake_model("b", "2", text="secondary")
        chain = FallbackModel([primary, secondary], on_fallback=events.append)

        stream = await collect(chain)

        assert stream[0] == TextDelta(text="secondary")
        assert len(events) == 1
        event = events[0]
        assert event.failed_endpoint == "a/1"
        assert event.selected_endpoint == "b/2"
        assert event.fallback_index == 1
        assert event.reason == FallbackReason.UNKNOWN
        assert str(event.error) == "boom"

    @pytest.mark.asyncio
    async def test_abort_is_not_retried(self, fake_model) -> None:
        """Test an aborted request propagates without fallback."""
        events: list[FallbackEvent] = []
        primary = fake_model("a", "1", error=LLMAborted("aborted by caller"))
        secondary = fake_model("b", "2")
        chain = FallbackModel([primary, secondary], on_fallback=events.append)

        with pytest.raises(LLMAborted):
            await collect(chain)

        assert events == []
        assert secondary.opened == 0

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self, fake_model) -> None:
        """Test task cancellation is never treated as a model failure."""
        primary = fake_model("a", "1", error=asyncio.CancelledError())
        secondary = fake_model("b", "2")
        chain = FallbackModel([primary, secondary])

        with pytest.raises(asyncio.CancelledError):
            await collect(chain)

        assert secondary.opened == 0

    @pytest.mark.asyncio
    async def test_exhausted_chain_raises_last_error(self, fake_model) -> None:
        """Test N failing candidates give N-1 callbacks and the last error."""
        events: list[FallbackEvent] = []
        chain = FallbackModel(
            [
                fake_model("a", "1", error=RuntimeError("e1")),
                fake_model("b", "2", error=RuntimeError("e2")),
                fake_model("c", "3", error=RuntimeError("e3")),
            ],
            on_fallback=events.append,
        )

        with pytest.raises(RuntimeError, match="e3"):
            await collect(chain)

        assert [event.fallback_index for event in events] == [1, 2]

    @pytest.mark.asyncio
    async def test_mid_stream_error_not_retried(self, fake_model) -> None:
        """Test errors after the first event reach the caller unchanged."""
        events: list[FallbackEvent] = []
        primary = fake_model("a", "1", mid_stream_error=RuntimeError("connection reset"))
        secondary = fake_model("b", "2")
        chain = FallbackModel([primary, secondary], on_fallback=events.append)

        with pytest.raises(RuntimeError, match="connection reset"):
            await collect(chain)

        assert events == []
        assert secondary.opened == 0
        assert primary.closed is True

    def test_needs_candidates(self) -> None:
        """Test an empty chain is rejected."""
        with pytest.raises(ValueError):
            FallbackModel([])

    def test_chain_identity(self, fake_model) -> None:
        """Test the chain reports its candidates."""
        chain = FallbackModel([fake_model("a", "1"), fake_model("b", "2")])

        assert chain.provider == "fallback(a,b)"
        assert chain.model_id == "fallback(1,2)"


class TestCooldown:
    """Test cooldown bookkeeping."""

    @pytest.mark.asyncio
    async def test_quota_failure_starts_cooldown(self, fake_model, clock) -> None:
        """Test a quota failure skips the candidate until the cooldown ends."""
        events: list[FallbackEvent] = []
        primary = fake_model("a", "1", error=QUOTA_ERROR)
        secondary = fake_model("b", "2")
        chain = FallbackModel(
            [primary, secondary], on_fallback=events.append, cooldown_seconds=60, clock=clock
        )

        await collect(chain)
        await collect(chain)

        assert primary.opened == 1
        assert secondary.opened == 2
        assert len(events) == 2
        skipped = events[1]
        assert isinstance(skipped.error, CandidateCoolingDown)
        assert skipped.reason == FallbackReason.QUOTA_WINDOW

        clock.advance(60)
        await collect(chain)

        assert primary.opened == 2

    @pytest.mark.asyncio
    async def test_duplicate_entries_cool_independently(self, fake_model, clock) -> None:
        """Test the same provider/model listed twice keeps separate cooldowns."""
        first = fake_model("a", "1", error=QUOTA_ERROR)
        second = fake_model("a", "1")
        chain = FallbackModel([first, second], cooldown_seconds=60, clock=clock)

        await collect(chain)
        await collect(chain)

        assert first.opened == 1
        assert second.opened == 2
        status = chain.status()
        assert status[0]["in_cooldown"] is True
        assert status[1]["in_cooldown"] is False

    @pytest.mark.asyncio
    async def test_non_cooldown_reason_retried_every_call(self, fake_model, clock) -> None:
        """Test failures outside the cooldown reasons do not cool the candidate."""
        primary = fake_model("a", "1", error=RuntimeError("boom"))
        chain = FallbackModel([primary, fake_model("b", "2")], clock=clock)

        await collect(chain)
        await collect(chain)

        assert primary.opened == 2

    @pytest.mark.asyncio
    async def test_all_cooling_down(self, fake_model, clock) -> None:
        """Test a chain whose every candidate is cooling down."""
        chain = FallbackModel(
            [fake_model("a", "1", error=QUOTA_ERROR), fake_model("b", "2", error=QUOTA_ERROR)],
            clock=clock,
        )

        with pytest.raises(LLMServerError):
            await collect(chain)
        with pytest.raises(AllModelsCoolingDown):
            await collect(chain)

    @pytest.mark.asyncio
    async def test_custom_cooldown_reasons(self, fake_model, clock) -> None:
        """Test cooldown reasons can be given as strings."""
        primary = fake_model("a", "1", error=LLMClientError("nope", status=401))
        chain = FallbackModel([primary, fake_model("b", "2")], cooldown_reasons=["auth"], clock=clock)

        await collect(chain)
        await collect(chain)

        assert primary.opened == 1

    @pytest.mark.asyncio
    async def test_zero_cooldown_disables(self, fake_model, clock) -> None:
        """Test cooldown_seconds=0 never cools a candidate."""
        primary = fake_model("a", "1", error=QUOTA_ERROR)
        chain = FallbackModel([primary, fake_model("b", "2")], cooldown_seconds=0, clock=clock)

        await collect(chain)
        await collect(chain)

        assert primary.opened == 2

    @pytest.mark.asyncio
    async def test_multiplexed_rate_limit_skips_silently(self, fake_model, clock) -> None:
        """Test rate limits cool multiplexed candidates and skips are not reported."""
        events: list[FallbackEvent] = []
        primary = fake_model("hub", "m1", error=LLMRateLimit("slow down", status=429))
        chain = MultiplexedFallbackModel(
            [primary, fake_model("hub", "m2")], on_fallback=events.append, clock=clock
        )

        await collect(chain)
        await collect(chain)

        assert primary.opened == 1
        assert len(events) == 1
        assert events[0].reason == FallbackReason.RATE_LIMIT

    @pytest.mark.asyncio
    async def test_status_and_reset(self, fake_model, clock) -> None:
        """Test the status report and clearing cooldowns."""
        chain = FallbackModel(
            [fake_model("a", "1", error=QUOTA_ERROR), fake_model("b", "2")],
            cooldown_seconds=100,
            clock=clock,
        )
        await collect(chain)
        clock.advance(40)

        status = chain.status()

        assert status[0]["in_cooldown"] is True
        assert status[0]["cooldown_reason"] == "quota-window"
        assert status[0]["cooldown_remaining_seconds"] == pytest.approx(60)
        assert status[0]["cooldown_until"] is not None
        assert status[1]["in_cooldown"] is False
        assert status[1]["cooldown_until"] is None

        chain.reset_cooldowns()

        assert all(entry["in_cooldown"] is False for entry in chain.status())


class _StatusCodeError(Exception):
    status_code = 429


@pytest.mark.parametrize(
    ("error", "reason"),
    [
        (LLMRateLimit("quota exceeded", status=429), FallbackReason.RATE_LIMIT),
        (_StatusCodeError("x"), FallbackReason.RATE_LIMIT),
        (LLMClientError("x", status=403), FallbackReason.AUTH),
        (RuntimeError("You exceeded your current quota"), FallbackReason.QUOTA_WINDOW),
        (RuntimeError("insufficient_quota"), FallbackReason.QUOTA_WINDOW),
        (RuntimeError("Too Many Requests"), FallbackReason.RATE_LIMIT),
        (RuntimeError("Invalid API key provided"), FallbackReason.AUTH),
        (TimeoutError(), FallbackReason.NETWORK),
        (RuntimeError("fetch failed"), FallbackReason.NETWORK),
        (RuntimeError("something odd"), FallbackReason.UNKNOWN),
    ],
)
def test_classify_fallback_reason(error: BaseException, reason: FallbackReason) -> None:
    """Test failure classification, status codes first."""
    assert classify_fallback_reason(error) == reason
