"""Tests for adapter results and the per-site aggregate."""

import asyncio

import pytest

from rivalbot.core.result import (
    AdapterResult,
    PhaseTimings,
    Signal,
    SiteAnalysis,
    capture,
    from_outcome,
)


class TestCapture:
    """Tests for capture()."""

    @pytest.mark.asyncio
    async def test_wraps_plain_value(self):
        """Test a returned value becomes a success."""
        async def call():
            return {"score": 90}

        result = await capture("Adapter", call)
        assert result.ok
        assert result.data == {"score": 90}

    @pytest.mark.asyncio
    async def test_timeout_becomes_timeout_reason(self):
        """Test asyncio timeouts are reported with the 'timeout' reason."""
        async def call():
            raise asyncio.TimeoutError()

        result = await capture("Adapter", call)
        assert not result.ok
        assert result.reason == "timeout"

    @pytest.mark.asyncio
    async def test_call_deadline(self):
        """Test a call running past its deadline is cancelled as a timeout."""
        cancelled = asyncio.Event()

        async def call():
            try:
                await asyncio.sleep(5)
            except asyncio.CancelledError:
                cancelled.set()
                raise

        result = await capture("Adapter", call, timeout=0.01)
        assert result.reason == "timeout"
        assert cancelled.is_set()

    @pytest.mark.asyncio
    async def test_deadline_not_reached(self):
        """Test a call finishing within its deadline is a success."""
        async def call():
            return {"score": 90}

        result = await capture("Adapter", call, timeout=1)
        assert result.data == {"score": 90}

    @pytest.mark.asyncio
    async def test_exception_becomes_failure(self):
        """Test arbitrary exceptions become failures carrying the message."""
        async def call():
            raise ValueError("bad markup")

        result = await capture("Adapter", call)
        assert not result.ok
        assert result.reason == "bad markup"
        assert result.error_detail == "ValueError"

    @pytest.mark.asyncio
    async def test_adapter_result_passes_through(self):
        """Test an AdapterResult returned by the call is not re-wrapped."""
        failure = AdapterResult.failure("No API key configured")

        async def call():
            return failure

        assert await capture("Adapter", call) is failure


class TestFromOutcome:
    """Tests for from_outcome()."""

    def test_exception_outcome(self):
        """Test gathered exceptions become failures."""
        result = from_outcome("pagespeed", RuntimeError("boom"))
        assert not result.ok
        assert result.reason == "boom"

    def test_exception_without_message(self):
        """Test an empty exception message falls back to the class name."""
        result = from_outcome("pagespeed", RuntimeError())
        assert result.reason == "RuntimeError"

    def test_plain_outcome(self):
        """Test plain values become successes."""
        assert from_outcome("traffic", {"a": 1}).data == {"a": 1}


class TestSiteAnalysis:
    """Tests for SiteAnalysis."""

    def test_missing_signal_is_failure(self):
        """Test a signal that was never collected reads as a failure."""
        analysis = SiteAnalysis(domain="example.com")
        assert not analysis.is_ok(Signal.LIGHTHOUSE)
        assert analysis.result(Signal.LIGHTHOUSE).reason == "not collected"

    def test_failed_backlinks_payload_shape(self):
        """Test the unavailable backlinks shape keeps zero totals."""
        analysis = SiteAnalysis(domain="example.com")
        analysis.signals[Signal.BACKLINKS] = AdapterResult.failure("No API key configured")

        payload = analysis.payload(Signal.BACKLINKS)
        assert payload["available"] is False
        assert payload["error"] == "No API key configured"
        assert payload["totalBacklinks"] == 0
        assert payload["totalRefDomains"] == 0

    def test_failed_page_render_payload_shape(self):
        """Test a failed page render exposes success False and the reason."""
        analysis = SiteAnalysis(domain="example.com")
        analysis.signals[Signal.PAGE_RENDER] = AdapterResult.failure("timeout")
        assert analysis.payload(Signal.PAGE_RENDER) == {"success": False, "error": "timeout"}

    def test_to_dict_has_every_signal(self):
        """Test serialization covers every signal plus performance timings."""
        analysis = SiteAnalysis(domain="example.com", timings=PhaseTimings(10, 20, 30, 65))
        analysis.signals[Signal.PAGESPEED] = AdapterResult.success({"dataAvailable": True})

        rendered = analysis.to_dict()
        for signal in Signal:
            assert signal.value in rendered
        assert rendered["pagespeed"] == {"dataAvailable": True}
        assert rendered["_performance"] == {
            "totalTime": 65,
            "phase1Time": 10,
            "phase2Time": 20,
            "phase3Time": 30,
        }

    def test_adapter_result_to_dict(self):
        """Test the tagged serialization of both variants."""
        assert AdapterResult.success(1).to_dict() == {"ok": True, "data": 1}
        assert AdapterResult.failure("x", "Y").to_dict() == {"ok": False, "reason": "x", "errorDetail": "Y"}
