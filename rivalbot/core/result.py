"""
Adapter Results
===============

Tagged success/failure values returned by every source adapter, and the
per-site aggregate the single-site analyzer builds from them.
"""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

from loguru import logger

T = TypeVar("T")


class Signal(str, Enum):
    """Named signals collected for one site."""
    PAGE_RENDER = "pageRender"
    LIGHTHOUSE = "lighthouse"
    PAGESPEED = "pagespeed"
    TECHNICAL_SEO = "technicalSEO"
    TRAFFIC = "traffic"
    BACKLINKS = "backlinks"
    CONTENT_CHANGES = "contentChanges"
    CONTENT_UPDATES = "contentUpdates"


@dataclass(frozen=True)
class AdapterResult(Generic[T]):
    """Outcome of one adapter call: ``ok`` with ``data``, or a failure ``reason``."""
    ok: bool
    data: Optional[T] = None
    reason: str = ""
    error_detail: Optional[str] = None

    @classmethod
    def success(cls, data: T) -> "AdapterResult[T]":
        return cls(ok=True, data=data)

    @classmethod
    def failure(cls, reason: str, error_detail: Optional[str] = None) -> "AdapterResult[T]":
        return cls(ok=False, reason=reason, error_detail=error_detail)

    def to_dict(self) -> dict:
        if self.ok:
            return {"ok": True, "data": self.data}
        payload = {"ok": False, "reason": self.reason}
        if self.error_detail:
            payload["errorDetail"] = self.error_detail
        return payload


async def capture(
    name: str, call: Callable[[], Awaitable[T]], timeout: Optional[float] = None
) -> AdapterResult[T]:
    """
    Await *call* and wrap its outcome.

    Any exception raised by the adapter body is converted into a failure
    result; nothing escapes to the caller.  A returned ``AdapterResult`` is
    passed through unchanged.  With *timeout*, the whole call is cancelled
    after that many seconds and recorded as a ``"timeout"`` failure.
    """
    try:
        if timeout is None:
            value = await call()
        else:
            value = await asyncio.wait_for(call(), timeout)
    except asyncio.TimeoutError as exc:
        logger.warning("{} timed out", name)
        return AdapterResult.failure("timeout", str(exc) or None)
    except Exception as exc:
        logger.warning("{} failed: {}", name, exc)
        return AdapterResult.failure(str(exc) or exc.__class__.__name__, exc.__class__.__name__)
    if isinstance(value, AdapterResult):
        return value
    return AdapterResult.success(value)


def from_outcome(name: str, outcome: Any) -> AdapterResult:
    """Normalize one entry of ``asyncio.gather(..., return_exceptions=True)``."""
    if isinstance(outcome, AdapterResult):
        return outcome
    if isinstance(outcome, BaseException):
        logger.warning("{} raised {}: {}", name, outcome.__class__.__name__, outcome)
        return AdapterResult.failure(str(outcome) or outcome.__class__.__name__,
                                     outcome.__class__.__name__)
    return AdapterResult.success(outcome)


def _unavailable(signal: Signal, error: str) -> dict:
    """Consumer-facing placeholder for a signal whose adapter failed."""
    if signal is Signal.PAGE_RENDER:
        return {"success": False, "error": error or "Analysis failed"}
    if signal is Signal.LIGHTHOUSE:
        return {"dataAvailable": False, "error": error or "Audit failed"}
    if signal is Signal.PAGESPEED:
        return {"dataAvailable": False, "error": error or "PageSpeed failed"}
    if signal is Signal.TECHNICAL_SEO:
        return {"score": 0, "error": error or "Technical SEO failed"}
    if signal is Signal.TRAFFIC:
        return {"success": False, "error": error or "Traffic data unavailable"}
    if signal is Signal.BACKLINKS:
        return {
            "available": False,
            "error": error or "Backlinks data unavailable",
            "totalBacklinks": 0,
            "totalRefDomains": 0,
        }
    if signal is Signal.CONTENT_CHANGES:
        return {"success": False, "error": error or "ChangeDetection unavailable"}
    if signal is Signal.CONTENT_UPDATES:
        return {"error": error or "Content updates unavailable"}
    raise ValueError(f"Unknown signal: {signal}")


@dataclass(frozen=True)
class PhaseTimings:
    """Wall-clock phase durations in milliseconds."""
    phase1: int = 0
    phase2: int = 0
    phase3: int = 0
    total: int = 0

    def to_dict(self) -> dict:
        return {
            "totalTime": self.total,
            "phase1Time": self.phase1,
            "phase2Time": self.phase2,
            "phase3Time": self.phase3,
        }


@dataclass
class SiteAnalysis:
    """All signal outcomes gathered for one domain."""
    domain: str
    signals: dict[Signal, AdapterResult] = field(default_factory=dict)
    timings: PhaseTimings = field(default_factory=PhaseTimings)

    def result(self, signal: Signal) -> AdapterResult:
        return self.signals.get(signal) or AdapterResult.failure("not collected")

    def is_ok(self, signal: Signal) -> bool:
        return self.result(signal).ok

    def payload(self, signal: Signal) -> dict:
        """Success data for *signal*, or its documented unavailable shape."""
        outcome = self.result(signal)
        if outcome.ok:
            return outcome.data if outcome.data is not None else {}
        return _unavailable(signal, outcome.reason)

    def to_dict(self) -> dict:
        rendered: dict[str, Any] = {signal.value: self.payload(signal) for signal in Signal}
        rendered["_performance"] = self.timings.to_dict()
        return rendered
