"""
Pending OAuth state registry.

Each authorization redirect registers a random state token with the data
needed to finish the flow.  The callback consumes it exactly once; tokens
that are never consumed expire after a TTL and are swept periodically.
"""

import asyncio
import secrets
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

from loguru import logger


@dataclass
class PendingState:
    payload: dict[str, Any]
    created_at: float


class PendingStateStore:
    """In-process, TTL-bounded store of OAuth ``state`` tokens."""

    def __init__(
        self,
        ttl_seconds: float = 900,
        sweep_interval_seconds: float = 300,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self.sweep_interval_seconds = sweep_interval_seconds
        self._clock = clock
        self._states: dict[str, PendingState] = {}
        self._sweeper: Optional[asyncio.Task] = None

    def __len__(self) -> int:
        return len(self._states)

    def create(self, payload: dict[str, Any]) -> str:
        token = secrets.token_hex(32)
        self._states[token] = PendingState(payload=dict(payload), created_at=self._clock())
        return token

    def pop(self, token: str) -> Optional[dict[str, Any]]:
        """Consume *token*; returns None when unknown or expired."""
        state = self._states.pop(token, None)
        if state is None or self._expired(state):
            return None
        return state.payload

    def sweep(self) -> int:
        expired = [token for token, state in self._states.items() if self._expired(state)]
        for token in expired:
            del self._states[token]
        if expired:
            logger.debug("Swept {} expired OAuth states", len(expired))
        return len(expired)

    def _expired(self, state: PendingState) -> bool:
        return self._clock() - state.created_at > self.ttl_seconds

    async def _sweep_forever(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval_seconds)
            self.sweep()

    def start(self) -> None:
        if self._sweeper is None or self._sweeper.done():
            self._sweeper = asyncio.get_running_loop().create_task(self._sweep_forever())

    async def stop(self) -> None:
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        try:
            await self._sweeper
        except asyncio.CancelledError:
            pass
        self._sweeper = None
