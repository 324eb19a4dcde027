"""
Token store for the CSRF service.

Tokens are opaque random identifiers held in memory together with their
absolute expiry time. A token can be consumed at most once: a successful
``check`` removes it inside the same critical section that validated it.
Expired entries are invisible to ``check`` immediately and are physically
removed by a periodic reclaim sweep running as an asyncio task.
"""

import asyncio
import threading
import time
import uuid
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional

from shared.errors import InvalidTokenError
from shared.logging import get_logger


class TokenProvider(ABC):
    """Generates, stores and consumes single-use tokens."""

    @abstractmethod
    async def issue(self) -> str:
        """Create a new unique token and remember it until it expires."""

    @abstractmethod
    async def check(self, token: str) -> None:
        """Consume ``token``.

        Must raise :class:`InvalidTokenError` if the token is unknown or
        expired, and must delete the token when it is found.
        """


class InMemoryTokenStore(TokenProvider):
    """Process-local token store with a background reclaim sweep."""

    def __init__(
        self,
        token_ttl: float,
        reclaim_interval: float,
        *,
        shutdown: Optional[asyncio.Event] = None,
        clock: Callable[[], float] = time.time,
        on_reclaim: Optional[Callable[[int], None]] = None,
    ):
        if token_ttl <= 0:
            raise ValueError("token_ttl must be a positive duration")
        if reclaim_interval <= 0:
            raise ValueError("reclaim_interval must be a positive duration")

        self.token_ttl = token_ttl
        self.reclaim_interval = reclaim_interval
        self.logger = get_logger("csrf.token_store")

        self._tokens: Dict[str, float] = {}
        self._lock = threading.Lock()
        self._clock = clock
        self._on_reclaim = on_reclaim

        # A store-owned signal is recreated on every start so the sweep can restart
        self._owns_shutdown = shutdown is None
        self._shutdown = shutdown if shutdown is not None else asyncio.Event()
        self._reclaim_task: Optional[asyncio.Task] = None

    def __len__(self) -> int:
        with self._lock:
            return len(self._tokens)

    async def __aenter__(self) -> "InMemoryTokenStore":
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()

    @property
    def running(self) -> bool:
        return self._reclaim_task is not None and not self._reclaim_task.done()

    async def start(self):
        """Start the reclaim sweep."""
        if self.running:
            return
        if self._owns_shutdown:
            self._shutdown = asyncio.Event()
        if self._shutdown.is_set():
            self.logger.warning("Token store shutdown already signalled, sweep not started")
            return
        self._reclaim_task = asyncio.create_task(self._reclaim_loop())
        self.logger.info(
            "Token store started",
            token_ttl=self.token_ttl,
            reclaim_interval=self.reclaim_interval,
        )

    async def stop(self):
        """Stop the reclaim sweep. Issued tokens stay valid."""
        self._shutdown.set()
        if self._reclaim_task:
            try:
                await self._reclaim_task
            except asyncio.CancelledError:
                pass
            self._reclaim_task = None
            self.logger.info("Token store stopped", outstanding_tokens=len(self))

    async def issue(self) -> str:
        with self._lock:
            token = str(uuid.uuid4())
            while token in self._tokens:
                token = str(uuid.uuid4())
            self._tokens[token] = self._clock() + self.token_ttl
        return token

    async def check(self, token: str) -> None:
        with self._lock:
            expires_at = self._tokens.pop(token, None)
            # Expired entries are dropped here too, not only by the sweep
            if expires_at is None or self._clock() >= expires_at:
                raise InvalidTokenError()

    def stats(self) -> Dict[str, Any]:
        """Snapshot of store state for health reporting."""
        return {
            "active_tokens": len(self),
            "token_ttl_seconds": self.token_ttl,
            "reclaim_interval_seconds": self.reclaim_interval,
            "running": self.running,
        }

    def _reclaim_expired(self) -> int:
        """Remove every expired entry under one critical section."""
        with self._lock:
            now = self._clock()
            expired = [token for token, expires_at in self._tokens.items() if now >= expires_at]
            for token in expired:
                del self._tokens[token]
        return len(expired)

    async def _reclaim_loop(self):
        """Periodic sweep, parked on the shutdown signal between runs."""
        while not self._shutdown.is_set():
            try:
                await asyncio.wait_for(self._shutdown.wait(), timeout=self.reclaim_interval)
                break
            except asyncio.TimeoutError:
                pass
            except asyncio.CancelledError:
                break

            try:
                removed = self._reclaim_expired()
                if removed:
                    self.logger.debug("Reclaimed expired tokens", removed=removed)
                if self._on_reclaim is not None:
                    self._on_reclaim(removed)
            except Exception as e:
                self.logger.error("Error in reclaim loop", error=str(e))
