"""
Multi-source token validation.
"""

import asyncio
from typing import Any

from shared.errors import InconsistentTokenError, InvalidTokenError
from ..tokens.store import TokenProvider
from .sources import TokenSource


class CSRFValidator:
    """Reconciles a token across request channels and consumes it from the provider."""

    def __init__(self, provider: TokenProvider):
        self.provider = provider

    async def get_token(self) -> str:
        """Issue a new token to hand to the client."""
        return await self.provider.issue()

    async def extract(self, request: Any, *sources: TokenSource) -> str:
        """Apply ``sources`` in order and return the agreed token.

        Empty candidates are skipped. Every non-empty candidate must equal
        the first one, otherwise :class:`InconsistentTokenError` is raised.
        Returns an empty string if no source carried a token.
        """
        if not sources:
            raise ValueError("at least one token source is required")

        token = ""
        for source in sources:
            candidate = source(request)
            if asyncio.iscoroutine(candidate):
                candidate = await candidate
            candidate = candidate or ""

            if not candidate:
                continue
            if not token:
                token = candidate
            elif candidate != token:
                raise InconsistentTokenError()

        return token

    async def validate(self, request: Any, *sources: TokenSource) -> None:
        """Validate and consume the token carried by ``request``.

        Raises :class:`InvalidTokenError` if no source carried a token or the
        provider rejects it, :class:`InconsistentTokenError` if sources
        disagree, and ``ValueError`` if called without sources.
        """
        token = await self.extract(request, *sources)
        if not token:
            raise InvalidTokenError()

        await self.provider.check(token)
