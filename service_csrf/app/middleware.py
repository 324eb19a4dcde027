"""
Anti-forgery guard for state-changing requests.
"""

from typing import Awaitable, Callable, Iterable, Optional, Sequence

from fastapi import Request, Response
from fastapi.responses import JSONResponse

from shared.errors import CSRFError
from shared.logging import get_logger
from shared.metrics import MetricsCollector
from .validation import CSRFValidator, TokenSource

ErrorHandler = Callable[[Request, CSRFError], Awaitable[Response]]

SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS", "TRACE"})


async def default_error_handler(request: Request, exc: CSRFError) -> Response:
    """Render a CSRF failure as a standard error response."""
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_response().model_dump()
    )


class CSRFMiddleware:
    """Validates the anti-forgery token before a request reaches its handler.

    Usable with ``app.middleware("http")(CSRFMiddleware(...))``.
    """

    def __init__(
        self,
        validator: CSRFValidator,
        sources: Sequence[TokenSource],
        *,
        error_handler: Optional[ErrorHandler] = None,
        safe_methods: Iterable[str] = SAFE_METHODS,
        exempt_paths: Iterable[str] = (),
        metrics: Optional[MetricsCollector] = None,
    ):
        if not sources:
            raise ValueError("at least one token source is required")

        self.validator = validator
        self.sources = tuple(sources)
        self.error_handler = error_handler or default_error_handler
        self.safe_methods = frozenset(m.upper() for m in safe_methods)
        self.exempt_paths = frozenset(exempt_paths)
        self.metrics = metrics
        self.logger = get_logger("csrf.middleware")

    def requires_validation(self, request: Request) -> bool:
        """Return True if the request must carry a valid token."""
        if request.method.upper() in self.safe_methods:
            return False
        return request.url.path not in self.exempt_paths

    async def __call__(self, request: Request, call_next) -> Response:
        if not self.requires_validation(request):
            return await call_next(request)

        try:
            await self.validator.validate(request, *self.sources)
        except CSRFError as e:
            self.logger.warning(
                "CSRF validation failed",
                code=e.code,
                method=request.method,
                path=request.url.path,
            )
            self._record(e.code)
            return await self.error_handler(request, e)

        self._record("ok")
        return await call_next(request)

    def _record(self, result: str):
        if self.metrics:
            self.metrics.increment_counter("csrf_validations_total", result=result)
