"""
CSRF token service.

Issues single-use anti-forgery tokens and guards state-changing routes with
them.
"""

from typing import Any, Dict, Optional

from shared.base_service import BaseService
from shared.config import CSRFConfig, get_csrf_config
from .middleware import CSRFMiddleware
from .tokens import InMemoryTokenStore
from .validation import CSRFValidator, form_token_source, header_source


class CSRFService(BaseService):
    """Token issuance and validation service."""

    def __init__(self, config: Optional[CSRFConfig] = None):
        config = config or get_csrf_config()
        self.token_store = InMemoryTokenStore(
            config.csrf_token_ttl_seconds,
            config.csrf_reclaim_interval_seconds,
            on_reclaim=self._on_reclaim,
        )
        self.validator = CSRFValidator(self.token_store)
        self.token_sources = (
            header_source(config.csrf_header_name),
            form_token_source(config.csrf_form_field),
        )

        super().__init__(config.service_name, config.port, config=config)
        self.metrics.track_gauge("csrf_active_tokens", lambda: len(self.token_store))
        self._setup_csrf_routes()

    async def startup(self):
        await self.token_store.start()

    async def shutdown(self):
        await self.token_store.stop()

    def _setup_middleware(self):
        # Registered first so request timing wraps rejected requests too
        self.csrf_middleware = CSRFMiddleware(
            self.validator,
            self.token_sources,
            exempt_paths=("/health", "/metrics"),
            metrics=self.metrics,
        )
        self.app.middleware("http")(self.csrf_middleware)
        super()._setup_middleware()

    def _setup_csrf_routes(self):
        """Set up token routes."""

        @self.app.get("/api/v1/csrf/token")
        async def issue_token():
            """Issue a new anti-forgery token."""
            token = await self.validator.get_token()
            self.metrics.increment_counter("csrf_tokens_issued_total")
            return {
                "token": token,
                "expires_in": self.token_store.token_ttl,
            }

        @self.app.post("/api/v1/csrf/validate")
        async def validate_token():
            """Reached only after the middleware consumed a valid token."""
            return {"valid": True}

    async def _check_dependencies(self) -> Dict[str, Any]:
        return {"token_store": self.token_store.stats()}

    def _on_reclaim(self, removed: int):
        if removed:
            self.metrics.increment_counter("csrf_tokens_reclaimed_total", removed)


def create_app(config: Optional[CSRFConfig] = None):
    """Create FastAPI application."""
    service = CSRFService(config)
    return service.app


if __name__ == "__main__":
    service = CSRFService()
    service.run()
