"""
Unit tests for CSRFMiddleware.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.testclient import TestClient

from service_csrf.app.middleware import CSRFMiddleware
from service_csrf.app.tokens import InMemoryTokenStore
from service_csrf.app.validation import CSRFValidator, form_token_source, header_token_source
from shared.metrics import MetricsCollector


class TestCSRFMiddleware:
    """Test cases for CSRFMiddleware."""

    @pytest.fixture
    def store(self):
        return InMemoryTokenStore(token_ttl=60, reclaim_interval=60)

    @pytest.fixture
    def validator(self, store):
        return CSRFValidator(store)

    @pytest.fixture
    def metrics(self):
        return MetricsCollector("csrf")

    @pytest.fixture
    def app(self, validator, metrics):
        """Create an app with one guarded form route."""
        app = FastAPI()
        app.middleware("http")(
            CSRFMiddleware(
                validator,
                [header_token_source, form_token_source("csrf_token")],
                exempt_paths=["/webhook"],
                metrics=metrics,
            )
        )

        @app.get("/form")
        async def form():
            return {"ok": True}

        @app.post("/submit")
        async def submit(request: Request):
            form = await request.form()
            return {"name": form.get("name")}

        @app.post("/webhook")
        async def webhook():
            return {"ok": True}

        return app

    @pytest.fixture
    def client(self, app):
        return TestClient(app)

    def issue(self, store) -> str:
        return asyncio.run(store.issue())

    def test_requires_sources(self, validator):
        with pytest.raises(ValueError):
            CSRFMiddleware(validator, [])

    def test_safe_method_passes(self, client):
        response = client.get("/form")

        assert response.status_code == 200

    def test_exempt_path_passes(self, client):
        response = client.post("/webhook")

        assert response.status_code == 200

    def test_missing_token_rejected(self, client, metrics):
        """Test unsafe requests without a token get 403."""
        response = client.post("/submit", data={"name": "x"})

        assert response.status_code == 403
        assert response.json()["code"] == "INVALID_CSRF_TOKEN"
        assert metrics.registry.get_sample_value(
            "csrf_validations_total", {"result": "INVALID_CSRF_TOKEN"}
        ) == 1.0

    def test_header_token_accepted_once(self, client, store, metrics):
        """Test a header token is consumed by the first request."""
        token = self.issue(store)

        first = client.post("/submit", data={"name": "x"}, headers={"X-CSRF-Token": token})
        second = client.post("/submit", data={"name": "x"}, headers={"X-CSRF-Token": token})

        assert first.status_code == 200
        assert first.json() == {"name": "x"}
        assert second.status_code == 403
        assert metrics.registry.get_sample_value("csrf_validations_total", {"result": "ok"}) == 1.0

    def test_form_token_accepted(self, client, store):
        """Test the handler can still read the form after the middleware parsed it."""
        token = self.issue(store)

        response = client.post("/submit", data={"name": "x", "csrf_token": token})

        assert response.status_code == 200
        assert response.json() == {"name": "x"}

    def test_inconsistent_sources_rejected(self, client, store):
        """Test header and form disagreeing yields 400 and keeps the token."""
        token = self.issue(store)

        response = client.post(
            "/submit",
            data={"csrf_token": "forged"},
            headers={"X-CSRF-Token": token},
        )

        assert response.status_code == 400
        assert response.json()["code"] == "INCONSISTENT_CSRF_TOKEN"
        assert len(store) == 1

    def test_custom_error_handler(self, validator, store):
        """Test the caller-supplied error handler renders failures."""
        handler = AsyncMock(return_value=PlainTextResponse("nope", status_code=419))
        app = FastAPI()
        app.middleware("http")(CSRFMiddleware(validator, [header_token_source], error_handler=handler))

        @app.post("/submit")
        async def submit():
            return JSONResponse({"ok": True})

        response = TestClient(app).post("/submit")

        assert response.status_code == 419
        assert response.text == "nope"
        handler.assert_awaited_once()
        assert handler.await_args.args[1].code == "INVALID_CSRF_TOKEN"
