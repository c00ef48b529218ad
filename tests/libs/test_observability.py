from __future__ import annotations

import json
import logging

from fastapi import FastAPI
from fastapi.testclient import TestClient

from libs.observability.logging import JsonLogFormatter, RequestContextMiddleware, get_correlation_id


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("snapbit.test", logging.INFO, __file__, 1, "callback handled", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_redacts_oauth_secrets():
    formatter = JsonLogFormatter("snapbit-api")

    payload = json.loads(
        formatter.format(
            _record(
                access_token="at-secret",
                code="auth-code",
                state="anti-forgery",
                client_secret="cs",
                user_id="12345",
                status_code=502,
            )
        )
    )

    assert payload["message"] == "callback handled"
    assert payload["service"] == "snapbit-api"
    for key in ("access_token", "code", "state", "client_secret"):
        assert payload[key] == "[redacted]"
    assert payload["user_id"] == "12345"
    assert payload["status_code"] == 502


def test_json_formatter_stringifies_unserialisable_extras():
    formatter = JsonLogFormatter("snapbit-api")

    payload = json.loads(formatter.format(_record(error=ValueError("boom"))))

    assert payload["error"] == "boom"


def test_request_context_middleware_propagates_correlation_id():
    app = FastAPI()
    app.add_middleware(RequestContextMiddleware, service_name="snapbit-api")

    @app.get("/probe")
    async def probe():
        return {"correlation_id": get_correlation_id()}

    client = TestClient(app)

    echoed = client.get("/probe", headers={"X-Correlation-ID": "corr-1"})
    assert echoed.json() == {"correlation_id": "corr-1"}
    assert echoed.headers["X-Correlation-ID"] == "corr-1"

    generated = client.get("/probe")
    assert generated.headers["X-Correlation-ID"] == generated.json()["correlation_id"]
    assert generated.headers["X-Request-ID"]
