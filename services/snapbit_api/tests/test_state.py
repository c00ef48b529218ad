from http.cookies import SimpleCookie

import pytest
from starlette.requests import Request
from starlette.responses import Response

from services.snapbit_api.app.state import (
    StateCookie,
    bind_state,
    consume_state,
    generate_state,
    read_state,
    validate_state,
)


def _request_with_cookie(header: str | None) -> Request:
    headers = [(b"cookie", header.encode("latin-1"))] if header else []
    return Request({"type": "http", "method": "GET", "path": "/", "headers": headers})


def test_generate_state_is_urlsafe_and_unique():
    values = {generate_state() for _ in range(50)}
    assert len(values) == 50
    for value in values:
        assert len(value) >= 43
        assert set(value) <= set("ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_")


def test_generate_state_refuses_low_entropy():
    with pytest.raises(ValueError):
        generate_state(8)


@pytest.mark.parametrize(
    ("returned", "stored", "expected"),
    [
        ("abc", "abc", True),
        ("abc", "abd", False),
        (None, "abc", False),
        ("abc", None, False),
        ("", "", False),
        (None, None, False),
    ],
)
def test_validate_state(returned, stored, expected):
    assert validate_state(returned, stored) is expected


def test_bind_state_sets_cross_site_cookie():
    response = Response()
    bind_state(response, "state-value", StateCookie(max_age=300))

    header = response.headers["set-cookie"]
    cookie = SimpleCookie()
    cookie.load(header)
    morsel = cookie["oauth_state"]
    assert morsel.value == "state-value"
    assert morsel["max-age"] == "300"
    assert morsel["path"] == "/"
    assert morsel["httponly"]
    assert morsel["secure"]
    assert "samesite=none" in header.lower()


def test_consume_state_expires_cookie():
    response = Response()
    consume_state(response, StateCookie())

    header = response.headers["set-cookie"].lower()
    assert header.startswith("oauth_state=")
    assert "max-age=0" in header
    assert "samesite=none" in header


def test_read_state_returns_cookie_value():
    cookie = StateCookie(name="custom_state")
    assert read_state(_request_with_cookie("custom_state=xyz"), cookie) == "xyz"
    assert read_state(_request_with_cookie("other=1"), cookie) is None
    assert read_state(_request_with_cookie(None), cookie) is None


def test_state_cookie_from_settings(settings):
    cookie = StateCookie.from_settings(settings)
    assert cookie.name == settings.state_cookie_name
    assert cookie.max_age == settings.state_cookie_max_age
    assert cookie.secure is settings.state_cookie_secure
