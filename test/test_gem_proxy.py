"""
Tests for the GeM search proxy (encoder, forwarder, Flask route)
"""
import logging
from unittest.mock import Mock

import pytest
import requests

import gem_settings
from gem_proxy import INTERNAL_ERROR_BODY, build_headers, encode_search_body, forward_search
from conftest import make_docs, make_response, page_body


@pytest.fixture(autouse=True)
def upstream_settings(monkeypatch):
    monkeypatch.setattr(gem_settings, "GEM_SEARCH_URL", "https://upstream.test/search-bids")
    monkeypatch.setattr(gem_settings, "GEM_CSRF_TOKEN", "tok123")
    monkeypatch.setattr(gem_settings, "GEM_COOKIE", "csrf_gem_cookie=tok123; ci_session=abc")
    monkeypatch.setattr(gem_settings, "GEM_SESSION_EXPIRES_AT", "")
    monkeypatch.setattr(gem_settings, "GEM_UPSTREAM_TIMEOUT", 30.0)


def test_encode_matches_uri_component_encoding():
    body = encode_search_body({"organization": "Rourkela Steel Plant", "page": 2}, "tok123")

    assert body == (
        "payload=%7B%22organization%22%3A%22Rourkela%20Steel%20Plant%22%2C%22page%22%3A2%7D"
        "&csrf_bd_gem_nk=tok123"
    )


def test_encode_leaves_unreserved_marks():
    body = encode_search_body({"q": "a-b_c.d!e~f*g'h(i)"}, "t")

    assert "a-b_c.d!e~f*g'h(i)" in body


def test_headers_mimic_browser():
    headers = build_headers()

    assert headers["Content-Type"] == "application/x-www-form-urlencoded; charset=UTF-8"
    assert headers["X-Requested-With"] == "XMLHttpRequest"
    assert headers["Cookie"] == "csrf_gem_cookie=tok123; ci_session=abc"
    assert headers["Origin"] == gem_settings.GEM_ORIGIN
    assert headers["Referer"] == gem_settings.GEM_REFERER


def test_forward_relays_upstream_json():
    data = page_body(make_docs(2))
    session = Mock()
    session.post.return_value = make_response(body=data)

    body, status = forward_search({"page": 1, "rows": 10}, session=session)

    assert (body, status) == (data, 200)
    call = session.post.call_args
    assert call.args[0] == "https://upstream.test/search-bids"
    assert call.kwargs["data"] == b"payload=%7B%22page%22%3A1%2C%22rows%22%3A10%7D&csrf_bd_gem_nk=tok123"
    assert call.kwargs["timeout"] == 30.0
    assert call.kwargs["headers"]["User-Agent"] == gem_settings.GEM_USER_AGENT


def test_forward_wraps_upstream_error():
    session = Mock()
    session.post.return_value = make_response(403, text="Forbidden by WAF", json_error=True)

    body, status = forward_search({"page": 1}, session=session)

    assert status == 403
    assert body == {"message": "External API request failed", "error": "Forbidden by WAF"}


def test_forward_maps_exceptions_to_500():
    session = Mock()
    session.post.side_effect = requests.ConnectionError("dns failure")

    assert forward_search({"page": 1}, session=session) == (INTERNAL_ERROR_BODY, 500)


def test_forward_rejects_non_object_payload():
    session = Mock()

    assert forward_search(["not", "a", "filter"], session=session) == (INTERNAL_ERROR_BODY, 500)
    session.post.assert_not_called()


def test_forward_warns_on_expired_credentials(monkeypatch, caplog):
    monkeypatch.setattr(gem_settings, "GEM_SESSION_EXPIRES_AT", "2000-01-01T00:00:00Z")
    session = Mock()
    session.post.return_value = make_response(body=page_body([]))

    with caplog.at_level(logging.WARNING, logger="gem-proxy"):
        forward_search({"page": 1}, session=session)

    assert "expired" in caplog.text
    session.post.assert_called_once()


def test_forward_ignores_unparseable_expiry(monkeypatch, caplog):
    monkeypatch.setattr(gem_settings, "GEM_SESSION_EXPIRES_AT", "tomorrow morning")
    data = page_body(make_docs(1))
    session = Mock()
    session.post.return_value = make_response(body=data)

    with caplog.at_level(logging.WARNING, logger="gem-settings"):
        assert forward_search({"page": 1}, session=session) == (data, 200)

    assert "GEM_SESSION_EXPIRES_AT" in caplog.text
    session.post.assert_called_once()


def test_forward_non_json_success_body_is_500():
    session = Mock()
    session.post.return_value = make_response(200, text="<html>login</html>", json_error=True)

    assert forward_search({"page": 1}, session=session) == (INTERNAL_ERROR_BODY, 500)
    session.post.assert_called_once()


class TestSearchRoute:

    @pytest.fixture
    def client(self):
        from app import app
        app.config["TESTING"] = True
        return app.test_client()

    def test_route_forwards_json(self, client, monkeypatch):
        fake = Mock(return_value=(page_body(make_docs(1)), 200))
        monkeypatch.setattr("app.forward_search", fake)

        resp = client.post("/api/search-bids", json={"page": 3, "rows": 10})

        assert resp.status_code == 200
        assert resp.get_json()["response"]["response"]["docs"][0]["id"] == "doc-0"
        fake.assert_called_once_with({"page": 3, "rows": 10})

    def test_route_passes_upstream_status(self, client, monkeypatch):
        monkeypatch.setattr(
            "app.forward_search",
            Mock(return_value=({"message": "External API request failed", "error": "x"}, 504)),
        )

        resp = client.post("/api/search-bids", json={"page": 1})

        assert resp.status_code == 504
        assert resp.get_json()["error"] == "x"

    def test_route_bad_json_is_500(self, client, monkeypatch):
        fake = Mock()
        monkeypatch.setattr("app.forward_search", fake)

        resp = client.post("/api/search-bids", data="{not json", content_type="application/json")

        assert resp.status_code == 500
        assert resp.get_json() == INTERNAL_ERROR_BODY
        fake.assert_not_called()
