"""Unit tests for the Streamlit editor's API client."""

import httpx
import pytest

from frontend.app import APIClient

BASE = "http://api.test"


def respond(status: int, **kwargs):
    def fake(url, **_):
        return httpx.Response(status, request=httpx.Request("POST", url), **kwargs)

    return fake


class TestAPIClient:
    @pytest.fixture
    def client(self):
        return APIClient(BASE)

    def test_preview_json_body(self, client, monkeypatch):
        monkeypatch.setattr(httpx, "post", respond(200, json={"requestId": 1}))
        assert client.preview("f", "c", {}) == (200, {"requestId": 1})

    def test_preview_non_json_error_page(self, client, monkeypatch):
        monkeypatch.setattr(httpx, "post", respond(502, text="<html>Bad Gateway</html>"))

        status, body = client.preview("f", "c", {})

        assert status == 502
        assert body["detail"].startswith("HTTP 502: <html>Bad Gateway")

    def test_save_non_json_error_page(self, client, monkeypatch):
        monkeypatch.setattr(httpx, "put", respond(504, text="Gateway Timeout"))

        ok, body = client.save("f", "c", "custom-placeholders", {"customPlaceholders": []})

        assert ok is False
        assert body == {"detail": "HTTP 504: Gateway Timeout"}
