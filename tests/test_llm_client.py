"""Tests for the text generation client, using httpx's mock transport."""

import json

import httpx
import pytest

from homework_app.config import LLMSettings
from homework_app.services.llm_client import LLMClient, parse_json_response


def _client(handler, **settings):
    return LLMClient(LLMSettings(**settings), transport=httpx.MockTransport(handler))


def test_generate_sends_expected_payload():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"response": "  Three quarters.  "})

    client = _client(handler, model="llama3", temperature=0.1)

    assert client.generate("Explain 3/4", max_tokens=42) == "Three quarters."
    assert seen["path"] == "/api/generate"
    assert seen["body"]["model"] == "llama3"
    assert seen["body"]["prompt"] == "Explain 3/4"
    assert seen["body"]["stream"] is False
    assert seen["body"]["options"]["num_predict"] == 42
    assert seen["body"]["options"]["temperature"] == 0.1
    assert seen["body"]["options"]["top_p"] == 0.9


def test_disabled_client_makes_no_request():
    def handler(request):
        pytest.fail("no request expected")

    client = _client(handler, enabled=False)

    assert client.generate("anything") is None
    assert client.is_available() is False


@pytest.mark.parametrize("status", [404, 500, 503])
def test_non_success_status_returns_none(status):
    client = _client(lambda request: httpx.Response(status, text="boom"))
    assert client.generate("prompt") is None


def test_timeout_returns_none():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    assert _client(handler).generate("prompt", timeout=0.5) is None


def test_connection_error_returns_none():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    assert _client(handler).generate("prompt") is None


def test_blank_or_missing_response_returns_none():
    assert _client(lambda r: httpx.Response(200, json={"response": "   "})).generate("p") is None
    assert _client(lambda r: httpx.Response(200, json={"done": True})).generate("p") is None


def test_non_json_body_returns_none():
    assert _client(lambda r: httpx.Response(200, text="<html>")).generate("p") is None


def test_is_available():
    def handler(request):
        assert request.url.path == "/api/tags"
        return httpx.Response(200, json={"models": []})

    assert _client(handler).is_available() is True
    assert _client(lambda r: httpx.Response(500)).is_available() is False


class TestParseJsonResponse:
    def test_embedded_object(self):
        text = 'Here is the answer:\n{"explanation": "x", "n": 1}\nThanks'
        assert parse_json_response(text) == {"explanation": "x", "n": 1}

    def test_no_object(self):
        assert parse_json_response("no braces here") is None

    def test_malformed_object(self):
        assert parse_json_response("{explanation: nope}") is None
