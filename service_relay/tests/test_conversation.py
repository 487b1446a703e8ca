"""
Unit tests for request normalization.
"""

import json

import pytest

from shared.errors import Err, Ok
from service_relay.app.domain.conversation import ChatEvent, InboundRequest, normalize_request


def get_request(**query):
    return InboundRequest(method="GET", origin="https://o", query=query)


def post_request(payload, query=None):
    body = payload if isinstance(payload, bytes) else json.dumps(payload).encode()
    return InboundRequest(method="POST", origin="https://o", query=query or {}, body=body)


class TestNormalizeGet:
    """GET query-string requests."""

    def test_prompt_only(self):
        result = normalize_request(get_request(prompt="hello"))

        assert isinstance(result, Ok)
        assert result.value.prompt == "hello"
        assert result.value.events == []

    def test_prompt_wins_over_legacy_name(self):
        result = normalize_request(get_request(prompt="new", finalPrompt="old"))

        assert result.value.prompt == "new"

    def test_legacy_prompt(self):
        result = normalize_request(get_request(finalPrompt="old"))

        assert result.value.prompt == "old"

    def test_events_parsed(self):
        events = json.dumps([{"role": "user", "content": "a"}, {"role": "assistant", "content": "b"}])

        result = normalize_request(get_request(prompt="p", events=events))

        assert result.value.events == [ChatEvent("user", "a"), ChatEvent("assistant", "b")]

    def test_empty_events_means_no_history(self):
        result = normalize_request(get_request(prompt="hi", events=""))

        assert isinstance(result, Ok)
        assert result.value.events == []

    def test_request_options(self):
        result = normalize_request(get_request(prompt="p", **{"system-prompt": "KEY", "voice-id": "v1"}))

        assert result.value.system_prompt_key == "KEY"
        assert result.value.voice_id == "v1"

    @pytest.mark.parametrize("query", [{}, {"prompt": ""}, {"finalPrompt": ""}])
    def test_missing_prompt(self, query):
        result = normalize_request(get_request(**query))

        assert isinstance(result, Err)
        assert result.kind == "MISSING_PROMPT"
        assert result.status_code == 400

    def test_missing_prompt_checked_before_events(self):
        result = normalize_request(get_request(events="not json"))

        assert result.kind == "MISSING_PROMPT"

    def test_events_not_json(self):
        result = normalize_request(get_request(prompt="p", events="[oops"))

        assert result.kind == "INVALID_EVENTS_FORMAT"
        assert result.message.startswith('Invalid "events" format: ')

    def test_events_not_array(self):
        result = normalize_request(get_request(prompt="p", events='"text"'))

        assert result.message == 'Invalid "events" format: Events must be an array'

    @pytest.mark.parametrize("event", [
        {"role": "user"},
        {"content": "x"},
        {"role": "", "content": "x"},
        {"role": "user", "content": ""},
        {"role": "user", "content": 5},
        "just a string",
    ])
    def test_invalid_event(self, event):
        result = normalize_request(get_request(prompt="p", events=json.dumps([event])))

        assert result.status_code == 400
        assert result.message == 'Invalid "events" format: Each event must have "role" and "content"'


class TestNormalizePost:
    """POST JSON-body requests."""

    def test_body_fields(self):
        result = normalize_request(post_request({
            "prompt": "hi",
            "events": [{"role": "user", "content": "earlier"}],
        }))

        assert result.value.prompt == "hi"
        assert result.value.events == [ChatEvent("user", "earlier")]

    def test_legacy_body_prompt(self):
        result = normalize_request(post_request({"finalPrompt": "hi"}))

        assert result.value.prompt == "hi"

    def test_events_may_be_encoded_string(self):
        result = normalize_request(post_request({
            "prompt": "hi",
            "events": json.dumps([{"role": "user", "content": "x"}]),
        }))

        assert result.value.events == [ChatEvent("user", "x")]

    def test_query_prompt_is_ignored(self):
        result = normalize_request(post_request({}, query={"prompt": "from query"}))

        assert result.kind == "MISSING_PROMPT"

    @pytest.mark.parametrize("body", [b"", b"{broken", b"[1, 2]", b'"text"'])
    def test_invalid_body(self, body):
        result = normalize_request(post_request(body))

        assert result.kind == "INVALID_JSON_BODY"
        assert result.status_code == 400

    def test_non_string_prompt(self):
        result = normalize_request(post_request({"prompt": 42}))

        assert result.kind == "MISSING_PROMPT"


class TestMethods:
    """Method gate."""

    @pytest.mark.parametrize("method", ["PUT", "DELETE", "PATCH", "OPTIONS"])
    def test_rejected(self, method):
        result = normalize_request(InboundRequest(method=method, origin="https://o", query={"prompt": "p"}))

        assert result.kind == "METHOD_NOT_ALLOWED"
        assert result.status_code == 405

    def test_clear_cache_flag(self):
        assert get_request(**{"clear-cache": ""}).clear_cache is True
        assert get_request(prompt="p").clear_cache is False
