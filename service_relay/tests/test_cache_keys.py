"""
Unit tests for relay cache key construction.
"""

from service_relay.app.caching.cache_keys import (
    build_response_key,
    build_translation_key,
    build_voices_key,
    rolling_hash,
    serialize_conversation,
)
from service_relay.app.domain.conversation import ChatEvent, ConversationRequest


def conversation(prompt="hello", events=None):
    return ConversationRequest(prompt=prompt, events=events or [])


class TestRollingHash:
    """Test cases for rolling_hash."""

    def test_empty_string(self):
        assert rolling_hash("") == 0

    def test_short_strings(self):
        assert rolling_hash("a") == 97
        assert rolling_hash("ab") == 97 * 31 + 98

    def test_matches_int32_string_hash(self):
        assert rolling_hash("hello") == 99162322

    def test_wraps_to_signed_32_bits(self):
        assert rolling_hash("polygenelubricants") == -2147483648

    def test_is_order_sensitive(self):
        assert rolling_hash("ab") != rolling_hash("ba")


class TestResponseKey:
    """Test cases for build_response_key."""

    def test_serialization_is_compact_and_ordered(self):
        conv = conversation("hi", [ChatEvent("user", "yo")])

        assert serialize_conversation(conv) == '{"events":[{"role":"user","content":"yo"}],"prompt":"hi"}'

    def test_serialization_keeps_unicode(self):
        assert serialize_conversation(conversation("café")) == '{"events":[],"prompt":"café"}'

    def test_key_format(self):
        conv = conversation()
        digest = rolling_hash(serialize_conversation(conv))

        key = build_response_key("https://relay.example.com", conv, "2")

        assert key == f"https://relay.example.com/response?hash={digest}&v=2"

    def test_same_inputs_same_key(self):
        events = [ChatEvent("user", "one"), ChatEvent("assistant", "two")]

        first = build_response_key("https://o", conversation("p", list(events)), "2")
        second = build_response_key("https://o", conversation("p", list(events)), "2")

        assert first == second

    def test_event_order_changes_key(self):
        forward = conversation("p", [ChatEvent("user", "one"), ChatEvent("user", "two")])
        backward = conversation("p", [ChatEvent("user", "two"), ChatEvent("user", "one")])

        assert build_response_key("https://o", forward, "2") != build_response_key("https://o", backward, "2")

    def test_version_changes_key(self):
        conv = conversation()

        assert build_response_key("https://o", conv, "2") != build_response_key("https://o", conv, "3")

    def test_voice_changes_key(self):
        conv = conversation()

        assert build_response_key("https://o", conv, "2") != build_response_key("https://o", conv, "2", "voice-1")


class TestAuxiliaryKeys:
    """Test cases for translation and voice keys."""

    def test_translation_key(self):
        key = build_translation_key("https://o", "sheet id", "fr")

        assert key == "https://o/translations?spreadsheet-id=sheet+id&sheet-name=fr"

    def test_voices_key(self):
        assert build_voices_key("https://o") == "https://o/voices"
