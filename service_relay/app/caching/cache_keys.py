"""
Cache key construction for relay responses and auxiliary entries.

Keys are URL-shaped so that every entry is addressed relative to the origin
that served it.
"""

import json
from typing import TYPE_CHECKING, Optional
from urllib.parse import urlencode

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from ..domain.conversation import ConversationRequest


def rolling_hash(text: str) -> int:
    """32-bit signed rolling hash (h * 31 + code point), wrapped like int32."""
    value = 0
    for char in text:
        value = (value * 31 + ord(char)) & 0xFFFFFFFF
    if value & 0x80000000:
        value -= 0x100000000
    return value


def serialize_conversation(conversation: "ConversationRequest", voice_id: Optional[str] = None) -> str:
    """Canonical, order-sensitive serialization of the translated conversation."""
    payload = {
        "events": [event.to_message() for event in conversation.events],
        "prompt": conversation.prompt,
    }
    if voice_id:
        payload["voice"] = voice_id
    return json.dumps(payload, ensure_ascii=False, separators=(",", ":"))


def build_response_key(
    origin: str,
    conversation: "ConversationRequest",
    version: str,
    voice_id: Optional[str] = None,
) -> str:
    """Build the response cache key for a translated conversation."""
    digest = rolling_hash(serialize_conversation(conversation, voice_id))
    return f"{origin}/response?hash={digest}&v={version}"


def build_translation_key(origin: str, spreadsheet_id: str, sheet_name: str) -> str:
    """Build the cache key holding fetched translation sheet data."""
    query = urlencode({"spreadsheet-id": spreadsheet_id, "sheet-name": sheet_name})
    return f"{origin}/translations?{query}"


def build_voices_key(origin: str) -> str:
    """Build the cache key holding the speech provider voice list."""
    return f"{origin}/voices"
