"""
Conversation model and inbound request normalization.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from shared.errors import (
    Err,
    InvalidEventsFormat,
    InvalidJsonBody,
    MethodNotAllowed,
    MissingPrompt,
    Ok,
    Result,
)

ALLOWED_METHODS = ("GET", "POST")
PROMPT_FIELDS = ("prompt", "finalPrompt")


@dataclass
class ChatEvent:
    """A role-tagged message from the conversation history."""

    role: str
    content: str

    def to_message(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass
class ConversationRequest:
    """Validated conversation plus the request-scoped options."""

    prompt: str
    events: List[ChatEvent] = field(default_factory=list)
    system_prompt_key: Optional[str] = None
    voice_id: Optional[str] = None


@dataclass
class InboundRequest:
    """Transport-neutral view of an incoming HTTP request."""

    method: str
    origin: str
    query: Mapping[str, str] = field(default_factory=dict)
    body: bytes = b""

    @property
    def clear_cache(self) -> bool:
        return "clear-cache" in self.query


def _first_present(source: Mapping[str, Any], names) -> Optional[Any]:
    for name in names:
        value = source.get(name)
        if value:
            return value
    return None


def _parse_events(raw: Any) -> Result[List[ChatEvent]]:
    # An empty query value means no history
    if raw is None or raw == "":
        return Ok([])

    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as exc:
            return Err(InvalidEventsFormat(str(exc)))

    if not isinstance(raw, list):
        return Err(InvalidEventsFormat("Events must be an array"))

    events: List[ChatEvent] = []
    for item in raw:
        role = item.get("role") if isinstance(item, dict) else None
        content = item.get("content") if isinstance(item, dict) else None
        if not (role and content and isinstance(role, str) and isinstance(content, str)):
            return Err(InvalidEventsFormat('Each event must have "role" and "content"'))
        events.append(ChatEvent(role=role, content=content))
    return Ok(events)


def _parse_body(body: bytes) -> Result[Dict[str, Any]]:
    try:
        data = json.loads(body or b"")
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        return Err(InvalidJsonBody(str(exc)))

    if not isinstance(data, dict):
        return Err(InvalidJsonBody("Body must be a JSON object"))
    return Ok(data)


def normalize_request(inbound: InboundRequest) -> Result[ConversationRequest]:
    """Extract and validate the prompt and events of a GET or POST request.

    GET reads ``prompt`` (or legacy ``finalPrompt``) and a JSON-encoded
    ``events`` array from the query string; POST reads the same fields from a
    JSON object body. Event content is left untouched.
    """
    method = inbound.method.upper()
    if method not in ALLOWED_METHODS:
        return Err(MethodNotAllowed(method))

    if method == "GET":
        source: Mapping[str, Any] = inbound.query
    else:
        parsed = _parse_body(inbound.body)
        if isinstance(parsed, Err):
            return parsed
        source = parsed.value

    prompt = _first_present(source, PROMPT_FIELDS)
    if not prompt or not isinstance(prompt, str):
        return Err(MissingPrompt())

    events = _parse_events(source.get("events"))
    if isinstance(events, Err):
        return events

    return Ok(ConversationRequest(
        prompt=prompt,
        events=events.value,
        system_prompt_key=inbound.query.get("system-prompt") or None,
        voice_id=inbound.query.get("voice-id") or None,
    ))
