"""
Request orchestration for the relay.

normalize → translate → cache lookup → gateway call → assemble. Each stage
returns ``Ok`` or ``Err``; nothing below the HTTP boundary chooses a status
code.
"""

import json
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, List, Optional
from urllib.parse import urlencode

from shared.errors import Err, Ok, ProcessingFailed, RelayError, Result
from shared.logging import get_logger
from ..caching.cache_keys import build_response_key, build_voices_key
from ..caching.response_cache import CachedResponse, ResponseCache
from .conversation import ConversationRequest, InboundRequest, normalize_request
from .translation import TranslatorLifecycle, apply_translation, resolve_system_prompt

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.config import ServiceConfig
    from shared.metrics import MetricsCollector
    from ..adapters.gateway_client import GatewayClient

CACHE_CLEARED_TEXT = "Cache cleared"


def build_messages(system_prompt: str, conversation: ConversationRequest) -> List[Dict[str, str]]:
    """System message, then history in order, then the prompt as the user turn."""
    messages = [{"role": "system", "content": system_prompt}]
    messages.extend(event.to_message() for event in conversation.events)
    messages.append({"role": "user", "content": conversation.prompt})
    return messages


@dataclass
class PipelineResponse:
    response: CachedResponse
    cache_key: Optional[str] = None
    from_cache: bool = False

    @property
    def should_persist(self) -> bool:
        return self.cache_key is not None and not self.from_cache


class ResponseAssembler:
    """Shapes outgoing payloads and writes them through to the cache."""

    def __init__(
        self,
        cache: ResponseCache,
        *,
        max_age: int = 86400,
        speech_enabled: bool = False,
        default_voice_id: Optional[str] = None,
    ):
        self.cache = cache
        self.max_age = max_age
        self.speech_enabled = speech_enabled
        self.default_voice_id = default_voice_id
        self.logger = get_logger("relay.assembler")

    def voice_for(self, requested: Optional[str]) -> Optional[str]:
        if not self.speech_enabled:
            return None
        return requested or self.default_voice_id

    def voice_link(self, origin: str, text: str, voice_id: str) -> str:
        return f"{origin}/tts?{urlencode({'voice-id': voice_id, 'text': text})}"

    def assemble(self, text: str, origin: str, voice_id: Optional[str] = None) -> CachedResponse:
        payload = {"response": text}
        if voice_id:
            payload["voice"] = self.voice_link(origin, text, voice_id)
        return CachedResponse(
            status_code=200,
            body=json.dumps(payload, ensure_ascii=False),
            headers={
                "Content-Type": "application/json",
                "Cache-Control": f"public, max-age={self.max_age}",
            },
        )

    def confirmation(self, text: str) -> CachedResponse:
        return CachedResponse(
            status_code=200,
            body=json.dumps({"response": text}),
            headers={"Content-Type": "application/json", "Cache-Control": "no-store"},
        )

    async def persist(self, key: str, response: CachedResponse) -> None:
        """Best-effort write; a failure is logged, never raised."""
        try:
            stored = await self.cache.put(key, response, self.max_age)
        except Exception as exc:
            self.logger.error("Response cache write failed", key=key, error=str(exc))
            return
        if not stored:
            self.logger.warning("Response cache write skipped", key=key)


class ChatPipeline:
    """Runs one inbound request through the relay."""

    def __init__(
        self,
        config: "ServiceConfig",
        cache: ResponseCache,
        gateway: "GatewayClient",
        translators: TranslatorLifecycle,
        assembler: ResponseAssembler,
        metrics: Optional["MetricsCollector"] = None,
    ):
        self.config = config
        self.cache = cache
        self.gateway = gateway
        self.translators = translators
        self.assembler = assembler
        self.metrics = metrics
        self.logger = get_logger("relay.pipeline")

    async def handle(self, inbound: InboundRequest) -> Result[PipelineResponse]:
        if inbound.method.upper() in ("GET", "POST") and inbound.clear_cache:
            await self.clear_caches(inbound.origin)
            return Ok(PipelineResponse(self.assembler.confirmation(CACHE_CLEARED_TEXT)))

        normalized = normalize_request(inbound)
        if isinstance(normalized, Err):
            return normalized
        conversation = normalized.value

        ready = await self.translators.ensure_ready(inbound.origin)
        if isinstance(ready, Err):
            return ready
        translator = ready.value

        apply_translation(conversation, translator)

        voice_id = self.assembler.voice_for(conversation.voice_id)
        cache_key = build_response_key(
            inbound.origin,
            conversation,
            self.config.cache_format_version,
            voice_id,
        )

        cached = await self.cache.get(cache_key)
        self._record_cache("response", cached is not None)
        if cached is not None:
            self.logger.info("Serving cached response", cache_key=cache_key)
            return Ok(PipelineResponse(cached, cache_key, from_cache=True))

        system_prompt = resolve_system_prompt(
            translator,
            conversation.system_prompt_key or self.config.system_prompt_key,
            self.config.system_prompt,
        )
        if isinstance(system_prompt, Err):
            return system_prompt

        completion = await self._invoke_gateway(system_prompt.value, conversation)
        if isinstance(completion, Err):
            return completion

        response = self.assembler.assemble(completion.value, inbound.origin, voice_id)
        return Ok(PipelineResponse(response, cache_key))

    async def _invoke_gateway(self, system_prompt: str, conversation: ConversationRequest) -> Result[str]:
        messages = build_messages(system_prompt, conversation)
        start = time.perf_counter()
        try:
            text = await self.gateway.complete(messages)
        except RelayError as exc:
            self._record_gateway("error", start)
            return Err(exc)
        except Exception as exc:
            self.logger.error("Gateway invocation failed", error=str(exc), exc_info=True)
            self._record_gateway("error", start)
            return Err(ProcessingFailed(str(exc)))

        self._record_gateway("ok", start)
        return Ok(text)

    async def clear_caches(self, origin: str) -> None:
        cleared = await self.translators.clear(origin)
        if self.assembler.speech_enabled:
            cleared = await self.cache.delete(build_voices_key(origin)) and cleared
        self.logger.info("Cache clear requested", origin=origin, cleared=cleared)

    def _record_cache(self, cache_type: str, hit: bool) -> None:
        if self.metrics:
            self.metrics.record_cache_access(cache_type, hit)

    def _record_gateway(self, outcome: str, start: float) -> None:
        if not self.metrics:
            return
        self.metrics.increment_counter("gateway_requests_total", outcome=outcome)
        self.metrics.get_metric("gateway_request_duration_seconds").observe(time.perf_counter() - start)
