"""
Chat Relay HTTP service.
"""

from typing import Any, Dict, Optional

from fastapi import Query, Request, Response
from starlette.background import BackgroundTask

from shared.base_service import BaseService
from shared.config import ServiceConfig, get_config
from shared.errors import Err, MissingParameter
from .adapters.gateway_client import GatewayClient
from .adapters.speech_client import SpeechClient
from .adapters.translation_source import SheetTranslationSource
from .caching.cache_keys import build_voices_key
from .caching.response_cache import ResponseCache
from .domain.conversation import InboundRequest
from .domain.pipeline import ChatPipeline, PipelineResponse, ResponseAssembler
from .domain.translation import TranslatorLifecycle

SERVICE_NAME = "relay"
DEFAULT_PORT = 8000
CATCH_ALL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]
PREFLIGHT_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "*",
    "Access-Control-Max-Age": "86400",
}


def request_origin(request: Request) -> str:
    return f"{request.url.scheme}://{request.url.netloc}"


class RelayService(BaseService):
    """Relay service implementation."""

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        *,
        cache: Optional[ResponseCache] = None,
        gateway_client: Optional[GatewayClient] = None,
        translation_source: Optional[SheetTranslationSource] = None,
        speech_client: Optional[SpeechClient] = None,
    ):
        super().__init__(SERVICE_NAME, DEFAULT_PORT, config)

        self.cache = cache or ResponseCache(self.config.redis_url)
        self.gateway_client = gateway_client or GatewayClient(
            self.config.ai_gateway_url,
            self.config.openai_api_key,
            gateway_token=self.config.ai_gateway_token,
            auth_header=self.config.gateway_auth_header,
            model=self.config.model,
            max_tokens=self.config.max_tokens,
            timeout=self.config.gateway_timeout,
        )
        if translation_source is None and self.config.translation_enabled:
            translation_source = SheetTranslationSource(
                self.config.spreadsheet_id,
                self.config.sheet_name,
                self.config.sheets_service_key_json,
                value_column=self.config.translation_column,
            )
        if speech_client is None and self.config.speech_enabled:
            speech_client = SpeechClient(
                self.config.speech_api_url,
                self.config.speech_api_key,
                default_voice_id=self.config.default_voice_id,
            )
        self.speech_client = speech_client

        self.translators = TranslatorLifecycle(
            translation_source,
            self.cache,
            cache_ttl=self.config.translation_max_age,
            metrics=self.metrics,
        )
        self.assembler = ResponseAssembler(
            self.cache,
            max_age=self.config.response_max_age,
            speech_enabled=self.speech_client is not None,
            default_voice_id=self.config.default_voice_id,
        )
        self.pipeline = ChatPipeline(
            self.config,
            self.cache,
            self.gateway_client,
            self.translators,
            self.assembler,
            metrics=self.metrics,
        )

        @self.app.on_event("shutdown")
        async def _shutdown():
            await self.cache.close()

        if self.speech_client is not None:
            self._setup_speech_routes()
        self._setup_relay_routes()

        # Expose service instance via app state for introspection/testing
        self.app.state.relay_service = self

    async def _check_dependencies(self) -> Dict[str, Any]:
        return {
            "redis": "ok" if await self.cache.ping() else "unavailable",
            "translator": self.translators.state.value if self.translators.enabled else "disabled",
            "speech": "enabled" if self.speech_client else "disabled",
        }

    def _to_http(self, outcome: PipelineResponse) -> Response:
        cached = outcome.response
        headers = dict(cached.headers)
        media_type = headers.pop("Content-Type", "application/json")
        if outcome.cache_key is not None:
            headers["X-Cache"] = "HIT" if outcome.from_cache else "MISS"

        background = None
        if outcome.should_persist:
            background = BackgroundTask(self.assembler.persist, outcome.cache_key, cached)

        return Response(
            content=cached.body,
            status_code=cached.status_code,
            headers=headers,
            media_type=media_type,
            background=background,
        )

    def _setup_speech_routes(self):
        """Voice catalogue and text-to-speech passthrough; only mounted with a speech client."""

        @self.app.get("/voices")
        async def list_voices(request: Request):
            speech = self.speech_client
            key = build_voices_key(request_origin(request))
            voices = await self.cache.get_json(key)
            self.metrics.record_cache_access("voices", voices is not None)
            if voices is None:
                voices = await speech.list_voices()
                await self.cache.put_json(key, voices, self.config.translation_max_age)
            return {"voices": voices}

        @self.app.get("/tts")
        async def text_to_speech(
            text: Optional[str] = Query(default=None),
            voice_id: Optional[str] = Query(default=None, alias="voice-id"),
        ):
            speech = self.speech_client
            if not text:
                raise MissingParameter("text")
            voice = voice_id or speech.default_voice_id
            if not voice:
                raise MissingParameter("voice-id")
            audio = await speech.synthesize(text, voice)
            return Response(
                content=audio,
                media_type="audio/mpeg",
                headers={"Cache-Control": f"public, max-age={self.config.response_max_age}"},
            )

    def _setup_relay_routes(self):
        """Catch-all conversational relay route; registered last."""

        @self.app.api_route("/{path:path}", methods=CATCH_ALL_METHODS, include_in_schema=False)
        async def relay(request: Request, path: str):
            if request.method == "OPTIONS" and self.config.cors_enabled:
                return Response(status_code=204, headers=PREFLIGHT_HEADERS)

            inbound = InboundRequest(
                method=request.method,
                origin=request_origin(request),
                query=dict(request.query_params),
                body=await request.body() if request.method == "POST" else b"",
            )
            result = await self.pipeline.handle(inbound)
            if isinstance(result, Err):
                return self.error_response(result.error)
            return self._to_http(result.value)


def create_app(config: Optional[ServiceConfig] = None, **collaborators):
    """ASGI application factory."""
    service = RelayService(config, **collaborators)
    return service.app


if __name__ == "__main__":
    RelayService(get_config(SERVICE_NAME, DEFAULT_PORT)).run()
