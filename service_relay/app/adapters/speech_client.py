"""
Speech synthesis client for the relay's text-to-speech side path.
"""

from typing import Any, Dict, List, Optional

import httpx

from shared.logging import get_logger
from shared.errors import ServerConfigurationError, SpeechServiceError


class SpeechClient:
    """Thin client for a voice-id addressed text-to-speech API."""

    def __init__(self, api_url: str, api_key: Optional[str], default_voice_id: Optional[str] = None):
        self.api_url = api_url.rstrip("/")
        self.api_key = api_key
        self.default_voice_id = default_voice_id
        self.logger = get_logger("relay.speech_client")

    def _headers(self) -> Dict[str, str]:
        if not self.api_key:
            raise ServerConfigurationError("Speech synthesis not configured")
        return {"xi-api-key": self.api_key}

    def _raise_for_status(self, response: httpx.Response, operation: str) -> None:
        if response.is_success:
            return
        self.logger.error(
            "Speech provider request failed",
            operation=operation,
            status_code=response.status_code,
            response=response.text
        )
        raise SpeechServiceError(
            response.status_code,
            f"Speech service error: {response.status_code}",
            details={"operation": operation}
        )

    async def synthesize(self, text: str, voice_id: str) -> bytes:
        """Return the audio rendering of text in the given voice."""
        headers = self._headers()
        headers["Accept"] = "audio/mpeg"
        async with httpx.AsyncClient(timeout=30.0) as client:
            response = await client.post(
                f"{self.api_url}/text-to-speech/{voice_id}",
                json={"text": text},
                headers=headers,
            )
        self._raise_for_status(response, "synthesize")
        return response.content

    async def list_voices(self) -> List[Dict[str, Any]]:
        """Return the provider's voice catalogue."""
        async with httpx.AsyncClient(timeout=10.0) as client:
            response = await client.get(f"{self.api_url}/voices", headers=self._headers())
        self._raise_for_status(response, "list_voices")
        return response.json().get("voices", [])
