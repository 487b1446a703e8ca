"""
Model gateway client for the relay.
"""

import json
from typing import Any, Dict, List, Optional

import httpx

from shared.logging import get_logger
from shared.errors import GatewayError, ServerConfigurationError

NO_RESPONSE_TEXT = "No response generated"


class GatewayClient:
    """Client for the upstream chat-completion gateway.

    One call per request: no retries and no circuit breaker, so a failure
    surfaces to the caller immediately.
    """

    def __init__(
        self,
        gateway_url: Optional[str],
        api_key: Optional[str],
        *,
        gateway_token: Optional[str] = None,
        auth_header: str = "cf-aig-authorization",
        model: str = "gpt-4o-mini",
        max_tokens: int = 150,
        timeout: Optional[float] = None,
    ):
        self.gateway_url = gateway_url
        self.api_key = api_key
        self.gateway_token = gateway_token
        self.auth_header = auth_header
        self.model = model
        self.max_tokens = max_tokens
        self.timeout = timeout
        self.logger = get_logger("relay.gateway_client")

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        if self.gateway_token:
            headers[self.auth_header] = self.gateway_token
        return headers

    def build_payload(self, messages: List[Dict[str, str]]) -> Dict[str, Any]:
        return {
            "model": self.model,
            "messages": messages,
            "max_tokens": self.max_tokens,
        }

    async def complete(self, messages: List[Dict[str, str]]) -> str:
        """Send the conversation and return the completion text."""
        if not self.gateway_url or not self.api_key:
            raise ServerConfigurationError(
                "AI gateway not configured",
                details={"gateway_url": bool(self.gateway_url), "api_key": bool(self.api_key)}
            )

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    self.gateway_url,
                    json=self.build_payload(messages),
                    headers=self._headers(),
                )
        except httpx.HTTPError as exc:
            self.logger.error("AI gateway transport error", error=str(exc))
            raise GatewayError(502, f"AI Gateway error: 502 {exc.__class__.__name__}")

        if not response.is_success:
            self.logger.error(
                "AI gateway request failed",
                status_code=response.status_code,
                reason=response.reason_phrase,
                response=response.text
            )
            raise GatewayError(
                response.status_code,
                f"AI Gateway error: {response.status_code} {response.reason_phrase}".rstrip(),
                details={"status_code": response.status_code}
            )

        return self.extract_text(response)

    def extract_text(self, response: httpx.Response) -> str:
        """Pull the first completion out of a 2xx response body."""
        try:
            data = response.json()
            content = data["choices"][0]["message"]["content"]
        except (json.JSONDecodeError, KeyError, IndexError, TypeError) as exc:
            self.logger.warning("Unparseable gateway completion", error=str(exc))
            return NO_RESPONSE_TEXT

        if not content or not isinstance(content, str):
            return NO_RESPONSE_TEXT
        return content
