"""
Unit tests for the model gateway client.
"""

import pytest
import httpx
from unittest.mock import AsyncMock, patch

from service_relay.app.adapters.gateway_client import NO_RESPONSE_TEXT, GatewayClient
from shared.errors import GatewayError, ServerConfigurationError

from .conftest import GATEWAY_URL


MESSAGES = [
    {"role": "system", "content": "You are a helpful assistant."},
    {"role": "user", "content": "hello"},
]


def gateway_response(status_code, payload=None, text=None):
    request = httpx.Request("POST", GATEWAY_URL)
    if payload is not None:
        return httpx.Response(status_code=status_code, json=payload, request=request)
    return httpx.Response(status_code=status_code, text=text or "", request=request)


class TestGatewayClient:
    """Test cases for GatewayClient."""

    @pytest.fixture
    def gateway_client(self):
        return GatewayClient(GATEWAY_URL, "sk-test", gateway_token="gw-token", model="gpt-4o-mini", max_tokens=150)

    @pytest.mark.asyncio
    async def test_complete_success(self, gateway_client):
        """Test a completion is returned from the first choice."""
        body = {"choices": [{"message": {"role": "assistant", "content": "Hi!"}}]}

        with patch('httpx.AsyncClient') as mock_client:
            post = AsyncMock(return_value=gateway_response(200, body))
            mock_client.return_value.__aenter__.return_value.post = post

            result = await gateway_client.complete(MESSAGES)

        assert result == "Hi!"
        args, kwargs = post.call_args
        assert args[0] == GATEWAY_URL
        assert kwargs["json"] == {"model": "gpt-4o-mini", "messages": MESSAGES, "max_tokens": 150}
        assert kwargs["headers"]["Authorization"] == "Bearer sk-test"
        assert kwargs["headers"]["cf-aig-authorization"] == "gw-token"
        assert kwargs["headers"]["Content-Type"] == "application/json"

    def test_gateway_token_header_optional(self):
        client = GatewayClient(GATEWAY_URL, "sk-test")

        headers = client._headers()

        assert "cf-aig-authorization" not in headers

    def test_custom_auth_header(self):
        client = GatewayClient(GATEWAY_URL, "sk-test", gateway_token="t", auth_header="x-gateway-auth")

        assert client._headers()["x-gateway-auth"] == "t"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [
        {"choices": []},
        {"choices": [{"message": {"content": ""}}]},
        {"choices": [{"message": {"content": None}}]},
        {"unexpected": True},
    ])
    async def test_missing_completion_uses_placeholder(self, gateway_client, body):
        with patch('httpx.AsyncClient') as mock_client:
            mock_client.return_value.__aenter__.return_value.post = AsyncMock(
                return_value=gateway_response(200, body)
            )

            result = await gateway_client.complete(MESSAGES)

        assert result == NO_RESPONSE_TEXT

    @pytest.mark.asyncio
    async def test_non_json_success_uses_placeholder(self, gateway_client):
        with patch('httpx.AsyncClient') as mock_client:
            mock_client.return_value.__aenter__.return_value.post = AsyncMock(
                return_value=gateway_response(200, text="<html>")
            )

            result = await gateway_client.complete(MESSAGES)

        assert result == NO_RESPONSE_TEXT

    @pytest.mark.asyncio
    async def test_upstream_error_status_is_mirrored(self, gateway_client):
        """Test a non-2xx gateway status becomes a GatewayError with that status."""
        with patch('httpx.AsyncClient') as mock_client:
            mock_client.return_value.__aenter__.return_value.post = AsyncMock(
                return_value=gateway_response(429, text='{"error": "rate limited"}')
            )

            with pytest.raises(GatewayError) as exc_info:
                await gateway_client.complete(MESSAGES)

        assert exc_info.value.status_code == 429
        assert exc_info.value.message == "AI Gateway error: 429 Too Many Requests"

    @pytest.mark.asyncio
    async def test_transport_error_maps_to_bad_gateway(self, gateway_client):
        with patch('httpx.AsyncClient') as mock_client:
            mock_client.return_value.__aenter__.return_value.post = AsyncMock(
                side_effect=httpx.ConnectError("connection refused")
            )

            with pytest.raises(GatewayError) as exc_info:
                await gateway_client.complete(MESSAGES)

        assert exc_info.value.status_code == 502
        assert exc_info.value.message == "AI Gateway error: 502 ConnectError"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("url,key", [(None, "sk-test"), (GATEWAY_URL, None), ("", "")])
    async def test_unconfigured(self, url, key):
        client = GatewayClient(url, key)

        with patch('httpx.AsyncClient') as mock_client:
            with pytest.raises(ServerConfigurationError):
                await client.complete(MESSAGES)

        mock_client.assert_not_called()
