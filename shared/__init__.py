"""
Shared utilities for the Chat Relay service.

This package aggregates common building blocks consumed by the service:

- config: Service configuration via pydantic-settings
- logging: Structured logging with request correlation
- metrics: Prometheus metrics helpers
- errors: Canonical error types, result type and responses
- base_service: FastAPI application shell

Service-specific logic lives in service_relay. Do not import from
service_relay into shared/.
"""
