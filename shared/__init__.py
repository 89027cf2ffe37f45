"""
Shared utilities for the Redis cache access layer.

This package aggregates common building blocks consumed by services:

- config: Service configuration via pydantic-settings
- logging: Structured logging with request correlation
- metrics: Prometheus metrics helpers
- errors: Canonical error types and responses
- memoize: In-process cache regions with explicit put/evict wrappers
- base_service: FastAPI application skeleton with health and metrics routes
- test_helpers: In-memory Redis double and data factories for tests

Do not import from service packages into shared/.
"""
