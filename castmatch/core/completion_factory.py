"""
Builds text-completion clients from an explicit credential.

A request may carry its own API key; otherwise the configured key or Vertex
project is used. Nothing here is cached at module level.
"""

from __future__ import annotations

from castmatch.core.exceptions import ConfigurationError
from castmatch.core.settings import Settings, settings as default_settings
from castmatch.services.completion import GeminiCompletionClient


def build_completion_client(
    api_key: str | None = None,
    app_settings: Settings | None = None,
) -> GeminiCompletionClient:
    """Build a completion client for one request.

    Raises:
        ConfigurationError: If no API key or GCP project is available.
    """
    cfg = app_settings or default_settings
    key = (api_key or "").strip() or cfg.gemini_api_key
    if not key and not cfg.google_cloud_project:
        raise ConfigurationError(
            "Text completion is not configured. Provide an API key or set GEMINI_API_KEY.",
            detail="text completion is not configured",
        )

    return GeminiCompletionClient(
        api_key=key,
        model=cfg.gemini_text_model,
        project=None if key else cfg.google_cloud_project,
        location=None if key else cfg.google_cloud_location,
        fallback_model=cfg.gemini_fallback_text_model,
        timeout_seconds=cfg.gemini_timeout_seconds,
        max_retries=cfg.gemini_max_retries,
        initial_backoff_seconds=cfg.gemini_initial_backoff_seconds,
        circuit_breaker_threshold=cfg.gemini_circuit_breaker_threshold,
        circuit_breaker_timeout=cfg.gemini_circuit_breaker_timeout,
    )
