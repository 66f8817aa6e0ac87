import pytest
from fastapi import FastAPI

from castmatch.core.telemetry import OTLP_ENDPOINT_ENV, setup_telemetry, trace_span


def test_disabled_without_endpoint(monkeypatch):
    monkeypatch.delenv(OTLP_ENDPOINT_ENV, raising=False)
    assert setup_telemetry(FastAPI()) is False


def test_trace_span_passes_exceptions_through():
    with pytest.raises(KeyError):
        with trace_span("casting.test", candidate_count=2, strategy=None):
            raise KeyError("boom")
