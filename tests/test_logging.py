import json
import logging

from castmatch.core.logging import RequestIdFilter, StructuredJsonFormatter
from castmatch.core.request_context import reset_request_id, run_context, set_request_id


def _record(msg="match_run_complete", **extra):
    record = logging.LogRecord("castmatch.test", logging.INFO, __file__, 1, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formatter_emits_json_with_extras():
    record = _record(candidate_count=4, strategy_used="heuristic")
    RequestIdFilter().filter(record)
    payload = json.loads(StructuredJsonFormatter().format(record))

    assert payload["message"] == "match_run_complete"
    assert payload["level"] == "INFO"
    assert payload["request_id"] == "unknown"
    assert payload["candidate_count"] == 4
    assert payload["strategy_used"] == "heuristic"
    assert "run_id" not in payload


def test_filter_reads_request_and_run_context():
    token = set_request_id("req-9")
    try:
        with run_context(run_id="run-1", strategy="llm"):
            record = _record()
            RequestIdFilter().filter(record)
    finally:
        reset_request_id(token)

    payload = json.loads(StructuredJsonFormatter().format(record))
    assert payload["request_id"] == "req-9"
    assert payload["run_id"] == "run-1"
    assert payload["strategy"] == "llm"


def test_run_context_resets():
    with run_context(run_id="run-2"):
        pass
    record = _record()
    RequestIdFilter().filter(record)
    assert record.run_id == ""
