from __future__ import annotations

from contextlib import contextmanager

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest

registry = CollectorRegistry(auto_describe=True)

MATCH_RUNS_TOTAL = Counter(
    "castmatch_match_runs_total",
    "Completed match runs partitioned by the strategy that produced the result.",
    ["strategy"],
    registry=registry,
)

CANDIDATE_SCORES = Histogram(
    "castmatch_candidate_match_score",
    "Distribution of emitted candidate match scores.",
    ["branch"],
    buckets=(10, 20, 30, 40, 50, 60, 70, 80, 90, 100),
    registry=registry,
)

COMPLETION_CALL_DURATION = Histogram(
    "castmatch_completion_call_duration_seconds",
    "Latency for text-completion calls per operation.",
    ["operation"],
    registry=registry,
)

COMPLETION_CALLS_TOTAL = Counter(
    "castmatch_completion_calls_total",
    "Total text-completion calls partitioned by operation and status.",
    ["operation", "status"],
    registry=registry,
)

MATCH_PARSE_FAILURES = Counter(
    "castmatch_match_parse_failures_total",
    "Number of times an LLM match payload could not be parsed, labeled by stage.",
    ["stage"],
    registry=registry,
)


@contextmanager
def track_completion_call(operation: str):
    timer = COMPLETION_CALL_DURATION.labels(operation=operation).time()
    timer.__enter__()
    try:
        yield
        COMPLETION_CALLS_TOTAL.labels(operation=operation, status="success").inc()
    except Exception:
        COMPLETION_CALLS_TOTAL.labels(operation=operation, status="error").inc()
        raise
    finally:
        timer.__exit__(None, None, None)


def record_match_run(strategy: str) -> None:
    MATCH_RUNS_TOTAL.labels(strategy=strategy).inc()


def record_candidate_score(branch: str, score: int) -> None:
    CANDIDATE_SCORES.labels(branch=branch).observe(score)


def increment_match_parse_failure(stage: str) -> None:
    MATCH_PARSE_FAILURES.labels(stage=stage).inc()


def get_metrics_payload() -> bytes:
    return generate_latest(registry)
