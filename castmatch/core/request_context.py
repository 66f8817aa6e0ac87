import contextvars
from contextlib import contextmanager
import uuid

request_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar("request_id", default=None)
run_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar("run_id", default=None)
strategy_var: contextvars.ContextVar[str | None] = contextvars.ContextVar("strategy", default=None)


def set_request_id(request_id: str) -> contextvars.Token:
    """Store the current request ID in a context variable."""
    return request_id_var.set(request_id)


def reset_request_id(token: contextvars.Token) -> None:
    """Reset the request ID context variable to a previous state."""
    request_id_var.reset(token)


def get_request_id() -> str | None:
    """Retrieve the current request ID from the context."""
    return request_id_var.get()


def get_run_id() -> str | None:
    """Retrieve the current match run ID for logging."""
    return run_id_var.get()


def get_strategy() -> str | None:
    return strategy_var.get()


@contextmanager
def run_context(run_id: uuid.UUID | str | None = None, strategy: str | None = None):
    """Scope a match run ID and strategy for structured logs."""
    tokens: list[tuple[contextvars.ContextVar[str | None], contextvars.Token]] = []
    if run_id is not None:
        tokens.append((run_id_var, run_id_var.set(str(run_id))))
    if strategy is not None:
        tokens.append((strategy_var, strategy_var.set(strategy)))
    try:
        yield
    finally:
        for var, token in reversed(tokens):
            var.reset(token)
