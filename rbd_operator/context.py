"""Utilities for tracing the steps of a reconciliation pass."""

import contextvars
from contextlib import contextmanager
import logging
from time import perf_counter
from typing import Generator


_LOGGER = logging.getLogger(__name__)

# No public API
__all__: list[str] = []


steps: contextvars.ContextVar[tuple[str, ...]] = contextvars.ContextVar(
    "steps", default=()
)


def current_step() -> str:
    """Return the label of the innermost traced step, or an empty string."""
    return " > ".join(steps.get())


@contextmanager
def trace_step(name: str) -> Generator[None, None, None]:
    """Log entry, exit and duration of a step nested under the enclosing step."""
    token = steps.set(steps.get() + (name,))
    label = current_step()
    start = perf_counter()
    _LOGGER.debug("[Trace] > %s", label)
    try:
        yield
    except Exception as err:
        _LOGGER.debug("[Trace] ! %s failed: %s", label, err)
        raise
    finally:
        steps.reset(token)
        _LOGGER.debug("[Trace] < %s (%0.3fs)", label, perf_counter() - start)
