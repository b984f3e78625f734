"""
t0ggles node Execution Context — per-invocation state carried via contextvars.

One ExecutionContext is set for each operation invocation. Errors and log
entries read the execution_id from it, so a failure surfaced to the host can be
matched with the request log lines that preceded it.

Usage:
    from t0ggles_node.engine.context import (
        ExecutionContext,
        execution_scope,
        get_execution_context,
    )
"""

from __future__ import annotations

import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Iterator, Optional

current_execution_context: ContextVar[Optional["ExecutionContext"]] = ContextVar(
    "t0ggles_execution_context", default=None
)


@dataclass
class ExecutionContext:
    """State for a single resource/operation invocation."""

    resource: str
    operation: str
    execution_id: str = field(default_factory=lambda: f"exec_{uuid.uuid4().hex[:12]}")
    item_count: int = 0
    continue_on_fail: bool = False

    # Set while a single item is being mapped
    item_index: Optional[int] = None

    @property
    def object_ref(self) -> str:
        return f"{self.resource}.{self.operation}"


def get_execution_context() -> Optional[ExecutionContext]:
    """Get the current execution context. Returns None if not set."""
    return current_execution_context.get()


def current_execution_id() -> Optional[str]:
    ctx = get_execution_context()
    return ctx.execution_id if ctx else None


@contextmanager
def execution_scope(ctx: ExecutionContext) -> Iterator[ExecutionContext]:
    """Bind ctx for the duration of the block, restoring the previous context after."""
    token = current_execution_context.set(ctx)
    try:
        yield ctx
    finally:
        current_execution_context.reset(token)
