"""
t0ggles Operation Router — resource/operation → parameters → payload → request → records.

Lifecycle (per invocation):
    1. Look the resource/operation up in the node description
    2. Open an ExecutionContext (execution_id for errors and logs)
    3. Read parameters once for the node, or once per input item for batched
       task create/update
    4. Map parameters to a payload, dispatch one request
    5. Reshape the response into one OutputRecord per returned entity

Items are processed sequentially so the batch order matches the item order
and a mapping failure can be attributed to the item that caused it.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Tuple

from t0ggles_node.engine.context import ExecutionContext, execution_scope
from t0ggles_node.engine.dispatcher import RequestDispatcher
from t0ggles_node.engine.errors import T0gglesError, UnsupportedOperationError, ValidationError
from t0ggles_node.engine.logging import AsyncLogQueue, LogEntry, get_log_queue, log_operation_event
from t0ggles_node.mapping.fields import IDENTIFIER_BY_ID, TaskIdentifier, prefixed
from t0ggles_node.mapping.payloads import (
    DELETE_BY_ID,
    map_dependency_create,
    map_dependency_delete,
    map_dependency_list_filters,
    map_list_filters,
    map_task_entry,
    map_update_task,
)
from t0ggles_node.node.description import T0GGLES_NODE, NodeDescription, OperationSpec
from t0ggles_node.node.parameters import ParameterSource

logger = logging.getLogger("t0ggles_node.engine.router")

# Raised by malformed item parameters (wrong types, out-of-range dates)
MAPPING_ERRORS = (TypeError, ValueError, AttributeError, OverflowError, OSError)


@dataclass
class OutputRecord:
    """One record handed back to the host. paired_item is the originating input item, if known."""

    json: Dict[str, Any]
    paired_item: Optional[int] = None

    @classmethod
    def from_error(cls, error: T0gglesError, item_index: Optional[int] = None) -> "OutputRecord":
        index = item_index if item_index is not None else error.item_index
        return cls(json={"error": error.message, "errorType": error.error_type}, paired_item=index)

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"json": self.json}
        if self.paired_item is not None:
            d["pairedItem"] = {"item": self.paired_item}
        return d


Handler = Callable[[OperationSpec, ParameterSource, ExecutionContext], Awaitable[List[OutputRecord]]]


def _as_records(value: Any, paired_item: Optional[int] = None) -> List[OutputRecord]:
    if isinstance(value, list):
        return [OutputRecord(json=v if isinstance(v, dict) else {"value": v}, paired_item=paired_item) for v in value]
    if isinstance(value, dict):
        return [OutputRecord(json=value, paired_item=paired_item)]
    return [OutputRecord(json={"value": value}, paired_item=paired_item)]


def _unwrap(response: Any, key: str) -> Any:
    """Return response[key] when the API nests the entity under key, else the raw response."""
    if isinstance(response, dict) and response.get(key) is not None:
        return response[key]
    return response


class OperationRouter:
    """
    Routes one node invocation to its handler.

    Usage:
        async with RequestDispatcher(credentials) as dispatcher:
            router = OperationRouter(dispatcher)
            records = await router.execute(params)
    """

    def __init__(
        self,
        dispatcher: RequestDispatcher,
        description: NodeDescription = T0GGLES_NODE,
        log_queue: Optional[AsyncLogQueue] = None,
    ):
        self._dispatcher = dispatcher
        self._description = description
        self._log_queue = log_queue
        self._handlers: Dict[Tuple[str, str], Handler] = {
            ("task", "create"): self._task_create,
            ("task", "update"): self._task_update,
            ("task", "getAll"): self._task_get_all,
            ("dependency", "create"): self._dependency_create,
            ("dependency", "getAll"): self._dependency_get_all,
            ("dependency", "delete"): self._dependency_delete,
        }

    async def execute(
        self,
        params: ParameterSource,
        continue_on_fail: bool = False,
    ) -> List[OutputRecord]:
        """Read resource and operation from the node parameters and run them."""
        resource = params.get("resource", 0, "task")
        operation = params.get("operation", 0, "getAll")
        return await self.run(resource, operation, params, continue_on_fail=continue_on_fail)

    async def run(
        self,
        resource: str,
        operation: str,
        params: ParameterSource,
        continue_on_fail: bool = False,
    ) -> List[OutputRecord]:
        spec = self._description.get_operation(resource, operation)
        handler = self._handlers.get((resource, operation))
        if spec is None or handler is None:
            raise UnsupportedOperationError(
                f'The operation "{operation}" is not supported.',
                resource=resource,
                operation=operation,
            )

        ctx = ExecutionContext(
            resource=resource,
            operation=operation,
            item_count=params.item_count if spec.per_item else 1,
            continue_on_fail=continue_on_fail,
        )
        start_time = time.monotonic()

        with execution_scope(ctx):
            self._log(log_operation_event(
                "operation_started", resource, operation,
                execution_id=ctx.execution_id, item_count=ctx.item_count,
            ))
            try:
                records = await handler(spec, params, ctx)
            except T0gglesError as e:
                e.with_context(execution_id=ctx.execution_id, resource=resource, operation=operation)
                duration_ms = (time.monotonic() - start_time) * 1000
                self._log(log_operation_event(
                    "operation_failed", resource, operation,
                    execution_id=ctx.execution_id, item_count=ctx.item_count,
                    duration_ms=duration_ms, error=e.to_dict(),
                ))
                logger.error(f"{ctx.object_ref} failed: {e.message}")
                if continue_on_fail:
                    return [OutputRecord.from_error(e)]
                raise

            duration_ms = (time.monotonic() - start_time) * 1000
            self._log(log_operation_event(
                "operation_completed", resource, operation,
                execution_id=ctx.execution_id, item_count=ctx.item_count,
                record_count=len(records), duration_ms=duration_ms,
            ))
            logger.info(f"{ctx.object_ref} returned {len(records)} record(s) in {duration_ms:.1f}ms")
            return records

    # -----------------------------------------------------------------------
    # Tasks
    # -----------------------------------------------------------------------

    async def _task_create(self, spec, params, ctx) -> List[OutputRecord]:
        return await self._task_batch(
            spec, params, ctx,
            build=lambda entry: map_task_entry(entry, allow_subtasks=True),
            empty_message="No tasks to create. Please add at least one task.",
        )

    async def _task_update(self, spec, params, ctx) -> List[OutputRecord]:
        return await self._task_batch(
            spec, params, ctx,
            build=lambda entry: map_update_task(
                entry.get("identifierType") or IDENTIFIER_BY_ID,
                entry,
                entry.get("updateFields") or {},
            ),
            empty_message="No tasks to update. Please add at least one task.",
        )

    async def _task_batch(
        self,
        spec: OperationSpec,
        params: ParameterSource,
        ctx: ExecutionContext,
        build: Callable[[Mapping[str, Any]], Dict[str, Any]],
        empty_message: str,
    ) -> List[OutputRecord]:
        """Map every item's task entries into one batch and send it in a single request."""
        tasks: List[Dict[str, Any]] = []
        origins: List[int] = []
        error_records: List[OutputRecord] = []

        for i in range(ctx.item_count):
            ctx.item_index = i
            try:
                item_tasks = self._map_item(params, i, build)
            except ValidationError as e:
                e.with_context(item_index=i, execution_id=ctx.execution_id)
                if not ctx.continue_on_fail:
                    raise
                logger.warning(f"{ctx.object_ref}: item {i} skipped: {e.message}")
                error_records.append(OutputRecord.from_error(e, i))
                continue
            tasks.extend(item_tasks)
            origins.extend([i] * len(item_tasks))
        ctx.item_index = None

        if not tasks:
            if error_records:
                return error_records
            raise ValidationError(empty_message)

        response = await self._dispatcher.request(spec.method, spec.endpoint, {"tasks": tasks})

        returned = response.get("tasks") if isinstance(response, dict) else None
        if isinstance(returned, list):
            paired = origins if len(returned) == len(origins) else [None] * len(returned)
            records = [
                OutputRecord(json=task if isinstance(task, dict) else {"value": task}, paired_item=origin)
                for task, origin in zip(returned, paired)
            ]
        else:
            records = _as_records(response)
        return error_records + records

    @staticmethod
    def _map_item(
        params: ParameterSource,
        item_index: int,
        build: Callable[[Mapping[str, Any]], Dict[str, Any]],
    ) -> List[Dict[str, Any]]:
        """Map one item's task entries. Malformed parameters surface as ValidationError."""
        try:
            entries = params.get("tasks.task", item_index, [])
            if isinstance(entries, Mapping):
                entries = [entries]
            return [build(entry) for entry in entries]
        except MAPPING_ERRORS as e:
            raise ValidationError(f"Invalid task parameters: {e}", item_index=item_index) from e

    async def _task_get_all(self, spec, params, ctx) -> List[OutputRecord]:
        qs = map_list_filters(params.get("filters", 0, {}))
        response = await self._dispatcher.request(spec.method, spec.endpoint, qs=qs)
        tasks = response.get("tasks") if isinstance(response, dict) else None
        return _as_records(tasks or [])

    # -----------------------------------------------------------------------
    # Dependencies
    # -----------------------------------------------------------------------

    @staticmethod
    def _identifier(params: ParameterSource, prefix: str) -> TaskIdentifier:
        kind = params.get(f"{prefix}IdentifierType", 0, IDENTIFIER_BY_ID)
        values = {
            prefixed(prefix, name): params.get(prefixed(prefix, name), 0)
            for name in ("id", "projectKey", "key")
        }
        return TaskIdentifier.from_parameters(kind, values, prefix=prefix)

    async def _dependency_create(self, spec, params, ctx) -> List[OutputRecord]:
        body = map_dependency_create(
            self._identifier(params, "predecessor"),
            self._identifier(params, "successor"),
            params.get("additionalFields", 0, {}),
        )
        response = await self._dispatcher.request(spec.method, spec.endpoint, body)
        return _as_records(_unwrap(response, "dependency"))

    async def _dependency_get_all(self, spec, params, ctx) -> List[OutputRecord]:
        qs = map_dependency_list_filters(params.get("filters", 0, {}))
        response = await self._dispatcher.request(spec.method, spec.endpoint, qs=qs)
        return _as_records(_unwrap(response, "dependencies"))

    async def _dependency_delete(self, spec, params, ctx) -> List[OutputRecord]:
        mode = params.get("deleteBy", 0, DELETE_BY_ID)
        if mode == DELETE_BY_ID:
            body = map_dependency_delete(mode, dependency_id=params.get("dependencyId", 0))
        else:
            body = map_dependency_delete(
                mode,
                predecessor=self._identifier(params, "predecessor"),
                successor=self._identifier(params, "successor"),
            )
        response = await self._dispatcher.request(spec.method, spec.endpoint, body)
        return _as_records(_unwrap(response, "dependency"))

    def _log(self, entry: LogEntry) -> None:
        queue = self._log_queue or get_log_queue()
        if queue is not None:
            queue.push(entry)
