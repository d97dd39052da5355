"""
Resolution engine: runs GraphQL operations over the storage gateway.

Traversal is delegated to graphql-core's async executor, which resolves every
field of every sibling node at one level before any of them descend. Combined
with the per-request ``BatchLoader``, all relationship lookups issued for one
edge at one level are fetched with a single storage call.

Semantics layered on top of the executor:

- Relationship fields go through ``resolve_edge``. A to-one edge that finds no
  row resolves to ``None`` when the edge is nullable and raises
  ``NotFoundError`` otherwise; graphql-core then nulls the nearest nullable
  ancestor.
- Writes go through ``perform_write``. Mutation root fields are executed
  serially by graphql-core, and each write drops the loader caches so later
  fields of the same request read fresh rows.
- ``ResolutionTracker`` records the request lifecycle
  ``RECEIVED -> PARSED -> RESOLVING -> ASSEMBLED -> RESPONDED`` (or ``FAILED``).
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Hashable, Iterator
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, TypeVar

import strawberry
from graphql import GraphQLError
from strawberry.extensions import SchemaExtension
from strawberry.types import ExecutionResult

from ..errors import InputValidationError, NotFoundError
from ..logging import get_logger
from ..registry import EntityRegistry, default_registry
from ..storage.base import Row, StorageGateway
from .loaders import ABSENT, BatchLoader, BatchStats

if TYPE_CHECKING:
    from fastapi import Request

logger = get_logger(__name__)

T = TypeVar("T")

CONTEXT_KEY = "resolution"


class RequestState(Enum):
    RECEIVED = "received"
    PARSED = "parsed"
    RESOLVING = "resolving"
    ASSEMBLED = "assembled"
    RESPONDED = "responded"
    FAILED = "failed"


_TRANSITIONS: dict[RequestState, frozenset[RequestState]] = {
    RequestState.RECEIVED: frozenset({RequestState.PARSED, RequestState.FAILED}),
    RequestState.PARSED: frozenset({RequestState.RESOLVING, RequestState.FAILED}),
    RequestState.RESOLVING: frozenset(
        {RequestState.RESOLVING, RequestState.ASSEMBLED, RequestState.FAILED}
    ),
    RequestState.ASSEMBLED: frozenset({RequestState.RESPONDED}),
    RequestState.RESPONDED: frozenset(),
    RequestState.FAILED: frozenset(),
}


@dataclass
class RequestContext:
    """Per-request resolution state.

    Owned by exactly one request and discarded once the response is built, so
    nothing here is shared or locked.
    """

    gateway: StorageGateway
    registry: EntityRegistry
    loader: BatchLoader
    request: Request | None = None
    state: RequestState = RequestState.RECEIVED
    level: int = 0
    max_level: int = 0
    discarded: bool = False
    history: list[RequestState] = field(default_factory=lambda: [RequestState.RECEIVED])

    def transition(self, state: RequestState) -> None:
        if state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"Invalid request state transition {self.state} -> {state}")
        if state is not self.state:
            self.history.append(state)
        self.state = state

    def enter_level(self, level: int) -> None:
        """Record that resolution reached ``level`` (root fields are level 0)."""
        if self.state is RequestState.RESOLVING and level > self.level:
            self.level = level
            self.max_level = max(self.max_level, level)
            logger.debug("Resolving level", level=level)

    def discard(self) -> None:
        """Drop the result of a request whose client went away."""
        self.discarded = True


@dataclass
class ExecutionOutcome:
    result: ExecutionResult
    state: RequestState
    history: list[RequestState]
    max_level: int
    batches: dict[str, BatchStats]

    @property
    def data(self) -> dict[str, Any] | None:
        return self.result.data

    @property
    def errors(self) -> list[Any]:
        return list(self.result.errors or [])


def get_request_context(info: strawberry.Info) -> RequestContext:
    """Extract the resolution context from the GraphQL info object."""
    context = info.context
    resolution = context.get(CONTEXT_KEY) if isinstance(context, dict) else None
    if resolution is None:
        raise RuntimeError("Resolution context not found in GraphQL context")
    return resolution


def field_level(info: strawberry.Info) -> int:
    """Nesting depth of the field being resolved, ignoring list indices."""
    return sum(1 for segment in info.path.as_list() if isinstance(segment, str)) - 1


async def resolve_edge(
    info: strawberry.Info,
    edge_id: str,
    key: Hashable | None,
    convert: Callable[[Row], T],
) -> T | list[T] | None:
    """Resolve a relationship field through the batch loader.

    Collection edges return a (possibly empty) list. To-one edges return the
    converted row, ``None`` for a nullable edge without a match, or raise
    ``NotFoundError`` for a non-nullable one.
    """
    context = get_request_context(info)
    edge = context.registry.edge(edge_id)
    context.enter_level(field_level(info))

    if key is None:
        value: Any = [] if edge.is_collection else ABSENT
    else:
        value = await context.loader.load(edge_id, key)

    if edge.is_collection:
        return [convert(row) for row in value]
    if value is ABSENT:
        if edge.nullable:
            return None
        raise NotFoundError(edge.target, key)
    return convert(value)


async def resolve_by_key(
    info: strawberry.Info,
    entity: str,
    key: Hashable,
    convert: Callable[[Row], T],
) -> T | None:
    """Resolve a nullable root lookup by primary key."""
    context = get_request_context(info)
    context.enter_level(field_level(info))
    row = await context.loader.load_by_key(entity, key)
    if row is ABSENT:
        logger.debug("Entity not found", entity=entity, key=str(key))
        return None
    return convert(row)


async def resolve_all(
    info: strawberry.Info, entity: str, convert: Callable[[Row], T]
) -> list[T]:
    """Resolve a root list field with one unfiltered scan."""
    context = get_request_context(info)
    context.enter_level(field_level(info))
    rows = await context.gateway.find_many(entity)
    return [convert(row) for row in rows]


async def perform_write(
    info: strawberry.Info,
    operation: str,
    write: Callable[[StorageGateway], Awaitable[Row]],
) -> Row:
    """Apply one write through the gateway and invalidate cached reads."""
    context = get_request_context(info)
    context.enter_level(field_level(info))
    row = await write(context.gateway)
    context.loader.clear_all()
    logger.info("Write applied", operation=operation)
    return row


def tag_input_errors(errors: list[GraphQLError]) -> None:
    """Give request-level errors raised by graphql-core the BAD_USER_INPUT code.

    Validation and variable coercion errors carry no path, and their original
    error (if any) is another GraphQLError, so nothing else classifies them.
    """
    for error in errors:
        if error.path is not None or error.extensions:
            continue
        if error.original_error is None or isinstance(error.original_error, GraphQLError):
            error.extensions = {"code": InputValidationError.code}


class ResolutionTracker(SchemaExtension):
    """Drive the request state machine from strawberry's execution hooks.

    Hooks whose phase raised do not resume past ``yield``; ``settle_request``
    closes out whatever state such a request was left in.
    """

    def _context(self) -> RequestContext | None:
        context = self.execution_context.context
        return context.get(CONTEXT_KEY) if isinstance(context, dict) else None

    def on_parse(self) -> Iterator[None]:
        yield
        context = self._context()
        if context is not None and self.execution_context.graphql_document is not None:
            context.transition(RequestState.PARSED)

    def on_validate(self) -> Iterator[None]:
        yield
        errors = self.execution_context.pre_execution_errors
        if errors:
            tag_input_errors(errors)
        context = self._context()
        if context is None or context.state is not RequestState.PARSED:
            return
        if errors:
            context.transition(RequestState.FAILED)
            logger.info(
                "Request failed validation",
                errors=[error.message for error in errors],
            )

    def on_execute(self) -> Iterator[None]:
        context = self._context()
        if context is not None and context.state is RequestState.PARSED:
            context.transition(RequestState.RESOLVING)
        yield
        result = self.execution_context.result
        if result is not None and result.errors:
            tag_input_errors(result.errors)
        if context is None or context.state is not RequestState.RESOLVING:
            return

        failed = result is None or (result.data is None and bool(result.errors))
        context.transition(RequestState.FAILED if failed else RequestState.ASSEMBLED)
        logger.info(
            "Request resolved",
            state=context.state.value,
            max_level=context.max_level,
            batches={loader: stats.batches for loader, stats in context.loader.stats.items()},
        )


def settle_request(context: RequestContext) -> RequestState:
    """Move a finished request into its terminal state.

    An assembled result becomes RESPONDED unless the client went away. A
    request stopped before assembly (syntax error, rejected variables) is
    FAILED.
    """
    if context.state is RequestState.ASSEMBLED:
        if context.discarded:
            logger.info("Discarding result of disconnected request")
        else:
            context.transition(RequestState.RESPONDED)
    elif context.state not in (RequestState.RESPONDED, RequestState.FAILED):
        context.transition(RequestState.FAILED)
        logger.info("Request failed before assembly")
    return context.state


class ResolutionEngine:
    """Executes GraphQL operations against an injected storage gateway."""

    def __init__(
        self,
        gateway: StorageGateway,
        registry: EntityRegistry = default_registry,
        schema: strawberry.Schema | None = None,
        max_batch_size: int | None = None,
    ):
        if schema is None:
            from .schema import schema as default_schema

            schema = default_schema
        self.gateway = gateway
        self.registry = registry
        self.schema = schema
        self.max_batch_size = max_batch_size

    def create_context(self, request: Request | None = None) -> dict[str, Any]:
        """Build the GraphQL context for one request."""
        resolution = RequestContext(
            gateway=self.gateway,
            registry=self.registry,
            loader=BatchLoader(self.gateway, self.registry, self.max_batch_size),
            request=request,
        )
        return {"request": request, CONTEXT_KEY: resolution}

    async def execute(
        self,
        query: str,
        variables: dict[str, Any] | None = None,
        operation_name: str | None = None,
    ) -> ExecutionOutcome:
        context = self.create_context()
        result = await self.schema.execute(
            query,
            variable_values=variables,
            context_value=context,
            operation_name=operation_name,
        )
        resolution: RequestContext = context[CONTEXT_KEY]
        return ExecutionOutcome(
            result=result,
            state=settle_request(resolution),
            history=list(resolution.history),
            max_level=resolution.max_level,
            batches=dict(resolution.loader.stats),
        )
