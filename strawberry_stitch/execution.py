from __future__ import annotations

import asyncio
import inspect
from typing import TYPE_CHECKING, Any, Iterable, Iterator, List, Mapping, Optional

from asgiref.sync import async_to_sync
from graphql import (
    ExecutionResult,
    GraphQLError,
    parse,
    validate,
)
from graphql import (
    execute as graphql_execute,
)

from .dispatcher import RequestState, current_request
from .exceptions import DelegationExecutionError
from .settings import strawberry_stitch_settings

if TYPE_CHECKING:
    from graphql import DocumentNode

    from .merge import StitchedSchema


def expand_errors(errors: Iterable[GraphQLError]) -> Iterator[GraphQLError]:
    """Replace each delegation error by the downstream errors it carries.

    The downstream errors are re-pathed below the stitched field that raised
    them, so every path is addressable from the root of the original query.
    """
    for error in errors:
        original = error.original_error
        if not isinstance(original, DelegationExecutionError):
            yield error
            continue

        for inner, tail in original.errors:
            yield GraphQLError(
                inner.message,
                nodes=error.nodes,
                path=[*(error.path or ()), *tail],
                original_error=inner.original_error,
                extensions=inner.extensions,
            )


async def execute_document(
    schema: StitchedSchema,
    document: DocumentNode,
    variables: Optional[Mapping[str, Any]] = None,
    context: Optional[Any] = None,
    *,
    operation_name: Optional[str] = None,
    cancel: Optional[asyncio.Event] = None,
    timeout: Optional[float] = None,
) -> ExecutionResult:
    """Execute an already validated document against a stitched schema.

    A request nested in another stitched request (a stitched schema used as a
    subschema) shares the outer request's cancellation signal unless given
    its own.
    """
    parent = current_request.get()
    if cancel is None and timeout is None and parent is not None:
        cancel = parent.cancel
    elif parent is None and timeout is None:
        timeout = strawberry_stitch_settings()["DEFAULT_TIMEOUT"]

    state = RequestState(cancel=cancel or asyncio.Event())
    handle = None
    if timeout is not None:
        handle = asyncio.get_running_loop().call_later(timeout, state.cancel.set)

    token = current_request.set(state)
    try:
        result = graphql_execute(
            schema.schema,
            document,
            context_value=context,
            variable_values=dict(variables) if variables is not None else None,
            operation_name=operation_name,
        )
        if inspect.isawaitable(result):
            result = await result
    finally:
        current_request.reset(token)
        if handle is not None:
            handle.cancel()

    errors: List[GraphQLError] = [*expand_errors(result.errors or ()), *state.errors]
    return ExecutionResult(data=result.data, errors=errors or None)


async def execute(
    schema: StitchedSchema,
    source: str,
    variables: Optional[Mapping[str, Any]] = None,
    context: Optional[Any] = None,
    *,
    operation_name: Optional[str] = None,
    cancel: Optional[asyncio.Event] = None,
    timeout: Optional[float] = None,
) -> ExecutionResult:
    """Execute a query against a stitched schema.

    Field-level failures, delegation failures included, end up in the
    result's `errors`; nothing raised by a subschema escapes this call.

    Setting `cancel`, or `timeout` seconds elapsing, cancels every
    outstanding delegation; each reports a cancellation error at its path.
    """
    try:
        document = parse(source)
    except GraphQLError as e:
        return ExecutionResult(data=None, errors=[e])

    errors = validate(schema.schema, document)
    if errors:
        return ExecutionResult(data=None, errors=errors)

    return await execute_document(
        schema,
        document,
        variables,
        context,
        operation_name=operation_name,
        cancel=cancel,
        timeout=timeout,
    )


def execute_sync(
    schema: StitchedSchema,
    source: str,
    variables: Optional[Mapping[str, Any]] = None,
    context: Optional[Any] = None,
    *,
    operation_name: Optional[str] = None,
    timeout: Optional[float] = None,
) -> ExecutionResult:
    return async_to_sync(execute)(
        schema,
        source,
        variables,
        context,
        operation_name=operation_name,
        timeout=timeout,
    )
