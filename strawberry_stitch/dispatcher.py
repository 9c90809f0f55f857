from __future__ import annotations

import asyncio
import contextlib
import contextvars
import dataclasses
import inspect
import logging
from typing import TYPE_CHECKING, Any, List, Mapping, Optional, Tuple

from graphql import GraphQLError, print_ast

from .exceptions import DelegationCancelledError

if TYPE_CHECKING:
    from .planner import DelegationRequest

logger = logging.getLogger(__name__)


@dataclasses.dataclass
class RequestState:
    """State owned by one stitched request, shared by all its delegations."""

    cancel: asyncio.Event = dataclasses.field(default_factory=asyncio.Event)
    errors: List[GraphQLError] = dataclasses.field(default_factory=list)


current_request: contextvars.ContextVar[Optional[RequestState]] = (
    contextvars.ContextVar("stitched-request", default=None)
)


def report_error(error: GraphQLError) -> None:
    state = current_request.get()
    if state is None:
        logger.warning("Dropping delegation error outside a stitched request: %s", error)
        return
    state.errors.append(error)


@dataclasses.dataclass(frozen=True)
class DelegationResult:
    data: Optional[Mapping[str, Any]] = None
    errors: Tuple[GraphQLError, ...] = ()


def _cancelled(request: DelegationRequest) -> DelegationResult:
    error = DelegationCancelledError(request.subschema.name, request.field_name)
    return DelegationResult(errors=(GraphQLError(str(error), original_error=error),))


async def _invoke(request: DelegationRequest) -> DelegationResult:
    try:
        result = request.subschema.executor(request)
        if inspect.isawaitable(result):
            result = await result
    except Exception as e:
        logger.warning(
            "Delegation of %r to %r failed",
            request.field_name,
            request.subschema,
            exc_info=True,
        )
        return DelegationResult(errors=(GraphQLError(str(e), original_error=e),))

    return DelegationResult(data=result.data, errors=tuple(result.errors or ()))


async def dispatch(request: DelegationRequest) -> DelegationResult:
    """Execute a delegation request against its subschema.

    The request's cancellation signal is watched while the executor runs: once
    it is set, the executor call is cancelled and the result carries a single
    `DelegationCancelledError`. Nothing is retried.
    """
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug(
            "Delegating to %r at %s:\n%s",
            request.subschema,
            request.response_path,
            print_ast(request.document),
        )

    state = current_request.get()
    if state is None:
        return await _invoke(request)

    if state.cancel.is_set():
        return _cancelled(request)

    task = asyncio.ensure_future(_invoke(request))
    waiter = asyncio.ensure_future(state.cancel.wait())
    try:
        await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        task.cancel()
        raise
    finally:
        waiter.cancel()

    if task.done():
        return task.result()

    task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await task

    logger.warning(
        "Delegation of %r to %r cancelled at %s",
        request.field_name,
        request.subschema,
        request.response_path,
    )
    return _cancelled(request)
