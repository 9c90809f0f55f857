from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Sequence, Tuple

from graphql import GraphQLError

from .dispatcher import report_error
from .exceptions import DelegationExecutionError

if TYPE_CHECKING:
    from .dispatcher import DelegationResult
    from .exceptions import PathSegment
    from .planner import DelegationRequest

PathedError = Tuple[GraphQLError, List["PathSegment"]]


class StitchedObject(dict):
    """A delegated result object, keyed by response key.

    Errors the subschema reported below this object are attached to the key
    whose value they nulled, with the rest of their path, so they can be
    raised when the stitched schema resolves that key.
    """

    __slots__ = ("errors",)

    def __init__(self, data: Mapping[str, Any]):
        super().__init__(data)
        self.errors: Dict[str, List[PathedError]] = {}

    def attach(self, key: str, error: GraphQLError, tail: Sequence[PathSegment]):
        self.errors.setdefault(key, []).append((error, list(tail)))

    def errors_at(self, key: str) -> List[PathedError]:
        return self.errors.get(key, [])


def annotate(value: Any) -> Any:
    if isinstance(value, Mapping):
        return StitchedObject({k: annotate(v) for k, v in value.items()})
    if isinstance(value, list):
        return [annotate(v) for v in value]
    return value


def attach_error(value: Any, error: GraphQLError, tail: Sequence[PathSegment]) -> bool:
    """Attach `error` where its path reaches a null value.

    Returns False when the path cannot be followed to a null object key
    (e.g. the null is a list item), leaving the caller to report the error.
    """
    node = value
    for i, segment in enumerate(tail):
        if isinstance(node, StitchedObject) and isinstance(segment, str):
            child = node.get(segment)
            if child is None:
                node.attach(segment, error, tail[i + 1 :])
                return True
            node = child
        elif (
            isinstance(node, list)
            and isinstance(segment, int)
            and 0 <= segment < len(node)
            and node[segment] is not None
        ):
            node = node[segment]
        else:
            return False
    return False


def relative_errors(
    request: DelegationRequest,
    result: DelegationResult,
) -> List[PathedError]:
    """Pair each downstream error with its path below the stitched field."""
    keys = list(request.path)
    errors = []
    for error in result.errors:
        path = list(error.path or ())
        if path[: len(keys)] == keys:
            errors.append((error, path[len(keys) :]))
        else:
            errors.append((error, []))
    return errors


def project(request: DelegationRequest, result: DelegationResult) -> Any:
    value: Any = result.data
    for key in request.path:
        if not isinstance(value, Mapping):
            value = None
            break
        value = value.get(key)
    return value


def stitch(request: DelegationRequest, result: DelegationResult) -> Any:
    """Turn a delegation result into the value of the stitched field.

    Raises `DelegationExecutionError` when the value is null and the
    subschema reported errors. Errors that cannot be attached to a nulled key
    are added to the request's error list, at their full path.
    """
    errors = relative_errors(request, result)
    value = project(request, result)

    if value is None:
        if errors:
            raise DelegationExecutionError(errors)
        return None

    value = annotate(value)
    for error, tail in errors:
        if not attach_error(value, error, tail):
            report_error(
                GraphQLError(
                    error.message,
                    path=[*request.response_path, *tail],
                    original_error=error.original_error,
                    extensions=error.extensions,
                ),
            )

    return value
