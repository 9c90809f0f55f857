from __future__ import annotations

from functools import cached_property
from typing import TYPE_CHECKING, Sequence, Tuple, Union

from strawberry.exceptions.exception import StrawberryException

if TYPE_CHECKING:
    from graphql import GraphQLError
    from strawberry.exceptions.exception_source import ExceptionSource

PathSegment = Union[str, int]


class StitchingConfigError(StrawberryException):
    """Base class for errors raised while building a stitched schema."""

    def __init__(self, message: str, suggestion: str = ""):
        self.message = message
        self.rich_message = f"[bold red]{message}"
        self.suggestion = suggestion
        self.annotation_message = "invalid stitching configuration"

        super().__init__(self.message)

    @cached_property
    def exception_source(self) -> ExceptionSource | None:  # pragma: no cover
        return None


class UnknownTypeExtensionError(StitchingConfigError):
    def __init__(self, type_name: str):
        self.type_name = type_name
        super().__init__(
            f'Cannot extend unknown type "{type_name}"',
            suggestion=(
                "To fix this error, make sure one of the subschemas defines "
                f'"{type_name}"'
            ),
        )


class InvalidForwardingRuleError(StitchingConfigError):
    def __init__(self, rule: str, reason: str):
        self.rule = rule
        super().__init__(f'Invalid forwarding rule "{rule}": {reason}')


class IncompatibleTypeError(StitchingConfigError):
    def __init__(self, type_name: str, reason: str):
        self.type_name = type_name
        super().__init__(
            f'Type "{type_name}" is defined by more than one subschema '
            f"with incompatible shapes: {reason}",
        )


class DuplicateFieldError(StitchingConfigError):
    def __init__(self, type_name: str, field_name: str):
        self.type_name = type_name
        self.field_name = field_name
        super().__init__(
            f'Field "{type_name}.{field_name}" is already defined',
            suggestion="To fix this error, rename the extension field",
        )


class InvalidDelegationBindingError(StitchingConfigError):
    def __init__(self, coordinate: str, reason: str):
        self.coordinate = coordinate
        super().__init__(f'Invalid delegation for "{coordinate}": {reason}')


class InvalidResolverMapError(StitchingConfigError):
    def __init__(self, coordinate: str):
        self.coordinate = coordinate
        super().__init__(
            f'Cannot attach a resolver to "{coordinate}": '
            "no such field in the subschema",
        )


class DelegationError(Exception):
    """Base class for errors raised while resolving a delegated field."""


class MissingInputError(DelegationError):
    def __init__(self, attribute: str, path: Sequence[PathSegment]):
        self.attribute = attribute
        self.path = list(path)
        field_path = ".".join(str(p) for p in self.path)
        super().__init__(
            f'Missing required input "{attribute}" for field "{field_path}"',
        )


class DelegationExecutionError(DelegationError):
    """Errors returned by a delegated operation.

    Each entry holds the downstream error and the remaining path, relative to
    the field that raised this exception.
    """

    def __init__(self, errors: Sequence[Tuple[GraphQLError, Sequence[PathSegment]]]):
        self.errors = [(error, list(tail)) for error, tail in errors]
        super().__init__(self.errors[0][0].message if self.errors else "")


class DelegationCancelledError(DelegationError):
    def __init__(self, subschema: str, field_name: str):
        self.subschema = subschema
        self.field_name = field_name
        super().__init__(
            f'Delegation of "{field_name}" to "{subschema}" was cancelled',
        )
