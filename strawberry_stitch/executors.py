"""In-process executors for delegated operations.

An executor is any callable taking a `DelegationRequest` and returning an
`ExecutionResult`, or an awaitable of one. Transports to remote subschemas
only need to implement that call.
"""

from __future__ import annotations

import inspect
from typing import TYPE_CHECKING, Any, Optional

from graphql import ExecutionResult, execute, print_ast, validate
from typing_extensions import Protocol

from .settings import strawberry_stitch_settings

if TYPE_CHECKING:
    import strawberry
    from graphql import GraphQLSchema
    from graphql.pyutils import AwaitableOrValue

    from .merge import StitchedSchema
    from .planner import DelegationRequest


class Executor(Protocol):
    def __call__(self, request: DelegationRequest) -> AwaitableOrValue[Any]: ...


class GraphQLCoreExecutor:
    def __init__(self, schema: GraphQLSchema, root_value: Optional[Any] = None):
        self.schema = schema
        self.root_value = root_value

    async def __call__(self, request: DelegationRequest) -> ExecutionResult:
        if strawberry_stitch_settings()["VALIDATE_DELEGATED_OPERATIONS"]:
            errors = validate(self.schema, request.document)
            if errors:
                return ExecutionResult(data=None, errors=errors)

        result = execute(
            self.schema,
            request.document,
            root_value=self.root_value,
            context_value=request.context,
            variable_values=dict(request.variables),
        )
        if inspect.isawaitable(result):
            result = await result
        return result


class StrawberryExecutor:
    """Run delegated operations through `strawberry.Schema.execute`.

    Going through strawberry keeps the schema's extensions and permission
    classes in the loop. The operation is printed from its AST, arguments
    travel as variables.
    """

    def __init__(self, schema: strawberry.Schema, root_value: Optional[Any] = None):
        self.schema = schema
        self.root_value = root_value

    async def __call__(self, request: DelegationRequest) -> Any:
        return await self.schema.execute(
            print_ast(request.document),
            variable_values=dict(request.variables),
            context_value=request.context,
            root_value=self.root_value,
        )


class StitchedExecutor:
    def __init__(self, schema: StitchedSchema):
        self.schema = schema

    async def __call__(self, request: DelegationRequest) -> ExecutionResult:
        from .execution import execute_document  # avoid circular import

        return await execute_document(
            self.schema,
            request.document,
            request.variables,
            request.context,
        )
