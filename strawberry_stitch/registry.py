from __future__ import annotations

import dataclasses
import itertools
import logging
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    Dict,
    Iterable,
    Mapping,
    Optional,
    Tuple,
    Union,
)

import strawberry
from graphql import (
    GraphQLNamedType,
    GraphQLObjectType,
    GraphQLSchema,
    OperationType,
    build_schema,
)

from .exceptions import (
    DuplicateFieldError,
    InvalidResolverMapError,
    StitchingConfigError,
)
from .executors import (
    Executor,
    GraphQLCoreExecutor,
    StitchedExecutor,
    StrawberryExecutor,
)

if TYPE_CHECKING:
    from .bindings import DelegationBinding, TypeExtension
    from .merge import StitchedSchema

logger = logging.getLogger(__name__)

ResolverMap = Mapping[str, Mapping[str, Callable[..., Any]]]
SchemaLike = Union[str, GraphQLSchema, strawberry.Schema, "StitchedSchema"]

_subschema_ids = itertools.count(1)


@dataclasses.dataclass(frozen=True, eq=False)
class Subschema:
    """A type system taking part in a stitched schema.

    `executor` is how delegated operations reach it: in-process execution by
    default, or any callable taking a `DelegationRequest` and returning an
    `ExecutionResult` (or an awaitable of one).
    """

    name: str
    schema: GraphQLSchema
    executor: Executor

    def __repr__(self) -> str:
        return f"<Subschema {self.name!r}>"


def root_type(
    schema: GraphQLSchema,
    operation: OperationType,
) -> Optional[GraphQLObjectType]:
    return {
        OperationType.QUERY: schema.query_type,
        OperationType.MUTATION: schema.mutation_type,
        OperationType.SUBSCRIPTION: schema.subscription_type,
    }[operation]


def add_resolvers(schema: GraphQLSchema, resolvers: ResolverMap) -> None:
    """Attach `{type_name: {field_name: resolver}}` to a graphql-core schema."""
    for type_name, fields in resolvers.items():
        type_ = schema.get_type(type_name)
        if not isinstance(type_, GraphQLObjectType):
            raise InvalidResolverMapError(type_name)

        for field_name, resolver in fields.items():
            field = type_.fields.get(field_name)
            if field is None:
                raise InvalidResolverMapError(f"{type_name}.{field_name}")
            field.resolve = resolver


def register_subschema(
    schema: SchemaLike,
    resolvers: Optional[ResolverMap] = None,
    *,
    name: Optional[str] = None,
    executor: Optional[Executor] = None,
) -> Subschema:
    """Register a schema so it can be stitched and delegated to.

    `schema` may be SDL text, a graphql-core schema, a strawberry schema or
    another stitched schema. `resolvers` is only accepted for SDL text and
    graphql-core schemas, whose fields it is attached to.
    """
    from .merge import StitchedSchema  # avoid circular import

    if isinstance(schema, str):
        graphql_schema = build_schema(schema)
        default_executor: Executor = GraphQLCoreExecutor(graphql_schema)
    elif isinstance(schema, GraphQLSchema):
        graphql_schema = schema
        default_executor = GraphQLCoreExecutor(graphql_schema)
    elif isinstance(schema, StitchedSchema):
        graphql_schema = schema.schema
        default_executor = StitchedExecutor(schema)
    elif isinstance(schema, strawberry.Schema):
        graphql_schema = schema._schema  # type: ignore[attr-defined]
        default_executor = StrawberryExecutor(schema)
    else:
        raise TypeError(f"Cannot register {schema!r} as a subschema")

    if resolvers:
        if not isinstance(schema, (str, GraphQLSchema)):
            raise StitchingConfigError(
                "Resolver maps can only be attached to SDL or graphql-core schemas",
                suggestion="To fix this error, define the resolvers on the schema itself",
            )
        add_resolvers(graphql_schema, resolvers)

    subschema = Subschema(
        name=name or f"subschema{next(_subschema_ids)}",
        schema=graphql_schema,
        executor=executor or default_executor,
    )
    logger.debug("Registered %r", subschema)
    return subschema


class TypeRegistry:
    """Type-name and field lookups across the subschemas and extensions.

    Built once when the stitched schema is built and read-only afterwards.
    """

    def __init__(
        self,
        subschemas: Iterable[Subschema],
        extensions: Iterable[TypeExtension] = (),
    ):
        self.subschemas: Tuple[Subschema, ...] = tuple(subschemas)
        self.extensions: Tuple[TypeExtension, ...] = tuple(extensions)

        self._bindings: Dict[Tuple[str, str], DelegationBinding] = {}
        for extension in self.extensions:
            for field_name, binding in extension.bindings.items():
                key = (extension.type_name, field_name)
                if key in self._bindings:
                    raise DuplicateFieldError(*key)
                self._bindings[key] = binding

        self._root_owners: Dict[Tuple[OperationType, str], Subschema] = {}
        for subschema in self.subschemas:
            for operation in (OperationType.QUERY, OperationType.MUTATION):
                type_ = root_type(subschema.schema, operation)
                if type_ is None:
                    continue
                for field_name in type_.fields:
                    key = (operation, field_name)
                    if key in self._root_owners:
                        logger.debug(
                            "Root field %r of %r shadowed by %r",
                            field_name,
                            subschema,
                            self._root_owners[key],
                        )
                        continue
                    self._root_owners[key] = subschema

    def binding_for(
        self,
        type_name: str,
        field_name: str,
    ) -> Optional[DelegationBinding]:
        return self._bindings.get((type_name, field_name))

    def root_owner(
        self,
        operation: OperationType,
        field_name: str,
    ) -> Optional[Subschema]:
        return self._root_owners.get((operation, field_name))

    def lookup(self, type_name: str) -> Optional[Tuple[Subschema, GraphQLNamedType]]:
        """Return the first subschema defining `type_name`, with its type."""
        for subschema in self.subschemas:
            type_ = subschema.schema.get_type(type_name)
            if type_ is not None:
                return subschema, type_
        return None

    def is_registered(self, subschema: Subschema) -> bool:
        return any(s is subschema for s in self.subschemas)
