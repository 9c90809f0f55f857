"""Build one stitched schema out of several subschemas.

Subschema types are printed, re-parsed and merged by name; type extensions
are appended; the merged SDL is built into a new graphql-core schema and
every field gets a resolver chosen once, here.
"""

from __future__ import annotations

import logging
from typing import (
    TYPE_CHECKING,
    Any,
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
)

from graphql import (
    DirectiveDefinitionNode,
    DocumentNode,
    EnumTypeDefinitionNode,
    GraphQLError,
    GraphQLInterfaceType,
    GraphQLObjectType,
    GraphQLSchema,
    GraphQLUnionType,
    InputObjectTypeDefinitionNode,
    InterfaceTypeDefinitionNode,
    NamedTypeNode,
    NameNode,
    ObjectTypeDefinitionNode,
    OperationType,
    ScalarTypeDefinitionNode,
    SchemaDefinitionNode,
    TypeDefinitionNode,
    UnionTypeDefinitionNode,
    Visitor,
    build_ast_schema,
    get_named_type,
    get_nullable_type,
    is_abstract_type,
    is_list_type,
    is_non_null_type,
    parse,
    print_ast,
    print_schema,
    validate_schema,
    visit,
)

from .bindings import DelegationBinding
from .exceptions import (
    DuplicateFieldError,
    IncompatibleTypeError,
    InvalidDelegationBindingError,
    StitchingConfigError,
    UnknownTypeExtensionError,
)
from .planner import resolve_target
from .registry import Subschema, TypeRegistry, root_type
from .resolvers import (
    DelegatedResolver,
    FieldResolver,
    LocalResolver,
    resolve_typename,
)

if TYPE_CHECKING:
    from graphql import ExecutionResult

    from .bindings import TypeExtension

logger = logging.getLogger(__name__)

ROOT_TYPE_NAMES = {
    OperationType.QUERY: "Query",
    OperationType.MUTATION: "Mutation",
}


class StitchedSchema:
    """A merged schema whose fields resolve through their subschemas."""

    def __init__(
        self,
        schema: GraphQLSchema,
        registry: TypeRegistry,
        resolvers: Mapping[Tuple[str, str], FieldResolver],
    ):
        self.schema = schema
        self.registry = registry
        self.resolvers = dict(resolvers)

    @property
    def subschemas(self) -> Tuple[Subschema, ...]:
        return self.registry.subschemas

    @property
    def extensions(self) -> Tuple[TypeExtension, ...]:
        return self.registry.extensions

    def resolver_for(self, type_name: str, field_name: str) -> Optional[FieldResolver]:
        return self.resolvers.get((type_name, field_name))

    async def execute(self, source: str, *args: Any, **kwargs: Any) -> ExecutionResult:
        from .execution import execute  # avoid circular import

        return await execute(self, source, *args, **kwargs)

    def execute_sync(self, source: str, *args: Any, **kwargs: Any) -> ExecutionResult:
        from .execution import execute_sync  # avoid circular import

        return execute_sync(self, source, *args, **kwargs)

    def as_str(self) -> str:
        return print_schema(self.schema)

    __str__ = as_str


class _RenameTypes(Visitor):
    def __init__(self, names: Mapping[str, str]):
        super().__init__()
        self.names = names

    def enter_name(self, node, key, parent, *_):
        new_name = self.names.get(node.value)
        if new_name is None:
            return None
        if isinstance(parent, (NamedTypeNode, TypeDefinitionNode)):
            return NameNode(value=new_name)
        return None


def _subschema_definitions(subschema: Subschema) -> List[Any]:
    renames = {}
    for operation, name in ROOT_TYPE_NAMES.items():
        type_ = root_type(subschema.schema, operation)
        if type_ is not None and type_.name != name:
            renames[type_.name] = name

    document = parse(print_schema(subschema.schema), no_location=True)
    if renames:
        document = visit(document, _RenameTypes(renames))

    subscription = subschema.schema.subscription_type
    return [
        d
        for d in document.definitions
        if not isinstance(d, SchemaDefinitionNode)
        and not (
            subscription is not None
            and isinstance(d, ObjectTypeDefinitionNode)
            and d.name.value == subscription.name
        )
    ]


def _field_signature(node: Any) -> Tuple[str, ...]:
    args = sorted(
        f"{a.name.value}: {print_ast(a.type)}" for a in getattr(node, "arguments", None) or ()
    )
    default = getattr(node, "default_value", None)
    return (
        print_ast(node.type),
        *args,
        print_ast(default) if default is not None else "",
    )


def _merge_fields(name: str, nodes: Sequence[Any]) -> Tuple[Any, ...]:
    fields: Dict[str, Any] = {}
    for node in nodes:
        for field in node.fields or ():
            existing = fields.get(field.name.value)
            if existing is None:
                fields[field.name.value] = field
            elif _field_signature(existing) != _field_signature(field):
                raise IncompatibleTypeError(
                    name,
                    f'field "{field.name.value}" is declared as '
                    f'"{print_ast(existing.type)}" and "{print_ast(field.type)}"',
                )
    return tuple(fields.values())


def _merge_named(nodes: Iterable[Any], attribute: str) -> Tuple[Any, ...]:
    merged: Dict[str, Any] = {}
    for node in nodes:
        for named in getattr(node, attribute) or ():
            merged.setdefault(named.name.value, named)
    return tuple(merged.values())


def _merge_type(name: str, nodes: Sequence[Any]) -> Any:
    first = nodes[0]
    if len(nodes) == 1:
        return first

    kinds = {type(n) for n in nodes}
    if len(kinds) > 1:
        raise IncompatibleTypeError(
            name,
            "defined as " + " and ".join(sorted(k.__name__ for k in kinds)),
        )

    if isinstance(first, (ObjectTypeDefinitionNode, InterfaceTypeDefinitionNode)):
        return first.__class__(
            name=first.name,
            description=first.description,
            directives=first.directives,
            interfaces=_merge_named(nodes, "interfaces"),
            fields=_merge_fields(name, nodes),
        )
    if isinstance(first, InputObjectTypeDefinitionNode):
        return InputObjectTypeDefinitionNode(
            name=first.name,
            description=first.description,
            directives=first.directives,
            fields=_merge_fields(name, nodes),
        )
    if isinstance(first, UnionTypeDefinitionNode):
        return UnionTypeDefinitionNode(
            name=first.name,
            description=first.description,
            directives=first.directives,
            types=_merge_named(nodes, "types"),
        )
    if isinstance(first, EnumTypeDefinitionNode):
        values = [{v.name.value for v in n.values or ()} for n in nodes]
        if any(v != values[0] for v in values[1:]):
            raise IncompatibleTypeError(name, "enum values differ")
        return first
    if isinstance(first, ScalarTypeDefinitionNode):
        return first

    raise IncompatibleTypeError(name, f"cannot merge {type(first).__name__}")


def _merge_definitions(
    registry: TypeRegistry,
) -> Tuple[Dict[str, Any], Dict[str, DirectiveDefinitionNode]]:
    grouped: Dict[str, List[Any]] = {}
    directives: Dict[str, DirectiveDefinitionNode] = {}
    for subschema in registry.subschemas:
        for definition in _subschema_definitions(subschema):
            if isinstance(definition, DirectiveDefinitionNode):
                directives.setdefault(definition.name.value, definition)
            elif isinstance(definition, TypeDefinitionNode):
                grouped.setdefault(definition.name.value, []).append(definition)

    types = {name: _merge_type(name, nodes) for name, nodes in grouped.items()}
    return types, directives


def _apply_extensions(types: Dict[str, Any], registry: TypeRegistry) -> None:
    for extension in registry.extensions:
        node = types.get(extension.type_name)
        if node is None:
            raise UnknownTypeExtensionError(extension.type_name)
        if not isinstance(node, ObjectTypeDefinitionNode):
            raise StitchingConfigError(
                f'Cannot extend "{extension.type_name}": only object types '
                "can be extended",
            )

        existing = {f.name.value for f in node.fields or ()}
        for field in extension.fields:
            if field.name.value in existing:
                raise DuplicateFieldError(extension.type_name, field.name.value)
            existing.add(field.name.value)

        types[extension.type_name] = ObjectTypeDefinitionNode(
            name=node.name,
            description=node.description,
            directives=node.directives,
            interfaces=node.interfaces,
            fields=(*(node.fields or ()), *extension.fields),
        )


def _fits(field_type: Any, target_type: Any) -> bool:
    """Whether values of `target_type` fit `field_type`, named types aside.

    List nesting must be the same; a non-null field needs a non-null target.
    """
    if is_non_null_type(field_type):
        if not is_non_null_type(target_type):
            return False
        return _fits(field_type.of_type, target_type.of_type)
    target_type = get_nullable_type(target_type)
    if is_list_type(field_type):
        return is_list_type(target_type) and _fits(field_type.of_type, target_type.of_type)
    return not is_list_type(target_type)


def _validate_binding(
    schema: GraphQLSchema,
    registry: TypeRegistry,
    type_name: str,
    field_name: str,
    binding: DelegationBinding,
) -> None:
    coordinate = f"{type_name}.{field_name}"
    if not registry.is_registered(binding.subschema):
        raise InvalidDelegationBindingError(
            coordinate,
            f"{binding.subschema!r} is not part of the stitched schema",
        )

    target_fields, nominal_type = resolve_target(binding)

    merged_type = schema.get_type(type_name)
    assert isinstance(merged_type, GraphQLObjectType)
    binding.rule.validate(merged_type)

    for name, field in zip(binding.path[:-1], target_fields):
        if is_list_type(get_nullable_type(field.type)):
            raise InvalidDelegationBindingError(
                coordinate,
                f'"{name}" returns a list and cannot be wrapped',
            )

    target_field = target_fields[-1]
    merged_field = merged_type.fields[field_name]
    if isinstance(binding.args, Mapping):
        for arg in binding.args:
            if arg not in target_field.args:
                raise InvalidDelegationBindingError(
                    coordinate,
                    f'"{binding.path[-1]}" has no argument "{arg}"',
                )
    if not callable(binding.args):
        for arg in merged_field.args:
            if arg not in target_field.args:
                raise InvalidDelegationBindingError(
                    coordinate,
                    f'"{binding.path[-1]}" has no argument "{arg}" to forward to',
                )

    actual_type = nominal_type
    if binding.return_type is not None:
        hint = binding.subschema.schema.get_type(binding.return_type)
        if not isinstance(hint, (GraphQLObjectType, GraphQLInterfaceType)):
            raise InvalidDelegationBindingError(
                coordinate,
                f'return type "{binding.return_type}" is not an object or '
                "interface type of the subschema",
            )
        if hint is not nominal_type and not (
            is_abstract_type(nominal_type)
            and binding.subschema.schema.is_sub_type(nominal_type, hint)
        ):
            raise InvalidDelegationBindingError(
                coordinate,
                f'return type "{hint.name}" is not a possible type of '
                f'"{nominal_type.name}"',
            )
        actual_type = hint

    if not _fits(merged_field.type, target_field.type):
        raise InvalidDelegationBindingError(
            coordinate,
            f'the field type "{merged_field.type}" does not match the delegated '
            f'field type "{target_field.type}"',
        )

    field_type = get_named_type(merged_field.type)
    if field_type.name != actual_type.name:
        raise InvalidDelegationBindingError(
            coordinate,
            f'the field returns "{field_type.name}" but the delegated field '
            f'returns "{actual_type.name}"',
        )


def _install_resolvers(
    schema: GraphQLSchema,
    registry: TypeRegistry,
) -> Dict[Tuple[str, str], FieldResolver]:
    roots = {
        root.name: operation
        for operation in ROOT_TYPE_NAMES
        if (root := root_type(schema, operation)) is not None
    }

    resolvers: Dict[Tuple[str, str], FieldResolver] = {}
    for type_name, type_ in schema.type_map.items():
        if type_name.startswith("__"):
            continue

        if isinstance(type_, (GraphQLInterfaceType, GraphQLUnionType)):
            type_.resolve_type = resolve_typename
        if not isinstance(type_, GraphQLObjectType):
            continue

        operation = roots.get(type_name)
        for field_name, field in type_.fields.items():
            binding = registry.binding_for(type_name, field_name)
            resolver: FieldResolver
            if binding is not None:
                resolver = DelegatedResolver(binding, registry)
            elif operation is not None:
                owner = registry.root_owner(operation, field_name)
                assert owner is not None
                resolver = DelegatedResolver(
                    DelegationBinding(
                        subschema=owner,
                        field_name=field_name,
                        operation=operation,
                        forward_args=True,
                    ),
                    registry,
                )
            else:
                resolver = LocalResolver()

            field.resolve = resolver
            resolvers[(type_name, field_name)] = resolver

    return resolvers


def build_merged_schema(
    subschemas: Iterable[Subschema],
    extensions: Iterable[TypeExtension] = (),
) -> StitchedSchema:
    """Merge `subschemas` and apply `extensions`.

    Raises a `StitchingConfigError` subclass when the configuration is
    invalid: unknown extended types, incompatible duplicate types, or
    delegation bindings that do not match their target subschema.
    """
    registry = TypeRegistry(subschemas, extensions)
    if not registry.subschemas:
        raise StitchingConfigError("At least one subschema is required")

    types, directives = _merge_definitions(registry)
    _apply_extensions(types, registry)

    document = DocumentNode(definitions=(*directives.values(), *types.values()))
    try:
        schema = build_ast_schema(document)
    except (GraphQLError, TypeError) as e:
        raise StitchingConfigError(f"Cannot build the stitched schema: {e}") from e

    errors = validate_schema(schema)
    if errors:
        raise StitchingConfigError(
            "Invalid stitched schema: " + "; ".join(e.message for e in errors),
        )

    for extension in registry.extensions:
        for field_name, binding in extension.bindings.items():
            _validate_binding(schema, registry, extension.type_name, field_name, binding)

    resolvers = _install_resolvers(schema, registry)
    logger.debug(
        "Built stitched schema from %s with %d extension(s)",
        ", ".join(s.name for s in registry.subschemas),
        len(registry.extensions),
    )
    return StitchedSchema(schema, registry, resolvers)
