from __future__ import annotations

import dataclasses
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Set, Tuple

from graphql import (
    ArgumentNode,
    DocumentNode,
    FieldNode,
    GraphQLInterfaceType,
    GraphQLObjectType,
    InlineFragmentNode,
    NamedTypeNode,
    NameNode,
    OperationDefinitionNode,
    OperationType,
    SelectionSetNode,
    VariableDefinitionNode,
    VariableNode,
    get_named_type,
    is_abstract_type,
)
from graphql.language.parser import parse_type

from .exceptions import InvalidDelegationBindingError
from .forwarder import SelectionRewriter, collect_variables, typename_field
from .registry import root_type

if TYPE_CHECKING:
    from graphql import (
        GraphQLField,
        GraphQLNamedType,
        GraphQLResolveInfo,
    )

    from .bindings import DelegationBinding
    from .exceptions import PathSegment
    from .forwarder import ForwardedSelection
    from .registry import Subschema


@dataclasses.dataclass(frozen=True)
class DelegationRequest:
    """One operation to run against a subschema on behalf of a stitched field."""

    subschema: Subschema
    operation: OperationType
    field_name: str
    wrap: Tuple[str, ...]
    arguments: Mapping[str, Any]
    selection_set: Optional[SelectionSetNode]
    document: DocumentNode
    variables: Mapping[str, Any]
    context: Any
    info: Optional[GraphQLResolveInfo] = None
    return_type: Optional[GraphQLNamedType] = None

    @property
    def path(self) -> Tuple[str, ...]:
        """Response keys leading from the result's data to the stitched value."""
        return (self.field_name, *self.wrap)

    @property
    def response_path(self) -> List[PathSegment]:
        if self.info is None:
            return []
        return self.info.path.as_list()


def resolve_target(
    binding: DelegationBinding,
) -> Tuple[List[GraphQLField], GraphQLNamedType]:
    """Walk the binding's field path in the target subschema.

    Returns the fields along the path and the named type of the last one.
    """
    coordinate = f"{binding.subschema.name}.{'.'.join(binding.path)}"
    parent: Any = root_type(binding.subschema.schema, binding.operation)
    if parent is None:
        raise InvalidDelegationBindingError(
            coordinate,
            f"the subschema has no {binding.operation.value} type",
        )

    fields = []
    for name in binding.path:
        if not isinstance(parent, (GraphQLObjectType, GraphQLInterfaceType)):
            raise InvalidDelegationBindingError(
                coordinate,
                f'"{parent.name}" has no fields to select "{name}" from',
            )
        field = parent.fields.get(name)
        if field is None:
            raise InvalidDelegationBindingError(
                coordinate,
                f'"{parent.name}" has no field "{name}"',
            )
        fields.append(field)
        parent = get_named_type(field.type)

    return fields, parent


def _variable_name(arg: str, taken: Set[str]) -> str:
    index = 0
    name = f"_{arg}"
    while name in taken:
        index += 1
        name = f"_{arg}{index}"
    taken.add(name)
    return name


def _variable_definition(name: str, type_: Any) -> VariableDefinitionNode:
    return VariableDefinitionNode(
        variable=VariableNode(name=NameNode(value=name)),
        type=parse_type(str(type_), no_location=True),
        directives=(),
    )


def plan(
    binding: DelegationBinding,
    forwarded: ForwardedSelection,
    context: Any,
    info: GraphQLResolveInfo,
    rewriter: SelectionRewriter,
    field_args: Optional[Mapping[str, Any]] = None,
) -> DelegationRequest:
    """Build the operation delegating a stitched field to its subschema.

    Arguments computed from the parent and the ones given to the stitched
    field (`field_args`) travel as typed variables. For proxied root fields
    the caller's argument nodes are forwarded as they are, along with the
    definitions and values of the caller variables they use.
    """
    fields, nominal_type = resolve_target(binding)
    target_field = fields[-1]

    hint = (
        binding.subschema.schema.get_type(binding.return_type)
        if binding.return_type
        else None
    )
    in_fragment = (
        hint is not None and hint is not nominal_type and is_abstract_type(nominal_type)
    )
    selection_type = hint if in_fragment else nominal_type

    selection_set = None
    if forwarded.selection_set is not None:
        selection_set = rewriter.rewrite(forwarded.selection_set, selection_type)
        if in_fragment:
            assert hint is not None
            selection_set = SelectionSetNode(
                selections=(
                    typename_field(),
                    InlineFragmentNode(
                        type_condition=NamedTypeNode(name=NameNode(value=hint.name)),
                        directives=(),
                        selection_set=selection_set,
                    ),
                ),
            )

    caller_variables = {
        d.variable.name.value: d for d in info.operation.variable_definitions or ()
    }
    taken = set(caller_variables)
    variable_definitions: List[VariableDefinitionNode] = []
    variables: Dict[str, Any] = {}

    arguments: Dict[str, Any] = {}
    argument_nodes: Tuple[ArgumentNode, ...] = ()
    if binding.forward_args:
        node = info.field_nodes[0]
        argument_nodes = tuple(node.arguments or ())
    else:
        arguments = binding.resolve_args(forwarded.inputs, field_args)
        nodes = []
        for arg, value in arguments.items():
            definition = target_field.args.get(arg)
            if definition is None:
                raise InvalidDelegationBindingError(
                    f"{binding.subschema.name}.{'.'.join(binding.path)}",
                    f'unknown argument "{arg}"',
                )
            name = _variable_name(arg, taken)
            variable_definitions.append(_variable_definition(name, definition.type))
            variables[name] = value
            nodes.append(
                ArgumentNode(
                    name=NameNode(value=arg),
                    value=VariableNode(name=NameNode(value=name)),
                ),
            )
        argument_nodes = tuple(nodes)

    root: FieldNode = FieldNode(
        name=NameNode(value=binding.path[-1]),
        arguments=argument_nodes,
        directives=(),
        selection_set=selection_set,
    )
    for name in reversed(binding.path[:-1]):
        root = FieldNode(
            name=NameNode(value=name),
            arguments=(),
            directives=(),
            selection_set=SelectionSetNode(selections=(root,)),
        )

    used = collect_variables(root)
    for name in sorted(used & set(caller_variables)):
        variable_definitions.append(caller_variables[name])
        if name in info.variable_values:
            variables[name] = info.variable_values[name]

    document = DocumentNode(
        definitions=(
            OperationDefinitionNode(
                operation=binding.operation,
                variable_definitions=tuple(variable_definitions),
                directives=(),
                selection_set=SelectionSetNode(selections=(root,)),
            ),
        ),
    )

    return DelegationRequest(
        subschema=binding.subschema,
        operation=binding.operation,
        field_name=binding.field_name,
        wrap=binding.wrap,
        arguments=arguments,
        selection_set=selection_set,
        document=document,
        variables=variables,
        context=context,
        info=info,
        return_type=hint if in_fragment else None,
    )
