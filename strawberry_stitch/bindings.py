from __future__ import annotations

import dataclasses
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    Union,
)

from graphql import (
    FieldDefinitionNode,
    FieldNode,
    GraphQLError,
    NameNode,
    ObjectTypeExtensionNode,
    OperationType,
    SelectionSetNode,
    parse,
    print_ast,
)

from .exceptions import InvalidDelegationBindingError, StitchingConfigError
from .rules import ForwardingRule

if TYPE_CHECKING:
    from .registry import Subschema

ArgsMapping = Union[
    Mapping[str, str],
    Callable[[Mapping[str, Any], Mapping[str, Any]], Mapping[str, Any]],
]


@dataclasses.dataclass(frozen=True)
class DelegationBinding:
    """How an extension field is resolved by another subschema.

    `field_name` is the root field of `subschema` to delegate to. With `wrap`,
    the caller's selection is nested below those fields (e.g. `ccp` then
    `ccpProduct`) and the result is unwrapped on the way back; arguments go to
    the innermost field.

    `args` maps target argument names to parent attributes, or is a callable
    receiving the forwarded parent attributes and the arguments of the field
    itself, and returning the arguments. Attributes named by a mapping are
    required in addition to the ones of `rule`. Without a callable, the
    arguments of the field are passed on under the same names; the mapping
    wins on a clash.
    """

    subschema: Subschema
    field_name: str
    rule: ForwardingRule = ForwardingRule("")
    args: Optional[ArgsMapping] = None
    wrap: Tuple[str, ...] = ()
    operation: OperationType = OperationType.QUERY
    return_type: Optional[str] = None
    forward_args: bool = False

    def __post_init__(self):
        if not isinstance(self.args, Mapping):
            return

        missing = [a for a in self.args.values() if a not in self.rule.required]
        if not missing:
            return

        selections = (
            *self.rule.fields,
            *(FieldNode(name=NameNode(value=a), arguments=(), directives=()) for a in missing),
        )
        selection_set = SelectionSetNode(selections=selections)
        object.__setattr__(
            self,
            "rule",
            ForwardingRule(source=print_ast(selection_set), selection_set=selection_set),
        )

    @property
    def path(self) -> Tuple[str, ...]:
        return (self.field_name, *self.wrap)

    def resolve_args(
        self,
        inputs: Mapping[str, Any],
        field_args: Optional[Mapping[str, Any]] = None,
    ) -> Dict[str, Any]:
        field_args = field_args or {}
        if callable(self.args):
            return dict(self.args(inputs, field_args))

        arguments = dict(field_args)
        for arg, attr in (self.args or {}).items():
            arguments[arg] = inputs[attr]
        return arguments


def delegate(
    subschema: Subschema,
    field_name: str,
    *,
    selection_set: Optional[str] = None,
    args: Optional[ArgsMapping] = None,
    wrap: Union[str, Sequence[str]] = (),
    operation: Union[OperationType, str] = OperationType.QUERY,
    return_type: Optional[str] = None,
) -> DelegationBinding:
    """Declare that a field is resolved by `field_name` of `subschema`.

    `selection_set` is the forwarding rule, e.g. `"{ offeringId }"`.
    """
    if isinstance(wrap, str):
        wrap = (wrap,)
    if isinstance(operation, str):
        operation = OperationType(operation)
    if operation == OperationType.SUBSCRIPTION:
        raise InvalidDelegationBindingError(
            field_name,
            "subscriptions cannot be delegated",
        )

    return DelegationBinding(
        subschema=subschema,
        field_name=field_name,
        rule=ForwardingRule.parse(selection_set),
        args=args,
        wrap=tuple(wrap),
        operation=operation,
        return_type=return_type,
    )


@dataclasses.dataclass(frozen=True)
class TypeExtension:
    type_name: str
    fields: Tuple[FieldDefinitionNode, ...]
    bindings: Mapping[str, DelegationBinding]

    @property
    def field_names(self) -> Tuple[str, ...]:
        return tuple(f.name.value for f in self.fields)


def _parse_type_defs(type_defs: str) -> List[ObjectTypeExtensionNode]:
    try:
        document = parse(type_defs, no_location=True)
    except GraphQLError as e:
        raise StitchingConfigError(f"Invalid extension type definitions: {e.message}") from e

    nodes = []
    for definition in document.definitions:
        if not isinstance(definition, ObjectTypeExtensionNode):
            raise StitchingConfigError(
                "Extension type definitions may only contain `extend type` blocks",
            )
        nodes.append(definition)
    return nodes


def _make_extension(
    type_name: str,
    fields: Iterable[FieldDefinitionNode],
    bindings: Mapping[str, DelegationBinding],
) -> TypeExtension:
    fields = tuple(fields)
    names = [f.name.value for f in fields]

    for name in names:
        if name not in bindings:
            raise InvalidDelegationBindingError(
                f"{type_name}.{name}",
                "extension field has no delegation binding",
            )
    for name in bindings:
        if name not in names:
            raise InvalidDelegationBindingError(
                f"{type_name}.{name}",
                "binding does not match any extension field",
            )

    return TypeExtension(type_name=type_name, fields=fields, bindings=dict(bindings))


def declare_extension(
    type_name: str,
    field_defs: Union[str, Sequence[FieldDefinitionNode]],
    bindings: Mapping[str, DelegationBinding],
) -> TypeExtension:
    """Declare new fields on `type_name`, each resolved through its binding.

    `field_defs` is SDL for the fields only, e.g. `"offering: CcpOffering"`.
    """
    if isinstance(field_defs, str):
        (node,) = _parse_type_defs(f"extend type {type_name} {{ {field_defs} }}")
        field_defs = node.fields or ()

    return _make_extension(type_name, field_defs, bindings)


def extensions_from_type_defs(
    type_defs: str,
    bindings: Mapping[str, Mapping[str, DelegationBinding]],
) -> List[TypeExtension]:
    """Build extensions from `extend type` SDL and a `{type: {field: binding}}` map."""
    fields: Dict[str, List[FieldDefinitionNode]] = {}
    for node in _parse_type_defs(type_defs):
        fields.setdefault(node.name.value, []).extend(node.fields or ())

    for type_name in bindings:
        if type_name not in fields:
            raise InvalidDelegationBindingError(
                type_name,
                "bindings given for a type that is not extended",
            )

    return [
        _make_extension(type_name, type_fields, bindings.get(type_name, {}))
        for type_name, type_fields in fields.items()
    ]
