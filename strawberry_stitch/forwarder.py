"""Selection forwarding.

`forward` checks the parent object carries what a forwarding rule requires
and collects those values. `SelectionRewriter` turns a selection written
against the stitched schema into one the target subschema understands.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import (
    TYPE_CHECKING,
    Any,
    Dict,
    List,
    Mapping,
    Optional,
    Sequence,
    Set,
    Tuple,
)

from graphql import (
    FieldNode,
    FragmentSpreadNode,
    GraphQLInterfaceType,
    GraphQLObjectType,
    InlineFragmentNode,
    NameNode,
    SelectionSetNode,
    Visitor,
    get_named_type,
    is_abstract_type,
    is_composite_type,
    visit,
)

from .exceptions import DelegationExecutionError, MissingInputError
from .stitcher import StitchedObject

if TYPE_CHECKING:
    from graphql import (
        FragmentDefinitionNode,
        GraphQLCompositeType,
        GraphQLSchema,
        SelectionNode,
    )

    from .exceptions import PathSegment
    from .registry import TypeRegistry
    from .rules import ForwardingRule

logger = logging.getLogger(__name__)

_UNDEFINED = object()

TYPENAME = "__typename"


@dataclasses.dataclass(frozen=True)
class ForwardedSelection:
    inputs: Mapping[str, Any]
    selection_set: Optional[SelectionSetNode]
    wrap: Tuple[str, ...] = ()


def _read(parent: Any, attribute: str) -> Any:
    if isinstance(parent, Mapping):
        return parent.get(attribute, _UNDEFINED)
    return getattr(parent, attribute, _UNDEFINED)


def forward(
    rule: ForwardingRule,
    parent: Any,
    child_selection: Optional[SelectionSetNode],
    *,
    path: Sequence[PathSegment],
    wrap: Tuple[str, ...] = (),
) -> ForwardedSelection:
    """Collect the parent attributes `rule` requires.

    Raises `MissingInputError` for an attribute the parent does not carry. An
    attribute the subschema failed to resolve re-raises the subschema errors.
    """
    inputs: Dict[str, Any] = {}
    for attribute in rule.required:
        if isinstance(parent, StitchedObject):
            errors = parent.errors_at(attribute)
            if errors:
                raise DelegationExecutionError(errors)

        value = _read(parent, attribute)
        if value is _UNDEFINED:
            raise MissingInputError(attribute, path)
        inputs[attribute] = value

    return ForwardedSelection(inputs=inputs, selection_set=child_selection, wrap=wrap)


def merge_selection_sets(field_nodes: Sequence[FieldNode]) -> Optional[SelectionSetNode]:
    selections: List[SelectionNode] = []
    for node in field_nodes:
        if node.selection_set is not None:
            selections.extend(node.selection_set.selections)
    if not selections:
        return None
    return SelectionSetNode(selections=tuple(selections))


def _response_key(node: FieldNode) -> str:
    return (node.alias or node.name).value


def typename_field() -> FieldNode:
    return FieldNode(name=NameNode(value=TYPENAME), arguments=(), directives=())


class _VariableCollector(Visitor):
    def __init__(self):
        super().__init__()
        self.names: Set[str] = set()

    def enter_variable(self, node, *_):
        self.names.add(node.name.value)


def collect_variables(node: Any) -> Set[str]:
    collector = _VariableCollector()
    visit(node, collector)
    return collector.names


class SelectionRewriter:
    """Rewrite a stitched-schema selection for one target subschema.

    * fragment spreads are inlined, as the target does not know the
      caller's fragment definitions
    * fields the target type does not define are dropped; extension fields
      are replaced by the selections their forwarding rule requires
    * `__typename` is added below abstract types
    """

    def __init__(
        self,
        schema: GraphQLSchema,
        registry: TypeRegistry,
        fragments: Mapping[str, FragmentDefinitionNode],
        *,
        add_typename: bool = True,
    ):
        self.schema = schema
        self.registry = registry
        self.fragments = fragments
        self.add_typename = add_typename

    def rewrite(
        self,
        selection_set: SelectionSetNode,
        parent_type: GraphQLCompositeType,
    ) -> SelectionSetNode:
        selections: List[SelectionNode] = []
        required: List[FieldNode] = []

        for selection in selection_set.selections:
            if isinstance(selection, FieldNode):
                node = self._rewrite_field(selection, parent_type, required)
            elif isinstance(selection, InlineFragmentNode):
                node = self._rewrite_fragment(
                    selection,
                    selection.type_condition.name.value
                    if selection.type_condition
                    else None,
                    selection.selection_set,
                    parent_type,
                )
            elif isinstance(selection, FragmentSpreadNode):
                fragment = self.fragments[selection.name.value]
                node = self._rewrite_fragment(
                    selection,
                    fragment.type_condition.name.value,
                    fragment.selection_set,
                    parent_type,
                )
            else:  # pragma: no cover
                node = None

            if node is not None:
                selections.append(node)

        keys = {_response_key(s) for s in selections if isinstance(s, FieldNode)}
        for node in required:
            key = _response_key(node)
            if key not in keys:
                keys.add(key)
                selections.append(node)

        if (self.add_typename and is_abstract_type(parent_type)) or not selections:
            if TYPENAME not in keys:
                selections.insert(0, typename_field())

        return SelectionSetNode(selections=tuple(selections))

    def _rewrite_field(
        self,
        node: FieldNode,
        parent_type: GraphQLCompositeType,
        required: List[FieldNode],
    ) -> Optional[FieldNode]:
        name = node.name.value
        if name == TYPENAME:
            return node

        fields = (
            parent_type.fields
            if isinstance(parent_type, (GraphQLObjectType, GraphQLInterfaceType))
            else {}
        )
        field = fields.get(name)
        if field is None:
            binding = self.registry.binding_for(parent_type.name, name)
            if binding is not None:
                required.extend(binding.rule.fields)
            else:
                logger.debug(
                    "Dropping %s.%s, unknown to the target subschema",
                    parent_type.name,
                    name,
                )
            return None

        if node.selection_set is None:
            return node

        field_type = get_named_type(field.type)
        if not is_composite_type(field_type):
            return node

        return FieldNode(
            alias=node.alias,
            name=node.name,
            arguments=node.arguments,
            directives=node.directives,
            selection_set=self.rewrite(node.selection_set, field_type),
        )

    def _rewrite_fragment(
        self,
        node: InlineFragmentNode | FragmentSpreadNode,
        type_condition: Optional[str],
        selection_set: SelectionSetNode,
        parent_type: GraphQLCompositeType,
    ) -> Optional[InlineFragmentNode]:
        if type_condition is None:
            fragment_type = parent_type
        else:
            fragment_type = self.schema.get_type(type_condition)
            if fragment_type is None or not is_composite_type(fragment_type):
                logger.debug(
                    "Dropping fragment on %s, unknown to the target subschema",
                    type_condition,
                )
                return None

        inline = isinstance(node, InlineFragmentNode)
        return InlineFragmentNode(
            type_condition=(
                node.type_condition
                if inline
                else self.fragments[node.name.value].type_condition
            ),
            directives=node.directives,
            selection_set=self.rewrite(selection_set, fragment_type),
        )
