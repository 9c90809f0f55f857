from __future__ import annotations

import dataclasses
from typing import TYPE_CHECKING, Optional, Tuple

from graphql import (
    FieldNode,
    GraphQLError,
    OperationDefinitionNode,
    OperationType,
    SelectionSetNode,
    parse,
)

from .exceptions import InvalidForwardingRuleError

if TYPE_CHECKING:
    from graphql import GraphQLInterfaceType, GraphQLObjectType


@dataclasses.dataclass(frozen=True)
class ForwardingRule:
    """The parent attributes an extension field needs to delegate.

    Written as a selection set, e.g. `{ offeringId }`. The selections are added
    to the parent's own selection, so the attributes are fetched together with
    the parent, and their response keys are the attributes the forwarder
    requires to be present.
    """

    source: str
    selection_set: Optional[SelectionSetNode] = None

    @classmethod
    def parse(cls, source: Optional[str]) -> ForwardingRule:
        if source is None or not source.strip():
            return cls(source="")

        try:
            document = parse(source, no_location=True)
        except GraphQLError as e:
            raise InvalidForwardingRuleError(source, e.message) from e

        if len(document.definitions) != 1:
            raise InvalidForwardingRuleError(source, "expected a single selection set")

        definition = document.definitions[0]
        if (
            not isinstance(definition, OperationDefinitionNode)
            or definition.operation != OperationType.QUERY
            or definition.name is not None
            or definition.variable_definitions
        ):
            raise InvalidForwardingRuleError(source, "expected a bare selection set")

        for selection in definition.selection_set.selections:
            if not isinstance(selection, FieldNode):
                raise InvalidForwardingRuleError(
                    source,
                    "fragments are not allowed at the top level",
                )

        return cls(source=source, selection_set=definition.selection_set)

    @property
    def fields(self) -> Tuple[FieldNode, ...]:
        if self.selection_set is None:
            return ()
        return tuple(
            s for s in self.selection_set.selections if isinstance(s, FieldNode)
        )

    @property
    def required(self) -> Tuple[str, ...]:
        """Response keys which must be present on the parent object."""
        return tuple((f.alias or f.name).value for f in self.fields)

    def validate(self, type_: GraphQLObjectType | GraphQLInterfaceType) -> None:
        for field in self.fields:
            if field.name.value not in type_.fields:
                raise InvalidForwardingRuleError(
                    self.source,
                    f'"{type_.name}" has no field "{field.name.value}"',
                )

    def __bool__(self) -> bool:
        return self.selection_set is not None
