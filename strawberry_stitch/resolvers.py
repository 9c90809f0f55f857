"""Field resolvers installed on the stitched schema.

Each field gets exactly one of these, chosen when the schema is merged:

* `LocalResolver` reads a value out of a delegated result
* `DelegatedResolver` runs the delegation pipeline: forward, plan, dispatch
  and stitch
"""

from __future__ import annotations

import dataclasses
from typing import TYPE_CHECKING, Any, Union

from graphql import default_field_resolver

from .dispatcher import dispatch
from .exceptions import DelegationExecutionError
from .forwarder import SelectionRewriter, forward, merge_selection_sets
from .planner import plan
from .settings import strawberry_stitch_settings
from .stitcher import StitchedObject, stitch

if TYPE_CHECKING:
    from graphql import GraphQLAbstractType, GraphQLResolveInfo

    from .bindings import DelegationBinding
    from .registry import TypeRegistry


@dataclasses.dataclass(frozen=True)
class LocalResolver:
    def __call__(self, parent: Any, info: GraphQLResolveInfo, **kwargs: Any) -> Any:
        if not isinstance(parent, StitchedObject):
            return default_field_resolver(parent, info, **kwargs)

        key = info.path.key
        value = parent.get(key)
        if value is None:
            errors = parent.errors_at(key)
            if errors:
                raise DelegationExecutionError(errors)
        return value


@dataclasses.dataclass(frozen=True)
class DelegatedResolver:
    binding: DelegationBinding
    registry: TypeRegistry

    async def __call__(self, parent: Any, info: GraphQLResolveInfo, **kwargs: Any) -> Any:
        binding = self.binding
        forwarded = forward(
            binding.rule,
            parent,
            merge_selection_sets(info.field_nodes),
            path=info.path.as_list(),
            wrap=binding.wrap,
        )
        rewriter = SelectionRewriter(
            binding.subschema.schema,
            self.registry,
            info.fragments,
            add_typename=strawberry_stitch_settings()["ADD_TYPENAME_TO_ABSTRACT"],
        )
        request = plan(
            binding,
            forwarded,
            info.context,
            info,
            rewriter,
            field_args=kwargs,
        )
        result = await dispatch(request)
        return stitch(request, result)


FieldResolver = Union[LocalResolver, DelegatedResolver]


def resolve_typename(
    value: Any,
    info: GraphQLResolveInfo,
    abstract_type: GraphQLAbstractType,
) -> Any:
    if isinstance(value, StitchedObject):
        return value.get("__typename")
    return None
