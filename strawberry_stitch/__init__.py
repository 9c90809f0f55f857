from .bindings import (
    DelegationBinding,
    TypeExtension,
    declare_extension,
    delegate,
    extensions_from_type_defs,
)
from .dispatcher import DelegationResult, dispatch
from .exceptions import (
    DelegationCancelledError,
    DelegationError,
    DelegationExecutionError,
    DuplicateFieldError,
    IncompatibleTypeError,
    InvalidDelegationBindingError,
    InvalidForwardingRuleError,
    InvalidResolverMapError,
    MissingInputError,
    StitchingConfigError,
    UnknownTypeExtensionError,
)
from .execution import execute, execute_sync
from .forwarder import ForwardedSelection, forward
from .merge import StitchedSchema, build_merged_schema
from .planner import DelegationRequest, plan
from .registry import Subschema, register_subschema
from .resolvers import DelegatedResolver, LocalResolver
from .rules import ForwardingRule
from .stitcher import StitchedObject, stitch

__all__ = [
    "DelegatedResolver",
    "DelegationBinding",
    "DelegationCancelledError",
    "DelegationError",
    "DelegationExecutionError",
    "DelegationRequest",
    "DelegationResult",
    "DuplicateFieldError",
    "ForwardedSelection",
    "ForwardingRule",
    "IncompatibleTypeError",
    "InvalidDelegationBindingError",
    "InvalidForwardingRuleError",
    "InvalidResolverMapError",
    "LocalResolver",
    "MissingInputError",
    "StitchedObject",
    "StitchedSchema",
    "StitchingConfigError",
    "Subschema",
    "TypeExtension",
    "UnknownTypeExtensionError",
    "build_merged_schema",
    "declare_extension",
    "delegate",
    "dispatch",
    "execute",
    "execute_sync",
    "extensions_from_type_defs",
    "forward",
    "plan",
    "register_subschema",
    "stitch",
]
