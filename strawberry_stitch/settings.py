"""Code for interacting with Django settings."""

from typing import Optional, cast

from django.conf import settings
from typing_extensions import TypedDict


class StrawberryStitchSettings(TypedDict):
    """Dictionary defining the shape `settings.STRAWBERRY_STITCH` should have.

    All settings are optional and have defaults as described in their docstrings and
    defined in `DEFAULT_STITCH_SETTINGS`.
    """

    #: Timeout, in seconds, applied to a stitched request when `execute` is
    #: called without one. Outstanding delegations are cancelled when it elapses.
    DEFAULT_TIMEOUT: Optional[float]

    #: If True, operations delegated to a graphql-core subschema are validated
    #: against that subschema before being executed.
    VALIDATE_DELEGATED_OPERATIONS: bool

    #: If True, `__typename` is requested for every abstract type selection
    #: sent downstream, so the stitched schema can resolve the concrete type.
    ADD_TYPENAME_TO_ABSTRACT: bool


DEFAULT_STITCH_SETTINGS = StrawberryStitchSettings(
    DEFAULT_TIMEOUT=None,
    VALIDATE_DELEGATED_OPERATIONS=True,
    ADD_TYPENAME_TO_ABSTRACT=True,
)


def strawberry_stitch_settings() -> StrawberryStitchSettings:
    """Get strawberry stitch settings.

    Return the dictionary from `settings.STRAWBERRY_STITCH`, with defaults
    for missing keys. Defaults are returned as-is when Django settings
    have not been configured.
    """
    defaults = DEFAULT_STITCH_SETTINGS
    if not settings.configured:
        return cast("StrawberryStitchSettings", {**defaults})

    return cast(
        "StrawberryStitchSettings",
        {**defaults, **getattr(settings, "STRAWBERRY_STITCH", {})},
    )
