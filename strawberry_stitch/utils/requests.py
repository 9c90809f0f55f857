from collections.abc import Mapping
from typing import Union

from django.http.request import HttpRequest
from graphql import GraphQLResolveInfo
from strawberry.types import Info


def get_request(info: Union[Info, GraphQLResolveInfo]) -> HttpRequest:
    """Return the HTTP request a stitched operation is served for.

    `StitchedGraphQLView` hands `{"request": request}` to every subschema,
    however deep the delegation chain; strawberry's own views pass a context
    object with a `request` attribute. Both shapes are accepted.
    """
    context = info.context
    if isinstance(context, Mapping):
        request = context.get("request")
    else:
        request = getattr(context, "request", None)

    if request is None:
        raise ValueError("The operation was not executed for an HTTP request")
    return request
