from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, Optional

from django.http import HttpResponseBadRequest, JsonResponse
from django.views import View

from .execution import execute

if TYPE_CHECKING:
    from django.http import HttpRequest, HttpResponse

    from .merge import StitchedSchema


class StitchedGraphQLView(View):
    """Serve a stitched schema over HTTP.

    Accepts JSON `POST` bodies with `query`, `variables` and `operationName`.
    The context handed to every subschema is `{"request": request}`.
    """

    http_method_names = ["post"]

    schema: Optional[StitchedSchema] = None
    timeout: Optional[float] = None

    def get_context(self, request: HttpRequest) -> Any:
        return {"request": request}

    async def post(self, request: HttpRequest, *args: Any, **kwargs: Any) -> HttpResponse:
        assert self.schema is not None, "StitchedGraphQLView requires a schema"

        try:
            body = json.loads(request.body or b"{}")
        except json.JSONDecodeError:
            return HttpResponseBadRequest("Unable to parse request body as JSON")

        query = body.get("query") if isinstance(body, dict) else None
        if not query:
            return HttpResponseBadRequest("No GraphQL query found in the request")

        result = await execute(
            self.schema,
            query,
            body.get("variables"),
            self.get_context(request),
            operation_name=body.get("operationName"),
            timeout=self.timeout,
        )
        return JsonResponse(result.formatted)
