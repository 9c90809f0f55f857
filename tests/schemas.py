"""Subschemas shared by the stitching tests.

`agg` is an SDL schema with a resolver map, `bbf` a strawberry schema. The
extensions link them both ways:

* `CcpEntitlement.offering` delegates to `bbf` by the entitlement's
  `offeringId`
* `CcpOffering.product` delegates back to `agg` through the `ccp`
  namespace by the offering's `productId`
"""

from typing import Any, Dict, List, Optional

import strawberry
from graphql import GraphQLResolveInfo

from strawberry_stitch import (
    Subschema,
    build_merged_schema,
    declare_extension,
    delegate,
    register_subschema,
)
from strawberry_stitch.utils.requests import get_request

AGG_TYPE_DEFS = """
type Query {
  ccp: CcpQuery
}

type Mutation {
  renameProduct(id: ID!, name: String!): CcpProduct
}

type CcpQuery {
  ccpEntitlement(id: ID!): CcpEntitlement
  ccpProduct(id: ID!): CcpProduct
}

type CcpEntitlement {
  id: ID!
  offeringId: ID
}

type CcpProduct {
  id: ID!
  name: String
}
"""


def _record_context(info: Any, contexts: Optional[List[Any]]):
    if contexts is not None:
        contexts.append(info.context)


def build_agg(
    contexts: Optional[List[Any]] = None,
    *,
    failing_names: frozenset = frozenset(),
) -> Subschema:
    def resolve_entitlement(_, info: GraphQLResolveInfo, id: str):
        _record_context(info, contexts)
        return {"id": id, "offeringId": id}

    def resolve_product(_, info: GraphQLResolveInfo, id: str):
        _record_context(info, contexts)
        return {"id": id, "name": id}

    def resolve_product_name(product: Dict[str, Any], info: GraphQLResolveInfo):
        if product["id"] in failing_names:
            raise ValueError(f"No name for product {product['id']}")
        return product["name"]

    def rename_product(_, info: GraphQLResolveInfo, id: str, name: str):
        return {"id": id, "name": name}

    return register_subschema(
        AGG_TYPE_DEFS,
        {
            "Query": {"ccp": lambda *_: {}},
            "Mutation": {"renameProduct": rename_product},
            "CcpQuery": {
                "ccpEntitlement": resolve_entitlement,
                "ccpProduct": resolve_product,
            },
            "CcpProduct": {"name": resolve_product_name},
        },
        name="agg",
    )


def build_bbf(
    contexts: Optional[List[Any]] = None,
    *,
    missing_offerings: frozenset = frozenset(),
) -> Subschema:
    @strawberry.type
    class CcpOffering:
        id: strawberry.ID
        product_id: Optional[strawberry.ID]

    @strawberry.type
    class Query:
        @strawberry.field
        async def ccp_offering(
            self,
            info: strawberry.Info,
            id: strawberry.ID,
        ) -> Optional[CcpOffering]:
            _record_context(info, contexts)
            if id in missing_offerings:
                raise ValueError(f"Offering {id} not found")
            return CcpOffering(id=id, product_id=id)

        @strawberry.field
        def tenant(self, info: strawberry.Info) -> Optional[str]:
            request = get_request(info)
            return request.headers.get("X-Tenant")

    return register_subschema(strawberry.Schema(query=Query), name="bbf")


def ccp_extensions(agg: Subschema, bbf: Subschema):
    return [
        declare_extension(
            "CcpEntitlement",
            "offering: CcpOffering",
            {
                "offering": delegate(
                    bbf,
                    "ccpOffering",
                    selection_set="{ offeringId }",
                    args={"id": "offeringId"},
                ),
            },
        ),
        declare_extension(
            "CcpOffering",
            "product: CcpProduct",
            {
                "product": delegate(
                    agg,
                    "ccp",
                    wrap="ccpProduct",
                    selection_set="{ productId }",
                    args={"id": "productId"},
                ),
            },
        ),
    ]


def build_stitched(agg: Optional[Subschema] = None, bbf: Optional[Subschema] = None):
    agg = agg or build_agg()
    bbf = bbf or build_bbf()
    return build_merged_schema([agg, bbf], ccp_extensions(agg, bbf))


stitched_schema = build_stitched(bbf=build_bbf(missing_offerings=frozenset({"missing"})))
