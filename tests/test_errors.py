import dataclasses

import pytest
from graphql import ExecutionResult, GraphQLError

from strawberry_stitch import (
    DelegationExecutionError,
    MissingInputError,
    build_merged_schema,
    register_subschema,
)

from . import schemas
from .test_execution import CHAIN_QUERY


def _with_executor(subschema, executor):
    return dataclasses.replace(subschema, executor=executor)


async def test_missing_forwarded_attribute():
    agg = schemas.build_agg()
    stub = _with_executor(
        agg,
        lambda request: ExecutionResult(data={"ccp": {"ccpEntitlement": {"id": "abc"}}}),
    )
    stitched = schemas.build_stitched(stub)

    result = await stitched.execute(
        '{ ccp { ccpEntitlement(id: "abc") { id offering { id } } } }',
    )

    assert result.data == {"ccp": {"ccpEntitlement": {"id": "abc", "offering": None}}}
    assert len(result.errors) == 1
    error = result.errors[0]
    assert error.path == ["ccp", "ccpEntitlement", "offering"]
    assert error.message == (
        'Missing required input "offeringId" for field "ccp.ccpEntitlement.offering"'
    )
    assert isinstance(error.original_error, MissingInputError)
    assert error.original_error.attribute == "offeringId"


async def test_null_forwarded_attribute_is_present():
    agg = schemas.build_agg()
    stub = _with_executor(
        agg,
        lambda request: ExecutionResult(
            data={"ccp": {"ccpEntitlement": {"id": "abc", "offeringId": None}}},
        ),
    )
    stitched = schemas.build_stitched(stub)

    result = await stitched.execute(
        '{ ccp { ccpEntitlement(id: "abc") { id offering { id } } } }',
    )

    assert result.data == {"ccp": {"ccpEntitlement": {"id": "abc", "offering": None}}}
    assert len(result.errors) == 1
    assert result.errors[0].path == ["ccp", "ccpEntitlement", "offering"]
    assert not isinstance(result.errors[0].original_error, MissingInputError)


async def test_error_at_delegated_field():
    bbf = schemas.build_bbf(missing_offerings=frozenset({"abc"}))
    stitched = schemas.build_stitched(bbf=bbf)

    result = await stitched.execute(
        '{ ccp { ccpEntitlement(id: "abc") { id offering { id } } } }',
    )

    assert result.data == {"ccp": {"ccpEntitlement": {"id": "abc", "offering": None}}}
    assert len(result.errors) == 1
    assert result.errors[0].message == "Offering abc not found"
    assert result.errors[0].path == ["ccp", "ccpEntitlement", "offering"]


async def test_error_below_delegated_field():
    agg = schemas.build_agg(failing_names=frozenset({"abc"}))
    stitched = schemas.build_stitched(agg)

    result = await stitched.execute(CHAIN_QUERY)

    product = result.data["ccp"]["ccpEntitlement"]["offering"]["product"]
    assert product == {"id": "abc", "name": None}
    assert len(result.errors) == 1
    assert result.errors[0].message == "No name for product abc"
    assert result.errors[0].path == [
        "ccp",
        "ccpEntitlement",
        "offering",
        "product",
        "name",
    ]


async def test_non_null_error_nulls_the_delegated_field():
    agg = schemas.build_agg()

    async def executor(request):
        if request.wrap == ("ccpProduct",):
            return ExecutionResult(
                data={"ccp": {"ccpProduct": None}},
                errors=[GraphQLError("boom", path=["ccp", "ccpProduct", "id"])],
            )
        return await agg.executor(request)

    stitched = schemas.build_stitched(_with_executor(agg, executor))

    result = await stitched.execute(
        '{ ccpOffering(id: "abc") { id product { id name } } }',
    )

    assert result.data == {"ccpOffering": {"id": "abc", "product": None}}
    assert len(result.errors) == 1
    assert result.errors[0].message == "boom"
    assert result.errors[0].path == ["ccpOffering", "product", "id"]


async def test_executor_exception():
    bbf = schemas.build_bbf()

    def executor(request):
        raise ConnectionError("bbf is unreachable")

    stitched = schemas.build_stitched(bbf=_with_executor(bbf, executor))

    result = await stitched.execute(
        '{ ccp { ccpEntitlement(id: "abc") { id offering { id } } } }',
    )

    assert result.data == {"ccp": {"ccpEntitlement": {"id": "abc", "offering": None}}}
    assert len(result.errors) == 1
    assert result.errors[0].message == "bbf is unreachable"
    assert isinstance(result.errors[0].original_error, ConnectionError)


async def test_sibling_fields_are_unaffected():
    bbf = schemas.build_bbf(missing_offerings=frozenset({"b"}))
    stitched = schemas.build_stitched(bbf=bbf)

    result = await stitched.execute(
        """
        {
          a: ccpOffering(id: "a") { id product { name } }
          b: ccpOffering(id: "b") { id product { name } }
        }
        """,
    )

    assert result.data == {"a": {"id": "a", "product": {"name": "a"}}, "b": None}
    assert [e.path for e in result.errors] == [["b"]]


ITEMS_TYPE_DEFS = """
type Query {
  items: [Item]
}

type Item {
  id: ID!
  name: String
}
"""


def _items_schema(data, errors):
    subschema = register_subschema(ITEMS_TYPE_DEFS)
    subschema = _with_executor(
        subschema,
        lambda request: ExecutionResult(data=data, errors=errors),
    )
    return build_merged_schema([subschema])


async def test_errors_inside_lists():
    stitched = _items_schema(
        {"items": [{"id": "1", "name": "a"}, {"id": "2", "name": None}]},
        [GraphQLError("no name", path=["items", 1, "name"])],
    )

    result = await stitched.execute("{ items { id name } }")

    assert result.data == {
        "items": [{"id": "1", "name": "a"}, {"id": "2", "name": None}],
    }
    assert len(result.errors) == 1
    assert result.errors[0].message == "no name"
    assert result.errors[0].path == ["items", 1, "name"]


async def test_errors_at_null_list_items():
    stitched = _items_schema(
        {"items": [{"id": "1", "name": "a"}, None]},
        [GraphQLError("no id", path=["items", 1, "id"])],
    )

    result = await stitched.execute("{ items { id name } }")

    assert result.data == {"items": [{"id": "1", "name": "a"}, None]}
    assert len(result.errors) == 1
    assert result.errors[0].message == "no id"
    assert result.errors[0].path == ["items", 1, "id"]


def test_delegation_execution_error_message():
    error = DelegationExecutionError(
        [(GraphQLError("first"), ["a"]), (GraphQLError("second"), [])],
    )

    assert str(error) == "first"
    assert error.errors[0][1] == ["a"]


@pytest.mark.parametrize("tail", [[], ["a", 0]])
def test_missing_input_error(tail):
    error = MissingInputError("offeringId", ["x", *tail])

    assert error.path == ["x", *tail]
    assert "offeringId" in str(error)
