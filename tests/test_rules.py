import pytest
from graphql import build_schema

from strawberry_stitch import ForwardingRule, InvalidForwardingRuleError


def test_parse_selection_set():
    rule = ForwardingRule.parse("{ offeringId productId: product }")

    assert rule
    assert rule.required == ("offeringId", "productId")
    assert [f.name.value for f in rule.fields] == ["offeringId", "product"]


@pytest.mark.parametrize("source", [None, "", "   "])
def test_parse_empty(source):
    rule = ForwardingRule.parse(source)

    assert not rule
    assert rule.required == ()
    assert rule.fields == ()


@pytest.mark.parametrize(
    "source",
    [
        "{ offeringId",
        "query Named { offeringId }",
        "query ($id: ID) { offeringId }",
        "mutation { offeringId }",
        "{ ...Parts }",
        "{ a } { b }",
    ],
)
def test_parse_invalid(source):
    with pytest.raises(InvalidForwardingRuleError) as exc_info:
        ForwardingRule.parse(source)

    assert source in str(exc_info.value)


def test_validate_against_type():
    schema = build_schema("type Query { e: E } type E { id: ID offeringId: ID }")
    entitlement = schema.get_type("E")

    ForwardingRule.parse("{ offeringId }").validate(entitlement)

    with pytest.raises(InvalidForwardingRuleError, match='"E" has no field "nope"'):
        ForwardingRule.parse("{ nope }").validate(entitlement)
