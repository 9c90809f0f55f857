"""Tests for `strawberry_stitch/settings.py`."""

from django.test import override_settings
from graphql import OperationType, parse

from strawberry_stitch import DelegationRequest, register_subschema, settings


def test_defaults():
    """Test defaults.

    Test that `strawberry_stitch_settings()` provides the default settings if they
    don't exist in the Django settings file.
    """
    assert settings.strawberry_stitch_settings() == settings.DEFAULT_STITCH_SETTINGS


def test_non_defaults():
    """Test non defaults.

    Test that `strawberry_stitch_settings()` provides the user's settings if they are
    defined in the Django settings file.
    """
    with override_settings(
        STRAWBERRY_STITCH=settings.StrawberryStitchSettings(
            DEFAULT_TIMEOUT=2.5,
            VALIDATE_DELEGATED_OPERATIONS=False,
            ADD_TYPENAME_TO_ABSTRACT=False,
        ),
    ):
        assert (
            settings.strawberry_stitch_settings()
            == settings.StrawberryStitchSettings(
                DEFAULT_TIMEOUT=2.5,
                VALIDATE_DELEGATED_OPERATIONS=False,
                ADD_TYPENAME_TO_ABSTRACT=False,
            )
        )


def test_partial_settings():
    with override_settings(STRAWBERRY_STITCH={"DEFAULT_TIMEOUT": 1.0}):
        assert settings.strawberry_stitch_settings() == {
            **settings.DEFAULT_STITCH_SETTINGS,
            "DEFAULT_TIMEOUT": 1.0,
        }


def _invalid_request(subschema):
    return DelegationRequest(
        subschema=subschema,
        operation=OperationType.QUERY,
        field_name="nope",
        wrap=(),
        arguments={},
        selection_set=None,
        document=parse("{ nope }", no_location=True),
        variables={},
        context=None,
    )


async def test_delegated_operations_are_validated():
    subschema = register_subschema("type Query { a: String }")

    result = await subschema.executor(_invalid_request(subschema))

    assert result.data is None
    assert "nope" in result.errors[0].message


@override_settings(STRAWBERRY_STITCH={"VALIDATE_DELEGATED_OPERATIONS": False})
async def test_delegated_operations_validation_can_be_disabled():
    subschema = register_subschema("type Query { a: String }")

    result = await subschema.executor(_invalid_request(subschema))

    assert result.errors is None
