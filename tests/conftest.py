from typing import Any, List

import pytest

from strawberry_stitch import build_merged_schema

from . import schemas


@pytest.fixture
def contexts() -> List[Any]:
    return []


@pytest.fixture
def agg(contexts):
    return schemas.build_agg(contexts)


@pytest.fixture
def bbf(contexts):
    return schemas.build_bbf(contexts)


@pytest.fixture
def stitched(agg, bbf):
    return build_merged_schema([agg, bbf], schemas.ccp_extensions(agg, bbf))
