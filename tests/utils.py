import dataclasses
from typing import Any, List, Tuple

from graphql import parse, print_ast

from strawberry_stitch import DelegationRequest, Subschema


class RecordingExecutor:
    """Wrap an executor and keep the requests it receives."""

    def __init__(self, executor):
        self.executor = executor
        self.requests: List[DelegationRequest] = []

    def __call__(self, request: DelegationRequest) -> Any:
        self.requests.append(request)
        return self.executor(request)

    @property
    def documents(self) -> List[str]:
        return [print_ast(r.document) for r in self.requests]


def recording(subschema: Subschema) -> Tuple[Subschema, RecordingExecutor]:
    recorder = RecordingExecutor(subschema.executor)
    return dataclasses.replace(subschema, executor=recorder), recorder


def normalize(source: str) -> str:
    return print_ast(parse(source, no_location=True))
