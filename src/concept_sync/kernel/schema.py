from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List

from pydantic import BaseModel, Field


class MethodKind(str, Enum):
    ACTION = "action"
    QUERY = "query"


class CompletionOp(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


class CompletionEvent(BaseModel):
    """A concept method was invoked with `input` and produced `output`."""

    id: str
    flow: str
    seq: int
    concept: str
    method: str
    kind: MethodKind = MethodKind.ACTION
    input: Dict[str, Any] = Field(default_factory=dict)
    # Actions produce one record, queries a list of records.
    output: Any = Field(default_factory=dict)

    @property
    def label(self) -> str:
        return f"{self.concept}.{self.method}"

    @property
    def op(self) -> CompletionOp:
        if isinstance(self.output, dict) and "error" in self.output:
            return CompletionOp.ERROR
        return CompletionOp.SUCCESS

    @property
    def is_error(self) -> bool:
        return self.op == CompletionOp.ERROR

    def output_records(self) -> List[Dict[str, Any]]:
        """Output as a list of records, whatever the method kind."""
        if self.kind == MethodKind.QUERY:
            return list(self.output)
        return [self.output]


class SyncSummary(BaseModel):
    """Description of a registered sync, for listings."""

    name: str
    when: List[str]
    then: List[str]
    has_where: bool = False
