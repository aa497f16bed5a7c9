"""
Engine exceptions.

Match failures are never exceptions: an empty Frames is the answer for
"nothing matched". Everything raised from here is a defect in a sync
definition, a concept, or a runaway propagation tree.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .schema import CompletionEvent


class SyncEngineError(Exception):
    """Base class for all sync engine errors."""


class SyncDefinitionError(SyncEngineError):
    """A sync declaration is malformed or references unknown methods."""


class WhereClauseError(SyncEngineError):
    """A where clause tried to do something other than read."""


class UnboundVariableError(SyncEngineError):
    """A pattern variable was substituted before anything bound it."""

    def __init__(self, variable_name: str, field: str) -> None:
        super().__init__(f"Variable ?{variable_name} is unbound for field '{field}'")
        self.variable_name = variable_name
        self.field = field


class ContractViolation(SyncEngineError):
    """A concept method returned something outside the action/query contract."""


class UnknownMethodError(SyncEngineError, KeyError):
    """No concept method is registered under the requested name."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "Unknown method"


class PropagationLimitExceeded(SyncEngineError):
    """A flow exceeded its step or depth budget."""


class FlowAborted(SyncEngineError):
    """A flow was stopped by an engine-internal defect."""

    def __init__(
        self,
        flow_id: str,
        trigger: Optional["CompletionEvent"],
        cause: BaseException,
    ) -> None:
        where = f" after {trigger.label}" if trigger is not None else ""
        super().__init__(f"Flow {flow_id} aborted{where}: {cause}")
        self.flow_id = flow_id
        self.trigger = trigger
        self.cause = cause
