"""
Kernel: the machinery of concept-sync.

This module contains the synchronization runtime:
- patterns: pattern variables, method references, actions(...)
- frames: Frame and Frames, the binding environments of a sync evaluation
- sync: the @sync declaration and SyncSpec
- registry: concept actions and queries by name
- engine: the dispatcher that fires syncs on completions
- store: document collections backing the concepts

The kernel is distinct from concepts/ and syncs/ (the application).
Kernel = machinery. Concepts and syncs = the app built on it.
"""
from .errors import (
    ContractViolation,
    FlowAborted,
    PropagationLimitExceeded,
    SyncDefinitionError,
    SyncEngineError,
    UnboundVariableError,
    UnknownMethodError,
    WhereClauseError,
)
from .schema import CompletionEvent, CompletionOp, MethodKind, SyncSummary
from .patterns import ANY, ActionPattern, MethodRef, Pattern, Var, actions, concept
from .frames import Frame, Frames
from .sync import SyncDefinition, SyncSpec, sync
from .registry import ConceptRegistry, action, query
from .engine import EngineConfig, Flow, SyncEngine
from .store import Collection, DocumentStore, fresh_id

__all__ = [
    # Errors
    "ContractViolation",
    "FlowAborted",
    "PropagationLimitExceeded",
    "SyncDefinitionError",
    "SyncEngineError",
    "UnboundVariableError",
    "UnknownMethodError",
    "WhereClauseError",
    # Schema
    "CompletionEvent",
    "CompletionOp",
    "MethodKind",
    "SyncSummary",
    # Patterns
    "ANY",
    "ActionPattern",
    "MethodRef",
    "Pattern",
    "Var",
    "actions",
    "concept",
    # Frames
    "Frame",
    "Frames",
    # Syncs
    "SyncDefinition",
    "SyncSpec",
    "sync",
    # Registry
    "ConceptRegistry",
    "action",
    "query",
    # Engine
    "EngineConfig",
    "Flow",
    "SyncEngine",
    # Store
    "Collection",
    "DocumentStore",
    "fresh_id",
]
