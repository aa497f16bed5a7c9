"""
concept-sync: independent concepts composed by declarative syncs.

Public API re-exports from kernel/ (machinery).
"""
from .kernel import (
    ANY,
    CompletionEvent,
    ConceptRegistry,
    DocumentStore,
    EngineConfig,
    FlowAborted,
    Frame,
    Frames,
    SyncEngine,
    SyncSpec,
    Var,
    action,
    actions,
    concept,
    query,
    sync,
)

__all__ = [
    "ANY",
    "CompletionEvent",
    "ConceptRegistry",
    "DocumentStore",
    "EngineConfig",
    "FlowAborted",
    "Frame",
    "Frames",
    "SyncEngine",
    "SyncSpec",
    "Var",
    "action",
    "actions",
    "concept",
    "query",
    "sync",
]
