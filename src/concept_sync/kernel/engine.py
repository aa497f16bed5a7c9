"""
SyncEngine: the dispatcher that turns completions into further actions.

Every concept method invoked through the engine becomes a CompletionEvent in
a Flow, the propagation tree rooted at one external invocation. After each
completion the engine evaluates every sync that listens to that method:

    when   match the when triples against completions of the same flow,
           one of which must be the new completion
    where  refine the resulting Frames with concept queries
    then   for every surviving frame, invoke the then triples in order

Then triples are executed from an explicit stack of cursors rather than by
recursion. A cursor stays on the stack while the syncs triggered by its
latest triple run above it, so each triple's ripple effects settle before
the next triple of the same list starts. The flow is quiescent when the
stack is empty.

Example:
    engine = SyncEngine(EngineConfig(registry=registry, syncs=ALL_SYNCS))
    event = await engine.invoke(Requesting.request, {"path": "/logout", "session": s})
"""

from __future__ import annotations

import inspect
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, FrozenSet, List, Mapping, Optional, Set, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .errors import (
    FlowAborted,
    PropagationLimitExceeded,
    SyncDefinitionError,
    WhereClauseError,
)
from .frames import Frame, Frames
from .patterns import ActionPattern, MethodRef
from .registry import ConceptRegistry
from .schema import CompletionEvent, MethodKind, SyncSummary
from .sync import SyncDefinition, SyncSpec

logger = logging.getLogger(__name__)

DEFAULT_MAX_STEPS = 512
DEFAULT_MAX_DEPTH = 64

CompletionListener = Callable[[CompletionEvent], None]


class EngineConfig(BaseModel):
    """Everything a SyncEngine needs, fixed at construction."""

    registry: ConceptRegistry
    syncs: Tuple[SyncDefinition, ...] = ()
    max_steps: int = Field(default=DEFAULT_MAX_STEPS, gt=0)
    max_depth: int = Field(default=DEFAULT_MAX_DEPTH, gt=0)

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    @model_validator(mode="after")
    def check_syncs(self) -> "EngineConfig":
        seen: Set[str] = set()
        for definition in self.syncs:
            if definition.name in seen:
                raise SyncDefinitionError(f"Duplicate sync name: {definition.name}")
            seen.add(definition.name)
            for ref in definition.methods():
                if ref not in self.registry:
                    raise SyncDefinitionError(
                        f"Sync {definition.name} references unknown method {ref}"
                    )
        self.registry.freeze()
        return self


@dataclass
class Flow:
    """One propagation tree: the completions caused by a single invocation."""

    id: str = field(default_factory=lambda: f"flow-{uuid.uuid4()}")
    events: List[CompletionEvent] = field(default_factory=list)
    consumed: Set[str] = field(default_factory=set)
    steps: int = 0

    @property
    def last_event(self) -> Optional[CompletionEvent]:
        return self.events[-1] if self.events else None

    def record(
        self,
        ref: MethodRef,
        kind: MethodKind,
        record: Mapping[str, Any],
        output: Any,
    ) -> CompletionEvent:
        event = CompletionEvent(
            id=f"event-{uuid.uuid4()}",
            flow=self.id,
            seq=len(self.events),
            concept=ref.concept,
            method=ref.method,
            kind=kind,
            input=dict(record),
            output=output,
        )
        self.events.append(event)
        return event

    def completions_of(self, ref: MethodRef) -> List[CompletionEvent]:
        return [
            event
            for event in self.events
            if event.concept == ref.concept and event.method == ref.method
        ]


@dataclass
class _ThenCursor:
    """Progress through one firing's then clause."""

    sync: SyncDefinition
    patterns: Tuple[ActionPattern, ...]
    frame: Frame
    depth: int = 1
    index: int = 0

    @property
    def done(self) -> bool:
        return self.index >= len(self.patterns)


class SyncEngine:
    """Runs syncs against concept completions until each flow is quiescent."""

    def __init__(self, config: EngineConfig) -> None:
        self.config = config
        self._listeners: List[CompletionListener] = []

    @property
    def registry(self) -> ConceptRegistry:
        return self.config.registry

    @property
    def syncs(self) -> Tuple[SyncDefinition, ...]:
        return self.config.syncs

    def summaries(self) -> List[SyncSummary]:
        return [definition.summary() for definition in self.config.syncs]

    def add_listener(self, listener: CompletionListener) -> None:
        """Observe every completion recorded by this engine."""
        self._listeners.append(listener)

    def remove_listener(self, listener: CompletionListener) -> None:
        self._listeners.remove(listener)

    def new_flow(self) -> Flow:
        return Flow()

    async def invoke(
        self,
        ref: MethodRef,
        record: Optional[Mapping[str, Any]] = None,
        flow: Optional[Flow] = None,
    ) -> CompletionEvent:
        """Invoke a concept method and settle everything it triggers.

        Returns the completion of the invoked method itself. Defects raised
        anywhere in the propagation tree abort the flow with FlowAborted.
        """
        flow = flow or self.new_flow()
        stack: List[_ThenCursor] = []
        try:
            root = await self._invoke_method(flow, ref, dict(record or {}))
            await self._react(flow, root, stack, depth=1)

            while stack:
                cursor = stack[-1]
                if cursor.done:
                    stack.pop()
                    continue
                await self._advance(flow, cursor, stack)
        except FlowAborted:
            raise
        except Exception as exc:
            trigger = flow.last_event
            logger.error(
                "Flow %s aborted after %s: %s",
                flow.id,
                trigger.label if trigger else str(ref),
                exc,
                exc_info=True,
            )
            raise FlowAborted(flow.id, trigger, exc) from exc

        self._report_unhandled(flow, root)
        return root

    async def _invoke_method(
        self,
        flow: Flow,
        ref: MethodRef,
        record: Dict[str, Any],
    ) -> CompletionEvent:
        flow.steps += 1
        if flow.steps > self.config.max_steps:
            raise PropagationLimitExceeded(
                f"Flow {flow.id} exceeded max steps {self.config.max_steps}"
            )

        method = self.registry.resolve(ref)
        output = await method(record)
        event = flow.record(ref, method.kind, record, output)
        logger.debug("%s %s -> %s", event.label, event.input, event.output)

        for listener in self._listeners:
            listener(event)
        return event

    async def _advance(self, flow: Flow, cursor: _ThenCursor, stack: List[_ThenCursor]) -> None:
        pattern = cursor.patterns[cursor.index]
        cursor.index += 1

        event = await self._invoke_method(flow, pattern.method, pattern.input.substitute(cursor.frame))

        if pattern.output is not None and not cursor.done:
            matches = pattern.match_event(event, cursor.frame)
            if matches:
                cursor.frame = matches[0]
            else:
                logger.warning(
                    "Sync %s: %s output %s did not match %r; skipping %d remaining then action(s)",
                    cursor.sync.name,
                    event.label,
                    event.output,
                    pattern.output,
                    len(cursor.patterns) - cursor.index,
                )
                cursor.index = len(cursor.patterns)

        await self._react(flow, event, stack, depth=cursor.depth + 1)

    async def _react(
        self,
        flow: Flow,
        event: CompletionEvent,
        stack: List[_ThenCursor],
        depth: int,
    ) -> None:
        """Evaluate listening syncs against a new completion and schedule firings.

        `depth` is the nesting level of the firings: 1 for syncs triggered by
        the root completion, one more than the firing cursor otherwise.
        """
        ref = MethodRef(event.concept, event.method)
        firings: List[_ThenCursor] = []

        for definition in self.config.syncs:
            if not definition.listens_to(ref):
                continue

            spec = definition.instantiate()
            matches = self._match_when(flow, spec, event)
            if not matches:
                continue

            frames = Frames.from_iterable((frame for frame, _ in matches), registry=self.registry)
            if spec.where is not None:
                frames = await self._run_where(definition, spec, frames)
            if not frames:
                logger.debug("Sync %s matched %s but where left no frames", definition.name, event.label)
                continue

            for _, event_ids in matches:
                flow.consumed.update(event_ids)
            logger.debug(
                "Sync %s fired on %s with %d frame(s)", definition.name, event.label, len(frames)
            )
            firings.extend(_ThenCursor(definition, spec.then, frame, depth) for frame in frames)

        if firings and depth > self.config.max_depth:
            raise PropagationLimitExceeded(
                f"Flow {flow.id} exceeded max depth {self.config.max_depth}"
            )

        # First firing must run first, so it goes on top.
        stack.extend(reversed(firings))

    def _match_when(
        self,
        flow: Flow,
        spec: SyncSpec,
        event: CompletionEvent,
    ) -> List[Tuple[Frame, Tuple[str, ...]]]:
        """Joint bindings of the when clause that include `event`.

        Each triple must match a distinct completion of the flow; variables
        shared between triples must unify across those completions.
        """
        results: List[Tuple[Frame, Tuple[str, ...]]] = []
        seen: List[Tuple[FrozenSet[str], Frame]] = []

        for anchor, anchor_pattern in enumerate(spec.when):
            partial: List[Tuple[Frame, Dict[int, str]]] = [
                (frame, {anchor: event.id})
                for frame in anchor_pattern.match_event(event, Frame())
            ]

            for position, pattern in enumerate(spec.when):
                if position == anchor or not partial:
                    continue
                extended: List[Tuple[Frame, Dict[int, str]]] = []
                for frame, used in partial:
                    for candidate in flow.completions_of(pattern.method):
                        if candidate.id in used.values():
                            continue
                        for match in pattern.match_event(candidate, frame):
                            extended.append((match, {**used, position: candidate.id}))
                partial = extended

            for frame, used in partial:
                # Symmetric triples reach the same joint match from each anchor.
                key = (frozenset(used.values()), frame)
                if key in seen:
                    continue
                seen.append(key)
                results.append((frame, tuple(used[i] for i in sorted(used))))

        return results

    async def _run_where(
        self,
        definition: SyncDefinition,
        spec: SyncSpec,
        frames: Frames,
    ) -> Frames:
        assert spec.where is not None
        result = spec.where(frames)
        if inspect.isawaitable(result):
            result = await result
        if not isinstance(result, Frames):
            raise WhereClauseError(
                f"Sync {definition.name} where clause returned {type(result).__name__}, expected Frames"
            )
        return result

    def _report_unhandled(self, flow: Flow, root: CompletionEvent) -> None:
        # The root's own error is returned to the caller, so it is handled there.
        for event in flow.events:
            if event.id == root.id or not event.is_error or event.id in flow.consumed:
                continue
            logger.warning(
                "Unhandled error from %s in flow %s: %s",
                event.label,
                flow.id,
                event.output.get("error"),
            )
