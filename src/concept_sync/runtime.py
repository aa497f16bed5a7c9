"""
Runtime: one store, the concepts on it, and the engine that composes them.

A request from any transport becomes a Requesting.request completion. The
engine settles the whole flow it triggers; if some sync called
Requesting.respond along the way, that response is the answer.

Example:
    runtime = build_runtime(Settings.load())
    reply = await runtime.handle_request("/UserAuthentication/authenticate",
                                         {"username": "alice", "password": "pw1"})
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from .concepts import Requesting, build_concepts
from .concepts.passthrough import passthrough_target, unverified_routes
from .config import Settings
from .kernel import (
    ConceptRegistry,
    DocumentStore,
    EngineConfig,
    MethodRef,
    SyncDefinition,
    SyncEngine,
    SyncEngineError,
)
from .syncs import ALL_SYNCS

logger = logging.getLogger(__name__)

Reply = Dict[str, Any]


class RequestTimeout(SyncEngineError):
    """The flow for a request did not settle within the configured timeout."""


class NoResponse(SyncEngineError):
    """The flow settled without any sync responding to the request."""


@dataclass
class Runtime:
    settings: Settings
    store: DocumentStore
    registry: ConceptRegistry
    engine: SyncEngine

    def routes(self) -> List[str]:
        """Every concept method as a `/Concept/method` route."""
        return sorted(f"/{ref.concept}/{ref.method}" for ref in self.registry.refs())

    async def process(self, path: str, body: Optional[Mapping[str, Any]] = None) -> Reply:
        """Run a request through the syncs and return its response.

        Raises RequestTimeout, NoResponse, or FlowAborted.
        """
        record = {**(body or {}), "path": path}
        try:
            root = await asyncio.wait_for(
                self.engine.invoke(Requesting.request, record),
                timeout=self.settings.request_timeout,
            )
        except asyncio.TimeoutError:
            raise RequestTimeout(
                f"Request to {path} timed out after {self.settings.request_timeout}s"
            ) from None

        request_id = root.output["request"]
        rows = await self.registry.resolve(Requesting._get_response)({"request": request_id})
        if not rows:
            raise NoResponse(f"No sync responded to request {request_id} for {path}")
        return rows[0]["response"]

    async def handle_request(self, path: str, body: Optional[Mapping[str, Any]] = None) -> Reply:
        """Like `process`, but failures come back as an `{"error": ...}` record."""
        try:
            return await self.process(path, body)
        except SyncEngineError as e:
            logger.warning("Request to %s failed: %s", path, e)
            return {"error": str(e)}

    async def passthrough(
        self, path: str, body: Optional[Mapping[str, Any]] = None
    ) -> Union[Reply, List[Reply]]:
        """Invoke an included concept method directly, bypassing Requesting."""
        target = passthrough_target(path)
        if target is None:
            raise KeyError(path)
        event = await self.engine.invoke(MethodRef(*target), dict(body or {}))
        return event.output

    def close(self) -> None:
        self.store.close()


def build_runtime(
    settings: Optional[Settings] = None,
    syncs: Sequence[SyncDefinition] = ALL_SYNCS,
    iterations: Optional[int] = None,
) -> Runtime:
    """Wire store, concepts, registry, syncs and engine together."""
    settings = settings or Settings.load()
    store = DocumentStore(settings.db_path)

    concepts = build_concepts(store) if iterations is None else build_concepts(store, iterations)
    registry = ConceptRegistry.from_concepts(concepts)
    engine = SyncEngine(
        EngineConfig(
            registry=registry,
            syncs=tuple(syncs),
            max_steps=settings.max_steps,
            max_depth=settings.max_depth,
        )
    )

    runtime = Runtime(settings=settings, store=store, registry=registry, engine=engine)
    for route in unverified_routes(runtime.routes()):
        logger.warning("Unverified route %s: neither included nor excluded from passthrough", route)
    logger.info(
        "Runtime ready: %d concepts, %d syncs, db=%s",
        len(registry.concepts()),
        len(engine.syncs),
        settings.db_path,
    )
    return runtime
