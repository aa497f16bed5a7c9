"""
Step definitions for the Sync engine feature.

These tests verify the dispatcher on small in-test concepts:
- then clauses settle depth-first, in order
- when clauses join distinct completions of one flow
- error completions only match patterns that mention `error`
- then triples see the bindings of earlier then outputs
- runaway flows hit the step or depth limit; defects abort the flow

BDD Flow: Feature file -> Step definitions -> Implementation
"""

import asyncio
import logging
from typing import Any, Dict, List

import pytest
from pytest_bdd import given, parsers, scenarios, then, when

from concept_sync.kernel import (
    ConceptRegistry,
    EngineConfig,
    FlowAborted,
    Frames,
    PropagationLimitExceeded,
    SyncDefinitionError,
    SyncEngine,
    SyncSpec,
    action,
    actions,
    concept,
    query,
    sync,
)

# Load scenarios from feature file
scenarios("../features/engine.feature")

Trigger = concept("Trigger")
Gate = concept("Gate")
Log = concept("Log")


class TriggerConcept:
    @action
    async def fire(self, kind: str, n: int) -> Dict[str, Any]:
        return {"n": n}

    @query
    async def _count(self, n: int) -> List[Dict[str, Any]]:
        return [{"i": i} for i in range(n)]


class GateConcept:
    @action
    async def check(self, ok: bool) -> Dict[str, Any]:
        if not ok:
            return {"error": "denied"}
        return {}


class LogConcept:
    def __init__(self) -> None:
        self.entries: List[str] = []

    @action
    async def write(self, entry: Any) -> Dict[str, Any]:
        self.entries.append(str(entry))
        return {"entry": entry}

    @action
    async def tag(self, entry: Any) -> Dict[str, Any]:
        return {"tag": f"#{entry}"}


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def test_context():
    """Shared context for passing data between steps."""
    return {"syncs": [], "log": LogConcept()}


def _engine(test_context, max_steps: int = 512, max_depth: int = 64) -> SyncEngine:
    registry = ConceptRegistry.from_concepts(
        {"Trigger": TriggerConcept(), "Gate": GateConcept(), "Log": test_context["log"]}
    )
    return SyncEngine(
        EngineConfig(
            registry=registry,
            syncs=tuple(test_context["syncs"]),
            max_steps=max_steps,
            max_depth=max_depth,
        )
    )


# =============================================================================
# Given Steps
# =============================================================================


@given("an engine with trigger, gate and log concepts")
def engine_concepts(test_context):
    pass


@given(parsers.parse('a sync that writes "{first}" then "{second}" when the trigger fires'))
def sync_writes_two(test_context, first: str, second: str):
    @sync
    def write_two(n):
        return SyncSpec(
            when=actions((Trigger.fire, {}, {"n": n})),
            then=actions((Log.write, {"entry": first}), (Log.write, {"entry": second})),
        )

    test_context["syncs"].append(write_two)


@given(parsers.parse('a sync that writes "{entry}" after "{after}" is written'))
def sync_writes_after(test_context, entry: str, after: str):
    @sync
    def write_after(written):
        return SyncSpec(
            when=actions((Log.write, {"entry": after}, {"entry": written})),
            then=actions((Log.write, {"entry": entry})),
        )

    test_context["syncs"].append(write_after)


@given(parsers.parse('a sync that logs n when kinds "{first}" and "{second}" fire with the same n'))
def sync_joins_kinds(test_context, first: str, second: str):
    @sync
    def join_kinds(n):
        return SyncSpec(
            when=actions(
                (Trigger.fire, {"kind": first}, {"n": n}),
                (Trigger.fire, {"kind": second}, {"n": n}),
            ),
            then=actions((Log.write, {"entry": n})),
        )

    test_context["syncs"].append(join_kinds)


@given("syncs that log the gate outcome")
def syncs_log_gate(test_context):
    @sync
    def gate_passed():
        return SyncSpec(
            when=actions((Gate.check, {}, {})),
            then=actions((Log.write, {"entry": "passed"})),
        )

    @sync
    def gate_denied(error):
        return SyncSpec(
            when=actions((Gate.check, {}, {"error": error})),
            then=actions((Log.write, {"entry": error})),
        )

    test_context["syncs"].extend([gate_passed, gate_denied])


@given("a sync whose where clause drops every frame")
def sync_drops_frames(test_context):
    @sync
    def drop_all(n):
        return SyncSpec(
            when=actions((Trigger.fire, {}, {"n": n})),
            where=lambda frames: frames.filter(lambda frame: False),
            then=actions((Log.write, {"entry": n})),
        )

    test_context["syncs"].append(drop_all)


@given("a sync that rewrites every log entry")
def sync_rewrites(test_context):
    @sync
    def start(n):
        return SyncSpec(
            when=actions((Trigger.fire, {}, {"n": n})),
            then=actions((Log.write, {"entry": n})),
        )

    @sync
    def rewrite(entry):
        return SyncSpec(
            when=actions((Log.write, {}, {"entry": entry})),
            then=actions((Log.write, {"entry": entry})),
        )

    test_context["syncs"].extend([start, rewrite])


@given("a sync whose where clause raises")
def sync_where_raises(test_context):
    def broken(frames: Frames) -> Frames:
        raise ZeroDivisionError("broken where")

    @sync
    def broken_where(n):
        return SyncSpec(
            when=actions((Trigger.fire, {}, {"n": n})),
            where=broken,
            then=actions((Log.write, {"entry": n})),
        )

    test_context["syncs"].append(broken_where)


@given("a sync that checks the gate with a failing value when the trigger fires")
def sync_checks_gate(test_context):
    @sync
    def check_gate(n):
        return SyncSpec(
            when=actions((Trigger.fire, {}, {"n": n})),
            then=actions((Gate.check, {"ok": False})),
        )

    test_context["syncs"].append(check_gate)


@given("a sync that logs n when the trigger fires twice with the same n")
def sync_joins_same_method(test_context):
    @sync
    def join_twice(n):
        return SyncSpec(
            when=actions((Trigger.fire, {}, {"n": n}), (Trigger.fire, {}, {"n": n})),
            then=actions((Log.write, {"entry": n})),
        )

    test_context["syncs"].append(join_twice)


@given("a sync that logs every index counted up to n")
def sync_fans_out(test_context):
    @sync
    def log_indexes(n, i):
        return SyncSpec(
            when=actions((Trigger.fire, {}, {"n": n})),
            where=lambda frames: frames.query(Trigger._count, {"n": n}, {"i": i}),
            then=actions((Log.write, {"entry": i})),
        )

    test_context["syncs"].append(log_indexes)


@given("a sync that tags n and logs the tag")
def sync_tags_then_logs(test_context):
    @sync
    def tag_and_log(n, tag):
        return SyncSpec(
            when=actions((Trigger.fire, {}, {"n": n})),
            then=actions((Log.tag, {"entry": n}, {"tag": tag}), (Log.write, {"entry": tag})),
        )

    test_context["syncs"].append(tag_and_log)


@given(parsers.parse('a sync that tags n expecting "{expected}" and then logs "{entry}"'))
def sync_tags_expecting(test_context, expected: str, entry: str):
    @sync
    def tag_expecting(n):
        return SyncSpec(
            when=actions((Trigger.fire, {}, {"n": n})),
            then=actions((Log.tag, {"entry": n}, {"tag": expected}), (Log.write, {"entry": entry})),
        )

    test_context["syncs"].append(tag_expecting)


# =============================================================================
# When Steps
# =============================================================================


@when(parsers.parse('the trigger fires with kind "{kind}" and n {n:d}'))
def trigger_fires(test_context, kind: str, n: int, caplog):
    engine = test_context.get("engine") or _engine(test_context)
    test_context["engine"] = engine
    with caplog.at_level(logging.WARNING, logger="concept_sync.kernel.engine"):
        asyncio.run(engine.invoke(Trigger.fire, {"kind": kind, "n": n}))
    test_context["records"] = list(caplog.records)


@when(parsers.parse('the trigger fires with kind "{kind}" and n {n:d} in a shared flow'))
def trigger_fires_shared(test_context, kind: str, n: int):
    engine = test_context.get("engine") or _engine(test_context)
    test_context["engine"] = engine
    flow = test_context.setdefault("flow", engine.new_flow())
    asyncio.run(engine.invoke(Trigger.fire, {"kind": kind, "n": n}, flow=flow))


@when(parsers.parse('the trigger fires with kind "{kind}" and n {n:d} in the shared flow'))
def trigger_fires_same_flow(test_context, kind: str, n: int):
    trigger_fires_shared(test_context, kind, n)


@when(parsers.parse('the trigger fires with kind "{kind}" and n {n:d} under a limit of {limit:d} steps'))
def trigger_fires_limited(test_context, kind: str, n: int, limit: int):
    engine = _engine(test_context, max_steps=limit)
    try:
        asyncio.run(engine.invoke(Trigger.fire, {"kind": kind, "n": n}))
    except FlowAborted as e:
        test_context["aborted"] = e


@when(parsers.parse('the trigger fires with kind "{kind}" and n {n:d} under a depth limit of {limit:d}'))
def trigger_fires_depth_limited(test_context, kind: str, n: int, limit: int):
    engine = _engine(test_context, max_depth=limit)
    try:
        asyncio.run(engine.invoke(Trigger.fire, {"kind": kind, "n": n}))
    except FlowAborted as e:
        test_context["aborted"] = e


@when(parsers.parse('the trigger fires with kind "{kind}" and n {n:d} expecting an abort'))
def trigger_fires_abort(test_context, kind: str, n: int):
    engine = _engine(test_context)
    try:
        asyncio.run(engine.invoke(Trigger.fire, {"kind": kind, "n": n}))
    except FlowAborted as e:
        test_context["aborted"] = e


@when(parsers.parse("the gate is checked with a {outcome} value"))
def gate_checked(test_context, outcome: str):
    engine = _engine(test_context)
    asyncio.run(engine.invoke(Gate.check, {"ok": outcome == "passing"}))


@when(parsers.parse('an engine is configured with a sync naming "{ref}"'))
def engine_with_unknown(test_context, ref: str):
    concept_name, method = ref.split(".")
    target = getattr(concept(concept_name), method)

    @sync
    def unknown(n):
        return SyncSpec(
            when=actions((Trigger.fire, {}, {"n": n})),
            then=actions((target, {"entry": n})),
        )

    test_context["syncs"].append(unknown)
    try:
        _engine(test_context)
    except SyncDefinitionError as e:
        test_context["error"] = e


# =============================================================================
# Then Steps
# =============================================================================


@then(parsers.parse('the log reads "{entries}"'))
def log_reads(test_context, entries: str):
    assert test_context["log"].entries == entries.split(",")


@then("the log is empty")
def log_empty(test_context):
    assert test_context["log"].entries == []


@then("the flow is aborted by the propagation limit")
def aborted_by_limit(test_context):
    aborted = test_context.get("aborted")
    assert isinstance(aborted, FlowAborted)
    assert isinstance(aborted.cause, PropagationLimitExceeded)


@then(parsers.parse("the log has {count:d} entries"))
def log_count(test_context, count: int):
    assert "aborted" not in test_context
    assert test_context["log"].entries == [str(i) for i in range(count)]


@then("the flow is aborted by the depth limit")
def aborted_by_depth(test_context):
    aborted = test_context.get("aborted")
    assert isinstance(aborted, FlowAborted)
    assert isinstance(aborted.cause, PropagationLimitExceeded)
    assert "max depth" in str(aborted.cause)


@then(parsers.parse('a skipped then action is logged for "{sync_name}"'))
def skip_logged(test_context, sync_name: str):
    messages = [record.getMessage() for record in test_context["records"]]
    assert any(sync_name in message and "skipping 1 remaining" in message for message in messages)


@then(parsers.parse('the flow abort names "{label}" as its trigger'))
def abort_names_trigger(test_context, label: str):
    aborted = test_context.get("aborted")
    assert isinstance(aborted, FlowAborted)
    assert isinstance(aborted.cause, ZeroDivisionError)
    assert aborted.trigger is not None
    assert aborted.trigger.label == label
    assert test_context["log"].entries == []


@then("a sync definition error is raised")
def definition_error(test_context):
    assert isinstance(test_context.get("error"), SyncDefinitionError)


@then(parsers.parse('an unhandled error from "{label}" is logged'))
def unhandled_logged(test_context, label: str):
    messages = [record.getMessage() for record in test_context["records"]]
    assert any("Unhandled error" in message and label in message for message in messages)
