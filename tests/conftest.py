"""
Pytest configuration and shared fixtures for concept-sync tests.
"""
import asyncio
import os
import tempfile

import pytest
from pytest_bdd import given, parsers, then

from concept_sync.config import Settings
from concept_sync.kernel import DocumentStore
from concept_sync.runtime import build_runtime

# Keeps password hashing fast in tests
TEST_ITERATIONS = 1000


@pytest.fixture
def temp_db():
    """Create a temporary database file for testing."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = f.name

    yield db_path

    # Cleanup
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def store(temp_db):
    """A document store on a fresh database."""
    store = DocumentStore(temp_db)
    yield store
    store.close()


@pytest.fixture
def runtime(temp_db):
    """The full application: every concept and sync on a fresh database."""
    runtime = build_runtime(Settings(db_path=temp_db), iterations=TEST_ITERATIONS)
    yield runtime
    runtime.close()


@pytest.fixture
def test_context():
    """Shared context for passing data between steps."""
    return {}



# =============================================================================
# Shared steps: runtime, users and sessions
# =============================================================================


@given("a fresh runtime")
def fresh_runtime(runtime, test_context):
    """Record every completion the engine produces."""
    test_context["events"] = []
    runtime.engine.add_listener(test_context["events"].append)


@given(parsers.parse('a user "{username}" with password "{password}"'))
def registered_user(runtime, test_context, username: str, password: str):
    reply = asyncio.run(
        runtime.handle_request(
            "/UserAuthentication/register", {"username": username, "password": password}
        )
    )
    test_context.setdefault("users", {})[username] = reply["user"]
    test_context.setdefault("passwords", {})[username] = password


@given(parsers.parse('"{username}" is logged in'))
def logged_in(runtime, test_context, username: str):
    reply = asyncio.run(
        runtime.handle_request(
            "/UserAuthentication/authenticate",
            {"username": username, "password": test_context["passwords"][username]},
        )
    )
    test_context.setdefault("sessions", {})[username] = reply["session"]


@given(parsers.parse('"{first}" and "{second}" are friends'))
def friends(runtime, test_context, first: str, second: str):
    sessions = test_context["sessions"]
    for session, path, friend in (
        (sessions[first], "/Friending/request_friend", second),
        (sessions[second], "/Friending/accept_friend", first),
    ):
        reply = asyncio.run(runtime.handle_request(path, {"session": session, "friend": friend}))
        assert "error" not in reply, reply


@then("exactly one response was sent")
def one_response(test_context):
    labels = [event.label for event in test_context["events"]]
    assert labels.count("Requesting.respond") == 1


@then("the results are empty")
def results_empty(test_context):
    assert test_context["reply"] == {"results": []}


@then("the response has an error")
def response_has_error(test_context):
    assert "error" in test_context["reply"]


@then(parsers.parse('the response error is "{message}"'))
def response_error(test_context, message: str):
    assert test_context["reply"] == {"error": message}
