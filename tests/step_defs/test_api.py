"""
Step definitions for the HTTP API feature.

These tests drive the FastAPI app with TestClient against a temporary
database: passthrough routes, routes answered by syncs, and the status
codes engine failures map to.
"""

import pytest
from fastapi.testclient import TestClient
from pytest_bdd import given, parsers, scenarios, then, when

from concept_sync.api import create_app
from concept_sync.config import CONFIG_ENV

# Load scenarios from feature file
scenarios("../features/api.feature")


@pytest.fixture
def api_client(runtime):
    """Create a test client bound to the test runtime."""
    return TestClient(create_app(runtime))


# =============================================================================
# Given Steps
# =============================================================================


@given("an API client on a fresh runtime")
def fresh_client(api_client, test_context):
    test_context["client"] = api_client


@given(parsers.parse('"{username}" registered through the API with password "{password}"'))
def registered(test_context, username: str, password: str):
    response = test_context["client"].post(
        "/api/UserAuthentication/register", json={"username": username, "password": password}
    )
    assert response.status_code == 200


@given("the environment names a config file that does not exist")
def missing_config(monkeypatch, tmp_path):
    monkeypatch.setenv(CONFIG_ENV, str(tmp_path / "missing.yaml"))


# =============================================================================
# When Steps
# =============================================================================


@when(parsers.parse('the client gets "{path}"'))
def client_gets(test_context, path: str):
    test_context["response"] = test_context["client"].get(path)


@when(parsers.parse('the client posts to "{path}" with username "{username}" and password "{password}"'))
def client_posts_credentials(test_context, path: str, username: str, password: str):
    test_context["response"] = test_context["client"].post(
        path, json={"username": username, "password": password}
    )


@when(parsers.parse('the client posts to "{path}" with username "{username:w}"'))
def client_posts_username(test_context, path: str, username: str):
    test_context["response"] = test_context["client"].post(path, json={"username": username})


@when(parsers.parse('the client posts to "{path}" with session "{session}"'))
def client_posts_session(test_context, path: str, session: str):
    test_context["response"] = test_context["client"].post(path, json={"session": session})


@when("an app is built without settings")
def app_without_settings(test_context):
    test_context["client"] = TestClient(create_app())


# =============================================================================
# Then Steps
# =============================================================================


@then(parsers.parse("the status code is {code:d}"))
def status_code(test_context, code: int):
    assert test_context["response"].status_code == code, test_context["response"].text


@then(parsers.parse('the body status is "{status}"'))
def body_status(test_context, status: str):
    assert test_context["response"].json()["status"] == status


@then("the body contains a user")
def body_has_user(test_context):
    assert test_context["response"].json().get("user")


@then("the body contains a session")
def body_has_session(test_context):
    body = test_context["response"].json()
    assert body.get("session")
    assert body.get("user")


@then("the body is a list with one user")
def body_is_list(test_context):
    body = test_context["response"].json()
    assert isinstance(body, list)
    assert len(body) == 1
    assert body[0]["user"]


@then(parsers.parse('the body error is "{message}"'))
def body_error(test_context, message: str):
    assert test_context["response"].json() == {"error": message}


@then(parsers.parse('the body lists "{route}" as an inclusion'))
def lists_inclusion(test_context, route: str):
    assert route in test_context["response"].json()["inclusions"]
