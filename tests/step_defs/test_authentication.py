"""
Step definitions for registration, login and logout.

These tests run whole flows through the runtime:
- the login chain: authenticate, then Sessioning.create, then respond
- a bad password never reaches Sessioning.create
- logout resolves the session before deleting it

BDD Flow: Feature file -> Step definitions -> Implementation
"""

import asyncio

from pytest_bdd import parsers, scenarios, then, when

from concept_sync.concepts import Sessioning

# Load scenarios from feature file
scenarios("../features/authentication.feature")


def _request(runtime, path, body):
    return asyncio.run(runtime.handle_request(path, body))


# =============================================================================
# When Steps
# =============================================================================


@when(parsers.parse('"{username}" registers with password "{password}"'))
def register(runtime, test_context, username: str, password: str):
    test_context["reply"] = _request(
        runtime, "/UserAuthentication/register", {"username": username, "password": password}
    )


@when(parsers.parse('"{username}" logs in with password "{password}"'))
def login(runtime, test_context, username: str, password: str):
    test_context["events"].clear()
    test_context["reply"] = _request(
        runtime, "/UserAuthentication/authenticate", {"username": username, "password": password}
    )


@when(parsers.parse('"{username}" logs out'))
def logout(runtime, test_context, username: str):
    session = test_context["sessions"][username]
    test_context["logged_out"] = session
    test_context["reply"] = _request(runtime, "/logout", {"session": session})


@when(parsers.parse('session "{session}" logs out'))
def logout_unknown(runtime, test_context, session: str):
    test_context["reply"] = _request(runtime, "/logout", {"session": session})


# =============================================================================
# Then Steps
# =============================================================================


@then("the response contains a user")
def response_has_user(test_context):
    assert test_context["reply"].get("user")
    assert "error" not in test_context["reply"]


@then(parsers.parse('the response error mentions "{text}"'))
def response_error_mentions(test_context, text: str):
    assert text in test_context["reply"]["error"]


@then("the completions run authenticate, create session, respond in order")
def login_chain(test_context):
    labels = [event.label for event in test_context["events"]]
    assert labels == [
        "Requesting.request",
        "UserAuthentication.authenticate",
        "Sessioning.create",
        "Requesting.respond",
    ]
    authenticate = test_context["events"][1]
    assert authenticate.output == {}
    respond = test_context["events"][-1]
    create = next(event for event in test_context["events"] if event.label == "Sessioning.create")
    assert respond.input["session"] == create.output["session"]
    assert respond.input["user"] == create.input["user"]


@then(parsers.parse('the response contains a session for "{username}"'))
def response_has_session(runtime, test_context, username: str):
    reply = test_context["reply"]
    assert reply["user"] == test_context["users"][username]
    rows = asyncio.run(runtime.registry.resolve(Sessioning._get_user)({"session": reply["session"]}))
    assert rows == [{"user": reply["user"]}]


@then("no session was created")
def no_session(test_context):
    labels = [event.label for event in test_context["events"]]
    assert "Sessioning.create" not in labels
    assert labels.count("Requesting.respond") == 1


@then(parsers.parse('the response status is "{status}"'))
def response_status(test_context, status: str):
    assert test_context["reply"] == {"status": status}


@then("the session no longer resolves to a user")
def session_gone(runtime, test_context):
    session = test_context["logged_out"]
    rows = asyncio.run(runtime.registry.resolve(Sessioning._get_user)({"session": session}))
    assert rows == []
