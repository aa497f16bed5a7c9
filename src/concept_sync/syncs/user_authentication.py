"""Registration, login with session creation, and logout."""

from ..concepts import Requesting, Sessioning, UserAuthentication
from ..kernel import SyncSpec, actions, sync

REGISTER = "/UserAuthentication/register"
AUTHENTICATE = "/UserAuthentication/authenticate"
LOGOUT = "/logout"


@sync
def register_request(request, username, password):
    return SyncSpec(
        when=actions(
            (Requesting.request, {"path": REGISTER, "username": username, "password": password}, {"request": request}),
        ),
        then=actions((UserAuthentication.register, {"username": username, "password": password})),
    )


@sync
def register_response(request, user):
    return SyncSpec(
        when=actions(
            (Requesting.request, {"path": REGISTER}, {"request": request}),
            (UserAuthentication.register, {}, {"user": user}),
        ),
        then=actions((Requesting.respond, {"request": request, "user": user})),
    )


@sync
def register_response_error(request, error):
    return SyncSpec(
        when=actions(
            (Requesting.request, {"path": REGISTER}, {"request": request}),
            (UserAuthentication.register, {}, {"error": error}),
        ),
        then=actions((Requesting.respond, {"request": request, "error": error})),
    )


@sync
def login_request(request, username, password):
    return SyncSpec(
        when=actions(
            (Requesting.request, {"path": AUTHENTICATE, "username": username, "password": password}, {"request": request}),
        ),
        then=actions((UserAuthentication.authenticate, {"username": username, "password": password})),
    )


@sync
def login_success_creates_session(username, user):
    # An empty output pattern only matches a successful authentication.
    return SyncSpec(
        when=actions((UserAuthentication.authenticate, {"username": username}, {})),
        where=lambda frames: frames.query(
            UserAuthentication._get_user_by_username, {"username": username}, {"user": user}
        ),
        then=actions((Sessioning.create, {"user": user})),
    )


@sync
def login_response(request, user, session):
    return SyncSpec(
        when=actions(
            (Requesting.request, {"path": AUTHENTICATE}, {"request": request}),
            (UserAuthentication.authenticate, {}, {}),
            (Sessioning.create, {"user": user}, {"session": session}),
        ),
        then=actions((Requesting.respond, {"request": request, "session": session, "user": user})),
    )


@sync
def login_response_error(request, error):
    return SyncSpec(
        when=actions(
            (Requesting.request, {"path": AUTHENTICATE}, {"request": request}),
            (UserAuthentication.authenticate, {}, {"error": error}),
        ),
        then=actions((Requesting.respond, {"request": request, "error": error})),
    )


@sync
def logout_request(request, session, user):
    return SyncSpec(
        when=actions((Requesting.request, {"path": LOGOUT, "session": session}, {"request": request})),
        where=lambda frames: frames.query(Sessioning._get_user, {"session": session}, {"user": user}),
        then=actions((Sessioning.delete, {"session": session})),
    )


@sync
def logout_response(request):
    return SyncSpec(
        when=actions(
            (Requesting.request, {"path": LOGOUT}, {"request": request}),
            (Sessioning.delete, {}, {}),
        ),
        then=actions((Requesting.respond, {"request": request, "status": "logged_out"})),
    )


@sync
def logout_response_error(request, error):
    return SyncSpec(
        when=actions(
            (Requesting.request, {"path": LOGOUT}, {"request": request}),
            (Sessioning.delete, {}, {"error": error}),
        ),
        then=actions((Requesting.respond, {"request": request, "error": error})),
    )


SYNCS = (
    register_request,
    register_response,
    register_response_error,
    login_request,
    login_success_creates_session,
    login_response,
    login_response_error,
    logout_request,
    logout_response,
    logout_response_error,
)
