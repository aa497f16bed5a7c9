"""
Friending routes.

Requests name the other party by username; the request sync resolves it to a
user id before touching Friending. Every mutating route gets a request sync,
a success responder and an error responder built by `_route`.
"""

from ..concepts import Friending, Requesting, Sessioning, UserAuthentication
from ..kernel import Frames, MethodRef, SyncDefinition, SyncSpec, actions, sync

GET_FRIENDS = "/Friending/_get_friends"
GET_INCOMING = "/Friending/_get_incoming_requests"
GET_OUTGOING = "/Friending/_get_outgoing_requests"


def _route(method: MethodRef):
    path = f"/Friending/{method.method}"

    def request_sync(request, session, user, friend_username, friend):
        async def where(frames: Frames) -> Frames:
            frames = await frames.query(Sessioning._get_user, {"session": session}, {"user": user})
            return await frames.query(
                UserAuthentication._get_user_by_username, {"username": friend_username}, {"user": friend}
            )

        return SyncSpec(
            when=actions(
                (
                    Requesting.request,
                    {"path": path, "session": session, "friend": friend_username},
                    {"request": request},
                ),
            ),
            where=where,
            then=actions((method, {"user": user, "friend": friend})),
        )

    def response(request):
        return SyncSpec(
            when=actions(
                (Requesting.request, {"path": path}, {"request": request}),
                (method, {}, {}),
            ),
            then=actions((Requesting.respond, {"request": request})),
        )

    def response_error(request, error):
        return SyncSpec(
            when=actions(
                (Requesting.request, {"path": path}, {"request": request}),
                (method, {}, {"error": error}),
            ),
            then=actions((Requesting.respond, {"request": request, "error": error})),
        )

    return (
        SyncDefinition(request_sync, name=f"{method.method}_request"),
        SyncDefinition(response, name=f"{method.method}_response"),
        SyncDefinition(response_error, name=f"{method.method}_response_error"),
    )


def _listing(path: str, listing: MethodRef, name: str) -> SyncDefinition:
    """Respond with the usernames a Friending listing query returns."""

    def listing_sync(request, session, user, friend, username, results):
        async def where(frames: Frames) -> Frames:
            original = frames[0]
            frames = await frames.query(Sessioning._get_user, {"session": session}, {"user": user})
            frames = await frames.query(listing, {"user": user}, {"friend": friend})
            if not frames:
                return Frames({**original, results: []})

            frames = await frames.query(UserAuthentication._get_username, {"user": friend}, {"username": username})
            return frames.collect_as([username], results)

        return SyncSpec(
            when=actions((Requesting.request, {"path": path, "session": session}, {"request": request})),
            where=where,
            then=actions((Requesting.respond, {"request": request, "results": results})),
        )

    return SyncDefinition(listing_sync, name=name)


@sync
def is_friends_with_request(request, session, user, friend_username, friend, friendship):
    async def where(frames: Frames) -> Frames:
        original = frames[0]
        frames = await frames.query(Sessioning._get_user, {"session": session}, {"user": user})
        frames = await frames.query(
            UserAuthentication._get_user_by_username, {"username": friend_username}, {"user": friend}
        )
        frames = await frames.query(
            Friending._is_friends_with, {"user": user, "friend": friend}, {"friendship_exists": friendship}
        )
        if not frames:
            return Frames({**original, friendship: False})
        return frames

    return SyncSpec(
        when=actions(
            (
                Requesting.request,
                {"path": "/Friending/_is_friends_with", "session": session, "friend": friend_username},
                {"request": request},
            ),
        ),
        where=where,
        then=actions((Requesting.respond, {"request": request, "friendship_exists": friendship})),
    )


SYNCS = (
    *_route(Friending.request_friend),
    *_route(Friending.unrequest_friend),
    *_route(Friending.accept_friend),
    *_route(Friending.reject_friend),
    *_route(Friending.validate_friendship),
    *_route(Friending.end_friendship),
    _listing(GET_FRIENDS, Friending._get_friends, "get_friends_request"),
    _listing(GET_INCOMING, Friending._get_incoming_requests, "get_incoming_requests_request"),
    _listing(GET_OUTGOING, Friending._get_outgoing_requests, "get_outgoing_requests_request"),
    is_friends_with_request,
)
