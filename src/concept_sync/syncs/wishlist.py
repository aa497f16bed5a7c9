"""Wishlist routes: add and remove places, list your own or a friend's."""

from ..concepts import Friending, Requesting, Sessioning, UserAuthentication, Wishlist
from ..kernel import Frames, SyncSpec, actions, sync

ADD_PLACE = "/Wishlist/add_place"
REMOVE_PLACE = "/Wishlist/remove_place"
GET_PLACES = "/Wishlist/_get_places"
GET_FRIEND_PLACES = "/Wishlist/_get_friend_places"


@sync
def add_place_request(request, session, user, city, region, country):
    return SyncSpec(
        when=actions(
            (
                Requesting.request,
                {"path": ADD_PLACE, "session": session, "city": city, "region": region, "country": country},
                {"request": request},
            ),
        ),
        where=lambda frames: frames.query(Sessioning._get_user, {"session": session}, {"user": user}),
        then=actions(
            (Wishlist.add_place, {"user": user, "city": city, "region": region, "country": country}),
        ),
    )


@sync
def add_place_response(request, place):
    return SyncSpec(
        when=actions(
            (Requesting.request, {"path": ADD_PLACE}, {"request": request}),
            (Wishlist.add_place, {}, {"place": place}),
        ),
        then=actions((Requesting.respond, {"request": request, "place": place})),
    )


@sync
def add_place_response_error(request, error):
    return SyncSpec(
        when=actions(
            (Requesting.request, {"path": ADD_PLACE}, {"request": request}),
            (Wishlist.add_place, {}, {"error": error}),
        ),
        then=actions((Requesting.respond, {"request": request, "error": error})),
    )


@sync
def remove_place_request(request, session, user, place):
    return SyncSpec(
        when=actions(
            (Requesting.request, {"path": REMOVE_PLACE, "session": session, "place": place}, {"request": request}),
        ),
        where=lambda frames: frames.query(Sessioning._get_user, {"session": session}, {"user": user}),
        then=actions((Wishlist.remove_place, {"user": user, "place": place})),
    )


@sync
def remove_place_response(request):
    return SyncSpec(
        when=actions(
            (Requesting.request, {"path": REMOVE_PLACE}, {"request": request}),
            (Wishlist.remove_place, {}, {}),
        ),
        then=actions((Requesting.respond, {"request": request})),
    )


@sync
def remove_place_response_error(request, error):
    return SyncSpec(
        when=actions(
            (Requesting.request, {"path": REMOVE_PLACE}, {"request": request}),
            (Wishlist.remove_place, {}, {"error": error}),
        ),
        then=actions((Requesting.respond, {"request": request, "error": error})),
    )


@sync
def get_places_request(request, session, user, place, place_data, results):
    async def where(frames: Frames) -> Frames:
        original = frames[0]
        frames = await frames.query(Sessioning._get_user, {"session": session}, {"user": user})
        frames = await frames.query(Wishlist._get_places, {"user": user}, {"place": place})
        if not frames:
            return Frames({**original, results: []})

        frames = await frames.query(Wishlist._get_place_by_id, {"_id": place}, {"place_data": place_data})
        return frames.collect_as([place, place_data], results)

    return SyncSpec(
        when=actions((Requesting.request, {"path": GET_PLACES, "session": session}, {"request": request})),
        where=where,
        then=actions((Requesting.respond, {"request": request, "results": results})),
    )


@sync
def get_friend_places_request(
    request, session, user, friend_username, friend, friendship, place, place_data, results
):
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
            return Frames({**original, results: []})

        frames = await frames.query(Wishlist._get_places, {"user": friend}, {"place": place})
        if not frames:
            return Frames({**original, results: []})

        frames = await frames.query(Wishlist._get_place_by_id, {"_id": place}, {"place_data": place_data})
        return frames.collect_as([place, place_data], results)

    return SyncSpec(
        when=actions(
            (
                Requesting.request,
                {"path": GET_FRIEND_PLACES, "session": session, "friend_username": friend_username},
                {"request": request},
            ),
        ),
        where=where,
        then=actions((Requesting.respond, {"request": request, "results": results})),
    )


SYNCS = (
    add_place_request,
    add_place_response,
    add_place_response_error,
    remove_place_request,
    remove_place_response,
    remove_place_response_error,
    get_places_request,
    get_friend_places_request,
)
