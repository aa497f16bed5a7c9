"""Posting routes: create, edit and delete posts, list your own or a friend's."""

from ..concepts import Friending, Posting, Requesting, Sessioning, UserAuthentication
from ..kernel import Frames, MethodRef, SyncDefinition, SyncSpec, actions, sync

CREATE = "/Posting/create"
EDIT_TITLE = "/Posting/edit_title"
EDIT_PLACE = "/Posting/edit_place"
EDIT_DATES = "/Posting/edit_dates"
EDIT_DESCRIPTION = "/Posting/edit_description"
DELETE = "/Posting/delete"
GET_POSTS = "/Posting/_get_posts"
GET_FRIEND_POSTS = "/Posting/_get_friend_posts"


def _session_user(session, user):
    return lambda frames: frames.query(Sessioning._get_user, {"session": session}, {"user": user})


def _responders(path: str, method: MethodRef, name: str, result: str = "post"):
    """Success and error responders for a mutating Posting route."""

    def success(request, value):
        output = {result: value} if result else {}
        record = {"request": request, **output}
        return SyncSpec(
            when=actions(
                (Requesting.request, {"path": path}, {"request": request}),
                (method, {}, output),
            ),
            then=actions((Requesting.respond, record)),
        )

    def failure(request, error):
        return SyncSpec(
            when=actions(
                (Requesting.request, {"path": path}, {"request": request}),
                (method, {}, {"error": error}),
            ),
            then=actions((Requesting.respond, {"request": request, "error": error})),
        )

    return (
        SyncDefinition(success, name=f"{name}_response"),
        SyncDefinition(failure, name=f"{name}_response_error"),
    )


@sync
def create_post_request(request, session, user, title, city, region, country, start, end, description):
    return SyncSpec(
        when=actions(
            (
                Requesting.request,
                {
                    "path": CREATE,
                    "session": session,
                    "title": title,
                    "city": city,
                    "region": region,
                    "country": country,
                    "start": start,
                    "end": end,
                    "description": description,
                },
                {"request": request},
            ),
        ),
        where=_session_user(session, user),
        then=actions(
            (
                Posting.create,
                {
                    "creator": user,
                    "title": title,
                    "city": city,
                    "region": region,
                    "country": country,
                    "start": start,
                    "end": end,
                    "description": description,
                },
            ),
        ),
    )


@sync
def edit_post_title_request(request, session, user, post, title):
    return SyncSpec(
        when=actions(
            (
                Requesting.request,
                {"path": EDIT_TITLE, "session": session, "post": post, "title": title},
                {"request": request},
            ),
        ),
        where=_session_user(session, user),
        then=actions((Posting.edit_title, {"user": user, "post": post, "title": title})),
    )


@sync
def edit_post_place_request(request, session, user, post, city, region, country):
    return SyncSpec(
        when=actions(
            (
                Requesting.request,
                {
                    "path": EDIT_PLACE,
                    "session": session,
                    "post": post,
                    "city": city,
                    "region": region,
                    "country": country,
                },
                {"request": request},
            ),
        ),
        where=_session_user(session, user),
        then=actions(
            (Posting.edit_place, {"user": user, "post": post, "city": city, "region": region, "country": country}),
        ),
    )


@sync
def edit_post_dates_request(request, session, user, post, start, end):
    return SyncSpec(
        when=actions(
            (
                Requesting.request,
                {"path": EDIT_DATES, "session": session, "post": post, "start": start, "end": end},
                {"request": request},
            ),
        ),
        where=_session_user(session, user),
        then=actions((Posting.edit_dates, {"user": user, "post": post, "start": start, "end": end})),
    )


@sync
def edit_post_description_request(request, session, user, post, description):
    return SyncSpec(
        when=actions(
            (
                Requesting.request,
                {"path": EDIT_DESCRIPTION, "session": session, "post": post, "description": description},
                {"request": request},
            ),
        ),
        where=_session_user(session, user),
        then=actions((Posting.edit_description, {"user": user, "post": post, "description": description})),
    )


@sync
def delete_post_request(request, session, user, post):
    return SyncSpec(
        when=actions(
            (Requesting.request, {"path": DELETE, "session": session, "post": post}, {"request": request}),
        ),
        where=_session_user(session, user),
        then=actions((Posting.delete, {"user": user, "post": post})),
    )


@sync
def get_posts_request(request, session, user, post, post_data, results):
    async def where(frames: Frames) -> Frames:
        original = frames[0]
        frames = await frames.query(Sessioning._get_user, {"session": session}, {"user": user})
        frames = await frames.query(Posting._get_posts, {"user": user}, {"post": post})
        if not frames:
            return Frames({**original, results: []})

        frames = await frames.query(Posting._get_post_by_id, {"_id": post}, {"post_data": post_data})
        return frames.collect_as([post, post_data], results)

    return SyncSpec(
        when=actions((Requesting.request, {"path": GET_POSTS, "session": session}, {"request": request})),
        where=where,
        then=actions((Requesting.respond, {"request": request, "results": results})),
    )


@sync
def get_friend_posts_request(
    request, session, user, friend_username, friend, friendship, post, post_data, results
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

        frames = await frames.query(Posting._get_posts, {"user": friend}, {"post": post})
        if not frames:
            return Frames({**original, results: []})

        frames = await frames.query(Posting._get_post_by_id, {"_id": post}, {"post_data": post_data})
        return frames.collect_as([post, post_data], results)

    return SyncSpec(
        when=actions(
            (
                Requesting.request,
                {"path": GET_FRIEND_POSTS, "session": session, "friend_username": friend_username},
                {"request": request},
            ),
        ),
        where=where,
        then=actions((Requesting.respond, {"request": request, "results": results})),
    )


SYNCS = (
    create_post_request,
    *_responders(CREATE, Posting.create, "create_post"),
    edit_post_title_request,
    *_responders(EDIT_TITLE, Posting.edit_title, "edit_post_title"),
    edit_post_place_request,
    *_responders(EDIT_PLACE, Posting.edit_place, "edit_post_place"),
    edit_post_dates_request,
    *_responders(EDIT_DATES, Posting.edit_dates, "edit_post_dates"),
    edit_post_description_request,
    *_responders(EDIT_DESCRIPTION, Posting.edit_description, "edit_post_description"),
    delete_post_request,
    *_responders(DELETE, Posting.delete, "delete_post", result=""),
    get_posts_request,
    get_friend_posts_request,
)
