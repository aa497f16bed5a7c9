"""
Posting: travel posts with a place, a date range and a description.

Only a post's creator may edit or delete it. Dates are ISO-8601 strings and
must not run backwards.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from ..kernel.registry import action, query
from ..kernel.store import DocumentStore, fresh_id

PREFIX = "Posting."

User = str
Post = str


def _check_dates(start: str, end: str) -> Optional[str]:
    try:
        start_day, end_day = date.fromisoformat(start), date.fromisoformat(end)
    except (TypeError, ValueError):
        return f"Dates must be ISO formatted (got {start!r}, {end!r})."
    if end_day < start_day:
        return "End date cannot be before start date."
    return None


class PostingConcept:
    def __init__(self, store: DocumentStore) -> None:
        self.posts = store.collection(PREFIX + "posts")

    def _owned(self, user: User, post: Post) -> Tuple[Optional[Dict[str, Any]], Optional[str]]:
        doc = self.posts.find_one({"_id": post})
        if not doc:
            return None, f"Post {post} does not exist."
        if doc["creator"] != user:
            return None, "Only the creator can modify this post."
        return doc, None

    @action
    async def create(
        self,
        creator: User,
        title: str,
        city: str,
        region: str,
        country: str,
        start: str,
        end: str,
        description: str = "",
    ) -> Dict[str, Any]:
        if not title:
            return {"error": "Title cannot be empty."}
        error = _check_dates(start, end)
        if error:
            return {"error": error}

        post: Post = fresh_id()
        self.posts.insert_one(
            {
                "_id": post,
                "creator": creator,
                "title": title,
                "city": city,
                "region": region,
                "country": country,
                "start": start,
                "end": end,
                "description": description,
            }
        )
        return {"post": post}

    @action
    async def edit_title(self, user: User, post: Post, title: str) -> Dict[str, Any]:
        _, error = self._owned(user, post)
        if error:
            return {"error": error}
        if not title:
            return {"error": "Title cannot be empty."}
        self.posts.update_one({"_id": post}, {"title": title})
        return {"post": post}

    @action
    async def edit_place(
        self, user: User, post: Post, city: str, region: str, country: str
    ) -> Dict[str, Any]:
        _, error = self._owned(user, post)
        if error:
            return {"error": error}
        self.posts.update_one({"_id": post}, {"city": city, "region": region, "country": country})
        return {"post": post}

    @action
    async def edit_dates(self, user: User, post: Post, start: str, end: str) -> Dict[str, Any]:
        _, error = self._owned(user, post)
        if error:
            return {"error": error}
        error = _check_dates(start, end)
        if error:
            return {"error": error}
        self.posts.update_one({"_id": post}, {"start": start, "end": end})
        return {"post": post}

    @action
    async def edit_description(self, user: User, post: Post, description: str) -> Dict[str, Any]:
        _, error = self._owned(user, post)
        if error:
            return {"error": error}
        self.posts.update_one({"_id": post}, {"description": description})
        return {"post": post}

    @action
    async def delete(self, user: User, post: Post) -> Dict[str, Any]:
        _, error = self._owned(user, post)
        if error:
            return {"error": error}
        self.posts.delete_one({"_id": post})
        return {}

    @query
    async def _get_posts(self, user: User) -> List[Dict[str, Any]]:
        return [{"post": doc["_id"]} for doc in self.posts.find({"creator": user})]

    @query
    async def _get_post_by_id(self, _id: Post) -> List[Dict[str, Any]]:
        doc = self.posts.find_one({"_id": _id})
        return [{"post_data": doc}] if doc else []
