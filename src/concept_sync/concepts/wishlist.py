"""Wishlist: a user's future dream destinations."""

from __future__ import annotations

from typing import Any, Dict, List

from ..kernel.registry import action, query
from ..kernel.store import DocumentStore, fresh_id

PREFIX = "Wishlist."

User = str
Place = str


class WishlistConcept:
    def __init__(self, store: DocumentStore) -> None:
        self.places = store.collection(PREFIX + "places")

    @action
    async def add_place(self, user: User, city: str, region: str, country: str) -> Dict[str, Any]:
        existing = self.places.find_one(
            {"creator": user, "city": city, "region": region, "country": country}
        )
        if existing:
            return {
                "error": f'Place "{city}, {region}, {country}" already exists for user with ID {user}.'
            }

        place: Place = fresh_id()
        self.places.insert_one(
            {"_id": place, "creator": user, "city": city, "region": region, "country": country}
        )
        return {"place": place}

    @action
    async def remove_place(self, user: User, place: Place) -> Dict[str, Any]:
        doc = self.places.find_one({"_id": place})
        if not doc:
            return {"error": f"Place not in wishlist for user with ID {user}."}
        if doc["creator"] != user:
            return {"error": "Cannot remove place from another user's wishlist."}

        self.places.delete_one({"_id": place})
        return {}

    @query
    async def _get_places(self, user: User) -> List[Dict[str, Any]]:
        return [{"place": doc["_id"]} for doc in self.places.find({"creator": user})]

    @query
    async def _get_place_by_id(self, _id: Place) -> List[Dict[str, Any]]:
        doc = self.places.find_one({"_id": _id})
        return [{"place_data": doc}] if doc else []
