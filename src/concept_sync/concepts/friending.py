"""
Friending: friend requests and the friendships they turn into.

A friendship is stored once per direction so that "who are my friends" is a
single equality lookup.
"""

from __future__ import annotations

from typing import Any, Dict, List

from ..kernel.registry import action, query
from ..kernel.store import DocumentStore

PREFIX = "Friending."

User = str


class FriendingConcept:
    def __init__(self, store: DocumentStore) -> None:
        self.requests = store.collection(PREFIX + "requests")
        self.friendships = store.collection(PREFIX + "friendships")

    def _are_friends(self, user: User, friend: User) -> bool:
        return self.friendships.find_one({"user": user, "friend": friend}) is not None

    @action
    async def request_friend(self, user: User, friend: User) -> Dict[str, Any]:
        if user == friend:
            return {"error": "Cannot send a friend request to yourself."}
        if self._are_friends(user, friend):
            return {"error": "You are already friends."}
        if self.requests.find_one({"requester": user, "requestee": friend}):
            return {"error": "Friend request already sent."}
        if self.requests.find_one({"requester": friend, "requestee": user}):
            return {"error": "This user has already sent you a friend request."}

        self.requests.insert_one({"requester": user, "requestee": friend})
        return {}

    @action
    async def unrequest_friend(self, user: User, friend: User) -> Dict[str, Any]:
        if not self.requests.delete_one({"requester": user, "requestee": friend}):
            return {"error": "No pending friend request to withdraw."}
        return {}

    @action
    async def accept_friend(self, user: User, friend: User) -> Dict[str, Any]:
        if not self.requests.delete_one({"requester": friend, "requestee": user}):
            return {"error": "No pending friend request from this user."}

        self.friendships.insert_one({"user": user, "friend": friend})
        self.friendships.insert_one({"user": friend, "friend": user})
        return {}

    @action
    async def reject_friend(self, user: User, friend: User) -> Dict[str, Any]:
        if not self.requests.delete_one({"requester": friend, "requestee": user}):
            return {"error": "No pending friend request from this user."}
        return {}

    @action
    async def validate_friendship(self, user: User, friend: User) -> Dict[str, Any]:
        if not self._are_friends(user, friend):
            return {"error": "Users are not friends."}
        return {}

    @action
    async def end_friendship(self, user: User, friend: User) -> Dict[str, Any]:
        if not self._are_friends(user, friend):
            return {"error": "Users are not friends."}

        self.friendships.delete_many({"user": user, "friend": friend})
        self.friendships.delete_many({"user": friend, "friend": user})
        return {}

    @query
    async def _get_friends(self, user: User) -> List[Dict[str, Any]]:
        return [{"friend": doc["friend"]} for doc in self.friendships.find({"user": user})]

    @query
    async def _get_incoming_requests(self, user: User) -> List[Dict[str, Any]]:
        return [{"friend": doc["requester"]} for doc in self.requests.find({"requestee": user})]

    @query
    async def _get_outgoing_requests(self, user: User) -> List[Dict[str, Any]]:
        return [{"friend": doc["requestee"]} for doc in self.requests.find({"requester": user})]

    @query
    async def _is_friends_with(self, user: User, friend: User) -> List[Dict[str, Any]]:
        return [{"friendship_exists": True}] if self._are_friends(user, friend) else []
