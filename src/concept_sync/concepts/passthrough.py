"""
Passthrough routes: concept methods exposed directly over HTTP.

A route in INCLUSIONS invokes `/{Concept}/{method}` on the concept without
going through Requesting; each inclusion carries its justification. Routes in
EXCLUSIONS always become a Requesting.request for the syncs to handle. Routes
in neither list also fall back to Requesting, and are reported as unverified
at startup.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Tuple

INCLUSIONS: Dict[str, str] = {
    "/UserAuthentication/register": "public registration",
    "/UserAuthentication/_get_user_by_username": "can publicly lookup users by username",
    "/Posting/_get_post_by_id": "can publicly lookup posts by ID",
    "/Wishlist/_get_place_by_id": "can publicly lookup places by ID",
}

EXCLUSIONS: List[str] = [
    # requesting
    "/Requesting/request",
    "/Requesting/respond",
    "/Requesting/_get_response",
    # user authentication
    "/UserAuthentication/authenticate",
    "/UserAuthentication/_get_username",
    # sessioning
    "/Sessioning/create",
    "/Sessioning/delete",
    "/Sessioning/_get_user",
    # posting
    "/Posting/create",
    "/Posting/edit_title",
    "/Posting/edit_place",
    "/Posting/edit_dates",
    "/Posting/edit_description",
    "/Posting/delete",
    "/Posting/_get_posts",
    # wishlist
    "/Wishlist/add_place",
    "/Wishlist/remove_place",
    "/Wishlist/_get_places",
    # friending
    "/Friending/request_friend",
    "/Friending/unrequest_friend",
    "/Friending/accept_friend",
    "/Friending/reject_friend",
    "/Friending/validate_friendship",
    "/Friending/end_friendship",
    "/Friending/_get_incoming_requests",
    "/Friending/_get_outgoing_requests",
    "/Friending/_get_friends",
    "/Friending/_is_friends_with",
]


def split_route(path: str) -> Optional[Tuple[str, str]]:
    """`/Concept/method` -> ("Concept", "method"), or None for other shapes."""
    parts = [part for part in path.split("/") if part]
    if len(parts) != 2:
        return None
    return parts[0], parts[1]


def passthrough_target(path: str) -> Optional[Tuple[str, str]]:
    """The concept method a path passes through to, if it is an inclusion."""
    if path not in INCLUSIONS:
        return None
    return split_route(path)


def unverified_routes(routes: List[str]) -> List[str]:
    """Concept routes that are neither included nor excluded."""
    return [route for route in routes if route not in INCLUSIONS and route not in EXCLUSIONS]
