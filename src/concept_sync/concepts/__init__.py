"""
Concepts: independent units of state and behaviour.

Each concept owns its own collections in the document store and knows
nothing about the others. Syncs refer to concepts through the handles
defined here (`Sessioning._get_user`), which the registry resolves to the
instances built by `build_concepts`.
"""
from typing import Any, Dict

from ..kernel.patterns import concept
from ..kernel.store import DocumentStore
from .friending import FriendingConcept
from .posting import PostingConcept
from .requesting import RequestingConcept
from .sessioning import SessioningConcept
from .user_authentication import PBKDF2_ITERATIONS, UserAuthenticationConcept
from .wishlist import WishlistConcept

Friending = concept("Friending")
Posting = concept("Posting")
Requesting = concept("Requesting")
Sessioning = concept("Sessioning")
UserAuthentication = concept("UserAuthentication")
Wishlist = concept("Wishlist")


def build_concepts(store: DocumentStore, iterations: int = PBKDF2_ITERATIONS) -> Dict[str, Any]:
    """Instantiate every concept against one store, keyed by concept name."""
    return {
        "Requesting": RequestingConcept(store),
        "UserAuthentication": UserAuthenticationConcept(store, iterations=iterations),
        "Sessioning": SessioningConcept(store),
        "Posting": PostingConcept(store),
        "Wishlist": WishlistConcept(store),
        "Friending": FriendingConcept(store),
    }


__all__ = [
    "Friending",
    "FriendingConcept",
    "Posting",
    "PostingConcept",
    "Requesting",
    "RequestingConcept",
    "Sessioning",
    "SessioningConcept",
    "UserAuthentication",
    "UserAuthenticationConcept",
    "Wishlist",
    "WishlistConcept",
    "build_concepts",
]
