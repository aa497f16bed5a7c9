"""
Syncs: the declarative rules that compose the concepts into an API.

Registration order is evaluation order when several syncs listen to the same
completion, so the modules are concatenated in a fixed order.
"""
from typing import Tuple

from ..kernel import SyncDefinition
from . import friending, posting, user_authentication, wishlist

ALL_SYNCS: Tuple[SyncDefinition, ...] = (
    *user_authentication.SYNCS,
    *posting.SYNCS,
    *wishlist.SYNCS,
    *friending.SYNCS,
)

__all__ = ["ALL_SYNCS"]
