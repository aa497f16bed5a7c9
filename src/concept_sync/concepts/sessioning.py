from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List

from ..kernel.registry import action, query
from ..kernel.store import DocumentStore, fresh_id

PREFIX = "Sessioning."

User = str
Session = str


class SessioningConcept:
    """Sessions bind an opaque token to the user who logged in."""

    def __init__(self, store: DocumentStore) -> None:
        self.sessions = store.collection(PREFIX + "sessions")

    @action
    async def create(self, user: User) -> Dict[str, Any]:
        session: Session = fresh_id()
        self.sessions.insert_one(
            {
                "_id": session,
                "user": user,
                "created_at": datetime.now(timezone.utc).isoformat(),
            }
        )
        return {"session": session}

    @action
    async def delete(self, session: Session) -> Dict[str, Any]:
        if not self.sessions.delete_one({"_id": session}):
            return {"error": f"Session {session} does not exist."}
        return {}

    @query
    async def _get_user(self, session: Session) -> List[Dict[str, Any]]:
        doc = self.sessions.find_one({"_id": session})
        return [{"user": doc["user"]}] if doc else []
