"""
Requesting: the boundary between a transport and the syncs.

An inbound call becomes a `request` completion whose input is the path plus
the body fields, so syncs can pattern-match on any of them. Syncs close the
loop by invoking `respond` with the request id and the response fields.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List

from ..kernel.registry import action, query
from ..kernel.store import DocumentStore, fresh_id

PREFIX = "Requesting."

Request = str


class RequestingConcept:
    def __init__(self, store: DocumentStore) -> None:
        self.requests = store.collection(PREFIX + "requests")

    @action
    async def request(self, path: str, **fields: Any) -> Dict[str, Any]:
        fields.pop("request", None)
        request: Request = fresh_id()
        self.requests.insert_one(
            {
                "_id": request,
                "input": {"path": path, **fields},
                "response": None,
                "created_at": datetime.now(timezone.utc).isoformat(),
            }
        )
        return {"request": request}

    @action
    async def respond(self, request: Request, **fields: Any) -> Dict[str, Any]:
        doc = self.requests.find_one({"_id": request})
        if not doc:
            return {"error": f"Request {request} does not exist."}
        if doc["response"] is not None:
            return {"error": f"Request {request} has already been answered."}

        self.requests.update_one(
            {"_id": request},
            {"response": fields, "responded_at": datetime.now(timezone.utc).isoformat()},
        )
        return {"request": request}

    @query
    async def _get_response(self, request: Request) -> List[Dict[str, Any]]:
        doc = self.requests.find_one({"_id": request})
        if not doc or doc["response"] is None:
            return []
        return [{"response": doc["response"]}]
