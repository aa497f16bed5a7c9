"""
HTTP API: concept routes over POST.

    POST {base_url}/{Concept}/{method}

Routes listed as passthrough inclusions invoke the concept method directly.
Every other path becomes a Requesting.request, and the response a sync
produced for it is returned as the body.

Run with: uvicorn concept_sync.api:app --port 10000
"""

from __future__ import annotations

import json
import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .concepts.passthrough import EXCLUSIONS, INCLUSIONS, passthrough_target
from .config import Settings
from .kernel import ContractViolation, FlowAborted, SyncSummary, UnknownMethodError
from .runtime import NoResponse, RequestTimeout, Runtime, build_runtime

logger = logging.getLogger(__name__)


class RouteListResponse(BaseModel):
    """Passthrough configuration."""

    inclusions: Dict[str, str]
    exclusions: List[str]


class SyncListResponse(BaseModel):
    syncs: List[SyncSummary]
    count: int


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


async def _read_body(request: Request) -> Dict[str, Any]:
    raw = await request.body()
    if not raw:
        return {}
    data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError("Request body must be a JSON object")
    return data


def create_app(runtime: Optional[Runtime] = None, settings: Optional[Settings] = None) -> FastAPI:
    """Build the app.

    Settings and the runtime are resolved on first use unless given, so
    importing this module never reads the config file.
    """
    if runtime is not None:
        settings = runtime.settings
    state: Dict[str, Any] = {"runtime": runtime, "settings": settings}

    def get_settings() -> Settings:
        if state["settings"] is None:
            state["settings"] = Settings.load()
        return state["settings"]

    def get_runtime() -> Runtime:
        if state["runtime"] is None:
            state["runtime"] = build_runtime(get_settings())
        return state["runtime"]

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        if state["runtime"] is not None:
            state["runtime"].close()
            state["runtime"] = None

    app = FastAPI(
        title="concept-sync API",
        description="Concepts composed by syncs, exposed over HTTP",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "ok", "service": "concept-sync"}

    @app.get("/routes", response_model=RouteListResponse)
    async def list_routes():
        return RouteListResponse(inclusions=INCLUSIONS, exclusions=EXCLUSIONS)

    @app.get("/syncs", response_model=SyncListResponse)
    async def list_syncs():
        summaries = get_runtime().engine.summaries()
        return SyncListResponse(syncs=summaries, count=len(summaries))

    @app.post("/{route:path}")
    async def concept_route(route: str, request: Request):
        """
        Serve one concept route.

        Domain errors are data and come back with status 200 as an
        `{"error": ...}` record. Engine failures map to 400 (bad input to a
        passthrough method), 500 (aborted flow) and 504 (no response).
        Paths outside the base URL are 404.
        """
        path = "/" + route.strip("/")
        base = get_settings().base_url.strip("/")
        if base:
            prefix = "/" + base
            if path != prefix and not path.startswith(prefix + "/"):
                return _error(404, f"Not found: {path}")
            path = path[len(prefix):] or "/"
        try:
            body = await _read_body(request)
        except ValueError as e:
            return _error(400, f"Invalid JSON body: {e}")

        runtime = get_runtime()
        if passthrough_target(path) is not None:
            try:
                return await runtime.passthrough(path, body)
            except FlowAborted as e:
                if isinstance(e.cause, (ContractViolation, UnknownMethodError)):
                    return _error(400, str(e.cause))
                return _error(500, str(e))

        try:
            return await runtime.process(path, body)
        except FlowAborted as e:
            return _error(500, str(e))
        except (RequestTimeout, NoResponse) as e:
            return _error(504, str(e))

    return app


app = create_app()
