"""
JSON query endpoint for Mfegraph.

Drives the resolution engine with a nested field selection for callers that
do not speak GraphQL:

    POST /api/v1/query
    {
      "key": "app-shell",
      "selection": {"name": true, "environments": {"live": {"builds": ["name"]}}}
    }

Omitting "key" resolves every app. The response carries the result tree,
the issues recorded for fields that could not be resolved, and fetch stats.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from mfegraph.app.dependencies import get_engine
from mfegraph.engine import EntryResolutionError, ResolutionEngine, Selection, SelectionError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["query"])


class QueryRequest(BaseModel):
    """Body of a JSON query."""

    key: Optional[str] = Field(None, description="App key; omit to resolve every app")
    selection: Any = Field(..., description="Nested App field selection")


@router.post("/query")
async def query_apps(
    request: QueryRequest,
    engine: ResolutionEngine = Depends(get_engine),
) -> dict[str, Any]:
    """Resolve a field selection over one app or all apps."""
    try:
        selection = Selection.parse(request.selection)
        result = await engine.resolve(selection, key=request.key)
    except SelectionError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except EntryResolutionError as e:
        logger.error(f"[query] Entry resolution failed: {e}")
        raise HTTPException(status_code=502, detail=str(e)) from e

    if request.key is not None and result.data is None:
        logger.info(f"[query] No app with key {request.key!r}")

    return result.to_dict()
