"""Internet search placeholder.

The capture screen offers a search box next to the transcript. No search
provider is wired in; the endpoint answers with a placeholder so clients can
render the result area.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Query
from pydantic import BaseModel

router = APIRouter()
logger = logging.getLogger(__name__)


class SearchResponse(BaseModel):
    query: str
    results: str = ""


def placeholder_results(query: str) -> str:
    return (
        f'Search results for "{query}" would appear here. '
        "This would integrate with a search API in the full implementation."
    )


@router.get("/search", response_model=SearchResponse)
async def search(q: str = Query("", description="Search query")) -> SearchResponse:
    """Search the internet (stub). A blank query returns no results."""
    query = q.strip()
    if not query:
        return SearchResponse(query=q)
    logger.info("Search requested", extra={"event": "search", "context": {"query": query}})
    return SearchResponse(query=q, results=placeholder_results(q))
