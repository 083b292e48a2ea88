import os
import logging
from typing import List

import httpx

from app.models.assistant import SearchResult

logger = logging.getLogger(__name__)

TAVILY_SEARCH_URL = "https://api.tavily.com/search"
TRAVEL_DOMAINS = ["tripadvisor.com", "lonelyplanet.com", "booking.com", "airbnb.com", "mauritius.travel"]
MAX_SEARCH_RESULTS = 5


async def search_travel_info(query: str, location: str = "Mauritius") -> List[SearchResult]:
    """Web search restricted to travel sites. Returns [] when unconfigured or on any failure."""
    api_key = os.getenv("TAVILY_API_KEY")
    if not api_key:
        logger.warning("Tavily API key not configured, skipping web search")
        return []

    search_query = f"{query} {location} travel guide recommendations"
    logger.info(f"Tavily search query: {search_query}")
    headers = {
        "Content-Type": "application/json",
        "Authorization": f"Bearer {api_key}",
    }
    payload = {
        "query": search_query,
        "search_depth": "advanced",
        "include_answer": True,
        "include_images": False,
        "include_raw_content": False,
        "max_results": MAX_SEARCH_RESULTS,
        "include_domains": TRAVEL_DOMAINS,
    }
    try:
        async with httpx.AsyncClient() as client:
            response = await client.post(TAVILY_SEARCH_URL, json=payload, headers=headers, timeout=10)
            response.raise_for_status()
            data = response.json()
    except Exception as e:
        logger.error(f"Tavily search error: {e}")
        return []

    results = [
        SearchResult(
            title=result.get("title") or "",
            url=result.get("url") or "",
            content=result.get("content") or "",
            score=result.get("score") or 0,
        )
        for result in data.get("results") or []
    ]
    logger.info(f"Tavily search successful, found {len(results)} results")
    return results
