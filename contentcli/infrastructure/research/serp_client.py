"""Client for SerpAPI's Google search endpoint.

Every method issues exactly one HTTP request so callers can charge each
request to the 'serpapi' rate limit. HTTP failures surface as
httpx.HTTPStatusError with the status code intact.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlparse

import httpx

from contentcli.domain.models.research import (
    Competition, CompetitorData, CompetitorRanking, FeaturedSnippet, KeywordMetrics,
)

logger = logging.getLogger(__name__)

SERPAPI_URL = "https://serpapi.com/search.json"
DEFAULT_LOCATION = "United States"
DEFAULT_TIMEOUT = httpx.Timeout(30.0, connect=10.0)
MAX_RESULTS = 10

# total_results thresholds -> estimated monthly search volume
VOLUME_THRESHOLDS = (
    (1_000_000_000, 100_000),
    (100_000_000, 50_000),
    (10_000_000, 10_000),
    (1_000_000, 5_000),
)
DEFAULT_SEARCH_VOLUME = 1_000
HIGH_COMPETITION_RESULTS = 500_000_000
LOW_COMPETITION_RESULTS = 50_000_000
BUYER_INTENT_CPC = 15.0
DEFAULT_CPC = 5.0
TOP_POSITION_TRAFFIC = 500
DEFAULT_TRAFFIC = 50


def domain_of(url: str) -> str:
    return urlparse(url).hostname or ""


def estimate_keyword_metrics(keyword: str, total_results: int) -> KeywordMetrics:
    """Estimates volume, competition and CPC from the number of indexed results."""
    search_volume = DEFAULT_SEARCH_VOLUME
    for threshold, volume in VOLUME_THRESHOLDS:
        if total_results > threshold:
            search_volume = volume
            break

    competition: Competition = "medium"
    if total_results > HIGH_COMPETITION_RESULTS:
        competition = "high"
    elif total_results < LOW_COMPETITION_RESULTS:
        competition = "low"

    lowered = keyword.lower()
    cpc = BUYER_INTENT_CPC if "cost" in lowered or "price" in lowered else DEFAULT_CPC
    return KeywordMetrics(search_volume=search_volume, competition=competition, cpc=cpc)


class SerpApiClient:
    """Thin async wrapper over SerpAPI."""

    def __init__(self, api_key: str, http_client: Optional[httpx.AsyncClient] = None):
        if not api_key:
            raise ValueError("SerpAPI key is required.")
        self.api_key = api_key
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=DEFAULT_TIMEOUT)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    async def _get(self, query: str, num: int = MAX_RESULTS, **params: Any) -> Dict[str, Any]:
        request_params = {"engine": "google", "q": query, "api_key": self.api_key, "num": num}
        request_params.update(params)
        logger.debug(f"SerpAPI request: q='{query}' num={num}")
        response = await self._http.get(SERPAPI_URL, params=request_params)
        response.raise_for_status()
        return response.json()

    async def search(
        self, keyword: str, location: str = DEFAULT_LOCATION
    ) -> Tuple[List[CompetitorData], Optional[FeaturedSnippet]]:
        """Top organic results and the answer box / featured snippet, if any."""
        data = await self._get(keyword, location=location, hl="en", gl="us")

        competitors = [
            CompetitorData(
                url=result["link"],
                title=result.get("title", ""),
                position=index + 1,
                domain=domain_of(result["link"]),
                snippet=result.get("snippet", ""),
            )
            for index, result in enumerate(data.get("organic_results", [])[:MAX_RESULTS])
            if result.get("link")
        ]

        featured = None
        # Answer box takes precedence over the featured snippet
        box = data.get("answer_box") or data.get("featured_snippet")
        if box:
            link = box.get("link", "")
            featured = FeaturedSnippet(content=box.get("snippet", ""), source=link, url=link)
        return competitors, featured

    async def keyword_metrics(self, keyword: str) -> KeywordMetrics:
        data = await self._get(keyword)
        total_results = (data.get("search_information") or {}).get("total_results") or 0
        return estimate_keyword_metrics(keyword, int(total_results))

    async def related_questions(self, keyword: str) -> List[str]:
        data = await self._get(keyword, num=1)
        questions = [item.get("question") for item in data.get("related_questions", [])]
        return [q for q in questions if q][:MAX_RESULTS]

    async def related_keywords(self, keyword: str) -> List[str]:
        data = await self._get(keyword, num=1)
        queries = [item.get("query") for item in data.get("related_queries", [])]
        return [q for q in queries if q][:MAX_RESULTS]

    async def competitor_ranking(self, url: str) -> CompetitorRanking:
        """Where a URL ranks among its own domain's indexed pages."""
        domain = domain_of(url)
        data = await self._get(f"site:{domain}")
        links = [result.get("link") for result in data.get("organic_results", [])]
        position = links.index(url) + 1 if url in links else 0
        return CompetitorRanking(
            url=url,
            domain=domain,
            has_ranking=position > 0,
            top_position=position,
            estimated_traffic=TOP_POSITION_TRAFFIC if 0 < position <= 3 else DEFAULT_TRAFFIC,
        )

    async def trending_topics(self, category: str, year: Optional[int] = None) -> List[str]:
        query = f"trending {category}" + (f" {year}" if year else "")
        data = await self._get(query)
        return [r.get("title", "") for r in data.get("organic_results", [])[:MAX_RESULTS] if r.get("title")]
