"""Client for Reddit's public JSON API (no authentication)."""

import logging
from typing import Any, Dict, List, Optional

import httpx

from contentcli.domain.models.research import RedditInsight, Sentiment

logger = logging.getLogger(__name__)

REDDIT_BASE_URL = "https://www.reddit.com"
DEFAULT_USER_AGENT = "contentcli/0.1"
DEFAULT_TIMEOUT = httpx.Timeout(30.0, connect=10.0)

NEGATIVE_WORDS = ("problem", "issue", "failed", "difficult", "struggling", "help")
POSITIVE_WORDS = ("solved", "success", "easy", "great", "helped", "works")


def analyze_sentiment(text: str) -> Sentiment:
    """Counts negative vs positive marker words. Ties are neutral."""
    lowered = text.lower()
    negative = sum(1 for word in NEGATIVE_WORDS if word in lowered)
    positive = sum(1 for word in POSITIVE_WORDS if word in lowered)
    if negative > positive:
        return "negative"
    if positive > negative:
        return "positive"
    return "neutral"


def _to_insight(post: Dict[str, Any], include_body: bool) -> RedditInsight:
    data = post.get("data", {})
    title = data.get("title", "")
    text = f"{title} {data.get('selftext') or ''}" if include_body else title
    return RedditInsight(
        question=title,
        subreddit=data.get("subreddit", ""),
        upvotes=data.get("ups") or 0,
        comments=data.get("num_comments") or 0,
        url=f"https://reddit.com{data.get('permalink', '')}",
        sentiment=analyze_sentiment(text),
    )


def is_meaningful(insight: RedditInsight) -> bool:
    return insight.upvotes > 0 or insight.comments > 2


class RedditClient:
    """Searches posts and lists subreddit top posts."""

    def __init__(self, user_agent: str = DEFAULT_USER_AGENT, http_client: Optional[httpx.AsyncClient] = None):
        self.user_agent = user_agent
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=DEFAULT_TIMEOUT)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    async def _get_posts(self, path: str, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        logger.debug(f"Reddit request: {path} {params}")
        response = await self._http.get(path, params=params, headers={"User-Agent": self.user_agent})
        response.raise_for_status()
        payload = response.json()
        return (payload.get("data") or {}).get("children") or []

    async def search(self, keyword: str, limit: int = 25) -> List[RedditInsight]:
        """Posts matching a keyword, keeping only those with some discussion."""
        posts = await self._get_posts(
            f"{REDDIT_BASE_URL}/search.json", {"q": keyword, "limit": limit, "sort": "relevance", "t": "all"}
        )
        insights = [insight for insight in (_to_insight(p, include_body=True) for p in posts) if is_meaningful(insight)]
        logger.info(f"Found {len(insights)} relevant Reddit discussions for '{keyword}'")
        return insights

    async def subreddit_top_posts(self, subreddit: str, limit: int = 25) -> List[RedditInsight]:
        """Top posts of the last month in a subreddit."""
        posts = await self._get_posts(f"{REDDIT_BASE_URL}/r/{subreddit}/top.json", {"limit": limit, "t": "month"})
        return [_to_insight(p, include_body=False) for p in posts]
