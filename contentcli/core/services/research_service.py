"""Application service for keyword research.

Combines search-engine data and forum insights for a keyword. Every outbound
request is charged to its service's rate limit; failures degrade to
fallbacks (LLM estimate, then default data) instead of aborting research.
"""

import asyncio
import logging
from typing import Any, Callable, List, Optional, Sequence

from contentcli.domain.interfaces.ai_model import ContentGenerator
from contentcli.domain.interfaces.cache import CacheService
from contentcli.domain.models.ai import GenerationOptions
from contentcli.domain.models.common import CacheKey, CachePrefix
from contentcli.domain.models.research import (
    CompetitorRanking, KeywordResearch, RedditInsight, RedditTopic, ResearchOutcome, SerpData,
)
from contentcli.domain.models.throttling import LLM_SERVICE, REDDIT_SERVICE, SERPAPI_SERVICE
from contentcli.infrastructure.parsing.json_response import parse_json_response
from contentcli.infrastructure.research.reddit_client import RedditClient
from contentcli.infrastructure.research.serp_client import DEFAULT_LOCATION, DEFAULT_TRAFFIC, SerpApiClient, domain_of
from contentcli.infrastructure.resilience.rate_limiter import RateLimiterRegistry

logger = logging.getLogger(__name__)

RESEARCH_CACHE_PREFIX = CachePrefix("research")
RESEARCH_CACHE_TTL_SECONDS = 24 * 60 * 60

REDDIT_SEARCH_LIMIT = 30
MAX_TOPIC_QUESTIONS = 20
MAX_TOPIC_EXTRACTS = 10
MAX_SUBREDDIT_EXTRACTS = 5
SUBREDDIT_TOP_LIMIT = 10
ACTIVE_THREAD_COMMENTS = 5
PAIN_POINT_MARKERS = ("problem", "issue", "difficulty", "struggle")
SOLUTION_REQUEST_MARKERS = ("help", "how to", "guide", "recommendation")

DEFAULT_SEARCH_VOLUME = 5000
DEFAULT_CPC = 5.0
LLM_DEFAULT_CPC = 10.0
COMPETITION_LEVELS = ("low", "medium", "high")
ESTIMATE_TEMPERATURE = 0.3

KEYWORD_ESTIMATE_PROMPT = """Research the keyword "{keyword}" for SEO and content strategy.

Provide JSON with:
{{
  "searchVolume": number (estimated monthly searches, 1000-100000),
  "competition": "low" | "medium" | "high",
  "cpc": number (estimated cost per click in USD),
  "relatedKeywords": ["keyword 1", "keyword 2", ...],
  "questions": ["question 1", "question 2", ...]
}}

Base the estimates on keyword difficulty and buyer intent (cost, tools, pricing).
Output only valid JSON, no markdown formatting."""


def default_related_keywords(keyword: str) -> List[str]:
    return [f"{keyword} {suffix}" for suffix in ("checklist", "cost", "timeline", "requirements", "implementation")]


def default_questions(keyword: str) -> List[str]:
    return [f"What is {keyword}?", f"How much does {keyword} cost?", f"How long does {keyword} take?"]


def default_serp_data(keyword: str) -> SerpData:
    """Deterministic data used when neither SerpAPI nor the LLM can answer."""
    return SerpData(
        keyword=keyword,
        search_volume=DEFAULT_SEARCH_VOLUME,
        competition="medium",
        cpc=DEFAULT_CPC,
        related_keywords=default_related_keywords(keyword),
        questions=default_questions(keyword),
        source="default",
    )


def _number(value: Any, default: float) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if item]


def _matching(insights: Sequence[RedditInsight], markers: Sequence[str], limit: int) -> List[str]:
    titles = [i.question for i in insights if any(marker in i.question.lower() for marker in markers)]
    return titles[:limit]


def build_topic(keyword: str, insights: List[RedditInsight]) -> RedditTopic:
    """Aggregates keyword search results into questions, pain points and solution requests."""
    return RedditTopic(
        topic=keyword,
        questions=insights[:MAX_TOPIC_QUESTIONS],
        pain_points=_matching(insights, PAIN_POINT_MARKERS, MAX_TOPIC_EXTRACTS),
        solution_requests=_matching(insights, SOLUTION_REQUEST_MARKERS, MAX_TOPIC_EXTRACTS),
        popular_threads=len(insights),
    )


class ResearchService:
    """Keyword, competitor and trend research over rate-limited clients."""

    def __init__(
        self,
        rate_limiter: RateLimiterRegistry,
        generator: Optional[ContentGenerator] = None,
        serp_client: Optional[SerpApiClient] = None,
        reddit_client: Optional[RedditClient] = None,
        cache: Optional[CacheService] = None,
    ):
        self.rate_limiter = rate_limiter
        self.generator = generator
        self.serp_client = serp_client
        self.reddit_client = reddit_client
        self.cache = cache
        if serp_client is None:
            logger.warning("SerpAPI is not configured; keyword data will be estimated by the LLM.")

    # --- Search-engine data ---

    async def get_keyword_data(self, keyword: str, location: str = DEFAULT_LOCATION) -> SerpData:
        """SERP data for a keyword: SerpAPI, else LLM estimate, else defaults."""
        if self.serp_client is not None:
            try:
                return await self._serpapi_keyword_data(keyword, location)
            except Exception as e:
                logger.warning(f"SerpAPI research failed for '{keyword}': {e}. Falling back to LLM estimate.")
        return await self._llm_keyword_data(keyword)

    async def _serpapi_keyword_data(self, keyword: str, location: str) -> SerpData:
        logger.info(f"Fetching SERP data for: {keyword}")
        competitors, featured = await self.rate_limiter.call(SERPAPI_SERVICE, self.serp_client.search, keyword, location)
        metrics = await self.rate_limiter.call(SERPAPI_SERVICE, self.serp_client.keyword_metrics, keyword)
        questions = await self._optional_serp_list(self.serp_client.related_questions, keyword, "related questions")
        related = await self._optional_serp_list(self.serp_client.related_keywords, keyword, "related keywords")

        logger.info(
            f"SERP data for '{keyword}': volume={metrics.search_volume}, competition={metrics.competition}, "
            f"competitors={len(competitors)}, questions={len(questions)}"
        )
        return SerpData(
            keyword=keyword,
            search_volume=metrics.search_volume,
            competition=metrics.competition,
            cpc=metrics.cpc,
            related_keywords=related,
            questions=questions,
            top_competitors=competitors,
            featured_snippet=featured,
            source="serpapi",
        )

    async def _optional_serp_list(self, fetch: Callable[[str], Any], keyword: str, what: str) -> List[str]:
        try:
            return await self.rate_limiter.call(SERPAPI_SERVICE, fetch, keyword)
        except Exception as e:
            logger.warning(f"Could not fetch {what} for '{keyword}': {e}")
            return []

    async def _llm_keyword_data(self, keyword: str) -> SerpData:
        if self.generator is None:
            return default_serp_data(keyword)

        logger.info(f"Using the LLM to estimate keyword data for: {keyword}")
        prompt = KEYWORD_ESTIMATE_PROMPT.format(keyword=keyword)
        try:
            text = await self.rate_limiter.call(
                LLM_SERVICE, self.generator.generate_content, prompt, GenerationOptions(temperature=ESTIMATE_TEMPERATURE)
            )
        except Exception as e:
            logger.error(f"LLM keyword estimate failed for '{keyword}': {e}. Using default data.")
            return default_serp_data(keyword)

        data = parse_json_response(text)
        if not isinstance(data, dict):
            logger.error(f"LLM keyword estimate for '{keyword}' was not a JSON object. Using default data.")
            return default_serp_data(keyword)

        competition = data.get("competition")
        return SerpData(
            keyword=keyword,
            search_volume=int(_number(data.get("searchVolume"), DEFAULT_SEARCH_VOLUME)),
            competition=competition if competition in COMPETITION_LEVELS else "medium",
            cpc=_number(data.get("cpc"), LLM_DEFAULT_CPC),
            related_keywords=_string_list(data.get("relatedKeywords")) or default_related_keywords(keyword),
            questions=_string_list(data.get("questions")) or default_questions(keyword),
            source="llm",
        )

    # --- Forum insights ---

    async def get_topic_insights(self, keyword: str) -> RedditTopic:
        """Forum questions, pain points and solution requests for a keyword."""
        if self.reddit_client is None:
            return RedditTopic(topic=keyword)
        try:
            insights = await self.rate_limiter.call(REDDIT_SERVICE, self.reddit_client.search, keyword, REDDIT_SEARCH_LIMIT)
        except Exception as e:
            logger.error(f"Error searching Reddit for '{keyword}': {e}")
            return RedditTopic(topic=keyword)
        return build_topic(keyword, insights)

    async def get_subreddit_topic(self, subreddit: str) -> RedditTopic:
        """Top posts of the month in a subreddit, summarized like a keyword topic."""
        if self.reddit_client is None:
            return RedditTopic(topic=subreddit)
        try:
            posts = await self.rate_limiter.call(
                REDDIT_SERVICE, self.reddit_client.subreddit_top_posts, subreddit, SUBREDDIT_TOP_LIMIT
            )
        except Exception as e:
            logger.error(f"Error fetching from r/{subreddit}: {e}")
            return RedditTopic(topic=subreddit)
        return RedditTopic(
            topic=subreddit,
            questions=posts,
            pain_points=[p.question for p in posts if p.sentiment == "negative"][:MAX_SUBREDDIT_EXTRACTS],
            solution_requests=[p.question for p in posts if p.comments > ACTIVE_THREAD_COMMENTS][:MAX_SUBREDDIT_EXTRACTS],
            popular_threads=len(posts),
        )

    # --- Combined research ---

    async def research_keyword(self, keyword: str, use_cache: bool = True) -> KeywordResearch:
        """SERP data and forum insights for one keyword, cached for 24 hours."""
        keyword = keyword.strip()
        if not keyword:
            raise ValueError("Keyword must not be empty.")
        cache_key = CacheKey(keyword.lower())

        if self.cache is not None and use_cache:
            cached = await self.cache.get(RESEARCH_CACHE_PREFIX, cache_key)
            if cached is not None:
                logger.info(f"Using cached research for '{keyword}'")
                return cached

        serp, reddit = await asyncio.gather(self.get_keyword_data(keyword), self.get_topic_insights(keyword))
        research = KeywordResearch(keyword=keyword, serp=serp, reddit=reddit)

        # Default data is a placeholder, not research worth keeping
        if self.cache is not None and serp.source != "default":
            await self.cache.set(RESEARCH_CACHE_PREFIX, cache_key, research, ttl=RESEARCH_CACHE_TTL_SECONDS)
        return research

    async def research_many(
        self,
        keywords: Sequence[str],
        use_cache: bool = True,
        on_result: Optional[Callable[[ResearchOutcome], None]] = None,
    ) -> List[ResearchOutcome]:
        """Researches keywords concurrently; the rate limiter paces the requests.

        Returns one outcome per keyword, in input order. A failing keyword does
        not abort the others.
        """
        async def run_one(keyword: str) -> ResearchOutcome:
            try:
                research = await self.research_keyword(keyword, use_cache=use_cache)
                outcome = ResearchOutcome(keyword=keyword, success=True, research=research)
            except Exception as e:
                logger.error(f"Research failed for '{keyword}': {e}", exc_info=True)
                outcome = ResearchOutcome(keyword=keyword, success=False, error=str(e))
            if on_result is not None:
                on_result(outcome)
            return outcome

        outcomes = await asyncio.gather(*(run_one(keyword) for keyword in keywords))
        succeeded = sum(1 for outcome in outcomes if outcome.success)
        logger.info(f"Researched {len(outcomes)} keyword(s): {succeeded} succeeded, {len(outcomes) - succeeded} failed")
        return list(outcomes)

    # --- Competitors and trends ---

    async def analyze_competitor(self, url: str) -> CompetitorRanking:
        """Ranking of a URL among its domain's results. Unranked when unavailable."""
        fallback = CompetitorRanking(url=url, domain=domain_of(url), has_ranking=False, top_position=0, estimated_traffic=DEFAULT_TRAFFIC)
        if self.serp_client is None:
            return fallback
        try:
            return await self.rate_limiter.call(SERPAPI_SERVICE, self.serp_client.competitor_ranking, url)
        except Exception as e:
            logger.warning(f"Could not analyze competitor {url}: {e}")
            return fallback

    async def trending_topics(self, category: str) -> List[str]:
        if self.serp_client is None:
            return []
        try:
            return await self.rate_limiter.call(SERPAPI_SERVICE, self.serp_client.trending_topics, category)
        except Exception as e:
            logger.warning(f"Could not fetch trending topics for '{category}': {e}")
            return []
