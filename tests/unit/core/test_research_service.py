from unittest.mock import AsyncMock, MagicMock

import pytest

from contentcli.core.services.research_service import (
    RESEARCH_CACHE_PREFIX, ResearchService, build_topic, default_serp_data,
)
from contentcli.domain.interfaces.ai_model import ContentGenerator
from contentcli.domain.models.research import (
    CompetitorData, CompetitorRanking, FeaturedSnippet, KeywordMetrics, RedditInsight,
)
from contentcli.domain.models.throttling import ServiceConfig
from contentcli.infrastructure.cache.caching_service import DiskCachingService
from contentcli.infrastructure.research.reddit_client import RedditClient
from contentcli.infrastructure.research.serp_client import SerpApiClient
from contentcli.infrastructure.resilience.rate_limiter import RateLimiterRegistry


class StatusError(Exception):
    def __init__(self, status_code):
        super().__init__(f"status {status_code}")
        self.status_code = status_code


def insight(question, upvotes=3, comments=1):
    return RedditInsight(question=question, subreddit="compliance", upvotes=upvotes, comments=comments,
                         url="https://reddit.com/r/compliance/x")


@pytest.fixture
def registry():
    fast = dict(base_backoff_seconds=0.01, max_backoff_seconds=0.02, jitter_seconds=0.0, max_retries=1)
    return RateLimiterRegistry([
        ServiceConfig(name=name, max_requests=100, window_seconds=60.0, **fast)
        for name in ("llm", "serpapi", "reddit")
    ])


@pytest.fixture
def serp_client():
    client = AsyncMock(spec=SerpApiClient)
    client.search.return_value = (
        [CompetitorData(url="https://a.example.com", title="A", position=1, domain="a.example.com")],
        FeaturedSnippet(content="Answer", source="https://a.example.com", url="https://a.example.com"),
    )
    client.keyword_metrics.return_value = KeywordMetrics(search_volume=10000, competition="low", cpc=5.0)
    client.related_questions.return_value = ["What is SOC 2?"]
    client.related_keywords.return_value = ["soc 2 checklist"]
    return client


@pytest.fixture
def generator():
    gen = MagicMock(spec=ContentGenerator)
    gen.provider_name = "mock"
    gen.generate_content = AsyncMock(return_value=(
        '```json\n{"searchVolume": 12000, "competition": "high", "cpc": 22, '
        '"relatedKeywords": ["soc 2 tools"], "questions": ["Is SOC 2 required?"]}\n```'
    ))
    return gen


@pytest.fixture
def reddit_client():
    client = AsyncMock(spec=RedditClient)
    client.search.return_value = [
        insight("Big problem with auditors"),
        insight("How to prepare for SOC 2?"),
        insight("Need help choosing a tool"),
        insight("Just passed our audit"),
    ]
    return client


# --- Keyword data ---

@pytest.mark.asyncio
async def test_keyword_data_from_serpapi(registry, serp_client, generator):
    service = ResearchService(registry, generator=generator, serp_client=serp_client)

    serp = await service.get_keyword_data("soc 2")

    assert serp.source == "serpapi"
    assert serp.search_volume == 10000
    assert serp.competition == "low"
    assert serp.questions == ["What is SOC 2?"]
    assert serp.related_keywords == ["soc 2 checklist"]
    assert serp.top_competitors[0].domain == "a.example.com"
    assert serp.featured_snippet.content == "Answer"
    assert registry.stats("serpapi").recent_requests == 4
    generator.generate_content.assert_not_called()


@pytest.mark.asyncio
async def test_related_lists_degrade_to_empty(registry, serp_client):
    serp_client.related_questions.side_effect = StatusError(404)
    serp_client.related_keywords.side_effect = StatusError(404)
    service = ResearchService(registry, serp_client=serp_client)

    serp = await service.get_keyword_data("soc 2")

    assert serp.source == "serpapi"
    assert serp.questions == []
    assert serp.related_keywords == []


@pytest.mark.asyncio
async def test_serpapi_failure_falls_back_to_llm(registry, serp_client, generator):
    serp_client.search.side_effect = StatusError(401)
    service = ResearchService(registry, generator=generator, serp_client=serp_client)

    serp = await service.get_keyword_data("soc 2")

    assert serp.source == "llm"
    assert serp.search_volume == 12000
    assert serp.competition == "high"
    assert serp.cpc == 22.0
    assert serp.related_keywords == ["soc 2 tools"]
    assert serp.questions == ["Is SOC 2 required?"]
    assert registry.stats("llm").recent_requests == 1


@pytest.mark.asyncio
async def test_llm_estimate_fills_missing_fields(registry, generator):
    generator.generate_content.return_value = '{"competition": "extreme", "searchVolume": "lots"}'
    service = ResearchService(registry, generator=generator)

    serp = await service.get_keyword_data("hipaa")

    assert serp.source == "llm"
    assert serp.search_volume == 5000
    assert serp.competition == "medium"
    assert serp.cpc == 10.0
    assert serp.related_keywords[0] == "hipaa checklist"
    assert serp.questions[0] == "What is hipaa?"


@pytest.mark.asyncio
async def test_unparseable_llm_answer_uses_defaults(registry, generator):
    generator.generate_content.return_value = "I cannot help with that."
    service = ResearchService(registry, generator=generator)

    assert await service.get_keyword_data("hipaa") == default_serp_data("hipaa")


@pytest.mark.asyncio
async def test_llm_failure_uses_defaults(registry, generator):
    generator.generate_content.side_effect = StatusError(400)
    service = ResearchService(registry, generator=generator)

    serp = await service.get_keyword_data("hipaa")

    assert serp.source == "default"
    assert serp.search_volume == 5000


@pytest.mark.asyncio
async def test_no_providers_uses_defaults(registry):
    service = ResearchService(registry)
    serp = await service.get_keyword_data("iso 27001")
    assert serp.source == "default"
    assert serp.competition == "medium"


# --- Forum insights ---

def test_build_topic_extracts_pain_points_and_requests():
    insights = [insight(f"Struggle number {i}") for i in range(12)] + [insight("Guide to audits")]
    topic = build_topic("audits", insights)

    assert topic.popular_threads == 13
    assert len(topic.questions) == 13
    assert len(topic.pain_points) == 10
    assert topic.solution_requests == ["Guide to audits"]


@pytest.mark.asyncio
async def test_topic_insights(registry, reddit_client):
    service = ResearchService(registry, reddit_client=reddit_client)

    topic = await service.get_topic_insights("soc 2")

    reddit_client.search.assert_awaited_once_with("soc 2", 30)
    assert topic.pain_points == ["Big problem with auditors"]
    assert topic.solution_requests == ["How to prepare for SOC 2?", "Need help choosing a tool"]
    assert topic.popular_threads == 4
    assert registry.stats("reddit").recent_requests == 1


@pytest.mark.asyncio
async def test_topic_insights_failure_is_empty(registry, reddit_client):
    reddit_client.search.side_effect = StatusError(403)
    service = ResearchService(registry, reddit_client=reddit_client)

    topic = await service.get_topic_insights("soc 2")

    assert topic.topic == "soc 2"
    assert topic.questions == []
    assert topic.popular_threads == 0


@pytest.mark.asyncio
async def test_subreddit_topic(registry, reddit_client):
    reddit_client.subreddit_top_posts.return_value = [
        RedditInsight("Audit failed again", "sysadmin", 10, 8, "u1", sentiment="negative"),
        RedditInsight("We passed", "sysadmin", 50, 2, "u2", sentiment="positive"),
    ]
    service = ResearchService(registry, reddit_client=reddit_client)

    topic = await service.get_subreddit_topic("sysadmin")

    assert topic.pain_points == ["Audit failed again"]
    assert topic.solution_requests == ["Audit failed again"]
    assert topic.popular_threads == 2


# --- Combined research ---

@pytest.mark.asyncio
async def test_research_keyword_is_cached(registry, serp_client, reddit_client, tmp_path):
    cache = DiskCachingService(tmp_path / "cache")
    service = ResearchService(registry, serp_client=serp_client, reddit_client=reddit_client, cache=cache)
    try:
        first = await service.research_keyword("SOC 2")
        second = await service.research_keyword("soc 2 ")

        assert second == first
        assert serp_client.search.await_count == 1
        assert reddit_client.search.await_count == 1
        assert await cache.get(RESEARCH_CACHE_PREFIX, "soc 2") == first

        await service.research_keyword("soc 2", use_cache=False)
        assert serp_client.search.await_count == 2
    finally:
        cache.close()


@pytest.mark.asyncio
async def test_default_data_is_not_cached(registry):
    cache = AsyncMock()
    cache.get.return_value = None
    service = ResearchService(registry, cache=cache)

    research = await service.research_keyword("pci dss")

    assert research.serp.source == "default"
    cache.set.assert_not_awaited()


@pytest.mark.asyncio
async def test_research_keyword_rejects_blank(registry):
    service = ResearchService(registry)
    with pytest.raises(ValueError):
        await service.research_keyword("   ")


@pytest.mark.asyncio
async def test_research_many_reports_each_keyword(registry, serp_client, reddit_client):
    service = ResearchService(registry, serp_client=serp_client, reddit_client=reddit_client)
    seen = []

    outcomes = await service.research_many(["soc 2", " ", "hipaa"], on_result=seen.append)

    assert [o.keyword for o in outcomes] == ["soc 2", " ", "hipaa"]
    assert [o.success for o in outcomes] == [True, False, True]
    assert outcomes[1].error
    assert outcomes[2].research.serp.keyword == "hipaa"
    assert len(seen) == 3


# --- Competitors and trends ---

@pytest.mark.asyncio
async def test_analyze_competitor(registry, serp_client):
    ranking = CompetitorRanking("https://a.example.com/x", "a.example.com", True, 2, 500)
    serp_client.competitor_ranking.return_value = ranking
    service = ResearchService(registry, serp_client=serp_client)

    assert await service.analyze_competitor("https://a.example.com/x") == ranking


@pytest.mark.asyncio
async def test_analyze_competitor_without_serpapi(registry):
    service = ResearchService(registry)

    ranking = await service.analyze_competitor("https://b.example.com/page")

    assert ranking.domain == "b.example.com"
    assert ranking.has_ranking is False
    assert ranking.estimated_traffic == 50


@pytest.mark.asyncio
async def test_trending_topics(registry, serp_client):
    serp_client.trending_topics.return_value = ["Zero trust", "AI governance"]
    service = ResearchService(registry, serp_client=serp_client)

    assert await service.trending_topics("security") == ["Zero trust", "AI governance"]
    assert await ResearchService(registry).trending_topics("security") == []


@pytest.mark.asyncio
async def test_trending_topics_failure_is_empty(registry, serp_client):
    serp_client.trending_topics.side_effect = StatusError(500)
    service = ResearchService(registry, serp_client=serp_client)

    assert await service.trending_topics("security") == []
    # One retry before giving up
    assert serp_client.trending_topics.await_count == 2
