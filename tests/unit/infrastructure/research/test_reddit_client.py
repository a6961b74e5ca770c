import httpx
import pytest

from contentcli.infrastructure.research.reddit_client import RedditClient, analyze_sentiment


def post(title, ups=0, comments=0, subreddit="compliance", selftext="", permalink="/r/compliance/1"):
    return {
        "data": {
            "title": title,
            "ups": ups,
            "num_comments": comments,
            "subreddit": subreddit,
            "selftext": selftext,
            "permalink": permalink,
        }
    }


def listing(*posts):
    return {"data": {"children": list(posts)}}


def make_client(payload, status=200):
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(status, json=payload)

    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return RedditClient(user_agent="test-agent/1.0", http_client=http), requests


@pytest.mark.parametrize("text, expected", [
    ("Huge problem with our audit, it failed", "negative"),
    ("Solved it, great success", "positive"),
    ("SOC 2 timeline question", "neutral"),
    ("problem solved", "neutral"),
])
def test_sentiment(text, expected):
    assert analyze_sentiment(text) == expected


@pytest.mark.asyncio
async def test_search_filters_low_engagement():
    client, requests = make_client(listing(
        post("Upvoted thread", ups=5),
        post("Discussed thread", comments=3),
        post("Ignored thread", ups=0, comments=2),
    ))

    insights = await client.search("soc 2", limit=10)

    assert [i.question for i in insights] == ["Upvoted thread", "Discussed thread"]
    assert insights[0].url == "https://reddit.com/r/compliance/1"
    request = requests[0]
    assert request.url.path == "/search.json"
    assert request.url.params["q"] == "soc 2"
    assert request.url.params["limit"] == "10"
    assert request.headers["User-Agent"] == "test-agent/1.0"


@pytest.mark.asyncio
async def test_search_uses_body_for_sentiment():
    client, _ = make_client(listing(post("Audit question", ups=1, selftext="we keep struggling, it failed")))

    insights = await client.search("audit")

    assert insights[0].sentiment == "negative"


@pytest.mark.asyncio
async def test_subreddit_top_posts_keeps_everything():
    client, requests = make_client(listing(post("Quiet post"), post("Popular post", ups=100)))

    posts = await client.subreddit_top_posts("cybersecurity", limit=5)

    assert len(posts) == 2
    assert requests[0].url.path == "/r/cybersecurity/top.json"
    assert requests[0].url.params["t"] == "month"


@pytest.mark.asyncio
async def test_rate_limited_response_raises():
    client, _ = make_client({"message": "Too Many Requests"}, status=429)

    with pytest.raises(httpx.HTTPStatusError) as exc_info:
        await client.search("soc 2")
    assert exc_info.value.response.status_code == 429


@pytest.mark.asyncio
async def test_empty_listing():
    client, _ = make_client({"kind": "Listing", "data": {}})
    assert await client.search("nothing") == []
