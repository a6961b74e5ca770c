"""Domain models for keyword research results.

Covers search-engine (SERP) data and discussion-forum insights that feed
the article pipeline.
"""

from dataclasses import dataclass, field
from typing import List, Literal, Optional

Competition = Literal["low", "medium", "high"]
Sentiment = Literal["positive", "neutral", "negative"]


@dataclass
class CompetitorData:
    """One organic search result ranking for a keyword."""
    url: str
    title: str
    position: int
    domain: str
    snippet: str = ""


@dataclass
class FeaturedSnippet:
    """Answer box or featured snippet shown above the organic results."""
    content: str
    source: str
    url: str
    type: Literal["paragraph", "list", "table"] = "paragraph"


@dataclass
class KeywordMetrics:
    """Estimated demand and competition for a keyword."""
    search_volume: int
    competition: Competition
    cpc: float


@dataclass
class SerpData:
    """Search research for one keyword."""
    keyword: str
    search_volume: int
    competition: Competition
    cpc: float
    related_keywords: List[str] = field(default_factory=list)
    questions: List[str] = field(default_factory=list)
    top_competitors: List[CompetitorData] = field(default_factory=list)
    featured_snippet: Optional[FeaturedSnippet] = None
    source: Literal["serpapi", "llm", "default"] = "serpapi"


@dataclass
class CompetitorRanking:
    """Ranking summary of a competitor URL within its own domain's results."""
    url: str
    domain: str
    has_ranking: bool
    top_position: int
    estimated_traffic: int


@dataclass
class RedditInsight:
    """A forum thread relevant to a keyword."""
    question: str
    subreddit: str
    upvotes: int
    comments: int
    url: str
    sentiment: Sentiment = "neutral"


@dataclass
class RedditTopic:
    """Forum insights aggregated for a keyword or subreddit."""
    topic: str
    questions: List[RedditInsight] = field(default_factory=list)
    pain_points: List[str] = field(default_factory=list)
    solution_requests: List[str] = field(default_factory=list)
    popular_threads: int = 0


@dataclass
class KeywordResearch:
    """Combined SERP and forum research for one keyword."""
    keyword: str
    serp: SerpData
    reddit: RedditTopic


@dataclass
class ResearchOutcome:
    """Result of one keyword within a batch research run."""
    keyword: str
    success: bool
    research: Optional[KeywordResearch] = None
    error: Optional[str] = None
