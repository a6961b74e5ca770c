"""Defines common Value Objects used across different domain contexts.

These objects represent simple values or concepts like service names,
prompts, cache keys, etc., ensuring consistency and type safety.
"""

from typing import NewType, TypedDict

# === Core Value Objects ===

# Using NewType for semantic clarity, although they are strings at runtime.
PromptText = NewType("PromptText", str)        # Prompt sent to the generation service
AIResponse = NewType("AIResponse", str)        # Raw text returned by the generation service
Keyword = NewType("Keyword", str)              # Search keyword being researched

# === Throttling Context ===
ServiceName = NewType("ServiceName", str)      # e.g. 'llm', 'serpapi', 'reddit'

# === Caching Context ===
CacheKey = NewType("CacheKey", str)            # Unique key for a cache entry
CachePrefix = NewType("CachePrefix", str)      # Category of cache keys (e.g., 'research')

# === Token Management ===
class TokenUsage(TypedDict):
    """Represents token usage information from an AI call."""
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int
