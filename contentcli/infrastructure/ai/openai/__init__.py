"""OpenAI (and OpenAI-compatible) content generation client."""
