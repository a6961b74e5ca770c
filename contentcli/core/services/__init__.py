"""Application services (research and generation use cases)."""
