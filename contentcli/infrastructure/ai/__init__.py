"""AI Model Client Implementations."""
