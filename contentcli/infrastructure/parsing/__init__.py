"""Parsing helpers for free-form LLM responses."""
