"""Groq content generation client."""
