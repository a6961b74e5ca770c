"""Clients for the search-research (SerpAPI) and discussion-forum (Reddit) APIs."""
