"""Caching Service Implementations.

Contains the two-level (memory + disk) cache used for research results.
"""
