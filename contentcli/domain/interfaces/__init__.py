"""Domain Interfaces (Abstract Base Classes).

Define the contracts that infrastructure adapters must implement.
"""
