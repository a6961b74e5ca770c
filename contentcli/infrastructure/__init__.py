"""Infrastructure Layer: Contains concrete implementations and adapters.

Connects the application to the outside world (LLM APIs, search and forum
APIs, disk cache, console) by implementing the interfaces defined in the
domain layer.
"""
