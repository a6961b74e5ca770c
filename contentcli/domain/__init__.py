"""Domain Layer: value objects, entities, events and interfaces.

Has no dependencies on the infrastructure or core layers.
"""
