"""Domain Events emitted by the throttling layer."""
