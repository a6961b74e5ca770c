"""contentcli: content research and generation CLI with per-service throttling."""

__version__ = "0.1.0"
