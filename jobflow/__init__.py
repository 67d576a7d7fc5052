"""Event-sourced state, routing and history rendering for multi-agent workflow jobs."""

__version__ = "0.1.0"