"""Command handlers. Each one returns a ``Response`` and never raises."""
