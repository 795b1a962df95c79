"""Signal trader: edge-triggered signal polling, suggestion scoring and position reconciliation."""

__version__ = "0.1.0"
