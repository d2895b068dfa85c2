"""
Enums package for Cosmos database setup.

Attribute names shared by tracing and logging.
"""

from .monitoring import SpanAttr

__all__ = [
    "SpanAttr",
]
