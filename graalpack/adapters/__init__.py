"""Adapters — bindings for every side effect of a build.

Public re-exports for convenient access.
"""

from graalpack.adapters.base import Adapter, ExecutionContext
from graalpack.adapters.mock import MockAdapter
from graalpack.adapters.registry import AdapterRegistry

__all__ = [
    "Adapter",
    "AdapterRegistry",
    "ExecutionContext",
    "MockAdapter",
]
