"""Lifecycle operations - backend contract and plugin discovery."""

from .hooks import PROJECT_NAME, CurveCtlHookSpec, hookimpl
from .loader import ENTRY_POINT_GROUP, create_plugin_manager, load_operations
from .protocols import LifecycleOperations

__all__ = [
    "ENTRY_POINT_GROUP",
    "PROJECT_NAME",
    "CurveCtlHookSpec",
    "LifecycleOperations",
    "create_plugin_manager",
    "hookimpl",
    "load_operations",
]
