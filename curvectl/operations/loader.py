"""Discovery of the lifecycle operations backend.

Backends are pluggy plugins loaded from the ``curvectl.operations`` entry
point group (see ``hooks``). Settings may name a plugin by its entry point
name, or point at a backend factory directly as ``module:attribute``.
"""

import importlib
import logging
from typing import Any

import pluggy

from ..core.exceptions import ConfigurationError, OperationError
from .hooks import PROJECT_NAME, CurveCtlHookSpec
from .protocols import LifecycleOperations

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "curvectl.operations"


def create_plugin_manager() -> pluggy.PluginManager:
    """Create a plugin manager with every installed backend plugin loaded."""
    pm = pluggy.PluginManager(PROJECT_NAME)
    pm.add_hookspecs(CurveCtlHookSpec)
    count = pm.load_setuptools_entrypoints(ENTRY_POINT_GROUP)
    logger.debug(f"Loaded {count} operations plugins from entry points")
    return pm


def _import_target(target: str) -> Any:
    module_name, _, attr = target.partition(":")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigurationError("operations", f"cannot import {module_name}: {e}") from e
    try:
        return getattr(module, attr)
    except AttributeError as e:
        raise ConfigurationError("operations", f"{module_name} has no attribute {attr}") from e


def _from_plugins(pm: pluggy.PluginManager, name: str | None) -> Any:
    available = sorted(impl.plugin_name for impl in pm.hook.curvectl_operations.get_hookimpls())
    if not available:
        raise OperationError(
            "operations",
            f"no lifecycle operations backend installed (entry point group '{ENTRY_POINT_GROUP}')",
        )

    if name is None:
        name = available[0]
        if len(available) > 1:
            logger.warning(
                f"Multiple operations backends installed ({', '.join(available)}); using {name}"
            )
    elif name not in available:
        raise ConfigurationError(
            "operations",
            f"unknown backend '{name}' (installed: {', '.join(available)})",
        )

    others = [pm.get_plugin(other) for other in available if other != name]
    results = pm.subset_hook_caller("curvectl_operations", remove_plugins=others)()
    if not results:
        raise ConfigurationError("operations", f"backend '{name}' returned no operations")
    return results[0]


def load_operations(
    target: str | None = None,
    plugin_manager: pluggy.PluginManager | None = None,
) -> LifecycleOperations:
    """
    Resolve the operations backend.

    Args:
        target: Plugin name, ``module:attribute``, or ``None`` for the
                first installed plugin by name
        plugin_manager: Manager to query; defaults to one loaded from
                        entry points

    Returns:
        Backend instance

    Raises:
        OperationError: If no backend is installed
        ConfigurationError: If the named backend cannot be found or does not
            implement all lifecycle operations
    """
    if target and ":" in target:
        factory = _import_target(target)
        backend = factory() if callable(factory) else factory
    else:
        pm = plugin_manager or create_plugin_manager()
        backend = _from_plugins(pm, target)

    if not isinstance(backend, LifecycleOperations):
        raise ConfigurationError(
            "operations",
            f"{type(backend).__name__} does not implement configure/launch/swap/migrate/withdraw",
        )
    logger.debug(f"Using operations backend {type(backend).__name__}")
    return backend
