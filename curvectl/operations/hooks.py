"""Hook specifications for lifecycle operations plugins.

A backend package exposes a module (or object) with a ``@hookimpl``
``curvectl_operations`` function and registers it under the
``curvectl.operations`` entry point group::

    [project.entry-points."curvectl.operations"]
    pumpfun = "pumpfun_ops.plugin"

    # pumpfun_ops/plugin.py
    from curvectl.operations import hookimpl

    @hookimpl
    def curvectl_operations():
        return PumpfunOperations()
"""

from typing import Any

import pluggy

PROJECT_NAME = "curvectl"

hookspec = pluggy.HookspecMarker(PROJECT_NAME)
hookimpl = pluggy.HookimplMarker(PROJECT_NAME)


class CurveCtlHookSpec:
    """Hooks a lifecycle operations plugin implements."""

    @hookspec
    def curvectl_operations(self) -> Any:
        """Return the plugin's LifecycleOperations backend, or None."""
