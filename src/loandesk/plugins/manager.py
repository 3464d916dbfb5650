"""Plugin registration for the loan lifecycle hooks.

Installed packages contribute plugins through the ``loandesk.plugins``
entry point group. Embedding code and tests register instances directly
with :meth:`PluginManager.register_plugin`. The hooks themselves are
declared in :mod:`loandesk.plugins.hookspecs`.
"""

from __future__ import annotations

import inspect
import logging

import pluggy

from loandesk.plugins.hookspecs import LoanDeskHookSpec

PROJECT_NAME = "loandesk"
ENTRY_POINT_GROUP = "loandesk.plugins"

hookimpl = pluggy.HookimplMarker(PROJECT_NAME)

logger = logging.getLogger(__name__)


def declares_hooks(cls: type) -> bool:
    """True when a public attribute of *cls* carries the ``@hookimpl`` mark."""
    mark = f"{PROJECT_NAME}_impl"
    return any(
        getattr(getattr(cls, attr, None), mark, None) is not None
        for attr in dir(cls)
        if not attr.startswith("_")
    )


class PluginManager:
    """A :class:`pluggy.PluginManager` bound to the loandesk hook specs."""

    def __init__(self) -> None:
        self._registry = pluggy.PluginManager(PROJECT_NAME)
        self._registry.add_hookspecs(LoanDeskHookSpec)
        self._discovered = False

    @property
    def hook(self) -> pluggy.HookRelay:
        return self._registry.hook

    @property
    def is_loaded(self) -> bool:
        """Whether entry points have been scanned yet."""
        return self._discovered

    def discover_and_load(self) -> list[str]:
        """Scan the entry point group and return every registered plugin name."""
        found = self._registry.load_setuptools_entrypoints(ENTRY_POINT_GROUP)
        self.instantiate_classes()
        self._discovered = True
        logger.debug("Loaded %d plugin(s) from %s", found, ENTRY_POINT_GROUP)
        return self.list_plugin_names()

    def instantiate_classes(self) -> None:
        """Swap registered plugin classes for instances of them.

        An entry point may name a class. Calling hooks on the class would
        leave ``self`` unbound.
        """
        for name, plugin in self._registry.list_name_plugin():
            if not (inspect.isclass(plugin) and declares_hooks(plugin)):
                continue
            self._registry.unregister(plugin)
            try:
                instance = plugin()
            except Exception:
                logger.warning("Could not instantiate plugin %s", name, exc_info=True)
                continue
            self._registry.register(instance, name=name)

    def register_plugin(self, plugin: object, name: str | None = None) -> None:
        name = name or type(plugin).__name__
        self._registry.register(plugin, name=name)
        logger.debug("Registered plugin %s", name)

    def unregister(self, plugin: object) -> None:
        self._registry.unregister(plugin)

    def get_plugins(self) -> list[object]:
        return list(self._registry.get_plugins())

    def list_plugin_names(self) -> list[str]:
        return [name for name, _ in self._registry.list_name_plugin()]
