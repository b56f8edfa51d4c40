"""Build-pipeline plugin adapter and plugin registry.

A bundler-style pipeline asks a plugin two questions per module: whether it
wants the module (:meth:`IpcBridgePlugin.transform_include`) and, if so, for
the transformed code plus a source map (:meth:`IpcBridgePlugin.transform`).
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .config import BridgeConfig
from .errors import ConfigError, PluginRegistryError
from .naming import Side
from .transform import transform_include, transform_source

PLUGIN_NAME = "ipcbridge"


class PluginOptions(BaseModel):
    """Options accepted by :func:`create_plugin`."""

    model_config = ConfigDict(extra="forbid", use_enum_values=False)

    context: Side = Field(..., description="Process context being compiled")
    config: BridgeConfig = Field(default_factory=BridgeConfig)


class IpcBridgePlugin:
    """Transforms ``*.main.ipc.*`` and ``*.renderer.ipc.*`` modules for one context."""

    name = PLUGIN_NAME

    def __init__(self, context: Side, config: Optional[BridgeConfig] = None) -> None:
        self.context = Side.parse(context)
        self.config = config or BridgeConfig()

    def transform_include(self, file_id: str) -> bool:
        return transform_include(file_id, self.config)

    def transform(self, source: str, file_id: str) -> Optional[Dict[str, Any]]:
        """Return ``{"code", "map"}`` or ``None`` to leave the module untouched."""

        if not self.transform_include(file_id):
            return None
        result = transform_source(source, file_id, self.context, self.config)
        if result is None:
            return None
        return {"code": result.code, "map": result.source_map()}

    def __repr__(self) -> str:
        return f"IpcBridgePlugin(context={self.context.value!r})"


def create_plugin(context: Any, **options: Any) -> IpcBridgePlugin:
    """Validate ``options`` and build an :class:`IpcBridgePlugin`."""

    try:
        parsed = PluginOptions.model_validate({"context": context, **options})
    except ValidationError as exc:
        raise ConfigError(f"Invalid plugin options: {exc.errors()[0]['msg']}") from exc
    return IpcBridgePlugin(parsed.context, parsed.config)


PluginFactory = Callable[..., IpcBridgePlugin]

_PLUGINS: Dict[str, PluginFactory] = {}


def register_plugin(name: str, factory: PluginFactory) -> None:
    """Register ``factory`` under ``name``."""

    plugin_name = (name or "").strip()
    if not plugin_name:
        raise PluginRegistryError("Plugin name must be provided")
    if plugin_name in _PLUGINS:
        raise PluginRegistryError(f"Plugin '{plugin_name}' already registered")
    _PLUGINS[plugin_name] = factory


def get_plugin(name: str) -> PluginFactory:
    """Return the factory registered under ``name``."""

    plugin_name = (name or "").strip()
    factory = _PLUGINS.get(plugin_name)
    if factory is None:
        raise PluginRegistryError(f"Plugin '{plugin_name}' is not registered")
    return factory


def clear_registry() -> None:
    """Internal helper for tests to reset registry state."""

    _PLUGINS.clear()


register_plugin(PLUGIN_NAME, create_plugin)

__all__ = [
    "PLUGIN_NAME",
    "PluginOptions",
    "IpcBridgePlugin",
    "create_plugin",
    "register_plugin",
    "get_plugin",
    "clear_registry",
]
