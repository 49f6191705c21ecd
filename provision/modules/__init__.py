"""
Install recipe registry.

Each recipe implements BaseModule and registers itself under its module name
so the orchestrator can pick the implementation for a descriptor. Descriptors
with no registered recipe fall back to ScriptModule.
"""

import importlib

from .base import ActionResult, BaseModule, ModuleConfig, ScriptModule

MODULE_REGISTRY = {}

_RECIPE_MODULES = (
    "essentials",
    "git",
    "node",
    "docker",
    "dotnet",
    "vscode",
    "rider",
    "claude",
    "dev_tools",
)


def register_module(name: str):
    """Decorator for registering recipes by module name."""

    def decorator(cls):
        MODULE_REGISTRY[name] = cls
        return cls

    return decorator


def load_recipes() -> dict:
    """Import the bundled recipes for their registration side effects."""
    for mod in _RECIPE_MODULES:
        importlib.import_module(f"{__name__}.{mod}")
    return MODULE_REGISTRY


def create_module(descriptor, config=None, recipes=None) -> BaseModule:
    """Instantiate the recipe registered for ``descriptor.name``."""
    if recipes is None:
        recipes = load_recipes()
    cls = recipes.get(descriptor.name, ScriptModule)
    return cls(descriptor, config)


__all__ = [
    "ActionResult",
    "BaseModule",
    "ModuleConfig",
    "ScriptModule",
    "MODULE_REGISTRY",
    "register_module",
    "load_recipes",
    "create_module",
]
