"""
Dependency resolution.

``resolve`` is the planning phase: it turns a requested module into an install
order with every dependency ahead of its dependents. It never runs an install
action and never touches ``RunState.installed``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Set

from .errors import CircularDependencyError, DependencyNotFoundError, ModuleNotFound
from .registry import ModuleRegistry

logger = logging.getLogger(__name__)


@dataclass
class RunState:
    """Per-invocation bookkeeping shared by the resolver and the orchestrator.

    ``installing`` holds the modules on the current resolution path and must be
    empty whenever no resolution is in progress. ``installed`` and ``failed``
    only ever grow during a run.
    """

    installed: Set[str] = field(default_factory=set)
    installing: Set[str] = field(default_factory=set)
    failed: Set[str] = field(default_factory=set)


def resolve(registry: ModuleRegistry, module: str, state: Optional[RunState] = None) -> List[str]:
    """Return the install order for ``module``, dependencies first.

    Raises:
        ModuleNotFound: ``module`` itself is unknown.
        DependencyNotFoundError: a transitive dependency is unknown.
        CircularDependencyError: ``module`` reaches itself.
    """
    state = state if state is not None else RunState()
    if not registry.module_exists(module):
        raise ModuleNotFound(module)

    order: List[str] = []
    resolved: Set[str] = set()
    path: List[str] = []

    def visit(name: str) -> None:
        if name in state.installing:
            start = path.index(name)
            raise CircularDependencyError(name, path[start:])
        if name in resolved:
            return

        state.installing.add(name)
        path.append(name)
        try:
            for dep in registry.get_dependencies(name):
                if not registry.module_exists(dep):
                    raise DependencyNotFoundError(dep, required_by=name)
                visit(dep)
        finally:
            path.pop()
            state.installing.discard(name)

        resolved.add(name)
        order.append(name)

    try:
        visit(module)
    except (CircularDependencyError, ModuleNotFound) as exc:
        logger.error("Failed to resolve dependencies for %s: %s", module, exc)
        raise

    logger.debug("Resolved %s -> %s", module, order)
    return order


def dependency_tree(registry: ModuleRegistry, module: str) -> List[str]:
    """Render the dependency graph rooted at ``module`` as indented lines.

    Subtrees already printed are marked ``(*)``; an edge back onto the current
    path is marked ``(cycle)``; unknown dependencies are marked ``(missing)``.
    """
    if not registry.module_exists(module):
        raise ModuleNotFound(module)

    lines: List[str] = [module]
    expanded: Set[str] = set()

    def walk(name: str, prefix: str, stack: List[str]) -> None:
        deps = registry.get_dependencies(name)
        for i, dep in enumerate(deps):
            last = i == len(deps) - 1
            branch = "└── " if last else "├── "
            if dep in stack:
                lines.append(f"{prefix}{branch}{dep} (cycle)")
                continue
            if not registry.module_exists(dep):
                lines.append(f"{prefix}{branch}{dep} (missing)")
                continue
            if dep in expanded and registry.get_dependencies(dep):
                lines.append(f"{prefix}{branch}{dep} (*)")
                continue
            lines.append(f"{prefix}{branch}{dep}")
            expanded.add(dep)
            walk(dep, prefix + ("    " if last else "│   "), stack + [dep])

    walk(module, "", [module])
    return lines
