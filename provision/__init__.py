"""
Workstation provisioning core: module registry, dependency resolver and
installation orchestrator.
"""

from .errors import (
    CircularDependencyError,
    DependencyNotFoundError,
    InstallCancelled,
    InstallFailure,
    InvalidDescriptorError,
    ModuleNotFound,
    ProvisionError,
    VerifyFailure,
)
from .orchestrator import InstallOrchestrator, ModuleResult, ModuleStatus, RunReport
from .registry import ModuleRegistry
from .resolver import RunState, dependency_tree, resolve

__version__ = "1.0.0"

__all__ = [
    "CircularDependencyError",
    "DependencyNotFoundError",
    "InstallCancelled",
    "InstallFailure",
    "InvalidDescriptorError",
    "ModuleNotFound",
    "ProvisionError",
    "VerifyFailure",
    "InstallOrchestrator",
    "ModuleResult",
    "ModuleStatus",
    "RunReport",
    "ModuleRegistry",
    "RunState",
    "dependency_tree",
    "resolve",
]
