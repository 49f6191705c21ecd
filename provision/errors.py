"""
Error taxonomy for module resolution and installation.

Resolution errors (missing modules, cycles) are always fatal to a request and
are raised before any install action runs. InstallFailure aborts the rest of
the sequence. VerifyFailure never escapes the orchestrator; it is recorded as
a warning on the module result.
"""

from __future__ import annotations

from typing import Optional, Sequence


class ProvisionError(Exception):
    """Base class for every error raised by the provisioning core."""


class ConfigError(ProvisionError):
    """The orchestrator configuration file could not be read."""


class ModuleNotFound(ProvisionError):
    """A requested or referenced module has no descriptor."""

    def __init__(self, module: str, message: Optional[str] = None):
        self.module = module
        super().__init__(message or f"Module not found: {module}")


class InvalidDescriptorError(ModuleNotFound):
    """The module directory exists but its module.json is unusable."""

    def __init__(self, module: str, path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(module, f"Invalid descriptor for {module} ({path}): {reason}")


class DependencyNotFoundError(ModuleNotFound):
    def __init__(self, dependency: str, required_by: str):
        self.required_by = required_by
        super().__init__(
            dependency,
            f"Dependency not found: {dependency} (required by {required_by})",
        )


class CircularDependencyError(ProvisionError):
    def __init__(self, module: str, chain: Sequence[str] = ()):
        self.module = module
        self.chain = list(chain)
        if self.chain:
            path = " -> ".join([*self.chain, module])
            msg = f"Circular dependency detected: {module} ({path})"
        else:
            msg = f"Circular dependency detected: {module}"
        super().__init__(msg)


class InstallFailure(ProvisionError):
    """A module's install action did not succeed.

    ``position`` is 1-based within the resolved order, so callers can report
    "2/5" and retry just that module. ``report`` holds everything that ran
    before the failure.
    """

    def __init__(self, module: str, position: int, total: int, output: str = "", report=None):
        self.module = module
        self.position = position
        self.total = total
        self.output = output
        self.report = report
        detail = f": {output}" if output else ""
        super().__init__(f"[{position}/{total}] Failed to install module {module}{detail}")


class InstallCancelled(ProvisionError):
    def __init__(self, completed: int, total: int, report=None):
        self.completed = completed
        self.total = total
        self.report = report
        super().__init__(f"Installation cancelled after {completed}/{total} modules")


class VerifyFailure(ProvisionError):
    """Raised by recipes whose post-install check fails; downgraded to a warning."""

    def __init__(self, module: str, output: str = ""):
        self.module = module
        self.output = output
        super().__init__(f"Verification failed for {module}" + (f": {output}" if output else ""))


class ActionError(ProvisionError):
    """A recipe could not run one of its external commands."""


class LockUnavailableError(ProvisionError):
    """Another provisioning run holds the host lock."""
