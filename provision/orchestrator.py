"""
Installation orchestrator
-------------------------
Runs a resolved install order one module at a time. Each module goes through

    PENDING -> CHECKING -> SKIPPED
                        -> INSTALLING -> FAILED
                                      -> VERIFYING -> INSTALLED
                                                   -> INSTALLED_WITH_WARNINGS

The first FAILED module aborts the rest of the order. Modules installed
earlier in the run stay installed. In dry-run mode INSTALLING/VERIFYING are
replaced by WOULD_INSTALL; checks still run because they are read-only.
"""

from __future__ import annotations

import logging
import subprocess
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, List, Optional, Set

from utils.timeout import timeout

from .errors import (
    ActionError,
    CircularDependencyError,
    InstallCancelled,
    InstallFailure,
    ModuleNotFound,
    VerifyFailure,
)
from .modules import create_module
from .modules.base import ActionResult, BaseModule
from .registry import ModuleRegistry
from .resolver import RunState, resolve
from .settings import Settings

logger = logging.getLogger(__name__)


class ModuleStatus(str, Enum):
    PENDING = "pending"
    CHECKING = "checking"
    SKIPPED = "skipped"
    INSTALLING = "installing"
    VERIFYING = "verifying"
    INSTALLED = "installed"
    INSTALLED_WITH_WARNINGS = "installed_with_warnings"
    WOULD_INSTALL = "would_install"
    FAILED = "failed"


SUCCESS_STATES = {
    ModuleStatus.SKIPPED,
    ModuleStatus.INSTALLED,
    ModuleStatus.INSTALLED_WITH_WARNINGS,
    ModuleStatus.WOULD_INSTALL,
}


@dataclass
class ModuleResult:
    name: str
    position: int
    total: int
    status: ModuleStatus = ModuleStatus.PENDING
    message: str = ""
    duration: float = 0.0

    @property
    def ok(self) -> bool:
        return self.status in SUCCESS_STATES

    @property
    def progress(self) -> str:
        return f"{self.position}/{self.total}"

    def to_dict(self) -> dict:
        return {
            "module": self.name,
            "position": self.progress,
            "status": self.status.value,
            "message": self.message,
            "duration": round(self.duration, 2),
        }


@dataclass
class RunReport:
    """What happened during one orchestrator request."""

    requested: List[str]
    dry_run: bool = False
    order: List[str] = field(default_factory=list)
    results: List[ModuleResult] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    started_at: str = field(default_factory=lambda: datetime.now().isoformat(timespec="seconds"))

    @property
    def ok(self) -> bool:
        return not self.failed and not self.errors

    @property
    def exit_code(self) -> int:
        return 0 if self.ok else 1

    def result_for(self, name: str) -> Optional[ModuleResult]:
        for result in reversed(self.results):
            if result.name == name:
                return result
        return None

    def extend(self, other: "RunReport") -> None:
        self.order.extend(m for m in other.order if m not in self.order)
        self.results.extend(other.results)
        self.failed.extend(m for m in other.failed if m not in self.failed)
        self.errors.extend(other.errors)

    def to_dict(self) -> dict:
        return {
            "requested": self.requested,
            "dry_run": self.dry_run,
            "started_at": self.started_at,
            "order": self.order,
            "results": [r.to_dict() for r in self.results],
            "failed": self.failed,
            "errors": self.errors,
            "ok": self.ok,
        }


RecipeFactory = Callable[..., BaseModule]
ProgressCallback = Callable[[ModuleResult], None]


class InstallOrchestrator:
    """Resolves and installs modules, sequentially, against one RunState."""

    def __init__(
        self,
        registry: ModuleRegistry,
        settings: Optional[Settings] = None,
        state: Optional[RunState] = None,
        dry_run: Optional[bool] = None,
        recipe_factory: Optional[RecipeFactory] = None,
        on_progress: Optional[ProgressCallback] = None,
    ):
        self.registry = registry
        self.settings = settings or Settings(modules_dir=registry.modules_dir)
        self.state = state if state is not None else RunState()
        self.dry_run = self.settings.dry_run if dry_run is None else dry_run
        self.recipe_factory = recipe_factory or create_module
        self.on_progress = on_progress
        self._cancel_requested = False
        # Modules whose install action already ran (or would run) in this run
        self._attempted: Set[str] = set()

    def request_cancel(self) -> None:
        """Stop before the next module starts; the running one completes."""
        logger.warning("Cancellation requested; finishing current module")
        self._cancel_requested = True

    # Planning -----------------------------------------------------------
    def plan(self, module: str) -> List[str]:
        """Resolve the install order for ``module`` without installing anything."""
        if not self.registry.module_exists(module):
            raise ModuleNotFound(module)
        return resolve(self.registry, module, self.state)

    # Execution ----------------------------------------------------------
    def install(self, module: str, force: bool = False) -> RunReport:
        """Install ``module`` and its dependencies.

        Raises:
            ModuleNotFound: unknown module (before any resolution).
            DependencyNotFoundError, CircularDependencyError: resolution
                failed; nothing was installed.
            InstallFailure: a module failed; ``exc.report`` lists what ran.
            InstallCancelled: ``request_cancel`` was called.
        """
        order = self.plan(module)
        self._warn_conflicts(order)

        report = RunReport(requested=[module], dry_run=self.dry_run, order=list(order))
        total = len(order)
        mode = "Dry run for" if self.dry_run else "Installing"
        logger.info("%s %s: order %s", mode, module, " -> ".join(order))

        for position, name in enumerate(order, start=1):
            if self._cancel_requested:
                raise InstallCancelled(position - 1, total, report)

            result = ModuleResult(name, position, total)
            report.results.append(result)
            self._run_module(result, force=force and name == module)

            if result.status is ModuleStatus.FAILED:
                self.state.failed.add(name)
                report.failed.append(name)
                report.errors.append(f"[{result.progress}] {name}: {result.message}")
                logger.error("[%s] Failed to install module: %s (%s)", result.progress, name, result.message)
                raise InstallFailure(name, position, total, result.message, report)

        return report

    def install_all(self, force: bool = False) -> RunReport:
        """Install every known module, continuing past individual failures."""
        modules = list(self.registry.list_modules())
        report = RunReport(requested=modules, dry_run=self.dry_run)

        for module in modules:
            if self._cancel_requested:
                raise InstallCancelled(len(report.results), len(modules), report)
            try:
                report.extend(self.install(module, force=force and module not in self._attempted))
            except InstallFailure as exc:
                report.extend(exc.report)
                if module not in report.failed:
                    report.failed.append(module)
            except (CircularDependencyError, ModuleNotFound) as exc:
                report.failed.append(module)
                report.errors.append(f"{module}: {exc}")

        if report.failed:
            logger.warning("Some modules failed to install: %s", ", ".join(report.failed))
        else:
            logger.info("All modules installed successfully")
        return report

    # Per-module state machine --------------------------------------------
    def _transition(self, result: ModuleResult, status: ModuleStatus, message: str = "") -> None:
        result.status = status
        if message:
            result.message = message
        logger.debug("[%s] %s -> %s %s", result.progress, result.name, status.value, message)
        if self.on_progress:
            self.on_progress(result)

    def _run_module(self, result: ModuleResult, force: bool) -> None:
        started = time.monotonic()
        try:
            self._advance(result, force)
        finally:
            result.duration = time.monotonic() - started

    def _advance(self, result: ModuleResult, force: bool) -> None:
        name = result.name
        if name in self.state.failed:
            self._transition(result, ModuleStatus.FAILED, "failed earlier in this run")
            return
        if name in self.state.installed and not force:
            self._transition(result, ModuleStatus.SKIPPED, "already installed")
            return

        descriptor = self.registry.get(name)
        config = self.settings.module_config(name, descriptor.timeout)
        if not config.enabled:
            logger.warning("Module %s is disabled in config, skipping", name)
            self._transition(result, ModuleStatus.SKIPPED, "disabled in config")
            return

        recipe = self.recipe_factory(descriptor, config)

        self._transition(result, ModuleStatus.CHECKING)
        if not force and self._check(recipe, name):
            self.state.installed.add(name)
            self._transition(result, ModuleStatus.SKIPPED, "already installed")
            return

        self._attempted.add(name)
        if self.dry_run:
            self.state.installed.add(name)
            self._transition(result, ModuleStatus.WOULD_INSTALL, "would install")
            return

        self._transition(result, ModuleStatus.INSTALLING)
        action = self._install(recipe, config.timeout, force)
        if not action.ok:
            self._transition(result, ModuleStatus.FAILED, action.output or "install action failed")
            return

        self._transition(result, ModuleStatus.VERIFYING)
        verification = self._verify(recipe)
        self.state.installed.add(name)
        if verification is None or verification.ok:
            self._transition(result, ModuleStatus.INSTALLED, "installed successfully")
        else:
            logger.warning("%s installed but verification failed: %s", name, verification.output)
            self._transition(
                result,
                ModuleStatus.INSTALLED_WITH_WARNINGS,
                f"verification failed: {verification.output}",
            )

    def _check(self, recipe: BaseModule, name: str) -> bool:
        try:
            return recipe.check_installed()
        except (OSError, subprocess.SubprocessError) as exc:
            logger.warning("Install check for %s failed, assuming not installed: %s", name, exc)
            return False

    def _install(self, recipe: BaseModule, seconds: int, force: bool) -> ActionResult:
        try:
            with timeout(seconds):
                return recipe.install(force=force)
        except (subprocess.TimeoutExpired, TimeoutError):
            return ActionResult(False, f"timed out after {seconds}s")
        except (OSError, subprocess.SubprocessError, ActionError) as exc:
            return ActionResult(False, str(exc))

    def _verify(self, recipe: BaseModule) -> Optional[ActionResult]:
        try:
            return recipe.verify()
        except VerifyFailure as exc:
            return ActionResult(False, exc.output or str(exc))
        except (OSError, subprocess.SubprocessError) as exc:
            return ActionResult(False, str(exc))

    def _warn_conflicts(self, order: List[str]) -> None:
        present = set(order) | self.state.installed
        for name in order:
            for other in self.registry.get(name).conflicts:
                if other in present:
                    logger.warning("Module %s conflicts with %s, which is also selected", name, other)
