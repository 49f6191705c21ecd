#!/usr/bin/env python3
"""
module_manager
--------------
Command-line front end for the workstation provisioner.

    module_manager.py install <module> [--force] [--dry-run] [--summary PATH]
    module_manager.py all [--force] [--dry-run] [--summary PATH]
    module_manager.py list | available
    module_manager.py info <module>
    module_manager.py tree <module>

Exit status is 0 on success (including skips and dry runs) and 1 on any
resolution, lookup or install failure.
"""

from __future__ import annotations

import argparse
import logging
import signal
import subprocess
import sys
from contextlib import ExitStack, contextmanager
from pathlib import Path
from typing import List, Optional

from tqdm import tqdm

from provision.errors import (
    InstallCancelled,
    InstallFailure,
    LockUnavailableError,
    ProvisionError,
)
from provision.modules import create_module
from provision.orchestrator import InstallOrchestrator, ModuleResult, ModuleStatus, RunReport
from provision.registry import ModuleRegistry
from provision.resolver import dependency_tree
from provision.run_log import setup_logging
from provision.settings import Settings, load_settings
from utils import atomic_write_json, check_disk_space, host_lock

logger = logging.getLogger("provision.cli")

STATUS_INSTALLED = "installed"
STATUS_MISSING = "not installed"
STATUS_UNKNOWN = "check failed"

STATUS_MARKERS = {
    STATUS_INSTALLED: "✓",
    STATUS_MISSING: "✗",
    STATUS_UNKNOWN: "⚠",
}

PROGRESS_LINES = {
    ModuleStatus.CHECKING: "[{progress}] Checking {name}...",
    ModuleStatus.SKIPPED: "✓ [{progress}] {name}: {message}, skipping",
    ModuleStatus.INSTALLING: "[{progress}] Installing {name}...",
    ModuleStatus.INSTALLED: "✓ [{progress}] {name} installed successfully",
    ModuleStatus.INSTALLED_WITH_WARNINGS: "⚠ [{progress}] {name} installed with warnings: {message}",
    ModuleStatus.WOULD_INSTALL: "[DRY RUN] [{progress}] Would install {name}",
    ModuleStatus.FAILED: "✗ [{progress}] {name} failed: {message}",
}


def print_progress(result: ModuleResult) -> None:
    template = PROGRESS_LINES.get(result.status)
    if template:
        print(template.format(progress=result.progress, name=result.name, message=result.message))


def module_status(registry: ModuleRegistry, settings: Settings, name: str) -> str:
    """Run the module's install check; never raises."""
    try:
        descriptor = registry.get(name)
        recipe = create_module(descriptor, settings.module_config(name, descriptor.timeout))
        return STATUS_INSTALLED if recipe.check_installed() else STATUS_MISSING
    except (ProvisionError, OSError, subprocess.SubprocessError) as exc:
        logger.warning("Status check for %s failed: %s", name, exc)
        return STATUS_UNKNOWN


@contextmanager
def host_guard(settings: Settings, dry_run: bool):
    """Disk preflight and host lock around anything that mutates the machine."""
    if dry_run:
        yield
        return
    try:
        check_disk_space(Path.home(), settings.min_free_gb)
    except OSError as exc:
        raise ProvisionError(str(exc)) from exc
    with ExitStack() as stack:
        try:
            stack.enter_context(host_lock(settings.lock_file, timeout=settings.lock_timeout))
        except TimeoutError as exc:
            raise LockUnavailableError(str(exc)) from exc
        yield


@contextmanager
def cancel_on_interrupt(orchestrator: InstallOrchestrator):
    """First Ctrl-C stops after the current module; a second one aborts."""

    def handler(signum, frame):
        print("\n⚠ Interrupt received, stopping after the current module (Ctrl-C again to abort)")
        orchestrator.request_cancel()
        signal.signal(signal.SIGINT, signal.default_int_handler)

    previous = signal.signal(signal.SIGINT, handler)
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)


def write_summary(path: Optional[str], report: Optional[RunReport]) -> None:
    if not path or report is None:
        return
    try:
        atomic_write_json(path, report.to_dict())
        logger.info("Run summary written to %s", path)
    except OSError as exc:
        print(f"⚠ Could not write summary to {path}: {exc}")


# Commands ------------------------------------------------------------------

def cmd_available(args, settings: Settings, registry: ModuleRegistry) -> int:
    for name in registry.list_modules():
        print(name)
    return 0


def cmd_list(args, settings: Settings, registry: ModuleRegistry) -> int:
    names = list(registry.list_modules())
    if not names:
        print(f"No modules found in {registry.modules_dir}")
        return 0

    statuses = {}
    for name in tqdm(names, desc="Checking modules", unit="module", leave=False):
        statuses[name] = module_status(registry, settings, name)

    width = max(len(n) for n in names)
    print("Available modules:")
    for name in names:
        status = statuses[name]
        print(f"  {STATUS_MARKERS[status]} {name:<{width}}  {registry.get_description(name)}")
    return 0


def cmd_info(args, settings: Settings, registry: ModuleRegistry) -> int:
    descriptor = registry.get(args.module)
    orchestrator = InstallOrchestrator(registry, settings)
    try:
        order = " -> ".join(orchestrator.plan(args.module))
    except ProvisionError as exc:
        order = f"unavailable ({exc})"

    def joined(values) -> str:
        return ", ".join(values) if values else "none"

    print(f"Module: {descriptor.name}")
    print(f"  Description:   {descriptor.description}")
    print(f"  Version:       {descriptor.version}")
    print(f"  Category:      {descriptor.category}")
    print(f"  Tags:          {joined(descriptor.tags)}")
    print(f"  Provides:      {joined(descriptor.provides)}")
    print(f"  Conflicts:     {joined(descriptor.conflicts)}")
    print(f"  Platforms:     {joined(descriptor.platforms)}")
    print(f"  Size:          {descriptor.size_estimate}")
    print(f"  Install time:  {descriptor.install_time_estimate}")
    print(f"  Dependencies:  {joined(descriptor.dependencies)}")
    print(f"  Install order: {order}")
    status = module_status(registry, settings, args.module)
    print(f"  Status:        {STATUS_MARKERS[status]} {status}")
    return 0


def cmd_tree(args, settings: Settings, registry: ModuleRegistry) -> int:
    for line in dependency_tree(registry, args.module):
        print(line)
    return 0


def _run_install(args, settings: Settings, registry: ModuleRegistry, install_all: bool) -> int:
    dry_run = args.dry_run or settings.dry_run
    orchestrator = InstallOrchestrator(
        registry, settings, dry_run=dry_run, on_progress=print_progress
    )
    if dry_run:
        print("[DRY RUN] No changes will be made")

    report = None
    try:
        with host_guard(settings, dry_run), cancel_on_interrupt(orchestrator):
            if install_all:
                report = orchestrator.install_all(force=args.force)
            else:
                report = orchestrator.install(args.module, force=args.force)
    except (InstallFailure, InstallCancelled) as exc:
        report = exc.report
        print(f"✗ {exc}")
        return 1
    except ProvisionError as exc:
        # Failed before any module ran (resolution, lock or disk preflight)
        requested = list(registry.list_modules()) if install_all else [args.module]
        report = RunReport(
            requested=requested,
            dry_run=dry_run,
            failed=[] if install_all else [args.module],
            errors=[str(exc)],
        )
        raise
    finally:
        write_summary(args.summary, report)

    if not report.ok:
        print(f"✗ Failed modules: {', '.join(report.failed)}")
        return report.exit_code

    target = "All modules" if install_all else args.module
    if dry_run:
        print(f"✓ Dry run complete for {target}: {' -> '.join(report.order)}")
    else:
        print(f"✓ {target} ready")
    return 0


def cmd_install(args, settings: Settings, registry: ModuleRegistry) -> int:
    return _run_install(args, settings, registry, install_all=False)


def cmd_all(args, settings: Settings, registry: ModuleRegistry) -> int:
    return _run_install(args, settings, registry, install_all=True)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Workstation module installer")
    parser.add_argument("--config", default=None, help="Orchestrator config file (YAML)")
    parser.add_argument("--modules-dir", default=None, help="Directory holding module descriptors")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show info-level logs on the console")

    sub = parser.add_subparsers(dest="command", required=True)

    install = sub.add_parser("install", help="Install a module and its dependencies")
    install.add_argument("module")
    install.set_defaults(func=cmd_install)

    everything = sub.add_parser("all", help="Install every available module")
    everything.set_defaults(func=cmd_all)

    for p in (install, everything):
        p.add_argument("--force", action="store_true", help="Reinstall even if already installed")
        p.add_argument("--dry-run", action="store_true", help="Show what would be installed")
        p.add_argument("--summary", default=None, help="Write a JSON run summary to this path")

    sub.add_parser("list", help="List modules with install status").set_defaults(func=cmd_list)
    sub.add_parser("available", help="List module names").set_defaults(func=cmd_available)

    info = sub.add_parser("info", help="Show module details")
    info.add_argument("module")
    info.set_defaults(func=cmd_info)

    tree = sub.add_parser("tree", help="Show the dependency tree of a module")
    tree.add_argument("module")
    tree.set_defaults(func=cmd_tree)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = load_settings(Path(args.config) if args.config else None)
    except ProvisionError as exc:
        print(f"✗ {exc}")
        return 1
    if args.modules_dir:
        settings.modules_dir = Path(args.modules_dir).expanduser()

    log_file = setup_logging(settings.log_dir, settings.log_retention, verbose=args.verbose)
    logger.info("module_manager %s (log: %s)", args.command, log_file)

    registry = ModuleRegistry(settings.modules_dir)
    try:
        return args.func(args, settings, registry)
    except ProvisionError as exc:
        logger.error("%s", exc)
        print(f"✗ {exc}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
