import logging
import shutil
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from ..descriptor import ModuleDescriptor
from utils.package_manager import PackageManager


logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 600


@dataclass
class ModuleConfig:
    """Per-run configuration for one module recipe."""

    enabled: bool = True
    flags: List[str] = field(default_factory=list)
    timeout: int = DEFAULT_TIMEOUT  # seconds for the whole install action


@dataclass
class ActionResult:
    """Outcome of a check, install or verify action."""

    ok: bool
    output: str = ""

    @classmethod
    def from_process(cls, proc: subprocess.CompletedProcess) -> "ActionResult":
        output = (proc.stdout or "").strip()
        if proc.returncode != 0:
            err = (proc.stderr or "").strip()
            output = err or output or f"exit code {proc.returncode}"
        return cls(proc.returncode == 0, output)

    @classmethod
    def combine(cls, results: Sequence["ActionResult"]) -> "ActionResult":
        for result in results:
            if not result.ok:
                return result
        return cls(True, "\n".join(r.output for r in results if r.output))


class BaseModule:
    """Install recipe for one module.

    Subclasses implement ``install``; ``check_installed`` and ``verify`` fall
    back to the commands declared in the module descriptor.
    """

    name: str = "base"
    # Commands whose presence on PATH means the module is installed.
    commands: Sequence[str] = ()

    def __init__(
        self,
        descriptor: ModuleDescriptor,
        config: ModuleConfig | None = None,
        package_manager: PackageManager | None = None,
    ):
        self.descriptor = descriptor
        self.config = config or ModuleConfig()
        self.pm = package_manager or PackageManager(timeout=self.config.timeout)

    def check_installed(self) -> bool:
        """Return True if the module is already present on this host."""
        if self.descriptor.check_installed:
            return self._shell_succeeds(self.descriptor.check_installed)
        commands = self.commands or self.descriptor.provides
        if commands:
            return all(shutil.which(cmd) is not None for cmd in commands)
        return False

    def install(self, force: bool = False) -> ActionResult:
        raise NotImplementedError

    def verify(self) -> Optional[ActionResult]:
        """Post-install sanity check; None when the module declares none."""
        if self.descriptor.verify_command:
            return self._run_shell(self.descriptor.verify_command)
        if self.commands:
            return ActionResult.combine(
                [self._run_command([cmd, "--version"]) for cmd in self.commands]
            )
        return None

    def installed_version(self) -> Optional[str]:
        if not self.descriptor.get_version:
            return None
        result = self._run_shell(self.descriptor.get_version)
        if not result.ok or not result.output:
            return None
        return result.output.splitlines()[0]

    # Helper methods -----------------------------------------------------
    def _sequence(self, *steps: Callable[[], subprocess.CompletedProcess]) -> ActionResult:
        """Run package-manager steps in order, stopping at the first failure."""
        outputs = []
        for step in steps:
            result = ActionResult.from_process(step())
            if not result.ok:
                logger.warning("[%s] step failed: %s", self.name, result.output)
                return result
            if result.output:
                outputs.append(result.output)
        return ActionResult(True, "\n".join(outputs))

    def _run_command(self, cmd: List[str], cwd: Optional[Path] = None) -> ActionResult:
        logger.debug("[%s] running: %s", self.name, " ".join(cmd))
        try:
            proc = subprocess.run(
                cmd,
                text=True,
                capture_output=True,
                timeout=self.config.timeout,
                check=False,
                cwd=cwd,
            )
        except FileNotFoundError as exc:
            return ActionResult(False, f"command not found: {exc.filename or cmd[0]}")
        if proc.returncode != 0:
            logger.warning(
                "[%s] command exited with %s: %s",
                self.name,
                proc.returncode,
                proc.stderr.strip(),
            )
        return ActionResult.from_process(proc)

    def _run_shell(self, script: str, cwd: Optional[Path] = None) -> ActionResult:
        return self._run_command(["bash", "-c", script], cwd=cwd)

    def _shell_succeeds(self, script: str) -> bool:
        try:
            return self._run_shell(script).ok
        except subprocess.TimeoutExpired:
            logger.warning("[%s] check timed out: %s", self.name, script)
            return False


class ScriptModule(BaseModule):
    """Recipe for modules that ship their own shell scripts.

    ``install.sh`` performs the install, ``status.sh installed`` answers the
    already-installed question and ``verify.sh`` is the optional post-install
    check. Missing scripts fall back to the descriptor's commands.
    """

    name = "script"

    def __init__(self, descriptor, config=None, package_manager=None):
        super().__init__(descriptor, config, package_manager)
        self.name = descriptor.name

    def _script(self, filename: str) -> Optional[Path]:
        directory = self.descriptor.directory
        if directory is None:
            return None
        path = directory / filename
        return path if path.is_file() else None

    def check_installed(self) -> bool:
        status = self._script("status.sh")
        if status is not None:
            try:
                if self._run_command(["bash", str(status), "installed"]).ok:
                    return True
            except subprocess.TimeoutExpired:
                logger.warning("[%s] status script timed out", self.name)
        return super().check_installed()

    def install(self, force: bool = False) -> ActionResult:
        script = self._script("install.sh")
        if script is None:
            return ActionResult(False, f"install script not found for {self.name}")
        cmd = ["bash", str(script), *self.config.flags]
        if force:
            cmd.append("--force")
        return self._run_command(cmd, cwd=script.parent)

    def verify(self) -> Optional[ActionResult]:
        script = self._script("verify.sh")
        if script is not None:
            return self._run_command(["bash", str(script)], cwd=script.parent)
        return super().verify()
