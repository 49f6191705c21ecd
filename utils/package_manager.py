#!/usr/bin/env python3
"""
Package manager wrappers
Thin wrappers around apt, snap, npm and vendor install scripts used by the
module recipes. Every call goes through ``run`` so timeouts apply uniformly.
"""
import logging
import os
import platform
import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import List, Optional, Sequence

import requests

from .api_retry import retry_with_backoff

logger = logging.getLogger(__name__)

DOWNLOAD_TIMEOUT = 60


class PackageManager:
    """Runs package-manager commands for the current platform."""

    def __init__(self, timeout: int = 600, use_sudo: Optional[bool] = None):
        self.timeout = timeout
        self.platform = self._detect_platform()
        self.arch = self._detect_architecture()
        if use_sudo is None:
            use_sudo = hasattr(os, "geteuid") and os.geteuid() != 0
        self.use_sudo = use_sudo

    def _detect_platform(self) -> str:
        """Detect the operating system."""
        system = platform.system().lower()
        if system == 'linux':
            # Check if running in WSL
            try:
                with open('/proc/version', 'r') as f:
                    if 'microsoft' in f.read().lower():
                        return 'wsl'
            except OSError:
                pass
            return 'linux'
        elif system == 'darwin':
            return 'macos'
        else:
            return system or 'unknown'

    def _detect_architecture(self) -> str:
        """Detect system architecture."""
        machine = platform.machine().lower()
        if machine in ['amd64', 'x86_64']:
            return 'x64'
        elif machine in ['arm64', 'aarch64']:
            return 'arm64'
        return machine

    @staticmethod
    def command_exists(name: str) -> bool:
        return shutil.which(name) is not None

    def _privileged(self, cmd: List[str]) -> List[str]:
        return ['sudo', *cmd] if self.use_sudo else cmd

    def run(self, cmd: Sequence[str], env: Optional[dict] = None) -> subprocess.CompletedProcess:
        """Run a command, capturing output. Raises subprocess.TimeoutExpired."""
        logger.debug("Running command: %s", " ".join(cmd))
        return subprocess.run(
            list(cmd),
            capture_output=True,
            text=True,
            timeout=self.timeout,
            check=False,
            env=env,
        )

    # apt ---------------------------------------------------------------
    def apt_update(self) -> subprocess.CompletedProcess:
        return self.run(self._privileged(['apt-get', 'update']))

    def apt_install(self, packages: Sequence[str]) -> subprocess.CompletedProcess:
        """Install system packages with apt-get (non-interactive)."""
        env = os.environ.copy()
        env['DEBIAN_FRONTEND'] = 'noninteractive'
        cmd = self._privileged(['apt-get', 'install', '-y', *packages])
        return self.run(cmd, env=env)

    def add_apt_repository(self, key_url: str, repo_line: str, list_file: str, keyring: str,
                           dearmor: bool = True) -> subprocess.CompletedProcess:
        """Install a signing key and an apt source list, then refresh the index.

        Armored keys are converted with gpg; binary keyrings (dearmor=False)
        are copied as-is.
        """
        key_path = self.download(key_url)
        if dearmor:
            install_key = ['gpg', '--batch', '--yes', '--dearmor', '-o', keyring, str(key_path)]
        else:
            install_key = ['install', '-m', '644', str(key_path), keyring]
        try:
            steps = [
                self._privileged(['mkdir', '-p', str(Path(keyring).parent)]),
                self._privileged(install_key),
            ]
            for step in steps:
                proc = self.run(step)
                if proc.returncode != 0:
                    return proc
        finally:
            key_path.unlink(missing_ok=True)

        with tempfile.NamedTemporaryFile('w', suffix='.list', delete=False) as tmp:
            tmp.write(repo_line + '\n')
            source_path = tmp.name
        try:
            proc = self.run(self._privileged(['install', '-m', '644', source_path, list_file]))
        finally:
            os.unlink(source_path)
        if proc.returncode != 0:
            return proc
        return self.apt_update()

    def add_user_to_group(self, user: str, group: str) -> subprocess.CompletedProcess:
        return self.run(self._privileged(['usermod', '-aG', group, user]))

    # snap --------------------------------------------------------------
    def snap_install(self, package: str, classic: bool = False) -> subprocess.CompletedProcess:
        cmd = ['snap', 'install', package]
        if classic:
            cmd.append('--classic')
        return self.run(self._privileged(cmd))

    # npm ---------------------------------------------------------------
    def npm_install_global(self, packages: Sequence[str]) -> subprocess.CompletedProcess:
        return self.run(self._privileged(['npm', 'install', '-g', *packages]))

    # vendor scripts ----------------------------------------------------
    @retry_with_backoff(max_retries=3, base_delay=1, exceptions=(requests.RequestException,))
    def _fetch(self, url: str) -> requests.Response:
        try:
            response = requests.get(url, timeout=DOWNLOAD_TIMEOUT)
        except requests.Timeout as exc:
            # Timeouts are final; the install action's SIGALRM also lands here
            raise TimeoutError(f"Timed out downloading {url}") from exc
        response.raise_for_status()
        return response

    def download(self, url: str, suffix: str = '') -> Path:
        """Download ``url`` into a temporary file and return its path."""
        logger.info("Downloading %s", url)
        try:
            response = self._fetch(url)
        except requests.RequestException as exc:
            raise ConnectionError(f"Failed to download {url}: {exc}") from exc
        with tempfile.NamedTemporaryFile(delete=False, suffix=suffix) as tmp:
            tmp.write(response.content)
            return Path(tmp.name)

    def run_remote_script(self, url: str, args: Sequence[str] = (), privileged: bool = True) -> subprocess.CompletedProcess:
        """Download a vendor install script and run it with bash."""
        script = self.download(url, suffix='.sh')
        try:
            cmd = ['bash', str(script), *args]
            if privileged:
                cmd = self._privileged(['-E', *cmd]) if self.use_sudo else cmd
            return self.run(cmd)
        finally:
            script.unlink(missing_ok=True)
