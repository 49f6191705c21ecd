import logging

from . import register_module
from .base import ActionResult, BaseModule

logger = logging.getLogger(__name__)

GH_KEYRING_URL = "https://cli.github.com/packages/githubcli-archive-keyring.gpg"
GH_KEYRING = "/etc/apt/keyrings/githubcli-archive-keyring.gpg"
GH_LIST = "/etc/apt/sources.list.d/github-cli.list"


@register_module("git")
class GitModule(BaseModule):
    name = "git"
    commands = ("git",)

    def install(self, force: bool = False) -> ActionResult:
        result = self._sequence(lambda: self.pm.apt_install(["git"]))
        if not result.ok:
            return result

        if "--no-gh" in self.config.flags:
            return result
        if self.pm.command_exists("gh") and not force:
            logger.info("GitHub CLI already present, skipping")
            return result

        arch = self._run_command(["dpkg", "--print-architecture"])
        if not arch.ok:
            return arch
        repo = (
            f"deb [arch={arch.output} signed-by={GH_KEYRING}] "
            "https://cli.github.com/packages stable main"
        )
        return self._sequence(
            lambda: self.pm.add_apt_repository(GH_KEYRING_URL, repo, GH_LIST, GH_KEYRING, dearmor=False),
            lambda: self.pm.apt_install(["gh"]),
        )
