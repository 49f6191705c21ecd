import getpass
import logging

from . import register_module
from .base import ActionResult, BaseModule

logger = logging.getLogger(__name__)

DOCKER_GPG = "https://download.docker.com/linux/ubuntu/gpg"
DOCKER_KEYRING = "/etc/apt/keyrings/docker.gpg"
DOCKER_LIST = "/etc/apt/sources.list.d/docker.list"
PACKAGES = ["docker-ce", "docker-ce-cli", "containerd.io", "docker-compose-plugin"]


@register_module("docker")
class DockerModule(BaseModule):
    name = "docker"
    commands = ("docker",)

    def install(self, force: bool = False) -> ActionResult:
        arch = self._run_command(["dpkg", "--print-architecture"])
        codename = self._run_command(["lsb_release", "-cs"])
        for probe in (arch, codename):
            if not probe.ok:
                return probe

        repo = (
            f"deb [arch={arch.output} signed-by={DOCKER_KEYRING}] "
            f"https://download.docker.com/linux/ubuntu {codename.output} stable"
        )
        result = self._sequence(
            lambda: self.pm.add_apt_repository(DOCKER_GPG, repo, DOCKER_LIST, DOCKER_KEYRING),
            lambda: self.pm.apt_install(PACKAGES),
        )
        if not result.ok:
            return result

        user = getpass.getuser()
        group = self._sequence(lambda: self.pm.add_user_to_group(user, "docker"))
        if not group.ok:
            # Docker itself is installed; group membership only affects sudo-less use
            logger.warning("Could not add %s to the docker group: %s", user, group.output)
        else:
            logger.info("Added %s to the docker group (log out and back in to apply)", user)
        return result
