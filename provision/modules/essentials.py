import logging

from . import register_module
from .base import ActionResult, BaseModule

logger = logging.getLogger(__name__)

PACKAGES = [
    "build-essential",
    "curl",
    "wget",
    "ca-certificates",
    "gnupg",
    "unzip",
    "jq",
    "software-properties-common",
    "apt-transport-https",
]


@register_module("essentials")
class EssentialsModule(BaseModule):
    name = "essentials"
    commands = ("curl", "wget", "jq")

    def install(self, force: bool = False) -> ActionResult:
        packages = PACKAGES + list(self.config.flags)
        logger.info("Installing base packages: %s", ", ".join(packages))
        return self._sequence(
            self.pm.apt_update,
            lambda: self.pm.apt_install(packages),
        )
