import logging

from . import register_module
from .base import ActionResult, BaseModule

logger = logging.getLogger(__name__)

NODESOURCE_SETUP = "https://deb.nodesource.com/setup_{major}.x"
DEFAULT_MAJOR = "20"
GLOBAL_PACKAGES = ["typescript", "ts-node", "nodemon", "prettier", "eslint"]


@register_module("node")
class NodeModule(BaseModule):
    name = "node"
    commands = ("node", "npm")

    def _major_version(self) -> str:
        for flag in self.config.flags:
            if flag.startswith("--major="):
                return flag.split("=", 1)[1]
        return DEFAULT_MAJOR

    def install(self, force: bool = False) -> ActionResult:
        major = self._major_version()
        logger.info("Installing Node.js %s.x from NodeSource", major)
        return self._sequence(
            lambda: self.pm.run_remote_script(NODESOURCE_SETUP.format(major=major)),
            lambda: self.pm.apt_install(["nodejs"]),
            lambda: self.pm.npm_install_global(GLOBAL_PACKAGES),
        )
