from . import register_module
from .base import ActionResult, BaseModule

PACKAGES = ["ripgrep", "fd-find", "bat", "fzf", "tldr", "ncdu", "httpie", "tree", "htop"]


@register_module("dev-tools")
class DevToolsModule(BaseModule):
    name = "dev-tools"
    commands = ("rg", "fzf")

    def install(self, force: bool = False) -> ActionResult:
        packages = PACKAGES + list(self.config.flags)
        return self._sequence(
            self.pm.apt_update,
            lambda: self.pm.apt_install(packages),
        )
