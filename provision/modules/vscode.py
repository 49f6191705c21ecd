from . import register_module
from .base import ActionResult, BaseModule


@register_module("vscode")
class VSCodeModule(BaseModule):
    name = "vscode"
    commands = ("code",)

    def install(self, force: bool = False) -> ActionResult:
        return self._sequence(lambda: self.pm.snap_install("code", classic=True))
