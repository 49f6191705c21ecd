from typing import Optional

from . import register_module
from .base import ActionResult, BaseModule


@register_module("rider")
class RiderModule(BaseModule):
    name = "rider"
    commands = ("rider",)

    def install(self, force: bool = False) -> ActionResult:
        return self._sequence(lambda: self.pm.snap_install("rider", classic=True))

    def verify(self) -> Optional[ActionResult]:
        # rider has no --version; the snap listing is enough
        return self._run_command(["snap", "list", "rider"])
