import logging

from . import register_module
from .base import ActionResult, BaseModule

logger = logging.getLogger(__name__)

DEFAULT_SDK = "dotnet-sdk-8.0"


@register_module("dotnet")
class DotnetModule(BaseModule):
    name = "dotnet"
    commands = ("dotnet",)

    def install(self, force: bool = False) -> ActionResult:
        sdk_packages = [f for f in self.config.flags if f.startswith("dotnet-")] or [DEFAULT_SDK]
        return self._sequence(
            self.pm.apt_update,
            lambda: self.pm.apt_install(sdk_packages),
        )
