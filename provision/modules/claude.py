from . import register_module
from .base import ActionResult, BaseModule

PACKAGE = "@anthropic-ai/claude-code"


@register_module("claude")
class ClaudeModule(BaseModule):
    name = "claude"
    commands = ("claude",)

    def install(self, force: bool = False) -> ActionResult:
        return self._sequence(lambda: self.pm.npm_install_global([PACKAGE]))
