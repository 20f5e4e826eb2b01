"""Host tool availability checks."""

from __future__ import annotations

from .util import CommandRunner

REQUIRED_CMDS = ['virsh', 'qemu-img']
OPTIONAL_CMDS = ['cloud-localds', 'curl', 'wget', 'tail']


def check_commands(
    runner: CommandRunner | None = None,
) -> tuple[list[str], list[str]]:
    runner = runner or CommandRunner()
    missing = [c for c in REQUIRED_CMDS if runner.which(c) is None]
    missing_opt = [c for c in OPTIONAL_CMDS if runner.which(c) is None]
    return missing, missing_opt


def download_tool(runner: CommandRunner) -> list[str] | None:
    """Return the argv prefix of the first available fetch tool."""
    if runner.which('curl'):
        return ['curl', '-fL', '-o']
    if runner.which('wget'):
        return ['wget', '-O']
    return None
