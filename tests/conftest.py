"""Shared fakes for command execution and time."""

from __future__ import annotations

from pathlib import Path

import pytest

from civm.config import VMConfig, default_config
from civm.util import CmdError, CmdResult


class RecordingRunner:
    """CommandRunner stand-in that records argv lists instead of executing."""

    def __init__(self, handler=None, available=()):
        self.calls: list[list[str]] = []
        self.handler = handler
        self.available = set(available)

    def run(self, cmd, *, check=True, capture=True):
        cmd = list(cmd)
        self.calls.append(cmd)
        res = self.handler(cmd) if self.handler is not None else None
        if res is None:
            res = CmdResult(0, '', '')
        if check and res.code != 0:
            raise CmdError(cmd, res)
        return res

    def which(self, cmd):
        return f'/usr/bin/{cmd}' if cmd in self.available else None

    def called(self, *prefix: str) -> list[list[str]]:
        return [c for c in self.calls if _contains_seq(c, prefix)]


def _contains_seq(cmd: list[str], seq: tuple[str, ...]) -> bool:
    n = len(seq)
    return any(tuple(cmd[i : i + n]) == seq for i in range(len(cmd) - n + 1))


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def monotonic(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def runner() -> RecordingRunner:
    return RecordingRunner()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cfg(tmp_path: Path) -> VMConfig:
    return default_config(tmp_path)
