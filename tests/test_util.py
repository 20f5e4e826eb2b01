from __future__ import annotations

from pathlib import Path

import pytest

from civm.runtime import virsh_cmd
from civm.util import CmdError, CommandRunner, ensure_dir, shell_join
from civm.util import run_cmd as _run_cmd


def test_shell_join_quotes() -> None:
    cmd = ["echo", "a b", "c'd"]
    s = shell_join(cmd)
    assert "a b" in s
    assert "echo" in s


def test_run_cmd_success_and_failure() -> None:
    ok = _run_cmd(["bash", "-lc", "printf ok"], check=True, capture=True)
    assert ok.code == 0
    assert ok.stdout == "ok"
    bad = _run_cmd(["bash", "-lc", "exit 7"], check=False, capture=True)
    assert bad.code == 7
    with pytest.raises(CmdError):
        _run_cmd(["bash", "-lc", "exit 9"], check=True, capture=True)


def test_cmd_error_carries_stderr() -> None:
    with pytest.raises(CmdError) as info:
        _run_cmd(
            ["bash", "-lc", "echo 'domain is already active' >&2; exit 1"],
            check=True,
            capture=True,
        )
    assert info.value.result.code == 1
    assert "already active" in str(info.value)


def test_command_runner_delegates(monkeypatch) -> None:
    calls = []

    class P:
        returncode = 0
        stdout = "out"
        stderr = ""

    monkeypatch.setattr(
        "civm.util.subprocess.run",
        lambda cmd, **kwargs: (calls.append((cmd, kwargs)) or P()),
    )
    res = CommandRunner().run(("virsh", "list"), check=True, capture=False)
    assert res.stdout == "out"
    assert calls[0][0] == ["virsh", "list"]
    assert calls[0][1] == {"capture_output": False, "text": True}


def test_command_runner_which(monkeypatch) -> None:
    monkeypatch.setattr("civm.util.which", lambda cmd: None)
    assert CommandRunner().which("virsh") is None


def test_ensure_dir(tmp_path: Path) -> None:
    out = ensure_dir(tmp_path / "a" / "b")
    assert out.is_dir()
    assert ensure_dir(str(out)) == out


def test_virsh_cmd() -> None:
    assert virsh_cmd("qemu:///session", "list") == [
        "virsh",
        "-c",
        "qemu:///session",
        "list",
    ]
    assert virsh_cmd("", "list")[:3] == ["virsh", "-c", "qemu:///system"]
