"""Tests for host tool checks."""

from __future__ import annotations

from civm.host import check_commands, download_tool


def test_check_commands(runner) -> None:
    runner.available = {'virsh', 'curl'}
    missing, missing_opt = check_commands(runner)
    assert missing == ['qemu-img']
    assert 'cloud-localds' in missing_opt
    assert 'curl' not in missing_opt


def test_download_tool_preference(runner) -> None:
    assert download_tool(runner) is None
    runner.available = {'wget'}
    assert download_tool(runner) == ['wget', '-O']
    runner.available = {'wget', 'curl'}
    assert download_tool(runner) == ['curl', '-fL', '-o']
