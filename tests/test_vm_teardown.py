"""Tests for clean/nuke teardown."""

from __future__ import annotations

from pathlib import Path

import pytest

from civm.errors import UnsafePathError
from civm.util import CmdResult
from civm.vm import clean, nuke, safe_remove_tree


def _populate(cfg) -> dict[str, Path]:
    files = {
        key: Path(getattr(cfg, key))
        for key in (
            'base_image',
            'overlay_image',
            'seed_iso',
            'serial_log',
            'domain_xml',
        )
    }
    for path in files.values():
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b'x')
    return files


def test_clean_removes_run_state_only(cfg, runner) -> None:
    files = _populate(cfg)
    clean(cfg, runner=runner)
    assert not files['overlay_image'].exists()
    assert not files['seed_iso'].exists()
    assert not files['serial_log'].exists()
    assert files['base_image'].exists()
    assert files['domain_xml'].exists()
    actions = [c[3] for c in runner.calls]
    assert actions == ['shutdown', 'destroy']


def test_clean_ignores_failures(cfg, runner) -> None:
    runner.handler = lambda cmd: CmdResult(1, '', 'error: domain not found')
    clean(cfg, runner=runner)
    assert len(runner.calls) == 2


def _virsh_missing(cmd):
    raise FileNotFoundError(2, 'No such file or directory', cmd[0])


def test_clean_without_virsh_still_removes_files(cfg, runner) -> None:
    files = _populate(cfg)
    runner.handler = _virsh_missing
    clean(cfg, runner=runner)
    assert not files['overlay_image'].exists()
    assert not files['seed_iso'].exists()
    assert not files['serial_log'].exists()
    assert [c[3] for c in runner.calls] == ['shutdown', 'destroy']


def test_nuke_without_virsh_still_removes_storage(cfg, runner) -> None:
    _populate(cfg)
    runner.handler = _virsh_missing
    nuke(cfg, runner=runner)
    assert not Path(cfg.storage_dir).exists()
    assert [c[3] for c in runner.calls] == ['shutdown', 'destroy', 'undefine']


def test_nuke_undefines_and_removes_storage(cfg, runner) -> None:
    _populate(cfg)
    storage = Path(cfg.storage_dir)
    (storage / 'nested').mkdir()
    (storage / 'nested' / 'file').write_text('x', encoding='utf-8')
    runner.handler = lambda cmd: CmdResult(1, '', 'error: domain not found')
    nuke(cfg, runner=runner)
    assert not storage.exists()
    assert runner.calls[-1] == [
        'virsh',
        '-c',
        cfg.uri,
        'undefine',
        cfg.name,
        '--nvram',
    ]
    assert [c[3] for c in runner.calls] == ['shutdown', 'destroy', 'undefine']


@pytest.mark.parametrize('path', ['', '   ', '.', './', '/', '//', '/.'])
def test_safe_remove_tree_refuses_unsafe(path: str) -> None:
    with pytest.raises(UnsafePathError, match='refusing'):
        safe_remove_tree(path)


def test_nuke_refuses_unsafe_storage(cfg, runner) -> None:
    cfg.storage_dir = '/'
    with pytest.raises(UnsafePathError):
        nuke(cfg, runner=runner)


def test_safe_remove_tree_removes_other_paths(tmp_path: Path) -> None:
    target = tmp_path / 'store'
    (target / 'a').mkdir(parents=True)
    (target / 'a' / 'b.txt').write_text('b', encoding='utf-8')
    safe_remove_tree(str(target) + '/')
    assert not target.exists()
    assert tmp_path.exists()
