"""Best-effort VM teardown at two granularities: clean and nuke."""

from __future__ import annotations

import os
from pathlib import Path

import ubelt as ub
from loguru import logger

from ..config import VMConfig
from ..errors import UnsafePathError
from ..runtime import virsh_cmd
from ..util import CommandRunner, shell_join

log = logger


def _virsh_ignoring_errors(
    cfg: VMConfig, runner: CommandRunner, *args: str
) -> None:
    cmd = virsh_cmd(cfg.uri, *args)
    try:
        res = runner.run(cmd, check=False, capture=True)
    except OSError as ex:
        log.debug('{} ignored: {}', shell_join(cmd), ex)
        return
    if res.code != 0:
        log.debug('{} ignored: {}', shell_join(cmd), res.stderr.strip())


def _stop_domain(cfg: VMConfig, runner: CommandRunner) -> None:
    for action in ('shutdown', 'destroy'):
        _virsh_ignoring_errors(cfg, runner, action, cfg.name)


def _remove_file(path: str) -> None:
    if not path:
        return
    try:
        Path(path).unlink()
    except FileNotFoundError:
        pass
    except OSError as ex:
        log.debug('Could not remove {}: {}', path, ex)


def clean(cfg: VMConfig, *, runner: CommandRunner | None = None) -> None:
    """
    Stop the domain and drop per-run state (overlay, seed, serial log).

    The base image, the domain XML, and the libvirt definition are kept, so
    the next ``ensure`` starts from a fresh overlay.
    """
    runner = runner or CommandRunner()
    _stop_domain(cfg, runner)
    for path in (cfg.overlay_image, cfg.seed_iso, cfg.serial_log):
        _remove_file(path)
    log.info('VM cleaned (overlay/seed/log removed).')


def safe_remove_tree(path: str | Path) -> Path:
    raw = str(path).strip()
    norm = os.path.normpath(raw) if raw else ''
    # Empty, '.', and filesystem roots are their own parent.
    if not norm or Path(norm).parent == Path(norm):
        raise UnsafePathError(f'refusing to remove unsafe path {str(path)!r}')
    target = ub.Path(norm)
    target.delete()
    return Path(target)


def nuke(cfg: VMConfig, *, runner: CommandRunner | None = None) -> None:
    """Stop and undefine the domain, then remove the whole storage directory."""
    runner = runner or CommandRunner()
    _stop_domain(cfg, runner)
    _virsh_ignoring_errors(cfg, runner, 'undefine', cfg.name, '--nvram')
    removed = safe_remove_tree(cfg.storage_dir)
    log.info('VM nuked and storage removed: {}', removed)
