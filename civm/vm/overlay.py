"""Copy-on-write overlay disk backed by the base image."""

from __future__ import annotations

from pathlib import Path

from loguru import logger

from ..config import VMConfig
from ..errors import ProvisioningError
from ..util import CmdError, CommandRunner, ensure_dir

log = logger


def overlay_create_cmd(cfg: VMConfig) -> list[str]:
    cmd = [
        'qemu-img',
        'create',
        '-f',
        'qcow2',
        '-F',
        'qcow2',
        '-b',
        cfg.base_image,
        cfg.overlay_image,
    ]
    if cfg.disk_size_gb > 0:
        cmd.append(f'{cfg.disk_size_gb}G')
    return cmd


def ensure_overlay(
    cfg: VMConfig, *, runner: CommandRunner | None = None
) -> Path:
    """
    Create the overlay disk unless it already exists.

    An existing overlay is never truncated or recreated: it carries the
    guest-side state between runs. Use ``civm clean`` to discard it.
    """
    runner = runner or CommandRunner()
    overlay = Path(cfg.overlay_image)
    if overlay.exists():
        log.info('Overlay disk exists: {}', overlay)
        return overlay
    ensure_dir(overlay.parent)
    try:
        runner.run(overlay_create_cmd(cfg), check=True, capture=False)
    except CmdError as ex:
        raise ProvisioningError(f'failed to create overlay disk: {ex}') from ex
    log.info('Overlay disk created: {} (backing={})', overlay, cfg.base_image)
    return overlay
