from __future__ import annotations

from pathlib import Path

import scriptconfig as scfg
from loguru import logger

from ..config import VMConfig, load, resolve_config_path

log = logger


class _BaseCommand(scfg.DataConfig):
    """Base options shared by all commands."""

    config = scfg.Value(
        None,
        help='Path to the VM config (default: .civm.yaml at the project root).',
    )
    verbose = scfg.Value(
        0,
        short_alias=['v'],
        isflag='counter',
        help='Increase verbosity (-v).',
    )


def _cfg_path(p: str | None) -> Path:
    return resolve_config_path(p)


def _load_cfg(config_path: str | None) -> VMConfig:
    cfg, _ = _load_cfg_with_path(config_path)
    return cfg


def _load_cfg_with_path(config_path: str | None) -> tuple[VMConfig, Path]:
    path = _cfg_path(config_path)
    return load(path), path


__all__ = [name for name in globals() if not name.startswith('__')]
