"""VM config record, defaults, and the flat ``key: value`` file format."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, fields, replace
from pathlib import Path

from loguru import logger

from .errors import ConfigError
from .runtime import DEFAULT_LIBVIRT_URI

log = logger

DEFAULT_CONFIG_NAME = '.civm.yaml'
DEFAULT_AGENT_TIMEOUT_SEC = 180
ROOT_MARKERS = ('package.json', 'pyproject.toml', '.git')

INT_FIELDS = ('memory_mb', 'vcpus', 'disk_size_gb', 'agent_timeout_sec')
INT_PATTERN = re.compile(r'[+-]?[0-9]+')
PATH_FIELDS = (
    'storage_dir',
    'base_image',
    'overlay_image',
    'seed_iso',
    'domain_xml',
    'serial_log',
)


@dataclass
class VMConfig:
    name: str = 'civm-windows-test'
    uri: str = DEFAULT_LIBVIRT_URI
    storage_dir: str = ''
    base_image: str = ''
    base_image_url: str = ''
    overlay_image: str = ''
    seed_iso: str = ''
    domain_xml: str = ''
    serial_log: str = ''
    memory_mb: int = 8192
    vcpus: int = 4
    disk_size_gb: int = 80
    network: str = 'default'
    guest_shell: str = 'cmd.exe /c'
    guest_run_command: str = (
        'powershell -ExecutionPolicy Bypass -File C:\\ci\\run-tests.ps1'
    )
    agent_timeout_sec: int = DEFAULT_AGENT_TIMEOUT_SEC

    @property
    def effective_agent_timeout(self) -> int:
        if self.agent_timeout_sec <= 0:
            return DEFAULT_AGENT_TIMEOUT_SEC
        return self.agent_timeout_sec


CONFIG_KEYS = tuple(f.name for f in fields(VMConfig))


def find_project_root(start: Path | str | None = None) -> Path:
    """
    Walk up from ``start`` (default: cwd) to the first directory holding a
    project marker file. Falls back to ``start`` itself.
    """
    here = Path(start) if start is not None else Path.cwd()
    here = here.absolute()
    for cand in (here, *here.parents):
        if any((cand / marker).exists() for marker in ROOT_MARKERS):
            return cand
    return here


def default_config(root: Path | str | None = None) -> VMConfig:
    root = Path(root) if root is not None else find_project_root()
    storage = root / '.cache' / 'civm'
    return VMConfig(
        storage_dir=str(storage),
        base_image=str(storage / 'base.qcow2'),
        overlay_image=str(storage / 'overlay.qcow2'),
        seed_iso=str(storage / 'seed.iso'),
        domain_xml=str(storage / 'domain.xml'),
        serial_log=str(storage / 'serial.log'),
    )


def resolve_config_path(
    path: str | Path | None = None, root: Path | str | None = None
) -> Path:
    p = Path(path or DEFAULT_CONFIG_NAME)
    if p.is_absolute():
        return p
    root = Path(root) if root is not None else find_project_root()
    return root / p


def _absolutize(value: str, root: Path) -> str:
    if not value or os.path.isabs(value):
        return value
    return str(root / value)


def parse(text: str, base: VMConfig) -> VMConfig:
    """Apply recognized ``key: value`` lines from ``text`` onto a copy of ``base``."""
    cfg = replace(base)
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith('#'):
            continue
        key, sep, value = line.partition(':')
        if not sep:
            continue
        key = key.strip()
        value = value.strip().strip('"\'')
        if key not in CONFIG_KEYS:
            log.debug('Ignoring unrecognized config key: {}', key)
            continue
        if key in INT_FIELDS:
            if not INT_PATTERN.fullmatch(value):
                raise ConfigError(f'invalid {key}: {value!r} is not an integer')
            setattr(cfg, key, int(value))
        else:
            setattr(cfg, key, value)
    return cfg


def load(path: Path | str, root: Path | str | None = None) -> VMConfig:
    path = Path(path)
    root = Path(root) if root is not None else find_project_root()
    if not path.exists():
        raise ConfigError(
            f'Config not found: {path}. Run: civm init --config {path}'
        )
    text = path.read_text(encoding='utf-8')
    cfg = parse(text, default_config(root))
    for key in PATH_FIELDS:
        setattr(cfg, key, _absolutize(getattr(cfg, key), root))
    log.debug('Loaded config {} for vm={}', path, cfg.name)
    return cfg


def dumps(cfg: VMConfig) -> str:
    return ''.join(f'{key}: {getattr(cfg, key)}\n' for key in CONFIG_KEYS)


def save(path: Path | str, cfg: VMConfig) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(dumps(cfg), encoding='utf-8')
    return path


def validate(cfg: VMConfig) -> None:
    if not cfg.name:
        raise ConfigError('config error: name is required')
    if not cfg.uri:
        raise ConfigError('config error: uri is required')
    if not (
        cfg.storage_dir
        and cfg.base_image
        and cfg.overlay_image
        and cfg.domain_xml
    ):
        raise ConfigError(
            'config error: storage_dir/base_image/overlay_image/domain_xml are required'
        )
    if cfg.memory_mb <= 0 or cfg.vcpus <= 0:
        raise ConfigError('config error: memory_mb and vcpus must be > 0')
