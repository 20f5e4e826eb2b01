"""VM lifecycle implementation: init, define, start, and the composed ensure."""

from __future__ import annotations

import enum
from pathlib import Path

from loguru import logger

from ..config import VMConfig, default_config, load, save, validate
from ..errors import HypervisorError, ProvisioningError
from ..runtime import virsh_cmd
from ..util import CmdError, CommandRunner, ensure_dir
from .domain import write_domain_xml
from .image import ensure_base_image, ensure_seed
from .overlay import ensure_overlay

log = logger

SERIAL_TAIL_LINES = 200


class EnsureOutcome(enum.Enum):
    ASSETS_READY = 'assets-ready'
    RUNNING = 'running'


def _is_already_active_error(ex: Exception) -> bool:
    return 'already active' in str(ex).lower()


def domain_defined(cfg: VMConfig, *, runner: CommandRunner) -> bool:
    res = runner.run(
        virsh_cmd(cfg.uri, 'dominfo', cfg.name), check=False, capture=True
    )
    return res.code == 0


def domain_state(cfg: VMConfig, *, runner: CommandRunner) -> str:
    res = runner.run(
        virsh_cmd(cfg.uri, 'domstate', cfg.name), check=False, capture=True
    )
    if res.code != 0:
        return ''
    return res.stdout.strip()


def ensure_defined(
    cfg: VMConfig, *, runner: CommandRunner | None = None
) -> bool:
    """Define the domain from its XML file if libvirt does not know it yet.

    Returns True when a define was issued.
    """
    runner = runner or CommandRunner()
    if domain_defined(cfg, runner=runner):
        log.info('Domain already defined: {}', cfg.name)
        return False
    try:
        runner.run(
            virsh_cmd(cfg.uri, 'define', cfg.domain_xml),
            check=True,
            capture=True,
        )
    except CmdError as ex:
        raise HypervisorError(
            f'failed to define domain {cfg.name} from {cfg.domain_xml}: {ex}'
        ) from ex
    log.info('Domain defined: {}', cfg.name)
    return True


def ensure_started(
    cfg: VMConfig, *, runner: CommandRunner | None = None
) -> bool:
    """Start the domain unless it is already running.

    Returns True when a start was issued.
    """
    runner = runner or CommandRunner()
    state = domain_state(cfg, runner=runner)
    if 'running' in state.lower():
        log.info('VM already running: {}', cfg.name)
        return False
    try:
        runner.run(
            virsh_cmd(cfg.uri, 'start', cfg.name), check=True, capture=True
        )
    except CmdError as ex:
        # The domain may have come up between domstate and start.
        if _is_already_active_error(ex):
            log.info('VM already active: {}', cfg.name)
            return False
        raise HypervisorError(
            f'failed to start domain {cfg.name}: {ex}'
        ) from ex
    log.info('VM started: {}', cfg.name)
    return True


def ensure(
    cfg: VMConfig,
    *,
    no_start: bool = False,
    runner: CommandRunner | None = None,
) -> EnsureOutcome:
    """
    Bring the VM to a defined (and by default running) state.

    Steps run in order and each one is a no-op when its artifact already
    exists: base image, seed ISO, overlay disk, domain XML, define, start.
    Safe to call repeatedly.
    """
    runner = runner or CommandRunner()
    validate(cfg)
    ensure_dir(cfg.storage_dir)
    log.debug('Ensuring base image for {}', cfg.name)
    ensure_base_image(cfg, runner=runner)
    log.debug('Ensuring seed ISO for {}', cfg.name)
    ensure_seed(cfg, runner=runner)
    if not Path(cfg.base_image).exists():
        raise ProvisioningError(
            f'base image missing after init: {cfg.base_image}'
        )
    ensure_overlay(cfg, runner=runner)
    xml_path = write_domain_xml(cfg)
    log.debug('Domain XML written: {}', xml_path)
    ensure_defined(cfg, runner=runner)
    if no_start:
        log.info('VM assets ensured (not started because --no-start was used).')
        return EnsureOutcome.ASSETS_READY
    ensure_started(cfg, runner=runner)
    log.info('VM ensured and running: {}', cfg.name)
    return EnsureOutcome.RUNNING


def init_vm(
    cfg_path: Path | str,
    *,
    root: Path | str | None = None,
    runner: CommandRunner | None = None,
) -> VMConfig:
    """Write a default config if none exists, then prepare storage assets."""
    runner = runner or CommandRunner()
    cfg_path = Path(cfg_path)
    if not cfg_path.exists():
        save(cfg_path, default_config(root))
        log.info('Created VM config: {}', cfg_path)
    cfg = load(cfg_path, root=root)
    validate(cfg)
    ensure_dir(cfg.storage_dir)
    ensure_base_image(cfg, runner=runner)
    ensure_seed(cfg, runner=runner)
    log.info('VM storage ready: {}', cfg.storage_dir)
    return cfg


def domain_logs(
    cfg: VMConfig, *, runner: CommandRunner | None = None
) -> None:
    runner = runner or CommandRunner()
    print(f'Domain: {cfg.name}')
    print(f'URI: {cfg.uri}')
    state = domain_state(cfg, runner=runner)
    if state:
        print(f'State: {state}')
    serial = Path(cfg.serial_log)
    if not serial.exists():
        print(f'Serial log does not exist yet: {serial}')
        return
    print(f'Serial log: {serial}', flush=True)
    runner.run(
        ['tail', '-n', str(SERIAL_TAIL_LINES), str(serial)],
        check=True,
        capture=False,
    )
