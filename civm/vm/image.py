"""Base image download and cloud-init seed generation."""

from __future__ import annotations

from pathlib import Path

from loguru import logger

from ..config import VMConfig
from ..errors import ProvisioningError
from ..host import download_tool
from ..util import CmdError, CommandRunner, ensure_dir

log = logger

SEED_TOOL = 'cloud-localds'


def render_meta_data(cfg: VMConfig) -> str:
    return 'instance-id: civm\nlocal-hostname: civm\n'


def render_user_data(cfg: VMConfig) -> str:
    return """#cloud-config
package_update: true
packages:
  - qemu-guest-agent
runcmd:
  - [ systemctl, enable, --now, qemu-guest-agent ]
  - [ mkdir, -p, /ci ]
"""


def ensure_base_image(
    cfg: VMConfig, *, runner: CommandRunner | None = None
) -> Path:
    runner = runner or CommandRunner()
    base_img = Path(cfg.base_image)
    if base_img.exists():
        log.debug('Base image present: {}', base_img)
        return base_img
    url = cfg.base_image_url.strip()
    if not url:
        log.warning(
            'Base image not found at {}. Set base_image_url to auto-download '
            'or place the file manually.',
            base_img,
        )
        return base_img
    fetch = download_tool(runner)
    if fetch is None:
        raise ProvisioningError('need curl or wget to download base image')
    ensure_dir(base_img.parent)
    log.info('Downloading base image from {} (showing progress)', url)
    try:
        runner.run([*fetch, str(base_img), url], check=True, capture=False)
    except CmdError as ex:
        raise ProvisioningError(
            f'failed to download base image from {url}: {ex}'
        ) from ex
    log.info('Downloaded base image: {}', base_img)
    return base_img


def ensure_seed(
    cfg: VMConfig, *, runner: CommandRunner | None = None
) -> Path | None:
    runner = runner or CommandRunner()
    seed_iso = Path(cfg.seed_iso)
    if seed_iso.exists():
        log.debug('Seed ISO present: {}', seed_iso)
        return seed_iso
    if runner.which(SEED_TOOL) is None:
        log.debug('{} not available; skipping seed ISO', SEED_TOOL)
        return None
    ensure_dir(seed_iso.parent)
    storage = ensure_dir(cfg.storage_dir)
    meta_data = storage / 'meta-data'
    user_data = storage / 'user-data'
    meta_data.write_text(render_meta_data(cfg), encoding='utf-8')
    user_data.write_text(render_user_data(cfg), encoding='utf-8')
    try:
        runner.run(
            [SEED_TOOL, str(seed_iso), str(user_data), str(meta_data)],
            check=True,
            capture=False,
        )
    except CmdError as ex:
        raise ProvisioningError(f'failed to build seed ISO: {ex}') from ex
    log.info('Seed ISO ready: {}', seed_iso)
    return seed_iso
