"""CLI commands for VM init, ensure, run, logs, and teardown."""

from __future__ import annotations

import scriptconfig as scfg

from ..host import check_commands
from ..orchestrator import run_guest_command
from ..util import CommandRunner
from ..vm import EnsureOutcome, clean, domain_logs, ensure, init_vm, nuke
from ._common import _BaseCommand, _cfg_path, _load_cfg, log


class InitCLI(_BaseCommand):
    """Write a default config if missing and prepare VM storage."""

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        init_vm(_cfg_path(args.config), runner=CommandRunner())
        return 0


class EnsureCLI(_BaseCommand):
    """Provision disks, define the domain, and start it (idempotent)."""

    no_start = scfg.Value(
        False,
        isflag=True,
        help='Define VM assets but do not start the VM.',
    )

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        cfg = _load_cfg(args.config)
        outcome = ensure(
            cfg, no_start=bool(args.no_start), runner=CommandRunner()
        )
        if outcome is EnsureOutcome.ASSETS_READY:
            print(f'VM assets ready: {cfg.name}')
        else:
            print(f'VM running: {cfg.name}')
        return 0


class RunCLI(_BaseCommand):
    """Ensure the VM is running, then execute one command in the guest."""

    command = scfg.Value(
        '',
        help='Command to execute in the guest (default: guest_run_command).',
    )

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        cfg = _load_cfg(args.config)
        run_guest_command(cfg, args.command, runner=CommandRunner())
        return 0


class LogsCLI(_BaseCommand):
    """Show domain state and the tail of the serial console log."""

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        domain_logs(_load_cfg(args.config), runner=CommandRunner())
        return 0


class CleanCLI(_BaseCommand):
    """Stop the VM and remove the overlay, seed, and serial log."""

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        clean(_load_cfg(args.config), runner=CommandRunner())
        return 0


class NukeCLI(_BaseCommand):
    """Stop and undefine the VM, then delete its whole storage directory."""

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        nuke(_load_cfg(args.config), runner=CommandRunner())
        return 0


class CheckCLI(_BaseCommand):
    """Report host tools that civm needs or can use."""

    @classmethod
    def main(cls, argv=True, **kwargs):
        cls.cli(argv=argv, data=kwargs)
        missing, missing_opt = check_commands(CommandRunner())
        for cmd in missing:
            print(f'missing required: {cmd}')
        for cmd in missing_opt:
            print(f'missing optional: {cmd}')
        if missing:
            log.error('Required host tools are missing: {}', ', '.join(missing))
            return 1
        print('host tools ok')
        return 0
