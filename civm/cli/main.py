"""Top-level modal CLI wiring, argv normalization, and logging setup."""

from __future__ import annotations

import os
import sys

import scriptconfig as scfg
from loguru import logger

from ..errors import GuestCommandError
from ._common import log
from .vm import (
    CheckCLI,
    CleanCLI,
    EnsureCLI,
    InitCLI,
    LogsCLI,
    NukeCLI,
    RunCLI,
)


class CIVMModalCLI(scfg.ModalCLI):
    """Ephemeral libvirt VM harness: provision, run one guest command, tear down."""

    init = InitCLI
    ensure = EnsureCLI
    run = RunCLI
    logs = LogsCLI
    clean = CleanCLI
    nuke = NukeCLI
    check = CheckCLI


def main(argv: list[str] | None = None) -> None:
    if argv is None:
        argv = sys.argv[1:]
    argv = _normalize_argv(argv)
    _setup_logging(_count_verbose(argv))

    try:
        rc = CIVMModalCLI.main(argv=argv, _noexit=True)
    except GuestCommandError as ex:
        print(f'ERROR: {ex}', file=sys.stderr)
        sys.exit(_guest_exit_status(ex.exit_code))
    except Exception as ex:
        print(f'ERROR: {ex}', file=sys.stderr)
        log.error('Unhandled civm error: {}', ex)
        sys.exit(2)

    if any(flag in argv for flag in ('-h', '--help')):
        sys.exit(0)
    if isinstance(rc, int):
        sys.exit(rc)
    sys.exit(0)


def _guest_exit_status(code: int) -> int:
    return code if 0 < code < 256 else 1


def _setup_logging(args_verbose: int) -> None:
    logger.remove()
    level = 'DEBUG' if args_verbose >= 1 else 'INFO'
    colorize = sys.stderr.isatty() and os.getenv('NO_COLOR') is None
    logger.add(
        sys.stderr,
        level=level,
        colorize=colorize,
        format='<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>',
    )
    log.debug('Logging configured at {} (colorize={})', level, colorize)


def _normalize_argv(argv: list[str]) -> list[str]:
    """Normalize accepted hyphenated spellings to scriptconfig option names."""
    out: list[str] = []
    for item in argv:
        if item == '--no-start':
            out.append('--no_start')
        elif item.startswith('--no-start='):
            out.append('--no_start=' + item.split('=', 1)[1])
        else:
            out.append(item)
    return out


def _count_verbose(argv: list[str]) -> int:
    count = 0
    for item in argv:
        if item == '--verbose':
            count += 1
        elif item.startswith('-') and not item.startswith('--'):
            short = item[1:]
            if short and set(short) <= {'v'}:
                count += len(short)
    return count
