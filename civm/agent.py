"""QEMU guest agent client over ``virsh qemu-agent-command``."""

from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass
from typing import Any

from loguru import logger

from .config import VMConfig
from .errors import ProtocolError
from .runtime import virsh_cmd
from .util import CmdError, CommandRunner

log = logger

DEFAULT_GUEST_SHELL = ('cmd.exe', ['/c'])


def split_guest_shell(shell: str) -> tuple[str, list[str]]:
    """Split ``guest_shell`` on whitespace into an executable and fixed args."""
    parts = (shell or '').split()
    if not parts:
        path, args = DEFAULT_GUEST_SHELL
        return path, list(args)
    return parts[0], parts[1:]


def decode_output(data: str | None) -> str:
    if not data:
        return ''
    try:
        raw = base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as ex:
        raise ProtocolError(f'invalid base64 in guest output: {ex}') from ex
    return raw.decode('utf-8', errors='replace')


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _return_object(payload: Any, command: str) -> dict[str, Any]:
    if not isinstance(payload, dict):
        raise ProtocolError(f'{command} response is not a JSON object')
    ret = payload.get('return')
    if not isinstance(ret, dict):
        raise ProtocolError(f'missing return object in {command} response')
    return ret


@dataclass(frozen=True)
class PingResult:
    """The agent answered; guest-ping carries no payload."""


@dataclass(frozen=True)
class ExecResult:
    pid: int

    @classmethod
    def parse(cls, payload: Any) -> 'ExecResult':
        ret = _return_object(payload, 'guest-exec')
        if 'pid' not in ret:
            raise ProtocolError('missing pid in guest-exec response')
        pid = ret['pid']
        if not _is_int(pid):
            raise ProtocolError(
                f'invalid pid type in guest-exec response: {pid!r}'
            )
        return cls(pid=pid)


@dataclass(frozen=True)
class ExecStatus:
    exited: bool
    exitcode: int | None = None
    out_data: str | None = None
    err_data: str | None = None

    @classmethod
    def parse(cls, payload: Any) -> 'ExecStatus':
        ret = _return_object(payload, 'guest-exec-status')
        exited = ret.get('exited')
        if not isinstance(exited, bool):
            raise ProtocolError(
                f'missing or non-boolean exited flag in guest-exec-status: {exited!r}'
            )
        exitcode = ret.get('exitcode')
        if exitcode is not None and not _is_int(exitcode):
            raise ProtocolError(f'invalid exitcode type: {exitcode!r}')
        out_data = ret.get('out-data')
        err_data = ret.get('err-data')
        for key, value in (('out-data', out_data), ('err-data', err_data)):
            if value is not None and not isinstance(value, str):
                raise ProtocolError(f'invalid {key} type: {value!r}')
        return cls(
            exited=exited,
            exitcode=exitcode,
            out_data=out_data,
            err_data=err_data,
        )

    @property
    def stdout(self) -> str:
        return decode_output(self.out_data)

    @property
    def stderr(self) -> str:
        return decode_output(self.err_data)


class GuestAgentClient:
    """
    Sends guest agent requests through libvirt's agent passthrough.

    Every request is a single JSON object handed to
    ``virsh qemu-agent-command``; no channel to the guest is opened here.
    """

    def __init__(self, cfg: VMConfig, runner: CommandRunner | None = None):
        self.cfg = cfg
        self.runner = runner or CommandRunner()

    def _command(self, request: dict[str, Any]) -> str:
        payload = json.dumps(request, separators=(',', ':'))
        res = self.runner.run(
            virsh_cmd(
                self.cfg.uri, 'qemu-agent-command', self.cfg.name, payload
            ),
            check=True,
            capture=True,
        )
        return res.stdout.strip()

    def _request(self, request: dict[str, Any]) -> Any:
        command = request['execute']
        try:
            out = self._command(request)
        except (CmdError, OSError) as ex:
            raise ProtocolError(f'{command} failed: {ex}') from ex
        try:
            return json.loads(out)
        except json.JSONDecodeError as ex:
            raise ProtocolError(f'invalid JSON in {command} response: {ex}') from ex

    def ping(self) -> PingResult | None:
        """Return a PingResult when the agent answers, None otherwise."""
        try:
            self._command({'execute': 'guest-ping'})
        except CmdError as ex:
            log.debug('guest-ping failed: {}', ex.result.stderr.strip())
            return None
        except OSError as ex:
            log.debug('guest-ping failed: {}', ex)
            return None
        return PingResult()

    def exec_request(self, command: str) -> dict[str, Any]:
        path, args = split_guest_shell(self.cfg.guest_shell)
        return {
            'execute': 'guest-exec',
            'arguments': {
                'path': path,
                'arg': [*args, command],
                'capture-output': True,
            },
        }

    def exec(self, command: str) -> ExecResult:
        log.debug('guest-exec in {}: {}', self.cfg.name, command)
        result = ExecResult.parse(self._request(self.exec_request(command)))
        log.debug('guest-exec pid={}', result.pid)
        return result

    def exec_status(self, pid: int) -> ExecStatus:
        request = {'execute': 'guest-exec-status', 'arguments': {'pid': pid}}
        return ExecStatus.parse(self._request(request))
