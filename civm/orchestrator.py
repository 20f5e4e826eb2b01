"""Run one command in the guest: wait for the agent, exec, poll, report."""

from __future__ import annotations

import enum
import sys
from dataclasses import dataclass
from typing import TextIO

from loguru import logger

from .agent import GuestAgentClient
from .config import VMConfig
from .errors import (
    AgentTimeoutError,
    ConfigError,
    GuestCommandError,
    ProtocolError,
)
from .runtime import Clock
from .util import CommandRunner
from .vm.lifecycle import ensure

log = logger

PING_INTERVAL_S = 2.0
STATUS_INTERVAL_S = 1.0
# Exit code reported when the agent says the process exited without one.
MISSING_EXIT_CODE = 1


class RunState(enum.Enum):
    WAITING_FOR_AGENT = 'waiting-for-agent'
    EXECUTING = 'executing'
    POLLING = 'polling'
    COMPLETED = 'completed'
    TIMED_OUT = 'timed-out'
    FAILED = 'failed'


@dataclass(frozen=True)
class RunOutcome:
    exit_code: int
    stdout: str
    stderr: str


def resolve_command(cfg: VMConfig, override: str | None = None) -> str:
    command = (override or '').strip() or (cfg.guest_run_command or '').strip()
    if not command:
        raise ConfigError(
            'no run command specified: set guest_run_command in config or pass --command'
        )
    return command


def _emit(text: str, stream: TextIO) -> None:
    if not text.strip():
        return
    stream.write(text)
    if not text.endswith('\n'):
        stream.write('\n')
    stream.flush()


class ExecutionOrchestrator:
    """
    Linear state machine for a single guest command.

    WAITING_FOR_AGENT pings every 2s until the deadline, EXECUTING issues
    guest-exec, POLLING asks for the status every 1s until the process
    exits, and COMPLETED writes the captured output. ``state`` holds the
    last state reached, including TIMED_OUT or FAILED on error.
    """

    def __init__(
        self,
        client: GuestAgentClient,
        *,
        timeout_s: float,
        clock: Clock | None = None,
        stdout: TextIO | None = None,
        stderr: TextIO | None = None,
    ):
        self.client = client
        self.timeout_s = timeout_s
        self.clock = clock or Clock()
        self.stdout = stdout
        self.stderr = stderr
        self.state = RunState.WAITING_FOR_AGENT

    def wait_for_agent(self) -> None:
        self.state = RunState.WAITING_FOR_AGENT
        deadline = self.clock.monotonic() + self.timeout_s
        attempts = 0
        while True:
            if self.clock.monotonic() >= deadline:
                self.state = RunState.TIMED_OUT
                raise AgentTimeoutError(
                    f'timed out waiting for qemu guest agent after '
                    f'{self.timeout_s:g}s ({attempts} pings)'
                )
            attempts += 1
            if self.client.ping() is not None:
                log.info('Guest agent reachable after {} ping(s)', attempts)
                return
            self.clock.sleep(PING_INTERVAL_S)

    def _poll(self, pid: int):
        self.state = RunState.POLLING
        while True:
            status = self.client.exec_status(pid)
            if status.exited:
                return status
            self.clock.sleep(STATUS_INTERVAL_S)

    def run(self, command: str) -> RunOutcome:
        self.wait_for_agent()
        try:
            self.state = RunState.EXECUTING
            handle = self.client.exec(command)
            status = self._poll(handle.pid)
            stdout = status.stdout
            stderr = status.stderr
        except ProtocolError:
            self.state = RunState.FAILED
            raise
        self.state = RunState.COMPLETED
        _emit(stdout, self.stdout or sys.stdout)
        _emit(stderr, self.stderr or sys.stderr)
        exit_code = (
            status.exitcode if status.exitcode is not None else MISSING_EXIT_CODE
        )
        if exit_code != 0:
            raise GuestCommandError(exit_code)
        log.info('Guest command completed successfully.')
        return RunOutcome(exit_code=exit_code, stdout=stdout, stderr=stderr)


def run_guest_command(
    cfg: VMConfig,
    command: str | None = None,
    *,
    runner: CommandRunner | None = None,
    clock: Clock | None = None,
) -> RunOutcome:
    """Ensure the VM is running, then run ``command`` (or the configured default)."""
    runner = runner or CommandRunner()
    resolved = resolve_command(cfg, command)
    ensure(cfg, no_start=False, runner=runner)
    client = GuestAgentClient(cfg, runner=runner)
    orchestrator = ExecutionOrchestrator(
        client, timeout_s=cfg.effective_agent_timeout, clock=clock
    )
    return orchestrator.run(resolved)
