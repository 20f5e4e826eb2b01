"""Runtime helpers for constructing virsh arguments and pacing poll loops."""

from __future__ import annotations

import time

DEFAULT_LIBVIRT_URI = 'qemu:///system'


def virsh_cmd(uri: str, *args: str) -> list[str]:
    return ['virsh', '-c', uri or DEFAULT_LIBVIRT_URI, *args]


class Clock:
    """Time source used by the polling loops."""

    def monotonic(self) -> float:
        return time.monotonic()

    def sleep(self, seconds: float) -> None:
        time.sleep(seconds)
