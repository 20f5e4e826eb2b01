"""Ephemeral libvirt VM harness that runs one command in the guest."""

__version__ = '0.1.0'
