"""VM operation exports for provisioning, lifecycle, and teardown helpers."""

from __future__ import annotations

from .domain import escape_xml, render_domain_xml, write_domain_xml
from .image import ensure_base_image, ensure_seed
from .lifecycle import (
    EnsureOutcome,
    domain_defined,
    domain_logs,
    domain_state,
    ensure,
    ensure_defined,
    ensure_started,
    init_vm,
)
from .overlay import ensure_overlay
from .teardown import clean, nuke, safe_remove_tree

__all__ = [
    'EnsureOutcome',
    'clean',
    'domain_defined',
    'domain_logs',
    'domain_state',
    'ensure',
    'ensure_base_image',
    'ensure_defined',
    'ensure_overlay',
    'ensure_seed',
    'ensure_started',
    'escape_xml',
    'init_vm',
    'nuke',
    'render_domain_xml',
    'safe_remove_tree',
    'write_domain_xml',
]
