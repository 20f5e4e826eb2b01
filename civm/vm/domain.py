"""Render the libvirt domain XML from config and current disk state."""

from __future__ import annotations

from pathlib import Path
from xml.sax.saxutils import escape

from ..config import VMConfig
from ..util import ensure_dir

_XML_ENTITIES = {'"': '&quot;', "'": '&apos;'}


def escape_xml(value: str) -> str:
    return escape(value, _XML_ENTITIES)


def _seed_disk_xml(cfg: VMConfig) -> str:
    if not cfg.seed_iso or not Path(cfg.seed_iso).exists():
        return ''
    return f"""
    <disk type='file' device='cdrom'>
      <driver name='qemu' type='raw'/>
      <source file='{escape_xml(cfg.seed_iso)}'/>
      <target dev='sda' bus='sata'/>
      <readonly/>
    </disk>"""


def render_domain_xml(cfg: VMConfig) -> str:
    """
    Build the domain XML. The seed cdrom is attached only when the seed ISO
    exists at render time.
    """
    return f"""<domain type='kvm'>
  <name>{escape_xml(cfg.name)}</name>
  <memory unit='MiB'>{cfg.memory_mb}</memory>
  <vcpu>{cfg.vcpus}</vcpu>
  <os>
    <type arch='x86_64' machine='pc-q35-8.2'>hvm</type>
    <boot dev='hd'/>
  </os>
  <features>
    <acpi/>
    <apic/>
  </features>
  <cpu mode='host-passthrough'/>
  <devices>
    <emulator>/usr/bin/qemu-system-x86_64</emulator>
    <disk type='file' device='disk'>
      <driver name='qemu' type='qcow2'/>
      <source file='{escape_xml(cfg.overlay_image)}'/>
      <target dev='vda' bus='virtio'/>
    </disk>{_seed_disk_xml(cfg)}
    <interface type='network'>
      <source network='{escape_xml(cfg.network)}'/>
      <model type='virtio'/>
    </interface>
    <channel type='unix'>
      <target type='virtio' name='org.qemu.guest_agent.0'/>
    </channel>
    <serial type='file'>
      <source path='{escape_xml(cfg.serial_log)}'/>
      <target port='0'/>
    </serial>
    <console type='pty'>
      <target type='serial' port='0'/>
    </console>
    <graphics type='none'/>
  </devices>
</domain>
"""


def write_domain_xml(cfg: VMConfig) -> Path:
    path = Path(cfg.domain_xml)
    ensure_dir(path.parent)
    path.write_text(render_domain_xml(cfg), encoding='utf-8')
    return path
