"""Manual assembly: placeholder substitution, rendering and packaging."""

from .assembler import ManualAssembler, ManualAssets
from .template import ManualTemplate, Slot, SlotKind, nixos_manual_slots
from .toolchain import RenderRequest, Renderer, ToolchainRenderer, XmlLinter

__all__ = [
    "ManualAssembler",
    "ManualAssets",
    "ManualTemplate",
    "RenderRequest",
    "Renderer",
    "Slot",
    "SlotKind",
    "ToolchainRenderer",
    "XmlLinter",
    "nixos_manual_slots",
]
